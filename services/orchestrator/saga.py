import logging
from shared.observability import orders_saga_compensation_total

logger = logging.getLogger(__name__)

class SagaStep:
    def __init__(self, name, action, compensation=None):
        self.name = name
        self.action = action
        self.compensation = compensation

class SagaOrchestrator:
    """
    Runs async steps in order against a shared ``ctx`` dict.

    When a step raises, compensations run in reverse order for every step that
    was started, the failing one included: a step may fail halfway (e.g. after
    adjusting stock for some items), so compensations must read ``ctx`` to find
    out what actually happened and do nothing when there is nothing to undo.
    """

    def __init__(self):
        self.steps = []

    def add_step(self, name: str, action, compensation=None):
        """Builder pattern to add a step and its rollback compensation."""
        self.steps.append(SagaStep(name, action, compensation))
        return self

    async def execute(self, ctx: dict):
        """Executes steps sequentially. Triggers rollback on any exception."""
        started_steps = []
        try:
            for step in self.steps:
                started_steps.append(step)
                await step.action(ctx)
            return ctx
        except Exception as e:
            failed = started_steps[-1]
            ctx["failed_step"] = failed.name
            logger.error(f"Saga execution failed at step '{failed.name}': {e}")
            await self._rollback(started_steps, ctx)
            raise

    async def _rollback(self, started_steps: list, ctx: dict):
        """Executes compensations in reverse order. Wraps each in a try/except."""
        logger.info("Initiating Saga Rollback...")
        for step in reversed(started_steps):
            if step.compensation:
                try:
                    await step.compensation(ctx)
                    logger.info(f"Rollback successful for step '{step.name}'")
                    orders_saga_compensation_total.labels(step_name=step.name).inc()
                except Exception as ce:
                    # A failing compensation MUST NOT block other compensations
                    logger.critical(f"CRITICAL: Compensation failed for '{step.name}'. Manual intervention may be required. Error: {ce}")
                    ctx.setdefault("compensation_errors", []).append((step.name, ce))

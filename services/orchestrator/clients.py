"""
HTTP clients for the user directory and the product catalog.

Every call ends in one of three ways:

* a domain result (parsed payload, or ``None`` when a lookup answers 404),
* ``RemoteCallRejected`` when the service explicitly refused the request,
* ``RemoteTransportFailure`` when the request could not be completed at all
  (connection error, timeout, gateway error, unparseable or invalid reply).
"""
import httpx
import structlog
from pydantic import ValidationError

from shared.config import settings
from shared.observability import orders_remote_call_failures_total
from shared.security import INTERNAL_API_HEADERS
from services.order_service.exceptions import RemoteCallRejected, RemoteTransportFailure
from .schemas import RemoteProduct, RemoteUser, StockAdjustment

logger = structlog.get_logger(__name__)

# Gateway/proxy replies mean the service itself was not reached
TRANSPORT_STATUS_CODES = frozenset({502, 503, 504})


async def get_http_client():
    async with httpx.AsyncClient(headers=INTERNAL_API_HEADERS, timeout=settings.REMOTE_TIMEOUT_SECONDS) as client:
        yield client


class RemoteServiceClient:
    dependency = "remote service"

    def __init__(self, client: httpx.AsyncClient, base_url: str, timeout: float | None = None):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = settings.REMOTE_TIMEOUT_SECONDS if timeout is None else timeout

    def _transport_failure(self, reason: str) -> RemoteTransportFailure:
        orders_remote_call_failures_total.labels(dependency=self.dependency, kind="transport").inc()
        logger.warning("remote_call_transport_failure", dependency=self.dependency, reason=reason)
        return RemoteTransportFailure(self.dependency, reason)

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self.client.request(
                method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            raise self._transport_failure(f"timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise self._transport_failure(str(e) or type(e).__name__) from e

        if resp.status_code in TRANSPORT_STATUS_CODES:
            raise self._transport_failure(f"gateway answered {resp.status_code}")
        return resp

    def _reject(self, resp: httpx.Response) -> RemoteCallRejected:
        message = resp.reason_phrase or f"{self.dependency} rejected the request"
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("message")
            if isinstance(detail, str) and detail:
                message = detail
        orders_remote_call_failures_total.labels(dependency=self.dependency, kind="rejected").inc()
        return RemoteCallRejected(self.dependency, resp.status_code, message)

    def _parse(self, resp: httpx.Response, model):
        try:
            return model.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise self._transport_failure(f"malformed reply: {e}") from e


class DirectoryClient(RemoteServiceClient):
    dependency = "user service"

    def __init__(self, client: httpx.AsyncClient, base_url: str | None = None, timeout: float | None = None):
        super().__init__(client, base_url or settings.USER_SERVICE_URL, timeout)

    async def get_user(self, user_id: int) -> RemoteUser | None:
        resp = await self._send("GET", f"/users/{user_id}")
        if resp.status_code == 404:
            return None
        if resp.is_error:
            raise self._reject(resp)
        return self._parse(resp, RemoteUser)


class InventoryClient(RemoteServiceClient):
    dependency = "product service"

    def __init__(self, client: httpx.AsyncClient, base_url: str | None = None, timeout: float | None = None):
        super().__init__(client, base_url or settings.PRODUCT_SERVICE_URL, timeout)

    async def get_product(self, product_id: int) -> RemoteProduct | None:
        resp = await self._send("GET", f"/products/{product_id}")
        if resp.status_code == 404:
            return None
        if resp.is_error:
            raise self._reject(resp)
        return self._parse(resp, RemoteProduct)

    async def adjust_stock(self, product_id: int, quantity_change: int, idempotency_key: str | None = None) -> None:
        """
        Applies a signed stock change. The catalog refuses a decrement that
        would take stock below zero, so a negative change doubles as a
        conditional reservation.
        """
        payload = StockAdjustment(product_id=product_id, quantity_change=quantity_change)
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        resp = await self._send(
            "POST",
            f"/products/{product_id}/stock",
            json=payload.model_dump(by_alias=True),
            headers=headers,
        )
        if resp.is_error:
            raise self._reject(resp)

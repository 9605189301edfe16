import asyncio
import json
import os

# Must be set before the app modules read their configuration
os.environ["TRACING_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["USER_SERVICE_URL"] = "http://users.test"
os.environ["PRODUCT_SERVICE_URL"] = "http://products.test"
os.environ["REMOTE_TIMEOUT_SECONDS"] = "2"

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from shared.config.database import Base, get_db
from services.order_service.main import order_app
from services.orchestrator.clients import DirectoryClient, InventoryClient, get_http_client
from services.orchestrator.service import OrderOrchestrator
from services.payment_service.service import PaymentProcessor, get_payment_processor

USER_URL = "http://users.test"
PRODUCT_URL = "http://products.test"
ADMIN_HEADERS = {"X-Internal-API-Key": "test-internal-key"}

OAK_STREET = {"id": 5, "street": "12 Oak St", "city": "Springfield", "state": "IL", "zipCode": "62704"}


class FakeUserService:
    """In-memory user directory served over httpx.MockTransport."""

    def __init__(self):
        self.users = {
            1: {"id": 1, "name": "Homer", "addresses": [
                {"id": 4, "street": "742 Evergreen Terrace", "city": "Springfield", "state": "OR", "zipCode": "97403"},
                OAK_STREET,
            ]},
            2: {"id": 2, "name": "No Addresses"},
        }
        self.calls = []
        # callable(request) -> httpx.Response, or raises a transport error
        self.failure = None

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.failure:
            return self.failure(request)
        user_id = int(request.url.path.rsplit("/", 1)[-1])
        user = self.users.get(user_id)
        if user is None:
            return httpx.Response(404, json={"message": "User not found"})
        return httpx.Response(200, json=user)


class FakeProductService:
    """
    In-memory product catalog. Stock decrements are conditional unless
    ``conditional`` is False, mirroring a catalog without an atomic check.
    """

    def __init__(self, conditional: bool = True):
        self.conditional = conditional
        self.products = {
            10: {"id": 10, "name": "Desk Lamp", "price": 9.99, "stockQuantity": 5},
            11: {"id": 11, "name": "Notebook", "price": 2.50, "stockQuantity": 100},
            12: {"id": 12, "name": "Last Unit", "price": 40.00, "stockQuantity": 1},
        }
        self.reads = []
        self.adjustments = []
        self.idempotency_keys = []
        self.read_failure = None
        # product_id -> callable(request) -> httpx.Response
        self.adjust_failures = {}
        # product ids whose next change is applied but whose reply is lost
        self.lost_replies = set()
        self._replies = {}
        self._gate = None
        self._gate_size = 0

    def hold_reads_until(self, count: int):
        """Blocks product reads until ``count`` reads are in flight."""
        self._gate = asyncio.Event()
        self._gate_size = count

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")
        product_id = int(parts[1])

        if request.method == "GET":
            self.reads.append(product_id)
            if self.read_failure:
                return self.read_failure(request)
            if self._gate is not None:
                if len(self.reads) >= self._gate_size:
                    self._gate.set()
                await asyncio.wait_for(self._gate.wait(), timeout=2)
            product = self.products.get(product_id)
            if product is None:
                return httpx.Response(404, json={"message": "Product not found"})
            return httpx.Response(200, json=dict(product))

        if product_id in self.adjust_failures:
            return self.adjust_failures[product_id](request)

        key = request.headers.get("Idempotency-Key")
        if key in self._replies:
            return httpx.Response(201, json=self._replies[key])

        body = json.loads(request.content)
        change = body["quantityChange"]
        product = self.products.get(product_id)
        if product is None:
            return httpx.Response(404, json={"message": "Product not found"})
        if self.conditional and product["stockQuantity"] + change < 0:
            return httpx.Response(409, json={"message": f"Insufficient stock for {product['name']}"})
        product["stockQuantity"] += change
        self.adjustments.append((body["productId"], change))
        self.idempotency_keys.append(request.headers.get("Idempotency-Key"))
        self._replies[key] = {"success": True}
        if product_id in self.lost_replies:
            self.lost_replies.discard(product_id)
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(201, json={"success": True})


class RecordingPaymentProcessor(PaymentProcessor):
    def __init__(self):
        super().__init__()
        self.charges = []
        self.refunds = []

    async def charge(self, method, amount):
        transaction_id = await super().charge(method, amount)
        self.charges.append((method, amount, transaction_id))
        return transaction_id

    async def refund(self, transaction_id, amount):
        await super().refund(transaction_id, amount)
        self.refunds.append((transaction_id, amount))


def connection_refused(request):
    raise httpx.ConnectError("Connection refused", request=request)

def read_timeout(request):
    raise httpx.ReadTimeout("timed out", request=request)

def malformed_reply(request):
    return httpx.Response(200, content=b"<html>not json</html>")


@pytest_asyncio.fixture
async def engine(tmp_path):
    # SQLite has no schemas; map order_schema onto the default one
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}",
        execution_options={"schema_translate_map": {"order_schema": None}},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def user_service():
    return FakeUserService()


@pytest.fixture
def product_service():
    return FakeProductService()


@pytest.fixture
def payments():
    return RecordingPaymentProcessor()


@pytest_asyncio.fixture
async def http_client(user_service, product_service):
    async def route(request: httpx.Request):
        if request.url.host == "users.test":
            return await user_service(request)
        return await product_service(request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(route)) as client:
        yield client


@pytest.fixture
def make_orchestrator(http_client, payments):
    def _make(session):
        return OrderOrchestrator(
            session,
            DirectoryClient(http_client, USER_URL),
            InventoryClient(http_client, PRODUCT_URL),
            payments,
        )
    return _make


@pytest.fixture
def orchestrator(make_orchestrator, db_session):
    return make_orchestrator(db_session)


@pytest_asyncio.fixture
async def client(session_maker, http_client, payments):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    order_app.dependency_overrides[get_db] = override_get_db
    order_app.dependency_overrides[get_http_client] = lambda: http_client
    order_app.dependency_overrides[get_payment_processor] = lambda: payments

    async with AsyncClient(
        transport=ASGITransport(app=order_app),
        base_url="http://test"
    ) as ac:
        yield ac

    order_app.dependency_overrides.clear()

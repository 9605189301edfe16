import json
from decimal import Decimal

import httpx
import pytest

from services.order_service.exceptions import RemoteCallRejected, RemoteTransportFailure
from services.orchestrator.clients import DirectoryClient, InventoryClient, get_http_client
from conftest import OAK_STREET, connection_refused, malformed_reply, read_timeout


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_user_parses_addresses():
    def handler(request):
        assert request.url.path == "/users/1"
        return httpx.Response(200, json={"id": 1, "addresses": [OAK_STREET]})

    async with client_for(handler) as http:
        user = await DirectoryClient(http, "http://users.test").get_user(1)

    assert user.id == 1
    assert user.addresses[0].snapshot() == "12 Oak St, Springfield, IL 62704"


@pytest.mark.asyncio
async def test_lookup_404_is_an_absent_result():
    async with client_for(lambda request: httpx.Response(404, json={"message": "nope"})) as http:
        assert await DirectoryClient(http, "http://users.test").get_user(99) is None
        assert await InventoryClient(http, "http://products.test").get_product(99) is None


@pytest.mark.asyncio
async def test_explicit_rejection_keeps_status_and_message():
    def handler(request):
        return httpx.Response(422, json={"detail": "Product is archived"})

    async with client_for(handler) as http:
        with pytest.raises(RemoteCallRejected) as exc_info:
            await InventoryClient(http, "http://products.test").get_product(10)

    assert exc_info.value.status_code == 422
    assert exc_info.value.message == "Product is archived"
    assert exc_info.value.dependency == "product service"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "handler",
    [
        connection_refused,
        read_timeout,
        malformed_reply,
        lambda request: httpx.Response(503, text="upstream down"),
        lambda request: httpx.Response(200, json={"id": 10, "name": "Lamp"}),  # missing fields
    ],
    ids=["refused", "timeout", "not-json", "gateway", "invalid-payload"],
)
async def test_transport_problems_are_transport_failures(handler):
    async with client_for(handler) as http:
        with pytest.raises(RemoteTransportFailure) as exc_info:
            await InventoryClient(http, "http://products.test").get_product(10)

    assert exc_info.value.dependency == "product service"


@pytest.mark.asyncio
async def test_get_product_parses_price_as_decimal():
    def handler(request):
        return httpx.Response(200, json={"id": 10, "name": "Desk Lamp", "price": 9.99, "stockQuantity": 5})

    async with client_for(handler) as http:
        product = await InventoryClient(http, "http://products.test").get_product(10)

    assert product.price == Decimal("9.99")
    assert product.stock_quantity == 5


@pytest.mark.asyncio
async def test_adjust_stock_sends_signed_change_and_idempotency_key():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json={"success": True})

    async with client_for(handler) as http:
        await InventoryClient(http, "http://products.test").adjust_stock(10, -2, idempotency_key="order-1-item-1")

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/products/10/stock"
    assert json.loads(request.content) == {"productId": 10, "quantityChange": -2}
    assert request.headers["Idempotency-Key"] == "order-1-item-1"


@pytest.mark.asyncio
async def test_http_client_carries_internal_api_key():
    clients = get_http_client()
    http = await clients.__anext__()
    try:
        assert http.headers["X-Internal-API-Key"] == "test-internal-key"
        assert http.timeout.read == 2.0
    finally:
        await clients.aclose()

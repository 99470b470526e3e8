"""Unit tests for BackOfficeClient with httpx mock transport."""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from typing import Callable

import httpx
import pytest

from retail_pos.api import BackOfficeClient
from retail_pos.cart import LocalCart, RemoteOrderCart
from retail_pos.catalog import CatalogBrowser
from retail_pos.errors import GENERIC_SALE_MESSAGE, NetworkError, ServerRejection
from retail_pos.models import FulfillmentStatus, LoadState, OrderStatus, ProductFilters


# ─── Helpers ────────────────────────────────────────────────────────────────


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> BackOfficeClient:
    return BackOfficeClient(
        base_url="https://backoffice.test/api",
        application_name="pos-tests",
        transport=httpx.MockTransport(handler),
    )


def _run(client: BackOfficeClient, coro_factory):
    async def runner():
        async with client:
            return await coro_factory(client)

    return asyncio.run(runner())


_PRODUCT = {
    "id": "P1",
    "name": "Arroz Costeño 5kg",
    "sku": "ARR-5",
    "brand": "b-1",
    "brandName": "Costeño",
    "stock": {"current": 12, "minimum": 2},
    "price": {"amount": 24.9, "currency": "PEN", "label": "S/. 24.90"},
}


# ─── Tests ──────────────────────────────────────────────────────────────────


class TestHandleResponse:
    def test_200_returns_data(self) -> None:
        resp = httpx.Response(200, json={"ok": True})
        assert BackOfficeClient._handle_response(resp) == {"ok": True}

    def test_4xx_with_error_field_is_rejection(self) -> None:
        resp = httpx.Response(409, json={"error": "Stock insuficiente"})
        with pytest.raises(ServerRejection) as excinfo:
            BackOfficeClient._handle_response(resp)
        assert excinfo.value.status_code == 409
        assert excinfo.value.message == "Stock insuficiente"
        assert excinfo.value.server_message == "Stock insuficiente"

    def test_4xx_with_message_field(self) -> None:
        resp = httpx.Response(422, json={"message": "Invalid payment method"})
        with pytest.raises(ServerRejection) as excinfo:
            BackOfficeClient._handle_response(resp)
        assert excinfo.value.message == "Invalid payment method"

    def test_4xx_without_message_is_generic(self) -> None:
        resp = httpx.Response(400, json={"detail": []})
        with pytest.raises(ServerRejection) as excinfo:
            BackOfficeClient._handle_response(resp)
        assert excinfo.value.server_message is None
        assert excinfo.value.message == GENERIC_SALE_MESSAGE

    def test_5xx_is_network_error(self) -> None:
        resp = httpx.Response(502, text="bad gateway")
        with pytest.raises(NetworkError):
            BackOfficeClient._handle_response(resp)

    def test_non_json_success_is_network_error(self) -> None:
        resp = httpx.Response(200, text="<html>")
        with pytest.raises(NetworkError):
            BackOfficeClient._handle_response(resp)


class TestRequests:
    def test_list_products_posts_filters_and_parses(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "data": [_PRODUCT],
                    "pagination": {
                        "page": 2,
                        "perPage": 9,
                        "totalItems": 10,
                        "totalPages": 2,
                        "hasNext": False,
                        "hasPrev": True,
                    },
                },
            )

        products, pagination = _run(
            _client(handler),
            lambda c: c.list_products(ProductFilters(name=" arroz ", brand=""), page=2),
        )

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/products"
        assert json.loads(request.content) == {"name": "arroz", "page": 2, "perPage": 9}
        assert request.headers["X-Application-Name"] == "pos-tests"
        assert request.headers["trace"]

        product = products[0]
        assert product.id == "P1"
        assert product.brand_name == "Costeño"
        assert product.stock.current == 12
        assert product.price.amount == Decimal("24.9")
        assert pagination.page == 2
        assert pagination.has_prev

    def test_each_request_gets_its_own_trace(self) -> None:
        traces: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            traces.append(request.headers["trace"])
            return httpx.Response(200, json={"data": [], "pagination": {"page": 1}})

        async def twice(c: BackOfficeClient) -> None:
            await c.list_products(ProductFilters(), 1)
            await c.list_products(ProductFilters(), 1)

        _run(_client(handler), twice)
        assert len(set(traces)) == 2

    def test_create_transaction_returns_code(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/transactions"
            return httpx.Response(201, json={"transaction": {"code": "V-0001"}})

        code = _run(_client(handler), lambda c: c.create_transaction({"items": [], "paymentMethod": "CASH"}))
        assert code == "V-0001"

    def test_create_transaction_without_code_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": True})

        with pytest.raises(NetworkError):
            _run(_client(handler), lambda c: c.create_transaction({}))

    def test_transport_failure_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError):
            _run(_client(handler), lambda c: c.get_order("O1"))

    def test_get_order_parses_items(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/api/orders/O1"
            return httpx.Response(
                200,
                json={
                    "data": {
                        "_id": "O1",
                        "code": "ORD-0007",
                        "status": "pending",
                        "notes": "deliver friday",
                        "totalAmount": 21,
                        "items": [
                            {
                                "_id": "I1",
                                "product": "P1",
                                "productName": "Arroz",
                                "quantity": 2,
                                "unitPrice": 10.5,
                                "subtotal": 21,
                                "status": "dispatched",
                            }
                        ],
                    }
                },
            )

        order = _run(_client(handler), lambda c: c.get_order("O1"))
        assert order.code == "ORD-0007"
        assert order.status is OrderStatus.PENDING
        assert order.items[0].status is FulfillmentStatus.DISPATCHED
        assert order.items[0].unit_price == Decimal("10.5")

    def test_order_item_mutations(self) -> None:
        seen: list[tuple[str, str, bytes]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path, request.content))
            return httpx.Response(200, json={"ok": True})

        async def mutate(c: BackOfficeClient) -> None:
            await c.add_order_item("O1", "P1", 1, Decimal("3.50"))
            await c.update_order_item("O1", "I1", 4)
            await c.delete_order_item("O1", "I1")

        _run(_client(handler), mutate)

        assert [(method, path) for method, path, _ in seen] == [
            ("POST", "/api/orders/O1/items"),
            ("PUT", "/api/orders/O1/items/I1"),
            ("DELETE", "/api/orders/O1/items/I1"),
        ]
        assert json.loads(seen[0][2]) == {"product": "P1", "quantity": 1, "unitPrice": 3.5}
        assert json.loads(seen[1][2]) == {"quantity": 4}


class TestMalformedResponses:
    def test_unknown_item_status_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"data": {"_id": "O1", "items": [{"_id": "I1", "product": "P1", "quantity": 1, "status": "returned"}]}},
            )

        with pytest.raises(NetworkError):
            _run(_client(handler), lambda c: c.get_order("O1"))

    def test_product_without_id_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [{"name": "no id"}]})

        with pytest.raises(NetworkError):
            _run(_client(handler), lambda c: c.list_products(ProductFilters(), 1))

    def test_non_object_body_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=["unexpected"])

        with pytest.raises(NetworkError):
            _run(_client(handler), lambda c: c.list_products(ProductFilters(), 1))

    def test_remote_cart_recovers_from_bad_order(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"_id": "O1", "items": [{"product": "P1", "status": "returned"}]}})

        async def scenario(c: BackOfficeClient) -> RemoteOrderCart:
            cart = RemoteOrderCart(c, "O1")
            with pytest.raises(NetworkError):
                await cart.load()
            return cart

        cart = _run(_client(handler), scenario)
        assert cart.load_state is LoadState.ERROR
        assert isinstance(cart.last_error, NetworkError)
        assert not cart.is_busy

    def test_catalog_recovers_from_bad_listing(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [{"name": "no id"}]})

        async def scenario(c: BackOfficeClient) -> CatalogBrowser:
            catalog = CatalogBrowser(c, LocalCart())
            await catalog.search(1)
            return catalog

        catalog = _run(_client(handler), scenario)
        assert catalog.load_state is LoadState.ERROR
        assert isinstance(catalog.last_error, NetworkError)
        assert catalog.items == []

"""HTTP client for the catalog, order and transaction services."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable
from uuid import uuid4

import httpx

from retail_pos.config import API_BASE_URL, APPLICATION_NAME, CATALOG_PER_PAGE, HTTP_TIMEOUT_SECONDS
from retail_pos.errors import NetworkError, ServerRejection
from retail_pos.models import Order, Pagination, Product, ProductFilters

log = logging.getLogger(__name__)

# Raised while decoding a well-formed JSON body with unexpected fields.
_MALFORMED_PAYLOAD = (AttributeError, ArithmeticError, KeyError, TypeError, ValueError)


def money(value: Decimal) -> float:
    """Render a Decimal amount as a JSON number."""
    return float(value)


async def _attach_trace(request: httpx.Request) -> None:
    request.headers["trace"] = str(uuid4())


class BackOfficeClient:
    """Async client for the remote back-office services."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        application_name: str = APPLICATION_NAME,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "X-Application-Name": application_name,
            },
            event_hooks={"request": [_attach_trace]},
        )

    async def __aenter__(self) -> BackOfficeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _handle_response(resp: httpx.Response) -> Any:
        """Decode a response body, raising the matching PosError for failures.

        Server faults (5xx) are network errors with a generic message. Client
        errors (4xx) are business rejections; their ``error`` or ``message``
        field is surfaced verbatim when the body carries one.
        """
        if resp.status_code >= 500:
            raise NetworkError()

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            if resp.status_code >= 400:
                raise ServerRejection(resp.status_code, resp.text or None)
            raise NetworkError(f"Non-JSON response: {resp.text[:200]}")

        if resp.status_code >= 400:
            message = None
            if isinstance(data, dict):
                candidate = data.get("error") or data.get("message")
                if isinstance(candidate, str) and candidate.strip():
                    message = candidate
            raise ServerRejection(resp.status_code, message)

        return data

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("request_failed method=%s path=%s error=%r", method, path, exc)
            raise NetworkError() from exc
        log.debug("request_done method=%s path=%s status=%s", method, path, resp.status_code)
        return self._handle_response(resp)

    async def list_products(
        self,
        filters: ProductFilters,
        page: int,
        per_page: int = CATALOG_PER_PAGE,
    ) -> tuple[list[Product], Pagination]:
        payload = {**filters.to_payload(), "page": page, "perPage": per_page}
        data = await self._request("POST", "/products", json=payload)
        try:
            products = [Product.from_payload(row) for row in data.get("data") or []]
            pagination = Pagination.from_payload(data.get("pagination") or {"page": page}, per_page=per_page)
        except _MALFORMED_PAYLOAD as exc:
            raise NetworkError("Product listing response was malformed") from exc
        return products, pagination

    async def create_transaction(self, payload: dict[str, Any]) -> str:
        """Record a sale and return its transaction code."""
        data = await self._request("POST", "/transactions", json=payload)
        try:
            return str(data["transaction"]["code"])
        except (KeyError, TypeError) as exc:
            raise NetworkError("Transaction response did not include a code") from exc

    async def get_order(self, order_id: str) -> Order:
        data = await self._request("GET", f"/orders/{order_id}")
        return self._decode_order(data)

    async def create_order(self, items: Iterable[dict[str, Any]], notes: str = "") -> Order:
        data = await self._request("POST", "/orders", json={"notes": notes, "items": list(items)})
        return self._decode_order(data)

    @staticmethod
    def _decode_order(data: Any) -> Order:
        try:
            return Order.from_payload(data["data"])
        except _MALFORMED_PAYLOAD as exc:
            raise NetworkError("Order response was malformed") from exc

    async def update_order(self, order_id: str, notes: str) -> None:
        await self._request("PUT", f"/orders/{order_id}", json={"notes": notes})

    async def add_order_item(self, order_id: str, product_id: str, quantity: int, unit_price: Decimal) -> None:
        await self._request(
            "POST",
            f"/orders/{order_id}/items",
            json={"product": product_id, "quantity": quantity, "unitPrice": money(unit_price)},
        )

    async def update_order_item(self, order_id: str, item_id: str, quantity: int) -> None:
        await self._request("PUT", f"/orders/{order_id}/items/{item_id}", json={"quantity": quantity})

    async def delete_order_item(self, order_id: str, item_id: str) -> None:
        await self._request("DELETE", f"/orders/{order_id}/items/{item_id}")

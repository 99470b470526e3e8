"""Paginated, filterable product listing that feeds the cart."""

from __future__ import annotations

import logging

from retail_pos.api import BackOfficeClient
from retail_pos.cart import Cart
from retail_pos.config import CATALOG_PER_PAGE
from retail_pos.errors import PosError
from retail_pos.models import LoadState, Pagination, Product, ProductFilters

log = logging.getLogger(__name__)


class CatalogBrowser:
    """Product listing with its own load state.

    Results of overlapping searches are applied in completion order, so a
    slow earlier page can overwrite a faster later one.
    """

    def __init__(self, client: BackOfficeClient, cart: Cart, per_page: int = CATALOG_PER_PAGE) -> None:
        self.client = client
        self.cart = cart
        self.load_state = LoadState.IDLE
        self.items: list[Product] = []
        self.pagination = Pagination(per_page=per_page)
        self.filters = ProductFilters()
        self.last_error: PosError | None = None

    @property
    def is_loading(self) -> bool:
        return self.load_state is LoadState.LOADING

    async def search(self, page: int = 1, filters: ProductFilters | None = None) -> None:
        if filters is not None:
            self.filters = filters
        self.load_state = LoadState.LOADING
        self.pagination = Pagination(
            page=page,
            per_page=self.pagination.per_page,
            total_items=self.pagination.total_items,
            total_pages=self.pagination.total_pages,
            has_next=self.pagination.has_next,
            has_prev=self.pagination.has_prev,
        )
        log.debug("search_enter page=%s filters=%r", page, self.filters.to_payload())

        try:
            items, pagination = await self.client.list_products(self.filters, page, self.pagination.per_page)
        except PosError as exc:
            # Keep the previous listing visible.
            self.load_state = LoadState.ERROR
            self.last_error = exc
            log.warning("search_failed page=%s error=%r", page, exc)
            return

        self.items = items
        self.pagination = pagination
        self.load_state = LoadState.OK
        self.last_error = None
        log.debug("search_ok page=%s items=%s", pagination.page, len(items))

    async def refresh(self) -> None:
        await self.search(self.pagination.page)

    async def reset_filters(self) -> None:
        await self.search(1, ProductFilters())

    async def next_page(self) -> None:
        if self.pagination.has_next:
            await self.search(self.pagination.page + 1)

    async def previous_page(self) -> None:
        if self.pagination.has_prev:
            await self.search(self.pagination.page - 1)

    async def on_mount(self) -> None:
        await self.search(1)

    async def on_tab_activate(self) -> None:
        await self.search(1)

    async def on_select(self, product: Product) -> None:
        await self.cart.add_line(product)

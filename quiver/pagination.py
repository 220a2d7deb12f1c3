"""
Quiver Pagination - lazy page handles returned by ``createPaginator``.

A ``Paginator`` is created by a driver without touching storage. The
controller sets the current page and page size on the handle, then
awaits ``fetch()`` which counts the result set and loads one slice::

    paginator = driver.create_paginator({"published": True}, {"title": "asc"})
    paginator.set_current_page(request.page, True, True)
    paginator.set_max_per_page(config.pagination_max_per_page)
    await paginator.fetch()
    paginator.to_dict()
    # {"count": 42, "total_pages": 5, "page": 2, "page_size": 10, "results": [...]}
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Sequence

__all__ = [
    "PaginatorAdapter",
    "ListAdapter",
    "Paginator",
    "OutOfRangePage",
]


class OutOfRangePage(LookupError):
    """Requested page is beyond the last page and out-of-range pages are not allowed."""


class PaginatorAdapter(ABC):
    """Storage side of a paginator: count the result set, load a slice."""

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def slice(self, offset: int, length: int) -> List[Any]:
        ...


class ListAdapter(PaginatorAdapter):
    """Paginate an already materialized sequence."""

    def __init__(self, items: Sequence[Any]):
        self._items = list(items)

    async def count(self) -> int:
        return len(self._items)

    async def slice(self, offset: int, length: int) -> List[Any]:
        return self._items[offset:offset + length]


class Paginator:
    """
    Page-number paginator handle.

    Mutators return the paginator so calls can be chained. Results are
    only available after ``fetch()``.
    """

    def __init__(self, adapter: PaginatorAdapter, max_per_page: int = 10):
        self._adapter = adapter
        self.max_per_page = max_per_page
        self.current_page = 1
        self.allow_out_of_range = False
        self.normalize_out_of_range = False
        self.nb_results: Optional[int] = None
        self.results: List[Any] = []

    def set_max_per_page(self, max_per_page: int) -> "Paginator":
        if int(max_per_page) < 1:
            raise ValueError(f"max_per_page must be at least 1, got {max_per_page!r}")
        self.max_per_page = int(max_per_page)
        return self

    def set_current_page(
        self,
        page: Any,
        allow_out_of_range: bool = False,
        normalize_out_of_range: bool = False,
    ) -> "Paginator":
        try:
            page = int(page)
        except (TypeError, ValueError):
            page = 1
        self.current_page = max(1, page)
        self.allow_out_of_range = allow_out_of_range
        self.normalize_out_of_range = normalize_out_of_range
        return self

    @property
    def nb_pages(self) -> int:
        if self.nb_results is None:
            raise RuntimeError("Paginator has not been fetched yet")
        return max(1, math.ceil(self.nb_results / self.max_per_page))

    async def fetch(self) -> "Paginator":
        """
        Count the result set and load the current page.

        A page past the end is clamped to the last page when
        ``normalize_out_of_range`` is set, yields an empty page when only
        ``allow_out_of_range`` is set, and raises ``OutOfRangePage``
        otherwise.
        """
        self.nb_results = await self._adapter.count()

        if self.current_page > self.nb_pages:
            if self.normalize_out_of_range:
                self.current_page = self.nb_pages
            elif not self.allow_out_of_range:
                raise OutOfRangePage(
                    f"Page {self.current_page} is out of range (last page is {self.nb_pages})"
                )

        offset = (self.current_page - 1) * self.max_per_page
        self.results = await self._adapter.slice(offset, self.max_per_page)
        return self

    def has_next_page(self) -> bool:
        return self.current_page < self.nb_pages

    def has_previous_page(self) -> bool:
        return self.current_page > 1

    def __iter__(self) -> Iterator[Any]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def to_dict(self, serialize=None) -> Dict[str, Any]:
        """Pagination envelope, items passed through ``serialize`` when given."""
        results = [serialize(item) for item in self.results] if serialize else list(self.results)
        return {
            "count": self.nb_results,
            "total_pages": self.nb_pages,
            "page": self.current_page,
            "page_size": self.max_per_page,
            "results": results,
        }

"""Pagination argument handling for module list queries."""

# flake8: noqa: E501


from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

DEFAULT_PER_PAGE = 50
MAX_PER_PAGE = 200


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(slots=True)
class PaginationParams:
    """Normalized page, page size, offset and ordering."""

    page: int = 1
    per_page: int = DEFAULT_PER_PAGE
    offset: int = 0
    orderby: str = "id"
    order: str = "DESC"

    @classmethod
    def from_args(
        cls,
        args: Optional[Dict[str, Any]] = None,
        allowed_orderby: Optional[Iterable[str]] = None,
        default_per_page: int = DEFAULT_PER_PAGE,
        max_per_page: int = MAX_PER_PAGE,
    ) -> "PaginationParams":
        """
        Build pagination parameters from caller arguments.

        Args:
            args: Raw arguments (page, per_page, orderby, order)
            allowed_orderby: Columns that may be ordered by; others fall back to ``id``
            default_per_page: Page size when none is given
            max_per_page: Upper bound for the page size

        Returns:
            PaginationParams instance

        Example:
            pagination = PaginationParams.from_args({"page": 2, "per_page": 25})
            rows = db(query).select(limitby=pagination.limitby)
        """
        args = args or {}
        page = max(1, _to_int(args.get("page"), 1))
        per_page = _to_int(args.get("per_page"), default_per_page)
        per_page = min(max(1, per_page), max_per_page)

        orderby = str(args.get("orderby") or "id")
        allowed = set(allowed_orderby or ()) | {"id"}
        if orderby not in allowed:
            orderby = "id"

        order = str(args.get("order") or "DESC").upper()
        if order not in ("ASC", "DESC"):
            order = "DESC"

        return cls(
            page=page,
            per_page=per_page,
            offset=(page - 1) * per_page,
            orderby=orderby,
            order=order,
        )

    def with_per_page(self, per_page: int) -> "PaginationParams":
        return PaginationParams(
            page=self.page,
            per_page=per_page,
            offset=(self.page - 1) * per_page,
            orderby=self.orderby,
            order=self.order,
        )

    @property
    def limitby(self) -> tuple:
        return (self.offset, self.offset + self.per_page)

    def calculate_pages(self, total: int) -> int:
        """
        Calculate total number of pages.

        Args:
            total: Total number of records

        Returns:
            Total number of pages
        """
        return (total + self.per_page - 1) // self.per_page if total > 0 else 0

    def meta(self, total: int) -> Dict[str, Any]:
        pages = self.calculate_pages(total)
        return {
            "total": total,
            "per_page": self.per_page,
            "current_page": self.page,
            "total_pages": pages,
            "has_more": self.page < pages,
        }

"""
Pagination

Resolves page/limit query parameters into a Pagination value that list
endpoints pass down to their service.
"""

from dataclasses import dataclass

from fastapi import Query, Request

MAX_LIMIT = 100
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def of(
        cls,
        page: int | None,
        limit: int | None,
        *,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> "Pagination":
        """Clamp raw values: page >= 1, 1 <= limit <= max_limit."""
        page = max(DEFAULT_PAGE, page or DEFAULT_PAGE)
        limit = min(max_limit, max(1, limit or default_limit))
        return cls(page=page, limit=limit)


def get_pagination(
    request: Request,
    page: int | None = Query(None, description="Page number, starting at 1"),
    limit: int | None = Query(None, description="Page size (max 100)"),
) -> Pagination:
    """FastAPI dependency resolving pagination from the query string."""
    settings = request.app.state.services.settings
    return Pagination.of(
        page,
        limit,
        default_limit=settings.default_page_size,
        max_limit=settings.max_page_size,
    )

from fastapi import Header, HTTPException, Query

from conduit.config import settings


async def get_viewer_id(x_user_id: int | None = Header(None)) -> int | None:
    """
    Identity of the caller, or None for an anonymous request.

    Authentication happens upstream of this service; whatever sits in
    front of it resolves the token and forwards the user id in the
    ``X-User-Id`` header.
    """
    return x_user_id


async def require_viewer_id(x_user_id: int | None = Header(None)) -> int:
    """Like ``get_viewer_id`` but rejects anonymous requests with 401."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


class PaginationParams:
    """
    Reusable FastAPI dependency that parses LIMIT / OFFSET query
    parameters.

    Attributes
    ----------
    limit:
        Maximum number of articles to return, or None for no limit.
        Values above ``settings.MAX_PAGE_SIZE`` are rejected with 422.
    offset:
        Number of matching articles to skip, or None.
    """

    def __init__(
        self,
        limit: int | None = Query(
            None, ge=0, le=settings.MAX_PAGE_SIZE, description="Maximum number of articles."
        ),
        offset: int | None = Query(None, ge=0, description="Number of articles to skip."),
    ) -> None:
        self.limit = limit
        self.offset = offset


class FeedPaginationParams(PaginationParams):
    """Feed paging; the page size falls back to ``DEFAULT_PAGE_SIZE``."""

    def __init__(
        self,
        limit: int | None = Query(
            None, ge=0, le=settings.MAX_PAGE_SIZE, description="Maximum number of articles."
        ),
        offset: int | None = Query(None, ge=0, description="Number of articles to skip."),
    ) -> None:
        super().__init__(limit, offset)
        if self.limit is None:
            self.limit = settings.DEFAULT_PAGE_SIZE
        if self.offset is None:
            self.offset = 0

from typing import Annotated

from fastapi import Depends, Path, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from blogger.config import settings
from blogger.database import get_db
from blogger.exceptions import Forbidden, Unauthenticated, ValidationError
from blogger.models import ArticleStatus, Category, User
from blogger.schemas import normalize_tags
from blogger.services import auth_service

# auto_error=False so a missing header becomes our own 401, not FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user or fail the request with 401."""
    token = credentials.credentials if credentials else None
    return await auth_service.authenticate_token(db, token)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Like ``get_current_user`` but anonymous (or badly authenticated) callers get None."""
    if credentials is None:
        return None
    try:
        return await auth_service.authenticate_token(db, credentials.credentials)
    except Unauthenticated:
        return None


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise Forbidden("Not authorized as admin")
    return current_user


# Ids are stored as 32-bit integers; anything larger is a malformed id (400).
MAX_ID = 2**31 - 1

ArticleId = Annotated[int, Path(ge=1, le=MAX_ID, description="Article id.")]
UserId = Annotated[int, Path(ge=1, le=MAX_ID, description="User id.")]


class PageParams:
    """Bare pagination for routes whose filter comes from the path."""

    def __init__(
        self,
        page: int = Query(1, ge=1, le=MAX_ID, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=settings.MAX_PAGE_SIZE,
            description="Number of articles per page.",
        ),
    ) -> None:
        self.page = page
        self.limit = limit


class ArticleListParams:
    """
    Reusable FastAPI dependency that parses and validates the article
    listing query string.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    limit:
        Page size, between 1 and ``settings.MAX_PAGE_SIZE``.
    category, status:
        Exact-match filters, validated against their enumerations.
    tags:
        Comma-separated tags, normalised the same way stored tags are.
        Matches articles carrying any of them.
    author_id:
        Exact-match filter on the owning user.
    search:
        Case-insensitive substring searched in title and content.
    sort:
        ``newest`` (default), ``oldest``, ``popular``, ``likes`` or
        ``title``.  Unknown values fall back to ``newest`` in the service.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, le=MAX_ID, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=settings.MAX_PAGE_SIZE,
            description="Number of articles per page.",
        ),
        category: Category | None = Query(None),
        tags: str | None = Query(None, description="Comma-separated tag list."),
        status: ArticleStatus | None = Query(None),
        author_id: int | None = Query(None, ge=1, le=MAX_ID),
        search: str | None = Query(None, max_length=200),
        sort: str = Query("newest", description="newest, oldest, popular, likes or title."),
    ) -> None:
        self.page = page
        self.limit = limit
        self.category = category.value if category else None
        self.status = status.value if status else None
        self.author_id = author_id
        self.search = search
        self.sort = sort
        try:
            self.tags = normalize_tags(tags)
        except ValueError as exc:
            raise ValidationError(str(exc), [{"field": "tags", "message": str(exc)}]) from exc

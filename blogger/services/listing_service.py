"""
Listing engine: filtered, sorted, paginated article queries.

Query input is untrusted.  Filters are built only from known columns
and the sort key is looked up in a fixed table, falling back to
``newest`` for anything unrecognised.  Listing never goes through the
authorization policy.
"""
import math

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from blogger.config import settings
from blogger.models import Article, Tag
from blogger.schemas import ArticlePage
from blogger.services.projections import article_to_dict

DEFAULT_SORT = "newest"

# Ties are broken by id so pages never overlap.
_SORT_ORDERS = {
    "newest": (desc(Article.created_at), desc(Article.id)),
    "oldest": (asc(Article.created_at), asc(Article.id)),
    "popular": (desc(Article.view_count), desc(Article.id)),
    "likes": (desc(Article.like_count), desc(Article.id)),
    "title": (asc(Article.title), asc(Article.id)),
}


def resolve_sort(sort: str | None) -> tuple:
    """Return the ORDER BY expressions for *sort*, defaulting to newest first."""
    return _SORT_ORDERS.get(sort or DEFAULT_SORT, _SORT_ORDERS[DEFAULT_SORT])


def build_filters(
    category: str | None = None,
    tags: list[str] | None = None,
    status: str | None = None,
    author_id: int | None = None,
    search: str | None = None,
) -> list:
    """
    Build the WHERE clauses for a listing.

    Dimensions are ANDed together.  ``tags`` matches any of the given
    tags; ``search`` is a case-insensitive substring match on title OR
    content with LIKE wildcards in the term escaped.
    """
    clauses = []
    if category:
        clauses.append(Article.category == category)
    if tags:
        clauses.append(Article.tags.any(Tag.name.in_(tags)))
    if status:
        clauses.append(Article.status == status)
    if author_id is not None:
        clauses.append(Article.author_id == author_id)
    if search and search.strip():
        term = search.strip()
        clauses.append(
            or_(
                Article.title.icontains(term, autoescape=True),
                Article.content.icontains(term, autoescape=True),
            )
        )
    return clauses


async def list_articles(
    db: AsyncSession,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    category: str | None = None,
    tags: list[str] | None = None,
    status: str | None = None,
    author_id: int | None = None,
    search: str | None = None,
    sort: str | None = DEFAULT_SORT,
) -> ArticlePage:
    """
    Return one page of articles matching the filters.

    Two statements are issued: a COUNT over the filtered set and the
    page itself with author, tags and comments eager-loaded.  An empty
    result is a normal page with ``total_articles == 0``.
    """
    clauses = build_filters(category, tags, status, author_id, search)

    count_q = select(func.count()).select_from(Article).where(*clauses)
    total: int = (await db.execute(count_q)).scalar_one()

    articles_q = (
        select(Article)
        .where(*clauses)
        .options(
            joinedload(Article.author),
            selectinload(Article.tags),
            selectinload(Article.comments),
        )
        .order_by(*resolve_sort(sort))
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(articles_q)
    articles = result.unique().scalars().all()

    return ArticlePage(
        current_page=page,
        total_pages=math.ceil(total / limit) if total > 0 else 0,
        total_articles=total,
        articles_per_page=limit,
        articles=[article_to_dict(a) for a in articles],
    )


async def list_author_articles(
    db: AsyncSession,
    author_id: int,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
) -> ArticlePage:
    """Newest-first page of one author's articles."""
    return await list_articles(db, page=page, limit=limit, author_id=author_id)

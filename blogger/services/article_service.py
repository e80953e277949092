"""
Article service: business logic for the Article aggregate.

Design notes
------------
- Every mutating function follows the same order: load the article
  (``NotFound``), check ``ensure_can_mutate`` where ownership matters
  (``Forbidden``), reject invalid requests (``ValidationError``), and
  only then talk to the media host or flush.  Nothing is written when
  any of the first three steps fails.
- Hosted image deletion is best-effort.  A failure is logged and the
  primary operation still succeeds; the orphaned asset is accepted.
- Likes are stored as a JSON list of user ids.  ``like_count`` is always
  recomputed from that list, never incremented on its own.  There is no
  optimistic locking, so two concurrent toggles on one article can race.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from blogger.exceptions import NotFound, ValidationError
from blogger.media import ImageUpload, MediaHost
from blogger.models import Article, ArticleStatus, Comment, Tag, User
from blogger.permissions import ensure_can_mutate
from blogger.schemas import ArticleCreate, ArticleUpdate
from blogger.services.projections import article_detail_to_dict, load_users

logger = logging.getLogger(__name__)

_DETAIL_OPTIONS = (
    joinedload(Article.author),
    selectinload(Article.tags),
    selectinload(Article.comments).joinedload(Comment.author),
)


# ---------------------------------------------------------------------------
# Aggregate rules (pure; no I/O)
# ---------------------------------------------------------------------------

def toggle_membership(liked_by: list[int], user_id: int) -> tuple[list[int], bool]:
    """
    Flip *user_id*'s membership in *liked_by*.

    Returns the new list and whether the user is now a member.  Every
    entry is compared, and removal drops all occurrences, so the result
    never contains duplicates of *user_id*.
    """
    already_liked = any(entry == user_id for entry in liked_by)
    if already_liked:
        return [entry for entry in liked_by if entry != user_id], False
    return [*liked_by, user_id], True


def apply_status(article: Article, status: str, now: datetime | None = None) -> None:
    """
    Set *status*, stamping ``published_at`` on the first transition into
    ``published``.  An existing ``published_at`` is never cleared or moved.
    """
    article.status = status
    if status == ArticleStatus.PUBLISHED.value and article.published_at is None:
        article.published_at = now or datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _resolve_tags(db: AsyncSession, tag_names: list[str]) -> list[Tag]:
    """
    Return Tag ORM instances for each name in *tag_names*, creating any
    that do not yet exist.  All inserts are flushed within the caller's
    transaction.
    """
    tags: list[Tag] = []
    for name in tag_names:
        result = await db.execute(select(Tag).where(Tag.name == name))
        tag = result.scalar_one_or_none()
        if not tag:
            tag = Tag(name=name)
            db.add(tag)
            await db.flush()
        tags.append(tag)
    return tags


async def load_article(db: AsyncSession, article_id: int, *options) -> Article:
    q = (
        select(Article)
        .where(Article.id == article_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    article = result.unique().scalar_one_or_none()
    if article is None:
        raise NotFound("Article not found")
    return article


async def _discard_hosted_image(media: MediaHost, asset_id: str | None) -> None:
    """Best-effort removal of a hosted image; never raises."""
    if not asset_id:
        return
    try:
        deleted = await media.delete(asset_id)
    except Exception:
        logger.warning("Error deleting hosted image %s", asset_id, exc_info=True)
        return
    if not deleted:
        logger.warning("Hosted image %s was not deleted", asset_id)


async def _detail(db: AsyncSession, article_id: int, viewer: User | None) -> dict:
    article = await load_article(db, article_id, *_DETAIL_OPTIONS)
    likers = await load_users(db, article.liked_by)
    return article_detail_to_dict(article, likers, viewer)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_article(db: AsyncSession, article_id: int, viewer: User | None = None) -> dict:
    """
    Return the full detail dict for *article_id*, incrementing the view
    counter on every successful read.

    *viewer* is the optional authenticated reader; it only drives the
    ``liked`` flag in the response.
    """
    # Views are counted in SQL so concurrent reads never lose an increment;
    # a view is not an edit, so updated_at keeps its value.
    result = await db.execute(
        update(Article)
        .where(Article.id == article_id)
        .values(view_count=Article.view_count + 1, updated_at=Article.updated_at)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound("Article not found")

    return await _detail(db, article_id, viewer)


async def create_article(
    db: AsyncSession,
    media: MediaHost,
    author: User,
    data: ArticleCreate,
    image: ImageUpload,
) -> dict:
    """
    Upload *image*, then create an article owned by *author*.

    *data* must already be validated.  If persisting fails after the
    upload, the new hosted image is discarded before the error propagates.
    """
    hosted = await media.upload(image.data, image.filename)

    article = Article(
        title=data.title,
        content=data.content,
        excerpt=data.excerpt,
        category=data.category,
        author_id=author.id,
        view_count=0,
        like_count=0,
        liked_by=[],
        image_original_name=image.filename,
        image_url=hosted.url,
        image_asset_id=hosted.asset_id,
    )
    apply_status(article, data.status)

    try:
        if data.tags:
            article.tags.extend(await _resolve_tags(db, data.tags))
        db.add(article)
        await db.flush()
    except Exception:
        await _discard_hosted_image(media, hosted.asset_id)
        raise

    logger.info("Article %d created by user %d", article.id, author.id)
    return await _detail(db, article.id, author)


async def update_article(
    db: AsyncSession,
    media: MediaHost,
    actor: User,
    article_id: int,
    data: ArticleUpdate,
    image: ImageUpload | None = None,
) -> dict:
    """
    Partially update an article.  Only fields explicitly set in *data*
    change; an absent field is left alone, never cleared.

    A replacement image is uploaded before anything else is written and
    the previous hosted image is discarded only after the flush succeeds.
    """
    article = await load_article(db, article_id, selectinload(Article.tags))
    ensure_can_mutate(
        actor,
        article.author_id,
        "Not authorized to update this article. You can only update your own articles.",
    )

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes and image is None:
        raise ValidationError("No fields to update")

    old_asset_id = None
    new_asset_id = None
    if image is not None:
        hosted = await media.upload(image.data, image.filename)
        old_asset_id, new_asset_id = article.image_asset_id, hosted.asset_id
        article.image_original_name = image.filename
        article.image_url = hosted.url
        article.image_asset_id = hosted.asset_id

    tags_data: list[str] | None = changes.pop("tags", None)
    status: str | None = changes.pop("status", None)

    for field, value in changes.items():
        setattr(article, field, value)
    if status is not None:
        apply_status(article, status)

    try:
        if tags_data is not None:
            article.tags.clear()
            article.tags.extend(await _resolve_tags(db, tags_data))
        await db.flush()
    except Exception:
        await _discard_hosted_image(media, new_asset_id)
        raise

    await _discard_hosted_image(media, old_asset_id)
    logger.info("Article %d updated by user %d", article_id, actor.id)
    return await _detail(db, article_id, actor)


async def delete_article(
    db: AsyncSession,
    media: MediaHost,
    actor: User,
    article_id: int,
) -> dict:
    """
    Delete an article and, best-effort, its hosted image.

    A crash between the two steps leaves an orphaned hosted image, which
    is accepted.  Returns the id and title of the deleted article.
    """
    article = await load_article(
        db, article_id, selectinload(Article.tags), selectinload(Article.comments)
    )
    ensure_can_mutate(
        actor,
        article.author_id,
        "Not authorized to delete this article. You can only delete your own articles.",
    )

    await _discard_hosted_image(media, article.image_asset_id)

    deleted = {"id": article.id, "title": article.title}
    await db.delete(article)
    await db.flush()
    logger.info("Article %d deleted by user %d", article_id, actor.id)
    return deleted


async def toggle_like(db: AsyncSession, actor: User, article_id: int) -> dict:
    """
    Like the article if *actor* has not liked it yet, otherwise unlike it.

    Calling this twice returns the article to its original state.
    """
    article = await load_article(db, article_id)

    liked_by, liked = toggle_membership(list(article.liked_by or []), actor.id)
    article.liked_by = liked_by
    article.like_count = len(liked_by)
    await db.flush()

    return {
        "liked": liked,
        "likes": article.like_count,
        "liked_by": list(article.liked_by),
    }

"""
Read-side projections: turn ORM rows into response dicts.

Joining referenced users (article author, comment authors, likers) is a
read concern only.  Authors are eager-loaded by the queries in the
services; likers are stored as bare ids and resolved here with one
``IN`` query by :func:`load_users`.  Nothing in this module mutates state.
"""
import math

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blogger.models import Article, Comment, User

WORDS_PER_MINUTE = 200


async def load_users(db: AsyncSession, user_ids: list[int]) -> dict[int, User]:
    """Return ``{id: User}`` for the ids that still exist."""
    if not user_ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(set(user_ids))))
    return {user.id: user for user in result.scalars().all()}


def _isoformat(value):
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def user_summary(user: User | None) -> dict | None:
    """Identity fields embedded in article and comment responses."""
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
    }


def public_user(user: User, article_count: int | None = None) -> dict:
    """Full public profile.  The password hash is never part of it."""
    data = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "is_admin": user.is_admin,
        "bio": user.bio,
        "avatar": user.avatar,
        "social_links": dict(user.social_links or {}),
        "created_at": _isoformat(user.created_at),
    }
    if article_count is not None:
        data["article_count"] = article_count
    return data


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

def comment_to_dict(comment: Comment, author: User | None = None) -> dict:
    return {
        "id": comment.id,
        "article_id": comment.article_id,
        "user_id": comment.user_id,
        "text": comment.text,
        "created_at": _isoformat(comment.created_at),
        "author": user_summary(author if author is not None else comment.author),
    }


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------

def reading_stats(content: str) -> dict:
    """Word count, character count and estimated reading time of *content*."""
    words = len(content.split()) if content else 0
    return {
        "word_count": words,
        "character_count": len(content) if content else 0,
        "reading_time": f"{math.ceil(words / WORDS_PER_MINUTE)} min read",
    }


def article_to_dict(article: Article) -> dict:
    """List view.  Expects ``author``, ``tags`` and ``comments`` to be loaded."""
    data = {
        "id": article.id,
        "title": article.title,
        "excerpt": article.excerpt,
        "category": article.category,
        "tags": [tag.name for tag in article.tags],
        "status": article.status,
        "view_count": article.view_count,
        "like_count": article.like_count,
        "comment_count": len(article.comments),
        "author_id": article.author_id,
        "author": user_summary(article.author),
        "image": {
            "original_name": article.image_original_name,
            "url": article.image_url,
            "asset_id": article.image_asset_id,
        },
        "published_at": _isoformat(article.published_at),
        "created_at": _isoformat(article.created_at),
    }
    data.update(reading_stats(article.content))
    return data


def article_detail_to_dict(
    article: Article,
    likers: dict[int, User],
    viewer: User | None = None,
) -> dict:
    """Detail view with content, comments and resolved likers."""
    data = article_to_dict(article)
    data["content"] = article.content
    data["comments"] = [comment_to_dict(c) for c in article.comments]
    data["liked_by"] = [
        user_summary(likers[user_id]) for user_id in article.liked_by if user_id in likers
    ]
    data["liked"] = viewer is not None and viewer.id in article.liked_by
    return data

"""
Comment service: append-only comment creation for the Article aggregate.

Comments cannot be edited or deleted through the API.  ``remove_comment``
exists as a model-level operation for maintenance code only.
"""
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blogger.exceptions import ValidationError
from blogger.models import Article, Comment, User
from blogger.schemas import CommentCreate
from blogger.services.article_service import load_article
from blogger.services.projections import comment_to_dict


def remove_comment(article: Article, comment_id: int) -> bool:
    """
    Drop the comment *comment_id* from a loaded article's comments.

    Returns False when the article has no such comment.  The removal is
    persisted on the next flush through the delete-orphan cascade.
    """
    for comment in article.comments:
        if comment.id == comment_id:
            article.comments.remove(comment)
            return True
    return False


async def add_comment(
    db: AsyncSession,
    actor: User,
    article_id: int,
    data: CommentCreate,
) -> dict:
    """
    Append a comment by *actor* to the article identified by *article_id*.

    The text is trimmed and must not be empty; that is checked before
    the article is even loaded.  Returns the new comment with its author
    resolved and the article's total comment count.
    """
    text = data.text.strip()
    if not text:
        raise ValidationError(
            "Comment text is required",
            [{"field": "text", "message": "Comment text is required"}],
        )

    article = await load_article(db, article_id, selectinload(Article.comments))

    comment = Comment(
        text=text,
        user_id=actor.id,
        created_at=datetime.now(timezone.utc),
    )
    article.comments.append(comment)
    await db.flush()

    return {
        "comment": comment_to_dict(comment, author=actor),
        "total_comments": len(article.comments),
    }

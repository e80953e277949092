"""
Credential verification: resolve a bearer token to a stored user.
"""
import logging

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blogger.exceptions import Unauthenticated
from blogger.models import User
from blogger.security import user_id_from_token

logger = logging.getLogger(__name__)


async def authenticate_token(db: AsyncSession, token: str | None) -> User:
    """
    Return the user a bearer token belongs to.

    Raises ``Unauthenticated`` when the token is missing, malformed,
    expired, badly signed, or refers to a user that no longer exists.
    """
    if not token:
        raise Unauthenticated("Not authorized, no token")

    try:
        user_id = user_id_from_token(token)
    except JWTError as exc:
        logger.debug("Token rejected: %s", exc)
        raise Unauthenticated("Not authorized, token failed") from exc

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise Unauthenticated("Not authorized, user not found")
    return user

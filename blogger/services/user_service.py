"""
User service: registration, login and mutations of the User aggregate.

Emails are normalised (trimmed, lowercased) by the request schemas, so
plain equality here is a case-insensitive comparison.  Plaintext
passwords never leave this module except as input to the hasher.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blogger.exceptions import Conflict, Forbidden, NotFound, Unauthenticated, ValidationError
from blogger.models import Article, User
from blogger.permissions import ensure_can_mutate
from blogger.schemas import (
    PASSWORD_MIN_LENGTH,
    PasswordChange,
    UserLogin,
    UserProfileUpdate,
    UserRegister,
)
from blogger.security import create_access_token, dummy_verify, hash_password, verify_password
from blogger.services.projections import public_user

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def _article_count(db: AsyncSession, user_id: int) -> int:
    q = select(func.count()).select_from(Article).where(Article.author_id == user_id)
    return (await db.execute(q)).scalar_one()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register(db: AsyncSession, data: UserRegister) -> dict:
    """
    Create a regular (non-admin) user and issue a session token.

    Raises ``Conflict`` when the email is already registered.
    """
    if await _find_by_email(db, data.email) is not None:
        raise Conflict("User already exists with this email")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        is_admin=False,
        avatar="",
        social_links={},
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration of the same email.
        raise Conflict("User already exists with this email") from exc
    # Load the server-generated created_at.
    await db.refresh(user)

    logger.info("Registered user %d", user.id)
    return {"user": public_user(user), "token": create_access_token(user.id)}


async def login(db: AsyncSession, data: UserLogin) -> dict:
    """
    Verify credentials and issue a session token.

    An unknown email and a wrong password raise the same
    ``Unauthenticated`` error so callers cannot discover which accounts exist.
    """
    user = await _find_by_email(db, data.email)
    if user is None:
        dummy_verify()
        logger.debug("Login rejected: unknown email")
        raise Unauthenticated(INVALID_CREDENTIALS)

    if not verify_password(data.password, user.password_hash):
        logger.debug("Login rejected: wrong password for user %d", user.id)
        raise Unauthenticated(INVALID_CREDENTIALS)

    return {"user": public_user(user), "token": create_access_token(user.id)}


async def get_users(db: AsyncSession) -> dict:
    """Return every user, newest first, each with its article count."""
    counts = (
        select(Article.author_id, func.count(Article.id).label("article_count"))
        .group_by(Article.author_id)
        .subquery()
    )
    q = (
        select(User, func.coalesce(counts.c.article_count, 0))
        .outerjoin(counts, counts.c.author_id == User.id)
        .order_by(User.created_at.desc(), User.id.desc())
    )
    rows = (await db.execute(q)).all()
    return {
        "total_users": len(rows),
        "users": [public_user(user, article_count) for user, article_count in rows],
    }


async def get_user(db: AsyncSession, user_id: int) -> dict:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return public_user(user, await _article_count(db, user_id))


async def update_profile(db: AsyncSession, actor: User, data: UserProfileUpdate) -> dict:
    """
    Partially update *actor*'s own profile.

    Social links are merged key by key into the existing ones.  Changing
    the email re-checks uniqueness and raises ``Conflict`` when taken.
    """
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    new_email = changes.pop("email", None)
    if new_email is not None and new_email != actor.email:
        if await _find_by_email(db, new_email) is not None:
            raise Conflict("Email already in use")
        actor.email = new_email

    links = changes.pop("social_links", None)
    if links:
        # Reassign rather than mutate so the JSON column is marked dirty.
        actor.social_links = {**(actor.social_links or {}), **links}

    for field, value in changes.items():
        setattr(actor, field, value)

    try:
        await db.flush()
    except IntegrityError as exc:
        raise Conflict("Email already in use") from exc
    return public_user(actor)


async def change_password(
    db: AsyncSession,
    actor: User,
    user_id: int,
    data: PasswordChange,
) -> None:
    """
    Replace *actor*'s password after verifying the current one.

    Only the account owner may do this; admins cannot, because the
    current password is part of the check.
    """
    if actor.id != user_id:
        raise Forbidden("You can only change your own password")

    if len(data.new_password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"New password must be at least {PASSWORD_MIN_LENGTH} characters",
            [{
                "field": "new_password",
                "message": f"Must be at least {PASSWORD_MIN_LENGTH} characters",
            }],
        )

    if not verify_password(data.current_password, actor.password_hash):
        raise Unauthenticated("Current password is incorrect")

    actor.password_hash = hash_password(data.new_password)
    await db.flush()
    logger.info("Password changed for user %d", actor.id)


async def delete_user(db: AsyncSession, actor: User, user_id: int) -> None:
    """
    Delete a user; allowed for the user themself or an admin.

    Articles written by the user are kept and keep pointing at the
    deleted id.
    """
    ensure_can_mutate(actor, user_id, "Not authorized to delete this user")

    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    await db.delete(user)
    await db.flush()
    logger.info("User %d deleted by user %d", user_id, actor.id)

from blogger.exceptions import Forbidden
from blogger.models import User


def can_mutate(actor: User | None, owner_id: int) -> bool:
    """
    Ownership rule shared by every mutating operation.

    An admin may change anything; any other actor only what it owns.
    An absent (anonymous) actor may change nothing.
    """
    if actor is None:
        return False
    return bool(actor.is_admin) or actor.id == owner_id


def ensure_can_mutate(actor: User | None, owner_id: int, message: str | None = None) -> None:
    """Raise ``Forbidden`` unless :func:`can_mutate` allows *actor*."""
    if not can_mutate(actor, owner_id):
        raise Forbidden(message)

"""
Owner-or-admin authorization shared by the ad and comment services.

``can_mutate`` is the single rule.  ``resolve_actor`` turns the identity
supplied by the authentication layer into a stored ``User``; services
call it and let ``NotFoundError`` propagate.  ``is_owner`` is the
fail-closed variant used by route guards: any lookup failure answers
False instead of raising.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFoundError, ServiceError
from app.models import Role, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated actor as reported by the authentication layer."""

    email: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def can_mutate(actor_id: int, actor_role: Role, owner_id: int) -> bool:
    return actor_role == Role.ADMIN or actor_id == owner_id


async def find_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def resolve_actor(db: AsyncSession, identity: Identity) -> User:
    user = await find_user_by_email(db, identity.email)
    if user is None:
        raise NotFoundError(f"User not found: {identity.email}")
    return user


async def is_owner(
    db: AsyncSession,
    identity: Identity,
    load_owner_id: Callable[[], Awaitable[int]],
) -> bool:
    """
    Return True when the actor is the owner reported by *load_owner_id*.

    *load_owner_id* raises ``NotFoundError`` when the resource is absent.
    Any service error during either lookup denies.
    """
    try:
        owner_id = await load_owner_id()
        actor = await resolve_actor(db, identity)
    except ServiceError as exc:
        logger.warning("Ownership check denied for %s: %s", identity.email, exc.message)
        return False
    return actor.id == owner_id

"""
User service — registration, credentials and the caller's own profile.

Users are read here by email, the login key.  Avatars follow the same
blob rules as ad images but live in their own namespace.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ForbiddenError, NotFoundError, ValidationError
from app.models import User
from app.schemas import NewPassword, Register, UpdateUser
from app.security import hash_password, verify_password
from app.services.authorization import Identity, find_user_by_email, resolve_actor
from app.services.images import discard_image, read_image, store_image
from app.services.validation import validate_image
from app.storage import USER_NAMESPACE, BlobStore, ImageUpload, media_type_for

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "role": user.role,
        "image": f"/users/{user.id}/image" if user.image else None,
    }


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register_user(db: AsyncSession, data: Register) -> dict:
    """
    Create a user whose login is ``data.username``.

    Email uniqueness is checked up front and again by the unique
    constraint; the router translates an ``IntegrityError`` from a
    concurrent registration into the same 400 response.
    """
    if await find_user_by_email(db, data.username) is not None:
        raise ValidationError(f"User {data.username} already exists")

    user = User(
        email=data.username,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        role=data.role,
    )
    db.add(user)
    await db.flush()
    logger.info("Registered user %d: %s (%s)", user.id, user.email, user.role.value)
    return _user_to_dict(user)


async def authenticate(db: AsyncSession, email: str, password: str) -> User | None:
    """Return the user when *password* matches, otherwise None."""
    user = await find_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Authentication failed for %s", email)
        return None
    return user


async def get_me(db: AsyncSession, identity: Identity) -> dict:
    return _user_to_dict(await resolve_actor(db, identity))


async def update_me(db: AsyncSession, identity: Identity, data: UpdateUser) -> dict:
    user = await resolve_actor(db, identity)
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()
    logger.info("Updated profile of %s (%s)", user.email, ", ".join(changes) or "no changes")
    return {
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
    }


async def set_password(db: AsyncSession, identity: Identity, data: NewPassword) -> None:
    user = await resolve_actor(db, identity)
    if not verify_password(data.current_password, user.password_hash):
        raise ForbiddenError("Current password is incorrect")
    user.password_hash = hash_password(data.new_password)
    await db.flush()
    logger.info("Changed password of %s", user.email)


async def update_avatar(
    db: AsyncSession, blobs: BlobStore, identity: Identity, image: ImageUpload | None
) -> None:
    user = await resolve_actor(db, identity)
    validate_image(image)
    previous = user.image
    user.image = store_image(blobs, image, USER_NAMESPACE)
    try:
        await db.flush()
    except Exception:
        discard_image(blobs, user.image, f"user {user.id}")
        raise
    discard_image(blobs, previous, f"user {user.id}")
    logger.info("Replaced avatar of %s", user.email)


async def load_avatar(db: AsyncSession, blobs: BlobStore, user_id: int) -> tuple[bytes, str]:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    data = read_image(blobs, user.image, f"user {user_id}")
    media_type = media_type_for(user.image) if user.image else "application/octet-stream"
    return data, media_type

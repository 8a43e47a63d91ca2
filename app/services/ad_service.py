"""
Ad service — business logic for the Ad aggregate.

Design notes
------------
- Every mutation follows the same order: validate the payload, load the
  ad and the actor, check owner-or-admin rights, mutate, flush.  Service
  functions flush but do not commit; the transaction boundary is owned
  by the ``get_db`` dependency in the router layer.
- Images live in the blob store, outside that transaction.  A failed
  image write aborts the operation before the ad row is flushed; a
  failed image delete is only logged (see ``app.services.images``).
- Owner contact fields for the detail view are joined in with
  ``joinedload`` so a single query builds the response.
- Lists are ordered by id ascending.
"""
import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.errors import ForbiddenError, NotFoundError, ValidationError
from app.models import Ad, Comment
from app.schemas import CreateOrUpdateAd
from app.services.authorization import Identity, can_mutate, is_owner, resolve_actor
from app.services.images import discard_image, read_image, store_image
from app.services.validation import validate_ad, validate_ad_update, validate_image
from app.storage import AD_NAMESPACE, BlobStore, ImageUpload, media_type_for

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def image_url(ad: Ad) -> str | None:
    """Public URL of the ad image, or None when no image is attached."""
    return f"/ads/{ad.id}/image" if ad.image else None


def _ad_to_dict(ad: Ad) -> dict:
    return {
        "pk": ad.id,
        "author": ad.author_id,
        "title": ad.title,
        "price": ad.price,
        "image": image_url(ad),
    }


def _ad_detail_to_dict(ad: Ad) -> dict:
    author = ad.author
    return {
        "pk": ad.id,
        "author_first_name": author.first_name,
        "author_last_name": author.last_name,
        "description": ad.description,
        "email": author.email,
        "image": image_url(ad),
        "phone": author.phone,
        "price": ad.price,
        "title": ad.title,
    }


def _ads_to_dict(ads) -> dict:
    results = [_ad_to_dict(a) for a in ads]
    return {"count": len(results), "results": results}


# ---------------------------------------------------------------------------
# Loading helpers
# ---------------------------------------------------------------------------

async def _get_ad_or_404(db: AsyncSession, ad_id: int) -> Ad:
    ad = await db.get(Ad, ad_id)
    if ad is None:
        raise NotFoundError(f"Ad {ad_id} not found")
    return ad


async def _load_for_mutation(db: AsyncSession, ad_id: int, identity: Identity, action: str) -> Ad:
    ad = await _get_ad_or_404(db, ad_id)
    actor = await resolve_actor(db, identity)
    if not can_mutate(actor.id, actor.role, ad.author_id):
        raise ForbiddenError(f"Only the author or an administrator may {action} this ad")
    return ad


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_ads(db: AsyncSession) -> dict:
    result = await db.execute(select(Ad).order_by(Ad.id))
    response = _ads_to_dict(result.scalars().all())
    logger.info("Listed all ads, count: %d", response["count"])
    return response


async def create_ad(
    db: AsyncSession,
    blobs: BlobStore,
    payload: CreateOrUpdateAd,
    image: ImageUpload | None,
    identity: Identity,
) -> dict:
    """
    Create an ad owned by the acting user and store its image.

    The image is required.  It is written before the row is flushed; if
    the flush then fails the stored file is discarded again so no blob is
    left without its row.
    """
    logger.debug("Creating ad for %s", identity.email)
    validate_ad(payload)
    author = await resolve_actor(db, identity)
    if image is None or not image.data:
        raise ValidationError("An image is required to publish an ad")
    validate_image(image)

    path = store_image(blobs, image, AD_NAMESPACE)
    ad = Ad(
        title=payload.title,
        description=payload.description,
        price=payload.price,
        image=path,
        author_id=author.id,
    )
    db.add(ad)
    try:
        await db.flush()
    except Exception:
        discard_image(blobs, path, "unsaved ad")
        raise

    logger.info("Created ad %d by %s: %s", ad.id, author.email, ad.title)
    return _ad_to_dict(ad)


async def get_ad(db: AsyncSession, ad_id: int) -> dict:
    result = await db.execute(
        select(Ad)
        .where(Ad.id == ad_id)
        .options(joinedload(Ad.author))
        .execution_options(populate_existing=True)
    )
    ad = result.unique().scalar_one_or_none()
    if ad is None:
        raise NotFoundError(f"Ad {ad_id} not found")
    return _ad_detail_to_dict(ad)


async def delete_ad(db: AsyncSession, blobs: BlobStore, ad_id: int, identity: Identity) -> None:
    """
    Delete the ad, its comments and (best effort) its image.

    The row deletion is the authoritative outcome: an image that cannot
    be removed is logged and left behind.
    """
    logger.debug("Deleting ad %d", ad_id)
    ad = await _load_for_mutation(db, ad_id, identity, "delete")

    discard_image(blobs, ad.image, f"ad {ad_id}")

    await db.execute(delete(Comment).where(Comment.ad_id == ad.id))
    await db.delete(ad)
    await db.flush()
    logger.info("Deleted ad %d: %s", ad_id, ad.title)


async def update_ad(
    db: AsyncSession, ad_id: int, payload: CreateOrUpdateAd, identity: Identity
) -> dict:
    """Apply the fields present in *payload*; absent fields keep their value."""
    logger.debug("Updating ad %d", ad_id)
    changes = validate_ad_update(payload)
    ad = await _load_for_mutation(db, ad_id, identity, "edit")

    for field, value in changes.items():
        setattr(ad, field, value)

    await db.flush()
    logger.info("Updated ad %d (%s)", ad_id, ", ".join(changes) or "no changes")
    return _ad_to_dict(ad)


async def list_my_ads(db: AsyncSession, identity: Identity) -> dict:
    author = await resolve_actor(db, identity)
    result = await db.execute(
        select(Ad).where(Ad.author_id == author.id).order_by(Ad.id)
    )
    response = _ads_to_dict(result.scalars().all())
    logger.info("Listed ads of %s, count: %d", author.email, response["count"])
    return response


async def update_ad_image(
    db: AsyncSession,
    blobs: BlobStore,
    ad_id: int,
    image: ImageUpload | None,
    identity: Identity,
) -> dict:
    logger.debug("Replacing image of ad %d", ad_id)
    ad = await _load_for_mutation(db, ad_id, identity, "change the image of")
    validate_image(image)

    previous = ad.image
    ad.image = store_image(blobs, image, AD_NAMESPACE)
    try:
        await db.flush()
    except Exception:
        discard_image(blobs, ad.image, f"ad {ad_id}")
        raise
    discard_image(blobs, previous, f"ad {ad_id}")
    logger.info("Replaced image of ad %d", ad_id)
    return _ad_to_dict(ad)


async def load_ad_image(db: AsyncSession, blobs: BlobStore, ad_id: int) -> tuple[bytes, str]:
    """
    Return ``(data, media_type)`` for the ad image.

    ``data`` is empty when the ad has no image or the file is unreadable;
    the caller decides how to present that.
    """
    ad = await _get_ad_or_404(db, ad_id)
    data = read_image(blobs, ad.image, f"ad {ad_id}")
    media_type = media_type_for(ad.image) if ad.image else "application/octet-stream"
    return data, media_type


async def is_ad_owner(db: AsyncSession, ad_id: int, identity: Identity) -> bool:
    """Fail-closed ownership check for route guards."""

    async def owner_id() -> int:
        return (await _get_ad_or_404(db, ad_id)).author_id

    return await is_owner(db, identity, owner_id)

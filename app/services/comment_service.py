"""
Comment service — comments attached to an ad.

A comment is always addressed through its ad: ``/ads/{ad_id}/comments/
{comment_id}``.  When the stored ad of a comment differs from the ad in
the request the comment is reported as not found, never as forbidden,
so callers cannot probe which comments exist under other ads.

Author name and avatar are joined in with ``joinedload`` so listing the
comments of an ad is a single query.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.errors import ForbiddenError, NotFoundError
from app.models import Ad, Comment, User, utcnow
from app.schemas import CreateOrUpdateComment
from app.services.authorization import Identity, can_mutate, resolve_actor
from app.services.validation import validate_comment

logger = logging.getLogger(__name__)


def _epoch_millis(moment: datetime) -> int:
    # SQLite hands back naive datetimes; they were written as UTC.
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def avatar_url(user: User) -> str | None:
    return f"/users/{user.id}/image" if user.image else None


def _comment_to_dict(comment: Comment, author: User) -> dict:
    return {
        "pk": comment.id,
        "author": author.id,
        "author_first_name": author.first_name,
        "author_image": avatar_url(author),
        "created_at": _epoch_millis(comment.created_at),
        "text": comment.text,
    }


async def _ensure_ad_exists(db: AsyncSession, ad_id: int) -> Ad:
    ad = await db.get(Ad, ad_id)
    if ad is None:
        raise NotFoundError(f"Ad {ad_id} not found")
    return ad


async def _get_comment_in_ad(db: AsyncSession, ad_id: int, comment_id: int) -> Comment:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id)
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFoundError(f"Comment {comment_id} not found")
    if comment.ad_id != ad_id:
        raise NotFoundError(f"Comment {comment_id} does not belong to ad {ad_id}")
    return comment


async def _load_for_mutation(
    db: AsyncSession, ad_id: int, comment_id: int, identity: Identity, action: str
) -> Comment:
    comment = await _get_comment_in_ad(db, ad_id, comment_id)
    actor = await resolve_actor(db, identity)
    if not can_mutate(actor.id, actor.role, comment.author_id):
        raise ForbiddenError(f"Only the author or an administrator may {action} this comment")
    return comment


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_comments(db: AsyncSession, ad_id: int) -> dict:
    await _ensure_ad_exists(db, ad_id)
    result = await db.execute(
        select(Comment)
        .where(Comment.ad_id == ad_id)
        .options(joinedload(Comment.author))
        .order_by(Comment.id)
        .execution_options(populate_existing=True)
    )
    results = [_comment_to_dict(c, c.author) for c in result.unique().scalars().all()]
    logger.info("Listed %d comments of ad %d", len(results), ad_id)
    return {"count": len(results), "results": results}


async def add_comment(
    db: AsyncSession, ad_id: int, payload: CreateOrUpdateComment, identity: Identity
) -> dict:
    logger.debug("Adding comment to ad %d", ad_id)
    validate_comment(payload)
    ad = await _ensure_ad_exists(db, ad_id)
    author = await resolve_actor(db, identity)

    comment = Comment(
        text=payload.text,
        ad_id=ad.id,
        author_id=author.id,
        created_at=utcnow(),
    )
    db.add(comment)
    await db.flush()

    logger.info("Added comment %d to ad %d by %s", comment.id, ad_id, author.email)
    return _comment_to_dict(comment, author)


async def delete_comment(
    db: AsyncSession, ad_id: int, comment_id: int, identity: Identity
) -> None:
    logger.debug("Deleting comment %d of ad %d", comment_id, ad_id)
    comment = await _load_for_mutation(db, ad_id, comment_id, identity, "delete")
    await db.delete(comment)
    await db.flush()
    logger.info("Deleted comment %d of ad %d", comment_id, ad_id)


async def update_comment(
    db: AsyncSession,
    ad_id: int,
    comment_id: int,
    payload: CreateOrUpdateComment,
    identity: Identity,
) -> dict:
    logger.debug("Updating comment %d of ad %d", comment_id, ad_id)
    validate_comment(payload)
    comment = await _load_for_mutation(db, ad_id, comment_id, identity, "edit")

    comment.text = payload.text
    await db.flush()
    logger.info("Updated comment %d of ad %d", comment_id, ad_id)
    author = await db.get(User, comment.author_id)
    return _comment_to_dict(comment, author)

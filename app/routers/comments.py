from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_identity
from app.schemas import CommentResponse, CommentsResponse, CreateOrUpdateComment
from app.services import comment_service
from app.services.authorization import Identity

router = APIRouter(prefix="/ads", tags=["comments"])


@router.get("/{ad_id}/comments", response_model=CommentsResponse)
async def list_comments(ad_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.list_comments(db, ad_id)


@router.post("/{ad_id}/comments", response_model=CommentResponse)
async def add_comment(
    ad_id: int,
    data: CreateOrUpdateComment,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.add_comment(db, ad_id, data, identity)


@router.patch("/{ad_id}/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    ad_id: int,
    comment_id: int,
    data: CreateOrUpdateComment,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.update_comment(db, ad_id, comment_id, data, identity)


@router.delete("/{ad_id}/comments/{comment_id}", status_code=204)
async def delete_comment(
    ad_id: int,
    comment_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    await comment_service.delete_comment(db, ad_id, comment_id, identity)

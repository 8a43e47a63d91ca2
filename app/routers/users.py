from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_identity, read_image_upload
from app.errors import ValidationError
from app.schemas import Login, NewPassword, Register, UpdateUser, UserResponse
from app.services import user_service
from app.services.authorization import Identity
from app.storage import BlobStore, get_blob_store

router = APIRouter(tags=["users"])


@router.post("/register", status_code=201)
async def register(data: Register, db: AsyncSession = Depends(get_db)):
    try:
        await user_service.register_user(db, data)
    except IntegrityError:
        raise ValidationError(f"User {data.username} already exists")


@router.post("/login")
async def login(data: Login, db: AsyncSession = Depends(get_db)):
    user = await user_service.authenticate(db, data.username, data.password)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")


@router.get("/users/me", response_model=UserResponse)
async def get_me(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_me(db, identity)


@router.patch("/users/me", response_model=UpdateUser)
async def update_me(
    data: UpdateUser,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_me(db, identity, data)


@router.post("/users/set_password")
async def set_password(
    data: NewPassword,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    await user_service.set_password(db, identity, data)


@router.patch("/users/me/image")
async def update_avatar(
    image: UploadFile | None = File(None),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    upload = await read_image_upload(image)
    await user_service.update_avatar(db, blobs, identity, upload)


@router.get("/users/{user_id}/image")
async def get_avatar(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    data, media_type = await user_service.load_avatar(db, blobs, user_id)
    if not data:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return Response(content=data, media_type=media_type)

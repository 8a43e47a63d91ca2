from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_identity, read_image_upload, require_ad_owner_or_admin
from app.errors import ValidationError
from app.schemas import AdResponse, AdsResponse, CreateOrUpdateAd, ExtendedAdResponse
from app.services import ad_service
from app.services.authorization import Identity
from app.storage import BlobStore, get_blob_store

router = APIRouter(prefix="/ads", tags=["ads"])


def _parse_properties(properties: str) -> CreateOrUpdateAd:
    try:
        return CreateOrUpdateAd.model_validate_json(properties)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid ad properties: {exc.errors()[0]['msg']}") from exc


@router.get("", response_model=AdsResponse)
async def list_ads(db: AsyncSession = Depends(get_db)):
    return await ad_service.list_ads(db)


@router.post("", status_code=201, response_model=AdResponse)
async def create_ad(
    properties: str = Form(..., description="Ad properties as a JSON object."),
    image: UploadFile | None = File(None),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    payload = _parse_properties(properties)
    upload = await read_image_upload(image)
    return await ad_service.create_ad(db, blobs, payload, upload, identity)


@router.get("/me", response_model=AdsResponse)
async def list_my_ads(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await ad_service.list_my_ads(db, identity)


@router.get("/{ad_id}", response_model=ExtendedAdResponse)
async def get_ad(ad_id: int, db: AsyncSession = Depends(get_db)):
    return await ad_service.get_ad(db, ad_id)


@router.patch("/{ad_id}", response_model=AdResponse)
async def update_ad(
    ad_id: int,
    data: CreateOrUpdateAd,
    identity: Identity = Depends(require_ad_owner_or_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ad_service.update_ad(db, ad_id, data, identity)


@router.delete("/{ad_id}", status_code=204)
async def delete_ad(
    ad_id: int,
    identity: Identity = Depends(require_ad_owner_or_admin),
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    await ad_service.delete_ad(db, blobs, ad_id, identity)


@router.patch("/{ad_id}/image", response_model=AdResponse)
async def update_ad_image(
    ad_id: int,
    image: UploadFile | None = File(None),
    identity: Identity = Depends(require_ad_owner_or_admin),
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    upload = await read_image_upload(image)
    return await ad_service.update_ad_image(db, blobs, ad_id, upload, identity)


@router.get("/{ad_id}/image")
async def get_ad_image(
    ad_id: int,
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    data, media_type = await ad_service.load_ad_image(db, blobs, ad_id)
    if not data:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return Response(content=data, media_type=media_type)

from fastapi import Depends, HTTPException, UploadFile, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import ForbiddenError
from app.services import ad_service, user_service
from app.services.authorization import Identity
from app.storage import ImageUpload

basic_auth = HTTPBasic()


async def get_current_identity(
    credentials: HTTPBasicCredentials = Depends(basic_auth),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """
    Authenticate the request with HTTP Basic credentials.

    The resulting ``Identity`` carries the login email and the stored
    role; services resolve it to a ``User`` again when they need one.
    """
    user = await user_service.authenticate(db, credentials.username, credentials.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return Identity(email=user.email, role=user.role)


async def require_ad_owner_or_admin(
    ad_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """
    Route guard run before ad mutations.

    Admins pass; everyone else must own the ad.  A missing ad fails the
    ownership check, so a non-admin gets the same 403 whether the ad is
    absent or simply not theirs.
    """
    if identity.is_admin or await ad_service.is_ad_owner(db, ad_id, identity):
        return identity
    raise ForbiddenError("Only the author or an administrator may modify this ad")


async def read_image_upload(upload: UploadFile | None) -> ImageUpload | None:
    """Read a multipart upload into memory; None when no file was sent."""
    if upload is None:
        return None
    return ImageUpload(
        data=await upload.read(),
        content_type=upload.content_type,
    )

"""
Field constraints for ad, comment and image payloads.

Every check is pure and runs before any database or blob access.  The
first violated rule raises ``ValidationError``; violations are not
accumulated.
"""
from app.errors import ValidationError
from app.schemas import CreateOrUpdateAd, CreateOrUpdateComment
from app.storage import ImageUpload

TITLE_MIN, TITLE_MAX = 4, 32
DESCRIPTION_MIN, DESCRIPTION_MAX = 8, 64
COMMENT_MIN, COMMENT_MAX = 8, 64

ALLOWED_IMAGE_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/jpg", "image/png"})
MAX_IMAGE_SIZE = 10 * 1024 * 1024

# Prices are stored in a 32-bit signed column.
MAX_PRICE = 2**31 - 1


def _check_text(value: str | None, label: str, min_len: int, max_len: int) -> None:
    if value is None or not value.strip():
        raise ValidationError(f"{label} must not be empty")
    if not min_len <= len(value) <= max_len:
        raise ValidationError(f"{label} must be between {min_len} and {max_len} characters")


def _check_price(price: int | None) -> None:
    if price is None:
        raise ValidationError("Price is required")
    if price < 0:
        raise ValidationError("Price must not be negative")
    if price > MAX_PRICE:
        raise ValidationError(f"Price must not exceed {MAX_PRICE}")


def validate_ad(payload: CreateOrUpdateAd) -> None:
    """Check a complete ad payload (creation)."""
    _check_price(payload.price)
    _check_text(payload.title, "Title", TITLE_MIN, TITLE_MAX)
    _check_text(payload.description, "Description", DESCRIPTION_MIN, DESCRIPTION_MAX)


def ad_changes(payload: CreateOrUpdateAd) -> dict:
    """
    Return the fields a partial update should apply.

    A field left out of the request, or sent as ``null``, means "leave
    unchanged".
    """
    return {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None
    }


def validate_ad_update(payload: CreateOrUpdateAd) -> dict:
    """Check only the fields present in *payload*; return them."""
    changes = ad_changes(payload)
    if "price" in changes:
        _check_price(changes["price"])
    if "title" in changes:
        _check_text(changes["title"], "Title", TITLE_MIN, TITLE_MAX)
    if "description" in changes:
        _check_text(changes["description"], "Description", DESCRIPTION_MIN, DESCRIPTION_MAX)
    return changes


def validate_comment(payload: CreateOrUpdateComment) -> None:
    _check_text(payload.text, "Comment text", COMMENT_MIN, COMMENT_MAX)


def validate_image(image: ImageUpload | None) -> None:
    if image is None or not image.data:
        raise ValidationError("Image file is missing or empty")
    if image.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Only JPEG, JPG or PNG images are allowed")
    if image.size > MAX_IMAGE_SIZE:
        raise ValidationError("Image must not exceed 10MB")

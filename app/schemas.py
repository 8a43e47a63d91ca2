from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models import Role

# Phone numbers in the +7 (xxx) xxx-xx-xx family, spacing and dashes optional.
PHONE_PATTERN = r"^\+7\s?\(?\d{3}\)?\s?\d{3}-?\d{2}-?\d{2}$"


class CamelModel(BaseModel):
    """Base for wire shapes: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Ad ---

class CreateOrUpdateAd(CamelModel):
    # Constraints are enforced by app.services.validation so that the
    # first violated rule is reported with a readable reason.
    title: str | None = None
    description: str | None = None
    price: int | None = None


class AdResponse(CamelModel):
    pk: int
    author: int
    title: str
    price: int
    image: str | None = None


class ExtendedAdResponse(CamelModel):
    pk: int
    author_first_name: str
    author_last_name: str
    description: str
    email: str
    image: str | None = None
    phone: str
    price: int
    title: str


class AdsResponse(CamelModel):
    count: int
    results: list[AdResponse] = []


# --- Comment ---

class CreateOrUpdateComment(CamelModel):
    text: str | None = None


class CommentResponse(CamelModel):
    pk: int
    author: int
    author_first_name: str
    author_image: str | None = None
    created_at: int  # epoch milliseconds
    text: str


class CommentsResponse(CamelModel):
    count: int
    results: list[CommentResponse] = []


# --- User ---

class Register(CamelModel):
    username: str = Field(min_length=4, max_length=32)
    password: str = Field(min_length=8, max_length=16)
    first_name: str = Field(min_length=2, max_length=16)
    last_name: str = Field(min_length=2, max_length=16)
    phone: str = Field(pattern=PHONE_PATTERN)
    role: Role = Role.USER


class Login(CamelModel):
    username: str = Field(min_length=4, max_length=32)
    password: str = Field(min_length=8, max_length=16)


class NewPassword(CamelModel):
    current_password: str = Field(min_length=8, max_length=16)
    new_password: str = Field(min_length=8, max_length=16)


class UpdateUser(CamelModel):
    first_name: str | None = Field(None, min_length=3, max_length=10)
    last_name: str | None = Field(None, min_length=3, max_length=10)
    phone: str | None = Field(None, pattern=PHONE_PATTERN)


class UserResponse(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: str
    role: Role
    image: str | None = None

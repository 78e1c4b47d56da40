"""
Validated request bodies, one model per endpoint.

Unknown fields are rejected and strings are trimmed (passwords excepted), so
route handlers only ever see well-formed input. ``parse_form`` turns pydantic's
error list into a single user-facing ``ValidationError``.
"""
from typing import ClassVar, List, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError

FIELD_LABELS = {
    "email": "Email",
    "password": "Password",
    "name": "Name",
    "category": "Category",
    "new_category": "New category",
    "contact_info": "Contact info",
    "description": "Description",
    "sample_work": "Sample work",
    "visitor_name": "Your name",
    "rating": "Rating",
    "comment": "Comment",
}


class FormModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    keep_whitespace: ClassVar[Tuple[str, ...]] = ()

    @field_validator("*", mode="before")
    @classmethod
    def _strip(cls, value, info):
        if isinstance(value, str) and info.field_name not in cls.keep_whitespace:
            return value.strip()
        return value


def _split_links(value):
    if isinstance(value, str):
        return [line.strip() for line in value.splitlines() if line.strip()]
    return value or []


LINK_SCHEMES = ("http", "https")


def _check_links(links):
    for link in links:
        parsed = urlparse(link)
        if parsed.scheme.lower() not in LINK_SCHEMES or not parsed.netloc:
            raise ValueError("Sample work links must start with http:// or https://.")
    return links


class LoginForm(FormModel):
    keep_whitespace: ClassVar[Tuple[str, ...]] = ("password",)

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class ProfileForm(FormModel):
    name: str = Field(min_length=1, max_length=150)
    category: str = Field(min_length=1, max_length=100)
    new_category: str = Field(default="", max_length=100)
    contact_info: str = Field(min_length=1, max_length=255)
    description: str = ""
    sample_work: List[str] = Field(default_factory=list)

    @field_validator("sample_work", mode="before")
    @classmethod
    def _links(cls, value):
        return _split_links(value)

    @field_validator("sample_work")
    @classmethod
    def _safe_links(cls, value):
        return _check_links(value)


class RegisterForm(ProfileForm):
    keep_whitespace: ClassVar[Tuple[str, ...]] = ("password",)

    email: str = Field(min_length=3, max_length=150)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = value.lower()
        local, _, domain = value.partition("@")
        if not local or not domain:
            raise ValueError("Please enter a valid email address.")
        return value


class ReviewForm(FormModel):
    visitor_name: str = Field(default="", max_length=150)
    rating: str = ""
    comment: str = ""


class ForgotPasswordForm(FormModel):
    email: str = ""


class SearchArgs(FormModel):
    model_config = ConfigDict(extra="ignore")

    query: str = ""
    category: str = ""


def _message(error: dict) -> str:
    field = error["loc"][0] if error.get("loc") else ""
    label = FIELD_LABELS.get(field, str(field))
    kind = error.get("type")
    if kind in ("missing", "string_too_short"):
        return f"{label} is required."
    if kind == "string_too_long":
        return f"{label} is too long."
    if kind == "extra_forbidden":
        return f"Unexpected field: {field}."
    if kind == "value_error":
        return str(error["ctx"]["error"])
    return f"{label}: {error.get('msg', 'invalid value')}."


def parse_form(model_cls, data):
    try:
        return model_cls.model_validate(dict(data or {}))
    except PydanticValidationError as e:
        raise ValidationError(_message(e.errors()[0])) from e

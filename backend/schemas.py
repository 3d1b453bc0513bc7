"""
Request payload schemas.

Every endpoint that accepts a body validates it through one of these models
before touching MongoDB. Keys use the storefront's camelCase names as
aliases; snake_case names are accepted as well. Form submissions arrive as
strings, so list and mapping fields also accept comma-separated text and
JSON text.
"""

import json
import re
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic import ValidationError as SchemaError

from .errors import ValidationError
from .ratings import REVIEW_STATUSES

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
CONTACT_STATUSES = ("unread", "read", "archived")

MISSING_ERROR_TYPES = {"missing", "string_too_short", "too_short"}


class Payload(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, str_strip_whitespace=True, extra="ignore"
    )


def _split_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                return json.loads(stripped)
            except ValueError:
                pass
        return [item.strip() for item in stripped.split(",") if item.strip()]
    return value


def _parse_mapping(value):
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return value


def _normalize_email(value):
    email = str(value or "").strip().lower()
    if email and not EMAIL_REGEX.match(email):
        raise ValueError("Valid email is required")
    return email


def _reject_bool(value):
    if isinstance(value, bool):
        raise ValueError("Rating must be between 1 and 5")
    return value


def _check_rating(value):
    if value is not None and not 1 <= value <= 5:
        raise ValueError("Rating must be between 1 and 5")
    return value


def _check_choice(value, choices, message):
    if value is not None and value not in choices:
        raise ValueError(message)
    return value


Email = Annotated[str, AfterValidator(_normalize_email)]
Rating = Annotated[int, BeforeValidator(_reject_bool), AfterValidator(_check_rating)]


def describe_errors(errors) -> str:
    missing = []
    for error in errors:
        if error["type"] in MISSING_ERROR_TYPES and error.get("loc"):
            missing.append(str(error["loc"][0]))
    if missing:
        return "Missing required fields: " + ", ".join(missing)

    first = errors[0]
    if first["type"] == "value_error":
        return str(first["ctx"]["error"])
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field}: {first['msg']}" if field else first["msg"]


def parse_payload(model, payload):
    try:
        return model.model_validate(payload or {})
    except SchemaError as exc:
        raise ValidationError(describe_errors(exc.errors())) from None


# -- auth --


class RegisterInput(Payload):
    name: str = Field(min_length=1)
    email: Email = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("password")
    @classmethod
    def password_length(cls, value):
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters")
        return value


class LoginInput(Payload):
    email: Email = Field(min_length=1)
    password: str = Field(min_length=1)


# -- catalog --


class ProductUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    original_price: Optional[float] = Field(default=None, alias="originalPrice", ge=0)
    category: Optional[str] = Field(default=None, min_length=1)
    subcategory: Optional[str] = None
    brand: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    featured: Optional[bool] = None
    tags: Optional[List[str]] = None
    specifications: Optional[Dict[str, Any]] = None
    main_features: Optional[List[str]] = Field(default=None, alias="mainFeatures")
    key_features: Optional[List[str]] = Field(default=None, alias="keyFeatures")
    whats_in_the_box: Optional[List[str]] = Field(default=None, alias="whatsInTheBox")

    @field_validator(
        "tags", "main_features", "key_features", "whats_in_the_box", mode="before"
    )
    @classmethod
    def split_lists(cls, value):
        return _split_list(value)

    @field_validator("specifications", mode="before")
    @classmethod
    def parse_specifications(cls, value):
        return _parse_mapping(value)

    @field_validator("original_price", "subcategory", mode="before")
    @classmethod
    def blank_as_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("name", "price", "category")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be empty")
        return value

    @field_validator("price", "original_price")
    @classmethod
    def round_money(cls, value):
        return round(value, 2) if value is not None else value

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ProductInput(ProductUpdate):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    category: str = Field(min_length=1)
    description: str = ""
    brand: str = ""
    stock: int = Field(default=0, ge=0)
    featured: bool = False
    tags: List[str] = Field(default_factory=list)
    specifications: Dict[str, Any] = Field(default_factory=dict)
    main_features: List[str] = Field(default_factory=list, alias="mainFeatures")
    key_features: List[str] = Field(default_factory=list, alias="keyFeatures")
    whats_in_the_box: List[str] = Field(default_factory=list, alias="whatsInTheBox")

    def document(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# -- reviews & testimonials --


class ReviewInput(Payload):
    product_id: str = Field(alias="productId", min_length=1)
    customer_name: str = Field(alias="customerName", min_length=1)
    customer_email: Email = Field(default="", alias="customerEmail")
    rating: Rating
    title: str = ""
    comment: str = Field(min_length=1)


class ReviewUpdate(Payload):
    status: Optional[str] = None
    rating: Optional[Rating] = None
    title: Optional[str] = None
    comment: Optional[str] = Field(default=None, min_length=1)

    @field_validator("status")
    @classmethod
    def known_status(cls, value):
        return _check_choice(value, REVIEW_STATUSES, "Invalid status")

    def changes(self) -> Dict[str, Any]:
        changes = self.model_dump(exclude_none=True)
        if not changes:
            raise ValidationError("Nothing to update")
        return changes


class TestimonialInput(Payload):
    customer_name: str = Field(alias="customerName", min_length=1)
    customer_email: Email = Field(default="", alias="customerEmail")
    company: str = ""
    position: str = ""
    testimonial: str = Field(min_length=1)
    rating: Rating = 5

    @field_validator("rating", mode="before")
    @classmethod
    def default_rating(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return 5
        return value


class ModerationInput(Payload):
    status: str = Field(min_length=1)

    @field_validator("status")
    @classmethod
    def known_status(cls, value):
        return _check_choice(value, REVIEW_STATUSES, "Invalid status")


# -- banners --


class BannerUpdate(Payload):
    title: Optional[str] = Field(default=None, min_length=1)
    subtitle: Optional[str] = None
    description: Optional[str] = None
    button_text: Optional[str] = Field(default=None, alias="buttonText")
    button_link: Optional[str] = Field(default=None, alias="buttonLink")
    position: Optional[str] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    background_color: Optional[str] = Field(default=None, alias="backgroundColor")
    text_color: Optional[str] = Field(default=None, alias="textColor")

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class BannerInput(BannerUpdate):
    title: str = Field(min_length=1)
    subtitle: str = ""
    description: str = ""
    button_text: str = Field(default="", alias="buttonText")
    button_link: str = Field(default="", alias="buttonLink")
    position: str = "hero"
    is_active: bool = Field(default=False, alias="isActive")
    background_color: str = Field(default="#ffffff", alias="backgroundColor")
    text_color: str = Field(default="#000000", alias="textColor")


# -- engagement --


class ContactInput(Payload):
    name: str = Field(min_length=1)
    email: Email = Field(min_length=1)
    phone: str = ""
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)


class ContactStatusInput(Payload):
    status: str = Field(min_length=1)

    @field_validator("status")
    @classmethod
    def known_status(cls, value):
        return _check_choice(value, CONTACT_STATUSES, "Invalid status")


class NewsletterSubscribeInput(Payload):
    email: Email = Field(min_length=1)
    name: str = ""


class NewsletterUnsubscribeInput(Payload):
    email: Email = Field(min_length=1)


class CartItem(Payload):
    product: Dict[str, Any]
    quantity: int = Field(default=1, ge=1)
    selected_variation: Optional[str] = Field(default=None, alias="selectedVariation")


class CartInput(Payload):
    items: List[CartItem] = Field(default_factory=list)


# -- admin --


class UserUpdateInput(Payload):
    name: str = Field(min_length=1)
    email: Email = Field(min_length=1)
    is_admin: bool = Field(default=False, alias="isAdmin")


class OrderStatusInput(Payload):
    status: str = Field(min_length=1)

    @field_validator("status")
    @classmethod
    def known_status(cls, value):
        return _check_choice(value, ORDER_STATUSES, "Invalid status")

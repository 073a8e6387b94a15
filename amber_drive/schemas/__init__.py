"""
Pydantic schemas for API request/response validation.

Each service operation takes one typed input model; request bodies are
validated here once, at the boundary.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import (
    BaseModel, ConfigDict, EmailStr, Field, computed_field, field_validator, model_validator,
)

from amber_drive.models.car import CarCategory, CarStatus
from amber_drive.models.quote import QuoteStatus
from amber_drive.utils.storage import image_storage

Money = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]


# Base schemas
class PaginatedResponse(BaseModel):
    """Paginated list envelope."""
    total: int
    limit: int
    offset: int


class ErrorResponse(BaseModel):
    """Error response schema."""
    detail: str
    code: str | None = None


# Auth schemas
class AuthUserResponse(BaseModel):
    """Signed-in admin information."""
    id: int
    name: str
    email: str | None = None


class TokenResponse(BaseModel):
    """Authentication token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AuthUserResponse


# Car schemas
class CarCreate(BaseModel):
    """Car catalog entry input."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    brand: str = Field(min_length=1, max_length=100)
    category: CarCategory
    default_price: Money = Decimal("0")
    default_km: int = Field(0, ge=0)
    default_extra_km: Money = Decimal("0")
    default_deposit: Money = Decimal("0")
    description: str | None = None
    status: CarStatus = CarStatus.ACTIVE

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: str | None) -> str | None:
        return value or None


class CarUpdate(BaseModel):
    """Partial car update; only fields that are set are written."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=255)
    brand: str | None = Field(None, min_length=1, max_length=100)
    category: CarCategory | None = None
    default_price: Money | None = None
    default_km: int | None = Field(None, ge=0)
    default_extra_km: Money | None = None
    default_deposit: Money | None = None
    description: str | None = None
    status: CarStatus | None = None


class CarBulkAction(BaseModel):
    """Bulk archive/restore/delete request."""
    ids: list[int]
    action: Literal["archive", "restore", "delete"]


class CarResponse(BaseModel):
    """Car catalog item response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    brand: str
    category: CarCategory
    image: str
    default_price: float
    default_km: int
    default_extra_km: float
    default_deposit: float
    description: str | None
    status: CarStatus
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def image_url(self) -> str | None:
        return image_storage.public_url(self.image)


class CarListResponse(PaginatedResponse):
    """Car list with the brand filter options."""
    items: list[CarResponse]
    brands: list[str]


# Quote schemas
class CarPricingOverride(BaseModel):
    """Per-car pricing override at quote creation; unset fields use the car defaults."""
    price: Money | None = None
    km: int | None = Field(None, ge=0)
    extra_km: Money | None = None
    deposit: Money | None = None


class QuoteCreate(BaseModel):
    """Quote creation input."""
    model_config = ConfigDict(str_strip_whitespace=True)

    client_name: str = Field(min_length=1, max_length=255)
    client_email: EmailStr | None = None
    quote_date: date | None = None
    destination: str | None = None
    notes: str | None = None
    selected_cars: list[int] = []
    car_pricing: dict[int, CarPricingOverride] = {}

    @field_validator("client_email", "destination", "notes", mode="before")
    @classmethod
    def blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class QuoteLineUpdate(BaseModel):
    """
    New pricing for one line.

    The line is addressed by its own `id`, or by `car_id` while the car
    still exists in the catalog.
    """
    id: int | None = None
    car_id: int | None = None
    custom_price: Money
    custom_km: int = Field(ge=0)
    custom_extra_km: Money
    custom_deposit: Money

    @model_validator(mode="after")
    def line_is_addressed(self):
        if self.id is None and self.car_id is None:
            raise ValueError("Either id or car_id is required")
        return self


class QuoteUpdate(BaseModel):
    """Partial quote update; omitted fields are left unchanged."""
    model_config = ConfigDict(str_strip_whitespace=True)

    client_name: str | None = Field(None, min_length=1, max_length=255)
    client_email: EmailStr | None = None
    destination: str | None = None
    notes: str | None = None
    cars: list[QuoteLineUpdate] | None = None

    @field_validator("client_email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class QuoteStatusUpdate(BaseModel):
    """Status change request."""
    status: QuoteStatus


class BulkDeleteRequest(BaseModel):
    """Bulk delete request."""
    ids: list[int]


class QuoteCarResponse(BaseModel):
    """Quote line response with the current catalog car, if it still exists."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    quote_id: int
    car_id: int | None
    car_name: str
    custom_price: float
    custom_km: int
    custom_extra_km: float
    custom_deposit: float
    car: CarResponse | None = None


class QuoteResponse(BaseModel):
    """Quote response with its lines."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    quote_number: str
    client_name: str
    client_email: str | None
    quote_date: date
    destination: str | None
    notes: str | None
    total_amount: float
    status: QuoteStatus
    created_at: datetime
    updated_at: datetime
    cars: list[QuoteCarResponse] = Field(validation_alias="lines")


class QuoteListResponse(PaginatedResponse):
    """Quote list response."""
    items: list[QuoteResponse]


# AI search schemas
class AISearchRequest(BaseModel):
    """Natural-language car search request."""
    prompt: str = Field(min_length=1, max_length=2000)


class AISearchResponse(BaseModel):
    """IDs of active cars matching the prompt."""
    car_ids: list[int]
    message: str = ""


# Dashboard schemas
class DashboardStats(BaseModel):
    """Dashboard counters and latest quotes."""
    total_cars: int
    active_cars: int
    total_quotes: int
    draft_quotes: int
    sent_quotes: int
    confirmed_quotes: int
    recent_quotes: list[QuoteResponse]


__all__ = [
    # Base
    "PaginatedResponse",
    "ErrorResponse",
    # Auth
    "AuthUserResponse",
    "TokenResponse",
    # Cars
    "CarCreate",
    "CarUpdate",
    "CarBulkAction",
    "CarResponse",
    "CarListResponse",
    # Quotes
    "CarPricingOverride",
    "QuoteCreate",
    "QuoteLineUpdate",
    "QuoteUpdate",
    "QuoteStatusUpdate",
    "BulkDeleteRequest",
    "QuoteCarResponse",
    "QuoteResponse",
    "QuoteListResponse",
    # AI search
    "AISearchRequest",
    "AISearchResponse",
    # Dashboard
    "DashboardStats",
]

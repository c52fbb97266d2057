"""Pydantic v2 request/response schemas for availability block endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from roomops.services.store import as_utc

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


def _clean_text(value: str | None) -> str | None:
    """Trim free text; blank input is stored as null."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class AvailabilityBlockCreate(BaseModel):
    """Schema for creating an availability block."""

    property_id: int = Field(..., gt=0)
    start_date: datetime
    end_date: datetime
    room_code: str | None = Field(None, max_length=60)
    source: str | None = Field(None, max_length=50)
    beds_blocked: int | None = Field(None, gt=0)
    notes: str | None = Field(None, max_length=1000)

    @field_validator("room_code", "source", "notes")
    @classmethod
    def clean_text(cls, value: str | None) -> str | None:
        return _clean_text(value)

    @model_validator(mode="after")
    def check_dates(self) -> "AvailabilityBlockCreate":
        """Validate that end_date is strictly after start_date."""
        if as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValueError("end_date must be after start_date")
        return self


class AvailabilityBlockUpdate(BaseModel):
    """Schema for partially updating a block. All fields optional."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    room_code: str | None = Field(None, max_length=60)
    source: str | None = Field(None, max_length=50)
    beds_blocked: int | None = Field(None, gt=0)
    notes: str | None = Field(None, max_length=1000)

    @field_validator("room_code", "source", "notes")
    @classmethod
    def clean_text(cls, value: str | None) -> str | None:
        return _clean_text(value)

    @model_validator(mode="after")
    def check_dates(self) -> "AvailabilityBlockUpdate":
        """If both dates are provided, validate end_date > start_date."""
        if self.start_date is None or self.end_date is None:
            return self
        if as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValueError("end_date must be after start_date")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AvailabilityBlockResponse(BaseModel):
    """Availability block returned from CRUD operations."""

    id: int
    property_id: int
    property_name: str | None = None
    start_date: datetime
    end_date: datetime
    room_code: str | None = None
    source: str | None = None
    beds_blocked: int | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailabilityBlockListResponse(BaseModel):
    items: list[AvailabilityBlockResponse]
    total: int


class MessageResponse(BaseModel):
    message: str

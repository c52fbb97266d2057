"""Pydantic v2 response schemas for availability reports."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class DateRangeResponse(BaseModel):
    start_date: datetime
    end_date: datetime
    nights: int

    model_config = ConfigDict(from_attributes=True)


class OccupantResponse(BaseModel):
    """A booking or block listed under a room type, ordered by check-in."""

    id: int
    type: Literal["booking", "block"]
    check_in: datetime
    check_out: datetime
    room_code: str | None = None
    guest_name: str | None = None
    total_amount: float | None = None
    source: str | None = None
    beds_blocked: int | None = None

    model_config = ConfigDict(from_attributes=True)


class RoomTypeBreakdownResponse(BaseModel):
    room_type: str
    total_rooms: int
    booked_rooms: int
    blocked_rooms: int
    available_rooms: int
    availability_percentage: int  # 0–100
    bookings: list[OccupantResponse]

    model_config = ConfigDict(from_attributes=True)


class AvailabilitySummaryResponse(BaseModel):
    total_rooms: int
    total_booked_rooms: int
    total_blocked_rooms: int
    total_available_rooms: int
    overall_availability_percentage: int

    model_config = ConfigDict(from_attributes=True)


class ConflictResponse(BaseModel):
    type: Literal["booking", "block"]
    id: int
    room_code: str | None = None
    start_date: datetime
    end_date: datetime
    details: dict[str, Any]

    model_config = ConfigDict(from_attributes=True)


class AvailabilityReportResponse(BaseModel):
    """Availability of one property over a half-open date window."""

    date_range: DateRangeResponse
    by_room_type: dict[str, RoomTypeBreakdownResponse]
    summary: AvailabilitySummaryResponse
    has_conflicts: bool
    conflicts: list[ConflictResponse]

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Public availability check
# ---------------------------------------------------------------------------


class AvailabilityCheckRequest(BaseModel):
    """Guest-facing availability check for specific stay dates."""

    property_id: int = Field(..., gt=0)
    check_in: datetime
    check_out: datetime
    room_code: str | None = Field(None, max_length=60)


class RoomTypeAvailability(BaseModel):
    total_rooms: int
    available_rooms: int


class AvailabilityCheckResponse(BaseModel):
    available: bool
    property_id: int
    check_in: datetime
    check_out: datetime
    room_code: str | None = None
    nights: int
    total_rooms: int
    total_booked_rooms: int
    total_blocked_rooms: int
    total_available_rooms: int
    by_room_type: dict[str, RoomTypeAvailability]
    conflicting_bookings: int
    availability_blocks: int

"""Availability API routers — owner availability reports and the public stay check."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomops.api.deps import get_availability_store, get_current_owner, get_db
from roomops.config import settings
from roomops.models.property import Property
from roomops.models.user import User
from roomops.schemas.availability import (
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    AvailabilityReportResponse,
    RoomTypeAvailability,
)
from roomops.services.availability import InvalidDateRange, PropertyNotFound, compute_availability
from roomops.services.store import AvailabilityStore, as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/properties", tags=["availability"])
public_router = APIRouter(prefix="/api/v1/public/availability", tags=["availability"])

# "Suite-1" names one room; "Suite" names a room type.
_SPECIFIC_ROOM_CODE = re.compile(r"-\d+$")


@router.get(
    "/{property_id}/availability",
    response_model=AvailabilityReportResponse,
    summary="Room availability and conflicts for a date window",
)
async def get_property_availability(
    property_id: int,
    start_date: datetime = Query(..., description="Start of the window (ISO-8601)"),
    end_date: datetime = Query(..., description="Exclusive end of the window, like a checkout"),
    room_code: str | None = Query(None, max_length=60, description="Restrict to one exact room code"),
    room_type: str | None = Query(None, description="Restrict to room types containing this text"),
    exclude_block_id: int | None = Query(None, description="Leave this block out of the counts"),
    db: AsyncSession = Depends(get_db),
    store: AvailabilityStore = Depends(get_availability_store),
    current_user: User = Depends(get_current_owner),
) -> AvailabilityReportResponse:
    """Compute per-room-type availability for a property owned by the current user.

    Bookings in an active status and availability blocks that overlap
    ``[start_date, end_date)`` consume rooms; every such occupant is also
    reported as a conflict.
    """
    result = await db.execute(
        select(Property.id).where(Property.id == property_id, Property.owner_id == current_user.id)
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Property not found",
        )

    try:
        report = await compute_availability(
            store,
            property_id,
            start_date,
            end_date,
            room_code=room_code,
            room_type_pattern=room_type,
            exclude_block_id=exclude_block_id,
        )
    except InvalidDateRange as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from None
    except PropertyNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found") from None

    return AvailabilityReportResponse.model_validate(report)


@public_router.post(
    "/check",
    response_model=AvailabilityCheckResponse,
    summary="Check whether a property has a free room for given stay dates",
)
async def check_availability(
    body: AvailabilityCheckRequest,
    db: AsyncSession = Depends(get_db),
    store: AvailabilityStore = Depends(get_availability_store),
) -> AvailabilityCheckResponse:
    """Guest-facing availability check.

    A ``room_code`` ending in ``-<number>`` checks that single room; any
    other value is matched against room type names.
    """
    check_in = as_utc(body.check_in)
    check_out = as_utc(body.check_out)

    if check_in < datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Check-in date cannot be in the past",
        )
    if check_out <= check_in:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Check-out date must be after check-in date",
        )

    result = await db.execute(select(Property.id, Property.status).where(Property.id == body.property_id))
    prop = result.one_or_none()
    if prop is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    if prop.status != "APPROVED":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Property is not available for booking",
        )

    requested = body.room_code.strip() if body.room_code else None
    is_specific_room = bool(requested and _SPECIFIC_ROOM_CODE.search(requested))

    try:
        report = await compute_availability(
            store,
            body.property_id,
            check_in,
            check_out,
            room_code=requested if is_specific_room else None,
            room_type_pattern=None if is_specific_room else requested,
        )
    except PropertyNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found") from None

    # Capacity only exists in the listed room types.
    rows = [row for name, row in report.by_room_type.items() if name != settings.unassigned_bucket_name]
    by_room_type = {
        row.room_type: RoomTypeAvailability(total_rooms=row.total_rooms, available_rooms=row.available_rooms)
        for row in rows
    }
    total_available_rooms = sum(row.available_rooms for row in rows)

    logger.info(
        "Public availability check property=%s room_code=%r available_rooms=%d",
        body.property_id,
        requested,
        total_available_rooms,
    )

    return AvailabilityCheckResponse(
        available=total_available_rooms > 0,
        property_id=body.property_id,
        check_in=check_in,
        check_out=check_out,
        room_code=requested,
        nights=report.date_range.nights,
        total_rooms=sum(row.total_rooms for row in rows),
        total_booked_rooms=sum(row.booked_rooms for row in rows),
        total_blocked_rooms=sum(row.blocked_rooms for row in rows),
        total_available_rooms=total_available_rooms,
        by_room_type=by_room_type,
        conflicting_bookings=sum(1 for c in report.conflicts if c.type == "booking"),
        availability_blocks=sum(1 for c in report.conflicts if c.type == "block"),
    )

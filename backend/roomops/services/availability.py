"""Room availability and booking-conflict calculator.

Given a property, a half-open window ``[start, end)`` and optional room
filters, works out how many rooms of each type are free by reconciling two
independent sources of occupancy:

- marketplace bookings in an active status, each occupying one room;
- availability blocks (other channels, walk-ins, manual holds), each
  occupying ``beds_blocked`` rooms.

An occupant overlaps the window iff it starts before ``end`` and
ends after ``start``; the end instant is a checkout and never occupied.

Occupants are attributed to a room type by prefix of their room code
(``"Single-2"`` belongs to ``"Single"``). Occupants without a room code are
listed in an informational ``Unassigned`` bucket that carries no capacity.
Summary totals are taken from the raw occupant lists, so an occupant whose
code matches no known room type lowers ``total_available_rooms`` without
appearing in any per-type row.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Literal, TypeVar

from roomops.config import settings
from roomops.services.store import AvailabilityStore, BlockRecord, BookingRecord, as_utc

logger = logging.getLogger(__name__)

_ROOM_TYPE_PREFIX = re.compile(r"^([A-Za-z]+)")

Occupant = TypeVar("Occupant", BookingRecord, BlockRecord)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AvailabilityError(Exception):
    """Base class for availability computation errors."""


class InvalidDateRange(AvailabilityError, ValueError):
    """Raised when the requested window does not end strictly after it starts."""

    def __init__(self, start_date: datetime, end_date: datetime) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__("End date must be after start date")


class PropertyNotFound(AvailabilityError, LookupError):
    """Raised when the property id does not resolve."""

    def __init__(self, property_id: int) -> None:
        self.property_id = property_id
        super().__init__(f"Property {property_id} not found")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoomType:
    type: str
    count: int
    codes: tuple[str, ...]


@dataclass(frozen=True)
class OccupantEntry:
    """One booking or block as listed under a room type."""

    id: int
    type: Literal["booking", "block"]
    check_in: datetime
    check_out: datetime
    room_code: str | None
    guest_name: str | None = None
    total_amount: float | None = None
    source: str | None = None
    beds_blocked: int | None = None


@dataclass(frozen=True)
class RoomTypeBreakdown:
    room_type: str
    total_rooms: int
    booked_rooms: int
    blocked_rooms: int
    available_rooms: int
    availability_percentage: int
    bookings: tuple[OccupantEntry, ...] = ()


@dataclass(frozen=True)
class DateRange:
    start_date: datetime
    end_date: datetime
    nights: int


@dataclass(frozen=True)
class AvailabilitySummary:
    total_rooms: int
    total_booked_rooms: int
    total_blocked_rooms: int
    total_available_rooms: int
    overall_availability_percentage: int


@dataclass(frozen=True)
class Conflict:
    type: Literal["booking", "block"]
    id: int
    room_code: str | None
    start_date: datetime
    end_date: datetime
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AvailabilityReport:
    date_range: DateRange
    by_room_type: dict[str, RoomTypeBreakdown]
    summary: AvailabilitySummary
    has_conflicts: bool
    conflicts: tuple[Conflict, ...]


# ---------------------------------------------------------------------------
# Room taxonomy
# ---------------------------------------------------------------------------


def _load_json(raw: Any) -> Any:
    if isinstance(raw, (str, bytes)):
        return json.loads(raw)
    return raw


def _room_types_from_layout(layout: Any) -> dict[str, list[str]]:
    """Group layout room codes by alphabetic prefix. Empty when the layout is unusable."""
    if not layout:
        return {}
    try:
        data = _load_json(layout)
        floors = data.get("floors") if isinstance(data, dict) else None
        if not isinstance(floors, list):
            return {}

        codes_by_type: dict[str, list[str]] = {}
        for floor in floors:
            rooms = floor.get("rooms") if isinstance(floor, dict) else None
            if not isinstance(rooms, list):
                continue
            for room in rooms:
                code = room.get("code") if isinstance(room, dict) else None
                if not code or not isinstance(code, str):
                    continue
                match = _ROOM_TYPE_PREFIX.match(code)
                if match:
                    codes_by_type.setdefault(match.group(1), []).append(code)
        return codes_by_type
    except (ValueError, TypeError, AttributeError):
        logger.warning("Ignoring malformed property layout", exc_info=True)
        return {}


def _room_types_from_spec(
    rooms_spec: Any,
    room_code: str | None,
    fallback_type: str,
) -> dict[str, list[str]]:
    """Group a rooms specification by room type, synthesizing codes where none are given.

    A specification that cannot be read yields a single fallback room.
    """
    if not rooms_spec:
        return {}
    try:
        spec = _load_json(rooms_spec)
        if isinstance(spec, list):
            entries = spec
        elif isinstance(spec, dict) and isinstance(spec.get("rooms"), list):
            entries = spec["rooms"]
        else:
            entries = []

        codes_by_type: dict[str, list[str]] = {}
        for entry in entries:
            room_type = str(entry.get("roomType") or entry.get("type") or fallback_type)
            count = max(0, int(entry.get("roomsCount") or entry.get("count") or 1))
            explicit_code = entry.get("code")
            codes = codes_by_type.setdefault(room_type, [])
            for i in range(count):
                codes.append(explicit_code or f"{room_type}-{i + 1}")
        return codes_by_type
    except (ValueError, TypeError, AttributeError):
        logger.warning("Ignoring malformed rooms specification; using a single %s", fallback_type, exc_info=True)
        return {fallback_type: [room_code or f"{fallback_type}-1"]}


def extract_room_types(
    rooms_spec: Any,
    layout: Any,
    room_code: str | None = None,
    room_type_pattern: str | None = None,
    fallback_type: str | None = None,
) -> list[RoomType]:
    """Derive room types and capacities for a property.

    The layout wins whenever it yields at least one room; otherwise the
    rooms specification is used. ``room_code`` narrows the result to types
    holding that exact code (capacity = number of matching codes);
    otherwise ``room_type_pattern`` keeps types whose name contains it,
    case-insensitively.
    """
    fallback_type = fallback_type or settings.fallback_room_type

    codes_by_type = _room_types_from_layout(layout)
    if not codes_by_type:
        codes_by_type = _room_types_from_spec(rooms_spec, room_code, fallback_type)

    if room_code:
        room_types = []
        for type_name, codes in codes_by_type.items():
            matching = tuple(c for c in codes if c == room_code)
            if matching:
                room_types.append(RoomType(type=type_name, count=len(matching), codes=matching))
        return room_types

    if room_type_pattern:
        needle = room_type_pattern.lower()
        return [
            RoomType(type=type_name, count=len(codes), codes=tuple(codes))
            for type_name, codes in codes_by_type.items()
            if type_name and needle in type_name.lower()
        ]

    return [RoomType(type=type_name, count=len(codes), codes=tuple(codes)) for type_name, codes in codes_by_type.items()]


# ---------------------------------------------------------------------------
# Bucketing and arithmetic
# ---------------------------------------------------------------------------


def overlaps(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> bool:
    """Half-open overlap test; touching intervals do not overlap."""
    return start < window_end and end > window_start


def select_for_room_type(
    occupants: Iterable[Occupant],
    room_type: RoomType,
    room_code: str | None = None,
) -> list[Occupant]:
    """Occupants attributed to ``room_type``: exact code under a code filter, else code prefix."""
    if room_code:
        return [o for o in occupants if o.room_code == room_code]
    return [o for o in occupants if o.room_code and o.room_code.startswith(room_type.type)]


def select_unassigned(occupants: Iterable[Occupant]) -> list[Occupant]:
    return [o for o in occupants if not o.room_code]


def count_booked(bookings: Sequence[BookingRecord]) -> int:
    return sum(b.rooms_consumed for b in bookings)


def count_blocked(blocks: Sequence[BlockRecord]) -> int:
    return sum(b.rooms_consumed for b in blocks)


def availability_percentage(available: int, total: int) -> int:
    """Whole-number percentage, half rounded up; 0 when there is no capacity."""
    if total <= 0:
        return 0
    ratio = Decimal(available * 100) / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def count_nights(start_date: datetime, end_date: datetime) -> int:
    return math.ceil((end_date - start_date) / timedelta(days=1))


def _booking_entry(booking: BookingRecord, unassigned: bool = False) -> OccupantEntry:
    return OccupantEntry(
        id=booking.id,
        type="booking",
        check_in=booking.check_in,
        check_out=booking.check_out,
        room_code=None if unassigned else booking.room_code,
        guest_name=booking.guest_name or None,
        total_amount=booking.display_amount,
    )


def _block_entry(block: BlockRecord, unassigned: bool = False) -> OccupantEntry:
    return OccupantEntry(
        id=block.id,
        type="block",
        check_in=block.start_date,
        check_out=block.end_date,
        room_code=None if unassigned else block.room_code,
        source=block.source or None,
        beds_blocked=block.rooms_consumed,
    )


def occupant_timeline(
    bookings: Sequence[BookingRecord],
    blocks: Sequence[BlockRecord],
    unassigned: bool = False,
) -> tuple[OccupantEntry, ...]:
    """Bookings and blocks merged by start; ties keep bookings first."""
    entries = [_booking_entry(b, unassigned) for b in bookings]
    entries += [_block_entry(b, unassigned) for b in blocks]
    return tuple(sorted(entries, key=lambda e: e.check_in))


def build_room_type_breakdown(
    room_type: RoomType,
    bookings: Sequence[BookingRecord],
    blocks: Sequence[BlockRecord],
    room_code: str | None = None,
) -> RoomTypeBreakdown:
    type_bookings = select_for_room_type(bookings, room_type, room_code)
    type_blocks = select_for_room_type(blocks, room_type, room_code)

    booked_rooms = count_booked(type_bookings)
    blocked_rooms = count_blocked(type_blocks)
    available_rooms = max(0, room_type.count - booked_rooms - blocked_rooms)

    return RoomTypeBreakdown(
        room_type=room_type.type,
        total_rooms=room_type.count,
        booked_rooms=booked_rooms,
        blocked_rooms=blocked_rooms,
        available_rooms=available_rooms,
        availability_percentage=availability_percentage(available_rooms, room_type.count),
        bookings=occupant_timeline(type_bookings, type_blocks),
    )


def build_unassigned_breakdown(
    bookings: Sequence[BookingRecord],
    blocks: Sequence[BlockRecord],
    bucket_name: str,
) -> RoomTypeBreakdown | None:
    """Informational bucket for occupants without a room code; ``None`` when there are none."""
    unassigned_bookings = select_unassigned(bookings)
    unassigned_blocks = select_unassigned(blocks)
    if not unassigned_bookings and not unassigned_blocks:
        return None

    return RoomTypeBreakdown(
        room_type=bucket_name,
        total_rooms=0,
        booked_rooms=count_booked(unassigned_bookings),
        blocked_rooms=count_blocked(unassigned_blocks),
        available_rooms=0,
        availability_percentage=0,
        bookings=occupant_timeline(unassigned_bookings, unassigned_blocks, unassigned=True),
    )


def build_summary(
    room_types: Sequence[RoomType],
    bookings: Sequence[BookingRecord],
    blocks: Sequence[BlockRecord],
) -> AvailabilitySummary:
    """Aggregate over every derived room type, with occupancy counted from the raw lists."""
    total_rooms = sum(rt.count for rt in room_types)
    total_booked_rooms = count_booked(bookings)
    total_blocked_rooms = count_blocked(blocks)
    total_available_rooms = max(0, total_rooms - total_booked_rooms - total_blocked_rooms)

    return AvailabilitySummary(
        total_rooms=total_rooms,
        total_booked_rooms=total_booked_rooms,
        total_blocked_rooms=total_blocked_rooms,
        total_available_rooms=total_available_rooms,
        overall_availability_percentage=availability_percentage(total_available_rooms, total_rooms),
    )


def build_conflicts(
    bookings: Sequence[BookingRecord],
    blocks: Sequence[BlockRecord],
) -> tuple[Conflict, ...]:
    """Every overlapping occupant, bookings first then blocks, in fetch order."""
    booking_conflicts = [
        Conflict(
            type="booking",
            id=b.id,
            room_code=b.room_code,
            start_date=b.check_in,
            end_date=b.check_out,
            details={
                "guest_name": b.guest_name,
                "status": b.status,
                "total_amount": b.amount_or_zero,
            },
        )
        for b in bookings
    ]
    block_conflicts = [
        Conflict(
            type="block",
            id=b.id,
            room_code=b.room_code,
            start_date=b.start_date,
            end_date=b.end_date,
            details={
                "source": b.source,
                "beds_blocked": b.rooms_consumed,
            },
        )
        for b in blocks
    ]
    return tuple(booking_conflicts + block_conflicts)


def assemble_report(
    start_date: datetime,
    end_date: datetime,
    room_types: Sequence[RoomType],
    bookings: Sequence[BookingRecord],
    blocks: Sequence[BlockRecord],
    room_code: str | None = None,
    unassigned_bucket_name: str | None = None,
) -> AvailabilityReport:
    """Compose the full report from already-fetched occupants and derived room types."""
    by_room_type: dict[str, RoomTypeBreakdown] = {}
    for room_type in room_types:
        by_room_type[room_type.type] = build_room_type_breakdown(room_type, bookings, blocks, room_code)

    if not room_code:
        bucket_name = unassigned_bucket_name or settings.unassigned_bucket_name
        unassigned = build_unassigned_breakdown(bookings, blocks, bucket_name)
        if unassigned is not None:
            by_room_type[bucket_name] = unassigned

    conflicts = build_conflicts(bookings, blocks)

    return AvailabilityReport(
        date_range=DateRange(
            start_date=start_date,
            end_date=end_date,
            nights=count_nights(start_date, end_date),
        ),
        by_room_type=by_room_type,
        summary=build_summary(room_types, bookings, blocks),
        has_conflicts=len(conflicts) > 0,
        conflicts=conflicts,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def compute_availability(
    store: AvailabilityStore,
    property_id: int,
    start_date: datetime,
    end_date: datetime,
    room_code: str | None = None,
    room_type_pattern: str | None = None,
    exclude_block_id: int | None = None,
) -> AvailabilityReport:
    """Compute the availability report for one property over ``[start_date, end_date)``.

    Args:
        store: Source of the property and its occupants.
        property_id: Property to analyze.
        start_date: First instant of the window.
        end_date: Exclusive end of the window (checkout semantics).
        room_code: Restrict the analysis to one exact room code.
        room_type_pattern: Restrict to room types whose name contains this text.
        exclude_block_id: Leave this block out, e.g. while it is being edited.

    Raises:
        InvalidDateRange: ``end_date`` is not after ``start_date``.
        PropertyNotFound: ``property_id`` does not resolve.
    """
    start_date = as_utc(start_date)
    end_date = as_utc(end_date)
    if end_date <= start_date:
        raise InvalidDateRange(start_date, end_date)

    room_code = room_code or None

    prop = await store.find_property(property_id)
    if prop is None:
        raise PropertyNotFound(property_id)

    bookings, blocks = await asyncio.gather(
        store.find_active_bookings(property_id, start_date, end_date, room_code=room_code),
        store.find_blocks(
            property_id,
            start_date,
            end_date,
            room_code=room_code,
            exclude_id=exclude_block_id,
        ),
    )

    room_types = extract_room_types(prop.rooms_spec, prop.layout, room_code, room_type_pattern)

    report = assemble_report(start_date, end_date, room_types, bookings, blocks, room_code)
    logger.debug(
        "Availability for property %s [%s, %s) room_code=%r pattern=%r: %d types, %d bookings, %d blocks",
        property_id,
        start_date.isoformat(),
        end_date.isoformat(),
        room_code,
        room_type_pattern,
        len(room_types),
        len(bookings),
        len(blocks),
    )
    return report

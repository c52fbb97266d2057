"""Occupancy store — read access to properties, bookings, and availability blocks.

The availability engine only ever sees the immutable records defined here,
never ORM instances. ``SqlAvailabilityStore`` is the production
implementation; tests substitute any object satisfying ``AvailabilityStore``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roomops.config import settings
from roomops.models.availability_block import AvailabilityBlock
from roomops.models.booking import Booking
from roomops.models.property import Property

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PropertyRecord:
    """Inventory description of a property, as stored."""

    id: int
    rooms_spec: Any = None
    layout: Any = None


@dataclass(frozen=True)
class BookingRecord:
    """An active marketplace booking. Always occupies exactly one room."""

    id: int
    check_in: datetime
    check_out: datetime
    status: str
    room_code: str | None = None
    guest_name: str | None = None
    total_amount: float | None = None

    @property
    def rooms_consumed(self) -> int:
        return 1

    @property
    def display_amount(self) -> float | None:
        """Amount shown in occupant listings; zero and missing both read as absent."""
        return self.total_amount or None

    @property
    def amount_or_zero(self) -> float:
        return self.total_amount or 0


@dataclass(frozen=True)
class BlockRecord:
    """An availability block. Occupies ``beds_blocked`` whole rooms (default 1)."""

    id: int
    start_date: datetime
    end_date: datetime
    room_code: str | None = None
    source: str | None = None
    beds_blocked: int | None = None

    @property
    def rooms_consumed(self) -> int:
        return self.beds_blocked or 1


class AvailabilityStore(Protocol):
    """Read-only collaborator the availability engine depends on."""

    async def find_property(self, property_id: int) -> PropertyRecord | None: ...

    async def find_active_bookings(
        self,
        property_id: int,
        start: datetime,
        end: datetime,
        room_code: str | None = None,
    ) -> list[BookingRecord]:
        """Bookings in an active status overlapping ``[start, end)``, by check-in ascending."""
        ...

    async def find_blocks(
        self,
        property_id: int,
        start: datetime,
        end: datetime,
        room_code: str | None = None,
        exclude_id: int | None = None,
    ) -> list[BlockRecord]:
        """Blocks overlapping ``[start, end)``, by start ascending."""
        ...


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------


def _to_number(amount: Decimal | float | None) -> float | None:
    if amount is None:
        return None
    return float(amount)


def booking_to_record(booking: Booking) -> BookingRecord:
    return BookingRecord(
        id=booking.id,
        check_in=as_utc(booking.check_in),
        check_out=as_utc(booking.check_out),
        status=booking.status,
        room_code=booking.room_code,
        guest_name=booking.guest_name,
        total_amount=_to_number(booking.total_amount),
    )


def block_to_record(block: AvailabilityBlock) -> BlockRecord:
    return BlockRecord(
        id=block.id,
        start_date=as_utc(block.start_date),
        end_date=as_utc(block.end_date),
        room_code=block.room_code,
        source=block.source,
        beds_blocked=block.beds_blocked,
    )


# ---------------------------------------------------------------------------
# SQL implementation
# ---------------------------------------------------------------------------


class SqlAvailabilityStore:
    """``AvailabilityStore`` backed by the async ORM.

    Every query runs in its own short-lived session so the bookings and
    blocks reads may be awaited concurrently.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        active_statuses: Iterable[str] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._active_statuses = list(active_statuses or settings.active_booking_statuses)

    async def find_property(self, property_id: int) -> PropertyRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Property.id, Property.rooms_spec, Property.layout).where(Property.id == property_id)
            )
            row = result.one_or_none()

        if row is None:
            return None
        return PropertyRecord(id=row.id, rooms_spec=row.rooms_spec, layout=row.layout)

    async def find_active_bookings(
        self,
        property_id: int,
        start: datetime,
        end: datetime,
        room_code: str | None = None,
    ) -> list[BookingRecord]:
        query = select(Booking).where(
            Booking.property_id == property_id,
            Booking.status.in_(self._active_statuses),
            Booking.check_in < end,
            Booking.check_out > start,
        )
        if room_code:
            query = query.where(Booking.room_code == room_code)
        query = query.order_by(Booking.check_in.asc(), Booking.id.asc())

        async with self._session_factory() as session:
            result = await session.execute(query)
            bookings = list(result.scalars().all())

        logger.debug("Property %s: %d active bookings in window", property_id, len(bookings))
        return [booking_to_record(b) for b in bookings]

    async def find_blocks(
        self,
        property_id: int,
        start: datetime,
        end: datetime,
        room_code: str | None = None,
        exclude_id: int | None = None,
    ) -> list[BlockRecord]:
        query = select(AvailabilityBlock).where(
            AvailabilityBlock.property_id == property_id,
            AvailabilityBlock.start_date < end,
            AvailabilityBlock.end_date > start,
        )
        if room_code:
            query = query.where(AvailabilityBlock.room_code == room_code)
        if exclude_id is not None:
            query = query.where(AvailabilityBlock.id != exclude_id)
        query = query.order_by(AvailabilityBlock.start_date.asc(), AvailabilityBlock.id.asc())

        async with self._session_factory() as session:
            result = await session.execute(query)
            blocks = list(result.scalars().all())

        logger.debug("Property %s: %d availability blocks in window", property_id, len(blocks))
        return [block_to_record(b) for b in blocks]

"""Tests for the availability engine against an in-memory store."""

from datetime import datetime, timedelta, timezone

import pytest

from roomops.services.availability import (
    InvalidDateRange,
    PropertyNotFound,
    RoomType,
    availability_percentage,
    build_conflicts,
    compute_availability,
    count_nights,
    overlaps,
    select_for_room_type,
    select_unassigned,
)
from roomops.services.store import BlockRecord, BookingRecord, PropertyRecord

ACTIVE = {"NEW", "CONFIRMED", "CHECKED_IN"}

LAYOUT = {"floors": [{"rooms": [{"code": "Single-1"}, {"code": "Single-2"}, {"code": "Double-1"}]}]}

START = datetime(2026, 3, 10, tzinfo=timezone.utc)
END = datetime(2026, 3, 13, tzinfo=timezone.utc)


def day(n: int) -> datetime:
    """Midnight UTC, ``n`` days after March 1st 2026."""
    return datetime(2026, 3, 1, tzinfo=timezone.utc) + timedelta(days=n)


def booking(id: int, check_in: datetime, check_out: datetime, room_code=None, status="CONFIRMED", **kw):
    return BookingRecord(id=id, check_in=check_in, check_out=check_out, status=status, room_code=room_code, **kw)


def block(id: int, start: datetime, end: datetime, room_code=None, beds_blocked=1, **kw):
    return BlockRecord(id=id, start_date=start, end_date=end, room_code=room_code, beds_blocked=beds_blocked, **kw)


class FakeStore:
    """In-memory ``AvailabilityStore`` that applies the same pre-filters as the SQL store."""

    def __init__(self, prop=None, bookings=(), blocks=()):
        self.prop = prop if prop is not None else PropertyRecord(id=1, layout=LAYOUT)
        self.bookings = list(bookings)
        self.blocks = list(blocks)
        self.calls: list[tuple] = []

    async def find_property(self, property_id):
        self.calls.append(("property", property_id))
        return self.prop if self.prop.id == property_id else None

    async def find_active_bookings(self, property_id, start, end, room_code=None):
        self.calls.append(("bookings", property_id, start, end, room_code))
        found = [
            b
            for b in self.bookings
            if b.status in ACTIVE
            and overlaps(b.check_in, b.check_out, start, end)
            and (not room_code or b.room_code == room_code)
        ]
        return sorted(found, key=lambda b: b.check_in)

    async def find_blocks(self, property_id, start, end, room_code=None, exclude_id=None):
        self.calls.append(("blocks", property_id, start, end, room_code, exclude_id))
        found = [
            b
            for b in self.blocks
            if overlaps(b.start_date, b.end_date, start, end)
            and (not room_code or b.room_code == room_code)
            and (exclude_id is None or b.id != exclude_id)
        ]
        return sorted(found, key=lambda b: b.start_date)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


class TestOverlap:
    """Half-open interval overlap."""

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            (day(5), day(10), False),  # ends exactly at window start
            (day(13), day(15), False),  # starts exactly at window end
            (day(5), day(11), True),
            (day(12), day(20), True),
            (day(10), day(13), True),
            (day(11), day(12), True),  # inside
            (day(1), day(30), True),  # covers
        ],
    )
    def test_overlap(self, start, end, expected):
        assert overlaps(start, end, day(10), day(13)) is expected


class TestArithmetic:
    def test_percentage_rounds_half_up(self):
        assert availability_percentage(1, 8) == 13
        assert availability_percentage(3, 8) == 38
        assert availability_percentage(1, 3) == 33

    def test_percentage_without_capacity_is_zero(self):
        assert availability_percentage(0, 0) == 0

    def test_percentage_bounds(self):
        assert availability_percentage(0, 5) == 0
        assert availability_percentage(5, 5) == 100

    def test_nights_round_up_partial_days(self):
        assert count_nights(START, END) == 3
        assert count_nights(START, START + timedelta(hours=30)) == 2


class TestBucketing:
    """Pure selection rules used per room type."""

    def test_prefix_match(self):
        items = [booking(1, START, END, "Single-1"), booking(2, START, END, "Double-1"), booking(3, START, END)]
        selected = select_for_room_type(items, RoomType("Single", 2, ("Single-1", "Single-2")))
        assert [b.id for b in selected] == [1]

    def test_exact_code_match(self):
        items = [booking(1, START, END, "Single-1"), booking(2, START, END, "Single-2")]
        selected = select_for_room_type(items, RoomType("Single", 1, ("Single-2",)), room_code="Single-2")
        assert [b.id for b in selected] == [2]

    def test_unassigned_treats_empty_code_as_missing(self):
        items = [block(1, START, END, ""), block(2, START, END, None), block(3, START, END, "Double-1")]
        assert [b.id for b in select_unassigned(items)] == [1, 2]

    def test_selection_does_not_mutate_input(self):
        items = [booking(1, START, END, "Single-1"), booking(2, START, END)]
        select_for_room_type(items, RoomType("Single", 2, ()))
        select_unassigned(items)
        assert [b.id for b in items] == [1, 2]


class TestConflicts:
    def test_bookings_then_blocks_with_defaults(self):
        conflicts = build_conflicts(
            [booking(7, day(11), day(12), "Single-1", guest_name="Asha")],
            [block(3, day(9), day(11), None, beds_blocked=None, source="Booking.com")],
        )
        assert [(c.type, c.id) for c in conflicts] == [("booking", 7), ("block", 3)]
        assert conflicts[0].details == {"guest_name": "Asha", "status": "CONFIRMED", "total_amount": 0}
        assert conflicts[1].details == {"source": "Booking.com", "beds_blocked": 1}


# ---------------------------------------------------------------------------
# compute_availability
# ---------------------------------------------------------------------------


class TestComputeAvailability:
    """End-to-end behaviour of the engine."""

    async def test_layout_scenario(self):
        store = FakeStore(
            bookings=[booking(1, day(8), day(15), "Single-1")],
            blocks=[block(1, day(9), day(14), "Double-1", beds_blocked=1)],
        )
        report = await compute_availability(store, 1, START, END)

        single = report.by_room_type["Single"]
        assert (single.total_rooms, single.booked_rooms, single.available_rooms) == (2, 1, 1)
        assert single.availability_percentage == 50

        double = report.by_room_type["Double"]
        assert (double.total_rooms, double.blocked_rooms, double.available_rooms) == (1, 1, 0)
        assert double.availability_percentage == 0

        assert report.summary.total_rooms == 3
        assert report.summary.total_booked_rooms == 1
        assert report.summary.total_blocked_rooms == 1
        assert report.summary.total_available_rooms == 1
        assert report.summary.overall_availability_percentage == 33
        assert "Unassigned" not in report.by_room_type

        assert report.date_range.nights == 3
        assert report.has_conflicts is True
        assert [(c.type, c.id) for c in report.conflicts] == [("booking", 1), ("block", 1)]

    async def test_equal_dates_rejected(self):
        with pytest.raises(InvalidDateRange):
            await compute_availability(FakeStore(), 1, START, START)

    async def test_reversed_dates_rejected_before_any_read(self):
        store = FakeStore()
        with pytest.raises(InvalidDateRange):
            await compute_availability(store, 1, END, START)
        assert store.calls == []

    async def test_unknown_property(self):
        with pytest.raises(PropertyNotFound) as exc_info:
            await compute_availability(FakeStore(), 99, START, END)
        assert exc_info.value.property_id == 99

    async def test_boundary_touching_occupants_do_not_count(self):
        store = FakeStore(
            bookings=[booking(1, day(5), START, "Single-1"), booking(2, END, day(20), "Single-2")],
            blocks=[block(1, day(1), START, "Double-1")],
        )
        report = await compute_availability(store, 1, START, END)
        assert report.summary.total_available_rooms == 3
        assert report.has_conflicts is False
        assert report.conflicts == ()

    async def test_inactive_statuses_never_reach_the_engine(self):
        store = FakeStore(bookings=[booking(1, START, END, "Single-1", status="CANCELED")])
        report = await compute_availability(store, 1, START, END)
        assert report.by_room_type["Single"].booked_rooms == 0

    async def test_unassigned_booking(self):
        store = FakeStore(bookings=[booking(1, START, END, None, guest_name="Walk-up")])
        report = await compute_availability(store, 1, START, END)

        unassigned = report.by_room_type["Unassigned"]
        assert unassigned.total_rooms == 0
        assert unassigned.booked_rooms == 1
        assert unassigned.available_rooms == 0
        assert unassigned.availability_percentage == 0
        assert unassigned.bookings[0].room_code is None
        assert unassigned.bookings[0].guest_name == "Walk-up"

        assert report.by_room_type["Single"].booked_rooms == 0
        assert report.by_room_type["Double"].booked_rooms == 0
        assert report.summary.total_booked_rooms == 1
        assert report.summary.total_available_rooms == 2

    async def test_unassigned_bucket_is_last(self):
        store = FakeStore(blocks=[block(1, START, END, "", beds_blocked=2)])
        report = await compute_availability(store, 1, START, END)
        assert list(report.by_room_type) == ["Single", "Double", "Unassigned"]
        assert report.by_room_type["Unassigned"].blocked_rooms == 2

    async def test_unrecognized_room_code_only_lowers_summary(self):
        store = FakeStore(bookings=[booking(1, START, END, "Penthouse-1")])
        report = await compute_availability(store, 1, START, END)

        assert "Unassigned" not in report.by_room_type
        assert sum(row.booked_rooms for row in report.by_room_type.values()) == 0
        assert sum(row.available_rooms for row in report.by_room_type.values()) == 3
        assert report.summary.total_booked_rooms == 1
        assert report.summary.total_available_rooms == 2

    async def test_overbooking_never_goes_negative(self):
        store = FakeStore(
            bookings=[booking(i, START, END, "Double-1") for i in range(1, 4)],
            blocks=[block(1, START, END, "Single-1", beds_blocked=5)],
        )
        report = await compute_availability(store, 1, START, END)

        for row in report.by_room_type.values():
            assert row.available_rooms >= 0
            assert 0 <= row.availability_percentage <= 100
        assert report.by_room_type["Double"].booked_rooms == 3
        assert report.by_room_type["Single"].blocked_rooms == 5
        assert report.summary.total_available_rooms == 0
        assert report.summary.overall_availability_percentage == 0

    async def test_block_defaults_to_one_room(self):
        store = FakeStore(blocks=[block(1, START, END, "Single-2", beds_blocked=None)])
        report = await compute_availability(store, 1, START, END)
        assert report.by_room_type["Single"].blocked_rooms == 1
        assert report.by_room_type["Single"].bookings[0].beds_blocked == 1
        assert report.conflicts[0].details["beds_blocked"] == 1

    async def test_exact_room_code_filter(self):
        store = FakeStore(
            bookings=[booking(1, START, END, "Single-1"), booking(2, START, END, "Single-2"), booking(3, START, END)],
        )
        report = await compute_availability(store, 1, START, END, room_code="Single-2")

        assert list(report.by_room_type) == ["Single"]
        row = report.by_room_type["Single"]
        assert (row.total_rooms, row.booked_rooms, row.available_rooms) == (1, 1, 0)
        assert report.summary.total_rooms == 1
        assert [c.id for c in report.conflicts] == [2]
        assert ("bookings", 1, START, END, "Single-2") in store.calls

    async def test_room_type_pattern_filter(self):
        store = FakeStore(bookings=[booking(1, START, END, "Single-1"), booking(2, START, END, "Double-1")])
        report = await compute_availability(store, 1, START, END, room_type_pattern="doub")

        assert list(report.by_room_type) == ["Double"]
        assert report.by_room_type["Double"].available_rooms == 0
        # Totals still come from every fetched occupant
        assert report.summary.total_rooms == 1
        assert report.summary.total_booked_rooms == 2
        assert report.summary.total_available_rooms == 0

    async def test_excluding_a_block_frees_its_rooms(self):
        blocks = [block(4, START, END, "Single-1"), block(5, START, END, "Single-2")]
        with_block = await compute_availability(FakeStore(blocks=blocks), 1, START, END)
        without_block = await compute_availability(FakeStore(blocks=blocks), 1, START, END, exclude_block_id=4)

        assert with_block.summary.total_blocked_rooms - without_block.summary.total_blocked_rooms == 1
        assert (
            with_block.by_room_type["Single"].blocked_rooms - without_block.by_room_type["Single"].blocked_rooms == 1
        )
        assert [c.id for c in without_block.conflicts] == [5]

    async def test_occupants_listed_chronologically_per_room_type(self):
        store = FakeStore(
            bookings=[booking(1, day(10), day(11), "Single-1"), booking(2, day(11), day(13), "Single-2")],
            blocks=[block(9, day(8), day(10), "Single-2", source="Airbnb")],
        )
        report = await compute_availability(store, 1, START, END)

        entries = report.by_room_type["Single"].bookings
        assert [(e.type, e.id) for e in entries] == [("block", 9), ("booking", 1), ("booking", 2)]
        assert entries[0].source == "Airbnb"
        # Conflicts keep bookings-then-blocks order rather than a timeline
        assert [(c.type, c.id) for c in report.conflicts] == [("booking", 1), ("booking", 2), ("block", 9)]

    async def test_zero_amount_is_absent_in_listing_but_zero_in_conflicts(self):
        store = FakeStore(bookings=[booking(1, START, END, "Single-1", total_amount=0.0)])
        report = await compute_availability(store, 1, START, END)
        assert report.by_room_type["Single"].bookings[0].total_amount is None
        assert report.conflicts[0].details["total_amount"] == 0

    async def test_rooms_spec_property(self):
        prop = PropertyRecord(id=2, rooms_spec={"rooms": [{"roomType": "Dorm", "roomsCount": 4}]})
        store = FakeStore(prop=prop, blocks=[block(1, START, END, "Dorm-3", beds_blocked=2)])
        report = await compute_availability(store, 2, START, END)

        dorm = report.by_room_type["Dorm"]
        assert (dorm.total_rooms, dorm.blocked_rooms, dorm.available_rooms) == (4, 2, 2)
        assert dorm.availability_percentage == 50

    async def test_malformed_inventory_still_produces_report(self):
        prop = PropertyRecord(id=3, rooms_spec="{{broken", layout="also broken")
        store = FakeStore(prop=prop, bookings=[booking(1, START, END, "Room-1")])
        report = await compute_availability(store, 3, START, END)

        assert report.by_room_type["Room"].total_rooms == 1
        assert report.by_room_type["Room"].available_rooms == 0

    async def test_naive_datetimes_are_treated_as_utc(self):
        store = FakeStore(bookings=[booking(1, START, END, "Single-1")])
        report = await compute_availability(store, 1, START.replace(tzinfo=None), END.replace(tzinfo=None))
        assert report.date_range.start_date == START
        assert report.by_room_type["Single"].booked_rooms == 1

    async def test_identical_inputs_give_identical_reports(self):
        store = FakeStore(
            bookings=[booking(1, START, END, "Single-1"), booking(2, START, END)],
            blocks=[block(1, START, END, "Double-1")],
        )
        first = await compute_availability(store, 1, START, END)
        second = await compute_availability(store, 1, START, END)
        assert first == second

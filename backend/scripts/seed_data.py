"""Seed the database with a demo owner, two properties, bookings, and blocks.

One property describes its inventory with a floor layout, the other with a
coarser rooms specification, so both room-type sources can be exercised.

Run from the backend directory:
    python -m scripts.seed_data
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete, select

from roomops.auth.jwt import create_access_token
from roomops.database import async_session_factory
from roomops.models.availability_block import AvailabilityBlock
from roomops.models.booking import Booking
from roomops.models.property import Property
from roomops.models.user import User

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_USER = {
    "email": "owner@roomops.local",
    "name": "Demo Owner",
}

PROPERTIES = [
    {
        "name": "Harbour View Lodge",
        "status": "APPROVED",
        "total_bedrooms": 6,
        "layout": {
            "floors": [
                {"rooms": [{"code": "Single-1"}, {"code": "Single-2"}, {"code": "Double-1"}]},
                {"rooms": [{"code": "Double-2"}, {"code": "Suite-1"}, {"code": "Suite-2"}]},
            ]
        },
    },
    {
        "name": "Kilimanjaro Backpackers",
        "status": "APPROVED",
        "total_bedrooms": 8,
        "rooms_spec": {
            "rooms": [
                {"roomType": "Dorm", "roomsCount": 5},
                {"roomType": "Private", "roomsCount": 3},
            ]
        },
    },
]


def _at_noon(days_from_today: int) -> datetime:
    today = datetime.now(timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0)
    return today + timedelta(days=days_from_today)


def _build_bookings(property_id: int, room_codes: list[str | None]) -> list[Booking]:
    """Staggered active bookings, plus one cancelled booking that must not count."""
    bookings = []
    for i, code in enumerate(room_codes):
        bookings.append(
            Booking(
                property_id=property_id,
                check_in=_at_noon(2 + i),
                check_out=_at_noon(5 + i),
                status="CONFIRMED" if i % 2 == 0 else "NEW",
                room_code=code,
                guest_name=f"Guest {i + 1}",
                total_amount=Decimal("120.00") * (i + 1),
            )
        )
    bookings.append(
        Booking(
            property_id=property_id,
            check_in=_at_noon(2),
            check_out=_at_noon(4),
            status="CANCELED",
            room_code=room_codes[0],
            guest_name="Cancelled Guest",
        )
    )
    return bookings


async def seed() -> None:
    """Populate the database with demo availability data.

    Idempotent: deletes the demo owner and everything they own before
    re-creating it.
    """
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.email == DEMO_USER["email"]))
        existing_user = result.scalar_one_or_none()

        if existing_user is not None:
            print(f"Demo owner '{DEMO_USER['email']}' already exists. Deleting and re-seeding...")
            property_ids = [p.id for p in existing_user.properties]
            if property_ids:
                await session.execute(delete(AvailabilityBlock).where(AvailabilityBlock.property_id.in_(property_ids)))
                await session.execute(delete(Booking).where(Booking.property_id.in_(property_ids)))
                await session.execute(delete(Property).where(Property.id.in_(property_ids)))
            await session.flush()
            await session.execute(delete(User).where(User.id == existing_user.id))
            await session.flush()

        user = User(email=DEMO_USER["email"], name=DEMO_USER["name"], is_active=True, role="owner")
        session.add(user)
        await session.flush()
        print(f"Created demo owner: {user.email} (id={user.id})")

        created_properties: list[Property] = []
        for prop_data in PROPERTIES:
            prop = Property(owner_id=user.id, **prop_data)
            session.add(prop)
            await session.flush()
            created_properties.append(prop)
            print(f"   {prop.name} (id={prop.id})")

        lodge, hostel = created_properties
        bookings = _build_bookings(lodge.id, ["Single-1", "Double-1", None])
        bookings += _build_bookings(hostel.id, ["Dorm-1", "Private-2"])
        session.add_all(bookings)

        blocks = [
            AvailabilityBlock(
                property_id=lodge.id,
                owner_id=user.id,
                start_date=_at_noon(3),
                end_date=_at_noon(6),
                room_code="Suite-1",
                source="Airbnb",
                beds_blocked=1,
            ),
            AvailabilityBlock(
                property_id=hostel.id,
                owner_id=user.id,
                start_date=_at_noon(1),
                end_date=_at_noon(8),
                room_code="Dorm-3",
                source="Walk-in",
                beds_blocked=2,
                notes="School group",
            ),
        ]
        session.add_all(blocks)
        await session.commit()

        print(f"Created {len(bookings)} bookings and {len(blocks)} blocks")
        print(f"Access token: {create_access_token({'sub': str(user.id)})}")


if __name__ == "__main__":
    asyncio.run(seed())

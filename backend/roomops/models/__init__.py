"""SQLAlchemy models for RoomOps.

All models are imported here so that Alembic's autogenerate can discover
them via Base.metadata. If you add a new model, import it in this file.
"""

from roomops.models.availability_block import AvailabilityBlock
from roomops.models.booking import Booking
from roomops.models.property import Property
from roomops.models.user import User

__all__ = [
    "AvailabilityBlock",
    "Booking",
    "Property",
    "User",
]

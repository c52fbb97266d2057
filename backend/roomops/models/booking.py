"""Booking model — reservations made through the marketplace."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from roomops.database import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Booking(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A guest reservation of one room for a half-open ``[check_in, check_out)`` window."""

    __tablename__ = "bookings"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    check_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    check_out: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="NEW", index=True)
    room_code: Mapped[str | None] = mapped_column(String(60), nullable=True)
    guest_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    __table_args__ = (Index("ix_bookings_property_window", "property_id", "check_in", "check_out"),)

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, property_id={self.property_id}, room_code={self.room_code!r}, status={self.status})>"
        )

"""Availability block model — externally sourced occupancy and manual holds."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomops.database import Base, IntegerPrimaryKeyMixin, TimestampMixin


class AvailabilityBlock(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Occupancy recorded outside the marketplace (other channels, walk-ins, holds).

    Blocks have no status: every stored block is active. ``beds_blocked`` is
    the number of whole rooms the block takes out of inventory.
    """

    __tablename__ = "availability_blocks"

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    room_code: Mapped[str | None] = mapped_column(String(60), nullable=True)
    source: Mapped[str | None] = mapped_column(String(50), nullable=True)
    beds_blocked: Mapped[int | None] = mapped_column(Integer, default=1, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    property: Mapped["Property"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (Index("ix_availability_blocks_property_window", "property_id", "start_date", "end_date"),)

    def __repr__(self) -> str:
        return f"<AvailabilityBlock(id={self.id}, property_id={self.property_id}, room_code={self.room_code!r})>"

"""Property model — a listing with its room inventory description."""

from typing import Any

from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomops.database import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Property(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A bookable property owned by a user.

    Inventory is described by ``layout`` (floors of rooms carrying codes such
    as ``"Single-1"``) or, more coarsely, by ``rooms_spec`` (a list of
    ``{roomType, roomsCount}`` entries). Either may be stored as JSON or as a
    JSON-encoded string.
    """

    __tablename__ = "properties"

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="PENDING", nullable=False)  # PENDING, APPROVED, SUSPENDED
    rooms_spec: Mapped[Any] = mapped_column(JSON, nullable=True)
    layout: Mapped[Any] = mapped_column(JSON, nullable=True)
    total_bedrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Relationships
    owner: Mapped["User"] = relationship(back_populates="properties", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, name={self.name!r}, status={self.status!r})>"

"""User model — property owners and administrators."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomops.database import Base, IntegerPrimaryKeyMixin, TimestampMixin


class User(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Account that owns properties and manages their availability."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    role: Mapped[str] = mapped_column(String(50), default="owner", nullable=False)  # owner, admin

    # Relationships
    properties: Mapped[list["Property"]] = relationship("Property", back_populates="owner", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"

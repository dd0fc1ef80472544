"""Participant to position assignments."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from pi_canvas.db.session import Base
from pi_canvas.db.time import utcnow


class Assignment(Base):
    """The one position a participant claimed, created at most once.

    Both ``participant_id`` and ``position`` are unique; the second constraint
    backs up the counter if two writers ever observed the same value.
    """

    __tablename__ = "assignment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    participant_id: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    position: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    digit_value: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def offset(self) -> int:
        """Zero-based index of this position in the digit source."""
        return self.position - 1

    def __repr__(self) -> str:
        return f"<Assignment #{self.position}={self.digit_value}>"

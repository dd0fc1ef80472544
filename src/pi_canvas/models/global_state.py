"""Single-row counter shared by every allocation."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from pi_canvas.db.session import Base

GLOBAL_STATE_ID = 1


class GlobalState(Base):
    """Monotonic count of claimed positions plus the last publish time.

    ``assigned_count`` only moves through an atomic ``UPDATE ... RETURNING``
    in the allocator, or back to zero through an administrative reset.
    """

    __tablename__ = "global_state"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, default=GLOBAL_STATE_ID)
    assigned_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_rendered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<GlobalState assigned={self.assigned_count}>"

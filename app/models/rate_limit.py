from datetime import datetime

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.db.types import UTCDateTime


class RateLimit(Base):
    """One counting window for an (identity, action) pair."""

    __tablename__ = "rate_limits"
    __table_args__ = (
        Index("ix_rate_limits_lookup", "identity", "action", "window_start"),
        # Sweep deletes by window_start alone across all identities
        Index("ix_rate_limits_window_start", "window_start"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identity: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    window_start: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

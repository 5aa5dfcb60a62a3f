from datetime import datetime
from sqlalchemy import String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from monitorwatch.db.base import Base


class UserConfigEntry(Base):
    """Key-value user configuration: one JSON document per user, upserted by key."""

    __tablename__ = "user_configs"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[str] = mapped_column(
        Text, nullable=False,
        comment="JSON-encoded config document (see schemas/config.py)",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

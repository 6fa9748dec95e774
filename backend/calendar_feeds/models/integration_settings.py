from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from calendar_feeds.core.constants import (
    DEFAULT_ASSIGNMENTS_RULE,
    DEFAULT_SCOPE,
    DEFAULT_TIMEZONE,
)
from calendar_feeds.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IntegrationSettings(Base):
    __tablename__ = "calendar_integration_settings"

    user_id = Column(String(64), primary_key=True)

    feed_mode = Column(String(20), nullable=False, default="separate")  # separate, combined
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    scope = Column(String(32), nullable=False, default=DEFAULT_SCOPE)
    assignments_rule = Column(String(32), nullable=False, default=DEFAULT_ASSIGNMENTS_RULE)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

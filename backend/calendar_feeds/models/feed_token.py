# calendar_feeds/models/feed_token.py

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, true

from calendar_feeds.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedToken(Base):
    __tablename__ = "calendar_feed_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    # 'courses' / 'assignments' / 'combined'
    feed_kind = Column(String(20), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # At most one active token per (user, kind); revoked rows are kept
        Index(
            "uq_calendar_feed_tokens_active_kind",
            "user_id",
            "feed_kind",
            unique=True,
            sqlite_where=is_active == true(),
            postgresql_where=is_active == true(),
        ),
    )

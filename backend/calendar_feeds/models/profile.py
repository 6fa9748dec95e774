from sqlalchemy import JSON, Column, String

from calendar_feeds.core.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)

    # [{"code": "12001104-003", "year": 2025, "term": "Fall"}, ...]
    courses_selection = Column(JSON, nullable=True)


class UserSettings(Base):
    __tablename__ = "user_settings"

    user_id = Column(String(64), primary_key=True)

    # "<Term>-<Year>", e.g. "Fall-2025"
    current_term = Column(String(32), nullable=True)

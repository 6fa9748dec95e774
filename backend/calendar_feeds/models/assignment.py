from sqlalchemy import Column, DateTime, String, Text

from calendar_feeds.core.database import Base


class Assignment(Base):
    """Assignment record. Owned by the main application; read-only here."""

    __tablename__ = "assignments"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)

    title = Column(String(255), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=True)  # not_started, in_progress, completed

    course_code = Column(String(64), nullable=True)
    course_tag_name = Column(String(255), nullable=True)
    course_year = Column(String(8), nullable=True)
    course_term = Column(String(32), nullable=True)

    instructions = Column(Text, nullable=True)

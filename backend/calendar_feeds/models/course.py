from sqlalchemy import Column, Integer, String, Text

from calendar_feeds.core.database import Base


class Course(Base):
    """Course catalog row. Owned by the main application; read-only here."""

    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    course_code = Column(String(64), nullable=False, index=True)
    academic_year = Column(Integer, nullable=False, index=True)
    term = Column(String(20), nullable=False)

    title = Column(String(255), nullable=True)
    professor = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    type = Column(String(64), nullable=True)

    # e.g. "(月)3(講時)" or "Thu 14:55 - 16:25"
    time_slot = Column(Text, nullable=True)

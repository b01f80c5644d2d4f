"""
Vacancy API - SQLAlchemy ORM models.

The PostgreSQL `search_vector` tsvector column is not mapped here: it is
created and maintained by migration 003 (trigger-populated) and referenced
only by the PostgreSQL search strategy.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, CheckConstraint

from .database import Base

# Upper bound of the 32-bit INTEGER columns
INTEGER_MAX = 2_147_483_647


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Vacancy(Base):
    __tablename__ = "vacancy"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    salary = Column(Integer, nullable=False, index=True)
    additional_fields = Column(JSON, nullable=True)  # free-form key/value map
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("salary >= 0", name="chk_vacancy_salary_positive"),
    )

    def __repr__(self) -> str:
        return f"<Vacancy id={self.id} title={self.title!r}>"

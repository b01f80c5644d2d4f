"""
Vacancy API - API user model.

Users exist only to hold access tokens for the optional bearer-token check
on write endpoints.
"""
import secrets

from sqlalchemy import Column, Integer, String, Boolean, DateTime

from ..database import Base
from ..models import utcnow


def generate_access_token() -> str:
    return secrets.token_urlsafe(48)


class User(Base):
    """API client identity."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    access_token = Column(String(255), unique=True, index=True, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

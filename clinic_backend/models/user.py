"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from clinic_backend.database import Base

ROLE_PATIENT = "PATIENT"
ROLE_ADMIN = "ADMIN"


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_PATIENT)  # PATIENT/ADMIN
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    bookings = relationship("Booking", back_populates="user")

"""Booking model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from clinic_backend.database import Base


class Booking(Base):
    """Links one user to one slot."""
    __tablename__ = "bookings"
    __table_args__ = (
        # A slot can be booked at most once.
        UniqueConstraint("slot_id", name="uq_bookings_slot"),
        Index("idx_bookings_user", "user_id"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    slot_id = Column(Integer, ForeignKey("slots.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    user = relationship("User", back_populates="bookings")
    slot = relationship("Slot", back_populates="booking")

"""Slot model definitions."""

from sqlalchemy import Column, DateTime, Index, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from clinic_backend.database import Base


class Slot(Base):
    """Represents one bookable appointment window."""
    __tablename__ = "slots"
    __table_args__ = (
        UniqueConstraint("start_at", "end_at", name="uq_slots_window"),
        Index("idx_slots_start", "start_at"),
    )

    id = Column(Integer, primary_key=True)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    booking = relationship("Booking", back_populates="slot", uselist=False)

    @property
    def is_booked(self) -> bool:
        return self.booking is not None

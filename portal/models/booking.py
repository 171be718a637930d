"""Booking model definitions."""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship
from portal.database import Base, OCCUPYING_STATUS_PREDICATE


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


OCCUPYING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    """A reserved interval for one service; occupied_until includes the service buffer."""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"))
    title = Column(String)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    occupied_until = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default=BookingStatus.PENDING.value)
    notes = Column(Text)
    location_address = Column(String)
    location_contact_name = Column(String)
    location_contact_phone = Column(String)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    cancelled_at = Column(DateTime(timezone=True))
    cancellation_reason = Column(String)

    service = relationship("Service")
    client = relationship("Client")

    __table_args__ = (
        Index("idx_bookings_team_time_range", "team_id", "start_time", "occupied_until"),
        Index(
            "uq_bookings_team_start_occupying",
            "team_id",
            "start_time",
            unique=True,
            postgresql_where=text(OCCUPYING_STATUS_PREDICATE),
            sqlite_where=text(OCCUPYING_STATUS_PREDICATE),
        ),
    )

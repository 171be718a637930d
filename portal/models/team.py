"""Team model definitions."""

from sqlalchemy import Column, Integer, String
from portal.database import Base


class Team(Base):
    """A tenant whose services, hours and bookings are managed together."""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    # Bumped on every booking commit; the row update serializes commits per team.
    booking_sequence = Column(Integer, nullable=False, default=0)

"""Weekly availability model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Time, UniqueConstraint
from portal.database import Base


class WeeklyAvailability(Base):
    """Working window for one weekday (0 = Sunday) in the team's wall-clock time."""
    __tablename__ = "team_availability"

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    __table_args__ = (UniqueConstraint("team_id", "day_of_week", name="uq_team_availability_day"),)

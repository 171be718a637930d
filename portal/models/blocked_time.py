"""Blocked time model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from portal.database import Base


class BlockedInterval(Base):
    """A team-wide [start, end) window nobody can book into."""
    __tablename__ = "blocked_times"

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    reason = Column(String)

"""Client model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from portal.database import Base


class Client(Base):
    """A team's customer, able to sign in to the portal with a portal code."""
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, index=True)
    phone = Column(String)
    address = Column(String, default="")
    city = Column(String, default="")
    province = Column(String, default="")
    postal_code = Column(String, default="")
    portal_code = Column(String, unique=True, index=True)
    portal_enabled = Column(Boolean, nullable=False, default=True)

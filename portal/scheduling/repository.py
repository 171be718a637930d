"""Read/write boundary between the scheduling engine and the SQL store."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from portal.models.availability import WeeklyAvailability
from portal.models.blocked_time import BlockedInterval
from portal.models.booking import Booking, OCCUPYING_STATUSES
from portal.models.client import Client
from portal.models.service import Service, ServiceCategory
from portal.models.team import Team


class SchedulingRepository:
    """Queries used by slot generation and booking commits"""

    @staticmethod
    def get_team(db: Session, team_id: int) -> Optional[Team]:
        return db.query(Team).filter(Team.id == team_id).first()

    @staticmethod
    def get_active_service(db: Session, team_id: int, service_id: int) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(
                Service.id == service_id,
                Service.team_id == team_id,
                Service.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def get_active_services(db: Session, team_id: int) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.team_id == team_id, Service.is_active.is_(True))
            .order_by(Service.sort_order.asc(), Service.id.asc())
            .all()
        )

    @staticmethod
    def get_active_categories(db: Session, team_id: int) -> list[ServiceCategory]:
        return (
            db.query(ServiceCategory)
            .filter(ServiceCategory.team_id == team_id, ServiceCategory.is_active.is_(True))
            .order_by(ServiceCategory.sort_order.asc(), ServiceCategory.id.asc())
            .all()
        )

    @staticmethod
    def get_weekly_availability(db: Session, team_id: int, day_of_week: int) -> Optional[WeeklyAvailability]:
        return (
            db.query(WeeklyAvailability)
            .filter(
                WeeklyAvailability.team_id == team_id,
                WeeklyAvailability.day_of_week == day_of_week,
            )
            .first()
        )

    @staticmethod
    def get_blocked_intervals(db: Session, team_id: int, range_start: datetime, range_end: datetime) -> list[BlockedInterval]:
        """Blocked intervals intersecting [range_start, range_end)"""
        return (
            db.query(BlockedInterval)
            .filter(
                BlockedInterval.team_id == team_id,
                BlockedInterval.start_time < range_end,
                BlockedInterval.end_time > range_start,
            )
            .order_by(BlockedInterval.start_time.asc())
            .all()
        )

    @staticmethod
    def get_occupying_bookings(db: Session, team_id: int, range_start: datetime, range_end: datetime) -> list[Booking]:
        """Pending/confirmed bookings whose buffered interval intersects [range_start, range_end)"""
        return (
            db.query(Booking)
            .filter(
                Booking.team_id == team_id,
                Booking.status.in_(OCCUPYING_STATUSES),
                Booking.start_time < range_end,
                Booking.occupied_until > range_start,
            )
            .order_by(Booking.start_time.asc())
            .all()
        )

    @staticmethod
    def lock_team_schedule(db: Session, team_id: int) -> bool:
        """Take the team's booking write lock for the rest of the transaction."""
        updated = (
            db.query(Team)
            .filter(Team.id == team_id)
            .update({Team.booking_sequence: Team.booking_sequence + 1}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def get_client(db: Session, team_id: int, client_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id, Client.team_id == team_id).first()

    @staticmethod
    def get_client_by_email(db: Session, team_id: int, email: str) -> Optional[Client]:
        return (
            db.query(Client)
            .filter(Client.team_id == team_id, Client.email == email)
            .order_by(Client.id.asc())
            .first()
        )

    @staticmethod
    def get_client_by_portal_code(db: Session, portal_code: str) -> Optional[Client]:
        return (
            db.query(Client)
            .filter(Client.portal_code == portal_code, Client.portal_enabled.is_(True))
            .first()
        )

    @staticmethod
    def portal_code_exists(db: Session, portal_code: str) -> bool:
        return db.query(Client.id).filter(Client.portal_code == portal_code).first() is not None

    @staticmethod
    def get_clients_with_phone(db: Session, team_id: int) -> list[Client]:
        return (
            db.query(Client)
            .filter(Client.team_id == team_id, Client.phone.is_not(None))
            .order_by(Client.id.asc())
            .all()
        )

    @staticmethod
    def get_client_booking(db: Session, booking_id: int, client_id: int, team_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(
                Booking.id == booking_id,
                Booking.client_id == client_id,
                Booking.team_id == team_id,
            )
            .first()
        )

    @staticmethod
    def get_client_bookings(db: Session, client_id: int, team_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.client_id == client_id, Booking.team_id == team_id)
            .order_by(Booking.start_time.desc())
            .all()
        )

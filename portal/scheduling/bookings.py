"""Booking commits and cancellations.

A commit re-validates the requested interval against current data inside a
transaction that first takes the team's booking lock (an UPDATE of the team
row). Concurrent commits for the same team therefore run their re-check one
after another, and the partial unique index / exclusion constraint on
``bookings`` rejects anything that still slips through. Either way the loser
sees ``ConflictError`` and has to ask for fresh availability.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.models.blocked_time import BlockedInterval
from portal.models.booking import Booking, BookingStatus, OCCUPYING_STATUSES
from portal.scheduling.clients import resolve_client
from portal.scheduling.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from portal.scheduling.intervals import as_utc, buffered_end, overlaps
from portal.scheduling.repository import SchedulingRepository

logger = logging.getLogger(__name__)

SLOT_TAKEN_REASON = 'This time slot is no longer available.'
SLOT_BLOCKED_REASON = 'This time slot is blocked.'
DEFAULT_CANCELLATION_REASON = 'Cancelled by client via portal'


@dataclass
class BookingLocation:
    address: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None


def find_conflicts(
    db: Session,
    team_id: int,
    start: datetime,
    occupied_end: datetime,
) -> tuple[list[Booking], list[BlockedInterval]]:
    bookings = [
        booking
        for booking in SchedulingRepository.get_occupying_bookings(db, team_id, start, occupied_end)
        if overlaps(start, occupied_end, as_utc(booking.start_time), as_utc(booking.occupied_until))
    ]
    blocked = [
        interval
        for interval in SchedulingRepository.get_blocked_intervals(db, team_id, start, occupied_end)
        if overlaps(start, occupied_end, as_utc(interval.start_time), as_utc(interval.end_time))
    ]
    return bookings, blocked


def _raise_on_conflict(db: Session, team_id: int, start: datetime, occupied_end: datetime) -> None:
    bookings, blocked = find_conflicts(db, team_id, start, occupied_end)
    if bookings:
        logger.warning(
            'Booking conflict for team %s at %s: overlaps booking(s) %s',
            team_id,
            start.isoformat(),
            [booking.id for booking in bookings],
        )
        raise ConflictError(SLOT_TAKEN_REASON)
    if blocked:
        logger.warning('Booking conflict for team %s at %s: time is blocked', team_id, start.isoformat())
        raise ConflictError(SLOT_BLOCKED_REASON)


def create_booking(
    db: Session,
    team_id: int,
    service_id: int,
    client_ref,
    start: datetime,
    end: datetime,
    now: datetime,
    notes: Optional[str] = None,
    location: Optional[BookingLocation] = None,
    title: Optional[str] = None,
) -> Booking:
    """Validate and persist a pending booking.

    ``client_ref`` is an existing client id or a ``GuestInfo`` for the public
    flow. Raises ``NotFoundError``, ``ValidationError`` or ``ConflictError``;
    nothing is written when any of them is raised.
    """
    now = as_utc(now)
    start = as_utc(start)
    end = as_utc(end)
    location = location or BookingLocation()

    service = SchedulingRepository.get_active_service(db, team_id, service_id)
    if service is None:
        raise NotFoundError('Service not found or inactive.')

    try:
        client = resolve_client(db, team_id, client_ref)

        if end <= start:
            raise ValidationError('Booking end time must be after its start time.')

        if end - start != timedelta(minutes=service.duration_minutes):
            raise ValidationError(
                f'Booking length must match the {service.duration_minutes}-minute service duration.'
            )

        if start < now + timedelta(hours=service.lead_time_hours or 0):
            raise ValidationError(
                f'Bookings must be made at least {service.lead_time_hours} hours in advance.'
            )

        if start > now + timedelta(days=service.max_advance_days):
            raise ValidationError(
                f'Bookings can only be made up to {service.max_advance_days} days in advance.'
            )

        occupied_end = buffered_end(end, service.buffer_minutes)

        if not SchedulingRepository.lock_team_schedule(db, team_id):
            raise NotFoundError('Team not found.')

        _raise_on_conflict(db, team_id, start, occupied_end)

        booking = Booking(
            team_id=team_id,
            service_id=service.id,
            client_id=client.id,
            title=title or f'{service.name} - {client.name}',
            start_time=start,
            end_time=end,
            occupied_until=occupied_end,
            status=BookingStatus.PENDING.value,
            notes=notes or '',
            location_address=location.address,
            location_contact_name=location.contact_name,
            location_contact_phone=location.contact_phone,
            created_at=now,
        )
        db.add(booking)

        try:
            db.commit()
        except IntegrityError as exc:
            logger.warning('Storage constraint rejected booking for team %s at %s', team_id, start.isoformat())
            raise ConflictError(SLOT_TAKEN_REASON) from exc
    except SchedulingError:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        'Created pending booking %s for client %s (team %s, service %s) at %s',
        booking.id,
        client.id,
        team_id,
        service.id,
        start.isoformat(),
    )
    return booking


def cancel_booking(
    db: Session,
    booking_id: int,
    client_id: int,
    team_id: int,
    now: datetime,
    reason: Optional[str] = None,
) -> Booking:
    now = as_utc(now)

    booking = SchedulingRepository.get_client_booking(db, booking_id, client_id, team_id)
    if booking is None:
        raise NotFoundError('Booking not found.')

    if booking.status not in OCCUPYING_STATUSES:
        raise InvalidStateError(f'Cannot cancel a booking with status: {booking.status}')

    if as_utc(booking.start_time) <= now:
        raise InvalidStateError('Cannot cancel a past booking.')

    booking.status = BookingStatus.CANCELLED.value
    booking.cancelled_at = now
    booking.cancellation_reason = reason or DEFAULT_CANCELLATION_REASON
    db.commit()
    db.refresh(booking)

    logger.info('Booking %s cancelled by client %s', booking.id, client_id)
    return booking


def list_client_bookings(db: Session, client_id: int, team_id: int) -> list[Booking]:
    return SchedulingRepository.get_client_bookings(db, client_id, team_id)

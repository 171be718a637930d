"""Slot generation.

A single engine serves every entry point (authenticated portal and public
booking page). Given a team, a service, a client-local calendar date and the
client's UTC offset it walks the team's working window for that weekday at a
fixed stride and keeps the start times whose buffered interval is clear of
blocked time and of every occupying booking's own buffered interval.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable

from sqlalchemy.orm import Session

from portal.core import config
from portal.models.service import Service
from portal.scheduling.errors import NotFoundError, ValidationError
from portal.scheduling.intervals import (
    as_utc,
    buffered_end,
    client_timezone,
    day_of_week,
    local_day_bounds,
    local_today,
    local_wall_clock,
    overlaps,
)
from portal.scheduling.repository import SchedulingRepository

logger = logging.getLogger(__name__)

LOCAL_DAY_CUTOFF = time(23, 59, 59)


@dataclass(frozen=True)
class TimeSlot:
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class SelectedService:
    service: Service
    quantity: int = 1


def slot_stride() -> timedelta:
    return timedelta(minutes=config.SLOT_STRIDE_MINUTES)


def _any_overlap(start: datetime, end: datetime, intervals: Iterable[tuple[datetime, datetime]]) -> bool:
    return any(overlaps(start, end, other_start, other_end) for other_start, other_end in intervals)


def generate_slots(
    db: Session,
    team_id: int,
    service: Service,
    slot_date: date,
    client_utc_offset_minutes: int,
    now: datetime,
) -> list[TimeSlot]:
    try:
        client_timezone(client_utc_offset_minutes)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    now = as_utc(now)
    day_start, day_end = local_day_bounds(slot_date, client_utc_offset_minutes)
    horizon = now + timedelta(days=service.max_advance_days)

    if slot_date < local_today(now, client_utc_offset_minutes) or day_start > horizon:
        return []

    availability = SchedulingRepository.get_weekly_availability(db, team_id, day_of_week(slot_date))
    if availability is None or not availability.is_available:
        return []

    min_bookable = now + timedelta(hours=service.lead_time_hours or 0)
    duration = timedelta(minutes=service.duration_minutes)
    buffer_minutes = service.buffer_minutes or 0

    window_start = local_wall_clock(slot_date, availability.start_time, client_utc_offset_minutes)
    window_end = local_wall_clock(slot_date, availability.end_time, client_utc_offset_minutes)

    range_start = min(day_start, window_start)
    range_end = max(day_end, buffered_end(window_end, buffer_minutes))

    blocked = [
        (as_utc(interval.start_time), as_utc(interval.end_time))
        for interval in SchedulingRepository.get_blocked_intervals(db, team_id, range_start, range_end)
    ]
    occupied = [
        (as_utc(booking.start_time), as_utc(booking.occupied_until))
        for booking in SchedulingRepository.get_occupying_bookings(db, team_id, range_start, range_end)
    ]

    slots: list[TimeSlot] = []
    stride = slot_stride()
    candidate_start = window_start

    while candidate_start + duration <= window_end:
        candidate_end = candidate_start + duration
        candidate_buffered_end = buffered_end(candidate_end, buffer_minutes)

        if (
            candidate_start > min_bookable
            and candidate_start <= horizon
            and not _any_overlap(candidate_start, candidate_buffered_end, blocked)
            and not _any_overlap(candidate_start, candidate_buffered_end, occupied)
        ):
            slots.append(TimeSlot(start_time=candidate_start, end_time=candidate_end))

        candidate_start += stride

    logger.debug(
        'Generated %d slots for team %s service %s on %s (offset %s)',
        len(slots),
        team_id,
        service.id,
        slot_date.isoformat(),
        client_utc_offset_minutes,
    )
    return slots


def available_slots(
    db: Session,
    team_id: int,
    service_id: int,
    slot_date: date,
    client_utc_offset_minutes: int,
    now: datetime,
) -> list[TimeSlot]:
    service = SchedulingRepository.get_active_service(db, team_id, service_id)
    if service is None:
        raise NotFoundError('Service not found.')

    return generate_slots(db, team_id, service, slot_date, client_utc_offset_minutes, now)


def resolve_selection(db: Session, team_id: int, selection: Iterable[tuple[int, int]]) -> list[SelectedService]:
    items: list[SelectedService] = []
    for service_id, quantity in selection:
        if quantity < 1:
            raise ValidationError('Quantity must be at least 1.')
        service = SchedulingRepository.get_active_service(db, team_id, service_id)
        if service is None:
            raise NotFoundError('Service not found.')
        items.append(SelectedService(service=service, quantity=quantity))

    if not items:
        raise ValidationError('Select at least one service.')
    return items


def selection_slots(
    db: Session,
    team_id: int,
    items: list[SelectedService],
    slot_date: date,
    client_utc_offset_minutes: int,
    now: datetime,
) -> list[TimeSlot]:
    """Slots for several selected services booked back to back.

    Availability is computed for the first service only, then filtered with
    ``fit_within_local_day`` against the combined duration.
    """
    slots = generate_slots(db, team_id, items[0].service, slot_date, client_utc_offset_minutes, now)
    return fit_within_local_day(slots, total_duration_minutes(items), slot_date, client_utc_offset_minutes)


def total_duration_minutes(items: Iterable[SelectedService]) -> int:
    return sum(item.service.duration_minutes * item.quantity for item in items)


def booking_title(items: Iterable[SelectedService]) -> str:
    return ', '.join(
        f'{item.service.name} (x{item.quantity})' if item.quantity > 1 else item.service.name
        for item in items
    )


def fit_within_local_day(
    slots: Iterable[TimeSlot],
    total_minutes: int,
    slot_date: date,
    client_utc_offset_minutes: int,
) -> list[TimeSlot]:
    """Drop slots whose combined duration would run past 23:59:59 local.

    Only the first selected service's availability is checked; the remaining
    duration is assumed free as long as it ends on the same local day.
    """
    cutoff = local_wall_clock(slot_date, LOCAL_DAY_CUTOFF, client_utc_offset_minutes)
    total = timedelta(minutes=total_minutes)
    return [slot for slot in slots if slot.start_time + total <= cutoff]

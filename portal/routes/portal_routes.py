"""Routes for clients signed in to the portal with a portal code."""

from collections import Counter
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.auth.dependencies import PortalSession, get_portal_session
from portal.routes.common import (
    database_unavailable,
    ensure_database_ready,
    get_clock,
    get_db,
    scheduling_http_error,
)
from portal.routes.schemas import (
    BookingResponse,
    CancelBookingResponse,
    CatalogResponse,
    CreateBookingRequest,
    SlotsResponse,
    TimeSlotResponse,
)
from portal.scheduling.bookings import cancel_booking, create_booking, list_client_bookings
from portal.scheduling.catalog import list_catalog
from portal.scheduling.errors import SchedulingError
from portal.scheduling.intervals import MAX_UTC_OFFSET_MINUTES
from portal.scheduling.slots import resolve_selection, selection_slots

router = APIRouter(tags=['portal'])


@router.get('/services', response_model=CatalogResponse)
def list_services(
    session: PortalSession = Depends(get_portal_session),
    db: Session = Depends(get_db),
):
    try:
        catalog = list_catalog(db, session.team_id)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return CatalogResponse.model_validate(catalog, from_attributes=True)


@router.get('/slots', response_model=SlotsResponse)
def list_available_slots(
    service_id: list[int] = Query(...),
    slot_date: date = Query(..., alias='date'),
    offset_minutes: int = Query(..., ge=-MAX_UTC_OFFSET_MINUTES, le=MAX_UTC_OFFSET_MINUTES),
    session: PortalSession = Depends(get_portal_session),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    try:
        items = resolve_selection(db, session.team_id, Counter(service_id).items())
        slots = selection_slots(db, session.team_id, items, slot_date, offset_minutes, now)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return SlotsResponse(slots=[TimeSlotResponse.model_validate(slot) for slot in slots])


@router.get('/bookings', response_model=list[BookingResponse])
def list_my_bookings(
    session: PortalSession = Depends(get_portal_session),
    db: Session = Depends(get_db),
):
    try:
        return list_client_bookings(db, session.client_id, session.team_id)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.post('/bookings', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_my_booking(
    data: CreateBookingRequest,
    session: PortalSession = Depends(get_portal_session),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    ensure_database_ready()

    try:
        return create_booking(
            db,
            team_id=session.team_id,
            service_id=data.service_id,
            client_ref=session.client_id,
            start=data.start_time,
            end=data.end_time,
            now=now,
            notes=data.notes,
        )
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.post('/bookings/{booking_id}/cancel', response_model=CancelBookingResponse)
def cancel_my_booking(
    booking_id: int,
    session: PortalSession = Depends(get_portal_session),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    try:
        cancel_booking(db, booking_id, session.client_id, session.team_id, now)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return CancelBookingResponse(success=True, message='Booking cancelled successfully')

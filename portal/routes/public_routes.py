"""Unauthenticated routes behind a team's public booking page."""

from collections import Counter
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.routes.common import (
    database_unavailable,
    ensure_database_ready,
    get_clock,
    get_db,
    scheduling_http_error,
)
from portal.routes.schemas import (
    CatalogResponse,
    ClientLookupRequest,
    ClientLookupResponse,
    ClientResponse,
    PublicBookingRequest,
    PublicBookingResponse,
    SlotsResponse,
    TimeSlotResponse,
)
from portal.scheduling.bookings import BookingLocation, create_booking
from portal.scheduling.catalog import list_catalog
from portal.scheduling.clients import GuestInfo, lookup_client_by_phone
from portal.scheduling.errors import SchedulingError, ValidationError
from portal.scheduling.intervals import MAX_UTC_OFFSET_MINUTES
from portal.scheduling.slots import booking_title, resolve_selection, selection_slots

router = APIRouter(tags=['public'])


@router.get('/teams/{team_id}/services', response_model=CatalogResponse)
def list_public_services(team_id: int, db: Session = Depends(get_db)):
    try:
        catalog = list_catalog(db, team_id)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return CatalogResponse.model_validate(catalog, from_attributes=True)


@router.get('/teams/{team_id}/slots', response_model=SlotsResponse)
def list_public_slots(
    team_id: int,
    service_id: list[int] = Query(...),
    slot_date: date = Query(..., alias='date'),
    offset_minutes: int = Query(..., ge=-MAX_UTC_OFFSET_MINUTES, le=MAX_UTC_OFFSET_MINUTES),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    try:
        items = resolve_selection(db, team_id, Counter(service_id).items())
        slots = selection_slots(db, team_id, items, slot_date, offset_minutes, now)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return SlotsResponse(slots=[TimeSlotResponse.model_validate(slot) for slot in slots])


@router.post('/teams/{team_id}/bookings', response_model=PublicBookingResponse, status_code=status.HTTP_201_CREATED)
def create_public_booking(
    team_id: int,
    data: PublicBookingRequest,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    ensure_database_ready()

    try:
        if data.client_id is not None:
            client_ref = data.client_id
        elif data.client_info is not None:
            client_ref = GuestInfo(**data.client_info.model_dump())
        else:
            raise ValidationError('Client information is required.')

        title = None
        if data.services:
            if data.services[0].service_id != data.service_id:
                raise ValidationError('The booked service must be the first selected service.')
            items = resolve_selection(
                db,
                team_id,
                [(selected.service_id, selected.quantity) for selected in data.services],
            )
            title = booking_title(items)

        booking = create_booking(
            db,
            team_id=team_id,
            service_id=data.service_id,
            client_ref=client_ref,
            start=data.start_time,
            end=data.end_time,
            now=now,
            notes=data.notes,
            location=BookingLocation(
                address=data.location_address,
                contact_name=data.location_contact_name,
                contact_phone=data.location_contact_phone,
            ),
            title=title,
        )
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return PublicBookingResponse(success=True, booking_id=booking.id, client_id=booking.client_id)


@router.post('/clients/lookup', response_model=ClientLookupResponse)
def lookup_client(data: ClientLookupRequest, db: Session = Depends(get_db)):
    try:
        client = lookup_client_by_phone(db, data.phone, data.team_id)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return ClientLookupResponse(client=ClientResponse.model_validate(client))

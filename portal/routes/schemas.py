from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from portal.core import config
from portal.scheduling.intervals import as_utc


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_BOOKING_NOTES_LENGTH:
        raise ValueError(f'Notes must be {config.MAX_BOOKING_NOTES_LENGTH} characters or fewer.')

    return normalized


def _strip_optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class TeamResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ServiceCategoryResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    color: str | None = None
    sort_order: int

    class Config:
        from_attributes = True


class ServiceResponse(BaseModel):
    id: int
    category_id: int | None = None
    name: str
    description: str | None = None
    duration_minutes: int
    price: float
    lead_time_hours: int
    buffer_minutes: int
    max_advance_days: int
    sort_order: int

    class Config:
        from_attributes = True


class CatalogResponse(BaseModel):
    team: TeamResponse
    categories: list[ServiceCategoryResponse]
    services: list[ServiceResponse]


class TimeSlotResponse(BaseModel):
    start_time: datetime
    end_time: datetime

    class Config:
        from_attributes = True


class SlotsResponse(BaseModel):
    slots: list[TimeSlotResponse]


class CreateBookingRequest(BaseModel):
    service_id: int
    start_time: datetime
    end_time: datetime
    notes: str | None = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_instant(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class BookingResponse(BaseModel):
    id: int
    service_id: int
    client_id: int | None = None
    title: str | None = None
    start_time: datetime
    end_time: datetime
    status: str
    notes: str | None = None
    location_address: str | None = None
    created_at: datetime
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    class Config:
        from_attributes = True

    @field_validator('start_time', 'end_time', 'created_at', 'cancelled_at')
    @classmethod
    def normalize_instant(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class CancelBookingResponse(BaseModel):
    success: bool
    message: str


class PortalLoginRequest(BaseModel):
    portal_code: str

    @field_validator('portal_code')
    @classmethod
    def normalize_portal_code(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not normalized:
            raise ValueError('Portal code is required.')
        return normalized


class ClientResponse(BaseModel):
    id: int
    team_id: int
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None

    class Config:
        from_attributes = True


class PortalLoginResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    expires_at: datetime
    client: ClientResponse


class GuestClientInfo(BaseModel):
    name: str
    email: str
    phone: str
    billing_address: str = ''
    billing_city: str = ''
    billing_province: str = ''
    billing_postal_code: str = ''

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class SelectedServiceRequest(BaseModel):
    service_id: int
    quantity: int = Field(default=1, ge=1)


class PublicBookingRequest(BaseModel):
    client_id: int | None = None
    client_info: GuestClientInfo | None = None
    service_id: int
    start_time: datetime
    end_time: datetime
    services: list[SelectedServiceRequest] = Field(default_factory=list)
    notes: str | None = None
    location_address: str | None = None
    location_contact_name: str | None = None
    location_contact_phone: str | None = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_instant(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)

    @field_validator('location_address', 'location_contact_name', 'location_contact_phone')
    @classmethod
    def strip_location(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class PublicBookingResponse(BaseModel):
    success: bool
    booking_id: int
    client_id: int


class ClientLookupRequest(BaseModel):
    phone: str
    team_id: int


class ClientLookupResponse(BaseModel):
    client: ClientResponse

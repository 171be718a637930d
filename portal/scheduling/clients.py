"""Client directory used by the booking committer and the portal sign-in."""

import logging
import re
import secrets
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core import config
from portal.models.client import Client
from portal.scheduling.errors import ConflictError, NotFoundError, ValidationError
from portal.scheduling.repository import SchedulingRepository

logger = logging.getLogger(__name__)

PORTAL_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
MIN_PHONE_DIGITS = 10
DEFAULT_PROVINCE = 'QC'
CLIENT_CREATE_CONFLICT_REASON = 'Could not create a client account right now. Please try again.'


@dataclass
class GuestInfo:
    name: str
    email: str
    phone: str
    billing_address: str = ''
    billing_city: str = ''
    billing_province: str = ''
    billing_postal_code: str = ''


def normalize_phone(phone: str) -> str:
    return re.sub(r'\D', '', phone or '')


def normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def generate_portal_code(length: Optional[int] = None) -> str:
    length = length or config.PORTAL_CODE_LENGTH
    return ''.join(secrets.choice(PORTAL_CODE_ALPHABET) for _ in range(length))


def unique_portal_code(db: Session) -> str:
    for _ in range(config.PORTAL_CODE_MAX_ATTEMPTS):
        code = generate_portal_code()
        if not SchedulingRepository.portal_code_exists(db, code):
            return code
    logger.error('Gave up generating a portal code after %s attempts', config.PORTAL_CODE_MAX_ATTEMPTS)
    raise ConflictError(CLIENT_CREATE_CONFLICT_REASON)


def resolve_guest_client(db: Session, team_id: int, guest: GuestInfo) -> Client:
    """Find the team's client by email, or create one with a fresh portal code.

    The new row is flushed, not committed, so it shares the caller's transaction.
    """
    name = (guest.name or '').strip()
    email = normalize_email(guest.email)
    phone = (guest.phone or '').strip()
    if not name or not email or not phone:
        raise ValidationError('Client name, email, and phone are required.')

    existing = SchedulingRepository.get_client_by_email(db, team_id, email)
    if existing is not None:
        return existing

    client = Client(
        team_id=team_id,
        name=name,
        email=email,
        phone=phone,
        address=guest.billing_address or '',
        city=guest.billing_city or '',
        province=guest.billing_province or DEFAULT_PROVINCE,
        postal_code=guest.billing_postal_code or '',
        portal_code=unique_portal_code(db),
        portal_enabled=True,
    )
    db.add(client)
    try:
        db.flush()
    except IntegrityError as exc:
        # Another request claimed the same portal code after it was checked.
        logger.warning('Portal code collision while creating client for team %s', team_id)
        raise ConflictError(CLIENT_CREATE_CONFLICT_REASON) from exc
    logger.info('Created client %s for team %s from guest booking', client.id, team_id)
    return client


def resolve_client(db: Session, team_id: int, client_ref) -> Client:
    if isinstance(client_ref, GuestInfo):
        return resolve_guest_client(db, team_id, client_ref)

    if client_ref is None:
        raise ValidationError('Client information is required.')

    client = SchedulingRepository.get_client(db, team_id, int(client_ref))
    if client is None:
        raise NotFoundError('Client not found.')
    return client


def authenticate_portal_code(db: Session, portal_code: str) -> Client:
    normalized = (portal_code or '').strip().upper()
    if not normalized:
        raise ValidationError('Portal code is required.')

    client = SchedulingRepository.get_client_by_portal_code(db, normalized)
    if client is None:
        raise NotFoundError('Invalid portal code.')
    return client


def lookup_client_by_phone(db: Session, phone: str, team_id: int) -> Client:
    if not (phone or '').strip():
        raise ValidationError('Phone number is required.')

    normalized = normalize_phone(phone)
    if len(normalized) < MIN_PHONE_DIGITS:
        raise ValidationError('Please enter a valid phone number.')

    for client in SchedulingRepository.get_clients_with_phone(db, team_id):
        if normalize_phone(client.phone) == normalized:
            return client

    raise NotFoundError('No account found with this phone number.')

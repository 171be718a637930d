import os
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from portal.database import Base  # noqa: E402
from portal.models.availability import WeeklyAvailability  # noqa: E402
from portal.models.blocked_time import BlockedInterval  # noqa: E402
from portal.models.booking import Booking  # noqa: E402
from portal.models.client import Client  # noqa: E402
from portal.models.service import Service, ServiceCategory  # noqa: E402
from portal.models.team import Team  # noqa: E402

UTC = timezone.utc

# Monday 2026-01-05, 08:00 UTC.
NOW = datetime(2026, 1, 5, 8, 0, tzinfo=UTC)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


@dataclass
class Seed:
    team: Team
    service: Service
    client: Client


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db) -> Seed:
    team = Team(name='Clean Co', booking_sequence=0)
    db.add(team)
    db.flush()

    category = ServiceCategory(team_id=team.id, name='Residential', sort_order=1)
    db.add(category)
    db.flush()

    service = Service(
        team_id=team.id,
        category_id=category.id,
        name='Deep Clean',
        duration_minutes=60,
        price=120,
        lead_time_hours=2,
        max_advance_days=30,
        buffer_minutes=15,
        is_active=True,
        sort_order=1,
    )
    db.add(service)

    for day in range(7):
        db.add(
            WeeklyAvailability(
                team_id=team.id,
                day_of_week=day,
                is_available=True,
                start_time=time(9, 0),
                end_time=time(17, 0),
            )
        )

    client = Client(
        team_id=team.id,
        name='Alex Martin',
        email='alex@example.com',
        phone='(514) 555-0100',
        portal_code='ABCD2345',
        portal_enabled=True,
    )
    db.add(client)
    db.commit()

    return Seed(team=team, service=service, client=client)


def add_booking(db, seed: Seed, start: datetime, end: datetime, status: str = 'pending', buffer_minutes: int = 15) -> Booking:
    booking = Booking(
        team_id=seed.team.id,
        service_id=seed.service.id,
        client_id=seed.client.id,
        title='Existing',
        start_time=start,
        end_time=end,
        occupied_until=end + timedelta(minutes=buffer_minutes),
        status=status,
        created_at=NOW,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def add_blocked(db, seed: Seed, start: datetime, end: datetime) -> BlockedInterval:
    blocked = BlockedInterval(team_id=seed.team.id, start_time=start, end_time=end, reason='Holiday')
    db.add(blocked)
    db.commit()
    return blocked

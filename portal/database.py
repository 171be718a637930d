import logging
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from portal.core import config


logger = logging.getLogger(__name__)

engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO, pool_pre_ping=True)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_booking_schema_checked = False

OCCUPYING_STATUS_PREDICATE = "status IN ('pending', 'confirmed')"


def ensure_booking_schema() -> None:
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(engine)

        if 'bookings' not in inspector.get_table_names():
            _booking_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('bookings')}
        migration_steps = [
            ('occupied_until', 'ALTER TABLE bookings ADD COLUMN occupied_until TIMESTAMP WITH TIME ZONE'),
            ('location_address', 'ALTER TABLE bookings ADD COLUMN location_address VARCHAR'),
            ('location_contact_name', 'ALTER TABLE bookings ADD COLUMN location_contact_name VARCHAR'),
            ('location_contact_phone', 'ALTER TABLE bookings ADD COLUMN location_contact_phone VARCHAR'),
            ('cancelled_at', 'ALTER TABLE bookings ADD COLUMN cancelled_at TIMESTAMP WITH TIME ZONE'),
            ('cancellation_reason', 'ALTER TABLE bookings ADD COLUMN cancellation_reason VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            if 'occupied_until' not in existing_columns:
                connection.execute(text(_backfill_occupied_until_statement(engine.dialect.name)))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_bookings_team_time_range ON bookings(team_id, start_time, occupied_until)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_blocked_times_team_range ON blocked_times(team_id, start_time, end_time)')
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_team_start_occupying '
                    f'ON bookings(team_id, start_time) WHERE {OCCUPYING_STATUS_PREDICATE}'
                )
            )
            if engine.dialect.name == 'postgresql':
                _ensure_booking_exclusion_constraint(connection)

        _booking_schema_checked = True


def _backfill_occupied_until_statement(dialect_name: str) -> str:
    buffer_minutes = (
        'COALESCE((SELECT services.buffer_minutes FROM services '
        'WHERE services.id = bookings.service_id), 0)'
    )
    if dialect_name == 'sqlite':
        occupied_until = f"datetime(end_time, '+' || {buffer_minutes} || ' minutes')"
    else:
        occupied_until = f'end_time + make_interval(mins => {buffer_minutes})'

    return f'UPDATE bookings SET occupied_until = {occupied_until} WHERE occupied_until IS NULL'


def _ensure_booking_exclusion_constraint(connection) -> None:
    existing = connection.execute(
        text("SELECT 1 FROM pg_constraint WHERE conname = 'ex_bookings_team_occupied_range'")
    ).first()
    if existing:
        return

    connection.execute(text('CREATE EXTENSION IF NOT EXISTS btree_gist'))
    connection.execute(
        text(
            'ALTER TABLE bookings ADD CONSTRAINT ex_bookings_team_occupied_range '
            'EXCLUDE USING gist (team_id WITH =, tstzrange(start_time, occupied_until) WITH &&) '
            f'WHERE ({OCCUPYING_STATUS_PREDICATE})'
        )
    )
    logger.info('Installed booking exclusion constraint.')

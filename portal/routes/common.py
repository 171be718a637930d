import logging
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from portal.database import SessionLocal, ensure_booking_schema
from portal.scheduling.errors import SchedulingError

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> datetime:
    return datetime.now(timezone.utc)


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        logger.exception('Booking schema check failed.')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def scheduling_http_error(error: SchedulingError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.reason)


def database_unavailable(db, exc: SQLAlchemyError) -> HTTPException:
    logger.exception('Database error while handling portal request.')
    if db is not None:
        db.rollback()
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )

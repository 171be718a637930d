import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from portal.core import config
from portal.database import Base, engine, ensure_booking_schema
from portal.models import availability, blocked_time, booking, client, service, team  # noqa: F401
from portal.routes import auth_routes, portal_routes, public_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Booking Portal API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(portal_routes.router, prefix='/portal')
app.include_router(public_routes.router, prefix='/public')

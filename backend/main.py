import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.database import Database
from backend.routes import appointment_routes, auth_routes, availability_routes
from backend.services.reservation_engine import ReservationEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(level=config.LOG_LEVEL)
    config.validate_runtime_config()

    database = Database(config.DATABASE_URL)
    app.state.database = database
    app.state.reservation_engine = ReservationEngine(database)

    try:
        database.init_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')

    try:
        yield
    finally:
        database.dispose()


app = FastAPI(title='Professor Appointment System API', lifespan=app_lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.get('/')
def root():
    return {'message': 'Professor Appointment System API'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/professors')
app.include_router(appointment_routes.router, prefix='/appointments')

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from backend.database import Database
from backend.services.reservation_engine import ReservationEngine


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)):
    db: Session = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_reservation_engine(request: Request) -> ReservationEngine:
    return request.app.state.reservation_engine

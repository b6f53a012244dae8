# api/dependencies.py
import logging
import secrets
from contextlib import contextmanager
from datetime import datetime
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session

from database import SessionLocal
from config import ADMIN_USERNAME, ADMIN_PASSWORD
from services.appointments import AppointmentManager
from services.errors import ConsistencyViolation, NotFound, PersistenceError, ValidationError
from services.notifications import LoggingNotifier
from services.payments import PaymentManager

# --- Dependency БД ---
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_clock():
    return datetime.now

def get_notifier():
    return LoggingNotifier()

def get_appointment_manager(db: Session = Depends(get_db), clock=Depends(get_clock), notifier=Depends(get_notifier)):
    return AppointmentManager(db, notifier=notifier, clock=clock)

def get_payment_manager(db: Session = Depends(get_db), clock=Depends(get_clock), notifier=Depends(get_notifier)):
    return PaymentManager(db, notifier=notifier, clock=clock)

# --- Безопасность ---
security = HTTPBasic()

def authenticate_user(credentials: HTTPBasicCredentials = Depends(security)):
    is_username_correct = secrets.compare_digest(credentials.username, ADMIN_USERNAME)
    is_password_correct = secrets.compare_digest(credentials.password, ADMIN_PASSWORD)
    if not (is_username_correct and is_password_correct):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username

# --- Доменные ошибки -> HTTP ---
@contextmanager
def domain_errors():
    try:
        yield
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"message": e.message, "fields": e.fields})
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConsistencyViolation as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceError as e:
        logging.error(f"Persistence error: {e}")
        raise HTTPException(
            status_code=503,
            detail={"message": "Storage error, please retry", "operation": e.operation, "id": e.entity_id},
        )

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from services.errors import AgendaError, PersistenceError
from services.notifications import ERROR


@contextmanager
def transaction(db: Session, operation: str, entity_id=None, notifier=None):
    """Все шаги внутри блока коммитятся вместе или откатываются вместе."""
    try:
        yield db
        db.commit()
    except AgendaError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"DB Error during '{operation}' (id={entity_id}): {e}")
        if notifier is not None:
            notifier.notify(ERROR, f"Could not {operation}")
        raise PersistenceError(operation, entity_id, e) from e


@contextmanager
def reading(db: Session, operation: str, entity_id=None):
    try:
        yield db
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"DB Error during '{operation}' (id={entity_id}): {e}")
        raise PersistenceError(operation, entity_id, e) from e

# Request-scoped unit of work around db.session
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from app.errors import LedgerError, PersistenceFailure
from app.extensions import db


@contextmanager
def unit_of_work(description="transaction"):
    """
    Commit everything done inside the block, or nothing.

    Business errors raised inside the block roll back and propagate unchanged.
    Store errors roll back, get logged with full detail, and surface as a
    generic PersistenceFailure.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except LedgerError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        current_app.logger.exception(f"{description} rolled back: {e}")
        raise PersistenceFailure() from e
    except Exception:
        session.rollback()
        current_app.logger.exception(f"{description} rolled back on unexpected error")
        raise

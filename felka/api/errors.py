import logging
from contextlib import contextmanager

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from felka.core.errors import SchedulingError

logger = logging.getLogger(__name__)


@contextmanager
def service_errors(db: Session):
    """Translate service errors into HTTP errors for the wrapped handler body."""
    try:
        yield
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("unexpected store failure")
        raise HTTPException(status_code=500, detail="Internal error") from e

"""Helpers for working with the credential store database."""

from typing import Callable, Generator, Optional
from contextlib import contextmanager
from datetime import datetime
import logging

from pytz import UTC
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.session import Session

from ..exceptions import Unavailable

logger = logging.getLogger(__name__)


def now() -> datetime:
    """Get the current time, in UTC."""
    return datetime.now(tz=UTC)


def aware(t: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to a datetime read back from the database.

    SQLite does not keep timezone information, so naive values are taken to
    be in UTC.
    """
    if t is None:
        return None
    if t.tzinfo is None:
        return t.replace(tzinfo=UTC)
    return t.astimezone(UTC)


@contextmanager
def transaction(factory: Callable[[], Session]) -> Generator:
    """
    Context manager for a database transaction.

    Integrity errors are re-raised as-is so that callers can report them;
    any other database error is logged and raised as :class:`.Unavailable`.
    """
    session = factory()
    try:
        yield session
        # Conditional bulk updates never show up in ``session.dirty``, so we
        # always commit.
        session.commit()
    except IntegrityError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        logger.warning('Commit failed, rolling back: %s', str(e))
        session.rollback()
        raise Unavailable('Credential store is unavailable') from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

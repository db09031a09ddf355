"""Helpers shared by the session components."""

from typing import Any, Callable
import logging
import uuid

from ..domain import BestEffort
from ..exceptions import Unavailable


def generate_marker() -> str:
    """Generate an unguessable session marker (122 random bits)."""
    return str(uuid.uuid4())


def best_effort(logger: logging.Logger, description: str,
                func: Callable, *args: Any) -> BestEffort:
    """
    Call ``func``, reporting rather than raising an outage.

    Used for side effects (such as ending proofs of identity on other
    devices) that must never fail the operation that triggered them.
    """
    try:
        func(*args)
    except Unavailable as e:
        logger.warning('Could not %s: %s', description, e)
        return BestEffort.degraded(f'Could not {description}')
    return BestEffort()

"""Decides whether a validated identity may open a card."""

from typing import Iterable, Optional

from .. import domain
from ..domain import Role


def authorize(identity: domain.Identity,
              required: Optional[Iterable[str]]) -> domain.Decision:
    """
    Check an identity's subscriptions against those a card requires.

    Admins may open anything. A student may open a card that requires no
    subscription, or one that requires at least one of the subscriptions the
    student holds. Tags are compared without regard to case.

    Parameters
    ----------
    identity : :class:`.Identity`
    required : iterable
        Subscription tags required by the card.

    Returns
    -------
    :class:`.Decision`
        Carries the (lower-cased) required and held tags, so that a denial
        can tell the caller what is missing.

    """
    needed = domain.normalize_tags(required)
    held = domain.normalize_tags(identity.subscriptions)
    if identity.role == Role.ADMIN or not needed:
        return domain.Decision(True, needed, held)
    return domain.Decision(bool(set(needed) & set(held)), needed, held)

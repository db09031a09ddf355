"""
Administrative account operations.

Creating an account writes the account record to the credential store, and
registers the password with the identity verifier.
"""

from typing import Optional, Sequence
from datetime import datetime, timedelta
import logging

from . import domain
from .domain import Role
from .identity import IdentityVerifier
from .store import CredentialStore, util

logger = logging.getLogger(__name__)

ADMIN_LIFETIME = timedelta(days=365 * 100)
"""Admins never expire in practice; they get a date a century out."""


def create_account(store: CredentialStore, verifier: IdentityVerifier,
                   username: str, password: str, role: str = Role.STUDENT,
                   subscriptions: Sequence[str] = (),
                   expires_at: Optional[datetime] = None,
                   phone: Optional[str] = None) -> domain.Account:
    """
    Create an account that can log in.

    Parameters
    ----------
    store : :class:`.CredentialStore`
    verifier : :class:`.IdentityVerifier`
    username : str
    password : str
    role : str
        One of :attr:`.Role.ALL`.
    subscriptions : list
        Ignored for admins.
    expires_at : datetime
        Ignored for admins. If not given for a student, the account expires
        immediately, and an administrator must extend it before it can be
        used.
    phone : str
        Optional secondary login handle.

    Returns
    -------
    :class:`.Account`

    Raises
    ------
    ValueError
        Raised if the role is unknown, or the username or password is empty.
    :class:`.AccountExists`
        Raised if the username or phone number is taken.

    """
    username = username.strip()
    if role not in Role.ALL:
        raise ValueError(f'Unknown role: {role}')
    if not username or not password:
        raise ValueError('Username and password are required')

    now = util.now()
    if role == Role.ADMIN:
        expires_at = now + ADMIN_LIFETIME
        subscriptions = ()
    elif expires_at is None:
        expires_at = now
    else:
        expires_at = util.aware(expires_at)

    account = store.create_account(username, role, expires_at,
                                   subscriptions=subscriptions,
                                   phone=phone.strip() if phone else None)
    verifier.register(account.account_id, account.username, password)
    logger.info('Created %s account %s', role, account.account_id)
    return account

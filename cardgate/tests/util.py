"""Testing helpers."""

from typing import Any, Generator, Optional, Sequence
from contextlib import contextmanager
from datetime import datetime, timedelta
from unittest import mock

import fakeredis

from cardgate import domain
from cardgate.domain import Role
from cardgate.identity import IdentityVerifier, passwords
from cardgate.store import CredentialStore, util

JWT_SECRET = 'foosecret'
PASSWORD = 'correct horse'


@contextmanager
def temporary_store(db_uri: str = 'sqlite://', create: bool = True,
                    drop: bool = True) -> Generator:
    """Provide an in-memory sqlite credential store for testing purposes."""
    store = CredentialStore.from_uri(db_uri)
    if create:
        store.create_all()
    try:
        yield store
    finally:
        if drop:
            store.drop_all()


def fake_verifier(store: CredentialStore, duration: int = 3600,
                  server: Optional[fakeredis.FakeServer] = None) \
        -> IdentityVerifier:
    """Provide an identity verifier backed by a private fake redis."""
    r = fakeredis.FakeRedis(server=server or fakeredis.FakeServer(),
                            decode_responses=True)
    return IdentityVerifier(store, r, JWT_SECRET, duration)


def fast_passwords() -> Any:
    """Use far fewer hashing rounds, to keep the tests quick."""
    return mock.patch.object(passwords, 'ITERATIONS', 1000)


def add_account(store: CredentialStore, verifier: IdentityVerifier,
                username: str = 'student1', role: str = Role.STUDENT,
                subscriptions: Sequence[str] = (),
                expires_at: Optional[datetime] = None,
                phone: Optional[str] = None,
                password: str = PASSWORD) -> domain.Account:
    """Add an account that can log in. Students expire in a week."""
    if expires_at is None:
        expires_at = util.now() + timedelta(days=7)
    account = store.create_account(username, role, expires_at,
                                   subscriptions=subscriptions, phone=phone)
    verifier.register(account.account_id, account.username, password)
    return account


class Clock(object):
    """A clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or util.now()

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

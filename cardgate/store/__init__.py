"""
Service API for the credential store.

The credential store holds one record per account (role, subscriptions,
expiry, session marker, timestamps), the card catalog, and the access log.
It is the only mutable state shared between concurrent requests. The session
marker is only ever written through :meth:`CredentialStore.cas_session_marker`
(or cleared outright), so that two concurrent logins cannot silently clobber
each other's marker.

Every method opens its own short transaction, and reads are never cached:
a revocation takes effect on the very next request.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import datetime
from functools import partial
import logging
import re

from sqlalchemy import case, create_engine, literal, or_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .. import domain
from ..exceptions import AccountExists, NotFound
from . import util
from .models import Base, DBAccount, DBSecret, DBCard, DBAccessLog

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^[\d+][\d\s-]*$')


class CredentialStore(object):
    """Reads and writes accounts, cards, and access logs."""

    def __init__(self, engine: Engine) -> None:
        """Bind the store to a database engine."""
        self.engine = engine
        self._sessionmaker = sessionmaker(bind=engine, expire_on_commit=False)
        self.transaction = partial(util.transaction, self._sessionmaker)

    @classmethod
    def from_uri(cls, uri: str, timeout: float = 5.0) -> 'CredentialStore':
        """
        Create a store for a database URI.

        ``timeout`` bounds how long a call will wait on the database (to
        connect, or for a lock) before failing.
        """
        params: Dict[str, Any] = {}
        if uri.startswith('sqlite'):
            params['connect_args'] = {'timeout': timeout,
                                      'check_same_thread': False}
            if ':memory:' in uri or uri in ('sqlite://', 'sqlite:///'):
                # A single shared connection; otherwise each thread gets its
                # own empty database.
                params['poolclass'] = StaticPool
        else:
            params['pool_timeout'] = timeout
            params['pool_pre_ping'] = True
            if uri.startswith('postgresql'):
                params['connect_args'] = {'connect_timeout': int(timeout)}
        logger.debug('New credential store at %s', uri.split('@')[-1])
        return cls(create_engine(uri, **params))

    def create_all(self) -> None:
        """Create all tables in the database."""
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        """Drop all tables in the database."""
        Base.metadata.drop_all(self.engine)

    # Accounts.

    def find_by_handle(self, handle: str) -> Optional[domain.Account]:
        """
        Resolve a login handle to an account.

        A handle that looks like a phone number (an optional leading ``+``,
        then digits, spaces and dashes) is matched against phone numbers;
        anything else is matched against usernames.
        """
        if PHONE_PATTERN.match(handle):
            column = DBAccount.phone
        else:
            column = DBAccount.username
        with self.transaction() as session:
            db_account = session.query(DBAccount) \
                .filter(column == handle) \
                .first()
            if db_account is None:
                return None
            return _to_account(db_account)

    def find_by_id(self, account_id: str) -> Optional[domain.Account]:
        """Get an account by its ID."""
        with self.transaction() as session:
            db_account = session.query(DBAccount) \
                .filter(DBAccount.account_id == account_id) \
                .first()
            if db_account is None:
                return None
            return _to_account(db_account)

    def cas_session_marker(self, account_id: str, expected: Optional[str],
                           new: Optional[str],
                           last_login_at: Optional[datetime] = None) -> bool:
        """
        Compare-and-swap the session marker on an account.

        The marker is set to ``new`` only if it is still ``expected`` at the
        time of the write. If ``last_login_at`` is passed, it is written in
        the same statement, and the swap is also refused if a force logout
        was recorded at or after ``last_login_at``.

        Returns
        -------
        bool
            ``True`` if the swap happened; ``False`` if the marker had
            changed in the meantime, a force logout got in first, or the
            account does not exist.

        """
        values: Dict[Any, Any] = {DBAccount.session_marker: new}
        if last_login_at is not None:
            values[DBAccount.last_login_at] = last_login_at
        with self.transaction() as session:
            query = session.query(DBAccount) \
                .filter(DBAccount.account_id == account_id)
            if expected is None:
                query = query.filter(DBAccount.session_marker.is_(None))
            else:
                query = query.filter(DBAccount.session_marker == expected)
            if last_login_at is not None:
                query = query.filter(_not_revoked_since(last_login_at))
            updated: int = query.update(values, synchronize_session=False)
        return updated == 1

    def clear_session_marker(self, account_id: str) -> None:
        """Unconditionally clear the session marker on an account."""
        with self.transaction() as session:
            session.query(DBAccount) \
                .filter(DBAccount.account_id == account_id) \
                .update({DBAccount.session_marker: None},
                        synchronize_session=False)

    def set_force_logout(self, account_id: str, at: datetime) -> None:
        """
        Record a forced logout at ``at``.

        The stored timestamp never moves backwards: if a later forced logout
        has already been recorded, this is a no-op.
        """
        with self.transaction() as session:
            session.query(DBAccount) \
                .filter(DBAccount.account_id == account_id) \
                .filter(_not_revoked_since(at)) \
                .update({DBAccount.forced_logout_at: at},
                        synchronize_session=False)

    def revoke_session(self, account_id: str, at: datetime) -> None:
        """
        Record a forced logout at ``at`` and clear the session marker.

        Both are written in one statement, so a login cannot claim the marker
        in between. As with :meth:`set_force_logout`, the forced-logout time
        never moves backwards.
        """
        at_value = literal(at, type_=DBAccount.forced_logout_at.type)
        forced_at = case((_not_revoked_since(at), at_value),
                         else_=DBAccount.forced_logout_at)
        with self.transaction() as session:
            session.query(DBAccount) \
                .filter(DBAccount.account_id == account_id) \
                .update({DBAccount.session_marker: None,
                         DBAccount.forced_logout_at: forced_at},
                        synchronize_session=False)

    def set_expiry(self, account_id: str, expires_at: datetime) -> None:
        """Change when an account expires. For administrative edits."""
        self._update_account(account_id, {DBAccount.expires_at: expires_at})

    def set_subscriptions(self, account_id: str,
                          subscriptions: Sequence[str]) -> None:
        """Replace the subscriptions on an account. For admin edits."""
        self._update_account(
            account_id,
            {DBAccount.subscriptions: domain.normalize_tags(subscriptions)}
        )

    def _update_account(self, account_id: str, values: dict) -> None:
        with self.transaction() as session:
            updated = session.query(DBAccount) \
                .filter(DBAccount.account_id == account_id) \
                .update(values, synchronize_session=False)
        if not updated:
            raise NotFound(f'No such account: {account_id}')

    def create_account(self, username: str, role: str, expires_at: datetime,
                       subscriptions: Sequence[str] = (),
                       phone: Optional[str] = None,
                       account_id: Optional[str] = None) -> domain.Account:
        """
        Add a new account record.

        Raises
        ------
        :class:`.AccountExists`
            Raised if the username or phone number is already taken.

        """
        db_account = DBAccount(
            username=username,
            phone=phone or None,
            role=role,
            subscriptions=domain.normalize_tags(subscriptions),
            expires_at=expires_at,
            created_at=util.now()
        )
        if account_id is not None:
            db_account.account_id = account_id
        try:
            with self.transaction() as session:
                session.add(db_account)
                session.flush()
                account = _to_account(db_account)
        except IntegrityError as e:
            raise AccountExists(f'Account {username} already exists') from e
        return account

    # Secrets. These belong to the identity verifier, which shares the
    # database.

    def get_secret(self, handle: str) -> Optional[Tuple[str, str]]:
        """Get the account ID and stored password hash for a login handle."""
        with self.transaction() as session:
            db_secret = session.query(DBSecret) \
                .filter(DBSecret.handle == handle) \
                .first()
            if db_secret is None:
                return None
            return db_secret.account_id, db_secret.password_enc

    def set_secret(self, account_id: str, handle: str,
                   password_enc: str) -> None:
        """Store (or replace) the password hash for an account."""
        with self.transaction() as session:
            session.merge(DBSecret(account_id=account_id, handle=handle,
                                   password_enc=password_enc))

    # Cards and access logs.

    def get_card(self, card_id: str) -> Optional[domain.Card]:
        """Get a card by the identifier printed on it."""
        with self.transaction() as session:
            db_card = session.query(DBCard) \
                .filter(DBCard.card_id == card_id) \
                .first()
            if db_card is None:
                return None
            return _to_card(db_card)

    def add_card(self, card_id: str, video_url: str,
                 title: Optional[str] = None, subject: Optional[str] = None,
                 required_subscriptions: Sequence[str] = ()) -> domain.Card:
        """Add a card to the catalog."""
        db_card = DBCard(
            card_id=card_id,
            video_url=video_url,
            title=title or None,
            subject=subject or None,
            required_subscriptions=list(required_subscriptions),
            created_at=util.now()
        )
        with self.transaction() as session:
            session.add(db_card)
            session.flush()
            card = _to_card(db_card)
        return card

    def log_access(self, account_id: str, card_id: str,
                   accessed_at: datetime) -> None:
        """Record that an account opened a card."""
        with self.transaction() as session:
            session.add(DBAccessLog(account_id=account_id, card_id=card_id,
                                    accessed_at=accessed_at))

    def list_access_logs(self, account_id: Optional[str] = None,
                         card_id: Optional[str] = None) \
            -> List[domain.AccessLogEntry]:
        """Get access log entries, most recent first."""
        with self.transaction() as session:
            query = session.query(DBAccessLog)
            if account_id is not None:
                query = query.filter(DBAccessLog.account_id == account_id)
            if card_id is not None:
                query = query.filter(DBAccessLog.card_id == card_id)
            return [
                domain.AccessLogEntry(
                    account_id=db_log.account_id,
                    card_id=db_log.card_id,
                    accessed_at=util.aware(db_log.accessed_at)
                )
                for db_log
                in query.order_by(DBAccessLog.accessed_at.desc()).all()
            ]


def _not_revoked_since(at: datetime) -> Any:
    """No force logout has been recorded at or after ``at``."""
    return or_(DBAccount.forced_logout_at.is_(None),
               DBAccount.forced_logout_at < at)

def _to_account(db_account: DBAccount) -> domain.Account:
    return domain.Account(
        account_id=db_account.account_id,
        username=db_account.username,
        role=db_account.role,
        expires_at=util.aware(db_account.expires_at),
        subscriptions=list(db_account.subscriptions or []),
        phone=db_account.phone,
        session_marker=db_account.session_marker,
        last_login_at=util.aware(db_account.last_login_at),
        forced_logout_at=util.aware(db_account.forced_logout_at),
        created_at=util.aware(db_account.created_at)
    )


def _to_card(db_card: DBCard) -> domain.Card:
    return domain.Card(
        card_id=db_card.card_id,
        video_url=db_card.video_url,
        title=db_card.title,
        subject=db_card.subject,
        required_subscriptions=list(db_card.required_subscriptions or []),
        created_at=util.aware(db_card.created_at)
    )

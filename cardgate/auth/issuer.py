"""
Issues sessions to accounts that log in.

Students may hold only one active session at a time. The session marker on
the account record says whether a device is logged in; it is claimed with a
compare-and-swap, so that of two concurrent logins at most one wins.
"""

from typing import Callable, Optional
from datetime import datetime
import logging

from .. import domain
from ..domain import Role
from ..exceptions import AuthenticationFailed, CredentialsExpired, \
    InvalidCredentials, SessionConflict, Unavailable
from ..identity import IdentityVerifier
from ..store import CredentialStore, util as store_util
from .util import best_effort, generate_marker

logger = logging.getLogger(__name__)

INVALID = 'Invalid username/phone or password'
CONFLICT = 'This account is already logged in on another device. ' \
           'Log out there first, or contact an administrator.'
EXPIRED = 'Your credentials have expired. Please contact an administrator.'
REVOKED = 'This account was logged out by an administrator while logging ' \
          'in. Please try again.'


class SessionIssuer(object):
    """Authenticates login attempts and issues session markers."""

    def __init__(self, store: CredentialStore, verifier: IdentityVerifier,
                 check_secret_first: bool = False,
                 clock: Callable[[], datetime] = store_util.now,
                 logger: Optional[logging.Logger] = None) -> None:
        """
        Set up the issuer.

        Parameters
        ----------
        store : :class:`.CredentialStore`
        verifier : :class:`.IdentityVerifier`
        check_secret_first : bool
            If ``True``, the secret is verified before refusing a login
            because of an active session. By default the active session is
            checked first, which lets anyone who knows a handle find out
            whether that account is logged in somewhere.
        clock : callable
            Returns the current (timezone-aware) time.
        logger : :class:`logging.Logger`

        """
        self.store = store
        self.verifier = verifier
        self.check_secret_first = check_secret_first
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def authenticate(self, identifier: str, secret: str) -> domain.LoginResult:
        """
        Authenticate a login attempt.

        Parameters
        ----------
        identifier : str
            Username or phone number.
        secret : str
            Password (as entered).

        Returns
        -------
        :class:`.LoginResult`

        Raises
        ------
        :class:`.InvalidCredentials`
            Unknown handle, or wrong secret.
        :class:`.SessionConflict`
            A student account already has an active session.
        :class:`.CredentialsExpired`
            The account has expired.
        :class:`.Unavailable`
            The store or identity provider failed.

        """
        started = self.clock()
        account = self.store.find_by_handle(identifier.strip())
        if account is None:
            self.logger.debug('No account for login handle')
            raise InvalidCredentials(INVALID)

        if not self.check_secret_first:
            _refuse_active_session(account)

        try:
            proof = self.verifier.verify_secret(account.username, secret)
        except AuthenticationFailed as e:
            self.logger.debug('Secret rejected for %s', account.account_id)
            raise InvalidCredentials(INVALID) from e

        try:
            return self._establish(account.account_id, proof, started)
        except Exception:
            # Nothing may be left behind by a failed login.
            best_effort(self.logger, 'end proof after failed login',
                        self.verifier.end_proof, proof.token)
            raise

    def _establish(self, account_id: str, proof: domain.Proof,
                   started: datetime) -> domain.LoginResult:
        """
        Check the account again, and claim the session marker.

        The login time recorded with the marker is ``started``, taken before
        the proof was issued. A force logout at or after that time may
        already have ended the proof, so the claim is refused.
        """
        for attempt in range(2):
            account = self.store.find_by_id(account_id)
            if account is None:
                self.logger.info('Account %s vanished during login',
                                 account_id)
                raise InvalidCredentials(INVALID)

            now = self.clock()
            if account.is_expired(now):
                self.logger.info('Login refused, expired: %s', account_id)
                raise CredentialsExpired(EXPIRED)

            if account.role != Role.STUDENT:
                self.logger.info('Admin %s logged in', account_id)
                return domain.LoginResult(account_id=account_id,
                                          role=account.role, proof=proof)

            _refuse_active_session(account)
            if account.forced_logout_at is not None \
                    and account.forced_logout_at >= started:
                self.logger.info('Login for %s overtaken by a force logout',
                                 account_id, extra={'account_id': account_id})
                raise SessionConflict(REVOKED)
            marker = generate_marker()
            try:
                claimed = self.store.cas_session_marker(
                    account_id, None, marker, last_login_at=started
                )
            except Unavailable as e:
                self.logger.warning(
                    'Could not record session marker for %s; single-session'
                    ' enforcement is degraded for this login: %s',
                    account_id, e, extra={'account_id': account_id}
                )
                return domain.LoginResult(account_id=account_id,
                                          role=account.role, proof=proof,
                                          degraded=True)
            if claimed:
                self.logger.info('Student %s logged in', account_id)
                return domain.LoginResult(account_id=account_id,
                                          role=account.role, proof=proof,
                                          session_marker=marker)
            self.logger.info('Lost session marker race for %s (attempt %i)',
                             account_id, attempt + 1)
        raise SessionConflict(CONFLICT)


def _refuse_active_session(account: domain.Account) -> None:
    if account.role == Role.STUDENT and account.has_active_session:
        raise SessionConflict(CONFLICT)

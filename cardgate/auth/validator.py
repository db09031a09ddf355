"""
Decides whether a caller's session is still valid.

Nothing is cached between requests: the account record is read fresh on
every call, so that expiry and revocation take effect immediately.
"""

from typing import Callable, Optional
from datetime import datetime
import logging

from .. import domain
from ..domain import Reason, Role
from ..identity import IdentityVerifier
from ..store import CredentialStore, util as store_util
from .util import best_effort

logger = logging.getLogger(__name__)


def verdict_for(account: Optional[domain.Account],
                now: datetime) -> domain.SessionVerdict:
    """
    Get the verdict for a resolved account at ``now``.

    The checks are applied in the order given by :attr:`.Reason.PRECEDENCE`,
    and the first one that matches wins. Every account state maps to exactly
    one verdict.
    """
    if account is None:
        return domain.SessionVerdict(Reason.PROFILE_NOT_FOUND)
    if account.is_expired(now):
        return domain.SessionVerdict(Reason.EXPIRED, account)
    if account.role == Role.STUDENT:
        if account.was_revoked:
            return domain.SessionVerdict(Reason.FORCE_LOGOUT, account)
        if not account.has_active_session:
            return domain.SessionVerdict(Reason.SESSION_INVALIDATED, account)
    return domain.SessionVerdict(account=account)


class SessionValidator(object):
    """Validates proofs of identity against the credential store."""

    def __init__(self, store: CredentialStore, verifier: IdentityVerifier,
                 clock: Callable[[], datetime] = store_util.now,
                 logger: Optional[logging.Logger] = None) -> None:
        self.store = store
        self.verifier = verifier
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def validate(self, proof: Optional[str]) -> domain.SessionVerdict:
        """
        Determine the current verdict for a proof of identity.

        If the session turns out to be expired, revoked or invalidated, the
        proof is ended as well (best effort).

        Parameters
        ----------
        proof : str or None
            The proof token presented with the request.

        Returns
        -------
        :class:`.SessionVerdict`

        Raises
        ------
        :class:`.Unavailable`
            Raised if the store or identity provider cannot be reached. An
            outage never yields a verdict.

        """
        account_id = self.verifier.resolve(proof)
        if account_id is None:
            return domain.SessionVerdict(Reason.NO_SESSION)

        verdict = verdict_for(self.store.find_by_id(account_id), self.clock())
        if verdict.reason in (Reason.EXPIRED, Reason.FORCE_LOGOUT,
                              Reason.SESSION_INVALIDATED):
            self.logger.info('Session for %s rejected: %s', account_id,
                             verdict.reason,
                             extra={'account_id': account_id,
                                    'reason': verdict.reason})
            best_effort(self.logger, 'end stale proof',
                        self.verifier.end_proof, proof)
        elif verdict.reason is not None:
            self.logger.debug('Session for %s rejected: %s', account_id,
                              verdict.reason)
        return verdict

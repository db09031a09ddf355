"""Ends sessions: an account's own logout, and administrative force logout."""

from typing import Callable, Optional
from datetime import datetime
import logging

from .. import domain
from ..domain import Role
from ..exceptions import Forbidden, NotFound
from ..identity import IdentityVerifier
from ..store import CredentialStore, util as store_util
from .util import best_effort

logger = logging.getLogger(__name__)


class RevocationController(object):
    """Clears session markers and ends proofs of identity."""

    def __init__(self, store: CredentialStore, verifier: IdentityVerifier,
                 clock: Callable[[], datetime] = store_util.now,
                 logger: Optional[logging.Logger] = None) -> None:
        self.store = store
        self.verifier = verifier
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def force_logout(self, actor: domain.Identity,
                     account_id: str) -> domain.BestEffort:
        """
        Forcibly end the active session of an account.

        Records the time of the forced logout (which never moves backwards)
        and clears the session marker in a single write, and then asks the
        identity verifier to end every outstanding proof for the account.
        Calling this again leaves the account in the same state.

        Parameters
        ----------
        actor : :class:`.Identity`
            The caller. Must be an admin.
        account_id : str

        Returns
        -------
        :class:`.BestEffort`
            Whether the outstanding proofs were ended. The session is
            revoked either way: the validator refuses any session whose
            last login predates the forced logout.

        Raises
        ------
        :class:`.Forbidden`
            Raised if ``actor`` is not an admin.
        :class:`.NotFound`
            Raised if there is no such account.
        :class:`.Unavailable`
            Raised if the revocation could not be written.

        """
        if actor.role != Role.ADMIN:
            raise Forbidden('Only administrators can force a logout')
        if self.store.find_by_id(account_id) is None:
            raise NotFound(f'No such account: {account_id}')

        self.store.revoke_session(account_id, self.clock())
        self.logger.info('%s forced logout of %s', actor.account_id,
                         account_id,
                         extra={'actor': actor.account_id,
                                'account_id': account_id})
        return best_effort(self.logger, 'end proofs on other devices',
                           self.verifier.invalidate_all, account_id)

    def logout(self, proof: Optional[str]) -> domain.BestEffort:
        """
        End the caller's own session.

        Clears the session marker for the account behind ``proof`` and ends
        the proof itself. The forced-logout time is not touched. A missing
        or unknown proof is a no-op.
        """
        if not proof:
            return domain.BestEffort()
        account_id = self.verifier.resolve(proof)
        if account_id is not None:
            self.store.clear_session_marker(account_id)
            self.logger.info('%s logged out', account_id,
                             extra={'account_id': account_id})
        return best_effort(self.logger, 'end proof on logout',
                           self.verifier.end_proof, proof)

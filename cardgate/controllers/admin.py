"""Administrative controllers."""

from typing import Tuple
from http import HTTPStatus as status
import logging

from .. import domain
from ..auth import current_gate

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def force_logout(actor: domain.Identity, account_id: str) -> ResponseData:
    """Forcibly end the active session of another account."""
    outcome = current_gate().revocation.force_logout(actor, account_id)
    data = {'success': True}
    if not outcome.ok:
        # The session is revoked regardless; proofs held elsewhere will be
        # refused by the validator.
        data['warning'] = outcome.detail
    return data, status.OK, {}

"""Controllers for opening cards."""

from typing import Optional, Tuple
from http import HTTPStatus as status
import logging

from retry import retry

from .. import domain
from ..auth import current_gate
from ..auth.authorizer import authorize
from ..auth.util import best_effort
from ..exceptions import Forbidden, NotFound, Unavailable
from ..store import CredentialStore, util as store_util

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def access_card(identity: domain.Identity, card_id: str) -> ResponseData:
    """
    Get the video behind a card, if the caller may watch it.

    Successful accesses are recorded in the access log. Failing to record
    one does not stop the caller from watching.

    Raises
    ------
    :class:`.NotFound`
        Raised if there is no such card.
    :class:`.Forbidden`
        Raised if the card requires a subscription that the caller does not
        hold. Carries the required and held subscriptions.

    """
    store = current_gate().store
    card = _get_card(store, card_id)
    if card is None:
        raise NotFound(f'No such card: {card_id}')

    decision = authorize(identity, card.required_subscriptions)
    if not decision.allowed:
        logger.debug('%s lacks a subscription for %s', identity.account_id,
                     card_id)
        raise Forbidden(
            'This card requires one of the following subscriptions: '
            + ', '.join(decision.required),
            required=decision.required,
            held=decision.held
        )

    best_effort(logger, 'log access', store.log_access,
                identity.account_id, card.card_id, store_util.now())
    return {'videoUrl': card.video_url, 'title': card.title}, status.OK, {}


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _get_card(store: CredentialStore, card_id: str) -> Optional[domain.Card]:
    return store.get_card(card_id)

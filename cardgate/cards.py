"""Adding cards to the catalog."""

from typing import Optional, Sequence
import logging
import re

from . import domain
from .store import CredentialStore

logger = logging.getLogger(__name__)

YOUTUBE_PATTERNS = [
    re.compile(r'^(https?://)?(www\.|m\.)?youtube\.com/watch\?(.*&)?v=[\w-]+'),
    re.compile(r'^(https?://)?youtu\.be/[\w-]+'),
    re.compile(r'^(https?://)?(www\.)?youtube\.com/embed/[\w-]+'),
]


def is_valid_youtube_url(url: str) -> bool:
    """Check whether ``url`` points at a YouTube video."""
    return any(pattern.match(url.strip()) for pattern in YOUTUBE_PATTERNS)


def add_card(store: CredentialStore, card_id: str, video_url: str,
             title: Optional[str] = None, subject: Optional[str] = None,
             required_subscriptions: Sequence[str] = ()) -> domain.Card:
    """
    Add a card that unlocks a YouTube video.

    Raises
    ------
    ValueError
        Raised if the card ID is empty, or the URL is not a YouTube video.

    """
    card_id = card_id.strip()
    if not card_id:
        raise ValueError('Card ID is required')
    if not is_valid_youtube_url(video_url):
        raise ValueError(f'Not a YouTube video URL: {video_url}')
    card = store.add_card(card_id, video_url.strip(), title=title,
                          subject=subject,
                          required_subscriptions=required_subscriptions)
    logger.info('Added card %s', card.card_id)
    return card

"""Defines accounts, cards, and session concepts used throughout cardgate."""

from typing import Any, List, NamedTuple, Optional, Iterable
from datetime import datetime

from pytz import UTC


class Role(object):
    """Known account roles."""

    ADMIN = 'admin'
    """Staff accounts. Exempt from single-session and subscription checks."""

    STUDENT = 'student'
    """Non-privileged accounts, limited to one active session."""

    ALL = (ADMIN, STUDENT)


class Reason(object):
    """Reason codes for a session that did not validate."""

    NO_SESSION = 'no_session'
    PROFILE_NOT_FOUND = 'profile_not_found'
    EXPIRED = 'expired'
    FORCE_LOGOUT = 'force_logout'
    SESSION_INVALIDATED = 'session_invalidated'

    PRECEDENCE = (NO_SESSION, PROFILE_NOT_FOUND, EXPIRED, FORCE_LOGOUT,
                  SESSION_INVALIDATED)
    """Order in which failure reasons are checked; the first match wins."""


class Account(NamedTuple):
    """An account record held in the credential store."""

    account_id: str
    """Unique identifier for the account."""

    username: str
    """Primary login handle."""

    role: str
    """One of :attr:`Role.ALL`."""

    expires_at: datetime
    """The account may not be used at or after this time."""

    subscriptions: List[str] = []
    """Subscription tags held by the account. Only meaningful for students."""

    phone: Optional[str] = None
    """Optional secondary login handle."""

    session_marker: Optional[str] = None
    """
    Opaque marker for the currently active session.

    If not ``None``, a device is currently logged in with this account.
    """

    last_login_at: Optional[datetime] = None
    """When the account last logged in successfully."""

    forced_logout_at: Optional[datetime] = None
    """When an administrator last forced this account to log out."""

    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        """Admins are exempt from session and subscription checks."""
        return self.role == Role.ADMIN

    @property
    def has_active_session(self) -> bool:
        """Whether a device currently holds a session for this account."""
        return self.session_marker is not None

    def is_expired(self, now: datetime) -> bool:
        """Expired if ``now`` is at or after :attr:`.expires_at`."""
        return self.expires_at <= now

    @property
    def was_revoked(self) -> bool:
        """
        Whether the last login predates an administrative force logout.

        Both timestamps must be set; a force logout against an account that
        has never logged in does not count.
        """
        return bool(self.forced_logout_at is not None
                    and self.last_login_at is not None
                    and self.forced_logout_at > self.last_login_at)


class Identity(NamedTuple):
    """A validated caller, as seen by the access authorizer."""

    account_id: str
    username: str
    role: str
    subscriptions: List[str] = []
    phone: Optional[str] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_account(cls, account: Account) -> 'Identity':
        """Generate an :class:`.Identity` from a stored :class:`.Account`."""
        return cls(account_id=account.account_id,
                   username=account.username,
                   role=account.role,
                   subscriptions=list(account.subscriptions),
                   phone=account.phone,
                   expires_at=account.expires_at)


class Card(NamedTuple):
    """A content item: a card that points at a video."""

    card_id: str
    """Identifier printed on the card."""

    video_url: str
    """URL of the video unlocked by the card."""

    title: Optional[str] = None
    subject: Optional[str] = None

    required_subscriptions: List[str] = []
    """
    A caller must hold at least one of these to watch the video.

    An empty list means any authenticated account may watch it.
    """

    created_at: Optional[datetime] = None


class AccessLogEntry(NamedTuple):
    """Records that an account opened a card."""

    account_id: str
    card_id: str
    accessed_at: datetime


class Proof(NamedTuple):
    """A proof of identity issued by the identity verifier."""

    proof_id: str
    account_id: str
    token: str
    """Signed value that the client presents on subsequent requests."""

    start_time: datetime
    end_time: datetime

    @property
    def expires(self) -> int:
        """
        Number of seconds until the proof expires.

        If the proof is already expired, returns 0.
        """
        duration = (self.end_time - datetime.now(tz=UTC)).total_seconds()
        return int(max(duration, 0))


class LoginResult(NamedTuple):
    """The outcome of a successful authentication."""

    account_id: str
    role: str
    proof: Proof

    session_marker: Optional[str] = None
    """
    New session marker, for students.

    ``None`` for admins, and for students when the marker could not be
    written (see :attr:`.degraded`).
    """

    degraded: bool = False
    """Single-session enforcement is not guaranteed for this login."""


class SessionVerdict(NamedTuple):
    """The validity of a caller's session at the time it was checked."""

    reason: Optional[str] = None
    """``None`` if the session is valid; otherwise one of :class:`.Reason`."""

    account: Optional[Account] = None

    @property
    def valid(self) -> bool:
        """Whether the session may be used."""
        return self.reason is None and self.account is not None

    @property
    def role(self) -> Optional[str]:
        """Role of the account behind the session, if known."""
        return self.account.role if self.account is not None else None

    @property
    def identity(self) -> Optional[Identity]:
        """The validated caller, or ``None`` if the session is not valid."""
        if not self.valid:
            return None
        return Identity.from_account(self.account)


class Decision(NamedTuple):
    """Whether an identity may open a card."""

    allowed: bool
    required: List[str] = []
    """Normalized subscriptions required by the card."""

    held: List[str] = []
    """Normalized subscriptions held by the caller."""


class BestEffort(NamedTuple):
    """Outcome of a side effect that must never fail the primary operation."""

    ok: bool = True
    detail: str = ''

    @classmethod
    def degraded(cls, detail: str) -> 'BestEffort':
        """The side effect did not (fully) happen."""
        return cls(ok=False, detail=detail)


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Lower-case and de-duplicate subscription tags, preserving order."""
    normalized: List[str] = []
    for tag in tags or []:
        tag = tag.strip().lower()
        if tag and tag not in normalized:
            normalized.append(tag)
    return normalized


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    Child NamedTuples are cast recursively, and datetimes are rendered in
    ISO-8601 format, so that the result can be serialized as JSON.
    """
    if not hasattr(obj, '_asdict'):  # NamedTuple-generated classes have this.
        return {}
    data = obj._asdict()  # type: ignore

    def _cast(value: Any) -> Any:
        if hasattr(value, '_asdict'):
            value = to_dict(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, list):
            value = [_cast(o) for o in value]
        return value

    return {key: _cast(value) for key, value in data.items()}

"""Password hashing for the identity verifier."""

import hashlib
import hmac
import secrets
from base64 import b64encode, b64decode
import logging

from ..exceptions import PasswordAuthenticationFailed

logger = logging.getLogger(__name__)

SALT_LENGTH = 16
ITERATIONS = 260000


def _hash_salt_and_password(salt: bytes, password: str,
                            iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt,
                               iterations)


def hash_password(password: str) -> str:
    """Generate a salted hash of a password, for storage."""
    salt = secrets.token_bytes(SALT_LENGTH)
    hashed = _hash_salt_and_password(salt, password, ITERATIONS)
    return f'{ITERATIONS}${b64encode(salt + hashed).decode("ascii")}'


def check_password(password: str, encrypted: str) -> bool:
    """
    Check a password against a stored hash.

    Raises
    ------
    :class:`.PasswordAuthenticationFailed`
        Raised if the password does not match, or the stored hash is
        malformed.

    """
    try:
        iterations, encoded = encrypted.split('$', 1)
        decoded = b64decode(encoded)
        rounds = int(iterations)
    except (ValueError, TypeError) as e:
        logger.error('Stored password hash is malformed')
        raise PasswordAuthenticationFailed('Malformed password hash') from e
    salt, enc_hashed = decoded[:SALT_LENGTH], decoded[SALT_LENGTH:]
    if not hmac.compare_digest(_hash_salt_and_password(salt, password, rounds),
                               enc_hashed):
        raise PasswordAuthenticationFailed('Incorrect password')
    return True

"""Flask configuration."""
import secrets
import os

#################### Credential store ####################
SQLALCHEMY_DATABASE_URI = os.environ.get(
    'CARDGATE_DATABASE_URI',
    os.environ.get('SQLALCHEMY_DATABASE_URI', 'sqlite:///cardgate.db')
)
"""Accounts, cards and access logs live here."""

STORE_TIMEOUT = float(os.environ.get('STORE_TIMEOUT', '5'))
"""Seconds to wait on the database before giving up."""

CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))

#################### Identity verifier ####################
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')

REDIS_FAKE = os.environ.get('REDIS_FAKE', False)
"""Use the FakeRedis library instead of a redis service.

Useful for testing and development. Proofs are not shared between
processes."""

IDENTITY_TIMEOUT = float(os.environ.get('IDENTITY_TIMEOUT', '2'))
"""Seconds to wait on redis before giving up."""

JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(16))
"""Used to sign proof-of-identity tokens."""

SESSION_DURATION = os.environ.get('SESSION_DURATION', '86400')
"""Lifetime of a proof of identity, in seconds."""

#################### Cookies ####################
AUTH_SESSION_COOKIE_NAME = os.environ.get('AUTH_SESSION_COOKIE_NAME',
                                          'cardgate_proof')
"""Carries the proof of identity."""

SESSION_TOKEN_COOKIE_NAME = os.environ.get('SESSION_TOKEN_COOKIE_NAME',
                                           'session_token')
"""Carries the session marker, for students."""

SESSION_TOKEN_MAX_AGE = int(os.environ.get('SESSION_TOKEN_MAX_AGE',
                                           str(60 * 60 * 24 * 30)))

AUTH_SESSION_COOKIE_DOMAIN = os.environ.get('AUTH_SESSION_COOKIE_DOMAIN')
AUTH_SESSION_COOKIE_SECURE = bool(int(os.environ.get(
    'AUTH_SESSION_COOKIE_SECURE', '1'
)))

#################### Session policy ####################
CHECK_SECRET_FIRST = bool(int(os.environ.get('CHECK_SECRET_FIRST', '0')))
"""Verify the secret before refusing a login because of an active session.

Off by default. When off, a caller who knows a handle can tell whether that
account is logged in somewhere, without knowing its password."""

CARDGATE_AUTH_DEBUG = bool(int(os.environ.get('CARDGATE_AUTH_DEBUG', '0')))

#################### Minor configs ##############################
SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_urlsafe(16))
"""Sets the `Flask` secret key. Not directly used by cardgate."""

LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))

VERSION = '0.3.0'

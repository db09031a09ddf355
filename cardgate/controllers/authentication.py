"""
Controllers for logging in and out, and for checking the current session.

When a student logs in, they are issued a session marker (recorded on their
account, so that no other device can log in with it) and a proof of identity
(held by the identity verifier). Both are handed back as cookies. On each
subsequent request the proof is resolved, and the account is checked afresh.
"""

from typing import Any, Dict, Mapping, Optional, Tuple
from http import HTTPStatus as status
import logging

from flask import current_app

from .. import domain
from ..auth import current_gate
from ..exceptions import CredentialsExpired, InvalidCredentials, \
    SessionConflict
from .forms import LoginForm

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def login(form_data: Mapping[str, Any]) -> ResponseData:
    """
    Log in with a username (or phone number) and password.

    Parameters
    ----------
    form_data : dict
        Should include ``username`` (or ``identifier``) and ``password``.

    Returns
    -------
    dict
        Response data. On success, includes a ``cookies`` key that the route
        uses to set the proof and session marker cookies.
    int
        Status code: 200 on success, 400 if a field is missing, 401 if the
        login is refused.
    dict
        Headers to add to the response.

    """
    form = LoginForm.from_request_data(form_data)
    if not form.validate():
        logger.debug('Login data is not valid')
        return {'error': 'Username and password are required'}, \
            status.BAD_REQUEST, {}

    gate = current_gate()
    try:
        result = gate.issuer.authenticate(form.username.data,
                                          form.password.data)
    except (InvalidCredentials, SessionConflict, CredentialsExpired) as e:
        logger.debug('Login refused: %s', e.reason)
        return {'error': str(e), 'reason': e.reason}, status.UNAUTHORIZED, {}

    cookies: Dict[str, Tuple[str, int]] = {
        'auth_session_cookie': (result.proof.token, result.proof.expires)
    }
    if result.session_marker is not None:
        cookies['session_token_cookie'] = (
            result.session_marker,
            current_app.config['SESSION_TOKEN_MAX_AGE']
        )
    data: Dict[str, Any] = {
        'success': True,
        'role': result.role,
        'cookies': cookies
    }
    return data, status.OK, {}


def logout(proof: Optional[str]) -> ResponseData:
    """
    Log out, ending the caller's session.

    The cookies are always cleared, even if there was no session to end.
    """
    logger.debug('Request to log out')
    current_gate().revocation.logout(proof)
    data = {
        'success': True,
        'cookies': {
            'auth_session_cookie': ('', 0),
            'session_token_cookie': ('', 0)
        }
    }
    return data, status.OK, {}


def session_status(identity: domain.Identity) -> ResponseData:
    """Describe the caller's (already validated) session."""
    data = {
        'authenticated': True,
        'role': identity.role,
        'username': identity.username,
        'phone': identity.phone,
        'subscriptions': identity.subscriptions,
        'expires_at': identity.expires_at.isoformat()
        if identity.expires_at else None
    }
    return data, status.OK, {}

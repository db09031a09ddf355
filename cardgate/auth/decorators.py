"""
Session-based protection of Flask routes.

This module provides :func:`requires_session`, a decorator factory used to
protect routes that need a validated caller. For example:

.. code-block:: python

   from cardgate.auth.decorators import requires_session


   @blueprint.route('/admin/users/<account_id>/force-logout',
                    methods=['POST'])
   @requires_session(admin=True)
   def force_logout(account_id: str):
       ...

When the decorated route function is called...

- The proof attached to the request by :class:`.Gate` is validated.
- If the session is not valid, :class:`.Unauthorized` is raised with the
  reason from the verdict.
- If ``admin`` was set and the caller is not an admin, :class:`.Forbidden`
  is raised.
- The validated identity is added to the Flask request as
  ``request.identity``.

"""

from typing import Any, Callable
from functools import wraps
import logging

from flask import current_app, request

from ..domain import Reason, Role
from ..exceptions import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

MESSAGES = {
    Reason.NO_SESSION: 'Not logged in',
    Reason.PROFILE_NOT_FOUND: 'No account for this session',
    Reason.EXPIRED: 'Your credentials have expired',
    Reason.FORCE_LOGOUT: 'You were logged out by an administrator',
    Reason.SESSION_INVALIDATED: 'This session is no longer active',
}


def requires_session(admin: bool = False) -> Callable:
    """
    Generate a decorator that requires a valid session.

    Parameters
    ----------
    admin : bool
        If ``True``, the caller must also be an admin.

    Returns
    -------
    function

    """
    def protector(func: Callable) -> Callable:
        """Decorator that validates the session."""
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            gate = current_app.extensions['cardgate']
            verdict = gate.validate(getattr(request, 'proof', None))
            if not verdict.valid:
                logger.debug('No valid session (%s); aborting', verdict.reason)
                message = MESSAGES.get(verdict.reason, 'Unauthorized')
                raise Unauthorized(message, reason=verdict.reason)
            if admin and verdict.role != Role.ADMIN:
                logger.debug('Caller is not an admin')
                raise Forbidden('Administrator access required')
            request.identity = verdict.identity
            return func(*args, **kwargs)
        return wrapper
    return protector

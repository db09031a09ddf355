"""Application factory for the cardgate service."""

from typing import Any, Mapping, Optional
import logging

from flask import Flask, Response, jsonify
from werkzeug.exceptions import BadRequest, HTTPException, \
    InternalServerError, MethodNotAllowed, NotFound as HTTPNotFound

from . import routes
from .auth import Gate
from .exceptions import Forbidden, NotFound, Unauthorized, Unavailable
from .identity import IdentityVerifier
from .store import CredentialStore

logger = logging.getLogger(__name__)


def create_web_app(config: Optional[Mapping[str, Any]] = None,
                   store: Optional[CredentialStore] = None,
                   verifier: Optional[IdentityVerifier] = None) -> Flask:
    """
    Initialize and configure the cardgate application.

    Parameters
    ----------
    config : dict
        Overrides for values in :mod:`cardgate.config`.
    store : :class:`.CredentialStore`
    verifier : :class:`.IdentityVerifier`
        If provided, used instead of building a store or verifier from the
        configuration.

    """
    app = Flask('cardgate')
    app.config.from_pyfile('config.py')
    if config:
        app.config.update(config)
    logging.getLogger('cardgate').setLevel(app.config['LOGLEVEL'])

    Gate(app, store=store, verifier=verifier)   # Sessions and authn/z.
    app.register_blueprint(routes.blueprint)
    register_error_handlers(app)
    return app


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(Unauthorized)(handle_unauthorized)
    app.errorhandler(Forbidden)(handle_forbidden)
    app.errorhandler(NotFound)(handle_not_found)
    app.errorhandler(Unavailable)(handle_unavailable)
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(HTTPNotFound)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)
    app.errorhandler(InternalServerError)(jsonify_exception)


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    response: Response = jsonify(error=error.description)
    response.status_code = exc_resp.status_code
    return response


def handle_unauthorized(error: Unauthorized) -> Response:
    response: Response = jsonify(error=str(error), reason=error.reason)
    response.status_code = 401
    return response


def handle_forbidden(error: Forbidden) -> Response:
    """Subscription denials say what was required, and what is held."""
    data = {'error': 'Access denied', 'message': str(error)}
    if error.required is not None:
        data.update({'required': error.required, 'held': error.held or []})
    response: Response = jsonify(data)
    response.status_code = 403
    return response


def handle_not_found(error: NotFound) -> Response:
    response: Response = jsonify(error=str(error))
    response.status_code = 404
    return response


def handle_unavailable(error: Unavailable) -> Response:
    """Outages are logged in full, and reported only generically."""
    logger.error('Service unavailable: %s', error, exc_info=error)
    response: Response = jsonify(error='Service unavailable')
    response.status_code = 503
    return response

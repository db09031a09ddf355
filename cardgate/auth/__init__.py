"""
Session lifecycle and access authorization.

The components in this package are plain objects that take the credential
store and identity verifier as explicit dependencies:

- :class:`.issuer.SessionIssuer` authenticates logins,
- :class:`.validator.SessionValidator` decides whether a session is valid,
- :class:`.revocation.RevocationController` ends sessions, and
- :func:`.authorizer.authorize` decides whether an identity may open a card.

:class:`Gate` wires them into a Flask application.
"""

from typing import Optional
import logging
import os

from flask import Flask, current_app, request
from retry import retry

from .. import domain
from ..exceptions import Unavailable
from ..identity import IdentityVerifier
from ..store import CredentialStore
from . import decorators, issuer, revocation, validator

logger = logging.getLogger(__name__)


class Gate(object):
    """
    Builds the session components, and attaches proofs to requests.

    Set env var or `Flask.config` `CARDGATE_AUTH_DEBUG` to True to get
    additional debugging in the logs.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from cardgate.auth import Gate
       from cardgate import routes


       def create_web_app() -> Flask:
          app = Flask('cardgate')
          app.config.from_pyfile('config.py')
          Gate(app)
          app.register_blueprint(routes.blueprint)
          return app

    """

    def __init__(self, app: Optional[Flask] = None,
                 store: Optional[CredentialStore] = None,
                 verifier: Optional[IdentityVerifier] = None) -> None:
        """
        Initialize ``app`` with `Gate`.

        Parameters
        ----------
        app : :class:`Flask`
        store : :class:`.CredentialStore`
            If not provided, one is created from ``SQLALCHEMY_DATABASE_URI``.
        verifier : :class:`.IdentityVerifier`
            If not provided, one is created from the redis configuration.

        """
        self.store = store
        self.verifier = verifier
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Build the components, and attach :meth:`.load_proof` to ``app``."""
        self.app = app
        config = app.config
        if self.store is None:
            self.store = CredentialStore.from_uri(
                config['SQLALCHEMY_DATABASE_URI'],
                timeout=float(config.get('STORE_TIMEOUT', 5))
            )
        if self.verifier is None:
            self.verifier = IdentityVerifier.from_config(config, self.store)
        if config.get('CREATE_DB'):
            self.store.create_all()

        self.issuer = issuer.SessionIssuer(
            self.store, self.verifier,
            check_secret_first=bool(config.get('CHECK_SECRET_FIRST'))
        )
        self.validator = validator.SessionValidator(self.store, self.verifier)
        self.revocation = revocation.RevocationController(self.store,
                                                          self.verifier)

        app.extensions['cardgate'] = self
        app.config['cardgate.Gate'] = self
        app.before_request(self.load_proof)

        if config.get('CARDGATE_AUTH_DEBUG') \
                or os.getenv('CARDGATE_AUTH_DEBUG'):
            self.auth_debug()
            logger.debug('CARDGATE_AUTH_DEBUG is set; auth debug messages'
                         ' to logging are turned on')

    def load_proof(self) -> None:
        """
        Attach the caller's proof of identity to the request.

        An ``Authorization: Bearer`` header takes precedence over the proof
        cookie. If neither is present, ``request.proof`` is ``None``.
        """
        proof: Optional[str] = None
        header = request.headers.get('Authorization', '')
        if header.lower().startswith('bearer '):
            proof = header.split(' ', 1)[1].strip() or None
        if proof is None:
            proof = request.cookies.get(
                self.app.config['AUTH_SESSION_COOKIE_NAME']
            )
        request.proof = proof

    @retry(Unavailable, tries=3, delay=0.5, backoff=2)
    def validate(self, proof: Optional[str]) -> domain.SessionVerdict:
        """Validate a proof, retrying briefly if the store is unavailable."""
        return self.validator.validate(proof)

    def auth_debug(self) -> None:
        """Sets the session component loggers to DEBUG."""
        logger.setLevel(logging.DEBUG)
        for module in (issuer, validator, revocation, decorators):
            module.logger.setLevel(logging.DEBUG)


def current_gate() -> Gate:
    """Get the :class:`.Gate` for the current application."""
    gate: Gate = current_app.extensions['cardgate']
    return gate

"""
Identity verifier: checks secrets and issues proofs of identity.

When a secret is verified, a proof of identity is registered in a key-value
store (redis) and handed back to the caller as a signed JSON web token. On
subsequent requests the token is resolved back to an account ID. A proof
can be ended individually (logout), or all proofs for an account can be
invalidated at once (force logout); this is why each account also gets an
index of its outstanding proof IDs.

Password hashes live in the credential store database, in a table that only
this component reads.
"""

from typing import Any, Mapping, Optional
from datetime import datetime, timedelta
import json
import logging
import secrets
import uuid

import dateutil.parser
import fakeredis
import jwt
import redis
from pytz import UTC

from .. import domain
from ..exceptions import AuthenticationFailed, InvalidToken, Unavailable, \
    PasswordAuthenticationFailed
from ..store import CredentialStore
from . import passwords

logger = logging.getLogger(__name__)


def _generate_nonce() -> str:
    return secrets.token_urlsafe(12)


class IdentityVerifier(object):
    """
    Verifies secrets and manages proofs of identity.

    The redis client is thread safe, and connections are attached at the
    time a command is executed. This class simply provides a container for
    configuration.
    """

    PROOF_PREFIX = 'cardgate:proof:'
    INDEX_PREFIX = 'cardgate:proofs:'

    def __init__(self, store: CredentialStore, r: redis.Redis, secret: str,
                 duration: int = 7200) -> None:
        """
        Set up the verifier.

        Parameters
        ----------
        store : :class:`.CredentialStore`
            Holds the password hashes.
        r : :class:`redis.Redis`
            Holds outstanding proofs. Should decode responses.
        secret : str
            Used to sign proof tokens.
        duration : int
            Lifetime of a proof, in seconds.

        """
        self.store = store
        self.r = r
        self._secret = secret
        self._duration = duration

    @classmethod
    def from_config(cls, config: Mapping[str, Any],
                    store: CredentialStore) -> 'IdentityVerifier':
        """Create a verifier from application configuration."""
        timeout = float(config.get('IDENTITY_TIMEOUT', '2'))
        if str(config.get('REDIS_FAKE', '')).lower() in ('1', 'true'):
            logger.warning('Using fake redis; proofs will not be shared')
            r = fakeredis.FakeRedis(decode_responses=True)
        else:
            logger.debug('New redis connection at %s, port %s',
                         config.get('REDIS_HOST'), config.get('REDIS_PORT'))
            r = redis.Redis(host=config.get('REDIS_HOST', 'localhost'),
                            port=int(config.get('REDIS_PORT', '6379')),
                            db=int(config.get('REDIS_DATABASE', '0')),
                            socket_timeout=timeout,
                            socket_connect_timeout=timeout,
                            decode_responses=True)
        return cls(store, r, config['JWT_SECRET'],
                   int(config.get('SESSION_DURATION', '7200')))

    def register(self, account_id: str, handle: str, secret: str) -> None:
        """Store the secret with which ``handle`` will authenticate."""
        self.store.set_secret(account_id, handle,
                              passwords.hash_password(secret))

    def verify_secret(self, handle: str, secret: str) -> domain.Proof:
        """
        Check a secret and, if it matches, issue a proof of identity.

        Raises
        ------
        :class:`.AuthenticationFailed`
            Raised if there is no credential for ``handle``, or the secret
            does not match it.
        :class:`.Unavailable`
            Raised if the database or redis cannot be reached.

        """
        stored = self.store.get_secret(handle)
        if stored is None:
            logger.debug('No credential for handle')
            raise AuthenticationFailed('Invalid username or password')
        account_id, password_enc = stored
        try:
            passwords.check_password(secret, password_enc)
        except PasswordAuthenticationFailed as e:
            raise AuthenticationFailed('Invalid username or password') from e
        return self._issue(account_id)

    def resolve(self, token: Optional[str]) -> Optional[str]:
        """
        Get the account ID for a proof of identity.

        Returns ``None`` if the token is missing, malformed, forged, expired,
        or has been ended.

        Raises
        ------
        :class:`.Unavailable`
            Raised if redis cannot be reached.

        """
        if not token:
            return None
        try:
            claims = self._unpack(token)
            expires = dateutil.parser.parse(claims['expires'])
            account_id = claims['account_id']
            proof_id = claims['proof_id']
            nonce = claims['nonce']
        except (KeyError, ValueError, TypeError, InvalidToken) as e:
            logger.debug('Proof is malformed: %s', e)
            return None
        if expires <= datetime.now(tz=UTC):
            logger.debug('Proof %s has expired', proof_id)
            return None

        raw = self._call('get', self._key(proof_id))
        if not raw:
            logger.debug('No such proof: %s', proof_id)
            return None
        try:
            data = json.loads(raw)
        except json.decoder.JSONDecodeError:
            logger.error('Invalid or corrupted proof %s', proof_id)
            return None
        if data.get('nonce') != nonce or data.get('account_id') != account_id:
            logger.error('Invalid proof; likely a forgery')
            return None
        return str(account_id)

    def end_proof(self, token: str) -> None:
        """End a single proof of identity. Unknown proofs are ignored."""
        try:
            claims = self._unpack(token)
            proof_id = claims['proof_id']
            account_id = claims['account_id']
        except (KeyError, InvalidToken) as e:
            logger.debug('Not ending malformed proof: %s', e)
            return
        pipe = self.r.pipeline()
        pipe.delete(self._key(proof_id))
        pipe.srem(self._index(account_id), proof_id)
        self._execute(pipe)

    def invalidate_all(self, account_id: str) -> int:
        """
        End every outstanding proof of identity for an account.

        Returns
        -------
        int
            The number of proofs that were ended.

        """
        proof_ids = self._call('smembers', self._index(account_id)) or set()
        pipe = self.r.pipeline()
        for proof_id in proof_ids:
            pipe.delete(self._key(proof_id))
        pipe.delete(self._index(account_id))
        self._execute(pipe)
        logger.debug('Ended %i proofs for %s', len(proof_ids), account_id)
        return len(proof_ids)

    def _issue(self, account_id: str) -> domain.Proof:
        proof_id = str(uuid.uuid4())
        nonce = _generate_nonce()
        start_time = datetime.now(tz=UTC)
        end_time = start_time + timedelta(seconds=self._duration)
        data = json.dumps({
            'account_id': account_id,
            'proof_id': proof_id,
            'nonce': nonce,
            'start_time': start_time.isoformat(),
            'end_time': end_time.isoformat()
        })
        pipe = self.r.pipeline()
        pipe.set(self._key(proof_id), data, ex=self._duration)
        pipe.sadd(self._index(account_id), proof_id)
        pipe.expire(self._index(account_id), self._duration)
        self._execute(pipe)

        token = self._pack({
            'account_id': account_id,
            'proof_id': proof_id,
            'nonce': nonce,
            'expires': end_time.isoformat()
        })
        return domain.Proof(proof_id=proof_id, account_id=account_id,
                            token=token, start_time=start_time,
                            end_time=end_time)

    def _call(self, command: str, *args: Any) -> Any:
        try:
            return getattr(self.r, command)(*args)
        except redis.exceptions.RedisError as e:
            logger.error('Identity store call %s failed: %s', command, e)
            raise Unavailable('Identity provider is unavailable') from e

    def _execute(self, pipe: Any) -> None:
        try:
            pipe.execute()
        except redis.exceptions.RedisError as e:
            logger.error('Identity store pipeline failed: %s', e)
            raise Unavailable('Identity provider is unavailable') from e

    def _key(self, proof_id: str) -> str:
        return f'{self.PROOF_PREFIX}{proof_id}'

    def _index(self, account_id: str) -> str:
        return f'{self.INDEX_PREFIX}{account_id}'

    def _pack(self, claims: dict) -> str:
        return jwt.encode(claims, self._secret, algorithm='HS256')

    def _unpack(self, token: str) -> dict:
        try:
            return dict(jwt.decode(token, self._secret, algorithms=['HS256']))
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidToken('Proof token is malformed') from e

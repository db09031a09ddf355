"""Tests for :mod:`cardgate.auth.validator`."""

from unittest import TestCase, mock
from datetime import datetime, timedelta

from hypothesis import given
from hypothesis import strategies as st
from pytz import UTC

from cardgate import domain
from cardgate.auth.issuer import SessionIssuer
from cardgate.auth.validator import SessionValidator, verdict_for
from cardgate.domain import Reason, Role
from cardgate.exceptions import Unavailable
from cardgate.tests.util import PASSWORD, Clock, add_account, \
    fake_verifier, fast_passwords, temporary_store

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _account(**kwargs):
    data = dict(account_id='1', username='student1', role=Role.STUDENT,
                expires_at=NOW + timedelta(days=1), session_marker='m',
                last_login_at=NOW - timedelta(hours=1))
    data.update(kwargs)
    return domain.Account(**data)


class TestVerdictFor(TestCase):
    """Verdicts follow a fixed precedence."""

    def test_no_account(self):
        """The proof resolved, but there is no account."""
        self.assertEqual(verdict_for(None, NOW).reason,
                         Reason.PROFILE_NOT_FOUND)

    def test_valid(self):
        """A student with a live marker."""
        verdict = verdict_for(_account(), NOW)
        self.assertTrue(verdict.valid)
        self.assertEqual(verdict.role, Role.STUDENT)
        self.assertEqual(verdict.identity.username, 'student1')

    def test_expired(self):
        """Expiry at exactly now counts."""
        verdict = verdict_for(_account(expires_at=NOW), NOW)
        self.assertEqual(verdict.reason, Reason.EXPIRED)
        self.assertIsNone(verdict.identity)

    def test_expiry_beats_force_logout(self):
        """An account that is expired and revoked is reported as expired."""
        account = _account(expires_at=NOW - timedelta(seconds=1),
                           forced_logout_at=NOW, session_marker=None)
        self.assertEqual(verdict_for(account, NOW).reason, Reason.EXPIRED)

    def test_force_logout(self):
        """The last login predates a forced logout."""
        account = _account(forced_logout_at=NOW - timedelta(minutes=1),
                           session_marker=None)
        self.assertEqual(verdict_for(account, NOW).reason,
                         Reason.FORCE_LOGOUT)

    def test_login_after_force_logout(self):
        """A login after the forced logout is not affected by it."""
        account = _account(forced_logout_at=NOW - timedelta(hours=2))
        self.assertTrue(verdict_for(account, NOW).valid)

    def test_force_logout_without_login(self):
        """A forced logout needs a login to compare against."""
        account = _account(forced_logout_at=NOW, last_login_at=None,
                           session_marker=None)
        self.assertEqual(verdict_for(account, NOW).reason,
                         Reason.SESSION_INVALIDATED)

    def test_no_marker(self):
        """The marker was cleared by a logout elsewhere."""
        account = _account(session_marker=None)
        self.assertEqual(verdict_for(account, NOW).reason,
                         Reason.SESSION_INVALIDATED)

    def test_admin(self):
        """Admins need no marker, and are not subject to force logout."""
        account = _account(role=Role.ADMIN, session_marker=None,
                           forced_logout_at=NOW)
        verdict = verdict_for(account, NOW)
        self.assertTrue(verdict.valid)
        self.assertEqual(verdict.role, Role.ADMIN)

    def test_expired_admin(self):
        """Admins do expire."""
        account = _account(role=Role.ADMIN, expires_at=NOW)
        self.assertEqual(verdict_for(account, NOW).reason, Reason.EXPIRED)

    @given(role=st.sampled_from(Role.ALL),
           expires=st.integers(min_value=-5, max_value=5),
           marker=st.one_of(st.none(), st.just('m')),
           last_login=st.one_of(st.none(), st.integers(-5, 5)),
           forced=st.one_of(st.none(), st.integers(-5, 5)))
    def test_total(self, role, expires, marker, last_login, forced):
        """Every account state maps to exactly one verdict."""
        def at(offset):
            return None if offset is None else NOW + timedelta(minutes=offset)

        account = _account(role=role, expires_at=at(expires),
                           session_marker=marker, last_login_at=at(last_login),
                           forced_logout_at=at(forced))
        verdict = verdict_for(account, NOW)
        if verdict.valid:
            self.assertIsNone(verdict.reason)
            self.assertGreater(account.expires_at, NOW)
        else:
            self.assertIn(verdict.reason, Reason.PRECEDENCE)
        if role == Role.ADMIN:
            self.assertIn(verdict.reason, (None, Reason.EXPIRED))


class TestValidate(TestCase):
    """Proofs are validated against the store on every call."""

    def setUp(self):
        """Log a student in."""
        self._patch = fast_passwords()
        self._patch.start()
        self._ctx = temporary_store()
        self.store = self._ctx.__enter__()
        self.verifier = fake_verifier(self.store)
        self.clock = Clock()
        self.account = add_account(self.store, self.verifier)
        self.validator = SessionValidator(self.store, self.verifier,
                                          clock=self.clock)
        issuer = SessionIssuer(self.store, self.verifier, clock=self.clock)
        self.proof = issuer.authenticate('student1', PASSWORD).proof.token

    def tearDown(self):
        """Drop the store."""
        self._ctx.__exit__(None, None, None)
        self._patch.stop()

    def test_valid(self):
        """The session is valid."""
        verdict = self.validator.validate(self.proof)
        self.assertTrue(verdict.valid)
        self.assertEqual(verdict.identity.account_id, self.account.account_id)

    def test_no_proof(self):
        """No proof, or a bad one."""
        self.assertEqual(self.validator.validate(None).reason,
                         Reason.NO_SESSION)
        self.assertEqual(self.validator.validate('garbage').reason,
                         Reason.NO_SESSION)

    def test_profile_not_found(self):
        """The account behind the proof is gone."""
        with mock.patch.object(self.store, 'find_by_id', return_value=None):
            verdict = self.validator.validate(self.proof)
        self.assertEqual(verdict.reason, Reason.PROFILE_NOT_FOUND)
        self.assertIsNotNone(self.verifier.resolve(self.proof))

    def test_expired(self):
        """The account expires mid-session; the proof is ended."""
        self.clock.advance(days=8)
        self.assertEqual(self.validator.validate(self.proof).reason,
                         Reason.EXPIRED)
        self.assertIsNone(self.verifier.resolve(self.proof))

    def test_force_logout(self):
        """An admin forced a logout mid-session; the proof is ended."""
        self.store.set_force_logout(self.account.account_id,
                                    self.clock.advance(minutes=1))
        self.assertEqual(self.validator.validate(self.proof).reason,
                         Reason.FORCE_LOGOUT)
        self.assertIsNone(self.verifier.resolve(self.proof))

    def test_session_invalidated(self):
        """The marker was cleared elsewhere; the proof is ended."""
        self.store.clear_session_marker(self.account.account_id)
        self.assertEqual(self.validator.validate(self.proof).reason,
                         Reason.SESSION_INVALIDATED)
        self.assertEqual(self.validator.validate(self.proof).reason,
                         Reason.NO_SESSION)

    def test_end_proof_fails(self):
        """The verdict stands even if the proof cannot be ended."""
        self.store.clear_session_marker(self.account.account_id)
        with mock.patch.object(self.verifier, 'end_proof',
                               side_effect=Unavailable('down')):
            verdict = self.validator.validate(self.proof)
        self.assertEqual(verdict.reason, Reason.SESSION_INVALIDATED)

    def test_store_unavailable(self):
        """An outage is raised, never turned into a verdict."""
        with mock.patch.object(self.store, 'find_by_id',
                               side_effect=Unavailable('down')):
            with self.assertRaises(Unavailable):
                self.validator.validate(self.proof)

    def test_no_cache(self):
        """A revocation takes effect on the very next call."""
        self.assertTrue(self.validator.validate(self.proof).valid)
        self.store.clear_session_marker(self.account.account_id)
        self.assertFalse(self.validator.validate(self.proof).valid)

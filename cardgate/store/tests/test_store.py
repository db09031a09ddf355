"""Tests for :mod:`cardgate.store`."""

from unittest import TestCase, mock
from datetime import timedelta

from sqlalchemy.exc import OperationalError

from cardgate.domain import Role
from cardgate.exceptions import AccountExists, NotFound, Unavailable
from cardgate.store import util
from cardgate.tests.util import temporary_store


class StoreTestCase(TestCase):
    """Provides a fresh store with one student account."""

    def setUp(self):
        """Create the store and the account."""
        self._ctx = temporary_store()
        self.store = self._ctx.__enter__()
        self.expires_at = util.now() + timedelta(days=30)
        self.account = self.store.create_account(
            'student1', Role.STUDENT, self.expires_at,
            subscriptions=['Physics', 'math', 'physics'],
            phone='+44 7700-900123'
        )

    def tearDown(self):
        """Drop the store."""
        self._ctx.__exit__(None, None, None)


class TestFindAccount(StoreTestCase):
    """Accounts can be found by username, phone number, or ID."""

    def test_by_username(self):
        """The handle is a username."""
        account = self.store.find_by_handle('student1')
        self.assertEqual(account.account_id, self.account.account_id)
        self.assertEqual(account.role, Role.STUDENT)
        self.assertEqual(account.expires_at, self.expires_at)

    def test_by_phone(self):
        """The handle looks like a phone number."""
        account = self.store.find_by_handle('+44 7700-900123')
        self.assertEqual(account.account_id, self.account.account_id)

    def test_unknown_handle(self):
        """There is no such account."""
        self.assertIsNone(self.store.find_by_handle('nobody'))
        self.assertIsNone(self.store.find_by_handle('0123'))

    def test_by_id(self):
        """Accounts can be found by ID."""
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.username, 'student1')
        self.assertIsNone(self.store.find_by_id('nope'))

    def test_subscriptions_are_normalized(self):
        """Subscriptions are stored lower-cased and without duplicates."""
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.subscriptions, ['physics', 'math'])

    def test_new_account_has_no_session(self):
        """A new account has no session marker or login history."""
        self.assertIsNone(self.account.session_marker)
        self.assertIsNone(self.account.last_login_at)
        self.assertIsNone(self.account.forced_logout_at)


class TestCreateAccount(StoreTestCase):
    """Usernames and phone numbers are unique."""

    def test_duplicate_username(self):
        """The username is taken."""
        with self.assertRaises(AccountExists):
            self.store.create_account('student1', Role.STUDENT,
                                      self.expires_at)

    def test_duplicate_phone(self):
        """The phone number is taken."""
        with self.assertRaises(AccountExists):
            self.store.create_account('student2', Role.STUDENT,
                                      self.expires_at,
                                      phone='+44 7700-900123')

    def test_accounts_without_phone(self):
        """Any number of accounts may have no phone number."""
        self.store.create_account('student2', Role.STUDENT, self.expires_at)
        self.store.create_account('student3', Role.STUDENT, self.expires_at)
        self.assertIsNotNone(self.store.find_by_handle('student3'))


class TestSessionMarker(StoreTestCase):
    """The session marker is only swapped if it holds the expected value."""

    def test_claim_empty_marker(self):
        """The marker is null, as expected."""
        now = util.now()
        swapped = self.store.cas_session_marker(self.account.account_id,
                                                None, 'marker-a',
                                                last_login_at=now)
        self.assertTrue(swapped)
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.session_marker, 'marker-a')
        self.assertEqual(account.last_login_at, now)

    def test_claim_held_marker(self):
        """Another session already holds the marker."""
        self.store.cas_session_marker(self.account.account_id, None,
                                      'marker-a')
        swapped = self.store.cas_session_marker(self.account.account_id,
                                                None, 'marker-b')
        self.assertFalse(swapped)
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.session_marker, 'marker-a')

    def test_swap_expected_marker(self):
        """The marker can be replaced by whoever knows its current value."""
        self.store.cas_session_marker(self.account.account_id, None,
                                      'marker-a')
        self.assertTrue(self.store.cas_session_marker(
            self.account.account_id, 'marker-a', 'marker-b'
        ))
        self.assertFalse(self.store.cas_session_marker(
            self.account.account_id, 'marker-a', 'marker-c'
        ))

    def test_unknown_account(self):
        """There is no row to swap."""
        self.assertFalse(self.store.cas_session_marker('nope', None, 'm'))

    def test_clear(self):
        """The marker is cleared unconditionally."""
        self.store.cas_session_marker(self.account.account_id, None,
                                      'marker-a')
        self.store.clear_session_marker(self.account.account_id)
        account = self.store.find_by_id(self.account.account_id)
        self.assertIsNone(account.session_marker)

    def test_claim_after_force_logout(self):
        """A force logout at or after the login time refuses the claim."""
        login_at = util.now()
        self.store.set_force_logout(self.account.account_id, login_at)
        self.assertFalse(self.store.cas_session_marker(
            self.account.account_id, None, 'marker-a', last_login_at=login_at
        ))
        account = self.store.find_by_id(self.account.account_id)
        self.assertIsNone(account.session_marker)
        self.assertIsNone(account.last_login_at)

        later = login_at + timedelta(seconds=1)
        self.assertTrue(self.store.cas_session_marker(
            self.account.account_id, None, 'marker-b', last_login_at=later
        ))


class TestForceLogout(StoreTestCase):
    """The forced-logout time never moves backwards."""

    def test_set(self):
        """The time is recorded."""
        at = util.now()
        self.store.set_force_logout(self.account.account_id, at)
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.forced_logout_at, at)

    def test_advance(self):
        """A later forced logout replaces an earlier one."""
        first = util.now()
        second = first + timedelta(minutes=5)
        self.store.set_force_logout(self.account.account_id, first)
        self.store.set_force_logout(self.account.account_id, second)
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.forced_logout_at, second)

    def test_no_revert(self):
        """An earlier forced logout does not replace a later one."""
        second = util.now()
        first = second - timedelta(minutes=5)
        self.store.set_force_logout(self.account.account_id, second)
        self.store.set_force_logout(self.account.account_id, first)
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.forced_logout_at, second)

    def test_revoke_session(self):
        """The time is recorded and the marker cleared together."""
        self.store.cas_session_marker(self.account.account_id, None,
                                      'marker-a')
        at = util.now()
        self.store.revoke_session(self.account.account_id, at)
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.forced_logout_at, at)
        self.assertIsNone(account.session_marker)

    def test_revoke_session_no_revert(self):
        """An earlier revocation clears the marker, but keeps the time."""
        second = util.now()
        first = second - timedelta(minutes=5)
        self.store.revoke_session(self.account.account_id, second)
        self.store.cas_session_marker(self.account.account_id, None,
                                      'marker-a')
        self.store.revoke_session(self.account.account_id, first)
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.forced_logout_at, second)
        self.assertIsNone(account.session_marker)


class TestAdministrativeEdits(StoreTestCase):
    """Expiry and subscriptions can be changed."""

    def test_set_expiry(self):
        """The expiry is replaced."""
        later = self.expires_at + timedelta(days=365)
        self.store.set_expiry(self.account.account_id, later)
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.expires_at, later)

    def test_set_subscriptions(self):
        """The subscriptions are replaced, and normalized."""
        self.store.set_subscriptions(self.account.account_id,
                                     ['Chemistry'])
        account = self.store.find_by_id(self.account.account_id)
        self.assertEqual(account.subscriptions, ['chemistry'])

    def test_unknown_account(self):
        """:class:`.NotFound` is raised for an unknown account."""
        with self.assertRaises(NotFound):
            self.store.set_expiry('nope', self.expires_at)


class TestCardsAndAccessLog(StoreTestCase):
    """Cards can be added and read; accesses are logged."""

    def test_card(self):
        """A card is added to the catalog."""
        self.store.add_card('C-1', 'https://youtu.be/abc', title='Optics',
                            required_subscriptions=['Physics'])
        card = self.store.get_card('C-1')
        self.assertEqual(card.video_url, 'https://youtu.be/abc')
        self.assertEqual(card.title, 'Optics')
        self.assertEqual(card.required_subscriptions, ['Physics'])
        self.assertIsNone(self.store.get_card('C-2'))

    def test_access_log(self):
        """Accesses are listed most recent first."""
        first = util.now()
        second = first + timedelta(seconds=10)
        self.store.log_access(self.account.account_id, 'C-1', first)
        self.store.log_access(self.account.account_id, 'C-2', second)
        entries = self.store.list_access_logs(self.account.account_id)
        self.assertEqual([e.card_id for e in entries], ['C-2', 'C-1'])
        self.assertEqual(entries[0].accessed_at, second)
        self.assertEqual(len(self.store.list_access_logs(card_id='C-1')), 1)


class TestUnavailable(StoreTestCase):
    """Database errors are raised as :class:`.Unavailable`."""

    def test_database_error(self):
        """The database goes away mid-query."""
        error = OperationalError('SELECT', {}, Exception('gone away'))
        with mock.patch('sqlalchemy.orm.Query.first', side_effect=error):
            with self.assertRaises(Unavailable):
                self.store.find_by_id(self.account.account_id)

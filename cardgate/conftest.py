import pytest

from cardgate import factory
from cardgate.store import CredentialStore
from cardgate.tests.util import JWT_SECRET, fake_verifier, fast_passwords

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'CREATE_DB': True,
    'JWT_SECRET': JWT_SECRET,
    'AUTH_SESSION_COOKIE_NAME': 'foo_proof',
    'SESSION_TOKEN_COOKIE_NAME': 'session_token',
    'AUTH_SESSION_COOKIE_SECURE': False,
}


@pytest.fixture()
def app():
    with fast_passwords():
        store = CredentialStore.from_uri('sqlite://')
        yield factory.create_web_app(TEST_CONFIG, store=store,
                                     verifier=fake_verifier(store))
        store.drop_all()


@pytest.fixture()
def gate(app):
    return app.extensions['cardgate']


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def request_context(app):
    yield app.test_request_context()

from datetime import timedelta
from types import SimpleNamespace

import pytest
from flask_jwt_extended import verify_jwt_in_request
from flask_jwt_extended.exceptions import RevokedTokenError

from backend.moodflow.errors import AccountExists, ExternalServiceError, InvalidCredentials
from backend.moodflow.models import db, TokenBlocklist
from backend.moodflow.models._time import utcnow
from backend.moodflow.utils.auth_adapter import LocalAuthBackend, SupabaseAuthBackend, get_auth_backend


class FakeSupabaseAuth:
    def __init__(self):
        self.error = None
        self.confirm_email = False
        self.admin = SimpleNamespace(sign_out=self._admin_sign_out)
        self.revoked = []

    def _user(self, email="amani@moodflow.app"):
        return SimpleNamespace(id="5f0c7a1e-0000-4000-8000-000000000001", email=email)

    def _session(self):
        return SimpleNamespace(access_token="sb-access", refresh_token="sb-refresh")

    def sign_in_with_password(self, credentials):
        if self.error:
            raise Exception(self.error)
        return SimpleNamespace(user=self._user(credentials["email"]), session=self._session())

    def sign_up(self, credentials):
        if self.error:
            raise Exception(self.error)
        session = None if self.confirm_email else self._session()
        return SimpleNamespace(user=self._user(credentials["email"]), session=session)

    def get_user(self, token):
        if token != "sb-access":
            raise Exception("invalid JWT")
        return SimpleNamespace(user=self._user())

    def _admin_sign_out(self, jwt, scope="global"):
        self.revoked.append(jwt)


@pytest.fixture()
def fake_auth():
    return FakeSupabaseAuth()


@pytest.fixture()
def backend(fake_auth):
    manager = SimpleNamespace(client=SimpleNamespace(auth=fake_auth))
    return SupabaseAuthBackend(manager=manager)


def test_sign_in(backend):
    result = backend.sign_in("amani@moodflow.app", "password123")
    assert result["access_token"] == "sb-access"
    assert result["refresh_token"] == "sb-refresh"
    assert result["email"] == "amani@moodflow.app"


def test_sign_in_errors(backend, fake_auth):
    fake_auth.error = "Invalid login credentials"
    with pytest.raises(InvalidCredentials):
        backend.sign_in("amani@moodflow.app", "wrong")

    fake_auth.error = "Connection reset"
    with pytest.raises(ExternalServiceError):
        backend.sign_in("amani@moodflow.app", "password123")


def test_sign_up(backend, fake_auth):
    assert backend.sign_up("new@moodflow.app", "password123")["access_token"] == "sb-access"

    fake_auth.confirm_email = True
    assert backend.sign_up("new@moodflow.app", "password123")["access_token"] is None

    fake_auth.error = "User already registered"
    with pytest.raises(AccountExists):
        backend.sign_up("new@moodflow.app", "password123")


def test_get_session(backend):
    assert backend.get_session("sb-access") == {
        "id": "5f0c7a1e-0000-4000-8000-000000000001", "email": "amani@moodflow.app",
    }
    assert backend.get_session("stale") is None


def test_sign_out_revokes_the_users_token(backend, fake_auth):
    backend.sign_out("sb-access")
    assert fake_auth.revoked == ["sb-access"]

    backend.sign_out(None)
    assert fake_auth.revoked == ["sb-access"]


def test_unconfigured_client():
    backend = SupabaseAuthBackend(manager=SimpleNamespace(client=None))
    with pytest.raises(ExternalServiceError):
        backend.sign_in("amani@moodflow.app", "password123")


def test_backend_selection(app):
    assert isinstance(get_auth_backend(app), LocalAuthBackend)
    app.config["SUPABASE_USE_FOR_AUTH"] = True
    assert isinstance(get_auth_backend(app), SupabaseAuthBackend)


def test_local_sign_out_persists_revocation(app):
    local = LocalAuthBackend()
    token = local.sign_up("kamau@moodflow.app", "password123")["access_token"]
    assert local.get_session(token)["email"] == "kamau@moodflow.app"

    local.sign_out(token)
    local.sign_out(token)

    assert TokenBlocklist.query.count() == 1
    row = TokenBlocklist.query.first()
    assert row.expires_at > utcnow()
    assert LocalAuthBackend().get_session(token) is None


def test_revoked_token_rejected_by_jwt_manager(app):
    local = LocalAuthBackend()
    token = local.sign_up("kamau@moodflow.app", "password123")["access_token"]
    local.sign_out(token)

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        with pytest.raises(RevokedTokenError):
            verify_jwt_in_request()


def test_sign_out_purges_expired_rows(app):
    db.session.add(TokenBlocklist(jti="old", expires_at=utcnow() - timedelta(days=2)))
    db.session.commit()

    local = LocalAuthBackend()
    local.sign_out(local.sign_up("kamau@moodflow.app", "password123")["access_token"])

    assert not TokenBlocklist.is_revoked("old")
    assert TokenBlocklist.query.count() == 1

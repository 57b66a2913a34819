import pytest
from werkzeug.security import generate_password_hash

from app.opspanel import create_app
from app.opspanel.auth import _login_attempts
from app.opspanel.db import create_tables, session_scope
from app.opspanel.models import User
from app.opspanel.rbac import ROLE_KEYS


@pytest.fixture(autouse=True)
def _reset_login_rate_limit():
    _login_attempts.clear()
    yield
    _login_attempts.clear()


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORE_BACKEND", "database")
    for k in ("STORE_ROOT", "S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    create_tables(app)

    with session_scope(app) as s:
        for role in ROLE_KEYS:
            s.add(User(email=f"{role}@example.com", password_hash=generate_password_hash("pw"), role=role, is_active=True))

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, role: str) -> str:
    """Log in as the seeded user for `role`; returns the session CSRF token."""
    r = client.post("/login", data={"email": f"{role}@example.com", "password": "pw"}, follow_redirects=False)
    assert r.status_code == 302
    with client.session_transaction() as sess:
        return sess["csrf_token"]


def csrf_headers(token: str) -> dict:
    return {"X-CSRF-Token": token}

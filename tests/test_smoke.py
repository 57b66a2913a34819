from flask import g

from app.opspanel.rbac import UNRESOLVED, AuthState, require_role

from conftest import csrf_headers, login


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True
    assert client.get("/healthz").data == b"ok"


def test_index_and_login_page_render(client):
    assert client.get("/").status_code == 200
    r = client.get("/login?next=/admin/")
    assert r.status_code == 200
    assert b'name="next" value="/admin/"' in r.data


def test_anonymous_is_redirected_to_login_with_origin(client):
    r = client.get("/admin/api/customers?page=2")
    assert r.status_code == 302
    assert r.headers["Location"].startswith("/login?next=")
    assert "%2Fadmin%2Fapi%2Fcustomers%3Fpage%3D2" in r.headers["Location"]


def test_login_redirect_lands_on_a_served_page(client):
    r = client.get("/admin/api/orders", follow_redirects=True)
    assert r.status_code == 200
    assert r.request.path == "/login"
    assert b'name="next" value="/admin/api/orders"' in r.data


def test_login_honours_local_next_only(client):
    r = client.post("/login", data={"email": "user@example.com", "password": "pw", "next": "/admin/"})
    assert r.status_code == 302
    assert r.headers["Location"] == "/admin/"
    client.get("/logout")

    r = client.post("/login", data={"email": "user@example.com", "password": "pw", "next": "//evil.example"})
    assert r.headers["Location"] == "/"


def test_bad_credentials_stay_on_login(client):
    r = client.post("/login", data={"email": "user@example.com", "password": "wrong"})
    assert r.status_code == 302
    assert r.headers["Location"].startswith("/login")
    assert client.get("/admin/").status_code == 302


def test_login_rate_limit(client):
    for _ in range(5):
        client.post("/login", data={"email": "user@example.com", "password": "wrong"})
    r = client.post("/login", data={"email": "user@example.com", "password": "pw"})
    assert r.status_code == 302
    assert client.get("/admin/").status_code == 302


def test_login_and_admin_access(client):
    login(client, "user")
    r = client.get("/admin/")
    assert r.status_code == 200
    assert r.json["user"]["role"] == "user"
    assert r.json["db_connected"] is True


def test_logout_clears_session(client):
    login(client, "admin")
    client.get("/logout")
    assert client.get("/admin/").status_code == 302


def test_insufficient_role_redirects_to_fallback_not_login(client):
    token = login(client, "admin")
    r = client.get("/admin/api/users")
    assert r.status_code == 302
    assert r.headers["Location"] == "/"
    r = client.post("/admin/api/seed", json={}, headers=csrf_headers(token))
    assert r.headers["Location"] == "/"


def test_user_role_cannot_mutate(client):
    token = login(client, "user")
    r = client.post("/admin/api/customers", json={"name": "Acme"}, headers=csrf_headers(token))
    assert r.status_code == 302
    assert r.headers["Location"] == "/"
    assert client.get("/admin/api/customers").json == []


def test_mutation_without_csrf_is_rejected(client):
    login(client, "admin")
    r = client.post("/admin/api/customers", json={"name": "Acme"})
    assert r.status_code == 400
    assert "CSRF" in r.json["error"]


def _add_guarded_route(app, state):
    @app.get("/guarded")
    @require_role("admin")
    def guarded():
        return "protected"

    @app.before_request
    def _override_auth_state():
        g.auth_state = state


def test_unresolved_auth_renders_loading_page(app):
    _add_guarded_route(app, UNRESOLVED)
    r = app.test_client().get("/guarded")
    assert r.status_code == 503
    assert r.headers["Retry-After"] == "1"
    assert b"Loading" in r.data


def test_auth_config_error_redirects_to_login(app):
    _add_guarded_route(app, AuthState(config_error="identity backend misconfigured"))
    r = app.test_client().get("/guarded")
    assert r.status_code == 302
    assert r.headers["Location"] == "/login?next=%2Fguarded"


def test_broken_user_lookup_becomes_config_error(app, client):
    login(client, "admin")
    engine = app.extensions["sqlalchemy_engine"]
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE audit_events")
        conn.exec_driver_sql("DROP TABLE users")
    r = client.get("/admin/")
    assert r.status_code == 302
    assert r.headers["Location"].startswith("/login?next=")

import pytest

from app.opspanel.rbac import (
    AuthState,
    Redirect,
    Render,
    Role,
    ShowLoading,
    evaluate_access,
    satisfies,
)


class _Profile:
    def __init__(self, role):
        self.role = role


def _authed(role):
    return AuthState(user=object(), user_profile=_Profile(role))


@pytest.mark.parametrize(
    "required,actual,expected",
    [
        (None, None, True),
        (None, "user", True),
        ("user", "user", True),
        ("user", "admin", True),
        ("user", "super_admin", True),
        ("admin", "user", False),
        ("admin", "admin", True),
        ("admin", "super_admin", True),
        ("super_admin", "admin", False),
        ("super_admin", "super_admin", True),
        (Role.ADMIN, Role.SUPER_ADMIN, True),
        ("owner", "user", True),
        ("owner", None, True),
        ("admin", None, False),
        ("admin", "root", False),
    ],
)
def test_satisfies(required, actual, expected):
    assert satisfies(required, actual) is expected


def test_role_parse():
    assert Role.parse("Super_Admin") is Role.SUPER_ADMIN
    assert Role.parse(" admin ") is Role.ADMIN
    assert Role.parse("nobody") is None
    assert Role.parse(3) is None
    assert Role.USER < Role.ADMIN < Role.SUPER_ADMIN
    assert Role.SUPER_ADMIN.key == "super_admin"


def test_loading_wins_over_everything():
    state = AuthState(user=object(), user_profile=_Profile("super_admin"), loading=True, config_error="boom")
    assert evaluate_access(state, location="/x") == ShowLoading()


def test_uninitialized_shows_loading():
    assert evaluate_access(AuthState(initialized=False), location="/x") == ShowLoading()


def test_config_error_redirects_to_login_with_origin():
    decision = evaluate_access(AuthState(config_error="bad url"), location="/quotes?page=2")
    assert decision == Redirect("/login", from_location="/quotes?page=2", reason="config_error")


def test_unauthenticated_redirects_to_login():
    decision = evaluate_access(AuthState(initialized=True, user=None), location="/sales", fallback_path="/home")
    assert isinstance(decision, Redirect)
    assert decision.to == "/login"
    assert decision.from_location == "/sales"


def test_custom_login_path():
    decision = evaluate_access(AuthState(), location="/sales", login_path="/auth/sign-in")
    assert decision.to == "/auth/sign-in"


def test_admin_lacking_super_admin_goes_to_fallback_not_login():
    decision = evaluate_access(_authed("admin"), location="/settings", required_role="super_admin")
    assert decision == Redirect("/", reason="forbidden")
    decision = evaluate_access(_authed("admin"), location="/settings", required_role="super_admin", fallback_path="/dashboard")
    assert decision.to == "/dashboard"
    assert decision.from_location is None


def test_authorized_renders():
    assert evaluate_access(_authed("user"), location="/") == Render()
    assert evaluate_access(_authed("admin"), location="/", required_role="user") == Render()
    assert evaluate_access(_authed("user"), location="/", required_role="mystery") == Render()


def test_profile_may_be_a_mapping():
    state = AuthState(user={"id": 1}, user_profile={"role": "super_admin"})
    assert evaluate_access(state, location="/", required_role=Role.SUPER_ADMIN) == Render()


def test_missing_profile_fails_role_check():
    state = AuthState(user=object(), user_profile=None)
    assert evaluate_access(state, location="/", required_role="user") == Redirect("/", reason="forbidden")
    assert evaluate_access(state, location="/") == Render()

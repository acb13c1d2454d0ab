import pytest

from authentication.local_users import get_local_user, reload_users, verify_local_user
from authentication.security import create_access_token, hash_password, token_subject, verify_password


@pytest.fixture
def configured_users(monkeypatch):
    monkeypatch.setenv(
        "DASHBOARD_USERS",
        "Ops@PinIntel.io:s3cret:admin, broken-entry ,guest@pinintel.io:pw:viewer",
    )
    reload_users()
    yield
    monkeypatch.delenv("DASHBOARD_USERS", raising=False)
    reload_users()


def test_users_come_from_environment(configured_users):
    user = verify_local_user("ops@pinintel.io", "s3cret")
    assert user is not None
    assert (user.username, user.role) == ("ops@pinintel.io", "admin")
    assert get_local_user("guest@pinintel.io").role == "viewer"
    assert verify_local_user("ops@pinintel.io", "wrong") is None
    assert get_local_user("admin@pinintel.io") is None


def test_default_users_without_environment():
    reload_users()
    assert get_local_user("admin@pinintel.io").role == "admin"
    assert verify_local_user("viewer@pinintel.io", "viewer123") is not None


def test_env_users_can_log_in(client, configured_users):
    resp = client.post("/auth/login", json={"email": "ops@pinintel.io", "password": "s3cret"})
    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"


def test_password_hashing():
    hashed = hash_password("pw")
    assert hashed != "pw"
    assert verify_password("pw", hashed)
    assert not verify_password("other", hashed)
    assert not verify_password("pw", "not-a-hash")


def test_token_subject():
    token = create_access_token("ops@pinintel.io", "admin")
    assert token_subject(token) == "ops@pinintel.io"
    assert token_subject(token + "x") is None
    assert token_subject("garbage") is None

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from jose import jwt

from app.core.config import settings
from app.core.security import create_session_token, hash_password, verify_password
from app.core.session import SessionStore
from app.models import UserSession


def test_login_success(client: TestClient, test_user, password):
    """Logging in returns the user and a session token and sets the cookie"""
    response = client.post(
        "/api/auth/login",
        json={"username": test_user.username, "password": password},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["username"] == test_user.username
    assert data["sessionToken"]
    assert settings.SESSION_COOKIE_NAME in response.cookies


def test_login_sets_last_login(client: TestClient, test_user, password, db_session):
    client.post("/api/auth/login", json={"username": test_user.username, "password": password})

    db_session.refresh(test_user)
    assert test_user.last_login_at is not None


def test_cookie_authenticates_requests(client: TestClient, test_user, password):
    """The session cookie alone is enough to call the API"""
    client.post("/api/auth/login", json={"username": test_user.username, "password": password})

    response = client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["id"] == test_user.id


def test_login_invalid_credentials(client: TestClient, test_user):
    response = client.post(
        "/api/auth/login",
        json={"username": test_user.username, "password": "wrongpassword"},
    )

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid username or password"


def test_login_unknown_user(client: TestClient):
    response = client.post("/api/auth/login", json={"username": "nobody", "password": "whatever1"})

    assert response.status_code == 401


def test_login_inactive_user(client: TestClient, test_user, password, db_session):
    test_user.is_active = False
    db_session.commit()

    response = client.post(
        "/api/auth/login",
        json={"username": test_user.username, "password": password},
    )

    assert response.status_code == 401


def test_me_requires_session(client: TestClient):
    assert client.get("/api/auth/me").status_code == 401


def test_malformed_authorization_header(client: TestClient):
    response = client.get("/api/auth/me", headers={"Authorization": "Token abc"})

    assert response.status_code == 401


def test_forged_token_rejected(client: TestClient, test_user):
    """A token signed with another secret is not accepted"""
    token = jwt.encode(
        {"sub": str(test_user.id), "sid": "x", "type": "session"},
        "some-other-secret",
        algorithm="HS256",
    )

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_for_unknown_session_rejected(client: TestClient, test_user):
    token = create_session_token(test_user.id, "no-such-session")

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_expired_session_rejected_and_removed(client: TestClient, test_user, db_session):
    session = SessionStore(db_session).create(test_user)
    session.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    db_session.commit()
    token = create_session_token(test_user.id, session.sid)

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert SessionStore(db_session).get(session.sid) is None


def test_logout_destroys_session(client: TestClient, auth_headers, db_session):
    response = client.post("/api/auth/logout", headers=auth_headers)

    assert response.status_code == 200
    assert db_session.query(UserSession).count() == 0
    assert client.get("/api/auth/me", headers=auth_headers).status_code == 401


def test_purge_expired_sessions(db_session, test_user):
    store = SessionStore(db_session)
    live = store.create(test_user)
    stale = store.create(test_user)
    stale.expires_at = datetime.now(timezone.utc) - timedelta(days=1)
    db_session.commit()

    assert store.purge_expired() == 1
    db_session.commit()
    assert [s.sid for s in db_session.query(UserSession).all()] == [live.sid]


def test_admin_creates_user(client: TestClient, admin_auth_headers):
    response = client.post(
        "/api/auth/users",
        json={"name": "New Staff", "username": "newstaff", "password": "password123"},
        headers=admin_auth_headers,
    )

    assert response.status_code == 201
    assert response.json()["isAdmin"] is False
    login = client.post("/api/auth/login", json={"username": "newstaff", "password": "password123"})
    assert login.status_code == 200


def test_duplicate_username(client: TestClient, admin_auth_headers, test_user):
    response = client.post(
        "/api/auth/users",
        json={"name": "Dup", "username": test_user.username, "password": "password123"},
        headers=admin_auth_headers,
    )

    assert response.status_code == 409


def test_non_admin_cannot_create_user(client: TestClient, auth_headers):
    response = client.post(
        "/api/auth/users",
        json={"name": "X Y", "username": "xyuser", "password": "password123"},
        headers=auth_headers,
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"


def test_password_hashing():
    hashed = hash_password("secret-password")

    assert hashed != "secret-password"
    assert verify_password("secret-password", hashed)
    assert not verify_password("wrong", hashed)

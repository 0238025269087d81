"""
Shared pytest fixtures for the Activity Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - acme / globex: two organizations, each with its ADMIN token
    - make_user: creates a user of a given role inside an organization
"""

import pytest

from activity_tracker import create_app
from activity_tracker.models import db as _db

ADMIN_PASSWORD = "Passw0rd!"
USER_PASSWORD = "Member#2024"


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def create_organization(client, name, admin_email, password=ADMIN_PASSWORD):
    """Bootstrap an organization anonymously; returns the response body."""
    res = client.post("/auth/create-organization", json={
        "name": name,
        "adminEmail": admin_email,
        "adminName": f"{name} Admin",
        "adminPassword": password,
    })
    assert res.status_code == 201, res.get_json()
    body = res.get_json()
    body["headers"] = auth_headers(body["token"])
    return body


def login(client, email, password):
    res = client.post("/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.get_json()
    return res.get_json()


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Organization fixtures ────────────────────────────────────────────────


@pytest.fixture()
def acme(client):
    """Organization "Acme" with ADMIN admin@acme.com."""
    return create_organization(client, "Acme", "admin@acme.com")


@pytest.fixture()
def globex(client):
    """A second, unrelated organization."""
    return create_organization(client, "Globex", "admin@globex.com")


@pytest.fixture()
def make_user(client):
    """
    Factory: make_user(org, role, email) → {"user": {...}, "token": ..., "headers": {...}}

    The user is created by the organization's ADMIN through POST /users.
    """
    def _make(org, role="MEMBER", email=None):
        email = email or f"{role.lower()}@{org['organization']['name'].lower()}.com"
        res = client.post("/users", headers=org["headers"], json={
            "email": email, "name": f"{role.title()} User", "role": role, "password": USER_PASSWORD,
        })
        assert res.status_code == 201, res.get_json()
        body = login(client, email, USER_PASSWORD)
        return {"user": body["user"], "token": body["token"], "headers": auth_headers(body["token"])}
    return _make


@pytest.fixture()
def member(acme, make_user):
    return make_user(acme, "MEMBER")


@pytest.fixture()
def pm(acme, make_user):
    return make_user(acme, "PROJECT_MANAGER")


@pytest.fixture()
def pmo(acme, make_user):
    return make_user(acme, "PMO")


@pytest.fixture()
def project(client, acme, member):
    """Acme project with the MEMBER as a member."""
    res = client.post("/projects", headers=acme["headers"], json={
        "name": "Website Relaunch", "memberIds": [member["user"]["id"]],
    })
    assert res.status_code == 201, res.get_json()
    return res.get_json()

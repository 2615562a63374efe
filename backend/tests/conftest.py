"""
Pytest fixtures for cladstock backend tests.

Every test gets a fresh application: SQL over in-memory SQLite by default,
the local JSON backend or no backend on request. `any_app` runs a test once
per real backend.
"""

import pytest

from cladstock import create_app
from cladstock.catalog import ROLE_COUNTER, ROLE_USER
from cladstock.extensions import db
from cladstock.services import item_service, user_service
from cladstock.storage import get_storage


BASE_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SQLALCHEMY_TRACK_MODIFICATIONS": False,
    "BCRYPT_ROUNDS": 4,
    "ANTHROPIC_API_KEY": None,
    "ENFORCE_STOCK_ON_PULL": False,
    "LOG_LEVEL": "WARNING",
    "CORS_ORIGINS": ["http://localhost:5173"],
}


def _make_app(tmp_path, backend: str):
    config = dict(BASE_CONFIG)
    config.update({
        "STORAGE_BACKEND": backend,
        "LOCAL_STORAGE_PATH": str(tmp_path / "cladstock.json"),
        "DATA_DIR": str(tmp_path / "data"),
    })
    return create_app(config)


@pytest.fixture(scope='function')
def app(tmp_path):
    """SQL-backed application (in-memory SQLite) with an app context pushed."""
    app = _make_app(tmp_path, "sql")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def local_app(tmp_path):
    """Application on the local JSON file backend."""
    app = _make_app(tmp_path, "local")
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def unconfigured_app(tmp_path):
    """Application with STORAGE_BACKEND=none."""
    app = _make_app(tmp_path, "none")
    with app.app_context():
        yield app


@pytest.fixture(scope='function', params=["sql", "local"])
def any_app(request, tmp_path):
    app = _make_app(tmp_path, request.param)
    with app.app_context():
        if request.param == "sql":
            db.create_all()
        yield app
        if request.param == "sql":
            db.session.remove()
            db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_user():
    """Factory: create and commit a user in the current app."""
    def _make(name: str, pin: str, role: str = ROLE_USER):
        user = user_service.create_user(name, pin, role)
        get_storage().commit()
        return user
    return _make


@pytest.fixture
def make_item():
    """Factory: create and commit an item in the current app."""
    def _make(**fields):
        fields.setdefault("name", "Test Item")
        item = item_service.create_item(fields)
        get_storage().commit()
        return item
    return _make


@pytest.fixture
def admin(app):
    """Default admin (PIN 1234)."""
    user = user_service.seed_default_user()
    get_storage().commit()
    return user


@pytest.fixture
def counter(app, make_user):
    return make_user("Casey Counter", "2222", ROLE_COUNTER)


@pytest.fixture
def crew(app, make_user):
    return make_user("Riley Crew", "3333", ROLE_USER)


@pytest.fixture
def login(client):
    """Factory: log in by PIN and return Authorization headers."""
    def _login(pin: str) -> dict:
        response = client.post("/api/auth/login", json={"pin": pin})
        assert response.status_code == 200, response.get_json()
        return {"Authorization": f"Bearer {response.get_json()['token']}"}
    return _login


@pytest.fixture
def admin_headers(admin, login):
    return login("1234")


@pytest.fixture
def counter_headers(counter, login):
    return login("2222")


@pytest.fixture
def crew_headers(crew, login):
    return login("3333")

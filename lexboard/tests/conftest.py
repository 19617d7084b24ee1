"""
Shared fixtures: an app wired to a temp SQLite database and temp blob
storage, with report jobs processed in-process after each response.
"""

import sys
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from fastapi.testclient import TestClient

from lexboard.api import create_app
from lexboard.config import Settings
from lexboard.db.models import Case, User, UserRole
from lexboard.db.session import Database
from lexboard.storage import LocalStorage

TEST_SECRET = "test-secret-key-for-lexboard-unit-tests"
MAX_UPLOAD_BYTES = 64 * 1024


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret_key=TEST_SECRET,
        queue_backend="inline",
        storage_path=str(tmp_path / "storage"),
        max_upload_bytes=MAX_UPLOAD_BYTES,
        rate_limit_enabled=False,
    )


@pytest.fixture
def client(settings):
    # Context manager runs the lifespan (resources are opened there)
    with TestClient(create_app(settings)) as c:
        yield c


def register(client, name, email, role="advocate", password="secret1"):
    response = client.post("/auth/register", json={
        "name": name, "email": email, "password": password, "role": role,
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "token": body["token"],
        "user": body["user"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
    }


@pytest.fixture
def advocate_a(client):
    return register(client, "Jane", "jane@x.com", role="advocate")


@pytest.fixture
def advocate_b(client):
    return register(client, "Bob", "bob@x.com", role="advocate")


@pytest.fixture
def paralegal(client):
    return register(client, "Pat", "pat@x.com", role="paralegal")


def create_case(client, who, title="Smith v Jones", description="Contract dispute over late delivery"):
    response = client.post("/cases", json={"title": title, "description": description}, headers=who["headers"])
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# Unit-level fixtures (no HTTP)
# =============================================================================

@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'unit.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.new_session()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(base_path=str(tmp_path / "blobs"))


def make_user(db, name="Ann", email="ann@x.com", role=UserRole.ADVOCATE):
    user = User(name=name, email=email, role=role)
    user.password = "secret1"
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_case(db, owner, title="Doe v Roe", description="Boundary dispute between neighbours"):
    case = Case(title=title, description=description, created_by_user_id=owner.id)
    db.add(case)
    db.commit()
    db.refresh(case)
    return case

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from piinty.core.auth import create_access_token
from piinty.core.config import settings
from piinty.db.session import get_group_store, get_photo_storage
from piinty.main import app
from piinty.models.pint import GroupState, Member
from piinty.repositories.group_repo import GroupRepository
from piinty.repositories.local_store import LocalGroupStore
from piinty.services.photo_service import PhotoStorage


@pytest.fixture
def pub_crew() -> GroupState:
    """The default three-member group with no pints."""
    return GroupState(
        name="The Pub Crew",
        members=(Member(id="Alice"), Member(id="Bob"), Member(id="Charlie")),
    )


@pytest.fixture
def local_store(tmp_path) -> LocalGroupStore:
    return LocalGroupStore(tmp_path / "pint-tracker-data.json")


@pytest.fixture
def photo_storage(tmp_path) -> PhotoStorage:
    return PhotoStorage(directory=tmp_path / "uploads", url_prefix="/photos", max_size=1024)


@pytest.fixture
def test_client(monkeypatch, local_store, photo_storage):
    """FastAPI test client backed by a local JSON store."""
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "RELOAD_AFTER_WRITE", True)

    app.dependency_overrides[get_group_store] = lambda: local_store
    app.dependency_overrides[get_photo_storage] = lambda: photo_storage
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build bearer headers for a member id."""
    def _headers(member_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(member_id)}"}
    return _headers


def _cursor(docs):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


@pytest.fixture
def cursor_of():
    """Fake motor cursor returning the given documents."""
    return _cursor


@pytest.fixture
def mock_db():
    """Fake motor database with one mock per collection."""
    collections = {
        name: MagicMock(name=name)
        for name in ("groups", "group_members", "profiles", "pints")
    }
    for collection in collections.values():
        collection.find_one = AsyncMock(return_value=None)
        collection.insert_one = AsyncMock()
        collection.update_one = AsyncMock()
        collection.delete_one = AsyncMock()
        collection.delete_many = AsyncMock()
        collection.find_one_and_update = AsyncMock(return_value=None)
        collection.find.return_value = _cursor([])

    db = MagicMock()
    db.__getitem__.side_effect = collections.__getitem__
    return db


@pytest.fixture
def mongo_client(monkeypatch, mock_db, photo_storage):
    """FastAPI test client backed by GroupRepository on the mocked database."""
    # Keeps lifespan from connecting to a real server
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")

    app.dependency_overrides[get_group_store] = lambda: GroupRepository(mock_db)
    app.dependency_overrides[get_photo_storage] = lambda: photo_storage
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()

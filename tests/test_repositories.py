import uuid

import mongomock
import pytest
from bson import ObjectId

from taskmaster.db import SQLiteRepository, sqlite_path_from_url
from taskmaster.errors import StartupError
from taskmaster.mongo import MongoRepository
from taskmaster.repositories import InMemoryRepository, get_repository
from taskmaster.settings import Settings


def unique_db() -> str:
    return f"taskmaster_test_{uuid.uuid4().hex}"


@pytest.fixture(params=["memory", "sqlite", "mongo"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryRepository()
    if request.param == "sqlite":
        return SQLiteRepository(str(tmp_path / "data" / "tasks.db"))
    return MongoRepository(mongomock.MongoClient(), unique_db())


class TestRepositoryContract:
    def test_starts_empty(self, store):
        assert store.list() == []

    def test_create_returns_entity(self, store):
        entity = store.create("Buy milk")
        assert entity["text"] == "Buy milk"
        assert isinstance(entity["id"], str) and entity["id"]
        assert entity["created_at"].tzinfo is not None

    def test_created_entity_matches_listed(self, store):
        entity = store.create("Buy milk")
        assert store.list() == [entity]

    def test_list_in_creation_order(self, store):
        texts = [f"Task {i}" for i in range(8)]
        for text in texts:
            store.create(text)
        items = store.list()
        assert [t["text"] for t in items] == texts
        created = [t["created_at"] for t in items]
        assert created == sorted(created)

    def test_ids_are_unique(self, store):
        ids = [store.create(f"Task {i}")["id"] for i in range(10)]
        assert len(set(ids)) == 10

    def test_delete_reports_removal(self, store):
        entity = store.create("Temp")
        assert store.delete(entity["id"]) is True
        assert store.list() == []
        assert store.delete(entity["id"]) is False

    def test_delete_leaves_others(self, store):
        keep = store.create("Keep")
        drop = store.create("Drop")
        store.delete(drop["id"])
        assert [t["id"] for t in store.list()] == [keep["id"]]

    def test_ids_not_reused_after_delete(self, store):
        first = store.create("First")
        store.delete(first["id"])
        second = store.create("Second")
        assert second["id"] != first["id"]


class TestSQLite:
    def test_data_survives_reopen(self, tmp_path):
        path = str(tmp_path / "tasks.db")
        created = SQLiteRepository(path).create("Persist me")
        assert SQLiteRepository(path).list() == [created]

    def test_ping(self, tmp_path):
        SQLiteRepository(str(tmp_path / "tasks.db")).ping()

    def test_path_from_url(self):
        assert sqlite_path_from_url("sqlite:///data/tasks.db") == "data/tasks.db"
        assert sqlite_path_from_url("sqlite:////var/lib/tasks.db") == "/var/lib/tasks.db"
        with pytest.raises(ValueError):
            sqlite_path_from_url("postgres://localhost/db")


class TestMongo:
    def test_id_is_object_id_hex(self):
        store = MongoRepository(mongomock.MongoClient(), unique_db())
        entity = store.create("Buy milk")
        assert ObjectId.is_valid(entity["id"])

    def test_document_layout(self):
        client = mongomock.MongoClient()
        db_name = unique_db()
        store = MongoRepository(client, db_name)
        entity = store.create("Buy milk")
        doc = client[db_name]["tasks"].find_one({"_id": ObjectId(entity["id"])})
        assert doc["text"] == "Buy milk"
        assert "createdAt" in doc

    def test_delete_malformed_id_is_absent(self):
        store = MongoRepository(mongomock.MongoClient(), unique_db())
        store.create("Stay")
        assert store.delete("not-an-object-id") is False
        assert len(store.list()) == 1


class TestGetRepository:
    def test_memory_scheme(self):
        assert isinstance(get_repository(Settings(storage_url="memory://")), InMemoryRepository)

    def test_sqlite_scheme(self, tmp_path):
        repo = get_repository(Settings(storage_url=f"sqlite:///{tmp_path}/tasks.db"))
        assert isinstance(repo, SQLiteRepository)

    def test_mongo_scheme(self, monkeypatch):
        monkeypatch.setattr("taskmaster.mongo.MongoClient", mongomock.MongoClient)
        repo = get_repository(Settings(storage_url="mongodb://localhost:27017/tasks"))
        assert isinstance(repo, MongoRepository)

    @pytest.mark.parametrize("url", ["postgres://localhost/db", "not a url"])
    def test_unsupported_scheme(self, url):
        with pytest.raises(StartupError):
            get_repository(Settings(storage_url=url))

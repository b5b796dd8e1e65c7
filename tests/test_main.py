import json

import pytest
from fastapi.testclient import TestClient

from taskmaster import main
from taskmaster.errors import StartupError
from taskmaster.generate_openapi import generate_openapi
from taskmaster.main import create_app
from taskmaster.repositories import InMemoryRepository
from taskmaster.settings import Settings

from conftest import UnreachableRepository


class TestLifespan:
    def test_store_opened_from_settings(self):
        app = create_app(Settings(storage_url="memory://"))
        with TestClient(app) as c:
            assert isinstance(app.state.repository, InMemoryRepository)
            created = c.post("/api/tasks", json={"text": "Persist"}).json()
            assert c.get("/api/tasks").json() == [created]
        assert app.state.repository is None

    def test_sqlite_store_from_settings(self, tmp_path):
        app = create_app(Settings(storage_url=f"sqlite:///{tmp_path}/tasks.db"))
        with TestClient(app) as c:
            assert c.post("/api/tasks", json={"text": "On disk"}).status_code == 201
        assert (tmp_path / "tasks.db").exists()

    def test_unsupported_store_aborts_startup(self):
        app = create_app(Settings(storage_url="redis://localhost"))
        with pytest.raises(StartupError):
            with TestClient(app):
                pass

    def test_unreachable_store_aborts_startup(self, monkeypatch):
        monkeypatch.setattr(main, "get_repository", lambda settings: UnreachableRepository())
        app = create_app(Settings(storage_url="mongodb://db.internal:27017/tasks"))
        with pytest.raises(StartupError):
            with TestClient(app):
                pass

    def test_injected_store_is_left_open(self, repo):
        app = create_app(Settings(storage_url="memory://"), repository=repo)
        with TestClient(app):
            pass
        assert app.state.repository is repo


class TestRun:
    def test_missing_configuration_exits(self, monkeypatch):
        for name in ("STORAGE_URL", "MONGODB_URI", "MONGO_URI"):
            monkeypatch.delenv(name, raising=False)
        served = []
        monkeypatch.setattr(main.uvicorn, "run", lambda *a, **kw: served.append(a))
        with pytest.raises(SystemExit) as exc_info:
            main.run()
        assert exc_info.value.code == 1
        assert served == []

    def test_serves_on_configured_port(self, monkeypatch):
        monkeypatch.setenv("STORAGE_URL", "memory://")
        monkeypatch.setenv("PORT", "6123")
        served = {}
        monkeypatch.setattr(main.uvicorn, "run", lambda app, **kw: served.update(kw))
        main.run()
        assert served["port"] == 6123
        assert served["host"] == "0.0.0.0"


class TestGenerateOpenAPI:
    def test_writes_schema(self, tmp_path):
        out = generate_openapi(str(tmp_path / "interfaces" / "openapi.json"))
        with open(out, encoding="utf-8") as f:
            schema = json.load(f)
        assert "/api/tasks" in schema["paths"]
        assert "/api/tasks/{task_id}" in schema["paths"]
        assert {t["name"] for t in schema["tags"]} >= {"health", "tasks"}
        task_schema = schema["components"]["schemas"]["TaskOut"]
        assert "createdAt" in task_schema["properties"]

import pytest
from fastapi.testclient import TestClient

from taskmaster.errors import StorageError, ValidationError
from taskmaster.main import create_app
from taskmaster.service import TaskService

from conftest import UnreachableRepository


@pytest.fixture
def failing_client(settings):
    app = create_app(settings, repository=UnreachableRepository())
    with TestClient(app) as c:
        yield c


def assert_generic_storage_error(res, message):
    assert res.status_code == 500
    body = res.json()
    assert body == {"error": "StorageError", "message": message}
    # Store internals never leak to the client
    assert "mongodb" not in res.text
    assert "s3cret" not in res.text


class TestUnreachableStore:
    def test_list_returns_storage_error(self, failing_client):
        res = failing_client.get("/api/tasks")
        assert_generic_storage_error(res, "Failed to fetch tasks")

    def test_create_returns_storage_error(self, failing_client):
        res = failing_client.post("/api/tasks", json={"text": "Buy milk"})
        assert_generic_storage_error(res, "Failed to add task")

    def test_delete_returns_storage_error(self, failing_client):
        res = failing_client.delete("/api/tasks/abc123")
        assert_generic_storage_error(res, "Failed to delete task")

    def test_validation_runs_before_storage(self, failing_client):
        res = failing_client.post("/api/tasks", json={"text": "  "})
        assert res.status_code == 400
        assert res.json()["error"] == "ValidationError"

    def test_health_check_still_served(self, failing_client):
        assert failing_client.get("/").status_code == 200


class TestTaskService:
    def test_storage_failure_is_chained(self):
        service = TaskService(UnreachableRepository())
        with pytest.raises(StorageError) as exc_info:
            service.list_tasks()
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.message == "Failed to fetch tasks"

    def test_blank_text_never_reaches_store(self, repo):
        service = TaskService(repo)
        for text in [None, "", "   "]:
            with pytest.raises(ValidationError):
                service.create_task(text)
        assert repo.calls == []

    def test_delete_absent_id_succeeds(self, repo):
        service = TaskService(repo)
        assert service.delete_task("missing") is None
        assert repo.calls == ["delete"]


class TestFallbackHandler:
    def test_unexpected_exception_is_hidden(self, settings, repo):
        app = create_app(settings, repository=repo)

        @app.get("/boom")
        def boom():
            raise RuntimeError("secret internal detail")

        with TestClient(app, raise_server_exceptions=False) as c:
            res = c.get("/boom")
        assert res.status_code == 500
        assert res.json() == {"error": "InternalError", "message": "Internal server error"}
        assert "secret" not in res.text

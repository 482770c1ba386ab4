import pytest
from fastapi.testclient import TestClient

from newsletter_agent.config import NewsletterConfig
from newsletter_agent.document import PreHeader
from newsletter_agent.workspace import Workspace
from newsletter_api.api.deps import get_orchestrator, get_workspace
from newsletter_api.main import app

from conftest import FakeClient, FakeFeed


@pytest.fixture
def workspace(config, tmp_path) -> Workspace:
    return Workspace(config, tmp_path / "api")


@pytest.fixture
def client(workspace, articles):
    orchestrator = workspace.orchestrator(client=FakeClient(), feed=FakeFeed(articles))
    app.dependency_overrides[get_workspace] = lambda: workspace
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_get_issue(client):
    response = client.get("/v1/issue")

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Untitled issue"
    assert data["state"] == "idle"
    assert "lead_story" in data["sections"]["sections"]


def test_generate(client, workspace):
    response = client.post("/v1/issue/generate", json={"topic": "sleep"})

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "completed"
    assert data["issues"] == []
    assert data["usage"]["input_tokens"] > 0
    assert data["snapshot_id"] == workspace.history.list()[0].id


def test_generate_without_credential(tmp_path, articles):
    workspace = Workspace(NewsletterConfig(data_dir=tmp_path), tmp_path)
    orchestrator = workspace.orchestrator(client=FakeClient(), feed=FakeFeed(articles))
    app.dependency_overrides[get_workspace] = lambda: workspace
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    try:
        response = TestClient(app).post("/v1/issue/generate", json={})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["state"] == "idle"
    assert "API key" in response.json()["status"]


def test_refresh_section(client):
    response = client.post("/v1/issue/sections/word_of_the_day/refresh", json={"hint": "sleep"})

    assert response.status_code == 200
    data = response.json()
    assert data["succeeded"] is True
    assert data["section"]["word"] == "Senolytic"


def test_refresh_unknown_section(client):
    response = client.post("/v1/issue/sections/preheader/refresh", json={})

    assert response.status_code == 404


def test_history_flow(client, workspace):
    workspace.store.update_section("preheader", lambda _: PreHeader(subject_line="Old issue"))
    client.post("/v1/issue/generate", json={})

    entries = client.get("/v1/history").json()
    assert [e["title"] for e in entries] == ["Old issue"]

    response = client.post(f"/v1/history/{entries[0]['id']}/restore")
    assert response.status_code == 200
    assert response.json()["title"] == "Old issue"
    assert client.get("/v1/issue").json()["title"] == "Old issue"

    assert client.delete(f"/v1/history/{entries[0]['id']}").status_code == 204
    assert client.delete(f"/v1/history/{entries[0]['id']}").status_code == 204
    assert client.get("/v1/history").json() == []


def test_restore_unknown_is_404(client):
    response = client.post("/v1/history/missing/restore")

    assert response.status_code == 404
    assert "missing" in response.json()["detail"]


def test_clear_history(client, workspace):
    client.post("/v1/issue/generate", json={})

    assert client.delete("/v1/history").status_code == 204
    assert len(workspace.history) == 0


def test_generate_while_running_is_409(client, workspace, monkeypatch):
    from newsletter_agent.errors import PipelineBusy
    from newsletter_agent.orchestrator import NewsletterOrchestrator

    def busy(self, topic=None):
        raise PipelineBusy("A newsletter run is already in progress")

    monkeypatch.setattr(NewsletterOrchestrator, "run", busy)

    response = client.post("/v1/issue/generate", json={})

    assert response.status_code == 409


def test_failed_generate_still_saves_history(config, workspace, tmp_path):
    class BrokenFeed(FakeFeed):
        def fetch_article_pool(self, days_back=7, now=None):
            raise RuntimeError("boom")

    orchestrator = workspace.orchestrator(client=FakeClient(), feed=BrokenFeed())
    app.dependency_overrides[get_workspace] = lambda: workspace
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    try:
        response = TestClient(app, raise_server_exceptions=False).post("/v1/issue/generate", json={})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert len(Workspace(config, tmp_path / "api").history) == 1

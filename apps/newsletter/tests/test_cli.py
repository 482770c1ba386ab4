"""Tests for the newsletter CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from newsletter_agent.cli import app
from newsletter_agent.document import OpeningHook, PreHeader
from newsletter_agent.workspace import Workspace

from conftest import FakeClient, FakeFeed

runner = CliRunner()

NO_KEY = {"ANTHROPIC_API_KEY": "", "NEWSLETTER_MODEL": "claude-sonnet-4-20250514", "NEWSLETTER_TEST_MODE": ""}
WITH_KEY = dict(NO_KEY, ANTHROPIC_API_KEY="test-key")


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def fake_services(monkeypatch, articles):
    """Route every CLI-built orchestrator to the fake client and feed."""
    original = Workspace.orchestrator

    def orchestrator(self, client=None, feed=None, on_progress=None):
        return original(self, FakeClient(), FakeFeed(articles), on_progress)

    monkeypatch.setattr(Workspace, "orchestrator", orchestrator)


@pytest.fixture
def saved_issues(config, data_dir) -> list[str]:
    """Two history entries, newest first."""
    workspace = Workspace(config, data_dir)
    for title in ("First issue", "Second issue"):
        workspace.store.update_section("preheader", lambda p, t=title: PreHeader(subject_line=t))
        workspace.history.snapshot(workspace.store.get())
    workspace.save_history()
    return [e.id for e in workspace.history.list()]


class TestGenerateCommand:
    def test_missing_credential(self, data_dir: Path):
        result = runner.invoke(app, ["generate", "--data-dir", str(data_dir)], env=NO_KEY)

        assert result.exit_code == 1
        assert "ANTHROPIC_API_KEY" in result.output
        assert not (data_dir / "history.json").exists() or json.loads((data_dir / "history.json").read_text()) == []

    def test_generate(self, data_dir: Path, fake_services):
        result = runner.invoke(app, ["generate", "--data-dir", str(data_dir)], env=WITH_KEY)

        assert result.exit_code == 0, result.output
        assert "12 of 12 steps succeeded" in result.output
        document = json.loads((data_dir / "document.json").read_text())
        assert document["sections"]["word_of_the_day"]["word"] == "Senolytic"
        assert len(json.loads((data_dir / "history.json").read_text())) == 1

    def test_verbose_prints_steps(self, data_dir: Path, fake_services):
        result = runner.invoke(app, ["generate", "--data-dir", str(data_dir), "--verbose"], env=WITH_KEY)

        assert result.exit_code == 0, result.output
        assert "Step 1 of 12" in result.output

    def test_failed_run_still_saves_history(self, config, data_dir: Path, monkeypatch):
        class BrokenFeed(FakeFeed):
            def fetch_article_pool(self, days_back=7, now=None):
                raise RuntimeError("boom")

        original = Workspace.orchestrator

        def orchestrator(self, client=None, feed=None, on_progress=None):
            return original(self, FakeClient(), BrokenFeed(), on_progress)

        monkeypatch.setattr(Workspace, "orchestrator", orchestrator)

        result = runner.invoke(app, ["generate", "--data-dir", str(data_dir)], env=WITH_KEY)

        assert result.exit_code != 0
        assert isinstance(result.exception, RuntimeError)
        assert len(Workspace(config, data_dir).history) == 1


class TestRefreshCommand:
    def test_unknown_section(self, data_dir: Path):
        result = runner.invoke(app, ["refresh", "preheader", "--data-dir", str(data_dir)], env=WITH_KEY)

        assert result.exit_code == 1
        assert "Unknown section" in result.output

    def test_refresh(self, data_dir: Path, fake_services):
        result = runner.invoke(app, ["refresh", "word_of_the_day", "--data-dir", str(data_dir)], env=WITH_KEY)

        assert result.exit_code == 0, result.output
        document = json.loads((data_dir / "document.json").read_text())
        assert document["sections"]["word_of_the_day"]["word"] == "Senolytic"


class TestShowAndExport:
    """Tests for previewing and exporting the issue."""

    @pytest.fixture(autouse=True)
    def hook(self, config, data_dir):
        workspace = Workspace(config, data_dir)
        workspace.store.update_section(
            "opening_hook", lambda _: OpeningHook(content="Hello {{LINK:readers|https://example.com}}")
        )

    def test_show(self, data_dir: Path):
        result = runner.invoke(app, ["show", "--data-dir", str(data_dir)])

        assert result.exit_code == 0
        assert "Hello readers" in result.output

    def test_export_html_to_file(self, data_dir: Path, tmp_path: Path):
        output = tmp_path / "issue.html"
        result = runner.invoke(app, ["export", "--data-dir", str(data_dir), "--output", str(output)])

        assert result.exit_code == 0
        assert 'href="https://example.com"' in output.read_text()

    def test_export_section_text(self, data_dir: Path):
        result = runner.invoke(app, ["export", "--data-dir", str(data_dir), "--section", "opening_hook"])

        assert result.exit_code == 0
        assert result.output.strip() == "Hello readers"


class TestHistoryCommands:
    """Tests for listing, restoring and deleting history."""

    def test_list_json(self, data_dir: Path, saved_issues):
        result = runner.invoke(app, ["history", "list", "--data-dir", str(data_dir), "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [e["id"] for e in data] == saved_issues
        assert data[0]["title"] == "Second issue"

    def test_list_empty(self, data_dir: Path):
        result = runner.invoke(app, ["history", "list", "--data-dir", str(data_dir)])

        assert result.exit_code == 0
        assert "No saved issues" in result.output

    def test_restore_by_prefix(self, config, data_dir: Path, saved_issues):
        result = runner.invoke(app, ["history", "restore", saved_issues[1][:8], "--data-dir", str(data_dir)])

        assert result.exit_code == 0, result.output
        assert Workspace(config, data_dir).store.get().title == "First issue"

    def test_restore_unknown(self, data_dir: Path, saved_issues):
        result = runner.invoke(app, ["history", "restore", "nope", "--data-dir", str(data_dir)])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_delete_and_clear(self, config, data_dir: Path, saved_issues):
        runner.invoke(app, ["history", "delete", saved_issues[0], "--data-dir", str(data_dir)])
        assert len(Workspace(config, data_dir).history) == 1

        result = runner.invoke(app, ["history", "clear", "--yes", "--data-dir", str(data_dir)])
        assert result.exit_code == 0
        assert len(Workspace(config, data_dir).history) == 0


class TestSourcesCommands:
    def test_add_toggle_remove(self, config, data_dir: Path):
        result = runner.invoke(app, ["sources", "add", "Lab", "https://lab.example", "--data-dir", str(data_dir)])
        assert result.exit_code == 0

        runner.invoke(app, ["sources", "toggle", "Lab", "--data-dir", str(data_dir)])
        sources = {s.name: s for s in Workspace(config, data_dir).sources}
        assert sources["Lab"].enabled is False

        runner.invoke(app, ["sources", "remove", "Lab", "--data-dir", str(data_dir)])
        assert "Lab" not in {s.name for s in Workspace(config, data_dir).sources}

    def test_toggle_unknown(self, data_dir: Path):
        result = runner.invoke(app, ["sources", "toggle", "Nope", "--data-dir", str(data_dir)])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestGameCommands:
    def test_rotate_persists(self, config, data_dir: Path):
        before = Workspace(config, data_dir).game
        result = runner.invoke(app, ["game", "rotate", "--data-dir", str(data_dir)])

        assert result.exit_code == 0
        assert Workspace(config, data_dir).game != before


class TestHelpText:
    def test_main_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Newsletter agent CLI" in result.output

    def test_generate_help(self):
        result = runner.invoke(app, ["generate", "--help"])
        assert result.exit_code == 0
        assert "--topic" in result.output
        assert "--data-dir" in result.output

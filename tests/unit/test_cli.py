"""Unit tests for the command line interface."""

import pytest
from click.testing import CliRunner
from unittest.mock import patch

from ebook_studio.cli import cli
from ebook_studio.models import BookStyle, ProjectStatus
from ebook_studio.services.orchestrator import GenerationOrchestrator


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("ebook_studio.web.app.configure_logging"):
        yield


def _use(orchestrator):
    return patch("ebook_studio.cli._build_orchestrator", return_value=orchestrator)


class TestGenerateCommand:
    def test_generate_runs_pipeline(self, runner, store, fake_ai):
        with _use(GenerationOrchestrator(store, fake_ai)):
            result = runner.invoke(cli, ["generate", "--user-id", "u", "--style", "vibrant", "--target", "es"])

        assert result.exit_code == 0, result.output
        assert "Created project" in result.output
        projects = store.list_projects("u")
        assert len(projects) == 1
        assert projects[0].status == ProjectStatus.COMPLETED
        assert projects[0].style == BookStyle.VIBRANT
        assert projects[0].target_languages == ["es"]

    def test_generate_exits_non_zero_on_failure(self, runner, store, make_ai):
        with _use(GenerationOrchestrator(store, make_ai(outline=[]))):
            result = runner.invoke(cli, ["generate", "--user-id", "u"])

        assert result.exit_code == 1
        assert store.list_projects("u")[0].status == ProjectStatus.FAILED

    def test_generate_rejects_unknown_style(self, runner):
        result = runner.invoke(cli, ["generate", "--user-id", "u", "--style", "baroque"])
        assert result.exit_code == 2


class TestStatusCommands:
    def test_status_unknown_project(self, runner, store, fake_ai):
        with _use(GenerationOrchestrator(store, fake_ai)):
            result = runner.invoke(cli, ["status", "missing"])
        assert result.exit_code == 1
        assert "Project not found" in result.output

    def test_status_shows_progress(self, runner, store, fake_ai):
        project = store.create_project(user_id="u", title="Oats", style=BookStyle.MINIMALIST)
        store.set_progress(project.id, ProjectStatus.GENERATING, 43, "Chapter 1/3")

        with _use(GenerationOrchestrator(store, fake_ai)):
            result = runner.invoke(cli, ["status", project.id])

        assert result.exit_code == 0
        assert "generating" in result.output
        assert "43%" in result.output

    def test_list_empty(self, runner, store, fake_ai):
        with _use(GenerationOrchestrator(store, fake_ai)):
            result = runner.invoke(cli, ["list", "--user-id", "nobody"])
        assert result.exit_code == 0
        assert "No projects found." in result.output

    def test_list_projects(self, runner, store, fake_ai):
        store.create_project(user_id="u", title="Oats", style=BookStyle.MINIMALIST)
        with _use(GenerationOrchestrator(store, fake_ai)):
            result = runner.invoke(cli, ["list", "--user-id", "u"])
        assert result.exit_code == 0
        assert "Oats" in result.output


def test_init_db(runner):
    with patch("ebook_studio.cli.ProjectStore") as store_cls:
        result = runner.invoke(cli, ["init-db"])
    assert result.exit_code == 0
    store_cls.return_value.ensure_indexes.assert_called_once_with()

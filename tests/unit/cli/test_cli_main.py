"""Unit tests for cli.main module (typer commands)."""

import json
import logging
import re

import pytest
from typer.testing import CliRunner

from src.cli.main import app
from src.cli.models import ExitCode
from tests.fixtures.page_trees import remove_node, sample_page_wire

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Commands attach handlers to the 'src' logger; drop them between tests."""
    yield
    app_logger = logging.getLogger("src")
    app_logger.handlers.clear()
    app_logger.setLevel(logging.INFO)


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / ".page-sync" / "config.yaml")


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / "data")


def invoke(config_path, *args):
    return runner.invoke(app, ["--config", config_path, *args])


@pytest.fixture
def initialized(config_path, data_dir):
    result = invoke(config_path, "init", "--locales", "en,fi", "--data-dir", data_dir)
    assert result.exit_code == 0, result.output
    return config_path


@pytest.fixture
def page_id(initialized):
    result = invoke(initialized, "create", "about", "About us")
    assert result.exit_code == 0, result.output
    return re.search(r"page_id: (\w+)", result.output).group(1)


@pytest.fixture
def tree_file(tmp_path):
    def write(wire, name="tree.json"):
        path = tmp_path / name
        path.write_text(json.dumps(wire), encoding="utf-8")
        return str(path)
    return write


def current_version(config_path, page_id):
    result = invoke(config_path, "status", page_id)
    assert result.exit_code == 0, result.output
    return re.search(r"version (v\d+)", result.output).group(1)


class TestGlobalOptions:
    """Test cases for the app callback."""

    def test_app_version(self):
        result = runner.invoke(app, ["--app-version"])

        assert result.exit_code == 0
        assert "page-sync version" in result.output

    def test_missing_config(self, config_path):
        result = invoke(config_path, "list")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "not found" in result.output

    def test_logdir_creates_log_file(self, initialized, tmp_path):
        logdir = tmp_path / "logs"

        result = runner.invoke(
            app, ["--config", initialized, "--verbosity", "1", "--logdir", str(logdir), "list"]
        )

        assert result.exit_code == 0, result.output
        assert len(list(logdir.glob("page-sync_*.log"))) == 1


class TestInit:
    """Test cases for the init command."""

    def test_init_writes_config(self, initialized, data_dir):
        with open(initialized, encoding="utf-8") as f:
            content = f.read()

        assert "default_locale: en" in content
        assert data_dir in content

    def test_init_refuses_to_overwrite(self, initialized):
        result = invoke(initialized, "init", "--locales", "en")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "--force" in result.output

    def test_init_force(self, initialized, data_dir):
        result = invoke(
            initialized, "init", "--locales", "fi,en", "--data-dir", data_dir, "--force"
        )

        assert result.exit_code == 0
        with open(initialized, encoding="utf-8") as f:
            assert "default_locale: fi" in f.read()

    def test_init_rejects_bad_locale(self, config_path):
        result = invoke(config_path, "init", "--locales", "en,Finnish")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Configuration error" in result.output


class TestTreeCommands:
    """Test cases for validate and diff, which need no page store."""

    def test_validate_valid_tree(self, initialized, tree_file):
        result = invoke(initialized, "validate", tree_file(sample_page_wire()))

        assert result.exit_code == 0
        assert "4 node(s)" in result.output

    def test_validate_invalid_tree(self, initialized, tree_file):
        wire = sample_page_wire()
        wire["S1"]["nodes"].append("GHOST")

        result = invoke(initialized, "validate", tree_file(wire))

        assert result.exit_code == ExitCode.INTEGRITY_ERROR

    def test_validate_strict(self, initialized, tree_file):
        wire = sample_page_wire()
        wire["T1"]["props"]["shadow"] = "lg"
        path = tree_file(wire)

        assert invoke(initialized, "validate", path).exit_code == 0
        assert invoke(initialized, "validate", path, "--strict").exit_code == ExitCode.INTEGRITY_ERROR

    def test_diff(self, initialized, tree_file):
        baseline = tree_file(sample_page_wire(), "before.json")
        edited = tree_file(remove_node(sample_page_wire(), "B1"), "after.json")

        result = invoke(initialized, "diff", baseline, edited)

        assert result.exit_code == 0
        assert "Structural changes (1):" in result.output
        assert "delete 'B1'" in result.output


class TestPageCommands:
    """Test cases for commands that work on stored pages."""

    def test_create_and_list(self, initialized, page_id):
        result = invoke(initialized, "list")

        assert result.exit_code == 0
        assert page_id in result.output
        assert "about" in result.output

    def test_duplicate_slug(self, initialized, page_id):
        result = invoke(initialized, "create", "about", "Again")

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "already exists" in result.output

    def test_save_propagates_to_other_locales(self, initialized, page_id, tree_file, tmp_path):
        result = invoke(
            initialized, "save", page_id, "en", tree_file(sample_page_wire()), "--version", "v1"
        )
        assert result.exit_code == 0, result.output
        assert "Saved as version v2" in result.output

        out = tmp_path / "fi.json"
        result = invoke(initialized, "export", page_id, "fi", "-o", str(out))
        assert result.exit_code == 0, result.output

        fi_wire = json.loads(out.read_text(encoding="utf-8"))
        assert fi_wire["S1"]["nodes"] == ["T1", "B1"]
        # No translator configured: new text is copied verbatim
        assert fi_wire["T1"]["props"]["text"] == "Welcome"

    def test_save_with_stale_version(self, initialized, page_id, tree_file):
        path = tree_file(sample_page_wire())
        invoke(initialized, "save", page_id, "en", path, "--version", "v1")

        result = invoke(initialized, "save", page_id, "en", path, "--version", "v1")

        assert result.exit_code == ExitCode.CONFLICT
        assert "Re-export" in result.output

    def test_save_invalid_tree(self, initialized, page_id, tree_file):
        wire = sample_page_wire()
        del wire["ROOT"]

        result = invoke(initialized, "save", page_id, "en", tree_file(wire), "--version", "v1")

        assert result.exit_code == ExitCode.INTEGRITY_ERROR
        assert current_version(initialized, page_id) == "v1"

    def test_save_with_seo_title(self, initialized, page_id, tree_file):
        result = invoke(
            initialized, "save", page_id, "en", tree_file(sample_page_wire()),
            "--version", "v1", "--seo-title", "About us",
        )

        assert result.exit_code == 0, result.output

    def test_status_and_review(self, initialized, page_id, tree_file):
        invoke(initialized, "save", page_id, "en", tree_file(sample_page_wire()), "--version", "v1")

        result = invoke(initialized, "status", page_id)
        assert result.exit_code == 0, result.output
        assert "about (draft), version v2" in result.output
        assert "Needs review in fi: B1, T1" in result.output

        result = invoke(initialized, "review", page_id, "T1", "fi")
        assert result.exit_code == 0, result.output
        assert "Needs review in fi: B1" in invoke(initialized, "status", page_id).output

    def test_sync_flags_are_exclusive(self, initialized, page_id):
        result = invoke(
            initialized, "sync", page_id, "en", "fi", "--version", "v1",
            "--override", "--missing-only",
        )

        assert result.exit_code == ExitCode.GENERAL_ERROR

    def test_sync_missing_only(self, initialized, page_id, tree_file):
        invoke(initialized, "save", page_id, "en", tree_file(sample_page_wire()), "--version", "v1")

        result = invoke(initialized, "sync", page_id, "en", "fi", "--version", "v2", "--missing-only")

        assert result.exit_code == 0, result.output
        assert "Saved as version v3" in result.output

    def test_publish_and_unpublish(self, initialized, page_id, tree_file, tmp_path):
        invoke(initialized, "save", page_id, "en", tree_file(sample_page_wire()), "--version", "v1")

        result = invoke(initialized, "publish", page_id)
        assert result.exit_code == 0, result.output
        assert "Published" in result.output

        out = tmp_path / "live.json"
        result = invoke(initialized, "export", page_id, "fi", "--published", "-o", str(out))
        assert result.exit_code == 0, result.output
        assert "T1" in json.loads(out.read_text(encoding="utf-8"))

        assert invoke(initialized, "unpublish", page_id).exit_code == 0
        assert invoke(initialized, "unpublish", page_id).exit_code == ExitCode.GENERAL_ERROR

    def test_delete_locale(self, initialized, page_id, tree_file):
        invoke(initialized, "save", page_id, "en", tree_file(sample_page_wire()), "--version", "v1")

        result = invoke(initialized, "delete-locale", page_id, "fi", "--version", "v2")

        assert result.exit_code == 0, result.output
        assert "version v3" in result.output
        last = invoke(initialized, "delete-locale", page_id, "en", "--version", "v3")
        assert last.exit_code == ExitCode.GENERAL_ERROR

    def test_deepl_without_key(self, config_path, data_dir, tree_file, mocker, monkeypatch):
        mocker.patch("src.translation_client.auth.load_dotenv")
        monkeypatch.delenv("DEEPL_API_KEY", raising=False)
        invoke(
            config_path, "init", "--locales", "en,fi", "--data-dir", data_dir,
            "--translation", "deepl",
        )
        created = invoke(config_path, "create", "about", "About us")
        page_id = re.search(r"page_id: (\w+)", created.output).group(1)

        result = invoke(
            config_path, "save", page_id, "en", tree_file(sample_page_wire()), "--version", "v1"
        )

        assert result.exit_code == ExitCode.NETWORK_ERROR
        assert "API key" in result.output

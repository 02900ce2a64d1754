"""Tests for the skillpack command line."""

from __future__ import annotations

import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from rich.console import Console

from skillpack import cli
from skillpack.cli import main
from skillpack.config import ConfigStore
from skillpack.errors import AuthenticationError
from skillpack.remote import (
    LatestVersion,
    PublishedSkill,
    PublishResult,
    SearchResponse,
    SearchResult,
)

API_KEY = "sk-test-0123456789"

SKILL_MD = """---
name: bar
description: Summarize quarterly reports into slides
---
# Bar
"""


@pytest.fixture(autouse=True)
def plain_consoles(monkeypatch):
    """Wide, colorless consoles so assertions see plain text."""
    monkeypatch.setattr(cli, "console", Console(color_system=None, width=200))
    monkeypatch.setattr(cli, "err_console", Console(stderr=True, color_system=None, width=200))


@pytest.fixture(autouse=True)
def home(tmp_path, monkeypatch):
    d = tmp_path / "home"
    monkeypatch.setenv("SKILLPACK_HOME", str(d))
    return d


@pytest.fixture(autouse=True)
def no_git():
    with patch("skillpack.collector.git_user_name", return_value=""):
        yield


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def logged_in(home):
    ConfigStore(home).save_api_key(API_KEY)


@pytest.fixture
def skill_dir(runner, tmp_path):
    result = runner.invoke(main, ["init", "my-skill", "--dir", str(tmp_path)])
    assert result.exit_code == 0, result.output
    return tmp_path / "my-skill"


@pytest.fixture
def registry():
    with patch("skillpack.cli.RegistryClient") as mock_cls:
        mock_cls.return_value.api_key = API_KEY
        yield mock_cls.return_value


class TestInitCommand:
    def test_init_with_name(self, runner, tmp_path):
        result = runner.invoke(main, ["init", "my-skill", "--dir", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "Skill initialized" in result.output
        assert (tmp_path / "my-skill" / "skill.json").is_file()

    def test_init_yes_uses_default_name(self, runner, tmp_path):
        result = runner.invoke(main, ["init", "--yes", "--dir", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "my-new-skill").is_dir()

    def test_init_invalid_name(self, runner, tmp_path):
        result = runner.invoke(main, ["init", "Bad_Name", "--dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "Invalid skill name" in result.output
        assert not (tmp_path / "Bad_Name").exists()

    def test_init_existing_directory(self, runner, tmp_path):
        (tmp_path / "my-skill").mkdir()
        result = runner.invoke(main, ["init", "my-skill", "--dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_interactive(self, runner, tmp_path):
        result = runner.invoke(
            main,
            ["init", "--dir", str(tmp_path)],
            input="chart-maker\nTurns spreadsheets into charts\nAda\nMIT\n\ncharts\n",
        )
        assert result.exit_code == 0, result.output
        assert (tmp_path / "chart-maker" / "skill.json").is_file()


class TestValidateCommand:
    def test_valid(self, runner, skill_dir):
        result = runner.invoke(main, ["validate", str(skill_dir)])
        assert result.exit_code == 0, result.output
        assert "Skill is valid" in result.output

    def test_missing_file(self, runner, skill_dir):
        (skill_dir / "assets" / "icon.svg").unlink()
        result = runner.invoke(main, ["validate", str(skill_dir)])
        assert result.exit_code == 1
        assert "Filesystem checks failed" in result.output
        assert "assets/icon.svg" in result.output
        assert "Validation failed" in result.output

    def test_schema_violation(self, runner, skill_dir):
        manifest = skill_dir / "skill.json"
        manifest.write_text(manifest.read_text().replace('"version": "0.1.0"', '"version": "one"'))
        result = runner.invoke(main, ["validate", str(skill_dir)])
        assert result.exit_code == 1
        assert "Schema validation failed" in result.output
        assert "version" in result.output

    def test_missing_manifest(self, runner, tmp_path):
        result = runner.invoke(main, ["validate", str(tmp_path)])
        assert result.exit_code == 1
        assert "Manifest check failed" in result.output


class TestPackageCommand:
    def test_package(self, runner, skill_dir, tmp_path):
        result = runner.invoke(main, ["package", str(skill_dir)])
        assert result.exit_code == 0, result.output
        assert "Packaged" in result.output
        assert "SHA-256" in result.output
        archive = tmp_path / "dist" / "my-skill-0.1.0.skill"
        with zipfile.ZipFile(archive) as zf:
            assert all(n.startswith("my-skill/") for n in zf.namelist())

    def test_relative_output_dir(self, runner, skill_dir, tmp_path):
        result = runner.invoke(main, ["package", str(skill_dir), "-o", "releases", "--output-name", "x.skill"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "releases" / "x.skill").is_file()

    def test_invalid_skill(self, runner, skill_dir, tmp_path):
        (skill_dir / "README.md").unlink()
        result = runner.invoke(main, ["package", str(skill_dir)])
        assert result.exit_code == 1
        assert "Cannot package an invalid skill" in result.output
        assert not (tmp_path / "dist").exists()


class TestConvertCommand:
    def _archive(self, tmp_path, content=SKILL_MD):
        path = tmp_path / "foreign.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("bar/SKILL.md", content)
        return path

    def test_convert_yes(self, runner, tmp_path):
        out = tmp_path / "out"
        result = runner.invoke(main, ["convert", str(self._archive(tmp_path)), "--dir", str(out), "--yes"])
        assert result.exit_code == 0, result.output
        assert "Converted" in result.output
        assert (out / "bar" / "skill.json").is_file()

    def test_convert_interactive(self, runner, tmp_path):
        out = tmp_path / "out"
        result = runner.invoke(
            main,
            ["convert", str(self._archive(tmp_path)), "--dir", str(out)],
            input="\n\nAda\n\n\n\n",
        )
        assert result.exit_code == 0, result.output
        assert "Summarize quarterly reports into slides" in result.output
        assert (out / "bar" / "README.md").is_file()

    def test_convert_bad_frontmatter(self, runner, tmp_path):
        archive = self._archive(tmp_path, content="# no preamble\n")
        result = runner.invoke(main, ["convert", str(archive), "--dir", str(tmp_path / "out"), "--yes"])
        assert result.exit_code == 1
        assert "Conversion failed" in result.output


class TestLoginCommand:
    def test_login(self, runner, home):
        result = runner.invoke(main, ["login", "--api-key", API_KEY])
        assert result.exit_code == 0, result.output
        assert "API key saved" in result.output
        assert ConfigStore(home).load_api_key() == API_KEY

    def test_login_prompt(self, runner, home):
        result = runner.invoke(main, ["login"], input=f"{API_KEY}\n")
        assert result.exit_code == 0, result.output
        assert ConfigStore(home).load_api_key() == API_KEY

    def test_short_key(self, runner, home):
        result = runner.invoke(main, ["login", "--api-key", "short"])
        assert result.exit_code == 1
        assert "at least 10 characters" in result.output


class TestSearchCommand:
    def test_results_table(self, runner, registry):
        registry.search.return_value = SearchResponse(
            data=[SearchResult(name="pdf-tools", author="alice", description="PDF helpers", latest_version="1.2.0")],
            total=1,
        )
        result = runner.invoke(main, ["search", "pdf", "--keywords", "docs, tables"])
        assert result.exit_code == 0, result.output
        assert "alice/pdf-tools" in result.output
        registry.search.assert_called_once_with("pdf", author=None, keywords=["docs", "tables"])

    def test_no_results(self, runner, registry):
        registry.search.return_value = SearchResponse()
        result = runner.invoke(main, ["search", "nothing"])
        assert result.exit_code == 0
        assert "No skills found" in result.output

    def test_unreachable(self, runner, registry):
        registry.search.side_effect = ConnectionError("refused")
        result = runner.invoke(main, ["search", "pdf"])
        assert result.exit_code == 1
        assert "Search failed" in result.output


class TestMeCommands:
    def test_whoami_not_logged_in(self, runner):
        result = runner.invoke(main, ["me", "whoami"])
        assert result.exit_code == 1
        assert "must be logged in" in result.output

    def test_whoami_accepted(self, runner, logged_in, registry):
        registry.list_mine.return_value = []
        result = runner.invoke(main, ["me", "whoami"])
        assert result.exit_code == 0, result.output
        assert "sk-test-..." in result.output
        assert "accepted" in result.output

    def test_whoami_rejected(self, runner, logged_in, registry):
        registry.list_mine.side_effect = AuthenticationError("bad key", status=401)
        result = runner.invoke(main, ["me", "whoami"])
        assert result.exit_code == 1
        assert "rejected" in result.output

    def test_my_skills(self, runner, logged_in, registry):
        registry.list_mine.return_value = [
            PublishedSkill(
                name="pdf-tools",
                latest_version=LatestVersion(version="1.2.0", status="published"),
                published_version_count=2,
                total_versions=3,
            )
        ]
        result = runner.invoke(main, ["me", "skills"])
        assert result.exit_code == 0, result.output
        assert "pdf-tools" in result.output
        assert "2/3" in result.output

    def test_my_skills_empty(self, runner, logged_in, registry):
        registry.list_mine.return_value = []
        result = runner.invoke(main, ["me", "skills"])
        assert result.exit_code == 0
        assert "not published any skills" in result.output


class TestPublishCommand:
    def test_publish(self, runner, logged_in, registry, skill_dir, tmp_path):
        runner.invoke(main, ["package", str(skill_dir)])
        archive = tmp_path / "dist" / "my-skill-0.1.0.skill"
        registry.publish.return_value = PublishResult(skill="my-skill", version="0.1.0", status="pending_review")

        result = runner.invoke(main, ["publish", str(archive)])
        assert result.exit_code == 0, result.output
        assert "Publish request successful" in result.output
        assert "pending review" in result.output
        registry.publish.assert_called_once_with(archive.resolve())

    def test_publish_missing_file(self, runner, logged_in, tmp_path):
        result = runner.invoke(main, ["publish", str(tmp_path / "nope.skill")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_publish_unreadable_manifest(self, runner, logged_in, tmp_path):
        archive = tmp_path / "binary.skill"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("binary/skill.json", b"\xff\xfe{}")
        result = runner.invoke(main, ["publish", str(archive)])
        assert result.exit_code == 1
        assert "Failed to publish skill" in result.output
        assert not isinstance(result.exception, UnicodeDecodeError)

    def test_publish_not_logged_in(self, runner, skill_dir, tmp_path):
        runner.invoke(main, ["package", str(skill_dir)])
        result = runner.invoke(main, ["publish", str(tmp_path / "dist" / "my-skill-0.1.0.skill")])
        assert result.exit_code == 1
        assert "must be logged in" in result.output


class TestFullCycle:
    def test_init_validate_package(self, runner, tmp_path):
        """init -> validate -> package yields exactly one archive."""
        assert runner.invoke(main, ["init", "cycle-skill", "--dir", str(tmp_path)]).exit_code == 0
        skill = tmp_path / "cycle-skill"
        assert runner.invoke(main, ["validate", str(skill)]).exit_code == 0
        assert runner.invoke(main, ["package", str(skill)]).exit_code == 0
        assert [p.name for p in (tmp_path / "dist").iterdir()] == ["cycle-skill-0.1.0.skill"]

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

"""Tests for skillpack models — skill.json schema and serialization."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from skillpack.models import (
    Dependencies,
    Repository,
    Runtime,
    SkillManifest,
    ValidationReport,
    Violation,
    ViolationKind,
    check_skill_name,
    generate_manifest_json,
    load_manifest,
    write_manifest,
)

VALID = {
    "name": "test-skill",
    "version": "1.0.0",
    "description": "A test skill used to exercise the manifest model",
    "author": "tester",
    "license": "MIT",
    "licenseFile": "LICENSE",
    "icon": "assets/icon.svg",
    "entrypoint": "README.md",
    "runtime": {"type": "python", "version": ">=3.9"},
}


def with_fields(**changes) -> dict:
    data = dict(VALID)
    data.update(changes)
    return data


class TestSkillManifest:
    """Test SkillManifest creation and validation."""

    def test_minimal_manifest(self):
        """Required fields alone make a valid manifest."""
        m = SkillManifest.model_validate(VALID)
        assert m.name == "test-skill"
        assert m.license_file == "LICENSE"
        assert m.runtime == Runtime(type="python", version=">=3.9")
        assert m.dependencies is None
        assert m.keywords is None

    def test_full_manifest(self):
        """Optional sections parse into their models."""
        m = SkillManifest.model_validate(
            with_fields(
                repository={"type": "git", "url": "https://github.com/acme/test-skill"},
                dependencies={"python": ["pypdf>=4"], "skills": ["pdf-tools"]},
                keywords=["pdf", "docs"],
            )
        )
        assert m.repository == Repository(type="git", url="https://github.com/acme/test-skill")
        assert m.dependencies == Dependencies(python=["pypdf>=4"], skills=["pdf-tools"])
        assert m.keywords == ["pdf", "docs"]

    def test_construct_with_json_names(self):
        m = SkillManifest(
            name="py-name",
            version="0.1.0",
            description="Constructed with JSON field names",
            author="tester",
            license="MIT",
            licenseFile="LICENSE.md",
            icon="icon.svg",
            entrypoint="README.md",
            runtime=Runtime(type="python", version=">=3.9"),
        )
        assert m.license_file == "LICENSE.md"

    def test_python_field_name_not_accepted(self):
        """Only the JSON spelling licenseFile populates the license path."""
        data = {k: v for k, v in VALID.items() if k != "licenseFile"}
        data["license_file"] = "LICENSE"
        with pytest.raises(ValidationError, match="licenseFile"):
            SkillManifest.model_validate(data)

    @pytest.mark.parametrize("field", ["type", "version"])
    def test_runtime_fields_required(self, field):
        runtime = {"type": "python", "version": ">=3.9"}
        del runtime[field]
        with pytest.raises(ValidationError):
            SkillManifest.model_validate(with_fields(runtime=runtime))

    def test_repository_type_required(self):
        with pytest.raises(ValidationError):
            SkillManifest.model_validate(with_fields(repository={"url": "https://github.com/acme/x"}))

    @pytest.mark.parametrize(
        "name",
        ["Bad-Name", "bad name", "bad_name", "-leading", "trailing-", "double--dash", "", "a" * 41],
    )
    def test_name_validation_rejects(self, name):
        """Skill names must be hyphen-case and at most 40 characters."""
        with pytest.raises(ValidationError):
            SkillManifest.model_validate(with_fields(name=name))

    def test_name_at_length_limit(self):
        m = SkillManifest.model_validate(with_fields(name="a" * 40))
        assert len(m.name) == 40

    def test_version_must_be_semver(self):
        with pytest.raises(ValidationError, match="MAJOR.MINOR.PATCH"):
            SkillManifest.model_validate(with_fields(version="1.0"))

    def test_prerelease_version_accepted(self):
        m = SkillManifest.model_validate(with_fields(version="2.1.0-beta.1+build.7"))
        assert m.version == "2.1.0-beta.1+build.7"

    def test_short_description_rejected(self):
        with pytest.raises(ValidationError):
            SkillManifest.model_validate(with_fields(description="too short"))

    def test_blank_author_rejected(self):
        with pytest.raises(ValidationError):
            SkillManifest.model_validate(with_fields(author="   "))

    def test_absolute_path_rejected(self):
        with pytest.raises(ValidationError, match="relative"):
            SkillManifest.model_validate(with_fields(icon="/etc/passwd"))

    def test_escaping_path_rejected(self):
        with pytest.raises(ValidationError, match="leave the skill directory"):
            SkillManifest.model_validate(with_fields(licenseFile="../LICENSE"))

    def test_runtime_type_is_fixed(self):
        with pytest.raises(ValidationError):
            SkillManifest.model_validate(with_fields(runtime={"type": "node", "version": ">=18"}))

    def test_duplicate_keywords_rejected(self):
        with pytest.raises(ValidationError, match="unique"):
            SkillManifest.model_validate(with_fields(keywords=["pdf", "pdf"]))

    def test_manifest_is_frozen(self):
        m = SkillManifest.model_validate(VALID)
        with pytest.raises(ValidationError):
            m.name = "other-name"

    def test_model_copy_leaves_original(self):
        m = SkillManifest.model_validate(VALID)
        copy = m.model_copy(update={"license_file": "LICENSE.txt"})
        assert copy.license_file == "LICENSE.txt"
        assert m.license_file == "LICENSE"


class TestCheckSkillName:
    def test_valid(self):
        assert check_skill_name("pdf-tools2") == "pdf-tools2"

    def test_empty(self):
        with pytest.raises(ValueError, match="empty"):
            check_skill_name("")

    def test_too_long(self):
        with pytest.raises(ValueError, match="40 characters"):
            check_skill_name("a" * 41)


class TestViolations:
    def test_str_includes_field(self):
        v = Violation(kind=ViolationKind.CONSISTENCY, field="icon", message="missing")
        assert str(v) == "icon: missing"

    def test_str_without_field(self):
        v = Violation(kind=ViolationKind.MISSING_MANIFEST, message="no manifest")
        assert str(v) == "no manifest"

    def test_report_partitions(self):
        report = ValidationReport(
            skill_dir="x",
            violations=[
                Violation(kind=ViolationKind.STRUCTURAL, field="name", message="bad"),
                Violation(kind=ViolationKind.CONSISTENCY, field="icon", message="missing"),
            ],
        )
        assert not report.ok
        assert [v.field for v in report.structural] == ["name"]
        assert [v.field for v in report.consistency] == ["icon"]


class TestManifestJson:
    """Test skill.json generation and loading."""

    def test_format(self):
        """Two-space indent, trailing newline, JSON field names."""
        text = generate_manifest_json(SkillManifest.model_validate(VALID))
        assert text.endswith("}\n")
        assert '\n  "name": "test-skill",' in text
        assert '"licenseFile": "LICENSE"' in text
        assert "license_file" not in text

    def test_unset_optionals_omitted(self):
        data = json.loads(generate_manifest_json(SkillManifest.model_validate(VALID)))
        assert "repository" not in data
        assert "dependencies" not in data
        assert "keywords" not in data

    def test_characters_not_escaped(self):
        m = SkillManifest.model_validate(
            with_fields(author="Zoë <zoe@example.com>", description="Handles <pdf> & docs for agents")
        )
        text = generate_manifest_json(m)
        assert "Zoë <zoe@example.com>" in text
        assert "<pdf> & docs" in text

    def test_roundtrip(self, tmp_path: Path):
        """A manifest should survive a write -> load roundtrip."""
        original = SkillManifest.model_validate(with_fields(keywords=["a", "b"]))
        write_manifest(tmp_path, original)
        restored = load_manifest(tmp_path)
        assert restored == original

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_manifest(tmp_path)

    def test_load_invalid_json(self, tmp_path: Path):
        (tmp_path / "skill.json").write_text("{not json")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_manifest(tmp_path)

    def test_load_rejects_python_field_name(self, tmp_path: Path):
        data = {k: v for k, v in VALID.items() if k != "licenseFile"}
        data["license_file"] = "LICENSE"
        (tmp_path / "skill.json").write_text(json.dumps(data))
        with pytest.raises(ValueError, match="licenseFile"):
            load_manifest(tmp_path)

    def test_load_non_object(self, tmp_path: Path):
        (tmp_path / "skill.json").write_text("[1, 2]")
        with pytest.raises(ValueError, match="JSON object"):
            load_manifest(tmp_path)

"""skillpack data models — skill.json schema as Pydantic models.

The manifest is the single source of identity for a skill:

  - name/version identify the package in the registry
  - entrypoint, icon, and licenseFile point at files inside the skill
  - runtime and dependencies describe what the skill needs to run

Manifests are frozen. Anything that needs a different manifest builds one
with ``model_copy(update=...)`` before it is written to disk.
"""

from __future__ import annotations

import enum
import json
import re
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MANIFEST_FILENAME = "skill.json"
INSTRUCTIONS_FILENAME = "SKILL.md"
OVERVIEW_FILENAME = "README.md"
DEFAULT_ICON_PATH = "assets/icon.svg"
DEFAULT_LICENSE_FILE = "LICENSE"
DEFAULT_RUNTIME_TYPE = "python"
DEFAULT_RUNTIME_VERSION = ">=3.9"
DEFAULT_REPOSITORY_TYPE = "git"

NAME_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
NAME_MAX_LENGTH = 40
DESCRIPTION_MIN_LENGTH = 20

SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

KNOWN_LICENSES = ("MIT", "Apache-2.0", "GPL-3.0", "BSD-3-Clause")


def check_skill_name(name: str) -> str:
    """Check a skill name against the hyphen-case identifier rules.

    Args:
        name: Candidate skill name.

    Returns:
        str: The name, unchanged.

    Raises:
        ValueError: With a readable reason when the name is invalid.
    """
    if not name:
        raise ValueError("Skill name cannot be empty")
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"Skill name cannot be longer than {NAME_MAX_LENGTH} characters")
    if not NAME_PATTERN.match(name):
        raise ValueError(f"Skill name must be a hyphen-case identifier (e.g. 'my-skill'): got '{name}'")
    return name


class Runtime(BaseModel):
    """Execution environment the skill's scripts expect."""

    model_config = ConfigDict(frozen=True)

    type: Literal["python"] = Field(description="Runtime family")
    version: str = Field(min_length=1, description="Version constraint")


class Repository(BaseModel):
    """Source repository for the skill."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(min_length=1)
    url: str = Field(min_length=1)


class Dependencies(BaseModel):
    """System packages, Python packages, and other skills this skill needs."""

    model_config = ConfigDict(frozen=True)

    system: list[str] = Field(default_factory=list)
    python: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)


class SkillManifest(BaseModel):
    """The complete skill definition — parsed from skill.json.

    Field names follow the JSON document. ``license_file`` is read and
    written only as ``licenseFile``; a document spelling it ``license_file``
    is missing the field.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique hyphen-case identifier, at most 40 characters")
    version: str = Field(description="Semantic version")
    description: str = Field(min_length=DESCRIPTION_MIN_LENGTH)
    author: str = Field(min_length=1)
    license: str = Field(min_length=1, description="SPDX identifier or free text")
    license_file: str = Field(alias="licenseFile", description="Relative path to the license text")
    repository: Optional[Repository] = None
    icon: str = Field(description="Relative path to the registry icon")
    entrypoint: str = Field(description="Relative path to the registry overview document")
    runtime: Runtime
    dependencies: Optional[Dependencies] = None
    permissions: Optional[dict[str, Any]] = None
    keywords: Optional[list[str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Enforce the hyphen-case naming convention."""
        return check_skill_name(v)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if not SEMVER_PATTERN.match(v):
            raise ValueError(f"Version must look like MAJOR.MINOR.PATCH: got '{v}'")
        return v

    @field_validator("author", "license")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Value cannot be blank")
        return v

    @field_validator("license_file", "icon", "entrypoint")
    @classmethod
    def validate_relative_path(cls, v: str) -> str:
        """Path fields must stay inside the skill directory."""
        if not v:
            raise ValueError("Path cannot be empty")
        if PurePosixPath(v).is_absolute() or PureWindowsPath(v).drive:
            raise ValueError(f"Path must be relative to the skill directory: got '{v}'")
        if ".." in PurePosixPath(v.replace("\\", "/")).parts:
            raise ValueError(f"Path must not leave the skill directory: got '{v}'")
        return v

    @field_validator("keywords")
    @classmethod
    def validate_keywords(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is not None and len(set(v)) != len(v):
            raise ValueError("Keywords must be unique")
        return v


class FrontmatterRecord(BaseModel):
    """Metadata recovered from a foreign SKILL.md preamble."""

    name: str
    description: str


class ViolationKind(str, enum.Enum):
    """Where a validation problem was found."""

    MISSING_MANIFEST = "missing_manifest"
    STRUCTURAL = "structural"
    CONSISTENCY = "consistency"


class Violation(BaseModel):
    """One validation problem."""

    kind: ViolationKind
    field: str = Field(default="", description="Dotted manifest field, empty for document-level problems")
    message: str

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


class ValidationReport(BaseModel):
    """All violations found for one skill directory, in report order."""

    skill_dir: str
    violations: list[Violation] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def structural(self) -> list[Violation]:
        return [v for v in self.violations if v.kind == ViolationKind.STRUCTURAL]

    @property
    def consistency(self) -> list[Violation]:
        return [v for v in self.violations if v.kind == ViolationKind.CONSISTENCY]


def load_manifest(skill_dir: Path) -> SkillManifest:
    """Read skill.json from a skill directory into a SkillManifest.

    Args:
        skill_dir: Directory containing skill.json.

    Returns:
        SkillManifest: The parsed manifest.

    Raises:
        FileNotFoundError: If skill.json doesn't exist.
        ValueError: If the JSON is invalid or fails the schema.
    """
    path = Path(skill_dir) / MANIFEST_FILENAME
    if not path.exists():
        raise FileNotFoundError(f"{MANIFEST_FILENAME} not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{MANIFEST_FILENAME} is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"{MANIFEST_FILENAME} must be a JSON object, got {type(raw).__name__}")

    return SkillManifest.model_validate(raw)


def generate_manifest_json(manifest: SkillManifest) -> str:
    """Serialize a SkillManifest to the on-disk JSON form.

    Two-space indentation, characters left unescaped, unset optional
    sections omitted, trailing newline.
    """
    data = manifest.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_manifest(skill_dir: Path, manifest: SkillManifest) -> Path:
    """Write skill.json into a skill directory.

    Returns:
        Path: The manifest path.
    """
    path = Path(skill_dir) / MANIFEST_FILENAME
    path.write_text(generate_manifest_json(manifest), encoding="utf-8")
    return path

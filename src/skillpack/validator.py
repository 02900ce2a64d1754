"""skillpack validator — schema and filesystem checks for a skill directory.

Validation never raises for a bad skill. Every problem becomes a Violation
and the whole list is reported in one pass:

    validate_skill(dir)
        read skill.json from disk      -> missing_manifest (stops here)
        validate_manifest_document()   -> structural violations
        check_filesystem()             -> consistency violations
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from .models import (
    MANIFEST_FILENAME,
    SkillManifest,
    ValidationReport,
    Violation,
    ViolationKind,
)

logger = logging.getLogger("skillpack.validator")

UNREADABLE_MESSAGE = "manifest not found or unreadable"

# Manifest fields that must point at an existing file, in report order.
PATH_FIELDS = ("icon", "licenseFile", "entrypoint")


def _location(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


def validate_manifest_document(text: str) -> list[Violation]:
    """Validate serialized manifest text against the skill.json schema.

    Structural only: required fields, types, and patterns. The filesystem
    is never consulted.

    Args:
        text: The raw skill.json contents.

    Returns:
        list[Violation]: Structural violations, empty when the document is valid.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        return [
            Violation(
                kind=ViolationKind.STRUCTURAL,
                message=f"{UNREADABLE_MESSAGE}: {exc}",
            )
        ]

    if not isinstance(raw, dict):
        return [
            Violation(
                kind=ViolationKind.STRUCTURAL,
                message=f"{UNREADABLE_MESSAGE}: expected a JSON object, got {type(raw).__name__}",
            )
        ]

    try:
        SkillManifest.model_validate(raw)
    except ValidationError as exc:
        return [
            Violation(
                kind=ViolationKind.STRUCTURAL,
                field=_location(err["loc"]),
                message=err["msg"],
            )
            for err in exc.errors()
        ]
    return []


def check_filesystem(skill_dir: Path, data: Mapping[str, Any]) -> list[Violation]:
    """Cross-check a decoded manifest against the directory that holds it.

    Args:
        skill_dir: The skill directory.
        data: The decoded manifest mapping. May be partial or empty when
            the document failed the schema.

    Returns:
        list[Violation]: Consistency violations in a fixed order: directory
        name first, then icon, licenseFile, entrypoint.
    """
    skill_dir = Path(skill_dir)
    violations: list[Violation] = []

    dir_name = skill_dir.resolve().name
    name = data.get("name")
    manifest_name = name if isinstance(name, str) else ""
    if dir_name != manifest_name:
        violations.append(
            Violation(
                kind=ViolationKind.CONSISTENCY,
                field="name",
                message=(
                    f"Directory name ('{dir_name}') does not match 'name' "
                    f"in {MANIFEST_FILENAME} ('{manifest_name}')."
                ),
            )
        )

    for field in PATH_FIELDS:
        declared = data.get(field)
        if not isinstance(declared, str) or not declared:
            continue
        if not (skill_dir / declared).is_file():
            violations.append(
                Violation(
                    kind=ViolationKind.CONSISTENCY,
                    field=field,
                    message=f"File '{declared}' declared in '{field}' field does not exist.",
                )
            )

    return violations


def validate_skill(skill_dir: Path) -> ValidationReport:
    """Run every check against a skill directory.

    The manifest is always re-read from disk, whatever produced it.

    Args:
        skill_dir: Directory that should contain skill.json.

    Returns:
        ValidationReport: Schema violations followed by filesystem violations.
    """
    skill_dir = Path(skill_dir)
    report = ValidationReport(skill_dir=str(skill_dir))
    manifest_path = skill_dir / MANIFEST_FILENAME

    try:
        text = manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.info("Cannot read %s: %s", manifest_path, exc)
        report.violations.append(
            Violation(
                kind=ViolationKind.MISSING_MANIFEST,
                message=(
                    f"{UNREADABLE_MESSAGE}: no readable {MANIFEST_FILENAME} in '{skill_dir}'. "
                    "Ensure you are in a valid skill directory."
                ),
            )
        )
        return report

    structural = validate_manifest_document(text)
    if structural:
        logger.info("Schema validation found %d problem(s)", len(structural))
    else:
        logger.info("Schema validation successful")

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        decoded = {}
    data = decoded if isinstance(decoded, dict) else {}

    consistency = check_filesystem(skill_dir, data)
    if consistency:
        logger.info("Filesystem checks found %d problem(s)", len(consistency))
    else:
        logger.info("Filesystem checks successful")

    report.violations.extend(structural)
    report.violations.extend(consistency)
    return report

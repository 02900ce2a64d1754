"""Collect manifest fields for new and converted skills.

``default_manifest`` and ``manifest_from_frontmatter`` serve non-interactive
runs; ``prompt_manifest`` asks on the terminal via click.
"""

from __future__ import annotations

import re
import subprocess
from typing import Optional

import click

from .models import (
    DEFAULT_ICON_PATH,
    DEFAULT_LICENSE_FILE,
    DEFAULT_REPOSITORY_TYPE,
    DEFAULT_RUNTIME_TYPE,
    DEFAULT_RUNTIME_VERSION,
    DESCRIPTION_MIN_LENGTH,
    KNOWN_LICENSES,
    OVERVIEW_FILENAME,
    Dependencies,
    FrontmatterRecord,
    Repository,
    Runtime,
    SkillManifest,
    check_skill_name,
)

DEFAULT_DESCRIPTION = (
    "A new skill. Please provide a detailed description of its capabilities."
)
DEFAULT_AUTHOR = "Author Name"


def git_user_name() -> str:
    """Read user.name from git config, or '' if git is missing or unset."""
    try:
        result = subprocess.run(
            ["git", "config", "--get", "user.name"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return ""
    if result.returncode != 0:
        return ""
    return result.stdout.strip()


def default_runtime() -> Runtime:
    return Runtime(type=DEFAULT_RUNTIME_TYPE, version=DEFAULT_RUNTIME_VERSION)


def parse_keywords(text: str) -> list[str]:
    """Split comma- or whitespace-separated keywords, dropping blanks and repeats."""
    seen: list[str] = []
    for word in re.split(r"[\s,]+", text.strip()):
        if word and word not in seen:
            seen.append(word)
    return seen


def default_manifest(name: str, author: str = "") -> SkillManifest:
    """Build a complete manifest from defaults.

    Args:
        name: Skill name (validated).
        author: Author name; falls back to git user.name, then a placeholder.
    """
    return SkillManifest(
        name=name,
        version="0.1.0",
        description=DEFAULT_DESCRIPTION,
        author=author or git_user_name() or DEFAULT_AUTHOR,
        license="MIT",
        licenseFile=DEFAULT_LICENSE_FILE,
        entrypoint=OVERVIEW_FILENAME,
        icon=DEFAULT_ICON_PATH,
        runtime=default_runtime(),
        dependencies=Dependencies(),
        keywords=[],
    )


def _name_prompt(value: str) -> str:
    try:
        return check_skill_name(value.strip())
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _description_prompt(value: str) -> str:
    value = value.strip()
    if len(value) < DESCRIPTION_MIN_LENGTH:
        raise click.BadParameter(f"Description must be at least {DESCRIPTION_MIN_LENGTH} characters")
    return value


def _required_prompt(value: str) -> str:
    value = value.strip()
    if not value:
        raise click.BadParameter("A value is required")
    return value


def prompt_manifest(
    defaults: Optional[FrontmatterRecord] = None,
    version: str = "0.1.0",
) -> SkillManifest:
    """Ask for manifest fields on the terminal.

    Args:
        defaults: Name/description to pre-fill (e.g. from a converted SKILL.md).
        version: Version to record; not prompted.

    Returns:
        SkillManifest: A manifest that satisfies the schema.
    """
    name = click.prompt(
        "Skill name (hyphen-case)",
        default=defaults.name if defaults else None,
        value_proc=_name_prompt,
    )
    description = click.prompt(
        "Description",
        default=defaults.description if defaults else None,
        value_proc=_description_prompt,
    )
    author = click.prompt(
        "Author",
        default=git_user_name() or None,
        value_proc=_required_prompt,
    )
    license_name = click.prompt(
        "License",
        type=click.Choice(KNOWN_LICENSES),
        default="MIT",
    )
    repository_url = click.prompt(
        "GitHub repository URL (optional)", default="", show_default=False
    ).strip()
    keywords = click.prompt(
        "Keywords (comma-separated, optional)", default="", show_default=False
    )

    return SkillManifest(
        name=name,
        version=version,
        description=description,
        author=author,
        license=license_name,
        licenseFile=DEFAULT_LICENSE_FILE,
        entrypoint=OVERVIEW_FILENAME,
        icon=DEFAULT_ICON_PATH,
        runtime=default_runtime(),
        repository=Repository(type=DEFAULT_REPOSITORY_TYPE, url=repository_url) if repository_url else None,
        keywords=parse_keywords(keywords) or None,
    )


def manifest_from_frontmatter(record: FrontmatterRecord, author: str = "") -> SkillManifest:
    """Non-interactive manifest for a converted skill, seeded from its SKILL.md.

    Raises:
        ValueError: If the frontmatter name or description breaks the schema.
    """
    base = default_manifest(record.name, author=author)
    return SkillManifest.model_validate(
        {
            **base.model_dump(by_alias=True, exclude_none=True),
            "version": "1.0.0",
            "description": record.description,
        }
    )

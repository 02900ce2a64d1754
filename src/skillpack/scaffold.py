"""Scaffold a new skill directory from a collected manifest.

Layout produced:

    my-skill/
        skill.json          # written last
        README.md           # registry overview (entrypoint)
        SKILL.md            # agent instructions, with frontmatter
        LICENSE
        assets/icon.svg
        scripts/
        reference/
"""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import PreconditionError
from .models import INSTRUCTIONS_FILENAME, SkillManifest, write_manifest
from .templates import (
    DEFAULT_ICON_SVG,
    SCAFFOLD_DIRS,
    render_instructions,
    render_license,
    render_overview,
)

logger = logging.getLogger("skillpack.scaffold")


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Created %s", path)


def create_skill(manifest: SkillManifest, parent_dir: Path = Path(".")) -> Path:
    """Create the directory and starter files for a new skill.

    Args:
        manifest: The collected manifest. Its name becomes the directory name.
        parent_dir: Where to create the skill directory.

    Returns:
        Path: The new skill directory.

    Raises:
        PreconditionError: If the skill directory already exists.
    """
    skill_dir = Path(parent_dir) / manifest.name
    if skill_dir.exists():
        raise PreconditionError(f"Directory '{skill_dir}' already exists")

    skill_dir.mkdir(parents=True)
    logger.info("Created skill directory %s", skill_dir)

    _write(skill_dir / manifest.entrypoint, render_overview(manifest))
    _write(skill_dir / INSTRUCTIONS_FILENAME, render_instructions(manifest))
    _write(skill_dir / manifest.license_file, render_license(manifest.license))

    for sub in SCAFFOLD_DIRS:
        (skill_dir / sub).mkdir(exist_ok=True)

    _write(skill_dir / manifest.icon, DEFAULT_ICON_SVG)

    write_manifest(skill_dir, manifest)
    return skill_dir

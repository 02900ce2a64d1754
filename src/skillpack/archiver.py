"""skillpack archiver — package a validated skill into a distributable .skill file.

A .skill file is a zip archive with exactly one top-level folder named
after the skill:

    pdf-tools-1.0.0.skill
        pdf-tools/
        pdf-tools/skill.json
        pdf-tools/README.md
        pdf-tools/assets/
        pdf-tools/assets/icon.svg

Packaging is refused unless the skill validates with zero violations.
"""

from __future__ import annotations

import logging
import os
import stat
import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from pydantic import BaseModel

from .errors import ExtractionError, InvalidSkillError, PreconditionError
from .models import MANIFEST_FILENAME, SkillManifest, load_manifest
from .validator import validate_skill

logger = logging.getLogger("skillpack.archiver")

ARCHIVE_EXTENSION = ".skill"
DEFAULT_OUTPUT_DIR = "dist"


class ArchiveEntry(BaseModel):
    """One member of a skill archive."""

    arcname: str
    path: Path
    is_dir: bool
    mode: int


def default_archive_name(manifest: SkillManifest) -> str:
    """'<name>-<version>.skill'."""
    return f"{manifest.name}-{manifest.version}{ARCHIVE_EXTENSION}"


def collect_entries(
    skill_dir: Path,
    name: str,
    exclude: Iterable[Path] = (),
) -> list[ArchiveEntry]:
    """Walk a skill directory and list what goes into its archive.

    The walk is depth-first and sorted, so the same tree always yields the
    same entry order.

    Args:
        skill_dir: Root of the skill.
        name: Top-level folder name inside the archive.
        exclude: Paths (files or directories) to leave out, with everything
            beneath them.

    Returns:
        list[ArchiveEntry]: Directory entries end with '/'; every arcname
        starts with '<name>/'.
    """
    root = Path(skill_dir).resolve()
    skipped = {Path(p).resolve() for p in exclude}
    entries: list[ArchiveEntry] = []

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if current / d not in skipped)

        if current != root:
            rel = current.relative_to(root).as_posix()
            entries.append(
                ArchiveEntry(
                    arcname=f"{name}/{rel}/",
                    path=current,
                    is_dir=True,
                    mode=stat.S_IMODE(current.stat().st_mode),
                )
            )

        for filename in sorted(filenames):
            path = current / filename
            if path in skipped:
                continue
            rel = path.relative_to(root).as_posix()
            entries.append(
                ArchiveEntry(
                    arcname=f"{name}/{rel}",
                    path=path,
                    is_dir=False,
                    mode=stat.S_IMODE(path.stat().st_mode),
                )
            )

    return entries


def package_skill(
    skill_dir: Path,
    output_dir: Optional[Path] = None,
    output_name: Optional[str] = None,
) -> Path:
    """Validate a skill directory and write its .skill archive.

    Args:
        skill_dir: The skill to package.
        output_dir: Where to write the archive (default: 'dist' next to the
            skill directory). Skipped during the walk when it sits inside
            the skill directory.
        output_name: Archive filename (default: '<name>-<version>.skill').

    Returns:
        Path: The archive that was written.

    Raises:
        InvalidSkillError: If validation reports any violation. Nothing is
            created in that case.
        OSError: If the archive cannot be written. A partial archive is removed.
    """
    skill_dir = Path(skill_dir).resolve()

    report = validate_skill(skill_dir)
    if not report.ok:
        raise InvalidSkillError(str(skill_dir), report.violations)

    manifest = load_manifest(skill_dir)
    out = Path(output_dir) if output_dir is not None else skill_dir.parent / DEFAULT_OUTPUT_DIR
    out = out.resolve()
    out.mkdir(parents=True, exist_ok=True)

    archive_path = out / (output_name or default_archive_name(manifest))
    entries = collect_entries(skill_dir, manifest.name, exclude=[out, archive_path])

    try:
        with zipfile.ZipFile(
            archive_path, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
        ) as zf:
            for entry in entries:
                if entry.is_dir:
                    zf.write(entry.path, entry.arcname)
                else:
                    zf.write(entry.path, entry.arcname, compress_type=zipfile.ZIP_DEFLATED)
    except OSError:
        archive_path.unlink(missing_ok=True)
        raise

    logger.info(
        "Packaged %s v%s -> %s (%d entries)",
        manifest.name,
        manifest.version,
        archive_path,
        len(entries),
    )
    return archive_path


def read_archived_manifest(archive_path: Path) -> str:
    """Return the skill.json text stored in a .skill archive.

    Prefers '<root>/skill.json'; falls back to any member named skill.json.

    Raises:
        ExtractionError: If the file is not a readable zip archive or its
            skill.json is not UTF-8 text.
        PreconditionError: If the archive holds no skill.json.
    """
    try:
        with zipfile.ZipFile(archive_path) as zf:
            candidates = [
                info for info in zf.infolist()
                if not info.is_dir() and PurePosixPath(info.filename).name == MANIFEST_FILENAME
            ]
            if not candidates:
                raise PreconditionError(f"{MANIFEST_FILENAME} not found in package '{archive_path}'")
            candidates.sort(key=lambda info: len(PurePosixPath(info.filename).parts))
            data = zf.read(candidates[0])
    except zipfile.BadZipFile as exc:
        raise ExtractionError(f"Failed to open package '{archive_path}': {exc}") from exc

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ExtractionError(f"{MANIFEST_FILENAME} in package '{archive_path}' is not valid UTF-8: {exc}") from exc

"""Convert a foreign skill archive into the skillpack layout.

Foreign packages carry only a SKILL.md with name/description frontmatter.
Conversion:

    1. unzip into a scratch directory (always removed afterwards)
    2. read the SKILL.md frontmatter
    3. hand the record to a collector that returns the full manifest
    4. copy the skill subtree, stripping the SKILL.md frontmatter and
       writing a fresh README.md overview
    5. adopt or create a license file, create a default icon if missing
    6. write skill.json last
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import Callable

from .errors import ExtractionError, PreconditionError
from .frontmatter import extract_frontmatter, strip_frontmatter
from .models import (
    DEFAULT_LICENSE_FILE,
    INSTRUCTIONS_FILENAME,
    FrontmatterRecord,
    SkillManifest,
    write_manifest,
)
from .templates import DEFAULT_ICON_SVG, render_converted_overview, render_license

logger = logging.getLogger("skillpack.converter")

LICENSE_FILENAMES = ("LICENSE.txt", "LICENSE.md", "LICENSE")

Collector = Callable[[FrontmatterRecord], SkillManifest]


def extract_archive(archive_path: Path, dest: Path) -> None:
    """Unpack a zip archive into ``dest``, keeping file permission bits.

    Raises:
        ExtractionError: If the archive is corrupt, contains unsafe member
            paths, or cannot be written out.
    """
    try:
        with zipfile.ZipFile(archive_path) as zf:
            members = zf.infolist()
            # Security: prevent path traversal
            for member in members:
                member_path = PurePosixPath(member.filename.replace("\\", "/"))
                if member_path.is_absolute() or ".." in member_path.parts:
                    raise ExtractionError(f"Unsafe path in archive: {member.filename}")

            for member in members:
                target = dest / member.filename
                if member.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(member) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                mode = (member.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(target, mode)
    except zipfile.BadZipFile as exc:
        raise ExtractionError(f"Failed to unzip '{archive_path}': {exc}") from exc
    except OSError as exc:
        raise ExtractionError(f"Failed to unzip '{archive_path}': {exc}") from exc


def _copy_tree(source: Path, document: Path, dest: Path) -> None:
    for dirpath, dirnames, filenames in os.walk(source):
        dirnames.sort()
        current = Path(dirpath)
        target_dir = dest / current.relative_to(source)
        target_dir.mkdir(parents=True, exist_ok=True)

        for filename in sorted(filenames):
            src = current / filename
            dst = target_dir / filename
            if src == document:
                body = strip_frontmatter(src.read_text(encoding="utf-8"))
                dst.write_text(body, encoding="utf-8")
                shutil.copymode(src, dst)
            else:
                shutil.copy(src, dst)


def _resolve_license(dest: Path, manifest: SkillManifest) -> str:
    for name in LICENSE_FILENAMES:
        if (dest / name).is_file():
            logger.info("Using existing license file %s", name)
            return name

    (dest / DEFAULT_LICENSE_FILE).write_text(render_license(manifest.license), encoding="utf-8")
    logger.info("Created placeholder %s", DEFAULT_LICENSE_FILE)
    return DEFAULT_LICENSE_FILE


def _populate(source: Path, document: Path, dest: Path, manifest: SkillManifest) -> SkillManifest:
    _copy_tree(source, document, dest)

    overview = dest / manifest.entrypoint
    if overview.exists():
        logger.warning("Replacing %s from the source package with a generated overview", manifest.entrypoint)
    overview.parent.mkdir(parents=True, exist_ok=True)
    overview.write_text(
        render_converted_overview(manifest.name, manifest.description), encoding="utf-8"
    )

    license_file = _resolve_license(dest, manifest)

    icon = dest / manifest.icon
    if not icon.exists():
        icon.parent.mkdir(parents=True, exist_ok=True)
        icon.write_text(DEFAULT_ICON_SVG, encoding="utf-8")
        logger.info("Created default %s as it was missing from source", manifest.icon)

    return manifest.model_copy(update={"license_file": license_file})


def convert_skill(
    archive_path: Path,
    collect: Collector,
    parent_dir: Path = Path("."),
) -> Path:
    """Convert a foreign skill archive into a canonical skill directory.

    Args:
        archive_path: Zip archive containing exactly one SKILL.md.
        collect: Turns the extracted frontmatter into the final manifest
            (typically by prompting the user).
        parent_dir: Where the new '<name>/' directory is created.

    Returns:
        Path: The converted skill directory.

    Raises:
        PreconditionError: If the archive is missing or the destination exists.
        ExtractionError: If the archive or its SKILL.md cannot be read.
        OSError: If copying fails. The partially written destination is removed.
    """
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise PreconditionError(f"Source archive not found: {archive_path}")

    with tempfile.TemporaryDirectory(prefix="skillpack-convert-") as scratch:
        scratch_dir = Path(scratch)
        extract_archive(archive_path, scratch_dir)

        document, record = extract_frontmatter(scratch_dir)
        manifest = collect(record)

        if manifest.entrypoint == INSTRUCTIONS_FILENAME:
            raise PreconditionError(
                f"The entrypoint cannot be {INSTRUCTIONS_FILENAME}; it holds the agent instructions"
            )

        dest = Path(parent_dir) / manifest.name
        if dest.exists():
            raise PreconditionError(f"Directory '{dest}' already exists")

        dest.mkdir(parents=True)
        try:
            final = _populate(document.parent, document, dest, manifest)
            write_manifest(dest, final)
        except OSError:
            shutil.rmtree(dest, ignore_errors=True)
            raise

    logger.info("Converted %s -> %s", archive_path, dest)
    return dest

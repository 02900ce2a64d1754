"""SKILL.md frontmatter extraction for foreign skill packages.

A foreign instructions document looks like::

    ---
    name: my-skill
    description: What the skill does and when to use it
    ---
    # Instructions...

Only ``name`` and ``description`` are recovered; everything else in the
preamble is ignored.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from .errors import (
    AmbiguousInstructionsError,
    InstructionsNotFoundError,
    InvalidFrontmatterError,
    MissingClosingDelimiterError,
    MissingFrontmatterError,
    MissingFrontmatterFieldError,
)
from .models import INSTRUCTIONS_FILENAME, FrontmatterRecord

logger = logging.getLogger("skillpack.frontmatter")

DELIMITER = "---"


def find_instructions_document(root: Path) -> Path:
    """Locate the single SKILL.md under a directory tree.

    Args:
        root: Directory to search (depth-first, sorted).

    Returns:
        Path: The instructions document.

    Raises:
        InstructionsNotFoundError: If there is no SKILL.md.
        AmbiguousInstructionsError: If there is more than one.
    """
    root = Path(root)
    matches: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        if INSTRUCTIONS_FILENAME in filenames:
            matches.append(Path(dirpath) / INSTRUCTIONS_FILENAME)

    if not matches:
        raise InstructionsNotFoundError(f"Could not find {INSTRUCTIONS_FILENAME} in the archive")
    if len(matches) > 1:
        raise AmbiguousInstructionsError([m.relative_to(root).as_posix() for m in matches])
    return matches[0]


def split_frontmatter(content: str) -> tuple[str, str]:
    """Split a document into its frontmatter block and body.

    Args:
        content: Full document text.

    Returns:
        tuple: (frontmatter text between the delimiters, body after the closing delimiter).

    Raises:
        MissingFrontmatterError: If the first line is not a delimiter.
        MissingClosingDelimiterError: If no later line closes the block.
    """
    lines = content.lstrip("\ufeff").splitlines(keepends=True)
    if not lines or lines[0].rstrip() != DELIMITER:
        raise MissingFrontmatterError(
            f"{INSTRUCTIONS_FILENAME} has no YAML frontmatter (must start with '{DELIMITER}')"
        )

    for index in range(1, len(lines)):
        if lines[index].rstrip() == DELIMITER:
            return "".join(lines[1:index]), "".join(lines[index + 1:])

    raise MissingClosingDelimiterError(
        f"{INSTRUCTIONS_FILENAME} frontmatter is missing closing delimiter '{DELIMITER}'"
    )


def parse_frontmatter(content: str) -> tuple[FrontmatterRecord, str]:
    """Parse the frontmatter of an instructions document.

    Returns:
        tuple: (FrontmatterRecord, body text).

    Raises:
        FrontmatterError: Any of its subclasses, one per failure mode.
    """
    block, body = split_frontmatter(content)

    try:
        raw = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise InvalidFrontmatterError(f"Invalid YAML in frontmatter: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidFrontmatterError(
            f"Frontmatter must be a YAML mapping, got {type(raw).__name__}"
        )

    values: dict[str, str] = {}
    for key in ("name", "description"):
        value = raw.get(key)
        text = "" if value is None else str(value).strip()
        if not text:
            raise MissingFrontmatterFieldError(key)
        values[key] = text

    return FrontmatterRecord(**values), body


def strip_frontmatter(content: str) -> str:
    """Return the document body with its frontmatter removed."""
    _, body = split_frontmatter(content)
    return body


def extract_frontmatter(root: Path) -> tuple[Path, FrontmatterRecord]:
    """Find the instructions document under ``root`` and parse its frontmatter.

    Returns:
        tuple: (path to SKILL.md, FrontmatterRecord).

    Raises:
        InvalidFrontmatterError: If the document is not UTF-8 text.
    """
    document = find_instructions_document(root)
    try:
        content = document.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidFrontmatterError(f"{document} is not valid UTF-8: {exc}") from exc
    record, _ = parse_frontmatter(content)
    logger.info("Extracted frontmatter from %s: name=%s", document, record.name)
    return document, record

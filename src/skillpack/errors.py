"""Exception hierarchy for skillpack operations.

Validation problems are never raised one at a time; they are collected as
Violation records and carried by InvalidSkillError when an operation has
to refuse. Everything else aborts immediately with a single diagnostic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Violation


class SkillpackError(Exception):
    """Base class for all expected skillpack failures."""


class PreconditionError(SkillpackError):
    """An operation was refused before anything was written.

    Raised for a destination that already exists, a missing source,
    or a missing login.
    """


class NotLoggedInError(PreconditionError):
    """No API key is stored for an operation that needs one."""


class InvalidSkillError(SkillpackError):
    """A skill directory failed validation.

    Args:
        skill_dir: The directory that was validated.
        violations: Every violation found, in report order.
    """

    def __init__(self, skill_dir: str, violations: list["Violation"]) -> None:
        self.skill_dir = skill_dir
        self.violations = list(violations)
        super().__init__(
            f"Skill at '{skill_dir}' is invalid ({len(self.violations)} violation(s))"
        )


class ExtractionError(SkillpackError):
    """A foreign skill archive could not be unpacked or understood."""


class FrontmatterError(ExtractionError, ValueError):
    """The instructions document could not yield a frontmatter record."""


class InstructionsNotFoundError(FrontmatterError):
    """No instructions document exists under the search root."""


class AmbiguousInstructionsError(FrontmatterError):
    """More than one instructions document exists under the search root."""

    def __init__(self, matches: list[str]) -> None:
        self.matches = list(matches)
        listing = ", ".join(self.matches)
        super().__init__(
            f"Found {len(self.matches)} SKILL.md files, expected exactly one: {listing}"
        )


class MissingFrontmatterError(FrontmatterError):
    """The document does not open with a frontmatter delimiter."""


class MissingClosingDelimiterError(FrontmatterError):
    """The frontmatter is opened but never closed."""


class InvalidFrontmatterError(FrontmatterError):
    """The frontmatter block is not a YAML mapping."""


class MissingFrontmatterFieldError(FrontmatterError):
    """A required frontmatter key is absent or empty."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Frontmatter is missing a non-empty '{field}' value")


class RegistryError(SkillpackError):
    """The registry answered with an error status or an unusable body.

    Args:
        message: Human-readable description.
        status: HTTP status code, when one was received.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class AuthenticationError(RegistryError):
    """The registry rejected the stored API key."""

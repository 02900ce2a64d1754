"""skillpack — package, validate, convert, and publish agent skills.

A skill is a directory bundle: agent instructions (SKILL.md), a registry
overview (README.md), a skill.json manifest, and supporting assets.
The lifecycle is scaffold -> validate -> package -> publish.
"""

__version__ = "0.1.0"

SKILLPACK_HOME = "~/.skillpack"

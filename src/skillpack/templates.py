"""Static file content for scaffolded and converted skills."""

from __future__ import annotations

import json

from .models import SkillManifest

DEFAULT_ICON_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100" viewBox="0 0 24 24">'
    '<path d="M12 2L2 7v10l10 5 10-5V7L12 2zm0 2.23L19.77 7 12 11.77 4.23 7 12 4.23z'
    'M3 8.5l9 5.06v9.44L3 17.5V8.5zm18 0v9l-9 5.06v-9.44L21 8.5z"/></svg>\n'
)

SCAFFOLD_DIRS = ("assets", "scripts", "reference")

_REGISTRY_NOTE = (
    "**Note:** This README is displayed on the registry details page. "
    "The actual AI agent instructions are in SKILL.md."
)


def skill_title(name: str) -> str:
    """'pdf-tools' -> 'Pdf Tools'."""
    return name.replace("-", " ").title()


def render_overview(manifest: SkillManifest) -> str:
    """Full README for a freshly scaffolded skill."""
    runtime = f"{manifest.runtime.type.capitalize()} {manifest.runtime.version}"
    return f"""# {skill_title(manifest.name)}

## Overview

{manifest.description}

## Features

- Feature 1: [Describe key capability]
- Feature 2: [Describe another capability]

## Usage

[Provide examples of how to use this skill]

## Requirements

- {runtime}
- [List any other dependencies]

## License

{manifest.license}

## Author

{manifest.author}

---

{_REGISTRY_NOTE}
"""


def render_converted_overview(name: str, description: str) -> str:
    """README synthesized for a skill converted from a foreign package."""
    return f"""# {name}

## Overview

{description}

## Description

[Add detailed description here - this will be shown on the registry]

---

{_REGISTRY_NOTE}
"""


def render_instructions(manifest: SkillManifest) -> str:
    """SKILL.md with a frontmatter preamble for a new skill."""
    return f"""---
name: {manifest.name}
description: {json.dumps(manifest.description, ensure_ascii=False)}
---

# {skill_title(manifest.name)}

## Overview

This skill is designed to...

## When to Use This Skill

This skill should be used when...

## Instructions

Run 'skillpack validate' when ready.

## Resources

[Reference any scripts, references, or assets included with this skill]
"""


def render_license(license_name: str) -> str:
    return f"This project is licensed under the {license_name} license.\n"

"""skillpack CLI — build and publish skills from the terminal.

Commands:
    init        Scaffold a new skill
    convert     Convert a foreign SKILL.md archive to the skillpack layout
    validate    Check a skill against the schema and the filesystem
    package     Validate and bundle a skill into a .skill archive
    login       Store a registry API key
    search      Search the registry
    me          Account commands (whoami, skills)
    publish     Upload a .skill archive to the registry
"""

from __future__ import annotations

import hashlib
import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .archiver import DEFAULT_OUTPUT_DIR, package_skill
from .collector import default_manifest, manifest_from_frontmatter, prompt_manifest
from .config import ConfigStore
from .converter import convert_skill
from .errors import AuthenticationError, InvalidSkillError, RegistryError, SkillpackError
from .models import FrontmatterRecord, SkillManifest, Violation, ViolationKind, check_skill_name
from .remote import RegistryClient
from .scaffold import create_skill
from .validator import validate_skill

console = Console()
err_console = Console(stderr=True)


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]✗[/red] {escape(message)}")
    sys.exit(1)


def _print_violations(violations: list[Violation]) -> None:
    headings = {
        ViolationKind.MISSING_MANIFEST: "Manifest check failed:",
        ViolationKind.STRUCTURAL: "Schema validation failed with the following errors:",
        ViolationKind.CONSISTENCY: "Filesystem checks failed with the following issues:",
    }
    current: Optional[ViolationKind] = None
    for violation in violations:
        if violation.kind != current:
            current = violation.kind
            err_console.print(f"\n[bold red]{headings[current]}[/bold red]")
        err_console.print(f"  - {escape(str(violation))}")


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def _logged_in_client() -> RegistryClient:
    try:
        api_key = ConfigStore().load_api_key()
    except (ValueError, OSError) as exc:
        _fail(f"Failed to load API key: {exc}")
    if not api_key:
        _fail("You must be logged in. Please run 'skillpack login' first.")
    return RegistryClient(api_key=api_key)


@click.group()
@click.version_option(__version__, prog_name="skillpack")
@click.option("--verbose", "-v", is_flag=True, help="Log progress details.")
def main(verbose: bool) -> None:
    """skillpack — create, validate, package, and publish agent skills."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


@main.command()
@click.argument("name", required=False)
@click.option("--yes", "-y", is_flag=True, help="Skip prompts and use default values.")
@click.option("--dir", "directory", default=".", help="Parent directory for the skill.")
def init(name: Optional[str], yes: bool, directory: str) -> None:
    """Scaffold a new skill.

    Prompts for the manifest fields unless NAME or --yes is given.
    """
    if name or yes:
        name = name or "my-new-skill"
        try:
            check_skill_name(name)
        except ValueError as exc:
            _fail(f"Invalid skill name: {exc}")
        manifest = default_manifest(name)
    else:
        console.print("This utility will walk you through creating a new skill.")
        manifest = prompt_manifest()

    try:
        skill_dir = create_skill(manifest, Path(directory))
    except (SkillpackError, OSError) as exc:
        _fail(f"Error creating skill: {exc}")

    console.print(f"\n[green]Skill initialized:[/green] {escape(str(skill_dir))}")
    console.print("  skill.json       — manifest")
    console.print(f"  {manifest.entrypoint:<16} — registry overview")
    console.print("  SKILL.md         — agent instructions")
    console.print(f"\nNext: edit the files, then [cyan]cd {escape(str(skill_dir))} && skillpack validate[/cyan]")


@main.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False))
@click.option("--dir", "directory", default=".", help="Parent directory for the converted skill.")
@click.option("--yes", "-y", is_flag=True, help="Accept the name and description found in SKILL.md.")
def convert(archive: str, directory: str, yes: bool) -> None:
    """Convert a skill archive with a SKILL.md into the skillpack layout."""
    console.print(f"Analyzing skill package: {escape(archive)}")

    def collect(record: FrontmatterRecord) -> SkillManifest:
        console.print("\n[green]Analysis complete.[/green] Found the following metadata:")
        console.print(f"  Name: {escape(record.name)}")
        console.print(f"  Description: {escape(record.description)}")
        if yes:
            return manifest_from_frontmatter(record)
        return prompt_manifest(defaults=record, version="1.0.0")

    try:
        skill_dir = convert_skill(Path(archive), collect, Path(directory))
    except (SkillpackError, OSError, ValueError) as exc:
        _fail(f"Conversion failed: {exc}")

    console.print(f"\n[green]Converted:[/green] {escape(str(skill_dir))}")
    console.print(f"Next: [cyan]cd {escape(str(skill_dir))} && skillpack validate[/cyan]")


@main.command()
@click.argument("path", default=".", type=click.Path(file_okay=False))
def validate(path: str) -> None:
    """Validate the skill in PATH (default: current directory)."""
    console.print("Running skill validation...")
    report = validate_skill(Path(path))

    if not report.ok:
        _print_violations(report.violations)
        _fail("Validation failed. Please fix the issues above.")

    console.print("[green]✓ Skill is valid![/green]")


@main.command()
@click.argument("path", default=".", type=click.Path(file_okay=False))
@click.option(
    "--output-dir",
    "-o",
    default=DEFAULT_OUTPUT_DIR,
    help="Directory for the .skill file, relative to the skill's parent directory.",
)
@click.option("--output-name", default=None, help="Custom filename for the .skill file.")
def package(path: str, output_dir: str, output_name: Optional[str]) -> None:
    """Validate and package the skill in PATH into a .skill archive."""
    skill_dir = Path(path).resolve()
    out = Path(output_dir)
    if not out.is_absolute():
        out = skill_dir.parent / out

    console.print("Starting package process...")
    try:
        archive = package_skill(skill_dir, output_dir=out, output_name=output_name)
    except InvalidSkillError as exc:
        _print_violations(exc.violations)
        _fail("Validation failed. Cannot package an invalid skill.")
    except (SkillpackError, OSError, ValueError) as exc:
        _fail(f"Package failed: {exc}")

    sha256_hash = hashlib.sha256(archive.read_bytes()).hexdigest()
    console.print(f"\n[green]Packaged:[/green] {escape(str(archive))}")
    console.print(f"  SHA-256: {sha256_hash}")


@main.command()
@click.option("--api-key", default=None, help="Registry API key (prompted if omitted).")
def login(api_key: Optional[str]) -> None:
    """Save an API key for authenticated registry operations."""
    if api_key is None:
        api_key = click.prompt("Please enter your API key", hide_input=True)

    try:
        path = ConfigStore().save_api_key(api_key)
    except (ValueError, OSError) as exc:
        _fail(str(exc))

    console.print("[green]✓ API key saved successfully[/green]")
    console.print(f"  Saved to: {escape(str(path))}")


@main.command()
@click.argument("query")
@click.option("--author", default=None, help="Filter by author's username.")
@click.option("--keywords", default=None, help="Comma-separated keywords to filter by.")
def search(query: str, author: Optional[str], keywords: Optional[str]) -> None:
    """Search the registry for skills."""
    keyword_list = [k.strip() for k in keywords.split(",") if k.strip()] if keywords else None

    try:
        results = RegistryClient().search(query, author=author, keywords=keyword_list)
    except (ConnectionError, RegistryError) as exc:
        _fail(f"Search failed: {exc}")

    if results.total == 0 or not results.data:
        console.print("[dim]No skills found matching your criteria.[/dim]")
        return

    table = Table(title=f"Found {results.total} skill(s)")
    table.add_column("Name", style="cyan")
    table.add_column("Author", style="green")
    table.add_column("Version")
    table.add_column("Description")

    for s in results.data:
        table.add_row(
            escape(f"{s.author}/{s.name}" if s.author else s.name),
            escape(s.author),
            escape(s.latest_version),
            escape(_truncate(s.description, 60)),
        )

    console.print(table)


@main.group()
def me() -> None:
    """Manage your registry account and published skills."""


@me.command()
def whoami() -> None:
    """Check the stored API key against the registry."""
    client = _logged_in_client()
    prefix = client.api_key[:8] + "..." if len(client.api_key) > 8 else client.api_key
    console.print(f"Loaded API key prefix: {escape(prefix)}")

    try:
        client.list_mine()
    except AuthenticationError:
        _fail("The registry rejected this key (401 Unauthorized). Re-run 'skillpack login'.")
    except (ConnectionError, SkillpackError) as exc:
        _fail(f"Validation error: {exc}")

    console.print("[green]✓ The registry accepted this key.[/green]")


@me.command("skills")
def my_skills() -> None:
    """List every skill you have published."""
    client = _logged_in_client()
    try:
        skills = client.list_mine()
    except (ConnectionError, SkillpackError) as exc:
        _fail(f"Failed to retrieve skills: {exc}")

    if not skills:
        console.print("[dim]You have not published any skills yet.[/dim]")
        return

    table = Table(title=f"You have published {len(skills)} skill(s)")
    table.add_column("Name", style="cyan")
    table.add_column("Latest Version")
    table.add_column("Status", style="yellow")
    table.add_column("Published/Total")

    for s in skills:
        version = s.latest_version.version if s.latest_version else "N/A"
        status = s.latest_version.status if s.latest_version else "N/A"
        table.add_row(
            escape(_truncate(s.name, 30)),
            escape(version),
            escape(status),
            f"{s.published_version_count}/{s.total_versions}",
        )

    console.print(table)


@main.command()
@click.argument("package_path", metavar="PACKAGE")
def publish(package_path: str) -> None:
    """Publish a .skill archive created by 'skillpack package'."""
    path = Path(package_path).resolve()
    if not path.is_file():
        _fail(f"Skill package not found at '{path}'")

    client = _logged_in_client()
    console.print(f"Uploading {escape(path.name)}...")
    try:
        result = client.publish(path)
    except (ConnectionError, SkillpackError, OSError) as exc:
        _fail(f"Failed to publish skill: {exc}")

    console.print("\n[green]✓ Publish request successful![/green]")
    console.print(f"  Skill:   {escape(result.skill)}")
    console.print(f"  Version: {escape(result.version)}")
    console.print(f"  Status:  {escape(result.status)}")
    if result.status == "pending_review":
        console.print("\n[dim]Your skill is pending review.[/dim]")


if __name__ == "__main__":
    main()

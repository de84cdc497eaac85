from __future__ import annotations

import difflib
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.syntax import Syntax

from .files import FileSystemPatchFileOps, InMemoryPatchFileOps
from .logger import configure_logging
from .parser import get_system_instruction
from .runner import apply_patch
from .settings import SettingsError, load_settings
from .syntax import LanguageCache, SyntaxContext, TreeSitterProvider

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def _unified_diff(rel: str, before: str, after: str) -> str:
    diff = difflib.unified_diff(
        before.splitlines(),
        after.splitlines(),
        fromfile=f"a/{rel}",
        tofile=f"b/{rel}",
        lineterm="",
    )
    return "\n".join(diff)


@click.group()
def main() -> None:
    """Apply LLM-authored SEARCH/REPLACE blocks to source files."""


@main.command("apply")
@click.argument("patch_file", type=click.File("r", encoding="utf-8"))
@click.option(
    "--root",
    "root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Project root the block paths are relative to.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML or JSON5 settings file.",
)
@click.option(
    "--structural/--no-structural",
    default=None,
    help="Enable the syntax-tree matching tier (overrides settings).",
)
@click.option(
    "--strict", is_flag=True, help="Reject the patch if any block is malformed."
)
@click.option(
    "--dry-run", is_flag=True, help="Show the resulting diff without writing files."
)
def apply_command(
    patch_file,
    root: Path,
    config_path: Optional[Path],
    structural: Optional[bool],
    strict: bool,
    dry_run: bool,
) -> None:
    """Apply PATCH_FILE ("-" for stdin) to files under --root."""
    try:
        settings = load_settings(config_path)
    except SettingsError as e:
        raise click.ClickException(str(e)) from e

    if structural is not None:
        settings.matching.enable_structural = structural
    if strict:
        settings.strict = True
    configure_logging(settings.logging)

    syntax = None
    if settings.matching.enable_structural:
        syntax = SyntaxContext(TreeSitterProvider(LanguageCache()))

    fs_ops = FileSystemPatchFileOps(root)
    dry_ops = InMemoryPatchFileOps(base=fs_ops) if dry_run else None
    ops = dry_ops if dry_ops is not None else fs_ops

    result = apply_patch(patch_file.read(), ops, settings=settings, syntax=syntax)

    console = Console()
    if dry_ops is not None:
        for rel in sorted(dry_ops.changes_map):
            before = dry_ops.originals.get(rel, "")
            diff = _unified_diff(rel, before, dry_ops.files[rel])
            if diff:
                console.print(Syntax(diff, "diff", theme="ansi_dark"))

    console.print(result.summary, markup=False, highlight=False)
    sys.exit(EXIT_SUCCESS if result.ok else EXIT_FAILURE)


@main.command("instructions")
def instructions_command() -> None:
    """Print the patch format instructions meant for an LLM prompt."""
    click.echo(get_system_instruction())


if __name__ == "__main__":
    main()

"""Main CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import rich.panel
import rich_click as click
from polymer_expr import __version__
from polymer_expr.compiler.exceptions import MissingDeclarationError
from polymer_expr.config import TransformOptions
from polymer_expr.pipeline import (
    ProcessedFile,
    SourceFile,
    load_source_files,
    process_files,
    write_source_file,
)
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

console = Console()

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_HELPTEXT_FIRST = True
click.rich_click.STYLE_COMMANDS_TABLE_SHOW_LINES = False
click.rich_click.STYLE_COMMANDS_TABLE_PAD_EDGE = False
click.rich_click.STYLE_COMMANDS_TABLE_BOX = None
click.rich_click.STYLE_COMMANDS_TABLE_EXPAND = False
click.rich_click.STYLE_OPTIONS_TABLE_EXPAND = False
click.rich_click.STYLE_COMMANDS_TABLE_HEADER = "bold magenta"
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = (
    "Try running 'polymer-expr --help' for more information."
)
click.rich_click.STYLE_OPTIONS_TABLE_BOX = None
click.rich_click.STYLE_COMMANDS_PANEL_BOX = None
click.rich_click.STYLE_OPTIONS_PANEL_BOX = None

click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_OPTION = "cyan"
click.rich_click.STYLE_SWITCH = "cyan"
click.rich_click.STYLE_METAVAR = "dim white"
click.rich_click.STYLE_USAGE_COMMAND = "cyan"
click.rich_click.STYLE_USAGE = "dim"

click.rich_click.OPTION_GROUPS = {
    "polymer-expr": [
        {
            "name": "Global Flags",
            "options": ["--help", "--version"],
        }
    ]
}

click.rich_click.COMMAND_GROUPS = {
    "polymer-expr": [
        {
            "name": "Commands",
            "commands": ["build", "check"],
        }
    ]
}


# rich-click wraps tables in Panels which default to expand=True
original_panel_init = rich.panel.Panel.__init__


def panel_init(self, *args, **kwargs):
    kwargs.setdefault("expand", False)
    original_panel_init(self, *args, **kwargs)


rich.panel.Panel.__init__ = panel_init  # type: ignore[method-assign]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def _options(
    globals_: Tuple[str, ...], register: str, strict: bool
) -> TransformOptions:
    return TransformOptions(globals=globals_, register=register, strict=strict)


def _load(sources: Tuple[str, ...]) -> List[SourceFile]:
    try:
        return load_source_files(sources)
    except OSError as e:
        raise click.BadParameter(str(e), param_hint="SOURCES")


def _report_error(processed: ProcessedFile) -> None:
    error = processed.error
    cause = error.__cause__ if error is not None else None
    if isinstance(cause, MissingDeclarationError):
        console.print(
            f"❌ [bold red]{escape(str(processed.file.path))}[/]: {escape(str(cause))}"
        )
        console.print(
            "   [dim]Add a declaration script or pass --no-strict.[/dim]"
        )
    else:
        console.print(
            f"❌ [bold red]{escape(str(processed.file.path))}[/]: {escape(str(error))}"
        )


common_options = [
    click.argument("sources", nargs=-1, required=True, type=click.Path(exists=True)),
    click.option(
        "--global",
        "globals_",
        multiple=True,
        metavar="NAME",
        help="Extra global identifier usable inside bindings (repeatable).",
    ),
    click.option(
        "--register",
        default="Polymer",
        show_default=True,
        help="Name of the component registration function.",
    ),
    click.option(
        "--no-strict",
        is_flag=True,
        help="Report missing declarations instead of failing.",
    ),
    click.option("--verbose", "-v", is_flag=True, help="Enable debug logging."),
]


def with_common_options(func):
    for option in reversed(common_options):
        func = option(func)
    return func


@click.group(
    help=f"""
[bold white on cyan] polymer-expr [/] [bold cyan]v{__version__}[/] Complex expressions for Polymer data bindings.

Run [bold cyan]polymer-expr build SOURCES[/] to rewrite bindings into computed functions.
Run [bold cyan]polymer-expr check SOURCES[/] to see what would change.

[dim]SOURCES are .html files or directories containing them.[/dim]
"""
)
@click.version_option(__version__)
def cli() -> None:
    pass


@cli.command()
@with_common_options
@click.option(
    "--out-dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Write results here instead of rewriting sources in place.",
)
def build(
    sources: Tuple[str, ...],
    globals_: Tuple[str, ...],
    register: str,
    no_strict: bool,
    verbose: bool,
    out_dir: Optional[str],
) -> None:
    """Rewrite complex bindings in SOURCES."""
    _configure_logging(verbose)
    options = _options(globals_, register, strict=not no_strict)
    files = _load(sources)

    console.print(f"🔨 Transforming [cyan]{len(files)}[/] file(s)...")

    target_dir = Path(out_dir) if out_dir else None
    failed = 0
    functions = 0
    for processed in process_files(files, options):
        if not processed.ok:
            failed += 1
            _report_error(processed)
            continue
        if processed.result is not None:
            functions += len(processed.result.functions)
        # In-place runs only touch files that actually changed
        if target_dir is not None or processed.changed:
            target = write_source_file(processed.file, target_dir)
            if processed.changed:
                console.print(f"   ✏️  {escape(str(target))}")

    if failed:
        console.print(f"💥 Build failed for [bold red]{failed}[/] file(s)")
        sys.exit(1)

    console.print(
        f"✅ Build complete (files={len(files)}, computed bindings={functions})"
    )


@cli.command()
@with_common_options
def check(
    sources: Tuple[str, ...],
    globals_: Tuple[str, ...],
    register: str,
    no_strict: bool,
    verbose: bool,
) -> None:
    """Report which SOURCES have bindings that need rewriting."""
    _configure_logging(verbose)
    options = _options(globals_, register, strict=not no_strict)
    files = _load(sources)

    pending = 0
    failed = 0
    for processed in process_files(files, options):
        if not processed.ok:
            failed += 1
            _report_error(processed)
            continue
        if processed.changed and processed.result is not None:
            pending += 1
            console.print(
                f"🔍 {escape(str(processed.file.path))}: "
                f"[cyan]{len(processed.result.functions)}[/] binding(s) to compute"
            )

    if pending or failed:
        console.print(
            f"⚠️  {pending} file(s) would change, {failed} file(s) failed"
        )
        sys.exit(1)

    console.print(f"✅ {len(files)} file(s) up to date")


if __name__ == "__main__":
    cli()

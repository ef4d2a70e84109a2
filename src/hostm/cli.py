"""Command-line interface for hostm.

Parses arguments, picks the hosts file, and reports results.  All file
handling and mutation logic lives in ``hostm.engine``.
"""

import difflib
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from hostm.config import ConfigError, Settings, load_settings
from hostm.engine import DomainExistsError, DomainNotFoundError, HostsManager
from hostm.models import MutationOutcome, MutationResult
from hostm.storage import (
    FileStorage,
    HostsError,
    HostsNotFoundError,
    HostsPermissionError,
    HostsWriteError,
    MemoryStorage,
)

app = typer.Typer(
    help="Manage domain mappings in the hosts file.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

EXIT_DOMAIN = 1
EXIT_NOT_FOUND = 2
EXIT_PERMISSION = 3
EXIT_WRITE = 4
EXIT_CONFIG = 5

# Module-level defaults for Typer arguments
_HOSTS_FILE_HELP = "Path to the hosts file (default: /etc/hosts or the configured path)"
_CONFIG_HELP = "Path to config.json (default: ~/.config/hostm/config.json)"
_DRY_RUN_HELP = "Show the change as a diff without writing the file"

# One physical line with its "\n" terminator, or an unterminated tail.
_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+\Z")


@dataclass
class CliState:
    hosts_file: Path
    settings: Settings
    dry_run: bool = False


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _exit_code(exc: HostsError) -> int:
    if isinstance(exc, (DomainExistsError, DomainNotFoundError)):
        return EXIT_DOMAIN
    if isinstance(exc, HostsNotFoundError):
        return EXIT_NOT_FOUND
    if isinstance(exc, HostsPermissionError):
        return EXIT_PERMISSION
    if isinstance(exc, HostsWriteError):
        return EXIT_WRITE
    return 1


def _diff_lines(before: str, after: str, location: str) -> list[str]:
    """Return a unified diff that shows line-ending changes.

    Lines are compared with their terminators, so ``a\\n`` against ``a\\r\\n``
    is a change.  A carriage return is rendered as a visible ``\\r`` and an
    unterminated last line is followed by the usual "No newline" marker.
    """
    raw = difflib.unified_diff(
        _LINE_RE.findall(before),
        _LINE_RE.findall(after),
        fromfile=location,
        tofile=f"{location} (proposed)",
        lineterm="",
    )
    lines: list[str] = []
    for index, line in enumerate(raw):
        if index < 2 or line.startswith("@@"):
            lines.append(line)
            continue
        body = line[:-1] if line.endswith("\n") else line
        lines.append(body.replace("\r", "\\r"))
        if not line.endswith("\n"):
            lines.append("\\ No newline at end of file")
    return lines


def _show_diff(before: str, after: str, location: str) -> None:
    """Render a unified diff between the current and the proposed content."""
    diff = _diff_lines(before, after, location)
    if not diff:
        console.print(f"No changes for {location}.")
        return
    syntax = Syntax("\n".join(diff), "diff", theme="monokai")
    console.print(Panel(syntax, title="Dry run", border_style="yellow"))


def _run(
    ctx: typer.Context,
    action: Callable[[HostsManager], MutationResult],
) -> MutationResult:
    """Run a mutation against the selected hosts file and map errors to exit codes."""
    state: CliState = ctx.obj
    storage = FileStorage(state.hosts_file)
    try:
        if state.dry_run:
            before = storage.read()
            memory = MemoryStorage(before, location=storage.location)
            result = action(HostsManager(memory, state.settings))
            _show_diff(before, memory.read(), storage.location)
            return result
        return action(HostsManager(storage, state.settings))
    except HostsError as exc:
        err_console.print(f"❌ {exc}")
        if isinstance(exc, HostsPermissionError):
            err_console.print("Try again with elevated privileges, e.g. with sudo.")
        raise typer.Exit(code=_exit_code(exc)) from exc


def _report(result: MutationResult, domain: str, ip: str | None, dry_run: bool) -> None:
    prefix = "Would have" if dry_run else "✅"
    lines = ", ".join(str(n) for n in result.line_numbers)
    if result.outcome is MutationOutcome.REPLACED:
        console.print(f"{prefix} updated {domain} -> {ip} (line {lines})")
    elif result.outcome is MutationOutcome.APPENDED:
        console.print(f"{prefix} created {domain} -> {ip} (line {lines})")
    elif result.outcome is MutationOutcome.DELETED:
        console.print(f"{prefix} deleted {domain} (line {lines})")
    else:
        console.print(f"No mapping for {domain}, nothing to delete")


@app.callback()
def main(
    ctx: typer.Context,
    hosts_file: Path | None = typer.Option(  # noqa: B008
        None,
        "--hosts-file",
        "-f",
        help=_HOSTS_FILE_HELP,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug logs"),
    dry_run: bool = typer.Option(False, "--dry-run", help=_DRY_RUN_HELP),
    config: Path | None = typer.Option(None, "--config", help=_CONFIG_HELP),  # noqa: B008
) -> None:
    """Manage domain mappings in the hosts file."""
    _configure_logging(verbose)
    try:
        settings = load_settings(config)
    except ConfigError as exc:
        err_console.print(f"❌ {exc}")
        raise typer.Exit(code=EXIT_CONFIG) from exc
    ctx.obj = CliState(
        hosts_file=hosts_file if hosts_file is not None else settings.hosts_file,
        settings=settings,
        dry_run=dry_run,
    )


@app.command("set")
def set_mapping(
    ctx: typer.Context,
    domain: str = typer.Argument(..., help="Domain name"),
    ip: str = typer.Argument(..., help="IP address"),
) -> None:
    """Create or update the mapping for a domain."""
    result = _run(ctx, lambda manager: manager.set(domain, ip))
    _report(result, domain, ip, ctx.obj.dry_run)


@app.command()
def create(
    ctx: typer.Context,
    domain: str = typer.Argument(..., help="Domain name"),
    ip: str = typer.Argument(..., help="IP address"),
) -> None:
    """Create a new mapping. Fails if the domain is already mapped."""
    result = _run(ctx, lambda manager: manager.create(domain, ip))
    _report(result, domain, ip, ctx.obj.dry_run)


@app.command()
def update(
    ctx: typer.Context,
    domain: str = typer.Argument(..., help="Domain name"),
    ip: str = typer.Argument(..., help="New IP address"),
) -> None:
    """Update an existing mapping. Fails if the domain is not mapped."""
    result = _run(ctx, lambda manager: manager.update(domain, ip))
    _report(result, domain, ip, ctx.obj.dry_run)


@app.command()
def delete(
    ctx: typer.Context,
    domain: str = typer.Argument(..., help="Domain to remove"),
    strict: bool = typer.Option(False, "--strict", help="Fail if the domain is not mapped"),
) -> None:
    """Delete every mapping for a domain."""
    result = _run(ctx, lambda manager: manager.delete(domain, strict=strict))
    _report(result, domain, None, ctx.obj.dry_run)


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Text to look for (substring match)"),
) -> None:
    """List every line containing the query."""
    state: CliState = ctx.obj
    manager = HostsManager(FileStorage(state.hosts_file), state.settings)
    try:
        hits = manager.search(query)
    except HostsError as exc:
        err_console.print(f"❌ {exc}")
        raise typer.Exit(code=_exit_code(exc)) from exc

    if not hits:
        console.print(f"No lines containing '{query}'")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Line", justify="right")
    table.add_column("Content")
    for number, text in hits:
        table.add_row(str(number), Text(text))
    console.print(table)

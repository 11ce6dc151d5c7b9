"""CLI interface for burrow."""

from __future__ import annotations

import json
import logging
import os
import sys

import click

from burrow.core.bridge import TRANSPORTS, FileSystemClient, TransportError, handle_envelope, make_client
from burrow.core.filesystem import FileSystemError, FileSystemService
from burrow.core.navigation import Navigator
from burrow.core.privileges import PrivilegeError, decode_request
from burrow.models.file_entry import FileEntry
from burrow.models.navigation import SORT_FIELDS
from burrow.models.operation_result import OperationResult
from burrow.settings import Settings
from burrow.utils import bytes_to_human, format_timestamp, init_locale


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _client(ctx: click.Context) -> FileSystemClient:
    return make_client(ctx.obj["transport"])


def _fail(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(1)


def _perm_string(entry: FileEntry) -> str:
    p = entry.permissions
    if p is None:
        return "---"
    return ("r" if p.readable else "-") + ("w" if p.writable else "-") + ("x" if p.executable else "-")


def _format_entry(entry: FileEntry) -> str:
    if entry.is_directory:
        name = click.style(entry.name + "/", fg="blue", bold=True)
        size = ""
    else:
        name = entry.name
        size = bytes_to_human(entry.size)
    return f"  {_perm_string(entry)}  {size:>10s}  {format_timestamp(entry.modified)}  {name}"


def _report(result: OperationResult, done: str) -> bool:
    if result.success:
        click.echo(f"  {click.style('✓', fg='green')} {done}")
        return True
    click.echo(f"  {click.style('✗', fg='red')} {result.error}", err=True)
    return False


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
@click.option(
    "--transport",
    "-t",
    type=click.Choice(TRANSPORTS),
    default=None,
    help="How to reach the filesystem service (default from settings)",
)
@click.pass_context
def main(ctx: click.Context, verbose: int, transport: str | None) -> None:
    """Burrow: a file browser backend with a privileged filesystem service."""
    _setup_logging(verbose)
    init_locale()
    ctx.ensure_object(dict)
    ctx.obj["transport"] = transport or Settings.instance().get("bridge.transport")


# ── ls ───────────────────────────────────────────────────────────────────

@main.command("ls")
@click.argument("path", required=False)
@click.option("--sort", "sort_field", type=click.Choice(SORT_FIELDS), default=None, help="Sort field")
@click.option("--desc", is_flag=True, help="Sort in descending order")
@click.option("--filter", "query", default="", help="Only show names containing this text")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def ls_cmd(ctx: click.Context, path: str | None, sort_field: str | None, desc: bool, query: str, as_json: bool) -> None:
    """List a directory (the home directory by default)."""
    navigator = Navigator(_client(ctx), settings=Settings.instance())
    if path is None:
        navigator.initialize()
    else:
        navigator.navigate_to(path)

    state = navigator.state
    if state.error:
        _fail(state.error)

    if sort_field or desc:
        navigator.set_sorting(sort_field or state.sort_field, "desc" if desc else "asc")
    navigator.set_search_query(query)
    items = navigator.filtered_items

    if as_json:
        click.echo(json.dumps({"path": state.current_path, "items": [e.to_dict() for e in items]}, indent=2))
        return

    click.echo(f"\n{click.style(state.current_path, bold=True)}\n")
    if not items:
        click.echo("  (empty)")
    for entry in items:
        click.echo(_format_entry(entry))
    dirs = sum(1 for e in items if e.is_directory)
    click.echo(f"\n{dirs} folder{'s' if dirs != 1 else ''}, {len(items) - dirs} file{'s' if len(items) - dirs != 1 else ''}\n")


# ── stat ─────────────────────────────────────────────────────────────────

@main.command("stat")
@click.argument("path")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def stat_cmd(ctx: click.Context, path: str, as_json: bool) -> None:
    """Show details about a file or folder."""
    try:
        entry = _client(ctx).get_file_stats(path)
    except FileSystemError as e:
        _fail(str(e))
        return

    if as_json:
        click.echo(json.dumps(entry.to_dict(), indent=2))
        return

    kind = "folder" if entry.is_directory else "file"
    click.echo(f"\n  {click.style('Name:', bold=True)}        {entry.name}")
    click.echo(f"  {click.style('Path:', bold=True)}        {entry.path}")
    click.echo(f"  {click.style('Type:', bold=True)}        {kind}{' (' + entry.extension + ')' if entry.extension else ''}")
    click.echo(f"  {click.style('Size:', bold=True)}        {bytes_to_human(entry.size)} ({entry.size:,} bytes)")
    click.echo(f"  {click.style('Modified:', bold=True)}    {format_timestamp(entry.modified)}")
    click.echo(f"  {click.style('Created:', bold=True)}     {format_timestamp(entry.created)}")
    click.echo(f"  {click.style('Permissions:', bold=True)} {_perm_string(entry)}")
    click.echo()


# ── mutations ────────────────────────────────────────────────────────────

@main.command("mkdir")
@click.argument("parent")
@click.argument("name")
@click.pass_context
def mkdir_cmd(ctx: click.Context, parent: str, name: str) -> None:
    """Create folder NAME inside PARENT."""
    if not _report(_client(ctx).create_folder(parent, name), f"Created {os.path.join(parent, name)}"):
        sys.exit(1)


@main.command("rm")
@click.argument("paths", nargs=-1, required=True)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def rm_cmd(ctx: click.Context, paths: tuple[str, ...], yes: bool) -> None:
    """Delete files and folders (folders recursively)."""
    if not yes:
        count = len(paths)
        if not click.confirm(f"Permanently delete {count} item{'s' if count != 1 else ''}?", default=False):
            click.echo("Aborted.")
            return

    client = _client(ctx)
    ok = True
    for path in paths:
        ok = _report(client.delete_item(path), f"Deleted {path}") and ok
    if not ok:
        sys.exit(1)


@main.command("mv")
@click.argument("old_path")
@click.argument("new_path")
@click.pass_context
def mv_cmd(ctx: click.Context, old_path: str, new_path: str) -> None:
    """Rename or move a file or folder."""
    if not _report(_client(ctx).rename_item(old_path, new_path), f"Moved {old_path} -> {new_path}"):
        sys.exit(1)


@main.command("cp")
@click.argument("sources", nargs=-1, required=True)
@click.argument("destination")
@click.pass_context
def cp_cmd(ctx: click.Context, sources: tuple[str, ...], destination: str) -> None:
    """Copy files and folders into the DESTINATION folder."""
    client = _client(ctx)
    ok = True
    for source in sources:
        target = os.path.join(destination, os.path.basename(os.path.normpath(source)))
        ok = _report(client.copy_item(source, target), f"Copied {source} -> {target}") and ok
    if not ok:
        sys.exit(1)


@main.command("open")
@click.argument("path")
@click.pass_context
def open_cmd(ctx: click.Context, path: str) -> None:
    """Open a file with its default application."""
    if not _report(_client(ctx).open_file(path), f"Opened {path}"):
        sys.exit(1)


@main.command("reveal")
@click.argument("path")
@click.pass_context
def reveal_cmd(ctx: click.Context, path: str) -> None:
    """Show a file in the system file manager."""
    if not _report(_client(ctx).show_in_folder(path), f"Revealed {path}"):
        sys.exit(1)


# ── dirs ─────────────────────────────────────────────────────────────────

@main.command("dirs")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def dirs_cmd(ctx: click.Context, as_json: bool) -> None:
    """Show the well-known user directories."""
    client = _client(ctx)
    try:
        data = {
            "home": client.get_home_directory(),
            "desktop": client.get_desktop_directory(),
            "documents": client.get_documents_directory(),
            "downloads": client.get_downloads_directory(),
        }
    except TransportError as e:
        _fail(f"Failed to get user directories: {e}")
        return
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return
    for kind, path in data.items():
        click.echo(f"  {click.style(kind, fg='cyan', bold=True):20s}  {path}")


# ── call-as-root (internal, hidden) ──────────────────────────────────────

@main.command("call-as-root", hidden=True)
def call_as_root() -> None:
    """Internal command invoked via pkexec to run one bridge call as root.

    Reads a JSON payload from stdin with the shape::

        {"operation": "delete_item", "args": ["/path"]}

    Writes a JSON envelope to stdout.
    """
    try:
        operation, args = decode_request(sys.stdin.read())
    except PrivilegeError as exc:
        click.echo(json.dumps({"error": str(exc), "kind": "bridge"}))
        sys.exit(1)

    click.echo(json.dumps(handle_envelope(FileSystemService(), operation, args)))


# ── config ───────────────────────────────────────────────────────────────

@main.group()
def config() -> None:
    """Read and change settings."""


@config.command("get")
@click.argument("key")
def config_get(key: str) -> None:
    """Print the value of a dot-notation KEY."""
    value = Settings.instance().get(key)
    if value is None:
        _fail(f"Setting '{key}' is not set.")
    click.echo(json.dumps(value))


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set KEY to VALUE (parsed as JSON when possible)."""
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    Settings.instance().set(key, parsed)
    click.echo(f"{key} = {json.dumps(parsed)}")


@config.command("unset")
@click.argument("key")
def config_unset(key: str) -> None:
    """Remove KEY so it falls back to its default."""
    if not Settings.instance().unset(key):
        _fail(f"Setting '{key}' is not set.")
    click.echo(f"{key} reset")


# ── service ──────────────────────────────────────────────────────────────

@main.group()
def service() -> None:
    """D-Bus service management."""


@service.command("start")
@click.option("--system", "system_bus", is_flag=True, help="Use the system bus instead of the session bus")
def service_start(system_bus: bool) -> None:
    """Start the D-Bus service in foreground."""
    from burrow.dbus_service import start_service

    click.echo("Starting burrow D-Bus service...")
    start_service(system_bus=system_bus)

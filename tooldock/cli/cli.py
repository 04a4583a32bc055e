"""Command-line interface for tooldock.

``tooldock plugin <list|install|remove|update|search>`` manages plugins.
Any other first argument that names an installed plugin is forwarded to that
plugin's executable together with the remaining arguments.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

import click
from rich.console import Console
from rich.markup import escape

from tooldock import __version__
from tooldock.core.config import ensure_directories, resolve_config
from tooldock.core.errors import AlreadyInstalledError, ToolDockError
from tooldock.core.executor import is_plugin_installed, run_plugin
from tooldock.core.manager import PluginManager, PluginStatus
from tooldock.core.store import InstallationStore
from tooldock.utils.log import enable_file_logging, get_logger

logger = get_logger()
console = Console()

# First arguments that always go to the command parser, never to a plugin.
RESERVED_ARGUMENTS = frozenset(
    {"plugin", "help", "version", "--help", "-h", "--version", "-v"}
)


@contextmanager
def _surface_errors() -> Iterator[None]:
    try:
        yield
    except ToolDockError as exc:
        logger.debug(
            "[cli] Command failed: %s",
            exc.message,
            extra={"kind": exc.kind.value, "plugin": exc.name, "url": exc.url},
        )
        raise click.ClickException(exc.message) from exc


def _manager(ctx: click.Context) -> PluginManager:
    root = ctx.find_root()
    if not isinstance(root.obj, PluginManager):
        with _surface_errors():
            config = resolve_config()
            ensure_directories(config)
        root.obj = PluginManager(config)
    return root.obj


def _print_rows(rows: List[PluginStatus]) -> None:
    for row in rows:
        status = "✓ " if row.installed else "  "
        entry = row.descriptor
        console.print(
            f"{status}{escape(entry.name):<15} {escape(entry.description)} (v{escape(entry.version)})",
            highlight=False,
        )


@click.group(help="A lightweight plugin-based CLI toolkit.")
@click.version_option(
    __version__, "--version", "-v", prog_name="tooldock", message="%(prog)s version %(version)s"
)
def cli() -> None:
    """Install plugins with 'tooldock plugin install <name>' and run them
    with 'tooldock <plugin> [args...]'."""


@cli.command(name="version")
def version_cmd() -> None:
    """Show version information"""
    console.print(f"tooldock version {__version__}", highlight=False)


@cli.group(name="plugin", help="Manage tooldock plugins.")
def plugin_group() -> None:
    pass


@plugin_group.command(name="list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """List available plugins and show which ones are installed."""
    manager = _manager(ctx)
    with _surface_errors():
        rows = manager.list_plugins()

    console.print("Available plugins:\n")
    _print_rows(rows)
    console.print("\n✓ = installed")


@plugin_group.command(name="install")
@click.argument("name")
@click.pass_context
def install_cmd(ctx: click.Context, name: str) -> None:
    """Download and install a plugin from the registry."""
    manager = _manager(ctx)
    console.print(f"📦 Installing {escape(name)}...", highlight=False)
    with _surface_errors():
        try:
            outcome = manager.install(name)
        except AlreadyInstalledError:
            console.print(f"[yellow]⚠️  Plugin '{escape(name)}' is already installed[/yellow]")
            console.print(f"💡 Use 'tooldock plugin update {escape(name)}' to update it")
            return

    descriptor = outcome.descriptor
    console.print(
        f"[green]✅ Successfully installed {escape(descriptor.name)} v{escape(descriptor.version)}[/green]"
    )
    console.print(f"💡 Usage: tooldock {escape(descriptor.name)} \\[args...]")


@click.command(name="remove")
@click.argument("name")
@click.pass_context
def remove_cmd(ctx: click.Context, name: str) -> None:
    """Uninstall a plugin from your system."""
    manager = _manager(ctx)
    with _surface_errors():
        manager.remove(name)
    console.print(f"[green]✅ Successfully removed {escape(name)}[/green]")


plugin_group.add_command(remove_cmd)
plugin_group.add_command(remove_cmd, name="uninstall")
plugin_group.add_command(remove_cmd, name="rm")


@plugin_group.command(name="update")
@click.argument("name")
@click.pass_context
def update_cmd(ctx: click.Context, name: str) -> None:
    """Download and install the latest version of a plugin."""
    manager = _manager(ctx)
    console.print(f"📦 Updating {escape(name)}...", highlight=False)
    with _surface_errors():
        outcome = manager.update(name)
    descriptor = outcome.descriptor
    console.print(
        f"[green]✅ Successfully updated {escape(descriptor.name)} to v{escape(descriptor.version)}[/green]"
    )


@plugin_group.command(name="search")
@click.argument("query")
@click.pass_context
def search_cmd(ctx: click.Context, query: str) -> None:
    """Search for plugins by name or description."""
    manager = _manager(ctx)
    with _surface_errors():
        rows = manager.search(query)

    console.print(f"Search results for '{escape(query)}':\n", highlight=False)
    if rows:
        _print_rows(rows)
    else:
        console.print("No plugins found matching your query.")
    console.print()


def _exit_status(returncode: int) -> int:
    # Children killed by a signal report -N.
    return 128 - returncode if returncode < 0 else returncode


def dispatch_plugin(store: InstallationStore, args: Sequence[str]) -> Optional[int]:
    """Run ``args[0]`` as a plugin if it is one; return its exit status or None."""
    if not args:
        return None
    candidate = args[0]
    if candidate in RESERVED_ARGUMENTS or candidate.startswith("-"):
        return None
    if not is_plugin_installed(store, candidate):
        return None
    return _exit_status(run_plugin(store, candidate, list(args[1:])))


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        try:
            config = resolve_config()
            ensure_directories(config)
            try:
                enable_file_logging(config.log_dir)
            except OSError as exc:
                logger.warning("Failed to enable file logging: %s: %s", type(exc).__name__, exc)
            logger.info("[cli] Starting CLI invocation", extra={"argv": args})

            status = dispatch_plugin(InstallationStore(config), args)
            if status is not None:
                sys.exit(status)
            manager = PluginManager(config)
        except ToolDockError as exc:
            console.print(f"[red]Error: {escape(exc.message)}[/red]")
            sys.exit(1)

        cli.main(args=args, prog_name="tooldock", obj=manager)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()

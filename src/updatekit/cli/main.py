"""CLI entry point for updatekit."""

from __future__ import annotations

import asyncio
import sys
from typing import List, Optional

import typer

from updatekit.cli.renderers import (
    backends_table,
    config_table,
    console,
    counts_table,
    package_table,
    updates_table,
)
from updatekit.core import dispatch
from updatekit.core.config import Config
from updatekit.core.errors import (
    EXIT_SYSTEM_ERROR,
    CoreError,
    exit_code_for,
    format_error_message,
)
from updatekit.core.logging import configure_logging, get_logger
from updatekit.core.models import APP_BACKENDS, SYSTEM_BACKENDS, BackendKind
from updatekit.core.repo import Repository

app = typer.Typer(help="updatekit: one interface for dnf, Flatpak, Homebrew, Cargo and Go.")
config_app = typer.Typer(help="Show or change the backend configuration.")
app.add_typer(config_app, name="config")

configure_logging()
log = get_logger(__name__)


def handle_error(error: Exception) -> int:
    """Handle errors and return appropriate exit codes.

    Args:
        error: The exception to handle.

    Returns:
        An integer exit code.
    """
    if isinstance(error, CoreError):
        log.error(
            "cli_error",
            error_type=type(error).__name__,
            message=error.message,
            context=error.context,
            exc_info=True
        )
        console.print(f"\n{format_error_message(error)}\n", style="bold red")
        return exit_code_for(error)

    log.error("unexpected_error", error=str(error), exc_info=True)
    console.print(f"\n⚠️ Unexpected error occurred: {error}\n", style="bold red")
    return EXIT_SYSTEM_ERROR


@app.command()
def backends() -> None:
    """Show every supported backend and whether it is available."""
    try:
        config = Config.load()
        availability = {
            kind: dispatch.is_available(kind) for kind in SYSTEM_BACKENDS + APP_BACKENDS
        }
        console.print(backends_table(config, availability))
    except Exception as e:
        sys.exit(handle_error(e))


@app.command()
def installed(
    backend: Optional[BackendKind] = typer.Option(
        None, "--backend", "-b", help="Only query this backend"
    ),
    count: bool = typer.Option(False, "--count", "-c", help="Only show counts"),
) -> None:
    """List installed packages."""
    try:
        config = Config.load()
        if backend and count:
            total = asyncio.run(dispatch.count_installed(backend, config))
            console.print(counts_table({backend: total}))
        elif backend:
            console.print(package_table(asyncio.run(dispatch.list_installed(backend, config))))
        elif count:
            console.print(counts_table(asyncio.run(Repository(config).installed_counts())))
        else:
            by_backend = asyncio.run(Repository(config).installed_by_backend())
            pkgs = [p for items in by_backend.values() for p in items]
            console.print(package_table(pkgs))
    except Exception as e:
        sys.exit(handle_error(e))


@app.command()
def updates(
    backend: Optional[BackendKind] = typer.Option(
        None, "--backend", "-b", help="Only query this backend"
    ),
) -> None:
    """List pending updates."""
    try:
        config = Config.load()
        if backend:
            found = {backend: asyncio.run(dispatch.list_updates(backend, config))}
        else:
            found = asyncio.run(Repository(config).updates_by_backend())
        console.print(updates_table(found))
    except Exception as e:
        sys.exit(handle_error(e))


@app.command()
def search(
    query: str,
    backend: Optional[BackendKind] = typer.Option(
        None, "--backend", "-b", help="Only search this backend"
    ),
) -> None:
    """Search remote catalogs."""
    try:
        config = Config.load()
        if backend:
            pkgs = asyncio.run(dispatch.search_package(backend, config, query))
        else:
            results = asyncio.run(Repository(config).search_all(query))
            pkgs = [p for items in results.values() for p in items]
        console.print(package_table(pkgs, title=f"Results for '{query}'"))
    except Exception as e:
        sys.exit(handle_error(e))


@app.command()
def version(backend: BackendKind, name: str) -> None:
    """Show the installed version of one package."""
    try:
        current = asyncio.run(dispatch.get_current_version(backend, Config.load(), name))
        console.print(f"{name} [bold]{current}[/bold]")
    except Exception as e:
        sys.exit(handle_error(e))


@app.command()
def install(backend: BackendKind, names: List[str]) -> None:
    """Install packages with one backend."""
    try:
        asyncio.run(dispatch.install_packages(backend, Config.load(), names))
        console.print(f"✓ Installed {', '.join(names)}", style="green")
    except Exception as e:
        sys.exit(handle_error(e))


@app.command()
def upgrade(backend: BackendKind, names: List[str]) -> None:
    """Update packages with one backend."""
    try:
        asyncio.run(dispatch.update_packages(backend, Config.load(), names))
        console.print(f"✓ Updated {', '.join(names)}", style="green")
    except Exception as e:
        sys.exit(handle_error(e))


@app.command()
def remove(backend: BackendKind, names: List[str]) -> None:
    """Uninstall packages with one backend."""
    try:
        asyncio.run(dispatch.uninstall_packages(backend, Config.load(), names))
        console.print(f"✓ Removed {', '.join(names)}", style="green")
    except Exception as e:
        sys.exit(handle_error(e))


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration."""
    try:
        console.print(config_table(Config.load()))
    except Exception as e:
        sys.exit(handle_error(e))


@config_app.command("detect")
def config_detect() -> None:
    """Re-detect available backends and overwrite the configuration."""
    try:
        config = Config.detect()
        config.save()
        console.print(config_table(config))
    except Exception as e:
        sys.exit(handle_error(e))


@config_app.command("set-path")
def config_set_path(
    backend: BackendKind,
    path: Optional[str] = typer.Argument(None, help="Executable path; omit to reset"),
) -> None:
    """Set or clear the custom executable of a backend."""
    try:
        config = Config.load().with_custom_path(backend, path)
        config.save()
        console.print(config_table(config))
    except Exception as e:
        sys.exit(handle_error(e))


@config_app.command("set-go-bin")
def config_set_go_bin(
    directory: Optional[str] = typer.Argument(None, help="Directory; omit to reset"),
) -> None:
    """Override the directory scanned for Go binaries."""
    try:
        config = Config.load().with_go_bin_dir(directory)
        config.save()
        console.print(config_table(config))
    except Exception as e:
        sys.exit(handle_error(e))


if __name__ == "__main__":
    app()

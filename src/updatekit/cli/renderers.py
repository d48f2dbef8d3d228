"""Renderers for displaying package information in the CLI using Rich."""

from __future__ import annotations

from typing import Iterable, Mapping

from rich import box
from rich.console import Console
from rich.table import Table

from updatekit.core.config import Config
from updatekit.core.models import BackendKind, PackageInfo, PackageUpdate

console = Console()


def human_size(size: int | None) -> str:
    """Convert a size in bytes to a human-readable string.

    Args:
        size: The size in bytes.

    Returns:
        The human-readable size string, or "-" when unknown.
    """
    if not size:
        return "-"

    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1

    return f"{value:.2f} {units[i]}"


def package_table(pkgs: Iterable[PackageInfo], title: str | None = None) -> Table:
    """Create a Rich Table of installed or searched packages.

    Args:
        pkgs: The packages to display.
        title: Optional table title.

    Returns:
        A Rich Table.
    """
    table = Table(box=box.MINIMAL_HEAVY_HEAD, title=title)
    table.add_column("Backend", style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Description", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Installed On", style="dim")

    for p in pkgs:
        table.add_row(
            p.source.display_name,
            p.name,
            p.version,
            p.description or "",
            human_size(p.size),
            p.install_date or "",
        )

    return table


def updates_table(updates: Mapping[BackendKind, list[PackageUpdate]]) -> Table:
    """Create a Rich Table of pending updates grouped by backend."""
    table = Table(box=box.MINIMAL_HEAVY_HEAD)
    table.add_column("Backend", style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Current", style="red")
    table.add_column("New", style="green")

    for kind, items in updates.items():
        for u in items:
            table.add_row(kind.display_name, u.name, u.current_version, u.new_version)

    return table


def counts_table(counts: Mapping[BackendKind, int]) -> Table:
    table = Table(box=box.MINIMAL_HEAVY_HEAD)
    table.add_column("Backend", style="bold")
    table.add_column("Installed", justify="right")
    for kind, count in counts.items():
        table.add_row(kind.display_name, str(count))
    return table


def backends_table(config: Config, availability: Mapping[BackendKind, bool]) -> Table:
    """Show every known backend with its availability and configuration."""
    configured = set(config.configured_kinds())

    table = Table(box=box.MINIMAL_HEAVY_HEAD)
    table.add_column("Backend", style="bold")
    table.add_column("Role")
    table.add_column("Available")
    table.add_column("Configured")
    table.add_column("Command")
    table.add_column("Description", style="dim")

    for kind, available in availability.items():
        table.add_row(
            kind.display_name,
            "system" if kind.is_system_manager else "app",
            "[green]yes[/green]" if available else "[red]no[/red]",
            "[green]yes[/green]" if kind in configured else "",
            config.command_for(kind),
            kind.description,
        )

    return table


def config_table(config: Config) -> Table:
    t = Table(box=box.MINIMAL_HEAVY_HEAD)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row(
        "System manager",
        config.system_manager.manager_type.display_name if config.system_manager else "-",
    )
    for entry in config.entries():
        t.add_row(f"{entry.manager_type.display_name} path", entry.custom_path or "(default)")
    t.add_row(
        "App managers",
        ", ".join(e.manager_type.display_name for e in config.app_managers) or "-",
    )
    t.add_row("Go bin dir", config.go_bin_dir())
    return t

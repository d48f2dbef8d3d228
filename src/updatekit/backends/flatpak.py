"""Flatpak application backend.

Installed versions and pending updates come from two separate `flatpak
list` invocations that are joined on application ID. Flatpak apps often
have no numeric version, only a branch; versions are normalised to
"<version> (<branch>)" or "branch: <branch>".
"""

from __future__ import annotations

import re
import time
from typing import List

from updatekit.core.config import Config
from updatekit.core.errors import CommandError, CoreError, UnknownError
from updatekit.core.logging import get_logger
from updatekit.core.models import BackendKind, PackageInfo, PackageUpdate
from updatekit.core.shell import run_capture, run_checked

log = get_logger(__name__)

KIND = BackendKind.FLATPAK

UPDATES_COLUMNS = "--columns=application,version,branch"
INSTALLED_COLUMNS = "--columns=application,name,version,branch,size,origin"

# Sizes look like "123.4 MB" (GLib may use a non-breaking space).
_SIZE_PATTERN = re.compile(r"^\s*([\d.]+)\s*([A-Za-z]+)\s*$")

_SIZE_MULTIPLIERS: dict[str, int] = {
    "B": 1,
    "BYTES": 1,
    "KB": 1024,
    "KIB": 1024,
    "MB": 1024 * 1024,
    "MIB": 1024 * 1024,
    "GB": 1024 * 1024 * 1024,
    "GIB": 1024 * 1024 * 1024,
}


def format_version(version: str, branch: str) -> str:
    """Normalise a version/branch pair into one display string."""
    if not version:
        return f"branch: {branch}"
    return f"{version} ({branch})"


def parse_size(size_str: str) -> int | None:
    """Parse a human-readable size like "1.2 GB" into bytes.

    Returns:
        Size in bytes, or None for unrecognised units or malformed text.
    """
    if not size_str:
        return None

    match = _SIZE_PATTERN.match(size_str)
    if not match:
        return None

    multiplier = _SIZE_MULTIPLIERS.get(match.group(2).upper())
    if multiplier is None:
        return None

    try:
        return int(float(match.group(1)) * multiplier)
    except (ValueError, OverflowError):
        return None


def _is_header(index: int, line: str) -> bool:
    # Application IDs are reverse-DNS names, column titles never contain a dot.
    if index != 0:
        return False
    tokens = line.split()
    return not tokens or "." not in tokens[0]


def parse_installed_info(output: str) -> dict[str, tuple[str, str]]:
    """Parse `flatpak list --columns=application,version,branch`.

    Lines carry 1, 2 or 3 whitespace-separated tokens; fewer tokens mean
    the version and/or branch are missing, not that the line is malformed.

    Returns:
        Mapping of application ID to (version, branch).
    """
    info: dict[str, tuple[str, str]] = {}
    for i, raw in enumerate(output.splitlines()):
        line = raw.strip()
        if not line or _is_header(i, line):
            continue

        parts = line.split()
        if len(parts) == 3:
            info[parts[0]] = (parts[1], parts[2])
        elif len(parts) == 2:
            info[parts[0]] = ("", parts[1])
        elif len(parts) == 1:
            info[parts[0]] = ("", "unknown")
    return info


def parse_installed(output: str) -> list[PackageInfo]:
    """Parse `flatpak list --app` with INSTALLED_COLUMNS (tab separated)."""
    pkgs: list[PackageInfo] = []
    for i, line in enumerate(output.splitlines()):
        if not line.strip() or _is_header(i, line.strip()):
            continue

        parts = [p.strip() for p in line.split("\t")]
        if len(parts) < 4:
            continue

        app_id, name, version, branch = parts[:4]
        pkgs.append(
            PackageInfo(
                name=app_id,
                version=format_version(version, branch or "stable"),
                source=KIND,
                description=name or None,
                size=parse_size(parts[4]) if len(parts) > 4 else None,
            )
        )
    return pkgs


def parse_search(output: str) -> list[PackageInfo]:
    """Parse `flatpak search` output.

    Search columns are not fixed-width and the Name/Description columns
    contain spaces, so the application ID is located heuristically as the
    first token containing a dot and longer than five characters. A
    description token that happens to look like that will be taken
    instead; there is no machine-readable search output to validate against.

    The columns after the ID are Version, Branch and Remotes. With only
    two left the version column was empty.
    """
    pkgs: list[PackageInfo] = []
    for raw in output.splitlines():
        parts = raw.split()
        if len(parts) < 3:
            continue

        index = next((i for i, p in enumerate(parts) if "." in p and len(p) > 5), None)
        if index is None:
            continue

        app_id = parts[index]
        trailing = parts[index + 1 :]
        version = trailing[0] if len(trailing) >= 3 else ""
        if version == "unknown":
            version = ""
        pkgs.append(PackageInfo(name=app_id, version=version, source=KIND))
    return pkgs


async def get_all_installed_info(config: Config) -> dict[str, tuple[str, str]]:
    """Map every installed ref (apps and runtimes) to (version, branch).

    Raises:
        CommandError: If `flatpak list` fails.
    """
    flatpak = config.command_for(KIND)
    result = await run_capture(flatpak, "list", UPDATES_COLUMNS)
    if not result.ok:
        raise CommandError(
            "flatpak list failed",
            command=f"{flatpak} list",
            error=result.stderr.strip()
        )
    return parse_installed_info(result.stdout)


async def list_updates(config: Config) -> List[PackageUpdate]:
    """List apps with pending updates, joined with their installed versions."""
    start = time.perf_counter()
    flatpak = config.command_for(KIND)

    result = await run_capture(
        flatpak, "list", "--updates", "--app", UPDATES_COLUMNS, "--no-heading"
    )
    if not result.ok:
        raise UnknownError.from_exit("flatpak list --updates", result.returncode, result.stderr)

    installed = await get_all_installed_info(config)
    updates: List[PackageUpdate] = []

    for raw in result.stdout.splitlines():
        line = raw.strip()
        if not line:
            continue

        parts = line.split("\t")
        app_id = parts[0].strip()
        new_version = parts[1].strip() if len(parts) > 1 else ""
        new_branch = parts[2].strip() if len(parts) > 2 else "unknown"

        if app_id in installed:
            current = format_version(*installed[app_id])
        else:
            current = "unknown"
        new = format_version(new_version, new_branch)

        if current == new:
            continue
        updates.append(PackageUpdate(name=app_id, current_version=current, new_version=new))

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("flatpak_updates_complete", count=len(updates), duration_ms=duration_ms)
    return updates


async def get_current_version(config: Config, name: str) -> str:
    """Get "<version> (<branch>)" for one installed ref.

    Raises:
        UnknownError: If the ref is not installed.
    """
    flatpak = config.command_for(KIND)

    version = ""
    try:
        result = await run_capture(flatpak, "info", "--show-version", name)
        if result.ok:
            version = result.stdout.strip()
    except CoreError as e:
        log.debug("flatpak_version_unavailable", package=name, error=str(e))

    result = await run_capture(flatpak, "info", "--show-branch", name)
    if not result.ok:
        raise UnknownError(f"Package {name} not found", context={"backend": KIND.value})

    return format_version(version, result.stdout.strip())


async def list_installed(config: Config) -> List[PackageInfo]:
    """List installed apps with display name, version and size.

    Falls back to the plain installed-info listing if the column query fails.
    """
    start = time.perf_counter()
    flatpak = config.command_for(KIND)

    result = await run_capture(flatpak, "list", "--app", INSTALLED_COLUMNS)
    if not result.ok:
        log.warning("flatpak_list_fallback", returncode=result.returncode)
        info = await get_all_installed_info(config)
        return [
            PackageInfo(name=app_id, version=format_version(version, branch), source=KIND)
            for app_id, (version, branch) in info.items()
        ]

    pkgs = parse_installed(result.stdout)
    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("flatpak_list_complete", count=len(pkgs), duration_ms=duration_ms)
    return pkgs


async def search_package(config: Config, query: str) -> List[PackageInfo]:
    flatpak = config.command_for(KIND)
    result = await run_capture(flatpak, "search", query)
    if not result.ok:
        log.warning("flatpak_search_failed", query=query, returncode=result.returncode)
        return []
    return parse_search(result.stdout)


async def _batch(config: Config, verb: str, names: list[str]) -> None:
    if not names:
        log.info("flatpak_batch_empty", verb=verb)
        return

    flatpak = config.command_for(KIND)
    log.info("flatpak_batch_start", verb=verb, packages=names)
    await run_checked(flatpak, verb, "-y", *names, action=f"flatpak {verb}")


async def install_packages(config: Config, names: list[str]) -> None:
    await _batch(config, "install", names)


async def update_packages(config: Config, names: list[str]) -> None:
    await _batch(config, "update", names)


async def uninstall_packages(config: Config, names: list[str]) -> None:
    await _batch(config, "uninstall", names)


async def uninstall_package(config: Config, name: str) -> None:
    await uninstall_packages(config, [name])

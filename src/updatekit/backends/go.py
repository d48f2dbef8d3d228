"""Go backend: binaries in the Go bin directory, identified by their build info.

Go keeps no record of installed programs, so every regular file in the
resolved bin directory is a candidate. A binary whose `go version -m`
output has no `path` line is skipped.
"""

from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List

from updatekit.core.config import Config
from updatekit.core.errors import CoreError, UnknownError
from updatekit.core.logging import get_logger
from updatekit.core.models import BackendKind, PackageInfo, PackageUpdate
from updatekit.core.shell import run_capture, run_checked, run_text

log = get_logger(__name__)

KIND = BackendKind.GO

_PATH_LINE = re.compile(r"^\s*path\s+(\S+)", re.MULTILINE)
_MOD_LINE = re.compile(r"^\s*mod\s+(\S+)", re.MULTILINE)
_MOD_VERSION = re.compile(r"^\s*mod\s+\S+\s+(v\d+\.\d+\.\d+\S*)", re.MULTILINE)


@dataclass(frozen=True)
class InstalledBinary:
    name: str
    path: str


def extract_module_path(info: str) -> str | None:
    """Extract the main package path.

    Example:
        "\\tpath\\tgithub.com/user/repo" -> "github.com/user/repo"
    """
    match = _PATH_LINE.search(info)
    return match.group(1) if match else None


def extract_main_module(info: str) -> str | None:
    """Extract the main module path from the `mod` line."""
    match = _MOD_LINE.search(info)
    return match.group(1) if match else None


def extract_version(info: str) -> str | None:
    """Extract the module version from the `mod` line.

    Example:
        "\\tmod\\tgithub.com/user/repo\\tv1.2.3" -> "v1.2.3"
    """
    match = _MOD_VERSION.search(info)
    return match.group(1) if match else None


def list_installed_binaries(config: Config) -> list[InstalledBinary]:
    """List regular files in the Go bin directory; a missing directory is empty."""
    bin_dir = Path(config.go_bin_dir())
    try:
        entries = sorted(os.scandir(bin_dir), key=lambda e: e.name)
    except OSError as e:
        log.debug("go_bin_dir_unreadable", path=str(bin_dir), error=str(e))
        return []

    return [
        InstalledBinary(name=entry.name, path=entry.path)
        for entry in entries
        if entry.is_file()
    ]


async def get_binary_info(config: Config, binary_path: str) -> str:
    """Run `go version -m` on a binary.

    Raises:
        UnknownError: If the file is not a Go binary or go fails.
    """
    return await run_text(config.command_for(KIND), "version", "-m", binary_path)


async def get_latest_version(config: Config, module: str) -> str:
    """Get the last version listed by `go list -m -versions`.

    Returns:
        The latest version, or "" when the module has no tagged versions.
    """
    output = await run_text(config.command_for(KIND), "list", "-m", "-versions", module)
    tokens = output.split()
    return tokens[-1] if len(tokens) > 1 else ""


async def _inspected(config: Config) -> list[tuple[InstalledBinary, str]]:
    """Pair each binary with its build info, dropping non-Go files."""
    pairs: list[tuple[InstalledBinary, str]] = []
    for binary in list_installed_binaries(config):
        try:
            info = await get_binary_info(config, binary.path)
        except CoreError as e:
            log.debug("go_binary_skipped", package=binary.name, error=str(e))
            continue
        if extract_module_path(info) is None:
            continue
        pairs.append((binary, info))
    return pairs


async def list_updates(config: Config) -> List[PackageUpdate]:
    start = time.perf_counter()
    updates: List[PackageUpdate] = []

    for binary, info in await _inspected(config):
        local = extract_version(info)
        if not local:
            continue

        module = extract_main_module(info) or extract_module_path(info)
        try:
            latest = await get_latest_version(config, module)
        except CoreError as e:
            log.debug("go_latest_unavailable", package=binary.name, module=module, error=str(e))
            continue

        if latest and latest != local:
            updates.append(PackageUpdate(name=binary.name, current_version=local, new_version=latest))

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("go_updates_complete", count=len(updates), duration_ms=duration_ms)
    return updates


async def get_current_version(config: Config, name: str) -> str:
    """Find a binary by file name or package path and return its version."""
    for binary, info in await _inspected(config):
        if name in (binary.name, extract_module_path(info)):
            version = extract_version(info)
            if version:
                return version
    raise UnknownError(f"Package {name} not installed", context={"backend": KIND.value})


async def list_installed(config: Config) -> List[PackageInfo]:
    start = time.perf_counter()
    pkgs = [
        PackageInfo(
            name=binary.name,
            version=extract_version(info) or "unknown",
            source=KIND,
            size=os.path.getsize(binary.path) if os.path.exists(binary.path) else None,
        )
        for binary, info in await _inspected(config)
    ]
    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("go_list_complete", count=len(pkgs), duration_ms=duration_ms)
    return pkgs


async def search_package(config: Config, query: str) -> List[PackageInfo]:
    """Resolve a module path with `go list -m -versions`.

    Go has no search index; the query must be a module path.
    """
    result = await run_capture(config.command_for(KIND), "list", "-m", "-versions", query)
    if not result.ok:
        log.warning("go_search_failed", query=query, returncode=result.returncode)
        return []

    pkgs: List[PackageInfo] = []
    for raw in result.stdout.splitlines():
        parts = raw.split()
        if not parts:
            continue
        versions = [v for v in parts[1:] if v.startswith("v")]
        pkgs.append(
            PackageInfo(name=parts[0], version=versions[-1] if versions else "unknown", source=KIND)
        )
    return pkgs


def _install_target(name: str) -> str:
    return name if "@" in name else f"{name}@latest"


async def install_packages(config: Config, names: list[str]) -> None:
    go = config.command_for(KIND)
    for name in names:
        log.info("go_install_start", package=name)
        await run_checked(go, "install", _install_target(name), action=f"go install for {name}")


async def update_packages(config: Config, names: list[str]) -> None:
    await install_packages(config, names)


async def uninstall_packages(config: Config, names: list[str]) -> None:
    """Delete binaries from the Go bin directory.

    Module paths are accepted; their last segment is the binary name.
    """
    bin_dir = Path(config.go_bin_dir())
    for name in names:
        binary = name.rstrip("/").rsplit("/", 1)[-1].split("@", 1)[0]
        if binary in ("", ".", ".."):
            raise UnknownError(f"Invalid Go binary name: {name!r}", context={"backend": KIND.value})

        target = bin_dir / binary
        try:
            target.unlink()
        except OSError as e:
            raise UnknownError(
                f"Failed to remove Go binary {binary}: {e}",
                context={"backend": KIND.value, "path": str(target)}
            ) from e
        log.info("go_binary_removed", package=binary, path=str(target))


async def uninstall_package(config: Config, name: str) -> None:
    await uninstall_packages(config, [name])

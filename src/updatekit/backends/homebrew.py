"""Homebrew backend covering both formulae and casks."""

from __future__ import annotations

import json
import re
import time
from typing import Any, List

from updatekit.core.config import Config
from updatekit.core.errors import CoreError, ParseError, UnknownError
from updatekit.core.logging import get_logger
from updatekit.core.models import BackendKind, PackageInfo, PackageUpdate
from updatekit.core.shell import run_capture, run_checked

log = get_logger(__name__)

KIND = BackendKind.HOMEBREW

_OUTDATED_SEPARATOR = re.compile(r"\s(?:<|!=)\s")


def parse_name_and_version(text: str) -> tuple[str, str] | None:
    """Split "name (current)" at the last parenthesis pair.

    Example:
        "python@3.12 (3.12.1)" -> ("python@3.12", "3.12.1")
    """
    open_paren = text.rfind("(")
    close_paren = text.rfind(")")
    if open_paren == -1 or close_paren == -1 or open_paren >= close_paren:
        return None

    name = text[:open_paren].strip()
    version = text[open_paren + 1 : close_paren].strip()
    if not name:
        return None
    return name, version


def parse_outdated(output: str) -> list[PackageUpdate]:
    """Parse `brew outdated --verbose` lines.

    Formulae read "name (current) < new" and casks "name (current) != new".
    """
    updates: list[PackageUpdate] = []
    for raw in output.splitlines():
        line = raw.strip()
        match = _OUTDATED_SEPARATOR.search(line)
        if match is None:
            continue

        left, new_version = line[: match.start()], line[match.end() :]
        parsed = parse_name_and_version(left.strip())
        if parsed is None:
            continue

        name, current = parsed
        new_version = new_version.strip()
        if current == new_version:
            continue
        updates.append(PackageUpdate(name=name, current_version=current, new_version=new_version))
    return updates


def parse_list_versions(output: str) -> dict[str, str]:
    """Parse `brew list --versions`: name followed by installed versions.

    The last version token is the most recently installed one.
    """
    versions: dict[str, str] = {}
    for raw in output.splitlines():
        parts = raw.split()
        if len(parts) >= 2:
            versions[parts[0]] = parts[-1]
    return versions


def _formula_version(formula: dict[str, Any]) -> str:
    installed = formula.get("installed") or []
    if installed and installed[-1].get("version"):
        return str(installed[-1]["version"])
    versions = formula.get("versions") or {}
    return str(versions.get("stable") or formula.get("version") or "unknown")


def parse_info_json(data: Any) -> list[PackageInfo]:
    """Convert `brew info --json=v2 --installed` into PackageInfo records."""
    if not isinstance(data, dict):
        raise ParseError("Unexpected brew info payload", context={"backend": KIND.value})

    pkgs: list[PackageInfo] = []

    for f in data.get("formulae") or []:
        pkgs.append(
            PackageInfo(
                name=f.get("name", ""),
                version=_formula_version(f),
                source=KIND,
                description=f.get("desc"),
                homepage=f.get("homepage"),
            )
        )

    for c in data.get("casks") or []:
        pkgs.append(
            PackageInfo(
                name=c.get("token", ""),
                version=str(c.get("installed") or c.get("version") or "unknown"),
                source=KIND,
                description=c.get("desc"),
                homepage=c.get("homepage"),
            )
        )

    return pkgs


async def list_updates(config: Config) -> List[PackageUpdate]:
    start = time.perf_counter()
    brew = config.command_for(KIND)

    result = await run_capture(brew, "outdated", "--verbose")
    if not result.ok:
        raise UnknownError.from_exit("brew outdated --verbose", result.returncode, result.stderr)

    updates = parse_outdated(result.stdout)
    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("brew_updates_complete", count=len(updates), duration_ms=duration_ms)
    return updates


async def get_current_version(config: Config, name: str) -> str:
    """Get the most recently installed version of a formula or cask.

    Raises:
        UnknownError: If brew fails or the package is not installed.
        ParseError: If the output has no version token.
    """
    brew = config.command_for(KIND)
    result = await run_capture(brew, "list", "--versions", name)
    if not result.ok:
        raise UnknownError(f"brew list --versions {name} failed", context={"backend": KIND.value})

    line = result.stdout.strip()
    if not line:
        raise UnknownError(f"Package {name} not found", context={"backend": KIND.value})

    parts = line.split()
    if len(parts) < 2:
        raise ParseError("Failed to parse version", context={"package": name, "output": line})
    return parts[-1]


async def _list_from_versions(config: Config) -> List[PackageInfo]:
    brew = config.command_for(KIND)
    result = await run_capture(brew, "list", "--versions")
    if not result.ok:
        raise UnknownError.from_exit("brew list --versions", result.returncode, result.stderr)
    return [
        PackageInfo(name=name, version=version, source=KIND)
        for name, version in parse_list_versions(result.stdout).items()
    ]


async def list_installed(config: Config) -> List[PackageInfo]:
    """List installed formulae and casks.

    Uses the structured JSON listing and falls back to `brew list --versions`
    when brew fails or its JSON cannot be decoded.
    """
    start = time.perf_counter()
    brew = config.command_for(KIND)
    log.debug("brew_list_start")

    result = await run_capture(brew, "info", "--json=v2", "--installed")
    pkgs: List[PackageInfo] | None = None
    if result.ok:
        try:
            pkgs = parse_info_json(json.loads(result.stdout))
        except (json.JSONDecodeError, ParseError) as e:
            log.warning("brew_json_unusable", error=str(e))
    else:
        log.warning("brew_json_failed", returncode=result.returncode)

    if pkgs is None:
        pkgs = await _list_from_versions(config)

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("brew_list_complete", count=len(pkgs), duration_ms=duration_ms)
    return pkgs


async def count_installed(config: Config) -> int:
    """Count installed formulae and casks from the plain `brew list` output."""
    brew = config.command_for(KIND)
    try:
        result = await run_capture(brew, "list")
    except CoreError as e:
        log.warning("brew_count_fallback", error=str(e))
        return len(await list_installed(config))

    if not result.ok:
        log.warning("brew_count_fallback", returncode=result.returncode)
        return len(await list_installed(config))
    return sum(1 for line in result.stdout.splitlines() if line.strip())


async def search_package(config: Config, query: str) -> List[PackageInfo]:
    """Search formulae and casks; results carry no version."""
    brew = config.command_for(KIND)
    result = await run_capture(brew, "search", query)
    if not result.ok:
        log.warning("brew_search_failed", query=query, returncode=result.returncode)
        return []

    return [
        PackageInfo(name=line.strip(), version="", source=KIND)
        for line in result.stdout.splitlines()
        if line.strip() and not line.strip().startswith("=")
    ]


async def _each(config: Config, verb: str, names: list[str]) -> None:
    # One invocation per name; the first failure aborts the rest of the batch.
    brew = config.command_for(KIND)
    for name in names:
        log.info("brew_package_start", verb=verb, package=name)
        await run_checked(brew, verb, name, action=f"brew {verb} {name}")


async def install_packages(config: Config, names: list[str]) -> None:
    await _each(config, "install", names)


async def update_packages(config: Config, names: list[str]) -> None:
    await _each(config, "upgrade", names)


async def uninstall_packages(config: Config, names: list[str]) -> None:
    await _each(config, "uninstall", names)


async def uninstall_package(config: Config, name: str) -> None:
    await uninstall_packages(config, [name])

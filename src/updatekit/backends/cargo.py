"""Cargo backend: binaries installed with `cargo install`, enriched from crates.io."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any, List

from updatekit.core.config import Config
from updatekit.core.errors import CoreError, UnknownError
from updatekit.core.http import get_json
from updatekit.core.logging import get_logger
from updatekit.core.models import BackendKind, PackageInfo, PackageUpdate
from updatekit.core.shell import run_capture, run_checked

log = get_logger(__name__)

KIND = BackendKind.CARGO

CRATES_IO_API = "https://crates.io/api/v1"
SEARCH_PAGE_SIZE = 10

# "ripgrep v14.1.0:" or "my-tool v1.0.0 (/home/user/my-tool):"
_CRATE_LINE = re.compile(r"^(\S+)\s+v(\d[^\s:]*)(?:\s+\((?P<source>[^)]*)\))?:$")
_BIN_LINE = re.compile(r"^\s+(\S+)")


@dataclass
class InstalledCrate:
    """One record of `cargo install --list`."""

    name: str
    version: str
    bins: list[str] = field(default_factory=list)


def parse_install_list(output: str) -> list[InstalledCrate]:
    """Parse `cargo install --list` output.

    A non-indented "<name> v<version>:" line starts a record and the
    indented lines after it are that crate's binaries. Crates installed
    from a local path or git source carry a parenthesised source and are
    dropped together with their binaries.

    Args:
        output: Raw command output.

    Returns:
        Registry-installed crates in output order.
    """
    crates: list[InstalledCrate] = []
    current: InstalledCrate | None = None

    for line in output.splitlines():
        if not line.strip():
            continue

        if not line[0].isspace():
            if current is not None:
                crates.append(current)
                current = None

            match = _CRATE_LINE.match(line.rstrip())
            if match and not match.group("source"):
                current = InstalledCrate(name=match.group(1), version=match.group(2))
            continue

        bin_match = _BIN_LINE.match(line)
        if bin_match and current is not None:
            current.bins.append(bin_match.group(1))

    if current is not None:
        crates.append(current)

    return crates


async def _installed_crates(config: Config) -> list[InstalledCrate]:
    cargo = config.command_for(KIND)
    result = await run_capture(cargo, "install", "--list")
    if not result.ok:
        raise UnknownError.from_exit("cargo install --list", result.returncode, result.stderr)
    return parse_install_list(result.stdout)


async def fetch_crate(name: str) -> dict[str, Any] | None:
    """Fetch the `crate` object of a crate from crates.io.

    Returns:
        The crate metadata, or None for a non-success status.

    Raises:
        RequestError: If crates.io cannot be reached.
    """
    status, payload = await get_json(f"{CRATES_IO_API}/crates/{name}")
    if payload is None:
        log.debug("crate_lookup_miss", package=name, status=status)
        return None
    crate = payload.get("crate") if isinstance(payload, dict) else None
    return crate if isinstance(crate, dict) else None


def _homepage(crate: dict[str, Any]) -> str | None:
    return crate.get("homepage") or crate.get("repository")


async def get_latest_version(name: str) -> str:
    """Get the newest published version of a crate.

    Raises:
        UnknownError: If crates.io has no usable record for the crate.
    """
    crate = await fetch_crate(name)
    if crate is None:
        raise UnknownError(f"Failed to fetch crate info for {name}", context={"backend": KIND.value})
    version = crate.get("max_version")
    if not version:
        raise UnknownError(f"Version info not found for crate {name}", context={"backend": KIND.value})
    return str(version)


async def list_updates(config: Config) -> List[PackageUpdate]:
    """Compare installed crates against the latest crates.io release.

    A crate whose lookup fails is skipped, not reported as an error.
    """
    start = time.perf_counter()
    updates: List[PackageUpdate] = []

    for crate in await _installed_crates(config):
        try:
            latest = await get_latest_version(crate.name)
        except CoreError as e:
            log.debug("crate_latest_unavailable", package=crate.name, error=str(e))
            continue

        if latest != crate.version:
            updates.append(
                PackageUpdate(name=crate.name, current_version=crate.version, new_version=latest)
            )

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("cargo_updates_complete", count=len(updates), duration_ms=duration_ms)
    return updates


async def get_current_version(config: Config, name: str) -> str:
    for crate in await _installed_crates(config):
        if crate.name == name:
            return crate.version
    raise UnknownError(f"Package {name} not installed", context={"backend": KIND.value})


async def list_installed(config: Config) -> List[PackageInfo]:
    """List installed crates with description and homepage from crates.io.

    Network failures degrade a crate's optional fields to absent.
    """
    start = time.perf_counter()
    pkgs: List[PackageInfo] = []

    for crate in await _installed_crates(config):
        meta: dict[str, Any] | None = None
        try:
            meta = await fetch_crate(crate.name)
        except CoreError as e:
            log.debug("crate_metadata_unavailable", package=crate.name, error=str(e))

        pkgs.append(
            PackageInfo(
                name=crate.name,
                version=crate.version,
                source=KIND,
                description=meta.get("description") if meta else None,
                homepage=_homepage(meta) if meta else None,
            )
        )

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("cargo_list_complete", count=len(pkgs), duration_ms=duration_ms)
    return pkgs


async def count_installed(config: Config) -> int:
    return len(await _installed_crates(config))


async def search_package(config: Config, query: str) -> List[PackageInfo]:
    """Search crates.io.

    A non-success status yields no results; an unreachable registry raises.
    """
    _, payload = await get_json(
        f"{CRATES_IO_API}/crates",
        params={"page": 1, "per_page": SEARCH_PAGE_SIZE, "q": query},
    )
    if not isinstance(payload, dict):
        return []

    pkgs: List[PackageInfo] = []
    for item in payload.get("crates") or []:
        name = item.get("name")
        version = item.get("max_version")
        if not name or not version:
            continue
        pkgs.append(
            PackageInfo(
                name=name,
                version=version,
                source=KIND,
                description=item.get("description"),
                homepage=_homepage(item),
            )
        )

    log.info("cargo_search_complete", query=query, count=len(pkgs))
    return pkgs


async def _each(config: Config, args: list[str], action: str, names: list[str]) -> None:
    # One invocation per crate; the first failure aborts the rest of the batch.
    cargo = config.command_for(KIND)
    for name in names:
        log.info("cargo_package_start", action=action, package=name)
        await run_checked(cargo, *args, name, action=f"{action} for {name}")


async def install_packages(config: Config, names: list[str]) -> None:
    await _each(config, ["install"], "cargo install", names)


async def update_packages(config: Config, names: list[str]) -> None:
    await _each(config, ["install", "--force"], "cargo install --force", names)


async def uninstall_packages(config: Config, names: list[str]) -> None:
    await _each(config, ["uninstall"], "cargo uninstall", names)


async def uninstall_package(config: Config, name: str) -> None:
    await uninstall_packages(config, [name])

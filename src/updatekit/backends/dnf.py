"""System package backend for the rpm/dnf family."""

from __future__ import annotations

import time
from datetime import datetime
from typing import List

from updatekit.core.config import Config
from updatekit.core.errors import CommandError, CoreError, ParseError, UnknownError
from updatekit.core.logging import get_logger
from updatekit.core.models import BackendKind, PackageInfo, PackageUpdate
from updatekit.core.shell import run_capture, run_checked

log = get_logger(__name__)

KIND = BackendKind.DNF

QUERY_FORMAT = "%{NAME}\t%{VERSION}-%{RELEASE}\t%{SUMMARY}\t%{SIZE}\t%{INSTALLTIME}\t%{URL}\n"
VERSION_FORMAT = "%{VERSION}-%{RELEASE}\n"
COUNT_PIPELINE = "rpm -qa | wc -l"

# dnf check-upgrade exits 100 when updates are available.
CHECK_UPGRADE_OK = (0, 100)

BANNER_PREFIXES = (
    "Updating and loading repositories:",
    "Repositories loaded.",
    "Last metadata expiration check:",
    "Security:",
)

# Everything after this header describes installed packages being replaced.
OBSOLETES_HEADER = "Obsoleting Packages"

NONE_VALUE = "(none)"


def _optional(field: str | None) -> str | None:
    if not field or field == NONE_VALUE:
        return None
    return field


def _format_install_time(field: str | None) -> str | None:
    value = _optional(field)
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value)).strftime("%Y-%m-%d %H:%M:%S")
    except (ValueError, OverflowError, OSError):
        return None


def _strip_arch(token: str) -> str:
    """Strip the architecture suffix: "bash.x86_64" -> "bash"."""
    return token.rsplit(".", 1)[0] if "." in token else token


def strip_epoch(version: str) -> str:
    """Drop a leading epoch: "1:2.06-100.fc40" -> "2.06-100.fc40"."""
    epoch, sep, rest = version.partition(":")
    return rest if sep and epoch.isdigit() else version


def parse_rpm_line(line: str) -> PackageInfo | None:
    """Parse one tab-separated line of the rpm query format.

    Args:
        line: A line produced by QUERY_FORMAT.

    Returns:
        A PackageInfo, or None when the line lacks name and version.
    """
    parts = line.split("\t")
    if len(parts) < 2 or not parts[0]:
        return None

    def part(i: int) -> str | None:
        return parts[i].strip() if len(parts) > i else None

    size = part(3)
    return PackageInfo(
        name=parts[0],
        version=parts[1],
        source=KIND,
        description=_optional(part(2)),
        size=int(size) if size and size.isdigit() else None,
        install_date=_format_install_time(part(4)),
        homepage=_optional(part(5)),
    )


def parse_check_upgrade(output: str) -> list[tuple[str, str]]:
    """Parse a check-upgrade report into (name, new_version) pairs.

    Duplicate package names are suppressed; the first occurrence wins.
    Indented lines name an installed package that the line above
    obsoletes and are not updates themselves.
    """
    seen: set[str] = set()
    pairs: list[tuple[str, str]] = []

    for raw in output.splitlines():
        line = raw.strip()
        if not line or raw[0].isspace():
            continue
        if line.startswith(BANNER_PREFIXES) or line.startswith(OBSOLETES_HEADER):
            continue

        parts = line.split()
        if len(parts) < 2:
            continue

        name = _strip_arch(parts[0])
        if name in seen:
            log.debug("dnf_duplicate_update_skipped", package=name)
            continue
        seen.add(name)
        pairs.append((name, parts[1]))

    return pairs


def parse_search(output: str) -> list[tuple[str, str | None]]:
    """Parse `dnf search` output into (name, summary) pairs.

    Lines look like "name.arch : Summary". Continuation text and section
    headers ("Matched fields: ...", "=== Name Matched ===") are skipped.
    """
    results: list[tuple[str, str | None]] = []
    for raw in output.splitlines():
        line = raw.strip()
        if not line or ":" not in line:
            continue

        name_part, summary = line.split(":", 1)
        name_part = name_part.strip()
        if " " in name_part or name_part.startswith("="):
            continue

        results.append((_strip_arch(name_part), summary.strip() or None))
    return results


async def get_current_version(config: Config, name: str) -> str:
    """Query the rpm database for the installed version of a package.

    Raises:
        ParseError: If the package is not installed.
    """
    result = await run_capture("rpm", "-q", "--queryformat", VERSION_FORMAT, name)
    if not result.ok:
        raise ParseError(f"Package {name} not found", context={"backend": KIND.value})

    # One line per installed instance (kernels, multilib); the newest is last.
    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    if not lines:
        raise ParseError(f"Package {name} not found", context={"backend": KIND.value})
    return lines[-1]


async def list_installed(config: Config) -> List[PackageInfo]:
    """List installed rpm packages with their metadata.

    Returns:
        A list of PackageInfo instances.
    """
    start = time.perf_counter()
    log.debug("dnf_list_start")

    result = await run_capture("rpm", "-qa", "--queryformat", QUERY_FORMAT)
    if not result.ok:
        raise UnknownError.from_exit("rpm -qa", result.returncode, result.stderr)

    pkgs = [pkg for line in result.stdout.splitlines() if (pkg := parse_rpm_line(line))]

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("dnf_list_complete", count=len(pkgs), duration_ms=duration_ms)
    return pkgs


async def count_installed(config: Config) -> int:
    """Count installed packages with a line-count pipeline.

    Falls back to listing when the pipeline cannot run or fails.
    """
    try:
        result = await run_capture("sh", "-c", COUNT_PIPELINE)
    except CommandError as e:
        log.warning("dnf_count_fallback", error=str(e))
        return len(await list_installed(config))

    if not result.ok:
        log.warning("dnf_count_fallback", returncode=result.returncode)
        return len(await list_installed(config))

    text = result.stdout.strip()
    try:
        return int(text)
    except ValueError as e:
        raise ParseError(f"Failed to parse count: {text!r}", context={"backend": KIND.value}) from e


async def list_updates(config: Config) -> List[PackageUpdate]:
    """List pending updates reported by `dnf check-upgrade`.

    The current version of each package is looked up individually; a
    failed lookup degrades to "unknown" instead of failing the listing.
    """
    start = time.perf_counter()
    dnf = config.command_for(KIND)
    log.debug("dnf_updates_start", command=dnf)

    result = await run_capture(dnf, "check-upgrade")
    if result.returncode not in CHECK_UPGRADE_OK:
        raise UnknownError.from_exit(f"{dnf} check-upgrade", result.returncode, result.stderr)

    updates: List[PackageUpdate] = []
    for name, new_version in parse_check_upgrade(result.stdout):
        try:
            current = await get_current_version(config, name)
        except CoreError as e:
            log.debug("dnf_current_version_unknown", package=name, error=str(e))
            current = "unknown"

        if strip_epoch(current) == strip_epoch(new_version):
            continue
        updates.append(PackageUpdate(name=name, current_version=current, new_version=new_version))

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info("dnf_updates_complete", count=len(updates), duration_ms=duration_ms)
    return updates


async def search_package(config: Config, query: str) -> List[PackageInfo]:
    """Search repositories with `dnf search`.

    Packages that are not installed carry an empty version.
    """
    dnf = config.command_for(KIND)
    result = await run_capture(dnf, "search", "--quiet", query)
    if not result.ok:
        log.warning("dnf_search_failed", query=query, returncode=result.returncode)
        return []

    pkgs: List[PackageInfo] = []
    for name, summary in parse_search(result.stdout):
        try:
            version = await get_current_version(config, name)
        except CoreError:
            version = ""
        if version == "unknown":
            version = ""

        pkgs.append(PackageInfo(name=name, version=version, source=KIND, description=summary))

    log.info("dnf_search_complete", query=query, count=len(pkgs))
    return pkgs


async def _pkexec(config: Config, verb: str, names: list[str]) -> None:
    if not names:
        log.info("dnf_batch_empty", verb=verb)
        return

    dnf = config.command_for(KIND)
    log.info("dnf_batch_start", verb=verb, packages=names)
    await run_checked("pkexec", dnf, verb, "-y", *names, action=f"pkexec dnf {verb}")


async def install_packages(config: Config, names: list[str]) -> None:
    await _pkexec(config, "install", names)


async def update_packages(config: Config, names: list[str]) -> None:
    await _pkexec(config, "upgrade", names)


async def uninstall_packages(config: Config, names: list[str]) -> None:
    await _pkexec(config, "remove", names)


async def uninstall_package(config: Config, name: str) -> None:
    await uninstall_packages(config, [name])

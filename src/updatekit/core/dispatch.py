"""Route interface operations to the backend module for a BackendKind.

Adding a backend means writing its module and adding one entry to
_BACKENDS; operations the module leaves out get the defaults from
updatekit.backends.base.
"""

from __future__ import annotations

from types import ModuleType

from updatekit.backends import base, cargo, dnf, flatpak, go, homebrew
from updatekit.core.config import Config
from updatekit.core.models import BackendKind, PackageInfo, PackageUpdate
from updatekit.core.shell import command_exists

_BACKENDS: dict[BackendKind, ModuleType] = {
    BackendKind.DNF: dnf,
    BackendKind.FLATPAK: flatpak,
    BackendKind.HOMEBREW: homebrew,
    BackendKind.CARGO: cargo,
    BackendKind.GO: go,
}


def backend_for(kind: BackendKind) -> ModuleType:
    return _BACKENDS[kind]


def is_available(kind: BackendKind) -> bool:
    """True if the backend's default command resolves in PATH."""
    try:
        return command_exists(kind.command)
    except OSError:
        return False


async def list_updates(kind: BackendKind, config: Config) -> list[PackageUpdate]:
    return await backend_for(kind).list_updates(config)


async def get_current_version(kind: BackendKind, config: Config, name: str) -> str:
    return await backend_for(kind).get_current_version(config, name)


async def list_installed(kind: BackendKind, config: Config) -> list[PackageInfo]:
    return await backend_for(kind).list_installed(config)


async def count_installed(kind: BackendKind, config: Config) -> int:
    backend = backend_for(kind)
    if hasattr(backend, "count_installed"):
        return await backend.count_installed(config)
    return await base.count_via_listing(backend.list_installed, config)


async def search_package(kind: BackendKind, config: Config, query: str) -> list[PackageInfo]:
    backend = backend_for(kind)
    if not hasattr(backend, "search_package"):
        base.not_implemented("search_package", kind)
    return await backend.search_package(config, query)


async def uninstall_package(kind: BackendKind, config: Config, name: str) -> None:
    backend = backend_for(kind)
    if not hasattr(backend, "uninstall_package"):
        base.not_implemented("uninstall_package", kind)
    await backend.uninstall_package(config, name)


async def uninstall_packages(kind: BackendKind, config: Config, names: list[str]) -> None:
    backend = backend_for(kind)
    if not hasattr(backend, "uninstall_packages"):
        base.not_implemented("uninstall_packages", kind)
    await backend.uninstall_packages(config, list(names))


async def update_packages(kind: BackendKind, config: Config, names: list[str]) -> None:
    backend = backend_for(kind)
    if not hasattr(backend, "update_packages"):
        base.not_implemented("update_packages", kind)
    await backend.update_packages(config, list(names))


async def install_packages(kind: BackendKind, config: Config, names: list[str]) -> None:
    backend = backend_for(kind)
    if not hasattr(backend, "install_packages"):
        base.not_implemented("install_packages", kind)
    await backend.install_packages(config, list(names))

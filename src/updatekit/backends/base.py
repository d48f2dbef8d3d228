"""Backend protocol and the default behaviours shared by all backends."""

from __future__ import annotations

from typing import Awaitable, Callable, NoReturn, Protocol

from updatekit.core.config import Config
from updatekit.core.errors import UnknownError
from updatekit.core.models import BackendKind, PackageInfo, PackageUpdate


class PackageBackend(Protocol):
    """Surface of a backend module.

    Each backend is a module of coroutine functions. list_updates,
    get_current_version and list_installed are mandatory; the dispatcher
    substitutes the defaults below for anything else a module omits.
    """

    async def list_updates(self, config: Config) -> list[PackageUpdate]:
        """List packages with a pending update."""
        ...

    async def get_current_version(self, config: Config, name: str) -> str:
        """Get the installed version of one package."""
        ...

    async def list_installed(self, config: Config) -> list[PackageInfo]:
        """List installed packages."""
        ...

    async def count_installed(self, config: Config) -> int:
        """Count installed packages."""
        ...

    async def search_package(self, config: Config, query: str) -> list[PackageInfo]:
        """Search the remote catalog."""
        ...

    async def uninstall_package(self, config: Config, name: str) -> None:
        """Remove one package."""
        ...

    async def uninstall_packages(self, config: Config, names: list[str]) -> None:
        """Remove a batch of packages."""
        ...

    async def update_packages(self, config: Config, names: list[str]) -> None:
        """Upgrade a batch of packages."""
        ...

    async def install_packages(self, config: Config, names: list[str]) -> None:
        """Install a batch of packages."""
        ...


async def count_via_listing(
    list_installed: Callable[[Config], Awaitable[list[PackageInfo]]], config: Config
) -> int:
    """Count installed packages by listing them."""
    return len(await list_installed(config))


def not_implemented(operation: str, kind: BackendKind) -> NoReturn:
    """Raise the error returned by operations a backend does not provide."""
    raise UnknownError.not_implemented(operation, kind.value)

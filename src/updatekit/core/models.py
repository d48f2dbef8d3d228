"""Data models shared by every package-manager backend."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BackendKind(Enum):
    """Closed set of supported package-manager backends.

    The value is the identifier persisted in the configuration file.
    """

    DNF = "dnf"
    FLATPAK = "flatpak"
    HOMEBREW = "homebrew"
    CARGO = "cargo"
    GO = "go"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def command(self) -> str:
        """Default executable name, resolved through PATH."""
        return _COMMANDS[self]

    @property
    def is_system_manager(self) -> bool:
        return self is BackendKind.DNF


_DISPLAY_NAMES = {
    BackendKind.DNF: "DNF",
    BackendKind.FLATPAK: "Flatpak",
    BackendKind.HOMEBREW: "Homebrew",
    BackendKind.CARGO: "Cargo",
    BackendKind.GO: "Go",
}

_DESCRIPTIONS = {
    BackendKind.DNF: "Fedora/RHEL system package manager",
    BackendKind.FLATPAK: "Sandboxed desktop application manager",
    BackendKind.HOMEBREW: "macOS/Linux package manager",
    BackendKind.CARGO: "Rust crate binaries installed with cargo install",
    BackendKind.GO: "Go binaries installed with go install",
}

_COMMANDS = {
    BackendKind.DNF: "dnf",
    BackendKind.FLATPAK: "flatpak",
    BackendKind.HOMEBREW: "brew",
    BackendKind.CARGO: "cargo",
    BackendKind.GO: "go",
}

SYSTEM_BACKENDS: tuple[BackendKind, ...] = (BackendKind.DNF,)
APP_BACKENDS: tuple[BackendKind, ...] = (
    BackendKind.FLATPAK,
    BackendKind.HOMEBREW,
    BackendKind.CARGO,
    BackendKind.GO,
)


@dataclass(frozen=True)
class PackageInfo:
    """One unit of installed or discoverable software."""

    name: str
    version: str
    source: BackendKind
    description: str | None = None
    size: int | None = None
    install_date: str | None = None
    homepage: str | None = None


@dataclass(frozen=True)
class PackageUpdate:
    """A pending version transition for one package under one backend."""

    name: str
    current_version: str
    new_version: str

"""Backend configuration: executable paths and the Go binary directory."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from updatekit.core.errors import CommandError, SerializationError
from updatekit.core.logging import get_logger
from updatekit.core.models import APP_BACKENDS, SYSTEM_BACKENDS, BackendKind
from updatekit.core.paths import get_config_path
from updatekit.core.shell import command_exists

log = get_logger(__name__)


@dataclass(frozen=True)
class BackendConfig:
    """One configured backend and its optional custom executable."""
    manager_type: BackendKind
    custom_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"manager_type": self.manager_type.value, "custom_path": self.custom_path}

    @classmethod
    def from_dict(cls, data: Any) -> BackendConfig:
        if not isinstance(data, dict):
            raise SerializationError("Backend entry must be an object", context={"entry": data})
        try:
            kind = BackendKind(data["manager_type"])
        except (KeyError, ValueError) as e:
            raise SerializationError(
                f"Invalid manager_type: {e}", context={"entry": data}
            ) from e
        custom_path = data.get("custom_path")
        if custom_path is not None and not isinstance(custom_path, str):
            raise SerializationError("custom_path must be a string", context={"entry": data})
        return cls(manager_type=kind, custom_path=custom_path or None)


@dataclass(frozen=True)
class Config:
    """Which backends are enabled and how their executables are resolved.

    Backend operations only ever read a Config. Changes go through the
    copy-returning helpers and are persisted with save().
    """
    system_manager: BackendConfig | None = None
    app_managers: tuple[BackendConfig, ...] = field(default_factory=tuple)
    go_bin_dir_override: str | None = None

    def __post_init__(self) -> None:
        seen: set[BackendKind] = set()
        for entry in self.entries():
            if entry.manager_type in seen:
                raise SerializationError(
                    "Backend configured more than once",
                    context={"backend": entry.manager_type.value}
                )
            seen.add(entry.manager_type)

    def entries(self) -> list[BackendConfig]:
        """All configured backends, system manager first."""
        head = [self.system_manager] if self.system_manager else []
        return head + list(self.app_managers)

    def configured_kinds(self) -> list[BackendKind]:
        return [entry.manager_type for entry in self.entries()]

    def get_package_path(self, kind: BackendKind) -> str | None:
        """Get the custom executable path configured for a backend, if any."""
        for entry in self.entries():
            if entry.manager_type is kind:
                return entry.custom_path
        return None

    def command_for(self, kind: BackendKind) -> str:
        """Resolve the executable to spawn for a backend."""
        return self.get_package_path(kind) or kind.command

    def go_bin_dir(self) -> str:
        """Resolve the directory scanned for installed Go binaries.

        Priority: explicit override, GOBIN, GOPATH/bin, ~/go/bin.
        """
        if self.go_bin_dir_override:
            return self.go_bin_dir_override

        gobin = os.environ.get("GOBIN")
        if gobin:
            return gobin

        gopath = os.environ.get("GOPATH")
        if gopath:
            return f"{gopath}/bin"

        try:
            return str(Path.home() / "go" / "bin")
        except RuntimeError:
            return "go/bin"

    def with_custom_path(self, kind: BackendKind, custom_path: str | None) -> Config:
        """Return a copy with the custom path of one backend replaced.

        A backend that is not configured yet is added, as the system
        manager or as the last app manager depending on its kind.
        """
        entry = BackendConfig(manager_type=kind, custom_path=custom_path or None)
        if kind.is_system_manager:
            return replace(self, system_manager=entry)

        apps = list(self.app_managers)
        for i, existing in enumerate(apps):
            if existing.manager_type is kind:
                apps[i] = entry
                break
        else:
            apps.append(entry)
        return replace(self, app_managers=tuple(apps))

    def with_go_bin_dir(self, directory: str | None) -> Config:
        return replace(self, go_bin_dir_override=directory or None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "system_manager": self.system_manager.to_dict() if self.system_manager else None,
            "app_managers": [entry.to_dict() for entry in self.app_managers],
            "go_bin_dir": self.go_bin_dir_override,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Config:
        if not isinstance(data, dict):
            raise SerializationError("Configuration must be a JSON object")

        system = data.get("system_manager")
        apps = data.get("app_managers") or []
        if not isinstance(apps, list):
            raise SerializationError("app_managers must be a list")
        go_bin_dir = data.get("go_bin_dir")
        if go_bin_dir is not None and not isinstance(go_bin_dir, str):
            raise SerializationError("go_bin_dir must be a string")

        return cls(
            system_manager=BackendConfig.from_dict(system) if system is not None else None,
            app_managers=tuple(BackendConfig.from_dict(entry) for entry in apps),
            go_bin_dir_override=go_bin_dir or None,
        )

    @classmethod
    def detect(cls) -> Config:
        """Probe PATH for every known backend's default command."""
        system_manager = None
        for kind in SYSTEM_BACKENDS:
            if command_exists(kind.command):
                system_manager = BackendConfig(manager_type=kind)
                break

        app_managers = tuple(
            BackendConfig(manager_type=kind)
            for kind in APP_BACKENDS
            if command_exists(kind.command)
        )

        config = cls(system_manager=system_manager, app_managers=app_managers)
        log.info(
            "backends_detected",
            system=system_manager.manager_type.value if system_manager else None,
            apps=[entry.manager_type.value for entry in app_managers],
        )
        return config

    @classmethod
    def load(cls, path: Path | None = None) -> Config:
        """Load the configuration file, detecting and saving it if absent.

        Args:
            path: Optional file path. Defaults to the XDG config location.

        Returns:
            The loaded or freshly detected Config.

        Raises:
            SerializationError: If the file is not a valid configuration.
            CommandError: If the file cannot be read or written.
        """
        path = path or get_config_path()

        if not path.exists():
            log.info("config_missing", path=str(path))
            config = cls.detect()
            config.save(path)
            return config

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise CommandError(
                f"Failed to read configuration: {e}", context={"path": str(path)}
            ) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SerializationError(
                f"Invalid configuration JSON: {e}", context={"path": str(path)}
            ) from e

        config = cls.from_dict(data)
        log.debug("config_loaded", path=str(path), backends=len(config.entries()))
        return config

    def reload(self, path: Path | None = None) -> Config:
        """Re-read the configuration file; returns self if it does not exist."""
        path = path or get_config_path()
        if not path.exists():
            return self
        return Config.load(path)

    def save(self, path: Path | None = None) -> None:
        """Write the configuration as pretty-printed JSON.

        Raises:
            CommandError: If the directory or file cannot be written.
        """
        path = path or get_config_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            raise CommandError(
                f"Failed to write configuration: {e}", context={"path": str(path)}
            ) from e
        log.info("config_saved", path=str(path))

"""Unit tests for the Cargo backend."""

from unittest.mock import AsyncMock, call, patch

import pytest
from updatekit.backends import cargo
from updatekit.core.config import Config
from updatekit.core.errors import RequestError, UnknownError
from updatekit.core.shell import CommandOutput


def ok(stdout: str = "") -> CommandOutput:
    return CommandOutput(stdout=stdout, stderr="", returncode=0)


def crate_payload(name: str, max_version: str, **extra: str) -> tuple[int, dict]:
    return 200, {"crate": {"name": name, "max_version": max_version, **extra}}


class TestParseInstallList:
    def test_registry_crates_only(self, mock_cargo_list_output: str) -> None:
        crates = cargo.parse_install_list(mock_cargo_list_output)
        assert [(c.name, c.version, c.bins) for c in crates] == [
            ("ripgrep", "14.1.0", ["rg"]),
            ("bat", "0.24.0", ["bat"]),
        ]

    def test_empty(self, mock_empty_output: str) -> None:
        assert cargo.parse_install_list(mock_empty_output) == []

    def test_git_source_dropped(self) -> None:
        output = "tool v0.1.0 (https://github.com/x/tool#abc123):\n    tool\n"
        assert cargo.parse_install_list(output) == []


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_updates(self, config: Config, mock_cargo_list_output: str) -> None:
        mock_json = AsyncMock(
            side_effect=[crate_payload("ripgrep", "14.1.1"), crate_payload("bat", "0.24.0")]
        )
        with (
            patch("updatekit.backends.cargo.run_capture", new=AsyncMock(return_value=ok(mock_cargo_list_output))),
            patch("updatekit.backends.cargo.get_json", new=mock_json),
        ):
            updates = await cargo.list_updates(config)

        assert [(u.name, u.current_version, u.new_version) for u in updates] == [
            ("ripgrep", "14.1.0", "14.1.1")
        ]
        mock_json.assert_has_awaits([call("https://crates.io/api/v1/crates/ripgrep")])

    @pytest.mark.asyncio
    async def test_list_updates_skips_failed_lookups(self, config: Config, mock_cargo_list_output: str) -> None:
        mock_json = AsyncMock(side_effect=[RequestError(url="u", error="offline"), (404, None)])
        with (
            patch("updatekit.backends.cargo.run_capture", new=AsyncMock(return_value=ok(mock_cargo_list_output))),
            patch("updatekit.backends.cargo.get_json", new=mock_json),
        ):
            assert await cargo.list_updates(config) == []

    @pytest.mark.asyncio
    async def test_get_current_version(self, config: Config, mock_cargo_list_output: str) -> None:
        with patch("updatekit.backends.cargo.run_capture", new=AsyncMock(return_value=ok(mock_cargo_list_output))):
            assert await cargo.get_current_version(config, "bat") == "0.24.0"
            with pytest.raises(UnknownError, match="not installed"):
                await cargo.get_current_version(config, "my-tool")

    @pytest.mark.asyncio
    async def test_list_installed_enriched(self, config: Config, mock_cargo_list_output: str) -> None:
        mock_json = AsyncMock(
            side_effect=[
                crate_payload("ripgrep", "14.1.1", description="fast grep", repository="https://github.com/BurntSushi/ripgrep"),
                RequestError(url="u", error="offline"),
            ]
        )
        with (
            patch("updatekit.backends.cargo.run_capture", new=AsyncMock(return_value=ok(mock_cargo_list_output))),
            patch("updatekit.backends.cargo.get_json", new=mock_json),
        ):
            pkgs = await cargo.list_installed(config)

        assert pkgs[0].description == "fast grep"
        assert pkgs[0].homepage == "https://github.com/BurntSushi/ripgrep"
        assert pkgs[1].name == "bat"
        assert pkgs[1].description is None

    @pytest.mark.asyncio
    async def test_count_does_not_hit_network(self, config: Config, mock_cargo_list_output: str) -> None:
        mock_json = AsyncMock()
        with (
            patch("updatekit.backends.cargo.run_capture", new=AsyncMock(return_value=ok(mock_cargo_list_output))),
            patch("updatekit.backends.cargo.get_json", new=mock_json),
        ):
            assert await cargo.count_installed(config) == 2
        mock_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_search(self, config: Config) -> None:
        payload = {
            "crates": [
                {"name": "serde", "max_version": "1.0.197", "description": "A serialization framework"},
                {"name": "broken"},
            ]
        }
        mock_json = AsyncMock(return_value=(200, payload))
        with patch("updatekit.backends.cargo.get_json", new=mock_json):
            pkgs = await cargo.search_package(config, "serde json")

        assert [(p.name, p.version) for p in pkgs] == [("serde", "1.0.197")]
        mock_json.assert_awaited_once_with(
            "https://crates.io/api/v1/crates",
            params={"page": 1, "per_page": 10, "q": "serde json"},
        )

    @pytest.mark.asyncio
    async def test_search_error_status(self, config: Config) -> None:
        with patch("updatekit.backends.cargo.get_json", new=AsyncMock(return_value=(503, None))):
            assert await cargo.search_package(config, "serde") == []


class TestMutations:
    @pytest.mark.asyncio
    async def test_update_forces_reinstall(self, config: Config) -> None:
        with patch("updatekit.backends.cargo.run_checked", new=AsyncMock()) as mock_run:
            await cargo.update_packages(config, ["ripgrep"])
        mock_run.assert_awaited_once_with(
            "cargo", "install", "--force", "ripgrep", action="cargo install --force for ripgrep"
        )

    @pytest.mark.asyncio
    async def test_uninstall_package(self, config: Config) -> None:
        with patch("updatekit.backends.cargo.run_checked", new=AsyncMock()) as mock_run:
            await cargo.uninstall_package(config, "bat")
        mock_run.assert_awaited_once_with("cargo", "uninstall", "bat", action="cargo uninstall for bat")

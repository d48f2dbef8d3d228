"""Unit tests for the Go backend."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from updatekit.backends import go
from updatekit.core.config import Config
from updatekit.core.errors import UnknownError
from updatekit.core.shell import CommandOutput

NOT_GO = UnknownError("go version failed: not a Go executable")


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    d = tmp_path / "bin"
    d.mkdir()
    (d / "gopls").write_bytes(b"\x7fELF" + b"\0" * 60)
    (d / "notes.txt").write_text("not a binary")
    (d / "subdir").mkdir()
    return d


@pytest.fixture
def go_config(bin_dir: Path) -> Config:
    return Config(go_bin_dir_override=str(bin_dir))


def fake_go(info: str, versions: str = "golang.org/x/tools/gopls v0.15.1 v0.15.2 v0.16.0"):
    async def run_text(*cmd: str) -> str:
        if cmd[1] == "version":
            if cmd[-1].endswith("gopls"):
                return info
            raise NOT_GO
        if cmd[1] == "list":
            return versions
        raise AssertionError(cmd)

    return run_text


class TestExtraction:
    def test_module_path(self, mock_go_version_output: str) -> None:
        assert go.extract_module_path(mock_go_version_output) == "golang.org/x/tools/gopls"

    def test_main_module(self, mock_go_version_output: str) -> None:
        assert go.extract_main_module(mock_go_version_output) == "golang.org/x/tools/gopls"

    def test_version(self, mock_go_version_output: str) -> None:
        assert go.extract_version(mock_go_version_output) == "v0.15.2"

    def test_prerelease_version(self) -> None:
        info = "\tmod\tgithub.com/cli/cli/v2\tv2.40.1-pre.0\th1:x=\n"
        assert go.extract_version(info) == "v2.40.1-pre.0"

    def test_devel_build_has_no_version(self) -> None:
        info = "\tpath\texample.com/tool\n\tmod\texample.com/tool\t(devel)\n"
        assert go.extract_version(info) is None

    def test_missing_lines(self, mock_empty_output: str) -> None:
        assert go.extract_module_path(mock_empty_output) is None
        assert go.extract_version(mock_empty_output) is None


class TestBinaries:
    def test_only_regular_files(self, go_config: Config) -> None:
        names = [b.name for b in go.list_installed_binaries(go_config)]
        assert names == ["gopls", "notes.txt"]

    def test_missing_directory_is_empty(self, tmp_path: Path) -> None:
        config = Config(go_bin_dir_override=str(tmp_path / "absent"))
        assert go.list_installed_binaries(config) == []


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_updates(self, go_config: Config, mock_go_version_output: str) -> None:
        with patch("updatekit.backends.go.run_text", new=fake_go(mock_go_version_output)):
            updates = await go.list_updates(go_config)
        assert [(u.name, u.current_version, u.new_version) for u in updates] == [
            ("gopls", "v0.15.2", "v0.16.0")
        ]

    @pytest.mark.asyncio
    async def test_no_tagged_versions(self, go_config: Config, mock_go_version_output: str) -> None:
        run_text = fake_go(mock_go_version_output, versions="golang.org/x/tools/gopls")
        with patch("updatekit.backends.go.run_text", new=run_text):
            assert await go.get_latest_version(go_config, "golang.org/x/tools/gopls") == ""
            assert await go.list_updates(go_config) == []

    @pytest.mark.asyncio
    async def test_current_version_by_name_or_path(self, go_config: Config, mock_go_version_output: str) -> None:
        with patch("updatekit.backends.go.run_text", new=fake_go(mock_go_version_output)):
            assert await go.get_current_version(go_config, "gopls") == "v0.15.2"
            assert await go.get_current_version(go_config, "golang.org/x/tools/gopls") == "v0.15.2"
            with pytest.raises(UnknownError, match="not installed"):
                await go.get_current_version(go_config, "dlv")

    @pytest.mark.asyncio
    async def test_list_installed_skips_non_go_files(self, go_config: Config, mock_go_version_output: str) -> None:
        with patch("updatekit.backends.go.run_text", new=fake_go(mock_go_version_output)):
            pkgs = await go.list_installed(go_config)
        assert [(p.name, p.version, p.size) for p in pkgs] == [("gopls", "v0.15.2", 64)]

    @pytest.mark.asyncio
    async def test_search(self, go_config: Config) -> None:
        result = CommandOutput(stdout="github.com/spf13/cobra v1.7.0 v1.8.0\n", stderr="", returncode=0)
        with patch("updatekit.backends.go.run_capture", new=AsyncMock(return_value=result)):
            pkgs = await go.search_package(go_config, "github.com/spf13/cobra")
        assert [(p.name, p.version) for p in pkgs] == [("github.com/spf13/cobra", "v1.8.0")]


class TestMutations:
    @pytest.mark.asyncio
    async def test_install_appends_latest(self, go_config: Config) -> None:
        with patch("updatekit.backends.go.run_checked", new=AsyncMock()) as mock_run:
            await go.install_packages(go_config, ["golang.org/x/tools/gopls", "example.com/x@v1.0.0"])
        assert [c.args for c in mock_run.await_args_list] == [
            ("go", "install", "golang.org/x/tools/gopls@latest"),
            ("go", "install", "example.com/x@v1.0.0"),
        ]

    @pytest.mark.asyncio
    async def test_uninstall_removes_binary(self, go_config: Config, bin_dir: Path) -> None:
        await go.uninstall_packages(go_config, ["golang.org/x/tools/gopls@latest"])
        assert not (bin_dir / "gopls").exists()

    @pytest.mark.asyncio
    async def test_uninstall_missing_binary(self, go_config: Config) -> None:
        with pytest.raises(UnknownError, match="Failed to remove"):
            await go.uninstall_package(go_config, "dlv")

    @pytest.mark.asyncio
    async def test_uninstall_rejects_bad_names(self, go_config: Config) -> None:
        with pytest.raises(UnknownError, match="Invalid"):
            await go.uninstall_package(go_config, "..")

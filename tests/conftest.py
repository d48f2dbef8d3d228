"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
import tempfile

import pytest

# Keep log files and configuration out of the real home directory.
_XDG_ROOT = tempfile.mkdtemp(prefix="updatekit-tests-")
os.environ["XDG_STATE_HOME"] = os.path.join(_XDG_ROOT, "state")
os.environ["XDG_CONFIG_HOME"] = os.path.join(_XDG_ROOT, "config")

from updatekit.core.config import BackendConfig, Config  # noqa: E402
from updatekit.core.models import BackendKind  # noqa: E402


@pytest.fixture
def config() -> Config:
    """A configuration with every backend enabled and default paths."""
    return Config(
        system_manager=BackendConfig(BackendKind.DNF),
        app_managers=(
            BackendConfig(BackendKind.FLATPAK),
            BackendConfig(BackendKind.HOMEBREW),
            BackendConfig(BackendKind.CARGO),
            BackendConfig(BackendKind.GO),
        ),
    )


@pytest.fixture
def mock_rpm_output() -> str:
    """Sample rpm -qa --queryformat output for testing."""
    return (
        "bash\t5.2.26-3.fc40\tThe GNU Bourne Again shell\t8400000\t1700000000\thttps://www.gnu.org/software/bash\n"
        "vim-minimal\t9.1.158-1.fc40\tA minimal version of the VIM editor\t1600000\t1700000100\t(none)\n"
        "gpg-pubkey\td0ab2adb-62ad8e96\t(none)\t0\t(none)\t(none)\n"
    )


@pytest.fixture
def mock_check_upgrade_output() -> str:
    """Sample dnf check-upgrade output, including banners and a duplicate."""
    return """Updating and loading repositories:
Repositories loaded.
bash.x86_64                 5.2.32-1.fc40        updates
curl.x86_64                 8.6.0-10.fc40        updates
curl.i686                   8.6.0-10.fc40        updates
"""


@pytest.fixture
def mock_flatpak_info_output() -> str:
    """Sample flatpak list --columns=application,version,branch output."""
    return """Application ID                 Version   Branch
org.mozilla.firefox            128.0     stable
org.gnome.Platform                       46
org.example.Bare
"""


@pytest.fixture
def mock_flatpak_installed_output() -> str:
    """Sample tab-separated flatpak list --app output."""
    return (
        "org.mozilla.firefox\tFirefox\t128.0\tstable\t1.2 GB\tflathub\n"
        "org.gnome.Calculator\tCalculator\t\tstable\t50 MB\tflathub\n"
    )


@pytest.fixture
def mock_brew_outdated_output() -> str:
    """Sample brew outdated --verbose output."""
    return """git (2.43.0) < 2.44.0
python@3.12 (3.12.1) < 3.12.2
wget (1.21.4) < 1.21.4
"""


@pytest.fixture
def mock_cargo_list_output() -> str:
    """Sample cargo install --list output with a local-path crate."""
    return """ripgrep v14.1.0:
    rg
my-tool v1.0.0 (/home/user/my-tool):
    my-tool
bat v0.24.0:
    bat
"""


@pytest.fixture
def mock_go_version_output() -> str:
    """Sample go version -m output for a module-installed binary."""
    return """/home/user/go/bin/gopls: go1.22.1
\tpath\tgolang.org/x/tools/gopls
\tmod\tgolang.org/x/tools/gopls\tv0.15.2\th1:abc=
\tdep\tgolang.org/x/mod\tv0.16.0\th1:def=
"""


@pytest.fixture
def mock_empty_output() -> str:
    """Empty output for testing edge cases."""
    return ""

"""
Property-based tests for configuration and the per-OS command table.

Uses Hypothesis for property-based testing of derived nginx paths, config
path resolution and nginx command construction.
"""

from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from local_domains.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_PROXY_INSTALL_PATH,
    HOSTS_FILE_PATHS,
    Settings,
    create_default_settings,
    resolve_config_path,
)
from local_domains.enums import OSFamily
from local_domains.platforms import POSIX_COMMANDS, WINDOWS_COMMANDS, commands_for


path_segment = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789_-", min_size=1, max_size=12)


class TestDerivedPathsProperty:
    """
    Property-based tests for paths derived from the install location.

    **Feature: local-domains, Property: managed files live under <install>/conf/<alias>**
    """

    @given(segments=st.lists(path_segment, min_size=1, max_size=4), alias=path_segment)
    @settings(max_examples=100)
    def test_paths_follow_install(self, segments: list[str], alias: str) -> None:
        install = "/" + "/".join(segments)
        config = Settings(host_file="/etc/hosts", proxy_install_path=install, proxy_alias_dir_name=alias)

        assert config.proxy_conf_dir == Path(install) / "conf"
        assert config.proxy_main_conf == Path(install) / "conf" / "nginx.conf"
        assert config.proxy_domains_dir == Path(install) / "conf" / alias


class TestDefaultSettings:
    """Defaults per OS family."""

    @pytest.mark.parametrize("os_family", list(OSFamily))
    def test_hosts_file_per_os(self, os_family: OSFamily) -> None:
        config = create_default_settings(os_family)

        assert config.host_file == HOSTS_FILE_PATHS[os_family]
        assert config.proxy_install_path == str(DEFAULT_PROXY_INSTALL_PATH)
        assert config.auto_refresh is True
        assert config.logging.level == "warn"

    def test_existing_install_and_language(self) -> None:
        config = create_default_settings(OSFamily.POSIX, proxy_install_path="/usr/local/nginx", language="de")

        assert config.proxy_install_path == "/usr/local/nginx"
        assert config.language == "de"


class TestResolveConfigPath:
    """Explicit argument, then environment, then the default."""

    def test_explicit_path_wins(self, monkeypatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, "/from/env.json")

        assert resolve_config_path("/explicit.json") == Path("/explicit.json")

    def test_environment(self, monkeypatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, "/from/env.json")

        assert resolve_config_path() == Path("/from/env.json")

    def test_default(self, monkeypatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)

        assert resolve_config_path() == DEFAULT_CONFIG_PATH


class TestPlatformCommands:
    """nginx invocations per OS family."""

    def test_posix_passes_prefix(self) -> None:
        assert POSIX_COMMANDS.start_args("/opt/nginx") == ["-p", "/opt/nginx/"]
        assert POSIX_COMMANDS.signal_args("/opt/nginx/", "reload") == ["-p", "/opt/nginx/", "-s", "reload"]
        assert POSIX_COMMANDS.executable("/opt/nginx") == str(Path("/opt/nginx") / "nginx")

    def test_windows_runs_from_install(self) -> None:
        assert WINDOWS_COMMANDS.start_args("C:/nginx") == []
        assert WINDOWS_COMMANDS.signal_args("C:/nginx", "quit") == ["-s", "quit"]
        assert WINDOWS_COMMANDS.archive_suffix == ".zip"

    def test_binary_override(self) -> None:
        assert POSIX_COMMANDS.executable("/opt/nginx", "/usr/sbin/nginx") == "/usr/sbin/nginx"

    @pytest.mark.parametrize("listing,expected", [
        ("bash\nnginx\n", True),
        ("/usr/sbin/nginx\n", True),
        ("nginx: master process\n", True),
        ("bash\nnginx-exporter\n", False),
        ("", False),
    ])
    def test_posix_listing(self, listing: str, expected: bool) -> None:
        assert POSIX_COMMANDS.is_listed(listing) == expected

    @pytest.mark.parametrize("listing,expected", [
        ("nginx.exe                     1234 Console    1     7,000 K", True),
        ("INFO: No tasks are running which match the specified criteria.", False),
    ])
    def test_windows_listing(self, listing: str, expected: bool) -> None:
        assert WINDOWS_COMMANDS.is_listed(listing) == expected

    @pytest.mark.parametrize("os_family,commands", [
        (OSFamily.POSIX, POSIX_COMMANDS),
        (OSFamily.WINDOWS, WINDOWS_COMMANDS),
    ])
    def test_commands_for(self, os_family: OSFamily, commands) -> None:
        assert commands_for(os_family) is commands

"""
Configuration dataclasses for the local-domains system.

This module defines the settings persisted alongside the declared domains:
hosts file and nginx locations, refresh behaviour, backups, language and
logging.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .enums import OSFamily


CONFIG_ENV_VAR = "LOCAL_DOMAINS_CONFIG"
DEFAULT_CONFIG_DIR = Path.home() / ".local_domains"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.json"

# Where `download` extracts nginx; an install here is considered ours
DEFAULT_PROXY_INSTALL_PATH = DEFAULT_CONFIG_DIR / "nginx"

DEFAULT_ALIAS_DIR_NAME = "local-domains"

HOSTS_FILE_PATHS = {
    OSFamily.WINDOWS: "C:/Windows/System32/drivers/etc/hosts",
    OSFamily.POSIX: "/etc/hosts",
}


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "warn"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class Settings:
    """Settings stored in the declared configuration document."""

    host_file: str
    proxy_install_path: str
    proxy_alias_dir_name: str = DEFAULT_ALIAS_DIR_NAME
    auto_refresh: bool = True
    backup_host_file: Optional[str] = None
    backup_proxy_conf: Optional[str] = None
    proxy_binary: Optional[str] = None  # defaults to <install>/<binary name>
    language: str = "en"  # 'en' or 'de'
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def proxy_conf_dir(self) -> Path:
        return Path(self.proxy_install_path) / "conf"

    @property
    def proxy_main_conf(self) -> Path:
        return self.proxy_conf_dir / "nginx.conf"

    @property
    def proxy_domains_dir(self) -> Path:
        return self.proxy_conf_dir / self.proxy_alias_dir_name


def resolve_config_path(explicit: Optional[str] = None) -> Path:
    """
    Resolve the declared configuration document path.

    Priority: explicit argument, then LOCAL_DOMAINS_CONFIG, then the default.
    """
    if explicit:
        return Path(explicit).expanduser()
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_CONFIG_PATH


def create_default_settings(
    os_family: OSFamily,
    proxy_install_path: Optional[str] = None,
    language: str = "en",
) -> Settings:
    """
    Create default settings for an operating system family.

    Args:
        os_family: Selects the hosts file location
        proxy_install_path: Existing nginx installation to use instead of the managed one
        language: Output language ('en' or 'de')

    Returns:
        Settings with default values
    """
    install_path = proxy_install_path or str(DEFAULT_PROXY_INSTALL_PATH)
    return Settings(
        host_file=HOSTS_FILE_PATHS[os_family],
        proxy_install_path=install_path,
        proxy_alias_dir_name=DEFAULT_ALIAS_DIR_NAME,
        auto_refresh=True,
        backup_host_file=str(DEFAULT_CONFIG_DIR / "backup_hosts"),
        backup_proxy_conf=str(DEFAULT_CONFIG_DIR / "backup_nginx.conf"),
        language=language,
    )

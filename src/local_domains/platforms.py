"""
Per-OS command table for controlling the nginx process.

The reconcilers never branch on the operating system themselves; they are
handed a PlatformCommands instance describing how to start, signal, list and
kill nginx on the current OS family.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .enums import OSFamily


def detect_os_family() -> OSFamily:
    """Return the OS family of the running interpreter."""
    return OSFamily.WINDOWS if os.name == "nt" else OSFamily.POSIX


@dataclass(frozen=True)
class PlatformCommands:
    """Commands used to manage nginx on one OS family."""

    os_family: OSFamily
    binary_name: str
    process_list_command: tuple[str, ...]
    kill_command: tuple[str, ...]
    pass_prefix: bool = False  # add '-p <install>/' to nginx invocations
    archive_suffix: str = ".tar.gz"

    def executable(self, install_path: str, override: Optional[str] = None) -> str:
        if override:
            return override
        return str(Path(install_path) / self.binary_name)

    def start_args(self, install_path: str) -> list[str]:
        return self._prefix_args(install_path)

    def signal_args(self, install_path: str, signal: str) -> list[str]:
        """Arguments for `nginx -s <signal>` (quit, reload, stop, reopen)."""
        return self._prefix_args(install_path) + ["-s", signal]

    def is_listed(self, process_listing: str) -> bool:
        """Whether a process listing contains the nginx binary."""
        if self.os_family == OSFamily.WINDOWS:
            return self.binary_name.lower() in process_listing.lower()
        for line in process_listing.splitlines():
            name = line.strip()
            if name == self.binary_name or name.endswith(f"/{self.binary_name}"):
                return True
            # ps may report 'nginx: master process ...'
            if name.startswith(f"{self.binary_name}:"):
                return True
        return False

    def _prefix_args(self, install_path: str) -> list[str]:
        if not self.pass_prefix:
            return []
        return ["-p", install_path.rstrip("/\\") + "/"]


WINDOWS_COMMANDS = PlatformCommands(
    os_family=OSFamily.WINDOWS,
    binary_name="nginx.exe",
    process_list_command=("tasklist", "/FI", "IMAGENAME eq nginx.exe", "/NH"),
    kill_command=("taskkill", "/F", "/IM", "nginx.exe"),
    pass_prefix=False,
    archive_suffix=".zip",
)

POSIX_COMMANDS = PlatformCommands(
    os_family=OSFamily.POSIX,
    binary_name="nginx",
    process_list_command=("ps", "-A", "-o", "comm="),
    kill_command=("pkill", "-9", "-x", "nginx"),
    pass_prefix=True,
    archive_suffix=".tar.gz",
)

COMMAND_TABLE: dict[OSFamily, PlatformCommands] = {
    OSFamily.WINDOWS: WINDOWS_COMMANDS,
    OSFamily.POSIX: POSIX_COMMANDS,
}


def commands_for(os_family: Optional[OSFamily] = None) -> PlatformCommands:
    """Look up the command table for an OS family (the current one by default)."""
    return COMMAND_TABLE[os_family or detect_os_family()]

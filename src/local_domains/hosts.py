"""
Hosts Reconciler for the local-domains system.

Keeps the signature-tagged lines of the hosts file equal to the entries
derived from the active domains. Every other line is passed through
untouched on any rewrite.
"""

from pathlib import Path
from typing import Iterable, Optional, Union

from .audit_logger import AuditLogger
from .enums import LogLevel
from .exceptions import io_guard
from .file_store import FileStore
from .models import Domain, HostEntry, HostsDiff


COMPONENT = "hosts"


class HostsReconciler:
    """
    Reads and rewrites the managed subset of the hosts file.

    All mutations are read-modify-write without locking; a concurrent editor
    can lose updates.
    """

    def __init__(
        self,
        path: Union[str, Path],
        files: FileStore,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            path: Location of the hosts file
            files: File access capability
            logger: Optional audit logger
        """
        self._path = str(path)
        self._files = files
        self._logger = logger

    @property
    def path(self) -> str:
        return self._path

    async def read_managed_entries(self) -> list[HostEntry]:
        """Parse the hosts file and return only the entries we own, in file order."""
        async with io_guard("read the hosts file", path=self._path):
            lines = await self._files.read_lines(self._path)
        return self._parse(lines)

    async def exists(self, entry: HostEntry) -> bool:
        return entry in await self.read_managed_entries()

    async def add(self, entry: HostEntry) -> bool:
        """
        Append a managed line for the entry.

        Returns:
            False if an equal entry is already present, True once appended
        """
        async with io_guard("add an entry to the hosts file", path=self._path):
            text = await self._files.read_text(self._path)
            lines = text.split("\n")
            if entry in self._parse(lines):
                self._log(LogLevel.DEBUG, "Entry already present", entry)
                return False

            ending = self._line_ending(lines)
            prefix = "" if not text or text.endswith("\n") else f"{ending}\n"
            await self._files.append(self._path, f"{prefix}{entry.to_line()}{ending}\n")

        self._log(LogLevel.INFO, "Entry added", entry)
        return True

    async def remove(self, entry: HostEntry) -> bool:
        """
        Drop every managed line equal to the entry.

        Returns:
            False if no such entry exists, True once the file was rewritten
        """
        async with io_guard("remove an entry from the hosts file", path=self._path):
            lines = await self._files.read_lines(self._path)
            kept = [line for line in lines if HostEntry.from_line(line) != entry]
            if len(kept) == len(lines):
                self._log(LogLevel.DEBUG, "Entry not present", entry)
                return False
            await self._files.write_lines(self._path, kept)

        self._log(LogLevel.INFO, "Entry removed", entry)
        return True

    async def reconcile(self, domains: Iterable[Domain]) -> HostsDiff:
        """
        Make the managed lines match the active domains with one rewrite.

        Args:
            domains: All declared domains; inactive ones are ignored

        Returns:
            The entries added and removed; empty when the file was already correct
        """
        wanted = _unique(HostEntry.from_domain(d) for d in domains if d.is_active)

        async with io_guard("update the hosts file", path=self._path):
            lines = await self._files.read_lines(self._path)
            present = _unique(self._parse(lines))

            to_remove = [entry for entry in present if entry not in wanted]
            to_add = [entry for entry in wanted if entry not in present]
            diff = HostsDiff(added=to_add, removed=to_remove)
            if not diff.changed:
                self._log(LogLevel.DEBUG, "Hosts file already up to date")
                return diff

            kept = [line for line in lines if HostEntry.from_line(line) not in to_remove]
            ending = self._line_ending(kept)
            new_lines = [entry.to_line() + ending for entry in to_add]

            # keep a trailing newline at the end of the file
            if kept and kept[-1] == "":
                kept = kept[:-1] + new_lines + [""]
            else:
                kept = kept + new_lines
            await self._files.write_lines(self._path, kept)

        self._log(
            LogLevel.INFO,
            "Hosts file updated",
            data={
                "added": [entry.to_line() for entry in to_add],
                "removed": [entry.to_line() for entry in to_remove],
            },
        )
        return diff

    async def backup(self, destination: Union[str, Path]) -> None:
        """Copy the hosts file to a backup location."""
        async with io_guard("back up the hosts file", path=self._path):
            await self._files.copy(self._path, destination)
        self._log(LogLevel.INFO, "Hosts file backed up", data={"destination": str(destination)})

    @staticmethod
    def _parse(lines: Iterable[str]) -> list[HostEntry]:
        entries = []
        for line in lines:
            entry = HostEntry.from_line(line)
            if entry is not None:
                entries.append(entry)
        return entries

    @staticmethod
    def _line_ending(lines: list[str]) -> str:
        """Extra '\\r' for files that use CRLF line endings."""
        for line in lines:
            if line:
                return "\r" if line.endswith("\r") else ""
        return ""

    def _log(
        self,
        level: LogLevel,
        message: str,
        entry: Optional[HostEntry] = None,
        data: Optional[dict] = None,
    ) -> None:
        if self._logger is None:
            return
        payload = {"path": self._path, **(data or {})}
        if entry is not None:
            payload["ip"] = entry.ip
            payload["name"] = entry.name
        self._logger.log(level, COMPONENT, message, payload)


def _unique(entries: Iterable[HostEntry]) -> list[HostEntry]:
    seen: list[HostEntry] = []
    for entry in entries:
        if entry not in seen:
            seen.append(entry)
    return seen

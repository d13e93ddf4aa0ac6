"""
Data models for the local-domains system.

This module defines the declared Domain value, the owned hosts entry and
the result structures reported by the reconcilers and the process runner.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from .enums import DomainStatus, ProxyFileState
from .exceptions import ValidationError


# Filesystem-safe stand-in for ':' in generated file names
PORT_SEPARATOR = "$"


def parse_status(value: Any) -> DomainStatus:
    """
    Convert a serialized status into a DomainStatus.

    Accepts the enum itself, its string value, or the legacy integers
    0 (inactive) and 1 (active).
    """
    if isinstance(value, DomainStatus):
        return value
    if isinstance(value, bool):
        raise ValidationError(
            code="invalid_status",
            message=f"Unknown domain status: {value!r}",
            details={"status": value},
        )
    if isinstance(value, int):
        if value == 1:
            return DomainStatus.ACTIVE
        if value == 0:
            return DomainStatus.INACTIVE
    if isinstance(value, str):
        try:
            return DomainStatus(value.lower())
        except ValueError:
            pass
    raise ValidationError(
        code="invalid_status",
        message=f"Unknown domain status: {value!r}",
        details={"status": value},
    )


@dataclass(frozen=True)
class Domain:
    """A declared mapping from a hostname to a local ip:port."""

    source: str  # hostname to route from
    destination: str  # ip:port to route to
    status: DomainStatus = DomainStatus.ACTIVE

    def __post_init__(self) -> None:
        if not self.source or not self.source.strip():
            raise ValidationError(
                code="empty_source",
                message="Domain source must not be empty",
                details={"source": self.source},
            )
        if not self.destination or not self.destination.strip():
            raise ValidationError(
                code="empty_destination",
                message="Domain destination must not be empty",
                details={"source": self.source, "destination": self.destination},
            )

    @property
    def config_file_name(self) -> str:
        """Deterministic name of this domain's file in the managed proxy directory."""
        safe_destination = self.destination.replace(":", PORT_SEPARATOR)
        return f"{self.source}-{safe_destination}.conf"

    @property
    def is_active(self) -> bool:
        return self.status == DomainStatus.ACTIVE

    @property
    def address(self) -> str:
        """The destination without its port (brackets removed for IPv6)."""
        host, sep, port = self.destination.rpartition(":")
        if not sep or not port.isdigit():
            host = self.destination
        return host.strip("[]")

    def with_status(self, status: DomainStatus) -> "Domain":
        """Return a copy of this domain with a different status."""
        return replace(self, status=status)

    def to_dict(self) -> dict:
        """Serializable form; derived fields are not included."""
        return {
            "source": self.source,
            "destination": self.destination,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Domain":
        return cls(
            source=data["source"],
            destination=data["destination"],
            status=parse_status(data.get("status", DomainStatus.ACTIVE)),
        )


@dataclass(frozen=True)
class StatusFlip:
    """A proxy file whose structural state was changed to match its domain."""

    file_name: str
    before: ProxyFileState
    after: ProxyFileState


@dataclass
class DirectoryDiff:
    """Changes applied to the managed proxy directory by one reconciliation."""

    added_files: list[str] = field(default_factory=list)
    removed_files: list[str] = field(default_factory=list)
    status_flips: list[StatusFlip] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added_files or self.removed_files or self.status_flips)


@dataclass
class ProcessOutput:
    """Result of running a command to completion."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# Signature comment that marks a hosts line as ours
HOSTS_SIGNATURE = "local-domains"

HOST_ENTRY_PATTERN = re.compile(
    r"^(?P<address>[^#\s]+)\s+(?P<hostname>[^#\s]+)(?:\s*#\s*(?P<comment>.+))?"
)


@dataclass(frozen=True)
class HostEntry:
    """
    One hosts file line owned by local-domains.

    Multiple names per line are not supported. Equality is by ip and name,
    so a managed line with different comment spacing still matches.
    """

    ip: str
    name: str

    def to_line(self) -> str:
        return f"{self.ip} {self.name} # {HOSTS_SIGNATURE}"

    @classmethod
    def from_line(cls, line: str) -> Optional["HostEntry"]:
        """
        Parse a hosts line.

        Returns None for blank lines, comments, and entries without the
        signature comment.
        """
        match = HOST_ENTRY_PATTERN.match(line)
        if match is None:
            return None
        comment = match.group("comment")
        if comment is None or comment.strip() != HOSTS_SIGNATURE:
            return None
        return cls(ip=match.group("address"), name=match.group("hostname"))

    @classmethod
    def from_domain(cls, domain: Domain) -> "HostEntry":
        return cls(ip=domain.address, name=domain.source)

    def pretty(self) -> str:
        return f"{self.name} => {self.ip}"


@dataclass
class HostsDiff:
    """Managed hosts entries added and removed by one reconciliation."""

    added: list[HostEntry] = field(default_factory=list)
    removed: list[HostEntry] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)

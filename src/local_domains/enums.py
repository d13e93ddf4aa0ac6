"""
Enumeration types for the local-domains system.

These enums provide type-safe constants for domain status, proxy file state,
operating system families and logging levels.
"""

from enum import Enum


class DomainStatus(Enum):
    """Declared intent for a domain."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class ProxyFileState(Enum):
    """Structural state of a managed proxy file, derived from its line prefixes."""

    MISSING = "missing"
    ENABLED = "enabled"  # no line is commented out
    DISABLED = "disabled"  # every line is commented out
    MIXED = "mixed"


class OSFamily(Enum):
    """Operating system family, selects the process command table."""

    WINDOWS = "windows"
    POSIX = "posix"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class DomainValidationErrorCode(Enum):
    """Error codes for domain validation failures."""

    EMPTY_INPUT = "empty_input"
    FORBIDDEN_CHARS = "forbidden_chars"
    IDNA_ERROR = "idna_error"
    INVALID_DESTINATION = "invalid_destination"
    INVALID_PORT = "invalid_port"

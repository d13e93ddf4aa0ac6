"""
Domain validation and normalization module.

Validates a domain's source hostname (normalized to lowercase IDNA form) and
its destination, which must be an ip:port pair.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Optional

import idna

from local_domains.enums import DomainValidationErrorCode
from local_domains.exceptions import ValidationError
from local_domains.models import Domain


# Forbidden characters in host names (control chars, spaces, special symbols).
# '$' is included so a destination can never collide with a generated file name.
FORBIDDEN_CHARS_PATTERN = re.compile(
    r'[\x00-\x1f\x7f'           # Control characters
    r'\s'                        # Whitespace
    r'!@#$%^&*()+=\[\]{}|\\:;"\'<>,?/`~]'  # Special symbols not allowed
)

DESTINATION_PATTERN = re.compile(
    r"^(?P<host>\[[0-9A-Fa-f:.]+\]|[0-9.]+):(?P<port>\d{1,5})$"
)

MAX_PORT = 65535


@dataclass
class DomainValidationError:
    """Structured error information for domain validation failures."""

    code: DomainValidationErrorCode
    message: str
    details: dict


@dataclass
class DomainValidationResult:
    """Result of domain validation operation."""

    valid: bool
    canonical_source: Optional[str]
    destination: Optional[str]
    error: Optional[DomainValidationError]


class DomainValidator:
    """
    Validates and normalizes user input for a new domain.

    Handles:
    - Conversion of the source to lowercase canonical form
    - IDNA encoding for international characters
    - Rejection of forbidden characters
    - Destination format <ipv4>:<port> or [<ipv6>]:<port> with a port in 1..65535
    """

    def validate(self, source: str, destination: str) -> DomainValidationResult:
        """
        Validate and normalize a source/destination pair.

        Args:
            source: The hostname to route from
            destination: The ip:port to route to

        Returns:
            DomainValidationResult with validation status and canonical form or error
        """
        if not source or not source.strip():
            return self._failure(
                DomainValidationErrorCode.EMPTY_INPUT,
                "Domain source is empty",
                {"source": source},
            )
        if not destination or not destination.strip():
            return self._failure(
                DomainValidationErrorCode.EMPTY_INPUT,
                "Domain destination is empty",
                {"destination": destination},
            )

        host = source.strip()
        if FORBIDDEN_CHARS_PATTERN.search(host):
            return self._failure(
                DomainValidationErrorCode.FORBIDDEN_CHARS,
                "Domain source contains forbidden characters",
                {
                    "source": source,
                    "forbidden_chars": FORBIDDEN_CHARS_PATTERN.findall(host),
                },
            )

        try:
            canonical = self.normalize_to_canonical(host)
        except ValidationError as e:
            return self._failure(
                DomainValidationErrorCode.IDNA_ERROR,
                str(e.message),
                e.details,
            )

        error = self._check_destination(destination.strip())
        if error is not None:
            return DomainValidationResult(
                valid=False,
                canonical_source=None,
                destination=None,
                error=error,
            )

        return DomainValidationResult(
            valid=True,
            canonical_source=canonical,
            destination=destination.strip(),
            error=None,
        )

    def validate_or_raise(self, source: str, destination: str) -> Domain:
        """
        Validate input and build an active Domain from it.

        Raises:
            ValidationError: If the source or destination is malformed
        """
        result = self.validate(source, destination)
        if not result.valid:
            raise ValidationError(
                code=result.error.code.value,
                message=result.error.message,
                details=result.error.details,
            )
        return Domain(source=result.canonical_source, destination=result.destination)

    def normalize_to_canonical(self, host: str) -> str:
        """
        Convert a hostname to canonical form (lowercase, IDNA-encoded).

        Raises:
            ValidationError: If IDNA encoding fails
        """
        host_lower = host.lower()

        if not any(ord(c) > 127 for c in host_lower):
            return host_lower

        try:
            return idna.encode(host_lower, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise ValidationError(
                code=DomainValidationErrorCode.IDNA_ERROR.value,
                message=f"IDNA encoding failed: {e}",
                details={"source": host, "idna_error": str(e)},
            )

    def _check_destination(self, destination: str) -> Optional[DomainValidationError]:
        match = DESTINATION_PATTERN.match(destination)
        if not match:
            return DomainValidationError(
                code=DomainValidationErrorCode.INVALID_DESTINATION,
                message="Destination must look like <ip>:<port>",
                details={"destination": destination},
            )

        port = int(match.group("port"))
        if not 1 <= port <= MAX_PORT:
            return DomainValidationError(
                code=DomainValidationErrorCode.INVALID_PORT,
                message=f"Port {port} is outside 1-{MAX_PORT}",
                details={"destination": destination, "port": port},
            )

        host = match.group("host")
        address = host[1:-1] if host.startswith("[") else host
        try:
            ip = ipaddress.ip_address(address)
        except ValueError:
            return DomainValidationError(
                code=DomainValidationErrorCode.INVALID_DESTINATION,
                message=f"'{host}' is not an IP address",
                details={"destination": destination},
            )
        if (ip.version == 6) != host.startswith("["):
            return DomainValidationError(
                code=DomainValidationErrorCode.INVALID_DESTINATION,
                message="IPv6 destinations must be written as [address]:port",
                details={"destination": destination},
            )

        return None

    @staticmethod
    def _failure(
        code: DomainValidationErrorCode,
        message: str,
        details: dict,
    ) -> DomainValidationResult:
        return DomainValidationResult(
            valid=False,
            canonical_source=None,
            destination=None,
            error=DomainValidationError(code=code, message=message, details=details),
        )

"""
Exception classes for the local-domains system.

All exceptions inherit from LocalDomainsError and provide structured
error information with codes, messages, and optional details.
"""

import asyncio
import subprocess
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Optional


class LocalDomainsError(Exception):
    """Base exception for all local-domains errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(LocalDomainsError):
    """Raised when a referenced domain or the configuration document is absent."""

    pass


class AlreadyExistsError(LocalDomainsError):
    """Raised when a domain with the same source is already declared."""

    pass


class IOOperationError(LocalDomainsError):
    """Raised when a read, write, delete or process call against an external store fails."""

    pass


class NetworkError(LocalDomainsError):
    """Raised when fetching a release artifact fails."""

    pass


class ValidationError(LocalDomainsError):
    """Raised when input is malformed (empty source, bad ip:port destination, ...)."""

    pass


@asynccontextmanager
async def io_guard(operation: str, **details) -> AsyncIterator[None]:
    """
    Wrap low-level I/O failures into an IOOperationError naming the operation.

    Errors that already belong to the taxonomy propagate unchanged.

    Args:
        operation: Human-readable name of the attempted operation
        **details: Extra context attached to the raised error
    """
    try:
        yield
    except LocalDomainsError:
        raise
    except (OSError, subprocess.SubprocessError, UnicodeError) as e:
        raise IOOperationError(
            code="io_error",
            message=f"Failed to {operation}: {e}",
            details={"operation": operation, "error": str(e), **details},
        ) from e


async def gather_all(*aws: Awaitable[Any]) -> list:
    """
    Run awaitables concurrently and wait for every one of them to finish.

    Unlike a bare asyncio.gather, no sibling is left running when one fails:
    all results are collected first, then the first failure (in argument
    order) is raised.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results

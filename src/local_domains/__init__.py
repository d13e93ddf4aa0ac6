"""
local-domains - Route local hostnames to local ports.

This package keeps the operating system hosts file and an nginx reverse
proxy's per-domain configuration directory converged with a declared set of
hostname -> ip:port mappings, never touching content it does not own.
"""

__version__ = "0.1.0"
__author__ = "local-domains Team"

from local_domains.exceptions import (
    LocalDomainsError,
    NotFoundError,
    AlreadyExistsError,
    IOOperationError,
    NetworkError,
    ValidationError,
    gather_all,
    io_guard,
)
from local_domains.enums import (
    DomainStatus,
    ProxyFileState,
    OSFamily,
    LogLevel,
    DomainValidationErrorCode,
)
from local_domains.models import (
    Domain,
    HostEntry,
    HostsDiff,
    DirectoryDiff,
    StatusFlip,
    ProcessOutput,
    HOSTS_SIGNATURE,
)
from local_domains.domain_validator import (
    DomainValidator,
    DomainValidationResult,
    DomainValidationError,
)
from local_domains.config import (
    LoggingConfig,
    Settings,
    create_default_settings,
    resolve_config_path,
)
from local_domains.config_store import ConfigStore
from local_domains.file_store import FileStore, LocalFileStore
from local_domains.platforms import PlatformCommands, commands_for, detect_os_family
from local_domains.process import ProcessRunner, SubprocessRunner
from local_domains.audit_logger import AuditLogger, LogEntry
from local_domains.hosts import HostsReconciler
from local_domains.proxy import ProxyReconciler, COMMON_CONFIG_FILE
from local_domains.downloader import NginxDownloader
from local_domains.i18n import (
    get_message,
    validate_translations,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
)
from local_domains.orchestrator import (
    DomainOrchestrator,
    ChangeResult,
    RefreshResult,
    StartResult,
    StopResult,
    UninstallResult,
    DomainListing,
    initialize,
)
from local_domains.cli import main as cli_main, create_parser

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "LocalDomainsError",
    "NotFoundError",
    "AlreadyExistsError",
    "IOOperationError",
    "NetworkError",
    "ValidationError",
    "gather_all",
    "io_guard",
    # Enums
    "DomainStatus",
    "ProxyFileState",
    "OSFamily",
    "LogLevel",
    "DomainValidationErrorCode",
    # Models
    "Domain",
    "HostEntry",
    "HostsDiff",
    "DirectoryDiff",
    "StatusFlip",
    "ProcessOutput",
    "HOSTS_SIGNATURE",
    # Domain Validator
    "DomainValidator",
    "DomainValidationResult",
    "DomainValidationError",
    # Config
    "LoggingConfig",
    "Settings",
    "create_default_settings",
    "resolve_config_path",
    "ConfigStore",
    # Collaborators
    "FileStore",
    "LocalFileStore",
    "PlatformCommands",
    "commands_for",
    "detect_os_family",
    "ProcessRunner",
    "SubprocessRunner",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Reconcilers
    "HostsReconciler",
    "ProxyReconciler",
    "COMMON_CONFIG_FILE",
    # Downloader
    "NginxDownloader",
    # I18n
    "get_message",
    "validate_translations",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    # Orchestrator
    "DomainOrchestrator",
    "ChangeResult",
    "RefreshResult",
    "StartResult",
    "StopResult",
    "UninstallResult",
    "DomainListing",
    "initialize",
    # CLI
    "cli_main",
    "create_parser",
]

"""
Declared Configuration Store for the local-domains system.

Holds the ordered list of declared domains plus settings and persists them
as a single JSON document. Saves are whole-document overwrites; a crash
mid-write can leave the document corrupt, and no recovery is attempted.
"""

import json
from pathlib import Path
from typing import Optional, Union

from .config import LoggingConfig, Settings
from .enums import DomainStatus
from .exceptions import AlreadyExistsError, IOOperationError, NotFoundError
from .models import Domain


class ConfigStore:
    """
    Declared domains and settings.

    Domains keep their insertion order for display; `source` is unique.
    """

    def __init__(
        self,
        domains: list[Domain],
        settings: Settings,
        path: Optional[Path] = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            domains: Declared domains
            settings: Persisted settings
            path: Document this store was loaded from (default save target)
        """
        self._domains: list[Domain] = []
        self._settings = settings
        self._path = path
        for domain in domains:
            self.add_domain(domain)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ConfigStore":
        """
        Load the store from its JSON document.

        Raises:
            NotFoundError: If the document does not exist (run `init` first)
            IOOperationError: If the document cannot be read or parsed
        """
        path = Path(path)
        if not path.exists():
            raise NotFoundError(
                code="config_missing",
                message="Missing local config. Please run `init` to create one.",
                details={"file_path": str(path)},
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise IOOperationError(
                code="parse_error",
                message=f"Failed to parse the local config file: {e}",
                details={"file_path": str(path)},
            )
        except OSError as e:
            raise IOOperationError(
                code="io_error",
                message=f"Failed to load the local config file: {e}",
                details={"file_path": str(path)},
            )

        try:
            domains = [Domain.from_dict(item) for item in raw_data.get("domains", [])]
            settings = settings_from_dict(raw_data["settings"])
        except (KeyError, TypeError, AttributeError) as e:
            raise IOOperationError(
                code="parse_error",
                message=f"Malformed local config file: {e}",
                details={"file_path": str(path)},
            )

        return cls(domains=domains, settings=settings, path=path)

    @classmethod
    def create(
        cls,
        path: Union[str, Path],
        settings: Settings,
        force: bool = False,
    ) -> "ConfigStore":
        """
        Create and save a store with no domains.

        Raises:
            AlreadyExistsError: If the document exists and force is not set
            IOOperationError: If the document cannot be written
        """
        path = Path(path)
        if path.exists() and not force:
            raise AlreadyExistsError(
                code="config_exists",
                message="A local config already exists",
                details={"file_path": str(path)},
            )
        store = cls(domains=[], settings=settings, path=path)
        store.save()
        return store

    def save(self, path: Optional[Union[str, Path]] = None) -> None:
        """
        Overwrite the document with the current domains and settings.

        Raises:
            IOOperationError: If the file cannot be written
        """
        target = Path(path) if path is not None else self._path
        if target is None:
            raise IOOperationError(
                code="no_path",
                message="No path to save the local config to",
                details={},
            )

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise IOOperationError(
                code="io_error",
                message=f"Failed to save config: {e}",
                details={"file_path": str(target)},
            )

        self._path = target

    def to_dict(self) -> dict:
        return {
            "domains": [domain.to_dict() for domain in self._domains],
            "settings": settings_to_dict(self._settings),
        }

    def domain_by_name(self, source: str) -> Optional[Domain]:
        """Find a domain by exact (case-sensitive) source match."""
        for domain in self._domains:
            if domain.source == source:
                return domain
        return None

    def require_domain(self, source: str) -> Domain:
        """
        Find a domain or fail.

        Raises:
            NotFoundError: If no domain has this source
        """
        domain = self.domain_by_name(source)
        if domain is None:
            raise NotFoundError(
                code="domain_missing",
                message=f"Domain not found: {source}",
                details={"source": source},
            )
        return domain

    def add_domain(self, domain: Domain) -> None:
        """
        Declare a new domain.

        Raises:
            AlreadyExistsError: If a domain with the same source exists
        """
        if self.domain_by_name(domain.source) is not None:
            raise AlreadyExistsError(
                code="domain_exists",
                message=f"Domain already exists: {domain.source}",
                details={"source": domain.source},
            )
        self._domains.append(domain)

    def remove_domain(self, source: str) -> Domain:
        """Remove and return a declared domain (NotFoundError when absent)."""
        domain = self.require_domain(source)
        self._domains.remove(domain)
        return domain

    def set_status(self, source: str, status: DomainStatus) -> Domain:
        """Replace a domain with a copy carrying the new status; returns the copy."""
        current = self.require_domain(source)
        updated = current.with_status(status)
        index = self._domains.index(current)
        self._domains[index] = updated
        return updated

    def active_domains(self) -> list[Domain]:
        return [domain for domain in self._domains if domain.is_active]

    def inactive_domains(self) -> list[Domain]:
        return [domain for domain in self._domains if not domain.is_active]

    @property
    def domains(self) -> list[Domain]:
        """Declared domains in insertion order (a copy)."""
        return self._domains.copy()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def path(self) -> Optional[Path]:
        return self._path


def settings_to_dict(settings: Settings) -> dict:
    return {
        "host_file": settings.host_file,
        "proxy_install_path": settings.proxy_install_path,
        "proxy_alias_dir_name": settings.proxy_alias_dir_name,
        "auto_refresh": settings.auto_refresh,
        "backup_host_file": settings.backup_host_file,
        "backup_proxy_conf": settings.backup_proxy_conf,
        "proxy_binary": settings.proxy_binary,
        "language": settings.language,
        "logging": {
            "level": settings.logging.level,
            "output_format": settings.logging.output_format,
        },
    }


def settings_from_dict(data: dict) -> Settings:
    logging_data = data.get("logging") or {}
    return Settings(
        host_file=data["host_file"],
        proxy_install_path=data["proxy_install_path"],
        proxy_alias_dir_name=data.get("proxy_alias_dir_name", "local-domains"),
        auto_refresh=data.get("auto_refresh", True),
        backup_host_file=data.get("backup_host_file"),
        backup_proxy_conf=data.get("backup_proxy_conf"),
        proxy_binary=data.get("proxy_binary"),
        language=data.get("language", "en"),
        logging=LoggingConfig(
            level=logging_data.get("level", "warn"),
            output_format=logging_data.get("output_format", "text"),
        ),
    )

"""
Command orchestration for the local-domains system.

Each command loads nothing itself: it is handed a ConfigStore, drives the
Hosts Reconciler and Proxy Reconciler (fanning out independent I/O with
gather_all), and saves the store only after every external write has
succeeded. There is no rollback across the hosts file, the proxy directory
and the store; a failure partway leaves completed writes in place and the
store unsaved.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .audit_logger import AuditLogger
from .config import DEFAULT_PROXY_INSTALL_PATH, Settings
from .config_store import ConfigStore
from .domain_validator import DomainValidator
from .downloader import NginxDownloader
from .enums import DomainStatus, LogLevel
from .exceptions import AlreadyExistsError, gather_all
from .file_store import FileStore, LocalFileStore
from .hosts import HostsReconciler
from .models import DirectoryDiff, Domain, HostEntry, HostsDiff
from .platforms import PlatformCommands, commands_for
from .process import ProcessRunner, SubprocessRunner
from .proxy import ProxyReconciler


COMPONENT = "orchestrator"


@dataclass
class ChangeResult:
    """Outcome of a single-domain command (create, delete, enable, disable)."""

    domain: Domain
    hosts_changed: bool = False
    proxy_changed: bool = False
    already_applied: bool = False  # the store already had the requested status
    reloaded: Optional[bool] = None  # None when the server was not refreshed


@dataclass
class RefreshResult:
    """Outcome of reconciling both external stores."""

    hosts: HostsDiff = field(default_factory=HostsDiff)
    proxy: DirectoryDiff = field(default_factory=DirectoryDiff)
    reloaded: Optional[bool] = None


@dataclass
class StartResult:
    refresh: RefreshResult
    linked: bool  # False when nginx.conf already included the directory
    started: bool  # False when an instance was already running
    reloaded: Optional[bool] = None


@dataclass
class StopResult:
    hosts: HostsDiff
    unlinked: bool
    server_action: str  # 'stopped', 'reloaded' or 'not_running'


@dataclass
class UninstallResult:
    stop: StopResult
    install_removed: bool


@dataclass
class DomainListing:
    active: list[Domain]
    inactive: list[Domain]


class DomainOrchestrator:
    """
    Coordinates the store and both reconcilers for every user command.

    Collaborators default to the real file system, subprocess runner and
    command table for the current OS; tests inject fakes.
    """

    def __init__(
        self,
        store: ConfigStore,
        files: Optional[FileStore] = None,
        runner: Optional[ProcessRunner] = None,
        commands: Optional[PlatformCommands] = None,
        logger: Optional[AuditLogger] = None,
        validator: Optional[DomainValidator] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            store: Loaded declared configuration
            files: File access capability
            runner: Process control capability
            commands: nginx commands for the OS family
            logger: Optional audit logger
            validator: Validator for new domains
        """
        self._store = store
        self._files = files or LocalFileStore()
        self._runner = runner or SubprocessRunner()
        self._commands = commands or commands_for()
        self._logger = logger
        self._validator = validator or DomainValidator()

        settings = store.settings
        self._hosts = HostsReconciler(settings.host_file, self._files, logger)
        self._proxy = ProxyReconciler(settings, self._files, self._runner, self._commands, logger)
        self._hosts_backed_up = False
        self._proxy_conf_backed_up = False

    @property
    def store(self) -> ConfigStore:
        return self._store

    @property
    def settings(self) -> Settings:
        return self._store.settings

    @property
    def hosts(self) -> HostsReconciler:
        return self._hosts

    @property
    def proxy(self) -> ProxyReconciler:
        return self._proxy

    # --- Single-domain commands ---

    async def create(self, source: str, destination: str) -> ChangeResult:
        """
        Declare a new domain and write its hosts line and server file.

        Raises:
            ValidationError: If source or destination is malformed
            AlreadyExistsError: If the source is already declared
        """
        domain = self._validator.validate_or_raise(source, destination)
        if self._store.domain_by_name(domain.source) is not None:
            raise AlreadyExistsError(
                code="domain_exists",
                message=f"Domain already exists: {domain.source}",
                details={"source": domain.source},
            )

        await self._backup_hosts()
        await self._proxy.ensure_common_settings()
        hosts_changed, proxy_changed = await gather_all(
            self._hosts.add(HostEntry.from_domain(domain)),
            self._proxy.add_domain(domain),
        )
        reloaded = await self._refresh_server()

        self._store.add_domain(domain)
        self._store.save()
        self._log_info("Domain created", domain)
        return ChangeResult(domain, hosts_changed, proxy_changed, reloaded=reloaded)

    async def delete(self, source: str) -> ChangeResult:
        """Remove a domain's hosts line and server file, then forget it."""
        domain = self._require(source)

        await self._backup_hosts()
        hosts_changed, proxy_changed = await gather_all(
            self._hosts.remove(HostEntry.from_domain(domain)),
            self._proxy.remove_domain(domain),
        )
        reloaded = await self._refresh_server()

        self._store.remove_domain(domain.source)
        self._store.save()
        self._log_info("Domain deleted", domain)
        return ChangeResult(domain, hosts_changed, proxy_changed, reloaded=reloaded)

    async def enable(self, source: str) -> ChangeResult:
        """Restore a domain's hosts line and uncomment its server file."""
        domain = self._require(source)
        if domain.is_active:
            return ChangeResult(domain, already_applied=True)

        await self._backup_hosts()
        hosts_changed, proxy_changed = await gather_all(
            self._hosts.add(HostEntry.from_domain(domain)),
            self._proxy.enable_domain(domain),
        )
        reloaded = await self._refresh_server()

        updated = self._store.set_status(domain.source, DomainStatus.ACTIVE)
        self._store.save()
        self._log_info("Domain enabled", updated)
        return ChangeResult(updated, hosts_changed, proxy_changed, reloaded=reloaded)

    async def disable(self, source: str) -> ChangeResult:
        """Drop a domain's hosts line and comment out its server file."""
        domain = self._require(source)
        if not domain.is_active:
            return ChangeResult(domain, already_applied=True)

        await self._backup_hosts()
        hosts_changed, proxy_changed = await gather_all(
            self._hosts.remove(HostEntry.from_domain(domain)),
            self._proxy.disable_domain(domain),
        )
        reloaded = await self._refresh_server()

        updated = self._store.set_status(domain.source, DomainStatus.INACTIVE)
        self._store.save()
        self._log_info("Domain disabled", updated)
        return ChangeResult(updated, hosts_changed, proxy_changed, reloaded=reloaded)

    def list_domains(self, status: Optional[DomainStatus] = None) -> DomainListing:
        """Declared domains split by status, optionally only one side."""
        active = self._store.active_domains() if status != DomainStatus.INACTIVE else []
        inactive = self._store.inactive_domains() if status != DomainStatus.ACTIVE else []
        return DomainListing(active=active, inactive=inactive)

    # --- Whole-system commands ---

    async def refresh(self, reload_server: bool = True) -> RefreshResult:
        """Reconcile the hosts file and the proxy directory with the store."""
        domains = self._store.domains

        await self._backup_hosts()
        hosts_diff, proxy_diff = await gather_all(
            self._hosts.reconcile(domains),
            self._proxy.reconcile(domains),
        )
        reloaded = await self._refresh_server() if reload_server else None
        return RefreshResult(hosts=hosts_diff, proxy=proxy_diff, reloaded=reloaded)

    async def start(self) -> StartResult:
        """Reconcile everything, link nginx.conf and make sure nginx runs."""
        refresh = await self.refresh(reload_server=False)
        linked = await self.link(reload_server=False)

        if await self._proxy.is_running():
            reloaded = await self._refresh_server()
            return StartResult(refresh, linked, started=False, reloaded=reloaded)

        await self._proxy.start()
        return StartResult(refresh, linked, started=True)

    async def stop(self) -> StopResult:
        """
        Remove every managed hosts line, unlink nginx.conf and stop nginx.

        An nginx install we do not own is reloaded instead of stopped.
        """
        await self._backup_hosts()
        hosts_diff = await self._hosts.reconcile([])
        unlinked = await self.unlink(reload_server=False)

        if not await self._proxy.is_running():
            action = "not_running"
        elif self._proxy.is_owned_install():
            await self._proxy.stop()
            action = "stopped"
        else:
            await self._proxy.reload()
            action = "reloaded"

        self._log(LogLevel.INFO, "Stopped", {"server_action": action})
        return StopResult(hosts=hosts_diff, unlinked=unlinked, server_action=action)

    async def kill(self) -> bool:
        return await self._proxy.kill()

    async def link(self, reload_server: bool = True) -> bool:
        """Include the managed directory from nginx.conf."""
        await self._backup_proxy_conf()
        await self._proxy.ensure_common_settings()
        linked = await self._proxy.link()
        if linked and reload_server:
            await self._refresh_server()
        return linked

    async def unlink(self, reload_server: bool = True) -> bool:
        await self._backup_proxy_conf()
        unlinked = await self._proxy.unlink()
        if unlinked and reload_server:
            await self._refresh_server()
        return unlinked

    async def uninstall(self) -> UninstallResult:
        """Stop everything, then delete the nginx install if we downloaded it."""
        stopped = await self.stop()
        removed = await self._proxy.remove_install()
        return UninstallResult(stop=stopped, install_removed=removed)

    async def download(
        self,
        downloader: Optional[NginxDownloader] = None,
        output_path: Union[str, Path] = DEFAULT_PROXY_INSTALL_PATH,
    ) -> str:
        """
        Download nginx into the managed install path and point the store at it.

        Returns:
            The installed version
        """
        downloader = downloader or NginxDownloader(self._commands.archive_suffix, logger=self._logger)
        async with downloader:
            version = await downloader.download(output_path)

        self.settings.proxy_install_path = str(output_path)
        self._proxy = ProxyReconciler(
            self.settings, self._files, self._runner, self._commands, self._logger
        )
        self._store.save()
        self._log(LogLevel.INFO, "nginx downloaded", {"version": version, "path": str(output_path)})
        return version

    # --- Helpers ---

    async def _refresh_server(self) -> Optional[bool]:
        """
        Reload nginx when auto_refresh is on and it is running.

        Returns:
            True once reloaded, None when skipped
        """
        if not self.settings.auto_refresh:
            return None
        if not await self._proxy.is_running():
            self._log(LogLevel.DEBUG, "Server not running, skipping reload", {})
            return None
        return await self._proxy.reload()

    def _require(self, source: str) -> Domain:
        """Look up a declared domain by the same canonical form create stores."""
        return self._store.require_domain(self._validator.normalize_to_canonical(source.strip()))

    async def _backup_hosts(self) -> None:
        """Copy the hosts file once per command, before the first mutation."""
        if self._hosts_backed_up or not self.settings.backup_host_file:
            return
        await self._hosts.backup(self.settings.backup_host_file)
        self._hosts_backed_up = True

    async def _backup_proxy_conf(self) -> None:
        if self._proxy_conf_backed_up or not self.settings.backup_proxy_conf:
            return
        await self._proxy.backup_main_config(self.settings.backup_proxy_conf)
        self._proxy_conf_backed_up = True

    def _log_info(self, message: str, domain: Domain) -> None:
        self._log(LogLevel.INFO, message, domain.to_dict())

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, COMPONENT, message, data)


def initialize(
    path: Union[str, Path],
    settings: Settings,
    force: bool = False,
    logger: Optional[AuditLogger] = None,
) -> ConfigStore:
    """
    Create the declared configuration document with no domains.

    Raises:
        AlreadyExistsError: If the document exists and force is not set
    """
    store = ConfigStore.create(path, settings, force=force)
    if logger:
        logger.log(
            LogLevel.INFO,
            COMPONENT,
            "Local config created",
            {"path": str(path), "proxy_install_path": settings.proxy_install_path},
        )
    return store

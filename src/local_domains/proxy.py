"""
Proxy Reconciler for the local-domains system.

Manages one nginx server file per domain in the managed directory
(`<install>/conf/<alias>/`), the shared settings file, the `include` line in
the main nginx.conf, and the nginx process lifecycle.

A domain file is disabled by prefixing every line with a comment marker and
enabled when no line carries one. Files with a mix of both are left alone by
enable_domain/disable_domain and normalised by reconcile.
"""

import re
from pathlib import Path
from typing import Iterable, Optional, Union

from .audit_logger import AuditLogger
from .config import DEFAULT_PROXY_INSTALL_PATH, Settings
from .enums import LogLevel, ProxyFileState
from .exceptions import IOOperationError, ValidationError, gather_all, io_guard
from .file_store import FileStore
from .models import DirectoryDiff, Domain, ProcessOutput, StatusFlip
from .platforms import PlatformCommands
from .process import ProcessRunner


COMPONENT = "proxy"

COMMENT_MARKER = "#"

COMMON_CONFIG_FILE = "local-domains-common.conf"

COMMON_CONFIG = "\n".join([
    "proxy_http_version 1.1;",
    "proxy_set_header Upgrade $http_upgrade;",
    "proxy_set_header Connection 'upgrade';",
    "proxy_set_header Host $host;",
    "proxy_cache_bypass $http_upgrade;",
])

# Opening line of the top-level http block in nginx.conf
HTTP_BLOCK_PATTERN = re.compile(r"^http\s*\{[^\r\n]*", re.MULTILINE)

INCLUDE_INDENT = "    "


def server_block(domain: Domain, alias_dir_name: str) -> str:
    """Generated nginx server block routing `domain.source` to its destination."""
    return "\n".join([
        "server {",
        "  listen 80;",
        f"  server_name {domain.source};",
        "  location / {",
        f"    proxy_pass http://{domain.destination};",
        f"    include {alias_dir_name}/{COMMON_CONFIG_FILE};",
        "  }",
        "}",
    ])


def classify_lines(lines: list[str]) -> ProxyFileState:
    """Structural enabled/disabled state of a file's lines."""
    commented = [line.startswith(COMMENT_MARKER) for line in lines]
    if all(commented):
        return ProxyFileState.DISABLED
    if not any(commented):
        return ProxyFileState.ENABLED
    return ProxyFileState.MIXED


def comment_out(line: str) -> str:
    if line.startswith(COMMENT_MARKER):
        return line
    return COMMENT_MARKER + line


def uncomment(line: str) -> str:
    if line.startswith(COMMENT_MARKER):
        return line[len(COMMENT_MARKER):]
    return line


class ProxyReconciler:
    """
    Keeps the managed nginx directory converged with the declared domains.

    File access, process control and per-OS commands are injected, so the
    reconciliation logic itself never touches the OS directly.
    """

    def __init__(
        self,
        settings: Settings,
        files: FileStore,
        runner: ProcessRunner,
        commands: PlatformCommands,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            settings: Install path, alias directory name and binary override
            files: File access capability
            runner: Process control capability
            commands: nginx commands for the current OS family
            logger: Optional audit logger
        """
        self._settings = settings
        self._files = files
        self._runner = runner
        self._commands = commands
        self._logger = logger

        self._install_path = settings.proxy_install_path
        self._domains_dir = settings.proxy_domains_dir
        self._main_conf = settings.proxy_main_conf
        self._include_line = f"include {settings.proxy_alias_dir_name}/*.conf;"

    @property
    def domains_dir(self) -> Path:
        return self._domains_dir

    @property
    def include_line(self) -> str:
        return self._include_line

    @property
    def executable(self) -> str:
        return self._commands.executable(self._install_path, self._settings.proxy_binary)

    def domain_file_path(self, domain: Domain) -> Path:
        return self._domains_dir / domain.config_file_name

    # --- Per-domain files ---

    async def exists(self, domain: Domain) -> bool:
        async with io_guard("check for a server file", file=domain.config_file_name):
            return await self._files.exists(self.domain_file_path(domain))

    async def add_domain(self, domain: Domain) -> bool:
        """
        Write the generated server block for a domain.

        Never overwrites an existing file, so hand edits survive.

        Returns:
            False if the file already exists, True once written
        """
        path = self.domain_file_path(domain)
        async with io_guard("create a server file for a domain", file=domain.config_file_name):
            if await self._files.exists(path):
                self._log(LogLevel.DEBUG, "Server file already exists", domain.config_file_name)
                return False
            await self._files.write_text(
                path, server_block(domain, self._settings.proxy_alias_dir_name)
            )

        self._log(LogLevel.INFO, "Server file created", domain.config_file_name)
        return True

    async def remove_domain(self, domain: Domain) -> bool:
        """Delete a domain's server file; False if it did not exist."""
        path = self.domain_file_path(domain)
        async with io_guard("delete the server file for a domain", file=domain.config_file_name):
            if not await self._files.exists(path):
                self._log(LogLevel.DEBUG, "Server file already absent", domain.config_file_name)
                return False
            await self._files.delete(path)

        self._log(LogLevel.INFO, "Server file deleted", domain.config_file_name)
        return True

    async def file_state(self, domain: Domain) -> ProxyFileState:
        path = self.domain_file_path(domain)
        async with io_guard("read the server file for a domain", file=domain.config_file_name):
            if not await self._files.exists(path):
                return ProxyFileState.MISSING
            return classify_lines(await self._files.read_lines(path))

    async def disable_domain(self, domain: Domain, force: bool = False) -> bool:
        """
        Comment out a domain's server file.

        Args:
            domain: Domain whose file to disable
            force: Normalise a mixed file by commenting its uncommented lines

        Returns:
            False if already disabled (or mixed without force), True once rewritten
        """
        return await self._set_file_state(domain, ProxyFileState.DISABLED, force)

    async def enable_domain(self, domain: Domain, force: bool = False) -> bool:
        """
        Uncomment a domain's server file, stripping one marker per line.

        Args:
            domain: Domain whose file to enable
            force: Normalise a mixed file by uncommenting its commented lines

        Returns:
            False if already enabled (or mixed without force), True once rewritten
        """
        return await self._set_file_state(domain, ProxyFileState.ENABLED, force)

    async def _set_file_state(
        self,
        domain: Domain,
        target: ProxyFileState,
        force: bool,
    ) -> bool:
        verb = "enable" if target == ProxyFileState.ENABLED else "disable"
        path = self.domain_file_path(domain)
        name = domain.config_file_name

        async with io_guard(f"edit a server file to {verb} a domain", file=name):
            lines = await self._files.read_lines(path)
            state = classify_lines(lines)

            if state == target:
                self._log(LogLevel.DEBUG, f"Server file already {target.value}", name)
                return False
            if state == ProxyFileState.MIXED and not force:
                self._log(
                    LogLevel.WARN,
                    f"Server file has both commented and uncommented lines, not {verb}d",
                    name,
                )
                return False

            transform = uncomment if target == ProxyFileState.ENABLED else comment_out
            await self._files.write_lines(path, [transform(line) for line in lines])

        self._log(LogLevel.INFO, f"Server file {verb}d", name, {"previous_state": state.value})
        return True

    # --- Managed directory ---

    async def ensure_common_settings(self) -> bool:
        """Write the shared proxy settings file; False if it already existed."""
        path = self._domains_dir / COMMON_CONFIG_FILE
        async with io_guard("write the common server config", file=COMMON_CONFIG_FILE):
            if await self._files.exists(path):
                return False
            await self._files.ensure_dir(self._domains_dir)
            await self._files.write_text(path, COMMON_CONFIG)

        self._log(LogLevel.INFO, "Common server config created", COMMON_CONFIG_FILE)
        return True

    async def reconcile(self, domains: Iterable[Domain]) -> DirectoryDiff:
        """
        Converge the managed directory with the declared domains.

        Creates missing files, deletes orphaned ones and forces every file's
        structural state to match its domain's status. Per-domain work runs
        concurrently and is joined before returning.

        Args:
            domains: All declared domains

        Returns:
            The files added and removed and the state flips applied
        """
        domains = list(domains)
        await self.ensure_common_settings()

        async with io_guard("list the server files", path=str(self._domains_dir)):
            listing = await self._files.list_dir(self._domains_dir, excluding=[COMMON_CONFIG_FILE])

        known = {domain.config_file_name for domain in domains}
        missing = [domain for domain in domains if domain.config_file_name not in listing]
        orphans = [name for name in listing if name not in known]

        await gather_all(
            *(self.add_domain(domain) for domain in missing),
            *(self._delete_orphan(name) for name in orphans),
        )

        flips = await gather_all(*(self._align(domain) for domain in domains))

        diff = DirectoryDiff(
            added_files=[domain.config_file_name for domain in missing],
            removed_files=orphans,
            status_flips=[flip for flip in flips if flip is not None],
        )
        if diff.changed:
            self._log(
                LogLevel.INFO,
                "Server files updated",
                data={
                    "added": diff.added_files,
                    "removed": diff.removed_files,
                    "flipped": [flip.file_name for flip in diff.status_flips],
                },
            )
        else:
            self._log(LogLevel.DEBUG, "Server files already up to date")
        return diff

    async def _delete_orphan(self, name: str) -> None:
        async with io_guard("delete an orphaned server file", file=name):
            await self._files.delete(self._domains_dir / name)
        self._log(LogLevel.INFO, "Orphaned server file deleted", name)

    async def _align(self, domain: Domain) -> Optional[StatusFlip]:
        target = ProxyFileState.ENABLED if domain.is_active else ProxyFileState.DISABLED
        before = await self.file_state(domain)
        if before == target:
            return None
        if before == ProxyFileState.MISSING:
            raise IOOperationError(
                code="io_error",
                message=f"Server file disappeared during reconciliation: {domain.config_file_name}",
                details={"file": domain.config_file_name},
            )
        await self._set_file_state(domain, target, force=True)
        return StatusFlip(file_name=domain.config_file_name, before=before, after=target)

    # --- Main nginx.conf ---

    async def link(self) -> bool:
        """
        Include the managed directory from the main nginx.conf.

        Returns:
            False if the include line is already present, True once inserted

        Raises:
            ValidationError: If nginx.conf has no top-level http block
        """
        path = str(self._main_conf)
        async with io_guard("update the main server config file", path=path):
            text = await self._files.read_text(self._main_conf)
            if self._is_linked(text):
                return False

            match = HTTP_BLOCK_PATTERN.search(text)
            if match is None:
                raise ValidationError(
                    code="http_block_missing",
                    message="The main server config has no top-level http block",
                    details={"path": path},
                )
            newline = "\r\n" if text[match.end():].startswith("\r\n") else "\n"
            insert = f"{newline}{INCLUDE_INDENT}{self._include_line}"
            await self._files.write_text(
                self._main_conf, text[:match.end()] + insert + text[match.end():]
            )

        self._log(LogLevel.INFO, "Server linked", data={"include": self._include_line})
        return True

    async def unlink(self) -> bool:
        """Remove the include line from the main nginx.conf; False if absent."""
        path = str(self._main_conf)
        async with io_guard("remove the include line from the main server config", path=path):
            lines = (await self._files.read_text(self._main_conf)).split("\n")
            kept = [line for line in lines if line.strip() != self._include_line]
            if len(kept) == len(lines):
                return False
            await self._files.write_text(self._main_conf, "\n".join(kept))

        self._log(LogLevel.INFO, "Server unlinked", data={"include": self._include_line})
        return True

    async def is_linked(self) -> bool:
        async with io_guard("read the main server config", path=str(self._main_conf)):
            return self._is_linked(await self._files.read_text(self._main_conf))

    def _is_linked(self, text: str) -> bool:
        return any(line.strip() == self._include_line for line in text.split("\n"))

    async def backup_main_config(self, destination: Union[str, Path]) -> None:
        async with io_guard("back up the main server config", path=str(self._main_conf)):
            await self._files.copy(self._main_conf, destination)
        self._log(LogLevel.INFO, "Main server config backed up", data={"destination": str(destination)})

    # --- Install ---

    def is_owned_install(self, default_path: Union[str, Path] = DEFAULT_PROXY_INSTALL_PATH) -> bool:
        """Whether the configured install is the one `download` manages."""
        configured = Path(self._install_path).expanduser().resolve()
        return configured == Path(default_path).expanduser().resolve()

    async def remove_install(self, default_path: Union[str, Path] = DEFAULT_PROXY_INSTALL_PATH) -> bool:
        """Delete the install directory if it is ours; False for foreign installs."""
        if not self.is_owned_install(default_path):
            self._log(LogLevel.DEBUG, "Install is not owned, leaving it in place")
            return False
        async with io_guard("delete the server install", path=self._install_path):
            if not await self._files.exists(self._install_path):
                return False
            await self._files.remove_tree(self._install_path)

        self._log(LogLevel.INFO, "Server install deleted", data={"path": self._install_path})
        return True

    # --- Process lifecycle ---

    async def start(self) -> None:
        """Launch nginx detached, with the install path as working directory."""
        async with io_guard("start the server", executable=self.executable):
            await self._runner.spawn_detached(
                self.executable,
                self._commands.start_args(self._install_path),
                cwd=self._install_path,
            )
        self._log(LogLevel.INFO, "Server started", data={"executable": self.executable})

    async def stop(self) -> None:
        """Ask nginx to shut down gracefully (`-s quit`)."""
        await self._signal("quit", "stop the server")
        self._log(LogLevel.INFO, "Server stopped")

    async def reload(self) -> bool:
        """
        Make nginx pick up the current configuration.

        A running instance gets `-s reload`; otherwise a new instance is
        started, which reads the configuration fresh.

        Returns:
            True if a running instance was reloaded, False if one was started

        Raises:
            IOOperationError: If nginx rejects the reload
        """
        if not await self.is_running():
            await self.start()
            return False
        await self._signal("reload", "reload the server")
        self._log(LogLevel.INFO, "Server reloaded")
        return True

    async def is_running(self) -> bool:
        """Single process-list query for the nginx binary."""
        async with io_guard("query running processes"):
            listing = await self._runner.query_running_processes(
                self._commands.process_list_command
            )
        return self._commands.is_listed(listing)

    async def kill(self) -> bool:
        """Force-terminate every nginx instance; False if none was running."""
        if not await self.is_running():
            self._log(LogLevel.DEBUG, "No running server to kill")
            return False

        command, *args = self._commands.kill_command
        async with io_guard("kill the server", command=command):
            output = await self._runner.run_and_wait(command, args)
        self._check(output, "kill the server")

        self._log(LogLevel.INFO, "Server killed")
        return True

    async def _signal(self, signal: str, operation: str) -> ProcessOutput:
        async with io_guard(operation, executable=self.executable):
            output = await self._runner.run_and_wait(
                self.executable,
                self._commands.signal_args(self._install_path, signal),
                cwd=self._install_path,
            )
        self._check(output, operation)
        return output

    def _check(self, output: ProcessOutput, operation: str) -> None:
        if output.ok:
            return
        error = IOOperationError(
            code="process_failed",
            message=f"Failed to {operation}: exit code {output.returncode}",
            details={
                "operation": operation,
                "returncode": output.returncode,
                "stderr": output.stderr.strip(),
            },
        )
        if self._logger:
            self._logger.log_error(COMPONENT, f"Failed to {operation}", error)
        raise error

    def _log(
        self,
        level: LogLevel,
        message: str,
        file_name: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> None:
        if self._logger is None:
            return
        payload = dict(data or {})
        if file_name is not None:
            payload["file"] = file_name
        self._logger.log(level, COMPONENT, message, payload)

"""
Command-line interface for the local-domains system.

This module provides the main CLI entry point with commands for:
- create/delete/enable/disable: manage a single domain
- refresh/start/stop/kill/link/unlink: converge and control nginx
- list: show declared domains
- init/uninstall/download: set up and tear down
"""

import argparse
import asyncio
import sys
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import create_default_settings, resolve_config_path
from .config_store import ConfigStore
from .enums import DomainStatus
from .exceptions import (
    AlreadyExistsError,
    IOOperationError,
    LocalDomainsError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from .i18n import SUPPORTED_LANGUAGES, get_message
from .orchestrator import (
    ChangeResult,
    DomainOrchestrator,
    RefreshResult,
    StopResult,
    initialize,
)
from .platforms import detect_os_family


ERROR_MESSAGE_KEYS = {
    NotFoundError: "error.not_found",
    AlreadyExistsError: "error.already_exists",
    IOOperationError: "error.io",
    NetworkError: "error.network",
    ValidationError: "error.validation",
}


def error_message(error: LocalDomainsError, language: Optional[str]) -> str:
    """Translated one-line description of an error."""
    if error.code == "config_missing":
        return get_message("error.config_missing", language)
    key = ERROR_MESSAGE_KEYS.get(type(error), "error.unknown")
    return get_message(key, language, message=error.message)


def load_store(args: argparse.Namespace) -> ConfigStore:
    return ConfigStore.load(resolve_config_path(args.config))


def language_for(args: argparse.Namespace, store: Optional[ConfigStore] = None) -> Optional[str]:
    """
    Resolve the output language: --language, then the stored setting.

    The result is remembered on args so that error output after the store
    has loaded uses the same language.
    """
    if not args.language and store is not None:
        args.language = store.settings.language
    return args.language


def build_logger(args: argparse.Namespace, store: ConfigStore) -> AuditLogger:
    logging_config = store.settings.logging
    return AuditLogger.from_config(
        level=logging_config.level,
        output_format=logging_config.output_format,
        verbose=args.verbose,
    )


def build_orchestrator(args: argparse.Namespace, store: ConfigStore) -> DomainOrchestrator:
    return DomainOrchestrator(store, logger=build_logger(args, store))


def print_change(result: ChangeResult, language: Optional[str]) -> None:
    print(get_message(
        "cli.hosts_updated" if result.hosts_changed else "cli.hosts_unchanged", language
    ))
    print(get_message(
        "cli.server_file_updated" if result.proxy_changed else "cli.server_file_unchanged",
        language,
    ))
    if result.reloaded:
        print(get_message("cli.server_reloaded", language))


def print_refresh(result: RefreshResult, language: Optional[str]) -> None:
    if result.hosts.changed:
        for entry in result.hosts.added:
            print(f"  {get_message('cli.hosts_added', language, entry=entry.pretty())}")
        for entry in result.hosts.removed:
            print(f"  {get_message('cli.hosts_removed', language, entry=entry.pretty())}")
    else:
        print(get_message("cli.hosts_up_to_date", language))

    proxy = result.proxy
    if proxy.changed:
        for name in proxy.added_files:
            print(f"  {get_message('cli.file_added', language, file=name)}")
        for name in proxy.removed_files:
            print(f"  {get_message('cli.file_removed', language, file=name)}")
        for flip in proxy.status_flips:
            message = get_message(
                "cli.file_flipped",
                language,
                file=flip.file_name,
                before=flip.before.value,
                after=flip.after.value,
            )
            print(f"  {message}")
    else:
        print(get_message("cli.server_files_up_to_date", language))

    if result.reloaded:
        print(get_message("cli.server_reloaded", language))


def print_stop(result: StopResult, language: Optional[str]) -> None:
    for entry in result.hosts.removed:
        print(f"  {get_message('cli.hosts_removed', language, entry=entry.pretty())}")
    print(get_message(
        "cli.server_unlinked" if result.unlinked else "cli.server_not_linked", language
    ))
    action_keys = {
        "stopped": "cli.server_stopped",
        "reloaded": "cli.server_restarted_not_ours",
        "not_running": "cli.server_already_stopped",
    }
    print(get_message(action_keys[result.server_action], language))


async def run_create(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    result = await build_orchestrator(args, store).create(args.source, args.destination)
    print_change(result, language)
    print(get_message(
        "cli.domain_created",
        language,
        source=result.domain.source,
        destination=result.domain.destination,
    ))
    return 0


async def run_delete(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    result = await build_orchestrator(args, store).delete(args.source)
    print_change(result, language)
    print(get_message("cli.domain_deleted", language, source=result.domain.source))
    return 0


async def run_enable(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    result = await build_orchestrator(args, store).enable(args.source)
    if result.already_applied:
        print(get_message("cli.already_enabled", language, source=result.domain.source))
        return 0
    print_change(result, language)
    print(get_message("cli.domain_enabled", language, source=result.domain.source))
    return 0


async def run_disable(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    result = await build_orchestrator(args, store).disable(args.source)
    if result.already_applied:
        print(get_message("cli.already_disabled", language, source=result.domain.source))
        return 0
    print_change(result, language)
    print(get_message("cli.domain_disabled", language, source=result.domain.source))
    return 0


async def run_refresh(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    result = await build_orchestrator(args, store).refresh()
    print_refresh(result, language)
    return 0


async def run_start(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    result = await build_orchestrator(args, store).start()
    print_refresh(result.refresh, language)
    print(get_message(
        "cli.server_linked" if result.linked else "cli.server_already_linked", language
    ))
    if result.started:
        print(get_message("cli.server_started", language))
    else:
        print(get_message("cli.server_already_running", language))
        if result.reloaded:
            print(get_message("cli.server_reloaded", language))
    return 0


async def run_stop(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    result = await build_orchestrator(args, store).stop()
    print_stop(result, language)
    return 0


async def run_kill(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    killed = await build_orchestrator(args, store).kill()
    print(get_message("cli.servers_killed" if killed else "cli.no_servers_found", language))
    return 0


async def run_link(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    linked = await build_orchestrator(args, store).link()
    print(get_message("cli.server_linked" if linked else "cli.server_already_linked", language))
    return 0


async def run_unlink(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    unlinked = await build_orchestrator(args, store).unlink()
    print(get_message("cli.server_unlinked" if unlinked else "cli.server_not_linked", language))
    return 0


async def run_uninstall(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    result = await build_orchestrator(args, store).uninstall()
    print_stop(result.stop, language)
    print(get_message(
        "cli.install_removed" if result.install_removed else "cli.install_kept", language
    ))
    return 0


async def run_download(args: argparse.Namespace, store: ConfigStore, language: Optional[str]) -> int:
    orchestrator = build_orchestrator(args, store)
    version = await orchestrator.download()
    print(get_message(
        "cli.downloaded",
        language,
        version=version,
        path=orchestrator.settings.proxy_install_path,
    ))
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """Handle the 'list' command."""
    store = load_store(args)
    language = language_for(args, store)
    status = DomainStatus(args.status) if args.status else None
    listing = DomainOrchestrator(store).list_domains(status)

    sections = []
    if status != DomainStatus.INACTIVE:
        sections.append(("cli.list_active", listing.active))
    if status != DomainStatus.ACTIVE:
        sections.append(("cli.list_inactive", listing.inactive))

    for title_key, domains in sections:
        print(get_message(title_key, language))
        if not domains:
            print(f"  {get_message('cli.list_empty', language)}")
        for domain in domains:
            print(f"  {domain.source} => {domain.destination}")
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Handle the 'init' command."""
    path = resolve_config_path(args.config)
    settings = create_default_settings(
        detect_os_family(),
        proxy_install_path=args.proxy_path,
        language=args.language or "en",
    )
    if args.hosts_file:
        settings.host_file = args.hosts_file
    if args.alias:
        settings.proxy_alias_dir_name = args.alias
    if args.no_auto_refresh:
        settings.auto_refresh = False
    if args.no_backup:
        settings.backup_host_file = None
        settings.backup_proxy_conf = None

    initialize(path, settings, force=args.force)
    print(get_message("cli.config_created", settings.language, path=str(path)))
    return 0


STORE_COMMANDS = {
    "create": run_create,
    "delete": run_delete,
    "enable": run_enable,
    "disable": run_disable,
    "refresh": run_refresh,
    "start": run_start,
    "stop": run_stop,
    "kill": run_kill,
    "link": run_link,
    "unlink": run_unlink,
    "uninstall": run_uninstall,
    "download": run_download,
}


def cmd_store_command(args: argparse.Namespace) -> int:
    """Handle every command that loads the store and runs one async operation."""
    store = load_store(args)
    runner = STORE_COMMANDS[args.command]
    return asyncio.run(runner(args, store, language_for(args, store)))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="local-domains",
        description="Route local hostnames to local ports through the hosts file and nginx",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to the local config (default: $LOCAL_DOMAINS_CONFIG or ~/.local_domains/config.json)",
    )
    parser.add_argument(
        "--language", "-l",
        choices=sorted(SUPPORTED_LANGUAGES),
        help="Output language (default: the one stored in the local config)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every step to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_cmd_parser = subparsers.add_parser("create", help="Create a new domain")
    create_cmd_parser.add_argument("source", help="Hostname to route from (e.g., api.test)")
    create_cmd_parser.add_argument("destination", help="ip:port to route to (e.g., 127.0.0.1:5001)")
    create_cmd_parser.set_defaults(func=cmd_store_command)

    for name, help_text in (
        ("delete", "Delete a domain"),
        ("enable", "Enable a disabled domain"),
        ("disable", "Disable a domain without deleting it"),
    ):
        domain_parser = subparsers.add_parser(name, help=help_text)
        domain_parser.add_argument("source", help="Hostname of the domain")
        domain_parser.set_defaults(func=cmd_store_command)

    for name, help_text in (
        ("refresh", "Bring the hosts file and server files in line with the local config"),
        ("start", "Refresh, link the server and start it"),
        ("stop", "Remove hosts entries, unlink and stop the server"),
        ("kill", "Force-terminate every running server"),
        ("link", "Include the domain files from the main server config"),
        ("unlink", "Remove the include line from the main server config"),
        ("uninstall", "Stop everything and delete a downloaded server"),
        ("download", "Download the latest nginx release into the managed path"),
    ):
        subparsers.add_parser(name, help=help_text).set_defaults(func=cmd_store_command)

    list_parser = subparsers.add_parser("list", help="List declared domains")
    list_parser.add_argument(
        "--status", "-s",
        choices=[status.value for status in DomainStatus],
        help="Only show domains with this status",
    )
    list_parser.set_defaults(func=cmd_list)

    init_parser = subparsers.add_parser("init", help="Create the local config")
    init_parser.add_argument(
        "--proxy-path", "-p",
        help="Existing nginx installation to use (default: the managed download path)",
    )
    init_parser.add_argument("--hosts-file", help="Hosts file to manage (default: the OS hosts file)")
    init_parser.add_argument("--alias", help="Name of the managed directory under conf/")
    init_parser.add_argument(
        "--no-auto-refresh",
        action="store_true",
        help="Do not reload the server after every change",
    )
    init_parser.add_argument(
        "--no-backup",
        action="store_true",
        help="Do not back up the hosts file and nginx.conf before editing them",
    )
    init_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite an existing local config",
    )
    init_parser.set_defaults(func=cmd_init)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except LocalDomainsError as e:
        print(error_message(e, args.language), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

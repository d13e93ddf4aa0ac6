"""
Internationalization (i18n) module for the local-domains system.

Provides translations for all user-facing console messages in English (en)
and German (de).
"""

from typing import Optional


# Supported languages
SUPPORTED_LANGUAGES = frozenset({"de", "en"})
DEFAULT_LANGUAGE = "en"


# Translation dictionary with all messages
# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Errors (printed on stderr, exit code 1)
    "error.not_found": {
        "de": "Nicht gefunden: {message}",
        "en": "Not found: {message}",
    },
    "error.already_exists": {
        "de": "Existiert bereits: {message}",
        "en": "Already exists: {message}",
    },
    "error.io": {
        "de": "Ein-/Ausgabefehler: {message}",
        "en": "I/O error: {message}",
    },
    "error.network": {
        "de": "Netzwerkfehler: {message}",
        "en": "Network error: {message}",
    },
    "error.validation": {
        "de": "Ungültige Eingabe: {message}",
        "en": "Invalid input: {message}",
    },
    "error.unknown": {
        "de": "Fehler: {message}",
        "en": "Error: {message}",
    },
    "error.config_missing": {
        "de": "Keine lokale Konfiguration gefunden. Bitte zuerst `init` ausführen.",
        "en": "Missing local config. Please run `init` to create one.",
    },

    # Single-domain commands
    "cli.domain_created": {
        "de": "Domain erstellt: {source} => {destination}",
        "en": "Domain created: {source} => {destination}",
    },
    "cli.domain_deleted": {
        "de": "Domain gelöscht: {source}",
        "en": "Domain deleted: {source}",
    },
    "cli.domain_enabled": {
        "de": "Domain aktiviert: {source}",
        "en": "Domain enabled: {source}",
    },
    "cli.domain_disabled": {
        "de": "Domain deaktiviert: {source}",
        "en": "Domain disabled: {source}",
    },
    "cli.already_enabled": {
        "de": "Domain ist bereits aktiviert: {source}",
        "en": "Domain already enabled: {source}",
    },
    "cli.already_disabled": {
        "de": "Domain ist bereits deaktiviert: {source}",
        "en": "Domain already disabled: {source}",
    },
    "cli.hosts_updated": {
        "de": "Hosts-Datei aktualisiert",
        "en": "Hosts file updated",
    },
    "cli.hosts_unchanged": {
        "de": "Hosts-Datei war bereits aktuell",
        "en": "Hosts file was already up to date",
    },
    "cli.server_file_updated": {
        "de": "Server-Datei aktualisiert",
        "en": "Server file updated",
    },
    "cli.server_file_unchanged": {
        "de": "Server-Datei war bereits aktuell",
        "en": "Server file was already up to date",
    },
    "cli.server_reloaded": {
        "de": "Server neu geladen",
        "en": "Server refreshed",
    },

    # Refresh
    "cli.hosts_added": {
        "de": "hinzugefügt {entry}",
        "en": "added {entry}",
    },
    "cli.hosts_removed": {
        "de": "entfernt {entry}",
        "en": "removed {entry}",
    },
    "cli.hosts_up_to_date": {
        "de": "Hosts-Datei ist aktuell",
        "en": "Hosts file already up to date",
    },
    "cli.file_added": {
        "de": "hinzugefügt {file}",
        "en": "added {file}",
    },
    "cli.file_removed": {
        "de": "entfernt {file}",
        "en": "removed {file}",
    },
    "cli.file_flipped": {
        "de": "umgestellt {file}: {before} -> {after}",
        "en": "switched {file}: {before} -> {after}",
    },
    "cli.server_files_up_to_date": {
        "de": "Server-Dateien sind aktuell",
        "en": "Server files already up to date",
    },

    # Start / stop / kill
    "cli.server_linked": {
        "de": "Server ist jetzt verknüpft",
        "en": "Server is now linked",
    },
    "cli.server_already_linked": {
        "de": "Server ist bereits verknüpft",
        "en": "Server is already linked",
    },
    "cli.server_unlinked": {
        "de": "Server-Verknüpfung entfernt",
        "en": "Server unlinked from config files",
    },
    "cli.server_not_linked": {
        "de": "Server war nicht verknüpft",
        "en": "Server was not linked with config files",
    },
    "cli.server_started": {
        "de": "Server gestartet",
        "en": "Server started",
    },
    "cli.server_already_running": {
        "de": "Server läuft bereits",
        "en": "Server is already running",
    },
    "cli.server_stopped": {
        "de": "Server gestoppt",
        "en": "Server stopped",
    },
    "cli.server_restarted_not_ours": {
        "de": "Server neu geladen statt gestoppt, da die nginx-Installation nicht von local-domains stammt",
        "en": "Server reloaded instead of stopped since we don't own the nginx instance",
    },
    "cli.server_already_stopped": {
        "de": "Server ist bereits gestoppt",
        "en": "Server already stopped",
    },
    "cli.servers_killed": {
        "de": "Laufende Server beendet",
        "en": "Active servers killed",
    },
    "cli.no_servers_found": {
        "de": "Keine laufenden Server gefunden",
        "en": "No active servers found",
    },

    # List
    "cli.list_active": {
        "de": "Aktiv",
        "en": "Active",
    },
    "cli.list_inactive": {
        "de": "Inaktiv",
        "en": "Inactive",
    },
    "cli.list_empty": {
        "de": "Keine Domains",
        "en": "No domains",
    },

    # Init / uninstall / download
    "cli.config_created": {
        "de": "Lokale Konfiguration erstellt: {path}",
        "en": "Local config created at {path}",
    },
    "cli.install_removed": {
        "de": "Server-Installation gelöscht",
        "en": "Server install deleted",
    },
    "cli.install_kept": {
        "de": "Server-Installation beibehalten (nicht von local-domains heruntergeladen)",
        "en": "Server install kept (not downloaded by local-domains)",
    },
    "cli.downloaded": {
        "de": "nginx {version} nach {path} heruntergeladen",
        "en": "nginx {version} downloaded to {path}",
    },
}


def get_message(
    key: str,
    language: Optional[str] = None,
    **kwargs,
) -> str:
    """
    Get a translated message by key.

    Args:
        key: The message key (e.g., 'cli.domain_created')
        language: Language code ('de' or 'en'). Defaults to DEFAULT_LANGUAGE.
        **kwargs: Format arguments for the message template

    Returns:
        The translated and formatted message string.
        If the key is not found, returns the key itself.
        If the language is not found, falls back to DEFAULT_LANGUAGE.

    Examples:
        >>> get_message('cli.server_started', 'en')
        'Server started'
        >>> get_message('cli.domain_deleted', 'de', source='api.test')
        'Domain gelöscht: api.test'
    """
    if language is None or language not in SUPPORTED_LANGUAGES:
        language = DEFAULT_LANGUAGE

    translations = TRANSLATIONS.get(key)
    if translations is None:
        return key

    message = translations.get(language) or translations.get(DEFAULT_LANGUAGE)
    if message is None:
        return key

    if kwargs:
        try:
            message = message.format(**kwargs)
        except KeyError:
            # unformatted rather than failing on a missing argument
            pass

    return message


def get_all_message_keys() -> set[str]:
    return set(TRANSLATIONS.keys())


def has_translation(key: str, language: str) -> bool:
    translations = TRANSLATIONS.get(key)
    if translations is None:
        return False
    return language in translations


def get_missing_translations(language: str) -> set[str]:
    """
    Get all message keys that are missing translations for a language.

    Args:
        language: The language code to check

    Returns:
        Set of message keys missing translations for the specified language.
    """
    return {key for key, translations in TRANSLATIONS.items() if language not in translations}


def validate_translations() -> dict[str, set[str]]:
    """
    Validate that all languages have all translations.

    Returns:
        Dictionary mapping language codes to sets of missing message keys.
        Empty sets indicate complete translations.
    """
    return {language: get_missing_translations(language) for language in SUPPORTED_LANGUAGES}

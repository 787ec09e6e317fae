"""
CLI Constants

Command names, help text and exit codes for the ``tiercache`` command.
"""


class CLIDefaults:
    """CLI default values."""

    EXIT_SUCCESS = 0
    EXIT_ERROR = 1


class CLICommands:
    """CLI command names."""

    INFO = "info"
    CLEANUP = "cleanup"
    FLUSH = "flush"


class CLIHelp:
    """CLI help text and descriptions."""

    APP_NAME = "tiercache"
    APP_DESCRIPTION = "Inspect and maintain a tiercache SQLite store."
    VERSION_HELP = "Print version information and exit."
    VERSION_TEXT = "tiercache {version}"

    DIRECTORY_HELP = "Directory holding the cache database."
    FILENAME_HELP = "Cache database file name."
    CONFIG_HELP = "Path to a tiercache TOML configuration file."
    LOG_LEVEL_HELP = "Log level (DEBUG, INFO, WARNING, ERROR); defaults to the configured level."

    INFO_HELP = "Show SQLite version, row counts and file size."
    CLEANUP_HELP = "Delete expired rows and non-expiring rows older than the retention window."
    RETENTION_HELP = "Retention window in seconds for non-expiring rows."
    VACUUM_HELP = "Compact the database file afterwards."
    FLUSH_HELP = "Delete every cached row."
    KEEP_SAMPLES_HELP = "Keep monitoring samples."


class CLIMessages:
    """CLI message templates."""

    CLEANUP_DONE = "[green]Removed {expired} expired and {stale} stale rows[/green]"
    VACUUM_DONE = "[green]Database compacted[/green]"
    FLUSH_DONE = "[green]Removed {removed} rows[/green]"
    ERROR = "[red]Error: {error}[/red]"

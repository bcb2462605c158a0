"""Shared core utilities for command execution, configuration and console output."""

from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    RecordedCommand,
    RecordingCommandRunner,
    SubprocessCommandRunner,
    format_command,
    format_environment,
)
from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    load_config_file,
    load_document,
    normalize_string_list,
)
from .console import Console

__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
    "format_environment",
    "ConfigLoader",
    "FILE_LOADERS",
    "load_config_file",
    "load_document",
    "normalize_string_list",
    "Console",
]

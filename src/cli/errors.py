"""Typed exception hierarchy for CLI-related errors.

This module defines the exceptions raised by the CLI layer. All of them
inherit from CLIError so the command handlers can catch them in one place
and map them to an exit code.
"""

from typing import Optional

from src.node_store.errors import PageSyncError


class CLIError(PageSyncError):
    """Base exception for all CLI-related errors."""
    pass


class ConfigError(CLIError):
    """Raised when the configuration file is invalid."""

    def __init__(self, message: str, config_field: Optional[str] = None):
        if config_field:
            full_message = f"Configuration error in field '{config_field}': {message}"
        else:
            full_message = f"Configuration error: {message}"
        super().__init__(full_message)
        self.config_field = config_field
        self.original_message = message


class ConfigNotFoundError(CLIError):
    """Raised when configuration file is not found."""

    def __init__(self, config_path: str):
        super().__init__(
            f"Configuration file not found at {config_path} (run 'page-sync init' first)"
        )
        self.config_path = config_path


class ConfigFilesystemError(CLIError):
    """Raised when the configuration file cannot be read or written."""

    def __init__(self, file_path: str, operation: str, reason: Optional[str] = None):
        message = f"Configuration file operation '{operation}' failed for {file_path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.file_path = file_path
        self.operation = operation
        self.reason = reason

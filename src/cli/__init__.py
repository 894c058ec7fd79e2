"""Command-line interface for cross-locale page sync.

This package provides the `page-sync` CLI tool that drives the page service
from the shell: page creation, saves with cross-locale propagation,
publishing, and translation status, with rich output and exit codes.
"""

from .config import ConfigLoader
from .errors import (
    CLIError,
    ConfigError,
    ConfigFilesystemError,
    ConfigNotFoundError,
)
from .models import EngineConfig, ExitCode, TranslationSettings

__all__ = [
    'ConfigLoader',
    'CLIError',
    'ConfigError',
    'ConfigFilesystemError',
    'ConfigNotFoundError',
    'EngineConfig',
    'ExitCode',
    'TranslationSettings',
]

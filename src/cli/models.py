"""Data models for CLI operations.

This module defines the exit codes and the parsed configuration used by
the page-sync command-line tool.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

from src.prop_classifier.models import UnknownPropPolicy


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): General error (config issues, missing pages)
    - INTEGRITY_ERROR (2): A tree failed validation; nothing was written
    - CONFLICT (3): The version token was stale; nothing was written
    - NETWORK_ERROR (4): Translation service unreachable or rejected the key

    Example:
        >>> exit_code = ExitCode.SUCCESS
        >>> sys.exit(exit_code)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    INTEGRITY_ERROR = 2
    CONFLICT = 3
    NETWORK_ERROR = 4


@dataclass
class TranslationSettings:
    """Machine translation settings.

    Attributes:
        provider: "deepl" or "none"
        api_url: Endpoint override; None uses DEEPL_API_URL or the free tier
        timeout: Request timeout in seconds
    """
    provider: str = "none"
    api_url: Optional[str] = None
    timeout: int = 30

    @property
    def enabled(self) -> bool:
        return self.provider != "none"


@dataclass
class EngineConfig:
    """Site configuration stored in .page-sync/config.yaml.

    Attributes:
        locales: Locales configured for the site
        default_locale: Locale new pages are created in
        data_dir: Root directory of the file-backed page store
        unknown_prop_policy: What to do with props missing from the registry
        translation: Machine translation settings

    Example:
        >>> config = EngineConfig(locales=["en", "fi"], default_locale="en")
    """
    locales: List[str] = field(default_factory=list)
    default_locale: str = ""
    data_dir: str = ".page-sync/data"
    unknown_prop_policy: UnknownPropPolicy = UnknownPropPolicy.STRUCTURAL
    translation: TranslationSettings = field(default_factory=TranslationSettings)

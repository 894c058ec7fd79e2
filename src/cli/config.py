"""YAML configuration loading and validation.

This module handles loading and saving the site configuration stored at
.page-sync/config.yaml. Credentials are never stored here: the DeepL key
comes from the environment (see src.translation_client.auth).
"""

import os
import re
from typing import Any, Dict, List

import yaml

from src.prop_classifier.models import UnknownPropPolicy

from .errors import ConfigError, ConfigFilesystemError, ConfigNotFoundError
from .models import EngineConfig, TranslationSettings

LOCALE_PATTERN = re.compile(r'^[a-z]{2,3}(-[A-Za-z0-9]{2,8})?$')


class ConfigLoader:
    """Handles configuration file loading, validation, and saving.

    Configuration file structure:
        locales: [en, fi]
        default_locale: en
        data_dir: .page-sync/data
        unknown_prop_policy: structural
        translation:
          provider: deepl
          api_url: https://api-free.deepl.com/v2/translate
          timeout: 30
    """

    DEFAULT_CONFIG_PATH = '.page-sync/config.yaml'

    REQUIRED_TOP_LEVEL_FIELDS = {'locales', 'default_locale'}

    TRANSLATION_PROVIDERS = {'deepl', 'none'}

    # Default values for optional fields
    DEFAULTS = {
        'data_dir': '.page-sync/data',
        'unknown_prop_policy': 'structural',
        'translation': {
            'provider': 'none',
            'api_url': None,
            'timeout': 30,
        },
    }

    @classmethod
    def load(cls, config_path: str) -> EngineConfig:
        """Load and parse configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            EngineConfig object with parsed configuration

        Raises:
            ConfigNotFoundError: If the file does not exist
            ConfigFilesystemError: If the file cannot be read
            ConfigError: If configuration is invalid or malformed
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise ConfigNotFoundError(config_path)
        except PermissionError:
            raise ConfigFilesystemError(config_path, 'read', 'Permission denied')
        except OSError as e:
            raise ConfigFilesystemError(config_path, 'read', str(e))

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {str(e)}")

        if config_dict is None:
            raise ConfigError("Configuration file is empty")

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        return cls._parse_config(config_dict)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> EngineConfig:
        """Validate an in-memory configuration the same way load() does."""
        return cls._parse_config(config_dict)

    @classmethod
    def save(cls, config_path: str, config: EngineConfig) -> None:
        """Save configuration to a YAML file.

        Args:
            config_path: Path to the YAML configuration file
            config: EngineConfig object to save

        Raises:
            ConfigFilesystemError: If file cannot be written
        """
        translation: Dict[str, Any] = {
            'provider': config.translation.provider,
            'timeout': config.translation.timeout,
        }
        if config.translation.api_url:
            translation['api_url'] = config.translation.api_url

        config_dict = {
            'locales': list(config.locales),
            'default_locale': config.default_locale,
            'data_dir': config.data_dir,
            'unknown_prop_policy': config.unknown_prop_policy.value,
            'translation': translation,
        }

        yaml_str = yaml.safe_dump(
            config_dict,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False
        )

        config_dir = os.path.dirname(config_path)
        if config_dir:
            try:
                os.makedirs(config_dir, exist_ok=True)
            except OSError as e:
                raise ConfigFilesystemError(config_dir, 'create_directory', str(e))

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write(yaml_str)
        except PermissionError:
            raise ConfigFilesystemError(config_path, 'write', 'Permission denied')
        except OSError as e:
            raise ConfigFilesystemError(config_path, 'write', str(e))

    @classmethod
    def _parse_config(cls, config_dict: Dict[str, Any]) -> EngineConfig:
        """Parse and validate configuration dictionary.

        Raises:
            ConfigError: If configuration is invalid
        """
        missing = cls.REQUIRED_TOP_LEVEL_FIELDS - set(config_dict)
        if missing:
            raise ConfigError(
                f"Missing required field(s): {', '.join(sorted(missing))}"
            )

        locales = cls._parse_locales(config_dict['locales'])

        default_locale = config_dict['default_locale']
        if not isinstance(default_locale, str) or default_locale not in locales:
            raise ConfigError(
                f"Default locale '{default_locale}' must be one of: {', '.join(locales)}",
                'default_locale'
            )

        data_dir = config_dict.get('data_dir', cls.DEFAULTS['data_dir'])
        if not isinstance(data_dir, str) or not data_dir.strip():
            raise ConfigError("Must be a non-empty string", 'data_dir')

        policy_value = config_dict.get('unknown_prop_policy', cls.DEFAULTS['unknown_prop_policy'])
        try:
            policy = UnknownPropPolicy(policy_value)
        except ValueError:
            choices = ', '.join(p.value for p in UnknownPropPolicy)
            raise ConfigError(
                f"Unknown policy '{policy_value}' (expected one of: {choices})",
                'unknown_prop_policy'
            )

        return EngineConfig(
            locales=locales,
            default_locale=default_locale,
            data_dir=data_dir.strip(),
            unknown_prop_policy=policy,
            translation=cls._parse_translation(config_dict.get('translation')),
        )

    @classmethod
    def _parse_locales(cls, value: Any) -> List[str]:
        if not isinstance(value, list) or not value:
            raise ConfigError("Must be a non-empty list of locale codes", 'locales')

        locales: List[str] = []
        for locale in value:
            if not isinstance(locale, str) or not LOCALE_PATTERN.match(locale):
                raise ConfigError(f"Invalid locale code: {locale!r}", 'locales')
            if locale in locales:
                raise ConfigError(f"Duplicate locale: {locale}", 'locales')
            locales.append(locale)
        return locales

    @classmethod
    def _parse_translation(cls, value: Any) -> TranslationSettings:
        defaults = cls.DEFAULTS['translation']
        if value is None:
            return TranslationSettings(
                provider=defaults['provider'],
                api_url=defaults['api_url'],
                timeout=defaults['timeout'],
            )
        if not isinstance(value, dict):
            raise ConfigError(
                f"Must be a dictionary, got {type(value).__name__}", 'translation'
            )

        provider = value.get('provider', defaults['provider'])
        if provider not in cls.TRANSLATION_PROVIDERS:
            raise ConfigError(
                f"Unknown provider '{provider}' "
                f"(expected one of: {', '.join(sorted(cls.TRANSLATION_PROVIDERS))})",
                'translation.provider'
            )

        api_url = value.get('api_url', defaults['api_url'])
        if api_url is not None and (
            not isinstance(api_url, str) or not api_url.startswith(('http://', 'https://'))
        ):
            raise ConfigError(f"Must be an http(s) URL, got {api_url!r}", 'translation.api_url')

        timeout = value.get('timeout', defaults['timeout'])
        # bool is an int subclass
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise ConfigError(
                f"Must be a positive integer, got {timeout!r}", 'translation.timeout'
            )

        return TranslationSettings(provider=provider, api_url=api_url, timeout=timeout)

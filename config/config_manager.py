"""Configuration management module for application settings."""

import json
import shutil
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, replace
from pathlib import Path

from config.constants import ADBConstants, LogcatConstants, LoggingConstants
from utils import common

logger = common.get_logger('config_manager')

_VALID_LEVEL_CODES = ('V', 'D', 'I', 'W', 'E', 'F', 'S')


@dataclass
class AdbSettings:
    """ADB binary and command execution settings."""
    adb_path: str = ''
    command_timeout_ms: int = ADBConstants.DEFAULT_COMMAND_TIMEOUT_MS
    default_port: int = ADBConstants.DEFAULT_WIRELESS_PORT


@dataclass
class LogcatSettings:
    """Logcat streaming and retention settings."""
    max_entries: int = LogcatConstants.DEFAULT_MAX_ENTRIES
    default_filter: str = LogcatConstants.DEFAULT_FILTER
    min_level: str = LogcatConstants.DEFAULT_MIN_LEVEL


@dataclass
class LoggingSettings:
    """Logging configuration."""
    log_level: str = LoggingConstants.DEFAULT_LOG_LEVEL
    log_to_file: bool = True


@dataclass
class AppConfig:
    """Main application configuration."""
    adb: AdbSettings
    logcat: LogcatSettings
    logging: LoggingSettings
    version: str = "1.0.0"


class ConfigManager:
    """Manages application configuration persistence and validation."""

    DEFAULT_CONFIG_PATH = '~/.android_devkit_config.json'
    BACKUP_SUFFIX = '.backup'

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path or self.DEFAULT_CONFIG_PATH).expanduser()
        self.backup_path = self.config_path.with_name(self.config_path.name + self.BACKUP_SUFFIX)
        self._config: Optional[AppConfig] = None
        self._ensure_config_dir()

    def _ensure_config_dir(self):
        """Ensure configuration directory exists."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

    def _create_default_config(self) -> AppConfig:
        """Create default configuration."""
        return AppConfig(
            adb=AdbSettings(),
            logcat=LogcatSettings(),
            logging=LoggingSettings(),
        )

    def _validate_config(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and clean configuration dictionary."""
        default_config = asdict(self._create_default_config())
        if not isinstance(config_dict, dict):
            logger.warning('Configuration root is not an object, using defaults')
            config_dict = {}

        # Merge with defaults for missing keys; unknown keys are dropped
        def merge_dict(default: Dict, user: Dict) -> Dict:
            result = default.copy()
            for key, value in user.items():
                if key in result:
                    if isinstance(result[key], dict):
                        if isinstance(value, dict):
                            result[key] = merge_dict(result[key], value)
                        else:
                            logger.warning('Configuration section %s is not an object, reset to defaults', key)
                    else:
                        result[key] = value
            return result

        validated = merge_dict(default_config, config_dict)

        adb_settings = validated.get('adb', {})
        if not isinstance(adb_settings.get('adb_path'), str):
            adb_settings['adb_path'] = ''
            logger.warning('ADB path invalid, reset to auto-detect')
        timeout = adb_settings.get('command_timeout_ms')
        if not isinstance(timeout, int) or timeout < ADBConstants.MIN_COMMAND_TIMEOUT_MS:
            adb_settings['command_timeout_ms'] = ADBConstants.DEFAULT_COMMAND_TIMEOUT_MS
            logger.warning('ADB command timeout too low, reset to %s ms', ADBConstants.DEFAULT_COMMAND_TIMEOUT_MS)
        port = adb_settings.get('default_port')
        if not isinstance(port, int) or not 0 < port < 65536:
            adb_settings['default_port'] = ADBConstants.DEFAULT_WIRELESS_PORT
            logger.warning('ADB default port invalid, reset to %s', ADBConstants.DEFAULT_WIRELESS_PORT)

        logcat_settings = validated.get('logcat', {})
        max_entries = logcat_settings.get('max_entries')
        if not isinstance(max_entries, int) or max_entries < LogcatConstants.MIN_MAX_ENTRIES:
            logcat_settings['max_entries'] = LogcatConstants.DEFAULT_MAX_ENTRIES
            logger.warning('Logcat max_entries too low, reset to %s', LogcatConstants.DEFAULT_MAX_ENTRIES)
        if not isinstance(logcat_settings.get('default_filter'), str):
            logcat_settings['default_filter'] = LogcatConstants.DEFAULT_FILTER
            logger.warning('Logcat default filter invalid, reset to empty')
        level = logcat_settings.get('min_level')
        if not isinstance(level, str) or level.upper() not in _VALID_LEVEL_CODES:
            logcat_settings['min_level'] = LogcatConstants.DEFAULT_MIN_LEVEL
            logger.warning('Logcat min_level invalid, reset to %s', LogcatConstants.DEFAULT_MIN_LEVEL)
        else:
            logcat_settings['min_level'] = level.upper()

        logging_settings = validated.get('logging', {})
        if str(logging_settings.get('log_level', '')).upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            logging_settings['log_level'] = LoggingConstants.DEFAULT_LOG_LEVEL
            logger.warning('Log level invalid, reset to %s', LoggingConstants.DEFAULT_LOG_LEVEL)

        return validated

    def _config_from_dict(self, config_dict: Dict[str, Any]) -> AppConfig:
        validated_dict = self._validate_config(config_dict)
        return AppConfig(
            adb=AdbSettings(**validated_dict['adb']),
            logcat=LogcatSettings(**validated_dict['logcat']),
            logging=LoggingSettings(**validated_dict['logging']),
            version=validated_dict.get('version', '1.0.0'),
        )

    def load_config(self) -> AppConfig:
        """Load configuration from file."""
        if self._config is not None:
            return self._config

        try:
            if self.config_path.exists():
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    config_dict = json.load(f)
                self._config = self._config_from_dict(config_dict)
                logger.info(f'Configuration loaded from {self.config_path}')
            else:
                self._config = self._create_default_config()
                logger.info('Created default configuration')

        except Exception as e:
            logger.error(f'Failed to load config: {e}')
            if self.backup_path.exists():
                try:
                    logger.info('Attempting to load from backup')
                    with open(self.backup_path, 'r', encoding='utf-8') as f:
                        config_dict = json.load(f)
                    self._config = self._config_from_dict(config_dict)
                    logger.info('Configuration loaded from backup')
                except Exception as backup_error:
                    logger.error(f'Backup config also failed: {backup_error}')
                    self._config = self._create_default_config()
            else:
                self._config = self._create_default_config()

        return self._config

    def save_config(self, config: Optional[AppConfig] = None):
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            logger.warning('No configuration to save')
            return

        try:
            if self.config_path.exists():
                try:
                    shutil.copy2(self.config_path, self.backup_path)
                except OSError as e:
                    logger.warning(f'Failed to create config backup: {e}')

            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(asdict(config), f, indent=4, ensure_ascii=False)

            self._config = config
            logger.info(f'Configuration saved to {self.config_path}')

        except OSError as e:
            logger.error(f'Failed to save config: {e}')
            raise

    def get_adb_settings(self) -> AdbSettings:
        """Get ADB settings."""
        return self.load_config().adb

    def get_logcat_settings(self) -> LogcatSettings:
        """Get logcat settings."""
        return self.load_config().logcat

    def get_logging_settings(self) -> LoggingSettings:
        """Get logging settings."""
        return self.load_config().logging

    def _update_section(self, section: str, **kwargs):
        config = self.load_config()
        target = replace(getattr(config, section))
        for key, value in kwargs.items():
            if hasattr(target, key):
                setattr(target, key, value)
            else:
                logger.warning('Ignoring unknown %s setting: %s', section, key)
        # The cached config only changes once the validated copy is saved
        self.save_config(self._config_from_dict(asdict(replace(config, **{section: target}))))

    def update_adb_settings(self, **kwargs):
        """Update ADB settings."""
        self._update_section('adb', **kwargs)

    def update_logcat_settings(self, **kwargs):
        """Update logcat settings."""
        self._update_section('logcat', **kwargs)

    def update_logging_settings(self, **kwargs):
        """Update logging settings."""
        self._update_section('logging', **kwargs)

    def reset_to_defaults(self):
        """Reset configuration to defaults."""
        self._config = self._create_default_config()
        self.save_config()
        logger.info('Configuration reset to defaults')

    def export_config(self, filepath: str):
        """Export configuration to file."""
        config = self.load_config()
        export_path = Path(filepath).expanduser()

        try:
            with open(export_path, 'w', encoding='utf-8') as f:
                json.dump(asdict(config), f, indent=4, ensure_ascii=False)
            logger.info(f'Configuration exported to {export_path}')
        except OSError as e:
            logger.error(f'Failed to export config: {e}')
            raise

    def import_config(self, filepath: str):
        """Import configuration from file."""
        import_path = Path(filepath).expanduser()

        try:
            with open(import_path, 'r', encoding='utf-8') as f:
                config_dict = json.load(f)

            imported_config = self._config_from_dict(config_dict)
            self.save_config(imported_config)
            logger.info(f'Configuration imported from {import_path}')

        except (OSError, ValueError) as e:
            logger.error(f'Failed to import config: {e}')
            raise

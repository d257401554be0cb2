"""
Configuration for Portainer backup runs.

Settings are read from environment variables, optionally loaded from an
env file first (python-dotenv). The config classes below only hold
defaults; `load_settings` turns the environment into a validated, frozen
`Settings` instance.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values


class ConfigError(Exception):
    """Raised when required settings are missing or invalid."""
    pass


TRUE_VALUES = ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration"""

    # Portainer API
    PORTAINER_URL = None
    PORTAINER_API_KEY = None
    PORTAINER_BACKUP_PASSWORD = ''

    # Output
    BACKUP_DIR = './portainer-compose-backups'
    CLEANUP_BACKUP = False
    KEEP_BACKUPS = 7

    # HTTP timeouts/retries (names kept compatible with existing .env files)
    CURL_CONNECT_TIMEOUT = 10
    CURL_MAX_TIME = 120
    CURL_RETRY = 3
    CURL_RETRY_DELAY = 2
    CURL_RETRY_ALL_ERRORS = True
    CURL_INSECURE = False

    # Execution
    BACKUP_WORKERS = 1

    # Logging
    DEBUG = False
    LOG_DIR = None


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_DIR = './logs'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}


@dataclass(frozen=True)
class Settings:
    """Validated settings for a single backup run."""

    portainer_url: str
    api_key: str
    backup_dir: Path
    backup_password: str = ''
    cleanup: bool = False
    keep_days: int = 7
    connect_timeout: float = 10
    max_time: float = 120
    retries: int = 3
    retry_delay: float = 2
    retry_all_errors: bool = True
    verify_tls: bool = True
    workers: int = 1
    debug: bool = False
    log_dir: Optional[Path] = None

    def with_overrides(self, **changes) -> 'Settings':
        """Return a copy with the given non-None fields replaced."""
        changes = {key: value for key, value in changes.items() if value is not None}
        if not changes:
            return self
        updated = replace(self, **changes)
        _validate(updated)
        return updated


def read_env_file(env_file) -> dict:
    """
    Read KEY=value pairs from an env file.

    Args:
        env_file: Path to the env file

    Returns:
        Dict of variables defined in the file (unset values are skipped)

    Raises:
        ConfigError: If the file does not exist
    """
    path = Path(env_file).expanduser()
    if not path.is_file():
        raise ConfigError(f"ENV_FILE not found: {path}")
    return {key: value for key, value in dotenv_values(path).items() if value is not None}


def load_settings(env_file=None, environ: Optional[Mapping[str, str]] = None,
                  config_name: Optional[str] = None) -> Settings:
    """
    Build Settings from the environment.

    Values from the env file take precedence over the process environment,
    matching a `source`d .env file.

    Args:
        env_file: Optional path to an env file; falls back to $ENV_FILE
        environ: Environment mapping (defaults to os.environ)
        config_name: Key into `config` for defaults (default: production)

    Returns:
        Settings instance

    Raises:
        ConfigError: If required settings are missing or malformed
    """
    env = dict(os.environ if environ is None else environ)

    env_file = env_file or env.get('ENV_FILE')
    if env_file:
        env.update(read_env_file(env_file))

    defaults = config[config_name or 'default']

    url = _require(env, 'PORTAINER_URL')
    api_key = _require(env, 'PORTAINER_API_KEY')
    log_dir = env.get('LOG_DIR') or defaults.LOG_DIR

    settings = Settings(
        portainer_url=url.rstrip('/'),
        api_key=api_key,
        backup_dir=Path(env.get('BACKUP_DIR') or defaults.BACKUP_DIR),
        backup_password=env.get('PORTAINER_BACKUP_PASSWORD', defaults.PORTAINER_BACKUP_PASSWORD),
        cleanup=_bool(env, 'CLEANUP_BACKUP', defaults.CLEANUP_BACKUP),
        keep_days=_int(env, 'KEEP_BACKUPS', defaults.KEEP_BACKUPS),
        connect_timeout=_float(env, 'CURL_CONNECT_TIMEOUT', defaults.CURL_CONNECT_TIMEOUT),
        max_time=_float(env, 'CURL_MAX_TIME', defaults.CURL_MAX_TIME),
        retries=_int(env, 'CURL_RETRY', defaults.CURL_RETRY),
        retry_delay=_float(env, 'CURL_RETRY_DELAY', defaults.CURL_RETRY_DELAY),
        retry_all_errors=_bool(env, 'CURL_RETRY_ALL_ERRORS', defaults.CURL_RETRY_ALL_ERRORS),
        verify_tls=not _bool(env, 'CURL_INSECURE', defaults.CURL_INSECURE),
        workers=_int(env, 'BACKUP_WORKERS', defaults.BACKUP_WORKERS),
        debug=_bool(env, 'DEBUG', defaults.DEBUG),
        log_dir=Path(log_dir) if log_dir else None,
    )
    _validate(settings)
    return settings


def _validate(settings: Settings):
    if not settings.portainer_url.startswith(('http://', 'https://')):
        raise ConfigError(f"PORTAINER_URL must start with http:// or https://: {settings.portainer_url}")
    if settings.keep_days < 1:
        raise ConfigError(f"KEEP_BACKUPS must be at least 1 day, got {settings.keep_days}")
    if settings.connect_timeout <= 0 or settings.max_time <= 0:
        raise ConfigError("CURL_CONNECT_TIMEOUT and CURL_MAX_TIME must be positive")
    if settings.retries < 0 or settings.retry_delay < 0:
        raise ConfigError("CURL_RETRY and CURL_RETRY_DELAY must not be negative")
    if settings.workers < 1:
        raise ConfigError(f"BACKUP_WORKERS must be at least 1, got {settings.workers}")


def _require(env: Mapping[str, str], name: str) -> str:
    value = (env.get(name) or '').strip()
    if not value:
        raise ConfigError(f"missing: {name}")
    return value


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in TRUE_VALUES


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    value = env.get(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None or value.strip() == '':
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}")

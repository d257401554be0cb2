import os
import logging
from logging.handlers import RotatingFileHandler


__version__ = '1.0.0'

LOG_FILE_NAME = 'portainer-backup.log'


def configure_logging(debug=False, log_dir=None):
    """Configure application logging"""

    # Set log level based on environment
    log_level = logging.DEBUG if debug else logging.INFO

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)
    handlers = [console_handler]

    # File handler (only when a log directory is configured)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, LOG_FILE_NAME),
            maxBytes=10485760,  # 10MB
            backupCount=10
        )
        file_handler.setLevel(log_level)
        file_formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    logging.getLogger(__name__).debug(f"Logging configured (level: {logging.getLevelName(log_level)})")


def create_executor(settings, run_date=None):
    """Build a BackupExecutor (and its API client) from Settings"""
    from portainer_backup.api.client import PortainerClient
    from portainer_backup.backup.executor import BackupExecutor

    client = PortainerClient.from_settings(settings)
    return BackupExecutor(
        client,
        backup_dir=settings.backup_dir,
        backup_password=settings.backup_password,
        cleanup=settings.cleanup,
        keep_days=settings.keep_days,
        workers=settings.workers,
        run_date=run_date
    )

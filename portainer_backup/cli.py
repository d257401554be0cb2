"""
Command-line entry point.

Usage:
  portainer-backup --env-file /path/to/.env
  portainer-backup --cleanup --keep-days 14
"""

import logging
from pathlib import Path

import click

from portainer_backup import configure_logging, create_executor
from portainer_backup.api.client import TransportError
from portainer_backup.config import ConfigError, load_settings


logger = logging.getLogger(__name__)

EXIT_TRANSPORT_ERROR = 1
EXIT_CONFIG_ERROR = 2


@click.command()
@click.option('--env-file', type=click.Path(dir_okay=False, path_type=Path), default=None,
              help='Env file with PORTAINER_URL, PORTAINER_API_KEY, ... (default: $ENV_FILE).')
@click.option('--backup-dir', type=click.Path(file_okay=False, path_type=Path), default=None,
              help='Root directory for backups (overrides BACKUP_DIR).')
@click.option('--cleanup/--no-cleanup', default=None,
              help='Remove run directories older than --keep-days (overrides CLEANUP_BACKUP).')
@click.option('--keep-days', type=int, default=None,
              help='Retention period in days (overrides KEEP_BACKUPS).')
@click.option('--workers', type=int, default=None,
              help='Stacks backed up concurrently (overrides BACKUP_WORKERS).')
@click.option('--debug', is_flag=True, default=False, help='Verbose logging.')
def main(env_file, backup_dir, cleanup, keep_days, workers, debug):
    """Back up Portainer stacks, their metadata and a full Portainer export."""
    try:
        settings = load_settings(env_file=env_file).with_overrides(
            backup_dir=backup_dir,
            cleanup=cleanup,
            keep_days=keep_days,
            workers=workers
        )
    except ConfigError as e:
        click.echo(f"! {e}", err=True)
        raise SystemExit(EXIT_CONFIG_ERROR)

    configure_logging(debug=debug or settings.debug, log_dir=settings.log_dir)
    if env_file:
        logger.info(f"loading env from: {env_file}")

    executor = create_executor(settings)
    try:
        summary = executor.execute()
    except TransportError as e:
        click.echo(f"! Backup aborted: {e}", err=True)
        raise SystemExit(EXIT_TRANSPORT_ERROR)
    finally:
        executor.client.close()

    for warning in summary.warnings:
        click.echo(f"! {warning}", err=True)
    click.echo(f"Done! Backups located in: {summary.run_dir}")


if __name__ == '__main__':  # pragma: no cover
    main()

"""
Retention policy enforcement for backup runs.

Each run writes into <backup_dir>/<YYYY-MM-DD>/. Cleanup removes whole run
directories directly below the backup root once their modification time is
older than the configured number of days. It never descends further.
"""

import logging
import shutil
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


class RetentionManager:
    """
    Removes run directories older than a retention period.
    """

    def __init__(self):
        """Initialize retention manager."""
        self.logs = []

    def clean(self, root, max_age_days: int, keep: Optional[Path] = None) -> Dict[str, Any]:
        """
        Remove immediate subdirectories of root older than max_age_days.

        Args:
            root: Backup root directory
            max_age_days: Age in days after which a run directory is removed
            keep: Directory that must survive regardless of age (current run)

        Returns:
            Dict with summary of cleanup:
            {
                'removed': List[str],
                'errors': List[str],
                'logs': List[str]
            }

        Raises:
            ValueError: If max_age_days is not positive
        """
        if max_age_days < 1:
            raise ValueError(f"max_age_days must be at least 1, got {max_age_days}")

        root = Path(root)
        summary = {
            'removed': [],
            'errors': []
        }

        self._log(f"cleaning up old backups (older than {max_age_days} days)")

        if not root.is_dir():
            self._log(f"Backup root does not exist, nothing to clean: {root}")
            summary['logs'] = self.logs
            return summary

        cutoff = time.time() - timedelta(days=max_age_days).total_seconds()
        keep = Path(keep).resolve() if keep is not None else None

        for entry in sorted(root.iterdir()):
            if entry.is_symlink() or not entry.is_dir():
                continue
            if keep is not None and entry.resolve() == keep:
                continue

            if entry.stat().st_mtime >= cutoff:
                continue

            self._log(f"removing: {entry}")
            try:
                shutil.rmtree(entry)
                summary['removed'].append(str(entry))
            except OSError as e:
                error_msg = f"Failed to remove {entry}: {e}"
                self._log(error_msg, level=logging.ERROR)
                summary['errors'].append(error_msg)

        self._log(
            f"Retention cleanup complete. "
            f"Removed: {len(summary['removed'])}, "
            f"Errors: {len(summary['errors'])}"
        )

        summary['logs'] = self.logs
        return summary

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Logging level for the module logger
        """
        timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
        self.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)


def enforce_retention(root, max_age_days: int, keep: Optional[Path] = None) -> Dict[str, Any]:
    """
    Enforce the retention policy on a backup root.

    Returns:
        Summary dict from RetentionManager.clean()
    """
    manager = RetentionManager()
    return manager.clean(root, max_age_days, keep=keep)

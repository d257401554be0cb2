"""
Backup executor - orchestrates a complete Portainer backup run.

Workflow:
1. Request a full Portainer backup (tar.gz) - best effort
2. Resolve endpoint names - fatal on failure
3. List stacks - fatal on failure
4. Write compose content and metadata for every stack
5. Remove old run directories (if cleanup is enabled)

There is no rollback: files written before a fatal failure stay on disk.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..api.client import PortainerClient, TransportError
from ..models import BackupRun, Stack, StackArtifact
from .endpoints import endpoint_name, resolve_endpoints
from .extractor import StackExtractor
from .retention import enforce_retention
from .stacks import list_stacks


logger = logging.getLogger(__name__)

PLATFORM_BACKUP_PATH = '/api/backup'


class CallPolicy(Enum):
    """What a failed API call means for the run"""
    BEST_EFFORT = 'best_effort'
    FATAL = 'fatal'


# Per-stack files are the primary deliverable; the platform export is a bonus
CALL_POLICIES = {
    'platform_backup': CallPolicy.BEST_EFFORT,
    'endpoints': CallPolicy.FATAL,
    'stacks': CallPolicy.FATAL,
}


@dataclass
class BackupSummary:
    """Outcome of a backup run"""
    run_dir: Path
    platform_backup: Optional[Path] = None
    artifacts: List[StackArtifact] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    cleanup: Optional[Dict[str, Any]] = None
    logs: List[str] = field(default_factory=list)

    @property
    def stacks_total(self) -> int:
        return len(self.artifacts)

    @property
    def stacks_with_content(self) -> int:
        return sum(1 for artifact in self.artifacts if artifact.has_content)

    @property
    def stacks_failed(self) -> int:
        return sum(1 for artifact in self.artifacts if artifact.failed)


class BackupExecutor:
    """
    Orchestrates the complete backup workflow against one Portainer instance.
    """

    def __init__(self, client: PortainerClient, backup_dir, backup_password: str = '',
                 cleanup: bool = False, keep_days: int = 7, workers: int = 1,
                 run_date: Optional[date] = None,
                 policies: Optional[Mapping[str, CallPolicy]] = None):
        """
        Initialize backup executor.

        Args:
            client: Portainer API client
            backup_dir: Root directory for all runs
            backup_password: Password for the encrypted platform backup ('' = unencrypted)
            cleanup: Remove old run directories after the backup
            keep_days: Retention period in days for cleanup
            workers: Number of stacks extracted concurrently
            run_date: Date of the run (default: today)
            policies: Overrides for CALL_POLICIES
        """
        self.client = client
        self.backup_dir = Path(backup_dir)
        self.backup_password = backup_password or ''
        self.cleanup = cleanup
        self.keep_days = keep_days
        self.workers = max(1, workers)
        self.run = BackupRun(timestamp=run_date or date.today(), output_root=self.backup_dir)
        self.policies = dict(CALL_POLICIES)
        if policies:
            self.policies.update(policies)
        self.extractor = StackExtractor(client)
        self.summary = None
        self.logs = []

    def execute(self) -> BackupSummary:
        """
        Execute the backup run.

        Returns:
            BackupSummary with everything that was written

        Raises:
            TransportError: If a call with a FATAL policy fails
        """
        self.summary = BackupSummary(run_dir=self.run.run_dir, logs=self.logs)
        self.run.run_dir.mkdir(parents=True, exist_ok=True)

        # Step 1: Full Portainer backup
        self._log("creating Portainer backup...")
        self.summary.platform_backup = self._call(
            'platform_backup',
            self.client.post_json_download,
            PLATFORM_BACKUP_PATH,
            {'password': self.backup_password},
            self.run.platform_backup_path
        )

        # Step 2: Endpoint names
        self._log("loading endpoints...")
        endpoints = self._call('endpoints', resolve_endpoints, self.client)

        # Step 3: Stacks
        self._log("loading stacks...")
        stacks = self._call('stacks', list_stacks, self.client)

        # Step 4: Compose content and metadata per stack
        self.summary.artifacts = self._extract_all(stacks, endpoints)
        self._log(
            f"Stacks processed: {self.summary.stacks_total}, "
            f"with content: {self.summary.stacks_with_content}, "
            f"failed: {self.summary.stacks_failed}"
        )

        # Step 5: Retention
        if self.cleanup:
            self.summary.cleanup = enforce_retention(self.backup_dir, self.keep_days, keep=self.run.run_dir)
            self.logs.extend(self.summary.cleanup.get('logs', []))
        else:
            self._log("Cleanup not enabled, skipping")

        self._log(f"Done! Backups located in: {self.run.run_dir}")
        return self.summary

    def _call(self, name: str, func: Callable, *args):
        """
        Run an API step under its call policy.

        Returns:
            The step's result, or None when a best-effort step failed

        Raises:
            TransportError: If a FATAL step failed
        """
        try:
            return func(*args)
        except TransportError as e:
            if self.policies.get(name, CallPolicy.FATAL) is CallPolicy.FATAL:
                self._log(f"Fatal: {name} failed: {e}", level=logging.ERROR)
                raise
            message = f"Warning: {name} failed: {e}"
            self._log(message, level=logging.WARNING)
            self.summary.warnings.append(message)
            return None

    def _extract_all(self, stacks: List[Stack], endpoints: Mapping[int, str]) -> List[StackArtifact]:
        """Extract every stack, sequentially or on a bounded thread pool."""
        if self.workers == 1 or len(stacks) < 2:
            return [self._extract_one(stack, endpoints) for stack in stacks]

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix='stack') as pool:
            futures = [pool.submit(self._extract_one, stack, endpoints) for stack in stacks]
            artifacts = []
            for stack, future in zip(stacks, futures):
                try:
                    artifacts.append(future.result())
                except Exception as e:
                    logger.error(f"Stack worker crashed for stack {stack.id}: {e}")
                    artifacts.append(StackArtifact(
                        stack_id=stack.id,
                        stack_name=stack.name,
                        endpoint_name=endpoint_name(endpoints, stack.endpoint_id),
                        error=str(e)
                    ))
            return artifacts

    def _extract_one(self, stack: Stack, endpoints: Mapping[int, str]) -> StackArtifact:
        name = endpoint_name(endpoints, stack.endpoint_id)
        artifact = self.extractor.extract(stack, name, self.run.run_dir)
        if artifact.failed:
            self.summary.warnings.append(f"Warning: stack {stack.id} ({stack.name}): {artifact.error}")
        return artifact

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

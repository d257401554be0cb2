"""
Domain records for a Portainer backup run.

Everything here is a read-only snapshot of what the Portainer API returned
(or of what a run wrote to disk); nothing is mutated after construction.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Optional, Union


DEFAULT_GIT_REFERENCE = 'refs/heads/main'
DEFAULT_COMPOSE_PATH = 'docker-compose.yml'


class StackType(IntEnum):
    """Portainer's internal stack type codes"""
    SWARM = 1
    STANDALONE = 2
    KUBERNETES = 3


@dataclass(frozen=True)
class Endpoint:
    """Managed compute target (host, swarm cluster, k8s cluster)"""
    id: int
    name: str

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> 'Endpoint':
        endpoint_id = record.get('Id')
        name = record.get('Name')
        if name is None or str(name).strip() in ('', 'null'):
            name = default_endpoint_name(endpoint_id)
        return cls(id=endpoint_id, name=str(name))


def default_endpoint_name(endpoint_id) -> str:
    return f'endpoint-{endpoint_id}'


@dataclass(frozen=True)
class GitConfig:
    """Git source of a stack whose compose file lives in a repository"""
    url: Optional[str]
    reference_name: Optional[str] = None
    config_file_path: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, record: Optional[Dict[str, Any]]) -> Optional['GitConfig']:
        if not isinstance(record, dict):
            return None
        return cls(
            url=record.get('URL') or None,
            reference_name=record.get('ReferenceName') or None,
            config_file_path=record.get('ConfigFilePath') or None,
            raw=record,
        )

    @property
    def reference(self) -> str:
        return self.reference_name or DEFAULT_GIT_REFERENCE

    @property
    def compose_path(self) -> str:
        return self.config_file_path or DEFAULT_COMPOSE_PATH


@dataclass(frozen=True)
class Stack:
    """Deployable stack as listed by GET /api/stacks"""
    id: int
    name: str
    endpoint_id: int
    type: Union[StackType, int, None]
    creation_date: Any = None
    update_date: Any = None
    git_config: Optional[GitConfig] = None
    swarm_id: Optional[str] = None
    project_path: Optional[str] = None
    namespace: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> 'Stack':
        """
        Build a Stack from an API record.

        Created/Updated fall back to the older field names used by
        earlier Portainer releases. Unknown type codes are kept as ints.
        """
        stack_type = record.get('Type')
        try:
            stack_type = StackType(stack_type)
        except ValueError:
            pass

        return cls(
            id=record.get('Id'),
            name=str(record.get('Name')),
            endpoint_id=record.get('EndpointId'),
            type=stack_type,
            creation_date=_first_present(record, 'CreationDate', 'Created'),
            update_date=_first_present(record, 'UpdateDate', 'Updated'),
            git_config=GitConfig.from_api(record.get('GitConfig')),
            swarm_id=record.get('SwarmId'),
            project_path=record.get('ProjectPath'),
            namespace=record.get('Namespace'),
            raw=record,
        )

    @property
    def git_url(self) -> Optional[str]:
        return self.git_config.url if self.git_config else None

    def metadata(self) -> Dict[str, Any]:
        """Metadata document written next to every stack's compose file."""
        return {
            'Id': self.id,
            'Name': self.raw.get('Name') if self.raw else self.name,
            'EndpointId': self.endpoint_id,
            'Type': int(self.type) if isinstance(self.type, int) else self.type,
            'Created': self.creation_date,
            'Updated': self.update_date,
            'Git': self.git_config.raw if self.git_config else None,
            'SwarmID': self.swarm_id,
            'ProjectPath': self.project_path,
            'Namespace': self.namespace,
        }


def _first_present(record: Dict[str, Any], *keys):
    for key in keys:
        value = record.get(key)
        if value is not None and value is not False:
            return value
    return None


@dataclass(frozen=True)
class BackupRun:
    """One invocation; all output lands below run_dir"""
    timestamp: date
    output_root: Path

    @property
    def stamp(self) -> str:
        return self.timestamp.strftime('%Y-%m-%d')

    @property
    def run_dir(self) -> Path:
        return Path(self.output_root) / self.stamp

    @property
    def platform_backup_path(self) -> Path:
        return self.run_dir / f'portainer-backup_{self.stamp}.tar.gz'


@dataclass
class StackArtifact:
    """Files written for one stack"""
    stack_id: int
    stack_name: str
    endpoint_name: str
    metadata_path: Optional[Path] = None
    content_path: Optional[Path] = None
    readme_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def has_content(self) -> bool:
        return self.content_path is not None

    @property
    def failed(self) -> bool:
        return self.error is not None

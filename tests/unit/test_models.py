"""
Unit tests for domain records (portainer_backup/models.py).
"""

import json
from datetime import date
from pathlib import Path

import pytest

from portainer_backup.models import (
    BackupRun,
    Endpoint,
    GitConfig,
    Stack,
    StackArtifact,
    StackType
)


class TestEndpoint:

    def test_from_api(self):
        assert Endpoint.from_api({'Id': 1, 'Name': 'local'}) == Endpoint(1, 'local')

    @pytest.mark.parametrize('record', [
        {'Id': 5, 'Name': None},
        {'Id': 5, 'Name': ''},
        {'Id': 5, 'Name': 'null'},
        {'Id': 5},
    ])
    def test_missing_name(self, record):
        assert Endpoint.from_api(record).name == 'endpoint-5'


class TestStack:

    def test_from_api_full_record(self, stack_records):
        stack = Stack.from_api(stack_records[0])

        assert stack.id == 42
        assert stack.name == 'my stack'
        assert stack.endpoint_id == 5
        assert stack.type is StackType.STANDALONE
        assert stack.creation_date == 1700000000
        assert stack.update_date == 1700000500
        assert stack.git_config is None
        assert stack.project_path == '/data/compose/42'

    def test_legacy_date_fields(self):
        stack = Stack.from_api({'Id': 1, 'Name': 'a', 'EndpointId': 1, 'Type': 1,
                                'Created': 100, 'Updated': 200})

        assert stack.creation_date == 100
        assert stack.update_date == 200

    def test_new_date_fields_win(self):
        stack = Stack.from_api({'Id': 1, 'Name': 'a', 'EndpointId': 1, 'Type': 1,
                                'CreationDate': 1, 'Created': 100})

        assert stack.creation_date == 1

    def test_unknown_type_kept(self):
        stack = Stack.from_api({'Id': 1, 'Name': 'a', 'EndpointId': 1, 'Type': 99})

        assert stack.type == 99
        assert stack.metadata()['Type'] == 99

    def test_metadata_document(self, stack_records):
        metadata = Stack.from_api(stack_records[1]).metadata()

        assert list(metadata) == ['Id', 'Name', 'EndpointId', 'Type', 'Created', 'Updated',
                                  'Git', 'SwarmID', 'ProjectPath', 'Namespace']
        assert metadata['Id'] == 7
        assert metadata['Type'] == 2
        assert metadata['Created'] == 1600000000
        assert metadata['Updated'] is None
        assert metadata['Git'] == stack_records[1]['GitConfig']
        assert metadata['SwarmID'] is None

    def test_metadata_keeps_empty_strings(self):
        stack = Stack.from_api({'Id': 3, 'Name': 'a', 'EndpointId': 1, 'Type': 2,
                                'SwarmId': '', 'ProjectPath': '', 'Namespace': ''})
        metadata = stack.metadata()

        assert metadata['SwarmID'] == ''
        assert metadata['ProjectPath'] == ''
        assert metadata['Namespace'] == ''

    def test_metadata_missing_name_is_null(self):
        metadata = Stack.from_api({'Id': 3, 'EndpointId': 1, 'Type': 2}).metadata()

        assert metadata['Name'] is None
        assert json.dumps(metadata['Name']) == 'null'


class TestGitConfig:

    def test_defaults(self):
        git = GitConfig.from_api({'URL': 'https://git.example/repo.git'})

        assert git.reference == 'refs/heads/main'
        assert git.compose_path == 'docker-compose.yml'

    def test_explicit_values(self):
        git = GitConfig.from_api({'URL': 'u', 'ReferenceName': 'refs/tags/v1',
                                  'ConfigFilePath': 'deploy/compose.yaml'})

        assert git.reference == 'refs/tags/v1'
        assert git.compose_path == 'deploy/compose.yaml'

    def test_not_a_dict(self):
        assert GitConfig.from_api(None) is None


class TestBackupRun:

    def test_paths(self, tmp_path):
        run = BackupRun(timestamp=date(2024, 1, 15), output_root=tmp_path)

        assert run.stamp == '2024-01-15'
        assert run.run_dir == tmp_path / '2024-01-15'
        assert run.platform_backup_path == tmp_path / '2024-01-15' / 'portainer-backup_2024-01-15.tar.gz'

    def test_same_day_same_directory(self, tmp_path):
        first = BackupRun(date(2024, 1, 15), tmp_path)
        second = BackupRun(date(2024, 1, 15), tmp_path)

        assert first.run_dir == second.run_dir


class TestStackArtifact:

    def test_flags(self):
        artifact = StackArtifact(1, 'a', 'local', metadata_path=Path('m.json'))

        assert not artifact.has_content
        assert not artifact.failed

        artifact.error = 'disk full'
        assert artifact.failed

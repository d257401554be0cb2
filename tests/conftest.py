"""
Shared pytest fixtures for portainer-backup tests.

This module provides fixtures for:
- Settings built from a test environment
- A mocked Portainer API client
- Sample endpoint and stack records as returned by the API
- Temporary backup directories
"""

from unittest.mock import MagicMock

import pytest

from portainer_backup.api.client import PortainerClient, StackFileResponse
from portainer_backup.config import load_settings
from portainer_backup.models import Stack


@pytest.fixture
def test_env(tmp_path):
    """Minimal environment for load_settings()."""
    return {
        'PORTAINER_URL': 'https://portainer.example.com/',
        'PORTAINER_API_KEY': 'ptr_test_key',
        'BACKUP_DIR': str(tmp_path / 'backups'),
    }


@pytest.fixture
def settings(test_env):
    """Settings loaded from test_env."""
    return load_settings(environ=test_env)


@pytest.fixture
def backup_dir(tmp_path):
    """Empty backup root directory."""
    path = tmp_path / 'backups'
    path.mkdir()
    return path


@pytest.fixture
def endpoint_records():
    """GET /api/endpoints payload."""
    return [
        {'Id': 1, 'Name': 'local'},
        {'Id': 2, 'Name': 'prod cluster/eu:1'},
        {'Id': 5, 'Name': None},
    ]


@pytest.fixture
def stack_records():
    """GET /api/stacks payload covering compose, git and k8s stacks."""
    return [
        {
            'Id': 42,
            'Name': 'my stack',
            'EndpointId': 5,
            'Type': 2,
            'CreationDate': 1700000000,
            'UpdateDate': 1700000500,
            'ProjectPath': '/data/compose/42',
        },
        {
            'Id': 7,
            'Name': 'gitops',
            'EndpointId': 1,
            'Type': 2,
            'Created': 1600000000,
            'GitConfig': {
                'URL': 'https://git.example/repo.git',
                'ReferenceName': '',
                'ConfigFilePath': '',
            },
        },
        {
            'Id': 9,
            'Name': 'k8s-app',
            'EndpointId': 2,
            'Type': 3,
            'Namespace': 'default',
        },
    ]


@pytest.fixture
def raw_stack(stack_records):
    """Stack with inline compose content."""
    return Stack.from_api(stack_records[0])


@pytest.fixture
def git_stack(stack_records):
    """Git-backed stack."""
    return Stack.from_api(stack_records[1])


@pytest.fixture
def mock_client(endpoint_records, stack_records):
    """
    Mock PortainerClient serving the sample endpoints and stacks.

    Stack files default to a raw compose body; override
    get_stack_file.side_effect per test.
    """
    client = MagicMock(spec=PortainerClient)

    def get_json(path):
        return {
            '/api/endpoints': endpoint_records,
            '/api/stacks': stack_records,
        }[path]

    client.get_json.side_effect = get_json
    client.get_stack_file.return_value = StackFileResponse(
        text='services:\n  web:\n    image: nginx\n',
        content_type='text/plain'
    )
    client.post_json_download.side_effect = lambda path, body, destination: destination
    return client


@pytest.fixture
def make_response():
    """Factory for mocked requests.Response objects."""
    def _make(status_code=200, text='', content_type='application/json', chunks=None):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 400
        response.reason = 'OK' if response.ok else 'Error'
        response.text = text
        response.headers = {'Content-Type': content_type}
        response.iter_content.return_value = chunks or []
        return response

    return _make

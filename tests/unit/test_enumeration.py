"""
Unit tests for endpoint resolution and stack enumeration
(portainer_backup/backup/endpoints.py, portainer_backup/backup/stacks.py).
"""

import pytest

from portainer_backup.api.client import TransportError
from portainer_backup.backup.endpoints import endpoint_name, resolve_endpoints
from portainer_backup.backup.stacks import list_stacks
from portainer_backup.models import StackType


class TestResolveEndpoints:
    """Test resolve_endpoints."""

    def test_names_and_fallbacks(self, mock_client):
        endpoints = resolve_endpoints(mock_client)

        assert dict(endpoints) == {
            1: 'local',
            2: 'prod cluster/eu:1',
            5: 'endpoint-5',
        }
        mock_client.get_json.assert_called_once_with('/api/endpoints')

    @pytest.mark.parametrize('name', ['', 'null', None])
    def test_empty_names_synthesized(self, mock_client, name):
        mock_client.get_json.side_effect = None
        mock_client.get_json.return_value = [{'Id': 3, 'Name': name}]

        assert resolve_endpoints(mock_client)[3] == 'endpoint-3'

    def test_mapping_is_read_only(self, mock_client):
        endpoints = resolve_endpoints(mock_client)

        with pytest.raises(TypeError):
            endpoints[9] = 'sneaky'

    def test_transport_error_propagates(self, mock_client):
        mock_client.get_json.side_effect = TransportError('GET /api/endpoints failed: timed out')

        with pytest.raises(TransportError):
            resolve_endpoints(mock_client)

    def test_non_list_response(self, mock_client):
        mock_client.get_json.side_effect = None
        mock_client.get_json.return_value = {'message': 'Unauthorized'}

        with pytest.raises(TransportError, match='expected a list'):
            resolve_endpoints(mock_client)

    def test_endpoint_name_unknown_id(self):
        assert endpoint_name({1: 'local'}, 1) == 'local'
        assert endpoint_name({1: 'local'}, 8) == 'endpoint-8'


class TestListStacks:
    """Test list_stacks."""

    def test_parses_all_stacks(self, mock_client):
        stacks = list_stacks(mock_client)

        assert [stack.id for stack in stacks] == [42, 7, 9]
        assert stacks[0].type is StackType.STANDALONE
        assert stacks[1].git_url == 'https://git.example/repo.git'
        assert stacks[2].namespace == 'default'

    def test_empty_list(self, mock_client):
        mock_client.get_json.side_effect = None
        mock_client.get_json.return_value = []

        assert list_stacks(mock_client) == []

    def test_null_response_is_empty(self, mock_client):
        mock_client.get_json.side_effect = None
        mock_client.get_json.return_value = None

        assert list_stacks(mock_client) == []

    def test_transport_error_propagates(self, mock_client):
        mock_client.get_json.side_effect = TransportError('GET /api/stacks failed: HTTP 502', status_code=502)

        with pytest.raises(TransportError):
            list_stacks(mock_client)

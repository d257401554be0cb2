"""
Endpoint resolution: Portainer endpoint id -> display name.

The resolved names become directory names in the backup tree, so a failed
lookup is fatal for the run.
"""

import logging
from types import MappingProxyType
from typing import Mapping

from ..api.client import PortainerClient, TransportError
from ..models import Endpoint, default_endpoint_name


logger = logging.getLogger(__name__)

ENDPOINTS_PATH = '/api/endpoints'


def resolve_endpoints(client: PortainerClient) -> Mapping[int, str]:
    """
    Fetch all endpoints and build an immutable id -> name mapping.

    Args:
        client: Portainer API client

    Returns:
        Read-only mapping of endpoint id to display name

    Raises:
        TransportError: If the endpoint list cannot be fetched or is malformed
    """
    records = client.get_json(ENDPOINTS_PATH)
    if not isinstance(records, list):
        raise TransportError(f"GET {ENDPOINTS_PATH} returned {type(records).__name__}, expected a list")

    names = {}
    for record in records:
        if not isinstance(record, dict):
            logger.warning(f"Skipping malformed endpoint record: {record!r}")
            continue
        endpoint = Endpoint.from_api(record)
        names[endpoint.id] = endpoint.name

    logger.info(f"endpoints found: {len(names)}")
    return MappingProxyType(names)


def endpoint_name(endpoints: Mapping[int, str], endpoint_id) -> str:
    """Display name for an endpoint id, synthesized when unknown."""
    return endpoints.get(endpoint_id) or default_endpoint_name(endpoint_id)

"""Stack enumeration."""

import logging
from typing import List

from ..api.client import PortainerClient, TransportError
from ..models import Stack


logger = logging.getLogger(__name__)

STACKS_PATH = '/api/stacks'


def list_stacks(client: PortainerClient) -> List[Stack]:
    """
    Fetch every stack known to Portainer.

    An empty list is a valid outcome (nothing to back up).

    Raises:
        TransportError: If the stack list cannot be fetched or is malformed
    """
    records = client.get_json(STACKS_PATH)
    if records is None:
        records = []
    if not isinstance(records, list):
        raise TransportError(f"GET {STACKS_PATH} returned {type(records).__name__}, expected a list")

    stacks = [Stack.from_api(record) for record in records if isinstance(record, dict)]
    logger.info(f"stacks found: {len(stacks)}")
    return stacks

"""
Portainer API access.
"""

from .client import PortainerClient, StackFileResponse, TransportError

__all__ = [
    'PortainerClient',
    'StackFileResponse',
    'TransportError'
]

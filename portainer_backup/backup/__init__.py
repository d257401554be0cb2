"""
Backup module for Portainer.

This module handles the core backup functionality including:
- Endpoint name resolution
- Stack enumeration
- Per-stack compose content extraction
- Execution orchestration
- Retention policy enforcement
"""

from .executor import BackupExecutor, BackupSummary, CallPolicy, CALL_POLICIES
from .endpoints import resolve_endpoints
from .stacks import list_stacks
from .extractor import StackExtractor, decode_stack_file, sanitize_name
from .retention import RetentionManager, enforce_retention

__all__ = [
    'BackupExecutor',
    'BackupSummary',
    'CallPolicy',
    'CALL_POLICIES',
    'resolve_endpoints',
    'list_stacks',
    'StackExtractor',
    'decode_stack_file',
    'sanitize_name',
    'RetentionManager',
    'enforce_retention'
]

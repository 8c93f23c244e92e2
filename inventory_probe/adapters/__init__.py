"""
Client adapters for the inventory probe.

Contains one adapter per boto3 API surface.
"""

# Import all adapter implementations to ensure they get registered
from .client_adapter import ClientAPIAdapter
from .resource_adapter import PageCursor, ResourceAPIAdapter

# Import registry components for external use
from .base import ALL_OPERATIONS, BaseClientAdapter
from .registry import AdapterFactory, AdapterRegistry, get_registry, register_adapter

__all__ = [
    'ALL_OPERATIONS',
    'BaseClientAdapter',
    'ClientAPIAdapter',
    'ResourceAPIAdapter',
    'PageCursor',
    'AdapterRegistry',
    'AdapterFactory',
    'get_registry',
    'register_adapter'
]

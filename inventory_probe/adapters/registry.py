"""
Adapter registry for managing client adapter implementations.
"""

from typing import Dict, List, Type
import logging

from .base import BaseClientAdapter
from ..core.config import ProbeConfig
from ..core.credentials import Credentials


class AdapterRegistry:
    """Registry for client adapter implementations"""

    def __init__(self):
        self._adapters: Dict[str, Type[BaseClientAdapter]] = {}
        self.logger = logging.getLogger('inventory_probe.registry')

    def register_adapter(self, adapter_class: Type[BaseClientAdapter]):
        """Register an adapter implementation under its adapter_name"""
        adapter_name = getattr(adapter_class, 'adapter_name', None)
        if not adapter_name:
            raise ValueError(f"{adapter_class.__name__} does not declare an adapter_name")

        if adapter_name in self._adapters:
            self.logger.warning(f"Adapter {adapter_name} already registered, overwriting")

        self._adapters[adapter_name] = adapter_class
        self.logger.debug(f"Registered adapter: {adapter_name}")

    def get_adapter_class(self, adapter_name: str) -> Type[BaseClientAdapter]:
        if adapter_name not in self._adapters:
            raise KeyError(f"Adapter {adapter_name} not found in registry. "
                           f"Available: {', '.join(sorted(self._adapters))}")
        return self._adapters[adapter_name]

    def create(self, adapter_name: str, config: ProbeConfig, credentials: Credentials) -> BaseClientAdapter:
        """Create an adapter instance by name"""
        adapter_class = self.get_adapter_class(adapter_name)
        return adapter_class(config, credentials)

    def list_registered_adapters(self) -> List[str]:
        """Get list of registered adapter names"""
        return list(self._adapters.keys())

    def describe_adapters(self) -> Dict[str, Dict[str, object]]:
        """Get API version and supported operations per registered adapter"""
        return {
            name: {
                'api_version': adapter_class.api_version,
                'operations': sorted(adapter_class.supported_operations),
            }
            for name, adapter_class in self._adapters.items()
        }


# Global adapter registry instance
_registry = AdapterRegistry()


def register_adapter(adapter_class: Type[BaseClientAdapter]):
    """Decorator to register an adapter class"""
    _registry.register_adapter(adapter_class)
    return adapter_class


def get_registry() -> AdapterRegistry:
    """Get the global adapter registry"""
    return _registry


class AdapterFactory:
    """Factory for creating the adapter pair a probe compares"""

    def __init__(self, config: ProbeConfig, credentials: Credentials):
        self.config = config
        self.credentials = credentials
        self.registry = get_registry()
        self.logger = logging.getLogger('inventory_probe.factory')

    def create_adapter(self, adapter_name: str) -> BaseClientAdapter:
        """Create a specific adapter instance"""
        return self.registry.create(adapter_name, self.config, self.credentials)

    def create_pair(self) -> List[BaseClientAdapter]:
        """Create the two adapters named in the configuration, A first"""
        self.logger.info(f"Comparing adapters: {self.config.adapter_a} vs {self.config.adapter_b}")
        return [self.create_adapter(self.config.adapter_a), self.create_adapter(self.config.adapter_b)]

    def log_available_adapters(self):
        """Log information about available adapters"""
        adapters = self.registry.list_registered_adapters()
        self.logger.info(f"Available adapters ({len(adapters)}): {', '.join(sorted(adapters))}")

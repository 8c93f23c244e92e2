"""
Base class for client adapters.

A client adapter wraps one boto3 API surface and translates its native
request/response shapes into the version-agnostic resource model.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple
import logging

from botocore.config import Config

from ..core.cancellation import CancellationToken
from ..core.config import ProbeConfig
from ..core.credentials import Credentials
from ..core.errors import ProbeError, translate_error
from ..core.models import StorageBucket, StoredObject

Page = Tuple[List[Any], Optional[Any]]

ALL_OPERATIONS = (
    'list_compute_instances',
    'list_networks',
    'list_subnets',
    'create_bucket',
    'head_bucket',
    'list_buckets',
    'get_bucket_location',
    'put_object',
    'list_objects',
    'delete_object',
    'delete_bucket',
)


class BaseClientAdapter(ABC):
    """Abstract base class for client adapters"""

    # Declared by each concrete adapter
    adapter_name: str = ""
    api_version: str = ""
    supported_operations: FrozenSet[str] = frozenset()

    def __init__(self, config: ProbeConfig, credentials: Credentials):
        """Initialize adapter with configuration and resolved credentials"""
        self.config = config
        self.credentials = credentials
        self.region = credentials.region
        self.logger = logging.getLogger(f'inventory_probe.adapter.{self.get_adapter_name()}')

        # Per-service handle cache
        self._handles = {}

        # Adapter statistics
        self.stats = {
            'api_calls_made': 0,
            'pages_fetched': 0,
            'errors': 0,
            'cancelled': 0,
        }

    def get_adapter_name(self) -> str:
        """Return the adapter name (e.g., 'client', 'resource')"""
        return self.adapter_name

    def get_api_version(self) -> str:
        """Return a short label for the API surface this adapter wraps"""
        return self.api_version

    def get_supported_operations(self) -> FrozenSet[str]:
        """Return the subset of ALL_OPERATIONS this adapter implements"""
        return self.supported_operations

    def supports(self, operation: str) -> bool:
        return operation in self.get_supported_operations()

    def get_botocore_config(self) -> Config:
        """Client config with no implicit retries beyond max_attempts"""
        return Config(
            region_name=self.region,
            connect_timeout=self.config.connect_timeout,
            read_timeout=self.config.read_timeout,
            retries={'max_attempts': self.config.max_attempts, 'mode': 'standard'},
        )

    def get_handle(self, service_name: str):
        """Get cached boto3 handle (client or resource) for service"""
        if service_name not in self._handles:
            try:
                self._handles[service_name] = self._create_handle(service_name)
            except Exception as e:
                self.logger.error(f"Failed to create {service_name} handle: {e}")
                raise translate_error(e, operation='connect', adapter=self.get_adapter_name())

        return self._handles[service_name]

    @abstractmethod
    def _create_handle(self, service_name: str):
        """Create the boto3 client or resource for service"""
        pass

    def _invoke(self, operation: str, func: Callable, *args,
                cancel_token: Optional[CancellationToken] = None, **kwargs):
        """Run one remote call, honoring cancellation and translating errors"""
        adapter_name = self.get_adapter_name()
        if cancel_token is not None:
            try:
                cancel_token.raise_if_cancelled(operation, adapter_name)
            except ProbeError:
                self.stats['cancelled'] += 1
                raise

        self.stats['api_calls_made'] += 1
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            error = translate_error(e, operation=operation, adapter=adapter_name)
            self.stats['errors'] += 1
            self.logger.warning(f"✗ {operation}: {error.kind} - {error}")
            raise error from e

        if cancel_token is not None:
            try:
                cancel_token.raise_if_cancelled(operation, adapter_name)
            except ProbeError:
                self.stats['cancelled'] += 1
                raise

        return result

    def _unsupported(self, operation: str):
        raise NotImplementedError(f"{self.get_adapter_name()} adapter does not support {operation}")

    # Listing operations return (page, next_token); a None token ends pagination

    def list_compute_instances(self, token: Optional[Any] = None,
                               cancel_token: Optional[CancellationToken] = None) -> Page:
        self._unsupported('list_compute_instances')

    def list_networks(self, token: Optional[Any] = None,
                      cancel_token: Optional[CancellationToken] = None) -> Page:
        self._unsupported('list_networks')

    def list_subnets(self, token: Optional[Any] = None,
                     cancel_token: Optional[CancellationToken] = None) -> Page:
        self._unsupported('list_subnets')

    def list_buckets(self, token: Optional[Any] = None,
                     cancel_token: Optional[CancellationToken] = None) -> Page:
        self._unsupported('list_buckets')

    def list_objects(self, bucket_name: str, token: Optional[Any] = None,
                     cancel_token: Optional[CancellationToken] = None) -> Page:
        self._unsupported('list_objects')

    # Mutating and point operations

    def create_bucket(self, bucket_name: str,
                      cancel_token: Optional[CancellationToken] = None) -> StorageBucket:
        self._unsupported('create_bucket')

    def head_bucket(self, bucket_name: str,
                    cancel_token: Optional[CancellationToken] = None) -> bool:
        self._unsupported('head_bucket')

    def get_bucket_location(self, bucket_name: str,
                            cancel_token: Optional[CancellationToken] = None) -> str:
        self._unsupported('get_bucket_location')

    def put_object(self, bucket_name: str, key: str, content: bytes,
                   cancel_token: Optional[CancellationToken] = None) -> StoredObject:
        self._unsupported('put_object')

    def delete_object(self, bucket_name: str, key: str,
                      cancel_token: Optional[CancellationToken] = None):
        self._unsupported('delete_object')

    def delete_bucket(self, bucket_name: str,
                      cancel_token: Optional[CancellationToken] = None):
        self._unsupported('delete_bucket')

    def create_bucket_kwargs(self, bucket_name: str) -> Dict[str, Any]:
        """CreateBucket parameters; the primary region rejects a LocationConstraint"""
        kwargs = {'Bucket': bucket_name}
        if self.region != self.config.primary_region:
            kwargs['CreateBucketConfiguration'] = {'LocationConstraint': self.region}
        return kwargs

    def get_statistics(self) -> Dict[str, Any]:
        """Get adapter call statistics"""
        return {
            'adapter': self.get_adapter_name(),
            'api_version': self.get_api_version(),
            'region': self.region,
            'stats': self.stats.copy(),
        }

    def log_statistics(self):
        """Log adapter call statistics"""
        stats = self.stats
        adapter_name = self.get_adapter_name().upper()

        self.logger.info(f"📊 {adapter_name} Adapter Statistics:")
        self.logger.info(f"   API Calls: {stats['api_calls_made']}")
        self.logger.info(f"   Pages Fetched: {stats['pages_fetched']}")

        if stats['errors'] > 0:
            self.logger.warning(f"   Errors: {stats['errors']}")

        if stats['cancelled'] > 0:
            self.logger.info(f"   Cancelled Calls: {stats['cancelled']}")

"""
Client adapter built on the boto3 low-level client interface.

Requests and responses are plain dicts; pagination follows the explicit
NextToken / ContinuationToken fields returned by each call.
"""

from typing import Any, Dict, Optional

from .base import ALL_OPERATIONS, BaseClientAdapter, Page
from .registry import register_adapter
from ..core.cancellation import CancellationToken
from ..core.errors import NotFound
from ..core.models import (
    StorageBucket,
    StoredObject,
    normalize_bucket,
    normalize_instance,
    normalize_network,
    normalize_object,
    normalize_region,
    normalize_subnet,
)


@register_adapter
class ClientAPIAdapter(BaseClientAdapter):
    """Adapter for the boto3 client API (dict request/response shapes)"""

    adapter_name = "client"
    api_version = "boto3-client"
    supported_operations = frozenset(ALL_OPERATIONS)

    def _create_handle(self, service_name: str):
        return self.credentials.session.client(
            service_name,
            region_name=self.region,
            config=self.get_botocore_config()
        )

    def _page_args(self, token: Optional[str], token_field: str = 'NextToken',
                   size_field: str = 'MaxResults') -> Dict[str, Any]:
        kwargs = {}
        if token:
            kwargs[token_field] = token
        if self.config.page_size:
            kwargs[size_field] = self.config.page_size
        return kwargs

    def list_compute_instances(self, token: Optional[str] = None,
                               cancel_token: Optional[CancellationToken] = None) -> Page:
        ec2 = self.get_handle('ec2')
        response = self._invoke('list_compute_instances', ec2.describe_instances,
                                cancel_token=cancel_token, **self._page_args(token))
        self.stats['pages_fetched'] += 1

        # Instances are nested one level down under reservations
        instances = []
        for reservation in response.get('Reservations', []):
            for instance in reservation.get('Instances', []):
                instances.append(normalize_instance(instance))

        return instances, response.get('NextToken') or None

    def list_networks(self, token: Optional[str] = None,
                      cancel_token: Optional[CancellationToken] = None) -> Page:
        ec2 = self.get_handle('ec2')
        response = self._invoke('list_networks', ec2.describe_vpcs,
                                cancel_token=cancel_token, **self._page_args(token))
        self.stats['pages_fetched'] += 1
        networks = [normalize_network(vpc) for vpc in response.get('Vpcs', [])]
        return networks, response.get('NextToken') or None

    def list_subnets(self, token: Optional[str] = None,
                     cancel_token: Optional[CancellationToken] = None) -> Page:
        ec2 = self.get_handle('ec2')
        response = self._invoke('list_subnets', ec2.describe_subnets,
                                cancel_token=cancel_token, **self._page_args(token))
        self.stats['pages_fetched'] += 1
        subnets = [normalize_subnet(subnet) for subnet in response.get('Subnets', [])]
        return subnets, response.get('NextToken') or None

    def list_buckets(self, token: Optional[str] = None,
                     cancel_token: Optional[CancellationToken] = None) -> Page:
        s3 = self.get_handle('s3')
        kwargs = {}
        if token:
            kwargs['ContinuationToken'] = token
        response = self._invoke('list_buckets', s3.list_buckets, cancel_token=cancel_token, **kwargs)
        self.stats['pages_fetched'] += 1
        buckets = [
            normalize_bucket(bucket, self.config.primary_region)
            for bucket in response.get('Buckets', [])
        ]
        return buckets, response.get('ContinuationToken') or None

    def list_objects(self, bucket_name: str, token: Optional[str] = None,
                     cancel_token: Optional[CancellationToken] = None) -> Page:
        s3 = self.get_handle('s3')
        kwargs = self._page_args(token, token_field='ContinuationToken', size_field='MaxKeys')
        response = self._invoke('list_objects', s3.list_objects_v2,
                                cancel_token=cancel_token, Bucket=bucket_name, **kwargs)
        self.stats['pages_fetched'] += 1
        objects = [normalize_object(obj, bucket_name) for obj in response.get('Contents', [])]
        next_token = response.get('NextContinuationToken') if response.get('IsTruncated') else None
        return objects, next_token

    def create_bucket(self, bucket_name: str,
                      cancel_token: Optional[CancellationToken] = None) -> StorageBucket:
        s3 = self.get_handle('s3')
        self._invoke('create_bucket', s3.create_bucket,
                     cancel_token=cancel_token, **self.create_bucket_kwargs(bucket_name))
        self.logger.info(f"✓ Created bucket {bucket_name} in {self.region}")
        return StorageBucket(name=bucket_name, region=normalize_region(self.region, self.config.primary_region))

    def head_bucket(self, bucket_name: str,
                    cancel_token: Optional[CancellationToken] = None) -> bool:
        s3 = self.get_handle('s3')
        try:
            self._invoke('head_bucket', s3.head_bucket, cancel_token=cancel_token, Bucket=bucket_name)
        except NotFound:
            return False
        return True

    def get_bucket_location(self, bucket_name: str,
                            cancel_token: Optional[CancellationToken] = None) -> str:
        s3 = self.get_handle('s3')
        response = self._invoke('get_bucket_location', s3.get_bucket_location,
                                cancel_token=cancel_token, Bucket=bucket_name)
        return normalize_region(response.get('LocationConstraint'), self.config.primary_region)

    def put_object(self, bucket_name: str, key: str, content: bytes,
                   cancel_token: Optional[CancellationToken] = None) -> StoredObject:
        s3 = self.get_handle('s3')
        self._invoke('put_object', s3.put_object,
                     cancel_token=cancel_token, Bucket=bucket_name, Key=key, Body=content)
        return StoredObject(bucket_name=bucket_name, key=key, content=content, size=len(content))

    def delete_object(self, bucket_name: str, key: str,
                      cancel_token: Optional[CancellationToken] = None):
        s3 = self.get_handle('s3')
        self._invoke('delete_object', s3.delete_object,
                     cancel_token=cancel_token, Bucket=bucket_name, Key=key)

    def delete_bucket(self, bucket_name: str,
                      cancel_token: Optional[CancellationToken] = None):
        s3 = self.get_handle('s3')
        self._invoke('delete_bucket', s3.delete_bucket, cancel_token=cancel_token, Bucket=bucket_name)
        self.logger.info(f"✓ Deleted bucket {bucket_name}")

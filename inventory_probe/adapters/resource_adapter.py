"""
Client adapter built on the boto3 resource interface.

Responses are resource objects with snake_case attributes and collections
paginate through ``.pages()``. Continuation tokens handed to callers are
opaque single-use cursors over the live page iterator.
"""

from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

from .base import ALL_OPERATIONS, BaseClientAdapter, Page
from .registry import register_adapter
from ..core.cancellation import CancellationToken
from ..core.errors import NotFound
from ..core.models import (
    ComputeInstance,
    InstanceState,
    Network,
    StorageBucket,
    StoredObject,
    Subnet,
    normalize_region,
    normalize_timestamp,
    parse_tags,
    text,
)


class PageCursor:
    """Opaque continuation token wrapping a collection page iterator.

    Holds one page of look-ahead so that a page is only reported as having
    a successor when that successor actually exists.
    """

    def __init__(self, pages: Iterable[Iterable[Any]], owner: str):
        self._pages: Iterator[Iterable[Any]] = iter(pages)
        self._lookahead: Optional[List[Any]] = None
        self.owner = owner
        self.exhausted = False

    def take(self) -> Tuple[List[Any], bool]:
        """Return the next page and whether another page follows it"""
        if self.exhausted:
            raise ValueError("Page cursor already consumed")

        if self._lookahead is not None:
            page = self._lookahead
        else:
            page = list(next(self._pages, []))

        following = next(self._pages, None)
        if following is None:
            self._lookahead = None
            self.exhausted = True
        else:
            self._lookahead = list(following)

        return page, not self.exhausted

    def __repr__(self) -> str:
        return f"<PageCursor owner={self.owner} exhausted={self.exhausted}>"


@register_adapter
class ResourceAPIAdapter(BaseClientAdapter):
    """Adapter for the boto3 resource API (object attribute shapes)"""

    adapter_name = "resource"
    api_version = "boto3-resource"
    supported_operations = frozenset(ALL_OPERATIONS)

    def _create_handle(self, service_name: str):
        return self.credentials.session.resource(
            service_name,
            region_name=self.region,
            config=self.get_botocore_config()
        )

    def _list_collection(self, operation: str, collection_factory: Callable,
                         convert: Callable[[Any], Any], token: Optional[PageCursor],
                         cancel_token: Optional[CancellationToken]) -> Page:
        """Fetch one page of a resource collection through a cursor"""
        if token is None:
            collection = collection_factory()
            if self.config.page_size:
                collection = collection.page_size(self.config.page_size)
            cursor = PageCursor(collection.pages(), owner=self.get_adapter_name())
        elif isinstance(token, PageCursor) and token.owner == self.get_adapter_name():
            cursor = token
        else:
            raise ValueError(f"Token {token!r} was not issued by the {self.get_adapter_name()} adapter")

        raw_page, has_more = self._invoke(operation, cursor.take, cancel_token=cancel_token)
        self.stats['pages_fetched'] += 1
        return [convert(item) for item in raw_page], cursor if has_more else None

    def _to_instance(self, instance) -> ComputeInstance:
        state = instance.state or {}
        return ComputeInstance(
            id=text(instance.id),
            state=InstanceState.parse(state.get('Name')),
            instance_type=text(instance.instance_type),
            tags=parse_tags(instance.tags),
        )

    def _to_network(self, vpc) -> Network:
        return Network(
            id=text(vpc.id),
            cidr_block=text(vpc.cidr_block),
            is_default=bool(vpc.is_default),
            tags=parse_tags(vpc.tags),
        )

    def _to_subnet(self, subnet) -> Subnet:
        return Subnet(
            id=text(subnet.id),
            network_id=text(subnet.vpc_id),
            cidr_block=text(subnet.cidr_block),
            availability_zone=text(subnet.availability_zone),
            tags=parse_tags(subnet.tags),
        )

    def _to_bucket(self, bucket) -> StorageBucket:
        # bucket_region is only modelled by recent botocore releases
        return StorageBucket(
            name=text(bucket.name),
            creation_timestamp=normalize_timestamp(bucket.creation_date),
            region=normalize_region(getattr(bucket, 'bucket_region', None), self.config.primary_region),
        )

    def _to_object(self, summary) -> StoredObject:
        return StoredObject(
            bucket_name=text(summary.bucket_name),
            key=text(summary.key),
            size=int(summary.size or 0),
        )

    def list_compute_instances(self, token: Optional[PageCursor] = None,
                               cancel_token: Optional[CancellationToken] = None) -> Page:
        ec2 = self.get_handle('ec2')
        return self._list_collection('list_compute_instances', ec2.instances.all,
                                     self._to_instance, token, cancel_token)

    def list_networks(self, token: Optional[PageCursor] = None,
                      cancel_token: Optional[CancellationToken] = None) -> Page:
        ec2 = self.get_handle('ec2')
        return self._list_collection('list_networks', ec2.vpcs.all, self._to_network, token, cancel_token)

    def list_subnets(self, token: Optional[PageCursor] = None,
                     cancel_token: Optional[CancellationToken] = None) -> Page:
        ec2 = self.get_handle('ec2')
        return self._list_collection('list_subnets', ec2.subnets.all, self._to_subnet, token, cancel_token)

    def list_buckets(self, token: Optional[PageCursor] = None,
                     cancel_token: Optional[CancellationToken] = None) -> Page:
        s3 = self.get_handle('s3')
        return self._list_collection('list_buckets', s3.buckets.all, self._to_bucket, token, cancel_token)

    def list_objects(self, bucket_name: str, token: Optional[PageCursor] = None,
                     cancel_token: Optional[CancellationToken] = None) -> Page:
        s3 = self.get_handle('s3')
        bucket = s3.Bucket(bucket_name)
        return self._list_collection('list_objects', bucket.objects.all, self._to_object, token, cancel_token)

    def create_bucket(self, bucket_name: str,
                      cancel_token: Optional[CancellationToken] = None) -> StorageBucket:
        s3 = self.get_handle('s3')
        bucket = self._invoke('create_bucket', s3.create_bucket,
                              cancel_token=cancel_token, **self.create_bucket_kwargs(bucket_name))
        self.logger.info(f"✓ Created bucket {bucket.name} in {self.region}")
        return StorageBucket(name=bucket.name, region=normalize_region(self.region, self.config.primary_region))

    def head_bucket(self, bucket_name: str,
                    cancel_token: Optional[CancellationToken] = None) -> bool:
        # HeadBucket has no resource model; the service resource exposes its client
        s3 = self.get_handle('s3')
        try:
            self._invoke('head_bucket', s3.meta.client.head_bucket,
                         cancel_token=cancel_token, Bucket=bucket_name)
        except NotFound:
            return False
        return True

    def get_bucket_location(self, bucket_name: str,
                            cancel_token: Optional[CancellationToken] = None) -> str:
        s3 = self.get_handle('s3')
        response = self._invoke('get_bucket_location', s3.meta.client.get_bucket_location,
                                cancel_token=cancel_token, Bucket=bucket_name)
        return normalize_region(response.get('LocationConstraint'), self.config.primary_region)

    def put_object(self, bucket_name: str, key: str, content: bytes,
                   cancel_token: Optional[CancellationToken] = None) -> StoredObject:
        s3 = self.get_handle('s3')
        s3_object = s3.Object(bucket_name, key)
        self._invoke('put_object', s3_object.put, cancel_token=cancel_token, Body=content)
        return StoredObject(bucket_name=bucket_name, key=key, content=content, size=len(content))

    def delete_object(self, bucket_name: str, key: str,
                      cancel_token: Optional[CancellationToken] = None):
        s3 = self.get_handle('s3')
        self._invoke('delete_object', s3.Object(bucket_name, key).delete, cancel_token=cancel_token)

    def delete_bucket(self, bucket_name: str,
                      cancel_token: Optional[CancellationToken] = None):
        s3 = self.get_handle('s3')
        self._invoke('delete_bucket', s3.Bucket(bucket_name).delete, cancel_token=cancel_token)
        self.logger.info(f"✓ Deleted bucket {bucket_name}")

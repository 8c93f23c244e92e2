"""
Inventory fetcher: drives paginated listing calls through a client adapter.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .cancellation import CancellationToken
from .models import InventorySnapshot, ResourceKind

LISTING_OPERATIONS = {
    ResourceKind.COMPUTE_INSTANCE: 'list_compute_instances',
    ResourceKind.NETWORK: 'list_networks',
    ResourceKind.SUBNET: 'list_subnets',
    ResourceKind.STORAGE_BUCKET: 'list_buckets',
    ResourceKind.STORED_OBJECT: 'list_objects',
}

logger = logging.getLogger('inventory_probe.fetcher')


class InventoryFetcher:
    """Fetch complete, immutable inventory snapshots from an adapter.

    A fetch either returns every page the backend serves, concatenated in
    server order, or raises the first adapter error unchanged. Pages fetched
    before a failure are discarded.
    """

    def __init__(self, cancel_token: Optional[CancellationToken] = None):
        self.cancel_token = cancel_token

    def fetch_all(self, adapter, kind: ResourceKind, page_limit: Optional[int] = None,
                  bucket_name: Optional[str] = None,
                  cancel_token: Optional[CancellationToken] = None) -> InventorySnapshot:
        """Fetch every page of one resource kind.

        Args:
            adapter: Client adapter to list through
            kind: Resource kind to list
            page_limit: Display cap; items beyond it are still returned but
                counted in ``truncated_count``
            bucket_name: Bucket to list, required for stored objects
            cancel_token: Overrides the fetcher-wide cancellation token

        Returns:
            InventorySnapshot owned by the caller
        """
        kind = ResourceKind(kind)
        if page_limit is not None and page_limit < 0:
            raise ValueError(f"Invalid page limit: {page_limit}")

        operation = LISTING_OPERATIONS[kind]
        if not adapter.supports(operation):
            raise NotImplementedError(f"{adapter.get_adapter_name()} adapter does not support {operation}")

        kwargs: Dict[str, Any] = {}
        if kind == ResourceKind.STORED_OBJECT:
            if not bucket_name:
                raise ValueError("bucket_name is required to list stored objects")
            kwargs['bucket_name'] = bucket_name

        token = cancel_token or self.cancel_token
        list_page = getattr(adapter, operation)
        adapter_name = adapter.get_adapter_name()

        items: List[Any] = []
        pages = 0
        next_token = None
        while True:
            if token is not None:
                token.raise_if_cancelled(operation, adapter_name)

            page, next_token = list_page(token=next_token, cancel_token=token, **kwargs)
            items.extend(page)
            pages += 1
            logger.debug(f"{adapter_name}.{operation}: page {pages} with {len(page)} items")

            if next_token is None:
                break

        truncated = max(len(items) - page_limit, 0) if page_limit is not None else 0
        logger.info(f"✓ {adapter_name}: {len(items)} {kind.value} item(s) in {pages} page(s)")

        return InventorySnapshot(
            kind=kind,
            items=tuple(items),
            fetched_at=datetime.now(timezone.utc),
            adapter=adapter_name,
            truncated_count=truncated,
            page_count=pages,
        )


def fetch_all(adapter, kind: ResourceKind, page_limit: Optional[int] = None,
              bucket_name: Optional[str] = None,
              cancel_token: Optional[CancellationToken] = None) -> InventorySnapshot:
    """Module-level shortcut for InventoryFetcher().fetch_all"""
    return InventoryFetcher().fetch_all(adapter, kind, page_limit=page_limit,
                                        bucket_name=bucket_name, cancel_token=cancel_token)

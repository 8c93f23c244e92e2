"""
Cross-adapter reconciliation of inventory snapshots.
"""

from dataclasses import fields
from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple, Union

from .models import InventorySnapshot, ReconciliationResult, Resource


def _values_equal(value_a: Any, value_b: Any, tolerance: timedelta) -> bool:
    if isinstance(value_a, datetime) and isinstance(value_b, datetime):
        return abs(value_a - value_b) <= tolerance
    return value_a == value_b


def compare_fields(item_a: Resource, item_b: Resource,
                   tolerance: timedelta = timedelta(0)) -> Dict[str, Tuple[Any, Any]]:
    """Field-by-field comparison of two resources of the same type"""
    if type(item_a) is not type(item_b):
        raise TypeError(f"Cannot compare {type(item_a).__name__} with {type(item_b).__name__}")

    mismatches = {}
    for model_field in fields(item_a):
        value_a = getattr(item_a, model_field.name)
        value_b = getattr(item_b, model_field.name)
        if not _values_equal(value_a, value_b, tolerance):
            mismatches[model_field.name] = (value_a, value_b)
    return mismatches


def reconcile(snapshot_a: InventorySnapshot, snapshot_b: InventorySnapshot,
              timestamp_tolerance: Union[timedelta, float] = timedelta(0)) -> List[ReconciliationResult]:
    """Compare two snapshots of the same resource kind.

    Results cover the union of ids: ids seen in A in A's order, followed by
    ids seen only in B in B's order. A resource missing from one side is
    reported, not raised; eventual consistency makes that expected.
    """
    if snapshot_a.kind != snapshot_b.kind:
        raise ValueError(f"Cannot reconcile {snapshot_a.kind.value} against {snapshot_b.kind.value}")

    if not isinstance(timestamp_tolerance, timedelta):
        timestamp_tolerance = timedelta(seconds=timestamp_tolerance)

    # Duplicate ids within a snapshot: the last one wins
    by_id_a = {item.resource_id: item for item in snapshot_a.items}
    by_id_b = {item.resource_id: item for item in snapshot_b.items}

    ordered_ids = list(by_id_a)
    ordered_ids.extend(resource_id for resource_id in by_id_b if resource_id not in by_id_a)

    results = []
    for resource_id in ordered_ids:
        item_a = by_id_a.get(resource_id)
        item_b = by_id_b.get(resource_id)
        mismatches = {}
        if item_a is not None and item_b is not None:
            mismatches = compare_fields(item_a, item_b, timestamp_tolerance)
        results.append(ReconciliationResult(
            resource_id=resource_id,
            found_in_a=item_a is not None,
            found_in_b=item_b is not None,
            field_mismatches=mismatches,
        ))

    return results

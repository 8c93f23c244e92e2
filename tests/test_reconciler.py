from datetime import datetime, timedelta, timezone

import pytest

from inventory_probe.core.models import (
    InventorySnapshot,
    Network,
    ResourceKind,
    StorageBucket,
    Subnet,
    Tag,
)
from inventory_probe.core.reconciler import compare_fields, reconcile

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def snapshot(kind, *items, adapter="a"):
    return InventorySnapshot(kind=kind, items=tuple(items), fetched_at=NOW, adapter=adapter)


def test_snapshot_reconciled_with_itself_is_fully_consistent():
    snap = snapshot(
        ResourceKind.SUBNET,
        Subnet(id="subnet-1", network_id="vpc-1", cidr_block="10.0.1.0/24", availability_zone="us-east-1a"),
        Subnet(id="subnet-2", network_id="vpc-1", cidr_block="10.0.2.0/24", availability_zone="us-east-1b"),
    )

    results = reconcile(snap, snap)

    assert [r.resource_id for r in results] == ["subnet-1", "subnet-2"]
    assert all(r.found_in_a and r.found_in_b for r in results)
    assert all(r.field_mismatches == {} for r in results)


def test_reconcile_is_symmetric_up_to_side_swap():
    snap_a = snapshot(
        ResourceKind.NETWORK,
        Network(id="vpc-1", cidr_block="10.0.0.0/16", is_default=False),
        Network(id="vpc-2", cidr_block="10.1.0.0/16"),
    )
    snap_b = snapshot(
        ResourceKind.NETWORK,
        Network(id="vpc-1", cidr_block="10.0.0.0/16", is_default=True, tags=(Tag("Name", "main"),)),
        Network(id="vpc-3", cidr_block="10.2.0.0/16"),
    )

    forward = {r.resource_id: r for r in reconcile(snap_a, snap_b)}
    backward = {r.resource_id: r for r in reconcile(snap_b, snap_a)}

    assert set(forward) == set(backward) == {"vpc-1", "vpc-2", "vpc-3"}
    for resource_id, result in forward.items():
        swapped = backward[resource_id]
        assert (result.found_in_a, result.found_in_b) == (swapped.found_in_b, swapped.found_in_a)
        assert set(result.field_mismatches) == set(swapped.field_mismatches)
        for name, (value_a, value_b) in result.field_mismatches.items():
            assert swapped.field_mismatches[name] == (value_b, value_a)
    assert set(forward["vpc-1"].field_mismatches) == {"is_default", "tags"}


def test_resource_missing_from_b_is_reported_without_mismatches():
    snap_a = snapshot(ResourceKind.NETWORK, Network(id="vpc-9", cidr_block="10.0.0.0/16"))
    snap_b = snapshot(ResourceKind.NETWORK)

    results = reconcile(snap_a, snap_b)

    assert len(results) == 1
    assert results[0].resource_id == "vpc-9"
    assert results[0].found_in_a is True
    assert results[0].found_in_b is False
    assert results[0].field_mismatches == {}
    assert not results[0].is_consistent


def test_bucket_listings_from_two_adapters():
    snap_a = snapshot(ResourceKind.STORAGE_BUCKET,
                      StorageBucket("alpha", NOW), StorageBucket("beta", NOW))
    snap_b = snapshot(ResourceKind.STORAGE_BUCKET,
                      StorageBucket("beta", NOW), StorageBucket("gamma", NOW))

    results = reconcile(snap_a, snap_b)

    assert [(r.resource_id, r.found_in_a, r.found_in_b) for r in results] == [
        ("alpha", True, False),
        ("beta", True, True),
        ("gamma", False, True),
    ]
    assert results[1].field_mismatches == {}
    assert results[1].is_consistent


def test_timestamp_tolerance_window():
    snap_a = snapshot(ResourceKind.STORAGE_BUCKET, StorageBucket("alpha", NOW))
    snap_b = snapshot(ResourceKind.STORAGE_BUCKET, StorageBucket("alpha", NOW + timedelta(seconds=2)))

    strict = reconcile(snap_a, snap_b)
    tolerant = reconcile(snap_a, snap_b, timestamp_tolerance=5)

    assert set(strict[0].field_mismatches) == {"creation_timestamp"}
    assert tolerant[0].field_mismatches == {}


def test_missing_timestamp_on_one_side_is_a_mismatch():
    snap_a = snapshot(ResourceKind.STORAGE_BUCKET, StorageBucket("alpha", NOW))
    snap_b = snapshot(ResourceKind.STORAGE_BUCKET, StorageBucket("alpha", None))

    results = reconcile(snap_a, snap_b, timestamp_tolerance=timedelta(days=1))

    assert results[0].field_mismatches == {"creation_timestamp": (NOW, None)}


def test_duplicate_ids_last_write_wins():
    snap_a = snapshot(ResourceKind.NETWORK,
                      Network(id="vpc-1", cidr_block="10.0.0.0/16"),
                      Network(id="vpc-1", cidr_block="10.9.0.0/16"))
    snap_b = snapshot(ResourceKind.NETWORK, Network(id="vpc-1", cidr_block="10.9.0.0/16"))

    results = reconcile(snap_a, snap_b)

    assert len(results) == 1
    assert results[0].field_mismatches == {}


def test_reconciling_different_kinds_is_rejected():
    with pytest.raises(ValueError):
        reconcile(snapshot(ResourceKind.NETWORK), snapshot(ResourceKind.SUBNET))


def test_compare_fields_rejects_different_types():
    with pytest.raises(TypeError):
        compare_fields(Network(id="x"), Subnet(id="x"))

import io

import pytest

from fakes import FakeAdapter
from inventory_probe.core.errors import (
    AuthenticationFailure,
    Conflict,
    NotFound,
    OperationCancelled,
    Throttled,
)
from inventory_probe.core.events import InventoryEvent, ReconciliationEvent, StepEvent
from inventory_probe.core.models import Network, ResourceKind, StorageBucket, Subnet
from inventory_probe.core.probe_engine import ProbeEngine
from inventory_probe.exporters import ConsoleExporter, JSONExporter


def no_sleep(seconds):
    pass


def network_pages():
    return {
        ResourceKind.COMPUTE_INSTANCE: [[]],
        ResourceKind.NETWORK: [[Network(id="vpc-1", cidr_block="10.0.0.0/16")]],
        ResourceKind.SUBNET: [[Subnet(id="subnet-1", network_id="vpc-1", cidr_block="10.0.1.0/24")]],
    }


@pytest.fixture
def fake_engine(probe_config):
    adapter_a = FakeAdapter("a", pages=network_pages())
    adapter_b = FakeAdapter("b", pages=network_pages())
    return ProbeEngine(probe_config, adapters=[adapter_a, adapter_b], sleep=no_sleep)


def test_engine_requires_exactly_two_adapters(probe_config):
    with pytest.raises(ValueError):
        ProbeEngine(probe_config, adapters=[FakeAdapter("a")])


def test_mixed_sdk_with_matching_views(fake_engine):
    report = fake_engine.run_mixed_sdk()

    assert not report.aborted
    assert report.errors == []
    inventory = [e for e in report.events if isinstance(e, InventoryEvent)]
    assert [(e.adapter, e.kind) for e in inventory] == [
        ("a", ResourceKind.COMPUTE_INSTANCE), ("a", ResourceKind.NETWORK), ("a", ResourceKind.SUBNET),
        ("b", ResourceKind.COMPUTE_INSTANCE), ("b", ResourceKind.NETWORK), ("b", ResourceKind.SUBNET),
    ]
    assert len(report.reconciliations()) == 3
    assert all(e.consistent for e in report.reconciliations())


def test_mixed_sdk_continues_past_retryable_errors(fake_engine):
    throttle = Throttled("slow down", code="RequestLimitExceeded", operation="list_subnets", adapter="b")
    fake_engine.adapter_b.fail_on(ResourceKind.SUBNET, 0, throttle)

    report = fake_engine.run_mixed_sdk()

    assert not report.aborted
    assert report.errors == [throttle]
    assert not report.has_fatal_errors()
    assert [e.kind for e in report.reconciliations()] == [ResourceKind.COMPUTE_INSTANCE, ResourceKind.NETWORK]
    skipped = [e for e in report.events if isinstance(e, StepEvent) and e.status == "warning"]
    assert len(skipped) == 1
    assert "subnet" in skipped[0].message


def test_mixed_sdk_aborts_on_fatal_error(fake_engine):
    denied = AuthenticationFailure("denied", code="AuthFailure", operation="list_networks", adapter="a")
    fake_engine.adapter_a.fail_on(ResourceKind.NETWORK, 0, denied)

    report = fake_engine.run_mixed_sdk()

    assert report.aborted
    assert report.errors == [denied]
    assert report.has_fatal_errors()
    assert report.reconciliations() == []
    assert fake_engine.adapter_b.calls == []


def test_mixed_sdk_emits_to_sinks(fake_engine, probe_config):
    stream = io.StringIO()
    fake_engine.sinks = [ConsoleExporter(probe_config, stream=stream)]

    report = fake_engine.run_mixed_sdk()

    output = stream.getvalue()
    assert "✓ Found 1 VPCs using a API" in output
    assert "     - vpc-1 (CIDR: 10.0.0.0/16, Default: false)" in output
    assert len(report.events) > 0


def test_wait_until_visible_times_out_with_not_found(fake_engine):
    fake_engine.adapter_b.pages[ResourceKind.STORAGE_BUCKET] = [[StorageBucket("other")]]

    with pytest.raises(NotFound) as excinfo:
        fake_engine.wait_until_visible(fake_engine.adapter_b, "missing-bucket", timeout=0)

    assert excinfo.value.code == "NotVisible"
    assert excinfo.value.adapter == "b"


def test_wait_until_visible_polls_until_bucket_appears(fake_engine):
    adapter = fake_engine.adapter_b
    adapter.pages[ResourceKind.STORAGE_BUCKET] = [[]]
    sleeps = []

    def appear_after_two_polls(seconds):
        sleeps.append(seconds)
        if len(sleeps) == 2:
            adapter.pages[ResourceKind.STORAGE_BUCKET] = [[StorageBucket("late-bucket")]]

    fake_engine._sleep = appear_after_two_polls
    snapshot = fake_engine.wait_until_visible(adapter, "late-bucket", timeout=60)

    assert snapshot.get("late-bucket") is not None
    assert len(sleeps) == 2


def test_wait_until_visible_propagates_fatal_errors(fake_engine):
    denied = AuthenticationFailure("denied", code="AccessDenied", operation="list_buckets", adapter="b")
    fake_engine.adapter_b.fail_on(ResourceKind.STORAGE_BUCKET, 0, denied)

    with pytest.raises(AuthenticationFailure):
        fake_engine.wait_until_visible(fake_engine.adapter_b, "any", timeout=60)


def test_cross_version_against_mocked_aws(probe_config, client_adapter, resource_adapter):
    engine = ProbeEngine(probe_config, adapters=[client_adapter, resource_adapter], sleep=no_sleep)

    report = engine.run_cross_version("cross-version-bucket")

    assert not report.aborted
    assert report.errors == []
    assert report.warnings == []
    assert report.bucket_name == "cross-version-bucket"

    reconciliation = report.reconciliations()
    assert len(reconciliation) == 1
    assert reconciliation[0].consistent
    assert [r.resource_id for r in reconciliation[0].results] == ["cross-version-bucket"]

    objects = [e for e in report.events if isinstance(e, InventoryEvent)]
    assert objects[0].kind is ResourceKind.STORED_OBJECT
    assert objects[0].count == 1

    messages = [e.message for e in report.events if isinstance(e, StepEvent)]
    assert f"Bucket location: {probe_config.region}" in messages
    assert "Bucket deleted successfully with resource API" in messages
    assert client_adapter.head_bucket("cross-version-bucket") is False
    assert [s["adapter"] for s in report.adapter_statistics] == ["client", "resource"]


def test_cross_version_generates_bucket_name(probe_config, client_adapter, resource_adapter):
    engine = ProbeEngine(probe_config, adapters=[client_adapter, resource_adapter], sleep=no_sleep)

    report = engine.run_cross_version()

    assert report.bucket_name.startswith("sdk-migration-test-")
    assert not report.aborted


def test_cross_version_reports_cleanup_failure(probe_config, client_adapter, resource_adapter, monkeypatch):
    def refuse_delete(bucket_name, cancel_token=None):
        raise Conflict("bucket busy", code="OperationAborted", operation="delete_bucket", adapter="resource")

    monkeypatch.setattr(resource_adapter, "delete_bucket", refuse_delete)
    engine = ProbeEngine(probe_config, adapters=[client_adapter, resource_adapter], sleep=no_sleep)

    report = engine.run_cross_version("sticky-bucket")

    assert not report.aborted
    assert [e.code for e in report.errors] == ["OperationAborted"]
    messages = [e.message for e in report.events if isinstance(e, StepEvent)]
    assert "Please manually delete bucket: sticky-bucket" in messages


def test_cross_version_aborts_when_bucket_never_becomes_visible(probe_config, client_adapter,
                                                               resource_adapter, monkeypatch):
    monkeypatch.setattr(resource_adapter, "list_buckets", lambda token=None, cancel_token=None: ([], None))
    probe_config.visibility_timeout = 0.01
    engine = ProbeEngine(probe_config, adapters=[client_adapter, resource_adapter], sleep=no_sleep)

    report = engine.run_cross_version("invisible-bucket")

    assert report.aborted
    assert isinstance(report.errors[0], NotFound)
    assert report.errors[0].code == "NotVisible"
    messages = [e.message for e in report.events if isinstance(e, StepEvent)]
    assert "Bucket 'invisible-bucket' was left in place; please delete it manually" in messages
    assert client_adapter.head_bucket("invisible-bucket") is True


def test_export_collects_written_paths(fake_engine, probe_config, tmp_path):
    fake_engine.sinks = [ConsoleExporter(probe_config, stream=io.StringIO()),
                         JSONExporter(probe_config, tmp_path)]
    report = fake_engine.run_mixed_sdk()

    assert fake_engine.export(report) == [tmp_path / "probe-report.json"]
    assert isinstance(report.events[-1], ReconciliationEvent)


def test_cancelled_create_that_succeeded_is_reported_for_manual_cleanup(probe_config, client_adapter,
                                                                        resource_adapter, monkeypatch):
    real_create = client_adapter.create_bucket

    def create_then_deadline(bucket_name, cancel_token=None):
        real_create(bucket_name)
        raise OperationCancelled("deadline exceeded", code="Cancelled",
                                 operation="create_bucket", adapter="client")

    monkeypatch.setattr(client_adapter, "create_bucket", create_then_deadline)
    engine = ProbeEngine(probe_config, adapters=[client_adapter, resource_adapter], sleep=no_sleep)

    report = engine.run_cross_version("half-created-bucket")

    assert report.aborted
    assert report.has_fatal_errors()
    assert isinstance(report.errors[0], OperationCancelled)
    messages = [e.message for e in report.events if isinstance(e, StepEvent)]
    assert "Bucket 'half-created-bucket' was left in place; please delete it manually" in messages
    assert client_adapter.head_bucket("half-created-bucket") is True


def test_failed_create_without_bucket_needs_no_cleanup(probe_config, client_adapter,
                                                       resource_adapter, monkeypatch):
    def refuse_create(bucket_name, cancel_token=None):
        raise Conflict("taken", code="BucketAlreadyExists", operation="create_bucket", adapter="client")

    monkeypatch.setattr(client_adapter, "create_bucket", refuse_create)
    engine = ProbeEngine(probe_config, adapters=[client_adapter, resource_adapter], sleep=no_sleep)

    report = engine.run_cross_version("someone-elses-bucket")

    assert report.aborted
    messages = [e.message for e in report.events if isinstance(e, StepEvent)]
    assert not any("manually" in message for message in messages)

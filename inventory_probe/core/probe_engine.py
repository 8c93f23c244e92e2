"""
Probe engine: runs the demonstration flows against a pair of adapters.

This is the caller layer. It owns every policy the core leaves open:
which errors abort a flow, polling for eventual consistency, and cleanup.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .cancellation import CancellationToken
from .config import ProbeConfig
from .credentials import SessionCredentialProvider
from .errors import NotFound, ProbeError
from .events import EventSink, InventoryEvent, ReconciliationEvent, StepEvent
from .fetcher import InventoryFetcher
from .models import InventorySnapshot, ResourceKind, StorageBucket
from .reconciler import reconcile
from ..adapters.registry import AdapterFactory
from ..utils.logging_setup import TimedLogger

NETWORK_KINDS = (ResourceKind.COMPUTE_INSTANCE, ResourceKind.NETWORK, ResourceKind.SUBNET)


@dataclass
class ProbeReport:
    """Everything a flow emitted, plus the errors it hit"""
    flow: str
    bucket_name: Optional[str] = None
    events: List[object] = field(default_factory=list)
    errors: List[ProbeError] = field(default_factory=list)
    warnings: List[ProbeError] = field(default_factory=list)
    aborted: bool = False
    adapter_statistics: List[Dict[str, Any]] = field(default_factory=list)

    def has_fatal_errors(self) -> bool:
        return self.aborted or any(not e.retryable for e in self.errors)

    def reconciliations(self) -> List[ReconciliationEvent]:
        return [e for e in self.events if isinstance(e, ReconciliationEvent)]


class ProbeEngine:
    """Run inventory comparisons and cross-management checks"""

    def __init__(self, config: ProbeConfig, adapters: Optional[List] = None,
                 sinks: Optional[List[EventSink]] = None, sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.logger = logging.getLogger('inventory_probe.engine')
        self.sinks = list(sinks or [])
        self._sleep = sleep

        if adapters is None:
            adapters = self._create_adapters()
        if len(adapters) != 2:
            raise ValueError(f"ProbeEngine compares exactly two adapters, got {len(adapters)}")
        self.adapter_a, self.adapter_b = adapters

    def _create_adapters(self) -> List:
        credentials = SessionCredentialProvider(self.config.region, self.config.profile).resolve()
        factory = AdapterFactory(self.config, credentials)
        factory.log_available_adapters()
        return factory.create_pair()

    def _new_cancel_token(self) -> Optional[CancellationToken]:
        if self.config.operation_timeout:
            return CancellationToken(timeout=self.config.operation_timeout)
        return None

    def _emit(self, report: ProbeReport, event):
        report.events.append(event)
        for sink in self.sinks:
            sink.emit(event)

    def _step(self, report: ProbeReport, phase: str, message: str,
              status: str = "ok", error: Optional[ProbeError] = None):
        self._emit(report, StepEvent(phase=phase, message=message, status=status, error=error))

    def _abort(self, report: ProbeReport, phase: str, error: ProbeError):
        report.errors.append(error)
        report.aborted = True
        self.logger.error(f"✗ Aborting {report.flow}: {error}")
        self._step(report, phase, "Aborted on fatal error", status="error", error=error)

    def run_mixed_sdk(self) -> ProbeReport:
        """List instances, VPCs and subnets through both adapters and compare"""
        report = ProbeReport(flow="mixed-sdk")
        fetcher = InventoryFetcher(cancel_token=self._new_cancel_token())
        snapshots: Dict[str, Dict[ResourceKind, InventorySnapshot]] = {}

        with TimedLogger(self.logger, "Mixed SDK comparison"):
            try:
                for adapter in (self.adapter_a, self.adapter_b):
                    name = adapter.get_adapter_name()
                    self._step(report, "inventory", f"Listing resources with {name} API ({adapter.get_api_version()})")
                    snapshots[name] = {}

                    for kind in NETWORK_KINDS:
                        try:
                            snapshot = fetcher.fetch_all(adapter, kind, page_limit=self.config.display_limit)
                        except ProbeError as e:
                            self._emit(report, InventoryEvent.from_error(name, kind, e))
                            if not e.retryable:
                                raise
                            report.errors.append(e)
                            continue

                        snapshots[name][kind] = snapshot
                        self._emit(report, InventoryEvent.from_snapshot(snapshot, self.config.display_limit))

                self._reconcile_all(report, snapshots)
            except ProbeError as e:
                self._abort(report, "inventory", e)

        self._finish(report)
        return report

    def _finish(self, report: ProbeReport):
        for adapter in (self.adapter_a, self.adapter_b):
            adapter.log_statistics()
            report.adapter_statistics.append(adapter.get_statistics())

    def _reconcile_all(self, report: ProbeReport, snapshots: Dict[str, Dict[ResourceKind, InventorySnapshot]]):
        name_a = self.adapter_a.get_adapter_name()
        name_b = self.adapter_b.get_adapter_name()
        self._step(report, "reconciliation", f"Comparing {name_a} and {name_b} views")

        for kind in NETWORK_KINDS:
            snapshot_a = snapshots.get(name_a, {}).get(kind)
            snapshot_b = snapshots.get(name_b, {}).get(kind)
            if snapshot_a is None or snapshot_b is None:
                self._step(report, "reconciliation", f"Skipping {kind.value}: listing failed", status="warning")
                continue

            results = reconcile(snapshot_a, snapshot_b, self.config.timestamp_tolerance)
            event = ReconciliationEvent(kind=kind, adapter_a=name_a, adapter_b=name_b, results=tuple(results))
            self._emit(report, event)
            if not event.consistent:
                self.logger.warning(f"⚠ {kind.value}: views differ between {name_a} and {name_b}")

    def wait_until_visible(self, adapter, bucket_name: str,
                           timeout: Optional[float] = None) -> InventorySnapshot:
        """Poll bucket listings until bucket_name shows up or the timeout passes.

        Retryable errors are absorbed while polling; fatal ones propagate.
        Raises NotFound when the bucket is still missing at the deadline.
        """
        deadline = CancellationToken(timeout=timeout if timeout is not None else self.config.visibility_timeout)
        fetcher = InventoryFetcher()
        attempts = 0
        last_error = None

        while True:
            attempts += 1
            try:
                snapshot = fetcher.fetch_all(adapter, ResourceKind.STORAGE_BUCKET)
                if snapshot.get(bucket_name) is not None:
                    self.logger.debug(f"Bucket {bucket_name} visible via {adapter.get_adapter_name()} "
                                      f"after {attempts} attempt(s)")
                    return snapshot
            except ProbeError as e:
                if not e.retryable:
                    raise
                last_error = e
                self.logger.info(f"Retrying after {e.kind}: {e}")

            if deadline.is_cancelled:
                break
            self._sleep(min(self.config.poll_interval, deadline.remaining() or 0.0))

        message = f"Bucket {bucket_name} not visible after {attempts} attempt(s)"
        if last_error is not None:
            message = f"{message}; last error: {last_error}"
        raise NotFound(message, code='NotVisible', operation='list_buckets', adapter=adapter.get_adapter_name())

    def run_cross_version(self, bucket_name: Optional[str] = None) -> ProbeReport:
        """Create a bucket through adapter A and manage it through adapter B"""
        bucket_name = bucket_name or f"{self.config.bucket_prefix}-{int(time.time())}"
        report = ProbeReport(flow="cross-version", bucket_name=bucket_name)
        cancel_token = self._new_cancel_token()
        name_a = self.adapter_a.get_adapter_name()
        name_b = self.adapter_b.get_adapter_name()
        created = False
        object_written = False

        self.logger.info(f"Test bucket name: {bucket_name}")

        with TimedLogger(self.logger, "Cross-version infrastructure check") as timer:
            try:
                # Phase 1: create and verify through adapter A
                phase = f"phase 1: create with {name_a} API"
                try:
                    self.adapter_a.create_bucket(bucket_name, cancel_token=cancel_token)
                except ProbeError:
                    # A failed or cancelled create may still have succeeded server-side
                    created = self._bucket_exists_after_failed_create(report, phase, bucket_name)
                    raise
                created = True
                self._step(report, phase, f"Bucket '{bucket_name}' created with {name_a} API")

                if not self.adapter_a.head_bucket(bucket_name, cancel_token=cancel_token):
                    raise NotFound(f"Bucket {bucket_name} missing right after creation",
                                   operation='head_bucket', adapter=name_a)
                self._step(report, phase, f"Bucket verified with {name_a} API")

                # Phase 2: manage the same bucket through adapter B
                phase = f"phase 2: manage with {name_b} API"
                snapshot_b = self.wait_until_visible(self.adapter_b, bucket_name)
                bucket = snapshot_b.get(bucket_name)
                timer.log_milestone(f"bucket visible via {name_b}")
                self._step(report, phase, f"Found bucket '{bucket_name}' created with {name_a} API, "
                                          f"now visible via {name_b} API (Created: {self._created(bucket)})")

                snapshot_a = InventoryFetcher(cancel_token).fetch_all(self.adapter_a, ResourceKind.STORAGE_BUCKET)
                results = [r for r in reconcile(snapshot_a, snapshot_b, self.config.timestamp_tolerance)
                           if r.resource_id == bucket_name]
                self._emit(report, ReconciliationEvent(kind=ResourceKind.STORAGE_BUCKET, adapter_a=name_a,
                                                       adapter_b=name_b, results=tuple(results)))

                location = self.adapter_b.get_bucket_location(bucket_name, cancel_token=cancel_token)
                self._step(report, phase, f"Bucket location: {location}")

                content = self.config.object_content.encode('utf-8')
                try:
                    self.adapter_b.put_object(bucket_name, self.config.object_key, content,
                                              cancel_token=cancel_token)
                    object_written = True
                    self._step(report, phase, f"Object '{self.config.object_key}' created with {name_b} API")
                except ProbeError as e:
                    report.warnings.append(e)
                    self._step(report, phase, "Failed to put object", status="warning", error=e)

                # Phase 3: changes made through B are visible back through A
                phase = f"phase 3: verify with {name_a} API"
                try:
                    objects = InventoryFetcher(cancel_token).fetch_all(
                        self.adapter_a, ResourceKind.STORED_OBJECT,
                        page_limit=self.config.display_limit, bucket_name=bucket_name
                    )
                    self._emit(report, InventoryEvent.from_snapshot(objects, self.config.display_limit))
                    self._step(report, phase, f"{name_a} API can see {len(objects)} object(s) in the bucket")
                except ProbeError as e:
                    report.warnings.append(e)
                    self._step(report, phase, "Listing objects failed", status="note", error=e)

            except ProbeError as e:
                self._abort(report, "abort", e)
                if created:
                    self._step(report, "abort", f"Bucket '{bucket_name}' was left in place; "
                                                f"please delete it manually", status="warning")
                self._finish(report)
                return report

            timer.log_milestone("cross-management checks finished")
            self._cleanup(report, bucket_name, object_written)

        self._finish(report)
        return report

    def _bucket_exists_after_failed_create(self, report: ProbeReport, phase: str, bucket_name: str) -> bool:
        name_a = self.adapter_a.get_adapter_name()
        try:
            exists = self.adapter_a.head_bucket(bucket_name)
        except ProbeError as e:
            report.warnings.append(e)
            self._step(report, phase, f"Could not verify whether bucket '{bucket_name}' exists; "
                                      f"check for it and delete it manually", status="warning", error=e)
            return False

        if exists:
            self.logger.warning(f"⚠ create_bucket failed but {bucket_name} exists according to {name_a}")
        return exists

    def _cleanup(self, report: ProbeReport, bucket_name: str, object_written: bool):
        phase = "cleanup"
        name_b = self.adapter_b.get_adapter_name()
        cancel_token = self._new_cancel_token()
        try:
            if object_written:
                self.adapter_b.delete_object(bucket_name, self.config.object_key, cancel_token=cancel_token)
                self._step(report, phase, f"Object '{self.config.object_key}' deleted with {name_b} API")
            self.adapter_b.delete_bucket(bucket_name, cancel_token=cancel_token)
            self._step(report, phase, f"Bucket deleted successfully with {name_b} API")
        except ProbeError as e:
            report.errors.append(e)
            self._step(report, phase, "Failed to delete bucket", status="warning", error=e)
            self._step(report, phase, f"Please manually delete bucket: {bucket_name}", status="warning")

    @staticmethod
    def _created(bucket: Optional[StorageBucket]) -> str:
        if bucket is None or bucket.creation_timestamp is None:
            return "unknown"
        return bucket.creation_timestamp.isoformat()

    def export(self, report: ProbeReport) -> List:
        """Hand the finished report to every sink; returns written paths"""
        paths = []
        for sink in self.sinks:
            path = sink.export_report(report)
            if path:
                paths.append(path)
        return paths

"""
Console exporter: renders probe events as human-readable text.
"""

import sys
from typing import List, Optional, TextIO

from .base_exporter import BaseExporter, KIND_LABELS
from ..core.config import ProbeConfig
from ..core.events import InventoryEvent, ReconciliationEvent, StepEvent
from ..core.models import (
    ComputeInstance,
    Network,
    StorageBucket,
    StoredObject,
    Subnet,
    tag_value,
)

STATUS_MARKS = {
    'ok': '✓',
    'warning': '⚠',
    'error': '✗',
    'note': 'ℹ',
}


def describe_resource(item) -> str:
    """One-line summary of a resource, as printed under a listing"""
    if isinstance(item, ComputeInstance):
        return f"{item.id} (State: {item.state.value}, Type: {item.instance_type or 'unknown'})"
    if isinstance(item, Network):
        return f"{item.id} (CIDR: {item.cidr_block or 'N/A'}, Default: {str(item.is_default).lower()})"
    if isinstance(item, Subnet):
        return (f"{item.id} (VPC: {item.network_id or 'N/A'}, CIDR: {item.cidr_block or 'N/A'}, "
                f"AZ: {item.availability_zone or 'N/A'})")
    if isinstance(item, StorageBucket):
        created = item.creation_timestamp.isoformat() if item.creation_timestamp else 'N/A'
        return f"{item.name} (Region: {item.region}, Created: {created})"
    if isinstance(item, StoredObject):
        return f"{item.key} ({item.size} bytes)"
    return str(item)


class ConsoleExporter(BaseExporter):
    """Render events to a text stream"""

    def __init__(self, config: ProbeConfig, stream: Optional[TextIO] = None):
        super().__init__(config)
        self.stream = stream or sys.stdout
        self._phase = None

    def get_format_name(self) -> str:
        return "console"

    def _write(self, line: str = ""):
        self.stream.write(line + "\n")

    def render_inventory(self, event: InventoryEvent) -> List[str]:
        label = KIND_LABELS[event.kind]
        if event.error is not None:
            return [f"   ✗ Failed to list {label} with {event.adapter} API: {event.error}"]

        lines = [f"   ✓ Found {event.count} {label} using {event.adapter} API"]
        for item in event.samples:
            lines.append(f"     - {describe_resource(item)}")
            name = tag_value(item, "Name")
            if name:
                lines.append(f"       Name: {name}")
        if event.truncated_count > 0:
            lines.append(f"     ... and {event.truncated_count} more")
        return lines

    def render_reconciliation(self, event: ReconciliationEvent) -> List[str]:
        label = KIND_LABELS[event.kind]
        consistent = sum(1 for r in event.results if r.is_consistent)
        lines = [
            f"   ⇄ {label} ({event.adapter_a} vs {event.adapter_b}): {consistent} consistent, "
            f"{len(event.only_in_a)} only in {event.adapter_a}, "
            f"{len(event.only_in_b)} only in {event.adapter_b}, "
            f"{len(event.mismatched)} with field mismatches"
        ]
        for result in event.mismatched:
            for name, (value_a, value_b) in result.field_mismatches.items():
                lines.append(f"     ! {result.resource_id}: {name} {value_a!r} != {value_b!r}")
        return lines

    def render_step(self, event: StepEvent) -> List[str]:
        lines = []
        if event.phase != self._phase:
            self._phase = event.phase
            title = event.phase.upper()
            lines.extend(["", title, "-" * len(title)])
        mark = STATUS_MARKS.get(event.status, '-')
        message = event.message
        if event.error is not None:
            message = f"{message}: {event.error}"
        lines.append(f"{mark} {message}")
        return lines

    def on_inventory(self, event: InventoryEvent):
        for line in self.render_inventory(event):
            self._write(line)

    def on_reconciliation(self, event: ReconciliationEvent):
        for line in self.render_reconciliation(event):
            self._write(line)

    def on_step(self, event: StepEvent):
        for line in self.render_step(event):
            self._write(line)

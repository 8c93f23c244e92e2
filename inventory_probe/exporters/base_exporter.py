"""
Base exporter class for probe event sinks.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from pathlib import Path
import logging

from ..core.config import ProbeConfig
from ..core.events import InventoryEvent, ReconciliationEvent, StepEvent
from ..core.models import ResourceKind

KIND_LABELS = {
    ResourceKind.COMPUTE_INSTANCE: "EC2 instances",
    ResourceKind.NETWORK: "VPCs",
    ResourceKind.SUBNET: "Subnets",
    ResourceKind.STORAGE_BUCKET: "S3 buckets",
    ResourceKind.STORED_OBJECT: "objects",
}


class BaseExporter(ABC):
    """Abstract base class for event sinks"""

    def __init__(self, config: ProbeConfig):
        self.config = config
        self.logger = logging.getLogger(f'inventory_probe.exporter.{self.get_format_name()}')

    @abstractmethod
    def get_format_name(self) -> str:
        """Return the format name (e.g., 'console', 'json')"""
        pass

    def emit(self, event):
        """Dispatch a structured event to the matching handler"""
        if isinstance(event, InventoryEvent):
            self.on_inventory(event)
        elif isinstance(event, ReconciliationEvent):
            self.on_reconciliation(event)
        elif isinstance(event, StepEvent):
            self.on_step(event)
        else:
            raise TypeError(f"Unsupported event type: {type(event).__name__}")

    def on_inventory(self, event: InventoryEvent):
        pass

    def on_reconciliation(self, event: ReconciliationEvent):
        pass

    def on_step(self, event: StepEvent):
        pass

    def export_report(self, report) -> Optional[Path]:
        """Write the final run report; sinks without persistent output return None"""
        return None

    def get_report_statistics(self, report) -> Dict[str, Any]:
        """Get statistics about a finished run"""
        inventory = [e for e in report.events if isinstance(e, InventoryEvent)]
        reconciliations = [e for e in report.events if isinstance(e, ReconciliationEvent)]

        return {
            'listings': len(inventory),
            'failed_listings': sum(1 for e in inventory if e.error),
            'resources_listed': sum(e.count for e in inventory),
            'reconciliations': len(reconciliations),
            'inconsistent_kinds': [e.kind.value for e in reconciliations if not e.consistent],
            'errors': len(report.errors),
            'warnings': len(report.warnings),
        }

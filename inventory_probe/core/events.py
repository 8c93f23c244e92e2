"""
Structured events emitted by the probe for sinks to render.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from .errors import ProbeError
from .models import InventorySnapshot, ReconciliationResult, Resource, ResourceKind


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class InventoryEvent:
    adapter: str
    kind: ResourceKind
    count: int = 0
    truncated_count: int = 0
    samples: Tuple[Resource, ...] = ()
    error: Optional[ProbeError] = None
    timestamp: datetime = field(default_factory=_now)

    @classmethod
    def from_snapshot(cls, snapshot: InventorySnapshot, display_limit: int) -> "InventoryEvent":
        return cls(
            adapter=snapshot.adapter,
            kind=snapshot.kind,
            count=len(snapshot),
            truncated_count=snapshot.truncated_count,
            samples=snapshot.sample(display_limit),
        )

    @classmethod
    def from_error(cls, adapter: str, kind: ResourceKind, error: ProbeError) -> "InventoryEvent":
        return cls(adapter=adapter, kind=kind, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': 'inventory',
            'adapter': self.adapter,
            'kind': self.kind.value,
            'count': self.count,
            'truncated_count': self.truncated_count,
            'samples': [item.resource_id for item in self.samples],
            'error': str(self.error) if self.error else None,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ReconciliationEvent:
    kind: ResourceKind
    adapter_a: str
    adapter_b: str
    results: Tuple[ReconciliationResult, ...] = ()
    timestamp: datetime = field(default_factory=_now)

    @property
    def only_in_a(self) -> List[str]:
        return [r.resource_id for r in self.results if r.found_in_a and not r.found_in_b]

    @property
    def only_in_b(self) -> List[str]:
        return [r.resource_id for r in self.results if r.found_in_b and not r.found_in_a]

    @property
    def mismatched(self) -> List[ReconciliationResult]:
        return [r for r in self.results if r.field_mismatches]

    @property
    def consistent(self) -> bool:
        return all(r.is_consistent for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': 'reconciliation',
            'kind': self.kind.value,
            'adapter_a': self.adapter_a,
            'adapter_b': self.adapter_b,
            'consistent': self.consistent,
            'results': [r.to_dict() for r in self.results],
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class StepEvent:
    """A single step of a demonstration flow (create, verify, cleanup...)"""
    phase: str
    message: str
    status: str = "ok"
    error: Optional[ProbeError] = None
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': 'step',
            'phase': self.phase,
            'message': self.message,
            'status': self.status,
            'error': str(self.error) if self.error else None,
            'timestamp': self.timestamp.isoformat(),
        }


class EventSink(Protocol):
    def emit(self, event) -> None:
        ...

    def export_report(self, report) -> Optional[Path]:
        ...

"""
Event sinks for probe output.
"""

from .base_exporter import BaseExporter, KIND_LABELS
from .console_exporter import ConsoleExporter, describe_resource
from .json_exporter import JSONExporter

__all__ = [
    'BaseExporter',
    'ConsoleExporter',
    'JSONExporter',
    'KIND_LABELS',
    'describe_resource'
]

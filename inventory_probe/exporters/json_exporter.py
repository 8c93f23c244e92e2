"""
JSON exporter for probe run reports.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from .base_exporter import BaseExporter
from ..core.config import ProbeConfig


class JSONExporter(BaseExporter):
    """Export a finished run report to a JSON file"""

    def __init__(self, config: ProbeConfig, output_dir: Path):
        super().__init__(config)
        self.output_dir = output_dir

        # Ensure output directory exists
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def get_format_name(self) -> str:
        return "json"

    def get_output_path(self, filename: str = "probe-report.json") -> Path:
        return self.output_dir / filename

    def export_report(self, report, filename: str = "probe-report.json") -> Optional[Path]:
        """Export the run report to JSON"""
        output_path = self.get_output_path(filename)

        export_data = {
            'metadata': {
                'export_format': 'json',
                'timestamp': datetime.now().isoformat(),
                'flow': report.flow,
                'region': self.config.region,
                'adapters': [self.config.adapter_a, self.config.adapter_b],
                'bucket_name': report.bucket_name,
                'aborted': report.aborted,
            },
            'statistics': self.get_report_statistics(report),
            'adapters': report.adapter_statistics,
            'events': [event.to_dict() for event in report.events],
            'errors': [
                {'kind': e.kind, 'code': e.code, 'operation': e.operation,
                 'adapter': e.adapter, 'retryable': e.retryable, 'message': str(e)}
                for e in report.errors
            ],
            'warnings': [str(w) for w in report.warnings],
        }

        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(export_data, f, indent=2, default=str, ensure_ascii=False)
        except OSError as e:
            self.logger.error(f"Failed to export JSON: {e}")
            raise

        self.logger.info(f"📄 Exported run report to {output_path}")
        return output_path

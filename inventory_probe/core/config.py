"""
Configuration management for the inventory probe.
"""

import os
from dataclasses import dataclass
from typing import Optional, List
from pathlib import Path
import logging

from .models import PRIMARY_REGION

DEFAULT_VISIBILITY_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "INFO"


@dataclass
class ProbeConfig:
    """Configuration settings for inventory probing and reconciliation"""

    # AWS Configuration
    region: Optional[str] = None
    profile: Optional[str] = None
    primary_region: str = PRIMARY_REGION

    # Adapter Settings
    adapters: List[str] = None
    page_size: Optional[int] = None
    max_attempts: int = 1
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    operation_timeout: Optional[float] = None

    # Probe Settings
    display_limit: int = 3
    visibility_timeout: Optional[float] = None
    poll_interval: float = 2.0
    timestamp_tolerance: float = 0.0
    bucket_prefix: str = "sdk-migration-test"
    object_key: str = "test-object.txt"
    object_content: str = "This object was written through the resource API into a bucket created through the client API."

    # Output Settings
    output_dir: Optional[str] = None

    # Logging Configuration
    log_level: Optional[str] = None
    console_log_level: str = "INFO"
    file_log_level: str = "DEBUG"

    def __post_init__(self):
        """Initialize default values and validate configuration"""
        if self.adapters is None:
            self.adapters = ["client", "resource"]

        # Load environment variables if they exist
        self._load_from_env()

        if not self.region:
            self.region = self.primary_region
        if self.visibility_timeout is None:
            self.visibility_timeout = DEFAULT_VISIBILITY_TIMEOUT
        if self.log_level is None:
            self.log_level = DEFAULT_LOG_LEVEL

        # Validate configuration
        self._validate()

    def _load_from_env(self):
        """Load configuration from environment variables"""
        # Credentials themselves are resolved by boto3
        if not self.region:
            self.region = os.getenv('AWS_REGION') or os.getenv('AWS_DEFAULT_REGION')
        if not self.profile and os.getenv('AWS_PROFILE'):
            self.profile = os.getenv('AWS_PROFILE')

        if self.visibility_timeout is None and os.getenv('PROBE_VISIBILITY_TIMEOUT'):
            try:
                self.visibility_timeout = float(os.getenv('PROBE_VISIBILITY_TIMEOUT'))
            except ValueError:
                raise ValueError(f"Invalid PROBE_VISIBILITY_TIMEOUT: {os.getenv('PROBE_VISIBILITY_TIMEOUT')}")

        # Logging level from environment
        if self.log_level is None and os.getenv('LOG_LEVEL'):
            self.log_level = os.getenv('LOG_LEVEL').upper()

    def _validate(self):
        """Validate configuration settings"""
        if len(self.adapters) != 2:
            raise ValueError(f"Exactly two adapters are compared, got: {self.adapters}")
        if self.adapters[0] == self.adapters[1]:
            raise ValueError(f"Adapters must differ, got {self.adapters[0]} twice")

        if self.page_size is not None and not 5 <= self.page_size <= 1000:
            raise ValueError(f"Invalid page size: {self.page_size}. Must be between 5 and 1000")

        if self.max_attempts < 1:
            raise ValueError(f"Invalid max attempts: {self.max_attempts}. Must be at least 1")

        if self.display_limit < 0:
            raise ValueError(f"Invalid display limit: {self.display_limit}")

        for name in ('connect_timeout', 'read_timeout', 'visibility_timeout', 'poll_interval'):
            if getattr(self, name) <= 0:
                raise ValueError(f"Invalid {name}: {getattr(self, name)}. Must be positive")

        if self.operation_timeout is not None and self.operation_timeout <= 0:
            raise ValueError(f"Invalid operation timeout: {self.operation_timeout}")

        if self.timestamp_tolerance < 0:
            raise ValueError(f"Invalid timestamp tolerance: {self.timestamp_tolerance}")

        valid_log_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        for level in (self.log_level, self.console_log_level, self.file_log_level):
            if level not in valid_log_levels:
                raise ValueError(f"Invalid log level: {level}. Valid levels: {valid_log_levels}")

    def get_log_level(self) -> int:
        """Get numeric log level for logging module"""
        return getattr(logging, self.log_level)

    @property
    def adapter_a(self) -> str:
        return self.adapters[0]

    @property
    def adapter_b(self) -> str:
        return self.adapters[1]

    def get_output_path(self) -> Optional[Path]:
        """Get the output directory path, if report output is enabled"""
        if self.output_dir:
            return Path(self.output_dir)
        return None

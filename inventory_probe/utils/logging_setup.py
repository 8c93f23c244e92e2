"""
Logging configuration for the inventory probe.

Rendered probe output goes to stdout through the console exporter; log
records go to stderr and, when an output directory is set, to a log file.
"""

import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

ROOT_LOGGER = "inventory_probe"

DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
SIMPLE_FORMAT = '%(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

NOISY_LOGGERS = ('boto3', 'botocore', 's3transfer', 'urllib3')


def _level(name: str) -> int:
    return getattr(logging, name.upper())


def setup_logging(config, log_file: Optional[Path] = None,
                  logger_name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Configure the probe's logger tree from a ProbeConfig.

    Args:
        config: ProbeConfig carrying log_level, console_log_level and file_log_level
        log_file: Optional path of a log file; parent directories are created
        logger_name: Root of the logger tree to configure

    Returns:
        The configured root logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(config.get_log_level())

    # Re-running main() in one process must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_level(config.console_log_level))
    console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(_level(config.file_log_level))
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def log_system_info(logger: logging.Logger):
    """Log interpreter and AWS SDK versions"""
    import platform
    import boto3
    import botocore

    logger.info("🖥️  Runtime:")
    logger.info(f"   Python {platform.python_version()} on {platform.platform()}")
    logger.info(f"   boto3 {boto3.__version__} / botocore {botocore.__version__}")


def log_configuration(logger: logging.Logger, config):
    """Log the settings a probe run uses"""
    logger.info("⚙️  Probe Configuration:")
    logger.info(f"   Region: {config.region} (primary: {config.primary_region})")
    logger.info(f"   Profile: {config.profile or 'default chain'}")
    logger.info(f"   Adapters: {config.adapter_a} vs {config.adapter_b}")
    logger.info(f"   Page Size: {config.page_size or 'service default'}")
    logger.info(f"   Display Limit: {config.display_limit}")
    logger.info(f"   Visibility: {config.visibility_timeout}s, polling every {config.poll_interval}s")

    if config.operation_timeout:
        logger.info(f"   Operation Timeout: {config.operation_timeout}s")
    if config.timestamp_tolerance:
        logger.info(f"   Timestamp Tolerance: {config.timestamp_tolerance}s")
    if config.output_dir:
        logger.info(f"   Output Directory: {config.output_dir}")


def configure_third_party_loggers(level: int = logging.WARNING):
    """Quiet the AWS SDK and HTTP loggers"""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


class TimedLogger:
    """Context manager logging start, milestones and duration of a flow"""

    def __init__(self, logger: logging.Logger, operation_name: str):
        self.logger = logger
        self.operation_name = operation_name
        self.start_time = None
        self.duration = None
        self.milestones: List[str] = []

    def _elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.info(f"🚀 Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = self._elapsed()
        if exc_type is None:
            self.logger.info(f"✅ {self.operation_name} finished in {self.duration:.2f}s "
                             f"({len(self.milestones)} milestone(s))")
        else:
            self.logger.error(f"❌ {self.operation_name} raised {exc_type.__name__} "
                              f"after {self.duration:.2f}s")

    def log_milestone(self, milestone: str):
        self.milestones.append(milestone)
        self.logger.info(f"📍 {self.operation_name}: {milestone} (+{self._elapsed():.2f}s)")

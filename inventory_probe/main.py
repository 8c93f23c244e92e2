#!/usr/bin/env python3
"""
Cross-SDK Inventory Probe

Lists and manages AWS resources through two boto3 API surfaces (the
low-level client and the resource interface) and checks that both see the
same infrastructure.
"""

import argparse
import sys
from pathlib import Path

from . import __version__
from .adapters import get_registry
from .core.config import ProbeConfig
from .core.errors import ProbeError
from .core.probe_engine import ProbeEngine
from .exporters import ConsoleExporter, JSONExporter
from .utils.logging_setup import (
    configure_third_party_loggers,
    log_configuration,
    log_system_info,
    setup_logging,
)

FLOWS = ('mixed-sdk', 'cross-version')


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser"""
    parser = argparse.ArgumentParser(
        prog='inventory-probe',
        description='Compare AWS inventories across boto3 API surfaces',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List EC2 instances, VPCs and subnets with both APIs and compare
  inventory-probe mixed-sdk --region us-east-1

  # Create a bucket with the client API, manage it with the resource API
  inventory-probe cross-version --region us-east-1 --visibility-timeout 60

  # Swap which adapter creates and which one manages
  inventory-probe cross-version --adapters resource client

  # Keep a JSON report of the run
  inventory-probe mixed-sdk --output-dir ./probe-output

Environment Variables:
  AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_SESSION_TOKEN - AWS credentials
  AWS_REGION, AWS_PROFILE - Default region and profile
  PROBE_VISIBILITY_TIMEOUT - Seconds to wait for a new bucket to become visible
  LOG_LEVEL - Logging level (DEBUG, INFO, WARNING, ERROR)
        """
    )

    parser.add_argument(
        'flow',
        nargs='?',
        choices=FLOWS,
        help='Demonstration flow to run'
    )

    # AWS Configuration
    aws_group = parser.add_argument_group('AWS Configuration')
    aws_group.add_argument(
        '--region',
        help='AWS region to probe (default: AWS_REGION or us-east-1)'
    )
    aws_group.add_argument(
        '--profile',
        help='AWS profile to use (default: use default profile or environment credentials)'
    )

    # Probe Settings
    probe_group = parser.add_argument_group('Probe Settings')
    probe_group.add_argument(
        '--adapters',
        nargs=2,
        metavar=('A', 'B'),
        default=['client', 'resource'],
        help='Adapter pair to compare; A creates, B manages (default: client resource)'
    )
    probe_group.add_argument(
        '--page-size',
        type=int,
        help='Items per listing page, 5-1000 (default: service default)'
    )
    probe_group.add_argument(
        '--display-limit',
        type=int,
        default=3,
        help='Sample items shown per listing (default: 3)'
    )
    probe_group.add_argument(
        '--operation-timeout',
        type=float,
        help='Deadline in seconds for each flow\'s remote calls (default: none)'
    )
    probe_group.add_argument(
        '--visibility-timeout',
        type=float,
        help='Seconds to wait for a new bucket to appear in listings (default: PROBE_VISIBILITY_TIMEOUT or 30)'
    )
    probe_group.add_argument(
        '--poll-interval',
        type=float,
        default=2.0,
        help='Seconds between visibility checks (default: 2)'
    )
    probe_group.add_argument(
        '--timestamp-tolerance',
        type=float,
        default=0.0,
        help='Allowed difference in seconds when comparing timestamps (default: 0)'
    )
    probe_group.add_argument(
        '--bucket-prefix',
        default='sdk-migration-test',
        help='Prefix for the temporary bucket name (default: sdk-migration-test)'
    )

    # Output Settings
    output_group = parser.add_argument_group('Output Settings')
    output_group.add_argument(
        '--output-dir',
        help='Directory for the JSON run report and log file (default: no report)'
    )

    # Logging Configuration
    logging_group = parser.add_argument_group('Logging')
    logging_group.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Overall logging level (default: LOG_LEVEL or INFO)'
    )
    logging_group.add_argument(
        '--console-log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='WARNING',
        help='Console logging level (default: WARNING)'
    )

    # Utility commands
    parser.add_argument(
        '--list-adapters',
        action='store_true',
        help='List all registered adapters and exit'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'Cross-SDK Inventory Probe v{__version__}'
    )

    return parser


def validate_arguments(args) -> bool:
    """Validate command line arguments"""
    errors = []

    # Skip validation for utility commands
    if args.list_adapters:
        return True

    if not args.flow:
        errors.append(f"a flow is required: {' or '.join(FLOWS)}")

    available = get_registry().list_registered_adapters()
    for name in args.adapters:
        if name not in available:
            errors.append(f"unknown adapter '{name}' (available: {', '.join(sorted(available))})")

    if args.output_dir:
        try:
            Path(args.output_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create output directory {args.output_dir}: {e}")

    if errors:
        print("❌ Argument validation errors:")
        for error in errors:
            print(f"   • {error}")
        return False

    return True


def list_adapters():
    """List all registered adapters"""
    adapters = get_registry().describe_adapters()

    print("📋 Registered Adapters:")
    print(f"   Total Adapters: {len(adapters)}")

    for name in sorted(adapters):
        info = adapters[name]
        print(f"     • {name} ({info['api_version']})")
        print(f"       Operations: {', '.join(info['operations'])}")


def print_conclusion(report, config: ProbeConfig):
    """Print the closing summary for a flow"""
    print("\n=== Conclusion ===")
    if report.aborted:
        print(f"✗ {report.flow} aborted; see the errors above")
        return

    inconsistent = [e for e in report.reconciliations() if not e.consistent]
    if inconsistent:
        for event in inconsistent:
            print(f"⚠ {event.kind.value}: {config.adapter_a} and {config.adapter_b} views differ")
    else:
        print(f"✓ {config.adapter_a} and {config.adapter_b} APIs see the same resources")

    if report.flow == 'cross-version' and not report.errors and not report.warnings:
        print(f"✓ Infrastructure created with the {config.adapter_a} API is manageable "
              f"with the {config.adapter_b} API")
    elif report.flow == 'cross-version':
        print(f"⚠ Cross-management finished with {len(report.errors)} error(s) and "
              f"{len(report.warnings)} warning(s); see the steps above")


def main(argv=None) -> int:
    """Main entry point"""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Handle utility commands
    if args.list_adapters:
        list_adapters()
        return 0

    # Validate arguments
    if not validate_arguments(args):
        return 1

    # Create configuration
    try:
        config = ProbeConfig(
            region=args.region,
            profile=args.profile,
            adapters=list(args.adapters),
            page_size=args.page_size,
            display_limit=args.display_limit,
            operation_timeout=args.operation_timeout,
            visibility_timeout=args.visibility_timeout,
            poll_interval=args.poll_interval,
            timestamp_tolerance=args.timestamp_tolerance,
            bucket_prefix=args.bucket_prefix,
            output_dir=args.output_dir,
            log_level=args.log_level,
            console_log_level=args.console_log_level,
        )
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        return 1

    output_path = config.get_output_path()
    logger = setup_logging(config, log_file=output_path / "probe.log" if output_path else None)
    configure_third_party_loggers()
    log_system_info(logger)
    log_configuration(logger, config)

    sinks = [ConsoleExporter(config)]
    if output_path:
        sinks.append(JSONExporter(config, output_path))

    try:
        engine = ProbeEngine(config, sinks=sinks)

        print(f"=== {args.flow}: {config.adapter_a} vs {config.adapter_b} in {config.region} ===")
        if args.flow == 'mixed-sdk':
            report = engine.run_mixed_sdk()
        else:
            report = engine.run_cross_version()

        print_conclusion(report, config)
        for path in engine.export(report):
            print(f"   Report: {path}")

        return 1 if report.has_fatal_errors() else 0

    except KeyboardInterrupt:
        print("\n⚠️  Probe interrupted by user")
        return 130

    except ProbeError as e:
        print(f"\n❌ Probe failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

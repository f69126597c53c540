#!/usr/bin/env python3
"""
usage-collector - collect coding-agent usage and sync it to the dashboard.

    usage-collector config            interactive setup
    usage-collector sync [--dry-run]  collect and sync once
    usage-collector start             sync now, then on the configured schedule
    usage-collector status            show configuration and device identity
    usage-collector test              check collection and the sync endpoint
"""

import argparse
import json
import sys

from pydantic import ValidationError

from usage_collector import __version__
from usage_collector.agents import AGENTS, describe_command
from usage_collector.collector import AgentOutcome, RunReport, UsageCollector
from usage_collector.config import AGENT_OPTIONS, CollectorConfig, ConfigManager
from usage_collector.device_info import resolve_device_info
from usage_collector.exceptions import CollectorError, ConfigError
from usage_collector.interactive_config import InteractiveConfig
from usage_collector.logger import get_logger
from usage_collector.scheduler import CronScheduler, validate_cron

logger = get_logger(name="cli")

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usage-collector",
        description="Collect and sync coding agent usage statistics",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    overrides = argparse.ArgumentParser(add_help=False)
    overrides.add_argument("-k", "--api-key", help="API key for authentication")
    overrides.add_argument("-e", "--endpoint", help="Sync endpoint URL")
    overrides.add_argument("-r", "--max-retries", type=int, help="Maximum number of attempts")
    overrides.add_argument("-d", "--retry-delay", type=int, help="Delay between attempts in milliseconds")
    overrides.add_argument(
        "-a",
        "--agent",
        action="append",
        choices=sorted(AGENTS),
        dest="agents",
        help="Agent to collect (repeatable; defaults to the configured agents)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("config", help="Run the interactive configuration wizard")

    sync = subparsers.add_parser("sync", parents=[overrides], help="Collect and sync once")
    sync.add_argument("--dry-run", action="store_true", help="Collect data but don't sync to server")

    start = subparsers.add_parser("start", parents=[overrides], help="Sync now and then on a schedule")
    start.add_argument("-s", "--schedule", help='Cron expression, e.g. "0 */4 * * *"')

    subparsers.add_parser("status", help="Show configuration and device information")
    subparsers.add_parser("test", parents=[overrides], help="Test collection and the sync endpoint")
    return parser


def print_no_config_message() -> None:
    print(
        "\n❌ Configuration not found!\n\n"
        "📋 Please run the following command to configure first:\n"
        "   usage-collector config\n"
    )


def load_effective_config(args: argparse.Namespace, manager: ConfigManager) -> CollectorConfig | None:
    """Stored config with command-line overrides applied.

    With both --api-key and --endpoint given no config file is needed.
    Overrides are validated like the stored file; bad values raise ConfigError.
    """
    stored = manager.load_config()
    overrides = {
        "api_key": getattr(args, "api_key", None),
        "endpoint": getattr(args, "endpoint", None),
        "max_retries": getattr(args, "max_retries", None),
        "retry_delay": getattr(args, "retry_delay", None),
        "schedule": getattr(args, "schedule", None),
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}

    if stored is None:
        if "api_key" not in overrides or "endpoint" not in overrides:
            return None
        data = overrides
    else:
        data = {**stored.model_dump(), **overrides}

    try:
        return CollectorConfig.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ConfigError(f"Invalid option {field}: {error['msg']}") from e


def build_collector(config: CollectorConfig, manager: ConfigManager) -> UsageCollector:
    device, generated = resolve_device_info(config)
    if generated and manager.has_config():
        manager.update_device_info(device.device_id, device.device_name)
        logger.info(f"Registered device {device.device_name} ({device.device_id})")
    return UsageCollector(config, device=device)


def credits_note(outcome: AgentOutcome) -> str:
    """`` (12.5 credits)`` for pay-as-you-go agents that reported credits."""
    credits = outcome.data.totals.credits
    if not AGENTS[outcome.agent_type].pay_as_you_go or credits is None:
        return ""
    return f" ({credits:g} credits)"


def print_report(report: RunReport) -> None:
    for outcome in report.outcomes:
        if not outcome.ok:
            print(f"❌ {outcome.agent_type}: {outcome.error}")
        elif report.dry_run:
            print(
                f"📦 {outcome.agent_type}: collected {len(outcome.data.daily)} daily records"
                f"{credits_note(outcome)}"
            )
        else:
            result = outcome.sync_result
            errors = len(result.errors)
            suffix = f" ({errors} record errors)" if errors else ""
            print(
                f"✅ {outcome.agent_type}: synced {result.processed} records{suffix}"
                f"{credits_note(outcome)}"
            )


def command_config(args: argparse.Namespace, manager: ConfigManager) -> int:
    config = InteractiveConfig(manager).run_configuration_wizard()
    return EXIT_OK if config else EXIT_FAILURE


def command_sync(args: argparse.Namespace, manager: ConfigManager) -> int:
    config = load_effective_config(args, manager)
    if config is None:
        print_no_config_message()
        return EXIT_FAILURE

    collector = build_collector(config, manager)
    if args.dry_run:
        print("Dry run mode: collecting data only")
    report = collector.run(dry_run=args.dry_run, agent_types=args.agents)

    if args.dry_run:
        for outcome in report.succeeded:
            print(json.dumps(outcome.data.to_payload(), indent=2))
    print_report(report)

    if report.all_failed:
        print("❌ Usage data sync failed")
        return EXIT_FAILURE
    if not args.dry_run:
        print("✅ Usage data sync completed")
    return EXIT_OK


def command_start(args: argparse.Namespace, manager: ConfigManager) -> int:
    config = load_effective_config(args, manager)
    if config is None:
        print_no_config_message()
        return EXIT_FAILURE
    if not validate_cron(config.schedule):
        print(f"❌ Invalid cron expression: {config.schedule}")
        return EXIT_FAILURE

    collector = build_collector(config, manager)

    def job() -> None:
        print_report(collector.run(agent_types=args.agents))

    print(f"⏰ Starting scheduled sync with cron: {config.schedule}")
    print("Scheduled sync is running. Press Ctrl+C to stop.")
    try:
        CronScheduler(config.schedule, job).run_forever()
    except KeyboardInterrupt:
        print("\nStopping scheduled sync...")
    return EXIT_OK


def command_status(args: argparse.Namespace, manager: ConfigManager) -> int:
    config = manager.load_config()
    if config is None:
        print_no_config_message()
        return EXIT_FAILURE

    device, generated = resolve_device_info(config)
    labels = {option["value"]: option["label"] for option in AGENT_OPTIONS}
    print("📋 usage-collector status")
    print(f"   Config file: {manager.config_path}")
    print(f"   Endpoint: {config.endpoint}")
    print(f"   Schedule: {config.schedule_label} ({config.schedule})")
    print(f"   Retries: {config.max_retries} attempts, {config.retry_delay}ms apart")
    print(f"   Device: {device.display_name or device.device_name} ({device.device_id})")
    if generated:
        print("   (device identity not saved yet; it will be on the next sync)")
    print("   Agents:")
    for agent_type in config.agent_types:
        print(f"     - {labels.get(agent_type, agent_type)}: {describe_command(agent_type)}")
    return EXIT_OK


def command_test(args: argparse.Namespace, manager: ConfigManager) -> int:
    config = load_effective_config(args, manager)
    if config is None:
        print_no_config_message()
        return EXIT_FAILURE

    collector = build_collector(config.model_copy(update={"max_retries": 1}), manager)
    failures = 0
    for outcome in collector.collect_all(args.agents):
        if not outcome.ok:
            print(f"❌ {outcome.agent_type}: {outcome.error}")
            failures += 1
            continue
        print(f"✅ {outcome.agent_type}: collected {len(outcome.data.daily)} daily records")
        try:
            result = collector.sync_data(outcome.data, max_retries=1)
        except CollectorError as e:
            print(f"❌ {outcome.agent_type}: sync test failed: {e}")
            failures += 1
            continue
        print(f"✅ {outcome.agent_type}: sync test passed ({result.processed} records)")
    return EXIT_FAILURE if failures else EXIT_OK


COMMANDS = {
    "config": command_config,
    "sync": command_sync,
    "start": command_start,
    "status": command_status,
    "test": command_test,
}


def main(argv: list[str] | None = None, manager: ConfigManager | None = None) -> int:
    args = build_parser().parse_args(argv)
    manager = manager or ConfigManager()
    try:
        return COMMANDS[args.command](args, manager)
    except CollectorError as e:
        print(f"❌ {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())

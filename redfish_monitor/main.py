"""Main application entry point for the Redfish hardware metrics exporter."""

import argparse
import asyncio
import logging
import os
import signal
import sys
import time
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from prometheus_client import REGISTRY, start_http_server

from .collectors.redfish_collector import RedfishCollector
from .config.loader import ConfigLoader
from .config.models import CollectRule, ExporterSystemConfig
from .services.redfish_client import RedfishClient
from .services.rule_generator import generate_rules, parse_key_types, render_rule_document
from .services.snapshot_cache import SnapshotCache
from .services.snapshot_file import FileSnapshotClient, dump_snapshot, load_snapshot
from .utils.errors import RuleError
from .utils.logger import setup_logger


DEFAULT_ROOT = "/redfish/v1"


class ExporterApp:
    """
    Main exporter application.

    Polls the Redfish tree on a fixed interval in the background and serves
    the latest snapshot as Prometheus gauges.
    """

    def __init__(
        self,
        config_path: str = "config/config.yaml",
        log_level: str = "INFO"
    ):
        """
        Initialize exporter application.

        Args:
            config_path: Path to configuration file
            log_level: Logging level for the application logger

        Raises:
            SystemExit: If configuration or rules are invalid
        """
        self.config_path = config_path
        self.logger = setup_logger("redfish_monitor", log_level)
        self.scheduler = None
        self._stop_event: Optional[asyncio.Event] = None
        self._update_task: Optional[asyncio.Task] = None

        self.config = self._load_config()
        self.rule = self._load_rule()

        exporter = self.config.exporter
        if exporter.dummy_data_file:
            self.logger.info(f"Serving dummy data from {exporter.dummy_data_file}")
            self.client = FileSnapshotClient(exporter.dummy_data_file, self.logger)
        else:
            self.client = RedfishClient(self.config.redfish, self.logger)

        self.collector = RedfishCollector(
            self.rule,
            self.client,
            SnapshotCache(),
            namespace=exporter.namespace,
            logger=self.logger
        )

    def _load_config(self) -> ExporterSystemConfig:
        """
        Load and validate configuration.

        Returns:
            ExporterSystemConfig: Loaded configuration

        Raises:
            SystemExit: If configuration is invalid
        """
        try:
            self.logger.info(f"Loading configuration from {self.config_path}")
            config = ConfigLoader.load_from_file(self.config_path)
            self.logger.info("Configuration loaded successfully")
            return config

        except FileNotFoundError:
            self.logger.error(
                f"Configuration file not found: {self.config_path}\n"
                "Please create config/config.yaml from config/config.example.yaml"
            )
            sys.exit(1)

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
            sys.exit(1)

    def _load_rule(self) -> CollectRule:
        """
        Load, validate and compile the collection rule.

        Raises:
            SystemExit: If the rule file is missing or invalid
        """
        rule_file = self.config.exporter.rule_file
        try:
            rule = ConfigLoader.load_rule_file(rule_file)
        except (FileNotFoundError, RuleError) as e:
            self.logger.error(
                f"Failed to load rule file {rule_file}: {e}",
                extra={"error_type": type(e).__name__}
            )
            sys.exit(1)

        self.logger.info(
            f"Loaded {len(rule.metrics)} metric rules from {rule_file}",
            extra={"root": rule.traverse.root}
        )
        return rule

    async def run_update_cycle(self):
        """Traverse the Redfish tree once and publish the snapshot."""
        self._update_task = asyncio.current_task()
        try:
            start_time = time.time()
            await self.collector.update()
            duration = time.time() - start_time
            self.logger.info(
                f"Redfish update completed in {duration:.1f}s",
                extra={"resources": len(self.collector.cache.get())}
            )

        except Exception as e:
            self.logger.error(
                "Redfish update failed",
                exc_info=True,
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e)
                }
            )
            raise

        finally:
            self._update_task = None

    async def show(self):
        """Traverse once and write the snapshot to stdout."""
        snapshot = await self.client.traverse(self.rule.traverse)
        dump_snapshot(snapshot, sys.stdout)

    def _request_stop(self, signum: int):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, initiating graceful shutdown...")
        if self._stop_event is not None:
            self._stop_event.set()

    async def serve(self):
        """
        Serve metrics and poll Redfish until SIGTERM/SIGINT.

        The first update runs immediately; later ones follow the configured
        interval. Overlapping updates are prevented. On shutdown an in-flight
        traversal is cancelled.
        """
        exporter = self.config.exporter

        REGISTRY.register(self.collector)
        start_http_server(exporter.listen_port, addr=exporter.listen_address)
        self.logger.info(
            f"Serving metrics on {exporter.listen_address}:{exporter.listen_port}"
        )

        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self._request_stop, signum)

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.run_update_cycle,
            trigger=IntervalTrigger(seconds=exporter.interval_seconds),
            id='redfish_update',
            name='Redfish Traversal',
            max_instances=1,  # Prevent overlapping executions
            coalesce=True,  # If missed, run once
            next_run_time=datetime.now()
        )
        self.scheduler.start()
        self.logger.info(f"Scheduler started with interval: {exporter.interval_seconds}s")

        try:
            await self._stop_event.wait()
        finally:
            self.scheduler.shutdown(wait=False)
            if self._update_task is not None:
                self._update_task.cancel()
            self.logger.info("Scheduler stopped")


def generate_rule(
    snapshot_path: str,
    keys: list,
    base_rule_path: Optional[str] = None,
    root: Optional[str] = None
) -> str:
    """
    Build a rule document from a snapshot file.

    Args:
        snapshot_path: JSON snapshot written by the ``show`` command
        keys: ``key:type`` strings
        base_rule_path: Existing rule file whose patterns are reused
        root: Traversal root of the generated rule

    Returns:
        str: YAML rule document
    """
    key_types = parse_key_types(keys)
    snapshot = load_snapshot(snapshot_path)
    base_rule = ConfigLoader.load_rule_file(base_rule_path) if base_rule_path else None

    if not root:
        root = base_rule.traverse.root if base_rule is not None else DEFAULT_ROOT

    rules = generate_rules(snapshot, key_types, base_rule, root)
    return render_rule_document(rules, base_rule, root)


def main():
    """
    CLI entry point.

    Parses command-line arguments and runs the selected command.
    """
    parser = argparse.ArgumentParser(
        description='Redfish hardware metrics exporter for Prometheus',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve metrics (default)
  redfish-monitor --config config/config.yaml

  # Traverse once and exit
  redfish-monitor serve --once

  # Dump the Redfish tree as JSON
  redfish-monitor show > snapshot.json

  # Suggest rules for every Health and Reading key
  redfish-monitor generate-rule snapshot.json --key Health:health --key Reading:number
        """
    )

    parser.add_argument(
        '--config',
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--log-level',
        default=os.getenv('LOG_LEVEL', 'INFO'),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    subparsers = parser.add_subparsers(dest='command')

    serve_parser = subparsers.add_parser('serve', help='Serve metrics (default)')
    serve_parser.add_argument(
        '--once',
        action='store_true',
        help='Run one traversal, log the result and exit (no server)'
    )

    subparsers.add_parser('show', help='Traverse once and print the snapshot as JSON')

    generate_parser = subparsers.add_parser(
        'generate-rule',
        help='Print a collection rule for the given keys'
    )
    generate_parser.add_argument('snapshot', help='Snapshot JSON written by "show"')
    generate_parser.add_argument(
        '--key',
        action='append',
        default=[],
        required=True,
        help='Redfish key to find, as KEY:TYPE (repeatable)'
    )
    generate_parser.add_argument('--base-rule', help='Existing rule file to reuse path patterns from')
    generate_parser.add_argument('--root', help=f'Traversal root (default: {DEFAULT_ROOT})')

    args = parser.parse_args()

    if args.command == 'generate-rule':
        setup_logger("redfish_monitor", args.log_level)
        try:
            sys.stdout.write(generate_rule(args.snapshot, args.key, args.base_rule, args.root))
        except (OSError, ValueError, RuleError) as e:
            logging.getLogger("redfish_monitor").error(f"Rule generation failed: {e}")
            sys.exit(1)
        return

    app = ExporterApp(config_path=args.config, log_level=args.log_level)

    if args.command == 'show':
        asyncio.run(app.show())
    elif args.command == 'serve' and args.once:
        exit_code = 0
        try:
            asyncio.run(app.run_update_cycle())
        except Exception:
            exit_code = 1
        sys.exit(exit_code)
    else:
        asyncio.run(app.serve())


if __name__ == '__main__':
    main()

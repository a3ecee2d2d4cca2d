"""
Main entry point for Feed Relay.

Runs the poll loop that detects new feed entries, records them and
relays them to Slack, alongside a minimal health endpoint.
"""

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from urllib.parse import urlparse

import coloredlogs
import yaml
from pydantic import ValidationError

from feed_relay.config import AppConfig, load_config, load_config_from_env
from feed_relay.entry import FeedEntry
from feed_relay.extractor import extract
from feed_relay.health import HealthServer
from feed_relay.notifier import Notifier
from feed_relay.rss_parser import FeedParser, FetchError
from feed_relay.scheduler import IntervalScheduler
from feed_relay.slack import SlackNotifier
from feed_relay.storage import InsertResult, Storage, StoreError

logger = logging.getLogger(__name__)

# Seconds to wait for in-flight work when shutting down
SHUTDOWN_TIMEOUT = 30


def redact_proxy_url(proxy_url: str) -> str:
    """
    Redact credentials from a proxy URL for safe logging.

    Parameters
    ----------
    proxy_url : str
        The proxy URL potentially containing credentials.

    Returns
    -------
    str
        The proxy URL with password redacted.
    """
    try:
        parsed = urlparse(proxy_url)
        if parsed.password:
            netloc = parsed.hostname or ""
            if parsed.port:
                netloc = f"{netloc}:{parsed.port}"
            if parsed.username:
                netloc = f"{parsed.username}:****@{netloc}"
            return f"{parsed.scheme}://{netloc}{parsed.path}"
        return proxy_url
    except ValueError:
        return "<proxy url>"


@dataclass
class TickReport:
    """Counters describing one poll tick."""

    fetched: int = 0
    new: int = 0
    inserted: int = 0
    duplicates: int = 0
    failed: int = 0
    notified: int = 0
    backfill: bool = False
    fetch_failed: bool = False
    store_failed: bool = False


class FeedRelay:
    """
    Main feed relay application.

    Coordinates feed fetching, new-entry detection, storage and notification.
    """

    def __init__(self, config: AppConfig):
        """
        Initialize the relay.

        Parameters
        ----------
        config : AppConfig
            Validated application configuration.
        """
        self.config = config
        self.storage: Storage | None = None
        self.parser: FeedParser | None = None
        self.notifier: Notifier | None = None
        self.health: HealthServer | None = None
        self.scheduler: IntervalScheduler | None = None
        self._poll_task: asyncio.Task | None = None
        self._stop_requested = False

    async def start(self) -> None:
        """
        Start the relay and run until stop() is called.

        Raises
        ------
        StoreError
            If the database cannot be opened or set up.
        """
        logger.info("Starting Feed Relay")

        self.storage = Storage(self.config.storage.database_path)
        await self.storage.initialize()

        feed = self.config.feed
        if feed.proxy:
            logger.info("Using proxy: %s", redact_proxy_url(feed.proxy))

        self.parser = FeedParser(
            url=feed.url,
            timeout=feed.request_timeout,
            user_agent=feed.user_agent,
            proxy_url=feed.proxy,
        )
        self.notifier = SlackNotifier(
            self.config.slack,
            timeout=feed.request_timeout,
            proxy_url=feed.proxy,
        )
        if self.config.slack.dry_run:
            logger.warning("Dry run enabled: messages will be logged, not sent")

        server = self.config.server
        self.health = HealthServer(server.host, server.port, server.message)
        await self.health.start()

        self.scheduler = IntervalScheduler(self.check_feed, feed.check_interval)
        if self._stop_requested:
            self.scheduler.stop()
        logger.info(
            "Watching %s every %ds (%d entries recorded)",
            feed.url,
            feed.check_interval,
            await self.storage.get_entry_count(),
        )

        self._poll_task = asyncio.create_task(self.scheduler.run())
        try:
            await self._poll_task
        except asyncio.CancelledError:
            logger.info("Poll task cancelled")

    def request_stop(self) -> None:
        """Ask the poll loop to stop, even if it has not been created yet."""
        self._stop_requested = True
        if self.scheduler:
            self.scheduler.stop()

    async def stop(self) -> None:
        """Stop the relay gracefully, letting an in-flight tick finish."""
        logger.info("Stopping Feed Relay")
        self.request_stop()

        if self._poll_task and not self._poll_task.done():
            try:
                await asyncio.wait_for(asyncio.shield(self._poll_task), SHUTDOWN_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Tick still running after %ds, cancelling", SHUTDOWN_TIMEOUT)
                self._poll_task.cancel()
                await asyncio.gather(self._poll_task, return_exceptions=True)

        if self.health:
            await self.health.stop()
        if self.notifier:
            await self.notifier.drain(timeout=SHUTDOWN_TIMEOUT)
            await self.notifier.close()
        if self.parser:
            await self.parser.close()
        if self.storage:
            await self.storage.close()

        logger.info("Feed Relay stopped")

    async def check_feed(self) -> TickReport:
        """
        Run one poll tick.

        Fetches the feed, keeps the entries published after the newest
        recorded one, records them and notifies for each successful insert.
        On an empty store every fetched entry is recorded without notifying.

        Returns
        -------
        TickReport
            What happened during the tick.
        """
        if not self.parser or not self.storage or not self.notifier:
            raise RuntimeError("Components not initialized")

        logger.debug("Checking for new items...")
        report = TickReport()

        try:
            entries = await self.parser.fetch_feed()
        except FetchError as e:
            logger.warning("Failed to fetch feed (%s): %s", e.kind.value, e)
            report.fetch_failed = True
            return report

        report.fetched = len(entries)

        try:
            latest = await self.storage.latest()
        except StoreError as e:
            logger.error("Cannot read watermark (%s): %s", e.kind.value, e)
            report.store_failed = True
            return report

        if latest is None:
            report.backfill = True
            report.new = len(entries)
            logger.info("Empty store: recording %d existing entries without notifying", len(entries))
            for entry in entries:
                await self._insert(entry, report)
            return report

        latest_guid, watermark = latest
        logger.debug("Watermark %s (%s)", watermark.isoformat(), latest_guid[:80])

        new_entries = self._newer_than(entries, watermark)
        report.new = len(new_entries)
        if new_entries:
            logger.info(
                "Found %d new entr%s",
                len(new_entries),
                "y" if len(new_entries) == 1 else "ies",
            )

        for entry in new_entries:
            if await self._insert(entry, report) is not InsertResult.INSERTED:
                continue
            self.notifier.notify(entry, extract(entry.body_text))
            report.notified += 1

        return report

    @staticmethod
    def _newer_than(entries: list[FeedEntry], watermark: datetime) -> list[FeedEntry]:
        """Entries published strictly after ``watermark``, in feed order."""
        newer = []
        for entry in entries:
            if entry.published_at is None:
                logger.warning("Skipping entry without publication time: %s", entry.guid[:80])
                continue
            if entry.published_at > watermark:
                newer.append(entry)
        return newer

    async def _insert(self, entry: FeedEntry, report: TickReport) -> InsertResult | None:
        """Record one entry, returning None if the write failed."""
        try:
            result = await self.storage.insert(entry)
        except StoreError as e:
            logger.error("Failed to insert %s: %s", entry.guid[:80], e)
            report.failed += 1
            return None

        if result is InsertResult.DUPLICATE:
            logger.info("Already recorded, skipping: %s", entry.guid[:80])
            report.duplicates += 1
        else:
            logger.info("Inserted %s", entry.guid[:80])
            report.inserted += 1
        return result


def setup_logging(verbose: bool = False) -> None:
    """
    Configure application logging.

    Parameters
    ----------
    verbose : bool
        If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO

    coloredlogs.install(
        level=level,
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Relay new feed entries to a Slack channel",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to a YAML configuration file (default: read the environment)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log rendered messages instead of sending them",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        if args.config:
            config = load_config(Path(args.config), dry_run=args.dry_run)
        else:
            config = load_config_from_env(dry_run=args.dry_run)
    except (FileNotFoundError, ValueError, ValidationError, yaml.YAMLError) as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    relay = FeedRelay(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def signal_handler():
        logger.info("Received shutdown signal")
        relay.request_stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    exit_code = 0
    try:
        loop.run_until_complete(relay.start())
    except StoreError as e:
        logger.error("Cannot use database (%s): %s", e.kind.value, e)
        exit_code = 1
    except OSError as e:
        logger.error("Cannot start health endpoint: %s", e)
        exit_code = 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        loop.run_until_complete(relay.stop())
        loop.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()

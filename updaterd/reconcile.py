"""
Reconcile loop: keep managed daemons updated and running.

Once per interval every configured daemon is visited in order. If its
manifest announces a newer version the daemon is stopped, its files are
replaced and it is started again; the entry's version only moves forward
once every file was written. Whenever no update happens (source down, bad
manifest, already current, failed download) the daemon is checked and
started if it is not running. Nothing that goes wrong for one daemon stops
the loop or the other daemons.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable

from . import service
from .config import config
from .errors import (
    ArtifactWriteError,
    ManifestFetchError,
    ManifestParseError,
    ServiceError,
)
from .fetcher import ManifestFetcher
from .models import UpdateEntry, UpdaterConfig
from .replacer import ArtifactReplacer
from .service import ServiceController

logger = logging.getLogger(__name__)

ControllerFactory = Callable[[UpdateEntry], ServiceController]


def entry_controller(entry: UpdateEntry) -> ServiceController:
    """Controller for a managed daemon, using this host's default kind."""
    return service.new(entry.name, entry.description, service.default_kind())


class Outcome(Enum):
    UPDATED = "updated"
    UP_TO_DATE = "up_to_date"
    UNAVAILABLE = "unavailable"  # manifest could not be fetched or parsed
    FAILED = "failed"  # replacement stopped part way
    ABORTED = "aborted"  # no controller for the daemon
    NO_SOURCE = "no_source"  # entry has no manifest URL


# Outcomes after which the daemon is checked and started if needed
ENSURE_RUNNING = {Outcome.UP_TO_DATE, Outcome.UNAVAILABLE, Outcome.FAILED, Outcome.NO_SOURCE}


class ReconcileLoop:
    """Periodically updates and restarts the daemons in an UpdaterConfig."""

    def __init__(
        self,
        updater_config: UpdaterConfig,
        fetcher: ManifestFetcher,
        replacer: ArtifactReplacer,
        controller_factory: ControllerFactory = entry_controller,
        interval: float | None = None,
        stop_grace: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.updater_config = updater_config
        self.fetcher = fetcher
        self.replacer = replacer
        self.controller_factory = controller_factory
        self.interval = interval if interval is not None else config.interval
        self.stop_grace = stop_grace if stop_grace is not None else config.stop_grace
        self._sleep = sleep
        self._running = False
        self._task: asyncio.Task | None = None
        self._wakeup: asyncio.Event | None = None

    # Background task

    async def start(self):
        """Start the reconcile loop as a background task."""
        if self._running:
            return

        self._running = True
        self._wakeup = asyncio.Event()
        self._task = asyncio.create_task(self._reconcile_loop())
        logger.info(f"Reconcile loop started, interval {self.interval}s")

    async def stop(self):
        """Stop the loop, letting the daemon being processed finish first."""
        self._running = False
        if self._wakeup:
            self._wakeup.set()
        if self._task:
            await self._task
            self._task = None
        logger.info("Reconcile loop stopped")

    async def _reconcile_loop(self):
        while self._running:
            try:
                # Blocking network and service-manager calls run off the event loop
                await asyncio.to_thread(self.tick)
            except Exception as e:
                logger.error(f"Error in reconcile loop: {e}")

            if not self._running:
                break
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    # One pass

    def tick(self):
        """Reconcile every daemon once, in declaration order."""
        for entry in list(self.updater_config.daemons):
            if not self._running and self._task is not None:
                logger.info("Stop requested, skipping remaining daemons")
                break
            try:
                self.reconcile(entry)
            except Exception:
                logger.exception(f"Unexpected error reconciling daemon {entry.name}")

    def reconcile(self, entry: UpdateEntry) -> Outcome:
        """Update the daemon if possible, otherwise make sure it runs."""
        if entry.url:
            outcome = self.update(entry)
        else:
            outcome = Outcome.NO_SOURCE

        if outcome in ENSURE_RUNNING:
            self.ensure_running(entry)
        return outcome

    def update(self, entry: UpdateEntry) -> Outcome:
        """Apply the entry's manifest if it announces a newer version."""
        try:
            manifest = self.fetcher.fetch(entry.url)
        except (ManifestFetchError, ManifestParseError) as e:
            logger.warning(f"Check daemon {entry.name} failed: {e}")
            return Outcome.UNAVAILABLE

        if manifest.version <= entry.version:
            logger.info(f"Daemon {entry.name} is up to date (version {entry.version})")
            return Outcome.UP_TO_DATE

        logger.info(f"Updating daemon {entry.name} from version {entry.version} to {manifest.version}")
        try:
            controller = self.controller_factory(entry)
        except ServiceError as e:
            logger.error(f"Control daemon {entry.name} failed: {e}")
            return Outcome.ABORTED

        try:
            controller.stop()
        except ServiceError as e:
            logger.warning(f"Stop daemon {entry.name} failed: {e}")

        # The daemon is stopped from here on; every failure must reach ensure_running
        try:
            self._sleep(self.stop_grace)
            self.replacer.replace(manifest.files)
        except ArtifactWriteError as e:
            logger.error(f"Replace daemon {entry.name} files failed: {e}")
            return Outcome.FAILED
        except Exception:
            logger.exception(f"Replace daemon {entry.name} files failed")
            return Outcome.FAILED

        try:
            controller.start()
        except ServiceError as e:
            logger.warning(f"Start daemon {entry.name} failed: {e}")

        entry.version = manifest.version
        logger.info(f"Updated daemon {entry.name} to version {manifest.version}")
        return Outcome.UPDATED

    def ensure_running(self, entry: UpdateEntry) -> bool:
        """Start the daemon unless its service manager reports it running.

        Returns True when the daemon was running or has been started.
        """
        try:
            controller = self.controller_factory(entry)
        except ServiceError as e:
            logger.error(f"Control daemon {entry.name} failed: {e}")
            return False

        try:
            status = controller.status()
        except ServiceError as e:
            logger.error(f"Get daemon {entry.name} status failed: {e}")
            return False

        if status.running:
            logger.debug(f"Daemon {entry.name}: {status.message}")
            return True

        try:
            controller.start()
        except ServiceError as e:
            logger.error(f"Start daemon {entry.name} failed: {e}")
            return False

        logger.info(f"Daemon {entry.name} was stopped, started it")
        return True

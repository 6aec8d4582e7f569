"""
The updater process: load the daemon list, run the reconcile loop in the
background until SIGINT/SIGTERM, then save the daemon list.

On first run there is no daemon list yet. A placeholder entry is written
to disk and the process exits so the file can be edited before the next
start.
"""

import asyncio
import logging
import signal
from pathlib import Path

from .config import config
from .fetcher import ManifestFetcher, PinnedClient
from .models import UpdaterConfig, default_config
from .reconcile import ReconcileLoop
from .replacer import ArtifactReplacer

logger = logging.getLogger(__name__)


class Supervisor:
    """Owns the daemon list and the reconcile loop for one process."""

    def __init__(
        self,
        config_path: Path | None = None,
        base_dir: Path | None = None,
        client: PinnedClient | None = None,
        loop_factory=ReconcileLoop,
    ):
        self.config_path = Path(config_path or config.config_path)
        self.base_dir = Path(base_dir or config.base_dir)
        self.client = client or PinnedClient()
        self.loop_factory = loop_factory
        self.updater_config: UpdaterConfig | None = None
        self.reconciler: ReconcileLoop | None = None
        self._shutdown: asyncio.Event | None = None

    def load(self) -> bool:
        """Load the daemon list, bootstrapping a default one if that fails.

        Returns False when the process should exit instead of running.
        """
        try:
            self.updater_config = UpdaterConfig.load(self.config_path)
            return True
        except (OSError, ValueError) as e:
            logger.error(f"Read config file {self.config_path} failed: {e}")

        self.updater_config = default_config()
        try:
            self.updater_config.save(self.config_path)
        except OSError as e:
            logger.error(f"Write default config {self.config_path} failed: {e}")
            return False
        logger.info(f"Wrote a default config to {self.config_path}; edit it and start again")
        return False

    def save(self):
        try:
            self.updater_config.save(self.config_path)
        except OSError as e:
            logger.error(f"Save config file {self.config_path} failed: {e}")

    def request_shutdown(self, signum=None):
        if signum is not None:
            logger.info(f"Got system signal {signal.Signals(signum).name}")
        if self._shutdown is not None:
            self._shutdown.set()

    async def serve(self):
        """Run the reconcile loop until a shutdown is requested, then persist."""
        self._shutdown = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.request_shutdown, signum)
            except (NotImplementedError, RuntimeError):
                # Not available off the main thread or on Windows
                pass

        fetcher = ManifestFetcher(self.client)
        replacer = ArtifactReplacer(self.client, self.base_dir)
        self.reconciler = self.loop_factory(self.updater_config, fetcher, replacer)
        await self.reconciler.start()

        try:
            await self._shutdown.wait()
        finally:
            logger.info("Shutting down updater...")
            await self.reconciler.stop()
            self.client.close()
            self.save()

    def run(self) -> int:
        """Process entry point. Returns the exit status."""
        if not self.load():
            return 1
        asyncio.run(self.serve())
        return 0

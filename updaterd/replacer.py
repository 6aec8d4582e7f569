"""
Artifact replacement.

Downloads every file a manifest lists and overwrites its target in place,
one after the other. The first failure stops the run; files already
written in that run stay written.
"""

import logging
import os
from pathlib import Path

from .errors import ArtifactWriteError, FetchError
from .fetcher import PinnedClient
from .models import ManifestFile

logger = logging.getLogger(__name__)

ARTIFACT_MODE = 0o755


class ArtifactReplacer:
    """Writes manifest files to disk."""

    def __init__(self, client: PinnedClient, base_dir: Path):
        self.client = client
        self.base_dir = Path(base_dir)

    def resolve(self, target: str) -> Path:
        """Absolute target path; relative paths are anchored at base_dir."""
        path = Path(target)
        if path.is_absolute():
            return path
        return self.base_dir / path

    def replace(self, files: list[ManifestFile]) -> list[Path]:
        """Download and write every file in order. Returns the written paths.

        Raises ArtifactWriteError on the first download or write failure.
        """
        written = []
        for item in files:
            written.append(self.replace_one(item))
        return written

    def replace_one(self, item: ManifestFile) -> Path:
        if not item.file:
            raise ArtifactWriteError(item.url, item.file, "no target path given")
        target = self.resolve(item.file)

        try:
            data = self.client.get(item.url)
        except FetchError as e:
            raise ArtifactWriteError(item.url, target, e.reason) from e

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            os.chmod(target, ARTIFACT_MODE)
        except (OSError, ValueError) as e:
            raise ArtifactWriteError(item.url, target, str(e)) from e

        logger.info(f"Wrote {target} ({len(data)} bytes) from {item.url}")
        return target

"""
Wire and persistence models for updaterd.

Uses pydantic to validate the two JSON documents the updater deals with:
the local daemon list (update.json) and the remote update manifest. Field
aliases keep the short on-disk keys ("desc", "ver") while the Python side
uses readable attribute names.
"""

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ManifestFile(BaseModel):
    """One file announced by an update manifest."""

    url: str = Field("", description="Where to download the file from")
    file: str = Field("", description="Target path, relative to the updater's directory unless absolute")


class UpdateManifest(BaseModel):
    """The update source's answer to "what is current"."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = Field(0, alias="ver")
    files: list[ManifestFile] = Field(default_factory=list)


class UpdateEntry(BaseModel):
    """A managed daemon and the last version applied to it."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    description: str = Field("", alias="desc")
    url: str = ""
    version: int = Field(0, alias="ver")


class UpdaterConfig(BaseModel):
    """Ordered list of managed daemons; the updater's only durable state."""

    daemons: list[UpdateEntry] = Field(default_factory=list)

    @classmethod
    def load(cls, path: Path) -> "UpdaterConfig":
        """Read the daemon list from disk.

        Raises OSError when the file cannot be read and
        pydantic.ValidationError when it is not a valid daemon list.
        """
        loaded = cls.model_validate_json(Path(path).read_bytes())
        logger.info(f"Loaded {len(loaded.daemons)} daemon(s) from {path}")
        return loaded

    def save(self, path: Path):
        """Write the daemon list to disk."""
        path = Path(path)
        path.write_text(self.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        logger.info(f"Saved {len(self.daemons)} daemon(s) to {path}")


def default_config() -> UpdaterConfig:
    """Placeholder config written on first run, to be edited by hand."""
    return UpdaterConfig(
        daemons=[
            UpdateEntry(
                name="daemon",
                description="daemon desc",
                url="https://update.example.com/update.json",
                version=20210101,
            )
        ]
    )

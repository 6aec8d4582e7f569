"""
Update manifest retrieval over pinned TLS.

All outbound HTTP goes through PinnedClient: HTTPS only, certificates
verified against a single CA bundle shipped next to the updater (the
system trust store is never consulted), with connect, read and overall
deadlines. Any failure is raised; nothing is silently retried.
"""

import logging
import ssl
import time
from pathlib import Path

import httpx
from pydantic import ValidationError

from .config import config
from .errors import FetchError, ManifestFetchError, ManifestParseError
from .models import UpdateManifest

logger = logging.getLogger(__name__)


def pinned_ssl_context(ca_file: Path) -> ssl.SSLContext:
    """SSL context trusting only the CA certificates in `ca_file`."""
    # Passing cafile keeps create_default_context from loading the system store
    context = ssl.create_default_context(cafile=str(ca_file))
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


class PinnedClient:
    """HTTPS GET client bound to a pinned certificate authority."""

    def __init__(
        self,
        ca_file: Path | None = None,
        connect_timeout: float | None = None,
        read_timeout: float | None = None,
        request_timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.ca_file = Path(ca_file or config.ca_file)
        self.connect_timeout = connect_timeout if connect_timeout is not None else config.connect_timeout
        self.read_timeout = read_timeout if read_timeout is not None else config.read_timeout
        self.request_timeout = request_timeout if request_timeout is not None else config.request_timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.read_timeout, connect=self.connect_timeout)

    @property
    def client(self) -> httpx.Client:
        """The underlying httpx client, created on first use."""
        if self._client is None:
            if self._transport is not None:
                self._client = httpx.Client(transport=self._transport, timeout=self._timeout())
            else:
                self._client = httpx.Client(verify=pinned_ssl_context(self.ca_file), timeout=self._timeout())
        return self._client

    def get(self, url: str) -> bytes:
        """Download `url` and return the body.

        Raises FetchError for non-HTTPS URLs, an unreadable CA bundle, TLS or
        network failures, HTTP error statuses and an exceeded overall deadline.
        """
        try:
            scheme = httpx.URL(url).scheme
        except httpx.InvalidURL as e:
            raise FetchError(url, f"invalid URL: {e}") from e
        if scheme != "https":
            raise FetchError(url, "only https URLs are allowed")

        try:
            client = self.client
        except OSError as e:
            raise FetchError(url, f"cannot load pinned CA {self.ca_file}: {e}") from e

        deadline = time.monotonic() + self.request_timeout
        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                body = bytearray()
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    if time.monotonic() > deadline:
                        raise FetchError(url, f"request took longer than {self.request_timeout}s")
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or e.__class__.__name__) from e

        logger.debug(f"Fetched {len(body)} bytes from {url}")
        return bytes(body)

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None


class ManifestFetcher:
    """Fetches and parses update manifests."""

    def __init__(self, client: PinnedClient):
        self.client = client

    def fetch(self, url: str) -> UpdateManifest:
        """Return the manifest published at `url`.

        Raises ManifestFetchError when the source cannot be reached and
        ManifestParseError when it answers with something that is not a
        manifest.
        """
        try:
            data = self.client.get(url)
        except FetchError as e:
            raise ManifestFetchError(url, e.reason) from e

        try:
            manifest = UpdateManifest.model_validate_json(data)
        except ValidationError as e:
            raise ManifestParseError(url, str(e)) from e

        logger.debug(f"Manifest {url}: version {manifest.version}, {len(manifest.files)} file(s)")
        return manifest

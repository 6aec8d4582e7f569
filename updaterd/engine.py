"""
HTTP engine for programs managed by updaterd.

A FastAPI application with gzip compression, served by uvicorn on
background threads so the caller's main thread stays free to wait for a
termination signal. The updater itself never opens a listener; this is
for the daemons it keeps running.
"""

import logging
import signal
import threading
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from .config import APP_NAME

logger = logging.getLogger(__name__)

IDLE_TIMEOUT = 60
SHUTDOWN_TIMEOUT = 5

NAMED_PORTS = {"http": 80, "https": 443}


def split_addr(addr: str, default_port: int) -> tuple[str, int]:
    """Split "host:port" (host and port both optional) into a bind address."""
    if not addr:
        return "0.0.0.0", default_port
    if ":" not in addr:
        return addr, default_port
    host, _, port = addr.rpartition(":")
    if not port:
        return host or "0.0.0.0", default_port
    if port in NAMED_PORTS:
        return host or "0.0.0.0", NAMED_PORTS[port]
    return host or "0.0.0.0", int(port)


class Engine:
    """FastAPI app plus the uvicorn servers that expose it."""

    def __init__(self, title: str = APP_NAME, gzip: bool = True, access_log: bool = True):
        self.app = FastAPI(title=title)
        self.access_log = access_log
        self._servers: list[tuple[uvicorn.Server, threading.Thread]] = []
        self._isolated_prefixes: list[str] = []

        if gzip:
            self.app.add_middleware(GZipMiddleware, minimum_size=500)

        @self.app.middleware("http")
        async def cross_origin_isolation(request: Request, call_next):
            response = await call_next(request)
            path = request.url.path
            if any(path == prefix or path.startswith(prefix + "/") for prefix in self._isolated_prefixes):
                response.headers["Cross-Origin-Embedder-Policy"] = "require-corp"
                response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
            return response

    def static(self, path: str, root: str | Path):
        """Serve a directory, with cross-origin isolation headers on every file."""
        path = "/" + path.strip("/")
        self.app.mount(path, StaticFiles(directory=str(root)), name=f"static:{path}")
        self._isolated_prefixes.append(path)

    def start(self, addr: str = ""):
        """Serve plain HTTP on `addr` (default :80)."""
        host, port = split_addr(addr, 80)
        self._serve(uvicorn.Config(
            self.app,
            host=host,
            port=port,
            access_log=self.access_log,
            timeout_keep_alive=IDLE_TIMEOUT,
        ))

    def start_tls(self, addr: str, certfile: str | Path, keyfile: str | Path):
        """Serve HTTPS on `addr` (default :443) with the given certificate."""
        host, port = split_addr(addr, 443)
        self._serve(uvicorn.Config(
            self.app,
            host=host,
            port=port,
            access_log=self.access_log,
            timeout_keep_alive=IDLE_TIMEOUT,
            ssl_certfile=str(certfile),
            ssl_keyfile=str(keyfile),
        ))

    def _serve(self, server_config: uvicorn.Config):
        server = uvicorn.Server(server_config)
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        self._servers.append((server, thread))
        logger.info(f"Serving on {server_config.host}:{server_config.port}")

    def shutdown(self, timeout: float = SHUTDOWN_TIMEOUT):
        """Ask every server to exit and wait for it."""
        for server, thread in self._servers:
            server.should_exit = True
        for server, thread in self._servers:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"Server on {server.config.host}:{server.config.port} forced to shutdown")
                server.force_exit = True
        self._servers.clear()

    def graceful(self):
        """Block until SIGINT or SIGTERM, then shut the servers down."""
        stop = threading.Event()

        def handler(signum, frame):
            logger.info(f"Got system signal {signal.Signals(signum).name}")
            stop.set()

        previous = {signum: signal.signal(signum, handler) for signum in (signal.SIGINT, signal.SIGTERM)}
        try:
            while not stop.wait(0.5):
                pass
        finally:
            for signum, old in previous.items():
                signal.signal(signum, old)
        self.shutdown()

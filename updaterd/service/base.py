"""
Common machinery for native service controllers.

A ServiceController turns install/remove/start/stop/status into effects on
the host's service manager. Subclasses supply the definition-file path,
the template and its context, the native start/stop commands and a probe
that parses the status command's free-text output. Everything else
(privilege checks, precondition errors, command execution, per-instance
templates) lives here.
"""

import logging
import os
import re
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from jinja2 import Environment, StrictUndefined

from ..config import executable_path
from ..errors import (
    AlreadyInstalledError,
    AlreadyRunningError,
    AlreadyStoppedError,
    NotInstalledError,
    PrivilegeError,
    ServiceCommandError,
    ServiceFileError,
)

logger = logging.getLogger(__name__)

STATUS_NOT_INSTALLED = "Service not installed"
STATUS_STOPPED = "Service is stopped"

Runner = Callable[[list[str]], subprocess.CompletedProcess]

# Definition files must come out byte-for-byte as written, so no block
# trimming and the final newline is kept.
template_env = Environment(
    keep_trailing_newline=True,
    autoescape=False,
    undefined=StrictUndefined,
)


class Kind(str, Enum):
    """Deployment scope of a managed service."""

    # Per-user agent in ~/Library/LaunchAgents (macOS only)
    USER_AGENT = "UserAgent"
    # Per-user agent provided by the administrator in /Library/LaunchAgents (macOS only)
    GLOBAL_AGENT = "GlobalAgent"
    # System-wide daemon in /Library/LaunchDaemons (macOS only)
    GLOBAL_DAEMON = "GlobalDaemon"
    # System-wide daemon running as root (Linux, FreeBSD, Windows)
    SYSTEM_DAEMON = "SystemDaemon"


@dataclass(frozen=True)
class ServiceDescriptor:
    """Identity of a manageable OS service."""

    name: str
    description: str
    kind: Kind
    dependencies: tuple[str, ...] = ()


@dataclass
class ServiceStatus:
    """Result of probing the native service manager."""

    message: str
    running: bool
    pid: int | None = None

    def __str__(self) -> str:
        return self.message


class Executable(Protocol):
    """The in-process side of a service, run when the OS launches it."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def run(self) -> None: ...


def is_privileged() -> bool:
    """Whether the current process runs as root."""
    return os.geteuid() == 0


def run_command(args: list[str]) -> subprocess.CompletedProcess:
    """Run a native command and capture its output."""
    logger.debug(f"Running {' '.join(args)}")
    return subprocess.run(args, capture_output=True, text=True)


def running_status(output: str, pid_pattern: str) -> ServiceStatus:
    """Build a running status, picking the pid out of the probe output if present."""
    match = re.search(pid_pattern, output)
    if match:
        pid = match.group(1)
        return ServiceStatus(f"Service (pid  {pid}) is running...", True, int(pid))
    return ServiceStatus("Service is running...", True)


def stopped_status() -> ServiceStatus:
    return ServiceStatus(STATUS_STOPPED, False)


class ServiceController(ABC):
    """Base class for one OS/init-system backend."""

    default_template: str = ""

    def __init__(
        self,
        descriptor: ServiceDescriptor,
        service_dir: Path | str | None = None,
        runner: Runner | None = None,
    ):
        self.descriptor = descriptor
        self.service_dir = Path(service_dir) if service_dir else None
        self._runner = runner or run_command
        self.set_template(self.default_template)

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def kind(self) -> Kind:
        return self.descriptor.kind

    # Backend hooks

    @property
    @abstractmethod
    def service_path(self) -> Path:
        """Canonical location of the service definition file."""

    @abstractmethod
    def template_context(self, path: str, args: list[str]) -> dict:
        """Values substituted into the definition template."""

    @abstractmethod
    def start_command(self) -> list[str]:
        """Native command that starts the service."""

    @abstractmethod
    def stop_command(self) -> list[str]:
        """Native command that stops the service."""

    @abstractmethod
    def probe(self) -> ServiceStatus:
        """Ask the service manager whether the service is running.

        Never raises; anything other than a recognised "running" answer
        reads as stopped.
        """

    def requires_privileges(self) -> bool:
        return True

    def register(self):
        """Tell the service manager about a freshly written definition file."""

    def unregister(self):
        """Tell the service manager a definition file is about to go away."""

    # Templates

    def get_template(self) -> str:
        return self._template_source

    def set_template(self, text: str):
        """Replace the definition template for this controller.

        The template is compiled immediately, so syntax errors are raised here.
        """
        self._template = template_env.from_string(text)
        self._template_source = text

    def render(self, args: list[str]) -> str:
        return self._template.render(**self.template_context(str(executable_path()), args))

    # Helpers

    def is_installed(self) -> bool:
        return self.service_path.exists()

    def check_privileges(self):
        if self.requires_privileges() and not is_privileged():
            raise PrivilegeError()

    def execute(self, args: list[str]) -> str:
        """Run a mutating native command, raising ServiceCommandError on failure."""
        try:
            result = self._runner(args)
        except OSError as e:
            raise ServiceCommandError(args, None, str(e)) from e
        if result.returncode != 0:
            raise ServiceCommandError(args, result.returncode, result.stderr or result.stdout or "")
        return result.stdout or ""

    def probe_output(self, args: list[str]) -> str | None:
        """Run a status command; None when it is missing or exits non-zero."""
        try:
            result = self._runner(args)
        except OSError as e:
            logger.debug(f"Status command {args[0]} unavailable: {e}")
            return None
        if result.returncode != 0:
            return None
        return result.stdout or ""

    # Operations

    def install(self, *args: str):
        """Write the service definition and register it with the service manager."""
        self.check_privileges()
        if self.is_installed():
            raise AlreadyInstalledError()

        content = self.render(list(args))
        try:
            self.service_path.write_text(content)
            self.register()
        except OSError as e:
            raise ServiceFileError(self.service_path, e.strerror or str(e)) from e
        logger.info(f"Installed service {self.name} at {self.service_path}")

    def remove(self):
        """Unregister the service and delete its definition file."""
        self.check_privileges()
        if not self.is_installed():
            raise NotInstalledError()

        self.unregister()
        try:
            self.service_path.unlink()
        except OSError as e:
            raise ServiceFileError(self.service_path, e.strerror or str(e)) from e
        logger.info(f"Removed service {self.name}")

    def start(self):
        self.check_privileges()
        if not self.is_installed():
            raise NotInstalledError()
        if self.probe().running:
            raise AlreadyRunningError()

        self.execute(self.start_command())
        logger.info(f"Started service {self.name}")

    def stop(self):
        self.check_privileges()
        if not self.is_installed():
            raise NotInstalledError()
        if not self.probe().running:
            raise AlreadyStoppedError()

        self.execute(self.stop_command())
        logger.info(f"Stopped service {self.name}")

    def status(self) -> ServiceStatus:
        self.check_privileges()
        if not self.is_installed():
            raise NotInstalledError(STATUS_NOT_INSTALLED)
        return self.probe()

    def run(self, executable: Executable):
        """Hand control to the service's blocking run loop."""
        executable.run()

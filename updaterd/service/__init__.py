"""
Native service controllers.

`new()` is the only place the host OS is looked at: it validates the kind,
picks the backend once and returns a ServiceController; everything after
that is backend-agnostic.
"""

import logging
import platform
from pathlib import Path

from ..errors import InvalidKindError, UnsupportedPlatformError
from .base import (
    STATUS_NOT_INSTALLED,
    Executable,
    Kind,
    ServiceController,
    ServiceDescriptor,
    ServiceStatus,
)
from .darwin import DarwinService
from .systemd import SystemdService
from .upstart import UpstartService

logger = logging.getLogger(__name__)

SYSTEMD_RUNTIME_DIR = Path("/run/systemd/system")

__all__ = [
    "STATUS_NOT_INSTALLED",
    "DarwinService",
    "Executable",
    "Kind",
    "ServiceController",
    "ServiceDescriptor",
    "ServiceStatus",
    "SystemdService",
    "UpstartService",
    "default_kind",
    "host_platform",
    "new",
    "normalize_name",
]


def host_platform() -> str:
    """Lower-case OS name: darwin, linux, freebsd, windows, ..."""
    return platform.system().lower()


def is_systemd() -> bool:
    """Whether systemd is the running init system."""
    return SYSTEMD_RUNTIME_DIR.is_dir()


def normalize_name(name: str) -> str:
    """Collapse whitespace runs into single underscores."""
    return "_".join(name.split())


def default_kind() -> Kind:
    """The kind to use for a service on this host when none is specified."""
    if host_platform() == "darwin":
        return Kind.USER_AGENT
    return Kind.SYSTEM_DAEMON


def check_kind(kind: Kind, system: str):
    """Raise InvalidKindError if `kind` cannot be used on `system`."""
    if system == "darwin":
        if kind == Kind.SYSTEM_DAEMON:
            raise InvalidKindError(kind, system)
    elif system in ("linux", "freebsd", "windows"):
        if kind != Kind.SYSTEM_DAEMON:
            raise InvalidKindError(kind, system)


def new(name: str, description: str, kind: Kind, *dependencies: str, **options) -> ServiceController:
    """Create a controller for the named service on this host.

    Extra keyword options (service_dir, runner) are passed to the backend.
    """
    system = host_platform()
    try:
        kind = Kind(kind)
    except ValueError:
        raise InvalidKindError(kind, system) from None
    check_kind(kind, system)

    descriptor = ServiceDescriptor(
        name=normalize_name(name),
        description=description,
        kind=kind,
        dependencies=tuple(dependencies),
    )

    if system == "darwin":
        return DarwinService(descriptor, **options)
    if system == "linux":
        if is_systemd():
            return SystemdService(descriptor, **options)
        return UpstartService(descriptor, **options)

    raise UnsupportedPlatformError(system)

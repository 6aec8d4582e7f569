"""
Error taxonomy for updaterd.

Service controllers raise ServiceError subclasses straight to the caller;
the reconcile loop catches them per entry and logs. Fetch, parse and write
failures are kept apart so logs say which stage of an update broke.
"""


class UpdaterError(Exception):
    """Base class for all updaterd errors."""


# Service controller errors


class ServiceError(UpdaterError):
    """A service controller operation could not be performed."""


class PrivilegeError(ServiceError):
    def __init__(self, message: str = "You must have root user privileges. Possibly using 'sudo' command should help"):
        super().__init__(message)


class AlreadyInstalledError(ServiceError):
    def __init__(self, message: str = "Service has already been installed"):
        super().__init__(message)


class NotInstalledError(ServiceError):
    def __init__(self, message: str = "Service is not installed"):
        super().__init__(message)


class AlreadyRunningError(ServiceError):
    def __init__(self, message: str = "Service is already running"):
        super().__init__(message)


class AlreadyStoppedError(ServiceError):
    def __init__(self, message: str = "Service has already been stopped"):
        super().__init__(message)


class InvalidKindError(ServiceError):
    def __init__(self, kind, platform: str):
        super().__init__(f"invalid daemon kind {getattr(kind, 'value', kind)} for platform {platform}")
        self.kind = kind
        self.platform = platform


class UnsupportedPlatformError(ServiceError):
    def __init__(self, platform: str):
        super().__init__(f"no service backend available for platform {platform}")
        self.platform = platform


class ServiceFileError(ServiceError):
    """The service definition file could not be written or removed."""

    def __init__(self, path, reason: str):
        super().__init__(f"service file {path}: {reason}")
        self.path = path


class ServiceCommandError(ServiceError):
    """A native service-manager command failed."""

    def __init__(self, command: list[str], returncode: int | None, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        message = f"command {' '.join(command)!r} failed"
        if returncode is not None:
            message += f" with exit code {returncode}"
        if output:
            message += f": {output.strip()}"
        super().__init__(message)


# Update errors


class FetchError(UpdaterError):
    """An HTTP GET through the pinned client failed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"GET {url} failed: {reason}")
        self.url = url
        self.reason = reason


class ManifestFetchError(FetchError):
    """The update source was unreachable or refused the request."""


class ManifestParseError(UpdaterError):
    """The update source answered with a malformed manifest."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"invalid manifest from {url}: {reason}")
        self.url = url


class ArtifactWriteError(UpdaterError):
    """Downloading or writing one of the manifest files failed."""

    def __init__(self, url: str, target, reason: str):
        super().__init__(f"replacing {target} from {url} failed: {reason}")
        self.url = url
        self.target = target


# Command line errors


class CommandLineError(UpdaterError):
    pass


class NoCommandError(CommandLineError):
    def __init__(self):
        super().__init__("no command specified")


class UnknownCommandError(CommandLineError):
    def __init__(self, command: str):
        super().__init__(f"unknown command {command!r}")
        self.command = command

"""
Command line for updaterd.

    updaterd install [-args "..."]   register updaterd as a system service
    updaterd remove                  unregister it
    updaterd start | stop            control the registered service
    updaterd status                  show whether it is running
    updaterd run [--console]         run the updater (what the service executes)

Exactly one command per invocation. A missing or unknown command is
reported with the usage line and exit status 2.
"""

import argparse
import logging
import sys
import time

import psutil

from . import service
from .config import APP_DESCRIPTION, APP_NAME, config
from .errors import CommandLineError, NoCommandError, ServiceError, UnknownCommandError
from .logsetup import configure_logging, crash_file_path, redirect_crashes
from .service import ServiceController
from .supervisor import Supervisor

logger = logging.getLogger(__name__)

COMMANDS = ("install", "remove", "start", "stop", "status", "run")
USAGE = f"Usage: {APP_NAME} <{'|'.join(COMMANDS)}> [flags]"


def process_summary(pid: int) -> str | None:
    """Memory and uptime of a running process, if it can be inspected."""
    try:
        proc = psutil.Process(pid)
        memory_mb = proc.memory_info().rss / 1024 / 1024
        uptime = time.time() - proc.create_time()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None
    return f"memory {memory_mb:.1f}MB, uptime {uptime:.0f}s"


class ServiceConsole:
    """Dispatches one command line to the service controller or the updater."""

    def __init__(
        self,
        name: str = APP_NAME,
        description: str = APP_DESCRIPTION,
        dependencies: tuple[str, ...] = (),
        controller: ServiceController | None = None,
        supervisor_factory=Supervisor,
        out=None,
    ):
        self.name = name
        self.description = description
        self.dependencies = dependencies
        self._controller = controller
        self.supervisor_factory = supervisor_factory
        self.out = out or sys.stdout

    @property
    def controller(self) -> ServiceController:
        if self._controller is None:
            self._controller = service.new(self.name, self.description, service.default_kind(), *self.dependencies)
        return self._controller

    def usage(self):
        print(USAGE, file=self.out)

    def execute(self, argv: list[str]) -> int:
        """Run one command. Raises CommandLineError for a missing or unknown command."""
        if not argv:
            raise NoCommandError()
        command, rest = argv[0], argv[1:]
        if command not in COMMANDS:
            raise UnknownCommandError(command)
        return getattr(self, f"cmd_{command}")(rest)

    def cmd_install(self, rest: list[str]) -> int:
        parser = argparse.ArgumentParser(prog=f"{APP_NAME} install")
        parser.add_argument("-args", "--args", dest="args", default="", help="Arguments for the service")
        options = parser.parse_args(rest)
        # The installed service runs the updater itself
        self.controller.install("run", *options.args.split())
        print(f"Install success: {self.controller.service_path}", file=self.out)
        return 0

    def cmd_remove(self, rest: list[str]) -> int:
        self.controller.remove()
        print("Remove success", file=self.out)
        return 0

    def cmd_start(self, rest: list[str]) -> int:
        self.controller.start()
        print("Start success", file=self.out)
        return 0

    def cmd_stop(self, rest: list[str]) -> int:
        self.controller.stop()
        print("Stop success", file=self.out)
        return 0

    def cmd_status(self, rest: list[str]) -> int:
        status = self.controller.status()
        print(status.message, file=self.out)
        if status.pid:
            summary = process_summary(status.pid)
            if summary:
                print(summary, file=self.out)
        return 0

    def cmd_run(self, rest: list[str]) -> int:
        parser = argparse.ArgumentParser(prog=f"{APP_NAME} run")
        parser.add_argument("--console", action="store_true", help="Log to the console instead of files")
        options = parser.parse_args(rest)
        if not options.console:
            configure_logging(config.log_path)
            redirect_crashes(crash_file_path(config.base_dir, self.name))
        return self.supervisor_factory().run()


def main(argv: list[str] | None = None) -> int:
    """Console script entry point."""
    configure_logging()
    argv = sys.argv[1:] if argv is None else argv
    console = ServiceConsole()

    try:
        return console.execute(argv)
    except CommandLineError as e:
        logger.error(f"{e}")
        console.usage()
        return 2
    except ServiceError as e:
        command = argv[0].capitalize()
        logger.error(f"{command} failed: {e}")
        return 1

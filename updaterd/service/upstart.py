"""
Upstart backend for older Linux distributions.

Job files live in /etc/init and are picked up by the init daemon without an
explicit reload; start/stop/status are Upstart's own initctl shortcuts.
"""

import os
import re
from pathlib import Path

from .base import ServiceController, ServiceStatus, running_status, stopped_status

UPSTART_JOB = """# {{ name }} {{ description }}

description     "{{ description }}"
author          "Pichu Chen <pichu@tih.tw>"

start on runlevel [2345]
stop on runlevel [016]

respawn
#kill timeout 5

exec {{ path }} {{ args }} >> /var/log/{{ name }}.log 2>> /var/log/{{ name }}.err
"""


class UpstartService(ServiceController):
    """Upstart job."""

    default_template = UPSTART_JOB

    @property
    def service_path(self) -> Path:
        return (self.service_dir or Path("/etc/init")) / f"{self.name}.conf"

    def template_context(self, path: str, args: list[str]) -> dict:
        return {
            "name": self.name,
            "description": self.descriptor.description,
            "path": path,
            "args": " ".join(args),
        }

    def register(self):
        os.chmod(self.service_path, 0o755)

    def start_command(self) -> list[str]:
        return ["start", self.name]

    def stop_command(self) -> list[str]:
        return ["stop", self.name]

    def probe(self) -> ServiceStatus:
        output = self.probe_output(["status", self.name])
        if output is not None and re.search(re.escape(self.name) + " start/running", output):
            return running_status(output, r"process ([0-9]+)")
        return stopped_status()

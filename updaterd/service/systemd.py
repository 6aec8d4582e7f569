"""
systemd backend.

Installs a unit under /etc/systemd/system, reloads the manager and enables
the unit. Status comes from `systemctl status`, which prints an
"Active: active (running)" line and the main PID for live units.
"""

from pathlib import Path

from .base import ServiceController, ServiceStatus, running_status, stopped_status

SYSTEMD_UNIT = """[Unit]
Description={{ description }}
Requires={{ dependencies }}
After={{ dependencies }}

[Service]
PIDFile=/var/run/{{ name }}.pid
ExecStartPre=/bin/rm -f /var/run/{{ name }}.pid
ExecStart={{ path }} {{ args }}
Restart=on-failure

[Install]
WantedBy=multi-user.target
"""


class SystemdService(ServiceController):
    """systemd system unit."""

    default_template = SYSTEMD_UNIT

    @property
    def unit(self) -> str:
        return f"{self.name}.service"

    @property
    def service_path(self) -> Path:
        return (self.service_dir or Path("/etc/systemd/system")) / self.unit

    def template_context(self, path: str, args: list[str]) -> dict:
        return {
            "name": self.name,
            "description": self.descriptor.description,
            "dependencies": " ".join(self.descriptor.dependencies),
            "path": path,
            "args": " ".join(args),
        }

    def register(self):
        self.execute(["systemctl", "daemon-reload"])
        self.execute(["systemctl", "enable", self.unit])

    def unregister(self):
        self.execute(["systemctl", "disable", self.unit])

    def start_command(self) -> list[str]:
        return ["systemctl", "start", self.unit]

    def stop_command(self) -> list[str]:
        return ["systemctl", "stop", self.unit]

    def probe(self) -> ServiceStatus:
        output = self.probe_output(["systemctl", "status", self.unit])
        if output is not None and "Active: active" in output:
            return running_status(output, r"Main PID: ([0-9]+)")
        return stopped_status()

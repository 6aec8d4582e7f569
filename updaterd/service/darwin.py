"""
launchd backend for macOS agents and daemons.

Writes a property list into the LaunchAgents/LaunchDaemons directory that
matches the service kind and drives it with launchctl load/unload.
"""

import re
from pathlib import Path

from .base import Kind, ServiceController, ServiceStatus, running_status, stopped_status

PROPERTY_LIST = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
	<key>KeepAlive</key>
	<true/>
	<key>Label</key>
	<string>{{ name }}</string>
	<key>ProgramArguments</key>
	<array>
	    <string>{{ path }}</string>
		{% for arg in args %}<string>{{ arg }}</string>
		{% endfor %}
	</array>
	<key>RunAtLoad</key>
	<true/>
    <key>WorkingDirectory</key>
    <string>/usr/local/var</string>
    <key>StandardErrorPath</key>
    <string>/usr/local/var/log/{{ name }}.err</string>
    <key>StandardOutPath</key>
    <string>/usr/local/var/log/{{ name }}.log</string>
</dict>
</plist>
"""

SERVICE_DIRS = {
    Kind.USER_AGENT: Path("~/Library/LaunchAgents"),
    Kind.GLOBAL_AGENT: Path("/Library/LaunchAgents"),
    Kind.GLOBAL_DAEMON: Path("/Library/LaunchDaemons"),
}


class DarwinService(ServiceController):
    """launchd agent or daemon."""

    default_template = PROPERTY_LIST

    @property
    def service_path(self) -> Path:
        directory = self.service_dir or SERVICE_DIRS[self.kind].expanduser()
        return directory / f"{self.name}.plist"

    def requires_privileges(self) -> bool:
        # Agents in the user's own LaunchAgents need no root
        return self.kind != Kind.USER_AGENT

    def template_context(self, path: str, args: list[str]) -> dict:
        return {"name": self.name, "path": path, "args": args}

    def start_command(self) -> list[str]:
        return ["launchctl", "load", str(self.service_path)]

    def stop_command(self) -> list[str]:
        return ["launchctl", "unload", str(self.service_path)]

    def probe(self) -> ServiceStatus:
        output = self.probe_output(["launchctl", "list", self.name])
        if output is not None and re.search(re.escape(self.name), output):
            return running_status(output, r'PID" = ([0-9]+);')
        return stopped_status()

"""
updaterd - a self-updating process supervisor.

Installs and controls background services through the host's service
manager (launchd, systemd, Upstart), polls update manifests over pinned
TLS, replaces managed executables when a newer version is announced and
otherwise keeps the managed services running.
"""

__version__ = "0.1.0"

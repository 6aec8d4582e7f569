import pytest
from jinja2 import TemplateSyntaxError

from updaterd.errors import (
    AlreadyInstalledError,
    AlreadyRunningError,
    AlreadyStoppedError,
    NotInstalledError,
    PrivilegeError,
    ServiceCommandError,
)
from updaterd.service import Kind, ServiceDescriptor, SystemdService
from updaterd.service.systemd import SYSTEMD_UNIT

RUNNING_OUTPUT = """\
● web.service - Web frontend
     Loaded: loaded (/etc/systemd/system/web.service; enabled; vendor preset: enabled)
     Active: active (running) since Tue 2024-01-02 03:04:05 UTC; 1h ago
   Main PID: 4242 (web)
"""

INACTIVE_OUTPUT = """\
● web.service - Web frontend
     Loaded: loaded (/etc/systemd/system/web.service; enabled; vendor preset: enabled)
     Active: inactive (dead)
"""


@pytest.fixture
def controller(tmp_path, runner):
    descriptor = ServiceDescriptor("web", "Web frontend", Kind.SYSTEM_DAEMON, ("network.target", "redis.service"))
    return SystemdService(descriptor, service_dir=tmp_path, runner=runner)


def test_install_writes_unit_and_enables(controller, runner, tmp_path, privileged):
    controller.install("run", "--port", "8080")

    assert (tmp_path / "web.service").read_text() == (
        "[Unit]\n"
        "Description=Web frontend\n"
        "Requires=network.target redis.service\n"
        "After=network.target redis.service\n"
        "\n"
        "[Service]\n"
        "PIDFile=/var/run/web.pid\n"
        "ExecStartPre=/bin/rm -f /var/run/web.pid\n"
        "ExecStart=/usr/local/bin/updaterd run --port 8080\n"
        "Restart=on-failure\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )
    assert runner.commands == [
        ["systemctl", "daemon-reload"],
        ["systemctl", "enable", "web.service"],
    ]


def test_install_twice_fails(controller, privileged):
    controller.install()
    with pytest.raises(AlreadyInstalledError):
        controller.install()


def test_install_requires_root(controller, tmp_path, unprivileged):
    with pytest.raises(PrivilegeError):
        controller.install()
    assert not (tmp_path / "web.service").exists()


def test_install_reports_failed_registration(controller, runner, privileged):
    runner.set(["systemctl", "daemon-reload"], returncode=1)
    with pytest.raises(ServiceCommandError) as excinfo:
        controller.install()
    assert excinfo.value.returncode == 1
    assert excinfo.value.command == ["systemctl", "daemon-reload"]


def test_remove_never_installed_always_fails(controller, runner, privileged):
    for _ in range(3):
        with pytest.raises(NotInstalledError):
            controller.remove()
    assert runner.commands == []


def test_remove_disables_and_deletes(controller, runner, tmp_path, privileged):
    controller.install()
    runner.commands.clear()

    controller.remove()

    assert runner.commands == [["systemctl", "disable", "web.service"]]
    assert not (tmp_path / "web.service").exists()


def test_start_requires_installation(controller, privileged):
    with pytest.raises(NotInstalledError):
        controller.start()


def test_start_runs_systemctl(controller, runner, privileged):
    controller.install()
    runner.set(["systemctl", "status"], returncode=3, stdout=INACTIVE_OUTPUT)
    runner.commands.clear()

    controller.start()

    assert runner.commands == [
        ["systemctl", "status", "web.service"],
        ["systemctl", "start", "web.service"],
    ]


def test_start_when_running_fails(controller, runner, privileged):
    controller.install()
    runner.set(["systemctl", "status"], stdout=RUNNING_OUTPUT)
    with pytest.raises(AlreadyRunningError):
        controller.start()


def test_stop_when_stopped_fails(controller, runner, privileged):
    controller.install()
    runner.set(["systemctl", "status"], returncode=3, stdout=INACTIVE_OUTPUT)
    with pytest.raises(AlreadyStoppedError):
        controller.stop()


def test_stop_runs_systemctl(controller, runner, privileged):
    controller.install()
    runner.set(["systemctl", "status"], stdout=RUNNING_OUTPUT)
    controller.stop()
    assert runner.commands[-1] == ["systemctl", "stop", "web.service"]


def test_status_reports_pid(controller, runner, privileged):
    controller.install()
    runner.set(["systemctl", "status"], stdout=RUNNING_OUTPUT)

    status = controller.status()

    assert status.running is True
    assert status.pid == 4242
    assert status.message == "Service (pid  4242) is running..."


def test_status_running_without_pid(controller, runner, privileged):
    controller.install()
    runner.set(["systemctl", "status"], stdout="Active: active (exited)\n")

    status = controller.status()

    assert status.running is True
    assert status.pid is None
    assert str(status) == "Service is running..."


def test_status_stopped(controller, runner, privileged):
    controller.install()
    runner.set(["systemctl", "status"], returncode=3, stdout=INACTIVE_OUTPUT)
    status = controller.status()
    assert status.running is False
    assert status.message == "Service is stopped"


def test_status_missing_systemctl_reads_as_stopped(controller, runner, privileged):
    controller.install()
    runner.responses[("systemctl", "status")] = FileNotFoundError("systemctl")
    assert controller.status().running is False


def test_status_not_installed(controller, privileged):
    with pytest.raises(NotInstalledError) as excinfo:
        controller.status()
    assert str(excinfo.value) == "Service not installed"


def test_status_requires_root(controller, unprivileged):
    with pytest.raises(PrivilegeError):
        controller.status()


def test_template_is_per_instance(tmp_path, runner, privileged):
    descriptor = ServiceDescriptor("a", "first", Kind.SYSTEM_DAEMON)
    custom = SystemdService(descriptor, service_dir=tmp_path, runner=runner)
    stock = SystemdService(ServiceDescriptor("b", "second", Kind.SYSTEM_DAEMON), service_dir=tmp_path, runner=runner)

    custom.set_template("[Service]\nExecStart={{ path }} {{ args }}\n")
    custom.install("run")

    assert custom.get_template() == "[Service]\nExecStart={{ path }} {{ args }}\n"
    assert stock.get_template() == SYSTEMD_UNIT
    assert (tmp_path / "a.service").read_text() == "[Service]\nExecStart=/usr/local/bin/updaterd run\n"


def test_set_template_rejects_bad_syntax(controller):
    with pytest.raises(TemplateSyntaxError):
        controller.set_template("{% for x in %}")
    assert controller.get_template() == SYSTEMD_UNIT


def test_run_hands_over_to_executable(controller):
    calls = []

    class Program:
        def start(self):
            calls.append("start")

        def stop(self):
            calls.append("stop")

        def run(self):
            calls.append("run")

    controller.run(Program())
    assert calls == ["run"]

import json

from updaterd.models import UpdateEntry, UpdaterConfig
from updaterd.supervisor import Supervisor


class FakeLoop:
    """Reconcile loop stand-in that bumps a version and asks for shutdown."""

    instances = []

    def __init__(self, supervisor, updater_config, fetcher, replacer):
        self.supervisor = supervisor
        self.updater_config = updater_config
        self.fetcher = fetcher
        self.replacer = replacer
        self.started = False
        self.stopped = False
        FakeLoop.instances.append(self)

    async def start(self):
        self.started = True
        self.updater_config.daemons[0].version = 7
        self.supervisor.request_shutdown()

    async def stop(self):
        self.stopped = True


def make_supervisor(tmp_path):
    supervisor = Supervisor(config_path=tmp_path / "update.json", base_dir=tmp_path)
    supervisor.loop_factory = lambda *args: FakeLoop(supervisor, *args)
    return supervisor


def test_missing_config_bootstraps_default_and_exits(tmp_path):
    FakeLoop.instances.clear()
    supervisor = make_supervisor(tmp_path)

    assert supervisor.run() == 1

    written = json.loads((tmp_path / "update.json").read_text())
    assert len(written["daemons"]) == 1
    assert written["daemons"][0]["name"] == "daemon"
    assert FakeLoop.instances == []


def test_corrupt_config_is_replaced_by_default(tmp_path):
    (tmp_path / "update.json").write_text("not json")
    supervisor = make_supervisor(tmp_path)

    assert supervisor.load() is False
    assert UpdaterConfig.load(tmp_path / "update.json").daemons[0].name == "daemon"


def test_run_persists_config_on_shutdown(tmp_path):
    FakeLoop.instances.clear()
    UpdaterConfig(daemons=[UpdateEntry(name="svc", url="https://x/update.json", version=1)]).save(tmp_path / "update.json")
    supervisor = make_supervisor(tmp_path)

    assert supervisor.run() == 0

    loop = FakeLoop.instances[0]
    assert loop.started and loop.stopped
    assert loop.replacer.base_dir == tmp_path
    assert UpdaterConfig.load(tmp_path / "update.json").daemons[0].version == 7


def test_undecodable_config_is_replaced_by_default(tmp_path):
    (tmp_path / "update.json").write_bytes(b"\xff\xfe\x00garbage")
    supervisor = make_supervisor(tmp_path)

    assert supervisor.load() is False
    assert UpdaterConfig.load(tmp_path / "update.json").daemons[0].name == "daemon"

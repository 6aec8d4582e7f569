import json

import pytest
from pydantic import ValidationError

from updaterd.models import UpdateEntry, UpdateManifest, UpdaterConfig, default_config


def test_save_then_load_preserves_entries(tmp_path):
    path = tmp_path / "update.json"
    original = UpdaterConfig(daemons=[
        UpdateEntry(name="web", description="Web frontend", url="https://x/web.json", version=3),
        UpdateEntry(name="worker", description="", url="", version=0),
        UpdateEntry(name="api", description="API server", url="https://x/api.json", version=20240101),
    ])

    original.save(path)
    loaded = UpdaterConfig.load(path)

    assert loaded == original
    assert [entry.name for entry in loaded.daemons] == ["web", "worker", "api"]


def test_file_uses_short_keys(tmp_path):
    path = tmp_path / "update.json"
    UpdaterConfig(daemons=[UpdateEntry(name="svc", description="d", url="https://x", version=5)]).save(path)

    assert json.loads(path.read_text()) == {
        "daemons": [{"name": "svc", "desc": "d", "url": "https://x", "ver": 5}],
    }


def test_load_missing_file(tmp_path):
    with pytest.raises(OSError):
        UpdaterConfig.load(tmp_path / "update.json")


def test_load_corrupt_file(tmp_path):
    path = tmp_path / "update.json"
    path.write_text("{daemons: oops")
    with pytest.raises(ValidationError):
        UpdaterConfig.load(path)


def test_load_tolerates_missing_keys(tmp_path):
    path = tmp_path / "update.json"
    path.write_text('{"daemons": [{"name": "svc"}]}')
    entry = UpdaterConfig.load(path).daemons[0]
    assert (entry.name, entry.description, entry.url, entry.version) == ("svc", "", "", 0)


def test_manifest_wire_format():
    manifest = UpdateManifest.model_validate_json(
        '{"ver": 7, "files": [{"url": "https://x/bin", "file": "bin"}, {"url": "https://x/lib.so", "file": "/opt/lib.so"}]}'
    )
    assert manifest.version == 7
    assert [(f.url, f.file) for f in manifest.files] == [("https://x/bin", "bin"), ("https://x/lib.so", "/opt/lib.so")]


def test_manifest_defaults():
    manifest = UpdateManifest.model_validate_json("{}")
    assert manifest.version == 0
    assert manifest.files == []


def test_default_config_has_one_entry():
    daemons = default_config().daemons
    assert len(daemons) == 1
    assert daemons[0].name == "daemon"
    assert daemons[0].version == 20210101

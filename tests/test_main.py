import json
import logging

import pytest

import main
from rallymap.file.inireader import STORAGE_KEY

XML = """<?xml version="1.0" encoding="utf-8"?>
<ActionMap name="custom_input">
  <Action id="Accelerate">
    <Axis id="di_y_axis" restricted_device="{18390EB7-0000-0000-0000-504944564944}" type="uniDirPos" deadzone="0.1" saturation="1.0" />
  </Action>
  <Action id="Horn">
    <Axis id="di_button_2" restricted_device="{C24F046D-0000-0000-0000-504944564944}" />
  </Action>
</ActionMap>
"""


@pytest.fixture
def run(tmp_path):
    ini = tmp_path / "rallymap.ini"
    ini.write_text(
        f"[storage]\ndirectory = {tmp_path / 'state'}\n[logging]\nlogfile =\ncolor = no\n",
        encoding="utf-8",
    )

    def _run(*argv):
        return main.main(["--config", str(ini), *argv])

    yield _run

    # handlers hold the captured stdout of this test
    log = logging.getLogger("rallymap")
    for h in list(log.handlers):
        log.removeHandler(h)


def autosave(tmp_path):
    return json.loads((tmp_path / "state" / f"{STORAGE_KEY}.json").read_text(encoding="utf-8"))


def test_import_then_show_uses_autosave(run, tmp_path, capsys):
    src = tmp_path / "custom_input.xml"
    src.write_text(XML, encoding="utf-8")

    assert run("import-xml", str(src)) == 0
    capsys.readouterr()
    assert run("show") == 0

    out = capsys.readouterr().out
    assert "Accelerate (Throttle) [Accelerate]" in out
    assert "axis 1" in out
    assert "calibration=uniDirPos deadzone=0.1" in out
    assert set(autosave(tmp_path)["mappings"]) == {"Accelerate", "Horn"}


def test_set_and_unbind(run, tmp_path):
    src = tmp_path / "custom_input.xml"
    src.write_text(XML, encoding="utf-8")
    run("import-xml", str(src))

    assert run("set", "Accelerate", "0", "--deadzone", "0.2") == 0
    assert autosave(tmp_path)["mappings"]["Accelerate"][0]["deadzone"] == 0.2

    assert run("set", "Accelerate", "5", "--deadzone", "0.2") == 1
    assert run("set", "Accelerate", "0") == 1

    assert run("unbind", "Horn", "0") == 0
    assert "Horn" not in autosave(tmp_path)["mappings"]
    assert run("unbind", "Horn", "0") == 1


def test_export_round_trip(run, tmp_path):
    src = tmp_path / "in.xml"
    src.write_text(XML, encoding="utf-8")
    run("import-xml", str(src))

    out_xml = tmp_path / "out.xml"
    out_json = tmp_path / "project.json"
    assert run("export-xml", str(out_xml)) == 0
    assert run("export-json", str(out_json)) == 0

    text = out_xml.read_text(encoding="utf-8")
    assert 'id="di_y_axis"' in text
    assert 'id="di_button_2"' in text
    project = json.loads(out_json.read_text(encoding="utf-8"))
    assert project["version"] == 1
    assert project["mappings"]["Horn"][0]["deviceName"] == "Unknown/Imported"


def test_select_toggles(run, tmp_path):
    guid = "{C24F046D-0000-0000-0000-504944564944}"

    run("select", guid)
    assert autosave(tmp_path)["selectedGuids"] == [guid]
    run("select", guid)
    assert autosave(tmp_path)["selectedGuids"] == []


def test_bad_import_fails_and_keeps_bindings(run, tmp_path):
    good = tmp_path / "good.xml"
    good.write_text(XML, encoding="utf-8")
    bad = tmp_path / "bad.json"
    bad.write_text('{"version": 9}', encoding="utf-8")
    run("import-xml", str(good))

    assert run("import-json", str(bad)) == 1
    assert set(autosave(tmp_path)["mappings"]) == {"Accelerate", "Horn"}


def test_actions_listing(run, capsys):
    assert run("actions") == 0

    out = capsys.readouterr().out
    assert "[Steer Left]" in out
    assert "[Handbrake]" in out


def test_missing_config_file(tmp_path):
    with pytest.raises(SystemExit):
        main.main(["--config", str(tmp_path / "nope.ini"), "show"])


def test_bind_unknown_action_is_refused(run, tmp_path, monkeypatch):
    def no_controllers(*_):
        raise AssertionError("controllers opened for an unknown action")

    monkeypatch.setattr(main, "connect_devices", no_controllers)

    assert run("bind", "steer left") == 1
    assert autosave(tmp_path)["mappings"] == {}

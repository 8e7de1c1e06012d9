import io
import logging

import pytest

from rallymap.file.blobstore import DirectoryBlobStore
from rallymap.file.inireader import STORAGE_KEY, AppConfig, IniReader
from rallymap.logger.logger import setup_logger


def test_defaults_without_ini():
    cfg = AppConfig.from_ini(IniReader())

    assert cfg.frame_hz == 60
    assert cfg.frame_interval == pytest.approx(1 / 60)
    assert cfg.poll_interval == 1.0
    assert cfg.storage_dir == "."
    assert cfg.storage_key == STORAGE_KEY
    assert cfg.logfile == "rallymap.log"
    assert cfg.color is True
    assert cfg.debug is False


def test_overrides_from_text():
    cfg = AppConfig.from_ini(IniReader(text="""
[detection]
frame_hz = 120   ; faster
[devices]
poll_interval = 0.25
[storage]
directory = saves
key = profile_a
[logging]
logfile =
color = no
debug = yes
"""))

    assert cfg.frame_interval == pytest.approx(1 / 120)
    assert cfg.poll_interval == 0.25
    assert (cfg.storage_dir, cfg.storage_key) == ("saves", "profile_a")
    assert cfg.logfile == ""
    assert (cfg.color, cfg.debug) == (False, True)


def test_ini_file_on_disk(tmp_path):
    ini = tmp_path / "rallymap.ini"
    ini.write_text("[devices]\npoll_interval = 2\n", encoding="utf-8")

    assert AppConfig.from_ini(IniReader(ini)).poll_interval == 2.0


def test_bad_numbers_fall_back(caplog):
    reader = IniReader(text="[detection]\nframe_hz = fast\n[devices]\npoll_interval = soon\n")

    with caplog.at_level(logging.WARNING, logger="rallymap.config"):
        cfg = AppConfig.from_ini(reader)

    assert cfg.frame_hz == 60
    assert cfg.poll_interval == 1.0
    assert "[CONFIG]" in caplog.text


def test_zero_frame_rate_is_clamped():
    cfg = AppConfig()
    cfg.frame_hz = 0

    assert cfg.frame_interval == 1.0


def test_directory_store(tmp_path):
    store = DirectoryBlobStore(tmp_path / "state")

    assert store.get(STORAGE_KEY) is None
    store.set(STORAGE_KEY, '{"version": 1}')
    store.set(STORAGE_KEY, '{"version": 1, "mappings": {}}')

    assert store.get(STORAGE_KEY) == '{"version": 1, "mappings": {}}'
    assert sorted(p.name for p in (tmp_path / "state").iterdir()) == [f"{STORAGE_KEY}.json"]


@pytest.mark.parametrize("key", ["", "../escape", "a/b", "with space"])
def test_directory_store_rejects_unsafe_keys(tmp_path, key):
    with pytest.raises(ValueError):
        DirectoryBlobStore(tmp_path).get(key)


def test_logger_console_and_file(tmp_path):
    stream = io.StringIO()
    logfile = tmp_path / "logs" / "run.log"
    log = setup_logger("rallymap.test.both", str(logfile), color_console=False, stream=stream)

    log.debug("[DETECT] armed")
    log.info("[BINDINGS] bound")
    for h in log.handlers:
        h.flush()

    assert "[BINDINGS] bound" in stream.getvalue()
    assert "[DETECT] armed" not in stream.getvalue()
    assert "[DETECT] armed" in logfile.read_text(encoding="utf-8")

    for h in list(log.handlers):
        h.close()
        log.removeHandler(h)


def test_logger_is_configured_once():
    stream = io.StringIO()
    first = setup_logger("rallymap.test.once", None, stream=stream)
    second = setup_logger("rallymap.test.once", None, stream=stream)

    assert first is second
    assert len(second.handlers) == 1
    second.removeHandler(second.handlers[0])

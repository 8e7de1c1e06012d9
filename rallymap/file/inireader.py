import configparser
import logging
from pathlib import Path

LOG = logging.getLogger("rallymap.config")

STORAGE_KEY = "dirt_mapper_config_v1"


class IniReader:
    def __init__(self, path=None, text=None):
        self.cfg = configparser.ConfigParser(inline_comment_prefixes=(";", "#"))
        self.cfg.optionxform = str  # preserve case
        self.path = Path(path) if path else None
        if self.path is not None:
            self.cfg.read(self.path, encoding="utf-8")
        if text:
            self.cfg.read_string(text)

    def has(self, section: str, option: str) -> bool:
        return self.cfg.has_option(section, option)

    def get_str(self, section: str, option: str, fallback: str = "") -> str:
        if not self.cfg.has_option(section, option):
            return fallback
        return self.cfg.get(section, option).strip()

    def get_int(self, section: str, option: str, fallback: int = 0) -> int:
        try:
            return int(self.get_str(section, option, str(fallback)))
        except ValueError:
            LOG.warning(f"[CONFIG] [{section}] {option} is not an integer, using {fallback}")
            return fallback

    def get_float(self, section: str, option: str, fallback: float = 0.0) -> float:
        try:
            return float(self.get_str(section, option, str(fallback)))
        except ValueError:
            LOG.warning(f"[CONFIG] [{section}] {option} is not a number, using {fallback}")
            return fallback

    def get_bool(self, section: str, option: str, fallback: bool = False) -> bool:
        val = self.get_str(section, option, str(fallback))
        return val.lower() in ("1", "yes", "true", "on")


class AppConfig:
    def __init__(self):
        # Detection
        self.frame_hz = 60
        # Device scanning
        self.poll_interval = 1.0
        # Autosave
        self.storage_dir = "."
        self.storage_key = STORAGE_KEY
        # Logging
        self.logfile = "rallymap.log"
        self.color = True
        self.debug = False

    @property
    def frame_interval(self) -> float:
        return 1.0 / max(1, self.frame_hz)

    @classmethod
    def from_ini(cls, cfg: IniReader):
        obj = cls()
        obj.frame_hz = cfg.get_int("detection", "frame_hz", obj.frame_hz)
        obj.poll_interval = cfg.get_float("devices", "poll_interval", obj.poll_interval)
        obj.storage_dir = cfg.get_str("storage", "directory", obj.storage_dir) or "."
        obj.storage_key = cfg.get_str("storage", "key", obj.storage_key) or STORAGE_KEY
        if cfg.has("logging", "logfile"):
            obj.logfile = cfg.get_str("logging", "logfile")  # empty disables the file log
        obj.color = cfg.get_bool("logging", "color", obj.color)
        obj.debug = cfg.get_bool("logging", "debug", obj.debug)
        return obj

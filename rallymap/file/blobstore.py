"""
blobstore.py
Key/value text storage the workspace saves its autosave envelope into.
"""

import abc
import logging
import re
from pathlib import Path
from typing import Optional

LOG = logging.getLogger("rallymap.store")

_SAFE_KEY_RE = re.compile(r"[A-Za-z0-9_.-]+")


class BlobStore(abc.ABC):
    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def set(self, key: str, value: str):
        raise NotImplementedError


class MemoryBlobStore(BlobStore):
    def __init__(self, initial: Optional[dict] = None):
        self.data = dict(initial or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value


class DirectoryBlobStore(BlobStore):
    """One <key>.json file per key inside a directory."""

    def __init__(self, directory, log=None):
        self.directory = Path(directory)
        self.log = log or LOG

    def _path(self, key) -> Path:
        if not _SAFE_KEY_RE.fullmatch(key):
            raise ValueError(f"Unsupported storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key):
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key, value):
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)
        self.log.debug(f"[STORE] Saved {key} -> {path}")

"""Project state JSON envelope.

    {"version": 1, "timestamp": "...", "mappings": {...},
     "deviceOrder": [...], "selectedGuids": [...]}

Sections missing from a loaded document come back as None so the caller can
leave its current value alone. Documents written by a newer format version
are refused rather than half understood.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from rallymap.controller.bindings import MappingStore
from rallymap.errors import InvalidFormat

LOG = logging.getLogger("rallymap.json")

FORMAT_VERSION = 1


@dataclass
class ProjectState:
    mappings: Optional[MappingStore] = None
    device_order: Optional[list] = None
    selected_guids: Optional[set] = None
    version: int = FORMAT_VERSION
    timestamp: Optional[str] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def dump_state(state: ProjectState, indent: Optional[int] = 2) -> str:
    envelope = {
        "version": FORMAT_VERSION,
        "timestamp": state.timestamp or _now(),
        "mappings": (state.mappings or MappingStore()).to_dict(),
        "deviceOrder": list(state.device_order or []),
        "selectedGuids": sorted(state.selected_guids or ()),
    }
    return json.dumps(envelope, indent=indent, ensure_ascii=False)


def _guid_list(value, name):
    if not isinstance(value, list) or not all(isinstance(g, str) for g in value):
        raise InvalidFormat(f"Invalid project JSON: {name} must be a list of GUID strings")
    return value


def load_state(text: str) -> ProjectState:
    """Parse a project envelope. Raises InvalidFormat, never returns partial state."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise InvalidFormat(f"Invalid project JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidFormat("Invalid project JSON: top level must be an object")

    version = data.get("version", FORMAT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version < 1:
        raise InvalidFormat(f"Invalid project JSON: bad version {version!r}")
    if version > FORMAT_VERSION:
        raise InvalidFormat(
            f"Project JSON version {version} is newer than supported version {FORMAT_VERSION}"
        )

    state = ProjectState(version=version, timestamp=data.get("timestamp"))
    if data.get("mappings") is not None:
        try:
            state.mappings = MappingStore.from_dict(data["mappings"])
        except (TypeError, ValueError) as e:
            raise InvalidFormat(f"Invalid project JSON mappings: {e}") from e
    if data.get("deviceOrder") is not None:
        state.device_order = list(_guid_list(data["deviceOrder"], "deviceOrder"))
    if data.get("selectedGuids") is not None:
        state.selected_guids = set(_guid_list(data["selectedGuids"], "selectedGuids"))

    LOG.debug(
        f"[JSON] Loaded v{version}: "
        f"{state.mappings.count() if state.mappings else 0} binding(s), "
        f"{len(state.device_order or [])} ordered device(s)"
    )
    return state

from dataclasses import dataclass, fields, replace
from typing import Optional, Literal
import logging

LOG = logging.getLogger("rallymap.bindings")

CALIBRATION_TYPES = ("biDirLower", "biDirUpper", "uniDirNeg", "uniDirPos")

IMPORTED_DEVICE_INDEX = -1
IMPORTED_DEVICE_NAME = "Unknown/Imported"

# ---------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------
@dataclass
class InputMapping:
    device_guid: str
    device_index: int = IMPORTED_DEVICE_INDEX     # cached, refreshed by reconcile()
    device_name: str = IMPORTED_DEVICE_NAME       # cached, refreshed by reconcile()
    type: Literal["button", "axis"] = "button"
    index: int = 0
    direction: Optional[Literal["positive", "negative"]] = None
    calibration: Optional[str] = None
    deadzone: float = 0.0
    saturation: float = 1.0

    @property
    def key(self):
        """Dedup key within one action's list."""
        return (self.device_guid, self.type, self.index, self.direction)

    def to_dict(self) -> dict:
        d = {
            "deviceGuid": self.device_guid,
            "deviceIndex": self.device_index,
            "deviceName": self.device_name,
            "type": self.type,
            "index": self.index,
        }
        if self.direction is not None:
            d["direction"] = self.direction
        if self.calibration is not None:
            d["calibration"] = self.calibration
        d["deadzone"] = self.deadzone
        d["saturation"] = self.saturation
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "InputMapping":
        """Build from the camelCase JSON shape. Raises ValueError on bad structure."""
        if not isinstance(d, dict):
            raise ValueError(f"mapping entry must be an object, got {type(d).__name__}")
        guid = d.get("deviceGuid")
        if not isinstance(guid, str) or not guid:
            raise ValueError("mapping entry without deviceGuid")
        kind = d.get("type")
        if kind not in ("button", "axis"):
            raise ValueError(f"unsupported input type {kind!r}")
        index = d.get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            raise ValueError(f"input index must be an integer, got {index!r}")
        direction = d.get("direction")
        if direction not in (None, "positive", "negative"):
            raise ValueError(f"unsupported axis direction {direction!r}")
        calibration = d.get("calibration")
        check_calibration(calibration)
        return cls(
            device_guid=guid,
            device_index=int(d.get("deviceIndex", IMPORTED_DEVICE_INDEX)),
            device_name=str(d.get("deviceName", IMPORTED_DEVICE_NAME)),
            type=kind,
            index=index,
            direction=direction,
            calibration=calibration,
            deadzone=float(d.get("deadzone", 0.0)),
            saturation=float(d.get("saturation", 1.0)),
        )


def check_calibration(calibration):
    if calibration is not None and calibration not in CALIBRATION_TYPES:
        raise ValueError(f"unsupported calibration {calibration!r}")


def default_calibration(action_id: str) -> str:
    if action_id == "Steer Left":
        return "biDirLower"
    if action_id == "Steer Right":
        return "biDirUpper"
    return "uniDirPos"


# ---------------------------------------------------------------
# Store
# ---------------------------------------------------------------
class MappingStore:
    """
    action id -> ordered list of InputMapping.

    Lists keep binding order, and an action's key disappears as soon as its
    list is empty, so `action in store` means "has at least one binding".
    """

    _FIELDS = {f.name for f in fields(InputMapping)}

    def __init__(self, log=None):
        self.log = log or LOG
        self._actions: dict[str, list[InputMapping]] = {}

    def __len__(self):
        return len(self._actions)

    def __contains__(self, action_id):
        return action_id in self._actions

    def __eq__(self, other):
        if not isinstance(other, MappingStore):
            return NotImplemented
        return self._actions == other._actions

    def actions(self) -> list[str]:
        return list(self._actions)

    def items(self):
        return [(a, list(ms)) for a, ms in self._actions.items()]

    def get(self, action_id) -> list[InputMapping]:
        return list(self._actions.get(action_id, []))

    def count(self) -> int:
        return sum(len(ms) for ms in self._actions.values())

    def add_binding(self, action_id: str, mapping: InputMapping) -> bool:
        """Append unless an identical (guid, type, index, direction) exists."""
        current = self._actions.get(action_id, [])
        if any(m.key == mapping.key for m in current):
            self.log.debug(f"[BINDINGS] {action_id}: duplicate {mapping.key} ignored")
            return False
        self._actions[action_id] = current + [mapping]
        self.log.debug(
            f"[BINDINGS] {action_id} <- {mapping.device_name} {mapping.type} {mapping.index}"
            + (f" ({mapping.direction})" if mapping.direction else "")
        )
        return True

    def remove_binding(self, action_id: str, position: int) -> bool:
        current = self._actions.get(action_id)
        if not current or not 0 <= position < len(current):
            self.log.warning(f"[BINDINGS] {action_id}: no binding at position {position}")
            return False
        updated = current[:position] + current[position + 1:]
        if updated:
            self._actions[action_id] = updated
        else:
            del self._actions[action_id]
        self.log.info(f"[BINDINGS] {action_id}: removed binding {position}")
        return True

    def update_binding(self, action_id: str, position: int, **changes) -> bool:
        """
        Merge field changes into one binding. An unknown calibration raises
        ValueError, an out of range deadzone/saturation is stored as given.
        """
        unknown = set(changes) - self._FIELDS
        if unknown:
            raise TypeError(f"unknown InputMapping field(s): {', '.join(sorted(unknown))}")
        if "calibration" in changes:
            check_calibration(changes["calibration"])
        current = self._actions.get(action_id)
        if not current or not 0 <= position < len(current):
            self.log.warning(f"[BINDINGS] {action_id}: no binding at position {position}")
            return False
        updated = list(current)
        updated[position] = replace(current[position], **changes)
        self._actions[action_id] = updated
        self.log.debug(f"[BINDINGS] {action_id}[{position}] updated {changes}")
        return True

    def reconcile(self, devices) -> bool:
        """
        Refresh cached device_name/device_index from live devices by GUID.
        Bindings for devices that are not connected stay as they are.
        """
        by_guid = {}
        for d in devices:
            by_guid.setdefault(d.guid, d)

        changed = False
        for action_id, current in self._actions.items():
            refreshed = []
            for m in current:
                d = by_guid.get(m.device_guid)
                if d and (m.device_name != d.name or m.device_index != d.index):
                    m = replace(m, device_name=d.name, device_index=d.index)
                    changed = True
                refreshed.append(m)
            self._actions[action_id] = refreshed
        if changed:
            self.log.info("[BINDINGS] Device names/indices refreshed from live devices")
        return changed

    def replace_all(self, other: "MappingStore"):
        self._actions = {a: list(ms) for a, ms in other._actions.items()}

    def to_dict(self) -> dict:
        return {a: [m.to_dict() for m in ms] for a, ms in self._actions.items()}

    @classmethod
    def from_dict(cls, data: dict, log=None) -> "MappingStore":
        """Raises ValueError when the structure is not action -> list of mappings."""
        if not isinstance(data, dict):
            raise ValueError("mappings must be an object")
        store = cls(log=log)
        for action_id, entries in data.items():
            if not isinstance(entries, list):
                raise ValueError(f"mappings for {action_id!r} must be a list")
            for entry in entries:
                store.add_binding(action_id, InputMapping.from_dict(entry))
        return store

    def __repr__(self):
        return f"MappingStore({self.to_dict()!r})"

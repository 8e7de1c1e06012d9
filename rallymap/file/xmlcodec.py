"""DiRT Rally ActionMap XML reading and writing.

Written documents look like::

    <?xml version="1.0" encoding="utf-8"?>
    <ActionMap name="custom_input" device_type_0="{C24F046D-0000-0000-0000-504944564944}">
      <Action id="Steer Left">
        <Axis id="di_x_axis" restricted_device="{C24F046D-...}" type="biDirLower" deadzone="0.0" saturation="1.0" />
      </Action>
    </ActionMap>

Buttons are written as ``<Axis id="di_button_N">`` as well; the game reads
both kinds from that one tag name. Axis direction has no attribute in this
format and is dropped on export.
"""

import logging
import re
from xml.etree import ElementTree as ET

from rallymap.controller.bindings import CALIBRATION_TYPES, InputMapping, MappingStore
from rallymap.errors import InvalidFormat

LOG = logging.getLogger("rallymap.xml")

AXIS_NAMES = [
    "di_x_axis",
    "di_y_axis",
    "di_z_axis",
    "di_x_axis_rotation",
    "di_y_axis_rotation",
    "di_z_axis_rotation",
    "di_slider_0",
    "di_slider_1",
]

BUTTON_PREFIX = "di_button_"
_GENERIC_AXIS_RE = re.compile(r"di_axis_(\d+)")
_DIGITS_RE = re.compile(r"\d+")

ACTION_MAP_NAME = "custom_input"


# ── Input ids ────────────────────────────────────────────────────────────

def input_id_for(mapping: InputMapping) -> str:
    if mapping.type == "button":
        return f"{BUTTON_PREFIX}{mapping.index}"
    if 0 <= mapping.index < len(AXIS_NAMES):
        return AXIS_NAMES[mapping.index]
    return f"di_axis_{mapping.index}"


def parse_input_id(input_id: str):
    """Return (type, index) for an Axis id, or None when it is not recognised."""
    if input_id.startswith(BUTTON_PREFIX):
        digits = input_id[len(BUTTON_PREFIX):]
        if not _DIGITS_RE.fullmatch(digits):
            return None
        return "button", int(digits)
    if input_id in AXIS_NAMES:
        return "axis", AXIS_NAMES.index(input_id)
    m = _GENERIC_AXIS_RE.fullmatch(input_id)
    if m:
        return "axis", int(m.group(1))
    return None


def _number(value: float) -> str:
    return repr(float(value))


def _float(raw, default: float) -> float:
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ── Writing ──────────────────────────────────────────────────────────────

def to_xml(devices, mappings: MappingStore) -> str:
    """Serialize bindings. ``devices`` is the priority-ordered device list."""
    root = ET.Element("ActionMap")
    root.set("name", ACTION_MAP_NAME)
    for n, device in enumerate(devices):
        root.set(f"device_type_{n}", device.guid)

    for action_id, entries in mappings.items():
        if not entries:
            continue
        action = ET.SubElement(root, "Action")
        action.set("id", action_id)
        for m in entries:
            node = ET.SubElement(action, "Axis")
            node.set("id", input_id_for(m))
            node.set("restricted_device", m.device_guid)
            if m.calibration:
                node.set("type", m.calibration)
            node.set("deadzone", _number(m.deadzone))
            node.set("saturation", _number(m.saturation))

    ET.indent(root, space="  ")
    LOG.info(f"[XML] Exported {mappings.count()} binding(s) for {len(mappings)} action(s)")
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        + ET.tostring(root, encoding="unicode")
        + "\n"
    )


# ── Reading ──────────────────────────────────────────────────────────────

def from_xml(text: str) -> MappingStore:
    """
    Parse an ActionMap document into a new MappingStore.

    Device index/name are placeholders until the store is reconciled against
    live devices. Raises InvalidFormat for unparseable XML or a missing
    ActionMap element; individual unknown inputs are skipped.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise InvalidFormat(f"Invalid XML: {e}") from e

    action_map = root if root.tag == "ActionMap" else root.find(".//ActionMap")
    if action_map is None:
        raise InvalidFormat("Invalid XML: No ActionMap found")

    store = MappingStore()
    skipped = 0
    for action in action_map.iter("Action"):
        action_id = action.get("id")
        if not action_id:
            continue
        for node in action.iter("Axis"):
            mapping = _parse_axis_node(node, action_id)
            if mapping is None:
                skipped += 1
                continue
            store.add_binding(action_id, mapping)

    LOG.info(
        f"[XML] Imported {store.count()} binding(s) for {len(store)} action(s)"
        + (f", skipped {skipped}" if skipped else "")
    )
    return store


def _parse_axis_node(node, action_id):
    input_id = node.get("id")
    if not input_id:
        return None
    parsed = parse_input_id(input_id)
    if parsed is None:
        LOG.debug(f"[XML] {action_id}: unknown axis or button {input_id!r} skipped")
        return None

    # never guess which controller an input belongs to
    guid = node.get("restricted_device")
    if not guid:
        LOG.debug(f"[XML] {action_id}: {input_id} has no restricted_device, skipped")
        return None

    calibration = node.get("type") or None
    if calibration not in (None, *CALIBRATION_TYPES):
        LOG.debug(f"[XML] {action_id}: {input_id} unknown calibration {calibration!r} dropped")
        calibration = None

    kind, index = parsed
    return InputMapping(
        device_guid=guid,
        type=kind,
        index=index,
        calibration=calibration,
        deadzone=_float(node.get("deadzone"), 0.0),
        saturation=_float(node.get("saturation"), 1.0),
    )

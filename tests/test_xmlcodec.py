from xml.etree import ElementTree as ET

import pytest

from rallymap.controller.bindings import InputMapping, MappingStore
from rallymap.controller.devices import resolve_device
from rallymap.errors import InvalidFormat
from rallymap.file.xmlcodec import from_xml, input_id_for, parse_input_id, to_xml

from conftest import PEDALS_ID, WHEEL_ID

WHEEL = resolve_device(WHEEL_ID, 0, 6, 24)
PEDALS = resolve_device(PEDALS_ID, 1, 3, 0)


def doc(body, root_attrs='name="custom_input"'):
    return f'<?xml version="1.0" encoding="utf-8"?>\n<ActionMap {root_attrs}>{body}</ActionMap>'


@pytest.mark.parametrize(
    "mapping, expected",
    [
        (InputMapping("{G}", type="button", index=0), "di_button_0"),
        (InputMapping("{G}", type="button", index=31), "di_button_31"),
        (InputMapping("{G}", type="axis", index=0), "di_x_axis"),
        (InputMapping("{G}", type="axis", index=5), "di_z_axis_rotation"),
        (InputMapping("{G}", type="axis", index=7), "di_slider_1"),
        (InputMapping("{G}", type="axis", index=8), "di_axis_8"),
    ],
)
def test_input_ids(mapping, expected):
    assert input_id_for(mapping) == expected
    assert parse_input_id(expected) == (mapping.type, mapping.index)


@pytest.mark.parametrize("input_id", ["di_button_", "di_button_x", "di_pov_0", "di_axis_", "keyboard_a"])
def test_unknown_input_ids(input_id):
    assert parse_input_id(input_id) is None


def test_export_layout():
    store = MappingStore()
    store.add_binding(
        "Accelerate",
        InputMapping(PEDALS.guid, 1, PEDALS.name, "axis", 1, "positive", "uniDirPos", 0.1, 1.0),
    )
    store.add_binding("Gear Up", InputMapping(WHEEL.guid, 0, WHEEL.name, "button", 4))

    text = to_xml([WHEEL, PEDALS], store)

    assert text.startswith('<?xml version="1.0" encoding="utf-8"?>\n<ActionMap ')
    root = ET.fromstring(text)
    assert root.get("name") == "custom_input"
    assert root.get("device_type_0") == WHEEL.guid
    assert root.get("device_type_1") == PEDALS.guid

    actions = root.findall("Action")
    assert [a.get("id") for a in actions] == ["Accelerate", "Gear Up"]

    throttle = actions[0].find("Axis")
    assert throttle.attrib == {
        "id": "di_y_axis",
        "restricted_device": PEDALS.guid,
        "type": "uniDirPos",
        "deadzone": "0.1",
        "saturation": "1.0",
    }
    gear = actions[1].find("Axis")
    assert gear.get("id") == "di_button_4"
    assert gear.get("type") is None
    assert "positive" not in text


def test_export_without_bindings():
    root = ET.fromstring(to_xml([], MappingStore()))

    assert root.tag == "ActionMap"
    assert list(root) == []


def test_round_trip_drops_direction_and_device_cache():
    store = MappingStore()
    store.add_binding(
        "Accelerate",
        InputMapping(PEDALS.guid, 1, PEDALS.name, "axis", 1, "positive", "uniDirPos", 0.1, 1.0),
    )

    back = from_xml(to_xml([PEDALS], store))

    (m,) = back.get("Accelerate")
    assert (m.device_guid, m.type, m.index) == (PEDALS.guid, "axis", 1)
    assert (m.calibration, m.deadzone, m.saturation) == ("uniDirPos", 0.1, 1.0)
    assert m.direction is None
    assert (m.device_index, m.device_name) == (-1, "Unknown/Imported")


def test_import_reads_attributes_and_defaults():
    text = doc(
        '<Action id="Handbrake">'
        '<Axis id="di_button_3" restricted_device="{A}" />'
        '<Axis id="di_axis_9" restricted_device="{A}" type="uniDirNeg" deadzone="0.25" saturation="0.9" />'
        '<Axis id="di_slider_0" restricted_device="{A}" deadzone="" saturation="lots" />'
        '</Action>'
    )

    button, generic, slider = from_xml(text).get("Handbrake")

    assert (button.type, button.index, button.calibration) == ("button", 3, None)
    assert (button.deadzone, button.saturation) == (0.0, 1.0)
    assert (generic.type, generic.index, generic.calibration) == ("axis", 9, "uniDirNeg")
    assert (generic.deadzone, generic.saturation) == (0.25, 0.9)
    assert (slider.index, slider.deadzone, slider.saturation) == (6, 0.0, 1.0)


def test_import_skips_entries_without_device():
    text = doc(
        '<Action id="Horn"><Axis id="di_button_1" /></Action>'
        '<Action id="Wipers"><Axis id="di_button_2" restricted_device="{A}" /></Action>'
    )

    store = from_xml(text)

    assert store.actions() == ["Wipers"]


def test_import_skips_unknown_inputs():
    text = doc(
        '<Action id="Look Left">'
        '<Axis id="di_pov_0_up" restricted_device="{A}" />'
        '<Axis id="di_button_7" restricted_device="{A}" />'
        '</Action>'
        '<Action><Axis id="di_button_1" restricted_device="{A}" /></Action>'
    )

    store = from_xml(text)

    assert store.actions() == ["Look Left"]
    assert [m.index for m in store.get("Look Left")] == [7]


def test_import_dedups_repeated_entries():
    entry = '<Axis id="di_button_7" restricted_device="{A}" />'
    store = from_xml(doc(f'<Action id="Horn">{entry}{entry}</Action>'))

    assert store.count() == 1


def test_import_nested_action_map():
    text = '<Profile><ActionMap name="custom_input"><Action id="Horn">' \
           '<Axis id="di_button_0" restricted_device="{A}" /></Action></ActionMap></Profile>'

    assert from_xml(text).count() == 1


def test_import_without_action_map():
    with pytest.raises(InvalidFormat, match="No ActionMap found"):
        from_xml("<Profile><Action id='Horn' /></Profile>")


@pytest.mark.parametrize("text", ["", "<ActionMap>", "not xml at all"])
def test_import_malformed(text):
    with pytest.raises(InvalidFormat):
        from_xml(text)


def test_import_drops_unknown_calibration():
    store = from_xml(doc(
        '<Action id="Clutch"><Axis id="di_z_axis" restricted_device="{A}" type="sideways" /></Action>'
    ))

    (m,) = store.get("Clutch")
    assert m.calibration is None
    assert "type" not in to_xml([], store).split("<Axis", 1)[1]

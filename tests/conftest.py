import pytest

from rallymap.controller.gamecontroller import ButtonState, GamepadSnapshot, GamepadSource

WHEEL_ID = "G29 Driving Force Racing Wheel (Vendor: 046d Product: c24f)"
PEDALS_ID = "Fanatec ClubSport Pedals (Vendor: 0eb7 Product: 1839)"


class FakePads(GamepadSource):
    """Mutable controller readings; tests change them between frames."""

    def __init__(self):
        self.pads = {}
        self.reads = 0

    def plug(self, index, descriptor, axes=4, buttons=4):
        self.pads[index] = {
            "id": descriptor,
            "axes": [0.0] * axes,
            "buttons": [False] * buttons,
        }

    def unplug(self, index):
        del self.pads[index]

    def set_axis(self, index, axis, value):
        self.pads[index]["axes"][axis] = value

    def set_button(self, index, button, pressed=True):
        self.pads[index]["buttons"][button] = pressed

    def snapshot(self):
        self.reads += 1
        return [
            GamepadSnapshot(
                index=i,
                id=p["id"],
                axes=tuple(p["axes"]),
                buttons=tuple(ButtonState(b, 1.0 if b else 0.0) for b in p["buttons"]),
            )
            for i, p in sorted(self.pads.items())
        ]


@pytest.fixture
def pads():
    fake = FakePads()
    fake.plug(0, WHEEL_ID, axes=6, buttons=24)
    fake.plug(1, PEDALS_ID, axes=3, buttons=0)
    return fake

#!/usr/bin/env python3
"""
gamecontroller.py
Live snapshot source for game controllers (wheels, pedals, shifters, pads).
Uses pygame for cross-platform input.

Every poll returns plain GamepadSnapshot values, so the rest of rallymap
never holds on to a pygame object and tests can feed in fake readings.
"""

import abc
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import pygame

from rallymap.errors import GamepadApiUnavailable

LOG = logging.getLogger("rallymap.gamecontroller")

_SDL_GUID_RE = re.compile(r"[0-9a-fA-F]{32}")


@dataclass(frozen=True)
class ButtonState:
    pressed: bool
    value: float = 0.0


@dataclass(frozen=True)
class GamepadSnapshot:
    index: int
    id: str                     # raw descriptor, e.g. "Wheel (Vendor: 046d Product: c24f)"
    axes: tuple = field(default_factory=tuple)       # floats in [-1.0, 1.0]
    buttons: tuple = field(default_factory=tuple)    # ButtonState per slot


class GamepadSource(abc.ABC):
    @abc.abstractmethod
    def snapshot(self) -> list:
        """Return one GamepadSnapshot per connected controller."""
        raise NotImplementedError


def vendor_product_from_sdl_guid(guid: str) -> Optional[tuple]:
    """
    Extract (vid, pid) as lowercase 4-hex strings from an SDL joystick GUID.

    SDL stores vendor and product as little-endian 16-bit words at hex offsets
    8 and 16, each followed by a zero word. Returns None for GUIDs that do not
    carry a vendor/product pair (e.g. name-hashed or virtual devices).
    """
    if not guid or not _SDL_GUID_RE.fullmatch(guid):
        return None
    g = guid.lower()
    if g[12:16] != "0000" or g[20:24] != "0000":
        return None
    vid = g[10:12] + g[8:10]
    pid = g[18:20] + g[16:18]
    if vid == "0000":
        return None
    return vid, pid


def descriptor_for(name: str, sdl_guid: str) -> str:
    """Build a browser-style descriptor: "<name> (Vendor: vvvv Product: pppp)"."""
    ids = vendor_product_from_sdl_guid(sdl_guid)
    if ids is None:
        return name
    vid, pid = ids
    return f"{name} (Vendor: {vid} Product: {pid})"


def input_level(mapping, snapshots) -> float:
    """
    Return a 0..1 live level for a bound input.
    Axes map -1..1 onto 0..1, buttons report their analog value.
    Unknown devices or slots read as 0.0.
    """
    gp = next((s for s in snapshots if s.index == mapping.device_index), None)
    if gp is None:
        return 0.0
    if mapping.type == "axis":
        if mapping.index >= len(gp.axes):
            return 0.0
        return max(0.0, min(1.0, (gp.axes[mapping.index] + 1.0) / 2.0))
    if mapping.index >= len(gp.buttons):
        return 0.0
    return max(0.0, min(1.0, gp.buttons[mapping.index].value))


class PygameGamepadSource(GamepadSource):
    def __init__(self, log=None):
        """
        Initialise pygame's joystick subsystem.
        Raises GamepadApiUnavailable when SDL cannot enumerate controllers.
        """
        self.log = log or LOG
        self._joysticks = {}
        try:
            pygame.init()
            pygame.joystick.init()
        except pygame.error as e:
            raise GamepadApiUnavailable(f"pygame joystick subsystem unavailable: {e}") from e

    def _open(self, i):
        js = self._joysticks.get(i)
        if js is None:
            js = pygame.joystick.Joystick(i)
            js.init()
            self._joysticks[i] = js
            self.log.debug(
                f"[DEVICE] Opened joystick {i}: {js.get_name()} "
                f"(GUID={js.get_guid()}) Buttons={js.get_numbuttons()} Axes={js.get_numaxes()}"
            )
        return js

    def snapshot(self) -> list:
        try:
            pygame.event.pump()
            count = pygame.joystick.get_count()
        except pygame.error as e:
            raise GamepadApiUnavailable(f"cannot read controllers: {e}") from e

        if any(i >= count for i in self._joysticks):
            # hot-unplug renumbers joysticks, reopen everything
            self._joysticks = {}

        pads = []
        for i in range(count):
            try:
                pads.append(self._read(i))
            except pygame.error as e:
                # stale handle, reopen everything on the next frame
                self._joysticks = {}
                raise GamepadApiUnavailable(f"cannot read controller {i}: {e}") from e
        return pads

    def _read(self, i) -> GamepadSnapshot:
        js = self._open(i)
        buttons = []
        for b in range(js.get_numbuttons()):
            pressed = js.get_button(b) == 1
            buttons.append(ButtonState(pressed, 1.0 if pressed else 0.0))
        return GamepadSnapshot(
            index=i,
            id=descriptor_for(js.get_name(), js.get_guid()),
            axes=tuple(js.get_axis(a) for a in range(js.get_numaxes())),
            buttons=tuple(buttons),
        )

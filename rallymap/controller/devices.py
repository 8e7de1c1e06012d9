#!/usr/bin/env python3
"""
devices.py - Stable device identity for connected controllers

Turns the loosely structured descriptor a controller reports into a
DetectedDevice with vendor/product ids and the GUID DiRT Rally writes into
restricted_device attributes.

Descriptor forms understood:
    "G29 Driving Force Racing Wheel (Vendor: 046d Product: c24f)"
    "HID\\vid_046d&pid_c24f ..."
Anything else keeps its raw text as the name and gets vid/pid "0000".
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

LOG = logging.getLogger("rallymap.devices")

# DiRT Rally GUIDs are "{PPPPVVVV-0000-0000-0000-504944564944}", PID first.
GUID_SUFFIX = "-0000-0000-0000-504944564944"

_VENDOR_RE = re.compile(r"(?:Vendor:|vid_)\s*([0-9a-fA-F]{4})", re.IGNORECASE)
_PRODUCT_RE = re.compile(r"(?:Product:|pid_)\s*([0-9a-fA-F]{4})", re.IGNORECASE)
_ID_PAREN_RE = re.compile(r"\(Vendor:.*?\)", re.IGNORECASE)


@dataclass(frozen=True)
class DetectedDevice:
    index: int          # enumeration slot, not stable across reconnects
    id: str             # raw descriptor
    name: str
    vid: str
    pid: str
    guid: str           # stable identity key
    axes_count: int
    buttons_count: int


def make_guid(vid: str, pid: str) -> str:
    return "{" + pid + vid + GUID_SUFFIX + "}"


def resolve_device(descriptor: str, index: int, axes_count: int, buttons_count: int) -> DetectedDevice:
    """Derive a DetectedDevice from a raw descriptor. Never raises."""
    vendor = _VENDOR_RE.search(descriptor)
    product = _PRODUCT_RE.search(descriptor)

    vid = pid = "0000"
    name = descriptor
    if vendor and product:
        vid = vendor.group(1).upper()
        pid = product.group(1).upper()
        name = _ID_PAREN_RE.sub("", descriptor, count=1).strip()
        if not name:
            name = f"Unknown Device {index + 1}"

    return DetectedDevice(
        index=index,
        id=descriptor,
        name=name,
        vid=vid,
        pid=pid,
        guid=make_guid(vid, pid),
        axes_count=axes_count,
        buttons_count=buttons_count,
    )


def scan_devices(snapshots) -> list:
    """Resolve every live GamepadSnapshot, ordered by enumeration index."""
    return [
        resolve_device(gp.id, gp.index, len(gp.axes), len(gp.buttons))
        for gp in sorted(snapshots, key=lambda s: s.index)
    ]


class DeviceWatcher:
    """
    Fixed-interval device enumeration, driven by the caller's loop.

    poll() rescans at most once per interval and only hands back a list when
    the set of connected descriptors changed since the last scan.
    """

    def __init__(self, source, interval: float = 1.0, log=None, clock=time.monotonic):
        self.source = source
        self.interval = interval
        self.log = log or LOG
        self.clock = clock
        self._next_scan: Optional[float] = None
        self._signature: Optional[str] = None
        self.devices: list = []

    def poll(self, now: Optional[float] = None) -> Optional[list]:
        now = self.clock() if now is None else now
        if self._next_scan is not None and now < self._next_scan:
            return None
        self._next_scan = now + self.interval

        devices = scan_devices(self.source.snapshot())
        signature = "|".join(d.id for d in devices)
        if signature == self._signature:
            return None

        self._signature = signature
        self.devices = devices
        self.log.info(f"[DEVICE] {len(devices)} controller(s) connected")
        for d in devices:
            self.log.info(
                f"[DEVICE] #{d.index}: {d.name} (GUID={d.guid}) "
                f"Buttons={d.buttons_count} Axes={d.axes_count}"
            )
        return devices

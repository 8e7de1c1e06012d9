#!/usr/bin/env python3
"""
workspace.py - Everything a binding session works on, in one place

Holds the live device list, the user's device priority order and selection,
the mapping store and the single detection slot, and wires them together:
- device list changes append new GUIDs to the order and reconcile bindings
- bind() listens on the selected, connected devices and stores the result
- XML/JSON import is parsed completely before anything is replaced
"""

import logging
import time
from typing import Callable, Optional

from rallymap.controller.bindings import InputMapping, MappingStore, default_calibration
from rallymap.controller.detector import DetectionResult, DetectionSlot, listen
from rallymap.errors import Aborted, DeviceDisconnected, InvalidFormat, NoCandidateDevices
from rallymap.file import jsoncodec, xmlcodec
from rallymap.file.inireader import STORAGE_KEY

LOG = logging.getLogger("rallymap.workspace")


class Workspace:
    def __init__(self, log=None):
        self.log = log or LOG
        self.devices: list = []
        self.device_order: list = []
        self.selected_guids: set = set()
        self.mappings = MappingStore(log=self.log)
        self.slot = DetectionSlot(log=self.log)
        self.listening_for: Optional[str] = None

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------
    def update_devices(self, devices) -> bool:
        """Take a fresh device scan. Returns True when anything changed."""
        devices = list(devices)
        changed = [d.id for d in devices] != [d.id for d in self.devices]
        if changed:
            self.devices = devices
        if not devices:
            return changed

        for d in devices:
            if d.guid not in self.device_order:
                self.device_order.append(d.guid)
                self.log.debug(f"[DEVICE] New device {d.guid} appended to order")
        self.mappings.reconcile(devices)
        return changed

    def sorted_devices(self) -> list:
        """Connected devices in the user's priority order, unknown ones last."""
        by_guid = {}
        for d in self.devices:
            by_guid.setdefault(d.guid, d)
        result = [by_guid[g] for g in self.device_order if g in by_guid]
        placed = {d.guid for d in result}
        result += [d for d in self.devices if d.guid not in placed]
        return result

    def toggle_device(self, guid: str) -> bool:
        """Flip a device's "active for binding" flag; returns the new state."""
        if guid in self.selected_guids:
            self.selected_guids.discard(guid)
            return False
        self.selected_guids.add(guid)
        return True

    def move_device(self, guid: str, direction: str) -> bool:
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        if guid not in self.device_order:
            return False
        i = self.device_order.index(guid)
        j = i - 1 if direction == "up" else i + 1
        if not 0 <= j < len(self.device_order):
            return False
        order = self.device_order
        order[i], order[j] = order[j], order[i]
        return True

    def candidate_indices(self) -> list:
        return [d.index for d in self.devices if d.guid in self.selected_guids]

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------
    def begin_binding(self, action_id: str, source):
        """
        Arm detection for an action on every selected, connected device.
        Asking again for the action already listening cancels it and returns None.
        """
        if self.listening_for == action_id and self.slot.cancel():
            return None

        self.slot.cancel()
        candidates = self.candidate_indices()
        if not candidates:
            raise NoCandidateDevices()

        session = self.slot.arm(candidates, source)
        self.listening_for = action_id
        self.log.info(f"[DETECT] Listening for '{action_id}' on devices {session.candidates}")
        return session

    def complete_binding(self, action_id: str, result: DetectionResult) -> InputMapping:
        device = next((d for d in self.devices if d.index == result.device_index), None)
        if device is None:
            raise DeviceDisconnected(f"Device {result.device_index} disconnected during binding")

        mapping = InputMapping(
            device_guid=device.guid,
            device_index=device.index,
            device_name=device.name,
            type=result.type,
            index=result.index,
            direction=result.direction,
            calibration=default_calibration(action_id),
            deadzone=0.0,
            saturation=1.0,
        )
        if self.mappings.add_binding(action_id, mapping):
            self.log.info(f"[BINDINGS] Bound '{action_id}' to {device.name} {result.type} {result.index}")
        else:
            self.log.info(f"[BINDINGS] '{action_id}' already has that input")
        return mapping

    def finish_binding(self, session):
        self.slot.release(session)
        if self.slot.session is None:
            self.listening_for = None

    def cancel_binding(self) -> bool:
        return self.slot.cancel()

    def bind(self, action_id: str, source, frame_interval: float = 1.0 / 60,
             on_frame: Optional[Callable] = None, sleep=time.sleep) -> Optional[InputMapping]:
        """
        Listen for the next input and bind it. Returns None when the
        detection is cancelled; other failures propagate.
        """
        session = self.begin_binding(action_id, source)
        if session is None:
            return None
        try:
            result = listen(session, frame_interval, on_frame=on_frame, sleep=sleep)
            return self.complete_binding(action_id, result)
        except Aborted:
            self.log.info(f"[DETECT] Binding '{action_id}' cancelled")
            return None
        finally:
            self.finish_binding(session)

    # ------------------------------------------------------------------
    # XML / JSON
    # ------------------------------------------------------------------
    def export_xml(self) -> str:
        return xmlcodec.to_xml(self.sorted_devices(), self.mappings)

    def import_xml(self, text: str):
        """Replace all bindings with the document's. InvalidFormat leaves them untouched."""
        imported = xmlcodec.from_xml(text)
        self.mappings.replace_all(imported)
        if self.devices:
            self.mappings.reconcile(self.devices)

    def project_state(self, timestamp: Optional[str] = None) -> jsoncodec.ProjectState:
        return jsoncodec.ProjectState(
            mappings=self.mappings,
            device_order=list(self.device_order),
            selected_guids=set(self.selected_guids),
            timestamp=timestamp,
        )

    def export_json(self) -> str:
        return jsoncodec.dump_state(self.project_state())

    def import_json(self, text: str):
        """Apply the sections present in a project document, all or nothing."""
        state = jsoncodec.load_state(text)
        self.apply_state(state)

    def apply_state(self, state: jsoncodec.ProjectState):
        if state.mappings is not None:
            self.mappings.replace_all(state.mappings)
            if self.devices:
                self.mappings.reconcile(self.devices)
        if state.device_order is not None:
            self.device_order = list(state.device_order)
            for d in self.devices:
                if d.guid not in self.device_order:
                    self.device_order.append(d.guid)
        if state.selected_guids is not None:
            self.selected_guids = set(state.selected_guids)

    # ------------------------------------------------------------------
    # Autosave
    # ------------------------------------------------------------------
    def save(self, store, key: str = STORAGE_KEY):
        store.set(key, jsoncodec.dump_state(self.project_state(), indent=None))
        self.log.debug(f"[STORE] Workspace saved under '{key}'")

    def restore(self, store, key: str = STORAGE_KEY) -> bool:
        """Load the autosaved workspace; returns False when nothing was saved."""
        raw = store.get(key)
        if raw is None:
            return False
        try:
            state = jsoncodec.load_state(raw)
        except InvalidFormat as e:
            self.log.error(f"[STORE] Ignoring unreadable autosave '{key}': {e}")
            return False
        self.apply_state(state)
        self.log.info(f"[STORE] Restored {self.mappings.count()} binding(s) from '{key}'")
        return True

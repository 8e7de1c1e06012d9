#!/usr/bin/env python3
"""
detector.py - "Press the input you want to bind" detection

A DetectionSession watches a set of candidate devices and turns the live
polling stream into exactly one discrete event:
- a button going from released (at arm time) to pressed, or
- an axis moving more than AXIS_THRESHOLD away from where it was at arm time.

The session is frame driven: the host calls step() once per frame (listen()
does that for a plain blocking loop). Cancellation is a threading.Event
checked at the top of every frame, so it lands within one frame interval.

Only one session may be armed at a time; DetectionSlot owns it and cancels
the previous session whenever a new one is armed.
"""

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from rallymap.errors import Aborted, NoCandidateDevices

LOG = logging.getLogger("rallymap.detector")

# Nominal axis range is -1..1; half of it rejects drift and stick noise.
AXIS_THRESHOLD = 0.5


@dataclass(frozen=True)
class DetectionResult:
    device_index: int
    type: str                       # "button" | "axis"
    index: int
    direction: Optional[str] = None  # "positive" | "negative" for axes


class DetectionState(enum.Enum):
    IDLE = "idle"
    ARMED = "armed"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class DetectionSession:
    def __init__(self, candidates, source, cancel_event: Optional[threading.Event] = None, log=None):
        self.candidates = sorted(set(candidates))
        self.source = source
        self.cancel_event = cancel_event or threading.Event()
        self.log = log or LOG
        self.state = DetectionState.IDLE
        self.result: Optional[DetectionResult] = None
        self._base_axes: Dict[int, tuple] = {}
        self._base_buttons: Dict[int, tuple] = {}

    # ------------------------------------------------------------------
    # Arm: take the baseline every later frame is compared against
    # ------------------------------------------------------------------
    def arm(self):
        if not self.candidates:
            raise NoCandidateDevices()
        if self.state is not DetectionState.IDLE:
            raise RuntimeError(f"detection session already {self.state.value}")

        # GamepadApiUnavailable from the source propagates to the caller
        pads = {gp.index: gp for gp in self.source.snapshot()}
        for idx in self.candidates:
            gp = pads.get(idx)
            if gp is None:
                continue
            self._base_axes[idx] = tuple(gp.axes)
            self._base_buttons[idx] = tuple(b.pressed for b in gp.buttons)

        self.state = DetectionState.ARMED
        self.log.debug(f"[DETECT] Armed on devices {self.candidates}")
        return self

    def cancel(self):
        self.cancel_event.set()

    @property
    def active(self) -> bool:
        return self.state in (DetectionState.IDLE, DetectionState.ARMED)

    # ------------------------------------------------------------------
    # One frame
    # ------------------------------------------------------------------
    def step(self) -> Optional[DetectionResult]:
        """
        Run one detection frame.
        Returns the DetectionResult once an input qualifies, None to keep
        listening. Raises Aborted if the session was cancelled.
        """
        if self.state is not DetectionState.ARMED:
            raise RuntimeError(f"cannot step a {self.state.value} detection session")

        if self.cancel_event.is_set():
            self.state = DetectionState.CANCELLED
            self.log.debug("[DETECT] Cancelled")
            raise Aborted()

        pads = {gp.index: gp for gp in self.source.snapshot()}
        for idx in self.candidates:
            gp = pads.get(idx)
            if gp is None:
                continue
            result = self._check_buttons(idx, gp) or self._check_axes(idx, gp)
            if result is not None:
                self.state = DetectionState.RESOLVED
                self.result = result
                self.log.info(
                    f"[DETECT] Device {result.device_index} {result.type} {result.index}"
                    + (f" ({result.direction})" if result.direction else "")
                )
                return result
        return None

    def _check_buttons(self, idx, gp) -> Optional[DetectionResult]:
        base = self._base_buttons.get(idx, ())
        for b, state in enumerate(gp.buttons):
            was_pressed = base[b] if b < len(base) else False
            if state.pressed and not was_pressed:
                return DetectionResult(idx, "button", b)
        return None

    def _check_axes(self, idx, gp) -> Optional[DetectionResult]:
        base = self._base_axes.get(idx)
        if base is None:
            return None
        for a, value in enumerate(gp.axes):
            if a >= len(base):
                break
            diff = value - base[a]
            if abs(diff) > AXIS_THRESHOLD:
                return DetectionResult(idx, "axis", a, "positive" if diff > 0 else "negative")
        return None


# ----------------------------------------------------------------------
# Blocking frame loop
# ----------------------------------------------------------------------
def listen(session: DetectionSession, frame_interval: float = 1.0 / 60,
           on_frame: Optional[Callable[[DetectionSession], None]] = None,
           sleep=time.sleep) -> DetectionResult:
    """Step an armed session once per frame until it resolves or is cancelled."""
    while True:
        result = session.step()
        if result is not None:
            return result
        if on_frame:
            on_frame(session)
        sleep(frame_interval)


# ----------------------------------------------------------------------
# Single active session
# ----------------------------------------------------------------------
class DetectionSlot:
    def __init__(self, log=None):
        self.log = log or LOG
        self.session: Optional[DetectionSession] = None

    def arm(self, candidates, source) -> DetectionSession:
        """Cancel whatever is listening, then arm and hold a new session."""
        self.cancel()
        session = DetectionSession(candidates, source, threading.Event(), log=self.log)
        session.arm()
        self.session = session
        return session

    def cancel(self) -> bool:
        current = self.session
        if current is None or not current.active:
            return False
        current.cancel()
        self.log.debug("[DETECT] Cancel requested")
        return True

    def release(self, session: DetectionSession):
        """Drop the session handle, unless another session has replaced it."""
        if self.session is session:
            self.session = None

"""
errors.py - Failure taxonomy shared by detection, the workspace and the codecs
"""


class RallymapError(Exception):
    """Base class for every user-visible rallymap failure."""


class DetectionError(RallymapError):
    pass


class NoCandidateDevices(DetectionError):
    """Detection was requested without any connected, selected device."""

    def __init__(self, msg: str = "No device selected for binding"):
        super().__init__(msg)


class Aborted(DetectionError):
    """The detection session was cancelled (re-arm or explicit cancel)."""

    def __init__(self, msg: str = "Aborted"):
        super().__init__(msg)


class GamepadApiUnavailable(DetectionError):
    """The controller enumeration backend cannot be read."""


class DeviceDisconnected(DetectionError):
    """The device that produced a detection result is gone."""


class InvalidFormat(RallymapError):
    """An XML or JSON document could not be understood."""

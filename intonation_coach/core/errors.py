"""Exceptions raised by Intonation Coach components."""


class IntonationCoachError(Exception):
    """Base class for Intonation Coach errors."""


class DeviceUnavailableError(IntonationCoachError):
    """The capture device could not be opened (missing, busy or permission denied)."""

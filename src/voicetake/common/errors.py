"""Error kinds raised by the capture/playback engines and the catalogs."""

from __future__ import annotations


class VoiceTakeError(Exception):
    """Base class for all VoiceTake failures."""


class DeviceUnavailable(VoiceTakeError):
    pass


class FormatNegotiationFailed(VoiceTakeError):
    """No conversion path from the device's native format to the canonical one."""


class FileCreateFailed(VoiceTakeError, OSError):
    pass


class FileUnreadable(VoiceTakeError, OSError):
    pass


class ConversionUnavailable(VoiceTakeError):
    """A single buffer could not be converted; callers drop it and carry on."""


class ValidationFailed(VoiceTakeError, ValueError):
    pass


class CaptureAlreadyRunning(VoiceTakeError, RuntimeError):
    pass

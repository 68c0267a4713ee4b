"""Custom exceptions for the command pipeline."""


class VisionError(Exception):
    """Base pipeline error."""
    pass


class FrameError(VisionError):
    """Malformed or undecodable frame; the frame is skipped."""
    pass


class PreprocessFailure(VisionError):
    """Illumination equalization could not be applied."""
    pass


class TransportError(VisionError):
    """Write to the actuator controller link failed."""
    pass

"""
Exception hierarchy for the crop engine.

``InvalidGeometry`` is raised before a session starts, ``DegenerateCropRegion``
when a confirmed crop maps to an empty source rectangle, and
``SessionStateError`` when an operation is not legal in the session's
current state.
"""


class CropError(Exception):
    """Base class for all crop engine errors."""


class InvalidGeometry(CropError, ValueError):
    """A viewport, image or crop dimension is zero, negative or not finite."""


class DegenerateCropRegion(CropError):
    """The crop frame maps to a zero-area rectangle of source pixels."""

    def __init__(self, box: tuple[int, int, int, int]):
        super().__init__(f"crop region {box} has zero area")
        self.box = box


class SessionStateError(CropError, RuntimeError):
    """The requested operation is not allowed in the current session state."""

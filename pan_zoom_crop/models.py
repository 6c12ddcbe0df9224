"""
Data models shared by the crop engine.

Everything here is an immutable value type.  Three coordinate spaces are in
play: viewport space (the widget area, origin top-left), displayed-image
space (the scaled, panned image, origin at its top-left) and source-pixel
space (the upright image buffer).  ``Size``, ``Point`` and ``Rect`` carry no
space tag; the functions consuming them document which space they expect.

The only mutable state in the engine is the ``TransformState`` held by a
``CropSession``, and even that is replaced rather than mutated.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from PIL import Image


# =============================================================================
# Primitive geometry
# =============================================================================
@dataclass(frozen=True)
class Size:
    """Width/height pair in viewport units or pixels."""
    width: float = 0.0
    height: float = 0.0

    @property
    def is_valid(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def aspect(self) -> float:
        """Width over height. Only meaningful for a valid size."""
        return self.width / self.height

    def scaled(self, factor: float) -> "Size":
        return Size(self.width * factor, self.height * factor)

    def as_tuple(self) -> tuple[float, float]:
        return self.width, self.height


@dataclass(frozen=True)
class Point:
    """A position, or a 2-D displacement when used as an offset."""
    x: float = 0.0
    y: float = 0.0

    def translated(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle: top-left origin plus size."""
    origin: Point = field(default_factory=Point)
    size: Size = field(default_factory=Size)

    @classmethod
    def from_edges(cls, left: float, top: float, right: float, bottom: float) -> "Rect":
        return cls(Point(left, top), Size(right - left, bottom - top))

    @property
    def left(self) -> float:
        return self.origin.x

    @property
    def top(self) -> float:
        return self.origin.y

    @property
    def right(self) -> float:
        return self.origin.x + self.size.width

    @property
    def bottom(self) -> float:
        return self.origin.y + self.size.height

    @property
    def width(self) -> float:
        return self.size.width

    @property
    def height(self) -> float:
        return self.size.height

    @property
    def area(self) -> float:
        return max(0.0, self.size.width) * max(0.0, self.size.height)

    @property
    def center(self) -> Point:
        return Point(self.left + self.width / 2, self.top + self.height / 2)

    def corners(self) -> tuple[Point, Point, Point, Point]:
        """Top-left, top-right, bottom-right, bottom-left."""
        return (
            Point(self.left, self.top),
            Point(self.right, self.top),
            Point(self.right, self.bottom),
            Point(self.left, self.bottom),
        )

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.origin.translated(dx, dy), self.size)

    def scaled(self, sx: float, sy: float) -> "Rect":
        """Scale origin and size componentwise (a change of units, not a zoom about the center)."""
        return Rect(
            Point(self.origin.x * sx, self.origin.y * sy),
            Size(self.size.width * sx, self.size.height * sy),
        )

    def contains_point(self, point: Point, tolerance: float = 0.0) -> bool:
        """Inclusive containment test."""
        return (
            self.left - tolerance <= point.x <= self.right + tolerance
            and self.top - tolerance <= point.y <= self.bottom + tolerance
        )

    def contains_rect(self, other: "Rect", tolerance: float = 0.0) -> bool:
        return all(self.contains_point(corner, tolerance) for corner in other.corners())


@dataclass(frozen=True)
class Insets:
    """Safe-area insets subtracted from the viewport before layout."""
    top: float = 0.0
    left: float = 0.0
    bottom: float = 0.0
    right: float = 0.0


# =============================================================================
# Layout state
# =============================================================================
@dataclass(frozen=True)
class Viewport:
    """The outer drawable area hosting the crop UI."""
    size: Size
    insets: Insets = field(default_factory=Insets)


@dataclass(frozen=True)
class CropFrame:
    """The fixed hole, in viewport coordinates, that image content must fill."""
    rect: Rect
    aspect_ratio: float | None = None  # None means square

    @property
    def width(self) -> float:
        return self.rect.width

    @property
    def height(self) -> float:
        return self.rect.height


@dataclass(frozen=True)
class DisplayGeometry:
    """Aspect-fit size of the image inside the viewport, before user zoom."""
    base_size: Size


@dataclass(frozen=True)
class TransformState:
    """User-controlled zoom and pan.

    ``offset`` moves the image center away from the viewport center.
    """
    scale: float = 1.0
    offset: Point = field(default_factory=Point)


# =============================================================================
# Gesture input
# =============================================================================
class GestureKind(Enum):
    PINCH = "pinch"
    DRAG = "drag"


class GesturePhase(Enum):
    BEGAN = "began"
    CHANGED = "changed"
    ENDED = "ended"


@dataclass(frozen=True)
class GestureSample:
    """One event from the host's gesture stream.

    For a pinch, ``value`` is the magnification relative to the start of the
    current gesture (1.0 at the start).  For a drag it is the translation
    ``Point`` measured from where the gesture started.
    """
    kind: GestureKind
    phase: GesturePhase
    value: float | Point = 1.0

    @classmethod
    def pinch(cls, value: float = 1.0, phase: GesturePhase = GesturePhase.CHANGED) -> "GestureSample":
        return cls(GestureKind.PINCH, phase, float(value))

    @classmethod
    def drag(cls, dx: float = 0.0, dy: float = 0.0,
             phase: GesturePhase = GesturePhase.CHANGED) -> "GestureSample":
        return cls(GestureKind.DRAG, phase, Point(float(dx), float(dy)))


# =============================================================================
# Source image
# =============================================================================
class Orientation(IntEnum):
    """EXIF orientation tag: how the stored pixels map to the upright picture."""
    NORMAL = 1
    MIRROR_HORIZONTAL = 2
    ROTATE_180 = 3
    MIRROR_VERTICAL = 4
    TRANSPOSE = 5
    ROTATE_90 = 6   # stored rotated 90° counter-clockwise; display needs 90° clockwise
    TRANSVERSE = 7
    ROTATE_270 = 8  # stored rotated 90° clockwise; display needs 90° counter-clockwise

    @property
    def swaps_axes(self) -> bool:
        return self.value >= 5


@dataclass(frozen=True)
class ImageSource:
    """Decoded source image owned by the host.  The engine only reads it."""
    image: Image.Image
    orientation: Orientation = Orientation.NORMAL

    @property
    def raw_size(self) -> Size:
        """Size of the stored buffer, in row/column order."""
        return Size(*self.image.size)

    @property
    def pixel_size(self) -> Size:
        """Nominal size of the upright picture."""
        w, h = self.image.size
        if self.orientation.swaps_axes:
            return Size(h, w)
        return Size(w, h)


@dataclass(frozen=True)
class CropSnapshot:
    """Everything extraction needs, frozen at confirm time.

    Plain floats only so it pickles cheaply into worker processes.
    """
    scale: float
    offset_x: float
    offset_y: float
    crop_x: float
    crop_y: float
    crop_w: float
    crop_h: float
    base_w: float
    base_h: float
    viewport_w: float
    viewport_h: float

    @property
    def transform(self) -> TransformState:
        return TransformState(self.scale, Point(self.offset_x, self.offset_y))

    @property
    def crop_rect(self) -> Rect:
        return Rect(Point(self.crop_x, self.crop_y), Size(self.crop_w, self.crop_h))

    @property
    def base_size(self) -> Size:
        return Size(self.base_w, self.base_h)

    @property
    def viewport_size(self) -> Size:
        return Size(self.viewport_w, self.viewport_h)

"""
Coordinate mapping between viewport, displayed-image and source-pixel space.

Viewport space is the host widget area.  Displayed-image space has its
origin at the top-left of the scaled, panned image.  Source-pixel space is
the upright (orientation-normalized) image buffer.
"""

import logging

from pan_zoom_crop.config import CLAMP_SLACK_TOLERANCE
from pan_zoom_crop.models import Point, Rect, Size, TransformState

logger = logging.getLogger(__name__)


# =============================================================================
# Viewport <-> displayed image
# =============================================================================
def image_origin_in_viewport(state: TransformState, base_size: Size, viewport_size: Size) -> Point:
    """Top-left corner of the displayed image in viewport coordinates."""
    scaled = base_size.scaled(state.scale)
    return Point(
        (viewport_size.width - scaled.width) / 2 + state.offset.x,
        (viewport_size.height - scaled.height) / 2 + state.offset.y,
    )


def viewport_point_to_image(
    point: Point, state: TransformState, base_size: Size, viewport_size: Size,
) -> Point:
    origin = image_origin_in_viewport(state, base_size, viewport_size)
    return Point(point.x - origin.x, point.y - origin.y)


def image_point_to_viewport(
    point: Point, state: TransformState, base_size: Size, viewport_size: Size,
) -> Point:
    origin = image_origin_in_viewport(state, base_size, viewport_size)
    return Point(point.x + origin.x, point.y + origin.y)


# =============================================================================
# Viewport <-> source pixels
# =============================================================================
def viewport_rect_to_source_pixels(
    rect: Rect,
    state: TransformState,
    base_size: Size,
    source_pixel_size: Size,
    viewport_size: Size,
    clamp: bool = True,
) -> Rect:
    """Map a viewport rectangle to the source pixels displayed under it."""
    scaled = base_size.scaled(state.scale)
    origin = image_origin_in_viewport(state, base_size, viewport_size)
    in_image = rect.translated(-origin.x, -origin.y)
    in_source = in_image.scaled(
        source_pixel_size.width / scaled.width,
        source_pixel_size.height / scaled.height,
    )
    if clamp:
        return clamp_rect_to_bounds(in_source, source_pixel_size)
    return in_source


def source_rect_to_viewport(
    rect: Rect,
    state: TransformState,
    base_size: Size,
    source_pixel_size: Size,
    viewport_size: Size,
) -> Rect:
    """Inverse of ``viewport_rect_to_source_pixels`` (without clamping)."""
    scaled = base_size.scaled(state.scale)
    origin = image_origin_in_viewport(state, base_size, viewport_size)
    in_image = rect.scaled(
        scaled.width / source_pixel_size.width,
        scaled.height / source_pixel_size.height,
    )
    return in_image.translated(origin.x, origin.y)


# =============================================================================
# Bounds
# =============================================================================
def clamp_rect_to_bounds(rect: Rect, bounds: Size) -> Rect:
    """Intersect *rect* with ``[0, bounds.width] x [0, bounds.height]``.

    Overshoot is expected floating-point noise at the clamp boundary and is
    corrected silently; anything beyond ``CLAMP_SLACK_TOLERANCE`` is logged
    since it points at stale geometry.
    """
    left = min(max(rect.left, 0.0), bounds.width)
    top = min(max(rect.top, 0.0), bounds.height)
    right = min(max(rect.right, left), bounds.width)
    bottom = min(max(rect.bottom, top), bounds.height)

    overshoot = max(
        -rect.left, -rect.top,
        rect.right - bounds.width, rect.bottom - bounds.height,
        0.0,
    )
    if overshoot > CLAMP_SLACK_TOLERANCE:
        logger.debug("Mapped crop exceeded image bounds by %.3f px; clamped", overshoot)

    return Rect.from_edges(left, top, right, bottom)


def to_pixel_box(rect: Rect) -> tuple[int, int, int, int]:
    """Round a source rectangle to an integer ``(left, top, right, bottom)`` box."""
    return (
        int(round(rect.left)),
        int(round(rect.top)),
        int(round(rect.right)),
        int(round(rect.bottom)),
    )

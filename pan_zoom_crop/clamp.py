"""
Clamp solver: keeps the crop frame covered by image content.

``clamp_state`` is the single projection used after every gesture end,
viewport change and image swap.  It is idempotent, so call sites never need
to know whether another one already ran.

Offsets are measured from the viewport center.  When the crop frame is
centered in the viewport the legal range is the symmetric
``±(scaled - crop) / 2``; when asymmetric insets push the frame off center
the same range is shifted by the frame's displacement.
"""

import logging
from enum import Enum

from pan_zoom_crop.config import (
    GEOMETRY_TOLERANCE, HARD_MAX_SCALE, HARD_MIN_SCALE, INITIAL_SCALE_MARGIN, MIN_SCALE_EPSILON,
)
from pan_zoom_crop.geometry import displayed_image_rect
from pan_zoom_crop.models import CropFrame, Point, Size, TransformState

logger = logging.getLogger(__name__)


class ClampPolicy(Enum):
    """How the live scale is limited while a pinch is in progress."""
    HARD_RANGE = "hard_range"  # fixed [hard_min, hard_max] range, coverage restored at gesture end
    COVERAGE = "coverage"      # never below the coverage minimum, even mid-gesture


# =============================================================================
# Scale limits
# =============================================================================
def min_scale(base_size: Size, crop_frame: CropFrame) -> float:
    """Smallest zoom at which the scaled base image covers the crop frame in both axes."""
    return max(crop_frame.width / base_size.width, crop_frame.height / base_size.height)


def initial_scale(
    minimum: float,
    margin_factor: float = INITIAL_SCALE_MARGIN,
    epsilon: float = MIN_SCALE_EPSILON,
) -> float:
    """Starting zoom, deliberately above *minimum* to leave room to pan."""
    return max(minimum * margin_factor, minimum + epsilon)


def apply_live_scale(
    scale: float,
    policy: ClampPolicy,
    minimum: float,
    hard_min: float = HARD_MIN_SCALE,
    hard_max: float = HARD_MAX_SCALE,
) -> float:
    """Limit a mid-gesture scale according to *policy*.

    Under ``HARD_RANGE`` the ceiling never drops below *minimum*, matching
    how ``clamp_state`` resolves the same conflict at gesture end.
    """
    if policy is ClampPolicy.HARD_RANGE:
        return min(max(scale, hard_min), max(hard_max, minimum))
    return max(scale, minimum)


# =============================================================================
# Offset limits
# =============================================================================
def _frame_shift(crop_frame: CropFrame, viewport_size: Size | None) -> Point:
    """Displacement of the crop frame center from the viewport center."""
    if viewport_size is None:
        return Point()
    center = crop_frame.rect.center
    return Point(center.x - viewport_size.width / 2, center.y - viewport_size.height / 2)


def offset_bounds(
    scale: float,
    base_size: Size,
    crop_frame: CropFrame,
    viewport_size: Size | None = None,
) -> tuple[float, float, float, float]:
    """Legal offset range ``(min_x, max_x, min_y, max_y)`` at *scale*."""
    scaled = base_size.scaled(scale)
    max_x = max(0.0, (scaled.width - crop_frame.width) / 2)
    max_y = max(0.0, (scaled.height - crop_frame.height) / 2)
    shift = _frame_shift(crop_frame, viewport_size)
    return shift.x - max_x, shift.x + max_x, shift.y - max_y, shift.y + max_y


def _clamp_offset(
    offset: Point,
    scale: float,
    base_size: Size,
    crop_frame: CropFrame,
    viewport_size: Size | None,
) -> Point:
    min_x, max_x, min_y, max_y = offset_bounds(scale, base_size, crop_frame, viewport_size)
    return Point(
        max(min_x, min(offset.x, max_x)),
        max(min_y, min(offset.y, max_y)),
    )


# =============================================================================
# Projection
# =============================================================================
def clamp_state(
    state: TransformState,
    base_size: Size,
    crop_frame: CropFrame,
    viewport_size: Size | None = None,
    max_scale: float | None = None,
) -> TransformState:
    """Project *state* back into the legal region.

    The offset is clamped at the current scale; if the scale is below the
    coverage minimum it is raised and the offset clamped a second time
    against the recomputed bounds.  An optional *max_scale* ceiling applies
    first and never overrides the coverage minimum.
    """
    minimum = min_scale(base_size, crop_frame)
    scale = state.scale
    if max_scale is not None:
        scale = min(scale, max(max_scale, minimum))

    offset = _clamp_offset(state.offset, scale, base_size, crop_frame, viewport_size)

    if scale < minimum:
        scale = minimum
        offset = _clamp_offset(offset, scale, base_size, crop_frame, viewport_size)

    result = TransformState(scale, offset)
    if result != state:
        logger.debug(
            "Clamped transform scale %.4f -> %.4f, offset (%.2f, %.2f) -> (%.2f, %.2f)",
            state.scale, scale, state.offset.x, state.offset.y, offset.x, offset.y,
        )
    return result


def covers_crop_frame(
    state: TransformState,
    base_size: Size,
    crop_frame: CropFrame,
    viewport_size: Size,
    tolerance: float = GEOMETRY_TOLERANCE,
) -> bool:
    """True when all four crop frame corners lie inside the displayed image."""
    image_rect = displayed_image_rect(state, base_size, viewport_size)
    return image_rect.contains_rect(crop_frame.rect, tolerance)

"""
Layout math: aspect-fit of the image and placement of the crop frame.

All functions are pure.  They are re-run from scratch whenever the viewport
or the image changes; nothing here is adjusted incrementally.
"""

import math

from pan_zoom_crop.config import CHROME_MARGIN
from pan_zoom_crop.errors import InvalidGeometry
from pan_zoom_crop.models import (
    CropFrame, DisplayGeometry, Point, Rect, Size, TransformState, Viewport,
)


def _require_valid(size: Size, what: str) -> None:
    if not (math.isfinite(size.width) and math.isfinite(size.height)) or not size.is_valid:
        raise InvalidGeometry(f"{what} must have positive dimensions, got {size.width}x{size.height}")


# =============================================================================
# Fit calculator
# =============================================================================
def compute_base_display_size(image_pixel_size: Size, outer_size: Size) -> Size:
    """Aspect-fit *image_pixel_size* inside *outer_size*.

    The result is entirely contained in *outer_size* with at least one
    dimension matching it exactly.
    """
    _require_valid(image_pixel_size, "image size")
    _require_valid(outer_size, "outer size")
    image_aspect = image_pixel_size.aspect
    if image_aspect > outer_size.aspect:
        # Width binds
        return Size(outer_size.width, outer_size.width / image_aspect)
    # Height binds
    return Size(outer_size.height * image_aspect, outer_size.height)


def compute_display_geometry(image_pixel_size: Size, viewport: Viewport) -> DisplayGeometry:
    """Base (unzoomed) layout of the image in the full viewport."""
    return DisplayGeometry(compute_base_display_size(image_pixel_size, viewport.size))


# =============================================================================
# Crop frame
# =============================================================================
def usable_area(viewport: Viewport, margin: float = CHROME_MARGIN) -> Rect:
    """Viewport minus safe-area insets minus the chrome margin on every side."""
    _require_valid(viewport.size, "viewport")
    insets = viewport.insets
    left = insets.left + margin
    top = insets.top + margin
    right = viewport.size.width - insets.right - margin
    bottom = viewport.size.height - insets.bottom - margin
    area = Rect.from_edges(left, top, right, bottom)
    if not area.size.is_valid:
        raise InvalidGeometry(
            f"viewport {viewport.size.width}x{viewport.size.height} leaves no usable area "
            f"after insets and a {margin} margin"
        )
    return area


def compute_crop_frame(
    viewport: Viewport,
    aspect_ratio: float | None = None,
    margin: float = CHROME_MARGIN,
    crop_size: Size | None = None,
) -> CropFrame:
    """Largest frame of *aspect_ratio* (square when None) centered in the usable area.

    With an explicit *crop_size* the frame keeps that size when it fits and
    is shrunk, aspect-preserving, when it does not.
    """
    area = usable_area(viewport, margin)

    if crop_size is not None:
        _require_valid(crop_size, "crop size")
        fit = min(1.0, area.width / crop_size.width, area.height / crop_size.height)
        crop_w = crop_size.width * fit
        crop_h = crop_size.height * fit
        aspect_ratio = crop_size.aspect
    else:
        if aspect_ratio is not None and not (math.isfinite(aspect_ratio) and aspect_ratio > 0):
            raise InvalidGeometry(f"aspect ratio must be positive, got {aspect_ratio}")
        ratio = aspect_ratio if aspect_ratio is not None else 1.0
        crop_w = min(area.width, area.height * ratio)
        crop_h = crop_w / ratio

    origin = Point(
        area.left + (area.width - crop_w) / 2,
        area.top + (area.height - crop_h) / 2,
    )
    return CropFrame(Rect(origin, Size(crop_w, crop_h)), aspect_ratio)


# =============================================================================
# Displayed image
# =============================================================================
def displayed_image_rect(state: TransformState, base_size: Size, viewport_size: Size) -> Rect:
    """The scaled, panned image in viewport coordinates."""
    scaled = base_size.scaled(state.scale)
    origin = Point(
        (viewport_size.width - scaled.width) / 2 + state.offset.x,
        (viewport_size.height - scaled.height) / 2 + state.offset.y,
    )
    return Rect(origin, scaled)

"""
Pixel extraction for a confirmed crop.

Orientation is normalized before any mapping: the coordinate math assumes
the buffer's row/column order matches the nominal upright size, which only
holds after normalization.  Safe to import in worker processes.
"""

import logging

from PIL import Image

from pan_zoom_crop.config import DEFAULT_OUTPUT_SIZE, JPEG_QUALITY_DEFAULT
from pan_zoom_crop.errors import DegenerateCropRegion, InvalidGeometry
from pan_zoom_crop.image_io import encode_image
from pan_zoom_crop.mapping import to_pixel_box, viewport_rect_to_source_pixels
from pan_zoom_crop.models import (
    CropSnapshot, DisplayGeometry, ImageSource, Orientation, Rect, Size, TransformState,
)

logger = logging.getLogger(__name__)

# Pillow transpose that turns the stored pixels into the upright picture
_UPRIGHT_TRANSPOSE = {
    Orientation.MIRROR_HORIZONTAL: Image.Transpose.FLIP_LEFT_RIGHT,
    Orientation.ROTATE_180: Image.Transpose.ROTATE_180,
    Orientation.MIRROR_VERTICAL: Image.Transpose.FLIP_TOP_BOTTOM,
    Orientation.TRANSPOSE: Image.Transpose.TRANSPOSE,
    Orientation.ROTATE_90: Image.Transpose.ROTATE_270,
    Orientation.TRANSVERSE: Image.Transpose.TRANSVERSE,
    Orientation.ROTATE_270: Image.Transpose.ROTATE_90,
}


def normalize_orientation(source: ImageSource) -> ImageSource:
    """Return an upright copy of *source* (the same object when already upright)."""
    method = _UPRIGHT_TRANSPOSE.get(source.orientation)
    if method is None:
        return source
    return ImageSource(source.image.transpose(method), Orientation.NORMAL)


def resize_output(
    image: Image.Image,
    output_size: Size | tuple[int, int],
    resample: Image.Resampling = Image.Resampling.LANCZOS,
) -> Image.Image:
    """Resize to exactly *output_size*."""
    if isinstance(output_size, Size):
        output_size = (int(round(output_size.width)), int(round(output_size.height)))
    if output_size[0] <= 0 or output_size[1] <= 0:
        raise InvalidGeometry(f"output size must be positive, got {output_size}")
    if image.size == tuple(output_size):
        return image
    return image.resize(output_size, resample)


def extract_crop(
    source: ImageSource,
    crop_rect: Rect,
    state: TransformState,
    geometry: DisplayGeometry,
    viewport_size: Size,
    output_size: Size | tuple[int, int] | None = None,
    resample: Image.Resampling = Image.Resampling.LANCZOS,
) -> Image.Image:
    """Cut out the source pixels displayed under *crop_rect*.

    Raises ``DegenerateCropRegion`` when the mapped region has zero area.
    """
    if not geometry.base_size.is_valid or not viewport_size.is_valid or state.scale <= 0:
        raise InvalidGeometry(
            f"cannot map crop with base size {geometry.base_size}, "
            f"viewport {viewport_size} and scale {state.scale}"
        )

    upright = normalize_orientation(source)
    source_rect = viewport_rect_to_source_pixels(
        crop_rect, state, geometry.base_size, upright.pixel_size, viewport_size,
    )
    box = to_pixel_box(source_rect)
    if box[2] <= box[0] or box[3] <= box[1]:
        raise DegenerateCropRegion(box)

    logger.debug("Extracting source box %s from %dx%d image", box, *upright.image.size)
    cropped = upright.image.crop(box)
    if output_size is not None:
        cropped = resize_output(cropped, output_size, resample)
    return cropped


def extract_snapshot(
    source: ImageSource,
    snapshot: CropSnapshot,
    output_size: Size | tuple[int, int] | None = None,
) -> Image.Image:
    """``extract_crop`` driven by a frozen ``CropSnapshot``."""
    return extract_crop(
        source,
        snapshot.crop_rect,
        snapshot.transform,
        DisplayGeometry(snapshot.base_size),
        snapshot.viewport_size,
        output_size,
    )


# =============================================================================
# Non-interactive fallback
# =============================================================================
def center_crop_square(image: Image.Image) -> Image.Image:
    """Centered square crop of the largest possible side."""
    side = min(image.width, image.height)
    if side <= 0:
        raise DegenerateCropRegion((0, 0, image.width, image.height))
    x = (image.width - side) // 2
    y = (image.height - side) // 2
    return image.crop((x, y, x + side, y + side))


def process_for_upload(
    source: ImageSource,
    size: int = DEFAULT_OUTPUT_SIZE,
    quality: int = JPEG_QUALITY_DEFAULT,
) -> bytes:
    """Upright → centered square → ``size`` x ``size`` → JPEG bytes."""
    upright = normalize_orientation(source)
    square = center_crop_square(upright.image)
    resized = resize_output(square, (size, size))
    return encode_image(resized, "JPEG", quality=quality)

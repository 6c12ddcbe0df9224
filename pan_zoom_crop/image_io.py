"""
Qt-free image I/O utilities.

Opens images (including PSD) into an ``ImageSource`` that keeps the stored
pixel order plus the EXIF orientation tag, reads nominal dimensions without
full loading, encodes cropped output, and generates unique file paths.
Safe to import in worker processes.
"""

import io
import logging
from pathlib import Path

from PIL import Image
from psd_tools import PSDImage

from pan_zoom_crop.config import (
    JPEG_QUALITY_DEFAULT, OUTPUT_FORMAT_DEFAULT, OUTPUT_FORMATS, PNG_COMPRESS_LEVEL,
)
from pan_zoom_crop.models import ImageSource, Orientation, Size

logger = logging.getLogger(__name__)

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None

_EXIF_ORIENTATION_TAG = 0x0112


def open_image(path: Path) -> Image.Image:
    """Open an image file, using psd-tools for PSD and Pillow for the rest."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.composite()
    return Image.open(path)


def read_orientation(image: Image.Image) -> Orientation:
    """Return the EXIF orientation of *image*, NORMAL when absent or invalid."""
    value = image.getexif().get(_EXIF_ORIENTATION_TAG, Orientation.NORMAL.value)
    try:
        return Orientation(value)
    except ValueError:
        logger.debug("Ignoring invalid EXIF orientation %r", value)
        return Orientation.NORMAL


def load_image_source(path: Path) -> ImageSource:
    """Fully decode *path* into an ``ImageSource`` with its raw pixel order intact."""
    image = open_image(path)
    orientation = read_orientation(image)
    image.load()
    logger.debug("Loaded %s: %dx%d stored, orientation %s", path, image.width, image.height, orientation.name)
    return ImageSource(image, orientation)


def get_image_size(path: Path) -> Size:
    """Nominal upright image size without fully loading/compositing."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return Size(psd.width, psd.height)
    with Image.open(path) as img:
        orientation = read_orientation(img)
        w, h = img.size
    if orientation.swaps_axes:
        return Size(h, w)
    return Size(w, h)


# =============================================================================
# Output
# =============================================================================
def _prepare_for(image: Image.Image, fmt: str) -> Image.Image:
    if fmt == "JPEG" and image.mode not in ("RGB", "L"):
        return image.convert("RGB")
    return image


def encode_image(
    image: Image.Image,
    fmt: str = OUTPUT_FORMAT_DEFAULT,
    quality: int = JPEG_QUALITY_DEFAULT,
    compress_level: int = PNG_COMPRESS_LEVEL,
) -> bytes:
    """Encode *image* to bytes for upload."""
    buf = io.BytesIO()
    image = _prepare_for(image, fmt)
    if fmt == "JPEG":
        image.save(buf, "JPEG", quality=quality, optimize=True)
    else:
        image.save(buf, "PNG", compress_level=compress_level)
    return buf.getvalue()


def save_image(
    image: Image.Image,
    out_path: Path,
    quality: int = JPEG_QUALITY_DEFAULT,
    compress_level: int = PNG_COMPRESS_LEVEL,
) -> Path:
    """Save *image* without overwriting; the format follows the file suffix.

    Returns the path actually written.
    """
    fmt = OUTPUT_FORMATS.get(out_path.suffix.lower())
    if fmt is None:
        raise ValueError(f"Unsupported output suffix: {out_path.suffix!r}")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path = unique_path(out_path)
    image = _prepare_for(image, fmt)
    if fmt == "JPEG":
        image.save(str(out_path), "JPEG", quality=quality, optimize=True)
    else:
        image.save(str(out_path), "PNG", compress_level=compress_level)
    logger.debug("Saved %dx%d %s to %s", image.width, image.height, fmt, out_path)
    return out_path


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1

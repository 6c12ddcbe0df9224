"""
Engine constants and configuration.

DEFAULT_PRESETS provides the built-in fallback crop presets. Runtime presets
are loaded from presets.json via the presets module. All other constants
control the crop frame layout, the transform limits, and export defaults.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "pan-zoom-crop"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory

# =============================================================================
# DEFAULT PRESETS: built-in fallback when presets.json is missing or corrupt
# =============================================================================
DEFAULT_PRESETS = [
    {
        "name": "avatar",
        "ratio_w": 1,
        "ratio_h": 1,
        "output_w": 1024,
        "output_h": 1024,
        "policy": "coverage",
    },
    {
        "name": "cover",
        "ratio_w": 16,
        "ratio_h": 9,
        "output_w": 1920,
        "output_h": 1080,
        "policy": "coverage",
    },
    {
        "name": "free-zoom",
        "ratio_w": 1,
        "ratio_h": 1,
        "output_w": 1024,
        "output_h": 1024,
        "policy": "hard_range",
    },
]

# ---------------------------------------------------------------------------
# Crop frame layout
# ---------------------------------------------------------------------------
# Space kept free around the crop frame for buttons and corner markers
# (viewport pixels, applied on every side of the usable area)
CHROME_MARGIN = 20.0

# ---------------------------------------------------------------------------
# Transform limits
# ---------------------------------------------------------------------------
# Initial zoom = max(min_scale * INITIAL_SCALE_MARGIN, min_scale + MIN_SCALE_EPSILON)
INITIAL_SCALE_MARGIN = 1.2
MIN_SCALE_EPSILON = 0.01

# Live scale range for the fixed-frame (hard range) policy
HARD_MIN_SCALE = 0.5
HARD_MAX_SCALE = 5.0

# Floating-point slack (source pixels) tolerated silently when the mapped
# crop rectangle leaves the image bounds
CLAMP_SLACK_TOLERANCE = 0.5

# Geometric comparisons in viewport space
GEOMETRY_TOLERANCE = 1e-6

# Wheel notches are turned into one-shot pinch gestures: factor per 1/8 degree
WHEEL_ZOOM_STEP = 1.0015

# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------
# Fixed square output for uploads
DEFAULT_OUTPUT_SIZE = 1024

# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# JPEG export defaults
JPEG_QUALITY_DEFAULT = 80
JPEG_QUALITY_MIN = 1
JPEG_QUALITY_MAX = 100

# Default encoding for in-memory uploads
OUTPUT_FORMAT_DEFAULT = "JPEG"

# Output file suffixes and the Pillow format each one is written in
OUTPUT_FORMATS = {".jpg": "JPEG", ".jpeg": "JPEG", ".png": "PNG"}

# Supported image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".tif", ".webp", ".psd"}

"""
Crop presets persistence: load, save, and validate preset configuration.

A preset names a crop aspect ratio, the output size the cropped image is
normalized to, and the live scale policy.  Runtime presets are stored in a
JSON file in the user's config directory (provided by
``config.config_dir()``).  On first launch (or if the file is
missing/corrupt), the file is created from DEFAULT_PRESETS.  This module is
Qt-free and safe for worker import.

The on-disk format uses a versioned envelope::

    {"version": 1, "presets": [ ... ]}
"""

import json
import logging
from copy import deepcopy
from math import gcd
from pathlib import Path

from pan_zoom_crop.clamp import ClampPolicy
from pan_zoom_crop.config import DEFAULT_PRESETS, config_dir
from pan_zoom_crop.models import Size

logger = logging.getLogger(__name__)

_PRESETS_FILENAME = "presets.json"
_FORMAT_VERSION = 1

_REQUIRED_KEYS = {"name", "ratio_w", "ratio_h", "output_w", "output_h", "policy"}
_INT_KEYS = ("ratio_w", "ratio_h", "output_w", "output_h")
_POLICIES = {policy.value for policy in ClampPolicy}


# =============================================================================
# Aspect-ratio helpers
# =============================================================================
def normalize_ratio(w: int, h: int) -> tuple[int, int]:
    """Reduce ratio to simplest form via GCD. (21, 9) → (7, 3)"""
    g = gcd(w, h)
    return w // g, h // g


def aspect_key(w: int, h: int) -> str:
    """Normalized string key. (21, 9) → '7:3'"""
    nw, nh = normalize_ratio(w, h)
    return f"{nw}:{nh}"


def preset_aspect_ratio(preset: dict) -> float:
    """Width-over-height crop ratio of *preset*."""
    return preset["ratio_w"] / preset["ratio_h"]


def preset_output_size(preset: dict) -> Size:
    return Size(preset["output_w"], preset["output_h"])


def preset_policy(preset: dict) -> ClampPolicy:
    return ClampPolicy(preset["policy"])


def find_preset(presets: list[dict], name: str) -> dict | None:
    """Return the preset called *name* (case-insensitive), or None."""
    wanted = name.strip().lower()
    for preset in presets:
        if preset["name"].lower() == wanted:
            return preset
    return None


def _presets_path() -> Path:
    """Return the full path to presets.json."""
    return config_dir() / _PRESETS_FILENAME


# =============================================================================
# Validation
# =============================================================================
def validate_presets(data: object) -> list[str]:
    """
    Validate a presets data structure.

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, list):
        errors.append("Presets data must be a list")
        return errors

    names_seen: set[str] = set()

    for i, preset in enumerate(data):
        prefix = f"Preset #{i + 1}"

        if not isinstance(preset, dict):
            errors.append(f"{prefix}: must be a dict")
            continue

        missing = _REQUIRED_KEYS - preset.keys()
        if missing:
            errors.append(f"{prefix}: missing keys: {', '.join(sorted(missing))}")
            continue

        name = preset.get("name", "")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"{prefix}: name must be a non-empty string")
        elif name.strip().lower() in names_seen:
            errors.append(f"{prefix}: duplicate name '{name}'")
        else:
            names_seen.add(name.strip().lower())

        for key in _INT_KEYS:
            val = preset.get(key)
            # bool is an int subclass; reject it explicitly
            if not isinstance(val, int) or isinstance(val, bool) or val <= 0:
                errors.append(f"{prefix}: {key} must be a positive integer, got {val!r}")

        if preset.get("policy") not in _POLICIES:
            errors.append(
                f"{prefix}: policy must be one of {', '.join(sorted(_POLICIES))}, "
                f"got {preset.get('policy')!r}"
            )

        # The output is resized, not re-cropped, so its ratio must match the crop
        ints_ok = all(
            isinstance(preset.get(k), int) and not isinstance(preset.get(k), bool) and preset.get(k) > 0
            for k in _INT_KEYS
        )
        if ints_ok:
            crop_key = aspect_key(preset["ratio_w"], preset["ratio_h"])
            out_key = aspect_key(preset["output_w"], preset["output_h"])
            if crop_key != out_key:
                errors.append(
                    f"{prefix} ('{name}'): output {preset['output_w']}x{preset['output_h']} "
                    f"({out_key}) does not match crop ratio {crop_key}"
                )

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_presets() -> list[dict]:
    """
    Load presets from presets.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _presets_path()

    if not path.exists():
        logger.info("presets.json not found, creating with defaults at %s", path)
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    try:
        text = path.read_text(encoding="utf-8")
        raw = json.loads(text)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read presets.json (%s), restoring defaults", exc)
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    if not isinstance(raw, dict) or "version" not in raw or "presets" not in raw:
        logger.warning("presets.json missing version envelope, restoring defaults")
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    data = raw["presets"]
    errors = validate_presets(data)
    if errors:
        logger.warning(
            "presets.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    logger.info("Loaded %d preset(s) from %s", len(data), path)
    return data


def save_presets(presets: list[dict]) -> None:
    """
    Validate and write presets to presets.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_presets(presets)
    if errors:
        raise ValueError("Invalid presets data:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "presets": presets}
    path = _presets_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved %d preset(s) to %s", len(presets), path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_PRESETS to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "presets": deepcopy(DEFAULT_PRESETS)}
        path.write_text(
            json.dumps(envelope, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        logger.error("Could not write default presets to %s: %s", path, exc)

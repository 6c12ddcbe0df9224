"""Tests for the JSON preset store."""

import json
from copy import deepcopy

import pytest

from pan_zoom_crop.clamp import ClampPolicy
from pan_zoom_crop.config import DEFAULT_PRESETS
from pan_zoom_crop.models import Size
from pan_zoom_crop.presets import (
    aspect_key,
    find_preset,
    load_presets,
    normalize_ratio,
    preset_aspect_ratio,
    preset_output_size,
    preset_policy,
    save_presets,
    validate_presets,
)


def _preset(**overrides):
    preset = {
        "name": "banner",
        "ratio_w": 3,
        "ratio_h": 1,
        "output_w": 1500,
        "output_h": 500,
        "policy": "coverage",
    }
    preset.update(overrides)
    return preset


def test_normalize_ratio():
    assert normalize_ratio(21, 9) == (7, 3)
    assert aspect_key(1920, 1080) == "16:9"


def test_defaults_are_valid():
    assert validate_presets(DEFAULT_PRESETS) == []


def test_preset_accessors():
    preset = _preset()
    assert preset_aspect_ratio(preset) == pytest.approx(3.0)
    assert preset_output_size(preset) == Size(1500, 500)
    assert preset_policy(preset) is ClampPolicy.COVERAGE
    assert preset_policy(_preset(policy="hard_range")) is ClampPolicy.HARD_RANGE


def test_find_preset_ignores_case():
    assert find_preset(DEFAULT_PRESETS, " Cover ")["ratio_w"] == 16
    assert find_preset(DEFAULT_PRESETS, "missing") is None


@pytest.mark.parametrize("data, message", [
    ({"name": "x"}, "must be a list"),
    (["avatar"], "must be a dict"),
    ([{"name": "x"}], "missing keys"),
    ([_preset(name="  ")], "non-empty string"),
    ([_preset(), _preset(name="BANNER")], "duplicate name"),
    ([_preset(ratio_w=0)], "ratio_w must be a positive integer"),
    ([_preset(output_h=True)], "output_h must be a positive integer"),
    ([_preset(policy="loose")], "policy must be one of"),
    ([_preset(output_h=600)], "does not match crop ratio 3:1"),
])
def test_validation_errors(data, message):
    errors = validate_presets(data)
    assert any(message in error for error in errors), errors


def test_missing_file_is_created_with_defaults(isolated_config):
    presets = load_presets()
    assert presets == DEFAULT_PRESETS
    stored = json.loads((isolated_config / "presets.json").read_text(encoding="utf-8"))
    assert stored == {"version": 1, "presets": DEFAULT_PRESETS}


def test_loaded_defaults_are_a_copy(isolated_config):
    presets = load_presets()
    presets[0]["name"] = "changed"
    assert DEFAULT_PRESETS[0]["name"] == "avatar"


@pytest.mark.parametrize("content", [
    "{not json",
    json.dumps([_preset()]),
    json.dumps({"version": 1, "presets": [_preset(ratio_h=-1)]}),
])
def test_bad_file_restores_defaults(isolated_config, content):
    path = isolated_config / "presets.json"
    path.write_text(content, encoding="utf-8")
    assert load_presets() == DEFAULT_PRESETS
    assert json.loads(path.read_text(encoding="utf-8"))["presets"] == DEFAULT_PRESETS


def test_save_then_load(isolated_config):
    presets = deepcopy(DEFAULT_PRESETS) + [_preset()]
    save_presets(presets)
    assert load_presets() == presets


def test_save_rejects_invalid(isolated_config):
    with pytest.raises(ValueError, match="Invalid presets data"):
        save_presets([_preset(policy="loose")])
    assert not (isolated_config / "presets.json").exists()

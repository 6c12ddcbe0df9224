"""Tests for the clamp solver: minimum scale, offset bounds, coverage and idempotence."""

import random

import pytest

from pan_zoom_crop.clamp import (
    ClampPolicy,
    apply_live_scale,
    clamp_state,
    covers_crop_frame,
    initial_scale,
    min_scale,
    offset_bounds,
)
from pan_zoom_crop.geometry import compute_crop_frame, compute_display_geometry
from pan_zoom_crop.models import CropFrame, Insets, Point, Rect, Size, TransformState, Viewport


def _frame(w: float, h: float, x: float = 0.0, y: float = 0.0) -> CropFrame:
    return CropFrame(Rect(Point(x, y), Size(w, h)))


# --- Scale limits ---

def test_min_scale_height_binding():
    assert min_scale(Size(800, 400), _frame(300, 300)) == pytest.approx(0.75)


def test_min_scale_width_binding():
    assert min_scale(Size(800, 400), _frame(500, 200)) == pytest.approx(0.625)


def test_initial_scale_adds_margin():
    assert initial_scale(0.75, margin_factor=1.2, epsilon=0.01) == pytest.approx(0.9)


def test_initial_scale_epsilon_wins_near_zero():
    assert initial_scale(0.001, margin_factor=1.2, epsilon=0.01) == pytest.approx(0.011)


def test_hard_range_policy_clamps_both_ends():
    assert apply_live_scale(0.1, ClampPolicy.HARD_RANGE, 0.75, 0.5, 5.0) == 0.5
    assert apply_live_scale(7.0, ClampPolicy.HARD_RANGE, 0.75, 0.5, 5.0) == 5.0
    assert apply_live_scale(2.0, ClampPolicy.HARD_RANGE, 0.75, 0.5, 5.0) == 2.0


def test_hard_range_ceiling_yields_to_coverage_minimum():
    # A panorama whose coverage minimum sits above the hard ceiling
    assert apply_live_scale(9.0, ClampPolicy.HARD_RANGE, 8.0, 0.5, 5.0) == 8.0
    assert apply_live_scale(12.0, ClampPolicy.HARD_RANGE, 8.0, 0.5, 5.0) == 8.0
    assert apply_live_scale(7.0, ClampPolicy.HARD_RANGE, 8.0, 0.5, 5.0) == 7.0


def test_coverage_policy_floors_at_minimum_only():
    assert apply_live_scale(0.5, ClampPolicy.COVERAGE, 0.75) == 0.75
    assert apply_live_scale(40.0, ClampPolicy.COVERAGE, 0.75) == 40.0


# --- Offset bounds ---

def test_offset_bounds_symmetric_for_centered_frame():
    bounds = offset_bounds(1.0, Size(800, 400), _frame(300, 300))
    assert bounds == (-250, 250, -50, 50)


def test_offset_bounds_never_negative_width():
    # Scaled image smaller than the frame: the only legal offset is the frame shift
    assert offset_bounds(0.1, Size(800, 400), _frame(300, 300)) == (0, 0, 0, 0)


def test_offset_bounds_follow_off_center_frame():
    # Frame center (170, 200) sits 30 px left of the viewport center
    bounds = offset_bounds(1.0, Size(400, 400), _frame(300, 200, x=20, y=100), Size(400, 400))
    assert bounds == pytest.approx((-80, 20, -100, 100))


# --- Projection ---

def test_clamp_pulls_offset_into_bounds():
    state = clamp_state(TransformState(1.0, Point(900, -70)), Size(800, 400), _frame(300, 300))
    assert state == TransformState(1.0, Point(250, -50))


def test_clamp_raises_scale_below_minimum():
    state = clamp_state(TransformState(0.5, Point(1000, -1000)), Size(800, 400), _frame(300, 300))
    assert state.scale == pytest.approx(0.75)
    _, max_x, min_y, max_y = offset_bounds(state.scale, Size(800, 400), _frame(300, 300))
    assert abs(state.offset.x) <= max_x
    assert min_y <= state.offset.y <= max_y


def test_clamp_respects_ceiling_but_not_below_minimum():
    base, frame = Size(800, 400), _frame(300, 300)
    assert clamp_state(TransformState(9.0), base, frame, max_scale=5.0).scale == 5.0
    assert clamp_state(TransformState(2.0), base, frame, max_scale=0.5).scale == pytest.approx(0.75)


def test_clamp_leaves_legal_state_untouched():
    state = TransformState(1.2, Point(12.5, -3.25))
    assert clamp_state(state, Size(800, 400), _frame(300, 300)) == state


def _random_layout(rng: random.Random):
    viewport = Viewport(
        Size(rng.uniform(200, 2000), rng.uniform(200, 2000)),
        Insets(top=rng.uniform(0, 60), left=rng.uniform(0, 30),
               bottom=rng.uniform(0, 60), right=rng.uniform(0, 30)),
    )
    image = Size(rng.randint(1, 8000), rng.randint(1, 8000))
    ratio = rng.choice([None, 1.0, 16 / 9, 9 / 16, 4 / 3, rng.uniform(0.2, 5)])
    frame = compute_crop_frame(viewport, ratio)
    geometry = compute_display_geometry(image, viewport)
    return viewport, frame, geometry.base_size


def _random_state(rng: random.Random) -> TransformState:
    return TransformState(
        rng.uniform(0.01, 12.0),
        Point(rng.uniform(-5000, 5000), rng.uniform(-5000, 5000)),
    )


def test_clamp_is_idempotent():
    rng = random.Random(20260108)
    for _ in range(500):
        viewport, frame, base = _random_layout(rng)
        max_scale = rng.choice([None, 5.0, 0.5])
        once = clamp_state(_random_state(rng), base, frame, viewport.size, max_scale)
        twice = clamp_state(once, base, frame, viewport.size, max_scale)
        assert twice == once


def test_clamped_state_always_covers_crop_frame():
    rng = random.Random(1101)
    for _ in range(500):
        viewport, frame, base = _random_layout(rng)
        state = clamp_state(_random_state(rng), base, frame, viewport.size)
        assert state.scale >= min_scale(base, frame)
        assert covers_crop_frame(state, base, frame, viewport.size, tolerance=1e-6)


def test_coverage_check_detects_gap():
    viewport = Viewport(Size(390, 600))
    frame = compute_crop_frame(viewport)
    base = compute_display_geometry(Size(1000, 2000), viewport).base_size
    minimum = min_scale(base, frame)
    assert covers_crop_frame(TransformState(minimum), base, frame, viewport.size)
    assert not covers_crop_frame(TransformState(minimum * 0.9), base, frame, viewport.size)
    assert not covers_crop_frame(TransformState(minimum, Point(40, 0)), base, frame, viewport.size)

"""
Interactive crop session: the transform state machine.

A ``CropSession`` owns the only mutable state in the engine, the live
``TransformState``.  The host feeds it layout changes and a stream of
``GestureSample`` events; the session keeps the crop frame covered by
re-running the clamp solver at every gesture end, viewport change and image
swap, and hands the final transform to the extractor on ``confirm()``.

States::

    UNINITIALIZED -> READY <-> GESTURING
    READY -> CONFIRMED
    READY | GESTURING -> CANCELLED

All work is synchronous and allocation-free per sample, so it can run on
the UI thread at gesture rate.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

from PIL import Image

from pan_zoom_crop.clamp import (
    ClampPolicy, apply_live_scale, clamp_state, covers_crop_frame, initial_scale, min_scale,
)
from pan_zoom_crop.config import (
    CHROME_MARGIN, HARD_MAX_SCALE, HARD_MIN_SCALE, INITIAL_SCALE_MARGIN, MIN_SCALE_EPSILON,
)
from pan_zoom_crop.errors import SessionStateError
from pan_zoom_crop.extractor import extract_crop
from pan_zoom_crop.geometry import compute_crop_frame, compute_display_geometry
from pan_zoom_crop.models import (
    CropFrame, CropSnapshot, DisplayGeometry, GestureKind, GesturePhase, GestureSample,
    ImageSource, Point, Size, TransformState, Viewport,
)

logger = logging.getLogger(__name__)


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    GESTURING = "gesturing"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


_LIVE_STATES = (SessionState.READY, SessionState.GESTURING)


@dataclass(frozen=True)
class SessionConfig:
    """Per-session tunables.

    ``policy`` picks how the scale is limited mid-pinch; the clamp at
    gesture end always restores coverage.  Under ``HARD_RANGE`` the
    ``hard_max`` ceiling also applies at gesture end.
    """
    policy: ClampPolicy = ClampPolicy.COVERAGE
    margin_factor: float = INITIAL_SCALE_MARGIN
    epsilon: float = MIN_SCALE_EPSILON
    hard_min: float = HARD_MIN_SCALE
    hard_max: float = HARD_MAX_SCALE
    chrome_margin: float = CHROME_MARGIN
    output_size: Size | None = None


class CropSession:
    """One editing session over one image at a time."""

    def __init__(self, config: SessionConfig | None = None):
        self.config = config or SessionConfig()
        self._state = SessionState.UNINITIALIZED

        # Inputs
        self._image: ImageSource | None = None
        self._viewport: Viewport | None = None
        self._aspect_ratio: float | None = None
        self._crop_size: Size | None = None

        # Derived layout, recomputed on every input change
        self._crop_frame: CropFrame | None = None
        self._geometry: DisplayGeometry | None = None

        # Live transform and gesture baselines
        self._transform: TransformState | None = None
        self._active: set[GestureKind] = set()
        self._last_scale_sample = 1.0
        self._drag_origin = Point()

    # --- Read-only state ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transform(self) -> TransformState | None:
        return self._transform

    @property
    def crop_frame(self) -> CropFrame | None:
        return self._crop_frame

    @property
    def display_geometry(self) -> DisplayGeometry | None:
        return self._geometry

    @property
    def viewport(self) -> Viewport | None:
        return self._viewport

    @property
    def image(self) -> ImageSource | None:
        return self._image

    @property
    def is_live(self) -> bool:
        return self._state in _LIVE_STATES

    @property
    def min_scale(self) -> float:
        self._require_live("query the minimum scale")
        return min_scale(self._geometry.base_size, self._crop_frame)

    def covers_crop_frame(self) -> bool:
        """True when the displayed image currently covers the whole crop frame."""
        self._require_live("check coverage")
        return covers_crop_frame(
            self._transform, self._geometry.base_size, self._crop_frame, self._viewport.size,
        )

    def snapshot(self) -> CropSnapshot:
        """Freeze the current transform and layout for off-thread extraction."""
        if self._transform is None:
            raise SessionStateError(f"no transform to snapshot in state {self._state.value}")
        t = self._transform
        rect = self._crop_frame.rect
        base = self._geometry.base_size
        view = self._viewport.size
        return CropSnapshot(
            scale=t.scale, offset_x=t.offset.x, offset_y=t.offset.y,
            crop_x=rect.left, crop_y=rect.top, crop_w=rect.width, crop_h=rect.height,
            base_w=base.width, base_h=base.height,
            viewport_w=view.width, viewport_h=view.height,
        )

    # --- Lifecycle ---

    def start(
        self,
        image: ImageSource,
        viewport: Viewport,
        aspect_ratio: float | None = None,
        crop_size: Size | None = None,
    ) -> TransformState:
        """Lay out *image* in *viewport* and place the initial transform.

        Raises ``InvalidGeometry`` before any state is touched when a
        dimension is unusable.
        """
        if self._state is not SessionState.UNINITIALIZED:
            raise SessionStateError(f"session already started (state {self._state.value})")

        crop_frame = compute_crop_frame(viewport, aspect_ratio, self.config.chrome_margin, crop_size)
        geometry = compute_display_geometry(image.pixel_size, viewport)

        self._image = image
        self._viewport = viewport
        self._aspect_ratio = aspect_ratio
        self._crop_size = crop_size
        self._crop_frame = crop_frame
        self._geometry = geometry
        self._initialize_transform()
        self._state = SessionState.READY
        logger.debug(
            "Crop session started: image %sx%s, viewport %sx%s, frame %.1fx%.1f, scale %.4f",
            image.pixel_size.width, image.pixel_size.height,
            viewport.size.width, viewport.size.height,
            crop_frame.width, crop_frame.height, self._transform.scale,
        )
        return self._transform

    def confirm(self, output_size: Size | tuple[int, int] | None = None) -> Image.Image:
        """Extract the pixels under the crop frame and end the session.

        On ``DegenerateCropRegion`` the error propagates and the session is
        left exactly as it was, so the user can adjust and retry.
        """
        if self._state is not SessionState.READY:
            raise SessionStateError(f"cannot confirm in state {self._state.value}")
        if output_size is None:
            output_size = self.config.output_size
        result = extract_crop(
            self._image,
            self._crop_frame.rect,
            self._transform,
            self._geometry,
            self._viewport.size,
            output_size,
        )
        self._state = SessionState.CONFIRMED
        logger.debug("Crop confirmed: %dx%d output", result.width, result.height)
        return result

    def cancel(self) -> None:
        """Discard the transform without extracting anything."""
        self._require_live("cancel")
        self._state = SessionState.CANCELLED
        self._transform = None
        self._active.clear()
        logger.debug("Crop session cancelled")

    # --- Layout changes ---

    def set_viewport(self, viewport: Viewport) -> TransformState:
        """Recompute the crop frame and base layout for *viewport* and re-clamp."""
        self._require_live("change the viewport")
        crop_frame = compute_crop_frame(
            viewport, self._aspect_ratio, self.config.chrome_margin, self._crop_size,
        )
        geometry = compute_display_geometry(self._image.pixel_size, viewport)

        self._viewport = viewport
        self._crop_frame = crop_frame
        self._geometry = geometry
        self._reproject()
        logger.debug(
            "Viewport changed to %sx%s; frame %.1fx%.1f",
            viewport.size.width, viewport.size.height, crop_frame.width, crop_frame.height,
        )
        return self._transform

    def set_image(self, image: ImageSource) -> TransformState:
        """Swap the source image; any gesture in flight is abandoned."""
        self._require_live("swap the image")
        geometry = compute_display_geometry(image.pixel_size, self._viewport)

        self._image = image
        self._geometry = geometry
        self._active.clear()
        self._initialize_transform()
        self._state = SessionState.READY
        return self._transform

    def reset(self) -> TransformState:
        """Return to the initial zoom and centered position."""
        self._require_live("reset")
        self._active.clear()
        self._initialize_transform()
        self._state = SessionState.READY
        return self._transform

    # --- Gestures ---

    def handle(self, sample: GestureSample) -> TransformState:
        """Apply one gesture sample and return the resulting transform."""
        self._require_live("handle gestures")
        if sample.kind is GestureKind.PINCH:
            self._handle_pinch(sample)
        else:
            self._handle_drag(sample)
        return self._transform

    def _handle_pinch(self, sample: GestureSample) -> None:
        if sample.phase is GesturePhase.ENDED:
            if GestureKind.PINCH in self._active:
                self._active.discard(GestureKind.PINCH)
                self._last_scale_sample = 1.0
                self._end_gesture()
            return

        value = self._pinch_value(sample)
        if value is None:
            return

        if sample.phase is GesturePhase.BEGAN:
            self._begin(GestureKind.PINCH)
            self._last_scale_sample = value
            return

        if GestureKind.PINCH not in self._active:
            self._begin(GestureKind.PINCH)

        delta = value / self._last_scale_sample
        self._last_scale_sample = value
        scale = apply_live_scale(
            self._transform.scale * delta,
            self.config.policy,
            min_scale(self._geometry.base_size, self._crop_frame),
            self.config.hard_min,
            self.config.hard_max,
        )
        self._transform = TransformState(scale, self._transform.offset)

    def _handle_drag(self, sample: GestureSample) -> None:
        if sample.phase is GesturePhase.ENDED:
            if GestureKind.DRAG in self._active:
                self._active.discard(GestureKind.DRAG)
                self._end_gesture()
            return

        if sample.phase is GesturePhase.BEGAN:
            self._begin(GestureKind.DRAG)
            return

        translation = sample.value
        if not isinstance(translation, Point) or not (
            math.isfinite(translation.x) and math.isfinite(translation.y)
        ):
            logger.warning("Dropping drag sample with invalid translation %r", translation)
            return

        if GestureKind.DRAG not in self._active:
            self._begin(GestureKind.DRAG)

        # Always relative to the gesture start, never to the previous sample
        self._transform = TransformState(
            self._transform.scale,
            self._drag_origin.translated(translation.x, translation.y),
        )

    @staticmethod
    def _pinch_value(sample: GestureSample) -> float | None:
        value = sample.value
        if isinstance(value, (int, float)) and math.isfinite(value) and value > 0:
            return float(value)
        logger.warning("Dropping pinch sample with invalid magnification %r", value)
        return None

    def _begin(self, kind: GestureKind) -> None:
        self._active.add(kind)
        if kind is GestureKind.PINCH:
            self._last_scale_sample = 1.0
        else:
            self._drag_origin = self._transform.offset
        self._state = SessionState.GESTURING

    def _end_gesture(self) -> None:
        self._reproject()
        if not self._active:
            self._drag_origin = self._transform.offset
            self._state = SessionState.READY

    # --- Internals ---

    def _require_live(self, action: str) -> None:
        if self._state not in _LIVE_STATES:
            raise SessionStateError(f"cannot {action} in state {self._state.value}")

    def _project(self, state: TransformState) -> TransformState:
        max_scale = self.config.hard_max if self.config.policy is ClampPolicy.HARD_RANGE else None
        return clamp_state(
            state, self._geometry.base_size, self._crop_frame, self._viewport.size, max_scale,
        )

    def _reproject(self) -> None:
        """Clamp the live transform, carrying the correction into an in-flight drag."""
        before = self._transform
        self._transform = self._project(before)
        self._drag_origin = self._drag_origin.translated(
            self._transform.offset.x - before.offset.x,
            self._transform.offset.y - before.offset.y,
        )

    def _initialize_transform(self) -> None:
        minimum = min_scale(self._geometry.base_size, self._crop_frame)
        scale = initial_scale(minimum, self.config.margin_factor, self.config.epsilon)
        # Offset (0, 0) centers the image in the viewport; the projection only
        # moves it when insets push the crop frame off center
        self._transform = self._project(TransformState(scale, Point()))
        self._last_scale_sample = 1.0
        self._drag_origin = self._transform.offset

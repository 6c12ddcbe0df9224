"""
Interactive pan-zoom crop widget and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap`` and the ``PanZoomCropWidget`` host.  The widget does no
geometry of its own; it turns Qt input events into ``GestureSample``s for
its ``CropSession`` and paints whatever transform the session reports.
"""

import logging

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QEvent, QPointF, QRectF, pyqtSignal
from PyQt6.QtGui import (
    QPainter, QPainterPath, QPixmap, QColor, QPen, QImage,
    QMouseEvent, QPaintEvent, QResizeEvent, QWheelEvent,
)

from pan_zoom_crop.config import WHEEL_ZOOM_STEP
from pan_zoom_crop.errors import InvalidGeometry
from pan_zoom_crop.extractor import normalize_orientation
from pan_zoom_crop.geometry import displayed_image_rect
from pan_zoom_crop.models import GesturePhase, GestureSample, ImageSource, Rect, Size, Viewport
from pan_zoom_crop.session import CropSession, SessionConfig, SessionState

logger = logging.getLogger(__name__)

_CORNER_LENGTH = 20
_CORNER_WIDTH = 3


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgb = pil_img.convert("RGBA")
    data = img_rgb.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgb.width, img_rgb.height, QImage.Format.Format_RGBA8888)
    # QImage does not own *data*; copy before it goes out of scope
    return QPixmap.fromImage(qimg.copy())


def _qrect(rect: Rect) -> QRectF:
    return QRectF(rect.left, rect.top, rect.width, rect.height)


# =============================================================================
# Pan-zoom crop widget
# =============================================================================

class PanZoomCropWidget(QWidget):
    """Displays an image behind a fixed crop frame; drag pans, pinch/wheel zooms."""

    transform_changed = pyqtSignal()

    def __init__(self, parent=None, config: SessionConfig | None = None):
        super().__init__(parent)
        self.setMinimumSize(320, 320)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self._config = config or SessionConfig()
        self._session: CropSession | None = None
        self._source: ImageSource | None = None
        self._pixmap: QPixmap | None = None
        self._aspect_ratio: float | None = None
        self._crop_size: Size | None = None

        # Interaction state
        self._press_pos: QPointF | None = None
        self._native_zoom = 1.0

    @property
    def session(self) -> CropSession | None:
        return self._session

    def set_image(self, source: ImageSource, aspect_ratio: float | None = None,
                  crop_size: Size | None = None):
        """Start a fresh session for *source*."""
        self._source = source
        self._aspect_ratio = aspect_ratio
        self._crop_size = crop_size
        self._pixmap = pil_to_qpixmap(normalize_orientation(source).image)
        self._session = CropSession(self._config)
        self._press_pos = None
        self.relayout()

    def relayout(self):
        """Push the current widget size into the session as its viewport."""
        if self._session is None or self._source is None:
            return
        viewport = Viewport(Size(self.width(), self.height()))
        try:
            if self._session.state is SessionState.UNINITIALIZED:
                self._session.start(self._source, viewport, self._aspect_ratio, self._crop_size)
            elif self._session.is_live:
                self._session.set_viewport(viewport)
            else:
                return
        except InvalidGeometry as exc:
            # Too small to lay out (e.g. mid-construction); the next resize retries
            logger.debug("Deferring crop layout: %s", exc)
            return
        self._changed()

    def _changed(self):
        self.transform_changed.emit()
        self.update()

    def _feed(self, sample: GestureSample):
        if self._session is None or not self._session.is_live:
            return
        self._session.handle(sample)
        self._changed()

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(0, 0, 0))

        session = self._session
        if not self._pixmap or session is None or session.transform is None:
            painter.setPen(QColor(128, 128, 128))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No image loaded")
            painter.end()
            return

        viewport_size = session.viewport.size
        dest = displayed_image_rect(session.transform, session.display_geometry.base_size, viewport_size)
        painter.drawPixmap(_qrect(dest), self._pixmap, QRectF(self._pixmap.rect()))

        # Dim everything outside the crop frame
        frame = _qrect(session.crop_frame.rect)
        mask = QPainterPath()
        mask.setFillRule(Qt.FillRule.OddEvenFill)
        mask.addRect(QRectF(self.rect()))
        mask.addRect(frame)
        painter.fillPath(mask, QColor(0, 0, 0, 150))

        # Frame border
        painter.setPen(QPen(QColor(255, 255, 255), 2))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(frame)

        # Corner markers
        painter.setPen(QPen(QColor(255, 255, 255), _CORNER_WIDTH))
        for corner, sx, sy in (
            (frame.topLeft(), 1, 1), (frame.topRight(), -1, 1),
            (frame.bottomLeft(), 1, -1), (frame.bottomRight(), -1, -1),
        ):
            painter.drawLine(corner, corner + QPointF(sx * _CORNER_LENGTH, 0))
            painter.drawLine(corner, corner + QPointF(0, sy * _CORNER_LENGTH))

        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        self.relayout()
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or self._session is None:
            return
        self._press_pos = event.position()
        self._feed(GestureSample.drag(phase=GesturePhase.BEGAN))

    def mouseMoveEvent(self, event: QMouseEvent):
        if self._press_pos is None:
            return
        delta = event.position() - self._press_pos
        self._feed(GestureSample.drag(delta.x(), delta.y()))

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._press_pos is not None:
            self._press_pos = None
            self._feed(GestureSample.drag(phase=GesturePhase.ENDED))

    def mouseDoubleClickEvent(self, event: QMouseEvent):
        if self._session is not None and self._session.is_live:
            self._session.reset()
            self._changed()

    def wheelEvent(self, event: QWheelEvent):
        steps = event.angleDelta().y()
        if steps == 0:
            return
        # Each wheel event is a complete one-shot pinch
        self._feed(GestureSample.pinch(1.0, GesturePhase.BEGAN))
        self._feed(GestureSample.pinch(WHEEL_ZOOM_STEP ** steps))
        self._feed(GestureSample.pinch(phase=GesturePhase.ENDED))
        event.accept()

    # --- Trackpad pinch ---

    def event(self, event: QEvent) -> bool:
        if event.type() == QEvent.Type.NativeGesture:
            gesture = event.gestureType()
            if gesture == Qt.NativeGestureType.BeginNativeGesture:
                self._native_zoom = 1.0
                self._feed(GestureSample.pinch(1.0, GesturePhase.BEGAN))
            elif gesture == Qt.NativeGestureType.ZoomNativeGesture:
                # Qt reports incremental zoom; the session wants it relative to the start
                self._native_zoom *= 1.0 + event.value()
                self._feed(GestureSample.pinch(self._native_zoom))
            elif gesture == Qt.NativeGestureType.EndNativeGesture:
                self._feed(GestureSample.pinch(phase=GesturePhase.ENDED))
            return True
        return super().event(event)

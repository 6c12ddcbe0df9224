"""
Application entry point: a single-image crop window.

Usage:
    python -m pan_zoom_crop.app photo.jpg --preset avatar
    pan-zoom-crop photo.jpg --preset cover --size 1280   (after pip install)
"""

import argparse
import logging
import sys
from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import (
    QApplication, QHBoxLayout, QMessageBox, QPushButton, QVBoxLayout, QWidget,
)

from pan_zoom_crop.config import (
    IMAGE_EXTENSIONS, JPEG_QUALITY_DEFAULT, JPEG_QUALITY_MAX, JPEG_QUALITY_MIN, OUTPUT_FORMATS,
)
from pan_zoom_crop.crop_widget import PanZoomCropWidget
from pan_zoom_crop.errors import CropError, DegenerateCropRegion
from pan_zoom_crop.image_io import load_image_source, save_image
from pan_zoom_crop.models import ImageSource, Size
from pan_zoom_crop.presets import (
    find_preset, load_presets, preset_aspect_ratio, preset_output_size, preset_policy,
)
from pan_zoom_crop.session import SessionConfig

logger = logging.getLogger(__name__)

DARK_STYLESHEET = """
    QWidget { background: #111; color: #ddd; font-size: 10pt; }
    QPushButton { background: #3a3a3a; border: 1px solid #555; border-radius: 12px; padding: 10px 18px; font-weight: bold; }
    QPushButton:hover { background: #4a4a4a; }
    QPushButton:pressed { background: #2a2a2a; }
    QPushButton#confirm { background: #d4af37; color: #000; border-color: #d4af37; }
"""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pan-zoom-crop", description="Interactively crop an image.")
    parser.add_argument("image", type=Path, help="source image")
    parser.add_argument("-o", "--output", type=Path, help="output file (.jpg or .png)")
    parser.add_argument("-p", "--preset", default="avatar", help="crop preset name (default: avatar)")
    parser.add_argument("-s", "--size", type=int, help="output width in pixels; height follows the preset ratio")
    parser.add_argument("-q", "--quality", type=int, default=JPEG_QUALITY_DEFAULT,
                        help=f"JPEG quality {JPEG_QUALITY_MIN}-{JPEG_QUALITY_MAX}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)
    if args.image.suffix.lower() not in IMAGE_EXTENSIONS:
        parser.error(f"unsupported image type: {args.image.suffix or args.image.name}")
    if args.output is not None and args.output.suffix.lower() not in OUTPUT_FORMATS:
        parser.error(f"--output must end in one of {', '.join(OUTPUT_FORMATS)}")
    if args.size is not None and args.size <= 0:
        parser.error("--size must be positive")
    if not JPEG_QUALITY_MIN <= args.quality <= JPEG_QUALITY_MAX:
        parser.error(f"--quality must be between {JPEG_QUALITY_MIN} and {JPEG_QUALITY_MAX}")
    return args


def resolve_settings(args: argparse.Namespace, presets: list[dict]) -> tuple[SessionConfig, float]:
    """Turn CLI arguments plus the preset list into a session config and crop ratio."""
    preset = find_preset(presets, args.preset)
    if preset is None:
        names = ", ".join(p["name"] for p in presets)
        raise ValueError(f"Unknown preset {args.preset!r} (available: {names})")
    ratio = preset_aspect_ratio(preset)
    output = preset_output_size(preset)
    if args.size is not None:
        output = Size(args.size, max(1, round(args.size / ratio)))
    return SessionConfig(policy=preset_policy(preset), output_size=output), ratio


def default_output_path(image_path: Path) -> Path:
    return image_path.with_name(f"{image_path.stem}-cropped.jpg")


class CropWindow(QWidget):
    """Crop widget plus Cancel / Confirm buttons."""

    def __init__(self, source: ImageSource, aspect_ratio: float, config: SessionConfig,
                 output_path: Path, quality: int = JPEG_QUALITY_DEFAULT, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Adjust image")
        self.resize(480, 720)
        self._output_path = output_path
        self._quality = quality
        self.written_path: Path | None = None
        self._cropped: Image.Image | None = None

        self._crop_widget = PanZoomCropWidget(config=config)
        self._crop_widget.set_image(source, aspect_ratio)

        cancel = QPushButton("Cancel")
        cancel.clicked.connect(self._cancel)
        confirm = QPushButton("Confirm")
        confirm.setObjectName("confirm")
        confirm.clicked.connect(self._confirm)

        buttons = QHBoxLayout()
        buttons.setContentsMargins(20, 12, 20, 20)
        buttons.setSpacing(16)
        buttons.addWidget(cancel)
        buttons.addWidget(confirm)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._crop_widget, stretch=1)
        layout.addLayout(buttons)

    @property
    def crop_widget(self) -> PanZoomCropWidget:
        return self._crop_widget

    @property
    def output_path(self) -> Path:
        return self._output_path

    @output_path.setter
    def output_path(self, path: Path):
        self._output_path = path

    def _confirm(self):
        if self._cropped is None:
            session = self._crop_widget.session
            if session is None or not session.is_live:
                return
            try:
                self._cropped = session.confirm()
            except DegenerateCropRegion as exc:
                logger.warning("Crop failed: %s", exc)
                QMessageBox.warning(self, "Crop failed", f"The selected region is empty:\n{exc}")
                return
        # A failed save keeps the confirmed crop so Confirm can retry it
        try:
            self.written_path = save_image(self._cropped, self._output_path, quality=self._quality)
        except (OSError, ValueError) as exc:
            logger.error("Could not save %s: %s", self._output_path, exc)
            QMessageBox.critical(self, "Error", f"Failed to save {self._output_path}:\n{exc}")
            return
        logger.info("Saved crop to %s", self.written_path)
        self.close()

    def _cancel(self):
        session = self._crop_widget.session
        if session is not None and session.is_live:
            session.cancel()
        self.close()


def main(argv: list[str] | None = None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config, ratio = resolve_settings(args, load_presets())
        source = load_image_source(args.image)
    except (ValueError, OSError, CropError) as exc:
        logger.error("%s", exc)
        sys.exit(2)

    app = QApplication(sys.argv[:1])
    app.setStyleSheet(DARK_STYLESHEET)

    window = CropWindow(source, ratio, config, args.output or default_output_path(args.image), args.quality)
    window.show()

    try:
        sys.exit(app.exec())
    except (SystemExit, KeyboardInterrupt):
        pass


if __name__ == "__main__":
    main()

import pytest
from PIL import Image

from pan_zoom_crop.models import ImageSource, Size, Viewport

QUADRANT_COLORS = (
    (255, 0, 0),    # top-left
    (0, 255, 0),    # top-right
    (0, 0, 255),    # bottom-left
    (255, 255, 0),  # bottom-right
)


def quadrant_image(width: int, height: int) -> Image.Image:
    """An RGB image whose four quadrants have distinct colors."""
    image = Image.new("RGB", (width, height))
    half_w, half_h = width // 2, height // 2
    image.paste(QUADRANT_COLORS[0], (0, 0, half_w, half_h))
    image.paste(QUADRANT_COLORS[1], (half_w, 0, width, half_h))
    image.paste(QUADRANT_COLORS[2], (0, half_h, half_w, height))
    image.paste(QUADRANT_COLORS[3], (half_w, half_h, width, height))
    return image


@pytest.fixture
def portrait_source() -> ImageSource:
    """1000x2000 upright source."""
    return ImageSource(quadrant_image(1000, 2000))


@pytest.fixture
def phone_viewport() -> Viewport:
    return Viewport(Size(390, 600))


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point preset persistence at a temporary directory."""
    monkeypatch.setattr("pan_zoom_crop.presets.config_dir", lambda: tmp_path)
    return tmp_path

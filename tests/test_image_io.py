"""Tests for image loading, EXIF orientation, encoding and collision-free saving."""

import logging
from pathlib import Path

import pytest
from PIL import Image

from pan_zoom_crop import image_io
from pan_zoom_crop.image_io import (
    encode_image,
    get_image_size,
    load_image_source,
    read_orientation,
    save_image,
    unique_path,
)
from pan_zoom_crop.models import Orientation, Size

from tests.conftest import quadrant_image


def _save_with_orientation(path: Path, image: Image.Image, orientation: int) -> Path:
    exif = Image.Exif()
    exif[0x0112] = orientation
    image.save(path, exif=exif.tobytes())
    return path


# --- Loading ---

def test_load_keeps_stored_pixels_and_orientation(tmp_path):
    path = _save_with_orientation(tmp_path / "photo.jpg", quadrant_image(200, 100), 6)
    source = load_image_source(path)
    assert source.orientation is Orientation.ROTATE_90
    assert source.raw_size == Size(200, 100)
    assert source.pixel_size == Size(100, 200)


def test_load_without_exif_is_upright(tmp_path):
    path = tmp_path / "plain.png"
    quadrant_image(30, 20).save(path)
    assert load_image_source(path).orientation is Orientation.NORMAL


def test_invalid_orientation_falls_back_to_normal(tmp_path, caplog):
    path = _save_with_orientation(tmp_path / "odd.jpg", quadrant_image(30, 20), 9)
    with Image.open(path) as image, caplog.at_level(logging.DEBUG, logger="pan_zoom_crop.image_io"):
        assert read_orientation(image) is Orientation.NORMAL
    assert "invalid EXIF orientation" in caplog.text


def test_get_image_size_reports_upright_size(tmp_path):
    path = _save_with_orientation(tmp_path / "rotated.jpg", quadrant_image(200, 100), 8)
    assert get_image_size(path) == Size(100, 200)


def test_psd_files_go_through_psd_tools(tmp_path, monkeypatch):
    composite = quadrant_image(64, 48)

    class FakePSD:
        width, height = 64, 48

        @classmethod
        def open(cls, path):
            assert path.endswith("layered.psd")
            return cls()

        def composite(self):
            return composite

    monkeypatch.setattr(image_io, "PSDImage", FakePSD)
    path = tmp_path / "layered.psd"

    source = load_image_source(path)
    assert source.image is composite
    assert source.orientation is Orientation.NORMAL
    assert get_image_size(path) == Size(64, 48)


# --- Output ---

def test_encode_jpeg_converts_alpha():
    rgba = Image.new("RGBA", (16, 16), (10, 20, 30, 128))
    data = encode_image(rgba, "JPEG", quality=90)
    assert data[:2] == b"\xff\xd8"


def test_encode_png_keeps_alpha(tmp_path):
    rgba = Image.new("RGBA", (16, 16), (10, 20, 30, 128))
    data = encode_image(rgba, "PNG")
    path = tmp_path / "out.png"
    path.write_bytes(data)
    with Image.open(path) as decoded:
        assert decoded.mode == "RGBA"


def test_save_picks_format_from_suffix(tmp_path):
    written = save_image(quadrant_image(20, 20), tmp_path / "nested" / "crop.png")
    assert written == tmp_path / "nested" / "crop.png"
    with Image.open(written) as decoded:
        assert decoded.format == "PNG"


def test_save_never_overwrites(tmp_path):
    first = save_image(quadrant_image(20, 20), tmp_path / "crop.jpg")
    second = save_image(quadrant_image(20, 20), tmp_path / "crop.jpg")
    assert first.name == "crop.jpg"
    assert second.name == "crop-01.jpg"
    assert second.exists()


def test_save_rejects_unknown_suffix(tmp_path):
    with pytest.raises(ValueError):
        save_image(quadrant_image(20, 20), tmp_path / "crop.gif")


def test_unique_path_counts_up(tmp_path):
    (tmp_path / "a.jpg").touch()
    (tmp_path / "a-01.jpg").touch()
    assert unique_path(tmp_path / "a.jpg") == tmp_path / "a-02.jpg"
    assert unique_path(tmp_path / "b.jpg") == tmp_path / "b.jpg"

"""Tests for TextureCompositor."""

from __future__ import annotations

from PyQt6.QtGui import QImage

from decalstudio.core.compositor import compose, decode_image, derive_image, image_size
from decalstudio.core.crop import NaturalCrop
from decalstudio.errors import CropOutOfBounds, ImageDecodeError
from tests.helpers import PngFactory, decode


def test_crop_produces_rect_sized_buffer(make_png: PngFactory) -> None:
    source = make_png(400, 300, gradient=True)
    result = compose(source, NaturalCrop(10, 20, 120, 80, 400, 300), 0)
    assert result.ok
    assert (result.width, result.height) == (120, 80)
    img = decode(result.data)
    assert (img.width(), img.height()) == (120, 80)
    # Top-left of the output is source pixel (10, 20)
    px = img.pixelColor(0, 0)
    assert (px.red(), px.green(), px.blue()) == (10, 20, 30)


def test_crop_is_retargeted_to_source_size(make_png: PngFactory) -> None:
    source = make_png(800, 800, gradient=True)
    result = compose(source, NaturalCrop(10, 10, 100, 100, 400, 400), 0)
    assert (result.width, result.height) == (200, 200)
    px = decode(result.data).pixelColor(0, 0)
    assert (px.red(), px.green()) == (20, 20)


def test_output_is_rgba_for_opaque_source(make_png: PngFactory) -> None:
    source = make_png(40, 30, "green", alpha=False)
    assert not decode(source).hasAlphaChannel()
    img = decode(compose(source, None, 0).data)
    assert img.hasAlphaChannel()
    assert img.pixelColor(20, 15).alpha() == 255


def test_ellipse_mask_clears_corners(make_png: PngFactory) -> None:
    img = decode(compose(make_png(100, 60), None, 50).data)
    assert img.pixelColor(0, 0).alpha() == 0
    assert img.pixelColor(99, 59).alpha() == 0
    assert img.pixelColor(50, 30).alpha() == 255
    assert img.pixelColor(50, 0).alpha() == 255


def test_rounded_mask_keeps_edges(make_png: PngFactory) -> None:
    img = decode(compose(make_png(100, 100), None, 20).data)
    assert img.pixelColor(0, 0).alpha() == 0
    assert img.pixelColor(50, 0).alpha() == 255
    assert img.pixelColor(0, 50).alpha() == 255


def test_fifty_and_ninety_percent_match(make_png: PngFactory) -> None:
    source = make_png(70, 40, gradient=True)
    assert compose(source, None, 50).data == compose(source, None, 90).data


def test_recomposing_output_is_identical(make_png: PngFactory) -> None:
    source = make_png(120, 90, gradient=True)
    first = compose(source, NaturalCrop(5, 5, 100, 70, 120, 90), 30)
    second = compose(first.data, None, 30)
    assert decode(second.data) == decode(first.data)


def test_undecodable_source_falls_back_to_raw_bytes() -> None:
    junk = b"definitely not an image"
    result = compose(junk, NaturalCrop(0, 0, 1, 1, 1, 1), 25)
    assert not result.ok
    assert isinstance(result.error, ImageDecodeError)
    assert result.data == junk


def test_clamped_crop_is_reported(make_png: PngFactory) -> None:
    result = compose(make_png(50, 50), NaturalCrop(40, 40, 30, 30, 50, 50), 0)
    assert result.ok
    assert (result.width, result.height) == (10, 10)
    assert any(isinstance(w, CropOutOfBounds) for w in result.warnings)


def test_derive_without_crop_or_mask_keeps_original(make_png: PngFactory) -> None:
    source = make_png(10, 10, alpha=False)
    assert derive_image(source, None, 0).data == source


def test_derive_with_mask_composes(make_png: PngFactory) -> None:
    source = make_png(10, 10)
    assert derive_image(source, None, 50).data == compose(source, None, 50).data


def test_image_size(make_png: PngFactory) -> None:
    assert image_size(make_png(31, 17)) == (31, 17)
    assert image_size(b"") is None


def test_decode_image_returns_qimage(make_png: PngFactory) -> None:
    assert isinstance(decode_image(make_png(2, 2)), QImage)

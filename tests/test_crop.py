"""Tests for crop descriptors and CropResolver."""

import pytest

from decalstudio.core.crop import (
    LegacyDisplayCrop,
    NaturalCrop,
    PixelRect,
    crop_from_dict,
    legacy_to_natural,
    resolve_crop,
)
from decalstudio.errors import PresetFormatError


def test_no_crop_means_full_image() -> None:
    assert resolve_crop(None, 640, 480) is None


def test_scales_to_larger_image() -> None:
    crop = NaturalCrop(10, 10, 100, 100, 400, 400)
    assert resolve_crop(crop, 800, 800) == PixelRect(20, 20, 200, 200)


def test_scales_each_axis_independently() -> None:
    crop = NaturalCrop(40, 30, 80, 60, 400, 300)
    assert resolve_crop(crop, 200, 600) == PixelRect(20, 60, 40, 120)


@pytest.mark.parametrize(
    "rect",
    [
        PixelRect(0, 0, 400, 300),
        PixelRect(13, 7, 101, 55),
        PixelRect(399, 299, 1, 1),
        PixelRect(250, 10, 150, 290),
    ],
)
def test_identity_replay_is_exact(rect: PixelRect) -> None:
    crop = NaturalCrop.from_pixel_rect(rect, 400, 300)
    resolved = resolve_crop(crop, 400, 300)
    assert resolved == rect
    assert resolved is not None and not resolved.clamped


def test_identity_replay_of_display_capture() -> None:
    # Selection on a half-size preview of a 1000x800 image
    crop = NaturalCrop.from_display(50, 40, 200, 100, 500, 400, 1000, 800)
    assert resolve_crop(crop, 1000, 800) == PixelRect(100, 80, 400, 200)


def test_overflow_is_clamped_and_recorded() -> None:
    crop = NaturalCrop(300, 250, 200, 100, 400, 300)
    rect = resolve_crop(crop, 400, 300)
    assert rect == PixelRect(300, 250, 100, 50)
    assert rect is not None and rect.clamped


def test_negative_origin_is_clamped() -> None:
    rect = resolve_crop(NaturalCrop(-20, -5, 50, 50, 100, 100), 100, 100)
    assert rect == PixelRect(0, 0, 50, 50)
    assert rect is not None and rect.clamped


def test_extent_never_below_one_pixel() -> None:
    rect = resolve_crop(NaturalCrop(10, 10, 0.2, 0, 100, 100), 100, 100)
    assert rect is not None
    assert rect.width == 1 and rect.height == 1


def test_origin_past_edge_keeps_last_pixel() -> None:
    rect = resolve_crop(NaturalCrop(150, 150, 10, 10, 100, 100), 100, 100)
    assert rect == PixelRect(99, 99, 1, 1)


def test_clamped_flag_not_part_of_equality() -> None:
    assert PixelRect(1, 2, 3, 4, clamped=True) == PixelRect(1, 2, 3, 4)


# --- descriptor parsing ---


def test_natural_round_trips_through_dict() -> None:
    crop = NaturalCrop(1.5, 2, 30, 40, 640, 480)
    data = crop.to_dict()
    assert data["format"] == "natural"
    assert crop_from_dict(data) == crop


def test_missing_format_is_legacy() -> None:
    crop = crop_from_dict({"x": 10, "y": 20, "width": 30, "height": 40, "unit": "px"})
    assert crop == LegacyDisplayCrop(10, 20, 30, 40)


def test_legacy_keeps_known_natural_size() -> None:
    crop = crop_from_dict(
        {"x": 1, "y": 2, "width": 3, "height": 4, "naturalWidth": 800, "naturalHeight": 600}
    )
    assert isinstance(crop, LegacyDisplayCrop)
    assert crop.natural_width == 800
    assert crop_from_dict(crop.to_dict()) == crop


def test_natural_without_size_is_rejected() -> None:
    with pytest.raises(PresetFormatError):
        crop_from_dict({"x": 0, "y": 0, "width": 1, "height": 1, "format": "natural"})


def test_missing_coordinate_is_rejected() -> None:
    with pytest.raises(PresetFormatError):
        crop_from_dict({"x": 0, "width": 1, "height": 1})


def test_none_dict_is_no_crop() -> None:
    assert crop_from_dict(None) is None


# --- legacy display-space heuristic ---


def test_legacy_uses_previous_output_for_scale() -> None:
    crop = LegacyDisplayCrop(20, 10, 200, 100, 1200, 900)
    natural = legacy_to_natural(crop, 1200, 900, reference_size=(300, 150))
    assert natural == NaturalCrop(30, 15, 300, 150, 1200, 900)


def test_legacy_estimates_fitted_display_box() -> None:
    # 1600x1200 fits 800x600 exactly: display scale 2
    crop = LegacyDisplayCrop(100, 100, 200, 200)
    assert resolve_crop(crop, 1600, 1200) == PixelRect(200, 200, 400, 400)


def test_legacy_estimate_grows_when_crop_overshoots() -> None:
    # Square image fits as 600x600; a crop reaching x=700 forces 735x735
    crop = LegacyDisplayCrop(500, 0, 200, 100, 1000, 1000)
    natural = legacy_to_natural(crop, 1000, 1000)
    assert natural.x == pytest.approx(500 * 1000 / 735)
    assert natural.width == pytest.approx(200 * 1000 / 735)


def test_legacy_falls_back_to_target_size() -> None:
    crop = LegacyDisplayCrop(0, 0, 400, 300)
    natural = legacy_to_natural(crop, 800, 600)
    assert (natural.natural_width, natural.natural_height) == (800, 600)
    assert natural.width == pytest.approx(400)

"""Tests for the global decal state."""

import math

from decalstudio.core.decal_state import IMAGE_FIELDS, JSON_KEYS, DecalState


def test_defaults() -> None:
    state = DecalState()
    assert state.color == "#EFBD48"
    assert state.selected_clothing == "tshirt"
    assert state.back_logo_rotation == [0, math.pi, 0]
    assert state.front_text_color == "black"
    assert state.back_text_color == "white"


def test_json_keys_are_camel_case() -> None:
    assert JSON_KEYS["is_front_logo_texture"] == "isFrontLogoTexture"
    assert JSON_KEYS["full_texture_scale"] == "fullTextureScale"
    assert all(name in JSON_KEYS for name in IMAGE_FIELDS)


def test_round_trip() -> None:
    state = DecalState(color="#000000", front_text="Hi", front_text_size=32)
    state.front_logo_position = [0.1, 0.2, 0.3]
    assert DecalState.from_data(state.to_data()) == state


def test_copy_is_deep() -> None:
    state = DecalState()
    other = state.copy()
    other.full_texture_scale[0] = 5.0
    assert state.full_texture_scale[0] == 1


def test_settings_only_data_drops_images() -> None:
    data = DecalState(front_logo_decal="data:image/png;base64,AAAA").to_data(include_images=False)
    assert data["frontLogoDecal"] is None
    assert data["fullDecal"] is None
    assert data["frontText"] == "Front Text"


def test_null_image_keeps_default() -> None:
    state = DecalState.from_data({"backLogoDecal": None})
    assert state.back_logo_decal == "./threejs.png"


def test_malformed_fields_keep_defaults() -> None:
    state = DecalState.from_data(
        {
            "frontTextSize": "huge",
            "backLogoScale": [1, 2],
            "isFullTexture": 1,
            "color": "#010203",
        }
    )
    assert state.front_text_size == 64
    assert state.back_logo_scale == [0.15, 0.15, 0.15]
    assert state.is_full_texture is True
    assert state.color == "#010203"

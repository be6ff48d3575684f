"""Data-URL helpers for image payloads embedded in preset documents."""

from __future__ import annotations

import base64
import binascii

from decalstudio.errors import PresetFormatError

_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF8", "image/gif"),
    (b"BM", "image/bmp"),
]


def sniff_mime(data: bytes) -> str:
    for signature, mime in _SIGNATURES:
        if data.startswith(signature):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "application/octet-stream"


def bytes_to_data_url(data: bytes | None) -> str | None:
    if data is None:
        return None
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{sniff_mime(data)};base64,{encoded}"


def data_url_to_bytes(value: str | None) -> bytes | None:
    """Decode a ``data:<mime>;base64,<payload>`` string.

    ``None`` and the empty string mean "no image".  Anything that is not a
    base64 data URL raises :class:`PresetFormatError`.
    """
    if not value:
        return None
    if not isinstance(value, str) or not value.startswith("data:"):
        raise PresetFormatError(f"unsupported image reference {str(value)[:40]!r}")
    header, sep, payload = value.partition(",")
    if not sep or not header.endswith(";base64"):
        raise PresetFormatError("image data URL is not base64 encoded")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PresetFormatError(f"corrupt image data URL: {exc}") from exc

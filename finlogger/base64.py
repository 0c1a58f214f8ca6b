"""Standard and URL-safe Base64 encoding with explicit output size limits."""

from __future__ import annotations

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_PAD_MARKER = 1 << 24
_TO_URLSAFE = str.maketrans("+/", "-_")
_FROM_URLSAFE = str.maketrans("-_", "+/")


def _encoded_size(n_bytes: int) -> int:
    return 4 * ((n_bytes + 2) // 3)


def _char_value(char: str) -> int:
    """Map one Base64 character to its 6-bit value.

    Padding maps to a marker bit so the decoder can tell how many bytes the
    final group holds; any unknown character counts as zero.
    """
    if char == "=":
        return _PAD_MARKER
    index = _ALPHABET.find(char)
    return index if index >= 0 else 0


def b64_encode(data: bytes, limit: int | None = None) -> str:
    """Encode ``data`` as padded Base64.

    ``limit`` is the room available for the encoded text; OverflowError is
    raised when the encoding would not fit.
    """
    data = bytes(data)
    if limit is not None and limit < _encoded_size(len(data)):
        raise OverflowError(
            f"{_encoded_size(len(data))} characters needed, only {limit} available"
        )
    out = []
    for start in range(0, len(data), 3):
        chunk = data[start:start + 3]
        pad = 3 - len(chunk)
        value = int.from_bytes(chunk + b"\x00" * pad, "big")
        out.append(_ALPHABET[value >> 18 & 0x3F])
        out.append(_ALPHABET[value >> 12 & 0x3F])
        out.append("=" if pad >= 2 else _ALPHABET[value >> 6 & 0x3F])
        out.append("=" if pad >= 1 else _ALPHABET[value & 0x3F])
    return "".join(out)


def b64_decode(text: str, limit: int | None = None) -> bytes:
    """Decode Base64 ``text``.

    Only whole groups of four characters are decoded; a trailing partial
    group is ignored and unknown characters count as zero. ``limit`` is the
    room available for the decoded bytes; OverflowError is raised when it is
    too small.
    """
    needed = 3 * (len(text) // 4)
    if limit is not None and limit < needed:
        raise OverflowError(f"{needed} bytes needed, only {limit} available")
    out = bytearray()
    for start in range(0, len(text) - 3, 4):
        a, b, c, d = (_char_value(ch) for ch in text[start:start + 4])
        value = ((a << 18) | (b << 12) | (c << 6) | d) & 0xFFFFFFFF
        out.append(value >> 16 & 0xFF)
        if not value & (1 << 30):
            out.append(value >> 8 & 0xFF)
        if not value & (1 << 24):
            out.append(value & 0xFF)
    return bytes(out)


def urlsafe_b64_encode(data: bytes, limit: int | None = None) -> str:
    """Encode ``data`` as Base64 using ``-`` and ``_`` in place of ``+`` and ``/``."""
    return b64_encode(data, limit).translate(_TO_URLSAFE)


def urlsafe_b64_decode(text: str, limit: int | None = None) -> bytes:
    """Decode URL-safe Base64 ``text``."""
    return b64_decode(text.translate(_FROM_URLSAFE), limit)
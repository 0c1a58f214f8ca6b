"""Base85 encoding with the RFC 1924 character set."""

from __future__ import annotations

DIGITS = (
    "0123456789"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "!#$%&()*+-;<=>?@^_`{|}~"
)
_VALUES = {char: value for value, char in enumerate(DIGITS)}
_GROUP = 5


def _to_digits(value: int) -> str:
    digits = []
    for _ in range(_GROUP):
        value, remainder = divmod(value, 85)
        digits.append(DIGITS[remainder])
    return "".join(reversed(digits))


def encode(data: bytes) -> str:
    """Encode ``data`` as Base85.

    Each four bytes, read big-endian, become five digits. A short final
    block is padded with zero bytes before it is encoded.
    """
    data = bytes(data)
    return "".join(
        _to_digits(int.from_bytes(data[start:start + 4].ljust(4, b"\x00"), "big"))
        for start in range(0, len(data), 4)
    )


def decode(text: str) -> bytes:
    """Decode Base85 ``text`` into bytes.

    Decoding stops at the first character that is not a digit when it falls
    at the start of a group. A group cut short by such a character is a
    format error and raises ValueError.
    """
    out = bytearray()
    pos = 0
    while True:
        value = 0
        for offset in range(_GROUP):
            index = pos + offset
            digit = _VALUES.get(text[index]) if index < len(text) else None
            if digit is None:
                if offset == 0:
                    return bytes(out)
                raise ValueError(f"incomplete base85 group at position {pos}")
            value = value * 85 + digit
        out += (value & 0xFFFFFFFF).to_bytes(4, "big")
        pos += _GROUP
"""
Color set codec.

A card's colors are stored as a bitmask: each color owns one bit and a set
of colors is the bitwise OR of its members. Colorless is 0. An absent field
encodes to None so NULL stays distinguishable from colorless.
"""

from collections.abc import Sequence

from ponder.models.failure import ColorCodeError

COLOR_BITS: dict[str, int] = {
    "C": 0,
    "W": 1,
    "U": 2,
    "B": 4,
    "R": 8,
    "G": 16,
    "T": 32,
}

# Canonical order for decoding
_DECODE_ORDER = ("W", "U", "B", "R", "G", "T")


def encode_colors(codes: Sequence[str] | None) -> int | None:
    """
    Encode a sequence of color codes as a bitmask.

    Args:
        codes: Single-letter codes such as ["W", "U"], or None

    Returns:
        Bitmask (["W", "U"] -> 3), 0 for colorless, None if codes is None

    Raises:
        ColorCodeError: If a code is not a known color
    """
    if codes is None:
        return None

    mask = 0
    for code in codes:
        try:
            mask |= COLOR_BITS[code]
        except KeyError:
            raise ColorCodeError(code) from None
    return mask


def decode_colors(mask: int | None) -> list[str] | None:
    """
    Decode a bitmask back into color codes in WUBRG order.

    Colorless (0) decodes to an empty list.
    """
    if mask is None:
        return None

    return [code for code in _DECODE_ORDER if mask & COLOR_BITS[code]]

from ponder.parsers.colors import COLOR_BITS, decode_colors, encode_colors
from ponder.parsers.scryfall import (
    face_catalog_id,
    flatten_card_faces,
    merge_missing,
    normalize_card,
)
from ponder.parsers.type_line import SUPERTYPES, is_token_type_line, parse_type_line

__all__ = [
    "COLOR_BITS",
    "SUPERTYPES",
    "decode_colors",
    "encode_colors",
    "face_catalog_id",
    "flatten_card_faces",
    "is_token_type_line",
    "merge_missing",
    "normalize_card",
    "parse_type_line",
]

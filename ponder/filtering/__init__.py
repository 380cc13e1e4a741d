"""
Pre-ingestion filtering of raw Scryfall records.

Removes entries that are not playable cards (Vanguard avatars, playtest
cards, art-series cards, tokens, retired platforms).
"""

from ponder.filtering.card_filter import (
    ExclusionReason,
    exclusion_reason,
    face_exclusion_reason,
    filter_cards,
    filter_faces,
    is_playable_card,
)

__all__ = [
    "ExclusionReason",
    "exclusion_reason",
    "face_exclusion_reason",
    "filter_cards",
    "filter_faces",
    "is_playable_card",
]

"""
Fixed vocabularies shared by the seeder, the normalizer and the ingestor.

Formats and image types are foreign-key targets: they are seeded once per
ingestion run and never created lazily.
"""

from enum import Enum


class Format(str, Enum):
    """Competitive formats reported in Scryfall legalities."""

    STANDARD = "standard"
    FUTURE = "future"
    HISTORIC = "historic"
    TIMELESS = "timeless"
    GLADIATOR = "gladiator"
    PIONEER = "pioneer"
    EXPLORER = "explorer"
    MODERN = "modern"
    LEGACY = "legacy"
    PAUPER = "pauper"
    VINTAGE = "vintage"
    PENNY = "penny"
    COMMANDER = "commander"
    OATHBREAKER = "oathbreaker"
    STANDARD_BRAWL = "standardbrawl"
    BRAWL = "brawl"
    ALCHEMY = "alchemy"
    PAUPER_COMMANDER = "paupercommander"
    DUEL = "duel"
    OLDSCHOOL = "oldschool"
    PREMODERN = "premodern"
    PREDH = "predh"


class LegalityStatus(str, Enum):
    """Per-format permission status of a card."""

    LEGAL = "legal"
    NOT_LEGAL = "not_legal"
    BANNED = "banned"
    RESTRICTED = "restricted"


class ImageType(str, Enum):
    """Image crops and resolutions served by Scryfall."""

    ART_CROP = "art_crop"
    PNG = "png"
    NORMAL = "normal"
    LARGE = "large"
    SMALL = "small"
    BORDER_CROP = "border_crop"


FORMAT_NAMES: tuple[str, ...] = tuple(f.value for f in Format)
IMAGE_TYPE_NAMES: tuple[str, ...] = tuple(t.value for t in ImageType)
LEGALITY_STATUSES = frozenset(s.value for s in LegalityStatus)

# Platforms that are no longer played; cards limited to them are dropped
RETIRED_PLATFORMS = frozenset({"sega", "astral"})

"""
Card Filter — Drop Entries That Are Not Playable Cards.

Scryfall bulk data includes playtest cards, Vanguard avatars, art-series
"cards", tokens and cards from retired digital platforms. None of these
belong in the card database, so they are removed before ingestion.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any

from ponder.models.vocabulary import RETIRED_PLATFORMS
from ponder.parsers.type_line import is_token_type_line

logger = logging.getLogger(__name__)

EXCLUDED_SET_TYPE = "vanguard"
PLAYTEST_SET_MARKER = "Mystery Booster Playtest"
ART_ONLY_TYPE_LINE = "Card"


class ExclusionReason(str, Enum):
    """Why a record was dropped."""

    VANGUARD = "vanguard"
    PLAYTEST = "playtest"
    RETIRED_PLATFORM = "retired_platform"
    ART_ONLY = "art_only"
    TOKEN = "token"


def exclusion_reason(raw: Mapping[str, Any]) -> ExclusionReason | None:
    """
    Return why a raw card record must be excluded, or None to keep it.

    Checks run in a fixed order; the first match wins.
    """
    if raw.get("set_type") == EXCLUDED_SET_TYPE:
        return ExclusionReason.VANGUARD

    set_name = raw.get("set_name")
    if set_name and PLAYTEST_SET_MARKER in set_name:
        return ExclusionReason.PLAYTEST

    games = raw.get("games") or ()
    if any(game in RETIRED_PLATFORMS for game in games):
        return ExclusionReason.RETIRED_PLATFORM

    type_line = raw.get("type_line")
    if type_line == ART_ONLY_TYPE_LINE:
        return ExclusionReason.ART_ONLY

    if is_token_type_line(type_line):
        return ExclusionReason.TOKEN

    return None


def is_playable_card(raw: Mapping[str, Any]) -> bool:
    """Check if a raw card record should be ingested."""
    return exclusion_reason(raw) is None


def face_exclusion_reason(face: Mapping[str, Any]) -> ExclusionReason | None:
    """
    Return why a single flattened face must be excluded, or None to keep it.

    Art-series records carry "Card // Card" on the parent and "Card" on
    each face, so the type-line rules are checked again per face.
    """
    type_line = face.get("type_line")
    if type_line == ART_ONLY_TYPE_LINE:
        return ExclusionReason.ART_ONLY

    if is_token_type_line(type_line):
        return ExclusionReason.TOKEN

    return None


def _keep(
    records: Iterable[Mapping[str, Any]],
    reason_of: Callable[[Mapping[str, Any]], ExclusionReason | None],
    noun: str,
) -> list[Mapping[str, Any]]:
    kept: list[Mapping[str, Any]] = []
    excluded: dict[ExclusionReason, int] = {}

    for record in records:
        reason = reason_of(record)
        if reason is None:
            kept.append(record)
        else:
            excluded[reason] = excluded.get(reason, 0) + 1

    for reason, count in excluded.items():
        logger.info("Excluded %d %s: %s", count, noun, reason.value)

    return kept


def filter_cards(cards: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    """
    Keep only records that should be ingested.

    Logs how many records were dropped for each reason.
    """
    return _keep(cards, exclusion_reason, "cards")


def filter_faces(faces: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    """
    Keep only flattened faces that should be ingested.

    Runs after flatten_card_faces; logs dropped faces per reason.
    """
    return _keep(faces, face_exclusion_reason, "faces")

"""
Scryfall card record normalization.

Turns raw bulk-data card objects into flat CardRecord instances:
multi-faced cards are split into one record per face, colors are
encoded as bitmasks and numeric text is parsed.

Card objects: https://scryfall.com/docs/api/cards
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from ponder.models.card import CardRecord
from ponder.models.failure import ColorCodeError, FailureKind, IngestionFailure
from ponder.models.vocabulary import FORMAT_NAMES, IMAGE_TYPE_NAMES, LEGALITY_STATUSES
from ponder.parsers.colors import encode_colors

logger = logging.getLogger(__name__)

RawCard = dict[str, Any]

T = TypeVar("T")

# Never inherited by a face from its parent
_NON_INHERITED_FIELDS = frozenset({"card_faces"})

# Power/toughness notations that are legitimately not integers
_VARIABLE_STAT_MARKERS = ("*", "X", "?", "∞")

_KNOWN_FORMATS = frozenset(FORMAT_NAMES)
_KNOWN_IMAGE_TYPES = frozenset(IMAGE_TYPE_NAMES)


def merge_missing(child: Mapping[str, Any], parent: Mapping[str, Any]) -> RawCard:
    """
    Fill fields the child leaves unset from its parent.

    A field is unset when it is absent or None. The merge is shallow:
    nested values are copied by reference and never merged key by key.

    Args:
        child: A card face
        parent: The card the face belongs to

    Returns:
        New dict; neither input is modified.
    """
    merged: RawCard = dict(child)
    for key, value in parent.items():
        if key in _NON_INHERITED_FIELDS:
            continue
        if merged.get(key) is None:
            merged[key] = value
    return merged


def flatten_card_faces(raw: Mapping[str, Any]) -> list[RawCard]:
    """
    Expand a card into one record per face.

    Faces inherit from the parent only, never from each other. Each
    face record is tagged with its 0-based "face_index". Cards without
    faces come back unchanged as a single-element list.
    """
    faces = raw.get("card_faces")
    if not faces:
        return [dict(raw)]

    flattened: list[RawCard] = []
    for index, face in enumerate(faces):
        record = merge_missing(face, raw)
        record["face_index"] = index
        flattened.append(record)
    return flattened


def face_catalog_id(card_id: str, face_index: int | None) -> str:
    """Catalog id of a face: the Scryfall id, suffixed with the face position."""
    if face_index is None:
        return card_id
    return f"{card_id}:{face_index}"


class _FieldIssues:
    """Collects malformed-field failures for one record."""

    def __init__(self, catalog_id: str | None, name: str | None):
        self.catalog_id = catalog_id
        self.name = name
        self.failures: list[IngestionFailure] = []

    def add(self, operation: str, message: str) -> None:
        failure = IngestionFailure(
            kind=FailureKind.MALFORMED_FIELD,
            catalog_id=self.catalog_id,
            name=self.name,
            operation=operation,
            message=message,
        )
        logger.debug("%s", failure)
        self.failures.append(failure)

    def guard(self, operation: str, fn: Callable[[], T]) -> T | None:
        """Run fn, recording ValueError/TypeError and returning None instead."""
        try:
            return fn()
        except (ValueError, TypeError) as e:
            self.add(operation, str(e))
            return None


def _parse_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


def _parse_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


def _parse_stat(value: Any, field_name: str, issues: _FieldIssues) -> int | None:
    """Parse power/toughness text; variable values like "*" become None."""
    if value is None:
        return None
    text = str(value)
    if any(marker in text for marker in _VARIABLE_STAT_MARKERS):
        return None
    return issues.guard(f"parse {field_name}", lambda: int(text))


def _encode(raw: Mapping[str, Any], field_name: str, issues: _FieldIssues) -> int | None:
    try:
        return encode_colors(raw.get(field_name))
    except ColorCodeError as e:
        issues.add(f"encode {field_name}", str(e))
        return None


def _legalities(raw: Mapping[str, Any], issues: _FieldIssues) -> dict[str, str]:
    legalities: dict[str, str] = {}
    for format_name, status in (raw.get("legalities") or {}).items():
        if format_name not in _KNOWN_FORMATS:
            issues.add("read legalities", f"Unknown format: {format_name!r}")
            continue
        if status not in LEGALITY_STATUSES:
            issues.add("read legalities", f"Unknown legality status for {format_name}: {status!r}")
            continue
        legalities[format_name] = status
    return legalities


def _image_uris(raw: Mapping[str, Any]) -> dict[str, str]:
    uris = raw.get("image_uris") or {}
    return {kind: uri for kind, uri in uris.items() if kind in _KNOWN_IMAGE_TYPES and uri}


def _keywords(raw: Mapping[str, Any]) -> tuple[str, ...]:
    # Preserve order, drop duplicates
    return tuple(dict.fromkeys(raw.get("keywords") or ()))


def _on_platform(games: list[str] | None, platform: str) -> bool | None:
    if games is None:
        return None
    return platform in games


def normalize_card(raw: Mapping[str, Any]) -> tuple[CardRecord | None, list[IngestionFailure]]:
    """
    Build a CardRecord from one flattened Scryfall record.

    Malformed fields are stored as None and reported; they never
    prevent the card from being written.

    Returns:
        Tuple of (record, failures). record is None only when the
        card has no id or name to be stored under.
    """
    card_id = raw.get("id")
    name = raw.get("name")
    face_index = raw.get("face_index")
    catalog_id = face_catalog_id(card_id, face_index) if card_id else None
    issues = _FieldIssues(catalog_id, name)

    if not catalog_id or not name:
        issues.add("read identity", "Card record is missing an id or name")
        return None, issues.failures

    games = raw.get("games")
    record = CardRecord(
        catalog_id=catalog_id,
        name=name,
        type_line=raw.get("type_line"),
        face_index=face_index,
        object=raw.get("object"),
        oracle_id=raw.get("oracle_id"),
        layout=raw.get("layout"),
        lang=raw.get("lang"),
        mana_cost=raw.get("mana_cost"),
        mana_value=issues.guard("parse cmc", lambda: _parse_float(raw.get("cmc"))),
        oracle_text=raw.get("oracle_text"),
        flavor_text=raw.get("flavor_text"),
        artist=raw.get("artist"),
        power=_parse_stat(raw.get("power"), "power", issues),
        power_text=raw.get("power"),
        toughness=_parse_stat(raw.get("toughness"), "toughness", issues),
        toughness_text=raw.get("toughness"),
        loyalty=raw.get("loyalty"),
        defense=raw.get("defense"),
        color_mask=_encode(raw, "colors", issues),
        color_identity_mask=_encode(raw, "color_identity", issues),
        color_indicator_mask=_encode(raw, "color_indicator", issues),
        produced_mana_mask=_encode(raw, "produced_mana", issues),
        rarity=raw.get("rarity"),
        set_id=raw.get("set_id"),
        set_name=raw.get("set_name"),
        set_code=raw.get("set"),
        set_type=raw.get("set_type"),
        border_color=raw.get("border_color"),
        arena_id=issues.guard("parse arena_id", lambda: _parse_int(raw.get("arena_id"))),
        mtgo_id=issues.guard("parse mtgo_id", lambda: _parse_int(raw.get("mtgo_id"))),
        penny_rank=issues.guard("parse penny_rank", lambda: _parse_int(raw.get("penny_rank"))),
        foil=raw.get("foil"),
        nonfoil=raw.get("nonfoil"),
        reprint=raw.get("reprint"),
        promo=raw.get("promo"),
        digital=raw.get("digital"),
        reserved=raw.get("reserved"),
        game_changer=raw.get("game_changer"),
        variation=raw.get("variation"),
        booster=raw.get("booster"),
        content_warning=raw.get("content_warning"),
        in_paper=_on_platform(games, "paper"),
        in_arena=_on_platform(games, "arena"),
        in_mtgo=_on_platform(games, "mtgo"),
        legalities=_legalities(raw, issues),
        keywords=_keywords(raw),
        image_uris=_image_uris(raw),
    )
    return record, issues.failures

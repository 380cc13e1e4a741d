from typing import Any

from ponder.filtering.card_filter import (
    ExclusionReason,
    exclusion_reason,
    face_exclusion_reason,
    filter_cards,
    filter_faces,
    is_playable_card,
)
from ponder.parsers.scryfall import flatten_card_faces


def _card(**fields: Any) -> dict[str, Any]:
    base = {
        "id": "abc",
        "name": "Grizzly Bears",
        "type_line": "Creature — Bear",
        "set_type": "core",
        "set_name": "Tenth Edition",
        "games": ["paper"],
    }
    base.update(fields)
    return base


class TestExclusionReason:
    def test_regular_card_is_kept(self) -> None:
        assert exclusion_reason(_card()) is None
        assert is_playable_card(_card())

    def test_vanguard(self) -> None:
        assert exclusion_reason(_card(set_type="vanguard")) == ExclusionReason.VANGUARD

    def test_mystery_booster_playtest(self) -> None:
        card = _card(set_name="Mystery Booster Playtest Cards 2021")

        assert exclusion_reason(card) == ExclusionReason.PLAYTEST

    def test_retired_platforms(self) -> None:
        assert exclusion_reason(_card(games=["sega"])) == ExclusionReason.RETIRED_PLATFORM
        assert exclusion_reason(_card(games=["paper", "astral"])) == (
            ExclusionReason.RETIRED_PLATFORM
        )

    def test_art_only_card(self) -> None:
        assert exclusion_reason(_card(type_line="Card")) == ExclusionReason.ART_ONLY

    def test_art_series_parent_is_left_to_face_check(self) -> None:
        """Only the exact "Card" line is art-only at the record level."""
        assert exclusion_reason(_card(type_line="Card // Card")) is None

    def test_token(self) -> None:
        card = _card(type_line="Token Creature — Goblin")

        assert exclusion_reason(card) == ExclusionReason.TOKEN

    def test_missing_fields_are_kept(self) -> None:
        assert is_playable_card({"id": "abc", "name": "Bare"})


class TestFilterCards:
    def test_filters_sample_bulk(self, raw_cards: list[dict[str, Any]]) -> None:
        kept = filter_cards(raw_cards)

        names = {card["name"] for card in kept}
        assert len(kept) == 7
        assert "Akroma" not in names
        assert "Goblin" not in names
        assert "Tarmogoyf Art Card" not in names
        assert "Playtest Elemental" not in names
        assert "Astral Dragon" not in names

    def test_preserves_order(self) -> None:
        cards = [_card(name="B"), _card(name="Skip", set_type="vanguard"), _card(name="A")]

        assert [c["name"] for c in filter_cards(cards)] == ["B", "A"]


class TestFilterFaces:
    def test_art_series_faces_are_dropped(self) -> None:
        art_series = _card(
            name="Tarmogoyf // Tarmogoyf",
            type_line="Card // Card",
            layout="art_series",
            card_faces=[
                {"name": "Tarmogoyf", "type_line": "Card"},
                {"name": "Tarmogoyf", "type_line": "Card"},
            ],
        )

        faces = flatten_card_faces(art_series)

        assert [face_exclusion_reason(f) for f in faces] == [ExclusionReason.ART_ONLY] * 2
        assert filter_faces(faces) == []

    def test_token_face_is_dropped(self) -> None:
        faces = [
            {"name": "Real", "type_line": "Creature — Elf"},
            {"name": "Helper", "type_line": "Token Creature — Elf Warrior"},
        ]

        assert [f["name"] for f in filter_faces(faces)] == ["Real"]

    def test_regular_faces_are_kept(self, raw_cards: list[dict[str, Any]]) -> None:
        faces = [face for raw in filter_cards(raw_cards) for face in flatten_card_faces(raw)]

        assert len(filter_faces(faces)) == 9

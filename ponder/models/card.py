from dataclasses import dataclass, field, fields


@dataclass(frozen=True, slots=True)
class CardRecord:
    """
    A normalized, single-faced card ready to be written.

    Produced by the normalizer after filtering and face flattening.
    Color fields are already encoded as bitmasks; None means the
    source record did not carry the field (distinct from colorless 0).

    Attributes:
        catalog_id: Stable external id (Scryfall id, or "<id>:<face>" for faces)
        name: Display name of this face
        type_line: Free-text type line, parsed into taxonomy at write time
        face_index: Position of this face on its parent card, None if single-faced
        legalities: Format name -> legality status
        keywords: Ability words in source order
        image_uris: Image type name -> URI
    """

    catalog_id: str
    name: str
    type_line: str | None = None
    face_index: int | None = None
    object: str | None = None
    oracle_id: str | None = None
    layout: str | None = None
    lang: str | None = None
    mana_cost: str | None = None
    mana_value: float | None = None
    oracle_text: str | None = None
    flavor_text: str | None = None
    artist: str | None = None
    power: int | None = None
    power_text: str | None = None
    toughness: int | None = None
    toughness_text: str | None = None
    loyalty: str | None = None
    defense: str | None = None
    color_mask: int | None = None
    color_identity_mask: int | None = None
    color_indicator_mask: int | None = None
    produced_mana_mask: int | None = None
    rarity: str | None = None
    set_id: str | None = None
    set_name: str | None = None
    set_code: str | None = None
    set_type: str | None = None
    border_color: str | None = None
    arena_id: int | None = None
    mtgo_id: int | None = None
    penny_rank: int | None = None
    foil: bool | None = None
    nonfoil: bool | None = None
    reprint: bool | None = None
    promo: bool | None = None
    digital: bool | None = None
    reserved: bool | None = None
    game_changer: bool | None = None
    variation: bool | None = None
    booster: bool | None = None
    content_warning: bool | None = None
    in_paper: bool | None = None
    in_arena: bool | None = None
    in_mtgo: bool | None = None
    legalities: dict[str, str] = field(default_factory=dict)
    keywords: tuple[str, ...] = ()
    image_uris: dict[str, str] = field(default_factory=dict)

    def column_values(self) -> dict[str, object]:
        """Scalar attributes as keyword arguments for the card table."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in _NON_COLUMN_FIELDS
        }


_NON_COLUMN_FIELDS = frozenset({"legalities", "keywords", "image_uris"})


@dataclass(frozen=True, slots=True)
class TypeLine:
    """
    A type line split into its three-part taxonomy.

    "Legendary Creature — Elf Druid" ->
        supertype="Legendary", types=("Creature",), subtypes=("Elf", "Druid")
    """

    supertype: str | None = None
    types: tuple[str, ...] = ()
    subtypes: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        """True when nothing could be derived (tokens, blank lines)."""
        return self.supertype is None and not self.types and not self.subtypes

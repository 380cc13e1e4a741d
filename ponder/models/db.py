"""
SQLAlchemy ORM models for the card database.

Cards use a surrogate integer primary key referenced by every join table;
the Scryfall catalog id is kept as a unique secondary key.
"""

from sqlalchemy import (
    Boolean,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class FormatDB(Base):
    """A competitive format (seeded, never created lazily)."""

    __tablename__ = "format"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True)

    def __repr__(self) -> str:
        return f"<FormatDB(id={self.id}, name={self.name})>"


class ImageTypeDB(Base):
    """An image crop or resolution (seeded, never created lazily)."""

    __tablename__ = "image_type"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True)

    def __repr__(self) -> str:
        return f"<ImageTypeDB(id={self.id}, name={self.name})>"


class KeywordDB(Base):
    """
    An ability word such as "Flying".

    Names are case-sensitive; rows are created by the first card
    that references them.
    """

    __tablename__ = "keyword"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)

    def __repr__(self) -> str:
        return f"<KeywordDB(id={self.id}, name={self.name})>"


class CardDB(Base):
    """
    One card face.

    Multi-faced cards contribute one row per face, keyed
    "<scryfall id>:<face index>".
    """

    __tablename__ = "card"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    catalog_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    face_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    object: Mapped[str | None] = mapped_column(String(32), nullable=True)
    oracle_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    type_line: Mapped[str | None] = mapped_column(String(255), nullable=True)
    layout: Mapped[str | None] = mapped_column(String(32), nullable=True)
    lang: Mapped[str | None] = mapped_column(String(8), nullable=True)

    # Rules text and cost
    mana_cost: Mapped[str | None] = mapped_column(String(100), nullable=True)
    mana_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    oracle_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    flavor_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    artist: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Stats; raw text kept alongside for values like "*" or "1+*"
    power: Mapped[int | None] = mapped_column(Integer, nullable=True)
    power_text: Mapped[str | None] = mapped_column(String(16), nullable=True)
    toughness: Mapped[int | None] = mapped_column(Integer, nullable=True)
    toughness_text: Mapped[str | None] = mapped_column(String(16), nullable=True)
    loyalty: Mapped[str | None] = mapped_column(String(16), nullable=True)
    defense: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # Color bitmasks (see ponder.parsers.colors)
    color_mask: Mapped[int | None] = mapped_column(Integer, nullable=True)
    color_identity_mask: Mapped[int | None] = mapped_column(Integer, nullable=True)
    color_indicator_mask: Mapped[int | None] = mapped_column(Integer, nullable=True)
    produced_mana_mask: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Printing
    rarity: Mapped[str | None] = mapped_column(String(16), nullable=True)
    set_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    set_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    set_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    set_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    border_color: Mapped[str | None] = mapped_column(String(16), nullable=True)
    arena_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mtgo_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    penny_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Flags
    foil: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    nonfoil: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    reprint: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    promo: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    digital: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    reserved: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    game_changer: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    variation: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    booster: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    content_warning: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    in_paper: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    in_arena: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    in_mtgo: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    legalities: Mapped[list["LegalityDB"]] = relationship(back_populates="card")
    keywords: Mapped[list["KeywordDB"]] = relationship(
        secondary="card_keyword", viewonly=True
    )
    images: Mapped[list["ImageDB"]] = relationship(back_populates="card")
    supertypes: Mapped[list["CardSupertypeDB"]] = relationship()
    types: Mapped[list["CardTypeDB"]] = relationship()
    subtypes: Mapped[list["CardSubtypeDB"]] = relationship()

    def __repr__(self) -> str:
        return f"<CardDB(id={self.id}, catalog_id={self.catalog_id}, name={self.name})>"


class LegalityDB(Base):
    """Status of a card in one format."""

    __tablename__ = "legality"
    __table_args__ = (UniqueConstraint("card_id", "format_id", name="uq_legality_card_format"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("card.id", ondelete="CASCADE"), index=True
    )
    format_id: Mapped[int] = mapped_column(Integer, ForeignKey("format.id"), index=True)
    status: Mapped[str] = mapped_column(String(16))

    card: Mapped["CardDB"] = relationship(back_populates="legalities")
    format: Mapped["FormatDB"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<LegalityDB(card_id={self.card_id}, format_id={self.format_id}, "
            f"status={self.status})>"
        )


class CardKeywordDB(Base):
    """Many-to-many join between cards and keywords."""

    __tablename__ = "card_keyword"
    __table_args__ = (UniqueConstraint("card_id", "keyword_id", name="uq_card_keyword"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("card.id", ondelete="CASCADE"), index=True
    )
    keyword_id: Mapped[int] = mapped_column(Integer, ForeignKey("keyword.id"), index=True)

    def __repr__(self) -> str:
        return f"<CardKeywordDB(card_id={self.card_id}, keyword_id={self.keyword_id})>"


class ImageDB(Base):
    """An image URI of a given type for a card."""

    __tablename__ = "image"
    __table_args__ = (UniqueConstraint("card_id", "image_type_id", name="uq_image_card_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("card.id", ondelete="CASCADE"), index=True
    )
    image_type_id: Mapped[int] = mapped_column(Integer, ForeignKey("image_type.id"))
    uri: Mapped[str] = mapped_column(Text)

    card: Mapped["CardDB"] = relationship(back_populates="images")
    image_type: Mapped["ImageTypeDB"] = relationship()

    def __repr__(self) -> str:
        return f"<ImageDB(card_id={self.card_id}, image_type_id={self.image_type_id})>"


class CardSupertypeDB(Base):
    """Supertype (Legendary, Basic, ...) of a card. At most one per card."""

    __tablename__ = "card_supertype"
    __table_args__ = (UniqueConstraint("card_id", "value", name="uq_card_supertype"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("card.id", ondelete="CASCADE"), index=True
    )
    value: Mapped[str] = mapped_column(String(50), index=True)


class CardTypeDB(Base):
    """Main type (Creature, Instant, ...) of a card."""

    __tablename__ = "card_type"
    __table_args__ = (UniqueConstraint("card_id", "value", name="uq_card_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("card.id", ondelete="CASCADE"), index=True
    )
    value: Mapped[str] = mapped_column(String(50), index=True)


class CardSubtypeDB(Base):
    """Subtype (Elf, Forest, Equipment, ...) of a card."""

    __tablename__ = "card_subtype"
    __table_args__ = (UniqueConstraint("card_id", "value", name="uq_card_subtype"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("card.id", ondelete="CASCADE"), index=True
    )
    value: Mapped[str] = mapped_column(String(50), index=True)

"""
Card API endpoints.

Read-only access to ingested cards: name search and single-card detail.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ponder.config import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT
from ponder.db import get_card, search_cards_by_name
from ponder.db.database import get_session
from ponder.models.db import CardDB
from ponder.parsers.colors import decode_colors

router = APIRouter(prefix="/cards", tags=["cards"])


class CardSummary(BaseModel):
    """Search result entry."""

    catalog_id: str
    name: str
    type_line: str | None = None
    mana_cost: str | None = None
    mana_value: float | None = None
    colors: list[str] | None = Field(
        default=None,
        description="Color codes in WUBRG order; empty for colorless, null if unknown",
    )
    rarity: str | None = None
    set_code: str | None = None
    set_name: str | None = None
    power: str | None = None
    toughness: str | None = None


class CardDetail(CardSummary):
    """Full card view with legalities, keywords, images and taxonomy."""

    oracle_text: str | None = None
    color_identity: list[str] | None = None
    loyalty: str | None = None
    defense: str | None = None
    supertype: str | None = None
    types: list[str] = Field(default_factory=list)
    subtypes: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    legalities: dict[str, str] = Field(default_factory=dict)
    images: dict[str, str] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    """Response model for name search."""

    query: str
    count: int
    cards: list[CardSummary]


def _summary_fields(card: CardDB) -> dict[str, object]:
    return {
        "catalog_id": card.catalog_id,
        "name": card.name,
        "type_line": card.type_line,
        "mana_cost": card.mana_cost,
        "mana_value": card.mana_value,
        "colors": decode_colors(card.color_mask),
        "rarity": card.rarity,
        "set_code": card.set_code,
        "set_name": card.set_name,
        "power": card.power_text,
        "toughness": card.toughness_text,
    }


def card_to_summary(card: CardDB) -> CardSummary:
    """Convert a card row to a search result entry."""
    return CardSummary(**_summary_fields(card))  # type: ignore[arg-type]


def card_to_detail(card: CardDB) -> CardDetail:
    """Convert a fully loaded card row to the detail view."""
    return CardDetail(
        **_summary_fields(card),  # type: ignore[arg-type]
        oracle_text=card.oracle_text,
        color_identity=decode_colors(card.color_identity_mask),
        loyalty=card.loyalty,
        defense=card.defense,
        supertype=card.supertypes[0].value if card.supertypes else None,
        types=[t.value for t in card.types],
        subtypes=[s.value for s in card.subtypes],
        keywords=sorted(k.name for k in card.keywords),
        legalities={lg.format.name: lg.status for lg in card.legalities},
        images={img.image_type.name: img.uri for img in card.images},
    )


@router.get("/search", response_model=SearchResponse)
async def search_cards(
    session: Annotated[AsyncSession, Depends(get_session)],
    q: Annotated[str, Query(min_length=1, description="Text the card name must contain")],
    limit: Annotated[int, Query(ge=1, le=MAX_SEARCH_LIMIT)] = DEFAULT_SEARCH_LIMIT,
) -> SearchResponse:
    """Case-insensitive name search."""
    cards = await search_cards_by_name(session, q, limit=limit)
    return SearchResponse(
        query=q,
        count=len(cards),
        cards=[card_to_summary(card) for card in cards],
    )


@router.get("/{catalog_id}", response_model=CardDetail)
async def get_card_detail(
    catalog_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CardDetail:
    """Get one card by catalog id."""
    card = await get_card(session, catalog_id)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No card with catalog id {catalog_id}",
        )
    return card_to_detail(card)

"""
Card lookup endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cardscribe.api.dependencies import get_card_index, get_legal_list
from cardscribe.models.card_record import CardRecord
from cardscribe.models.failure import CardNotFoundError
from cardscribe.services.card_index import CardIndex
from cardscribe.services.name_normalizer import normalize_name
from cardscribe.services.penny_dreadful import LegalListUpdater

router = APIRouter(prefix="/cards", tags=["cards"])


class CardResponse(BaseModel):
    """One card record as shown in the preview pane."""

    name: str
    localized_name: str | None = None
    full_name: str
    type_line: str | None = None
    pt: str | None = None
    text: str = ""
    related_names: list[str] = Field(default_factory=list)
    link: str | None = None
    pd_legal: bool | None = Field(
        default=None,
        description="Penny Dreadful legality; null when no legal list is loaded",
    )

    @classmethod
    def from_record(
        cls,
        card: CardRecord,
        legal_list: LegalListUpdater | None = None,
    ) -> "CardResponse":
        pd_legal = None
        if legal_list is not None and legal_list.legal_cards is not None:
            pd_legal = legal_list.is_legal(card)

        return cls(
            name=card.name,
            localized_name=card.localized_name,
            full_name=card.full_name,
            type_line=card.type_line,
            pt=card.pt,
            text=card.text,
            related_names=list(card.related_names),
            link=card.link,
            pd_legal=pd_legal,
        )


@router.get("/{name}", response_model=CardResponse)
async def get_card(
    name: str,
    index: Annotated[CardIndex, Depends(get_card_index)],
    legal_list: Annotated[LegalListUpdater | None, Depends(get_legal_list)],
) -> CardResponse:
    """
    Look up a card by its English name.

    The name is normalized the same way preview pane text is, so accented
    spellings resolve.
    """
    card = index.get(normalize_name(name))
    if card is None:
        raise CardNotFoundError(name)
    return CardResponse.from_record(card, legal_list)

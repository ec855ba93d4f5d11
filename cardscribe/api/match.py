"""
Name matching endpoints.

POST /match classifies one preview pane string; POST /match/search scans
every text element of a pane, as the client does when /match comes back
unresolved.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cardscribe.api.cards import CardResponse
from cardscribe.api.dependencies import get_legal_list, get_matcher
from cardscribe.models.match import MatchOutcome, SuppressionReason
from cardscribe.services.name_matcher import NameMatcher
from cardscribe.services.penny_dreadful import LegalListUpdater

router = APIRouter(prefix="/match", tags=["match"])


class MatchRequest(BaseModel):
    candidate: str = Field(
        ...,
        description="Raw preview pane text",
        examples=["Triggered ability from Hymn to Tourach."],
    )


class MatchResponse(BaseModel):
    outcome: MatchOutcome
    card: CardResponse | None = None
    reason: SuppressionReason | None = None
    face_down: bool = False


class SearchRequest(BaseModel):
    candidates: list[str] = Field(
        ...,
        description="Text of every element in the preview pane, in order",
        examples=[["Delver of Secrets", "Insectile Aberration"]],
    )


class SearchResponse(BaseModel):
    cards: list[CardResponse] = Field(default_factory=list)
    saw_token: bool = False
    keep_current: bool = False
    is_generic_token: bool = False


@router.post("", response_model=MatchResponse)
async def match_candidate(
    request: MatchRequest,
    matcher: Annotated[NameMatcher, Depends(get_matcher)],
    legal_list: Annotated[LegalListUpdater | None, Depends(get_legal_list)],
) -> MatchResponse:
    """Classify one candidate string."""
    result = matcher.match(request.candidate)
    return MatchResponse(
        outcome=result.outcome,
        card=CardResponse.from_record(result.card, legal_list) if result.card else None,
        reason=result.reason,
        face_down=result.face_down,
    )


@router.post("/search", response_model=SearchResponse)
async def search_candidates(
    request: SearchRequest,
    matcher: Annotated[NameMatcher, Depends(get_matcher)],
    legal_list: Annotated[LegalListUpdater | None, Depends(get_legal_list)],
) -> SearchResponse:
    """Find every card named in the pane, with related faces."""
    result = matcher.search(request.candidates)
    return SearchResponse(
        cards=[CardResponse.from_record(card, legal_list) for card in result.cards],
        saw_token=result.saw_token,
        keep_current=result.keep_current,
        is_generic_token=result.is_generic_token,
    )

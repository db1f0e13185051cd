"""Suggestion API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from item_catalog.api.deps import get_suggestion_service
from item_catalog.api.schemas import ErrorResponse, SuggestionRequest, SuggestionResponse
from item_catalog.core.catalog.errors import ValidationFailed
from item_catalog.core.logging import get_logger
from item_catalog.services.suggestion_service import SuggestionService

logger = get_logger(__name__)

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.post(
    "",
    response_model=SuggestionResponse,
    responses={400: {"model": ErrorResponse}},
)
def submit_suggestion(
    body: SuggestionRequest,
    service: SuggestionService = Depends(get_suggestion_service),
) -> SuggestionResponse:
    """Attach a free-text correction to a catalog item."""
    try:
        suggestion = service.submit(body.item_id, body.note, body.proposer, body.reason)
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=e.reason)
    return SuggestionResponse(ok=True, suggestion_id=suggestion.suggestion_id)

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from pipeline.errors import InvalidInputError
from pipeline.trial_search import search_trials

from ..deps import Settings, get_settings
from ..models.schemas import SearchTrialsRequest, SearchTrialsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/search-trials", response_model=SearchTrialsResponse)
def search(
    body: Optional[SearchTrialsRequest] = None,
    settings: Settings = Depends(get_settings),
) -> SearchTrialsResponse:
    request = body if body is not None else SearchTrialsRequest()
    try:
        return search_trials(request, settings=settings)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error searching trials")
        raise HTTPException(
            status_code=500, detail="Failed to search clinical trials"
        ) from exc

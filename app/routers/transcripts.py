import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from pipeline.errors import InvalidInputError
from pipeline.extraction import extract_patient_record
from pipeline.fixtures import SAMPLE_TRANSCRIPT

from ..deps import Settings, get_settings
from ..models.schemas import (
    AnalyzeTranscriptRequest,
    PatientRecord,
    SampleTranscriptResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/analyze-transcript",
    response_model=PatientRecord,
    response_model_exclude_none=True,
)
def analyze_transcript(
    body: Optional[AnalyzeTranscriptRequest] = None,
    settings: Settings = Depends(get_settings),
) -> PatientRecord:
    transcript = body.transcript if body is not None else None
    try:
        result = extract_patient_record(transcript, settings=settings)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error analyzing transcript")
        raise HTTPException(
            status_code=500, detail="Failed to analyze transcript"
        ) from exc
    return result.record


@router.get("/sample-transcript", response_model=SampleTranscriptResponse)
def sample_transcript() -> SampleTranscriptResponse:
    return SampleTranscriptResponse(transcript=SAMPLE_TRANSCRIPT)

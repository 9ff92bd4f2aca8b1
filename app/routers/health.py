"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from ..models.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Report that the API process is up."""

    return HealthResponse(status="OK", message="Clinical Trials API is running")

"""Search ClinicalTrials.gov for trials matching an extracted patient record."""

from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Any, List, Mapping, Sequence

from app.models.schemas import (
    SearchCriteria,
    SearchTrialsRequest,
    SearchTrialsResponse,
    TrialRecord,
)

from .ctgov_api import CtGovApiClientProtocol, build_client
from .eligibility import filter_eligible
from .errors import UpstreamUnavailableError
from .fixtures import FALLBACK_TRIALS
from .mapper import map_studies
from .normalize import build_query_term

logger = logging.getLogger(__name__)

__all__ = ["SEARCH_FIELDS", "apply_list_filters", "fallback_trials", "search_trials"]

# Only these modules are requested to keep the payload small.
SEARCH_FIELDS = (
    "protocolSection.identificationModule",
    "protocolSection.statusModule",
    "protocolSection.descriptionModule",
    "protocolSection.sponsorCollaboratorsModule",
    "protocolSection.conditionsModule",
    "protocolSection.armsInterventionsModule",
    "protocolSection.designModule",
    "protocolSection.eligibilityModule",
    "protocolSection.contactsLocationsModule",
)


def fallback_trials() -> List[TrialRecord]:
    """Return the canned trial list served when the registry is unavailable."""

    return [TrialRecord.model_validate(item) for item in FALLBACK_TRIALS]


def _matches(value: str, wanted: str | None) -> bool:
    if wanted is None:
        return True
    target = wanted.strip().lower()
    if not target or target == "all":
        return True
    return value.strip().lower() == target


def apply_list_filters(
    trials: Sequence[TrialRecord],
    phase: str | None = None,
    status: str | None = None,
) -> List[TrialRecord]:
    """Keep trials whose phase and status equal the requested values."""

    return [
        trial
        for trial in trials
        if _matches(trial.phase, phase) and _matches(trial.status, status)
    ]


def _fetch_registry_studies(
    term: str,
    *,
    settings,
    client: CtGovApiClientProtocol | None,
) -> List[Mapping[str, Any]]:
    params = {"query.term": term, "fields": SEARCH_FIELDS}
    context = nullcontext(client) if client is not None else build_client(settings)
    with context as registry:
        return registry.fetch_studies(
            params=params,
            page_size=settings.ctgov_page_size,
            max_studies=settings.ctgov_page_size,
            max_pages=1,
        )


def search_trials(
    request: SearchTrialsRequest,
    *,
    settings,
    client: CtGovApiClientProtocol | None = None,
) -> SearchTrialsResponse:
    """Return trials for the patient described by ``request``.

    A missing diagnosis raises :class:`~pipeline.errors.InvalidInputError`.
    Registry failures are logged and answered with the canned trial list, so
    the response shape never depends on upstream availability; ``source``
    records which path produced the trials.
    """

    term = build_query_term(request.diagnosis)
    criteria = SearchCriteria(
        diagnosis=request.diagnosis,
        symptoms=list(request.symptoms),
        patient_age=request.patient_age,
        patient_gender=request.patient_gender,
    )

    try:
        studies = _fetch_registry_studies(term, settings=settings, client=client)
    except UpstreamUnavailableError:
        logger.exception(
            "ClinicalTrials.gov search for %r failed; returning sample trials", term
        )
        trials = fallback_trials()
        source = "fallback"
    else:
        logger.info("ClinicalTrials.gov returned %d studies for %r", len(studies), term)
        trials = filter_eligible(
            map_studies(studies), request.patient_age, request.patient_gender
        )
        source = "live"

    trials = apply_list_filters(trials, request.phase, request.status)
    trials = trials[: settings.ctgov_max_results]
    return SearchTrialsResponse(
        trials=trials,
        total_count=len(trials),
        search_criteria=criteria,
        source=source,
    )

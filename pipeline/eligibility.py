"""Best-effort age/sex screening of candidate trials."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple, TypeVar

from app.models.schemas import TrialEligibility, parse_age_value

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SEX_SYNONYMS: Dict[str, str] = {
    "male": "male",
    "males": "male",
    "m": "male",
    "man": "male",
    "men": "male",
    "female": "female",
    "females": "female",
    "f": "female",
    "woman": "female",
    "women": "female",
    "other": "other",
    "all": "all",
}


def _normalize_sex(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    return _SEX_SYNONYMS.get(text)


def _format_years(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def check_eligibility(
    eligibility: TrialEligibility | None,
    patient_age: Any = None,
    patient_gender: Any = None,
) -> dict:
    """Screen a patient against a trial's declared age range and sex.

    A check only runs when both sides carry the data it needs; missing data
    never makes a patient ineligible.  A trial open to "All" sexes, and any
    patient whose gender is not male or female, pass the sex check.
    """

    eligible = True
    reasons: List[str] = []
    if eligibility is None:
        return {"eligible": eligible, "reasons": reasons}

    age = parse_age_value(patient_age)
    if age is not None:
        lower = eligibility.minimum_age
        upper = eligibility.maximum_age
        if lower is not None and age < lower:
            eligible = False
            reasons.append(
                f"Age {age} below trial minimum age ({_format_years(lower)} years)"
            )
        if upper is not None and age > upper:
            eligible = False
            reasons.append(
                f"Age {age} above trial maximum age ({_format_years(upper)} years)"
            )

    trial_sex = _normalize_sex(eligibility.sex)
    sex = _normalize_sex(patient_gender)
    if trial_sex in {"male", "female"} and sex in {"male", "female"}:
        if sex != trial_sex:
            eligible = False
            reasons.append(
                f"Sex {patient_gender} not permitted by trial (allowed: {eligibility.sex})"
            )

    return {"eligible": eligible, "reasons": reasons}


def filter_eligible(
    candidates: Iterable[Tuple[T, TrialEligibility | None]],
    patient_age: Any = None,
    patient_gender: Any = None,
) -> List[T]:
    """Return the candidates that pass :func:`check_eligibility`, in order."""

    kept: List[T] = []
    for item, eligibility in candidates:
        result = check_eligibility(eligibility, patient_age, patient_gender)
        if result["eligible"]:
            kept.append(item)
            continue
        logger.debug(
            "Excluding %s: %s",
            getattr(item, "nct_id", item),
            "; ".join(result["reasons"]),
        )
    return kept

"""Flatten ClinicalTrials.gov v2 study records into :class:`TrialRecord` values.

Each target field is resolved from an ordered list of key paths, most specific
first.  The first non-empty value wins; when every path is absent the field
takes its sentinel, so every mapped field is a printable, non-empty string.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple, Union

from app.models.schemas import (
    NOT_SPECIFIED,
    TITLE_NOT_AVAILABLE,
    TrialEligibility,
    TrialRecord,
)

logger = logging.getLogger(__name__)

__all__ = [
    "TRIAL_FIELDS",
    "first_present",
    "map_studies",
    "study_eligibility",
    "study_to_trial",
]

KeyPath = Tuple[Union[str, int], ...]

_PROTOCOL = "protocolSection"
_NCT_ID_PATH: KeyPath = (_PROTOCOL, "identificationModule", "nctId")

_PHASE_PATTERN = re.compile(r"^(?P<early>EARLY_)?PHASE(?P<number>\d)$")
_AGE_PATTERN = re.compile(
    r"(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>year|month|week|day|hour|minute)?",
    re.IGNORECASE,
)
_UNITS_PER_YEAR = {
    "year": 1,
    "month": 12,
    "week": 52,
    "day": 365,
    "hour": 24 * 365,
    "minute": 60 * 24 * 365,
}
_ENUM_LABELS = {
    "ACTIVE_NOT_RECRUITING": "Active, not recruiting",
    "NA": "Not Applicable",
}


def resolve_path(record: Any, path: KeyPath) -> Any:
    """Walk ``path`` through nested mappings and sequences, ``None`` if broken."""

    current = record
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, Sequence) or isinstance(current, (str, bytes)):
                return None
            if not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, Mapping):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def _is_present(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, (list, tuple)):
        return any(_is_present(item) for item in value)
    return False


def first_present(record: Any, paths: Sequence[KeyPath], default: Any = None) -> Any:
    """Return the first present value found along ``paths``, else ``default``."""

    for path in paths:
        value = resolve_path(record, path)
        if _is_present(value):
            return value
    return default


def _to_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(_to_text(item) for item in value if _is_present(item))
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _humanize_enum(value: Any) -> str:
    """Turn registry enums such as ``NOT_YET_RECRUITING`` into display text."""

    text = _to_text(value)
    if text in _ENUM_LABELS:
        return _ENUM_LABELS[text]
    match = _PHASE_PATTERN.match(text)
    if match:
        label = f"Phase {match.group('number')}"
        return f"Early {label}" if match.group("early") else label
    if text.isupper():
        return text.replace("_", " ").capitalize()
    return text


def _format_phases(value: Any) -> str:
    items = value if isinstance(value, (list, tuple)) else [value]
    return " / ".join(_humanize_enum(item) for item in items if _is_present(item))


@dataclass(frozen=True)
class FieldRule:
    paths: Tuple[KeyPath, ...]
    default: str = NOT_SPECIFIED
    formatter: Callable[[Any], str] = _to_text


def _protocol(*keys: Union[str, int]) -> KeyPath:
    return (_PROTOCOL, *keys)


TRIAL_FIELDS: Dict[str, FieldRule] = {
    "title": FieldRule(
        (
            _protocol("identificationModule", "briefTitle"),
            _protocol("identificationModule", "officialTitle"),
        ),
        default=TITLE_NOT_AVAILABLE,
    ),
    "condition": FieldRule(
        (
            _protocol("conditionsModule", "conditions", 0),
            _protocol("conditionsModule", "keywords", 0),
        )
    ),
    "intervention": FieldRule(
        (_protocol("armsInterventionsModule", "interventions", 0, "name"),)
    ),
    "phase": FieldRule(
        (_protocol("designModule", "phases"),), formatter=_format_phases
    ),
    "status": FieldRule(
        (_protocol("statusModule", "overallStatus"),), formatter=_humanize_enum
    ),
    "sponsor": FieldRule(
        (_protocol("sponsorCollaboratorsModule", "leadSponsor", "name"),)
    ),
    "country": FieldRule(
        (_protocol("contactsLocationsModule", "locations", 0, "country"),)
    ),
    "enrollment": FieldRule((_protocol("designModule", "enrollmentInfo", "count"),)),
    "start_date": FieldRule((_protocol("statusModule", "startDateStruct", "date"),)),
    "completion_date": FieldRule(
        (
            _protocol("statusModule", "completionDateStruct", "date"),
            _protocol("statusModule", "primaryCompletionDateStruct", "date"),
        )
    ),
    "description": FieldRule(
        (
            _protocol("descriptionModule", "briefSummary"),
            _protocol("descriptionModule", "detailedDescription"),
        )
    ),
    "study_type": FieldRule(
        (_protocol("designModule", "studyType"),), formatter=_humanize_enum
    ),
}


def _resolve_field(study: Mapping[str, Any], rule: FieldRule) -> str:
    value = first_present(study, rule.paths)
    if value is None:
        return rule.default
    text = rule.formatter(value).strip()
    return text or rule.default


def study_to_trial(study: Any) -> TrialRecord | None:
    """Map one registry study to a :class:`TrialRecord`.

    Returns ``None`` when the study carries no NCT identifier.
    """

    nct_id = first_present(study, (_NCT_ID_PATH,))
    if nct_id is None:
        return None
    fields = {name: _resolve_field(study, rule) for name, rule in TRIAL_FIELDS.items()}
    return TrialRecord(nct_id=_to_text(nct_id), **fields)


def _parse_registry_age(value: Any) -> float | None:
    """Convert ``"18 Years"`` / ``"6 Months"`` style ages into years."""

    if not _is_present(value):
        return None
    if isinstance(value, (int, float)):
        years = value
    else:
        match = _AGE_PATTERN.search(str(value))
        if not match:
            return None
        unit = (match.group("unit") or "year").lower()
        years = float(match.group("value")) / _UNITS_PER_YEAR[unit]
    try:
        years = float(years)
    except OverflowError:
        return None
    return years if math.isfinite(years) else None


def study_eligibility(study: Any) -> TrialEligibility:
    """Return the age bounds and sex restriction declared by ``study``."""

    module = resolve_path(study, _protocol("eligibilityModule"))
    if not isinstance(module, Mapping):
        return TrialEligibility()
    sex = module.get("sex")
    return TrialEligibility(
        minimum_age=_parse_registry_age(module.get("minimumAge")),
        maximum_age=_parse_registry_age(module.get("maximumAge")),
        sex=sex.strip().upper() if isinstance(sex, str) and sex.strip() else None,
    )


def map_studies(
    studies: Sequence[Any],
) -> List[Tuple[TrialRecord, TrialEligibility]]:
    """Map ``studies`` in order, skipping unidentified and repeated trials."""

    mapped: List[Tuple[TrialRecord, TrialEligibility]] = []
    seen: set[str] = set()
    for study in studies:
        trial = study_to_trial(study)
        if trial is None:
            logger.debug("Skipping registry study without an NCT identifier")
            continue
        if trial.nct_id in seen:
            logger.debug("Skipping duplicate registry study %s", trial.nct_id)
            continue
        seen.add(trial.nct_id)
        mapped.append((trial, study_eligibility(study)))
    return mapped

import math
import re
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

NOT_SPECIFIED = "Not specified"
TITLE_NOT_AVAILABLE = "Title not available"

SEVERITY_LEVELS = ("mild", "moderate", "severe")
MAX_AGE_YEARS = 150

_LIST_SPLIT_PATTERN = re.compile(r"\s*[,;\n]\s*")
_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")
# At most four digits; longer runs are not ages.
_AGE_PATTERN = re.compile(r"(?<!\d)-?\d{1,4}(?!\d)")


def parse_age_value(value: Any) -> int | None:
    """Return an integer age in years from loosely typed input.

    Negative, non-finite and implausibly large values yield ``None``.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        match = _AGE_PATTERN.search(value)
        if not match:
            return None
        value = int(match.group())
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if not 0 <= value <= MAX_AGE_YEARS:
            return None
        return int(value)
    return None


def _parse_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        match = _NUMBER_PATTERN.search(value)
        if not match:
            return None
        value = match.group()
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _coerce_text_list(value: Any) -> List[str]:
    """Split delimited strings and drop blank entries."""

    if value is None:
        return []
    if isinstance(value, str):
        return [part for part in _LIST_SPLIT_PATTERN.split(value.strip()) if part]
    if isinstance(value, (list, tuple)):
        items = [str(item).strip() for item in value if item is not None]
        return [item for item in items if item]
    return [str(value)]


def _coerce_diagnosis(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return _coerce_text_list(value)
    if isinstance(value, str):
        return value.strip()
    return value


def _coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(item).strip() for item in value if item is not None)
    text = str(value).strip()
    return text or None


class CamelModel(BaseModel):
    """Base model exposing camelCase JSON names for snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class VitalSigns(CamelModel):
    model_config = ConfigDict(frozen=True)

    blood_pressure: Optional[str] = None
    heart_rate: Optional[float] = None
    temperature: Optional[float] = None
    weight: Optional[float] = None

    @field_validator("blood_pressure", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return _coerce_text(value)

    @field_validator("heart_rate", "temperature", "weight", mode="before")
    @classmethod
    def _number(cls, value: Any) -> float | None:
        return _parse_number(value)


class PatientRecord(CamelModel):
    """Structured patient information extracted from a transcript."""

    model_config = ConfigDict(frozen=True)

    diagnosis: Union[str, List[str]]
    symptoms: List[str] = Field(default_factory=list)
    severity: Optional[Literal["mild", "moderate", "severe"]] = None
    duration: Optional[str] = None
    patient_age: Optional[int] = None
    patient_gender: Optional[str] = None
    current_medications: Optional[List[str]] = None
    medical_history: Optional[str] = None
    family_history: Optional[str] = None
    allergies: Optional[List[str]] = None
    treatment_plan: Optional[str] = None
    vital_signs: Optional[VitalSigns] = None

    @field_validator("diagnosis", mode="before")
    @classmethod
    def _diagnosis(cls, value: Any) -> Any:
        return _coerce_diagnosis(value)

    @field_validator("symptoms", mode="before")
    @classmethod
    def _symptoms(cls, value: Any) -> List[str]:
        return _coerce_text_list(value)

    @field_validator("current_medications", "allergies", mode="before")
    @classmethod
    def _optional_list(cls, value: Any) -> List[str] | None:
        if value is None:
            return None
        return _coerce_text_list(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        return normalized if normalized in SEVERITY_LEVELS else None

    @field_validator("patient_age", mode="before")
    @classmethod
    def _age(cls, value: Any) -> int | None:
        return parse_age_value(value)

    @field_validator(
        "duration",
        "patient_gender",
        "medical_history",
        "family_history",
        "treatment_plan",
        mode="before",
    )
    @classmethod
    def _free_text(cls, value: Any) -> str | None:
        return _coerce_text(value)

    @field_validator("vital_signs", mode="before")
    @classmethod
    def _vitals(cls, value: Any) -> Any:
        # Anything but an object is unusable as a vitals record.
        return value if isinstance(value, (dict, VitalSigns)) else None


class AnalyzeTranscriptRequest(BaseModel):
    transcript: Optional[str] = None


class SampleTranscriptResponse(BaseModel):
    transcript: str


class HealthResponse(BaseModel):
    status: str
    message: str


class SearchTrialsRequest(CamelModel):
    """Search input; mirrors the fields of :class:`PatientRecord` it consumes."""

    diagnosis: Optional[Union[str, List[str]]] = None
    symptoms: List[str] = Field(default_factory=list)
    patient_age: Optional[int] = None
    patient_gender: Optional[str] = None
    phase: Optional[str] = None
    status: Optional[str] = None

    @field_validator("diagnosis", mode="before")
    @classmethod
    def _diagnosis(cls, value: Any) -> Any:
        return _coerce_diagnosis(value)

    @field_validator("symptoms", mode="before")
    @classmethod
    def _symptoms(cls, value: Any) -> List[str]:
        return _coerce_text_list(value)

    @field_validator("patient_age", mode="before")
    @classmethod
    def _age(cls, value: Any) -> int | None:
        return parse_age_value(value)

    @field_validator("patient_gender", "phase", "status", mode="before")
    @classmethod
    def _free_text(cls, value: Any) -> str | None:
        return _coerce_text(value)

    @classmethod
    def from_patient(cls, record: PatientRecord) -> "SearchTrialsRequest":
        return cls(
            diagnosis=record.diagnosis,
            symptoms=list(record.symptoms),
            patient_age=record.patient_age,
            patient_gender=record.patient_gender,
        )


class TrialRecord(CamelModel):
    model_config = ConfigDict(frozen=True)

    nct_id: str
    title: str = TITLE_NOT_AVAILABLE
    condition: str = NOT_SPECIFIED
    intervention: str = NOT_SPECIFIED
    phase: str = NOT_SPECIFIED
    status: str = NOT_SPECIFIED
    sponsor: str = NOT_SPECIFIED
    country: str = NOT_SPECIFIED
    enrollment: str = NOT_SPECIFIED
    start_date: str = NOT_SPECIFIED
    completion_date: str = NOT_SPECIFIED
    description: str = NOT_SPECIFIED
    study_type: str = NOT_SPECIFIED


class TrialEligibility(CamelModel):
    """Age bounds (in years) and sex restriction taken from a registry record."""

    model_config = ConfigDict(frozen=True)

    minimum_age: Optional[float] = None
    maximum_age: Optional[float] = None
    sex: Optional[str] = None


class SearchCriteria(CamelModel):
    diagnosis: Union[str, List[str]]
    symptoms: List[str] = Field(default_factory=list)
    patient_age: Optional[int] = None
    patient_gender: Optional[str] = None


class SearchTrialsResponse(CamelModel):
    trials: List[TrialRecord]
    total_count: int
    search_criteria: SearchCriteria
    source: Literal["live", "fallback"] = "live"

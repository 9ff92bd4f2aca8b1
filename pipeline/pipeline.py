from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Literal, Sequence

from app.deps import get_settings
from app.models.schemas import PatientRecord, SearchTrialsRequest, SearchTrialsResponse

from .ctgov_api import CtGovApiClientProtocol
from .errors import InvalidInputError
from .extraction import extract_patient_record
from .fixtures import SAMPLE_TRANSCRIPT
from .trial_search import search_trials


@dataclass(frozen=True)
class PipelineResult:
    patient: PatientRecord
    extraction_source: Literal["live", "fallback"]
    search: SearchTrialsResponse

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patient": self.patient.model_dump(by_alias=True, exclude_none=True),
            "extractionSource": self.extraction_source,
            **self.search.model_dump(by_alias=True),
        }


def run_pipeline(
    transcript: str,
    *,
    settings,
    client: CtGovApiClientProtocol | None = None,
    phase: str | None = None,
    status: str | None = None,
) -> PipelineResult:
    """Extract a patient record from ``transcript`` and search trials for it."""

    extraction = extract_patient_record(transcript, settings=settings)
    request = SearchTrialsRequest.from_patient(extraction.record).model_copy(
        update={"phase": phase, "status": status}
    )
    search = search_trials(request, settings=settings, client=client)
    return PipelineResult(
        patient=extraction.record,
        extraction_source=extraction.source,
        search=search,
    )


def main(argv: Sequence[str] | None = None) -> Dict[str, Any]:
    parser = argparse.ArgumentParser(description="Transcript-to-trials pipeline")
    parser.add_argument(
        "transcript",
        nargs="?",
        type=Path,
        help="Transcript text file (defaults to the bundled sample conversation)",
    )
    parser.add_argument("--phase", help="Only keep trials in this phase")
    parser.add_argument("--status", help="Only keep trials with this status")
    parser.add_argument("--output", type=Path, help="Write the JSON result here")

    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    if args.transcript is None:
        transcript = SAMPLE_TRANSCRIPT
    else:
        transcript = args.transcript.read_text(encoding="utf-8")

    try:
        result = run_pipeline(
            transcript, settings=settings, phase=args.phase, status=args.status
        ).to_dict()
    except InvalidInputError as exc:
        parser.error(str(exc))

    rendered = json.dumps(result, indent=2)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(rendered + "\n", encoding="utf-8")
    else:
        print(rendered)
    return result


if __name__ == "__main__":
    main()


__all__ = ["PipelineResult", "run_pipeline", "main"]

"""Reduce a patient's diagnosis to a registry search term.

The term is the first whitespace-delimited token of the diagnosis.  Symptoms
are never added to it.
"""

from __future__ import annotations

from typing import Any, List, Union

from .errors import InvalidInputError


def _primary_diagnosis(value: Any) -> str | None:
    """Return the first non-empty diagnosis.

    Extraction may yield a list of conditions; only the first usable entry is
    searched for.
    """

    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        for item in value:
            if item is None:
                continue
            text = str(item).strip()
            if text:
                return text
        return None
    text = str(value).strip()
    return text or None


def build_query_term(diagnosis: Union[str, List[str], None]) -> str:
    """Return the search term for ``diagnosis`` (``"Migraine headaches"`` -> ``"Migraine"``)."""

    primary = _primary_diagnosis(diagnosis)
    if primary is None:
        raise InvalidInputError("Diagnosis is required")
    return primary.split()[0]

"""Client utilities for the ClinicalTrials.gov Data API."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol

import httpx
import requests

from .errors import UpstreamUnavailableError

__all__ = [
    "CtGovApiError",
    "CtGovClient",
    "CtGovRequestsClient",
    "CtGovApiClientProtocol",
    "build_client",
]


DEFAULT_BASE_URL = "https://clinicaltrials.gov/api/v2"
DEFAULT_USER_AGENT = "TrialScribe/search (+https://github.com/trialscribe/trialscribe)"


class CtGovApiError(UpstreamUnavailableError):
    """Raised when the ClinicalTrials.gov API returns an unexpected response."""


class CtGovApiClientProtocol(Protocol):
    """Protocol describing the minimal CtGov API client interface."""

    def fetch_studies(
        self,
        *,
        params: Mapping[str, Any] | None = None,
        page_size: int | None = 100,
        max_studies: int | None = None,
        max_pages: int | None = None,
    ) -> list[Mapping[str, Any]]: ...

    def close(self) -> None: ...

    def __enter__(self) -> "CtGovApiClientProtocol": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...


def _flatten_params(params: Mapping[str, Any] | None) -> list[tuple[str, str]]:
    """Expand mapping values into a list of query parameter tuples."""

    flattened: list[tuple[str, str]] = []
    if not params:
        return flattened

    for key, value in params.items():
        if value is None:
            continue

        if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
            serialized_items = [str(item) for item in value if item is not None]
            if not serialized_items:
                continue
            flattened.append((key, ",".join(serialized_items)))
            continue

        flattened.append((key, str(value)))

    return flattened


def _prepare_headers(
    headers: Mapping[str, Any] | None, user_agent: str | None
) -> dict[str, str]:
    prepared: dict[str, str] = {"Accept": "application/json"}
    if user_agent and user_agent.strip():
        prepared["User-Agent"] = user_agent.strip()
    else:
        prepared["User-Agent"] = DEFAULT_USER_AGENT

    for key, value in (headers or {}).items():
        if value is None:
            continue
        prepared[str(key)] = str(value)
    return prepared


def _studies_from_payload(payload: Any) -> list[Mapping[str, Any]]:
    if not isinstance(payload, Mapping):
        raise CtGovApiError("ClinicalTrials.gov API returned a non-object payload")
    studies = payload.get("studies")
    if not isinstance(studies, list):
        raise CtGovApiError("ClinicalTrials.gov API response missing 'studies' list")
    return studies


class _BaseCtGovClient:
    """Shared paging logic; subclasses perform a single ``GET /studies``."""

    def _get_page(self, query: list[tuple[str, str]]) -> Any:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def fetch_studies(
        self,
        *,
        params: Mapping[str, Any] | None = None,
        page_size: int | None = 100,
        max_studies: int | None = None,
        max_pages: int | None = None,
    ) -> list[Mapping[str, Any]]:
        """Fetch study records, following page tokens.

        Paging stops at ``max_studies`` records, after ``max_pages`` pages, or
        at the first empty page.
        """

        base_params = _flatten_params(params)

        has_page_size = any(key == "pageSize" for key, _ in base_params)
        if page_size is not None and not has_page_size:
            base_params.append(("pageSize", str(page_size)))

        if not any(key == "format" for key, _ in base_params):
            base_params.append(("format", "json"))

        collected: list[Mapping[str, Any]] = []
        next_token: str | None = None
        pages = 0

        while True:
            query: list[tuple[str, str]] = list(base_params)
            if next_token:
                query.append(("pageToken", next_token))

            payload = self._get_page(query)
            page = _studies_from_payload(payload)
            collected.extend(page)
            pages += 1

            if max_studies is not None and len(collected) >= max_studies:
                return collected[:max_studies]
            if not page or (max_pages is not None and pages >= max_pages):
                break

            next_token = payload.get("nextPageToken")
            if not next_token:
                break

        return collected


class CtGovClient(_BaseCtGovClient):
    """Thin wrapper around :class:`httpx.Client` for the Data API."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        headers: Mapping[str, Any] | None = None,
        user_agent: str | None = None,
    ) -> None:
        prepared_headers = _prepare_headers(headers, user_agent)

        if client is None:
            client = httpx.Client(
                base_url=base_url, timeout=timeout, headers=prepared_headers
            )
            self._owns_client = True
        else:
            client.headers.update(prepared_headers)
            self._owns_client = False

        self._client = client

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _get_page(self, query: list[tuple[str, str]]) -> Any:
        try:
            response = self._client.get("/studies", params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise CtGovApiError(
                f"ClinicalTrials.gov API returned HTTP {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CtGovApiError(
                "Failed to communicate with ClinicalTrials.gov API"
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise CtGovApiError("ClinicalTrials.gov API returned invalid JSON") from exc


class CtGovRequestsClient(_BaseCtGovClient):
    """Thin wrapper around :class:`requests.Session` for the Data API."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        headers: Mapping[str, Any] | None = None,
        user_agent: str | None = None,
    ) -> None:
        owns_session = session is None
        if session is None:
            session = requests.Session()

        session.headers.pop("User-Agent", None)
        session.headers.update(_prepare_headers(headers, user_agent))

        self._session = session
        self._owns_session = owns_session
        self._studies_url = f"{base_url.rstrip('/')}/studies"
        self._timeout = timeout

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def _get_page(self, query: list[tuple[str, str]]) -> Any:
        try:
            response = self._session.get(
                self._studies_url, params=query, timeout=self._timeout
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = (
                exc.response.status_code if exc.response is not None else "unknown"
            )
            body = exc.response.text[:200] if exc.response is not None else ""
            raise CtGovApiError(
                f"ClinicalTrials.gov API returned HTTP {status}: {body}"
            ) from exc
        except requests.RequestException as exc:
            raise CtGovApiError(
                "Failed to communicate with ClinicalTrials.gov API"
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise CtGovApiError("ClinicalTrials.gov API returned invalid JSON") from exc


def build_client(settings) -> CtGovApiClientProtocol:
    """Instantiate the registry client selected by ``settings.ctgov_backend``."""

    client_kwargs = {
        "base_url": settings.ctgov_base_url,
        "timeout": settings.ctgov_timeout,
        "user_agent": settings.ctgov_user_agent,
    }
    backend = settings.ctgov_backend.lower()
    if backend == "httpx":
        return CtGovClient(**client_kwargs)
    if backend == "requests":
        return CtGovRequestsClient(**client_kwargs)
    raise ValueError(
        f"Unknown ClinicalTrials.gov API backend '{settings.ctgov_backend}'. Expected 'httpx' or 'requests'."
    )

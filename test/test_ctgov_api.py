from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

import httpx
import pytest
import requests

from app.deps import Settings
from pipeline.ctgov_api import (
    DEFAULT_BASE_URL,
    CtGovApiError,
    CtGovClient,
    CtGovRequestsClient,
    build_client,
)
from pipeline.errors import UpstreamUnavailableError


@dataclass
class ResponsePayload:
    body: Any
    status_code: int = 200


@dataclass
class RequestCapture:
    url: str
    params: list[tuple[str, str]]
    headers: dict[str, str]
    timeout: float | None

    def to_dict(self) -> dict[str, str]:
        return dict(self.params)

    def get_header(self, name: str) -> str | None:
        target = name.lower()
        for key, value in self.headers.items():
            if key.lower() == target:
                return value
        return None


def _ensure_payload(result: ResponsePayload | Mapping[str, Any] | str) -> ResponsePayload:
    if isinstance(result, ResponsePayload):
        return result
    return ResponsePayload(body=result)


def _encode_body(body: Any) -> bytes:
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


class HttpxBackend:
    name = "httpx"

    @contextmanager
    def make_client(
        self,
        responder: Callable[[RequestCapture], ResponsePayload | Mapping[str, Any]],
        **client_kwargs: Any,
    ):
        calls: list[RequestCapture] = []

        def handler(request: httpx.Request) -> httpx.Response:
            info = RequestCapture(
                url=str(request.url),
                params=[
                    (str(key), str(value))
                    for key, value in request.url.params.multi_items()
                ],
                headers=dict(request.headers),
                timeout=None,
            )
            calls.append(info)
            payload = _ensure_payload(responder(info))
            return httpx.Response(payload.status_code, content=_encode_body(payload.body))

        base_url = client_kwargs.get("base_url", DEFAULT_BASE_URL)
        http_client = httpx.Client(
            transport=httpx.MockTransport(handler), base_url=base_url
        )
        client = CtGovClient(client=http_client, **client_kwargs)
        try:
            yield client, calls
        finally:
            client.close()
            http_client.close()


class _FakeRequestsSession(requests.Session):
    def __init__(self, handler: Callable[[RequestCapture], requests.Response]):
        super().__init__()
        self._handler = handler
        self.requests: list[RequestCapture] = []

    def get(  # type: ignore[override]
        self,
        url: str,
        params: Iterable[tuple[str, Any]] | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        info = RequestCapture(
            url=url,
            params=[(str(key), str(value)) for key, value in params or []],
            headers=dict(self.headers),
            timeout=timeout,
        )
        self.requests.append(info)
        return self._handler(info)


class RequestsBackend:
    name = "requests"

    @contextmanager
    def make_client(
        self,
        responder: Callable[[RequestCapture], ResponsePayload | Mapping[str, Any]],
        **client_kwargs: Any,
    ):
        def handler(info: RequestCapture) -> requests.Response:
            payload = _ensure_payload(responder(info))
            response = requests.Response()
            response.status_code = payload.status_code
            response.headers["Content-Type"] = "application/json"
            response.url = info.url
            response._content = _encode_body(payload.body)
            response.encoding = "utf-8"
            return response

        session = _FakeRequestsSession(handler)
        client = CtGovRequestsClient(session=session, **client_kwargs)
        try:
            yield client, session.requests
        finally:
            client.close()
            session.close()


@pytest.fixture(params=(HttpxBackend(), RequestsBackend()), ids=("httpx", "requests"))
def backend(request: pytest.FixtureRequest) -> HttpxBackend | RequestsBackend:
    return request.param


def _study(nct_id: str) -> dict:
    return {"protocolSection": {"identificationModule": {"nctId": nct_id}}}


def test_client_uses_custom_base_url(backend):
    base_url = "https://api.example.test/v2"

    with backend.make_client(lambda _: {"studies": []}, base_url=base_url) as (
        client,
        calls,
    ):
        client.fetch_studies()

    assert calls
    assert all(call.url.startswith(f"{base_url}/studies") for call in calls)


def test_fetch_studies_sends_term_fields_and_page_size(backend):
    def responder(info: RequestCapture):
        return {"studies": [_study("NCT1")], "nextPageToken": "ignored"}

    with backend.make_client(responder) as (client, calls):
        studies = client.fetch_studies(
            params={
                "query.term": "Migraine",
                "fields": ("protocolSection.identificationModule", None, "protocolSection.statusModule"),
            },
            page_size=20,
            max_studies=1,
        )

    assert len(studies) == 1
    assert len(calls) == 1
    params = calls[0].to_dict()
    assert params["query.term"] == "Migraine"
    assert params["fields"] == (
        "protocolSection.identificationModule,protocolSection.statusModule"
    )
    assert params["pageSize"] == "20"
    assert params["format"] == "json"


def test_fetch_studies_follows_page_tokens(backend):
    responses = [
        {"studies": [_study("NCT1")], "nextPageToken": "abc"},
        {"studies": [_study("NCT2")]},
    ]

    def responder(info: RequestCapture):
        params = info.to_dict()
        if "pageToken" in params:
            assert params["pageToken"] == "abc"
            return responses[1]
        return responses[0]

    with backend.make_client(responder) as (client, calls):
        studies = client.fetch_studies(page_size=1)

    assert [s["protocolSection"]["identificationModule"]["nctId"] for s in studies] == [
        "NCT1",
        "NCT2",
    ]
    assert len(calls) == 2


def test_fetch_studies_uses_custom_user_agent(backend):
    captured: dict[str, str | None] = {}

    def responder(info: RequestCapture):
        captured["user_agent"] = info.get_header("User-Agent")
        captured["accept"] = info.get_header("Accept")
        return {"studies": []}

    with backend.make_client(responder, user_agent="custom-agent/1.0") as (client, _):
        client.fetch_studies()

    assert captured["user_agent"] == "custom-agent/1.0"
    assert captured["accept"] == "application/json"


@pytest.mark.parametrize(
    "payload",
    [
        ResponsePayload(body={"unexpected": []}),
        ResponsePayload(body=["not", "an", "object"]),
        ResponsePayload(body="<html>maintenance</html>"),
        ResponsePayload(body={"message": "bad query"}, status_code=400),
        ResponsePayload(body={}, status_code=503),
    ],
    ids=["missing-studies", "list-payload", "invalid-json", "http-400", "http-503"],
)
def test_fetch_studies_raises_on_unusable_response(backend, payload):
    with backend.make_client(lambda _: payload) as (client, _):
        with pytest.raises(CtGovApiError) as excinfo:
            client.fetch_studies()

    assert isinstance(excinfo.value, UpstreamUnavailableError)

def test_fetch_studies_stops_after_max_pages(backend):
    def responder(info: RequestCapture):
        return {"studies": [_study("NCT1")], "nextPageToken": "more"}

    with backend.make_client(responder) as (client, calls):
        studies = client.fetch_studies(page_size=20, max_studies=20, max_pages=1)

    assert len(studies) == 1
    assert len(calls) == 1
    assert "pageToken" not in calls[0].to_dict()


def test_fetch_studies_stops_on_empty_page_with_token(backend):
    def responder(info: RequestCapture):
        return {"studies": [], "nextPageToken": "same-token"}

    with backend.make_client(responder) as (client, calls):
        studies = client.fetch_studies(page_size=20)

    assert studies == []
    assert len(calls) == 1



def test_httpx_client_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    http_client = httpx.Client(
        transport=httpx.MockTransport(handler), base_url=DEFAULT_BASE_URL
    )
    with CtGovClient(client=http_client) as client:
        with pytest.raises(CtGovApiError, match="Failed to communicate"):
            client.fetch_studies()


def test_requests_client_passes_timeout():
    def handler(info: RequestCapture) -> requests.Response:
        raise requests.ConnectionError("refused")

    session = _FakeRequestsSession(handler)
    client = CtGovRequestsClient(session=session, timeout=4.5)
    with pytest.raises(CtGovApiError, match="Failed to communicate"):
        client.fetch_studies()

    assert session.requests[0].timeout == 4.5


@pytest.mark.parametrize(
    ("backend_name", "expected_cls"),
    [("httpx", CtGovClient), ("requests", CtGovRequestsClient)],
)
def test_build_client_selects_backend(backend_name, expected_cls):
    settings = Settings(ctgov_backend=backend_name)

    client = build_client(settings)
    try:
        assert isinstance(client, expected_cls)
    finally:
        client.close()

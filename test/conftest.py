from __future__ import annotations

import copy
import sys
import types
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from app.deps import Settings, get_settings
from app.main import app
from pipeline import trial_search
from pipeline.ctgov_api import CtGovClient

TEST_BASE_URL = "https://ctgov.test/api/v2"

_STUDY_TEMPLATE: dict[str, Any] = {
    "protocolSection": {
        "identificationModule": {
            "nctId": "NCT00000001",
            "briefTitle": "Erenumab for Episodic Migraine",
            "officialTitle": "A Phase 3 Study of Erenumab in Adults With Episodic Migraine",
        },
        "statusModule": {
            "overallStatus": "RECRUITING",
            "startDateStruct": {"date": "2024-01-15"},
            "completionDateStruct": {"date": "2026-06"},
        },
        "descriptionModule": {"briefSummary": "Evaluates erenumab in adults."},
        "sponsorCollaboratorsModule": {"leadSponsor": {"name": "Amgen"}},
        "conditionsModule": {"conditions": ["Migraine", "Headache"]},
        "armsInterventionsModule": {
            "interventions": [{"type": "DRUG", "name": "Erenumab"}]
        },
        "designModule": {
            "studyType": "INTERVENTIONAL",
            "phases": ["PHASE3"],
            "enrollmentInfo": {"count": 240},
        },
        "eligibilityModule": {
            "minimumAge": "18 Years",
            "maximumAge": "65 Years",
            "sex": "ALL",
        },
        "contactsLocationsModule": {"locations": [{"country": "United States"}]},
    }
}


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    app.dependency_overrides.clear()


@pytest.fixture()
def settings() -> Settings:
    """Settings with no LLM credential and a fake registry URL."""

    return Settings(llm_api_key=None, ctgov_base_url=TEST_BASE_URL)


@pytest.fixture()
def api_client(settings: Settings):
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_study() -> Callable[..., dict]:
    """Build a registry study, replacing modules given as keyword arguments.

    Passing ``None`` for a module removes it from ``protocolSection``.
    """

    def _make(nct_id: str | None = "NCT00000001", **modules: Any) -> dict:
        study = copy.deepcopy(_STUDY_TEMPLATE)
        protocol = study["protocolSection"]
        if nct_id is None:
            protocol["identificationModule"].pop("nctId")
        else:
            protocol["identificationModule"]["nctId"] = nct_id
        for name, value in modules.items():
            if value is None:
                protocol.pop(name, None)
            else:
                protocol[name] = value
        return study

    return _make


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("registry unreachable", request=request)


@pytest.fixture()
def registry(monkeypatch):
    """Route registry calls made by ``search_trials`` through a mock transport.

    Call the fixture with a responder taking an :class:`httpx.Request`; the
    list of captured requests is returned.  With no responder the registry is
    unreachable.
    """

    def install(
        responder: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> list[httpx.Request]:
        calls: list[httpx.Request] = []
        handler_fn = responder or _unreachable

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return handler_fn(request)

        def factory(settings: Settings) -> CtGovClient:
            http_client = httpx.Client(
                transport=httpx.MockTransport(handler),
                base_url=settings.ctgov_base_url,
            )
            return CtGovClient(client=http_client)

        monkeypatch.setattr(trial_search, "build_client", factory)
        return calls

    return install


@pytest.fixture()
def fake_openai(monkeypatch):
    """Install a fake ``openai`` module answering with a configurable completion."""

    state: dict[str, Any] = {"content": None, "error": None, "calls": [], "clients": []}

    class _Completions:
        def create(self, **kwargs):
            state["calls"].append(kwargs)
            if state["error"] is not None:
                raise state["error"]
            message = types.SimpleNamespace(content=state["content"])
            return types.SimpleNamespace(choices=[types.SimpleNamespace(message=message)])

    class FakeOpenAI:
        def __init__(self, api_key, **kwargs):
            state["clients"].append({"api_key": api_key, **kwargs})
            self.chat = types.SimpleNamespace(completions=_Completions())

    fake_module = types.ModuleType("openai")
    fake_module.OpenAI = FakeOpenAI
    monkeypatch.setitem(sys.modules, "openai", fake_module)
    return state

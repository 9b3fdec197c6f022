from __future__ import annotations

from typing import Any

import pytest

from app import create_app
from audit.models import AnalysisResult, Source
from core.config import Settings
from core.errors import ProfileNotFoundError, ProviderUnavailableError


class StubAuditor:
    def __init__(self, result: Any = None, error: Exception | None = None) -> None:
        self._result = result
        self._error = error
        self.inputs: list[str] = []

    async def analyze(self, user_input: str, *, on_stage: Any = None) -> AnalysisResult:
        self.inputs.append(user_input)
        if self._error is not None:
            raise self._error
        return self._result


@pytest.fixture
def result(valid_payload) -> AnalysisResult:
    return AnalysisResult.model_validate(
        {**valid_payload, "sources": [Source(title="Apple", uri="https://instagram.com/apple").model_dump()]}
    )


@pytest.fixture
def client():
    app = create_app(Settings(gemini_api_key="test-key"))
    app.config.update(TESTING=True)
    return app.test_client()


def _use_auditor(monkeypatch, auditor: StubAuditor) -> None:
    monkeypatch.setattr("api.audit.analyze.build_auditor", lambda: auditor)
    monkeypatch.setattr("api.audit.sessions.build_auditor", lambda: auditor)


def test_health_check(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_audit_returns_camel_case_result(client, monkeypatch, result) -> None:
    auditor = StubAuditor(result)
    _use_auditor(monkeypatch, auditor)

    response = client.post("/api/audit", json={"input": "  @Apple "})

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["basicInfo"]["businessName"] == "Apple Inc"
    assert len(payload["competitors"]) == 3
    assert payload["sources"] == [{"title": "Apple", "uri": "https://instagram.com/apple"}]
    assert auditor.inputs == ["  @Apple "]


@pytest.mark.parametrize("body", [{}, {"input": "   "}, {"input": 42}])
def test_audit_requires_input(client, monkeypatch, body) -> None:
    auditor = StubAuditor()
    _use_auditor(monkeypatch, auditor)

    response = client.post("/api/audit", json=body)

    assert response.status_code == 400
    assert auditor.inputs == []


@pytest.mark.parametrize(
    ("error", "status", "kind"),
    [
        (ProfileNotFoundError("ghost"), 404, "ProfileNotFoundError"),
        (ProviderUnavailableError("down"), 502, "ProviderUnavailableError"),
    ],
)
def test_audit_maps_errors(client, monkeypatch, error, status, kind) -> None:
    _use_auditor(monkeypatch, StubAuditor(error=error))

    response = client.post("/api/audit", json={"input": "ghost"})

    assert response.status_code == status
    payload = response.get_json()
    assert payload["kind"] == kind
    assert payload["error"] == error.user_message


def test_session_flow(client, monkeypatch, result) -> None:
    _use_auditor(monkeypatch, StubAuditor(result))

    created = client.post("/api/audit/sessions")
    assert created.status_code == 201
    session_id = created.get_json()["session_id"]
    assert created.get_json()["session"]["status"] == "idle"

    analyzed = client.post(f"/api/audit/sessions/{session_id}/analyze", json={"input": "apple"})
    assert analyzed.status_code == 200
    session = analyzed.get_json()["session"]
    assert session["status"] == "completed"
    assert session["handle"] == "apple"
    assert session["result"]["diagnosis"]["overallScore"] == 8.5

    tab = client.post(f"/api/audit/sessions/{session_id}/tab", json={"tab": "competitors"})
    assert tab.get_json()["session"]["activeTab"] == "competitors"

    exported = client.post(f"/api/audit/sessions/{session_id}/export")
    assert exported.status_code == 200
    assert exported.get_json()["filename"] == "Reporte_ANI_Apple_Inc.pdf"

    retry = client.post(f"/api/audit/sessions/{session_id}/retry")
    assert retry.status_code == 409


def test_session_error_then_retry(client, monkeypatch) -> None:
    _use_auditor(monkeypatch, StubAuditor(error=ProfileNotFoundError("ghost")))
    session_id = client.post("/api/audit/sessions").get_json()["session_id"]

    failed = client.post(f"/api/audit/sessions/{session_id}/analyze", json={"input": "ghost"})
    assert failed.status_code == 404

    state = client.get(f"/api/audit/sessions/{session_id}").get_json()["session"]
    assert state["status"] == "error"
    assert state["errorMessage"] == ProfileNotFoundError.user_message

    blocked = client.post(f"/api/audit/sessions/{session_id}/analyze", json={"input": "ghost"})
    assert blocked.status_code == 409

    retried = client.post(f"/api/audit/sessions/{session_id}/retry")
    assert retried.get_json()["session"]["status"] == "idle"


def test_invalid_tab_and_unknown_session(client) -> None:
    session_id = client.post("/api/audit/sessions").get_json()["session_id"]

    assert client.post(f"/api/audit/sessions/{session_id}/tab", json={"tab": "charts"}).status_code == 400
    assert client.get("/api/audit/sessions/does-not-exist").status_code == 404
    assert client.post("/api/audit/sessions/does-not-exist/export").status_code == 404


def test_delete_session(client) -> None:
    session_id = client.post("/api/audit/sessions").get_json()["session_id"]

    deleted = client.delete(f"/api/audit/sessions/{session_id}")

    assert deleted.status_code == 204
    assert client.get(f"/api/audit/sessions/{session_id}").status_code == 404
    assert client.delete(f"/api/audit/sessions/{session_id}").status_code == 404

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
from google.genai import types

from audit.analyzer import ProfileAuditor, validate_payload
from audit.models import NOT_FOUND_SENTINEL, AnalysisResult
from audit.schema import AUDIT_RESPONSE_SCHEMA
from audit.sources import extract_sources
from audit.state import AuditStatus
from core.config import Settings, SourceFallback
from core.errors import (
    AnalysisParseError,
    IdentityMismatchWarning,
    InvalidInputError,
    ProfileNotFoundError,
    ProviderUnavailableError,
    SchemaViolationError,
)
from core.gemini_client import GeminiGroundedResponse


def _chunk(uri: str, title: Optional[str] = None) -> types.GroundingChunk:
    return types.GroundingChunk(web=types.GroundingChunkWeb(uri=uri, title=title))


class DummyGemini:
    def __init__(self, raw_text: str, chunks: Optional[List[Any]] = None, error: Optional[Exception] = None):
        self._raw_text = raw_text
        self._chunks = chunks or []
        self._error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate_grounded_json(self, prompt: str, **kwargs: Any) -> GeminiGroundedResponse:
        self.calls.append({"prompt": prompt, **kwargs})
        if self._error is not None:
            raise self._error
        return GeminiGroundedResponse(raw_text=self._raw_text, grounding_chunks=self._chunks, model="test-model")


def _auditor(gemini: DummyGemini, fallback: SourceFallback = SourceFallback.NONE) -> ProfileAuditor:
    settings = Settings(gemini_api_key="test-key", source_fallback=fallback)
    return ProfileAuditor(gemini_client=gemini, settings=settings)


def test_end_to_end_analysis_with_citation(valid_payload) -> None:
    gemini = DummyGemini(
        json.dumps(valid_payload),
        [_chunk("https://www.instagram.com/apple/", "Apple (@apple) • Instagram")],
    )

    result = asyncio.run(_auditor(gemini).analyze("  @Apple "))

    assert isinstance(result, AnalysisResult)
    assert len(result.sources) == 1
    assert len(result.competitors) == 3
    assert result.sources[0].uri == "https://www.instagram.com/apple/"

    assert len(gemini.calls) == 1
    call = gemini.calls[0]
    assert call["response_schema"] is AUDIT_RESPONSE_SCHEMA
    assert "instagram.com/apple" in call["prompt"]
    assert '"apple"' in call["prompt"]
    assert NOT_FOUND_SENTINEL in call["prompt"]
    assert "@Apple" not in call["prompt"]


def test_missing_required_field_is_a_schema_violation(valid_payload) -> None:
    del valid_payload["diagnosis"]["overallScore"]
    gemini = DummyGemini(json.dumps(valid_payload), [_chunk("https://example.com")])

    with pytest.raises(SchemaViolationError) as excinfo:
        asyncio.run(_auditor(gemini).analyze("apple"))

    assert excinfo.value.missing_fields == ("diagnosis.overallScore",)


def test_missing_section_is_a_schema_violation(valid_payload) -> None:
    del valid_payload["commercialProposal"]

    with pytest.raises(SchemaViolationError) as excinfo:
        asyncio.run(_auditor(DummyGemini(json.dumps(valid_payload))).analyze("apple"))

    assert "commercialProposal" in excinfo.value.missing_fields


def test_not_found_sentinel_is_fatal(valid_payload) -> None:
    valid_payload["basicInfo"]["businessName"] = NOT_FOUND_SENTINEL
    gemini = DummyGemini(json.dumps(valid_payload), [_chunk("https://example.com")])

    with pytest.raises(ProfileNotFoundError) as excinfo:
        asyncio.run(_auditor(gemini).analyze("apple"))

    assert excinfo.value.handle == "apple"


def test_not_found_sentinel_wins_over_placeholder_fields(valid_payload) -> None:
    valid_payload["basicInfo"]["businessName"] = NOT_FOUND_SENTINEL
    valid_payload["diagnosis"]["overallScore"] = NOT_FOUND_SENTINEL
    valid_payload["competitors"] = []
    gemini = DummyGemini(json.dumps(valid_payload))

    with pytest.raises(ProfileNotFoundError) as excinfo:
        asyncio.run(_auditor(gemini).analyze("apple"))

    assert excinfo.value.handle == "apple"


def test_not_found_sentinel_with_missing_sections() -> None:
    raw = json.dumps({"basicInfo": {"businessName": f"  {NOT_FOUND_SENTINEL.upper()} "}})

    outcome = validate_payload(raw, handle="ghost")

    assert not outcome.ok
    assert isinstance(outcome.error, ProfileNotFoundError)
    assert outcome.error.handle == "ghost"


def test_zero_citations_without_fallback_yields_no_sources(valid_payload) -> None:
    result = asyncio.run(_auditor(DummyGemini(json.dumps(valid_payload))).analyze("apple"))

    assert result.sources == []


def test_zero_citations_with_profile_fallback(valid_payload) -> None:
    gemini = DummyGemini(json.dumps(valid_payload))

    result = asyncio.run(_auditor(gemini, SourceFallback.PROFILE).analyze("apple"))

    assert [source.uri for source in result.sources] == ["https://instagram.com/apple"]


def test_profile_fallback_not_used_when_citations_exist(valid_payload) -> None:
    gemini = DummyGemini(json.dumps(valid_payload), [_chunk("https://news.example.com/apple")])

    result = asyncio.run(_auditor(gemini, SourceFallback.PROFILE).analyze("apple"))

    assert [source.uri for source in result.sources] == ["https://news.example.com/apple"]


def test_handle_mismatch_only_warns(valid_payload) -> None:
    valid_payload["basicInfo"]["handle"] = "@apple.fans"
    gemini = DummyGemini(json.dumps(valid_payload))

    with pytest.warns(IdentityMismatchWarning):
        result = asyncio.run(_auditor(gemini).analyze("apple"))

    assert result.basic_info.handle == "@apple.fans"


def test_prose_response_is_a_parse_error() -> None:
    gemini = DummyGemini("Lo siento, no puedo ayudar con eso.")

    with pytest.raises(AnalysisParseError):
        asyncio.run(_auditor(gemini).analyze("apple"))


def test_empty_input_is_rejected_before_dispatch() -> None:
    gemini = DummyGemini("{}")

    with pytest.raises(InvalidInputError):
        asyncio.run(_auditor(gemini).analyze("   @  "))

    assert gemini.calls == []


def test_provider_errors_propagate_without_retry() -> None:
    gemini = DummyGemini("", error=ProviderUnavailableError("boom"))

    with pytest.raises(ProviderUnavailableError):
        asyncio.run(_auditor(gemini).analyze("apple"))

    assert len(gemini.calls) == 1


def test_stage_callback_reports_searching_then_analyzing(valid_payload) -> None:
    stages: List[AuditStatus] = []

    asyncio.run(_auditor(DummyGemini(json.dumps(valid_payload))).analyze("apple", on_stage=stages.append))

    assert stages == [AuditStatus.SEARCHING, AuditStatus.ANALYZING]


def test_validate_payload_returns_tagged_outcome(valid_payload) -> None:
    ok = validate_payload(json.dumps(valid_payload))
    assert ok.ok and ok.unwrap().basic_info.handle == "apple"

    bad = validate_payload("not json")
    assert not bad.ok
    assert isinstance(bad.error, AnalysisParseError)
    with pytest.raises(AnalysisParseError):
        bad.unwrap()


def test_extract_sources_maps_titles_and_skips_non_web_chunks() -> None:
    chunks = [
        _chunk("https://a.example.com", "A"),
        _chunk("https://b.example.com"),
        types.GroundingChunk(),
        _chunk("https://a.example.com", "A again"),
    ]

    sources = extract_sources(chunks)

    assert [(s.title, s.uri) for s in sources] == [
        ("A", "https://a.example.com"),
        ("Fuente externa", "https://b.example.com"),
    ]


def test_post_url_is_rejected_before_dispatch() -> None:
    gemini = DummyGemini("{}")

    with pytest.raises(InvalidInputError):
        asyncio.run(_auditor(gemini).analyze("https://www.instagram.com/p/ABC123/"))

    assert gemini.calls == []

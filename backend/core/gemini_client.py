"""Gemini client used by the profile audit pipeline."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from core.config import Settings
from core.errors import AnalysisParseError, ConfigurationError, ProviderUnavailableError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GeminiGroundedResponse:
    """Raw model text plus the grounding chunks attached to the first candidate."""

    raw_text: str
    grounding_chunks: List[Any] = field(default_factory=list)
    model: str = ""


class GeminiClient:
    """Thin wrapper around ``google-genai`` for grounded JSON generation."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        default_model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        if settings is None:
            explicit = (api_key, default_model, timeout_seconds)
            settings = Settings.from_env() if any(value is None for value in explicit) else Settings()
        self.api_key = api_key or settings.gemini_api_key
        self.default_model = default_model or settings.model
        self.timeout_seconds = timeout_seconds or settings.request_timeout_seconds
        self._client: Optional[genai.Client] = None

    # ---------------------------------------------------------------------
    # Core helpers
    # ---------------------------------------------------------------------
    def _get_client(self) -> genai.Client:
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY not configured.")

        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @staticmethod
    def _clean_json_payload(raw_text: str) -> str:
        cleaned = raw_text.strip()
        if not cleaned:
            raise AnalysisParseError("Gemini returned an empty response.")

        # Remove Markdown code fences.
        cleaned = cleaned.replace("```json", "").replace("```", "").strip()

        if cleaned.startswith("{"):
            return cleaned

        match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if not match:
            raise AnalysisParseError("Unable to locate a JSON object in Gemini response.")
        return match.group(0)

    @staticmethod
    def parse_json_response(raw_text: str) -> Dict[str, Any]:
        """Parse Gemini text into a JSON object."""

        payload = GeminiClient._clean_json_payload(raw_text)
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise AnalysisParseError(f"Gemini returned invalid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise AnalysisParseError(
                f"Gemini returned a JSON {type(parsed).__name__}, expected an object."
            )
        return parsed

    @staticmethod
    def _grounding_chunks(response: Any) -> List[Any]:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return []
        metadata = getattr(candidates[0], "grounding_metadata", None)
        if metadata is None:
            return []
        return list(getattr(metadata, "grounding_chunks", None) or [])

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def generate_grounded_json(
        self,
        prompt: str,
        *,
        response_schema: Dict[str, Any],
        model: Optional[str] = None,
        temperature: float = 0.2,
    ) -> GeminiGroundedResponse:
        """Send one Google Search grounded request constrained to ``response_schema``.

        Exactly one call is made; failures are not retried.
        """

        client = self._get_client()
        model_name = model or self.default_model

        config = types.GenerateContentConfig(
            temperature=temperature,
            tools=[types.Tool(google_search=types.GoogleSearch())],
            response_mime_type="application/json",
            response_schema=response_schema,
        )

        logger.info(
            "Sending grounded request to Gemini",
            extra={
                "operation": "gemini_grounded_request",
                "model": model_name,
                "temperature": temperature,
                "timeout_s": self.timeout_seconds,
                "prompt_length": len(prompt),
            },
        )

        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=model_name,
                    contents=prompt,
                    config=config,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise ProviderUnavailableError(
                f"Gemini did not answer within {self.timeout_seconds:g} seconds."
            ) from exc
        except Exception as exc:  # noqa: BLE001 - surface API issues with context
            raise ProviderUnavailableError(f"Gemini API error: {exc}") from exc

        raw_text = getattr(response, "text", None) or ""
        chunks = self._grounding_chunks(response)

        logger.info(
            "Received grounded response from Gemini",
            extra={
                "operation": "gemini_grounded_response",
                "model": model_name,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                "has_text": bool(raw_text),
                "text_preview": raw_text[:500] or None,
                "grounding_chunks": len(chunks),
            },
        )

        return GeminiGroundedResponse(raw_text=raw_text, grounding_chunks=chunks, model=model_name)


__all__ = ["GeminiClient", "GeminiGroundedResponse"]

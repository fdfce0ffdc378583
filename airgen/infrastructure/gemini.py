"""Integration with the Gemini ``generateContent`` REST API."""
from __future__ import annotations

import base64
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from airgen.core.errors import GenerationError
from airgen.domain import GroundingSource, dedupe_sources

from .generation import GenerationResult

logger = structlog.get_logger(__name__)

SYSTEM_INSTRUCTION = """You are a world-class art and design cataloguer. Your descriptions must perform three quiet jobs:
1. GROUNDING: Orient the viewer with materials, form, and origin without sounding robotic.
2. GRAVITY: Add cultural or emotional context: why it existed and the life surrounding it.
3. SPACE: Leave interpretive space for the viewer; suggest themes (ritual, leisure, craft) rather than pinning them down.

STRICT WRITING FORMULA:
- Sentence 1: The physical "What" + material/era/origin.
- Sentence 2: Cultural or historical suggestion/significance.
- Sentence 3: How it feels or the presence it brings to a space.
- Optional 4-5: Deepen symbolism or craftsmanship.

LENGTH RULES:
- Simple items: EXACTLY one paragraph (3-5 sentences).
- Complex/Rich items: EXACTLY two paragraphs (3-4 sentences each). Use the second paragraph to separate physical description from emotional/cultural read.

CRITICAL CONSTRAINTS:
- Use Google Search to research verifiable facts before writing.
- NO HALLUCINATIONS. If origin or era is unknown, use evocative uncertainty (e.g., "recalls," "evokes," "suggests").
- AVOID robotic museum labels. Focus on sophisticated, nostalgic, and evocative prose."""

DEFAULT_IMAGE_MIME = "image/jpeg"


class GeminiClient:
    """Client for Gemini text and image generation with search grounding."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-3-flash-preview",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        system_instruction: str = SYSTEM_INSTRUCTION,
        timeout: float = 120.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._model = model
        self._endpoint = f"{api_base.rstrip('/')}/models/{quote(model, safe='-._')}:generateContent"
        self._system_instruction = system_instruction
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _fetch_image(self, image_url: str) -> tuple[str, str]:
        try:
            response = self._client.get(image_url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise GenerationError("Failed to analyze image. Ensure the image URL is accessible.") from exc

        content_type = (response.headers.get("content-type") or "").split(";")[0].strip().lower()
        mime_type = content_type if content_type.startswith("image/") else DEFAULT_IMAGE_MIME
        return base64.b64encode(response.content).decode("ascii"), mime_type

    def _build_payload(self, parts: list[dict[str, Any]]) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": parts}],
            "systemInstruction": {"parts": [{"text": self._system_instruction}]},
            "tools": [{"google_search": {}}],
        }

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
        return f"Gemini Error {response.status_code}: {response.reason_phrase}"

    def _generate(self, parts: list[dict[str, Any]]) -> GenerationResult:
        try:
            response = self._client.post(
                self._endpoint,
                headers={"x-goog-api-key": self._api_key},
                json=self._build_payload(parts),
            )
        except httpx.HTTPError as exc:
            logger.warning("gemini.request_failed", model=self._model, error=str(exc))
            raise GenerationError(f"Gemini request failed: {exc}") from exc

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.warning("gemini.error_response", model=self._model, status=response.status_code, message=message)
            raise GenerationError(message)

        try:
            payload = response.json()
        except ValueError as exc:
            raise GenerationError("Gemini returned a non-JSON response") from exc

        return GenerationResult(text=self.extract_text(payload), sources=list(self.extract_sources(payload)))

    @staticmethod
    def extract_text(payload: dict[str, Any]) -> str:
        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        content = candidates[0].get("content") or {}
        texts = [
            part["text"]
            for part in content.get("parts") or []
            if isinstance(part, dict) and isinstance(part.get("text"), str) and not part.get("thought")
        ]
        return "".join(texts)

    @staticmethod
    def extract_sources(payload: dict[str, Any]) -> tuple[GroundingSource, ...]:
        candidates = payload.get("candidates") or []
        if not candidates:
            return ()
        metadata = candidates[0].get("groundingMetadata") or {}
        sources: list[GroundingSource] = []
        for chunk in metadata.get("groundingChunks") or []:
            web = chunk.get("web") if isinstance(chunk, dict) else None
            if isinstance(web, dict) and web.get("uri"):
                sources.append(GroundingSource(uri=str(web["uri"]), title=web.get("title")))
        return dedupe_sources(sources)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def analyze_image(self, image_url: str, prompt: str) -> GenerationResult:
        data, mime_type = self._fetch_image(image_url)
        parts = [
            {"inline_data": {"mime_type": mime_type, "data": data}},
            {"text": prompt},
        ]
        return self._generate(parts)

    def generate_text(self, prompt: str) -> GenerationResult:
        return self._generate([{"text": prompt}])

    def close(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            self._client.close()


__all__ = ["GeminiClient", "SYSTEM_INSTRUCTION"]

"""
Remote insight gateway.

Wraps the Gemini model behind four request/response operations: analysis of
the experience set, checklist generation for one action-plan item, and
experience extraction from a file or a URL. The transport is injectable so
the gateway can be exercised without network access.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence, Union
from urllib.parse import urlparse

from google import genai
from google.genai import types as genai_types
from pydantic import ValidationError

from LifeMap.config import Settings
from LifeMap.insight import prompts
from LifeMap.models import (
    CATEGORIES,
    AnalysisResult,
    Experience,
    ExtractedExperience,
    ExtractionResponse,
)

log = logging.getLogger(__name__)


class InsightError(RuntimeError):
    """The remote call failed or returned something unusable. Callers offer a retry."""


class InvalidUrlError(ValueError):
    pass


@dataclass(frozen=True)
class InlineData:
    data: bytes
    mime_type: str


Part = Union[str, InlineData]


class InsightTransport(Protocol):
    async def generate(self, parts: Sequence[Part], *, json_response: bool = True, url_context: bool = False) -> str:
        ...


class GeminiTransport:
    """Calls Gemini through the google-genai SDK; the client is created on first use."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[genai.Client] = None):
        self.settings = settings or Settings()
        self.client = client

    def _initialize_client(self) -> genai.Client:
        if self.client is not None:
            return self.client
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            log.error("GEMINI_API_KEY environment variable not set.")
            raise InsightError("GEMINI_API_KEY not set.")
        self.client = genai.Client(api_key=api_key)
        log.info(f"Gemini client initialized for model {self.settings.model_name}")
        return self.client

    @staticmethod
    def _to_content(part: Part):
        if isinstance(part, InlineData):
            return genai_types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
        return part

    async def generate(self, parts: Sequence[Part], *, json_response: bool = True, url_context: bool = False) -> str:
        client = self._initialize_client()
        config = genai_types.GenerateContentConfig(
            response_mime_type="application/json" if json_response else None,
            temperature=self.settings.llm_temperature,
            tools=[genai_types.Tool(url_context=genai_types.UrlContext())] if url_context else None,
        )
        response = await asyncio.to_thread(
            client.models.generate_content,
            model=self.settings.model_name,
            contents=[self._to_content(p) for p in parts],
            config=config,
        )
        if response.prompt_feedback and response.prompt_feedback.block_reason:
            raise InsightError(f"Prompt blocked by Gemini: {response.prompt_feedback.block_reason}")
        if not response.text:
            raise InsightError("No response from AI")
        return response.text


def _extract_json(text: Optional[str]) -> Any:
    """Parse JSON from plain text or a fenced code block."""
    if not text:
        raise InsightError("No response from AI")
    cleaned = text.strip()
    if cleaned.startswith("```"):
        # drop the opening fence and its optional language tag
        end = cleaned.find("\n")
        cleaned = cleaned[end + 1:] if end != -1 else cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
    cleaned = cleaned.strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        log.error(f"Failed to parse LLM JSON response: {e}. Snippet: {cleaned[:200]}")
        raise InsightError("Malformed AI response") from e


def validate_import_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise InvalidUrlError("URL을 입력해주세요.")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidUrlError("올바른 URL 형식이 아닙니다. (http:// 또는 https:// 포함)")
    return url


class InsightGateway:
    def __init__(self, transport: Optional[InsightTransport] = None, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.transport = transport or GeminiTransport(self.settings)

    async def _call(self, parts: Sequence[Part], *, json_response: bool = True, url_context: bool = False) -> Any:
        try:
            text = await self.transport.generate(parts, json_response=json_response, url_context=url_context)
        except InsightError:
            raise
        except Exception as e:
            log.error(f"Gemini call failed: {type(e).__name__} - {e}")
            raise InsightError(str(e)) from e
        return _extract_json(text)

    async def analyze(self, experiences: Sequence[Experience]) -> AnalysisResult:
        active = [e for e in experiences if not e.is_trashed]
        if not active:
            raise ValueError("No experiences to analyze")
        payload = [
            {"id": e.id, "title": e.title, "description": e.description, "category": e.category}
            for e in active
        ]
        prompt = prompts.ANALYSIS_PROMPT.format(
            experiences_json=json.dumps(payload, ensure_ascii=False, indent=2),
            schema_description=prompts.ANALYSIS_SCHEMA_DESCRIPTION,
        )
        log.info(f"Requesting analysis of {len(active)} experiences")
        data = await self._call([prompt])
        if not isinstance(data, dict):
            raise InsightError("Analysis response is not a JSON object")
        try:
            result = AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise InsightError(f"Analysis response failed validation: {e.error_count()} errors") from e
        log.info(f"Analysis returned {len(result.relationships)} relationships")
        return result

    async def generate_checklist(self, action: str, context: Sequence[Experience]) -> List[str]:
        """Never raises for remote failures; a placeholder item is returned instead."""
        titles = [e.title for e in context if not e.is_trashed]
        prompt = prompts.CHECKLIST_PROMPT.format(
            action=action,
            context_json=json.dumps(titles, ensure_ascii=False, indent=2),
        )
        try:
            data = await self._call([prompt])
            if not isinstance(data, list):
                raise InsightError("Checklist response is not a JSON array")
        except InsightError as e:
            log.warning(f"Checklist generation failed for '{action}': {e}")
            return [self.settings.checklist_placeholder]
        return [str(item) for item in data]

    @staticmethod
    def _parse_candidates(data: Any) -> List[ExtractedExperience]:
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise InsightError("Extraction response is not a JSON array")
        try:
            return list(ExtractionResponse.model_validate(data))
        except ValidationError as e:
            raise InsightError(f"Extraction response failed validation: {e.error_count()} errors") from e

    async def extract_from_file(self, data: bytes, mime_type: str) -> List[ExtractedExperience]:
        prompt = prompts.FILE_EXTRACTION_PROMPT.format(categories=list(CATEGORIES))
        log.info(f"Extracting experiences from {mime_type} file ({len(data)} bytes)")
        candidates = self._parse_candidates(await self._call([InlineData(data, mime_type), prompt]))
        log.info(f"Extracted {len(candidates)} candidate experiences from file")
        return candidates

    async def extract_from_url(self, url: str) -> List[ExtractedExperience]:
        url = validate_import_url(url)
        prompt = prompts.URL_EXTRACTION_PROMPT.format(categories=list(CATEGORIES))
        log.info(f"Extracting experiences from {url}")
        data = await self._call([prompt, f"URL: {url}"], json_response=False, url_context=True)
        candidates = self._parse_candidates(data)
        log.info(f"Extracted {len(candidates)} candidate experiences from URL")
        return candidates

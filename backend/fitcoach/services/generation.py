# fitcoach/services/generation.py
# Text generation boundary (OpenAI SDK, Gemini OpenAI-compatible endpoint by default)
# - every upstream reply shape is normalised to GenerationText here and nowhere else
# - no retries: max_retries=0 so a failed call surfaces to the caller once

from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel

from fitcoach.core.config import Settings
from fitcoach.services.errors import GenerationNotReady, UpstreamError

log = logging.getLogger(__name__)


class GenerationText(BaseModel):
    text: str


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _first(seq: Any) -> Any:
    if isinstance(seq, (list, tuple)) and seq:
        return seq[0]
    return None


def _text_of_part(part: Any) -> Optional[str]:
    # output item: {"text": "..."} | {"content": "..."} | {"content": [{"text": "..."}]}
    for key in ("text", "content"):
        val = _get(part, key)
        if isinstance(val, str):
            return val
        if isinstance(val, list):
            inner = _text_of_part(_first(val))
            if inner is not None:
                return inner
    return None


def _raw_text(rsp: Any) -> Optional[str]:
    text = _get(rsp, "text")
    if callable(text):
        try:
            text = text()
        except Exception as e:  # a broken accessor just means "no text here"
            log.warning("response.text() failed: %s", e)
            text = None
    if isinstance(text, str):
        return text

    output_text = _get(rsp, "output_text")
    if isinstance(output_text, str):
        return output_text

    for key in ("outputs", "output"):
        item = _first(_get(rsp, key))
        if item is not None:
            found = _text_of_part(item)
            if found is not None:
                return found

    choice = _first(_get(rsp, "choices"))
    if choice is not None:
        content = _get(_get(choice, "message"), "content")
        if isinstance(content, str):
            return content
    return None


def extract_text(rsp: Any) -> Optional[GenerationText]:
    """Map any known upstream response shape to GenerationText; None if no usable text."""
    if rsp is None:
        return None
    text = _raw_text(rsp)
    if not text or not text.strip():
        return None
    return GenerationText(text=text)


class GenerationClient:
    """Schema-constrained JSON generation over the chat completions API."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self._client = client
        self.model = model

    async def generate_json(
        self, prompt: str, schema: Dict[str, Any], schema_name: str = "generated_plan"
    ) -> Optional[GenerationText]:
        try:
            rsp = await self._client.chat.completions.create(
                model=self.model,
                temperature=0.4,
                messages=[{"role": "user", "content": prompt}],
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": schema_name, "schema": schema},
                },
            )
        except openai.APIError as e:
            log.error("generation request failed (model=%s): %s", self.model, e)
            raise UpstreamError("AI service request failed", details=str(e)) from e
        return extract_text(rsp)


def build_generation_client(settings: Settings) -> GenerationClient:
    api_key = settings.generation_api_key
    if not api_key:
        raise GenerationNotReady("GOOGLE_API_KEY / GENERATION_API_KEY not set")
    client = AsyncOpenAI(
        api_key=api_key,
        base_url=settings.GENERATION_BASE_URL or None,
        max_retries=0,
    )
    return GenerationClient(client, settings.GENERATION_MODEL)

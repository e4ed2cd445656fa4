# fitcoach/services/imagery.py
# Image generation (Gemini / Imagen REST) with a placeholder fallback, and an image search proxy
# - generation never raises: no key, upstream error, or no image data → placeholder URL
# - search raises ImageSearchFailed; the route turns it into a 500

from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from fitcoach.core.config import Settings
from fitcoach.services.errors import NonRetryableHTTPError, TransientNetwork
from fitcoach.services.retry import with_retries

log = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER_TEXT = "Error Generating Image"


class ImageSearchFailed(Exception):
    pass


def placeholder_url(settings: Settings, text: Optional[str]) -> str:
    label = (text or "").strip() or DEFAULT_PLACEHOLDER_TEXT
    return f"{settings.PLACEHOLDER_IMAGE_URL}?text={quote(label)}"


def _request_for(settings: Settings, model: str, prompt: str) -> Tuple[str, Dict[str, Any]]:
    base = settings.IMAGE_API_BASE.rstrip("/")
    if model == settings.GEMINI_IMAGE_MODEL:
        return f"{base}/{model}:generateContent", {
            "contents": [{"parts": [{"text": "Generate an image of: " + prompt}]}],
            "generationConfig": {"temperature": 0.4, "topK": 32, "topP": 1, "maxOutputTokens": 2048},
        }
    return f"{base}/{model}:predict", {
        "instances": [{"prompt": prompt}],
        "parameters": {"sampleCount": 1, "outputMimeType": "image/jpeg", "aspectRatio": "1:1"},
    }


def _image_data(model_is_gemini: bool, body: Dict[str, Any]) -> Optional[str]:
    try:
        if model_is_gemini:
            for part in body["candidates"][0]["content"]["parts"]:
                data = (part.get("inlineData") or {}).get("data")
                if data:
                    return data
            return None
        return body["predictions"][0].get("bytesBase64Encoded")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None


async def generate_image(http: httpx.AsyncClient, settings: Settings, prompt: Optional[str], model: Optional[str] = None) -> str:
    """Return a data: URL for the generated image, or a placeholder URL."""
    prompt = (prompt or "").strip()
    if not prompt:
        return placeholder_url(settings, None)

    api_key = settings.GOOGLE_API_KEY
    if not api_key:
        log.info("GOOGLE_API_KEY not set, returning placeholder image")
        return placeholder_url(settings, prompt)

    requested = model or settings.GEMINI_IMAGE_MODEL
    selected = settings.GEMINI_IMAGE_MODEL if requested == settings.GEMINI_IMAGE_MODEL else settings.IMAGEN_MODEL
    url, payload = _request_for(settings, selected, prompt)

    @with_retries(attempts=settings.RETRY_ATTEMPTS, base_delay=settings.RETRY_BASE_DELAY_S)
    async def _post() -> httpx.Response:
        return await http.post(url, json=payload, headers={"x-goog-api-key": api_key}, timeout=60)

    try:
        resp = await _post()
        body = resp.json()
    except (NonRetryableHTTPError, TransientNetwork, ValueError) as e:
        log.warning("image generation failed (model=%s): %s", selected, e)
        return placeholder_url(settings, prompt)

    data = _image_data(selected == settings.GEMINI_IMAGE_MODEL, body)
    if not data:
        log.warning("image generation returned no image data (model=%s)", selected)
        return placeholder_url(settings, prompt)
    return f"data:image/jpeg;base64,{data}"


async def search_image(http: httpx.AsyncClient, settings: Settings, query: str) -> str:
    # follow the source redirect and hand back the final image URL
    url = f"{settings.IMAGE_SEARCH_URL}?{quote(query)}"
    try:
        resp = await http.get(url, follow_redirects=True, timeout=20)
    except httpx.HTTPError as e:
        raise ImageSearchFailed(f"Failed to fetch image: {e}") from e
    if resp.is_error:
        raise ImageSearchFailed(f"Failed to fetch image: {resp.status_code} {resp.reason_phrase}")

    final = str(resp.url)
    if not final.startswith("http"):
        raise ImageSearchFailed("Invalid image URL received from image search")
    return final

"""
Google provider: Gemini for text and Imagen for images, over the
Generative Language REST API.
"""

from typing import Any, Dict, Optional

import httpx

from brasa.config import config
from brasa.errors import MalformedOutputError
from brasa.providers.base import (
    ImageGeneration,
    LLMProvider,
    TextGeneration,
    token_cost_credits,
)

API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_IMAGE_MODEL = "imagen-3.0-generate-002"
IMAGE_COST_CREDITS = 4

# USD per 1K tokens
TOKEN_COSTS = {
    "gemini-1.5-flash": {"input": 0.000075, "output": 0.0003},
    "gemini-1.5-pro": {"input": 0.00125, "output": 0.005},
    "gemini-2.0-flash": {"input": 0.0001, "output": 0.0004},
}


class GoogleProvider(LLMProvider):
    id = "google"
    label = "Google Gemini"
    supports_images = True

    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self._api_key = api_key
        self._client = client

    @property
    def api_key(self) -> str:
        return self._require_key(self._api_key or config.GOOGLE_API_KEY, "GOOGLE_API_KEY")

    async def _post(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        url = f"{API_BASE}/{path}"
        params = {"key": self.api_key}
        if self._client is not None:
            return await self._client.post(url, params=params, json=body)

        async with httpx.AsyncClient(timeout=config.PROVIDER_TIMEOUT_SECONDS) as client:
            return await client.post(url, params=params, json=body)

    async def generate_text(
        self,
        model: str,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> TextGeneration:
        model = model or DEFAULT_MODEL

        body: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature if temperature is not None else 0.7,
                "maxOutputTokens": max_tokens or 2048,
            },
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}

        response = await self._post(f"models/{model}:generateContent", body)
        if response.status_code >= 400:
            raise RuntimeError(f"Google text generation failed: {response.text}")

        data = response.json()
        candidates = data.get("candidates") or []
        parts = []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "\n".join(part.get("text", "") for part in parts)
        if not text:
            raise MalformedOutputError("Google provider returned empty response")

        usage = data.get("usageMetadata") or {}
        tokens_in = usage.get("promptTokenCount")
        tokens_out = usage.get("candidatesTokenCount")

        return TextGeneration(
            content=text,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_in_credits=await self.estimate_cost(model, tokens_in or 0, tokens_out or 0),
            raw=data,
        )

    async def generate_image(
        self,
        prompt: str,
        size: str = "1024x1024",
        model: Optional[str] = None,
    ) -> ImageGeneration:
        # All supported sizes are square
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {"sampleCount": 1, "aspectRatio": "1:1"},
        }

        response = await self._post(f"models/{model or DEFAULT_IMAGE_MODEL}:predict", body)
        if response.status_code == 404:
            raise RuntimeError("Image model not available. Try another provider.")
        if response.status_code >= 400:
            raise RuntimeError(f"Google image generation failed: {response.text}")

        predictions = response.json().get("predictions") or []
        encoded = predictions[0].get("bytesBase64Encoded") if predictions else None
        if not encoded:
            raise MalformedOutputError("Google provider did not return an image")

        mime_type = predictions[0].get("mimeType", "image/png")
        return ImageGeneration(
            url=f"data:{mime_type};base64,{encoded}",
            cost_in_credits=IMAGE_COST_CREDITS,
        )

    async def estimate_cost(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        return token_cost_credits(TOKEN_COSTS, DEFAULT_MODEL, model, prompt_tokens, completion_tokens)

"""
OpenAI provider: chat completions for text, Images API for pictures.
"""

from typing import Optional

from openai import AsyncOpenAI

from brasa.config import config
from brasa.errors import MalformedOutputError
from brasa.providers.base import (
    ImageGeneration,
    LLMProvider,
    TextGeneration,
    token_cost_credits,
)

DEFAULT_TEXT_MODEL = "gpt-4o-mini"
# dall-e-2 is the image model that accepts all three queue sizes
DEFAULT_IMAGE_MODEL = "dall-e-2"
IMAGE_COST_CREDITS = 5

# USD per 1K tokens
TOKEN_COSTS = {
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4.1": {"input": 0.002, "output": 0.008},
    "gpt-4.1-mini": {"input": 0.0004, "output": 0.0016},
}


class OpenAIProvider(LLMProvider):
    id = "openai"
    label = "OpenAI"
    supports_images = True

    def __init__(self, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            api_key = self._require_key(self._api_key or config.OPENAI_API_KEY, "OPENAI_API_KEY")
            self._client = AsyncOpenAI(api_key=api_key, timeout=config.PROVIDER_TIMEOUT_SECONDS)
        return self._client

    async def generate_text(
        self,
        model: str,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> TextGeneration:
        model = model or DEFAULT_TEXT_MODEL

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature if temperature is not None else 0.8,
            max_tokens=max_tokens or 2048,
        )

        message = response.choices[0].message.content if response.choices else None
        if not message:
            raise MalformedOutputError("OpenAI returned empty response")

        tokens_in = response.usage.prompt_tokens if response.usage else None
        tokens_out = response.usage.completion_tokens if response.usage else None

        return TextGeneration(
            content=message,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_in_credits=await self.estimate_cost(model, tokens_in or 0, tokens_out or 0),
            raw=response.model_dump(),
        )

    async def generate_image(
        self,
        prompt: str,
        size: str = "1024x1024",
        model: Optional[str] = None,
    ) -> ImageGeneration:
        response = await self.client.images.generate(
            model=model or DEFAULT_IMAGE_MODEL,
            prompt=prompt,
            size=size,
            n=1,
            response_format="url",
        )

        first = response.data[0] if response.data else None
        if first is None or not first.url:
            raise MalformedOutputError("OpenAI did not return image url")

        return ImageGeneration(
            url=first.url,
            revised_prompt=first.revised_prompt,
            cost_in_credits=IMAGE_COST_CREDITS,
        )

    async def estimate_cost(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        return token_cost_credits(TOKEN_COSTS, DEFAULT_TEXT_MODEL, model, prompt_tokens, completion_tokens)

"""
Anthropic provider (Claude) via LangChain. Text only: it has no image capability.
"""

from typing import Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage

from brasa.config import config
from brasa.errors import MalformedOutputError
from brasa.providers.base import LLMProvider, TextGeneration, token_cost_credits

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"

# USD per 1K tokens
TOKEN_COSTS = {
    "claude-3-5-haiku-20241022": {"input": 0.0008, "output": 0.004},
    "claude-3-5-sonnet-20241022": {"input": 0.003, "output": 0.015},
    "claude-3-opus-20240229": {"input": 0.015, "output": 0.075},
    "claude-sonnet-4-20250514": {"input": 0.003, "output": 0.015},
}


class AnthropicProvider(LLMProvider):
    id = "anthropic"
    label = "Anthropic Claude"
    supports_images = False

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key

    def _build_llm(self, model: str, temperature: float, max_tokens: int) -> ChatAnthropic:
        return ChatAnthropic(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            anthropic_api_key=self._require_key(
                self._api_key or config.ANTHROPIC_API_KEY, "ANTHROPIC_API_KEY"
            ),
            timeout=config.PROVIDER_TIMEOUT_SECONDS,
        )

    async def generate_text(
        self,
        model: str,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> TextGeneration:
        model = model or DEFAULT_MODEL
        llm = self._build_llm(
            model,
            temperature if temperature is not None else 0.7,
            max_tokens or 2048,
        )

        messages = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        response = await llm.ainvoke(messages)

        content = response.content
        if isinstance(content, list):
            # Content blocks: keep the text parts only
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        if not content:
            raise MalformedOutputError("Anthropic returned empty response")

        usage = getattr(response, "usage_metadata", None) or {}
        tokens_in = usage.get("input_tokens")
        tokens_out = usage.get("output_tokens")

        return TextGeneration(
            content=content,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_in_credits=await self.estimate_cost(model, tokens_in or 0, tokens_out or 0),
            raw=response.response_metadata,
        )

    async def estimate_cost(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        return token_cost_credits(TOKEN_COSTS, DEFAULT_MODEL, model, prompt_tokens, completion_tokens)

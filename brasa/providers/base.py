"""
Uniform capability interface over the AI backends.

Every provider generates text. Image generation and cost estimation are
optional capabilities: callers must check for them instead of assuming them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from brasa.errors import ProviderConfigError
from brasa.utils.logging import provider_logger as logger

# 1 credit ~= US$0.01
USD_PER_CREDIT = 0.01


@dataclass
class TextGeneration:
    content: str
    tokens_in: Optional[int] = None
    tokens_out: Optional[int] = None
    cost_in_credits: Optional[float] = None
    raw: Any = None


@dataclass
class ImageGeneration:
    url: str
    revised_prompt: Optional[str] = None
    cost_in_credits: Optional[float] = None


def usd_to_credits(usd: float) -> float:
    """Convert a USD amount into credits, rounded to cents, never below 1."""
    return max(1, round(usd / USD_PER_CREDIT, 2))


def token_cost_credits(
    costs: Dict[str, Dict[str, float]],
    default_model: str,
    model: str,
    prompt_tokens: int,
    completion_tokens: int,
) -> float:
    """Credits for a call given a per-1K-token USD price table."""
    cost_map = costs.get(model) or costs[default_model]
    usd = (prompt_tokens / 1000) * cost_map["input"] + (completion_tokens / 1000) * cost_map["output"]
    return usd_to_credits(usd)


class LLMProvider(ABC):
    """
    Base class for AI backends.

    Subclasses implement generate_text. Those that can produce images set
    supports_images and define generate_image(prompt, size, model=None);
    those that can price a call define estimate_cost(model, prompt_tokens,
    completion_tokens).
    """

    id: str = ""
    label: str = ""
    supports_images: bool = False

    @abstractmethod
    async def generate_text(
        self,
        model: str,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> TextGeneration:
        ...

    def _require_key(self, key: Optional[str], env_name: str) -> str:
        if not key:
            raise ProviderConfigError(f"{self.label} API key not configured. Set {env_name}.")
        return key


def image_capability(provider: LLMProvider) -> Optional[Callable]:
    """Return the provider's image generator, or None when it has none."""
    if not getattr(provider, "supports_images", False):
        return None
    return getattr(provider, "generate_image", None)


async def estimate_credits(
    provider: LLMProvider,
    model: str,
    prompt_tokens: int,
    completion_tokens: int,
    default: float,
) -> float:
    """Ask the provider for an estimate, falling back to `default` when it can't give one."""
    estimator = getattr(provider, "estimate_cost", None)
    if estimator is None:
        return default
    try:
        return await estimator(model=model, prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
    except Exception as e:
        logger.warning(
            "Cost estimate failed, using default",
            provider=provider.id,
            model=model,
            default=default,
            error=str(e),
        )
        return default

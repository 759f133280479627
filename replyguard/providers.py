"""
Completion providers for replyguard.

The core never prompts a model itself; it asks a CompletionProvider for a raw
reply and then shapes it. Real providers wrap the OpenAI and Anthropic SDKs;
EchoProvider returns a canned reply for dry runs and tests.
"""

import os
import time
import logging
from typing import Optional, Protocol

from replyguard.config import get_models
from replyguard.schemas import EngineMode

logger = logging.getLogger("replyguard.providers")

CORE_TIER = "core"
PREMIUM_TIER = "premium"

ANTHROPIC_MODELS = {
    CORE_TIER: "claude-3-5-haiku-latest",
    PREMIUM_TIER: "claude-3-5-sonnet-latest",
}


class ProviderError(RuntimeError):
    """The completion call failed."""


class CompletionProvider(Protocol):
    def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        model_tier_hint: str,
    ) -> str:
        ...


def model_tier_for(engine_mode: EngineMode, is_premium: bool) -> str:
    """Premium users and PREMIUM_DEEP replies use the premium model."""
    if is_premium or engine_mode == EngineMode.PREMIUM_DEEP:
        return PREMIUM_TIER
    return CORE_TIER


def model_for(tier: str, models: Optional[dict[str, str]] = None) -> str:
    models = models or get_models()
    return models.get(tier) or models[CORE_TIER]


class EchoProvider:
    """
    Offline provider.

    Returns ``reply`` when set, otherwise echoes the last user message.
    Records every call for inspection.
    """

    def __init__(self, reply: Optional[str] = None):
        self.reply = reply
        self.calls: list[dict] = []

    def complete(self, system_prompt: str, messages: list[dict], model_tier_hint: str) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": list(messages),
            "model_tier_hint": model_tier_hint,
        })
        if self.reply is not None:
            return self.reply
        for message in reversed(messages):
            if message.get("role") == "user":
                return f"I hear that: {message.get('content', '')}"
        return "I'm here. Tell me more?"


class OpenAIProvider:
    """
    OpenAI chat completions.

    Requires OPENAI_API_KEY environment variable.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[dict[str, str]] = None,
        temperature: float = 0.7,
        max_tokens: int = 800,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.models = models
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = None

    @property
    def client(self):
        if self._client is None:
            try:
                from openai import OpenAI
            except ImportError:
                raise ImportError("openai package required. Install with: pip install openai")
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def complete(self, system_prompt: str, messages: list[dict], model_tier_hint: str) -> str:
        model = model_for(model_tier_hint, self.models)
        payload = []
        if system_prompt:
            payload.append({"role": "system", "content": system_prompt})
        payload.extend(messages)

        start_time = time.time()
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=payload,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            raise ProviderError(f"OpenAI completion failed: {e}") from e

        logger.debug("openai model=%s latency_ms=%d", model, int((time.time() - start_time) * 1000))
        return response.choices[0].message.content or ""


class AnthropicProvider:
    """
    Anthropic messages API.

    Requires ANTHROPIC_API_KEY environment variable.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[dict[str, str]] = None,
        max_tokens: int = 800,
    ):
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.models = models or dict(ANTHROPIC_MODELS)
        self.max_tokens = max_tokens
        self._client = None

    @property
    def client(self):
        if self._client is None:
            try:
                from anthropic import Anthropic
            except ImportError:
                raise ImportError("anthropic package required. Install with: pip install anthropic")
            self._client = Anthropic(api_key=self.api_key)
        return self._client

    def complete(self, system_prompt: str, messages: list[dict], model_tier_hint: str) -> str:
        model = model_for(model_tier_hint, self.models)
        # System text goes in its own field
        turns = [m for m in messages if m.get("role") in ("user", "assistant")]

        start_time = time.time()
        try:
            response = self.client.messages.create(
                model=model,
                max_tokens=self.max_tokens,
                system=system_prompt or "",
                messages=turns,
            )
        except Exception as e:
            raise ProviderError(f"Anthropic completion failed: {e}") from e

        logger.debug("anthropic model=%s latency_ms=%d", model, int((time.time() - start_time) * 1000))
        return response.content[0].text if response.content else ""


def provider_from_env() -> CompletionProvider:
    """REPLYGUARD_PROVIDER=openai|anthropic picks a real provider; anything else echoes."""
    name = (os.getenv("REPLYGUARD_PROVIDER") or "").strip().lower()
    if name == "openai":
        return OpenAIProvider()
    if name == "anthropic":
        return AnthropicProvider()
    return EchoProvider()

"""Multi-provider LLM client used by the planner and the judge."""

import json
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from .config import LLMConfig
from .exceptions import LLMError, ProviderError
from .providers import PROVIDERS, ProviderResolver, ProviderSpec, select_model

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class LLMClient:
    """Call-and-get-text interface over heterogeneous chat-completion APIs.

    The provider is the first configured one (per the resolver) that offers
    at least one model; the model prefers "fast", then "mini" labels.
    No retries at this layer.

    Usage:
        client = LLMClient(EnvProviderResolver())
        text = await client.call("Say hi")
    """

    def __init__(
        self,
        resolver: ProviderResolver,
        config: Optional[LLMConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            resolver: Source of configured providers and their keys
            config: LLM settings (max tokens, request timeout)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.resolver = resolver
        self.config = config or LLMConfig()
        self._transport = transport

    def resolve_provider(self) -> Tuple[ProviderSpec, str, str]:
        """Pick provider, API key and model.

        Raises:
            LLMError: If nothing usable is configured
        """
        configured = self.resolver.configured_providers()
        logger.debug(f"Configured providers: {', '.join(configured) or 'none'}")

        provider = None
        for provider_id in configured:
            spec = PROVIDERS.get(provider_id)
            if spec and spec.type == "llm" and spec.models:
                provider = spec
                break

        if provider is None:
            raise LLMError("No LLM provider configured")

        api_key = self.resolver.get_key(provider.id)
        if not api_key:
            raise LLMError("Failed to retrieve API key for LLM")

        return provider, api_key, select_model(provider)

    async def call(self, prompt: str) -> str:
        """Send a single user prompt and return the model's text.

        Raises:
            ProviderError: On non-2xx responses
            LLMError: On configuration or network errors
        """
        provider, api_key, model = self.resolve_provider()
        url, headers, payload, params = self._build_request(provider, api_key, model, prompt)

        logger.debug(
            f"callLLM: provider={provider.id}, model={model}, prompt={len(prompt)} chars"
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(url, headers=headers, json=payload, params=params)
        except httpx.TimeoutException:
            raise LLMError(
                f"{provider.id} request timed out after {self.config.timeout_seconds}s"
            )
        except httpx.RequestError as e:
            raise LLMError(f"Network error calling {provider.id}: {e}")

        logger.debug(f"callLLM: {provider.id} response status={response.status_code}")

        if not response.is_success:
            body = response.text
            logger.warning(f"callLLM: {provider.id} error: {body[:300]}")
            raise ProviderError(provider.id, response.status_code, body, _error_message(body))

        try:
            data = response.json()
        except ValueError:
            return response.text

        return _extract_text(provider.api_style, data)

    def _build_request(
        self, provider: ProviderSpec, api_key: str, model: str, prompt: str
    ) -> Tuple[str, Dict[str, str], Dict[str, Any], Dict[str, str]]:
        max_tokens = self.config.max_tokens

        if provider.api_style == "anthropic":
            return (
                f"{provider.base_url}/messages",
                {
                    "Content-Type": "application/json",
                    "x-api-key": api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                },
                {
                    "model": model,
                    "max_tokens": max_tokens,
                    "messages": [{"role": "user", "content": prompt}],
                },
                {},
            )

        if provider.api_style == "gemini":
            return (
                f"{provider.base_url}/models/{model}:generateContent",
                {"Content-Type": "application/json"},
                {
                    "contents": [{"parts": [{"text": prompt}]}],
                    "generationConfig": {"maxOutputTokens": max_tokens},
                },
                {"key": api_key},
            )

        if provider.api_style == "openai":
            return (
                f"{provider.base_url}/chat/completions",
                {
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {api_key}",
                },
                {
                    "model": model,
                    "max_tokens": max_tokens,
                    "messages": [{"role": "user", "content": prompt}],
                },
                {},
            )

        raise LLMError(f"Unsupported provider: {provider.id}")


def _extract_text(api_style: str, data: Any) -> str:
    """Normalize provider response shapes to plain text.

    Falls back to the raw JSON when the expected path is empty.
    """
    text = None
    try:
        if api_style == "anthropic":
            text = data["content"][0]["text"]
        elif api_style == "gemini":
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        else:
            text = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        text = None

    return text or json.dumps(data)


def _error_message(body: str) -> str:
    """Pull ``error.message`` out of an error body when there is one."""
    try:
        data = json.loads(body)
    except ValueError:
        return body
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
    return body

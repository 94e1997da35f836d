"""LLM provider catalog and credential resolvers."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv

# Load .env from current directory or home
load_dotenv()
load_dotenv(Path.home() / ".env")


@dataclass(frozen=True)
class ModelOption:
    """A selectable model."""
    value: str
    label: str


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of an LLM provider.

    ``api_style`` decides the request/response shape: "anthropic",
    "gemini" or "openai" (OpenAI-compatible chat completions).
    """
    id: str
    name: str
    env_var: str
    api_style: str
    base_url: str
    models: List[ModelOption] = field(default_factory=list)
    type: str = "llm"


PROVIDERS: Dict[str, ProviderSpec] = {
    "anthropic": ProviderSpec(
        id="anthropic",
        name="Anthropic (Claude)",
        env_var="ANTHROPIC_API_KEY",
        api_style="anthropic",
        base_url="https://api.anthropic.com/v1",
        models=[
            ModelOption("claude-sonnet-4-20250514", "Claude Sonnet 4"),
            ModelOption("claude-opus-4-20250514", "Claude Opus 4"),
            ModelOption("claude-4-5-sonnet", "Claude 4.5 Sonnet"),
            ModelOption("claude-4-5-haiku", "Claude 4.5 Haiku (Fast)"),
        ],
    ),
    "openai": ProviderSpec(
        id="openai",
        name="OpenAI (GPT)",
        env_var="OPENAI_API_KEY",
        api_style="openai",
        base_url="https://api.openai.com/v1",
        models=[
            ModelOption("gpt-4o", "GPT-4o"),
            ModelOption("gpt-4o-mini", "GPT-4o Mini (Fast)"),
            ModelOption("gpt-4-turbo", "GPT-4 Turbo"),
        ],
    ),
    "groq": ProviderSpec(
        id="groq",
        name="Groq (Ultra-fast)",
        env_var="GROQ_API_KEY",
        api_style="openai",
        base_url="https://api.groq.com/openai/v1",
        models=[
            ModelOption("llama-3.3-70b-versatile", "Llama 3.3 70B"),
            ModelOption("llama-3.1-8b-instant", "Llama 3.1 8B (Instant)"),
            ModelOption("mixtral-8x7b-32768", "Mixtral 8x7B"),
        ],
    ),
    "gemini": ProviderSpec(
        id="gemini",
        name="Google (Gemini)",
        env_var="GEMINI_API_KEY",
        api_style="gemini",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        models=[
            ModelOption("gemini-2.0-flash", "Gemini 2.0 Flash"),
            ModelOption("gemini-1.5-pro", "Gemini 1.5 Pro"),
            ModelOption("gemini-1.5-flash", "Gemini 1.5 Flash"),
        ],
    ),
    "fireworks": ProviderSpec(
        id="fireworks",
        name="Fireworks AI",
        env_var="FIREWORKS_API_KEY",
        api_style="openai",
        base_url="https://api.fireworks.ai/inference/v1",
        models=[
            ModelOption("accounts/fireworks/models/llama-v3p3-70b-instruct", "Llama 3.3 70B"),
            ModelOption("accounts/fireworks/models/deepseek-v3", "DeepSeek V3"),
            ModelOption("accounts/fireworks/models/qwen2p5-72b-instruct", "Qwen 2.5 72B"),
        ],
    ),
    "xai": ProviderSpec(
        id="xai",
        name="xAI (Grok)",
        env_var="XAI_API_KEY",
        api_style="openai",
        base_url="https://api.x.ai/v1",
        models=[
            ModelOption("grok-2-latest", "Grok 2"),
            ModelOption("grok-beta", "Grok Beta"),
        ],
    ),
    "moonshot": ProviderSpec(
        id="moonshot",
        name="Moonshot AI (Kimi)",
        env_var="MOONSHOT_API_KEY",
        api_style="openai",
        base_url="https://api.moonshot.cn/v1",
        models=[
            ModelOption("moonshot-v1-128k", "Moonshot V1 128K"),
            ModelOption("moonshot-v1-32k", "Moonshot V1 32K"),
        ],
    ),
    "together": ProviderSpec(
        id="together",
        name="Together AI",
        env_var="TOGETHER_API_KEY",
        api_style="openai",
        base_url="https://api.together.xyz/v1",
        models=[
            ModelOption("meta-llama/Llama-3.3-70B-Instruct-Turbo", "Llama 3.3 70B"),
            ModelOption("deepseek-ai/DeepSeek-R1", "DeepSeek R1"),
            ModelOption("deepseek-ai/DeepSeek-V3", "DeepSeek V3"),
        ],
    ),
    "venice": ProviderSpec(
        id="venice",
        name="Venice AI",
        env_var="VENICE_API_KEY",
        api_style="openai",
        base_url="https://api.venice.ai/api/v1",
        models=[
            ModelOption("llama-3.3-70b", "Llama 3.3 70B"),
        ],
    ),
}


def select_model(provider: ProviderSpec) -> Optional[str]:
    """Pick a cheap model: label with "fast", then "mini", then the first one."""
    for hint in ("fast", "mini"):
        for model in provider.models:
            if hint in model.label.lower():
                return model.value
    return provider.models[0].value if provider.models else None


class ProviderResolver(ABC):
    """Tells the LLM client which providers have credentials."""

    @abstractmethod
    def configured_providers(self) -> List[str]:
        """Provider ids with a stored key, in preference order."""

    @abstractmethod
    def get_key(self, provider_id: str) -> Optional[str]:
        """Decrypted API key for a provider, or None."""


class EnvProviderResolver(ProviderResolver):
    """Resolve provider keys from environment variables.

    Keys come from each provider's ``env_var`` (e.g. ``GROQ_API_KEY``).
    ``order`` sets preference; providers not listed keep catalog order
    after the listed ones.
    """

    def __init__(
        self,
        order: Optional[List[str]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.order = list(order or [])
        self._environ = environ if environ is not None else os.environ

    def configured_providers(self) -> List[str]:
        ordered = self.order + [pid for pid in PROVIDERS if pid not in self.order]
        return [pid for pid in ordered if self.get_key(pid)]

    def get_key(self, provider_id: str) -> Optional[str]:
        spec = PROVIDERS.get(provider_id)
        if spec is None:
            return None
        return self._environ.get(spec.env_var) or None


class StaticProviderResolver(ProviderResolver):
    """Resolver over a fixed mapping, mainly for tests and embedding."""

    def __init__(self, keys: Dict[str, str]):
        self._keys = dict(keys)

    def configured_providers(self) -> List[str]:
        return list(self._keys)

    def get_key(self, provider_id: str) -> Optional[str]:
        return self._keys.get(provider_id)

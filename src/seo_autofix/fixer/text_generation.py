"""Text generation providers with priority ordering and single fallback.

Providers are tried in a fixed priority order (Anthropic, then OpenAI). A
provider is available when its API key is configured. ``generate`` calls the
highest-priority available provider and, if that call fails, retries once
against the next available provider before giving up.

All raw output should pass through ``clean_ai_response``; ``extract_json``
pulls the first balanced JSON object out of a response.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

import anthropic
import openai

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)


class TextGenerationError(Exception):
    """No provider could produce text."""
    pass


class TextProvider(ABC):
    """A single text-generation backend."""

    name: str
    priority: int

    @abstractmethod
    def is_available(self) -> bool:
        """Whether credentials for this provider are configured."""
        pass

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Return the raw completion text. Raises on any failure."""
        pass


class AnthropicProvider(TextProvider):
    """Claude models via the Anthropic SDK."""

    name = "claude"
    priority = 1

    def __init__(self, api_key: Optional[str] = None, model: str = "claude-3-5-sonnet-latest"):
        self.api_key = api_key
        self.model = model
        self._client: Optional[anthropic.Anthropic] = None

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> anthropic.Anthropic:
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def complete(self, system_prompt, user_prompt, max_tokens, temperature) -> str:
        if not self.api_key:
            raise TextGenerationError("Anthropic API not available")
        message = self._get_client().messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        block = message.content[0]
        return block.text if block.type == "text" else ""


class OpenAIProvider(TextProvider):
    """OpenAI chat completion models."""

    name = "openai"
    priority = 2

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini"):
        self.api_key = api_key
        self.model = model
        self._client: Optional[openai.OpenAI] = None

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> openai.OpenAI:
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    def complete(self, system_prompt, user_prompt, max_tokens, temperature) -> str:
        if not self.api_key:
            raise TextGenerationError("OpenAI API not available")
        response = self._get_client().chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""


class TextGenerator:
    """Uniform ``generate`` call over the configured providers."""

    def __init__(self, providers: list[TextProvider]):
        self.providers = sorted(providers, key=lambda p: p.priority)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TextGenerator":
        settings = settings or get_settings()
        return cls([
            AnthropicProvider(settings.anthropic_api_key, settings.anthropic_model),
            OpenAIProvider(settings.openai_api_key, settings.openai_model),
        ])

    def available_providers(self) -> list[TextProvider]:
        return [p for p in self.providers if p.is_available()]

    def is_available(self) -> bool:
        return bool(self.available_providers())

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> str:
        """Generate text, falling back to the next provider exactly once.

        Raises:
            TextGenerationError: when no provider is available or both
                attempts fail
        """
        available = self.available_providers()
        if not available:
            raise TextGenerationError("No text generation providers available")

        primary = available[0]
        try:
            return primary.complete(system_prompt, user_prompt, max_tokens, temperature)
        except Exception as e:
            if len(available) < 2:
                raise TextGenerationError(f"{primary.name} failed: {e}") from e
            fallback = available[1]
            logger.warning(f"{primary.name} failed ({e}), falling back to {fallback.name}")
            try:
                return fallback.complete(system_prompt, user_prompt, max_tokens, temperature)
            except Exception as fallback_error:
                raise TextGenerationError(
                    f"{primary.name} failed: {e}; {fallback.name} failed: {fallback_error}"
                ) from fallback_error


# ---------------------------------------------------------------------------
# Response cleaning
# ---------------------------------------------------------------------------

_PREAMBLE_RE = re.compile(
    r"^\s*(sure|certainly|of course|here's|here is|i've|i have)\b[^{\[\n]*[\n:]\s*",
    re.IGNORECASE,
)
_FENCE_OPEN_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")
_QUOTES = "\"'`“”‘’"


def clean_ai_response(content: Optional[str]) -> str:
    """Strip conversational preambles, code fences and surrounding quotes."""
    if not content:
        return ""
    cleaned = _PREAMBLE_RE.sub("", content, count=1)
    cleaned = _FENCE_OPEN_RE.sub("", cleaned, count=1)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned, count=1)
    return cleaned.strip().strip(_QUOTES).strip()


def _balanced_object_at(text: str, start: int) -> Optional[str]:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def extract_json(content: Optional[str]) -> Optional[dict]:
    """Return the first balanced ``{...}`` block that parses as JSON."""
    if not content:
        return None
    start = content.find("{")
    while start != -1:
        candidate = _balanced_object_at(content, start)
        if candidate is not None:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                return parsed
        start = content.find("{", start + 1)
    return None

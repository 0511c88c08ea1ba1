"""Inference client for Anthropic and OpenAI-compatible servers."""

import logging
import os
from typing import Any, Literal

import openai
from anthropic import Anthropic, APIConnectionError, APIStatusError, APITimeoutError

from doc_bot.agents.exceptions import (
    InvalidResponseError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from doc_bot.models import AIServerConfig, InferenceResponse

logger = logging.getLogger(__name__)

# Constants
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
LOCAL_API_KEY = "not-needed"  # Ollama and similar servers ignore the key


class InferenceClient:
    """Sends one prompt and returns text plus token counters.

    Retry and backoff are left to the provider SDKs. Failures surface as
    ProviderError subclasses so the caller can end the file cleanly.
    """

    def __init__(
        self,
        config: AIServerConfig | None = None,
        anthropic_api_key: str | None = None,
        openai_api_key: str | None = None,
    ) -> None:
        self.config = config or AIServerConfig()
        self.model: str = self.config.model_name
        self.api_key: str | None = (
            anthropic_api_key
            or os.getenv("ANTHROPIC_API_KEY")
            or os.getenv("CLAUDE_CODE_OAUTH_TOKEN")
        )
        self.openai_api_key: str | None = openai_api_key or os.getenv("OPENAI_API_KEY")
        self._anthropic_client: Anthropic | None = None
        self._openai_client: openai.OpenAI | None = None

        timeout = float(self.config.timeout_seconds)
        if self.api_key:
            self._anthropic_client = Anthropic(api_key=self.api_key, timeout=timeout)
        if self.openai_api_key or self.config.base_url:
            self._openai_client = openai.OpenAI(
                api_key=self.openai_api_key or LOCAL_API_KEY,
                base_url=self.config.base_url,
                timeout=timeout,
            )

        if not (self._anthropic_client or self._openai_client):
            raise ProviderUnavailableError(
                "No inference provider configured. Provide ANTHROPIC_API_KEY, "
                "OPENAI_API_KEY, or a base_url for an OpenAI-compatible server."
            )
        self._validate_provider_config()

    @property
    def server_url(self) -> str:
        if self._primary_provider() == "openai":
            return self.config.base_url or "https://api.openai.com/v1"
        return "https://api.anthropic.com"

    def _validate_provider_config(self) -> None:
        provider = self.config.provider
        if provider == "anthropic" and self._anthropic_client is None:
            raise ProviderUnavailableError("No Anthropic API key found for provider=anthropic.")
        if provider == "openai" and self._openai_client is None:
            raise ProviderUnavailableError(
                "No OpenAI API key or base_url found for provider=openai."
            )
        fallback = self.config.fallback_provider
        if self.config.allow_fallback and fallback:
            if fallback == "anthropic" and self._anthropic_client is None:
                raise ProviderUnavailableError(
                    "Fallback provider requested as anthropic but ANTHROPIC_API_KEY is not set."
                )
            if fallback == "openai" and self._openai_client is None:
                raise ProviderUnavailableError(
                    "Fallback provider requested as openai but no OpenAI client is configured."
                )

    def _primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.config.provider == "auto":
            if self._anthropic_client is not None:
                return "anthropic"
            return "openai"
        return self.config.provider

    def _resolve_model(self, provider: str) -> str:
        if provider == "openai" and self.model.startswith("claude-") and not self.config.base_url:
            return DEFAULT_OPENAI_MODEL
        return self.model

    def _provider_chain(self) -> list[str]:
        chain: list[str] = [self._primary_provider()]
        fallback = self.config.fallback_provider
        if self.config.allow_fallback and fallback and fallback != chain[0]:
            chain.append(fallback)
        return chain

    def generate(self, prompt: str) -> InferenceResponse:
        """Send a prompt through the provider chain.

        Args:
            prompt: Complete prompt text.

        Returns:
            InferenceResponse with the text and token counts.

        Raises:
            ProviderTimeoutError: If the last provider tried timed out.
            ProviderUnavailableError: If no provider could be reached.
            InvalidResponseError: If a provider answered with no text.
        """
        if not prompt.strip():
            raise InvalidResponseError("Prompt cannot be empty")

        providers = self._provider_chain()
        last_error: ProviderError | None = None
        for index, provider in enumerate(providers):
            try:
                if provider == "anthropic":
                    return self._call_anthropic(prompt)
                return self._call_openai(prompt)
            except ProviderError as error:
                last_error = error
                if index < len(providers) - 1:
                    logger.warning(
                        "Provider %s failed (%s); falling back to %s",
                        provider,
                        error,
                        providers[index + 1],
                    )

        raise last_error

    def _call_anthropic(self, prompt: str) -> InferenceResponse:
        if not self._anthropic_client:
            raise ProviderUnavailableError("Anthropic client unavailable")
        model = self._resolve_model("anthropic")
        try:
            response = self._anthropic_client.messages.create(
                model=model,
                max_tokens=self.config.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except APITimeoutError as e:
            raise ProviderTimeoutError(f"Anthropic request timed out: {e}") from e
        except (APIConnectionError, APIStatusError) as e:
            raise ProviderUnavailableError(f"Anthropic request failed: {e}") from e

        text = "".join(
            getattr(block, "text", "")
            for block in response.content
            if getattr(block, "type", "") == "text"
        )
        if not text.strip():
            raise InvalidResponseError("Anthropic response contained no text")
        usage = getattr(response, "usage", None)
        return InferenceResponse(
            text=text,
            prompt_tokens=getattr(usage, "input_tokens", 0) or 0,
            response_tokens=getattr(usage, "output_tokens", 0) or 0,
            model=model,
            provider="anthropic",
        )

    def _call_openai(self, prompt: str) -> InferenceResponse:
        if not self._openai_client:
            raise ProviderUnavailableError("OpenAI client unavailable")
        model = self._resolve_model("openai")
        try:
            response = self._openai_client.chat.completions.create(
                model=model,
                max_tokens=self.config.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(f"OpenAI request timed out: {e}") from e
        except (openai.APIConnectionError, openai.APIStatusError) as e:
            raise ProviderUnavailableError(f"OpenAI request failed: {e}") from e

        text = self._openai_text(response)
        if not text.strip():
            raise InvalidResponseError("OpenAI response contained no text")
        usage = getattr(response, "usage", None)
        return InferenceResponse(
            text=text,
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            response_tokens=getattr(usage, "completion_tokens", 0) or 0,
            model=model,
            provider="openai",
        )

    @staticmethod
    def _openai_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        return getattr(choices[0].message, "content", None) or ""

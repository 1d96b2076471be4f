"""Chat completions through LiteLLM.

Two models are used: the intent model, called in JSON mode to classify chat
messages, and the response model, which phrases replies. Either can run on
OpenAI or on a local OpenAI-compatible server (Ollama, LMStudio); LiteLLM
routes on the ``provider/`` prefix of the model name.

Every request carries the configured timeout. A failed call raises an
LLMError subclass and is never retried or sent to another model.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
import litellm
from pydantic import BaseModel

from qbd_assistant.core.config import settings

logger = logging.getLogger(__name__)

litellm.set_verbose = False


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    OLLAMA = "ollama"
    LMSTUDIO = "lmstudio"


class Message(BaseModel):
    """Chat message model."""
    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class LLMConfig:
    """Configuration for LLM service.

    Attributes:
        default_provider: Provider for model names without a prefix
        intent_model: Model used to classify chat messages
        response_model: Model used to phrase replies
        openai_api_key: OpenAI API key (optional)
        ollama_url: Ollama API base URL
        lmstudio_url: LMStudio API base URL
        timeout: Request timeout in seconds
    """
    default_provider: str = "openai"
    intent_model: str = "gpt-4o-2024-08-06"
    response_model: str = "gpt-4o-mini"
    openai_api_key: Optional[str] = None
    ollama_url: str = "http://localhost:11434"
    lmstudio_url: str = "http://localhost:1234/v1"
    timeout: float = 60.0

    @classmethod
    def from_settings(cls) -> "LLMConfig":
        """Build the config from application settings."""
        return cls(
            default_provider=settings.default_llm_provider,
            intent_model=settings.intent_model,
            response_model=settings.response_model,
            openai_api_key=settings.openai_api_key or None,
            ollama_url=settings.ollama_url,
            lmstudio_url=settings.lmstudio_url,
            timeout=settings.llm_timeout,
        )


@dataclass(frozen=True)
class Route:
    """Where a completion request goes."""
    model: str
    api_base: Optional[str] = None
    api_key: Optional[str] = None


# =============================================================================
# Exceptions
# =============================================================================


class LLMError(Exception):
    """Base exception for LLM errors."""
    pass


class LLMConnectionError(LLMError):
    """Raised when the provider cannot be reached."""
    pass


class LLMModelNotFoundError(LLMError):
    """Raised when the requested model is not available."""
    pass


class LLMProviderError(LLMError):
    """Raised when the provider rejects the request."""
    pass


class LLMTimeoutError(LLMError):
    """Raised when the request exceeds the configured timeout."""
    pass


def translate_error(exc: Exception, timeout: float) -> LLMError:
    """Map a LiteLLM (or asyncio) exception onto the LLMError hierarchy."""
    if isinstance(exc, LLMError):
        return exc
    # Timeout subclasses APIConnectionError in some LiteLLM versions
    if isinstance(exc, (litellm.exceptions.Timeout, asyncio.TimeoutError)):
        return LLMTimeoutError(f"Request timed out after {timeout}s: {exc}")
    if isinstance(exc, litellm.exceptions.NotFoundError):
        return LLMModelNotFoundError(f"Model not found: {exc}")
    if isinstance(exc, litellm.exceptions.AuthenticationError):
        return LLMProviderError(f"Authentication failed: {exc}")
    if isinstance(exc, litellm.exceptions.RateLimitError):
        return LLMProviderError(f"Rate limited: {exc}")
    if isinstance(exc, litellm.exceptions.APIConnectionError):
        return LLMConnectionError(f"Connection failed: {exc}")
    if isinstance(exc, litellm.exceptions.APIError):
        return LLMProviderError(f"API error: {exc}")
    return LLMError(f"LLM request failed: {exc}")


# =============================================================================
# LLM Service
# =============================================================================


class LLMService:
    """Send chat completions to the configured provider.

    Example:
        ```python
        async with LLMService(LLMConfig.from_settings()) as llm:
            text = await llm.chat(
                [Message(role="user", content="Show me all items")],
                model=llm.config.intent_model,
                temperature=0.0,
                response_format={"type": "json_object"},
            )
        ```
    """

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig.from_settings()
        # Only used by health_check; completions go through LiteLLM
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout))
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "LLMService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def route(self, model: Optional[str] = None) -> Route:
        """Resolve a model name to its LiteLLM model, API base and key.

        Unprefixed names get the default provider's prefix: ``ollama/`` for
        Ollama, ``openai/`` for OpenAI and for LMStudio's OpenAI-compatible
        server. Local servers get their API base; OpenAI gets the API key.

        Args:
            model: Model name, defaults to the response model
        """
        name = model or self.config.response_model
        provider = self.config.default_provider.lower()

        if "/" not in name:
            prefix = "ollama" if provider == LLMProvider.OLLAMA.value else "openai"
            name = f"{prefix}/{name}"

        if name.startswith("ollama/"):
            return Route(model=name, api_base=self.config.ollama_url)
        if name.startswith("openai/") and provider == LLMProvider.LMSTUDIO.value:
            return Route(model=name, api_base=self.config.lmstudio_url)
        if name.startswith("openai/"):
            return Route(model=name, api_key=self.config.openai_api_key)
        return Route(model=name)

    async def chat(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Run one chat completion.

        Args:
            messages: Conversation to send
            model: Model name, defaults to the response model
            temperature: Sampling temperature
            max_tokens: Completion token limit
            response_format: e.g. ``{"type": "json_object"}`` for JSON mode

        Returns:
            The completion text, empty when the provider returned no choice

        Raises:
            LLMTimeoutError: If the request timed out
            LLMConnectionError: If the provider could not be reached
            LLMModelNotFoundError: If the model is not available
            LLMProviderError: If the provider rejected the request
            LLMError: For any other failure
        """
        route = self.route(model)
        kwargs: Dict[str, Any] = {
            "model": route.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "timeout": self.config.timeout,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        if response_format:
            kwargs["response_format"] = response_format
        if route.api_base:
            kwargs["api_base"] = route.api_base
        if route.api_key:
            kwargs["api_key"] = route.api_key

        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            error = translate_error(e, self.config.timeout)
            logger.error(f"Completion with {route.model} failed: {error}")
            raise error from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def health_check(self) -> Dict[str, bool]:
        """Check that the configured provider answers.

        Returns:
            ``{provider: reachable}``; OpenAI without an API key is unreachable
        """
        provider = self.config.default_provider.lower()
        if provider == LLMProvider.OLLAMA.value:
            url, headers = f"{self.config.ollama_url}/api/tags", {}
        elif provider == LLMProvider.LMSTUDIO.value:
            url, headers = f"{self.config.lmstudio_url}/models", {}
        elif self.config.openai_api_key:
            url = "https://api.openai.com/v1/models"
            headers = {"Authorization": f"Bearer {self.config.openai_api_key}"}
        else:
            return {provider: False}

        try:
            client = await self._get_http_client()
            response = await client.get(url, headers=headers, timeout=5.0)
        except httpx.HTTPError as e:
            logger.debug(f"{provider} health check failed: {e}")
            return {provider: False}
        return {provider: response.status_code == 200}

"""
Text-generation backends used to write changelogs.

Four providers are supported: Gemini, OpenAI, Anthropic and a local Ollama
server. Each implements ``generate``; the changelog prompt is shared.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, Optional

import httpx

from gazette.config import Settings
from gazette.models import AIProvider
from gazette.services.errors import ConfigurationError, DecodeError, UpstreamError

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MAX_TOKENS = 4096
OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_TEMPERATURE = 0.7
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
OLLAMA_DEFAULT_HOST = "http://localhost:11434"

CHANGELOG_PROMPT = """You are a technical writer. Generate a concise markdown changelog for the repository "{repo_name}" based on the following Pull Request information merged in the {time_period}.

The changelog should:
- Have a header with the repository name and today's date ({today})
- Group changes by category (Features, Bug Fixes, Improvements, etc.) if applicable
- Be concise but informative
- Include PR numbers as clickable markdown links using the provided URLs (e.g., [#123](url))
- If Jira ticket context is available, include the Jira ticket ID as a clickable markdown link using the provided Jira URL (e.g., [SSD-1234](jira_url))

PR Information:
{prs_context}

Generate only the markdown content, with short explanation about each change."""


def _embedded_error(payload: Dict[str, Any]) -> Optional[str]:
    """Error message embedded in a JSON body, as a string or an object with a message."""
    error = payload.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


class LLMClient(ABC):
    """Common interface for all text-generation backends."""

    provider: AIProvider
    service_name: str

    def __init__(
        self,
        model: str,
        timeout: float = 300,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.model = model
        self.timeout = timeout
        self.transport = transport

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Generate text from a prompt.

        Returns:
            str: Generated text, empty if the provider returned none

        Raises:
            UpstreamError: On non-success status or an embedded error payload
            DecodeError: If the response body is not the expected JSON shape
        """

    async def generate_changelog(self, repo_name: str, prs_context: str, time_period: str) -> str:
        """
        Generate a markdown changelog from aggregated PR information.

        Args:
            repo_name: Repository full name ("owner/name")
            prs_context: Formatted PR and ticket context
            time_period: Human-readable window description, e.g. "last 24 hours"
        """
        prompt = CHANGELOG_PROMPT.format(
            repo_name=repo_name,
            time_period=time_period,
            today=date.today().isoformat(),
            prs_context=prs_context,
        )
        logger.info(f"Generating changelog for {repo_name} with {self.provider.short_name} ({self.model})")
        return await self.generate(prompt)

    async def _post_json(
        self,
        url: str,
        body: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST a JSON body and return the decoded JSON object, raising on errors."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Network error calling {self.service_name}: {e}")
            raise UpstreamError(self.service_name, f"Failed to send request to {self.service_name} API: {e}")

        if not response.is_success:
            raise UpstreamError(
                self.service_name, response.text, upstream_status=response.status_code, body=response.text
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(self.service_name, str(e))
        if not isinstance(payload, dict):
            raise DecodeError(self.service_name, "expected a JSON object")

        message = _embedded_error(payload)
        if message:
            raise UpstreamError(self.service_name, message, body=response.text)

        return payload


class AnthropicClient(LLMClient):
    """Anthropic Messages API client."""

    provider = AIProvider.ANTHROPIC
    service_name = "Anthropic"

    def __init__(self, model: str, api_key: str, **kwargs):
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not found in environment")
        super().__init__(model, **kwargs)
        self.api_key = api_key

    async def generate(self, prompt: str) -> str:
        body = {
            "model": self.model,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        payload = await self._post_json(ANTHROPIC_API_URL, body, headers)

        try:
            blocks = payload.get("content") or []
            return "".join(
                block.get("text") or ""
                for block in blocks
                if block.get("type") == "text"
            )
        except (AttributeError, TypeError) as e:
            raise DecodeError(self.service_name, f"unexpected content blocks ({e})")


class OpenAIClient(LLMClient):
    """OpenAI Chat Completions API client."""

    provider = AIProvider.OPENAI
    service_name = "OpenAI"

    def __init__(self, model: str, api_key: str, **kwargs):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY not found in environment")
        super().__init__(model, **kwargs)
        self.api_key = api_key

    async def generate(self, prompt: str) -> str:
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": OPENAI_TEMPERATURE,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = await self._post_json(OPENAI_API_URL, body, headers)

        try:
            choices = payload.get("choices") or []
            if not choices:
                return ""
            return choices[0]["message"].get("content") or ""
        except (KeyError, AttributeError, TypeError) as e:
            raise DecodeError(self.service_name, f"unexpected choices ({e})")


class GeminiClient(LLMClient):
    """Google Gemini generateContent API client."""

    provider = AIProvider.GEMINI
    service_name = "Gemini"

    def __init__(self, model: str, api_key: str, **kwargs):
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY not found in environment")
        super().__init__(model, **kwargs)
        self.api_key = api_key

    async def generate(self, prompt: str) -> str:
        url = f"{GEMINI_API_URL}/{self.model}:generateContent?key={self.api_key}"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        payload = await self._post_json(url, body)

        try:
            candidates = payload.get("candidates") or []
            if not candidates:
                return ""
            content = candidates[0].get("content") or {}
            return "".join(part.get("text") or "" for part in content.get("parts") or [])
        except (AttributeError, TypeError) as e:
            raise DecodeError(self.service_name, f"unexpected candidates ({e})")


class OllamaClient(LLMClient):
    """Client for a local Ollama server."""

    provider = AIProvider.OLLAMA
    service_name = "Ollama"

    def __init__(self, model: str, host: str = OLLAMA_DEFAULT_HOST, **kwargs):
        super().__init__(model, **kwargs)
        self.host = (host or OLLAMA_DEFAULT_HOST).rstrip("/")

    async def generate(self, prompt: str) -> str:
        body = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        payload = await self._post_json(f"{self.host}/api/generate", body)
        return payload.get("response") or ""

    async def list_models(self) -> list:
        """Names of locally available models, used by the health check."""
        async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
            response = await client.get(f"{self.host}/api/tags")
            response.raise_for_status()
            return [model.get("name", "unknown") for model in response.json().get("models", [])]


def create_llm_client(
    provider: AIProvider,
    model: str,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> LLMClient:
    """
    Create the client for the configured provider.

    An empty model name selects the provider's default model.

    Raises:
        ConfigurationError: If the provider's API key is not configured
    """
    model = model or provider.default_model
    options = {"timeout": settings.LLM_TIMEOUT_SECONDS, "transport": transport}
    api_key = settings.get_api_key(provider)

    if provider == AIProvider.ANTHROPIC:
        return AnthropicClient(model, api_key=api_key, **options)
    if provider == AIProvider.OPENAI:
        return OpenAIClient(model, api_key=api_key, **options)
    if provider == AIProvider.GEMINI:
        return GeminiClient(model, api_key=api_key, **options)
    return OllamaClient(model, host=settings.OLLAMA_HOST, **options)

"""
LLM adapter - talks to the chat proxy endpoint

The proxy holds the upstream contract (model, limits, error normalization);
this adapter only shapes requests and turns proxy errors into exceptions.
"""

import logging
from typing import List, Dict, Any, Optional

import httpx

from core.environment import Settings, load_settings
from services.error_types import ConfigurationError, LLMServiceError, InvalidAIResponseError

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class LLMService:
    """Completion client for the audit pipeline and the chat assistant"""

    def __init__(self, settings: Optional[Settings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: float = 180.0):
        self.settings = settings or load_settings()
        self._transport = transport
        self._timeout = timeout

    @property
    def chat_url(self) -> str:
        return self.settings.chat_proxy_url

    @property
    def files_url(self) -> str:
        base = self.chat_url.rstrip("/")
        if base.endswith("/chat"):
            base = base[: -len("/chat")]
        return f"{base}/files"

    def _api_key(self, api_key: Optional[str]) -> str:
        key = api_key or self.settings.deepseek_api_key
        if not key or not key.strip():
            raise ConfigurationError("DEEPSEEK_API_KEY is not configured")
        return key

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise LLMServiceError(f"LLM proxy unreachable: {e}", {"url": url})

        try:
            data = response.json()
        except ValueError:
            raise LLMServiceError(
                f"LLM proxy returned invalid JSON (status {response.status_code})",
                {"status": response.status_code, "body": response.text[:500]},
            )

        if response.status_code >= 400 or (isinstance(data, dict) and "error" in data):
            error = data.get("error", {}) if isinstance(data, dict) else {}
            if isinstance(error, str):
                error = {"message": error}
            raise LLMServiceError(
                error.get("message") or f"LLM proxy request failed with status {response.status_code}",
                {"type": error.get("type", "proxy_error"), "status": response.status_code},
            )

        if not isinstance(data, dict):
            raise LLMServiceError("LLM proxy returned an unexpected payload")
        return data

    async def complete(self, messages: List[Message], api_key: Optional[str] = None) -> str:
        """
        Run a chat completion through the proxy

        Returns:
            The assistant content string

        Raises:
            ConfigurationError: no API key available
            LLMServiceError: proxy or upstream failure
            InvalidAIResponseError: empty content
        """
        payload = {"messages": messages, "api_key": self._api_key(api_key)}
        data = await self._post(self.chat_url, payload)

        content = data.get("content")
        if not isinstance(content, str) or not content.strip():
            raise InvalidAIResponseError("Empty response from AI service")

        logger.info(f"LLM completion received ({len(content)} chars)")
        return content

    async def complete_prompt(self, prompt: str, system: Optional[str] = None,
                              api_key: Optional[str] = None) -> str:
        messages: List[Message] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return await self.complete(messages, api_key=api_key)

    async def complete_with_files(self, file_urls: List[str], prompt: Optional[str] = None,
                                  api_key: Optional[str] = None) -> List[Dict[str, str]]:
        """Analyse documents by URL; returns [{file, analysis}]"""
        payload: Dict[str, Any] = {"files": list(file_urls), "api_key": self._api_key(api_key)}
        if prompt:
            payload["prompt"] = prompt
        data = await self._post(self.files_url, payload)

        content = data.get("content")
        if not isinstance(content, list):
            raise InvalidAIResponseError("File analysis response is missing its content list")
        return content


_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service

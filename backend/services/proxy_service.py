"""
LLM proxy - validates chat requests and forwards them to DeepSeek

Upstream failures never pass through as-is: every failure mode becomes a
typed error body with a timestamp.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from core.environment import Settings, load_settings

logger = logging.getLogger(__name__)

CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 4000
FILE_MAX_TOKENS = 2000


@dataclass
class ProxyError(Exception):
    type: str
    message: str
    status: int = 500
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_body(self) -> Dict[str, Any]:
        return {
            "error": {
                "type": self.type,
                "message": self.message,
                "status": self.status,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                **self.extra,
            }
        }


def validate_chat_request(body: Any) -> tuple[List[Dict[str, Any]], str]:
    """Return (messages, api_key) or raise a 400 ProxyError"""
    if not isinstance(body, dict):
        raise ProxyError("invalid_request", "Invalid messages format", 400)
    messages = body.get("messages")
    if not isinstance(messages, list):
        raise ProxyError("invalid_request", "Invalid messages format", 400)
    api_key = body.get("api_key")
    if not api_key or not isinstance(api_key, str):
        raise ProxyError("invalid_request", "API key is required", 400)
    return messages, api_key


def collect_file_urls(body: Dict[str, Any]) -> List[str]:
    """Accept ``files: [...]`` or the form style ``file0..fileN`` keys"""
    files = body.get("files")
    if isinstance(files, list):
        return [str(url) for url in files if url]
    urls = []
    index = 0
    while body.get(f"file{index}") is not None:
        urls.append(str(body[f"file{index}"]))
        index += 1
    return urls


class ProxyService:
    """Forwards validated chat requests to the DeepSeek chat completions API"""

    def __init__(self, settings: Optional[Settings] = None,
                 client_factory: Optional[Callable[[str], AsyncOpenAI]] = None):
        self.settings = settings or load_settings()
        self._client_factory = client_factory or self._default_client

    def _default_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, base_url=self.settings.deepseek_base_url, max_retries=0)

    async def _create(self, api_key: str, messages: List[Dict[str, Any]], max_tokens: int) -> str:
        async with self._client_factory(api_key) as client:
            try:
                raw = await client.chat.completions.with_raw_response.create(
                    model=self.settings.deepseek_model,
                    messages=messages,
                    temperature=CHAT_TEMPERATURE,
                    max_tokens=max_tokens,
                )
            except openai.APIStatusError as e:
                logger.error(f"DeepSeek API error ({e.status_code}): {e.message}")
                raise ProxyError("upstream_error", f"DeepSeek API error ({e.status_code}): {e.message}",
                                 e.status_code)
            except openai.APIConnectionError as e:
                logger.error(f"DeepSeek API unreachable: {e}")
                raise ProxyError("upstream_unreachable", f"DeepSeek API unreachable: {e}", 502)
            text = raw.http_response.text

        try:
            data = json.loads(text)
        except ValueError:
            logger.error("DeepSeek returned a non-JSON body")
            raise ProxyError("invalid_upstream_json", "Invalid JSON response from DeepSeek API", 502,
                             {"raw": text[:1000]})

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            logger.error("DeepSeek response has no choices[0].message.content")
            raise ProxyError("missing_content", "Invalid response format from DeepSeek API", 502)

        content = content.strip()
        if not content:
            raise ProxyError("empty_content", "Empty response content from DeepSeek API", 502)
        return content

    async def chat(self, body: Any) -> Dict[str, Any]:
        """Validate, forward and return ``{content}``; raises ProxyError"""
        messages, api_key = validate_chat_request(body)
        logger.info(f"Forwarding {len(messages)} messages to DeepSeek")
        content = await self._create(api_key, messages, CHAT_MAX_TOKENS)
        return {"content": content}

    async def analyze_files(self, body: Any) -> Dict[str, Any]:
        """One completion over all file URLs, reported per file"""
        if not isinstance(body, dict):
            raise ProxyError("invalid_request", "Invalid request format", 400)
        api_key = body.get("api_key")
        if not api_key:
            raise ProxyError("invalid_request", "API key is required", 400)
        urls = collect_file_urls(body)
        if not urls:
            raise ProxyError("invalid_request", "No files provided", 400)

        prompt = body.get("prompt") or "Analyze the following files:"
        message = {"role": "user", "content": f"{prompt}\n" + "\n".join(urls)}
        content = await self._create(api_key, [message], FILE_MAX_TOKENS)
        return {"content": [{"file": url, "analysis": content} for url in urls]}


_proxy_service: Optional[ProxyService] = None


def get_proxy_service() -> ProxyService:
    global _proxy_service
    if _proxy_service is None:
        _proxy_service = ProxyService()
    return _proxy_service

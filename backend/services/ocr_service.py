"""
OCR adapter over the Google Vision ``images:annotate`` REST endpoint
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Callable, Awaitable

import httpx

from core.environment import Settings, load_settings
from services.error_types import OCRError, ConfigurationError

logger = logging.getLogger(__name__)

VISION_ENDPOINT = "https://vision.googleapis.com/v1/images:annotate"
MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 1.0  # multiplied by the attempt number
NO_TEXT_MESSAGE = "No text detected in image. Please ensure the image is clear and contains readable text."


@dataclass
class OCRResult:
    full_text: str
    attempts: int = 1


class OCRService:
    """Extract text from an image URL with bounded linear-backoff retry"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetcher: Optional[Callable[[str], Awaitable[bytes]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or load_settings()
        self._fetcher = fetcher
        self._transport = transport
        self._sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=60.0, transport=self._transport)

    async def _fetch_image(self, client: httpx.AsyncClient, image_url: str) -> bytes:
        if self._fetcher is not None:
            return await self._fetcher(image_url)
        response = await client.get(image_url)
        if response.status_code >= 400:
            raise RuntimeError(f"Failed to fetch image: {response.status_code} {response.reason_phrase}")
        return response.content

    def _build_request(self, content: bytes, language_hints: Sequence[str]) -> dict:
        return {
            "requests": [{
                "image": {"content": base64.b64encode(content).decode("ascii")},
                "features": [
                    {"type": "TEXT_DETECTION", "maxResults": 100},
                    {"type": "DOCUMENT_TEXT_DETECTION", "maxResults": 100},
                ],
                "imageContext": {
                    "languageHints": list(language_hints),
                    "textDetectionParams": {"enableTextDetectionConfidenceScore": True},
                },
            }]
        }

    async def _recognize_once(self, client: httpx.AsyncClient, image_url: str,
                              language_hints: Sequence[str]) -> str:
        content = await self._fetch_image(client, image_url)
        response = await client.post(
            VISION_ENDPOINT,
            params={"key": self.settings.google_vision_api_key},
            json=self._build_request(content, language_hints),
        )

        if response.status_code >= 400:
            try:
                message = response.json().get("error", {}).get("message")
            except ValueError:
                message = None
            raise RuntimeError(f"Vision API request failed: {message or response.reason_phrase}")

        data = response.json()
        responses = data.get("responses") or [{}]
        text = (responses[0].get("fullTextAnnotation") or {}).get("text")
        if not text or not text.strip():
            raise RuntimeError(NO_TEXT_MESSAGE)
        return text

    async def recognize(self, image_url: str, file_name: Optional[str] = None,
                        language_hints: Sequence[str] = ("en", "ar")) -> OCRResult:
        """
        OCR one document

        Args:
            image_url: Public URL of the stored document
            file_name: Name used in error messages
            language_hints: Vision language hints

        Returns:
            OCRResult with the full text

        Raises:
            ConfigurationError: Vision API key missing (not retried)
            OCRError: all attempts failed
        """
        if not self.settings.google_vision_api_key:
            raise ConfigurationError("GOOGLE_VISION_API_KEY is not configured")

        label = file_name or image_url
        last_error: Optional[Exception] = None

        async with self._client() as client:
            for attempt in range(1, MAX_ATTEMPTS + 1):
                try:
                    text = await self._recognize_once(client, image_url, language_hints)
                    logger.info(f"OCR succeeded for {label} on attempt {attempt} ({len(text)} chars)")
                    return OCRResult(full_text=text, attempts=attempt)
                except ConfigurationError:
                    raise
                except Exception as e:
                    last_error = e
                    logger.warning(f"OCR attempt {attempt}/{MAX_ATTEMPTS} failed for {label}: {e}")
                    if attempt < MAX_ATTEMPTS:
                        await self._sleep(attempt * BACKOFF_SECONDS)

        raise OCRError(
            label,
            f"OCR failed for {label}: {last_error}",
            {"file": label, "attempts": MAX_ATTEMPTS},
        )

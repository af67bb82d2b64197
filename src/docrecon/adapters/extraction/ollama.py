"""Extraction adapter using Ollama."""

import base64
import logging
from urllib.parse import urlparse

import httpx

from ...domain.errors import ExtractionFailure, PermanentExtractionFailure
from ...domain.models import ExtractionResult
from ...ports.extraction import ExtractionPort
from .parsing import parse_response
from .prompts import summary_prompt, system_prompt

logger = logging.getLogger(__name__)


class OllamaAdapter(ExtractionPort):
    """Extraction implementation using a local Ollama vision model."""

    def __init__(
        self,
        model: str = "gemma3:4b",
        base_url: str = "http://localhost:11434",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"Invalid ollama_url scheme: {parsed.scheme}")
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def extract(
        self, content: bytes, mime_type: str, reporting_currency: str
    ) -> ExtractionResult:
        logger.info(f"Extracting document with Ollama ({self.model})")

        if not mime_type.startswith("image/"):
            raise PermanentExtractionFailure(f"Ollama only accepts images, got {mime_type}")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt(reporting_currency)},
                {
                    "role": "user",
                    "content": "Extract the document.",
                    "images": [base64.b64encode(content).decode("ascii")],
                },
            ],
            "stream": False,
            "format": "json",
        }

        return parse_response(await self._chat(payload))

    async def summarize(self, lines: list[str], reporting_currency: str) -> str:
        logger.info(f"Summarizing batch with Ollama ({self.model})")
        payload = {
            "model": self.model,
            "messages": [
                {"role": "user", "content": summary_prompt(lines, reporting_currency)},
            ],
            "stream": False,
        }
        text = (await self._chat(payload) or "").strip()
        if not text:
            raise ExtractionFailure("AI failed to return a summary")
        return text

    async def _chat(self, payload: dict) -> str | None:
        """Post a chat request and return the message content."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(f"{self.base_url}/api/chat", json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code < 500:
                raise PermanentExtractionFailure(str(e)) from e
            raise ExtractionFailure(str(e)) from e
        except httpx.HTTPError as e:
            raise ExtractionFailure(f"Ollama request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Non-JSON response from Ollama: {response.text[:200]}")
            raise ExtractionFailure(f"Invalid response from Ollama: {e}") from e

        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict):
            raise ExtractionFailure("Ollama response has no message")
        content = message.get("content")
        return content if isinstance(content, str) else None

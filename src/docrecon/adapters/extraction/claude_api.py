"""Extraction adapter using Claude API."""

import base64
import logging

import anthropic

from ...domain.errors import ExtractionFailure, PermanentExtractionFailure
from ...domain.models import ExtractionResult
from ...ports.extraction import ExtractionPort
from .parsing import parse_response
from .prompts import summary_prompt, system_prompt

logger = logging.getLogger(__name__)

IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
PDF_TYPE = "application/pdf"


def content_block(content: bytes, mime_type: str) -> dict:
    """Build the message block carrying the document."""
    data = base64.standard_b64encode(content).decode("ascii")
    source = {"type": "base64", "media_type": mime_type, "data": data}
    if mime_type == PDF_TYPE:
        return {"type": "document", "source": source}
    if mime_type in IMAGE_TYPES:
        return {"type": "image", "source": source}
    raise PermanentExtractionFailure(f"Unsupported file type: {mime_type}")


class ClaudeAPIAdapter(ExtractionPort):
    """Extraction implementation using Claude API (pay-as-you-go)."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        timeout: float = 120.0,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        # Retries are handled by the domain retrier.
        self.client = client or anthropic.AsyncAnthropic(timeout=timeout, max_retries=0)
        self.model = model

    async def extract(
        self, content: bytes, mime_type: str, reporting_currency: str
    ) -> ExtractionResult:
        logger.info(f"Extracting document with Claude API ({self.model})")

        block = content_block(content, mime_type)
        text = await self._complete(
            system=system_prompt(reporting_currency),
            messages=[
                {
                    "role": "user",
                    "content": [block, {"type": "text", "text": "Extract the document."}],
                },
            ],
        )
        return parse_response(text)

    async def summarize(self, lines: list[str], reporting_currency: str) -> str:
        logger.info(f"Summarizing batch with Claude API ({self.model})")
        text = await self._complete(
            messages=[{"role": "user", "content": summary_prompt(lines, reporting_currency)}],
        )
        if not text.strip():
            raise ExtractionFailure("AI failed to return a summary")
        return text.strip()

    async def _complete(self, **kwargs) -> str:
        """Send one message request and join the text parts of the reply."""
        try:
            response = await self.client.messages.create(
                model=self.model, max_tokens=16_000, **kwargs
            )
        except (
            anthropic.AuthenticationError,
            anthropic.PermissionDeniedError,
            anthropic.BadRequestError,
        ) as e:
            raise PermanentExtractionFailure(str(e)) from e
        except anthropic.APIError as e:
            raise ExtractionFailure(str(e)) from e

        return "".join(
            part.text for part in response.content if getattr(part, "type", None) == "text"
        )

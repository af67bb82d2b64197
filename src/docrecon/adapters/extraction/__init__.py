"""Extraction adapters."""

from ...config import ExtractionConfig, ExtractionProvider
from ...ports.extraction import ExtractionPort
from .claude_api import ClaudeAPIAdapter
from .ollama import OllamaAdapter

__all__ = ["ClaudeAPIAdapter", "OllamaAdapter", "create_extraction_adapter"]


def create_extraction_adapter(config: ExtractionConfig) -> ExtractionPort:
    """Create extraction adapter based on configuration."""
    if config.provider == ExtractionProvider.CLAUDE_API:
        return ClaudeAPIAdapter(model=config.model, timeout=config.timeout)
    elif config.provider == ExtractionProvider.OLLAMA:
        return OllamaAdapter(
            model=config.model, base_url=config.ollama_url, timeout=config.timeout
        )
    else:
        raise ValueError(f"Unknown extraction provider: {config.provider}")

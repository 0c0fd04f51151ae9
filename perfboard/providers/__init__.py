"""LLM provider package."""
from perfboard.providers.base import BaseProvider
from perfboard.providers.mock_provider import MockProvider

__all__ = ["BaseProvider", "MockProvider"]

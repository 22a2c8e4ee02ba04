"""Gemini HTTP client shared by the Gemini classifier and matcher."""

from .client import GeminiClient

__all__ = ["GeminiClient"]

"""LLM Provider implementations for the Voice Interviewer."""

from .chat_provider import ChatCompletionProvider, PromptInjectionDetector

__all__ = [
    "ChatCompletionProvider",
    "PromptInjectionDetector",
]

"""OpenAI-compatible chat client used for abstract merging."""

from .chat_provider import ChatProvider, ChatResponse, create_chat_provider

__all__ = ["ChatProvider", "ChatResponse", "create_chat_provider"]

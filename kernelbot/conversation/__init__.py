"""Conversation history module."""

from .cache import ConversationCache, ConversationContext, ConversationEntry

__all__ = ["ConversationCache", "ConversationContext", "ConversationEntry"]

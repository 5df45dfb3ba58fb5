"""Short-lived per-(user, channel) conversation history."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant"]
ConversationKey = tuple[str, str]


@dataclass
class ConversationEntry:
    """One message of a conversation."""

    role: Role
    content: str
    timestamp: float

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ConversationContext:
    """Recent messages exchanged with one user in one channel."""

    user_id: str
    channel_id: str
    messages: list[ConversationEntry] = field(default_factory=list)
    last_activity: float = 0.0

    @property
    def key(self) -> ConversationKey:
        return (self.user_id, self.channel_id)


class ConversationCache:
    """Bounded, TTL-evicted message history keyed by (user, channel).

    Operations never raise for unknown keys: a missing conversation has an
    empty history and clearing it is a no-op.
    """

    def __init__(
        self,
        max_messages: int = 10,
        history_window: int = 6,
        ttl_seconds: float = 1800.0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize conversation cache.

        Args:
            max_messages: Messages stored per conversation
            history_window: Most recent messages returned by history()
            ttl_seconds: Inactivity after which a conversation is swept
            clock: Wall-clock time source in seconds
        """
        self.max_messages = max_messages
        self.history_window = min(history_window, max_messages)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._contexts: dict[ConversationKey, ConversationContext] = {}

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, key: object) -> bool:
        return key in self._contexts

    def append(self, user_id: str, channel_id: str, role: Role, content: str) -> None:
        """Append a message, creating the conversation on first use."""
        now = self._clock()
        key = (user_id, channel_id)
        context = self._contexts.get(key)
        if context is None:
            context = ConversationContext(user_id=user_id, channel_id=channel_id)
            self._contexts[key] = context

        context.messages.append(ConversationEntry(role=role, content=content, timestamp=now))
        if len(context.messages) > self.max_messages:
            del context.messages[: -self.max_messages]
        context.last_activity = now

    def history(self, user_id: str, channel_id: str) -> list[dict[str, str]]:
        """Get the most recent messages as role/content pairs, oldest first."""
        context = self._contexts.get((user_id, channel_id))
        if context is None or self.history_window == 0:
            return []
        return [entry.as_message() for entry in context.messages[-self.history_window :]]

    def clear(self, user_id: str, channel_id: str) -> bool:
        """Forget a conversation.

        Returns:
            True if a conversation existed
        """
        removed = self._contexts.pop((user_id, channel_id), None) is not None
        if removed:
            logger.info(f"Cleared conversation for user {user_id} in channel {channel_id}")
        return removed

    def sweep(self, now: float | None = None) -> int:
        """Remove every conversation idle for longer than the TTL.

        Returns:
            Number of conversations removed
        """
        now = self._clock() if now is None else now
        cutoff = now - self.ttl_seconds
        expired = [key for key, context in self._contexts.items() if context.last_activity < cutoff]
        for key in expired:
            del self._contexts[key]

        if expired:
            logger.info(f"Swept {len(expired)} expired conversations, {len(self._contexts)} active")
        return len(expired)

    def contexts(self) -> list[ConversationContext]:
        """Get detached copies of every live conversation."""
        return [
            ConversationContext(
                user_id=context.user_id,
                channel_id=context.channel_id,
                messages=list(context.messages),
                last_activity=context.last_activity,
            )
            for context in self._contexts.values()
        ]

    def restore(self, contexts: list[ConversationContext], now: float | None = None) -> int:
        """Load conversations from a snapshot, skipping ones already expired.

        Returns:
            Number of conversations restored
        """
        now = self._clock() if now is None else now
        cutoff = now - self.ttl_seconds
        restored = 0
        for context in contexts:
            if context.last_activity < cutoff:
                continue
            context.messages = context.messages[-self.max_messages :]
            self._contexts[context.key] = context
            restored += 1

        logger.info(f"Restored {restored} of {len(contexts)} conversations from snapshot")
        return restored

"""Snapshot record models for the persisted queue and conversation cache."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from kernelbot.conversation import ConversationContext, ConversationEntry
from kernelbot.dispatch.models import Query


class SnapshotModel(BaseModel):
    """Base for snapshot records, serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)


class QuerySnapshot(SnapshotModel):
    """Persisted projection of a queued or in-flight query."""

    id: str
    text: str
    user_id: str = Field(alias="userId")
    channel_id: str | None = Field(default=None, alias="channelId")
    message_id: str | None = Field(default=None, alias="messageId")
    enqueued_at: float = Field(alias="enqueuedAt")
    retry_count: int = Field(default=0, alias="retryCount")

    @classmethod
    def from_query(cls, query: Query) -> "QuerySnapshot":
        return cls(
            id=query.id,
            text=query.text,
            user_id=query.user_id,
            channel_id=query.channel_id,
            message_id=query.source_message_id,
            enqueued_at=query.enqueued_at,
            retry_count=query.retry_count,
        )

    def to_query(self) -> Query:
        return Query(
            id=self.id,
            text=self.text,
            user_id=self.user_id,
            channel_id=self.channel_id,
            source_message_id=self.message_id,
            enqueued_at=self.enqueued_at,
            retry_count=self.retry_count,
        )


class MessageSnapshot(SnapshotModel):
    """Persisted conversation message."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: float


class ConversationSnapshot(SnapshotModel):
    """Persisted conversation context."""

    user_id: str = Field(alias="userId")
    channel_id: str = Field(alias="channelId")
    messages: list[MessageSnapshot] = Field(default_factory=list)
    last_activity: float = Field(alias="lastActivity")

    @property
    def key(self) -> str:
        return f"{self.user_id}-{self.channel_id}"

    @classmethod
    def from_context(cls, context: ConversationContext) -> "ConversationSnapshot":
        return cls(
            user_id=context.user_id,
            channel_id=context.channel_id,
            messages=[
                MessageSnapshot(role=m.role, content=m.content, timestamp=m.timestamp)
                for m in context.messages
            ],
            last_activity=context.last_activity,
        )

    def to_context(self) -> ConversationContext:
        return ConversationContext(
            user_id=self.user_id,
            channel_id=self.channel_id,
            messages=[
                ConversationEntry(role=m.role, content=m.content, timestamp=m.timestamp)
                for m in self.messages
            ],
            last_activity=self.last_activity,
        )

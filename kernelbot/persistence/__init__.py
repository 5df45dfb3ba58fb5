"""Snapshot persistence module."""

from .models import ConversationSnapshot, MessageSnapshot, QuerySnapshot
from .store import SnapshotStore

__all__ = ["ConversationSnapshot", "MessageSnapshot", "QuerySnapshot", "SnapshotStore"]

"""Context selection models and data structures."""

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TopicGroup:
    """A named topic with the keywords that trigger it and the document data it pulls.

    ``markers`` is the event-specific part of the vocabulary. A query matching
    it is about the event even when phrased like a general question.
    """

    name: str
    pattern: str
    keys: tuple[str, ...]
    markers: str = ""


@dataclass(frozen=True)
class ContextBundle:
    """Minimal topic-relevant event data attached to one prompt."""

    topics: frozenset[str] = frozenset()
    payload: dict[str, Any] = field(default_factory=dict)
    is_general_knowledge: bool = False

    @classmethod
    def empty(cls) -> "ContextBundle":
        return cls()

    def format_for_prompt(self) -> str:
        """Format the bundle into a concise prompt section.

        Returns:
            Topic header followed by the JSON payload, or an empty string
        """
        if not self.payload:
            return ""

        topics = ", ".join(sorted(self.topics)) or "none"
        header = f"RELEVANT EVENT INFO (Topics: {topics}):\n"
        return header + json.dumps(self.payload, indent=2, ensure_ascii=False)

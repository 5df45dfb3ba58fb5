"""Context selection module."""

from .models import ContextBundle, TopicGroup
from .selector import TOPIC_GROUPS, ContextSelector, extract_entities, load_event_data

__all__ = [
    "TOPIC_GROUPS",
    "ContextBundle",
    "ContextSelector",
    "TopicGroup",
    "extract_entities",
    "load_event_data",
]

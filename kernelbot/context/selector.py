"""Keyword-driven selection of the event data relevant to a query."""

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any

from .models import ContextBundle, TopicGroup

logger = logging.getLogger(__name__)

TOPIC_GROUPS: tuple[TopicGroup, ...] = (
    TopicGroup(
        "schedule",
        r"\b(?:schedule|timing|time|day \d|when|program|agenda|start|end)",
        ("schedule", "dates"),
        markers=r"schedul|timings?\b|agenda|itinerar",
    ),
    TopicGroup(
        "registration",
        r"\b(?:regist|sign ?up|join|enrol|fee|cost|price|pay|participat|deadline|team size)",
        ("registration", "dates"),
        markers=r"regist|sign ?up|join|enrol|fees?\b|deadline|participat",
    ),
    TopicGroup(
        "team",
        r"\b(?:team|organi[sz]|coordinator|lead|faculty|head|who|contact|mentor)",
        ("team", "team_members"),
        markers=r"organi[sz]er|coordinator|faculty|mentor|judg",
    ),
    TopicGroup(
        "prizes",
        r"\b(?:prize|win|reward|money|cash|award|incentive|bounty)",
        ("prizes", "statistics.prize_pool"),
        markers=r"prize|winner|winning|reward|award|cash|bount",
    ),
    TopicGroup(
        "facilities",
        r"\b(?:food|meal|eat|lunch|dinner|breakfast|snack|accommodat|stay|sleep|transport|bus|travel|"
        r"facilit|amenit|wifi|wi-fi|venue|reach)",
        ("facilities", "location"),
        markers=r"food|meals?\b|lunch|dinner|breakfast|snack|accommodat|transport|facilit|amenit|wi-?fi|venue",
    ),
    TopicGroup(
        "statistics",
        r"\b(?:statistic|stats|how many|number of|participants|previous|last year|edition|hackers)",
        ("statistics",),
        markers=r"statistic|participants|last year|edition|hackers",
    ),
    TopicGroup(
        "faqs",
        r"\b(?:faq|beginner|can i|allowed|eligib|requirement|laptop|alone|solo|online|offline)",
        ("faqs",),
        markers=r"faq|eligib|beginner|laptop",
    ),
    TopicGroup(
        "perks",
        r"\b(?:perk|benefit|goodies|swag|certificate|gift|receive|internship|credits)",
        ("perks",),
        markers=r"perk|goodies|swag|certificate|internship",
    ),
    TopicGroup(
        "about",
        r"\b(?:about|why|what is|tell me|college|know more|details|overview)",
        ("about", "why_attend"),
        markers=r"attend",
    ),
    TopicGroup(
        "theme",
        r"\b(?:theme|topic|domain|categor|track|project|build|idea)",
        ("theme", "project_categories"),
        markers=r"theme|categor|tracks?\b|problem statement",
    ),
    TopicGroup(
        "communities",
        r"\b(?:club|communit|gdg|csi|cybersecurity|group|chapter)",
        ("developer_communities",),
        markers=r"club|communit|gdg|csi\b|chapter",
    ),
)

GENERAL_KNOWLEDGE_MARKERS: tuple[str, ...] = (
    "what is",
    "what are",
    "what does",
    "who is",
    "who was",
    "who invented",
    "explain",
    "define",
    "definition of",
    "meaning of",
    "how does",
    "how do",
    "difference between",
    "example of",
    "history of",
    "capital of",
    "write a",
    "write me",
    "code for",
    "translate",
    "calculate",
    "solve",
)

# Event-wide vocabulary; topic-specific words live in TopicGroup.markers
DOMAIN_MARKERS: tuple[str, ...] = (
    "hackathon",
    "hackoverflow",
    "hack overflow",
    "event",
    "kernel",
    "campus",
    "submission",
    "team",
)

_COMPILED_GROUPS = tuple((group, re.compile(group.pattern, re.IGNORECASE)) for group in TOPIC_GROUPS)
_GENERAL_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(m) for m in GENERAL_KNOWLEDGE_MARKERS) + r")\b", re.IGNORECASE
)
_DOMAIN_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(m) for m in DOMAIN_MARKERS) + r")s?\b", re.IGNORECASE
)
_TOPIC_MARKER_RE = re.compile(
    r"\b(?:" + "|".join(group.markers for group in TOPIC_GROUPS if group.markers) + r")", re.IGNORECASE
)


def load_event_data(path: Path) -> dict[str, Any]:
    """Load the static event document.

    Args:
        path: Path to the event JSON document

    Returns:
        Parsed document, or an empty dict when the file is missing or malformed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.error(f"Event data file not found: {path}")
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load event data from {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Event data in {path} is not a JSON object")
        return {}

    return data


def extract_entities(event_data: dict[str, Any]) -> frozenset[str]:
    """Collect the known entity names mentioned in the event document.

    Covers the event name, venue, host institution, organising team and
    developer communities. Person names also contribute their first name.
    """
    names: set[str] = set()

    event_name = event_data.get("name")
    if isinstance(event_name, str) and event_name:
        names.add(event_name)
        names.add(event_name.split()[0])

    location = event_data.get("location") or {}
    if isinstance(location, dict):
        for key in ("venue", "institution"):
            value = location.get(key)
            if isinstance(value, str) and value:
                names.add(value)
        venue = location.get("venue")
        if isinstance(venue, str) and venue:
            names.add(venue.split()[0])

    people: list[str] = []
    team = event_data.get("team") or {}
    if isinstance(team, dict):
        people.extend(v for v in team.values() if isinstance(v, str))
    for member in event_data.get("team_members") or []:
        if isinstance(member, dict) and isinstance(member.get("name"), str):
            people.append(member["name"])

    for person in people:
        names.add(person)
        parts = [p for p in person.split() if not p.endswith(".")]
        if parts and len(parts[0]) > 2:
            names.add(parts[0])

    for community in event_data.get("developer_communities") or []:
        if isinstance(community, dict) and isinstance(community.get("name"), str):
            names.add(community["name"])

    return frozenset(name.lower() for name in names if name.strip())


class ContextSelector:
    """Maps a raw query onto the minimal bundle of event data it needs.

    Selection is pure: the same text (case-insensitive) always yields the
    same topics and payload, and the event document is never mutated.
    """

    def __init__(self, event_data: dict[str, Any]):
        """Initialize context selector.

        Args:
            event_data: Static event document
        """
        self.event_data = event_data
        self.entities = extract_entities(event_data)
        self._entity_re = (
            re.compile(
                r"\b(?:" + "|".join(re.escape(e) for e in sorted(self.entities, key=len, reverse=True)) + r")\b",
                re.IGNORECASE,
            )
            if self.entities
            else None
        )

    @classmethod
    def from_file(cls, path: Path) -> "ContextSelector":
        return cls(load_event_data(path))

    @property
    def contact_email(self) -> str | None:
        contact = self.event_data.get("contact") or {}
        return contact.get("email") if isinstance(contact, dict) else None

    def mentions_entity(self, query: str) -> bool:
        return bool(self._entity_re and self._entity_re.search(query))

    def is_general_knowledge(self, query: str) -> bool:
        """Decide whether a query is general knowledge rather than about the event.

        A known entity name, event vocabulary or a topic marker always forces
        the event classification.
        """
        if self.mentions_entity(query):
            return False
        if _DOMAIN_RE.search(query) or _TOPIC_MARKER_RE.search(query):
            return False
        return bool(_GENERAL_RE.search(query))

    def select(self, query: str) -> ContextBundle:
        """Select the context bundle for a query.

        Args:
            query: Raw user query

        Returns:
            ContextBundle, empty if selection fails
        """
        try:
            return self._select(query.lower())
        except Exception as e:
            logger.error(f"Context selection failed, using empty bundle: {e}", exc_info=True)
            return ContextBundle.empty()

    def _select(self, query: str) -> ContextBundle:
        if self.is_general_knowledge(query):
            return ContextBundle(
                topics=frozenset({"identity"}),
                payload=self._subset({}, ("name", "contact")),
                is_general_knowledge=True,
            )

        payload: dict[str, Any] = {"basic": self._subset({}, ("name", "dates", "location", "contact"))}
        topics: list[str] = []

        for group, pattern in _COMPILED_GROUPS:
            if pattern.search(query):
                self._subset(payload, group.keys)
                topics.append(group.name)

        if not topics:
            payload["overview"] = self._subset(
                {},
                (
                    "name",
                    "tagline",
                    "dates",
                    "location",
                    "prizes",
                    "theme",
                    "statistics.prize_pool",
                    "statistics.expected_hackers",
                    "statistics.duration",
                ),
            )
            payload["registration_summary"] = self._subset(
                {}, ("registration.process", "registration.fee_per_member")
            )
            topics.append("general")

        logger.debug(f"Selected topics {topics} for query")
        return ContextBundle(topics=frozenset(topics), payload=payload)

    def _subset(self, target: dict[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
        """Copy the dotted ``keys`` of the event document into ``target``."""
        for key in keys:
            head, _, tail = key.partition(".")
            if head not in self.event_data:
                continue
            value = self.event_data[head]
            if not tail:
                target[head] = copy.deepcopy(value)
            elif isinstance(value, dict) and tail in value:
                section = target.setdefault(head, {})
                if isinstance(section, dict):
                    section[tail] = copy.deepcopy(value[tail])
        return target

"""Tests for context selection."""

import json

import pytest

from kernelbot.context import ContextBundle, ContextSelector, extract_entities, load_event_data


class TestTopicSelection:
    """Test topic detection and bundle contents."""

    def test_prize_question(self, selector):
        """Test a prize question selects the prize data."""
        bundle = selector.select("what is the prize pool")

        assert "prizes" in bundle.topics
        assert bundle.is_general_knowledge is False
        assert bundle.payload["prizes"]["first"] == "INR 40,000"
        assert bundle.payload["statistics"]["prize_pool"] == "INR 80,000"

    def test_every_bundle_has_basic_info(self, selector):
        """Test domain bundles always carry identity and contact."""
        bundle = selector.select("When does registration close?")

        assert bundle.payload["basic"]["name"] == "HackOverflow 4.0"
        assert bundle.payload["basic"]["contact"]["email"] == "hackoverflow@mes.ac.in"
        assert {"schedule", "registration"} <= bundle.topics

    def test_multiple_topics_merge(self, selector):
        """Test every matching group contributes its data."""
        bundle = selector.select("Is food provided and do we get certificates?")

        assert {"facilities", "perks"} <= bundle.topics
        assert "facilities" in bundle.payload
        assert "perks" in bundle.payload

    def test_no_topic_falls_back_to_overview(self, selector):
        """Test an unmatched query gets the general overview."""
        bundle = selector.select("hello there")

        assert bundle.topics == frozenset({"general"})
        assert bundle.payload["overview"]["tagline"] == "Code. Create. Overflow."
        assert "registration" in bundle.payload["registration_summary"]

    def test_communities(self, selector):
        """Test community keywords select developer communities."""
        bundle = selector.select("Which GDG club is involved?")
        assert "communities" in bundle.topics
        assert len(bundle.payload["developer_communities"]) == 3


class TestClassification:
    """Test general-knowledge versus event classification."""

    def test_general_knowledge_gets_minimal_bundle(self, selector):
        """Test a generic question only carries identity and contact."""
        bundle = selector.select("What is recursion in python?")

        assert bundle.is_general_knowledge is True
        assert set(bundle.payload) == {"name", "contact"}

    def test_entity_overrides_generic_phrasing(self, selector):
        """Test a known person name forces event classification."""
        bundle = selector.select("Who is Rohan Naik?")

        assert bundle.is_general_knowledge is False
        assert "team" in bundle.topics
        assert bundle.payload["team_members"][0]["name"] == "Rohan Naik"

    def test_first_name_is_an_entity(self, selector):
        """Test a first name alone is enough to stay on the event."""
        assert selector.is_general_knowledge("who is isha") is False

    def test_event_name_is_an_entity(self, selector):
        """Test the event name forces event classification."""
        assert selector.is_general_knowledge("explain hackoverflow to me") is False

    def test_domain_marker(self, selector):
        """Test event vocabulary keeps a generic phrasing on the event."""
        assert selector.is_general_knowledge("what is the hackathon theme") is False

    @pytest.mark.parametrize(
        "query, topic",
        [
            ("what is the agenda", "schedule"),
            ("how do I join", "registration"),
            ("what does a mentor do here", "team"),
            ("what does the winner get", "prizes"),
            ("what is the food situation", "facilities"),
            ("what is the wifi password", "facilities"),
            ("what is the number of participants", "statistics"),
            ("what are the eligibility rules", "faqs"),
            ("what are the perks", "perks"),
            ("what is there to gain if i attend", "about"),
            ("what are the project categories", "theme"),
            ("what is the gdg chapter", "communities"),
        ],
    )
    def test_topic_vocabulary_stays_on_event(self, selector, query, topic):
        """Test generic phrasing about a topic keeps that topic's event data."""
        bundle = selector.select(query)

        assert bundle.is_general_knowledge is False
        assert topic in bundle.topics

    @pytest.mark.parametrize(
        "query",
        ["what is recursion", "how does a compiler work", "what are prime numbers", "who is alan turing"],
    )
    def test_generic_questions_stay_general(self, selector, query):
        """Test questions without event vocabulary stay general knowledge."""
        assert selector.is_general_knowledge(query) is True

    def test_unknown_person_is_general(self, selector):
        """Test an unknown person with generic phrasing is general knowledge."""
        assert selector.is_general_knowledge("who is alan turing") is True


class TestPurity:
    """Test selection is deterministic and side-effect free."""

    def test_repeated_calls_equal(self, selector):
        """Test the same query always yields the same bundle."""
        query = "Tell me about the schedule and prizes"
        assert selector.select(query) == selector.select(query)

    def test_case_insensitive(self, selector):
        """Test selection ignores case."""
        assert selector.select("WHAT IS THE PRIZE POOL") == selector.select("what is the prize pool")

    def test_document_not_mutated(self, selector, event_data):
        """Test editing a bundle never touches the event document."""
        snapshot = json.dumps(event_data, sort_keys=True)
        bundle = selector.select("what are the prizes")
        bundle.payload["prizes"]["first"] = "changed"

        assert json.dumps(selector.event_data, sort_keys=True) == snapshot

    def test_failure_degrades_to_empty_bundle(self, selector):
        """Test an internal error yields an empty bundle instead of raising."""
        bundle = selector.select(None)
        assert bundle == ContextBundle.empty()


class TestEventData:
    """Test event document loading and entity extraction."""

    def test_missing_file(self, tmp_path):
        """Test a missing document loads as empty."""
        assert load_event_data(tmp_path / "missing.json") == {}

    def test_malformed_file(self, tmp_path):
        """Test a malformed document loads as empty."""
        path = tmp_path / "event.json"
        path.write_text("{not json")
        assert load_event_data(path) == {}

    def test_entities(self, event_data):
        """Test entities cover people, venue and communities."""
        entities = extract_entities(event_data)

        assert "rohan naik" in entities
        assert "meera" in entities
        assert "phcet" in entities
        assert "csi phcet" in entities
        assert "dr." not in entities

    def test_empty_document(self):
        """Test a selector over an empty document still answers."""
        selector = ContextSelector({})
        bundle = selector.select("what are the prizes")
        assert "prizes" in bundle.topics
        assert bundle.payload == {"basic": {}}


class TestFormatting:
    """Test prompt formatting of bundles."""

    def test_format_for_prompt(self, selector):
        """Test the header lists topics before the JSON payload."""
        text = selector.select("what are the prizes").format_for_prompt()

        assert text.startswith("RELEVANT EVENT INFO (Topics: prizes):")
        assert "INR 80,000" in text

    def test_empty_bundle_formats_to_nothing(self):
        """Test an empty bundle adds nothing to the prompt."""
        assert ContextBundle.empty().format_for_prompt() == ""

"""Tests for tag rules, tag matching and entry-point classification."""
import pytest

from deadwood.analyzer.symbols import Symbol
from deadwood.analyzer.tag_rules import EntryPointClassifier, TagMatcher, TagRule
from deadwood.errors import ConfigurationError

from conftest import make_graph


class TestTagRule:
    """Pattern classification and matching."""

    @pytest.mark.parametrize("pattern, match_type, stored", [
        ("*Listener", "suffix", "Listener"),
        ("org.springframework.*", "prefix", "org.springframework."),
        ("org.junit.jupiter.api.Test", "exact", "org.junit.jupiter.api.Test"),
        ("*Mapping*", "glob", "*Mapping*"),
        ("org.*.Scheduled", "glob", "org.*.Scheduled"),
    ])
    def test_from_pattern(self, pattern, match_type, stored):
        rule = TagRule.from_pattern(pattern)
        assert rule.match_type == match_type
        assert rule.pattern == stored
        assert str(rule) == pattern

    def test_suffix_matches_fully_qualified_tag(self):
        rule = TagRule.from_pattern("*Listener")
        assert rule.matches("org.springframework.kafka.annotation.KafkaListener")
        assert not rule.matches("org.springframework.kafka.annotation.KafkaListeners")

    def test_glob_matches(self):
        rule = TagRule.from_pattern("org.*.Scheduled")
        assert rule.matches("org.springframework.scheduling.annotation.Scheduled")
        assert not rule.matches("com.example.Scheduled")

    @pytest.mark.parametrize("pattern", ["", "   ", None])
    def test_invalid_patterns_rejected(self, pattern):
        with pytest.raises(ConfigurationError):
            TagRule.from_pattern(pattern)

    def test_unknown_match_type_rejected(self):
        with pytest.raises(ConfigurationError):
            TagRule("Foo", "regex")


class TestTagMatcher:
    """Lookup-table matching over tag sets."""

    def test_exact_match_wins_over_suffix(self):
        matcher = TagMatcher.from_patterns(["*Component", "org.springframework.stereotype.Component"])
        rule = matcher.match({"org.springframework.stereotype.Component"})
        assert rule.match_type == "exact"

    def test_no_match(self):
        matcher = TagMatcher.from_patterns(["*Listener"])
        assert matcher.match({"lombok.Value"}) is None
        assert not matcher.matches(set())

    def test_empty_matcher_is_falsy(self):
        assert not TagMatcher.from_patterns([])
        assert TagMatcher.from_patterns(["*Handler"])

    def test_describe(self):
        matcher = TagMatcher.from_patterns(["*Handler", "Foo"])
        assert matcher.describe() == "'*Handler', 'Foo'"


class TestEntryPointClassifier:
    """Entry-point detection for methods and classes."""

    @pytest.fixture
    def graph(self):
        return make_graph(
            {
                "name": "com.example.Listener",
                "methods": [
                    {"name": "onMessage", "tags": ["org.springframework.kafka.annotation.KafkaListener"]},
                    {"name": "helper"},
                ],
            },
            {"name": "com.example.Plain", "methods": [{"name": "run"}]},
        )

    def test_tagged_method_is_entry_point(self, graph):
        classifier = EntryPointClassifier()
        assert classifier.is_entry_point(graph.get("com.example.Listener.onMessage()"), graph)
        assert not classifier.is_entry_point(graph.get("com.example.Listener.helper()"), graph)

    def test_class_is_entry_point_through_its_methods(self, graph):
        classifier = EntryPointClassifier()
        assert classifier.is_entry_point(graph.get("com.example.Listener"), graph)
        assert not classifier.is_entry_point(graph.get("com.example.Plain"), graph)

    def test_class_tags_alone_do_not_make_entry_point(self):
        classifier = EntryPointClassifier()
        symbol = Symbol.class_("com.example.Handler", tags=["com.example.EventHandler"])
        assert not classifier.is_entry_point_method(symbol)

    def test_custom_tags(self, graph):
        classifier = EntryPointClassifier(TagMatcher.from_patterns(["*Scheduled"]))
        assert not classifier.is_entry_point(graph.get("com.example.Listener.onMessage()"), graph)

    def test_empty_tag_set_rejected(self):
        with pytest.raises(ConfigurationError):
            EntryPointClassifier(TagMatcher.from_patterns([]))

"""
Tests for option normalization and upstream URL building.
"""

import pytest

from src.services.search.models import Preferences, SearchOptions, SuggestOptions
from src.services.search.params import (
    OptionsKind,
    build_search_url,
    build_suggest_url,
    normalize_options,
    normalize_search_options,
    normalize_suggest_options,
)

SEARCH_ENDPOINT = "https://api.search.brave.com/res/v1/web/search"
SUGGEST_ENDPOINT = "https://api.search.brave.com/res/v1/suggest/search"


class TestSearchNormalization:
    """Loose option bags become canonical SearchOptions."""

    def test_string_values_are_coerced(self):
        options = normalize_search_options({
            "count": "10",
            "offset": "2",
            "text_decorations": "false",
            "spellcheck": "true",
        })

        assert options.count == 10
        assert options.offset == 2
        assert options.text_decorations is False
        assert options.spellcheck is True

    def test_non_numeric_count_is_left_alone(self):
        options = normalize_search_options({"count": "ten"})
        assert options.count == "ten"

    def test_preferences_fill_absent_fields(self):
        prefs = Preferences(safesearch="moderate", count=10, country="US")

        options = normalize_search_options({}, prefs)

        assert options.safesearch == "moderate"
        assert options.count == 10
        assert options.country == "US"

    def test_explicit_values_beat_preferences(self):
        prefs = Preferences(safesearch="moderate", count=10)

        options = normalize_search_options({"safesearch": "strict", "count": 3}, prefs)

        assert options.safesearch == "strict"
        assert options.count == 3

    def test_undefined_preference_is_not_substituted(self):
        options = normalize_search_options({}, Preferences(units=None))
        assert options.units is None
        assert options.to_dict() == {}

    def test_unknown_keys_are_dropped(self):
        options = normalize_search_options({"q": "ignored", "bogus": 1, "count": 5})
        assert options.to_dict() == {"count": 5}

    def test_input_is_not_mutated(self):
        raw = {"count": "5"}
        normalize_search_options(raw, Preferences(country="US"))
        assert raw == {"count": "5"}

    def test_empty_units_means_absent(self):
        options = normalize_search_options({"units": ""}, Preferences(units="metric"))
        assert options.units == "metric"

    def test_result_filter_list_is_joined(self):
        options = normalize_search_options({"result_filter": ["web", "news"]})
        assert options.result_filter == "web,news"

    @pytest.mark.parametrize("raw,expected", [
        ('["https://a/goggle", "https://b/goggle"]', ["https://a/goggle", "https://b/goggle"]),
        ('"https://a/goggle"', ["https://a/goggle"]),
        ("https://a/goggle,https://b/goggle", ["https://a/goggle", "https://b/goggle"]),
        (["https://a/goggle"], ["https://a/goggle"]),
    ])
    def test_goggles_forms(self, raw, expected):
        assert normalize_search_options({"goggles": raw}).goggles == expected

    def test_options_record_passes_through(self):
        original = SearchOptions(count=4, country="DE")
        assert normalize_search_options(original) == original


class TestSuggestNormalization:
    """Suggest options only default the country."""

    def test_country_from_preferences(self):
        prefs = Preferences(country="GB", count=10, safesearch="strict")

        options = normalize_suggest_options({}, prefs)

        assert options == SuggestOptions(country="GB")

    def test_rich_is_coerced(self):
        options = normalize_suggest_options({"rich": "true", "count": "3"})
        assert options.rich is True
        assert options.count == 3

    def test_dispatch_by_kind(self):
        prefs = Preferences(count=7)

        assert isinstance(normalize_options({}, prefs, OptionsKind.SEARCH), SearchOptions)
        suggest = normalize_options({}, prefs, OptionsKind.SUGGEST)
        assert isinstance(suggest, SuggestOptions)
        assert suggest.count is None


class TestUrlBuilding:
    """Canonical options become upstream URLs."""

    def test_query_comes_first_then_field_order(self):
        options = SearchOptions(safesearch="moderate", count=5, country="US")

        url = build_search_url(SEARCH_ENDPOINT, "climate change", options)

        assert url.params.multi_items() == [
            ("q", "climate change"),
            ("count", "5"),
            ("country", "US"),
            ("safesearch", "moderate"),
        ]
        assert str(url).startswith(SEARCH_ENDPOINT + "?q=")

    def test_booleans_become_digits(self):
        options = SearchOptions(text_decorations=False, spellcheck=True)

        url = build_search_url(SEARCH_ENDPOINT, "x", options)

        assert url.params["text_decorations"] == "0"
        assert url.params["spellcheck"] == "1"

    def test_goggles_repeat(self):
        options = SearchOptions(goggles=["https://a/g", "https://b/g"])

        url = build_search_url(SEARCH_ENDPOINT, "x", options)

        assert url.params.get_list("goggles") == ["https://a/g", "https://b/g"]

    def test_absent_and_empty_values_are_omitted(self):
        options = SearchOptions(country="", units=None, goggles_id="")

        url = build_search_url(SEARCH_ENDPOINT, "x", options)

        assert url.params.multi_items() == [("q", "x")]

    def test_goggles_id_is_sent_when_set(self):
        options = SearchOptions(goggles_id="https://a/g")
        url = build_search_url(SEARCH_ENDPOINT, "x", options)
        assert url.params["goggles_id"] == "https://a/g"

    def test_no_defaults_added(self):
        url = build_search_url(SEARCH_ENDPOINT, "x", SearchOptions())
        assert list(url.params.keys()) == ["q"]

    def test_suggest_url(self):
        options = SuggestOptions(country="US", count=3, rich=True)

        url = build_suggest_url(SUGGEST_ENDPOINT, "pyth", options)

        assert url.path == "/res/v1/suggest/search"
        assert url.params.multi_items() == [
            ("q", "pyth"),
            ("country", "US"),
            ("count", "3"),
            ("rich", "1"),
        ]

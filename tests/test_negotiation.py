"""
Tests for response format negotiation and alternate links.
"""

import pytest

from cityjson_features.errors import InvalidParameterValue
from cityjson_features.negotiation import (
    F_HTML,
    F_JSON,
    alternate_format,
    format_query,
    items_links,
    negotiate_format,
    path_segment,
)

from conftest import BASE_URL


class TestNegotiateFormat:
    """Tests for negotiate_format()."""

    def test_default_is_html(self):
        """Test HTML is served when nothing asks otherwise."""
        assert negotiate_format({}, {}) == F_HTML

    def test_explicit_json(self):
        """Test f=json."""
        assert negotiate_format({"f": "json"}, {"Accept": "text/html"}) == F_JSON

    def test_explicit_html_beats_accept(self):
        """Test f=html wins over an Accept header asking for JSON."""
        assert negotiate_format({"f": "html"}, {"Accept": "application/json"}) == F_HTML

    @pytest.mark.parametrize("value", ["xml", "JSON", "", "geojson"])
    def test_invalid_f(self, value):
        """Test an unsupported f is rejected whatever Accept says."""
        with pytest.raises(InvalidParameterValue):
            negotiate_format({"f": value}, {"Accept": "application/json"})

    @pytest.mark.parametrize("accept,expected", [
        ("application/json", F_JSON),
        ("application/geo+json", F_JSON),
        ("text/html", F_HTML),
        ("text/html;q=0.9, application/json", F_HTML),
        ("image/png, application/json;q=0.5", F_JSON),
        ("*/*", F_HTML),
    ])
    def test_accept_header(self, accept, expected):
        """Test the first recognised media type decides."""
        assert negotiate_format({}, {"accept": accept}) == expected


class TestLinks:
    """Tests for self / alternate link construction."""

    def test_alternate_format(self):
        """Test each format has the other as alternate."""
        assert alternate_format(F_JSON) == F_HTML
        assert alternate_format(F_HTML) == F_JSON

    def test_f_replaced_in_place(self):
        """Test an existing f keeps its position."""
        query = format_query([("f", "html"), ("limit", "5")], F_JSON)

        assert query == "f=json&limit=5"

    def test_f_appended(self):
        """Test f is appended when absent."""
        query = format_query([("limit", "5"), ("type", "Building")], F_HTML)

        assert query == "limit=5&type=Building&f=html"

    def test_items_links_for_json(self):
        """Test self ends with f=json and alternate with f=html."""
        self_link, alternate = items_links(
            BASE_URL, "delft", [("limit", "5"), ("bbox", "4,52,5,53"), ("f", "json")], F_JSON
        )

        assert self_link.rel == "self"
        assert self_link.type == "application/json"
        assert self_link.href.startswith(f"{BASE_URL}/collections/delft/items?limit=5&bbox=")
        assert self_link.href.endswith("f=json")
        assert alternate.rel == "alternate"
        assert alternate.type == "text/html"
        assert alternate.href.endswith("f=html")

    def test_items_links_keep_filters(self):
        """Test both links carry the same filter parameters."""
        self_link, alternate = items_links(BASE_URL, "delft", [("type", "Building")], F_HTML)

        assert self_link.href == f"{BASE_URL}/collections/delft/items?type=Building&f=html"
        assert alternate.href == f"{BASE_URL}/collections/delft/items?type=Building&f=json"

    def test_collection_id_escaped(self):
        """Test spaces, slashes and fragments in a CityModel name stay in one path segment."""
        self_link, alternate = items_links(BASE_URL, "my model#1/a", [("f", "json")], F_JSON)

        assert self_link.href == f"{BASE_URL}/collections/my%20model%231%2Fa/items?f=json"
        assert alternate.href == f"{BASE_URL}/collections/my%20model%231%2Fa/items?f=html"

    def test_path_segment(self):
        """Test plain ids are left untouched."""
        assert path_segment("building-1_part.2") == "building-1_part.2"
        assert path_segment("a b?c") == "a%20b%3Fc"

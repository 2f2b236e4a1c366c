"""
Tests for JSON and HTML rendering.
"""

import json

import pytest

from cityjson_features.models import OGCLandingPage, OGCLink
from cityjson_features.rendering import JinjaHtmlRenderer, render


class StubRenderer:
    """Records what it was asked to render."""

    def __init__(self):
        self.calls = []

    def render(self, kind, payload):
        self.calls.append((kind, payload))
        return f"<p>{kind}</p>"


@pytest.fixture
def landing_page() -> OGCLandingPage:
    return OGCLandingPage(
        title="CityJSON <test>",
        description="Test API",
        links=[OGCLink(href="http://test/api/features/collections", rel="data", title="Collections")],
    )


class TestRender:
    """Tests for render()."""

    def test_json(self, landing_page):
        """Test JSON bodies are the dumped envelope."""
        body = render("json", "landing", landing_page)

        assert body.media_type == "application/json"
        assert json.loads(body.content) == landing_page.model_dump(mode="json", exclude_none=True)

    def test_json_drops_none(self):
        """Test unset optional fields are left out."""
        body = render("json", "landing", OGCLandingPage(title="t", links=[]))

        assert "description" not in json.loads(body.content)

    def test_html_uses_renderer(self, landing_page):
        """Test the HTML collaborator receives the same payload as JSON."""
        renderer = StubRenderer()

        body = render("html", "landing", landing_page, renderer=renderer)

        assert body.media_type == "text/html"
        assert body.content == "<p>landing</p>"
        assert renderer.calls == [("landing", json.loads(render("json", "landing", landing_page).content))]

    def test_unknown_kind(self, landing_page):
        """Test an unknown page kind is refused."""
        with pytest.raises(ValueError):
            render("json", "tiles", landing_page)

    def test_unknown_format(self, landing_page):
        """Test an unknown format is refused."""
        with pytest.raises(ValueError):
            render("xml", "landing", landing_page)


class TestJinjaHtmlRenderer:
    """Tests for the packaged templates."""

    def test_landing_page(self, landing_page):
        """Test title escaping and link footer."""
        html = render("html", "landing", landing_page, renderer=JinjaHtmlRenderer()).content

        assert "CityJSON &lt;test&gt;" in html
        assert 'href="http://test/api/features/collections"' in html

    def test_items_page(self):
        """Test the items table lists each CityObject."""
        payload = {
            "id": "delft",
            "links": [],
            "items": [
                {"name": "building-1", "type": "Building", "geometry": [{"type": "Solid"}]},
                {"name": "tree-1", "type": "SolitaryVegetationObject", "geometry": [{"type": "GeometryInstance"}]},
            ],
        }

        html = JinjaHtmlRenderer().render("items", payload)

        assert "building-1" in html
        assert "GeometryInstance" in html

    @pytest.mark.parametrize("kind", ["landing", "collections", "collection", "items", "item"])
    def test_every_kind_has_a_template(self, kind):
        """Test each page kind resolves to a template."""
        assert JinjaHtmlRenderer().environment.get_template(f"{kind}.html") is not None

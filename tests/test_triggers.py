"""
Tests for the Azure Functions HTTP triggers.
"""

import json
from typing import Dict, Optional

import azure.functions as func
import pytest

from cityjson_features.triggers import (
    CollectionTrigger,
    CollectionsTrigger,
    ConformanceTrigger,
    ItemTrigger,
    ItemsTrigger,
    LandingPageTrigger,
    get_cityjson_triggers,
)

from conftest import BASE_URL


def make_request(
    path: str,
    params: Optional[Dict[str, str]] = None,
    route_params: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> func.HttpRequest:
    params = params or {}
    query = "&".join(f"{k}={v}" for k, v in params.items())
    return func.HttpRequest(
        method="GET",
        url=f"{BASE_URL}{path}" + (f"?{query}" if query else ""),
        headers=headers or {},
        params=params,
        route_params=route_params or {},
        body=b"",
    )


def error_code(response: func.HttpResponse) -> str:
    return json.loads(response.get_body())["error"]["code"]


@pytest.fixture
def items_trigger(service) -> ItemsTrigger:
    return ItemsTrigger(service=service, schema_check=lambda: True)


class TestItemsTrigger:
    """Tests for GET /collections/{collection_id}/items."""

    def test_json(self, items_trigger):
        """Test f=json returns the items envelope."""
        response = items_trigger.handle(make_request(
            "/collections/delft/items", params={"f": "json", "limit": "2"},
            route_params={"collection_id": "delft"},
        ))

        assert response.status_code == 200
        assert response.mimetype == "application/json"
        body = json.loads(response.get_body())
        assert len(body["items"]) == 2
        assert body["links"][0]["href"].endswith("?f=json&limit=2")
        assert body["links"][1]["href"].endswith("?f=html&limit=2")

    def test_html_by_default(self, items_trigger):
        """Test HTML is served without f or Accept."""
        response = items_trigger.handle(make_request(
            "/collections/delft/items", route_params={"collection_id": "delft"},
        ))

        assert response.status_code == 200
        assert response.mimetype == "text/html"
        assert b"building-1" in response.get_body()

    def test_accept_json(self, items_trigger):
        """Test the Accept header selects JSON."""
        response = items_trigger.handle(make_request(
            "/collections/delft/items", route_params={"collection_id": "delft"},
            headers={"Accept": "application/json"},
        ))

        assert response.mimetype == "application/json"

    @pytest.mark.parametrize("params,code", [
        ({"limit": "0"}, "InvalidParameterValue"),
        ({"limit": "-5"}, "InvalidParameterValue"),
        ({"bbox": "-200,10,-100,20"}, "InvalidParameterValue"),
        ({"bbox": "10,10,0,20,20,100"}, "Only2DSphereSupported"),
        ({"datetime": "2020-01-01"}, "UnsupportedParameter"),
        ({"f": "xml"}, "InvalidParameterValue"),
    ])
    def test_parameter_errors(self, items_trigger, params, code):
        """Test parameter errors are 400 with the error envelope."""
        response = items_trigger.handle(make_request(
            "/collections/delft/items", params=params, route_params={"collection_id": "delft"},
        ))

        assert response.status_code == 400
        assert response.mimetype == "application/json"
        assert error_code(response) == code

    def test_no_items(self, items_trigger):
        """Test an empty filtered result is 404 NoItemsFound."""
        response = items_trigger.handle(make_request(
            "/collections/delft/items", params={"bbox": "10,10,20,20"},
            route_params={"collection_id": "delft"},
        ))

        assert response.status_code == 404
        assert error_code(response) == "NoItemsFound"

    def test_unknown_collection(self, items_trigger):
        """Test a missing collection is 404 NoCollectionFound."""
        response = items_trigger.handle(make_request(
            "/collections/rotterdam/items", route_params={"collection_id": "rotterdam"},
        ))

        assert response.status_code == 404
        assert error_code(response) == "NoCollectionFound"

    def test_storage_unavailable(self, service, unavailable_repository):
        """Test storage faults surface as 503."""
        trigger = ItemsTrigger(service=service, schema_check=lambda: True)

        response = trigger.handle(make_request(
            "/collections/delft/items", route_params={"collection_id": "delft"},
        ))

        assert response.status_code == 503
        assert error_code(response) == "StorageUnavailable"

    def test_schema_missing(self, service):
        """Test a missing schema answers 503 before anything else."""
        trigger = ItemsTrigger(service=service, schema_check=lambda: False)

        response = trigger.handle(make_request(
            "/collections/delft/items", params={"limit": "0"}, route_params={"collection_id": "delft"},
        ))

        assert response.status_code == 503

    def test_unexpected_error(self, service, repository):
        """Test unexpected exceptions are 500 InternalServerError."""
        repository.fail_with = RuntimeError("boom")
        trigger = ItemsTrigger(service=service, schema_check=lambda: True)

        response = trigger.handle(make_request(
            "/collections/delft/items", route_params={"collection_id": "delft"},
        ))

        assert response.status_code == 500
        assert error_code(response) == "InternalServerError"


class TestOtherTriggers:
    """Tests for landing, conformance, collections and item endpoints."""

    def test_landing_page_needs_no_database(self, service):
        """Test the landing page is served even without the schema."""
        trigger = LandingPageTrigger(service=service, schema_check=lambda: False)

        response = trigger.handle(make_request("", params={"f": "json"}))

        assert response.status_code == 200
        assert json.loads(response.get_body())["title"] == service.config.api_title

    def test_conformance_always_json(self, service):
        """Test conformance ignores Accept."""
        trigger = ConformanceTrigger(service=service, schema_check=lambda: False)

        response = trigger.handle(make_request("/conformance", headers={"Accept": "text/html"}))

        assert response.mimetype == "application/json"
        assert "conformsTo" in json.loads(response.get_body())

    def test_collections_html(self, service):
        """Test the collections page in HTML."""
        trigger = CollectionsTrigger(service=service, schema_check=lambda: True)

        response = trigger.handle(make_request("/collections"))

        assert response.mimetype == "text/html"
        assert b"delft" in response.get_body()

    def test_collection_not_found(self, service):
        """Test a missing collection."""
        trigger = CollectionTrigger(service=service, schema_check=lambda: True)

        response = trigger.handle(make_request(
            "/collections/rotterdam", params={"f": "json"}, route_params={"collection_id": "rotterdam"},
        ))

        assert response.status_code == 404
        assert error_code(response) == "NoCollectionFound"

    def test_item(self, service):
        """Test a single CityObject."""
        trigger = ItemTrigger(service=service, schema_check=lambda: True)

        response = trigger.handle(make_request(
            "/collections/delft/items/building-1", params={"f": "json"},
            route_params={"collection_id": "delft", "item_id": "building-1"},
        ))

        assert response.status_code == 200
        assert json.loads(response.get_body())["name"] == "building-1"

    def test_item_not_found(self, service):
        """Test a missing CityObject."""
        trigger = ItemTrigger(service=service, schema_check=lambda: True)

        response = trigger.handle(make_request(
            "/collections/delft/items/nope", params={"f": "json"},
            route_params={"collection_id": "delft", "item_id": "nope"},
        ))

        assert response.status_code == 404
        assert error_code(response) == "NoItemFound"


class TestRegistry:
    """Tests for get_cityjson_triggers()."""

    def test_routes(self):
        """Test the six routes and their handlers."""
        triggers = get_cityjson_triggers()

        assert [t['route'] for t in triggers] == [
            'features',
            'features/conformance',
            'features/collections',
            'features/collections/{collection_id}',
            'features/collections/{collection_id}/items',
            'features/collections/{collection_id}/items/{item_id}',
        ]
        assert all(t['methods'] == ['GET'] for t in triggers)
        assert all(callable(t['handler']) for t in triggers)

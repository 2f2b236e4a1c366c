"""
Pytest configuration and fixtures for CityJSON Features API tests.
"""

import copy
from typing import Any, Dict, List, Optional

import pytest

from cityjson_features.config import CityJSONFeaturesConfig
from cityjson_features.errors import StorageUnavailable
from cityjson_features.query import FeatureFilter
from cityjson_features.service import CityJSONFeaturesService

BASE_URL = "http://localhost:7071/api/features"

CUBE_SHELL = [
    [[0, 3, 2, 1]],
    [[4, 5, 6, 7]],
    [[0, 1, 5, 4]],
    [[1, 2, 6, 5]],
    [[2, 3, 7, 6]],
    [[3, 0, 4, 7]],
]

IDENTITY_MATRIX = [
    1.0, 0.0, 0.0, 0.0,
    0.0, 1.0, 0.0, 0.0,
    0.0, 0.0, 1.0, 0.0,
    0.0, 0.0, 0.0, 1.0,
]

SAMPLE_GEOMETRIES: Dict[str, Dict[str, Any]] = {
    "MultiPoint": {"type": "MultiPoint", "lod": "1", "boundaries": [0, 1, 2]},
    "MultiLineString": {"type": "MultiLineString", "lod": "1", "boundaries": [[0, 1], [2, 3]]},
    "MultiSurface": {"type": "MultiSurface", "lod": "2", "boundaries": [[[0, 1, 2, 3]], [[4, 5, 6, 7]]]},
    "CompositeSurface": {"type": "CompositeSurface", "lod": "2", "boundaries": [[[0, 1, 2, 3]], [[4, 5, 6, 7]]]},
    "Solid": {"type": "Solid", "lod": "2", "boundaries": [CUBE_SHELL]},
    "MultiSolid": {"type": "MultiSolid", "lod": "2", "boundaries": [[CUBE_SHELL]]},
    "CompositeSolid": {"type": "CompositeSolid", "lod": "2", "boundaries": [[CUBE_SHELL], [CUBE_SHELL]]},
}

BOUNDARY_DEPTHS = {
    "MultiPoint": 1,
    "MultiLineString": 2,
    "MultiSurface": 3,
    "CompositeSurface": 3,
    "Solid": 4,
    "MultiSolid": 5,
    "CompositeSolid": 5,
}


def sample_geometry(variant: str) -> Dict[str, Any]:
    """Fresh copy of a valid sample geometry."""
    return copy.deepcopy(SAMPLE_GEOMETRIES[variant])


def solid_with_semantics() -> Dict[str, Any]:
    geometry = sample_geometry("Solid")
    geometry["semantics"] = {
        "surfaces": [
            {"type": "GroundSurface"},
            {"type": "RoofSurface", "slope": 33.4},
            {"type": "WallSurface"},
        ],
        "values": [[0, 1, 2, 2, 2, None]],
    }
    return geometry


def geometry_instance() -> Dict[str, Any]:
    return {
        "type": "GeometryInstance",
        "template": 0,
        "boundaries": [4],
        "transformationMatrix": list(IDENTITY_MATRIX),
    }


def sample_document() -> Dict[str, Any]:
    """Small CityJSON document with lon/lat vertices around Delft."""
    return {
        "type": "CityJSON",
        "version": "1.0",
        "metadata": {"referenceSystem": "urn:ogc:def:crs:EPSG::4326"},
        "CityObjects": {
            "building-1": {
                "type": "Building",
                "attributes": {"roofType": "gabled", "storeys": 2},
                "children": ["building-1-part"],
                "geometry": [solid_with_semantics()],
            },
            "building-1-part": {
                "type": "BuildingPart",
                "parents": ["building-1"],
                "geometry": [sample_geometry("MultiSurface")],
            },
            "tree-1": {
                "type": "SolitaryVegetationObject",
                "geometry": [geometry_instance()],
            },
        },
        "vertices": [
            [4.36, 52.00, 0.0],
            [4.37, 52.00, 0.0],
            [4.37, 52.01, 0.0],
            [4.36, 52.01, 0.0],
            [4.36, 52.00, 10.0],
            [4.37, 52.00, 10.0],
            [4.37, 52.01, 10.0],
            [4.36, 52.01, 10.0],
        ],
    }


class FakeRepository:
    """
    In-memory stand-in for CityJSONRepository.

    Rows are kept in CityJSON form, the way the PostGIS repository returns them.
    """

    def __init__(self):
        self.models: Dict[str, Dict[str, Any]] = {}
        self.objects: Dict[str, List[Dict[str, Any]]] = {}
        self.fail_with: Optional[Exception] = None
        self.filters: List[FeatureFilter] = []
        self.schema_created = False

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def ensure_schema(self) -> None:
        self._check()
        self.schema_created = True

    def delete_city_model(self, name: str) -> bool:
        self._check()
        self.objects.pop(name, None)
        return self.models.pop(name, None) is not None

    def list_city_models(self) -> List[Dict[str, Any]]:
        self._check()
        return [self.models[name] for name in sorted(self.models)]

    def get_city_model(self, name: str) -> Optional[Dict[str, Any]]:
        self._check()
        return self.models.get(name)

    def insert_city_model(self, name, metadata, city_objects) -> None:
        self._check()
        self.models[name] = {"name": name, "metadata": metadata}
        self.objects[name] = [city_object.to_cityjson() for city_object in city_objects]

    def query_city_objects(self, feature_filter: FeatureFilter) -> List[Dict[str, Any]]:
        self._check()
        self.filters.append(feature_filter)
        rows = [
            row for row in self.objects.get(feature_filter.collection_id, [])
            if self._matches(row, feature_filter)
        ]
        return copy.deepcopy(rows[feature_filter.offset:feature_filter.offset + feature_filter.limit])

    def get_city_object(self, city_model: str, name: str) -> Optional[Dict[str, Any]]:
        self._check()
        for row in self.objects.get(city_model, []):
            if row["name"] == name:
                return copy.deepcopy(row)
        return None

    @staticmethod
    def _matches(row: Dict[str, Any], feature_filter: FeatureFilter) -> bool:
        for key, value in feature_filter.equality_predicates.items():
            if key in ("name", "type"):
                if row[key] != value:
                    return False
            else:
                attribute = key[len("attributes."):] if key.startswith("attributes.") else key
                if attribute not in row["attributes"] or str(row["attributes"][attribute]) != value:
                    return False

        if feature_filter.bbox is not None:
            location = row.get("location")
            if not location:
                return False
            min_x, min_y, max_x, max_y = feature_filter.bbox
            for x, y in _positions(location):
                if not (min_x < x < max_x and min_y < y < max_y):
                    return False
        return True


def _positions(location: Dict[str, Any]):
    coordinates = location["coordinates"]
    if location["type"] == "Point":
        return [coordinates]
    if location["type"] == "LineString":
        return coordinates
    return coordinates[0]


@pytest.fixture
def config() -> CityJSONFeaturesConfig:
    """Explicit test configuration."""
    return CityJSONFeaturesConfig(
        cityjson_schema="cityjson_test",
        default_limit=10,
        max_limit=10000,
        base_url=BASE_URL,
    )


@pytest.fixture
def repository() -> FakeRepository:
    """Fake repository holding the sample document as collection 'delft'."""
    from cityjson_features.ingest import import_city_model

    repo = FakeRepository()
    import_city_model(sample_document(), "delft", repo)
    return repo


@pytest.fixture
def service(config, repository) -> CityJSONFeaturesService:
    return CityJSONFeaturesService(config=config, repository=repository)


@pytest.fixture
def unavailable_repository(repository) -> FakeRepository:
    repository.fail_with = StorageUnavailable("Storage is unavailable: connection refused")
    return repository

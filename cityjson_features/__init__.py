# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES API MODULE
# ============================================================================
# STATUS: Standalone Module - CityJSON OGC API - Features implementation
# PURPOSE: Serve CityJSON city models as OGC API - Features collections
# EXPORTS: CityJSONFeaturesService, CityJSONFeaturesConfig, get_cityjson_triggers,
#          validate_geometry, build_filter, import_city_model
# INTERFACES: Standalone - root config.py supplies the PostgreSQL connection
# PYDANTIC_MODELS: Geometry variants, CityObject, CityObjectItems, OGCLandingPage
# DEPENDENCIES: psycopg, pydantic, jinja2, azure-functions
# SOURCE: Environment variables, PostGIS city_models / city_objects tables
# PATTERNS: Service Layer, Repository Pattern, Standalone Module
# ENTRY_POINTS: from cityjson_features import get_cityjson_triggers
# ============================================================================

"""
CityJSON Features API - Standalone Module

Exposes CityJSON CityModels as OGC API - Features collections and their
CityObjects as items. Geometry documents are checked against the eight
CityJSON geometry variants before they are stored, and again before they
are served.

Architecture:
    cityjson_features/
    ├── errors.py       # Error taxonomy and envelope
    ├── config.py       # Environment-based configuration
    ├── geometry.py     # Geometry variant registry and models
    ├── validator.py    # Structural geometry validation
    ├── cityobjects.py  # CityObject model and per-type rules
    ├── ingest.py       # CityJSON document import
    ├── query.py        # Query parameter validation -> FeatureFilter
    ├── negotiation.py  # json / html selection, self / alternate links
    ├── rendering.py    # JSON and Jinja2 HTML bodies
    ├── models.py       # Pydantic envelope models
    ├── repository.py   # PostGIS direct access (psycopg)
    ├── service.py      # Business logic layer
    └── triggers.py     # Azure Functions HTTP handlers

Integration:
    # In function_app.py (ONLY integration point)
    from cityjson_features import get_cityjson_triggers

    for trigger in get_cityjson_triggers():
        app.route(
            route=trigger['route'],
            methods=trigger['methods'],
            auth_level=func.AuthLevel.ANONYMOUS
        )(trigger['handler'])
"""

from .config import CityJSONFeaturesConfig, get_cityjson_config
from .errors import CityJSONFeaturesError
from .geometry import GeometryType, shape_of
from .ingest import import_city_model
from .query import build_filter
from .service import CityJSONFeaturesService
from .triggers import get_cityjson_triggers
from .validator import validate_geometry, validate_geometries

__version__ = "1.0.0"
__all__ = [
    "CityJSONFeaturesConfig",
    "CityJSONFeaturesError",
    "CityJSONFeaturesService",
    "GeometryType",
    "build_filter",
    "get_cityjson_config",
    "get_cityjson_triggers",
    "import_city_model",
    "shape_of",
    "validate_geometries",
    "validate_geometry",
]

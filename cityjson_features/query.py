# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES QUERY FILTER
# ============================================================================
# STATUS: Standalone Module - items query parameter validation
# PURPOSE: Turn raw OGC query parameters into a validated storage filter
# EXPORTS: FeatureFilter, build_filter, parse_bbox, RESERVED_PARAMETERS
# INTERFACES: Pydantic BaseModel (FeatureFilter)
# PYDANTIC_MODELS: FeatureFilter
# DEPENDENCIES: pydantic, re, typing
# SOURCE: Query string of GET /collections/{collectionId}/items
# PATTERNS: Parse-then-validate, immutable filter value
# ENTRY_POINTS: feature_filter = build_filter(req.params, collection_id)
# ============================================================================

"""
Items Query Filter

Parameters handled here:

- ``datetime``: always rejected (temporal filtering is not supported)
- ``limit``: integer in [1, max_limit], default from config (10)
- ``offset``: integer >= 0, default 0
- ``bbox``: ``minLon,minLat,maxLon,maxLat`` in WGS84; 6-value boxes rejected
- ``f``: format, handled by negotiation.py
- anything else: attribute equality predicate passed to storage untouched
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import CityJSONFeaturesConfig, get_cityjson_config
from .errors import InvalidParameterValue, Only2DSphereSupported, UnsupportedParameter

logger = logging.getLogger(__name__)

RESERVED_PARAMETERS = frozenset({"f", "limit", "offset", "bbox", "datetime"})

# three or more "number," groups followed by one more number
BBOX_PATTERN = re.compile(r"(-?\d+(\.\d*)?,){3,}-?\d+(\.\d*)?")

LONGITUDE_RANGE = (-180.0, 180.0)
LATITUDE_RANGE = (-90.0, 90.0)


class FeatureFilter(BaseModel):
    """
    Validated items query, consumed by the storage collaborator.

    ``equality_predicates`` stays a plain mapping kept apart from the typed
    paging and spatial fields; sanitising it is the storage layer's job.
    """
    model_config = ConfigDict(frozen=True)

    collection_id: str
    equality_predicates: Dict[str, str] = Field(default_factory=dict)
    spatial_polygon: Optional[Dict[str, Any]] = None
    bbox: Optional[List[float]] = None
    limit: int
    offset: int = 0


def build_filter(
    raw_params: Mapping[str, str],
    collection_id: str,
    config: Optional[CityJSONFeaturesConfig] = None
) -> FeatureFilter:
    """
    Validate items query parameters and build the storage filter.

    Args:
        raw_params: Query parameters (single value per key)
        collection_id: Collection (CityModel name) being queried
        config: Limits configuration (uses singleton if not provided)

    Returns:
        FeatureFilter with paging window, optional polygon and predicates

    Raises:
        UnsupportedParameter: ``datetime`` given
        InvalidParameterValue: Malformed limit, offset or bbox
        Only2DSphereSupported: 6-value bbox
    """
    config = config or get_cityjson_config()

    if "datetime" in raw_params:
        raise UnsupportedParameter("datetime is not supported")

    limit = _parse_int(raw_params.get("limit"), "limit", config.default_limit)
    if not 1 <= limit <= config.max_limit:
        raise InvalidParameterValue(
            f"limit must be between 1 and {config.max_limit}, got {limit}"
        )

    offset = _parse_int(raw_params.get("offset"), "offset", 0)
    if offset < 0:
        raise InvalidParameterValue(f"offset must not be negative, got {offset}")

    bbox = None
    polygon = None
    if raw_params.get("bbox") is not None:
        bbox = parse_bbox(raw_params["bbox"])
        polygon = bbox_polygon(bbox)

    predicates = {
        key: value for key, value in raw_params.items()
        if key not in RESERVED_PARAMETERS
    }

    feature_filter = FeatureFilter(
        collection_id=collection_id,
        equality_predicates=predicates,
        spatial_polygon=polygon,
        bbox=bbox,
        limit=limit,
        offset=offset,
    )
    logger.debug(f"Built filter for '{collection_id}': {feature_filter}")
    return feature_filter


def parse_bbox(raw_bbox: str) -> List[float]:
    """
    Parse and validate a 2D WGS84 bbox.

    Coordinates must lie strictly inside (-180, 180) and (-90, 90); the
    bounds themselves are rejected.

    Returns:
        [min_lon, min_lat, max_lon, max_lat]
    """
    if not BBOX_PATTERN.fullmatch(str(raw_bbox).strip()):
        raise InvalidParameterValue("Invalid bbox format")

    values = [float(part) for part in str(raw_bbox).strip().split(",")]

    if len(values) == 6:
        raise Only2DSphereSupported("Only 2dsphere index is currently supported by the database")
    if len(values) != 4:
        raise InvalidParameterValue(f"Invalid bbox format - expected 4 values, got {len(values)}")

    min_x, min_y, max_x, max_y = values

    if min_x >= max_x or min_y >= max_y:
        raise InvalidParameterValue(
            "Invalid bbox format - min and max coordinates are not respected"
        )

    checks = [
        (min_x, LONGITUDE_RANGE, "min longitude"),
        (min_y, LATITUDE_RANGE, "min latitude"),
        (max_x, LONGITUDE_RANGE, "max longitude"),
        (max_y, LATITUDE_RANGE, "max latitude"),
    ]
    for value, (low, high), label in checks:
        if not low < value < high:
            raise InvalidParameterValue(f"Invalid bbox format - {label} problem")

    return values


def bbox_polygon(bbox: List[float]) -> Dict[str, Any]:
    """Closed GeoJSON rectangle (5 positions, first == last) for a 2D bbox."""
    min_x, min_y, max_x, max_y = bbox
    return {
        "type": "Polygon",
        "coordinates": [[
            [min_x, min_y],
            [min_x, max_y],
            [max_x, max_y],
            [max_x, min_y],
            [min_x, min_y],
        ]],
    }


def _parse_int(raw: Optional[str], name: str, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InvalidParameterValue(f"{name} must be an integer, got '{raw}'") from None

# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES MODELS
# ============================================================================
# STATUS: Standalone Models - OGC API response envelopes
# PURPOSE: OGC API - Features response models for CityJSON collections
# EXPORTS: OGCLink, OGCLandingPage, OGCConformance, CityModelCollection,
#          CityModelCollectionList, CityObjectItems, OGCExtent
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: All classes in this file
# DEPENDENCIES: pydantic, typing
# SOURCE: OGC API - Features Core 1.0 specification
# PATTERNS: Data Transfer Objects (DTOs)
# ENTRY_POINTS: from cityjson_features.models import CityObjectItems
# ============================================================================

"""
OGC API - Features Core 1.0 Pydantic Models

Collections are CityModels and items are CityObjects. Property names follow
the JSON payloads served by the API.

References:
- OGC API - Features Core 1.0: https://docs.ogc.org/is/17-069r4/17-069r4.html
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

CRS84 = "http://www.opengis.net/def/crs/OGC/1.3/CRS84"

CONFORMANCE_CLASSES = [
    "http://www.opengis.net/spec/ogcapi-features-1/1.0/conf/core",
    "http://www.opengis.net/spec/ogcapi-features-1/1.0/conf/html",
    "http://www.opengis.net/spec/ogcapi-features-1/1.0/conf/oas30",
    "http://www.opengis.net/spec/ogcapi-features-1/1.0/conf/geojson",
]


class OGCLink(BaseModel):
    """
    OGC API Link object (RFC 8288 Web Linking).
    """
    href: str = Field(
        description="URL of the linked resource"
    )
    rel: str = Field(
        description="Link relation type (self, alternate, collection, etc.)"
    )
    type: Optional[str] = Field(
        default=None,
        description="Media type of the linked resource"
    )
    title: Optional[str] = Field(
        default=None,
        description="Human-readable title for the link"
    )


class OGCLandingPage(BaseModel):
    """
    OGC API - Features Landing Page (root endpoint).
    """
    title: str = Field(
        description="Title of the API"
    )
    description: Optional[str] = Field(
        default=None,
        description="Description of the API"
    )
    links: List[OGCLink] = Field(
        description="Links to API resources (conformance, collections, etc.)"
    )


class OGCConformance(BaseModel):
    """
    OGC API - Features Conformance Declaration.
    """
    conformsTo: List[str] = Field(
        default_factory=lambda: list(CONFORMANCE_CLASSES),
        description="List of conformance class URIs"
    )


class OGCSpatialExtent(BaseModel):
    """Spatial extent (bounding box) in CRS84."""
    bbox: List[List[float]] = Field(
        description="Bounding boxes (minx, miny, maxx, maxy)"
    )
    crs: str = Field(
        default=CRS84,
        description="Coordinate reference system"
    )


class OGCExtent(BaseModel):
    spatial: Optional[OGCSpatialExtent] = None


class CityModelCollection(BaseModel):
    """
    One CityModel exposed as an OGC collection.
    """
    name: str = Field(
        description="Unique CityModel name (collection identifier)"
    )
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Free-form CityJSON metadata of the model"
    )
    links: List[OGCLink] = Field(
        description="Links to the collection and its items"
    )


class CityModelCollectionList(BaseModel):
    """
    OGC API - Features Collections list response.
    """
    links: List[OGCLink] = Field(
        description="Links to related resources"
    )
    collections: List[CityModelCollection] = Field(
        description="List of available CityModels"
    )


class CityObjectItems(BaseModel):
    """
    Items of one collection matching a query.
    """
    id: str = Field(
        description="Collection identifier"
    )
    links: List[OGCLink] = Field(
        description="self / alternate representations and the parent collection"
    )
    extent: Optional[OGCExtent] = Field(
        default=None,
        description="Requested spatial extent, when a bbox was given"
    )
    itemType: Literal["feature"] = Field(
        default="feature",
        description="Type of items in collection"
    )
    crs: List[str] = Field(
        default_factory=lambda: [CRS84],
        description="Supported coordinate reference systems"
    )
    items: List[Dict[str, Any]] = Field(
        description="CityObjects in CityJSON form"
    )

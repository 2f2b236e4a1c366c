# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES SERVICE
# ============================================================================
# STATUS: Standalone Service - CityJSON Features API business logic
# PURPOSE: Build OGC envelopes for CityModels and CityObjects
# EXPORTS: CityJSONFeaturesService
# INTERFACES: Repository (CityJSONRepository or any object with the same methods)
# PYDANTIC_MODELS: OGCLandingPage, OGCConformance, CityModelCollection,
#                  CityModelCollectionList, CityObjectItems, OGCLink
# DEPENDENCIES: typing, logging
# SOURCE: Repository layer (CityJSONRepository)
# SCOPE: Business logic for OGC API operations
# PATTERNS: Service Layer, Facade Pattern
# ENTRY_POINTS: service = CityJSONFeaturesService(config); items = service.query_items(...)
# ============================================================================

"""
CityJSON Features Service - Business Logic Layer

Orchestrates the API between HTTP triggers and the repository:
- Query validation (query.build_filter) before storage is touched
- Envelope creation (landing, collections, collection, items, item)
- Link generation (self, alternate, collection)
- Re-validation of stored geometries before they are served

Storage faults propagate as StorageError / StorageUnavailable and are never
turned into "no items" answers.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from .cityobjects import validate_city_object
from .config import CityJSONFeaturesConfig, get_cityjson_config
from .errors import NoCollectionFound, NoItemFound, NoItemsFound, StorageError, StructuralError
from .models import (
    CityModelCollection,
    CityModelCollectionList,
    CityObjectItems,
    OGCConformance,
    OGCExtent,
    OGCLandingPage,
    OGCLink,
    OGCSpatialExtent,
)
from .negotiation import F_JSON, FORMAT_TYPES, alternate_format, items_links, path_segment
from .query import build_filter
from .rendering import HtmlRenderer, RenderedBody, render

logger = logging.getLogger(__name__)


class CityJSONFeaturesService:
    """
    Business logic service for the CityJSON Features API.

    Responsibilities:
    - Generate OGC-compliant envelopes (landing page, conformance, collections)
    - Validate items queries and hand the filter to the repository
    - Create self / alternate links for both representations
    - Re-hydrate stored CityObjects through the geometry validator
    """

    def __init__(
        self,
        config: Optional[CityJSONFeaturesConfig] = None,
        repository=None,
        renderer: Optional[HtmlRenderer] = None
    ):
        """
        Args:
            config: API configuration (uses singleton if not provided)
            repository: Storage collaborator (CityJSONRepository if not provided)
            renderer: HTML renderer (packaged templates if not provided)
        """
        self.config = config or get_cityjson_config()
        if repository is None:
            from .repository import CityJSONRepository
            repository = CityJSONRepository(self.config)
        self.repository = repository
        self.renderer = renderer
        logger.info("CityJSONFeaturesService initialized")

    # ========================================================================
    # LANDING PAGE & CONFORMANCE
    # ========================================================================

    def get_landing_page(self, base_url: str, format_: str = F_JSON) -> OGCLandingPage:
        links = self._format_links(base_url, format_, title="This document")
        links.extend([
            OGCLink(
                href=f"{base_url}/conformance",
                rel="conformance",
                type="application/json",
                title="Conformance classes"
            ),
            OGCLink(
                href=f"{base_url}/collections",
                rel="data",
                type="application/json",
                title="Collections"
            ),
        ])

        return OGCLandingPage(
            title=self.config.api_title,
            description=self.config.api_description,
            links=links
        )

    def get_conformance(self) -> OGCConformance:
        return OGCConformance()

    # ========================================================================
    # COLLECTIONS
    # ========================================================================

    def list_collections(self, base_url: str, format_: str = F_JSON) -> CityModelCollectionList:
        """
        List every CityModel as a collection.
        """
        raw_models = self.repository.list_city_models()

        collections = [
            self._build_collection_model(raw_model, base_url)
            for raw_model in raw_models
        ]

        links = self._format_links(f"{base_url}/collections", format_, title="This document")
        links.append(OGCLink(
            href=base_url,
            rel="parent",
            type="application/json",
            title="Landing page"
        ))

        logger.info(f"Listed {len(collections)} collections")

        return CityModelCollectionList(links=links, collections=collections)

    def get_collection(self, collection_id: str, base_url: str, format_: str = F_JSON) -> CityModelCollection:
        """
        Raises:
            NoCollectionFound: No CityModel with that name
        """
        raw_model = self.repository.get_city_model(collection_id)
        if raw_model is None:
            raise NoCollectionFound(f"There is no collection {collection_id}")

        collection_url = f"{base_url}/collections/{path_segment(collection_id)}"
        collection = self._build_collection_model(raw_model, base_url)
        collection.links = self._format_links(
            collection_url, format_, title="This collection"
        ) + [
            OGCLink(
                href=f"{collection_url}/items",
                rel="items",
                type="application/json",
                title="Items in this collection"
            ),
            OGCLink(
                href=f"{base_url}/collections",
                rel="parent",
                type="application/json",
                title="All collections"
            ),
        ]

        logger.info(f"Retrieved collection metadata for '{collection_id}'")

        return collection

    # ========================================================================
    # ITEMS
    # ========================================================================

    def query_items(
        self,
        collection_id: str,
        raw_params: Mapping[str, str],
        query_pairs: Sequence[Tuple[str, str]],
        format_: str,
        base_url: str
    ) -> CityObjectItems:
        """
        Query CityObjects of a collection.

        Args:
            collection_id: CityModel name
            raw_params: Query parameters (validated here)
            query_pairs: Original ordered query string pairs, for links
            format_: Negotiated response format
            base_url: Base URL for link generation

        Raises:
            ParameterError: Invalid limit / offset / bbox, or datetime given
            NoCollectionFound: Unknown collection
            NoItemsFound: Filter matched nothing
            StorageError: Storage fault or stored geometry no longer valid
        """
        feature_filter = build_filter(raw_params, collection_id, self.config)

        if self.repository.get_city_model(collection_id) is None:
            raise NoCollectionFound(f"There is no collection {collection_id}")

        rows = self.repository.query_city_objects(feature_filter)
        if not rows:
            raise NoItemsFound(
                "There are no items in this collection under these conditions"
            )

        items = [self._rehydrate(row) for row in rows]

        links = items_links(base_url, collection_id, query_pairs, format_)
        links.append(OGCLink(
            href=f"{base_url}/collections/{path_segment(collection_id)}",
            rel="collection",
            type="application/json",
            title="Parent collection"
        ))

        extent = None
        if feature_filter.bbox:
            extent = OGCExtent(spatial=OGCSpatialExtent(bbox=[feature_filter.bbox]))

        logger.info(f"Query returned {len(items)} items from '{collection_id}'")

        return CityObjectItems(id=collection_id, links=links, extent=extent, items=items)

    def get_item(self, collection_id: str, item_id: str, base_url: str, format_: str = F_JSON) -> Dict[str, Any]:
        """
        Get one CityObject by name.

        Raises:
            NoItemFound: No such CityObject in the collection
        """
        row = self.repository.get_city_object(collection_id, item_id)
        if row is None:
            raise NoItemFound(f"There is no item {item_id} in collection {collection_id}")

        item = self._rehydrate(row)
        item_url = f"{base_url}/collections/{path_segment(collection_id)}/items/{path_segment(item_id)}"
        links = self._format_links(item_url, format_, title="This feature")
        links.append(OGCLink(
            href=f"{base_url}/collections/{path_segment(collection_id)}",
            rel="collection",
            type="application/json",
            title="Parent collection"
        ))
        item["links"] = [link.model_dump(exclude_none=True) for link in links]

        logger.info(f"Retrieved item '{item_id}' from '{collection_id}'")

        return item

    # ========================================================================
    # RENDERING
    # ========================================================================

    def render(self, format_: str, kind: str, payload: Union[BaseModel, Dict[str, Any]]) -> RenderedBody:
        return render(format_, kind, payload, renderer=self.renderer)

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _rehydrate(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            city_object = validate_city_object(row["name"], row, city_model=row.get("CityModel"))
        except StructuralError as e:
            logger.error(f"Stored CityObject '{row.get('name')}' failed validation: {e}")
            raise StorageError(
                f"Stored CityObject '{row.get('name')}' is not valid CityJSON: {e.description}"
            ) from e
        return city_object.to_cityjson()

    def _build_collection_model(self, raw_model: Dict[str, Any], base_url: str) -> CityModelCollection:
        name = raw_model["name"]
        return CityModelCollection(
            name=name,
            metadata=raw_model.get("metadata") or {},
            links=[
                OGCLink(
                    href=f"{base_url}/collections/{path_segment(name)}",
                    rel="self",
                    type="application/json",
                    title="This collection"
                ),
                OGCLink(
                    href=f"{base_url}/collections/{path_segment(name)}/items",
                    rel="items",
                    type="application/json",
                    title="Items"
                ),
            ]
        )

    @staticmethod
    def _format_links(url: str, format_: str, title: str) -> List[OGCLink]:
        """self link in the served format, alternate in the other one."""
        other = alternate_format(format_)
        return [
            OGCLink(href=f"{url}?f={format_}", rel="self", type=FORMAT_TYPES[format_], title=title),
            OGCLink(
                href=f"{url}?f={other}",
                rel="alternate",
                type=FORMAT_TYPES[other],
                title=f"{title} as {other.upper()}"
            ),
        ]

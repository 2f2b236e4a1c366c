# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES TRIGGERS
# ============================================================================
# STATUS: Standalone HTTP Triggers - CityJSON Features API endpoints
# PURPOSE: Azure Functions HTTP triggers for OGC API - Features over CityJSON
# EXPORTS: get_cityjson_triggers (returns list of trigger configurations)
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# DEPENDENCIES: azure.functions, util_logger, typing, json, urllib.parse
# SOURCE: HTTP requests from clients (browsers, QGIS, curl)
# SCOPE: HTTP endpoint handlers for the CityJSON Features API
# VALIDATION: Delegated to negotiation / query / service layers
# PATTERNS: Trigger Pattern, Template Method (handle -> _handle), Factory (get_cityjson_triggers)
# ENTRY_POINTS: Function App route registration via get_cityjson_triggers()
# ============================================================================

"""
CityJSON Features API HTTP Triggers - Azure Functions Handlers

Endpoints:
- GET /api/features - Landing page
- GET /api/features/conformance - Conformance classes (always JSON)
- GET /api/features/collections - List CityModels
- GET /api/features/collections/{collection_id} - CityModel metadata
- GET /api/features/collections/{collection_id}/items - Query CityObjects
- GET /api/features/collections/{collection_id}/items/{item_id} - Single CityObject

Each trigger:
1. Checks the city model tables exist (503 otherwise)
2. Negotiates json / html from ?f= or Accept
3. Calls the service layer
4. Renders the envelope in the negotiated format
5. Maps CityJSONFeaturesError to its status code and error envelope

Integration:
    In function_app.py:

    from cityjson_features import get_cityjson_triggers

    for trigger in get_cityjson_triggers():
        app.route(
            route=trigger['route'],
            methods=trigger['methods'],
            auth_level=func.AuthLevel.ANONYMOUS
        )(trigger['handler'])
"""

import azure.functions as func
import json
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlparse

from util_logger import ComponentType, LogContext, LoggerFactory

from .config import get_cityjson_config
from .errors import CityJSONFeaturesError, InvalidParameterValue, StorageUnavailable
from .negotiation import FORMAT_TYPES, F_JSON, negotiate_format
from .rendering import RenderedBody
from .service import CityJSONFeaturesService

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "CityJSONTriggers")


# ============================================================================
# TRIGGER REGISTRY FUNCTION
# ============================================================================

def get_cityjson_triggers() -> List[Dict[str, Any]]:
    """
    Get list of CityJSON Features API trigger configurations for function_app.py.

    Returns:
        List of dicts with keys:
        - route: URL route pattern
        - methods: List of HTTP methods
        - handler: Callable trigger handler
    """
    return [
        {
            'route': 'features',
            'methods': ['GET'],
            'handler': LandingPageTrigger().handle
        },
        {
            'route': 'features/conformance',
            'methods': ['GET'],
            'handler': ConformanceTrigger().handle
        },
        {
            'route': 'features/collections',
            'methods': ['GET'],
            'handler': CollectionsTrigger().handle
        },
        {
            'route': 'features/collections/{collection_id}',
            'methods': ['GET'],
            'handler': CollectionTrigger().handle
        },
        {
            'route': 'features/collections/{collection_id}/items',
            'methods': ['GET'],
            'handler': ItemsTrigger().handle
        },
        {
            'route': 'features/collections/{collection_id}/items/{item_id}',
            'methods': ['GET'],
            'handler': ItemTrigger().handle
        }
    ]


# ============================================================================
# BASE TRIGGER CLASS
# ============================================================================

class BaseCityJSONTrigger:
    """
    Base class for CityJSON Features API triggers.

    Provides common functionality:
    - Schema availability checking (city model tables must exist)
    - Base URL extraction from request
    - Rendered and error response formatting
    - Error-to-status mapping
    """

    # Override in subclasses that don't need the database
    requires_database = True

    def __init__(
        self,
        service: Optional[CityJSONFeaturesService] = None,
        schema_check: Optional[Callable[[], bool]] = None
    ):
        """
        Args:
            service: Features service (built from the config singleton if not provided)
            schema_check: Callable returning True when the tables exist
        """
        self.config = service.config if service else get_cityjson_config()
        self.service = service or CityJSONFeaturesService(self.config)
        self._schema_check = schema_check

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            self._check_schema_available()
            return self._handle(req)

        except CityJSONFeaturesError as e:
            extra = {'custom_dimensions': self._log_context(req).to_dict()}
            if e.status_code >= 500:
                logger.error(f"{type(self).__name__} failed: {e}", exc_info=True, extra=extra)
            else:
                logger.warning(f"{type(self).__name__} rejected request: {e}", extra=extra)
            return self._error_response(e)

        except Exception as e:
            logger.error(
                f"Unexpected error in {type(self).__name__}: {e}",
                exc_info=True,
                extra={'custom_dimensions': self._log_context(req).to_dict()}
            )
            return self._error_response(
                CityJSONFeaturesError(f"Internal server error: {str(e)}")
            )

    def _handle(self, req: func.HttpRequest) -> func.HttpResponse:
        raise NotImplementedError

    @staticmethod
    def _log_context(req: func.HttpRequest) -> LogContext:
        headers = req.headers or {}
        return LogContext(
            request_id=headers.get('x-ms-request-id'),
            correlation_id=headers.get('x-correlation-id'),
            collection_id=(req.route_params or {}).get('collection_id')
        )

    def _check_schema_available(self) -> None:
        """
        Raises:
            StorageUnavailable: City model tables are missing
        """
        if not self.requires_database:
            return

        schema_check = self._schema_check
        if schema_check is None:
            from .repository import is_cityjson_schema_available
            schema_check = is_cityjson_schema_available

        if not schema_check():
            raise StorageUnavailable(
                f"CityJSON Features API is not available: "
                f"'{self.config.cityjson_schema}' database schema has not been configured"
            )

    def _get_base_url(self, req: func.HttpRequest) -> str:
        return self.config.get_base_url(req.url)

    def _negotiate(self, req: func.HttpRequest) -> str:
        return negotiate_format(req.params, req.headers)

    @staticmethod
    def _route_param(req: func.HttpRequest, name: str) -> str:
        value = req.route_params.get(name)
        if not value:
            raise InvalidParameterValue(f"Route parameter '{name}' is required")
        return value

    def _respond(self, body: RenderedBody, status_code: int = 200) -> func.HttpResponse:
        return func.HttpResponse(
            body=body.content,
            status_code=status_code,
            mimetype=body.media_type
        )

    def _json_response(self, data: Any, status_code: int = 200) -> func.HttpResponse:
        # Handle Pydantic models
        if hasattr(data, 'model_dump'):
            data = data.model_dump(mode='json', exclude_none=True)

        return func.HttpResponse(
            body=json.dumps(data, indent=2),
            status_code=status_code,
            mimetype=FORMAT_TYPES[F_JSON]
        )

    def _error_response(self, error: CityJSONFeaturesError) -> func.HttpResponse:
        return self._json_response(error.to_envelope(), status_code=error.status_code)


# ============================================================================
# ENDPOINT TRIGGERS
# ============================================================================

class LandingPageTrigger(BaseCityJSONTrigger):
    """
    Landing page trigger.

    Endpoint: GET /api/features
    """

    requires_database = False

    def _handle(self, req: func.HttpRequest) -> func.HttpResponse:
        format_ = self._negotiate(req)
        landing_page = self.service.get_landing_page(self._get_base_url(req), format_)

        logger.info(f"Landing page requested (f={format_})")

        return self._respond(self.service.render(format_, "landing", landing_page))


class ConformanceTrigger(BaseCityJSONTrigger):
    """
    Conformance classes trigger.

    Endpoint: GET /api/features/conformance
    """

    requires_database = False

    def _handle(self, req: func.HttpRequest) -> func.HttpResponse:
        logger.info("Conformance classes requested")
        return self._json_response(self.service.get_conformance())


class CollectionsTrigger(BaseCityJSONTrigger):
    """
    Collections list trigger.

    Endpoint: GET /api/features/collections
    """

    def _handle(self, req: func.HttpRequest) -> func.HttpResponse:
        format_ = self._negotiate(req)
        collections = self.service.list_collections(self._get_base_url(req), format_)

        logger.info(f"Collections list requested ({len(collections.collections)} collections)")

        return self._respond(self.service.render(format_, "collections", collections))


class CollectionTrigger(BaseCityJSONTrigger):
    """
    Single collection metadata trigger.

    Endpoint: GET /api/features/collections/{collection_id}
    """

    def _handle(self, req: func.HttpRequest) -> func.HttpResponse:
        collection_id = self._route_param(req, 'collection_id')
        format_ = self._negotiate(req)
        collection = self.service.get_collection(collection_id, self._get_base_url(req), format_)

        logger.info(f"Collection metadata requested for '{collection_id}'")

        return self._respond(self.service.render(format_, "collection", collection))


class ItemsTrigger(BaseCityJSONTrigger):
    """
    CityObjects query trigger (main endpoint).

    Endpoint: GET /api/features/collections/{collection_id}/items

    Query Parameters:
    - limit: Max items to return (1-10000, default 10)
    - offset: Pagination offset (default 0)
    - bbox: minLon,minLat,maxLon,maxLat (WGS84, 2D only)
    - datetime: Rejected (temporal filtering is not supported)
    - f: json | html
    - <property>=<value>: Equality filters, passed through uncoerced
    """

    def _handle(self, req: func.HttpRequest) -> func.HttpResponse:
        collection_id = self._route_param(req, 'collection_id')
        format_ = self._negotiate(req)

        items = self.service.query_items(
            collection_id=collection_id,
            raw_params=dict(req.params),
            query_pairs=self._query_pairs(req),
            format_=format_,
            base_url=self._get_base_url(req)
        )

        logger.info(
            f"Items query: collection='{collection_id}', "
            f"returned={len(items.items)}, f={format_}"
        )

        return self._respond(self.service.render(format_, "items", items))

    @staticmethod
    def _query_pairs(req: func.HttpRequest) -> List[Tuple[str, str]]:
        """Ordered query pairs as sent, for self / alternate links."""
        pairs = parse_qsl(urlparse(req.url).query, keep_blank_values=True)
        if not pairs and req.params:
            pairs = list(req.params.items())
        return pairs


class ItemTrigger(BaseCityJSONTrigger):
    """
    Single CityObject trigger.

    Endpoint: GET /api/features/collections/{collection_id}/items/{item_id}
    """

    def _handle(self, req: func.HttpRequest) -> func.HttpResponse:
        collection_id = self._route_param(req, 'collection_id')
        item_id = self._route_param(req, 'item_id')
        format_ = self._negotiate(req)

        item = self.service.get_item(collection_id, item_id, self._get_base_url(req), format_)

        logger.info(f"Item requested: collection='{collection_id}', id='{item_id}'")

        return self._respond(self.service.render(format_, "item", item))

# ============================================================================
# MODULE CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the CityJSON Features API
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, cityjson_features
# ============================================================================

"""
Azure Functions Entry Point for the CityJSON OGC API - Features service

Registers the 6 CityJSON Features endpoints under /api/features.

Deployment:
    - Local: func start
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import azure.functions as func
import logging

from cityjson_features import get_cityjson_triggers

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Azure Function App
app = func.FunctionApp()

# ============================================================================
# CityJSON Features API - 6 Endpoints
# ============================================================================

logger.info("Registering CityJSON Features API endpoints...")

triggers = {trigger['route']: trigger['handler'] for trigger in get_cityjson_triggers()}


# Landing page
@app.route(route="features", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def cityjson_landing_page(req: func.HttpRequest) -> func.HttpResponse:
    return triggers["features"](req)


# Conformance
@app.route(route="features/conformance", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def cityjson_conformance(req: func.HttpRequest) -> func.HttpResponse:
    return triggers["features/conformance"](req)


# Collections list (one per CityModel)
@app.route(route="features/collections", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def cityjson_collections(req: func.HttpRequest) -> func.HttpResponse:
    return triggers["features/collections"](req)


# Single collection
@app.route(route="features/collections/{collection_id}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def cityjson_collection(req: func.HttpRequest) -> func.HttpResponse:
    return triggers["features/collections/{collection_id}"](req)


# Collection items (CityObjects query)
@app.route(route="features/collections/{collection_id}/items", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def cityjson_items(req: func.HttpRequest) -> func.HttpResponse:
    return triggers["features/collections/{collection_id}/items"](req)


# Single CityObject
@app.route(route="features/collections/{collection_id}/items/{item_id}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def cityjson_item(req: func.HttpRequest) -> func.HttpResponse:
    return triggers["features/collections/{collection_id}/items/{item_id}"](req)


logger.info("CityJSON Features API registered successfully (6 endpoints)")

# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES CONFIGURATION
# ============================================================================
# STATUS: Standalone Configuration - CityJSON Features API
# PURPOSE: Self-contained configuration management for the CityJSON Features API
# EXPORTS: CityJSONFeaturesConfig, get_cityjson_config
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: CityJSONFeaturesConfig
# DEPENDENCIES: pydantic, os
# SOURCE: Environment variables (database credentials live in the root config.py)
# PATTERNS: Settings Pattern, Singleton via cached function
# ENTRY_POINTS: from cityjson_features.config import get_cityjson_config
# ============================================================================

"""
CityJSON Features API Configuration

Environment Variables (all optional):
    - CITYJSON_SCHEMA: Schema holding city_models / city_objects (default: "cityjson")
    - CITYJSON_DEFAULT_LIMIT: Items returned when ``limit`` is absent (default: 10)
    - CITYJSON_MAX_LIMIT: Largest accepted ``limit`` (default: 10000)
    - CITYJSON_BASE_URL: Base URL for links (default: auto-detect)
    - CITYJSON_QUERY_TIMEOUT: Statement timeout in seconds (default: 30)
    - CITYJSON_API_TITLE / CITYJSON_API_DESCRIPTION: Landing page text

PostgreSQL credentials are read by the application-wide ``config.AppConfig``.
"""

import os
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class CityJSONFeaturesConfig(BaseModel):
    """
    Configuration for the CityJSON Features API.
    """

    cityjson_schema: str = Field(
        default_factory=lambda: os.getenv("CITYJSON_SCHEMA", "cityjson"),
        description="PostgreSQL schema containing the city model tables"
    )
    default_limit: int = Field(
        default_factory=lambda: int(os.getenv("CITYJSON_DEFAULT_LIMIT", "10")),
        ge=1,
        le=10000,
        description="Number of items returned when no limit is given"
    )
    max_limit: int = Field(
        default_factory=lambda: int(os.getenv("CITYJSON_MAX_LIMIT", "10000")),
        ge=1,
        description="Largest accepted limit value"
    )
    base_url: Optional[str] = Field(
        default_factory=lambda: os.getenv("CITYJSON_BASE_URL"),
        description="Base URL for links (auto-detected if not set)"
    )
    query_timeout_seconds: int = Field(
        default_factory=lambda: int(os.getenv("CITYJSON_QUERY_TIMEOUT", "30")),
        ge=1,
        le=300,
        description="Maximum query execution time in seconds"
    )
    api_title: str = Field(
        default_factory=lambda: os.getenv("CITYJSON_API_TITLE", "CityJSON : OGC API - Features"),
        description="Landing page title"
    )
    api_description: str = Field(
        default_factory=lambda: os.getenv(
            "CITYJSON_API_DESCRIPTION",
            "Access to CityJSON city objects compliant with OGC API - Features: Core (Part 1)."
        ),
        description="Landing page description"
    )

    @model_validator(mode="after")
    def check_limits(self) -> "CityJSONFeaturesConfig":
        """Default limit must be reachable under the maximum."""
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"default_limit ({self.default_limit}) exceeds max_limit ({self.max_limit})"
            )
        return self

    def get_connection_string(self) -> str:
        """
        PostgreSQL connection string from the application config.

        Respects USE_MANAGED_IDENTITY through the root config helper.
        """
        from config import get_postgres_connection_string
        return get_postgres_connection_string()

    def get_base_url(self, request_url: Optional[str] = None) -> str:
        """
        Get base URL for links.

        Args:
            request_url: Current request URL for auto-detection

        Returns:
            Base URL ending in ``/api/features`` (configured or auto-detected)
        """
        if self.base_url:
            return self.base_url.rstrip("/")

        if request_url and "/api/features" in request_url:
            return request_url.split("/api/features")[0] + "/api/features"

        return "http://localhost:7071/api/features"


_config_cache: Optional[CityJSONFeaturesConfig] = None


def get_cityjson_config() -> CityJSONFeaturesConfig:
    """
    Get singleton CityJSON Features configuration instance.

    Raises:
        ValidationError: If an environment override is out of range
    """
    global _config_cache

    if _config_cache is None:
        _config_cache = CityJSONFeaturesConfig()

    return _config_cache

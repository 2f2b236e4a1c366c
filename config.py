# ============================================================================
# MODULE CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: PostgreSQL connection settings with managed identity support
# EXPORTS: AppConfig, get_app_config, get_postgres_connection_string, validate_configuration
# DEPENDENCIES: pydantic-settings, azure-identity
# SOURCE: Environment variables / .env file, Azure managed identity
# PATTERNS: Singleton pattern for config, lazy initialization for credentials
# ============================================================================

"""
Application Configuration Module

Database settings shared by every API package in the Function App. The
CityJSON Features package keeps its own API settings in
``cityjson_features.config`` and asks this module only for a connection
string.

Authentication Modes:
    1. Password-based (local development):
       - Requires: POSTGIS_HOST, POSTGIS_DATABASE, POSTGIS_USER, POSTGIS_PASSWORD
       - Use when: USE_MANAGED_IDENTITY=false or not set

    2. Managed Identity (Azure production):
       - Requires: System-assigned managed identity enabled
       - Use when: USE_MANAGED_IDENTITY=true

Usage:
    from config import get_postgres_connection_string

    conn = psycopg.connect(get_postgres_connection_string())
"""

import logging
from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Scope for Azure Database for PostgreSQL AAD tokens
POSTGRES_AAD_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"


# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Application-wide configuration loaded from environment variables.

    Attributes:
        postgis_host: PostgreSQL server hostname
        postgis_port: PostgreSQL server port
        postgis_database: Database name
        postgis_user: Database username
        postgis_password: Database password (optional with managed identity)
        postgis_sslmode: libpq sslmode
        use_managed_identity: Enable Azure managed identity authentication
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # PostgreSQL Connection
    postgis_host: str = Field(..., description="PostgreSQL hostname")
    postgis_port: int = Field(default=5432, description="PostgreSQL port")
    postgis_database: str = Field(..., description="Database name")
    postgis_user: str = Field(..., description="Database username")
    postgis_password: Optional[str] = Field(default=None, description="Database password")
    postgis_sslmode: str = Field(default="require", description="libpq sslmode")

    # Authentication Mode
    use_managed_identity: bool = Field(
        default=False,
        description="Use Azure managed identity for authentication"
    )

    @model_validator(mode="after")
    def validate_password(self) -> "AppConfig":
        """Password is required unless managed identity is on."""
        if not self.use_managed_identity and not self.postgis_password:
            raise ValueError(
                "POSTGIS_PASSWORD is required when USE_MANAGED_IDENTITY=false"
            )
        return self


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Raises:
        ValidationError: If required environment variables are missing
    """
    return AppConfig()


# ============================================================================
# PostgreSQL Connection String Generation
# ============================================================================

def get_postgres_connection_string(config: Optional[AppConfig] = None) -> str:
    """
    Generate PostgreSQL connection string based on authentication mode.

    Returns:
        str: PostgreSQL connection URL (psycopg accepts it as conninfo)

    Raises:
        ValidationError: If required configuration is missing
        RuntimeError: If managed identity token acquisition fails
    """
    config = config or get_app_config()

    if config.use_managed_identity:
        password = _acquire_managed_identity_token(config)
    else:
        password = config.postgis_password

    # URL-encode password to handle special characters (e.g., @ symbols)
    return (
        f"postgresql://{config.postgis_user}:{quote_plus(password)}"
        f"@{config.postgis_host}:{config.postgis_port}"
        f"/{config.postgis_database}"
        f"?sslmode={config.postgis_sslmode}"
    )


def _acquire_managed_identity_token(config: AppConfig) -> str:
    """
    Acquire an Azure AD access token for PostgreSQL.

    Tokens live about an hour; a fresh one is requested for every
    connection string.
    """
    from azure.identity import DefaultAzureCredential
    from azure.core.exceptions import ClientAuthenticationError

    logger.info(f"Acquiring managed identity token for {config.postgis_host}")

    try:
        token = DefaultAzureCredential().get_token(POSTGRES_AAD_SCOPE)
    except ClientAuthenticationError as e:
        logger.error(f"Failed to acquire managed identity token: {e}")
        raise RuntimeError(
            f"Managed identity authentication failed: {e}. "
            "Ensure system-assigned managed identity is enabled and has database permissions."
        ) from e

    return token.token


# ============================================================================
# Configuration Validation
# ============================================================================

def validate_configuration() -> bool:
    """
    Validate configuration on application startup.

    Raises:
        ValidationError: If configuration validation fails
    """
    config = get_app_config()
    logger.info("Configuration validation:")
    logger.info(f"  PostgreSQL Host: {config.postgis_host}")
    logger.info(f"  PostgreSQL Port: {config.postgis_port}")
    logger.info(f"  Database: {config.postgis_database}")
    logger.info(f"  User: {config.postgis_user}")
    logger.info(f"  Managed Identity: {config.use_managed_identity}")
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    validate_configuration()

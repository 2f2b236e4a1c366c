# ============================================================================
# MODULE CONTEXT - LOGGING
# ============================================================================
# STATUS: Core Infrastructure - shared by every package in the Function App
# PURPOSE: JSON-only structured logging for Azure Functions with Application Insights
# EXPORTS: ComponentType, LogLevel, LogContext, ComponentConfig, JSONFormatter,
#          LoggerFactory, log_exceptions
# DEPENDENCIES: enum, dataclasses, typing, datetime, logging, json, traceback (stdlib only!)
# SOURCE: Application layers define component types
# PATTERNS: JSON-only output, Azure Functions integration, Exception decorator pattern
# ENTRY_POINTS: LoggerFactory.create_logger(), @log_exceptions decorator
# ============================================================================

"""
Structured Logger - Schemas and Factory

Every component logger writes one JSON object per record to stdout and
propagates to the Functions host logger, so Application Insights receives
``customDimensions`` (component type / name plus any correlation context).

Set ``DEBUG_LOGGING=true`` to lower the default level to DEBUG.
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass
import logging
import os
import sys
import json
import traceback
from functools import wraps


# ============================================================================
# COMPONENT TYPES - Application layers
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the application layers.
    """
    TRIGGER = "trigger"        # HTTP entry point layer
    SERVICE = "service"        # Business logic layer
    REPOSITORY = "repository"  # Data access layer
    VALIDATOR = "validator"    # Geometry / CityObject validation
    IMPORTER = "importer"      # CityJSON document import


# ============================================================================
# LOG LEVELS - Standard Python levels with enum safety
# ============================================================================

class LogLevel(Enum):
    """
    Standard Python log levels as enum for type safety.
    """
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)

    @classmethod
    def from_string(cls, level: str) -> 'LogLevel':
        """Create from string, case-insensitive."""
        return cls[level.upper()]


# ============================================================================
# LOG CONTEXT - Request correlation
# ============================================================================

@dataclass
class LogContext:
    """
    Context for log correlation across one HTTP request.
    """
    request_id: Optional[str] = None  # Functions invocation / HTTP request ID
    correlation_id: Optional[str] = None  # Caller supplied correlation ID
    collection_id: Optional[str] = None  # CityModel the request targets

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            k: v for k, v in {
                'request_id': self.request_id,
                'correlation_id': self.correlation_id,
                'collection_id': self.collection_id
            }.items() if v is not None
        }


# ============================================================================
# COMPONENT CONFIGURATION - Per-component settings
# ============================================================================

@dataclass
class ComponentConfig:
    """
    Configuration for component-specific logging.
    """
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO


# ============================================================================
# JSON FORMATTER - Structured logging for Azure Functions
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in Azure Functions.
    Outputs logs in a format that Application Insights can automatically parse.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        # Add custom dimensions if present (for Application Insights)
        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY - Creates component-specific loggers
# ============================================================================

def _default_level() -> LogLevel:
    return LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO


class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(
            ComponentType.REPOSITORY,
            "CityJSONRepository"
        )
        logger.info("Querying city objects")
    """

    default_level = _default_level()

    DEFAULT_CONFIGS = {
        ComponentType.TRIGGER: ComponentConfig(ComponentType.TRIGGER, default_level),
        ComponentType.SERVICE: ComponentConfig(ComponentType.SERVICE, default_level),
        ComponentType.REPOSITORY: ComponentConfig(ComponentType.REPOSITORY, default_level),
        ComponentType.VALIDATOR: ComponentConfig(ComponentType.VALIDATOR, default_level),
        ComponentType.IMPORTER: ComponentConfig(ComponentType.IMPORTER, default_level),
    }

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        config: Optional[ComponentConfig] = None
    ) -> logging.Logger:
        """
        Create a logger for a specific component.

        Args:
            component_type: Type of component
            name: Component name (e.g., "CityJSONRepository")
            context: Optional log context added to every record
            config: Optional custom configuration

        Returns:
            Configured Python logger
        """
        if config is None:
            config = cls.DEFAULT_CONFIGS.get(
                component_type,
                ComponentConfig(component_type=component_type)
            )

        logger = logging.getLogger(f"{component_type.value}.{name}")
        log_level = config.log_level.to_python_level()
        logger.setLevel(log_level)

        # Remove existing handlers to avoid duplicates
        logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

        # Allow propagation to Azure's root logger for Application Insights
        logger.propagate = True

        original_log = logger._log

        def log_with_context(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
            """Wrapper to inject context as custom dimensions."""
            extra = dict(extra) if extra else {}

            custom_dims = context.to_dict() if context else {}
            custom_dims['component_type'] = component_type.value
            custom_dims['component_name'] = name

            if 'custom_dimensions' in extra:
                custom_dims.update(extra['custom_dimensions'])

            extra['custom_dimensions'] = custom_dims

            original_log(level, msg, args, exc_info=exc_info, extra=extra,
                         stack_info=stack_info, stacklevel=stacklevel)

        logger._log = log_with_context

        return logger


# ============================================================================
# EXCEPTION DECORATOR - Automatic exception logging with context
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Decorator to log exceptions with full context and re-raise them.

    Usage:
    1. With existing logger: @log_exceptions(logger=my_logger)
    2. With component info: @log_exceptions(ComponentType.IMPORTER, "CityModelImport")
    3. Simple: @log_exceptions() - service logger named after the module
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if logger:
                    log = logger
                elif component_type and component_name:
                    log = LoggerFactory.create_logger(component_type, component_name)
                else:
                    log = LoggerFactory.create_logger(
                        ComponentType.SERVICE,
                        func.__module__ or "unknown"
                    )

                log.error(
                    f"Exception in {func.__name__}",
                    exc_info=True,
                    extra={
                        'custom_dimensions': {
                            'function_name': func.__name__,
                            'function_module': func.__module__,
                            'exception_type': type(e).__name__,
                            'exception_message': str(e),
                            'traceback': traceback.format_exc()
                        }
                    }
                )
                raise
        return wrapper
    return decorator

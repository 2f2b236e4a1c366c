# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES ERRORS
# ============================================================================
# STATUS: Standalone Module - error taxonomy for the CityJSON Features API
# PURPOSE: Enumerable error kinds with HTTP status mapping and one envelope shape
# EXPORTS: CityJSONFeaturesError and its families (see __all__)
# DEPENDENCIES: typing (stdlib only)
# PATTERNS: Exception hierarchy, error code registry
# ============================================================================

"""
CityJSON Features API - Error Taxonomy

Every rejected input maps to an explicit error kind (``code``). Families:

- ParameterError (400): malformed or unsupported query parameters
- StructuralError (422): geometry / CityObject documents rejected at ingest
- NotFoundError (404): missing collection or empty filtered result
- StorageError (500) / StorageUnavailable (503): storage collaborator faults

All HTTP error bodies use the same envelope::

    {"error": {"code": "InvalidParameterValue", "description": "..."}}
"""

from typing import Any, Dict, Optional


class CityJSONFeaturesError(Exception):
    """Base class for every error the API surfaces to a caller."""

    code: str = "InternalServerError"
    status_code: int = 500

    def __init__(self, description: str, code: Optional[str] = None):
        super().__init__(description)
        self.description = description
        if code:
            self.code = code

    def to_envelope(self) -> Dict[str, Any]:
        return {"error": {"code": self.code, "description": self.description}}

    def __str__(self) -> str:
        return f"{self.code}: {self.description}"


# ============================================================================
# PARAMETER ERRORS (400)
# ============================================================================

class ParameterError(CityJSONFeaturesError):
    code = "InvalidParameterValue"
    status_code = 400


class InvalidParameterValue(ParameterError):
    code = "InvalidParameterValue"


class UnsupportedParameter(ParameterError):
    code = "UnsupportedParameter"


class Only2DSphereSupported(ParameterError):
    """A 6-value (3D) bbox was requested; only the 2D sphere index exists."""
    code = "Only2DSphereSupported"


# ============================================================================
# STRUCTURAL ERRORS (ingest)
# ============================================================================

class StructuralError(CityJSONFeaturesError):
    code = "StructuralError"
    status_code = 422


class UnknownGeometryType(StructuralError):
    code = "UnknownGeometryType"


class InvalidLOD(StructuralError):
    code = "InvalidLOD"


class DepthMismatch(StructuralError):
    """A nested index array does not have the depth its geometry type requires."""

    code = "DepthMismatch"

    def __init__(self, member: str, expected: int, actual: int):
        super().__init__(
            f"'{member}' must be nested {expected} levels deep, got {actual}"
        )
        self.member = member
        self.expected = expected
        self.actual = actual


class BoundaryDepthMismatch(DepthMismatch):
    code = "BoundaryDepthMismatch"


class ValuesDepthMismatch(DepthMismatch):
    code = "ValuesDepthMismatch"


class BoundaryElementTypeError(StructuralError):
    code = "BoundaryElementTypeError"


class SemanticsIndexOutOfRange(StructuralError):
    code = "SemanticsIndexOutOfRange"


class InvalidSemantics(StructuralError):
    code = "InvalidSemantics"


class GeometryMemberNotPermitted(StructuralError):
    code = "GeometryMemberNotPermitted"


class InvalidAppearance(StructuralError):
    code = "InvalidAppearance"


class InvalidGeometry(StructuralError):
    code = "InvalidGeometry"


class InvalidTransformationMatrix(StructuralError):
    code = "InvalidTransformationMatrix"


class InvalidCityObject(StructuralError):
    code = "InvalidCityObject"


class VertexIndexOutOfRange(StructuralError):
    code = "VertexIndexOutOfRange"


# ============================================================================
# NOT FOUND (404)
# ============================================================================

class NotFoundError(CityJSONFeaturesError):
    code = "NotFound"
    status_code = 404


class NoCollectionFound(NotFoundError):
    code = "NoCollectionFound"


class NoItemsFound(NotFoundError):
    code = "NoItemsFound"


class NoItemFound(NotFoundError):
    code = "NoItemFound"


# ============================================================================
# STORAGE FAULTS (5xx)
# ============================================================================

class StorageError(CityJSONFeaturesError):
    code = "StorageError"
    status_code = 500


class StorageUnavailable(StorageError):
    code = "StorageUnavailable"
    status_code = 503


__all__ = [
    "CityJSONFeaturesError",
    "ParameterError",
    "InvalidParameterValue",
    "UnsupportedParameter",
    "Only2DSphereSupported",
    "StructuralError",
    "UnknownGeometryType",
    "InvalidLOD",
    "DepthMismatch",
    "BoundaryDepthMismatch",
    "ValuesDepthMismatch",
    "BoundaryElementTypeError",
    "SemanticsIndexOutOfRange",
    "InvalidSemantics",
    "GeometryMemberNotPermitted",
    "InvalidAppearance",
    "InvalidGeometry",
    "InvalidTransformationMatrix",
    "InvalidCityObject",
    "VertexIndexOutOfRange",
    "NotFoundError",
    "NoCollectionFound",
    "NoItemsFound",
    "NoItemFound",
    "StorageError",
    "StorageUnavailable",
]

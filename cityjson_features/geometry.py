# ============================================================================
# MODULE CONTEXT - CITYJSON GEOMETRY VARIANTS
# ============================================================================
# STATUS: Standalone Module - closed registry of CityJSON geometry kinds
# PURPOSE: Nesting depth table per geometry type plus typed geometry models
# EXPORTS: GeometryType, NestingSpec, shape_of, Geometry and its variants
# INTERFACES: Pydantic BaseModel (typed values produced by validator.py)
# PYDANTIC_MODELS: SemanticSurface, Semantics, AppearanceTheme, *Geometry
# DEPENDENCIES: pydantic, typing, enum, dataclasses
# SOURCE: CityJSON geometry object specification
# PATTERNS: Closed enumeration, tagged union (discriminator on "type")
# ENTRY_POINTS: from cityjson_features.geometry import shape_of, GeometryType
# ============================================================================

"""
CityJSON Geometry Variants

The depth of every nested index array of a CityJSON geometry is fixed by its
``type``. Depth counts array nesting levels (0 = scalar):

=============================== ========== ========= ======== =======
type                            boundaries semantics material texture
=============================== ========== ========= ======== =======
MultiPoint                      1          n/a       n/a      n/a
MultiLineString                 2          n/a       n/a      n/a
MultiSurface / CompositeSurface 3          1         1        3
Solid                           4          2         2        4
MultiSolid / CompositeSolid     5          3         3        5
=============================== ========== ========= ======== =======

``GeometryInstance`` is not in the table: it references a template geometry
and carries a stack of 4x4 transformation matrices instead.

The set is closed. Adding a variant means editing this module.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


class GeometryType(str, Enum):
    """CityJSON geometry ``type`` values."""
    MULTI_POINT = "MultiPoint"
    MULTI_LINE_STRING = "MultiLineString"
    MULTI_SURFACE = "MultiSurface"
    COMPOSITE_SURFACE = "CompositeSurface"
    SOLID = "Solid"
    MULTI_SOLID = "MultiSolid"
    COMPOSITE_SOLID = "CompositeSolid"
    GEOMETRY_INSTANCE = "GeometryInstance"

    @classmethod
    def names(cls) -> List[str]:
        return [member.value for member in cls]


@dataclass(frozen=True)
class NestingSpec:
    """
    Required array depths for one geometry variant.

    ``None`` means the member is not permitted on that variant.
    """
    boundaries: int
    semantics: Optional[int] = None
    material: Optional[int] = None
    texture: Optional[int] = None


_SURFACES = NestingSpec(boundaries=3, semantics=1, material=1, texture=3)
_SOLID = NestingSpec(boundaries=4, semantics=2, material=2, texture=4)
_SOLIDS = NestingSpec(boundaries=5, semantics=3, material=3, texture=5)

NESTING_SPECS: Dict[GeometryType, NestingSpec] = {
    GeometryType.MULTI_POINT: NestingSpec(boundaries=1),
    GeometryType.MULTI_LINE_STRING: NestingSpec(boundaries=2),
    GeometryType.MULTI_SURFACE: _SURFACES,
    GeometryType.COMPOSITE_SURFACE: _SURFACES,
    GeometryType.SOLID: _SOLID,
    GeometryType.MULTI_SOLID: _SOLIDS,
    GeometryType.COMPOSITE_SOLID: _SOLIDS,
}


def shape_of(variant: Union[str, GeometryType]) -> NestingSpec:
    """
    Get the nesting rule for a boundary-typed geometry variant.

    Args:
        variant: Geometry ``type`` tag

    Returns:
        NestingSpec with the required depths

    Raises:
        KeyError: If the tag is unknown or is ``GeometryInstance``
    """
    try:
        geometry_type = GeometryType(variant)
    except ValueError:
        raise KeyError(f"Unknown geometry type '{variant}'") from None
    try:
        return NESTING_SPECS[geometry_type]
    except KeyError:
        raise KeyError(f"{geometry_type.value} has no boundary nesting rule") from None


# ============================================================================
# TYPED GEOMETRY VALUES
# ============================================================================

Lod = Union[StrictStr, StrictInt, StrictFloat]


class SemanticSurface(BaseModel):
    """Semantic surface object; extra attributes (slope, colour, ...) are kept."""
    model_config = ConfigDict(extra="allow")

    type: str
    parent: Optional[int] = None
    children: Optional[List[int]] = None


class Semantics(BaseModel):
    surfaces: List[SemanticSurface]
    values: List[Any]


class AppearanceTheme(BaseModel):
    """
    One material or texture theme (e.g. ``"visual"``).

    Materials may use a single ``value`` for the whole geometry instead of
    ``values``.
    """
    model_config = ConfigDict(extra="allow")

    values: Optional[List[Any]] = None
    value: Optional[int] = None


class _GeometryBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    city_model: Optional[str] = Field(default=None, alias="CityModel")
    city_object: Optional[str] = Field(default=None, alias="CityObject")


class _BoundaryGeometry(_GeometryBase):
    lod: Lod
    boundaries: List[Any]


class MultiPointGeometry(_BoundaryGeometry):
    type: Literal["MultiPoint"]


class MultiLineStringGeometry(_BoundaryGeometry):
    type: Literal["MultiLineString"]


class _AppearanceGeometry(_BoundaryGeometry):
    semantics: Optional[Semantics] = None
    material: Optional[Dict[str, AppearanceTheme]] = None
    texture: Optional[Dict[str, AppearanceTheme]] = None


class MultiSurfaceGeometry(_AppearanceGeometry):
    type: Literal["MultiSurface", "CompositeSurface"]


class SolidGeometry(_AppearanceGeometry):
    type: Literal["Solid"]


class MultiSolidGeometry(_AppearanceGeometry):
    type: Literal["MultiSolid", "CompositeSolid"]


class GeometryInstance(_GeometryBase):
    """Reference to a template geometry placed by one or more 4x4 matrices."""
    type: Literal["GeometryInstance"]
    template: int
    boundaries: List[int]
    transformationMatrix: List[Union[StrictInt, StrictFloat]]


Geometry = Annotated[
    Union[
        MultiPointGeometry,
        MultiLineStringGeometry,
        MultiSurfaceGeometry,
        SolidGeometry,
        MultiSolidGeometry,
        GeometryInstance,
    ],
    Field(discriminator="type"),
]

GEOMETRY_MODELS = {
    GeometryType.MULTI_POINT: MultiPointGeometry,
    GeometryType.MULTI_LINE_STRING: MultiLineStringGeometry,
    GeometryType.MULTI_SURFACE: MultiSurfaceGeometry,
    GeometryType.COMPOSITE_SURFACE: MultiSurfaceGeometry,
    GeometryType.SOLID: SolidGeometry,
    GeometryType.MULTI_SOLID: MultiSolidGeometry,
    GeometryType.COMPOSITE_SOLID: MultiSolidGeometry,
    GeometryType.GEOMETRY_INSTANCE: GeometryInstance,
}


def dump_geometry(geometry: BaseModel) -> Dict[str, Any]:
    """Serialize a typed geometry back to its CityJSON wire form."""
    return geometry.model_dump(mode="json", by_alias=True, exclude_none=True)

# ============================================================================
# MODULE CONTEXT - CITYJSON GEOMETRY VALIDATOR
# ============================================================================
# STATUS: Standalone Module - structural validation of CityJSON geometries
# PURPOSE: Check raw geometry records against the variant nesting table
# EXPORTS: validate_geometry, validate_geometries, is_valid_lod
# INTERFACES: Pure functions, no I/O, no module state
# PYDANTIC_MODELS: Geometry variants from geometry.py (returned values)
# DEPENDENCIES: pydantic, re, typing
# SOURCE: Raw geometry dicts from CityJSON documents or storage
# PATTERNS: Recursive depth-checked traversal, single dispatch on GeometryType
# ENTRY_POINTS: geometry = validate_geometry(raw)
# ============================================================================

"""
CityJSON Geometry Validator

Validation walks every nested index array with the depth the variant requires
(see ``geometry.NESTING_SPECS``) instead of declaring one schema per variant.
Vertex indices are only checked to be integers; they are not resolved against
the CityObject's vertex list here.
"""

import re
from typing import Any, List, Mapping, Optional, Sequence, Type

from pydantic import ValidationError

from .errors import (
    BoundaryDepthMismatch,
    BoundaryElementTypeError,
    DepthMismatch,
    GeometryMemberNotPermitted,
    InvalidAppearance,
    InvalidGeometry,
    InvalidLOD,
    InvalidSemantics,
    InvalidTransformationMatrix,
    SemanticsIndexOutOfRange,
    StructuralError,
    UnknownGeometryType,
    ValuesDepthMismatch,
)
from .geometry import GEOMETRY_MODELS, NESTING_SPECS, Geometry, GeometryType

LOD_PATTERN = re.compile(r"[0-3](\.?[0-3])*")


def validate_geometry(raw: Mapping[str, Any]) -> Geometry:
    """
    Validate one raw CityJSON geometry and build its typed value.

    Args:
        raw: Geometry object as decoded from JSON

    Returns:
        Typed geometry model (variant chosen by ``type``)

    Raises:
        StructuralError: Subclass naming the first violation found
    """
    if not isinstance(raw, Mapping):
        raise InvalidGeometry(f"Geometry must be an object, got {type(raw).__name__}")

    tag = raw.get("type")
    try:
        geometry_type = GeometryType(tag)
    except ValueError:
        raise UnknownGeometryType(
            f"'{tag}' is not a valid geometry type (expected one of {', '.join(GeometryType.names())})"
        ) from None

    if geometry_type is GeometryType.GEOMETRY_INSTANCE:
        _check_instance(raw)
    else:
        spec = NESTING_SPECS[geometry_type]
        _check_lod(raw.get("lod"))
        if "boundaries" not in raw:
            raise InvalidGeometry(f"{geometry_type.value} geometry has no 'boundaries'")
        _walk(
            raw["boundaries"], spec.boundaries, "boundaries",
            allow_null=False,
            element_error=BoundaryElementTypeError,
            depth_error=BoundaryDepthMismatch,
        )
        _check_semantics(raw.get("semantics"), geometry_type, spec.semantics)
        _check_appearance(raw.get("material"), "material", geometry_type, spec.material)
        _check_appearance(raw.get("texture"), "texture", geometry_type, spec.texture)

    try:
        return GEOMETRY_MODELS[geometry_type].model_validate(dict(raw))
    except ValidationError as e:
        raise InvalidGeometry(f"{geometry_type.value} geometry is malformed: {e}") from e


def validate_geometries(raw_geometries: Sequence[Mapping[str, Any]]) -> List[Geometry]:
    """
    Validate a CityObject's geometry list, all or nothing.

    Raises:
        StructuralError: The first failing geometry, description prefixed
            with its position in the list
    """
    if not isinstance(raw_geometries, list):
        raise InvalidGeometry("'geometry' must be an array of geometry objects")

    geometries = []
    for index, raw in enumerate(raw_geometries):
        try:
            geometries.append(validate_geometry(raw))
        except StructuralError as e:
            e.description = f"geometry[{index}]: {e.description}"
            e.args = (e.description,)
            raise
    return geometries


def is_valid_lod(lod: Any) -> bool:
    """LoD is one or more 0-3 digits, optionally dot separated (e.g. "2", "2.1"), never ending in a dot."""
    if isinstance(lod, bool) or not isinstance(lod, (str, int, float)):
        return False
    return LOD_PATTERN.fullmatch(str(lod)) is not None


# ============================================================================
# MEMBER CHECKS
# ============================================================================

def _check_lod(lod: Any) -> None:
    if lod is None:
        raise InvalidLOD("Geometry has no 'lod'")
    if not is_valid_lod(lod):
        raise InvalidLOD(f"'{lod}' is not a valid level of detail")


def _check_semantics(semantics: Any, geometry_type: GeometryType, depth: Optional[int]) -> None:
    if semantics is None:
        return
    if depth is None:
        raise GeometryMemberNotPermitted(f"{geometry_type.value} geometries cannot carry semantics")
    if not isinstance(semantics, Mapping):
        raise InvalidSemantics("'semantics' must be an object")

    surfaces = semantics.get("surfaces")
    if not isinstance(surfaces, list):
        raise InvalidSemantics("'semantics.surfaces' must be an array")

    for i, surface in enumerate(surfaces):
        path = f"semantics.surfaces[{i}]"
        if not isinstance(surface, Mapping) or not isinstance(surface.get("type"), str):
            raise InvalidSemantics(f"'{path}' must be an object with a string 'type'")

        parent = surface.get("parent")
        if parent is not None:
            if not _is_index(parent):
                raise InvalidSemantics(f"'{path}.parent' must be an integer")
            _check_surface_index(parent, len(surfaces), f"{path}.parent")

        children = surface.get("children")
        if children is not None:
            if not isinstance(children, list) or not all(_is_index(c) for c in children):
                raise InvalidSemantics(f"'{path}.children' must be an array of integers")
            for child in children:
                _check_surface_index(child, len(surfaces), f"{path}.children")

    if "values" not in semantics:
        raise InvalidSemantics("'semantics.values' is required")

    leaves = _walk(
        semantics["values"], depth, "semantics.values",
        allow_null=True,
        element_error=InvalidSemantics,
        depth_error=ValuesDepthMismatch,
    )
    for value in leaves:
        _check_surface_index(value, len(surfaces), "semantics.values")


def _check_surface_index(index: int, surface_count: int, path: str) -> None:
    if not 0 <= index < surface_count:
        raise SemanticsIndexOutOfRange(
            f"'{path}' refers to surface {index} but only {surface_count} surfaces are defined"
        )


def _check_appearance(
    appearance: Any,
    member: str,
    geometry_type: GeometryType,
    depth: Optional[int]
) -> None:
    """Material and texture are maps of theme name to ``{"values": [...]}``."""
    if appearance is None:
        return
    if depth is None:
        raise GeometryMemberNotPermitted(f"{geometry_type.value} geometries cannot carry {member}")
    if not isinstance(appearance, Mapping):
        raise InvalidAppearance(f"'{member}' must be an object keyed by theme")

    for theme, body in appearance.items():
        path = f"{member}.{theme}"
        if not isinstance(body, Mapping):
            raise InvalidAppearance(f"'{path}' must be an object")

        # single material for the whole geometry
        if member == "material" and "values" not in body and "value" in body:
            if not _is_index(body["value"]):
                raise InvalidAppearance(f"'{path}.value' must be an integer")
            continue

        if "values" not in body:
            raise InvalidAppearance(f"'{path}.values' is required")
        _walk(
            body["values"], depth, f"{path}.values",
            allow_null=True,
            element_error=InvalidAppearance,
            depth_error=ValuesDepthMismatch,
        )


def _check_instance(raw: Mapping[str, Any]) -> None:
    template = raw.get("template")
    if not _is_index(template) or template < 0:
        raise InvalidGeometry(f"'template' must be a non-negative integer, got {template!r}")

    matrix = raw.get("transformationMatrix")
    if not isinstance(matrix, list) or not matrix or len(matrix) % 16 != 0:
        length = len(matrix) if isinstance(matrix, list) else None
        raise InvalidTransformationMatrix(
            f"'transformationMatrix' must hold a non-zero multiple of 16 numbers, got length {length}"
        )
    if not all(_is_number(v) for v in matrix):
        raise InvalidTransformationMatrix("'transformationMatrix' must contain only numbers")

    boundaries = raw.get("boundaries")
    if isinstance(boundaries, list) and not boundaries:
        raise InvalidGeometry("GeometryInstance 'boundaries' must hold the anchor vertex index")
    _walk(
        boundaries, 1, "boundaries",
        allow_null=False,
        element_error=BoundaryElementTypeError,
        depth_error=BoundaryDepthMismatch,
    )

    if raw.get("lod") is not None:
        _check_lod(raw["lod"])


# ============================================================================
# NESTED ARRAY TRAVERSAL
# ============================================================================

def _walk(
    node: Any,
    expected: int,
    member: str,
    allow_null: bool,
    element_error: Type[StructuralError],
    depth_error: Type[DepthMismatch],
) -> List[int]:
    """
    Check ``node`` is an array nested exactly ``expected`` levels deep.

    Every branch must reach the full depth, so an empty array above the
    innermost level is a depth error. Boundaries (``allow_null=False``) may
    not hold empty arrays at all; values arrays may leave an innermost
    array empty.

    Returns:
        Every non-null integer leaf, in document order
    """
    leaves: List[int] = []
    _visit(node, expected, 0, member, expected, allow_null, element_error, depth_error, leaves)
    return leaves


def _visit(node, remaining, level, member, expected, allow_null, element_error, depth_error, leaves):
    if allow_null and node is None and level > 0:
        return

    if remaining == 0:
        if isinstance(node, list):
            raise depth_error(member, expected, level + _depth(node))
        if not _is_index(node):
            raise element_error(f"'{member}' must contain integers, found {node!r}")
        leaves.append(node)
        return

    if isinstance(node, list):
        # an empty array ends the nesting early
        if not node:
            if remaining > 1:
                raise depth_error(member, expected, level + 1)
            if not allow_null:
                raise element_error(f"'{member}' must not contain empty arrays")
        for child in node:
            _visit(child, remaining - 1, level + 1, member, expected, allow_null,
                   element_error, depth_error, leaves)
        return

    if _is_index(node):
        raise depth_error(member, expected, level)
    raise element_error(f"'{member}' must be nested arrays of integers, found {node!r}")


def _depth(node: Any) -> int:
    if isinstance(node, list):
        return 1 + max((_depth(child) for child in node), default=0)
    return 0


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

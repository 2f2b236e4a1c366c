# ============================================================================
# MODULE CONTEXT - CITYJSON CITY OBJECTS
# ============================================================================
# STATUS: Standalone Module - CityObject model and per-type rules
# PURPOSE: Validate CityObjects and the geometry kinds each type may own
# EXPORTS: CityObject, CityObjectRule, CITY_OBJECT_RULES, validate_city_object
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: CityObject
# DEPENDENCIES: pydantic, typing, dataclasses
# SOURCE: CityObjects member of a CityJSON document, or storage rows
# PATTERNS: Rule table keyed by CityObject type
# ENTRY_POINTS: city_object = validate_city_object(name, raw, city_model)
# ============================================================================

"""
CityJSON CityObjects

A CityObject owns an ordered list of geometries. Relations to other objects
(``parents`` / ``children``) are names resolved inside the same CityModel.

Some types restrict which geometry kinds they hold or require a parent:

- Tunnel / TunnelPart: Solid, CompositeSolid or MultiSurface only
- *Part and *Installation types: at least one parent
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidCityObject
from .geometry import Geometry, GeometryType, dump_geometry
from .validator import validate_geometries


@dataclass(frozen=True)
class CityObjectRule:
    allowed_geometry: Optional[FrozenSet[GeometryType]] = None
    requires_parents: bool = False


_TUNNEL_GEOMETRY = frozenset({
    GeometryType.SOLID,
    GeometryType.COMPOSITE_SOLID,
    GeometryType.MULTI_SURFACE,
})

CITY_OBJECT_RULES: Dict[str, CityObjectRule] = {
    "Tunnel": CityObjectRule(allowed_geometry=_TUNNEL_GEOMETRY),
    "TunnelPart": CityObjectRule(allowed_geometry=_TUNNEL_GEOMETRY, requires_parents=True),
    "TunnelInstallation": CityObjectRule(requires_parents=True),
    "BuildingPart": CityObjectRule(requires_parents=True),
    "BuildingInstallation": CityObjectRule(requires_parents=True),
    "BridgePart": CityObjectRule(requires_parents=True),
    "BridgeInstallation": CityObjectRule(requires_parents=True),
}

_DEFAULT_RULE = CityObjectRule()


class CityObject(BaseModel):
    """
    A city feature and the geometries it owns.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str
    city_model: Optional[str] = Field(default=None, alias="CityModel")
    parents: List[str] = Field(default_factory=list)
    children: List[str] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)
    geometry: List[Geometry] = Field(default_factory=list)
    location: Optional[Dict[str, Any]] = None

    def to_cityjson(self) -> Dict[str, Any]:
        """CityJSON form, geometries serialized with their exact nesting."""
        body = self.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude={"geometry"}
        )
        body["geometry"] = [dump_geometry(g) for g in self.geometry]
        return body


def validate_city_object(
    name: str,
    raw: Mapping[str, Any],
    city_model: Optional[str] = None
) -> CityObject:
    """
    Validate a raw CityObject and every geometry it owns.

    Geometry validation is all-or-nothing: one bad geometry rejects the
    whole object.

    Args:
        name: CityObject identifier (key in the CityObjects member)
        raw: CityObject as decoded from JSON
        city_model: Owning CityModel name, stamped on object and geometries

    Raises:
        InvalidCityObject: Bad type, relations, attributes or geometry kind
        StructuralError: Any geometry failing validation
    """
    if not isinstance(raw, Mapping):
        raise InvalidCityObject(f"CityObject '{name}' must be an object")

    object_type = raw.get("type")
    if not isinstance(object_type, str) or not object_type:
        raise InvalidCityObject(f"CityObject '{name}' has no 'type'")

    parents = _name_list(raw.get("parents"), name, "parents")
    children = _name_list(raw.get("children"), name, "children")

    attributes = raw.get("attributes") or {}
    if not isinstance(attributes, Mapping):
        raise InvalidCityObject(f"CityObject '{name}' attributes must be an object")

    rule = CITY_OBJECT_RULES.get(object_type, _DEFAULT_RULE)
    if rule.requires_parents and not parents:
        raise InvalidCityObject(f"{object_type} '{name}' must reference at least one parent")

    raw_geometries = raw.get("geometry") or []
    if not isinstance(raw_geometries, list):
        raise InvalidCityObject(f"CityObject '{name}' geometry must be an array")

    stamped = []
    for raw_geometry in raw_geometries:
        if isinstance(raw_geometry, Mapping):
            raw_geometry = dict(raw_geometry)
            if city_model is not None:
                raw_geometry["CityModel"] = city_model
            raw_geometry["CityObject"] = name
        stamped.append(raw_geometry)

    geometries = validate_geometries(stamped)

    if rule.allowed_geometry is not None:
        for index, geometry in enumerate(geometries):
            if GeometryType(geometry.type) not in rule.allowed_geometry:
                allowed = ", ".join(sorted(t.value for t in rule.allowed_geometry))
                raise InvalidCityObject(
                    f"{object_type} '{name}' geometry[{index}] is {geometry.type}; allowed: {allowed}"
                )

    return CityObject(
        name=name,
        type=object_type,
        city_model=city_model,
        parents=parents,
        children=children,
        attributes=dict(attributes),
        geometry=geometries,
        location=raw.get("location"),
    )


def _name_list(value: Any, name: str, member: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidCityObject(f"CityObject '{name}' {member} must be an array of names")
    return list(value)

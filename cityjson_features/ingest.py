# ============================================================================
# MODULE CONTEXT - CITYJSON IMPORT
# ============================================================================
# STATUS: Standalone Module - CityJSON document import
# PURPOSE: Validate a whole CityJSON document, then hand it to storage at once
# EXPORTS: import_city_model, prepare_city_model, compute_location
# INTERFACES: Repository with insert_city_model(name, metadata, objects)
# DEPENDENCIES: typing, util_logger
# SOURCE: Uploaded CityJSON documents
# PATTERNS: Validate-all-then-write
# ENTRY_POINTS: import_city_model(document, name, repository)
# ============================================================================

"""
CityJSON Import

Nothing is written unless every CityObject and every geometry validates.
The transaction around the write belongs to the repository.

Each CityObject gets a ``location``: the 2D envelope, in the document's
(WGS84 longitude/latitude) coordinates, of the vertices its geometries
reference. The spatial ``bbox`` filter runs against it.
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from util_logger import ComponentType, LoggerFactory, log_exceptions

from .cityobjects import CityObject, validate_city_object
from .errors import InvalidCityObject, VertexIndexOutOfRange
from .geometry import GeometryInstance

logger = LoggerFactory.create_logger(ComponentType.IMPORTER, "CityModelImport")


def prepare_city_model(document: Mapping[str, Any], name: str) -> Tuple[Dict[str, Any], List[CityObject]]:
    """
    Validate a CityJSON document and build its CityObjects.

    Args:
        document: Decoded CityJSON document
        name: CityModel name the objects are stored under

    Returns:
        Tuple of (metadata, city_objects)

    Raises:
        InvalidCityObject: Document is not CityJSON or an object is invalid
        StructuralError: A geometry failed validation
        VertexIndexOutOfRange: A boundary references a missing vertex
    """
    if not isinstance(document, Mapping) or document.get("type") != "CityJSON":
        raise InvalidCityObject("Document is not a CityJSON object")
    if not name:
        raise InvalidCityObject("CityModel name is required")

    raw_objects = document.get("CityObjects")
    if not isinstance(raw_objects, Mapping):
        raise InvalidCityObject("'CityObjects' must be an object keyed by CityObject name")

    vertices = _decode_vertices(document.get("vertices", []), document.get("transform"))

    city_objects = []
    for object_name, raw in raw_objects.items():
        city_object = validate_city_object(object_name, raw, city_model=name)
        if city_object.location is None:
            city_object.location = compute_location(city_object, vertices)
        city_objects.append(city_object)

    metadata = dict(document.get("metadata") or {})
    if "version" in document:
        metadata.setdefault("version", document["version"])

    return metadata, city_objects


@log_exceptions(logger=logger)
def import_city_model(document: Mapping[str, Any], name: str, repository) -> int:
    """
    Validate and store a CityJSON document as one CityModel.

    Returns:
        Number of CityObjects stored
    """
    metadata, city_objects = prepare_city_model(document, name)
    repository.insert_city_model(name, metadata, city_objects)
    logger.info(f"Imported CityModel '{name}' with {len(city_objects)} CityObjects")
    return len(city_objects)


def compute_location(
    city_object: CityObject,
    vertices: Sequence[Sequence[float]]
) -> Optional[Dict[str, Any]]:
    """
    2D envelope of the vertices referenced by a CityObject's geometries.

    Returns:
        GeoJSON Polygon, LineString when one axis is degenerate, Point when
        all vertices coincide, None without geometry
    """
    xs, ys = [], []
    for index in _referenced_vertices(city_object):
        if not 0 <= index < len(vertices):
            raise VertexIndexOutOfRange(
                f"CityObject '{city_object.name}' references vertex {index} "
                f"but the document has {len(vertices)} vertices"
            )
        x, y = vertices[index][0], vertices[index][1]
        xs.append(x)
        ys.append(y)

    if not xs:
        return None

    min_x, max_x, min_y, max_y = min(xs), max(xs), min(ys), max(ys)
    if min_x == max_x or min_y == max_y:
        if min_x == max_x and min_y == max_y:
            return {"type": "Point", "coordinates": [min_x, min_y]}
        return {"type": "LineString", "coordinates": [[min_x, min_y], [max_x, max_y]]}

    return {
        "type": "Polygon",
        "coordinates": [[
            [min_x, min_y],
            [min_x, max_y],
            [max_x, max_y],
            [max_x, min_y],
            [min_x, min_y],
        ]],
    }


def _referenced_vertices(city_object: CityObject) -> Iterator[int]:
    for geometry in city_object.geometry:
        if isinstance(geometry, GeometryInstance):
            yield from geometry.boundaries
        else:
            yield from _flatten(geometry.boundaries)


def _flatten(node: Any) -> Iterator[int]:
    if isinstance(node, list):
        for child in node:
            yield from _flatten(child)
    else:
        yield node


def _decode_vertices(raw_vertices: Any, transform: Optional[Mapping[str, Any]]) -> List[List[float]]:
    """Apply the optional CityJSON ``transform`` (scale, translate) to vertices."""
    if not isinstance(raw_vertices, list):
        raise InvalidCityObject("'vertices' must be an array")

    for i, vertex in enumerate(raw_vertices):
        if not isinstance(vertex, list) or len(vertex) < 2 or not all(_is_number(c) for c in vertex):
            raise InvalidCityObject(f"'vertices[{i}]' must be an array of at least 2 numbers")

    if transform is None:
        return raw_vertices
    if not isinstance(transform, Mapping):
        raise InvalidCityObject("'transform' must be an object")

    scale = _transform_member(transform, "scale", [1, 1, 1])
    translate = _transform_member(transform, "translate", [0, 0, 0])
    return [
        [c * s + t for c, s, t in zip(v, scale, translate)]
        for v in raw_vertices
    ]


def _transform_member(transform: Mapping[str, Any], member: str, default: List[float]) -> List[float]:
    value = transform.get(member, default)
    if not isinstance(value, list) or len(value) != 3 or not all(_is_number(c) for c in value):
        raise InvalidCityObject(f"'transform.{member}' must be an array of 3 numbers")
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

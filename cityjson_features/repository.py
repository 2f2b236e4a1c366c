# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES REPOSITORY
# ============================================================================
# STATUS: Standalone Repository - PostGIS storage for CityModels / CityObjects
# PURPOSE: Persist imported city models and run validated item filters
# EXPORTS: CityJSONRepository, is_cityjson_schema_available
# INTERFACES: None (standalone implementation)
# PYDANTIC_MODELS: FeatureFilter (input), CityObject (import input)
# DEPENDENCIES: psycopg, psycopg.sql, typing, json, contextlib
# SOURCE: PostgreSQL/PostGIS database (configurable schema)
# SCOPE: CityModel listing, attribute + spatial filtering, transactional import
# VALIDATION: SQL injection prevention via psycopg.sql composition
# PATTERNS: Repository Pattern, Query Builder, SQL Composition
# ENTRY_POINTS: repo = CityJSONRepository(config); rows = repo.query_city_objects(filter)
# ============================================================================

"""
CityJSON Repository - PostGIS Direct Access

Tables (schema from config, default "cityjson"):

    city_models(name PK, metadata jsonb)
    city_objects(id, city_model FK -> city_models ON DELETE CASCADE,
                 name, type, parents, children, attributes, geometry jsonb,
                 location geometry(Geometry, 4326) with a GiST index)

Safety:
- All queries use psycopg.sql.SQL() composition (NO string concatenation)
- Dynamic identifiers via sql.Identifier()
- Values via parameterized queries (%s placeholders), attribute names included

Faults:
- psycopg.OperationalError (connection refused, statement timeout) -> StorageUnavailable
- any other psycopg.Error -> StorageError
"""

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from util_logger import ComponentType, LoggerFactory

from .cityobjects import CityObject
from .config import CityJSONFeaturesConfig, get_cityjson_config
from .errors import StorageError, StorageUnavailable
from .geometry import dump_geometry
from .query import FeatureFilter

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "CityJSONRepository")

# Cache for schema availability (reset on cold start)
_schema_available: Optional[bool] = None

# query keys matched against columns; everything else is an attribute
_COLUMN_PREDICATES = ("name", "type")
_ATTRIBUTE_PREFIX = "attributes."


def is_cityjson_schema_available(force_check: bool = False) -> bool:
    """
    Check the city model tables exist.

    Uses a cached result (the schema does not change during the app's
    lifetime). Use force_check=True to refresh.
    """
    global _schema_available

    if _schema_available is not None and not force_check:
        return _schema_available

    config = get_cityjson_config()
    try:
        with psycopg.connect(config.get_connection_string(), row_factory=dict_row) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT to_regclass(%s) AS models, to_regclass(%s) AS objects",
                    (f"{config.cityjson_schema}.city_models", f"{config.cityjson_schema}.city_objects")
                )
                row = cur.fetchone()
                _schema_available = bool(row and row["models"] and row["objects"])
    except psycopg.Error as e:
        logger.error(f"Error checking CityJSON schema availability: {e}")
        _schema_available = False

    if not _schema_available:
        logger.warning(f"CityJSON schema '{config.cityjson_schema}' is not configured")
    return _schema_available


class CityJSONRepository:
    """
    PostGIS repository for CityModels and their CityObjects.

    Thread Safety:
    - Each method opens its own connection
    - Safe for concurrent requests in Azure Functions
    """

    def __init__(self, config: Optional[CityJSONFeaturesConfig] = None):
        self.config = config or get_cityjson_config()
        logger.info(f"CityJSONRepository initialized (schema: {self.config.cityjson_schema})")

    @contextmanager
    def _get_connection(self):
        """
        Context manager for PostgreSQL connections (autocommit, dict rows).

        Translates driver failures into storage errors.
        """
        conn = None
        try:
            conn = psycopg.connect(
                self.config.get_connection_string(),
                row_factory=dict_row,
                autocommit=True
            )
            with conn.cursor() as cur:
                cur.execute(sql.SQL("SET statement_timeout = {}").format(
                    sql.Literal(f"{self.config.query_timeout_seconds}s")
                ))
            yield conn
        except psycopg.OperationalError as e:
            logger.error(f"Storage unavailable: {e}", exc_info=True)
            raise StorageUnavailable(f"Storage is unavailable: {e}") from e
        except psycopg.Error as e:
            logger.error(f"Storage error: {e}", exc_info=True)
            raise StorageError(f"Storage query failed: {e}") from e
        finally:
            if conn:
                conn.close()

    def _table(self, name: str) -> sql.Composed:
        return sql.SQL("{}.{}").format(
            sql.Identifier(self.config.cityjson_schema),
            sql.Identifier(name)
        )

    # ========================================================================
    # SCHEMA
    # ========================================================================

    def ensure_schema(self) -> None:
        """Create the schema, tables and spatial index if missing."""
        statements = [
            sql.SQL("CREATE EXTENSION IF NOT EXISTS postgis"),
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.config.cityjson_schema)),
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {models} (
                    name TEXT PRIMARY KEY,
                    metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb
                )
            """).format(models=self._table("city_models")),
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {objects} (
                    id BIGSERIAL PRIMARY KEY,
                    city_model TEXT NOT NULL REFERENCES {models}(name) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL,
                    parents JSONB NOT NULL DEFAULT '[]'::jsonb,
                    children JSONB NOT NULL DEFAULT '[]'::jsonb,
                    attributes JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                    geometry JSONB NOT NULL DEFAULT '[]'::jsonb,
                    location geometry(Geometry, 4326),
                    UNIQUE (city_model, name)
                )
            """).format(objects=self._table("city_objects"), models=self._table("city_models")),
            sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {objects} USING GIST (location)").format(
                index=sql.Identifier("city_objects_location_idx"),
                objects=self._table("city_objects")
            ),
        ]
        with self._get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    for statement in statements:
                        cur.execute(statement)
        logger.info(f"CityJSON schema '{self.config.cityjson_schema}' ensured")

    # ========================================================================
    # CITY MODELS (COLLECTIONS)
    # ========================================================================

    def list_city_models(self) -> List[Dict[str, Any]]:
        query = sql.SQL("SELECT name, metadata FROM {models} ORDER BY name").format(
            models=self._table("city_models")
        )
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query)
                rows = cur.fetchall()
        logger.info(f"Found {len(rows)} city models")
        return rows

    def get_city_model(self, name: str) -> Optional[Dict[str, Any]]:
        query = sql.SQL("SELECT name, metadata FROM {models} WHERE name = %s").format(
            models=self._table("city_models")
        )
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, (name,))
                return cur.fetchone()

    def delete_city_model(self, name: str) -> bool:
        """Delete a CityModel; its CityObjects go with it."""
        query = sql.SQL("DELETE FROM {models} WHERE name = %s").format(
            models=self._table("city_models")
        )
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, (name,))
                deleted = cur.rowcount > 0
        logger.info(f"Delete CityModel '{name}': {'done' if deleted else 'not found'}")
        return deleted

    def insert_city_model(
        self,
        name: str,
        metadata: Dict[str, Any],
        city_objects: Iterable[CityObject]
    ) -> None:
        """
        Store a CityModel and its CityObjects in one transaction.

        An existing model with the same name is replaced.
        """
        rows = [self._object_params(name, city_object) for city_object in city_objects]

        insert_object = sql.SQL("""
            INSERT INTO {objects}
                (city_model, name, type, parents, children, attributes, geometry, location)
            VALUES
                (%s, %s, %s, %s, %s, %s, %s, ST_SetSRID(ST_GeomFromGeoJSON(%s), 4326))
        """).format(objects=self._table("city_objects"))

        with self._get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute(
                        sql.SQL("DELETE FROM {models} WHERE name = %s").format(models=self._table("city_models")),
                        (name,)
                    )
                    cur.execute(
                        sql.SQL("INSERT INTO {models} (name, metadata) VALUES (%s, %s)").format(
                            models=self._table("city_models")
                        ),
                        (name, Jsonb(metadata or {}))
                    )
                    if rows:
                        cur.executemany(insert_object, rows)

        logger.info(f"Stored CityModel '{name}' with {len(rows)} CityObjects")

    # ========================================================================
    # CITY OBJECTS (ITEMS)
    # ========================================================================

    def query_city_objects(self, feature_filter: FeatureFilter) -> List[Dict[str, Any]]:
        """
        Run an items filter: equality predicates, spatial "within", then paging.

        Returns:
            CityObject rows in CityJSON form (``CityModel`` key, geometry list,
            GeoJSON ``location``), ordered by insertion
        """
        where_clause, params = self._build_where_clause(feature_filter)

        query = sql.SQL("""
            SELECT {columns}
            FROM {objects}
            WHERE {where_clause}
            ORDER BY id
            LIMIT %s OFFSET %s
        """).format(
            columns=self._select_columns(),
            objects=self._table("city_objects"),
            where_clause=where_clause
        )
        params = params + [feature_filter.limit, feature_filter.offset]

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                rows = cur.fetchall()

        logger.info(
            f"Query returned {len(rows)} city objects from '{feature_filter.collection_id}' "
            f"(limit={feature_filter.limit}, offset={feature_filter.offset})"
        )
        return [self._row_to_city_object(row) for row in rows]

    def get_city_object(self, city_model: str, name: str) -> Optional[Dict[str, Any]]:
        query = sql.SQL("""
            SELECT {columns}
            FROM {objects}
            WHERE city_model = %s AND name = %s
        """).format(columns=self._select_columns(), objects=self._table("city_objects"))

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, (city_model, name))
                row = cur.fetchone()

        return self._row_to_city_object(row) if row else None

    # ========================================================================
    # QUERY BUILDING (SQL COMPOSITION)
    # ========================================================================

    def _build_where_clause(self, feature_filter: FeatureFilter) -> Tuple[sql.Composed, List[Any]]:
        conditions = [sql.SQL("city_model = %s")]
        params: List[Any] = [feature_filter.collection_id]

        for key, value in feature_filter.equality_predicates.items():
            if key in _COLUMN_PREDICATES:
                conditions.append(sql.SQL("{col} = %s").format(col=sql.Identifier(key)))
                params.append(value)
            else:
                attribute = key[len(_ATTRIBUTE_PREFIX):] if key.startswith(_ATTRIBUTE_PREFIX) else key
                conditions.append(sql.SQL("attributes ->> %s::text = %s"))
                params.extend([attribute, value])

        if feature_filter.spatial_polygon is not None:
            conditions.append(sql.SQL(
                "ST_Within(location, ST_SetSRID(ST_GeomFromGeoJSON(%s), 4326))"
            ))
            params.append(json.dumps(feature_filter.spatial_polygon))

        return sql.SQL(" AND ").join(conditions), params

    @staticmethod
    def _select_columns() -> sql.SQL:
        return sql.SQL(
            "name, type, city_model, parents, children, attributes, geometry, "
            "ST_AsGeoJSON(location)::json AS location"
        )

    @staticmethod
    def _object_params(city_model: str, city_object: CityObject) -> Tuple[Any, ...]:
        location = json.dumps(city_object.location) if city_object.location else None
        return (
            city_model,
            city_object.name,
            city_object.type,
            Jsonb(city_object.parents),
            Jsonb(city_object.children),
            Jsonb(city_object.attributes),
            Jsonb([dump_geometry(g) for g in city_object.geometry]),
            location,
        )

    @staticmethod
    def _row_to_city_object(row: Dict[str, Any]) -> Dict[str, Any]:
        city_object = {
            "name": row["name"],
            "type": row["type"],
            "CityModel": row["city_model"],
            "parents": row["parents"] or [],
            "children": row["children"] or [],
            "attributes": row["attributes"] or {},
            "geometry": row["geometry"] or [],
        }
        if row.get("location"):
            city_object["location"] = row["location"]
        return city_object

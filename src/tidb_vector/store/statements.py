"""SQL statement builders for the vector table.

Table and index names come from a validated ``VectorStoreConfig`` and are
interpolated; every value is a bound parameter.
"""

import json
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from tidb_vector.config import DistanceFunction
from tidb_vector.models.chunk import VectorRow
from tidb_vector.models.search import TagFilter, TagFilterMode

# Marker TiDB prints in EXPLAIN operator info when the HNSW index serves a query
ANN_INDEX_MARKER = "annIndex:"

SEARCH_COLUMNS = ("id", "collection", "content", "metadata", "source", "tags")

_DISTANCE_FUNCTIONS = {
    DistanceFunction.COSINE: "VEC_COSINE_DISTANCE",
    DistanceFunction.L2: "VEC_L2_DISTANCE",
}


class SearchQuery(NamedTuple):
    """A statement plus its bound parameters."""

    sql: str
    params: Dict[str, Any]


def candidate_pool_size(top_k: int) -> int:
    """Rows taken from the unfiltered ANN stage before exact filtering."""
    return max(3 * top_k, top_k + 20)


def vector_to_text(vector: Sequence[float]) -> str:
    """Render a vector as the text literal TiDB casts to VECTOR: ``[v1,v2,...]``."""
    return "[" + ",".join(repr(float(v)) for v in vector) + "]"


def to_json(value: Any) -> Optional[str]:
    """Serialize a JSON column value (None stays NULL)."""
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def from_json(value: Any) -> Any:
    """Parse a JSON column value returned by the driver."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value


def index_name(table_name: str, distance_function: DistanceFunction) -> str:
    return f"idx_{table_name}_embedding_{distance_function.value}"


def distance_expression(distance_function: DistanceFunction, param: str = "query_vec") -> str:
    return f"{_DISTANCE_FUNCTIONS[distance_function]}(embedding, :{param})"


def create_table_sql(table_name: str, dimension: int) -> str:
    return f"""CREATE TABLE IF NOT EXISTS {table_name} (
  collection VARCHAR(128) NOT NULL,
  id VARCHAR(64) NOT NULL,
  content TEXT NULL,
  metadata JSON NULL,
  source VARCHAR(512) NULL,
  tags JSON NULL,
  embedding VECTOR({int(dimension)}) NOT NULL,
  created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
  updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
  PRIMARY KEY (collection, id)
)"""


def set_tiflash_replica_sql(table_name: str) -> str:
    return f"ALTER TABLE {table_name} SET TIFLASH REPLICA 1"


def index_exists_sql() -> str:
    return (
        "SELECT COUNT(1) FROM INFORMATION_SCHEMA.TIFLASH_INDEXES "
        "WHERE TIDB_DATABASE = DATABASE() AND TIDB_TABLE = :table AND INDEX_NAME = :index_name"
    )


def create_vector_index_sql(table_name: str, distance_function: DistanceFunction) -> str:
    name = index_name(table_name, distance_function)
    func = _DISTANCE_FUNCTIONS[distance_function]
    return f"CREATE VECTOR INDEX {name} ON {table_name} (({func}(embedding))) USING HNSW"


def compact_sql(table_name: str) -> str:
    return f"ALTER TABLE {table_name} COMPACT"


def upsert_sql(table_name: str) -> str:
    """Insert a row, or replace every mutable column on (collection, id) conflict."""
    return f"""INSERT INTO {table_name} (collection, id, content, metadata, source, tags, embedding)
VALUES (:collection, :id, :content, :metadata, :source, :tags, CAST(:embedding AS VECTOR))
ON DUPLICATE KEY UPDATE
  content = VALUES(content),
  metadata = VALUES(metadata),
  source = VALUES(source),
  tags = VALUES(tags),
  embedding = VALUES(embedding),
  updated_at = CURRENT_TIMESTAMP"""


def _json_path(key: str) -> str:
    escaped = key.replace("\\", "\\\\").replace('"', '\\"')
    return f'$."{escaped}"'


def tag_conditions(tag_filter: Optional[TagFilter]) -> Tuple[str, Dict[str, str]]:
    """
    Build the tag predicate against the tags column.

    Each pair becomes one equality condition; pairs are joined with AND or
    OR, never mixed. Returns an empty clause when there is nothing to filter.
    """
    if tag_filter is None or not tag_filter.tags:
        return "", {}

    conditions: List[str] = []
    params: Dict[str, str] = {}
    for i, tag in enumerate(tag_filter.tags):
        conditions.append(
            f"JSON_UNQUOTE(JSON_EXTRACT(tags, :tag_path_{i})) = :tag_value_{i}"
        )
        params[f"tag_path_{i}"] = _json_path(tag.key)
        params[f"tag_value_{i}"] = tag.value

    operator = " AND " if tag_filter.mode == TagFilterMode.AND else " OR "
    return "(" + operator.join(conditions) + ")", params


def two_stage_search(
    table_name: str,
    distance_function: DistanceFunction,
    query_vector: Sequence[float],
    collection: str,
    top_k: int,
    tag_filter: Optional[TagFilter] = None,
) -> SearchQuery:
    """
    Build the ANN-then-filter query.

    The inner query ranks the whole table by raw distance so the vector
    index can serve it; the outer query applies collection and tag
    equality over that candidate pool and re-limits to ``top_k``.
    """
    where = ["collection = :collection"]
    params: Dict[str, Any] = {
        "query_vec": vector_to_text(query_vector),
        "collection": collection,
        "k_prime": candidate_pool_size(top_k),
        "k": top_k,
    }

    tag_clause, tag_params = tag_conditions(tag_filter)
    if tag_clause:
        where.append(tag_clause)
        params.update(tag_params)

    columns = ", ".join(SEARCH_COLUMNS)
    where_clause = " AND ".join(where)
    sql = f"""SELECT * FROM (
  SELECT {columns}, {distance_expression(distance_function)} AS distance
  FROM {table_name}
  ORDER BY distance
  LIMIT :k_prime
) t
WHERE {where_clause}
ORDER BY distance
LIMIT :k"""
    return SearchQuery(sql=sql, params=params)


def explain(query: SearchQuery) -> SearchQuery:
    return SearchQuery(sql="EXPLAIN " + query.sql, params=dict(query.params))


def row_params(row: VectorRow) -> Dict[str, Any]:
    """Bound parameters for ``upsert_sql``."""
    return {
        "collection": row.collection,
        "id": row.id,
        "content": row.content,
        "metadata": to_json(row.metadata),
        "source": row.source,
        "tags": to_json(row.tags or None),
        "embedding": vector_to_text(row.embedding),
    }

"""Store access: engine creation, SQL builders and row I/O."""

from tidb_vector.store.connection import create_engine, get_database_url
from tidb_vector.store.repository import VectorRepository

__all__ = ["VectorRepository", "create_engine", "get_database_url"]

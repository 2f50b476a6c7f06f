"""Engine services: schema, chunk planning, writes, search and answers."""

from tidb_vector.services.answer_service import AnswerService
from tidb_vector.services.chunk_planner import ChunkPlanner
from tidb_vector.services.schema_service import SchemaManager
from tidb_vector.services.search_service import SearchService
from tidb_vector.services.write_service import WriteService

__all__ = ["AnswerService", "ChunkPlanner", "SchemaManager", "SearchService", "WriteService"]

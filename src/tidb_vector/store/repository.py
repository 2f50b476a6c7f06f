"""Row I/O against the vector table."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from tidb_vector.config import VectorStoreConfig
from tidb_vector.models.chunk import VectorRow
from tidb_vector.models.search import SearchHit, TagFilter
from tidb_vector.store import statements
from tidb_vector.utils.errors import StorageError
from tidb_vector.utils.logging import log_error


class VectorRepository:
    """
    Executes statements for one store.

    Every public coroutine opens its own connection. Driver failures leave
    this class as ``StorageError`` with the original exception chained.
    """

    def __init__(self, engine: AsyncEngine, config: VectorStoreConfig):
        self.engine = engine
        self.config = config

    @property
    def table_name(self) -> str:
        return self.config.table_name

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """
        Connection inside one transaction.

        Commits when the block exits normally and rolls back on any exception,
        including task cancellation.
        """
        try:
            async with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            log_error(e, context={"table": self.table_name}, operation="transaction")
            raise StorageError(
                "Transaction failed", details={"table": self.table_name, "error": str(e)}
            ) from e

    @asynccontextmanager
    async def connect(self, autocommit: bool = False) -> AsyncIterator[AsyncConnection]:
        """Plain connection; DDL callers ask for autocommit."""
        try:
            async with self.engine.connect() as conn:
                if autocommit:
                    conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
                yield conn
        except SQLAlchemyError as e:
            log_error(e, context={"table": self.table_name}, operation="connect")
            raise StorageError(
                "Database operation failed", details={"table": self.table_name, "error": str(e)}
            ) from e

    async def upsert_rows(self, conn: AsyncConnection, rows: Sequence[VectorRow]) -> None:
        """Insert-or-replace rows on an open connection, in order."""
        statement = text(statements.upsert_sql(self.table_name))
        for row in rows:
            await conn.execute(statement, statements.row_params(row))

    async def search(
        self,
        query_vector: Sequence[float],
        collection: str,
        top_k: int,
        tag_filter: Optional[TagFilter] = None,
    ) -> List[SearchHit]:
        query = statements.two_stage_search(
            self.table_name,
            self.config.distance_function,
            query_vector,
            collection,
            top_k,
            tag_filter,
        )
        async with self.connect() as conn:
            result = await conn.execute(text(query.sql), query.params)
            rows = result.mappings().all()

        return [
            SearchHit(
                id=row["id"],
                collection=row["collection"],
                content=row["content"],
                metadata=statements.from_json(row["metadata"]),
                source=row["source"],
                tags=statements.from_json(row["tags"]),
                distance=float(row["distance"]),
            )
            for row in rows
        ]

    async def explain_search(
        self,
        query_vector: Sequence[float],
        collection: str,
        top_k: int,
    ) -> List[Sequence[Any]]:
        """Rows of the execution plan for the two-stage search shape."""
        query = statements.explain(
            statements.two_stage_search(
                self.table_name,
                self.config.distance_function,
                query_vector,
                collection,
                top_k,
            )
        )
        async with self.connect() as conn:
            result = await conn.execute(text(query.sql), query.params)
            return [tuple(row) for row in result.all()]

"""Idempotent table and vector-index setup."""

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from tidb_vector.store import statements
from tidb_vector.store.repository import VectorRepository
from tidb_vector.utils.logging import get_logger

logger = get_logger("schema_service")


def is_duplicate_index_error(error: Exception) -> bool:
    """True for the "already exists" / "duplicate index" class of failures."""
    # The driver error, not the wrapper whose text also carries the statement
    message = str(getattr(error, "orig", None) or error).lower()
    return "already exist" in message or ("duplicate" in message and "index" in message)


class SchemaManager:
    """
    Creates the vector table and, optionally, its HNSW index.

    Safe to run repeatedly and from several processes at once: every step
    either uses IF NOT EXISTS or tolerates the race it can lose.
    """

    def __init__(self, repository: VectorRepository, dimension: int):
        self.repository = repository
        self.dimension = dimension

    @property
    def table_name(self) -> str:
        return self.repository.table_name

    @property
    def index_name(self) -> str:
        return statements.index_name(self.table_name, self.repository.config.distance_function)

    async def ensure_schema(self, create_index: bool = False) -> None:
        """
        Create the table (and the vector index when requested).

        Raises:
            StorageError: On any failure outside the duplicate-index allow-list
        """
        async with self.repository.connect(autocommit=True) as conn:
            await conn.execute(text(statements.create_table_sql(self.table_name, self.dimension)))
            logger.info(
                "Vector table ensured",
                extra={"table": self.table_name, "dimension": self.dimension},
            )

            if create_index:
                await self._ensure_vector_index(conn)

    async def _ensure_vector_index(self, conn: AsyncConnection) -> None:
        await self._enable_tiflash_replica(conn)

        if await self._index_exists(conn):
            logger.debug(f"Vector index {self.index_name} already present")
            return

        try:
            await conn.execute(
                text(
                    statements.create_vector_index_sql(
                        self.table_name, self.repository.config.distance_function
                    )
                )
            )
            logger.info("Vector index created", extra={"index": self.index_name})
        except SQLAlchemyError as e:
            if is_duplicate_index_error(e):
                logger.info(f"Vector index {self.index_name} created concurrently; continuing")
                return
            raise

    async def _enable_tiflash_replica(self, conn: AsyncConnection) -> None:
        """The ANN index needs a TiFlash replica; unsupported clusters must not block setup."""
        try:
            await conn.execute(text(statements.set_tiflash_replica_sql(self.table_name)))
        except SQLAlchemyError as e:
            logger.warning(f"Could not enable TiFlash replica on {self.table_name}: {e}")

    async def _index_exists(self, conn: AsyncConnection) -> bool:
        try:
            result = await conn.execute(
                text(statements.index_exists_sql()),
                {"table": self.table_name, "index_name": self.index_name},
            )
            return int(result.scalar() or 0) > 0
        except SQLAlchemyError as e:
            logger.warning(f"Vector index probe failed, attempting creation: {e}")
            return False

    async def compact(self) -> None:
        """Best-effort ``ALTER TABLE ... COMPACT``; unsupported or unprivileged is not an error."""
        async with self.repository.connect(autocommit=True) as conn:
            try:
                await conn.execute(text(statements.compact_sql(self.table_name)))
                logger.info(f"Compacted {self.table_name}")
            except SQLAlchemyError as e:
                logger.warning(f"Compaction of {self.table_name} skipped: {e}")

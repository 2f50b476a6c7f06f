"""Tests for the store layer: URL handling, engine creation and row I/O."""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import NullPool

from tidb_vector.config import VectorStoreConfig
from tidb_vector.models.chunk import VectorRow
from tidb_vector.models.search import TagFilter
from tidb_vector.store.connection import create_engine, get_database_url
from tidb_vector.store.repository import VectorRepository
from tidb_vector.utils.errors import ConfigurationError, StorageError, ValidationError


def make_engine(conn):
    """Engine double whose begin()/connect() yield the given connection."""

    @asynccontextmanager
    async def _context():
        yield conn

    engine = MagicMock()
    engine.begin = MagicMock(side_effect=lambda: _context())
    engine.connect = MagicMock(side_effect=lambda: _context())
    return engine


@pytest.fixture
def conn():
    connection = MagicMock()
    connection.execute = AsyncMock()
    connection.execution_options = AsyncMock(return_value=connection)
    return connection


@pytest.fixture
def repository(conn, store_config):
    return VectorRepository(make_engine(conn), store_config)


class TestDatabaseUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("mysql://u:p@host:4000/db", "mysql+aiomysql://u:p@host:4000/db"),
            ("mysql+pymysql://u:p@host:4000/db", "mysql+aiomysql://u:p@host:4000/db"),
            ("mysql+aiomysql://u:p@host:4000/db", "mysql+aiomysql://u:p@host:4000/db"),
            ("  mysql://u@host/db  ", "mysql+aiomysql://u@host/db"),
        ],
    )
    def test_rewrites_to_async_driver(self, url, expected):
        assert get_database_url(url) == expected

    def test_rejects_other_schemes(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_database_url("postgresql://u@host/db")
        assert exc_info.value.details["setting"] == "connection_string"


class TestCreateEngine:
    def test_uses_null_pool(self, store_config):
        engine = create_engine(store_config)
        assert isinstance(engine.pool, NullPool)
        assert engine.url.drivername == "mysql+aiomysql"

    def test_ssl_context_from_ca_bundle(self):
        config = VectorStoreConfig(
            connection_string="mysql://u@gateway.tidbcloud.com:4000/db", ssl_ca="/etc/ssl/ca.pem"
        )
        with patch("tidb_vector.store.connection.ssl.create_default_context") as mock_ctx, patch(
            "tidb_vector.store.connection.create_async_engine"
        ) as mock_create:
            create_engine(config)

        mock_ctx.assert_called_once_with(cafile="/etc/ssl/ca.pem")
        kwargs = mock_create.call_args.kwargs
        assert kwargs["connect_args"] == {"ssl": mock_ctx.return_value}
        assert kwargs["poolclass"] is NullPool


class TestTransaction:
    @pytest.mark.asyncio
    async def test_driver_errors_become_storage_errors(self, repository):
        original = OperationalError("INSERT ...", {}, Exception("connection lost"))
        with pytest.raises(StorageError) as exc_info:
            async with repository.transaction():
                raise original
        assert exc_info.value.__cause__ is original
        assert exc_info.value.code == "STORAGE_ERROR"

    @pytest.mark.asyncio
    async def test_driver_errors_are_logged_with_context(self, repository):
        original = OperationalError("SELECT ...", {}, Exception("timeout"))
        with patch("tidb_vector.store.repository.log_error") as mock_log_error:
            with pytest.raises(StorageError):
                async with repository.connect():
                    raise original
        mock_log_error.assert_called_once_with(
            original, context={"table": "tidb_vectors"}, operation="connect"
        )

    @pytest.mark.asyncio
    async def test_other_errors_propagate_unchanged(self, repository):
        with pytest.raises(ValidationError):
            async with repository.transaction():
                raise ValidationError("bad dimension")

    @pytest.mark.asyncio
    async def test_autocommit_connection(self, repository, conn):
        async with repository.connect(autocommit=True) as c:
            assert c is conn
        conn.execution_options.assert_awaited_once_with(isolation_level="AUTOCOMMIT")


class TestRowIO:
    @pytest.mark.asyncio
    async def test_upsert_rows_executes_in_order(self, repository, conn):
        rows = [
            VectorRow(collection="default", id="a", content="x", embedding=[1.0, 0.0, 0.0]),
            VectorRow(collection="default", id="b", content="y", embedding=[0.0, 1.0, 0.0]),
        ]
        await repository.upsert_rows(conn, rows)

        assert conn.execute.await_count == 2
        first_sql, first_params = conn.execute.await_args_list[0].args
        assert "INSERT INTO tidb_vectors" in str(first_sql)
        assert first_params["id"] == "a"
        assert first_params["embedding"] == "[1.0,0.0,0.0]"
        assert conn.execute.await_args_list[1].args[1]["id"] == "b"

    @pytest.mark.asyncio
    async def test_search_maps_rows(self, repository, conn):
        result = MagicMock()
        result.mappings.return_value.all.return_value = [
            {
                "id": "a",
                "collection": "default",
                "content": "hello",
                "metadata": json.dumps({"k": 1}),
                "source": "https://example.com",
                "tags": json.dumps({"Department": "Engineering"}),
                "distance": 0.25,
            },
            {
                "id": "b",
                "collection": "default",
                "content": None,
                "metadata": None,
                "source": None,
                "tags": None,
                "distance": 0.5,
            },
        ]
        conn.execute.return_value = result

        hits = await repository.search(
            [1.0, 0.0, 0.0], "default", 2, TagFilter.from_dict({"Department": "Engineering"})
        )

        assert [h.id for h in hits] == ["a", "b"]
        assert hits[0].metadata == {"k": 1}
        assert hits[0].tags == {"Department": "Engineering"}
        assert hits[0].distance == 0.25
        assert hits[1].metadata is None

        sql, params = conn.execute.await_args.args
        assert "LIMIT :k_prime" in str(sql)
        assert params["k"] == 2
        assert params["tag_value_0"] == "Engineering"

    @pytest.mark.asyncio
    async def test_explain_search_returns_plan_rows(self, repository, conn):
        result = MagicMock()
        result.all.return_value = [("TopN_1", "root", "annIndex:COSINE(embedding..)")]
        conn.execute.return_value = result

        rows = await repository.explain_search([0.0, 0.0, 0.0], "default", 5)

        assert rows == [("TopN_1", "root", "annIndex:COSINE(embedding..)")]
        assert str(conn.execute.await_args.args[0]).startswith("EXPLAIN ")

    @pytest.mark.asyncio
    async def test_search_failure_is_storage_error(self, repository, conn):
        conn.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))
        with pytest.raises(StorageError):
            await repository.search([1.0, 0.0, 0.0], "default", 5)

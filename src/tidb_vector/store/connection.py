"""Async database engine for TiDB over the MySQL wire protocol."""

import ssl
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from tidb_vector.config import VectorStoreConfig
from tidb_vector.utils.errors import ConfigurationError
from tidb_vector.utils.logging import get_logger

logger = get_logger("store.connection")

ASYNC_DRIVER_SCHEME = "mysql+aiomysql://"

_SYNC_SCHEMES = ("mysql://", "mysql+pymysql://", "mysql+mysqldb://")


def get_database_url(connection_string: str) -> str:
    """Get the database URL, converting to async format if needed."""
    db_url = connection_string.strip()

    if db_url.startswith(ASYNC_DRIVER_SCHEME):
        return db_url

    # Convert mysql:// (and sync driver variants) to mysql+aiomysql://
    for scheme in _SYNC_SCHEMES:
        if db_url.startswith(scheme):
            return ASYNC_DRIVER_SCHEME + db_url[len(scheme):]

    raise ConfigurationError(
        "Connection string must be a mysql:// URL (TiDB speaks the MySQL protocol)",
        setting="connection_string",
    )


def create_engine(config: VectorStoreConfig) -> AsyncEngine:
    """
    Create the SQLAlchemy async engine for a store.

    Pooling is disabled: every operation opens its own connection and
    closes it when done, leaving pooling to the driver or a proxy in
    front of the cluster.
    """
    db_url = get_database_url(config.connection_string)

    connect_args: Dict[str, Any] = {}
    if config.ssl_ca:
        connect_args["ssl"] = ssl.create_default_context(cafile=config.ssl_ca)

    engine = create_async_engine(
        db_url,
        poolclass=NullPool,
        echo=config.echo,
        connect_args=connect_args,
    )

    logger.info(
        f"Database engine created: table={config.table_name}, "
        f"distance={config.distance_function.value}, tls={bool(config.ssl_ca)}"
    )
    return engine

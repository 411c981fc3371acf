"""
PostgreSQL Client Wrapper for the denim operations core

Thin wrapper over an asyncpg connection pool. Statements issued inside
``transaction()`` run on the connection bound to the current task, so a
repository can group several writes into one atomic unit without passing
the connection around.

Usage:
    from core.postgres_client import get_postgres_client

    db = await get_postgres_client("denim_ops")

    async with db.transaction():
        await db.execute("UPDATE ...", [...])
        row = await db.query_row("SELECT ...", [...])
"""

import contextvars
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import asyncpg

from core.config import InfraConfig

logger = logging.getLogger(__name__)

_current_connection: contextvars.ContextVar[Optional[asyncpg.Connection]] = contextvars.ContextVar(
    "denim_ops_pg_connection", default=None
)


async def _init_connection(conn: asyncpg.Connection):
    # JSONB columns round-trip as python dicts
    await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


class PostgresClientWrapper:
    """
    PostgreSQL client wrapper around an asyncpg pool.

    Provides:
    - Lazy pool creation from InfraConfig
    - Task-local transaction boundary
    - Dict rows for query/query_row
    """

    def __init__(self, service_name: str, config: Optional[InfraConfig] = None):
        """
        Initialize PostgreSQL client wrapper.

        Args:
            service_name: Name of the service using this client
            config: Infrastructure config (defaults to environment)
        """
        self.service_name = service_name
        self.config = config or InfraConfig.from_env()
        self._pool: Optional[asyncpg.Pool] = None

        logger.info(
            f"PostgreSQL client initialized for {service_name}: "
            f"{self.config.postgres_host}:{self.config.postgres_port}/{self.config.postgres_db}"
        )

    async def connect(self) -> asyncpg.Pool:
        """Create the pool if it does not exist yet"""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                host=self.config.postgres_host,
                port=self.config.postgres_port,
                user=self.config.postgres_user,
                password=self.config.postgres_password,
                database=self.config.postgres_db,
                min_size=self.config.postgres_min_pool,
                max_size=self.config.postgres_max_pool,
                init=_init_connection,
            )
        return self._pool

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @asynccontextmanager
    async def transaction(self):
        """
        Run the enclosed statements in one transaction.

        Nested calls reuse the outer connection and open a savepoint.
        """
        conn = _current_connection.get()
        if conn is not None:
            async with conn.transaction():
                yield conn
            return

        pool = await self.connect()
        async with pool.acquire() as conn:
            token = _current_connection.set(conn)
            try:
                async with conn.transaction():
                    yield conn
            finally:
                _current_connection.reset(token)

    @asynccontextmanager
    async def _connection(self):
        conn = _current_connection.get()
        if conn is not None:
            yield conn
            return
        pool = await self.connect()
        async with pool.acquire() as conn:
            yield conn

    async def health_check(self) -> Optional[Dict]:
        """Check database health"""
        try:
            async with self._connection() as conn:
                version = await conn.fetchval("SELECT version()")
            return {"healthy": True, "version": version}
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return None

    async def query(self, sql: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        """Execute query and return results"""
        async with self._connection() as conn:
            rows = await conn.fetch(sql, *(params or []))
        return [dict(row) for row in rows]

    async def query_row(self, sql: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute query and return single row"""
        async with self._connection() as conn:
            row = await conn.fetchrow(sql, *(params or []))
        return dict(row) if row else None

    async def fetchval(self, sql: str, params: Optional[List[Any]] = None) -> Any:
        """Execute query and return the first column of the first row"""
        async with self._connection() as conn:
            return await conn.fetchval(sql, *(params or []))

    async def execute(self, sql: str, params: Optional[List[Any]] = None) -> str:
        """Execute SQL statement and return the command status (e.g. ``UPDATE 1``)"""
        async with self._connection() as conn:
            return await conn.execute(sql, *(params or []))

    async def execute_many(self, sql: str, params_list: List[List[Any]]) -> None:
        """Execute SQL statement with multiple parameter sets"""
        async with self._connection() as conn:
            await conn.executemany(sql, params_list)

    async def close(self):
        """Close the pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None


# Singleton instances per service
_postgres_clients: Dict[str, PostgresClientWrapper] = {}


async def get_postgres_client(
    service_name: str,
    config: Optional[InfraConfig] = None,
) -> PostgresClientWrapper:
    """
    Get or create PostgreSQL client for a service.

    Args:
        service_name: Service name
        config: Optional infrastructure config override

    Returns:
        PostgresClientWrapper instance
    """
    global _postgres_clients

    if service_name not in _postgres_clients:
        client = PostgresClientWrapper(service_name=service_name, config=config)
        await client.connect()
        _postgres_clients[service_name] = client

    return _postgres_clients[service_name]

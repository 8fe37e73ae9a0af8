"""PostgreSQL client for task record persistence."""

from typing import Any

from loguru import logger
from psycopg_pool import ConnectionPool

from taskmaster.infrastructure.settings import Settings, get_settings


class PostgresClientWrapper:
    """Wrapper for the PostgreSQL connection pool and schema setup.

    Store calls run in worker threads, so each one checks out its own
    connection and transaction from the pool.
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize PostgreSQL client wrapper."""
        self.settings = settings or get_settings()
        self._pool: ConnectionPool | None = None

    def connect(self) -> ConnectionPool:
        """Open the connection pool, waiting for its first connections."""
        if self._pool is None or self._pool.closed:
            logger.info(f"Connecting to PostgreSQL at {self.settings.postgres_host}:{self.settings.postgres_port}")
            pool = ConnectionPool(
                self.settings.postgres_dsn,
                min_size=self.settings.postgres_pool_min_size,
                max_size=self.settings.postgres_pool_max_size,
                kwargs={"connect_timeout": self.settings.postgres_connect_timeout},
                open=False,
            )
            pool.open(wait=True, timeout=self.settings.postgres_connect_timeout)
            self._pool = pool
            logger.info(f"PostgreSQL pool ready (max {self.settings.postgres_pool_max_size} connections)")
        return self._pool

    def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is not None and not self._pool.closed:
            self._pool.close()
            self._pool = None
            logger.info("PostgreSQL pool closed")

    @property
    def pool(self) -> ConnectionPool:
        """Get or open the connection pool."""
        if self._pool is None or self._pool.closed:
            return self.connect()
        return self._pool

    def health_check(self) -> dict[str, Any]:
        """Check that the task database answers queries."""
        try:
            with self.pool.connection() as conn:
                version = conn.execute("SELECT version()").fetchone()[0]
            return {
                "status": "healthy",
                "host": self.settings.postgres_host,
                "port": self.settings.postgres_port,
                "database": self.settings.postgres_db,
                "version": version,
            }
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return {
                "status": "unhealthy",
                "host": self.settings.postgres_host,
                "port": self.settings.postgres_port,
                "database": self.settings.postgres_db,
                "error": str(e),
            }

    def setup_schema(self) -> None:
        """Create the tasks table and its indexes."""
        with self.pool.connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id UUID PRIMARY KEY,
                    owner_id VARCHAR(255) NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    completed BOOLEAN NOT NULL DEFAULT FALSE,
                    priority VARCHAR(16) NOT NULL DEFAULT 'medium',
                    category VARCHAR(32) NOT NULL DEFAULT 'personal',
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                    due_date TIMESTAMP WITH TIME ZONE,
                    attachment_refs JSONB NOT NULL DEFAULT '[]'::jsonb
                );

                CREATE INDEX IF NOT EXISTS idx_tasks_owner_id ON tasks(owner_id);
                CREATE INDEX IF NOT EXISTS idx_tasks_owner_created ON tasks(owner_id, created_at DESC);
            """)
        logger.info("Database schema setup complete")


# Singleton instance
_postgres_client: PostgresClientWrapper | None = None


def get_postgres_client() -> PostgresClientWrapper:
    """Get singleton PostgreSQL client instance."""
    global _postgres_client
    if _postgres_client is None:
        _postgres_client = PostgresClientWrapper()
    return _postgres_client

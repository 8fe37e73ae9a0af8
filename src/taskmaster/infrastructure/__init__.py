# src/taskmaster/infrastructure/__init__.py
"""Infrastructure layer - external services, databases, and configuration."""

from taskmaster.infrastructure.postgres_client import (
    PostgresClientWrapper,
    get_postgres_client,
)
from taskmaster.infrastructure.settings import Settings, get_settings


# Blob storage (lazy import keeps boto3 out of settings-only imports)
def get_blob_store(*args, **kwargs):
    """Get the S3 blob store (lazy import)."""
    from taskmaster.infrastructure.attachments.s3_store import s3_store_from_settings as _get
    return _get(*args, **kwargs)


__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Postgres
    "PostgresClientWrapper",
    "get_postgres_client",
    # Blob storage
    "get_blob_store",
]

"""postguard database package.

Re-exports the publish-history table, the engine factory and the SQL store::

    from postguard.db import SqlPublishStore, create_async_engine_from_url
"""

from postguard.db.engine import (
    async_session_factory,
    create_async_engine_from_url,
    create_tables,
)
from postguard.db.models import PublishedPost
from postguard.db.retry import db_retry, is_transient_error
from postguard.db.store import SqlPublishStore

__all__ = [
    # Engine
    "async_session_factory",
    "create_async_engine_from_url",
    "create_tables",
    # Retry
    "db_retry",
    "is_transient_error",
    # Models
    "PublishedPost",
    # Store
    "SqlPublishStore",
]

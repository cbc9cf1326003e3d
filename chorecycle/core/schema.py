"""SQLite schema management (code-first approach).

Tables are declared by feature modules through Module.get_table_schemas() and
created here in registration order.
"""

import logging
import sqlite3

from chorecycle.core import db_client, module_registry
from chorecycle.core.errors import DatabaseError


logger = logging.getLogger(__name__)


def _ensure_core_modules() -> None:
    from chorecycle.modules.tasks import TasksModule

    if "tasks" not in module_registry.get_modules():
        module_registry.register_module(TasksModule())


async def init_db(*, db_path: str | None = None) -> None:
    """Create every registered module's tables and indexes if they do not exist.

    Raises:
        DatabaseError: If any DDL statement fails
    """
    _ensure_core_modules()

    schemas = module_registry.get_all_table_schemas()
    indexes = module_registry.get_all_indexes()

    conn = await db_client.get_connection(db_path=db_path)
    try:
        for table_name, ddl in schemas.items():
            await conn.execute(ddl)
            logger.debug("Ensured table", extra={"table": table_name})
        for index_sql in indexes:
            await conn.execute(index_sql)
        await conn.commit()
    except sqlite3.Error as e:
        await conn.rollback()
        logger.error("init_db_failed", extra={"error": str(e)})
        raise DatabaseError(f"Failed to initialize schema: {e}") from e

    logger.info("Database schema initialized", extra={"tables": list(schemas), "index_count": len(indexes)})

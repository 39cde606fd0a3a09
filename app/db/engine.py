# === backend/app/db/engine.py ===
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncEngine


def _jsonable(v: Any):
    if v is None:
        return None
    if isinstance(v, (datetime, date, time)):
        return v.isoformat()
    if isinstance(v, Decimal):
        return float(v)
    if isinstance(v, UUID):
        return str(v)
    if isinstance(v, (bytes, bytearray, memoryview)):
        return bytes(v).decode("utf-8", errors="ignore")
    return v


class SqlEngine:
    """Runs fully literal-substituted SQL text against the target database.

    The AsyncEngine (and its pool) is owned by the host process; this wrapper
    only borrows connections. Statements go to the driver as-is.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def execute_read(self, sql: str) -> List[Dict[str, Any]]:
        # reads commit too: a SELECT or WITH can still modify data
        async with self._engine.begin() as conn:
            result = await conn.exec_driver_sql(sql)
            if not result.returns_rows:
                return []
            return [
                {key: _jsonable(val) for key, val in row.items()}
                for row in result.mappings().all()
            ]

    async def execute_write(self, sql: str) -> int:
        async with self._engine.begin() as conn:
            result = await conn.exec_driver_sql(sql)
            return result.rowcount if result.rowcount and result.rowcount > 0 else 0

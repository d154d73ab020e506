"""
PostgreSQL map backend.

Blocks are keyed by three integer columns:

    CREATE TABLE blocks (
        posx INT NOT NULL, posy INT NOT NULL, posz INT NOT NULL,
        data BYTEA,
        PRIMARY KEY (posx, posy, posz)
    )
"""

import logging
from typing import Optional

import psycopg
from psycopg_pool import ConnectionPool

from .errors import StorageError
from .models import Position, Region
from .storage import BlockStorage

logger = logging.getLogger(__name__)

GET_BLOCK_QUERY = "SELECT data FROM blocks WHERE posx = %s AND posy = %s AND posz = %s"

SET_BLOCK_QUERY = """
INSERT INTO blocks (posx, posy, posz, data)
    VALUES (%s, %s, %s, %s)
    ON CONFLICT (posx, posy, posz) DO
        UPDATE SET data = EXCLUDED.data
"""

SCAN_REGION_QUERY = """
SELECT posx, posy, posz, data
FROM blocks
WHERE posx BETWEEN %s AND %s
  AND posy BETWEEN %s AND %s
  AND posz BETWEEN %s AND %s
"""


class PostgresBlockStorage(BlockStorage):
    """Range-keyed backend with a connection pool"""

    name = "postgresql"

    def __init__(self, conninfo: str, max_connections: int = 4, connect_timeout: float = 30.0):
        self.pool = ConnectionPool(conninfo, min_size=1, max_size=max_connections, open=False)
        try:
            self.pool.open(wait=True, timeout=connect_timeout)
        except psycopg.Error as e:
            self.pool.close()
            raise StorageError(f"Failed to connect to PostgreSQL: {e}") from e
        logger.debug("Opened PostgreSQL pool (max %d connections)", max_connections)

    def get_block(self, position: Position) -> Optional[bytes]:
        try:
            with self.pool.connection() as conn:
                row = conn.execute(GET_BLOCK_QUERY, (position.x, position.y, position.z)).fetchone()
        except psycopg.Error as e:
            raise StorageError(f"Failed to read block {position}: {e}") from e

        if row is None:
            return None
        return bytes(row[0])

    def set_block(self, position: Position, data: bytes) -> None:
        try:
            with self.pool.connection() as conn:
                conn.execute(SET_BLOCK_QUERY, (position.x, position.y, position.z, data))
        except psycopg.Error as e:
            raise StorageError(f"Failed to write block {position}: {e}") from e

    def _iter_region(self, region: Region):
        params = (
            region.min_x, region.max_x,
            region.min_y, region.max_y,
            region.min_z, region.max_z,
        )
        try:
            with self.pool.connection() as conn:
                # Named cursor: rows are streamed from the server, not loaded at once
                with conn.cursor(name="block_scan") as cursor:
                    cursor.execute(SCAN_REGION_QUERY, params)
                    for x, y, z, data in cursor:
                        yield Position(x, y, z), bytes(data)
        except psycopg.Error as e:
            raise StorageError(f"Failed to scan region: {e}") from e

    def close(self) -> None:
        self.pool.close()

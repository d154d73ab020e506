"""
SQLite map backend (map.sqlite).

Blocks live in a single table keyed by the packed position integer:

    CREATE TABLE blocks (pos INT PRIMARY KEY, data BLOB)
"""

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from .errors import StorageError
from .models import Position, Region
from .storage import BlockStorage

logger = logging.getLogger(__name__)

SCAN_BATCH_SIZE = 256


class SQLiteBlockStorage(BlockStorage):
    """Point-keyed backend over a map.sqlite file"""

    name = "sqlite3"

    def __init__(self, path: Path):
        self.path = Path(path)
        if not self.path.is_file():
            raise StorageError(f"SQLite map database not found: {self.path}")

        try:
            self.conn = sqlite3.connect(str(self.path))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open {self.path}: {e}") from e
        logger.debug("Opened SQLite map %s", self.path)

    def get_block(self, position: Position) -> Optional[bytes]:
        try:
            row = self.conn.execute(
                "SELECT data FROM blocks WHERE pos = ?", (position.encode(),)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read block {position}: {e}") from e

        if row is None:
            return None
        return bytes(row[0])

    def set_block(self, position: Position, data: bytes) -> None:
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT INTO blocks(pos, data) VALUES(?, ?) "
                    "ON CONFLICT(pos) DO UPDATE SET data = excluded.data",
                    (position.encode(), data),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write block {position}: {e}") from e

    def _iter_region(self, region: Region):
        # Keys are packed integers, so the region filter runs on decoded positions
        try:
            cursor = self.conn.execute("SELECT pos, data FROM blocks")
            while True:
                rows = cursor.fetchmany(SCAN_BATCH_SIZE)
                if not rows:
                    break
                for key, data in rows:
                    position = Position.decode(key)
                    if region.contains(position):
                        yield position, bytes(data)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to scan {self.path}: {e}") from e

    def close(self) -> None:
        self.conn.close()

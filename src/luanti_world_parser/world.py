"""
World access: opens the backend named in world.mt and decodes blocks.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from .block_parser import decode_block
from .errors import BlockConsumerError, DecodeError, WorldError
from .metadata import WorldMetadata, read_metadata
from .models import Block, Position, Region
from .postgres_backend import PostgresBlockStorage
from .sqlite_backend import SQLiteBlockStorage
from .storage import BlockStorage

logger = logging.getLogger(__name__)

METADATA_FILENAME = "world.mt"
SQLITE_FILENAME = "map.sqlite"


def open_storage(world_path: Path, metadata: WorldMetadata) -> BlockStorage:
    """Create the storage backend selected by the world metadata"""
    if metadata.backend == "sqlite3":
        return SQLiteBlockStorage(world_path / SQLITE_FILENAME)
    return PostgresBlockStorage(metadata.pgsql_connection)


class World:
    """A world directory and its map storage"""

    def __init__(self, path: Path, metadata: WorldMetadata, storage: BlockStorage):
        self.path = path
        self.metadata = metadata
        self.storage = storage

    @classmethod
    def open(cls, path) -> "World":
        """
        Open the world at path.

        The backend is picked once, from the ``backend`` key of world.mt.
        """
        path = Path(path)
        if not path.is_dir():
            raise WorldError(f"World directory not found: {path}")

        logger.info("World path: %s", path)
        metadata = read_metadata(path / METADATA_FILENAME)
        storage = open_storage(path, metadata)
        logger.info("Using %s backend", storage.name)
        return cls(path, metadata, storage)

    def get_raw_block(self, position: Position) -> Optional[bytes]:
        return self.storage.get_block(position)

    def get_block(self, position: Position) -> Optional[Block]:
        """Decode the block at position; None if nothing is stored there"""
        data = self.storage.get_block(position)
        if data is None:
            return None
        return decode_block(data)

    def scan_blocks(self, region: Region, on_block: Callable[[Position, Block], None]) -> int:
        """
        Decode every block in region and pass it to on_block.

        Blocks that fail to decode are logged and skipped by the storage
        layer.
        """
        def handle(position: Position, data: bytes) -> None:
            try:
                block = decode_block(data)
            except DecodeError as e:
                raise BlockConsumerError(str(e)) from e
            on_block(position, block)

        return self.storage.scan_region(region, handle)

    def close(self) -> None:
        self.storage.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

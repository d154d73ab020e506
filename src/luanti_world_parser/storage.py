"""
Storage contract shared by all map backends.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .errors import BlockConsumerError
from .models import Position, Region

logger = logging.getLogger(__name__)

BlockDataHandler = Callable[[Position, bytes], None]


class BlockStorage(ABC):
    """
    Key-value store of raw map block data keyed by block position.

    Concrete backends raise StorageError on query or connectivity failures.
    A missing block is never an error.
    """

    name = "abstract"

    @abstractmethod
    def get_block(self, position: Position) -> Optional[bytes]:
        """Return the raw data stored at position, or None"""

    @abstractmethod
    def set_block(self, position: Position, data: bytes) -> None:
        """Insert or replace the raw data stored at position"""

    @abstractmethod
    def _iter_region(self, region: Region):
        """Yield (position, data) for every stored block inside region"""

    def scan_region(self, region: Region, on_block: BlockDataHandler) -> int:
        """
        Call on_block(position, data) for every stored block inside region.

        Order is backend-defined. If on_block raises BlockConsumerError the
        block is logged and skipped and the scan goes on; any StorageError
        aborts the scan.

        Returns:
            Number of blocks the callback accepted
        """
        accepted = 0
        for position, data in self._iter_region(region):
            try:
                on_block(position, data)
            except BlockConsumerError as e:
                logger.warning("Skipping block %s (%d bytes): %s", position, len(data), e)
                continue
            accepted += 1
        return accepted

    @abstractmethod
    def close(self) -> None:
        """Release connections held by the backend"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

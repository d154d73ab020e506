"""
Concurrent block processing.

One producer (the calling thread) scans the storage and feeds raw blocks into
a bounded queue; a fixed pool of worker threads decodes them and folds each
into a private accumulator. Once the scan ends the queue is closed, the
workers are joined and their accumulators are merged in the calling thread.
"""

import logging
import queue
import threading
from typing import Callable, List, Optional

from .block_parser import decode_block
from .errors import DecodeError
from .models import Position, Region
from .stats import NodeStats
from .storage import BlockStorage

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 2
DEFAULT_QUEUE_SIZE = 4096
DEFAULT_LOG_INTERVAL = 10000

# Queue sentinel; one is enqueued per worker
_CLOSE = object()


class ProgressCounter:
    """
    Number of blocks processed so far, shared by all workers.

    The value only grows. It is read for progress logging and nothing else
    depends on it.
    """

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class _WorkerFailed(Exception):
    """Stops the scan after a worker died"""


class BlockPipeline:
    """
    Scan, decode and fold blocks with a pool of worker threads.

    Accumulators must provide add_block(block), add_failure(position, reason)
    and merge(other) -> accumulator.
    """

    def __init__(
        self,
        storage: BlockStorage,
        accumulator_factory: Callable[[], NodeStats] = NodeStats,
        workers: int = DEFAULT_WORKERS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        log_interval: int = DEFAULT_LOG_INTERVAL,
    ):
        if workers < 1:
            raise ValueError(f"Worker count must be positive, got {workers}")
        if queue_size < 1:
            raise ValueError(f"Queue size must be positive, got {queue_size}")

        self.storage = storage
        self.accumulator_factory = accumulator_factory
        self.workers = workers
        self.queue_size = queue_size
        self.log_interval = log_interval
        self.progress = ProgressCounter()

    def run(self, region: Optional[Region] = None):
        """
        Process every block in region (the whole world by default).

        Returns:
            The merged accumulator

        Raises:
            StorageError: if the scan fails; workers are drained first
        """
        region = region or Region.everything()
        entries: queue.Queue = queue.Queue(maxsize=self.queue_size)
        abort = threading.Event()
        results: List = [None] * self.workers
        errors: List[BaseException] = []

        def work(index: int) -> None:
            try:
                accumulator = self.accumulator_factory()
            except Exception as e:
                logger.exception("Worker %d failed to start", index)
                errors.append(e)
                abort.set()
                # Keep taking entries so the producer never blocks on a full queue
                while entries.get() is not _CLOSE:
                    pass
                return

            while True:
                entry = entries.get()
                if entry is _CLOSE:
                    break
                if abort.is_set():
                    continue
                try:
                    self._process(accumulator, *entry)
                except Exception as e:
                    logger.exception("Worker %d failed", index)
                    errors.append(e)
                    abort.set()
            results[index] = accumulator

        def on_block(position: Position, data: bytes) -> None:
            if abort.is_set():
                raise _WorkerFailed()
            entries.put((position, data))

        threads = [
            threading.Thread(target=work, args=(i,), name=f"block-worker-{i}", daemon=True)
            for i in range(self.workers)
        ]
        for thread in threads:
            thread.start()

        logger.info("Scanning blocks with %d worker(s)", self.workers)
        try:
            self.storage.scan_region(region, on_block)
        except _WorkerFailed:
            pass
        except BaseException:
            abort.set()
            raise
        finally:
            for _ in threads:
                entries.put(_CLOSE)
            for thread in threads:
                thread.join()

        if errors:
            raise errors[0]

        merged = self.accumulator_factory()
        for accumulator in results:
            merged = merged.merge(accumulator)

        logger.info("Processed %d blocks", self.progress.value)
        return merged

    def _process(self, accumulator, position: Position, data: bytes) -> None:
        try:
            block = decode_block(data)
        except DecodeError as e:
            logger.warning("Block %s failed to decode: %s", position, e)
            accumulator.add_failure(position, str(e))
        else:
            accumulator.add_block(block)

        count = self.progress.increment()
        if self.log_interval and count % self.log_interval == 0:
            logger.info("Processed %d blocks", count)


def count_nodes(
    storage: BlockStorage,
    region: Optional[Region] = None,
    workers: int = DEFAULT_WORKERS,
    queue_size: int = DEFAULT_QUEUE_SIZE,
    log_interval: int = DEFAULT_LOG_INTERVAL,
) -> NodeStats:
    """Count nodes by content name over region (the whole world by default)"""
    pipeline = BlockPipeline(
        storage,
        NodeStats,
        workers=workers,
        queue_size=queue_size,
        log_interval=log_interval,
    )
    return pipeline.run(region)

"""
Luanti World Parser

Reader for Luanti/Minetest world maps: decodes stored map blocks and counts
node content types across a world.
"""

__version__ = "0.1.0"

from .block_parser import BlockDataParser, decode_block
from .errors import (
    BlockConsumerError,
    DecodeError,
    StorageError,
    UnknownBackendError,
    WorldError,
    WorldParserError,
)
from .models import Block, NodeTimer, Position, Region, StaticObject
from .pipeline import BlockPipeline, count_nodes
from .stats import BlockFailure, NodeStats
from .world import World

__all__ = [
    "Block",
    "BlockConsumerError",
    "BlockDataParser",
    "BlockFailure",
    "BlockPipeline",
    "DecodeError",
    "NodeStats",
    "NodeTimer",
    "Position",
    "Region",
    "StaticObject",
    "StorageError",
    "UnknownBackendError",
    "World",
    "WorldError",
    "WorldParserError",
    "count_nodes",
    "decode_block",
]

"""
Data models for decoded Luanti world data.
"""

import struct
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

# Side length of a map block in nodes
BLOCK_SIZE = 16
BLOCK_VOLUME = BLOCK_SIZE * BLOCK_SIZE * BLOCK_SIZE

# One node: u16 content id + param1 + param2
NODE_SIZE = 4
NODE_DATA_LENGTH = BLOCK_VOLUME * NODE_SIZE

MIN_SUPPORTED_VERSION = 25
MAX_SUPPORTED_VERSION = 29
FIRST_ZSTD_VERSION = 29

# Position keys use 12 bits per axis
AXIS_BITS = 12
AXIS_SPAN = 1 << AXIS_BITS
AXIS_MIN = -(AXIS_SPAN // 2)
AXIS_MAX = AXIS_SPAN // 2 - 1


def _unsigned_to_signed(value: int) -> int:
    """Map an axis value in [0, 4096) onto [-2048, 2047]"""
    if value <= AXIS_MAX:
        return value
    return value - AXIS_SPAN


@dataclass(frozen=True, order=True)
class Position:
    """Position of a map block, in block (not node) coordinates"""
    x: int
    y: int
    z: int

    def encode(self) -> int:
        """
        Pack the position into the scalar key used by point-keyed backends.

        The key is ``z * 2**24 + y * 2**12 + x``. It is injective for axes
        within [0, 4095] and within [-2048, 2047]; the latter is the range
        the game server itself writes.
        """
        return self.z * AXIS_SPAN * AXIS_SPAN + self.y * AXIS_SPAN + self.x

    @classmethod
    def decode(cls, key: int) -> "Position":
        """Invert encode() for keys written with axes in [-2048, 2047]"""
        x = _unsigned_to_signed(key % AXIS_SPAN)
        key = (key - x) // AXIS_SPAN
        y = _unsigned_to_signed(key % AXIS_SPAN)
        key = (key - y) // AXIS_SPAN
        z = _unsigned_to_signed(key % AXIS_SPAN)
        return cls(x, y, z)

    def __str__(self) -> str:
        return f"({self.x},{self.y},{self.z})"


@dataclass(frozen=True)
class Region:
    """Axis-aligned box of block positions, bounds inclusive"""
    min_x: int
    min_y: int
    min_z: int
    max_x: int
    max_y: int
    max_z: int

    def __post_init__(self):
        if self.min_x > self.max_x or self.min_y > self.max_y or self.min_z > self.max_z:
            raise ValueError(f"Invalid region bounds: {self}")

    @classmethod
    def everything(cls) -> "Region":
        """Region covering every position a world can store"""
        return cls(AXIS_MIN, AXIS_MIN, AXIS_MIN, AXIS_MAX, AXIS_MAX, AXIS_MAX)

    @classmethod
    def around(cls, minimum: Position, maximum: Position) -> "Region":
        return cls(minimum.x, minimum.y, minimum.z, maximum.x, maximum.y, maximum.z)

    def contains(self, position: Position) -> bool:
        return (
            self.min_x <= position.x <= self.max_x
            and self.min_y <= position.y <= self.max_y
            and self.min_z <= position.z <= self.max_z
        )


@dataclass(frozen=True)
class StaticObject:
    """A non grid-aligned object stored with a block (e.g. a dropped item)"""
    type: int
    x: int  # Fine-grained coordinates, not block coordinates
    y: int
    z: int
    data: bytes = b""


@dataclass(frozen=True)
class NodeTimer:
    """A scheduled node timer stored with a block"""
    position: int  # Index into the node grid
    timeout: int
    elapsed: int


@dataclass(frozen=True)
class Block:
    """A decoded map block"""
    version: int
    flags: int = 0
    lighting_complete: int = 0
    timestamp: int = 0
    mappings: Mapping[int, str] = field(default_factory=dict, hash=False)
    node_data: bytes = b""
    node_meta: bytes = b""
    static_objects: Tuple[StaticObject, ...] = ()
    node_timers: Tuple[NodeTimer, ...] = ()

    def __post_init__(self):
        # Read-only view over a private copy of the id table
        object.__setattr__(self, 'mappings', MappingProxyType(dict(self.mappings)))

    def content_ids(self) -> Tuple[int, ...]:
        """
        Content ids of all nodes, in storage order.

        The node grid keeps all param0 values first (u16 big-endian, one per
        node), followed by the param1 and param2 arrays.
        """
        return struct.unpack(f'>{BLOCK_VOLUME}H', self.node_data[:BLOCK_VOLUME * 2])

    def to_dict(self) -> Dict:
        """Convert to a JSON-friendly dictionary (node grid omitted)"""
        return {
            "version": self.version,
            "flags": self.flags,
            "lighting_complete": self.lighting_complete,
            "timestamp": self.timestamp,
            "mappings": {str(k): v for k, v in sorted(self.mappings.items())},
            "node_data_length": len(self.node_data),
            "node_meta_length": len(self.node_meta),
            "static_objects": [
                {"type": o.type, "position": (o.x, o.y, o.z), "data": o.data.hex()}
                for o in self.static_objects
            ],
            "node_timers": [
                {"position": t.position, "timeout": t.timeout, "elapsed": t.elapsed}
                for t in self.node_timers
            ],
        }

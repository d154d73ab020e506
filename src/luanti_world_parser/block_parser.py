"""
Map Block Parser

Decoder for map blocks as stored by Luanti/Minetest servers (versions 25-29).

Versions 25-28 store the node grid and node metadata as two zlib streams
embedded in an otherwise uncompressed record. Version 29 compresses the whole
record after the version byte with zstd.
"""

import struct
import zlib
from typing import Dict, List

import zstandard as zstd

from .errors import (
    CorruptCompressedStream,
    InvalidContentWidth,
    InvalidMappingVersion,
    InvalidParamWidth,
    InvalidStaticObjectVersion,
    InvalidTimerDataLength,
    TruncatedInput,
    UnsupportedVersion,
)
from .models import (
    FIRST_ZSTD_VERSION,
    MAX_SUPPORTED_VERSION,
    MIN_SUPPORTED_VERSION,
    NODE_DATA_LENGTH,
    Block,
    NodeTimer,
    StaticObject,
)

CONTENT_WIDTH = 2
PARAM_WIDTH = 2
STATIC_OBJECT_VERSION = 0
MAPPING_VERSION = 0
TIMER_DATA_LENGTH = 10


class BlockDataParser:
    """Parser for a single serialized map block"""

    def __init__(self, data: bytes):
        """
        Initialize the block data parser.

        Args:
            data: Raw map block bytes, as stored in the database
        """
        self.data = data
        self.pos = 0

    def remaining(self) -> int:
        """Return number of bytes remaining"""
        return len(self.data) - self.pos

    def read_bytes(self, count: int) -> bytes:
        """Read a specified number of bytes"""
        if self.pos + count > len(self.data):
            raise TruncatedInput(
                f"Not enough data: need {count} bytes at offset {self.pos}, have {self.remaining()}"
            )
        value = self.data[self.pos:self.pos+count]
        self.pos += count
        return bytes(value)

    def read_byte(self) -> int:
        """Read a single byte"""
        if self.pos >= len(self.data):
            raise TruncatedInput(f"Not enough data to read byte at offset {self.pos}")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def read_u16(self) -> int:
        """Read a 2-byte big-endian unsigned short"""
        return struct.unpack('>H', self.read_bytes(2))[0]

    def read_u32(self) -> int:
        """Read a 4-byte big-endian unsigned integer"""
        return struct.unpack('>I', self.read_bytes(4))[0]

    def read_i32(self) -> int:
        """Read a 4-byte big-endian signed integer"""
        return struct.unpack('>i', self.read_bytes(4))[0]

    def read_string(self) -> str:
        """Read a string prefixed with its u16 byte length"""
        length = self.read_u16()
        return self.read_bytes(length).decode('utf-8', errors='replace')

    def read_zlib(self) -> bytes:
        """
        Read one zlib stream starting at the cursor.

        The stream length is not stored anywhere; the cursor is advanced by
        exactly the number of compressed bytes the decompressor consumed.
        """
        compressed = self.data[self.pos:]
        decompressor = zlib.decompressobj()
        try:
            data = decompressor.decompress(compressed)
        except zlib.error as e:
            raise CorruptCompressedStream(f"Invalid zlib stream at offset {self.pos}: {e}") from e

        if not decompressor.eof:
            raise TruncatedInput(f"zlib stream at offset {self.pos} ends before its end marker")

        self.pos += len(compressed) - len(decompressor.unused_data)
        return data

    def read_zstd(self) -> bytes:
        """Read the rest of the buffer as a single zstd stream"""
        compressed = self.data[self.pos:]
        decompressor = zstd.ZstdDecompressor().decompressobj()
        try:
            data = decompressor.decompress(compressed)
        except zstd.ZstdError as e:
            raise CorruptCompressedStream(f"Invalid zstd stream at offset {self.pos}: {e}") from e

        if not decompressor.eof:
            raise TruncatedInput(f"zstd stream at offset {self.pos} ends before its frame is complete")

        self.pos = len(self.data)
        return data

    def read_mappings(self) -> Dict[int, str]:
        """Read a name-id mapping table (the version byte is read by the caller)"""
        mappings: Dict[int, str] = {}
        for _ in range(self.read_u16()):
            content_id = self.read_u16()
            mappings[content_id] = self.read_string()
        return mappings

    def read_static_objects(self) -> List[StaticObject]:
        objects = []
        for _ in range(self.read_u16()):
            object_type = self.read_byte()
            x = self.read_i32()
            y = self.read_i32()
            z = self.read_i32()
            data = self.read_bytes(self.read_u16())
            objects.append(StaticObject(type=object_type, x=x, y=y, z=z, data=data))
        return objects

    def read_node_timers(self) -> List[NodeTimer]:
        timers = []
        for _ in range(self.read_u16()):
            position = self.read_u16()
            timeout = self.read_i32()
            elapsed = self.read_i32()
            timers.append(NodeTimer(position=position, timeout=timeout, elapsed=elapsed))
        return timers

    def parse(self) -> Block:
        """
        Parse the map block.

        Returns:
            Decoded Block

        Raises:
            DecodeError: if the data is not a supported, well-formed map block
        """
        version = self.read_byte()
        if version < MIN_SUPPORTED_VERSION or version > MAX_SUPPORTED_VERSION:
            raise UnsupportedVersion(version)

        if version >= FIRST_ZSTD_VERSION:
            return self._parse_zstd_block(version)
        return self._parse_zlib_block(version)

    def _parse_zlib_block(self, version: int) -> Block:
        """
        Parse a zlib-era block (versions 25-28).

        Layout after the version byte:
        - 1 byte: flags
        - 2 bytes: lighting_complete (version >= 27 only)
        - 1 byte: content_width, always 2
        - 1 byte: params_width, always 2
        - zlib stream: node data
        - zlib stream: node metadata
        - 1 byte: static object version, always 0
        - 2 bytes: static object count, then the objects
        - 4 bytes: timestamp
        - 1 byte: name-id mapping version, always 0
        - 2 bytes: mapping count, then (u16 id, u16-prefixed name) pairs
        - 1 byte: timer data length, always 10
        - 2 bytes: timer count, then (u16 position, i32 timeout, i32 elapsed)
        """
        flags = self.read_byte()

        lighting_complete = 0
        if version >= 27:
            lighting_complete = self.read_u16()

        content_width = self.read_byte()
        if content_width != CONTENT_WIDTH:
            raise InvalidContentWidth(content_width)

        param_width = self.read_byte()
        if param_width != PARAM_WIDTH:
            raise InvalidParamWidth(param_width)

        node_data = self.read_zlib()
        if len(node_data) != NODE_DATA_LENGTH:
            raise CorruptCompressedStream(
                f"Node data is {len(node_data)} bytes, expected {NODE_DATA_LENGTH}"
            )
        node_meta = self.read_zlib()

        static_object_version = self.read_byte()
        if static_object_version != STATIC_OBJECT_VERSION:
            raise InvalidStaticObjectVersion(static_object_version)
        static_objects = self.read_static_objects()

        timestamp = self.read_u32()

        mapping_version = self.read_byte()
        if mapping_version != MAPPING_VERSION:
            raise InvalidMappingVersion(mapping_version)
        mappings = self.read_mappings()

        timer_data_length = self.read_byte()
        if timer_data_length != TIMER_DATA_LENGTH:
            raise InvalidTimerDataLength(timer_data_length)
        node_timers = self.read_node_timers()

        return Block(
            version=version,
            flags=flags,
            lighting_complete=lighting_complete,
            timestamp=timestamp,
            mappings=mappings,
            node_data=node_data,
            node_meta=node_meta,
            static_objects=tuple(static_objects),
            node_timers=tuple(node_timers),
        )

    def _parse_zstd_block(self, version: int) -> Block:
        """
        Parse a zstd-era block (version 29).

        Layout of the decompressed payload:
        - 1 byte: flags
        - 2 bytes: lighting_complete
        - 4 bytes: timestamp
        - 1 byte: name-id mapping version
        - 2 bytes: mapping count, then (u16 id, u16-prefixed name) pairs
        - 1 byte: content_width
        - 1 byte: params_width
        - 16384 bytes: node data

        Node metadata, static objects and node timers follow the node data
        but are not decoded.
        """
        payload = BlockDataParser(self.read_zstd())

        flags = payload.read_byte()
        lighting_complete = payload.read_u16()
        timestamp = payload.read_u32()

        payload.read_byte()  # mapping version
        mappings = payload.read_mappings()

        payload.read_byte()  # content_width
        payload.read_byte()  # params_width
        node_data = payload.read_bytes(NODE_DATA_LENGTH)

        return Block(
            version=version,
            flags=flags,
            lighting_complete=lighting_complete,
            timestamp=timestamp,
            mappings=mappings,
            node_data=node_data,
        )


def decode_block(data: bytes) -> Block:
    """Decode a serialized map block"""
    return BlockDataParser(data).parse()

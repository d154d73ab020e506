"""Tests for the map block parser."""

import struct
import zlib

import pytest
import zstandard as zstd

from block_encoder import (
    encode_zlib_block,
    encode_zstd_block,
    encode_zstd_payload,
    make_node_data,
)
from luanti_world_parser.block_parser import BlockDataParser, decode_block
from luanti_world_parser.errors import (
    CorruptCompressedStream,
    DecodeError,
    InvalidContentWidth,
    InvalidMappingVersion,
    InvalidParamWidth,
    InvalidStaticObjectVersion,
    InvalidTimerDataLength,
    TruncatedInput,
    UnsupportedVersion,
)
from luanti_world_parser.models import NODE_DATA_LENGTH, NodeTimer, StaticObject


class TestBlockDataParserReads:
    """Tests for the primitive readers."""

    def test_read_byte(self):
        """Test reading single byte."""
        parser = BlockDataParser(bytes([0xFF]))
        assert parser.read_byte() == 255
        assert parser.pos == 1

    def test_read_u16(self):
        """Test reading big-endian unsigned short."""
        parser = BlockDataParser(struct.pack('>H', 1000))
        assert parser.read_u16() == 1000

    def test_read_u32(self):
        """Test reading big-endian unsigned int."""
        parser = BlockDataParser(struct.pack('>I', 0x12345678))
        assert parser.read_u32() == 0x12345678

    def test_read_i32_negative(self):
        """Test reading big-endian signed int."""
        parser = BlockDataParser(struct.pack('>i', -12345))
        assert parser.read_i32() == -12345

    def test_read_string(self):
        """Test reading u16 length-prefixed string."""
        parser = BlockDataParser(b'\x00\x0cdefault:dirt!')
        assert parser.read_string() == 'default:dirt'
        assert parser.remaining() == 1

    def test_read_string_invalid_utf8(self):
        """Test that invalid UTF-8 is replaced rather than rejected."""
        parser = BlockDataParser(b'\x00\x02\xff\xfe')
        assert parser.read_string() == '\ufffd\ufffd'

    def test_read_past_end(self):
        """Test that every reader is bounds-checked."""
        with pytest.raises(TruncatedInput):
            BlockDataParser(b'').read_byte()
        with pytest.raises(TruncatedInput):
            BlockDataParser(b'\x01').read_u16()
        with pytest.raises(TruncatedInput):
            BlockDataParser(b'\x01\x02\x03').read_u32()
        with pytest.raises(TruncatedInput):
            BlockDataParser(b'\x00\x05abc').read_string()

    def test_read_zlib_tracks_consumed_bytes(self):
        """Test that the cursor lands right after the compressed stream."""
        first = zlib.compress(b'hello world' * 10)
        second = zlib.compress(b'second')
        parser = BlockDataParser(first + second + b'\x2a')

        assert parser.read_zlib() == b'hello world' * 10
        assert parser.pos == len(first)
        assert parser.read_zlib() == b'second'
        assert parser.read_byte() == 0x2a
        assert parser.remaining() == 0

    def test_read_zlib_corrupt(self):
        """Test that garbage fails as a corrupt stream."""
        parser = BlockDataParser(b'\x00\x01\x02\x03\x04\x05')
        with pytest.raises(CorruptCompressedStream):
            parser.read_zlib()

    def test_read_zlib_truncated(self):
        """Test that a cut-off stream fails as truncated."""
        stream = zlib.compress(bytes(range(256)) * 4)
        parser = BlockDataParser(stream[:len(stream) // 2])
        with pytest.raises(TruncatedInput):
            parser.read_zlib()

    def test_read_zstd(self):
        """Test reading the rest of the buffer as zstd."""
        parser = BlockDataParser(b'\x01' + zstd.ZstdCompressor().compress(b'payload'))
        parser.read_byte()
        assert parser.read_zstd() == b'payload'
        assert parser.remaining() == 0


class TestLegacyBlocks:
    """Tests for zlib-era blocks (versions 25-28)."""

    @pytest.mark.parametrize("version", [25, 26, 27, 28])
    def test_round_trip(self, version):
        """Test that every field survives encoding and decoding."""
        node_data = make_node_data([1, 2, 3, 1])
        static_objects = (
            StaticObject(type=7, x=-1000, y=2000, z=-3, data=b'\x01\x02obj'),
            StaticObject(type=1, x=0, y=0, z=0, data=b''),
        )
        node_timers = (
            NodeTimer(position=4095, timeout=-5, elapsed=1200),
            NodeTimer(position=0, timeout=100, elapsed=0),
        )
        mappings = {1: 'default:stone', 2: 'default:dirt', 3: 'air'}
        lighting = 0xABCD if version >= 27 else 0

        data = encode_zlib_block(
            version=version,
            flags=0x0e,
            lighting_complete=lighting,
            node_data=node_data,
            node_meta=b'\x02\x00\x00',
            static_objects=static_objects,
            timestamp=0xDEADBEEF,
            mappings=mappings,
            node_timers=node_timers,
        )
        block = decode_block(data)

        assert block.version == version
        assert block.flags == 0x0e
        assert block.lighting_complete == lighting
        assert block.timestamp == 0xDEADBEEF
        assert block.mappings == mappings
        assert block.node_data == node_data
        assert block.node_meta == b'\x02\x00\x00'
        assert block.static_objects == static_objects
        assert block.node_timers == node_timers

    def test_lighting_complete_absent_before_27(self):
        """Test that version 26 has no lighting field and keeps the default."""
        block = decode_block(encode_zlib_block(version=26, flags=3))
        assert block.flags == 3
        assert block.lighting_complete == 0

    def test_invalid_content_width_before_compressed_data(self):
        """Test content width is rejected before the zlib stream is touched."""
        data = bytes([28, 0, 0xff, 0xff, 3, 2]) + b'not zlib at all'
        parser = BlockDataParser(data)
        with pytest.raises(InvalidContentWidth) as exc_info:
            parser.parse()
        assert exc_info.value.width == 3
        assert parser.pos == 5

    def test_invalid_param_width(self):
        """Test param width is rejected before the zlib stream is touched."""
        data = bytes([25, 0, 2, 1]) + b'not zlib at all'
        parser = BlockDataParser(data)
        with pytest.raises(InvalidParamWidth):
            parser.parse()
        assert parser.pos == 4

    def test_invalid_static_object_version(self):
        """Test static object version must be 0."""
        with pytest.raises(InvalidStaticObjectVersion):
            decode_block(encode_zlib_block(static_object_version=1))

    def test_invalid_mapping_version(self):
        """Test mapping version must be 0."""
        with pytest.raises(InvalidMappingVersion):
            decode_block(encode_zlib_block(mapping_version=2))

    def test_invalid_timer_data_length(self):
        """Test timer data length must be 10."""
        with pytest.raises(InvalidTimerDataLength) as exc_info:
            decode_block(encode_zlib_block(timer_data_length=8))
        assert exc_info.value.length == 8

    def test_truncated_tail(self):
        """Test a block cut off inside the timer table."""
        data = encode_zlib_block(node_timers=(NodeTimer(1, 2, 3),))
        with pytest.raises(TruncatedInput):
            decode_block(data[:-4])

    def test_short_node_data(self):
        """Test a node grid of the wrong size is rejected."""
        with pytest.raises(CorruptCompressedStream):
            decode_block(encode_zlib_block(node_data=b'\x00' * 100))

    def test_corrupt_node_stream(self):
        """Test garbage where the node stream should be."""
        data = bytes([28, 0, 0, 0, 2, 2]) + b'\xff' * 64
        with pytest.raises(CorruptCompressedStream):
            decode_block(data)


class TestModernBlocks:
    """Tests for zstd-era blocks (version 29)."""

    def test_decode(self):
        """Test decoding a version 29 block."""
        node_data = make_node_data([0, 1, 1])
        data = encode_zstd_block(
            flags=0x0a,
            lighting_complete=0xfffe,
            timestamp=123456,
            mappings={0: 'air', 1: 'default:stone'},
            node_data=node_data,
        )
        block = decode_block(data)

        assert block.version == 29
        assert block.flags == 0x0a
        assert block.lighting_complete == 0xfffe
        assert block.timestamp == 123456
        assert block.mappings == {0: 'air', 1: 'default:stone'}
        assert block.node_data == node_data
        assert block.node_meta == b''
        assert block.static_objects == ()
        assert block.node_timers == ()

    def test_trailing_structures_ignored(self):
        """Test bytes after the node grid are ignored."""
        block = decode_block(encode_zstd_block(trailing=b'\x02\x00\x00\x00\x00\x00\x0a\x00\x00'))
        assert len(block.node_data) == NODE_DATA_LENGTH

    def test_truncated_node_data(self):
        """Test a payload that ends inside the node grid."""
        payload = encode_zstd_payload()[:-10]
        data = b'\x1d' + zstd.ZstdCompressor().compress(payload)
        with pytest.raises(TruncatedInput):
            decode_block(data)

    def test_corrupt_stream(self):
        """Test garbage after the version byte."""
        with pytest.raises(CorruptCompressedStream):
            decode_block(b'\x1d' + b'\x00' * 32)

    def test_truncated_stream(self):
        """Test a zstd frame that is cut off."""
        data = encode_zstd_block(mappings={0: 'air'})
        with pytest.raises(DecodeError):
            decode_block(data[:len(data) // 2])


class TestDispatch:
    """Tests for version dispatch."""

    @pytest.mark.parametrize("version", [0, 24, 30, 255])
    def test_unsupported_version(self, version):
        """Test versions outside 25-29 fail without reading further."""
        parser = BlockDataParser(bytes([version]) + b'\x28\xb5\x2f\xfd' + b'\x00' * 16)
        with pytest.raises(UnsupportedVersion) as exc_info:
            parser.parse()
        assert exc_info.value.version == version
        assert parser.pos == 1

    def test_empty_buffer(self):
        """Test that an empty buffer is truncated input."""
        with pytest.raises(TruncatedInput):
            decode_block(b'')

    @pytest.mark.parametrize("version", [25, 26, 27, 28, 29])
    def test_node_data_length(self, version):
        """Test the node grid is always 16*16*16*4 bytes."""
        if version >= 29:
            data = encode_zstd_block(version=version)
        else:
            data = encode_zlib_block(version=version)
        assert len(decode_block(data).node_data) == 16 * 16 * 16 * 4

    def test_errors_are_value_errors(self):
        """Test decode errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            decode_block(b'\x01')

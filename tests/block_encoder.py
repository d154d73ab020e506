"""Test-only map block encoder."""

import sqlite3
import struct
import zlib
from pathlib import Path

import zstandard as zstd

from luanti_world_parser.models import BLOCK_VOLUME, Position


def make_node_data(content_ids=(), fill=0xFFFF):
    """Build a node grid whose first nodes carry content_ids, the rest fill"""
    ids = list(content_ids) + [fill] * (BLOCK_VOLUME - len(content_ids))
    param0 = struct.pack(f'>{BLOCK_VOLUME}H', *ids)
    return param0 + bytes(BLOCK_VOLUME) + bytes(BLOCK_VOLUME)


def encode_mappings(mappings):
    out = struct.pack('>H', len(mappings))
    for content_id, name in mappings.items():
        raw = name.encode('utf-8')
        out += struct.pack('>HH', content_id, len(raw)) + raw
    return out


def encode_zlib_block(
    version=28,
    flags=0,
    lighting_complete=0,
    node_data=None,
    node_meta=b"",
    static_objects=(),
    timestamp=0,
    mappings=None,
    node_timers=(),
    content_width=2,
    param_width=2,
    static_object_version=0,
    mapping_version=0,
    timer_data_length=10,
):
    """Serialize a block in the zlib-era layout (versions 25-28)"""
    if node_data is None:
        node_data = make_node_data()
    if mappings is None:
        mappings = {}

    out = bytes([version, flags])
    if version >= 27:
        out += struct.pack('>H', lighting_complete)
    out += bytes([content_width, param_width])
    out += zlib.compress(node_data)
    out += zlib.compress(node_meta)

    out += bytes([static_object_version])
    out += struct.pack('>H', len(static_objects))
    for obj in static_objects:
        out += struct.pack('>BiiiH', obj.type, obj.x, obj.y, obj.z, len(obj.data)) + obj.data

    out += struct.pack('>I', timestamp)
    out += bytes([mapping_version]) + encode_mappings(mappings)

    out += bytes([timer_data_length])
    out += struct.pack('>H', len(node_timers))
    for timer in node_timers:
        out += struct.pack('>Hii', timer.position, timer.timeout, timer.elapsed)
    return out


def encode_zstd_payload(
    flags=0,
    lighting_complete=0,
    timestamp=0,
    mappings=None,
    node_data=None,
    trailing=b"",
):
    if node_data is None:
        node_data = make_node_data()
    if mappings is None:
        mappings = {}

    out = bytes([flags]) + struct.pack('>HI', lighting_complete, timestamp)
    out += bytes([0]) + encode_mappings(mappings)
    out += bytes([2, 2]) + node_data
    return out + trailing


def encode_zstd_block(version=29, **fields):
    """Serialize a block in the zstd-era layout (version 29)"""
    return bytes([version]) + zstd.ZstdCompressor().compress(encode_zstd_payload(**fields))


def create_sqlite_world(path: Path, blocks=None) -> Path:
    """Create a world directory with a sqlite3 map holding blocks"""
    path.mkdir(parents=True, exist_ok=True)
    (path / "world.mt").write_text("gameid = minetest\nbackend = sqlite3\n", encoding='utf-8')
    conn = sqlite3.connect(str(path / "map.sqlite"))
    with conn:
        conn.execute("CREATE TABLE blocks (pos INT PRIMARY KEY, data BLOB)")
        for position, data in (blocks or {}).items():
            conn.execute("INSERT INTO blocks (pos, data) VALUES (?, ?)", (position.encode(), data))
    conn.close()
    return path


def simple_block(*names, version=28):
    """A block whose first nodes are the given content names, in order"""
    ids = {}
    for name in names:
        ids.setdefault(name, len(ids))
    node_data = make_node_data([ids[name] for name in names])
    mappings = {content_id: name for name, content_id in ids.items()}
    if version >= 29:
        return encode_zstd_block(version=version, mappings=mappings, node_data=node_data)
    return encode_zlib_block(version=version, mappings=mappings, node_data=node_data)


ORIGIN = Position(0, 0, 0)

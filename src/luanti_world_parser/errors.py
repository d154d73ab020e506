"""
Exceptions raised by the world parser.
"""


class WorldParserError(Exception):
    """Base class for all errors raised by this package"""


class DecodeError(WorldParserError, ValueError):
    """A map block could not be decoded"""


class UnsupportedVersion(DecodeError):
    def __init__(self, version: int):
        super().__init__(f"Unsupported map block version: {version}")
        self.version = version


class InvalidContentWidth(DecodeError):
    def __init__(self, width: int):
        super().__init__(f"Map block has invalid content width: {width}")
        self.width = width


class InvalidParamWidth(DecodeError):
    def __init__(self, width: int):
        super().__init__(f"Map block has invalid param width: {width}")
        self.width = width


class InvalidStaticObjectVersion(DecodeError):
    def __init__(self, version: int):
        super().__init__(f"Map block has invalid static object version: {version}")
        self.version = version


class InvalidMappingVersion(DecodeError):
    def __init__(self, version: int):
        super().__init__(f"Map block has invalid mapping version: {version}")
        self.version = version


class InvalidTimerDataLength(DecodeError):
    def __init__(self, length: int):
        super().__init__(f"Map block has invalid timer data length: {length}")
        self.length = length


class TruncatedInput(DecodeError):
    """Ran past the end of the buffer"""


class CorruptCompressedStream(DecodeError):
    """A zlib or zstd stream failed to decompress"""


class StorageError(WorldParserError):
    """The backing store failed (connectivity, query error)"""


class BlockConsumerError(WorldParserError):
    """
    Raised by a scan callback to reject a single block.

    Storage backends log and skip the block; the scan continues.
    """


class WorldError(WorldParserError):
    """The world directory or its metadata is unusable"""


class UnknownBackendError(WorldError):
    def __init__(self, backend: str):
        super().__init__(f"Unknown storage backend: {backend!r}")
        self.backend = backend


class ConfigError(WorldParserError):
    """A configuration file is malformed"""

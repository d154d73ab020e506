"""
World metadata (world.mt) parser.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from .errors import UnknownBackendError, WorldError

SUPPORTED_BACKENDS = ("sqlite3", "postgresql")


@dataclass
class WorldMetadata:
    """Settings read from a world.mt file"""
    backend: str
    pgsql_connection: str = ""


def parse_metadata_lines(text: str) -> Dict[str, str]:
    """
    Parse ``key = value`` lines.

    Blank lines, ``#`` comments and lines without ``=`` are ignored. Later
    keys override earlier ones.
    """
    variables: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#'):
            continue

        key, sep, value = line.partition('=')
        if not sep:
            continue
        variables[key.strip()] = value.strip()
    return variables


def read_metadata(path: Path) -> WorldMetadata:
    """
    Read a world.mt file.

    Raises:
        WorldError: if the file cannot be read or names no backend
        UnknownBackendError: if the backend is unsupported
    """
    try:
        text = Path(path).read_text(encoding='utf-8')
    except OSError as e:
        raise WorldError(f"Cannot read world metadata {path}: {e}") from e

    variables = parse_metadata_lines(text)
    backend = variables.get('backend')
    if backend is None:
        raise WorldError(f"World metadata {path} doesn't specify a backend")
    if backend not in SUPPORTED_BACKENDS:
        raise UnknownBackendError(backend)

    return WorldMetadata(
        backend=backend,
        pgsql_connection=variables.get('pgsql_connection', ''),
    )

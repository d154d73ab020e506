"""
Content-name list files.

A list is an HJSON object mapping one name to another, for example to fold
content names of removed mods into their replacements:

    {
      # old name: new name
      "moreores:mineral_tin": "default:stone_with_tin"
    }
"""

from pathlib import Path
from typing import Dict

import hjson

from .errors import ConfigError


def parse_list(path: Path) -> Dict[str, str]:
    """Read an HJSON name list"""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = hjson.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except hjson.HjsonDecodeError as e:
        raise ConfigError(f"Invalid HJSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected an object at the top level")

    for key, value in data.items():
        if not isinstance(value, str):
            raise ConfigError(f"{path}: value for {key!r} is not a string")

    return dict(data)

"""Core primitives for the ALICA messages transaction processor.

This module provides the foundational utilities used throughout the package:
- Cryptographic hashing (SHA-512, lowercase hex)
- YAML/JSON loading with consistent encoding
- Paths to bundled package data

Design principles:
- Pure functions where possible
- No global mutable state (every digest uses a fresh hasher)
"""

from __future__ import annotations

import hashlib
import json
import pathlib
import re
from typing import Any, Union

import yaml

# Package root, computed once at module load
PACKAGE_ROOT = pathlib.Path(__file__).resolve().parent
SCHEMAS_DIR = PACKAGE_ROOT / "schemas"

_HEX_PATTERN = re.compile(r"[a-f0-9]*")


def sha512_hex(data: Union[str, bytes]) -> str:
    """Compute SHA-512 of ``data``, returning the 128-char lowercase hex digest.

    Strings are hashed as their UTF-8 encoding.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha512(data).hexdigest()


def is_lower_hex(value: Any, length: int) -> bool:
    """Check if ``value`` is a lowercase hex string of exactly ``length`` chars."""
    return (
        isinstance(value, str)
        and len(value) == length
        and _HEX_PATTERN.fullmatch(value) is not None
    )


def load_yaml(path: pathlib.Path) -> Any:
    """Load YAML file with UTF-8 encoding."""
    return yaml.safe_load(pathlib.Path(path).read_text(encoding="utf-8"))


def load_json(path: pathlib.Path) -> Any:
    """Load JSON file with UTF-8 encoding."""
    return json.loads(pathlib.Path(path).read_text(encoding="utf-8"))

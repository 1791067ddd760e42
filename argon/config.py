# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Workspace configuration, read from an ``argon.toml`` manifest::

    lyp = "layers.lyp"   # KLayout layer properties, relative to the manifest
    unit = "1n"          # physical length of one coordinate unit
    db_unit = "1n"       # GDS database unit
    grid = 0.1           # manufacturing grid (in coordinate units)
"""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from public import public

from .core import ConfigError, R, ROUND_STEP
from .layout import GdsMap

MANIFEST_NAME = 'argon.toml'

public(MANIFEST_NAME=MANIFEST_NAME)

@public
@dataclass(frozen=True)
class Config:
    lyp: Optional[Path] = None
    unit: R = R('1n')
    db_unit: R = R('1n')
    grid: float = ROUND_STEP

    def gds_map(self) -> GdsMap:
        if self.lyp is None:
            raise ConfigError("No layer properties file (lyp) configured.")
        return GdsMap.from_lyp(self.lyp)

def _unit(data: dict, key: str, default: R) -> R:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ConfigError(f"{key!r} must be a string such as '1n', got {value!r}.")
    try:
        value = R(value)
    except (ValueError, ZeroDivisionError):
        raise ConfigError(f"Invalid value {value!r} for {key!r}.") from None
    if value <= 0:
        raise ConfigError(f"{key!r} must be positive.")
    return value

@public
def load_config(path) -> Config:
    """Reads and validates the manifest at path."""
    path = Path(path)
    try:
        with open(path, 'rb') as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e.strerror}.") from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from None

    unknown = set(data) - {'lyp', 'unit', 'db_unit', 'grid'}
    if unknown:
        raise ConfigError(f"Unknown key(s) in {path}: {', '.join(sorted(unknown))}.")

    lyp = data.get('lyp')
    if lyp is not None:
        if not isinstance(lyp, str):
            raise ConfigError(f"'lyp' must be a path string, got {lyp!r}.")
        lyp = path.parent / lyp

    grid = data.get('grid', ROUND_STEP)
    if not isinstance(grid, (int, float)) or isinstance(grid, bool) or grid <= 0:
        raise ConfigError(f"'grid' must be a positive number, got {grid!r}.")

    return Config(
        lyp=lyp,
        unit=_unit(data, 'unit', R('1n')),
        db_unit=_unit(data, 'db_unit', R('1n')),
        grid=float(grid),
    )

@public
def find_config(start='.') -> Optional[Path]:
    """
    Returns the path of the nearest argon.toml in start or one of its
    parent directories, or None.
    """
    start = Path(start).resolve()
    if start.is_file():
        start = start.parent
    for d in (start, *start.parents):
        candidate = d / MANIFEST_NAME
        if candidate.is_file():
            return candidate
    return None

# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Reader for KLayout layer properties files (.lyp).

See also: https://www.klayout.de/doc/manual/layer_source.html
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Iterator, Optional
from public import public

from ..core import GdsExportError

#: layer/datatype, optionally followed by @cellview index.
SOURCE_RE = re.compile(r"(\d*)/(\d*)(@\d*)?")

@public
@dataclass(frozen=True)
class GdsLayerSpec:
    layer: int
    data_type: int

@public
@dataclass(frozen=True)
class LayerProperty:
    name: str
    source: str
    fill_color: Optional[str] = None
    frame_color: Optional[str] = None

    def gds_layer_spec(self) -> GdsLayerSpec:
        m = SOURCE_RE.search(self.source)
        if m is None or not m.group(1) or not m.group(2):
            raise GdsExportError(f"Cannot parse layer source {self.source!r} of layer {self.name!r}.")
        return GdsLayerSpec(int(m.group(1)), int(m.group(2)))

def _text(elem, tag) -> Optional[str]:
    child = elem.find(tag)
    if child is None or child.text is None:
        return None
    return child.text.strip()

@public
def read_lyp(filename) -> list[LayerProperty]:
    """
    Reads all layer entries of a .lyp file, including entries nested in
    layer groups. Entries without name are skipped.
    """
    try:
        tree = ET.parse(filename)
    except ET.ParseError as e:
        raise GdsExportError(f"Cannot parse layer properties file {filename}: {e}") from None

    out = []
    for props in tree.getroot().iter():
        if props.tag not in ('properties', 'group-members'):
            continue
        name = _text(props, 'name')
        source = _text(props, 'source')
        if not name or source is None:
            continue
        out.append(LayerProperty(
            name=name,
            source=source,
            fill_color=_text(props, 'fill-color'),
            frame_color=_text(props, 'frame-color'),
        ))
    return out

@public
class GdsMap:
    """Maps layer names (as used in Argon programs) to GDS layer/datatype pairs."""

    def __init__(self, layers: dict[str, GdsLayerSpec] = None):
        self.layers = dict(layers or {})

    def __repr__(self):
        return f"GdsMap({self.layers!r})"

    def __getitem__(self, name: str) -> GdsLayerSpec:
        try:
            return self.layers[name]
        except KeyError:
            raise GdsExportError(f"Layer {name!r} is not in the GDS layer map.") from None

    def __contains__(self, name: str) -> bool:
        return name in self.layers

    def __iter__(self) -> Iterator[str]:
        return iter(self.layers)

    def __len__(self):
        return len(self.layers)

    @classmethod
    def from_lyp(cls, filename) -> 'GdsMap':
        # Group entries with wildcard sources carry no layer of their own.
        return cls({p.name: p.gds_layer_spec() for p in read_lyp(filename) if '*' not in p.source})

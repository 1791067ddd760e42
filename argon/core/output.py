# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Compile output: solved geometry of all cells reachable from the compiled
top cell. This is what consumers (hierarchy queries, GDS export, JSON
output) work with; none of it references solver variables.
"""

from dataclasses import dataclass, field
from typing import Optional, Union
from public import public

from .errors import ArgonError, Span
from .geoprim import D4, Rect4F
from .values import CellId, ObjectId, ScopeId

def _span_dict(span):
    return None if span is None else span.to_dict()

def _param_value(value):
    # Enum values are serialized as "Enum::Variant".
    if isinstance(value, (bool, int, float, str)):
        return value
    return str(value)

@public
@dataclass(frozen=True)
class SolvedRect:
    """Rectangle with solved coordinates. Unsolved coordinates are None."""
    layer: Optional[str]
    x0: Optional[float]
    y0: Optional[float]
    x1: Optional[float]
    y1: Optional[float]
    span: Optional[Span] = None

    @property
    def construction(self) -> bool:
        """Rectangles without layer only serve as construction aids."""
        return self.layer is None

    def is_solved(self) -> bool:
        return None not in (self.x0, self.y0, self.x1, self.y1)

    def rect4(self) -> Optional[Rect4F]:
        """Returns the rectangle as Rect4F, or None if unsolved or invalid."""
        if not self.is_solved() or self.x0 > self.x1 or self.y0 > self.y1:
            return None
        return Rect4F(self.x0, self.y0, self.x1, self.y1)

    def to_dict(self) -> dict:
        return {'type': 'rect', 'layer': self.layer,
            'x0': self.x0, 'y0': self.y0, 'x1': self.x1, 'y1': self.y1,
            'span': _span_dict(self.span)}

@public
@dataclass(frozen=True)
class SolvedInstance:
    cell: CellId
    x: Optional[float]
    y: Optional[float]
    rot: int = 0 #: Counterclockwise quarter turns.
    reflect: bool = False #: Mirror along the X axis (applied after rotation).
    span: Optional[Span] = None

    @property
    def orientation(self) -> D4:
        return D4.from_placement(self.rot, self.reflect)

    def is_solved(self) -> bool:
        return self.x is not None and self.y is not None

    def to_dict(self) -> dict:
        return {'type': 'instance', 'cell': self.cell, 'x': self.x, 'y': self.y,
            'rot': self.rot, 'reflect': self.reflect, 'span': _span_dict(self.span)}

@public
@dataclass(frozen=True)
class SolvedText:
    layer: Optional[str]
    text: str
    x: Optional[float]
    y: Optional[float]
    span: Optional[Span] = None

    def is_solved(self) -> bool:
        return self.x is not None and self.y is not None

    def to_dict(self) -> dict:
        return {'type': 'text', 'layer': self.layer, 'text': self.text,
            'x': self.x, 'y': self.y, 'span': _span_dict(self.span)}

@public
@dataclass(frozen=True)
class SolvedDimension:
    """Dimension annotation (p - n = value). Not part of the exported layout."""
    p: Optional[float]
    n: Optional[float]
    value: Optional[float]
    coord: Optional[float] = None
    pstop: Optional[float] = None
    nstop: Optional[float] = None
    horiz: bool = True
    span: Optional[Span] = None

    def is_solved(self) -> bool:
        return None not in (self.p, self.n, self.value)

    def to_dict(self) -> dict:
        return {'type': 'dimension', 'p': self.p, 'n': self.n, 'value': self.value,
            'coord': self.coord, 'pstop': self.pstop, 'nstop': self.nstop,
            'horiz': self.horiz, 'span': _span_dict(self.span)}

SolvedValue = Union[SolvedRect, SolvedInstance, SolvedText, SolvedDimension]
public(SolvedValue=SolvedValue)

@public
@dataclass
class ScopeInfo:
    name: str
    span: Optional[Span] = None
    parent: Optional[ScopeId] = None
    children: list[ScopeId] = field(default_factory=list)
    emit: list[ObjectId] = field(default_factory=list) #: Objects emitted directly into this scope, in order.

    def to_dict(self) -> dict:
        return {'name': self.name, 'span': _span_dict(self.span), 'parent': self.parent,
            'children': list(self.children), 'emit': list(self.emit)}

@public
@dataclass
class CompiledCell:
    name: str
    params: dict
    scopes: dict[ScopeId, ScopeInfo]
    objects: dict[ObjectId, SolvedValue]
    root: ScopeId
    #: Top-level let bindings of rects and instances, accessible as fields of instances.
    fields: dict[str, ObjectId] = field(default_factory=dict)
    warnings: list[ArgonError] = field(default_factory=list)

    def rects(self) -> list[SolvedRect]:
        return [o for o in self.objects.values() if isinstance(o, SolvedRect)]

    def instances(self) -> list[SolvedInstance]:
        return [o for o in self.objects.values() if isinstance(o, SolvedInstance)]

    def texts(self) -> list[SolvedText]:
        return [o for o in self.objects.values() if isinstance(o, SolvedText)]

    def dimensions(self) -> list[SolvedDimension]:
        return [o for o in self.objects.values() if isinstance(o, SolvedDimension)]

    def field(self, name: str) -> SolvedValue:
        return self.objects[self.fields[name]]

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'params': {k: _param_value(v) for k, v in self.params.items()},
            'root': self.root,
            'scopes': {str(k): v.to_dict() for k, v in self.scopes.items()},
            'objects': {str(k): v.to_dict() for k, v in self.objects.items()},
            'fields': dict(self.fields),
            'warnings': [w.to_dict() for w in self.warnings],
        }

@public
@dataclass
class CompiledData:
    cells: dict[CellId, CompiledCell]
    top: CellId

    @property
    def top_cell(self) -> CompiledCell:
        return self.cells[self.top]

    def to_dict(self) -> dict:
        return {'top': self.top, 'cells': {str(k): v.to_dict() for k, v in self.cells.items()}}

@public
class CompileOutput:
    """Valid or ExecErrors."""

    def is_valid(self) -> bool:
        return isinstance(self, Valid)

    @property
    def data(self) -> Optional[CompiledData]:
        raise NotImplementedError()

@public
@dataclass
class Valid(CompileOutput):
    output: CompiledData

    @property
    def data(self) -> CompiledData:
        return self.output

    def to_dict(self) -> dict:
        return {'status': 'valid', 'output': self.output.to_dict()}

@public
@dataclass
class ExecErrors(CompileOutput):
    """Compilation failed. output holds whatever did resolve, if anything."""
    errors: list[ArgonError]
    output: Optional[CompiledData] = None

    @property
    def data(self) -> Optional[CompiledData]:
        return self.output

    def to_dict(self) -> dict:
        return {
            'status': 'errors',
            'errors': [e.to_dict() for e in self.errors],
            'output': None if self.output is None else self.output.to_dict(),
        }

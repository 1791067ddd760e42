# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Values produced while evaluating a cell.

Numbers are always :class:`LinearExpr` (constants are expressions without
variables). Booleans and strings are plain Python values, the unit value is
None.
"""

from dataclasses import dataclass
from typing import Optional
from public import public

from .errors import Span
from .geoprim import D4
from .solver import LinearExpr

CellId = int
ObjectId = int
ScopeId = int

public(CellId=CellId, ObjectId=ObjectId, ScopeId=ScopeId)

@public
@dataclass(frozen=True)
class EnumVal:
    enum: str
    variant: str

    def __str__(self):
        return f"{self.enum}::{self.variant}"

@public
@dataclass(frozen=True)
class RectVal:
    """
    Rectangle whose coordinates are linear expressions over the variables
    of the current cell. oid is None for rectangles derived through
    instance field access, which are not emitted objects themselves.
    """
    layer: Optional[str]
    x0: LinearExpr
    y0: LinearExpr
    x1: LinearExpr
    y1: LinearExpr
    span: Optional[Span] = None
    oid: Optional[ObjectId] = None

    def field(self, name: str) -> Optional[LinearExpr]:
        if name in ('x0', 'y0', 'x1', 'y1'):
            return getattr(self, name)
        elif name == 'w':
            return self.x1 - self.x0
        elif name == 'h':
            return self.y1 - self.y0
        return None

    def variables(self):
        return self.x0.variables() | self.y0.variables() | self.x1.variables() | self.y1.variables()

@public
@dataclass(frozen=True)
class CellRef:
    """Compiled cell that has not been placed (yet)."""
    cell: CellId

@public
@dataclass(frozen=True)
class InstVal:
    """
    Placed cell. d4 is the orientation of the instanced cell relative to
    the current cell, (x, y) the position of its origin.
    """
    cell: CellId
    x: LinearExpr
    y: LinearExpr
    d4: D4 = D4.R0
    rot: int = 0
    reflect: bool = False
    span: Optional[Span] = None
    oid: Optional[ObjectId] = None

    def transform(self, x, y):
        """Maps a point of the instanced cell into the current cell."""
        tx, ty = self.d4.apply(x, y)
        return self.x + tx, self.y + ty

    def transform_rect(self, x0, y0, x1, y1):
        x0, y0, x1, y1 = self.d4.apply_rect(x0, y0, x1, y1)
        return self.x + x0, self.y + y0, self.x + x1, self.y + y1

@public
@dataclass(frozen=True)
class TextVal:
    layer: Optional[str]
    text: str
    x: LinearExpr
    y: LinearExpr
    span: Optional[Span] = None
    oid: Optional[ObjectId] = None

@public
@dataclass(frozen=True)
class DimensionVal:
    p: LinearExpr
    n: LinearExpr
    value: LinearExpr
    coord: Optional[LinearExpr] = None
    pstop: Optional[LinearExpr] = None
    nstop: Optional[LinearExpr] = None
    horiz: bool = True
    span: Optional[Span] = None
    oid: Optional[ObjectId] = None

@public
def kind_of(value) -> str:
    """Name of the kind of a value, as used in diagnostics."""
    if value is None:
        return "none"
    elif isinstance(value, bool):
        return "Bool"
    elif isinstance(value, str):
        return "String"
    elif isinstance(value, LinearExpr):
        return "Float"
    elif isinstance(value, EnumVal):
        return value.enum
    elif isinstance(value, RectVal):
        return "Rect"
    elif isinstance(value, InstVal):
        return "Inst"
    elif isinstance(value, CellRef):
        return "Cell"
    else:
        return type(value).__name__

# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Addressing and bounding boxes of scopes across the cell hierarchy of a
compile output.
"""

from dataclasses import dataclass
from typing import Iterator, Optional
from public import public

from .errors import HierarchyError
from .geoprim import Rect4F, TD4F, bbox_union
from .output import CompiledData, SolvedRect, SolvedInstance
from .values import CellId, ScopeId

ScopePath = tuple[str, ...]
public(ScopePath=ScopePath)

@public
@dataclass(frozen=True, order=True)
class ScopeAddress:
    cell: CellId
    scope: ScopeId

@public
@dataclass(frozen=True)
class WalkItem:
    address: ScopeAddress
    transform: TD4F #: Maps coordinates of the scope's cell to the walk's top cell.
    depth: int

@public
class Hierarchy:
    """
    Read-only view on a :class:`CompiledData`. Bounding boxes are computed
    bottom-up and memoized per scope address, so a cell instanced many times
    is only visited once.
    """

    def __init__(self, data: CompiledData):
        self.data = data
        self._bbox: dict[ScopeAddress, Optional[Rect4F]] = {}
        self._active: set[ScopeAddress] = set()

    def root(self, cell: Optional[CellId] = None) -> ScopeAddress:
        if cell is None:
            cell = self.data.top
        return ScopeAddress(cell, self.cell(cell).root)

    def cell(self, cell: CellId):
        try:
            return self.data.cells[cell]
        except KeyError:
            raise HierarchyError(f"Unknown cell id {cell!r}.") from None

    def scope(self, addr: ScopeAddress):
        try:
            return self.cell(addr.cell).scopes[addr.scope]
        except KeyError:
            raise HierarchyError(f"Unknown scope {addr!r}.") from None

    def parent(self, addr: ScopeAddress) -> Optional[ScopeAddress]:
        parent = self.scope(addr).parent
        if parent is None:
            return None
        return ScopeAddress(addr.cell, parent)

    def path(self, addr: ScopeAddress) -> ScopePath:
        """Names of the scopes leading from the cell root to addr. The root itself has path ()."""
        names = []
        while True:
            info = self.scope(addr)
            if info.parent is None:
                break
            names.append(info.name)
            addr = ScopeAddress(addr.cell, info.parent)
        return tuple(reversed(names))

    def address_of(self, path: ScopePath, cell: Optional[CellId] = None) -> ScopeAddress:
        """Inverse of :meth:`path`."""
        addr = self.root(cell)
        for name in path:
            for child in self.scope(addr).children:
                if self.cell(addr.cell).scopes[child].name == name:
                    addr = ScopeAddress(addr.cell, child)
                    break
            else:
                raise HierarchyError(f"No scope {name!r} in {self.path(addr)!r} of cell {addr.cell!r}.")
        return addr

    def bbox(self, addr: ScopeAddress) -> Optional[Rect4F]:
        """
        Bounding box of all layered rectangles in the scope, its child
        scopes and instances placed in them. None if there are none.
        Unsolved objects do not contribute.
        """
        try:
            return self._bbox[addr]
        except KeyError:
            pass
        if addr in self._active:
            raise HierarchyError(f"Cyclic hierarchy at {addr!r}.")
        self._active.add(addr)
        try:
            cell = self.cell(addr.cell)
            info = self.scope(addr)
            bbox = None
            for oid in info.emit:
                obj = cell.objects[oid]
                if isinstance(obj, SolvedRect):
                    if obj.construction:
                        continue
                    bbox = bbox_union(bbox, obj.rect4())
                elif isinstance(obj, SolvedInstance):
                    if not obj.is_solved():
                        continue
                    sub = self.bbox(self.root(obj.cell))
                    if sub is not None:
                        t = TD4F.placement(obj.x, obj.y, obj.rot, obj.reflect)
                        bbox = bbox_union(bbox, t * sub)
            for child in info.children:
                bbox = bbox_union(bbox, self.bbox(ScopeAddress(addr.cell, child)))
        finally:
            self._active.discard(addr)
        self._bbox[addr] = bbox
        return bbox

    def cell_bbox(self, cell: Optional[CellId] = None) -> Optional[Rect4F]:
        return self.bbox(self.root(cell))

    def walk(self, cell: Optional[CellId] = None) -> Iterator[WalkItem]:
        """
        Top-down traversal of all scopes reachable from the root of cell
        (default: top cell), descending into instances. Yields every scope
        once per instance path.
        """
        stack = []

        def visit(addr, transform, depth):
            yield WalkItem(addr, transform, depth)
            cell = self.cell(addr.cell)
            info = self.scope(addr)
            for oid in info.emit:
                obj = cell.objects[oid]
                if not isinstance(obj, SolvedInstance) or not obj.is_solved():
                    continue
                if obj.cell in stack:
                    raise HierarchyError(f"Cell {obj.cell!r} instantiates itself.")
                stack.append(obj.cell)
                t = transform * TD4F.placement(obj.x, obj.y, obj.rot, obj.reflect)
                yield from visit(self.root(obj.cell), t, depth + 1)
                stack.pop()
            for child in info.children:
                yield from visit(ScopeAddress(addr.cell, child), transform, depth + 1)

        root = self.root(cell)
        stack.append(root.cell)
        yield from visit(root, TD4F(), 0)

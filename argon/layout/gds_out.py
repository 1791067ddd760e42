# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

import io
import logging
from typing import IO, Optional
from public import public
from gdsii.library import Library
from gdsii.structure import Structure
from gdsii.record import Record
import gdsii.elements as elements
from gdsii import tags

from ..core import *
from ..core.solver import round_to_grid
from .lyp import GdsMap

logger = logging.getLogger(__name__)

def d4_to_gds(d4: D4) -> tuple[float,int]:
    return {
        D4.R0: (0.0, 0),
        D4.R90: (90.0, 0),
        D4.R180: (180.0, 0),
        D4.R270: (270.0, 0),
        D4.MX: (0.0, (1<<15)),
        D4.MX90: (90.0, (1<<15)),
        D4.MY: (180.0, (1<<15)),
        D4.MY90: (270.0, (1<<15)),
    }[d4]

class GdsGenerator:
    """
    Converts the cells of a :class:`CompiledData` into GDS structures. One
    structure is created per compiled cell reachable from the requested
    cell, no matter how often it is instanced.
    """

    def __init__(self, data: CompiledData, gds_map: GdsMap, directory: Directory, unit: R, db_unit: R):
        self.data = data
        self.gds_map = gds_map
        self.directory = directory
        self.scale = float(unit / db_unit)
        self.lib = Library(
            version=3,
            name=b'TOP',
            physical_unit=float(db_unit),
            logical_unit=float(db_unit / R('1u')),
        )

    def coord(self, x: float) -> int:
        # Half away from zero.
        return int(round_to_grid(x * self.scale, 1.0))

    def point(self, x: float, y: float) -> tuple[int, int]:
        return self.coord(x), self.coord(y)

    def struct_name(self, cell_id: CellId) -> bytes:
        cell = self.data.cells[cell_id]
        return self.directory.name_cell(cell_id, cell.name).encode('ascii')

    def cell_to_struc(self, cell_id: CellId) -> set[CellId]:
        cell = self.data.cells[cell_id]
        struc = Structure(name=self.struct_name(cell_id))
        cells_want = set()

        for obj in cell.objects.values():
            if isinstance(obj, SolvedRect):
                if obj.construction:
                    continue
                if not obj.is_solved():
                    raise GdsExportError(f"Unsolved rect in cell {cell.name!r}.", obj.span)
                spec = self.gds_map[obj.layer]
                p0 = self.point(obj.x0, obj.y0)
                p1 = self.point(obj.x1, obj.y1)
                struc.append(elements.Boundary(
                    layer=spec.layer,
                    data_type=spec.data_type,
                    xy=[p0, (p0[0], p1[1]), p1, (p1[0], p0[1]), p0],
                ))
            elif isinstance(obj, SolvedText):
                if not obj.is_solved():
                    raise GdsExportError(f"Unsolved text in cell {cell.name!r}.", obj.span)
                spec = self.gds_map[obj.layer]
                struc.append(elements.Text(
                    layer=spec.layer,
                    text_type=spec.data_type,
                    xy=[self.point(obj.x, obj.y)],
                    string=obj.text.encode('ascii'),
                ))
            elif isinstance(obj, SolvedInstance):
                if not obj.is_solved():
                    raise GdsExportError(f"Unsolved instance in cell {cell.name!r}.", obj.span)
                cells_want.add(obj.cell)
                e = elements.SRef(
                    struct_name=self.struct_name(obj.cell),
                    xy=[self.point(obj.x, obj.y)],
                )
                e.angle, e.strans = d4_to_gds(obj.orientation)
                struc.append(e)
            # Dimensions are annotations only.

        logger.debug("GDS structure %s: %d elements.", struc.name, len(struc))
        self.lib.append(struc)
        return cells_want

    def add_cell(self, cell_id: CellId):
        cells_want = {cell_id}
        cells_have = set()
        cell_next = cell_id
        while True:
            want = self.cell_to_struc(cell_next)

            cells_have.add(cell_next)
            cells_want |= want

            try:
                cell_next = min(cells_want - cells_have)
            except ValueError:
                break

    def save(self, file: IO[bytes]):
        self.lib.sort(key=lambda e:e.name)
        self.lib.save(file)

@public
def write_gds(output: CompileOutput, file: IO[bytes], gds_map: GdsMap,
        unit: R = R('1n'), db_unit: R = R('1n'), allow_partial: bool = False,
        directory: Optional[Directory] = None):
    """
    Writes the compile output as GDS binary data to file-like object 'file'.

    Args:
        output: Result of :func:`compile`.
        gds_map: Layer name to GDS layer mapping.
        unit: Physical length of one coordinate unit.
        db_unit: GDS database unit. Coordinates are rounded to it.
        allow_partial: Export the partial output of an erroneous compile.
            Unsolved objects are an error nevertheless.
        directory: Used for naming the GDS structures.
    """
    if not output.is_valid() and not allow_partial:
        raise GdsExportError(f"Cannot export compile output with {len(output.errors)} error(s).")
    data = output.data
    if data is None:
        raise GdsExportError("Compile output contains no layout.")

    if directory is None:
        directory = Directory()

    g = GdsGenerator(data, gds_map, directory, unit, db_unit)
    g.add_cell(data.top)
    g.save(file)

@public
def gds_str(file: IO[bytes]) -> str:
    """
    Reads GDS data from file-like object 'file' and returns text
    representation. Used mainly for testing.

    Hides modification and access times.
    """
    lines = []
    level = 0
    indent = '  '
    for r in Record.iterate(file):
        data = r.data
        if r.tag in (tags.ENDLIB, tags.ENDSTR, tags.ENDEXTN, tags.ENDEL):
            level -= 1

        if isinstance(data, bytes):
            data = data.decode('ascii')
        if isinstance(data, tuple) and len(data) == 1:
            data = data[0]
        if data is None or r.tag in (tags.BGNSTR, tags.BGNLIB):
            # hide data of BGNSTR and BGNLIB, which are modification/access times.
            lines.append(f"{level*indent}{r.tag_name}")
        else:
            lines.append(f"{level*indent}{r.tag_name}: {data!r}")

        if r.tag in (tags.BGNLIB, tags.BGNSTR, tags.BGNEXTN, tags.PATH, tags.BOX, tags.SREF, tags.AREF, tags.TEXT, tags.BOUNDARY, tags.NODE):
            level += 1
    return '\n'.join(lines)

@public
def gds_str_from_file(fn: str) -> str:
    """
    Opens given GDS filename and returns text representation.
    """
    with open(fn, 'rb') as f:
        return gds_str(f)

@public
def gds_str_from_output(output: CompileOutput, gds_map: GdsMap, **kwargs) -> str:
    """
    Converts given compile output into GDS data (using write_gds) and returns
    text representation. Used mainly for testing.
    """
    gds_out = io.BytesIO()
    write_gds(output, gds_out, gds_map, **kwargs)
    gds_out.seek(0)
    return gds_str(gds_out)

# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

import pytest
from argon.core import *

src = """
cell pad(w: Float) {
    let outline = rect(x0=-100, y0=-100, x1=100, y1=100);
    let m1 = rect(Layer::Met1, x0=0, y0=0, x1=w, y1=w);
}

cell top() {
    rect(Layer::Met1, x0=-5, y0=0, x1=5, y1=10);
    inst(pad(10), x=0, y=0);
    {
        if true {
            inst(pad(10), x=50, y=50, rot=1);
        }
    }
}
"""

@pytest.fixture
def hier(compile_valid):
    return Hierarchy(compile_valid(src))

def test_bbox(hier):
    pad = hier.root(1)
    assert hier.data.cells[1].name == 'pad'
    # The construction rectangle does not count:
    assert hier.bbox(pad) == Rect4F(0, 0, 10, 10)
    assert hier.cell_bbox() == Rect4F(-5, 0, 50, 60)
    assert hier.bbox(hier.address_of(('block',))) == Rect4F(40, 50, 50, 60)

def test_paths(hier):
    root = hier.root()
    assert root == ScopeAddress(0, 0)
    assert hier.path(root) == ()
    assert hier.parent(root) is None

    addr = hier.address_of(('block', 'if'))
    assert hier.path(addr) == ('block', 'if')
    assert hier.path(hier.parent(addr)) == ('block',)
    assert hier.scope(addr).name == 'if'

    with pytest.raises(HierarchyError, match=r"No scope 'else'"):
        hier.address_of(('block', 'else'))
    with pytest.raises(HierarchyError, match=r"Unknown cell id 7"):
        hier.root(7)

def test_walk(hier):
    items = list(hier.walk())
    assert [(i.address.cell, hier.path(i.address), i.depth) for i in items] == [
        (0, (), 0),
        (1, (), 1),
        (0, ('block',), 1),
        (0, ('block', 'if'), 2),
        (1, (), 3),
    ]
    assert items[1].transform == TD4F()
    assert items[-1].transform == TD4F(Vec2F(50, 50), D4.R90)
    assert items[-1].transform * Rect4F(0, 0, 10, 10) == Rect4F(40, 50, 50, 60)

def test_walk_sub_cell(hier):
    items = list(hier.walk(1))
    assert [(i.address, i.depth) for i in items] == [(ScopeAddress(1, 0), 0)]

def test_unsolved_objects_are_skipped(compile_src):
    output = compile_src("""
    cell top() {
        rect(Layer::Met1, x0=0, y0=0, x1=10, y1=10);
        rect(Layer::Met1, x0=0, y0=0);
    }
    """)
    assert not output.is_valid()
    assert Hierarchy(output.data).cell_bbox() == Rect4F(0, 0, 10, 10)

def test_empty_cell(compile_valid):
    assert Hierarchy(compile_valid("cell top() { }")).cell_bbox() is None

def self_instancing_data():
    cell = CompiledCell(
        name='a',
        params={},
        scopes={0: ScopeInfo('a', emit=[0])},
        objects={0: SolvedInstance(0, 0.0, 0.0)},
        root=0,
    )
    return CompiledData({0: cell}, 0)

def test_cycle():
    hier = Hierarchy(self_instancing_data())
    with pytest.raises(HierarchyError, match=r"Cyclic hierarchy"):
        hier.cell_bbox()
    with pytest.raises(HierarchyError, match=r"instantiates itself"):
        list(hier.walk())

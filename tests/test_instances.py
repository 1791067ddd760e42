# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

import pytest
from argon.core import *

pad_src = """
cell pad(w: Float) {
    let m1 = rect(Layer::Met1, x0=0, y0=0, x1=w, y1=w / 2);
}
"""

def coords(obj):
    return (obj.x0, obj.y0, obj.x1, obj.y1)

def test_placement(compile_valid):
    data = compile_valid(pad_src + """
    cell top() {
        let a = inst(pad(40), x=0, y=0);
        let b = inst(pad(40), x=100, y=0, rot=1);
        let c = inst(pad(40), x=a.m1.x1 + 10, y=0, reflect=true);
        let rb = rect(Layer::Met2, x0=b.m1.x0, y0=b.m1.y0, x1=b.m1.x1, y1=b.m1.y1);
        let rc = rect(Layer::Met2, x0=c.m1.x0, y0=c.m1.y0, x1=c.m1.x1, y1=c.m1.y1);
    }
    """)
    top = data.top_cell

    # pad(40) is compiled once and instanced three times:
    assert len(data.cells) == 2
    assert data.top == 0
    pad = data.cells[1]
    assert pad.name == 'pad'
    assert pad.params == {'w': 40.0}
    assert coords(pad.field('m1')) == (0, 0, 40, 20)

    a, b, c = (top.field(n) for n in 'abc')
    assert (a.cell, a.x, a.y, a.rot, a.reflect) == (1, 0, 0, 0, False)
    assert (b.cell, b.x, b.y, b.rot, b.reflect) == (1, 100, 0, 1, False)
    assert (c.cell, c.x, c.y, c.rot, c.reflect) == (1, 50, 0, 0, True)
    assert b.orientation == D4.R90
    assert c.orientation == D4.MX

    assert coords(top.field('rb')) == (80, 0, 100, 40)
    assert coords(top.field('rc')) == (50, -20, 90, 0)
    assert len(top.instances()) == 3

def test_nested_fields(compile_valid):
    top = compile_valid(pad_src + """
    cell pair() {
        let left = inst(pad(10), x=0, y=0);
        let right = inst(pad(10), x=20, y=0);
    }
    cell top() {
        let p = inst(pair(), x=100, y=100, rot=2);
        let r = rect(Layer::Met2, x0=p.right.m1.x0, y0=p.right.m1.y0, x1=p.right.m1.x1, y1=p.right.m1.y1);
    }
    """).top_cell
    assert coords(top.field('r')) == (70, 95, 80, 100)

def test_position_from_field_constraint(compile_valid):
    top = compile_valid(pad_src + """
    cell top() {
        let a = inst(pad(40));
        eq(a.m1.x1, 100);
        eq(a.m1.y0, 10);
    }
    """).top_cell
    a = top.field('a')
    assert (a.x, a.y) == (60, 10)

def test_cell_ids_in_call_order(compile_valid):
    data = compile_valid(pad_src + """
    cell top() {
        inst(pad(20), x=0, y=0);
        inst(pad(10), x=0, y=0);
        inst(pad(20), x=50, y=0);
    }
    """)
    assert {i: (c.name, c.params['w'] if c.params else None) for i, c in data.cells.items()} == {
        0: ('top', None),
        1: ('pad', 20.0),
        2: ('pad', 10.0),
    }
    assert [i.cell for i in data.top_cell.instances()] == [1, 2, 1]

def test_int_parameter_from_expression(compile_valid):
    data = compile_valid("""
    cell row(n: Int) { rect(Layer::Met1, x0=0, y0=0, x1=n, y1=1); }
    cell top() { inst(row(6 / 2), x=0, y=0); }
    """)
    assert data.cells[1].params == {'n': 3}

def test_unplaced_cell_reference(compile_valid):
    data = compile_valid(pad_src + """
    cell top() {
        let p = pad(10);
    }
    """)
    # A cell is compiled when called, but only placed with inst():
    assert len(data.cells) == 2
    assert data.top_cell.instances() == []
    assert data.top_cell.fields == {}

@pytest.mark.parametrize('body, error, match', [
    ("inst(5);", EvalTypeError, r"Expected Cell as instance master, got Float"),
    ("eq(inst(pad(10), x=0, y=0).nope, 1);", EvalTypeError, r"Cell 'pad' has no field 'nope'"),
    ("inst(pad(true));", EvalTypeError, r"Expected Float as parameter 'w', got Bool"),
    ("inst(row(1.5));", EvalTypeError, r"Expected integer as parameter 'n'"),
    ("inst(pad(10), rot=true);", EvalTypeError, r"Expected number as rot"),
    ("inst(pad(10), reflect=1);", EvalTypeError, r"Expected Bool as reflect"),
    ("inst(pad(10), rot=1e400);", EvalTypeError, r"Expected integer as rot, got inf"),
    ("inst(row(-1e400));", EvalTypeError, r"Expected integer as parameter .n., got -inf"),
    ("eq(inst(loose(), x=0, y=0).m1.x0, 1);", UnresolvedValueError, r"Field 'm1' of cell 'loose' is not fully solved"),
])
def test_instance_errors(compile_src, body, error, match):
    output = compile_src(pad_src + f"""
    cell row(n: Int) {{ }}
    cell loose() {{ let m1 = rect(Layer::Met1); }}
    cell top() {{ {body} }}
    """)
    assert not output.is_valid()
    err = next(e for e in output.errors if isinstance(e, EvalError))
    assert type(err) is error
    with pytest.raises(error, match=match):
        raise err

def test_sub_cell_errors(compile_src):
    output = compile_src("""
    cell bad() {
        let r = rect(Layer::Met1, x0=0, y0=0, x1=10, y1=10);
        eq(r.x1, 20);
    }
    cell top() {
        inst(bad(), x=0, y=0);
        rect(Layer::Met2, x0=0, y0=0, x1=5, y1=5);
    }
    """)
    err, = output.errors
    assert isinstance(err, InconsistentConstraintError)
    assert "'bad'" in err.message
    # The parent cell is compiled to completion:
    data = output.data
    assert [data.cells[i].name for i in sorted(data.cells)] == ['top', 'bad']
    assert len(data.top_cell.rects()) == 1

def test_self_instance(compile_src):
    output = compile_src("cell top() { inst(top()); }")
    err, = output.errors
    assert isinstance(err, HierarchyCycleError)
    assert output.data is None

# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

import json
import pytest
from argon.core import *
from argon.lang import parse, resolve


def coords(obj):
    return (obj.x0, obj.y0, obj.x1, obj.y1)

@pytest.mark.parametrize('method', Solver.methods)
def test_rect_chain(compile_valid, method):
    data = compile_valid("""
    cell top(h: Float) {
        let r1 = rect(Layer::Met1, y0=0, y1=h);
        eq(r1.x1 - r1.x0, 50);
        eq(r1.x0 + r1.x1, 50);
        let r2 = rect(Layer::Met1, y0=r1.y0, y1=r1.y1);
        eq(r2.x0 - r1.x1, 100);
        eq(r2.x1 - r2.x0, 200);
    }
    """, params={'h': 30}, method=method)
    top = data.top_cell

    assert top.name == 'top'
    assert top.params == {'h': 30.0}
    assert coords(top.field('r1')) == pytest.approx((0, 0, 50, 30))
    assert coords(top.field('r2')) == pytest.approx((150, 0, 350, 30))
    assert [r.layer for r in top.rects()] == ['Met1', 'Met1']

@pytest.mark.parametrize('method', Solver.methods)
def test_coupled_rounding_is_consistent(compile_valid, method):
    top = compile_valid("""
    cell top() {
        let r = rect(Layer::Met1, y0=0, y1=5);
        eq(r.x0 + r.x1, 20.00006);
        eq(r.x1, r.x0);
    }
    """, method=method).top_cell
    assert coords(top.field('r')) == (10.0, 0.0, 10.0, 5.0)

def test_nonlinear_product(compile_src, layers):
    src = """
    cell top() {
        let a = rect(Layer::Met1);
        let b = rect(Layer::Met1);
        eq(a.x1 * b.x1, 10);
    }
    """
    output = compile_src(src)

    assert not output.is_valid()
    err = output.errors[0]
    assert isinstance(err, NonlinearExpressionError)
    assert (layers + src)[err.span.start:err.span.end] == "a.x1 * b.x1"
    assert err.span.line == 6
    # Partial output: both rects were emitted before the error.
    assert len(output.data.top_cell.rects()) == 2

def test_product_with_solved_factor(compile_valid):
    data = compile_valid("""
    cell top() {
        let b = rect(Layer::Met1, x0=0, y0=0, x1=3, y1=1);
        let a = rect(Layer::Met1, x0=0, y0=0, y1=1);
        eq(a.x1 * b.x1, 12);
    }
    """)
    assert data.top_cell.field('a').x1 == 4

def test_inconsistent_constraint(compile_src, layers):
    src = """
    cell top() {
        let r = rect(Layer::Met1, x0=0, y0=0, x1=10, y1=10);
        eq(r.x1, 20);
    }
    """
    output = compile_src(src)

    err, = output.errors
    assert isinstance(err, InconsistentConstraintError)
    assert (layers + src)[err.span.start:err.span.end] == "eq(r.x1, 20)"
    # The first value is kept:
    assert coords(output.data.top_cell.field('r')) == (0, 0, 10, 10)

def test_underconstrained(compile_src):
    src = """
    cell top() {
        let r = rect(Layer::Met1, y0=0, y1=10);
        eq(r.x1 - r.x0, 50);
    }
    """
    output = compile_src(src)

    err, = output.errors
    assert isinstance(err, UnderconstrainedError)
    assert "unsolved: x0, x1" in err.message
    r = output.data.top_cell.field('r')
    assert (r.x0, r.x1) == (None, None)
    assert (r.y0, r.y1) == (0, 10)
    assert not r.is_solved()
    assert r.rect4() is None

    output = compile_src(src, force_solution=True)
    assert output.is_valid()
    assert coords(output.data.top_cell.field('r')) == (0, 0, 50, 10)

def test_invalid_rect(compile_src):
    output = compile_src("cell top() { rect(Layer::Met1, x0=10, y0=0, x1=0, y1=5); }")
    err, = output.errors
    assert isinstance(err, InvalidRectError)
    assert "x0 > x1" in err.message
    # Coordinates are reported as solved, not swapped:
    rect, = output.data.top_cell.rects()
    assert coords(rect) == (10, 0, 0, 5)

def test_rounding_warning(compile_src):
    output = compile_src("cell top() { rect(Layer::Met1, x0=0, y0=0, x1=10.05, y1=10.00003); }")

    assert output.is_valid()
    cell = output.data.top_cell
    warning, = cell.warnings
    assert isinstance(warning, RoundingWarning)
    assert warning.kind == "warning"
    assert "x1" in warning.message
    rect, = cell.rects()
    assert rect.x1 == pytest.approx(10.05)
    assert rect.y1 == 10.0

def test_custom_grid(compile_valid):
    data = compile_valid("cell top() { rect(Layer::Met1, x0=0, y0=0, x1=0.25, y1=1); }", grid=0.05)
    rect, = data.top_cell.rects()
    assert rect.x1 == pytest.approx(0.25)
    assert data.top_cell.warnings == []

def test_parameters(compile_valid):
    src = """
    cell top(w: Float, n: Int, wide: Bool, label: String, layer: Layer) {
        let r = rect(layer, x0=0, y0=0, x1=w * n, y1=if wide { 20 } else { 10 });
        text(layer, label, x=r.x0, y=r.y0);
    }
    """
    params = {'w': 5, 'n': 3.0, 'wide': True, 'label': 'L', 'layer': 'Layer::Met2'}
    top = compile_valid(src, params=params).top_cell

    assert top.params == {'w': 5.0, 'n': 3, 'wide': True, 'label': 'L', 'layer': EnumVal('Layer', 'Met2')}
    assert coords(top.field('r')) == (0, 0, 15, 20)
    assert top.field('r').layer == 'Met2'
    text, = top.texts()
    assert (text.layer, text.text, text.x, text.y) == ('Met2', 'L', 0, 0)

    params['layer'] = 'Via1'
    assert compile_valid(src, params=params).top_cell.field('r').layer == 'Via1'

@pytest.mark.parametrize('params, match', [
    ({}, r"Missing parameter 'w'"),
    ({'w': 1, 'x': 2}, r"has no parameter\(s\) x"),
    ({'w': True}, r"expects Float"),
    ({'w': '1'}, r"expects Float"),
])
def test_parameter_errors(compile_src, params, match):
    output = compile_src("cell top(w: Float) { }", params=params)
    err, = output.errors
    assert isinstance(err, ArgumentError)
    with pytest.raises(ArgumentError, match=match):
        raise err
    assert output.data is None

@pytest.mark.parametrize('params', [{'n': 1.5}, {'n': 'x'}])
def test_int_parameter_errors(compile_src, params):
    output = compile_src("cell top(n: Int) { }", params=params)
    assert isinstance(output.errors[0], ArgumentError)

def test_enum_parameter_errors(compile_src):
    output = compile_src("cell top(l: Layer) { }", params={'l': 'Poly'})
    assert isinstance(output.errors[0], ArgumentError)

def test_unknown_cell(compile_src):
    output = compile_src("cell top() { }", cell='nope')
    err, = output.errors
    assert isinstance(err, UnknownCellError)
    assert output.data is None

def test_resolve_errors(compile_src):
    src = """
    cell broken() { eq(x, 1); }
    cell top() { rect(Layer::Met1, x0=0, y0=0, x1=1, y1=1); }
    """
    assert compile_src(src).is_valid()

    output = compile_src(src, cell='broken')
    err, = output.errors
    assert isinstance(err, UndeclaredNameError)
    assert output.data is None

def test_compile_resolved_ast(layers):
    res = resolve(parse(layers + "cell top() { rect(Layer::Met1, x0=0, y0=0, x1=1, y1=1); }"))
    assert compile(res, 'top').is_valid()

def test_fn_calls(compile_valid):
    top = compile_valid("""
    fn half(x: Float) -> Float { x / 2 }
    fn pad(r: Rect, d: Float) -> Rect {
        rect(Layer::Met2, x0=r.x0 - d, y0=r.y0 - d, x1=r.x1 + d, y1=r.y1 + d)
    }
    cell top() {
        let r = rect(Layer::Met1, x0=0, y0=0, x1=half(100), y1=half(half(80)));
        let p = pad(r, 5);
    }
    """).top_cell

    assert coords(top.field('r')) == (0, 0, 50, 20)
    assert coords(top.field('p')) == (-5, -5, 55, 25)

    root = top.scopes[top.root]
    assert [top.scopes[c].name for c in root.children] == ['half', 'half0', 'half1', 'pad']
    pad_scope = top.scopes[root.children[-1]]
    assert pad_scope.emit == [top.fields['p']]
    assert root.emit == [top.fields['r']]

@pytest.mark.parametrize('body, error, match', [
    ("eq(bad(), 1);", EvalTypeError, r"Expected Float as return value of bad\(\)"),
    ("eq(half(true), 1);", EvalTypeError, r"Expected Float as argument 'x'"),
    ("eq(half(1, 2), 1);", ArgumentError, r"at most 1 positional"),
    ("eq(half(y=1), 1);", ArgumentError, r"unexpected argument 'y'"),
    ("eq(1);", ArgumentError, r"missing argument\(s\): rhs"),
    ("rect(Layer::Met1, w=1);", ArgumentError, r"unexpected argument 'w'"),
    ("text(Layer::Met1, 5, x=0, y=0);", EvalTypeError, r"Expected String as text"),
    ("rect(5);", EvalTypeError, r"Expected layer"),
    ("eq(rect(Layer::Met1) + 1, 0);", EvalTypeError, r"Expected number as operand, got Rect"),
    ("eq(1 / 0, 1);", EvalError, r"Division by zero"),
    ("eq(rect(Layer::Met1).z, 1);", EvalTypeError, r"Rect has no field 'z'"),
    ("eq((1 + 2).x, 1);", EvalTypeError, r"Cannot access field 'x' of Float"),
    ("eq(if 1 { 1 } else { 2 }, 1);", EvalTypeError, r"Expected Bool as condition"),
    ("eq(if true == 1 { 1 } else { 2 }, 1);", EvalTypeError, r"Expected number as comparison operand"),
    ("eq(if Layer::Met1 == \"Met1\" { 1 } else { 2 }, 1);", EvalTypeError, r"Cannot compare Layer with String"),
    ("eq(if true < false { 1 } else { 2 }, 1);", EvalTypeError, r"Operator < is not defined for Bool"),
])
def test_eval_errors(compile_src, body, error, match):
    output = compile_src(f"""
    fn half(x: Float) -> Float {{ x / 2 }}
    fn bad() -> Float {{ true }}
    cell top() {{ {body} }}
    """)
    assert not output.is_valid()
    err = output.errors[0]
    assert type(err) is error
    with pytest.raises(error, match=match):
        raise err
    assert err.span is not None

def test_partial_output(compile_src):
    output = compile_src("""
    cell top() {
        let a = rect(Layer::Met1, x0=0, y0=0, x1=10, y1=10);
        let b = a + 1;
        let c = rect(Layer::Met1, x0=0, y0=0, x1=10, y1=10);
    }
    """)
    err, = output.errors
    assert isinstance(err, EvalTypeError)
    top = output.data.top_cell
    assert list(top.fields) == ['a']
    assert coords(top.field('a')) == (0, 0, 10, 10)
    assert len(top.rects()) == 1

def test_consts(compile_valid):
    top = compile_valid("""
    const W: Float = 20 * 2;
    const H: Float = W / 4;
    const NAME: String = "x";
    const L: Layer = Layer::Met2;
    cell top() {
        let r = rect(L, x0=0, y0=0, x1=W, y1=H);
        text(Layer::Met1, NAME, x=r.x0, y=r.y0);
    }
    """).top_cell
    assert coords(top.field('r')) == (0, 0, 40, 10)
    assert top.field('r').layer == 'Met2'
    assert top.texts()[0].text == 'x'

@pytest.mark.parametrize('decl, match', [
    ("const C: Float = rect(Layer::Met1).x0;", r"must not create geometry"),
    ("const C: Float = true;", r"Expected Float as constant 'C'"),
])
def test_const_errors(compile_src, decl, match):
    output = compile_src(decl + "\ncell top() { eq(C, 1); }")
    err, = output.errors
    assert isinstance(err, EvalTypeError)
    with pytest.raises(EvalTypeError, match=match):
        raise err

@pytest.mark.parametrize('wide', [True, False])
def test_if(compile_valid, wide):
    top = compile_valid("""
    cell top(wide: Bool) {
        let w = if wide { 100 } else { 50 };
        let r = rect(Layer::Met1, x0=0, y0=0, x1=w, y1=10);
        if wide {
            rect(Layer::Met2, x0=0, y0=0, x1=w, y1=10);
        }
    }
    """, params={'wide': wide}).top_cell

    root = top.scopes[top.root]
    branch_names = [top.scopes[c].name for c in root.children]
    if wide:
        assert top.field('r').x1 == 100
        assert [r.layer for r in top.rects()] == ['Met1', 'Met2']
        assert branch_names == ['if', 'if0']
        met2_scope = top.scopes[root.children[1]]
        assert len(met2_scope.emit) == 1
    else:
        assert top.field('r').x1 == 50
        assert [r.layer for r in top.rects()] == ['Met1']
        assert branch_names == ['else']

def test_if_condition_on_geometry(compile_valid):
    top = compile_valid("""
    cell top() {
        let r = rect(Layer::Met1, y0=0, y1=10);
        eq(r.x0 + r.x1, 100);
        eq(r.x1 - r.x0, 100);
        let m = if r.w > 50 { Layer::Met2 } else { Layer::Via1 };
        rect(m, x0=0, y0=0, x1=1, y1=1);
    }
    """).top_cell
    assert [r.layer for r in top.rects()] == ['Met1', 'Met2']
    assert coords(top.rects()[0]) == (0, 0, 100, 10)

def test_if_condition_unresolved(compile_src):
    output = compile_src("""
    cell top() {
        let r = rect(Layer::Met1);
        if r.x0 > 0 { eq(1, 1); }
    }
    """)
    assert isinstance(output.errors[0], UnresolvedValueError)

def test_if_else_if(compile_valid):
    src = """
    cell top(n: Int) {
        let w = if n == 0 { 10 } else if n == 1 { 20 } else { 30 };
        rect(Layer::Met1, x0=0, y0=0, x1=w, y1=1);
    }
    """
    for n, w in ((0, 10), (1, 20), (7, 30)):
        rect, = compile_valid(src, params={'n': n}).top_cell.rects()
        assert rect.x1 == w

def test_inconsistent_if_branches(compile_src):
    output = compile_src("""
    cell top(wide: Bool) {
        let w = if wide { 100 } else { rect(Layer::Met1) };
    }
    """, params={'wide': True})
    err, = output.errors
    assert isinstance(err, InconsistentIfBranchesError)
    assert "Float and Rect" in err.message
    # Geometry of the untaken branch is discarded:
    top = output.data.top_cell
    assert top.rects() == []
    assert top.scopes[top.root].children == [1]

def test_untaken_branch_must_evaluate(compile_src):
    output = compile_src("""
    cell top() {
        let w = if true { 1 } else { 1 / 0 };
    }
    """)
    err, = output.errors
    assert isinstance(err, EvalError)
    assert not isinstance(err, InconsistentIfBranchesError)
    assert "Division by zero" in err.message

def test_block_scope(compile_valid):
    top = compile_valid("""
    cell top() {
        let x = 5;
        {
            let x = 7;
            rect(Layer::Met1, x0=0, y0=0, x1=x, y1=1);
        }
        rect(Layer::Met1, x0=0, y0=0, x1=x, y1=1);
    }
    """).top_cell
    inner, outer = top.rects()
    assert (inner.x1, outer.x1) == (7, 5)
    block, = top.scopes[top.root].children
    assert top.scopes[block].name == 'block'
    assert top.fields == {}

def test_comparisons_and_logic(compile_valid):
    top = compile_valid("""
    fn pick(c: Bool) -> Float { if c { 1 } else { 0 } }
    cell top(s: String, l: Layer) {
        rect(Layer::Met1, x0=pick(1 < 2 && 2 <= 2), x1=pick(3 != 3 || !false), y0=pick(0.1 + 0.2 == 0.3), y1=pick(s == "a"));
        rect(Layer::Met1, x0=pick(l == Layer::Via1), x1=pick(l != Layer::Met1), y0=pick(2 >= 3), y1=pick(3 > 2));
    }
    """, params={'s': 'a', 'l': 'Via1'}).top_cell
    a, b = top.rects()
    assert coords(a) == (1, 1, 1, 1)
    assert coords(b) == (1, 0, 1, 1)

def test_text_and_dimension(compile_valid):
    top = compile_valid("""
    cell top() {
        let r = rect(Layer::Met1, x0=0, y0=0, y1=5);
        dimension(r.x1, r.x0, 30, coord=r.y1, horiz=true);
        text(Layer::Met1, "lbl", x=r.x1, y=r.y1);
    }
    """).top_cell
    assert top.field('r').x1 == 30
    dim, = top.dimensions()
    assert (dim.p, dim.n, dim.value, dim.coord, dim.horiz) == (30, 0, 30, 5, True)
    assert dim.is_solved()
    text, = top.texts()
    assert (text.text, text.x, text.y) == ('lbl', 30, 5)

def test_construction_rect(compile_valid):
    top = compile_valid("""
    cell top() {
        let c = rect(x0=0, y0=0, x1=100, y1=100);
        let r = rect(Layer::Met1, x0=c.x0 + 10, y0=c.y0 + 10, x1=c.x1 - 10, y1=c.y1 - 10);
    }
    """).top_cell
    assert top.field('c').construction
    assert not top.field('r').construction
    assert coords(top.field('r')) == (10, 10, 90, 90)

def test_to_dict(compile_src):
    output = compile_src("""
    cell top(l: Layer) {
        let r = rect(l, x0=0, y0=0, x1=1, y1=1);
    }
    """, params={'l': 'Met1'})
    d = json.loads(json.dumps(output.to_dict()))

    assert d['status'] == 'valid'
    cell = d['output']['cells'][str(d['output']['top'])]
    assert cell['params'] == {'l': 'Layer::Met1'}
    obj = cell['objects'][str(cell['fields']['r'])]
    assert obj == {'type': 'rect', 'layer': 'Met1', 'x0': 0, 'y0': 0, 'x1': 1, 'y1': 1,
        'span': obj['span']}
    assert obj['span']['line'] == 4

    output = compile_src("cell top() { eq(1, 2); }")
    d = output.to_dict()
    assert d['status'] == 'errors'
    assert d['errors'][0]['type'] == 'InconsistentConstraintError'
    assert d['errors'][0]['kind'] == 'solver'

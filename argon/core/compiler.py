# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Cell evaluator.

:func:`compile` evaluates a cell of a resolved syntax tree. Every compiled
cell owns a :class:`Solver`. Statements are executed in program order,
allocating variables for rectangles and instance placements and
registering equality constraints. Cells called from a cell are compiled to
completion first (memoized by cell name and parameters) and only referenced
by the caller; instancing is a transformation applied to the solved
sub-cell, not a sharing of variables.
"""

import copy
import dataclasses
import logging
import math
from contextlib import contextmanager
from typing import Optional
from pyrsistent import freeze
from public import public

from .errors import *
from .solver import Solver, LinearExpr, EPSILON, ROUND_STEP
from .geoprim import D4
from .values import *
from .output import *
from .directory import Directory
from ..lang.ast import *
from ..lang.resolve import ResolvedAst, resolve

logger = logging.getLogger(__name__)

class CellCtx:
    """Evaluation state of a single cell."""

    #: Attributes that are copied when evaluating an if branch in a sandbox.
    sandboxed_attrs = ('solver', 'scopes', 'objects', 'fields', 'frames',
        'scope_stack', 'constraint_spans', 'directory', 'next_scope', 'next_object')

    def __init__(self, compiler: 'Compiler', name: str):
        self.compiler = compiler
        self.res = compiler.res
        self.name = name
        self.solver = Solver(grid=compiler.grid, method=compiler.method)
        self.scopes: dict[ScopeId, ScopeInfo] = {}
        self.objects: dict[ObjectId, object] = {}
        self.fields: dict[str, ObjectId] = {}
        self.frames: list[dict[int, object]] = [{}]
        self.scope_stack: list[ScopeId] = []
        self.constraint_spans: dict[int, Optional[Span]] = {}
        self.directory = Directory()
        self.next_scope = 0
        self.next_object = 0
        self.root = self.push_scope(name, None)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name} {self.solver!r}>"

    # Scopes, objects and constraints

    def push_scope(self, basename: str, span: Optional[Span]) -> ScopeId:
        sid = self.next_scope
        self.next_scope += 1
        parent = self.scope_stack[-1] if self.scope_stack else None
        name = self.directory.unique_name(basename, sid, parent)
        self.scopes[sid] = ScopeInfo(name, span, parent)
        if parent is not None:
            self.scopes[parent].children.append(sid)
        self.scope_stack.append(sid)
        return sid

    @contextmanager
    def child_scope(self, basename: str, span: Optional[Span]):
        sid = self.push_scope(basename, span)
        try:
            yield sid
        finally:
            self.scope_stack.pop()

    @contextmanager
    def sandbox(self):
        """
        Evaluates the body on scratch copies of the cell state. Nothing
        emitted, constrained or compiled inside the body survives.
        """
        saved = {a: getattr(self, a) for a in self.sandboxed_attrs}
        for a, v in saved.items():
            setattr(self, a, copy.deepcopy(v))
        try:
            with self.compiler.sandbox():
                yield
        finally:
            for a, v in saved.items():
                setattr(self, a, v)

    def emit(self, value):
        oid = self.next_object
        self.next_object += 1
        value = dataclasses.replace(value, oid=oid)
        self.objects[oid] = value
        self.scopes[self.scope_stack[-1]].emit.append(oid)
        return value

    def constrain(self, expr: LinearExpr, span: Optional[Span]):
        cid = self.solver.constrain_eq0(expr)
        self.constraint_spans[cid] = span

    def new_expr(self) -> LinearExpr:
        return self.solver.new_var().expr()

    # Value helpers

    def simplified(self, expr: LinearExpr) -> LinearExpr:
        return expr.simplify(self.solver.solved_vars).merged()

    def linear(self, value, span: Optional[Span], what: str = "operand") -> LinearExpr:
        if isinstance(value, LinearExpr):
            return value
        raise EvalTypeError(f"Expected number as {what}, got {kind_of(value)}.", span)

    def boolean(self, value, span: Optional[Span], what: str = "condition") -> bool:
        if isinstance(value, bool):
            return value
        raise EvalTypeError(f"Expected Bool as {what}, got {kind_of(value)}.", span)

    def number(self, value, span: Optional[Span], what: str = "value") -> float:
        """
        Returns the concrete value of a linear expression. If it depends on
        unsolved variables, pending constraints are solved once.
        """
        expr = self.simplified(self.linear(value, span, what))
        if expr.coeffs:
            self.solver.solve()
            expr = self.simplified(expr)
        if expr.coeffs:
            raise UnresolvedValueError(f"Value of {what} depends on unsolved variables.", span)
        return expr.constant

    def integer(self, value, span: Optional[Span], what: str) -> int:
        x = self.number(value, span, what)
        if not math.isfinite(x):
            raise EvalTypeError(f"Expected integer as {what}, got {x}.", span)
        if abs(x - round(x)) > EPSILON:
            raise EvalTypeError(f"Expected integer as {what}, got {x}.", span)
        return int(round(x))

    def layer_name(self, value, span: Optional[Span]) -> str:
        if isinstance(value, EnumVal):
            return value.variant
        elif isinstance(value, str):
            return value
        raise EvalTypeError(f"Expected layer, got {kind_of(value)}.", span)

    def check_type(self, value, ty: str, span: Optional[Span], what: str):
        if ty in self.res.enums:
            ok = isinstance(value, EnumVal) and value.enum == ty
        elif ty in ('Float', 'Int'):
            ok = isinstance(value, LinearExpr)
        else:
            ok = kind_of(value) == ty
        if not ok:
            raise EvalTypeError(f"Expected {ty} as {what}, got {kind_of(value)}.", span)

    def concrete(self, value, ty: str, span: Optional[Span], what: str):
        """Converts value to a hashable Python value usable as cell parameter."""
        self.check_type(value, ty, span, what)
        if ty == 'Int':
            return self.integer(value, span, what)
        elif ty == 'Float':
            return self.number(value, span, what)
        return value

    # Statements

    def run(self, decl: CellDecl, params: dict):
        frame = self.frames[-1]
        for p in decl.params:
            frame[self.res.binding_of[p]] = runtime_value(params[p.name])
        self.exec_body(decl.body, export=True)

    def exec_body(self, scope: Scope, export: bool = False):
        """Executes the statements of scope in the current scope, returns the tail value."""
        for stmt in scope.stmts:
            if isinstance(stmt, LetStmt):
                value = self.eval(stmt.value)
                self.frames[-1][self.res.binding_of[stmt]] = value
                if export:
                    self.export_field(stmt.name, value)
            elif isinstance(stmt, ExprStmt):
                self.eval(stmt.expr)
            elif isinstance(stmt, BlockStmt):
                with self.child_scope('block', stmt.span):
                    self.exec_body(stmt.scope)
            else:
                raise TypeError(f"Unexpected statement {stmt!r}.")
        if scope.tail is None:
            return None
        return self.eval(scope.tail)

    def export_field(self, name: str, value):
        if isinstance(value, (RectVal, InstVal)) and value.oid is not None:
            self.fields[name] = value.oid
        else:
            self.fields.pop(name, None)

    # Expressions

    def eval(self, e: Expr):
        if isinstance(e, (IntLit, FloatLit)):
            return LinearExpr.const(e.value)
        elif isinstance(e, (StrLit, BoolLit)):
            return e.value
        elif isinstance(e, EnumValue):
            return EnumVal(e.enum, e.variant)
        elif isinstance(e, NameRef):
            return self.lookup(e)
        elif isinstance(e, BinOp):
            return self.eval_binop(e)
        elif isinstance(e, UnaryOp):
            operand = self.eval(e.operand)
            if e.op == '-':
                return -self.linear(operand, e.operand.span)
            return not self.boolean(operand, e.operand.span, "operand of '!'")
        elif isinstance(e, FieldAccess):
            return self.eval_field(e)
        elif isinstance(e, Call):
            return self.eval_call(e)
        elif isinstance(e, IfExpr):
            return self.eval_if(e)
        raise TypeError(f"Unexpected expression {e!r}.")

    def lookup(self, ref: NameRef):
        bid = self.res.binding_of[ref]
        try:
            return self.frames[-1][bid]
        except KeyError:
            pass
        const = self.compiler.const_of_binding.get(bid)
        if const is None:
            raise EvalError(f"{ref.name!r} is not bound.", ref.span)
        return self.compiler.const_value(const)

    def eval_binop(self, e: BinOp):
        op = e.op
        if op in ('&&', '||'):
            left = self.boolean(self.eval(e.left), e.left.span, f"operand of {op!r}")
            if left == (op == '||'):
                return left
            return self.boolean(self.eval(e.right), e.right.span, f"operand of {op!r}")

        left = self.eval(e.left)
        right = self.eval(e.right)
        if op in ('+', '-'):
            a = self.linear(left, e.left.span)
            b = self.linear(right, e.right.span)
            return a + b if op == '+' else a - b
        elif op == '*':
            a = self.linear(left, e.left.span)
            b = self.linear(right, e.right.span)
            sa, sb = self.simplified(a), self.simplified(b)
            if not sb.coeffs:
                return a * sb.constant
            if not sa.coeffs:
                return b * sa.constant
            raise NonlinearExpressionError(
                "Product of two expressions depending on unsolved variables is not linear.", e.span)
        elif op == '/':
            a = self.linear(left, e.left.span)
            sb = self.simplified(self.linear(right, e.right.span))
            if sb.coeffs:
                raise NonlinearExpressionError(
                    "Division by an expression depending on unsolved variables is not linear.", e.span)
            if sb.constant == 0:
                raise EvalError("Division by zero.", e.span)
            return a / sb.constant
        return self.compare(e, left, right)

    def compare(self, e: BinOp, left, right) -> bool:
        op = e.op
        if isinstance(left, LinearExpr) or isinstance(right, LinearExpr):
            a = self.number(left, e.left.span, "comparison operand")
            b = self.number(right, e.right.span, "comparison operand")
            tol = EPSILON * max(1.0, abs(a), abs(b))
            if op == '==':
                return abs(a - b) <= tol
            elif op == '!=':
                return abs(a - b) > tol
            elif op == '<':
                return a < b - tol
            elif op == '>':
                return a > b + tol
            elif op == '<=':
                return a <= b + tol
            elif op == '>=':
                return a >= b - tol
        elif op in ('==', '!='):
            if kind_of(left) == kind_of(right) and isinstance(left, (bool, str, EnumVal)):
                return (left == right) == (op == '==')
            raise EvalTypeError(f"Cannot compare {kind_of(left)} with {kind_of(right)}.", e.span)
        raise EvalTypeError(f"Operator {op} is not defined for {kind_of(left)}.", e.span)

    def eval_field(self, e: FieldAccess):
        base = self.eval(e.base)
        if isinstance(base, RectVal):
            value = base.field(e.field)
            if value is None:
                raise EvalTypeError(f"Rect has no field {e.field!r}.", e.span)
            return value
        elif isinstance(base, InstVal):
            if e.field == 'x':
                return base.x
            elif e.field == 'y':
                return base.y
            return self.instance_field(base, e.field, e.span)
        raise EvalTypeError(f"Cannot access field {e.field!r} of {kind_of(base)}.", e.span)

    def instance_field(self, inst: InstVal, name: str, span: Optional[Span]):
        """Exported field of the instanced cell, mapped into the current cell."""
        cell = self.compiler.cells[inst.cell]
        try:
            obj = cell.field(name)
        except KeyError:
            raise EvalTypeError(f"Cell {cell.name!r} has no field {name!r}.", span) from None
        if not obj.is_solved():
            raise UnresolvedValueError(f"Field {name!r} of cell {cell.name!r} is not fully solved.", span)
        if isinstance(obj, SolvedRect):
            x0, y0, x1, y1 = inst.transform_rect(obj.x0, obj.y0, obj.x1, obj.y1)
            return RectVal(obj.layer, x0, y0, x1, y1, span=obj.span)
        elif isinstance(obj, SolvedInstance):
            x, y = inst.transform(obj.x, obj.y)
            return InstVal(obj.cell, x, y, d4=inst.d4 * obj.orientation, span=obj.span)
        raise EvalTypeError(f"Field {name!r} of cell {cell.name!r} cannot be accessed.", span)

    def eval_if(self, e: IfExpr):
        cond = self.boolean(self.eval(e.cond), e.cond.span)
        if cond:
            taken, other, taken_name, other_name = e.then, e.else_, 'if', 'else'
        else:
            taken, other, taken_name, other_name = e.else_, e.then, 'else', 'if'
        result = self.eval_branch(taken, taken_name)
        if e.else_ is None:
            return None
        # The other branch must be evaluable too and yield the same kind of value.
        with self.sandbox():
            other_result = self.eval_branch(other, other_name)
        if kind_of(result) != kind_of(other_result):
            raise InconsistentIfBranchesError(
                f"Branches of if expression yield different kinds of values "
                f"({kind_of(result)} and {kind_of(other_result)}).", e.span)
        return result

    def eval_branch(self, branch, name: str):
        if branch is None:
            return None
        elif isinstance(branch, IfExpr):
            return self.eval(branch)
        with self.child_scope(name, branch.span):
            return self.exec_body(branch)

    # Calls

    def eval_call(self, call: Call):
        target = self.res.call_target[call]
        if target.kind == 'builtin':
            return getattr(self, f'builtin_{target.name}')(call)
        elif target.kind == 'fn':
            return self.call_fn(self.res.fns[target.name], call)
        else:
            return self.call_cell(self.res.cells[target.name], call)

    def bind_args(self, call: Call, names: tuple[str, ...], positional: int, required: tuple[str, ...]) -> dict:
        """Evaluates the arguments of call, returns dict of name -> (value, span)."""
        if len(call.args) > positional:
            raise ArgumentError(
                f"{call.func}() takes at most {positional} positional arguments, got {len(call.args)}.", call.span)
        bound = {}
        for name, arg in zip(names, call.args):
            bound[name] = (self.eval(arg), arg.span)
        for kw in call.kwargs:
            if kw.name not in names:
                raise ArgumentError(f"{call.func}() got an unexpected argument {kw.name!r}.", kw.span)
            if kw.name in bound:
                raise ArgumentError(f"{call.func}() got multiple values for argument {kw.name!r}.", kw.span)
            bound[kw.name] = (self.eval(kw.value), kw.span)
        missing = [n for n in required if n not in bound]
        if missing:
            raise ArgumentError(f"{call.func}() missing argument(s): {', '.join(missing)}.", call.span)
        return bound

    def builtin_rect(self, call: Call) -> RectVal:
        args = self.bind_args(call, ('layer', 'x0', 'y0', 'x1', 'y1'), 1, ())
        layer = self.layer_name(*args['layer']) if 'layer' in args else None
        coords = {c: self.new_expr() for c in ('x0', 'y0', 'x1', 'y1')}
        for c, var in coords.items():
            if c in args:
                value, span = args[c]
                self.constrain(var - self.linear(value, span, c), span)
        return self.emit(RectVal(layer, span=call.span, **coords))

    def builtin_eq(self, call: Call) -> None:
        args = self.bind_args(call, ('lhs', 'rhs'), 2, ('lhs', 'rhs'))
        lhs = self.linear(*args['lhs'], 'lhs')
        rhs = self.linear(*args['rhs'], 'rhs')
        self.constrain(lhs - rhs, call.span)
        return None

    def builtin_text(self, call: Call) -> TextVal:
        args = self.bind_args(call, ('layer', 'text', 'x', 'y'), 2, ('layer', 'text', 'x', 'y'))
        layer = self.layer_name(*args['layer'])
        text, span = args['text']
        if not isinstance(text, str):
            raise EvalTypeError(f"Expected String as text, got {kind_of(text)}.", span)
        x = self.linear(*args['x'], 'x')
        y = self.linear(*args['y'], 'y')
        return self.emit(TextVal(layer, text, x, y, span=call.span))

    def builtin_dimension(self, call: Call) -> None:
        args = self.bind_args(call, ('p', 'n', 'value', 'coord', 'pstop', 'nstop', 'horiz'), 3, ('p', 'n', 'value'))
        p = self.linear(*args['p'], 'p')
        n = self.linear(*args['n'], 'n')
        value = self.linear(*args['value'], 'value')
        optional = {k: self.linear(*args[k], k) for k in ('coord', 'pstop', 'nstop') if k in args}
        horiz = self.boolean(*args['horiz'], 'horiz') if 'horiz' in args else True
        self.constrain(p - n - value, call.span)
        self.emit(DimensionVal(p, n, value, horiz=horiz, span=call.span, **optional))
        return None

    def builtin_inst(self, call: Call) -> InstVal:
        args = self.bind_args(call, ('cell', 'x', 'y', 'rot', 'reflect'), 1, ('cell',))
        cellref, span = args['cell']
        if not isinstance(cellref, CellRef):
            raise EvalTypeError(f"Expected Cell as instance master, got {kind_of(cellref)}.", span)
        rot = self.integer(*args['rot'], 'rot') % 4 if 'rot' in args else 0
        reflect = self.boolean(*args['reflect'], 'reflect') if 'reflect' in args else False
        x, y = self.new_expr(), self.new_expr()
        for c, var in (('x', x), ('y', y)):
            if c in args:
                value, span = args[c]
                self.constrain(var - self.linear(value, span, c), span)
        inst = InstVal(cellref.cell, x, y, d4=D4.from_placement(rot, reflect),
            rot=rot, reflect=reflect, span=call.span)
        return self.emit(inst)

    def call_fn(self, fn: FnDecl, call: Call):
        names = tuple(p.name for p in fn.params)
        args = self.bind_args(call, names, len(names), names)
        frame = {}
        for p in fn.params:
            value, span = args[p.name]
            self.check_type(value, p.ty, span, f"argument {p.name!r}")
            frame[self.res.binding_of[p]] = value
        self.frames.append(frame)
        try:
            with self.child_scope(fn.name, call.span):
                result = self.exec_body(fn.body)
        finally:
            self.frames.pop()
        self.check_type(result, fn.ret_ty, call.span, f"return value of {fn.name}()")
        return result

    def call_cell(self, decl: CellDecl, call: Call) -> CellRef:
        names = tuple(p.name for p in decl.params)
        args = self.bind_args(call, names, len(names), names)
        params = {}
        for p in decl.params:
            value, span = args[p.name]
            params[p.name] = self.concrete(value, p.ty, span, f"parameter {p.name!r}")
        return CellRef(self.compiler.compile_cell(decl, params))

    # Results

    def value_of(self, expr: Optional[LinearExpr]) -> Optional[float]:
        if expr is None:
            return None
        return self.solver.eval_expr(expr)

    def solved_object(self, obj):
        v = self.value_of
        if isinstance(obj, RectVal):
            return SolvedRect(obj.layer, v(obj.x0), v(obj.y0), v(obj.x1), v(obj.y1), obj.span)
        elif isinstance(obj, InstVal):
            return SolvedInstance(obj.cell, v(obj.x), v(obj.y), obj.rot, obj.reflect, obj.span)
        elif isinstance(obj, TextVal):
            return SolvedText(obj.layer, obj.text, v(obj.x), v(obj.y), obj.span)
        elif isinstance(obj, DimensionVal):
            return SolvedDimension(v(obj.p), v(obj.n), v(obj.value), v(obj.coord),
                v(obj.pstop), v(obj.nstop), obj.horiz, obj.span)
        raise TypeError(f"Unexpected object {obj!r}.")

    @staticmethod
    def coords_of(obj) -> dict[str, Optional[LinearExpr]]:
        if isinstance(obj, RectVal):
            return {'x0': obj.x0, 'y0': obj.y0, 'x1': obj.x1, 'y1': obj.y1}
        elif isinstance(obj, (InstVal, TextVal)):
            return {'x': obj.x, 'y': obj.y}
        else:
            return {'p': obj.p, 'n': obj.n, 'value': obj.value,
                'coord': obj.coord, 'pstop': obj.pstop, 'nstop': obj.nstop}

    def finish(self, params: dict) -> tuple[CompiledCell, list[ArgonError]]:
        """Solves the cell and converts its objects into the compile output."""
        solver = self.solver
        solver.solve()
        if self.compiler.force_solution:
            solver.force_solution()

        errors = []
        for cid in sorted(solver.inconsistent_constraints()):
            errors.append(InconsistentConstraintError(
                f"Constraint in cell {self.name!r} is inconsistent.", self.constraint_spans.get(cid)))

        objects = {}
        warnings = []
        for oid, obj in self.objects.items():
            solved = self.solved_object(obj)
            objects[oid] = solved
            kind = type(solved).__name__.removeprefix('Solved').lower()

            unsolved = []
            for name, expr in self.coords_of(obj).items():
                if expr is None:
                    continue
                if solver.eval_expr(expr) is None:
                    unsolved.append(name)
                elif expr.variables() & solver.invalid_rounding:
                    warnings.append(RoundingWarning(
                        f"{kind} {name} = {solver.eval_expr(expr)!r} is not on the {solver.grid!r} grid.", obj.span))
            if unsolved:
                errors.append(UnderconstrainedError(
                    f"{kind} in cell {self.name!r} is underconstrained, unsolved: {', '.join(unsolved)}.", obj.span))
            if isinstance(solved, SolvedRect) and solved.is_solved():
                if solved.x0 > solved.x1:
                    errors.append(InvalidRectError(f"rect has x0 > x1 ({solved.x0!r} > {solved.x1!r}).", obj.span))
                if solved.y0 > solved.y1:
                    errors.append(InvalidRectError(f"rect has y0 > y1 ({solved.y0!r} > {solved.y1!r}).", obj.span))

        logger.debug("Solved cell %s: %d objects, %d errors, %d warnings.",
            self.name, len(objects), len(errors), len(warnings))
        cell = CompiledCell(
            name=self.name,
            params=dict(params),
            scopes=self.scopes,
            objects=objects,
            root=self.root,
            fields=self.fields,
            warnings=warnings,
        )
        return cell, errors

def runtime_value(param):
    """Converts a concrete cell parameter into an evaluation value."""
    if isinstance(param, (bool, str, EnumVal)):
        return param
    return LinearExpr.const(param)

@public
class Compiler:
    """
    Compiles cells of one resolved syntax tree. Holds the memo of compiled
    cells and the list of errors collected so far.
    """

    def __init__(self, res: ResolvedAst, *, force_solution: bool = False, method: str = 'svd', grid: float = ROUND_STEP):
        self.res = res
        self.force_solution = force_solution
        self.method = method
        self.grid = grid
        self.cells: dict[CellId, CompiledCell] = {}
        self.memo: dict[tuple, CellId] = {}
        self.errors: list[ArgonError] = []
        self.next_cell = 0
        self.active: list[str] = []
        self.const_values = {}
        self.const_of_binding = {}
        for decl in res.consts.values():
            bid = res.binding_of.get(decl)
            if bid is not None:
                self.const_of_binding[bid] = decl

    @contextmanager
    def sandbox(self):
        saved = dict(self.cells), dict(self.memo), list(self.errors), self.next_cell
        try:
            yield
        finally:
            self.cells, self.memo, self.errors, self.next_cell = saved

    def const_value(self, decl: ConstDecl):
        try:
            return self.const_values[decl.name]
        except KeyError:
            pass
        ctx = CellCtx(self, decl.name)
        value = ctx.eval(decl.value)
        if ctx.objects:
            raise EvalTypeError(f"Constant {decl.name!r} must not create geometry.", decl.span)
        if isinstance(value, LinearExpr):
            value = ctx.simplified(value)
            if value.coeffs:
                raise EvalTypeError(f"Constant {decl.name!r} must not depend on variables.", decl.span)
        ctx.check_type(value, decl.ty, decl.span, f"constant {decl.name!r}")
        self.const_values[decl.name] = value
        return value

    def check_params(self, decl: CellDecl, params: dict) -> dict:
        """Validates parameters passed from outside the program."""
        unknown = set(params) - {p.name for p in decl.params}
        if unknown:
            raise ArgumentError(f"Cell {decl.name!r} has no parameter(s) {', '.join(sorted(unknown))}.", decl.span)
        out = {}
        for p in decl.params:
            try:
                value = params[p.name]
            except KeyError:
                raise ArgumentError(f"Missing parameter {p.name!r} of cell {decl.name!r}.", decl.span) from None
            out[p.name] = self.check_param(p, value)
        return out

    def check_param(self, p: Param, value):
        ok = False
        if p.ty in ('Float', 'Int'):
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            if ok and p.ty == 'Int':
                ok = float(value).is_integer()
                value = int(value) if ok else value
            elif ok:
                value = float(value)
        elif p.ty == 'Bool':
            ok = isinstance(value, bool)
        elif p.ty == 'String':
            ok = isinstance(value, str)
        elif p.ty in self.res.enums:
            if isinstance(value, str):
                value = EnumVal(p.ty, value.removeprefix(f"{p.ty}::"))
            ok = isinstance(value, EnumVal) and value.enum == p.ty \
                and value.variant in self.res.enums[p.ty].variants
        if not ok:
            raise ArgumentError(f"Parameter {p.name!r} expects {p.ty}, got {value!r}.", p.span)
        return value

    def compile_cell(self, decl: CellDecl, params: dict) -> CellId:
        key = (decl.name, freeze(params))
        try:
            cell_id = self.memo[key]
        except KeyError:
            pass
        else:
            logger.debug("Reusing compiled cell %s %r.", decl.name, params)
            return cell_id
        if decl.name in self.active:
            raise HierarchyCycleError(f"Cell {decl.name!r} instantiates itself.", decl.span)

        cell_id = self.next_cell
        self.next_cell += 1
        self.memo[key] = cell_id
        logger.debug("Compiling cell %s %r as #%d.", decl.name, params, cell_id)

        ctx = CellCtx(self, decl.name)
        self.active.append(decl.name)
        try:
            ctx.run(decl, params)
        except ArgonError as e:
            # Evaluation stops, the objects emitted so far are kept.
            self.errors.append(e)
        finally:
            self.active.pop()
        cell, errors = ctx.finish(params)
        self.errors.extend(errors)
        self.cells[cell_id] = cell
        return cell_id

@public
def compile(ast: Ast | ResolvedAst, cell_name: str, params: Optional[dict] = None, *,
        force_solution: bool = False, method: str = 'svd', grid: float = ROUND_STEP) -> CompileOutput:
    """
    Compiles the cell cell_name with the given parameters.

    Program errors never raise. They are returned as :class:`ExecErrors`,
    together with the partial output if evaluation got far enough.

    Args:
        ast: Parsed (or already resolved) program.
        cell_name: Name of the top cell.
        params: Parameter values of the top cell by name.
        force_solution: Pin variables left unsolved to 0.
        method: 'svd' or 'qr', see :class:`Solver`.
        grid: Manufacturing grid step.
    """
    res = ast if isinstance(ast, ResolvedAst) else resolve(ast)
    decl = res.cells.get(cell_name)
    if decl is None:
        return ExecErrors([UnknownCellError(f"No cell named {cell_name!r}.")])
    errors = res.errors_for(cell_name)
    if errors:
        return ExecErrors(errors)

    compiler = Compiler(res, force_solution=force_solution, method=method, grid=grid)
    try:
        params = compiler.check_params(decl, params or {})
    except ArgonError as e:
        return ExecErrors([e])
    top = compiler.compile_cell(decl, params)
    data = CompiledData(compiler.cells, top)
    if compiler.errors:
        return ExecErrors(compiler.errors, data)
    return Valid(data)

# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Name resolution pass.

Assigns every parameter, let binding and constant a unique binding id and
links every name reference to the id it denotes, so that evaluation never
looks up names by string. Static errors (undeclared or duplicate names,
unknown cells, recursive cell/function calls) are collected per
declaration instead of being raised.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
from public import public

from ..core.errors import *
from .ast import *

logger = logging.getLogger(__name__)

#: Builtin functions provided by the evaluator.
BUILTINS = ('rect', 'eq', 'text', 'dimension', 'inst')

#: Non-value types that functions may accept.
OBJECT_TYPES = ('Rect', 'Inst', 'Cell')

public(BUILTINS=BUILTINS)

@public
@dataclass(frozen=True)
class CallTarget:
    kind: str #: 'builtin', 'fn' or 'cell'
    name: str

@public
@dataclass
class ResolvedAst:
    """Result of :func:`resolve`: the syntax tree plus side tables."""
    ast: Ast
    enums: dict[str, EnumDecl] = field(default_factory=dict)
    consts: dict[str, ConstDecl] = field(default_factory=dict)
    fns: dict[str, FnDecl] = field(default_factory=dict)
    cells: dict[str, CellDecl] = field(default_factory=dict)
    #: Binding id of each Param, LetStmt and ConstDecl, and of each NameRef
    #: the id of the binding it refers to.
    binding_of: dict = field(default_factory=dict)
    call_target: dict[Call, CallTarget] = field(default_factory=dict)
    #: Names of cells and functions called by each declaration.
    callees: dict[str, set[str]] = field(default_factory=dict)
    #: Constants referenced by each declaration.
    const_uses: dict[str, set[str]] = field(default_factory=dict)
    errors_of_decl: dict[str, list[ArgonError]] = field(default_factory=dict)
    errors: list[ArgonError] = field(default_factory=list)

    def dependencies(self, name: str) -> list[str]:
        """Declaration name plus all declarations it transitively depends on."""
        seen = []
        todo = [name]
        while todo:
            n = todo.pop()
            if n in seen:
                continue
            seen.append(n)
            todo.extend(sorted(self.callees.get(n, ())))
            todo.extend(sorted(self.const_uses.get(n, ())))
        return seen

    def errors_for(self, name: str) -> list[ArgonError]:
        """Resolve errors relevant for evaluating the named declaration."""
        errors = list(self.errors_of_decl.get(None, []))
        for dep in self.dependencies(name):
            errors += self.errors_of_decl.get(dep, [])
        return errors

class Resolver:
    def __init__(self, ast: Ast):
        self.res = ResolvedAst(ast)
        self.next_binding = 0
        self.scopes: list[dict[str, int]] = []
        self.const_bindings: dict[str, int] = {}
        #: Constants visible in constant declarations, in declaration order.
        self.earlier_consts: dict[str, int] = {}
        self.in_const = False
        self.current: Optional[str] = None

    def error(self, err: ArgonError):
        self.res.errors.append(err)
        self.res.errors_of_decl.setdefault(self.current, []).append(err)

    def new_binding(self, node) -> int:
        bid = self.next_binding
        self.next_binding += 1
        self.res.binding_of[node] = bid
        return bid

    def run(self) -> ResolvedAst:
        res = self.res
        self.collect()
        for decl in res.ast.decls:
            self.current = decl.name
            res.callees.setdefault(decl.name, set())
            res.const_uses.setdefault(decl.name, set())
            if isinstance(decl, ConstDecl):
                self.check_type(decl.ty, decl.span, allow_objects=False)
                self.scopes = []
                self.in_const = True
                self.expr(decl.value)
                self.in_const = False
                if res.consts.get(decl.name) is decl:
                    self.earlier_consts[decl.name] = res.binding_of[decl]
            elif isinstance(decl, FnDecl):
                self.callable_decl(decl, allow_objects=True)
                self.check_type(decl.ret_ty, decl.span, allow_objects=True)
            elif isinstance(decl, CellDecl):
                self.callable_decl(decl, allow_objects=False)
        self.current = None
        self.check_cycles()
        return res

    def collect(self):
        res = self.res
        seen = set()
        for decl in res.ast.decls:
            self.current = decl.name
            if decl.name in seen or decl.name in BUILTINS:
                self.error(DuplicateNameError(f"Duplicate declaration of {decl.name!r}.", decl.span))
                continue
            seen.add(decl.name)
            if isinstance(decl, EnumDecl):
                res.enums[decl.name] = decl
                if len(set(decl.variants)) != len(decl.variants):
                    self.error(DuplicateNameError(f"Duplicate variant in enum {decl.name!r}.", decl.span))
            elif isinstance(decl, ConstDecl):
                res.consts[decl.name] = decl
                self.const_bindings[decl.name] = self.new_binding(decl)
            elif isinstance(decl, FnDecl):
                res.fns[decl.name] = decl
            elif isinstance(decl, CellDecl):
                res.cells[decl.name] = decl

    def check_type(self, ty: str, span: Span, allow_objects: bool):
        if ty in VALUE_TYPES or ty in self.res.enums:
            return
        if allow_objects and ty in OBJECT_TYPES:
            return
        self.error(UndeclaredNameError(f"Unknown type {ty!r}.", span))

    def callable_decl(self, decl, allow_objects: bool):
        frame = {}
        for param in decl.params:
            self.check_type(param.ty, param.span, allow_objects)
            if param.name in frame:
                self.error(DuplicateNameError(f"Duplicate parameter name {param.name!r}.", param.span))
            frame[param.name] = self.new_binding(param)
        self.scopes = [frame]
        self.scope(decl.body)

    def scope(self, scope: Scope):
        self.scopes.append({})
        for stmt in scope.stmts:
            if isinstance(stmt, LetStmt):
                self.expr(stmt.value)
                # Bound after evaluating the value: `let x = x + 1;` refers to an outer x.
                self.scopes[-1][stmt.name] = self.new_binding(stmt)
            elif isinstance(stmt, ExprStmt):
                self.expr(stmt.expr)
            elif isinstance(stmt, BlockStmt):
                self.scope(stmt.scope)
            else:
                raise TypeError(f"Unexpected statement {stmt!r}.")
        if scope.tail is not None:
            self.expr(scope.tail)
        self.scopes.pop()

    def lookup(self, ref: NameRef):
        for frame in reversed(self.scopes):
            if ref.name in frame:
                self.res.binding_of[ref] = frame[ref.name]
                return
        # Constants may only refer to constants declared before them.
        consts = self.earlier_consts if self.in_const else self.const_bindings
        if ref.name in consts:
            self.res.binding_of[ref] = consts[ref.name]
            self.res.const_uses[self.current].add(ref.name)
            return
        self.error(UndeclaredNameError(f"Use of undeclared name {ref.name!r}.", ref.span))

    def expr(self, e: Expr):
        if isinstance(e, (IntLit, FloatLit, StrLit, BoolLit)):
            pass
        elif isinstance(e, NameRef):
            self.lookup(e)
        elif isinstance(e, EnumValue):
            enum = self.res.enums.get(e.enum)
            if enum is None:
                self.error(UndeclaredNameError(f"Unknown enum {e.enum!r}.", e.span))
            elif e.variant not in enum.variants:
                self.error(UndeclaredNameError(f"Enum {e.enum!r} has no variant {e.variant!r}.", e.span))
        elif isinstance(e, BinOp):
            self.expr(e.left)
            self.expr(e.right)
        elif isinstance(e, UnaryOp):
            self.expr(e.operand)
        elif isinstance(e, FieldAccess):
            self.expr(e.base)
        elif isinstance(e, Call):
            self.call(e)
        elif isinstance(e, IfExpr):
            self.expr(e.cond)
            self.scope(e.then)
            if isinstance(e.else_, Scope):
                self.scope(e.else_)
            elif e.else_ is not None:
                self.expr(e.else_)
        else:
            raise TypeError(f"Unexpected expression {e!r}.")

    def call(self, call: Call):
        res = self.res
        if call.func in BUILTINS:
            res.call_target[call] = CallTarget('builtin', call.func)
        elif call.func in res.fns:
            res.call_target[call] = CallTarget('fn', call.func)
            res.callees[self.current].add(call.func)
        elif call.func in res.cells:
            res.call_target[call] = CallTarget('cell', call.func)
            res.callees[self.current].add(call.func)
        else:
            self.error(UnknownCellError(f"No cell or function named {call.func!r}.", call.span))
        names = set()
        for kw in call.kwargs:
            if kw.name in names:
                self.error(DuplicateNameError(f"Duplicate argument {kw.name!r}.", kw.span))
            names.add(kw.name)
        for arg in call.args:
            self.expr(arg)
        for kw in call.kwargs:
            self.expr(kw.value)

    def check_cycles(self):
        """Reports every cell or function that is part of a call cycle."""
        res = self.res
        decls = {**res.fns, **res.cells}
        state = {}
        in_cycle = set()

        def visit(name, stack):
            state[name] = 'active'
            stack.append(name)
            for callee in sorted(res.callees.get(name, ())):
                if state.get(callee) == 'active':
                    in_cycle.update(stack[stack.index(callee):])
                elif callee not in state:
                    visit(callee, stack)
            stack.pop()
            state[name] = 'done'

        for name in decls:
            if name not in state:
                visit(name, [])

        for name in decls:
            if name in in_cycle:
                self.current = name
                self.error(HierarchyCycleError(f"{name!r} (indirectly) calls itself.", decls[name].span))
        self.current = None

@public
def resolve(ast: Ast) -> ResolvedAst:
    """Runs name resolution on ast. Never raises for program errors."""
    res = Resolver(ast).run()
    logger.debug("Resolved %d declarations, %d errors.", len(ast.decls), len(res.errors))
    return res

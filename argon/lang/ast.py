# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Syntax tree of Argon source files.

Nodes are immutable and compare by identity (eq=False), so that later
passes can attach information (binding ids, evaluation results) through
dictionaries keyed by node.
"""

from dataclasses import dataclass, field
from typing import Optional, Union
from public import public

from ..core.errors import Span

# Expressions

@public
@dataclass(frozen=True, eq=False)
class IntLit:
    value: int
    span: Span

@public
@dataclass(frozen=True, eq=False)
class FloatLit:
    value: float
    span: Span

@public
@dataclass(frozen=True, eq=False)
class StrLit:
    value: str
    span: Span

@public
@dataclass(frozen=True, eq=False)
class BoolLit:
    value: bool
    span: Span

@public
@dataclass(frozen=True, eq=False)
class EnumValue:
    """Enum variant reference ``Enum::Variant``."""
    enum: str
    variant: str
    span: Span

@public
@dataclass(frozen=True, eq=False)
class NameRef:
    """Reference to a let binding, parameter or constant."""
    name: str
    span: Span

@public
@dataclass(frozen=True, eq=False)
class BinOp:
    op: str #: One of + - * / == != < > <= >= && ||
    left: 'Expr'
    right: 'Expr'
    span: Span

@public
@dataclass(frozen=True, eq=False)
class UnaryOp:
    op: str #: '-' or '!'
    operand: 'Expr'
    span: Span

@public
@dataclass(frozen=True, eq=False)
class FieldAccess:
    base: 'Expr'
    field: str
    span: Span

@public
@dataclass(frozen=True, eq=False)
class KwArg:
    name: str
    value: 'Expr'
    span: Span

@public
@dataclass(frozen=True, eq=False)
class Call:
    """
    Call of a builtin (rect, eq, ...), a user function or a cell. Which of
    these is meant is decided by name resolution.
    """
    func: str
    args: tuple['Expr', ...]
    kwargs: tuple[KwArg, ...]
    span: Span

@public
@dataclass(frozen=True, eq=False)
class Scope:
    """Braced block of statements with an optional tail (result) expression."""
    stmts: tuple['Stmt', ...]
    tail: Optional['Expr']
    span: Span

@public
@dataclass(frozen=True, eq=False)
class IfExpr:
    cond: 'Expr'
    then: Scope
    else_: Union[Scope, 'IfExpr', None]
    span: Span

Expr = Union[IntLit, FloatLit, StrLit, BoolLit, EnumValue, NameRef, BinOp,
    UnaryOp, FieldAccess, Call, IfExpr]
public(Expr=Expr)

# Statements

@public
@dataclass(frozen=True, eq=False)
class LetStmt:
    name: str
    value: Expr
    span: Span

@public
@dataclass(frozen=True, eq=False)
class ExprStmt:
    expr: Expr
    span: Span
    semicolon: bool = True #: False for if-statements written without trailing ';'.

@public
@dataclass(frozen=True, eq=False)
class BlockStmt:
    scope: Scope
    span: Span

Stmt = Union[LetStmt, ExprStmt, BlockStmt]
public(Stmt=Stmt)

# Declarations

@public
@dataclass(frozen=True, eq=False)
class Param:
    name: str
    ty: str
    span: Span

@public
@dataclass(frozen=True, eq=False)
class EnumDecl:
    name: str
    variants: tuple[str, ...]
    span: Span

@public
@dataclass(frozen=True, eq=False)
class ConstDecl:
    name: str
    ty: str
    value: Expr
    span: Span

@public
@dataclass(frozen=True, eq=False)
class FnDecl:
    name: str
    params: tuple[Param, ...]
    ret_ty: str
    body: Scope
    span: Span

@public
@dataclass(frozen=True, eq=False)
class CellDecl:
    name: str
    params: tuple[Param, ...]
    body: Scope
    span: Span

Decl = Union[EnumDecl, ConstDecl, FnDecl, CellDecl]
public(Decl=Decl)

@public
@dataclass(frozen=True, eq=False)
class Ast:
    """Parsed source file."""
    decls: tuple[Decl, ...]
    source: str = field(default="", repr=False)

    def cells(self) -> dict[str, CellDecl]:
        return {d.name: d for d in self.decls if isinstance(d, CellDecl)}

    def cell(self, name: str) -> Optional[CellDecl]:
        return self.cells().get(name)

#: Value types accepted in parameter and constant declarations.
VALUE_TYPES = ('Float', 'Int', 'Bool', 'String')

public(VALUE_TYPES=VALUE_TYPES)

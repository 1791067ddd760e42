# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

import ast as pyast
from pathlib import Path
from lark import Lark, Transformer, v_args, UnexpectedToken, UnexpectedCharacters, UnexpectedInput
from public import public

from ..core.errors import ArgonSyntaxError, Span
from .ast import *

def format_error(code, line, column, window=2):
    """
    Formats a window of source lines around an error position.

    Args:
        code (str): Argon source code
        line (int): Error line number
        column (int): Error line column
        window (int): Number of lines shown before and after the error line
    Returns:
        Error message
    """
    lines = code.splitlines()
    error_line = line - 1
    start = max(error_line - window, 0)
    end = min(line + window, len(lines))

    error = []
    for i in range(start, end):
        prefix = ">" if i == error_line else " "
        error.append(f"{prefix} {i+1:4} | {lines[i]}")
        if i == error_line:
            error.append(f"     | {'':{column-1}}^")
    return "\n".join(error)

def span_of(meta) -> Span:
    if getattr(meta, 'empty', True):
        return Span(0, 0)
    return Span(meta.start_pos, meta.end_pos, meta.line, meta.column)

@v_args(meta=True)
class ArgonTransformer(Transformer):
    """Converts the Lark parse tree into :mod:`argon.lang.ast` nodes."""

    def start(self, meta, children):
        return tuple(children)

    # Declarations

    def enum_decl(self, meta, children):
        name, *variants = children
        return EnumDecl(str(name), tuple(str(v) for v in variants), span_of(meta))

    def const_decl(self, meta, children):
        name, ty, value = children
        return ConstDecl(str(name), str(ty), value, span_of(meta))

    def fn_decl(self, meta, children):
        name, params, ret_ty, body = children
        return FnDecl(str(name), params, str(ret_ty), body, span_of(meta))

    def cell_decl(self, meta, children):
        name, params, body = children
        return CellDecl(str(name), params, body, span_of(meta))

    def params(self, meta, children):
        return tuple(children)

    def param(self, meta, children):
        name, ty = children
        return Param(str(name), str(ty), span_of(meta))

    # Statements

    def scope(self, meta, children):
        stmts = [c for c in children if isinstance(c, (LetStmt, ExprStmt, BlockStmt))]
        tail = None
        if len(stmts) < len(children):
            tail = children[-1]
        elif stmts and isinstance(stmts[-1], ExprStmt) and not stmts[-1].semicolon:
            # A trailing if without ';' yields the value of the scope.
            tail = stmts.pop().expr
        return Scope(tuple(stmts), tail, span_of(meta))

    def let_stmt(self, meta, children):
        name, value = children
        return LetStmt(str(name), value, span_of(meta))

    def expr_stmt(self, meta, children):
        return ExprStmt(children[0], span_of(meta))

    def if_stmt(self, meta, children):
        return ExprStmt(children[0], span_of(meta), semicolon=False)

    def block_stmt(self, meta, children):
        return BlockStmt(children[0], span_of(meta))

    # Expressions

    def if_expr(self, meta, children):
        cond, then, *rest = children
        else_ = rest[0] if rest else None
        return IfExpr(cond, then, else_, span_of(meta))

    def _binop(op):
        def f(self, meta, children):
            left, right = children
            return BinOp(op, left, right, span_of(meta))
        return f

    or_op = _binop('||')
    and_op = _binop('&&')
    add = _binop('+')
    sub = _binop('-')
    mul = _binop('*')
    div = _binop('/')
    del _binop

    def compare(self, meta, children):
        left, op, right = children
        return BinOp(str(op), left, right, span_of(meta))

    def not_op(self, meta, children):
        return UnaryOp('!', children[0], span_of(meta))

    def neg(self, meta, children):
        return UnaryOp('-', children[0], span_of(meta))

    def field(self, meta, children):
        base, name = children
        return FieldAccess(base, str(name), span_of(meta))

    def int_lit(self, meta, children):
        return IntLit(int(children[0]), span_of(meta))

    def float_lit(self, meta, children):
        return FloatLit(float(children[0]), span_of(meta))

    def str_lit(self, meta, children):
        return StrLit(pyast.literal_eval(children[0]), span_of(meta))

    def true_lit(self, meta, children):
        return BoolLit(True, span_of(meta))

    def false_lit(self, meta, children):
        return BoolLit(False, span_of(meta))

    def enum_value(self, meta, children):
        enum, variant = children
        return EnumValue(str(enum), str(variant), span_of(meta))

    def name_ref(self, meta, children):
        return NameRef(str(children[0]), span_of(meta))

    def call(self, meta, children):
        name, *rest = children
        args = rest[0] if rest else []
        positional = tuple(a for a in args if not isinstance(a, KwArg))
        kwargs = tuple(a for a in args if isinstance(a, KwArg))
        return Call(str(name), positional, kwargs, span_of(meta))

    def args(self, meta, children):
        return list(children)

    def kwarg(self, meta, children):
        name, value = children
        return KwArg(str(name), value, span_of(meta))

def error_position(code, e) -> tuple[int, int, int]:
    """Returns (offset, line, column) of a Lark exception."""
    line, column = e.line, e.column
    if not isinstance(line, int) or line < 1:
        # Unexpected end of input without any preceding token.
        line = max(len(code.splitlines()), 1)
        column = 1
    if not isinstance(column, int) or column < 1:
        column = 1
    offset = e.pos_in_stream if isinstance(e.pos_in_stream, int) else len(code)
    return offset, line, column

def parse_with_errors(parser, code):
    """
    Parses an Argon string, converting Lark exceptions into
    :class:`ArgonSyntaxError` with a formatted source window.

    Args:
        parser: Argon Lark parser
        code (str): Argon source code
    Returns:
        Lark parse tree
    """
    try:
        return parser.parse(code)
    except UnexpectedToken as e:
        offset, line, column = error_position(code, e)
        if e.token.type == '$END':
            token_desc = "end of input"
        else:
            token_desc = f"`{e.token}`"
        expected = ", ".join(sorted(e.expected))
        error = format_error(code, line, column)
        error_message = (
            f"Syntax Error: Unexpected token {token_desc}\n\n"
            f"Expected one of: {expected}\n"
            f"At line {line}, column {column}:\n\n"
            f"{error}"
        )
        raise ArgonSyntaxError(error_message, Span(offset, offset, line, column)) from None

    except UnexpectedCharacters as e:
        offset, line, column = error_position(code, e)
        error = format_error(code, line, column)
        error_message = (
            f"Syntax Error: Unexpected character `{e.char}`\n\n"
            f"At line {line}, column {column}:\n\n"
            f"{error}"
        )
        raise ArgonSyntaxError(error_message, Span(offset, offset + 1, line, column)) from None

    # fallback
    except UnexpectedInput as e:
        offset, line, column = error_position(code, e)
        error = format_error(code, line, column)
        error_message = (
            "Syntax Error\n\n"
            f"At line {line}, column {column}:\n\n"
            f"{error}"
        )
        raise ArgonSyntaxError(error_message, Span(offset, offset, line, column)) from None

lark_fn = Path(__file__).parent / "argon.lark"
parser = Lark.open(
    lark_fn,
    parser="lalr",
    start="start",
    maybe_placeholders=False,
    propagate_positions=True,
)

@public
def parse(code: str) -> Ast:
    """
    Parses Argon source code into an :class:`Ast`.

    Raises:
        ArgonSyntaxError: if the code is not syntactically valid.
    """
    tree = parse_with_errors(parser, code)
    decls = ArgonTransformer().transform(tree)
    return Ast(decls, source=code)

@public
def parse_file(path) -> Ast:
    with open(path) as f:
        return parse(f.read())

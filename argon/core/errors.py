# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy of the Argon compiler.

Errors raised while evaluating a cell are caught at the cell boundary and
collected in the compile output, together with whatever geometry did
resolve. Only collaborator steps (GDS export, configuration) raise to the
caller.
"""

from dataclasses import dataclass
from typing import Optional
from public import public

@public
@dataclass(frozen=True)
class Span:
    """Source location of a syntax tree node."""
    start: int #: Start offset (inclusive) into the source text.
    end: int #: End offset (exclusive) into the source text.
    line: int = 0 #: 1-based line number of start.
    column: int = 0 #: 1-based column number of start.

    def __str__(self):
        return f"{self.line}:{self.column}"

    def to_dict(self) -> dict:
        return {'start': self.start, 'end': self.end, 'line': self.line, 'column': self.column}

@public
class ArgonError(Exception):
    """Base class of all compiler errors. Carries an optional source span."""
    kind = "error"

    def __init__(self, message: str, span: Optional[Span] = None):
        super().__init__(message)
        self.message = message
        self.span = span

    def __str__(self):
        if self.span is None:
            return self.message
        return f"{self.message} (at {self.span})"

    def to_dict(self) -> dict:
        return {
            'kind': self.kind,
            'type': type(self).__name__,
            'message': self.message,
            'span': None if self.span is None else self.span.to_dict(),
        }

@public
class ArgonSyntaxError(ArgonError):
    kind = "syntax"

# Name resolution:

@public
class ResolveError(ArgonError):
    kind = "resolve"

@public
class UndeclaredNameError(ResolveError):
    """A name was used before its declaration (or never declared)."""

@public
class DuplicateNameError(ResolveError):
    """Duplicate argument, parameter or declaration name."""

@public
class UnknownCellError(ResolveError):
    """No cell (or function) with the requested name exists."""

@public
class HierarchyCycleError(ResolveError):
    """Cells instantiate each other (or functions call each other) cyclically."""

# Evaluation:

@public
class EvalError(ArgonError):
    kind = "eval"

@public
class EvalTypeError(EvalError):
    """A value of the wrong kind was used in a context."""

@public
class NonlinearExpressionError(EvalError):
    """Product or quotient of two expressions with unsolved variables."""

@public
class ArgumentError(EvalError):
    """Missing, unexpected or duplicate call arguments."""

@public
class UnresolvedValueError(EvalError):
    """A concrete value was required but depends on unsolved variables."""

@public
class InconsistentIfBranchesError(EvalError):
    """The branches of an if expression evaluate to values of different kinds."""

# Solver results:

@public
class SolverDiagnostic(ArgonError):
    kind = "solver"

@public
class InconsistentConstraintError(SolverDiagnostic):
    """Constraint whose residual is non-zero after all substitutions."""

@public
class UnderconstrainedError(SolverDiagnostic):
    """Variables left without a unique solution."""

@public
class InvalidRectError(SolverDiagnostic):
    """Solved rectangle with x0 > x1 or y0 > y1."""

@public
class RoundingWarning(SolverDiagnostic):
    """Solved value that does not lie on the manufacturing grid."""
    kind = "warning"

# Collaborators:

@public
class HierarchyError(ArgonError):
    pass

@public
class GdsExportError(ArgonError):
    pass

@public
class ConfigError(ArgonError):
    pass

# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Linear equality constraint solver for layout coordinates.

Variables (:class:`Var`) are unknown real-valued coordinates. Constraints are
:class:`LinearExpr` objects asserted to equal zero. The :class:`Solver`
resolves them in two ways:

- back-substitution: whenever a constraint is left with a single unsolved
  variable, that variable is solved and its value is propagated to every
  other constraint mentioning it,
- batched least squares (:meth:`Solver.solve`): the remaining coupled
  system is factored (SVD or pivoted QR) and every variable that is uniquely
  determined by the row space of the system is committed.
"""

import logging
import math
from dataclasses import dataclass
from public import public
import numpy as np
import scipy.linalg

logger = logging.getLogger(__name__)

#: Equality / rank tolerance.
EPSILON = 1e-8
#: Manufacturing grid step that solved values are rounded to.
ROUND_STEP = 0.1

ConstraintId = int

public(EPSILON=EPSILON, ROUND_STEP=ROUND_STEP, ConstraintId=ConstraintId)

@public
class SolverError(Exception):
    pass

@public
@dataclass(frozen=True, order=True)
class Var:
    """
    Opaque handle of a scalar variable owned by exactly one :class:`Solver`.
    """
    id: int

    def __repr__(self):
        return f"Var({self.id})"

    def __str__(self):
        return f"v{self.id}"

    def expr(self) -> 'LinearExpr':
        return LinearExpr.from_var(self)

def coerce_expr(x) -> 'LinearExpr':
    if isinstance(x, LinearExpr):
        return x
    elif isinstance(x, Var):
        return LinearExpr.from_var(x)
    elif isinstance(x, (float, int)) and not isinstance(x, bool):
        return LinearExpr.const(x)
    else:
        raise TypeError(f"Cannot use {type(x).__name__} as linear expression.")

@public
@dataclass(frozen=True)
class LinearExpr:
    """
    Represents the linear expression:
    (sum over n of coefficient_n * variable_n) + constant

    The same variable may appear multiple times in coeffs; the entries are
    logically summed.
    """

    coeffs: tuple[tuple[float, Var], ...] = () #: Tuple of (coefficient, variable) pairs.
    constant: float = 0.0 #: Constant value of the expression.

    @classmethod
    def from_var(cls, var: Var, coeff: float = 1.0) -> 'LinearExpr':
        return cls(((float(coeff), var),), 0.0)

    @classmethod
    def const(cls, value: float) -> 'LinearExpr':
        return cls((), float(value))

    def __repr__(self):
        l = [f'{c}*{v}' for c, v in self.coeffs]
        l.append(repr(self.constant))
        return f"LinearExpr({' + '.join(l)})"

    def __add__(self, other):
        try:
            other = coerce_expr(other)
        except TypeError:
            return NotImplemented
        return LinearExpr(self.coeffs + other.coeffs, self.constant + other.constant)

    def __radd__(self, other):
        return self.__add__(other)

    def __neg__(self):
        return LinearExpr(tuple((-c, v) for c, v in self.coeffs), -self.constant)

    def __sub__(self, other):
        try:
            other = coerce_expr(other)
        except TypeError:
            return NotImplemented
        return self + (-other)

    def __rsub__(self, other):
        return (-self).__add__(other)

    def __mul__(self, other):
        if isinstance(other, bool) or not isinstance(other, (float, int)):
            return NotImplemented
        return LinearExpr(
            tuple((c * other, v) for c, v in self.coeffs),
            self.constant * other,
        )

    def __rmul__(self, other):
        return self.__mul__(other)

    def __truediv__(self, other):
        if isinstance(other, bool) or not isinstance(other, (float, int)):
            return NotImplemented
        return LinearExpr(
            tuple((c / other, v) for c, v in self.coeffs),
            self.constant / other,
        )

    def variables(self) -> set[Var]:
        """Returns all variables referenced, including those with zero coefficient."""
        return {v for _, v in self.coeffs}

    def is_constant(self) -> bool:
        """True if no variable with a non-zero coefficient remains."""
        return not self.merged().coeffs

    def merged(self) -> 'LinearExpr':
        """
        Returns an equivalent expression in which every variable appears at
        most once and zero coefficients are dropped. Variable order follows
        the first occurrence.
        """
        coeff_of_var = {}
        for c, v in self.coeffs:
            coeff_of_var[v] = coeff_of_var.get(v, 0.0) + c
        return LinearExpr(
            tuple((c, v) for v, c in coeff_of_var.items() if abs(c) > EPSILON),
            self.constant,
        )

    def free_vars(self, solved: dict[Var, float]) -> set[Var]:
        return {v for c, v in self.merged().coeffs if v not in solved}

    def simplify(self, solved: dict[Var, float]) -> 'LinearExpr':
        """
        Substitutes the values of solved variables into the constant and
        removes entries with zero coefficient. Applying simplify twice with
        the same table yields the same result as applying it once.
        """
        coeffs = []
        constant = self.constant
        for c, v in self.coeffs:
            if abs(c) <= EPSILON:
                continue
            try:
                value = solved[v]
            except KeyError:
                coeffs.append((c, v))
            else:
                constant += c * value
        return LinearExpr(tuple(coeffs), constant)

    def row(self, idx_of_var: dict[Var, int], n: int) -> np.ndarray:
        """Dense coefficient row over the variables in idx_of_var."""
        out = np.zeros(n, dtype=np.float64)
        for c, v in self.coeffs:
            out[idx_of_var[v]] += c
        return out

def round_to_grid(x: float, step: float) -> float:
    # round half away from zero, Python's round() would round half to even.
    inv = 1.0 / step
    q = x * inv
    return math.copysign(math.floor(abs(q) + 0.5), q) / inv

def is_zero(x: float, tol: float = EPSILON) -> bool:
    return abs(x) <= tol

@public
class Solver:
    """
    Owns all variables and constraints of one compilation unit (one cell).

    Args:
        grid: Manufacturing grid step. Committed values are rounded to
            multiples of it.
        method: Factorization used by :meth:`solve`, either 'svd' or 'qr'.
        rounding_tolerance: A committed value farther than this from the
            grid is kept unrounded and recorded in
            :attr:`invalid_rounding`. Defaults to grid/1000.
    """
    methods = ('svd', 'qr')

    def __init__(self, grid: float = ROUND_STEP, method: str = 'svd', rounding_tolerance: float = None):
        if method not in self.methods:
            raise SolverError(f"Unknown solve method {method!r}, expected one of {self.methods}.")
        if grid <= 0:
            raise SolverError("grid must be positive.")
        self.grid = grid
        self.method = method
        self.rounding_tolerance = grid * 1e-3 if rounding_tolerance is None else rounding_tolerance
        self.next_var = 0
        self.next_constraint = 0
        self.constraints: dict[ConstraintId, LinearExpr] = {}
        self.var_to_constraints: dict[Var, set[ConstraintId]] = {}
        self.solved_vars: dict[Var, float] = {}
        self._inconsistent: set[ConstraintId] = set()
        self.invalid_rounding: set[Var] = set()

    def __repr__(self):
        return (f"<{type(self).__name__} vars={self.next_var} solved={len(self.solved_vars)} "
            f"pending={len(self.constraints)} inconsistent={len(self._inconsistent)}>")

    @property
    def n_vars(self) -> int:
        return self.next_var

    def new_var(self) -> Var:
        """Allocates a fresh, unsolved variable."""
        var = Var(self.next_var)
        self.next_var += 1
        return var

    def fully_solved(self) -> bool:
        """Returns True if all variables have been solved."""
        return len(self.solved_vars) == self.next_var

    def inconsistent_constraints(self) -> set[ConstraintId]:
        return self._inconsistent

    def unsolved_vars(self) -> set[Var]:
        return {Var(i) for i in range(self.next_var) if Var(i) not in self.solved_vars}

    def value_of(self, var: Var) -> float | None:
        return self.solved_vars.get(var)

    def is_solved(self, var: Var) -> bool:
        return var in self.solved_vars

    def eval_expr(self, expr: LinearExpr) -> float | None:
        """Value of expr, or None if any referenced variable is unsolved."""
        expr = coerce_expr(expr).simplify(self.solved_vars)
        if expr.coeffs:
            return None
        return expr.constant

    def _commit(self, var: Var, value: float):
        rounded = round_to_grid(value, self.grid)
        if abs(rounded - value) > self.rounding_tolerance:
            logger.warning("Value %r of %s is not on the %r grid.", value, var, self.grid)
            self.invalid_rounding.add(var)
            self.solved_vars[var] = value
        else:
            self.solved_vars[var] = rounded

    def constrain_eq0(self, expr: LinearExpr) -> ConstraintId:
        """
        Constrains the value of expr to 0. Single-variable constraints are
        solved immediately and back-substituted. The returned id is valid
        even if the constraint turns out to be inconsistent.
        """
        expr = coerce_expr(expr)
        cid = self.next_constraint
        self.next_constraint += 1
        for var in expr.variables():
            if var.id >= self.next_var or var.id < 0:
                raise SolverError(f"{var!r} was not allocated by this solver.")
            self.var_to_constraints.setdefault(var, set()).add(cid)
        self.constraints[cid] = expr
        self._back_substitute([cid])
        return cid

    def _discard(self, cid: ConstraintId):
        expr = self.constraints.pop(cid)
        for var in expr.variables():
            try:
                self.var_to_constraints[var].discard(cid)
            except KeyError:
                pass

    def _simplify(self, cid: ConstraintId) -> LinearExpr:
        """
        Replaces constraint cid by its simplification against the solved
        variables and unlinks it from the variables that were folded away.
        """
        before = self.constraints[cid]
        expr = before.simplify(self.solved_vars).merged()
        self.constraints[cid] = expr
        for var in before.variables() - expr.variables():
            self.var_to_constraints.get(var, set()).discard(cid)
        return expr

    def _reduce(self, cid: ConstraintId, slack: float = 0.0) -> LinearExpr:
        """
        Simplifies constraint cid against the solved variables. A constraint
        left without free variables is consumed: it is discarded and, if its
        residual exceeds slack plus a relative EPSILON, recorded as
        inconsistent.
        """
        before = self.constraints[cid]
        expr = self._simplify(cid)
        if not expr.coeffs:
            magnitude = abs(before.constant) + sum(abs(c * self.solved_vars.get(v, 0.0)) for c, v in before.coeffs)
            if not is_zero(expr.constant, slack + EPSILON * max(1.0, magnitude)):
                self._inconsistent.add(cid)
            self._discard(cid)
        return expr

    def _back_substitute(self, worklist: list[ConstraintId]):
        while worklist:
            cid = worklist.pop()
            if cid not in self.constraints:
                continue
            expr = self._reduce(cid)
            if not expr.coeffs:
                continue
            if len(expr.coeffs) != 1:
                continue
            coeff, var = expr.coeffs[0]
            self._discard(cid)
            self._commit(var, -expr.constant / coeff)
            worklist.extend(self.var_to_constraints.get(var, ()))

    def _factor(self, A: np.ndarray, b: np.ndarray):
        """
        Returns (x, basis) where x is a least squares solution of A x = b and
        basis is an orthonormal basis (as columns) of the row space of A.
        """
        if self.method == 'svd':
            u, s, vt = np.linalg.svd(A, full_matrices=False)
            rank = int(np.sum(s > EPSILON))
            basis = vt[:rank].T
            x = basis @ ((u[:, :rank].T @ b) / s[:rank])
        else:
            q, r, _ = scipy.linalg.qr(A.T, mode='economic', pivoting=True)
            diag = np.abs(np.diag(r))
            rank = int(np.sum(diag > EPSILON))
            basis = q[:, :rank]
            x, *_ = scipy.linalg.lstsq(A, b, cond=EPSILON)
        return x, basis

    def solve(self):
        """
        Solves for as many variables as possible and substitutes their
        values into existing constraints. Deletes constraints that no longer
        contain unsolved variables.
        """
        if not self.constraints:
            return

        for cid in list(self.constraints):
            self._simplify(cid)

        ids = list(self.constraints)
        # Rows that hold for the unrounded solution may be off by the
        # rounding of their variables once committed.
        slack = dict.fromkeys(ids, 0.0)
        free = sorted(set().union(*(self.constraints[cid].variables() for cid in ids)))
        if free:
            idx_of_var = {var: i for i, var in enumerate(free)}
            A = np.array([self.constraints[cid].row(idx_of_var, len(free)) for cid in ids])
            b = np.array([-self.constraints[cid].constant for cid in ids])

            x, basis = self._factor(A, b)
            logger.debug("Batched solve: %d constraints, %d variables, rank %d.",
                len(ids), len(free), basis.shape[1])

            scale = max(1.0, np.abs(b).max(), np.abs(A).max() * np.abs(x).max(initial=0.0))
            residual = A @ x - b
            for cid, row, res in zip(ids, A, residual):
                if is_zero(res, EPSILON * scale):
                    slack[cid] = self.rounding_tolerance * float(np.abs(row).sum())
                else:
                    self._inconsistent.add(cid)

            # Variable i is uniquely determined iff the unit vector e_i lies
            # in the row space, i.e. its projection onto the basis has norm 1.
            recons = np.sum(basis * basis, axis=1)
            for var, rec, value in zip(free, recons, x):
                if abs(rec - 1.0) <= EPSILON * 1e2:
                    self._commit(var, float(value))

        for cid in ids:
            self._reduce(cid, slack[cid])

        # Newly solved values can reduce remaining constraints to a single variable:
        self._back_substitute(list(self.constraints))

    def force_solution(self):
        """
        Pins every still unsolved variable to 0, one at a time, re-running
        :meth:`solve` after each. Used when some concrete layout is wanted
        even for an underspecified design.
        """
        for i in range(self.next_var):
            var = Var(i)
            if var in self.solved_vars:
                continue
            self.constrain_eq0(LinearExpr.from_var(var))
            self.solve()

"""
MalleableEngine — Linear Program Abstraction
Declare variables, constraints and an objective; solve; read the assignment.

`LinearProgram` records the model independently of any solver. Backends
implement `_solve`. `GlopLinearProgram` hands the model to Google OR-Tools
GLOP through pywraplp. Each instance is solved once and keeps no state
between programs.
"""

import time
from abc import ABC, abstractmethod
from typing import Optional

from ortools.linear_solver import pywraplp

from .models import (
    VarId, LinearExpression, Relation, Direction, LpStatus, LpResult, normalize,
)
from problem.errors import SolverError


class LinearProgram(ABC):
    """A continuous linear program under construction."""

    def __init__(self, name: str = "lp", time_limit_seconds: Optional[float] = None):
        self.name = name
        self.time_limit_seconds = time_limit_seconds
        self.lower: list[float] = []
        self.upper: list[Optional[float]] = []
        self.var_names: list[str] = []
        self.constraints: list[tuple[dict[VarId, float], Relation, float]] = []
        self.objective: dict[VarId, float] = {}
        self.direction = Direction.MINIMIZE

    @property
    def num_variables(self) -> int:
        return len(self.lower)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    def add_variable(self, lower: float = 0.0, upper: Optional[float] = None, name: str = "") -> VarId:
        if upper is not None and upper < lower:
            raise ValueError(f"Variable '{name}' has upper bound {upper} below lower bound {lower}")
        var = len(self.lower)
        self.lower.append(float(lower))
        self.upper.append(None if upper is None else float(upper))
        self.var_names.append(name or f"x{var}")
        return var

    def add_constraint(self, expr: LinearExpression, relation: Relation, bound: float) -> int:
        terms = normalize(expr)
        for var in terms:
            if not 0 <= var < self.num_variables:
                raise ValueError(f"Unknown variable id {var}")
        self.constraints.append((terms, Relation(relation), float(bound)))
        return len(self.constraints) - 1

    def set_objective(self, expr: LinearExpression, direction: Direction = Direction.MINIMIZE) -> None:
        self.objective = normalize(expr)
        self.direction = Direction(direction)

    def solve(self) -> LpResult:
        """Solve the program. Raises SolverError on anything but optimal/infeasible."""
        t0 = time.time()
        result = self._solve()
        return result.model_copy(update={"solve_time_seconds": round(time.time() - t0, 4)})

    @abstractmethod
    def _solve(self) -> LpResult:
        """Backend hook."""


class GlopLinearProgram(LinearProgram):
    """LinearProgram backed by OR-Tools GLOP."""

    backend = "GLOP"

    _STATUS_NAMES = {
        pywraplp.Solver.OPTIMAL: "OPTIMAL",
        pywraplp.Solver.FEASIBLE: "FEASIBLE",
        pywraplp.Solver.INFEASIBLE: "INFEASIBLE",
        pywraplp.Solver.UNBOUNDED: "UNBOUNDED",
        pywraplp.Solver.ABNORMAL: "ABNORMAL",
        pywraplp.Solver.MODEL_INVALID: "MODEL_INVALID",
        pywraplp.Solver.NOT_SOLVED: "NOT_SOLVED",
    }

    def _solve(self) -> LpResult:
        solver = pywraplp.Solver.CreateSolver(self.backend)
        if solver is None:
            raise SolverError("UNAVAILABLE", backend=self.backend)
        if self.time_limit_seconds is not None:
            solver.SetTimeLimit(int(self.time_limit_seconds * 1000))  # ms

        infinity = solver.infinity()
        variables = [
            solver.NumVar(lo, infinity if hi is None else hi, name)
            for lo, hi, name in zip(self.lower, self.upper, self.var_names)
        ]

        for index, (terms, relation, bound) in enumerate(self.constraints):
            if relation == Relation.LE:
                ct = solver.Constraint(-infinity, bound, f"c{index}")
            elif relation == Relation.GE:
                ct = solver.Constraint(bound, infinity, f"c{index}")
            else:
                ct = solver.Constraint(bound, bound, f"c{index}")
            for var, coef in terms.items():
                ct.SetCoefficient(variables[var], coef)

        objective = solver.Objective()
        for var, coef in self.objective.items():
            objective.SetCoefficient(variables[var], coef)
        if self.direction == Direction.MAXIMIZE:
            objective.SetMaximization()
        else:
            objective.SetMinimization()

        status = solver.Solve()

        if status == pywraplp.Solver.OPTIMAL:
            return LpResult(
                status=LpStatus.OPTIMAL,
                objective_value=objective.Value(),
                values=[v.solution_value() for v in variables],
            )
        if status == pywraplp.Solver.INFEASIBLE:
            return LpResult(status=LpStatus.INFEASIBLE)
        raise SolverError(
            self._STATUS_NAMES.get(status, str(status)),
            backend=self.backend,
            variables=self.num_variables,
            constraints=self.num_constraints,
        )

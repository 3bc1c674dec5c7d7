"""
MalleableEngine — Linear Program Models
Backend-independent vocabulary of the LP abstraction.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Mapping, Optional, Tuple, Union
from pydantic import BaseModel, Field


VarId = int

# A linear expression: {var: coefficient} or [(var, coefficient), ...]
LinearExpression = Union[Mapping[VarId, float], Iterable[Tuple[VarId, float]]]


class Relation(str, Enum):
    LE = "<="
    EQ = "=="
    GE = ">="


class Direction(str, Enum):
    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"


class LpStatus(str, Enum):
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"


class LpResult(BaseModel):
    """Outcome of a solve: optimal with an assignment, or infeasible."""
    status: LpStatus
    objective_value: Optional[float] = None
    values: list[float] = Field(default_factory=list, description="Variable values indexed by VarId")
    solve_time_seconds: float = 0.0

    @property
    def is_optimal(self) -> bool:
        return self.status == LpStatus.OPTIMAL

    def value(self, var: VarId) -> float:
        return self.values[var]


def normalize(expr: LinearExpression) -> dict[VarId, float]:
    """Merge a linear expression into a {var: coefficient} dict."""
    items = expr.items() if isinstance(expr, Mapping) else expr
    merged: dict[VarId, float] = {}
    for var, coef in items:
        merged[var] = merged.get(var, 0.0) + float(coef)
    return merged

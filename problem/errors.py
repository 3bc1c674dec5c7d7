"""
MalleableEngine — Error Definitions

  ValidationError       malformed instance; raised before any engine runs
  CyclicPrecedenceError precedence relation contains a cycle
  SolverError           the LP backend failed (distinct from infeasibility)
  InfeasibleError       no feasible model at any searched makespan
  RenderError           a schedule image could not be written
"""

from typing import Any, Dict, Optional


class SchedulingError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(SchedulingError):
    """Raised when an instance is malformed."""


class CyclicPrecedenceError(ValidationError):
    """Raised when the precedence relation is not a strict partial order."""

    def __init__(self, job_ids: list, **details):
        shown = ", ".join(str(j) for j in job_ids[:10])
        suffix = ", ..." if len(job_ids) > 10 else ""
        super().__init__(
            f"Precedence constraints contain a cycle through jobs [{shown}{suffix}]",
            {"jobs_on_cycle": len(job_ids), **details},
        )
        self.job_ids = job_ids


class SolverError(SchedulingError):
    """Raised when the external LP solver fails for a reason other than infeasibility."""

    def __init__(self, status: str, backend: str = "GLOP", **details):
        super().__init__(
            f"LP backend {backend} returned {status}",
            {"status": status, "backend": backend, **details},
        )
        self.status = status
        self.backend = backend


class InfeasibleError(SchedulingError):
    """Raised when an LP-based engine finds no feasible model within its bounds."""

    def __init__(self, engine: str, lower_bound: float, upper_bound: float, **details):
        super().__init__(
            f"{engine}: no feasible relaxation between makespan {lower_bound:g} and {upper_bound:g}",
            {"engine": engine, "lower_bound": lower_bound, "upper_bound": upper_bound, **details},
        )
        self.engine = engine
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound


class RenderError(SchedulingError):
    """Raised when a rendered schedule cannot be written."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Could not write schedule image to {path}: {reason}", {"path": path})
        self.path = path
        self.reason = reason

"""
MalleableEngine — Request / Response Models
Pydantic schemas of the solve and validate entry points.

These models are the contract shared by the CLI and the HTTP API:
  - Self-documenting (callers read the schema to know what to send)
  - Strict where it is cheap (shape and ranges); structural checks such as
    cycles and unknown job ids are left to `problem.load`
"""

from __future__ import annotations

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from problem.models import Job, Precedence, ScheduledJob


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class EngineType(str, Enum):
    """Which engine computes the schedule."""
    DP = "dp"
    LP = "lp"
    ILP = "ilp"


class SolverStatus(str, Enum):
    """Status of the solve result."""
    SOLVED = "solved"
    INFEASIBLE = "infeasible"
    INVALID = "invalid"
    ERROR = "error"


# ─────────────────────────────────────────────
# Input Models
# ─────────────────────────────────────────────

class SolveRequest(BaseModel):
    """
    Complete scheduling request.

    Send malleable jobs (one duration per processor count 1..m), the
    precedence pairs between them and the number of processors. The chosen
    engine decides an allotment and a start time for every job.
    """
    jobs: list[Job] = Field(..., min_length=1, max_length=2000, description="Jobs to schedule")
    constraints: list[Precedence] = Field(default_factory=list, description="Precedence pairs (by job id)")
    processor_count: int = Field(..., ge=1, le=512, description="Number of identical processors (m)")
    omega: Optional[int] = Field(None, ge=1, description="Declared width bound, used by the DP engine")
    engine: EngineType = Field(EngineType.DP, description="Engine to run")
    compact: bool = Field(False, description="Close idle gaps afterwards (lp and ilp only)")
    epsilon: Optional[float] = Field(
        None, gt=0, le=1,
        description="Relative tolerance of the LP engine's makespan search. None = configured default.",
    )
    max_slices: Optional[int] = Field(
        None, ge=4, le=2000,
        description="Slice budget of the relaxation engine. None = configured default.",
    )


# ─────────────────────────────────────────────
# Output Models
# ─────────────────────────────────────────────

class ScheduleMetrics(BaseModel):
    """Aggregate metrics for the entire schedule."""
    makespan: int = Field(..., description="Total schedule length (end of last job)")
    num_jobs: int = Field(..., ge=0)
    processor_count: int = Field(..., ge=1)
    utilization_pct: float = Field(..., ge=0, le=100, description="Busy processor-time / (m × makespan)")
    idle_time: int = Field(..., ge=0, description="Idle processor-time before the makespan")
    lower_bound: int = Field(..., ge=0, description="Trivial makespan lower bound of the instance")
    solve_time_seconds: float = Field(0.0, description="Engine runtime")


class GanttEntry(BaseModel):
    """A single entry for Gantt chart rendering."""
    job_id: int
    allotment: int
    start: int
    end: int
    label: str = Field(..., description="Display label for the job")


class SolveResponse(BaseModel):
    """
    Complete solver response.

    Contains the schedule, aggregate metrics and Gantt data.
    """
    status: SolverStatus
    engine: EngineType
    message: str = Field(..., description="Human-readable status message")
    schedule: list[ScheduledJob] = Field(default_factory=list, description="Placed jobs")
    metrics: Optional[ScheduleMetrics] = None
    gantt: list[GanttEntry] = Field(default_factory=list, description="Gantt chart data for rendering")


# ─────────────────────────────────────────────
# Validation Request/Response
# ─────────────────────────────────────────────

class ValidationViolation(BaseModel):
    """A single constraint violation found in a schedule."""
    violation_type: str = Field(..., description="Type: precedence, capacity, allotment, consistency, etc.")
    severity: str = Field("error", description="error or warning")
    description: str
    affected_jobs: list[int] = Field(default_factory=list)


class ValidateRequest(BaseModel):
    """Validate an existing schedule against an instance."""
    schedule: list[ScheduledJob] = Field(..., min_length=1)
    jobs: list[Job] = Field(..., min_length=1)
    constraints: list[Precedence] = Field(default_factory=list)
    processor_count: int = Field(..., ge=1)


class ValidateResponse(BaseModel):
    """Validation result."""
    is_valid: bool
    num_violations: int = 0
    violations: list[ValidationViolation] = Field(default_factory=list)
    metrics: Optional[ScheduleMetrics] = None
    improvement_suggestions: list[str] = Field(default_factory=list)

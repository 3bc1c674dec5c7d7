"""
MalleableEngine — Solve Dispatcher
Single entry point shared by the CLI and the HTTP API.

  1. Validate and load the instance
  2. Run the requested engine (dp, lp or ilp)
  3. Optionally compact the LP-based schedules
  4. Compute metrics and Gantt data

Engine failures map onto response statuses: malformed input is `invalid`,
an infeasible relaxation is `infeasible`, a failing LP backend is `error`.
"""

import time
from typing import Optional

import dp
import ilp
import lp
from linprog import GlopLinearProgram
from problem.compaction import compact as compact_schedule
from problem.errors import InfeasibleError, SolverError, ValidationError
from problem.graph import makespan_lower_bound
from problem.loader import load
from problem.models import Instance, Schedule
from runtime.logging import get_logger

from .models import (
    SolveRequest, SolveResponse, ScheduleMetrics, GanttEntry,
    SolverStatus, EngineType,
)

logger = get_logger("malleable.solver")


def run_engine(
    instance: Instance,
    engine: EngineType,
    compact: bool = False,
    epsilon: Optional[float] = None,
    max_slices: Optional[int] = None,
    lp_factory=GlopLinearProgram,
) -> Schedule:
    """Run one engine on a loaded instance. Engine errors propagate."""
    engine = EngineType(engine)
    if engine == EngineType.DP:
        if compact:
            logger.info("compaction skipped for dp schedules")
        return dp.schedule(instance)

    if engine == EngineType.LP:
        result = lp.schedule(instance, epsilon=epsilon, lp_factory=lp_factory)
    else:
        result = ilp.schedule(instance, max_slices=max_slices, lp_factory=lp_factory)
    if compact:
        result = compact_schedule(instance, result)
    return result


def summary_line(engine: EngineType, schedule: Schedule) -> str:
    """One CSV result line: engine tag, job count, processor count, makespan."""
    return f"{EngineType(engine).value},{len(schedule.jobs)},{schedule.processor_count},{schedule.makespan}"


def compute_metrics(instance: Instance, schedule: Schedule, solve_time: float = 0.0) -> ScheduleMetrics:
    makespan = schedule.makespan
    capacity = instance.processor_count * makespan
    return ScheduleMetrics(
        makespan=makespan,
        num_jobs=len(schedule.jobs),
        processor_count=instance.processor_count,
        utilization_pct=round(schedule.busy_time() / capacity * 100, 1) if capacity > 0 else 0,
        idle_time=max(schedule.idle_time(), 0),
        lower_bound=makespan_lower_bound(instance),
        solve_time_seconds=round(solve_time, 3),
    )


def gantt_entries(schedule: Schedule) -> list[GanttEntry]:
    return [
        GanttEntry(
            job_id=sj.job_id,
            allotment=sj.allotment,
            start=sj.start,
            end=sj.end,
            label=f"J{sj.job_id} ×{sj.allotment}",
        )
        for sj in schedule.sorted_by_start()
    ]


def solve(request: SolveRequest, lp_factory=GlopLinearProgram) -> SolveResponse:
    """
    Solve a malleable scheduling request.

    Never raises for engine-level failures; the outcome is carried in
    `status` and `message`.
    """
    t0 = time.time()
    engine = request.engine

    try:
        instance = load(request.jobs, request.constraints, request.processor_count, request.omega)
    except ValidationError as e:
        logger.info("request rejected", reason=str(e))
        return SolveResponse(status=SolverStatus.INVALID, engine=engine, message=str(e))

    try:
        result = run_engine(
            instance,
            engine,
            compact=request.compact,
            epsilon=request.epsilon,
            max_slices=request.max_slices,
            lp_factory=lp_factory,
        )
    except InfeasibleError as e:
        return SolveResponse(status=SolverStatus.INFEASIBLE, engine=engine, message=str(e))
    except SolverError as e:
        logger.info("lp backend failed", engine=engine.value, reason=str(e))
        return SolveResponse(status=SolverStatus.ERROR, engine=engine, message=f"Solver error: {e}")

    solve_time = time.time() - t0
    metrics = compute_metrics(instance, result, solve_time)
    return SolveResponse(
        status=SolverStatus.SOLVED,
        engine=engine,
        message=(
            f"Schedule found by the {engine.value} engine in {solve_time:.2f}s. "
            f"Makespan: {metrics.makespan} time units (lower bound {metrics.lower_bound})."
        ),
        schedule=sorted(result.jobs, key=lambda sj: sj.index),
        metrics=metrics,
        gantt=gantt_entries(result),
    )

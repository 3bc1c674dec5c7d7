"""
MalleableEngine — Relaxation Engine ("ILP")
Time-indexed LP relaxation solved once, followed by threshold rounding.

Time is cut into slices of length delta. A variable x[j, k, s] is the share of
job j started in slice s on k processors. The relaxation bounds per-slice
processor usage, keeps every successor's started share behind its
predecessor's completed share, and minimizes the fractional makespan (plus
a small completion-time term that steers ties towards early, fast starts).

No integer program is ever solved: the name is historical.

Rounding:
  - allotment: largest k whose upper-tail share  sum_{k' >= k} y[j, k']
    reaches RHO; a second candidate caps it at allotment_cap(m)
  - release:   first slice by which half of the job has started, times delta
then greedy list scheduling, with the hints as release times or only as
queue priorities. The best candidate seeds an allotment descent. Everything
runs once per processor prefix (problem.prefixes).
"""

import math
import time
from functools import reduce
from typing import Callable, Optional

from linprog import Direction, GlopLinearProgram, LinearProgram, Relation
from problem.errors import InfeasibleError
from problem.graph import makespan_lower_bound, transitive_reduction
from problem.list_scheduler import improve_allotments, list_schedule, list_schedule_length, min_work_allotments
from problem.models import Instance, Schedule
from problem.prefixes import best_over_prefixes
from runtime.config import get_settings
from runtime.logging import get_logger

logger = get_logger("malleable.ilp")

LpFactory = Callable[..., LinearProgram]

RHO = 0.430991
_EPS = 1e-9


# ─── Time discretization ───

def slice_length(instance: Instance, max_slices: int) -> int:
    """gcd of all distinct durations, coarsened so the horizon fits in max_slices slices."""
    values = {p for job in instance.jobs for p in job.processing_times}
    delta = reduce(math.gcd, values)
    horizon = list_schedule_length(
        instance,
        min_work_allotments(instance),
        lambda i, k: instance.jobs[i].processing_time(k),
    )
    if math.ceil(horizon / delta) > max_slices:
        delta = math.ceil(horizon / max_slices)
    return delta


def _slices(p: int, delta: int) -> int:
    return -(-p // delta)


# ─── Relaxation ───

class _Model:
    """Variable bookkeeping of one time-indexed relaxation."""

    def __init__(self, instance: Instance, delta: int, horizon: int, lp: LinearProgram):
        self.instance = instance
        self.delta = delta
        self.horizon = horizon
        self.lp = lp
        # per job: list of (var, k, start slice, duration in slices)
        self.columns: list[list[tuple[int, int, int, int]]] = []
        for job in instance.jobs:
            cols = []
            for k in job.useful_allotments():
                q = _slices(job.processing_time(k), delta)
                for s in range(horizon - q + 1):
                    var = lp.add_variable(0.0, 1.0, f"x_{job.job_id}_{k}_{s}")
                    cols.append((var, k, s, q))
            self.columns.append(cols)
        self.z = lp.add_variable(0.0, None, "z")

    def build(self, edges: list[tuple[int, int]]) -> None:
        lp = self.lp
        m = self.instance.processor_count
        n = self.instance.job_count

        for cols in self.columns:
            lp.add_constraint([(var, 1.0) for var, _, _, _ in cols], Relation.EQ, 1.0)

        usage: list[list[tuple[int, float]]] = [[] for _ in range(self.horizon)]
        for cols in self.columns:
            for var, k, s, q in cols:
                for t in range(s, s + q):
                    usage[t].append((var, float(k)))
        for terms in usage:
            if terms:
                lp.add_constraint(terms, Relation.LE, float(m))

        # started share of `after` by slice t <= completed share of `before` by slice t
        for before, after in edges:
            for t in range(self.horizon):
                terms = [(var, 1.0) for var, _, s, _ in self.columns[after] if s <= t]
                if not terms:
                    continue
                terms += [(var, -1.0) for var, _, s, q in self.columns[before] if s + q <= t]
                lp.add_constraint(terms, Relation.LE, 0.0)

        objective = {self.z: 1.0}
        for cols in self.columns:
            completion = [(var, float(s + q)) for var, _, s, q in cols]
            lp.add_constraint(completion + [(self.z, -1.0)], Relation.LE, 0.0)
            for var, coef in completion:
                objective[var] = objective.get(var, 0.0) + coef / (n + 1)
        lp.set_objective(objective, Direction.MINIMIZE)


# ─── Rounding ───

def allotment_cap(m: int) -> int:
    """Largest processor count a job keeps in the capped rounding (at least 1)."""
    return max(1, math.floor(0.01 * (113 * m - math.sqrt(6469 * m * m - 6300 * m))))


def round_job(
    columns: list[tuple[int, int, int, int]],
    values: list[float],
    rho: float = RHO,
) -> tuple[int, int]:
    """(allotment, start slice hint) of one job from its fractional columns."""
    shares: dict[int, float] = {}
    started: dict[int, float] = {}
    for var, k, s, _ in columns:
        shares[k] = shares.get(k, 0.0) + values[var]
        started[s] = started.get(s, 0.0) + values[var]

    allotment = min(shares)
    tail = 0.0
    for k in sorted(shares, reverse=True):
        tail += shares[k]
        if tail >= rho - _EPS:
            allotment = k
            break

    hint = max(started)
    cumulative = 0.0
    for s in sorted(started):
        cumulative += started[s]
        if cumulative >= 0.5 - _EPS:
            hint = s
            break
    return allotment, hint


def _relax_and_round(instance: Instance, max_slices: int, lp_factory: LpFactory) -> Schedule:
    """One relaxation on one processor count, rounded and list scheduled."""
    settings = get_settings()
    delta = slice_length(instance, max_slices)
    horizon = list_schedule_length(
        instance,
        min_work_allotments(instance),
        lambda i, k: _slices(instance.jobs[i].processing_time(k), delta),
    )
    edges = transitive_reduction(instance)

    lp = lp_factory(name="ilp-time-indexed", time_limit_seconds=settings.lp_time_limit_seconds)
    model = _Model(instance, delta, horizon, lp)
    model.build(edges)
    logger.debug(
        "relaxation built",
        jobs=instance.job_count,
        processors=instance.processor_count,
        slice_length=delta,
        slices=horizon,
        variables=lp.num_variables,
        constraints=lp.num_constraints,
    )

    result = lp.solve()
    if not result.is_optimal:
        raise InfeasibleError(
            "ilp", makespan_lower_bound(instance), horizon * delta, slices=horizon,
        )
    logger.debug(
        "relaxation solved",
        objective=result.objective_value,
        fractional_makespan=result.value(model.z) * delta,
    )

    allotments, releases = [], []
    for cols in model.columns:
        k, hint = round_job(cols, result.values)
        allotments.append(k)
        releases.append(hint * delta)
    cap = allotment_cap(instance.processor_count)
    capped = [min(k, cap) for k in allotments]
    logger.debug("rounded", allotments=allotments, releases=releases, cap=cap)

    best, seed = None, None
    for candidate_allotments in (allotments, capped):
        for candidate in (
            list_schedule(instance, candidate_allotments, releases),
            list_schedule(instance, candidate_allotments, priorities=releases),
        ):
            if best is None or candidate.makespan < best.makespan:
                best, seed = candidate, candidate_allotments

    improved = improve_allotments(
        instance, seed, releases,
        max_passes=settings.improvement_passes,
        max_trials=settings.improvement_trials,
    )
    if improved.makespan < best.makespan:
        logger.debug("descent improved", before=best.makespan, after=improved.makespan)
        best = improved
    return best


def schedule(
    instance: Instance,
    max_slices: Optional[int] = None,
    lp_factory: LpFactory = GlopLinearProgram,
) -> Schedule:
    """
    Compute a schedule with the relaxation engine.

    Raises InfeasibleError when the relaxation has no solution on any
    processor prefix; SolverError from the backend propagates unchanged.
    """
    t0 = time.time()
    if max_slices is None:
        max_slices = get_settings().ilp_max_slices
    if max_slices < 1:
        raise ValueError(f"max_slices must be positive, got {max_slices}")

    out = best_over_prefixes(instance, lambda sub: _relax_and_round(sub, max_slices, lp_factory), logger)
    logger.info(
        "ilp schedule found",
        jobs=instance.job_count,
        processors=instance.processor_count,
        makespan=out.makespan,
        solve_time_seconds=round(time.time() - t0, 3),
    )
    return out

"""
MalleableEngine — LP Engine
Window-based LP relaxation, binary search on the makespan, argmax rounding.

Jobs are grouped into windows by longest-path level. Windows run one after
another, so precedence holds between windows without per-edge constraints.
For a candidate makespan T the relaxation asks whether fractional
allotments exist such that every job fits in its window (duration) and every
window's work fits on m processors, with the window lengths summing to ≤ T.
Raising T only loosens bounds, so feasibility is monotone in T.

Each feasible candidate is rounded (largest share wins) and list scheduled
twice: with jobs released at their window's start, and with window starts
used only as queue priorities. The best rounding then seeds an allotment
descent. The whole search runs once per processor prefix (problem.prefixes)
and the shortest schedule wins.
"""

import math
import time
from typing import Callable, Optional

from linprog import GlopLinearProgram, LinearProgram, Relation
from problem.errors import InfeasibleError
from problem.graph import longest_path_levels, makespan_lower_bound
from problem.list_scheduler import improve_allotments, list_schedule
from problem.models import Instance, Schedule
from problem.prefixes import best_over_prefixes
from runtime.config import get_settings
from runtime.logging import get_logger

logger = get_logger("malleable.lp")

LpFactory = Callable[..., LinearProgram]


def level_windows(instance: Instance) -> list[list[int]]:
    """Dense job indices grouped by longest-path level, earliest level first."""
    levels = longest_path_levels(instance)
    windows: list[list[int]] = [[] for _ in range(max(levels) + 1)]
    for i, level in enumerate(levels):
        windows[level].append(i)
    return windows


def window_relaxation(
    instance: Instance,
    windows: list[list[int]],
    target: int,
    lp_factory: LpFactory = GlopLinearProgram,
) -> Optional[tuple[list[list[float]], list[float]]]:
    """
    Solve the window relaxation at makespan `target`.

    Returns (shares[j][k-1], window lengths), or None when infeasible.
    """
    m = instance.processor_count
    lp = lp_factory(name=f"lp-windows-T{target}", time_limit_seconds=get_settings().lp_time_limit_seconds)

    x: list[list[int]] = []
    for job in instance.jobs:
        x.append([
            lp.add_variable(0.0, 1.0 if job.processing_time(k) <= target else 0.0, f"x_{job.job_id}_{k}")
            for k in range(1, m + 1)
        ])
    tau = [lp.add_variable(0.0, float(target), f"tau_{w}") for w in range(len(windows))]

    for j, job in enumerate(instance.jobs):
        lp.add_constraint([(var, 1.0) for var in x[j]], Relation.EQ, 1.0)

    for w, members in enumerate(windows):
        work = []
        for j in members:
            job = instance.jobs[j]
            duration = [(x[j][k - 1], job.processing_time(k)) for k in range(1, m + 1)]
            lp.add_constraint(duration + [(tau[w], -1.0)], Relation.LE, 0.0)
            work += [(x[j][k - 1], job.work(k)) for k in range(1, m + 1)]
        lp.add_constraint(work + [(tau[w], -float(m))], Relation.LE, 0.0)

    lp.add_constraint([(var, 1.0) for var in tau], Relation.LE, float(target))

    result = lp.solve()
    if not result.is_optimal:
        return None
    shares = [[result.value(var) for var in row] for row in x]
    return shares, [result.value(var) for var in tau]


def round_allotments(shares: list[list[float]]) -> list[int]:
    """Per job, the allotment carrying the largest share (ties to the smaller count)."""
    allotments = []
    for row in shares:
        best = 0
        for k in range(1, len(row)):
            if row[k] > row[best] + 1e-9:
                best = k
        allotments.append(best + 1)
    return allotments


def _window_releases(windows: list[list[int]], lengths: list[float], n: int) -> list[int]:
    releases = [0] * n
    offset = 0.0
    for members, length in zip(windows, lengths):
        for j in members:
            releases[j] = math.floor(offset + 1e-9)
        offset += length
    return releases


def _search(instance: Instance, epsilon: float, lp_factory: LpFactory) -> Schedule:
    """Binary search on one processor count; InfeasibleError when even Σ p(1) fails."""
    settings = get_settings()
    windows = level_windows(instance)
    lo = makespan_lower_bound(instance)
    hi = sum(job.processing_time(1) for job in instance.jobs)
    initial_lo, initial_hi = lo, hi
    logger.debug(
        "lp search started",
        jobs=instance.job_count,
        processors=instance.processor_count,
        windows=len(windows),
        lower_bound=lo,
        upper_bound=hi,
    )

    best: Optional[Schedule] = None
    seed: Optional[tuple[list[int], list[int]]] = None
    evaluated = 0

    def attempt(target: int) -> bool:
        nonlocal best, seed, evaluated
        evaluated += 1
        relaxed = window_relaxation(instance, windows, target, lp_factory)
        if relaxed is None:
            logger.debug("candidate infeasible", target=target)
            return False
        shares, lengths = relaxed
        allotments = round_allotments(shares)
        releases = _window_releases(windows, lengths, instance.job_count)
        anchored = list_schedule(instance, allotments, releases)
        loose = list_schedule(instance, allotments, priorities=releases)
        candidate = loose if loose.makespan < anchored.makespan else anchored
        logger.debug(
            "candidate feasible",
            target=target,
            allotments=allotments,
            makespan=candidate.makespan,
        )
        if best is None or candidate.makespan < best.makespan:
            best = candidate
            seed = (allotments, releases)
        return True

    if not attempt(hi):
        raise InfeasibleError("lp", initial_lo, initial_hi, candidates=evaluated)

    while hi - lo > epsilon * lo:
        mid = (lo + hi) // 2
        if attempt(mid):
            hi = mid
        else:
            lo = mid + 1

    improved = improve_allotments(
        instance, seed[0], seed[1],
        max_passes=settings.improvement_passes,
        max_trials=settings.improvement_trials,
    )
    if improved.makespan < best.makespan:
        logger.debug("descent improved", before=best.makespan, after=improved.makespan)
        best = improved
    logger.debug(
        "lp search finished",
        processors=instance.processor_count,
        makespan=best.makespan,
        relaxation_bound=hi,
        candidates=evaluated,
    )
    return best


def schedule(
    instance: Instance,
    epsilon: Optional[float] = None,
    lp_factory: LpFactory = GlopLinearProgram,
) -> Schedule:
    """
    Compute a schedule with the LP engine.

    Raises InfeasibleError when no candidate makespan admits a feasible
    relaxation on any processor prefix; SolverError from the backend
    propagates unchanged.
    """
    t0 = time.time()
    if epsilon is None:
        epsilon = get_settings().lp_epsilon
    if epsilon <= 0:
        raise ValueError(f"epsilon must be positive, got {epsilon}")

    best = best_over_prefixes(instance, lambda sub: _search(sub, epsilon, lp_factory), logger)
    logger.info(
        "lp schedule found",
        jobs=instance.job_count,
        processors=instance.processor_count,
        makespan=best.makespan,
        solve_time_seconds=round(time.time() - t0, 3),
    )
    return best

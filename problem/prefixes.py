"""
MalleableEngine — Processor Prefixes
Runs a heuristic engine on the first m' processors for several m' and keeps
the shortest schedule.

A schedule that fits on m' processors also fits on m >= m'. The prefixes
tried for m are a subset of those tried for m + 1, and the instance
truncated to m' does not depend on m, so the kept makespan never grows
when processors are added.
"""

from typing import Callable, Optional

from .errors import InfeasibleError
from .models import Instance, Schedule


def processor_prefixes(instance: Instance) -> list[int]:
    """Processor counts at which some job becomes strictly faster, starting with 1."""
    counts = {1}
    for job in instance.jobs:
        counts.update(job.useful_allotments())
    return sorted(counts)


def best_over_prefixes(
    instance: Instance,
    run: Callable[[Instance], Schedule],
    log=None,
) -> Schedule:
    """
    Shortest schedule of `run` over the processor prefixes, largest prefix first.

    Prefixes whose run raises InfeasibleError are skipped; when all of them
    do, the error of the largest prefix is raised. Other errors
    propagate at once.
    """
    m = instance.processor_count
    best: Optional[Schedule] = None
    first_error: Optional[InfeasibleError] = None

    for prefix in reversed(processor_prefixes(instance)):
        sub = instance if prefix == m else instance.with_processor_count(prefix)
        try:
            candidate = run(sub)
        except InfeasibleError as e:
            if first_error is None:
                first_error = e
            if log is not None:
                log.debug("prefix infeasible", processors=prefix)
            continue
        if log is not None:
            log.debug("prefix scheduled", processors=prefix, makespan=candidate.makespan)
        if best is None or candidate.makespan < best.makespan:
            best = Schedule(processor_count=m, jobs=candidate.jobs)

    if best is None:
        raise first_error
    return best

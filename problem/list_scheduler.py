"""
MalleableEngine — List Scheduling
Turns a fixed allotment per job into a feasible schedule.

Jobs become ready once all predecessors are placed. Ready jobs are taken by
(priority, index) and each starts at the earliest time that respects its
release time, its predecessors' finish times and processor capacity.
"""

import heapq
from typing import Callable, Optional, Sequence

from .models import Instance, Schedule, ScheduledJob
from .profile import CapacityProfile


def _place(
    instance: Instance,
    allotments: Sequence[int],
    releases: Sequence[int],
    priorities: Sequence[float],
    duration: Callable[[int, int], int],
) -> list[tuple[int, int, int, int]]:
    n = instance.job_count
    m = instance.processor_count
    for i, k in enumerate(allotments):
        if not 1 <= k <= m:
            raise ValueError(f"Allotment {k} of job {instance.jobs[i].job_id} outside 1..{m}")

    profile = CapacityProfile(m)
    remaining = [len(instance.predecessors[i]) for i in range(n)]
    earliest = [0] * n
    ready = [(priorities[i], i) for i in range(n) if remaining[i] == 0]
    heapq.heapify(ready)
    placed = []

    while ready:
        _, i = heapq.heappop(ready)
        k = allotments[i]
        d = duration(i, k)
        start = profile.earliest_fit(max(int(releases[i]), earliest[i]), d, k)
        profile.reserve(start, start + d, k)
        placed.append((i, k, start, start + d))
        for v in instance.successors[i]:
            earliest[v] = max(earliest[v], start + d)
            remaining[v] -= 1
            if remaining[v] == 0:
                heapq.heappush(ready, (priorities[v], v))
    return placed


def _processing_time(instance: Instance) -> Callable[[int, int], int]:
    return lambda i, k: instance.jobs[i].processing_time(k)


def _to_schedule(instance: Instance, placed: list[tuple[int, int, int, int]]) -> Schedule:
    return Schedule(
        processor_count=instance.processor_count,
        jobs=[
            ScheduledJob(job_id=instance.jobs[i].job_id, index=i, allotment=k, start=start, end=end)
            for i, k, start, end in placed
        ],
    )


def list_schedule(
    instance: Instance,
    allotments: Sequence[int],
    releases: Optional[Sequence[int]] = None,
    priorities: Optional[Sequence[float]] = None,
) -> Schedule:
    """
    Place every job with its given allotment.

    `releases` are lower bounds on start times (default 0). `priorities`
    order the ready queue (default: the release time).
    """
    n = instance.job_count
    releases = list(releases) if releases is not None else [0] * n
    priorities = list(priorities) if priorities is not None else list(releases)
    placed = _place(instance, allotments, releases, priorities, _processing_time(instance))
    return _to_schedule(instance, placed)


def list_schedule_length(
    instance: Instance,
    allotments: Sequence[int],
    duration: Callable[[int, int], int],
) -> int:
    """Makespan of a list schedule measured with a custom duration(i, k), e.g. in slice units."""
    placed = _place(instance, allotments, [0] * instance.job_count, [0] * instance.job_count, duration)
    return max((end for _, _, _, end in placed), default=0)


def improve_allotments(
    instance: Instance,
    allotments: Sequence[int],
    priorities: Sequence[float],
    max_passes: int,
    max_trials: int,
) -> Schedule:
    """
    First-improvement descent over single-job allotment changes.

    Every trial list schedules the whole instance without release times,
    ordering ready jobs by `priorities`. A change is kept when it lowers
    (makespan, sum of finish times). Only useful allotments are tried.
    Stops after `max_passes` sweeps over the jobs, after `max_trials`
    list schedules, or once a sweep changes nothing.
    """
    n = instance.job_count
    zeros = [0] * n
    duration = _processing_time(instance)

    def score(placed):
        ends = [end for _, _, _, end in placed]
        return max(ends), sum(ends)

    current = list(allotments)
    placed = _place(instance, current, zeros, priorities, duration)
    best = score(placed)
    trials = 0

    for _ in range(max_passes):
        changed = False
        for i, job in enumerate(instance.jobs):
            for k in job.useful_allotments():
                if k == current[i]:
                    continue
                if trials >= max_trials:
                    return _to_schedule(instance, placed)
                trials += 1
                trial = current.copy()
                trial[i] = k
                trial_placed = _place(instance, trial, zeros, priorities, duration)
                trial_score = score(trial_placed)
                if trial_score < best:
                    current, placed, best = trial, trial_placed, trial_score
                    changed = True
        if not changed:
            break
    return _to_schedule(instance, placed)


def min_work_allotments(instance: Instance) -> list[int]:
    """Per job, the allotment with the least processor-time (ties: shorter duration)."""
    allotments = []
    for job in instance.jobs:
        best = min(
            range(1, instance.processor_count + 1),
            key=lambda k: (job.work(k), job.processing_time(k), k),
        )
        allotments.append(best)
    return allotments

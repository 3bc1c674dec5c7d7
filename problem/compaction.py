"""
MalleableEngine — Schedule Compaction
Removes idle gaps left by the LP-based engines.

Jobs are revisited in non-decreasing start order. Each one moves to the
earliest start allowed by its predecessors' (already moved) finish times and
by the processors used by jobs moved before it, if that is earlier than its
current start. Allotments are never changed, so the makespan cannot grow.
"""

from .models import Instance, Schedule, ScheduledJob
from .profile import CapacityProfile
from runtime.logging import get_logger

logger = get_logger("malleable.compaction")


def compact(instance: Instance, schedule: Schedule) -> Schedule:
    """Return a gap-free copy of `schedule` with the same allotments."""
    profile = CapacityProfile(schedule.processor_count)
    new_end: dict[int, int] = {}
    moved: list[ScheduledJob] = []
    shifted = 0

    for sj in schedule.sorted_by_start():
        ready = max((new_end[p] for p in instance.predecessors[sj.index]), default=0)
        duration = sj.end - sj.start
        start = min(sj.start, profile.earliest_fit(ready, duration, sj.allotment))
        if start < sj.start:
            shifted += 1
        profile.reserve(start, start + duration, sj.allotment)
        new_end[sj.index] = start + duration
        moved.append(sj.model_copy(
            update={"start": start, "end": start + duration, "first_processor": None}
        ))

    result = Schedule(processor_count=schedule.processor_count, jobs=moved)
    logger.debug(
        "schedule compacted",
        jobs_moved=shifted,
        makespan_before=schedule.makespan,
        makespan_after=result.makespan,
    )
    return result

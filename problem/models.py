"""
MalleableEngine — Problem & Schedule Models
Pydantic schemas shared by all three engines.

A Job's duration depends on how many identical processors it gets:
processing_times[k - 1] is the duration on k processors.
An Instance is built once by `problem.loader.load` and is read-only afterwards.
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field, field_validator


# ─────────────────────────────────────────────
# Input Models
# ─────────────────────────────────────────────

class Job(BaseModel):
    """A malleable job."""
    job_id: int = Field(..., description="Unique, stable job identifier")
    processing_times: list[int] = Field(
        ..., min_length=1,
        description="Duration if run on 1, 2, ..., m processors (index 0 = one processor)",
    )

    model_config = {"frozen": True}

    @field_validator("processing_times")
    @classmethod
    def validate_positive(cls, v):
        for k, p in enumerate(v, start=1):
            if p <= 0:
                raise ValueError(f"processing time on {k} processor(s) must be positive, got {p}")
        return v

    def processing_time(self, allotment: int) -> int:
        """Duration of the job on `allotment` processors."""
        return self.processing_times[allotment - 1]

    def work(self, allotment: int) -> int:
        """Processor-time consumed on `allotment` processors."""
        return allotment * self.processing_times[allotment - 1]

    def min_processing_time(self) -> int:
        return min(self.processing_times)

    def fastest_allotment(self) -> int:
        """Smallest processor count reaching the minimum duration."""
        best = self.min_processing_time()
        return self.processing_times.index(best) + 1

    def useful_allotments(self) -> list[int]:
        """Processor counts that are strictly faster than every smaller count."""
        useful = []
        best = None
        for k, p in enumerate(self.processing_times, start=1):
            if best is None or p < best:
                useful.append(k)
                best = p
        return useful


class Precedence(BaseModel):
    """Job `before` must finish no later than job `after` starts."""
    before: int = Field(..., description="Job id of the predecessor")
    after: int = Field(..., description="Job id of the successor")

    model_config = {"frozen": True}


class Instance(BaseModel):
    """
    Immutable problem instance over a dense index space.

    Jobs are addressed by their position in `jobs`; `edges`, `successors`
    and `predecessors` use these indices, never job ids.
    """
    processor_count: int = Field(..., ge=1, description="Number of identical processors (m)")
    jobs: list[Job] = Field(..., min_length=1)
    edges: list[tuple[int, int]] = Field(default_factory=list, description="Precedence pairs as dense indices")
    successors: list[list[int]] = Field(default_factory=list)
    predecessors: list[list[int]] = Field(default_factory=list)
    omega: Optional[int] = Field(None, ge=1, description="Declared width bound (max antichain size)")

    model_config = {"frozen": True}

    @property
    def job_count(self) -> int:
        return len(self.jobs)

    def index_of(self, job_id: int) -> int:
        for index, job in enumerate(self.jobs):
            if job.job_id == job_id:
                return index
        raise KeyError(f"Unknown job id {job_id}")

    def precedences(self) -> list[Precedence]:
        """Precedence pairs expressed with job ids."""
        return [
            Precedence(before=self.jobs[a].job_id, after=self.jobs[b].job_id)
            for a, b in self.edges
        ]

    def with_processor_count(self, m: int) -> "Instance":
        """Same jobs and order on `m` processors; durations beyond the old m repeat p(m)."""
        from .loader import load

        jobs = []
        for job in self.jobs:
            times = list(job.processing_times[:m])
            times += [times[-1]] * (m - len(times))
            jobs.append(Job(job_id=job.job_id, processing_times=times))
        return load(jobs, self.precedences(), m, self.omega)


# ─────────────────────────────────────────────
# Output Models
# ─────────────────────────────────────────────

class ScheduledJob(BaseModel):
    """A job placed at a start time with a fixed processor count."""
    job_id: int
    index: int = Field(..., ge=0, description="Dense index of the job in its instance")
    allotment: int = Field(..., ge=1, description="Number of processors used")
    start: int = Field(..., ge=0, description="Start time")
    end: int = Field(..., ge=0, description="Finish time = start + p(allotment)")
    first_processor: Optional[int] = Field(
        None, ge=0,
        description="First processor of a contiguous block, when the engine assigns one",
    )

    @property
    def duration(self) -> int:
        return self.end - self.start


class Schedule(BaseModel):
    """One placement per job plus the derived makespan."""
    processor_count: int = Field(..., ge=1)
    jobs: list[ScheduledJob] = Field(default_factory=list)

    @property
    def makespan(self) -> int:
        return max((sj.end for sj in self.jobs), default=0)

    def by_index(self) -> dict[int, ScheduledJob]:
        return {sj.index: sj for sj in self.jobs}

    def sorted_by_start(self) -> list[ScheduledJob]:
        return sorted(self.jobs, key=lambda sj: (sj.start, sj.index))

    def busy_time(self) -> int:
        """Total processor-time spent running jobs."""
        return sum(sj.allotment * sj.duration for sj in self.jobs)

    def idle_time(self) -> int:
        """Processor-time left idle before the makespan."""
        return self.processor_count * self.makespan - self.busy_time()


def make_scheduled_job(instance: Instance, index: int, allotment: int, start: int) -> ScheduledJob:
    job = instance.jobs[index]
    return ScheduledJob(
        job_id=job.job_id,
        index=index,
        allotment=allotment,
        start=start,
        end=start + job.processing_time(allotment),
    )

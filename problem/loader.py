"""
MalleableEngine — Instance Loading & Validation
Builds an immutable Instance and rejects malformed input before any engine runs.

Checks:
  1. At least one job, at least one processor
  2. Unique job ids
  3. Every processing-time array has exactly m positive entries
  4. Precedence pairs reference existing job ids
  5. The precedence relation is acyclic
"""

from typing import Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .errors import CyclicPrecedenceError, ValidationError
from .graph import find_cycle, topological_order
from .models import Instance, Job, Precedence

JobLike = Union[Job, dict]
PrecedenceLike = Union[Precedence, tuple, dict]


def _as_job(raw: JobLike, row: int) -> Job:
    if isinstance(raw, Job):
        return raw
    try:
        if isinstance(raw, dict):
            return Job(**raw)
        job_id, times = raw
        return Job(job_id=job_id, processing_times=list(times))
    except (PydanticValidationError, TypeError, ValueError) as e:
        raise ValidationError(f"Job #{row} is malformed: {e}", {"row": row}) from e


def _as_precedence(raw: PrecedenceLike, row: int) -> Precedence:
    if isinstance(raw, Precedence):
        return raw
    try:
        if isinstance(raw, dict):
            return Precedence(**raw)
        before, after = raw
        return Precedence(before=before, after=after)
    except (PydanticValidationError, TypeError, ValueError) as e:
        raise ValidationError(f"Precedence #{row} is malformed: {e}", {"row": row}) from e


def load(
    jobs: Iterable[JobLike],
    precedence: Iterable[PrecedenceLike],
    m: int,
    omega: Optional[int] = None,
) -> Instance:
    """
    Validate the raw description and build an Instance.

    Raises ValidationError (or CyclicPrecedenceError) on malformed input.
    `omega` is recorded, never enforced here.
    """
    job_list = [_as_job(raw, row) for row, raw in enumerate(jobs, start=1)]
    if not job_list:
        raise ValidationError("Instance must contain at least one job")
    if m < 1:
        raise ValidationError(f"Processor count must be at least 1, got {m}", {"m": m})
    if omega is not None and omega < 1:
        raise ValidationError(f"Width bound omega must be at least 1, got {omega}", {"omega": omega})

    index_by_id: dict[int, int] = {}
    for index, job in enumerate(job_list):
        if job.job_id in index_by_id:
            raise ValidationError(f"Duplicate job id {job.job_id}", {"job_id": job.job_id})
        index_by_id[job.job_id] = index
        if len(job.processing_times) != m:
            raise ValidationError(
                f"Job {job.job_id} has {len(job.processing_times)} processing times, expected {m}",
                {"job_id": job.job_id, "expected": m},
            )

    n = len(job_list)
    successors: list[list[int]] = [[] for _ in range(n)]
    predecessors: list[list[int]] = [[] for _ in range(n)]
    edges: list[tuple[int, int]] = []
    seen: set[tuple[int, int]] = set()
    for row, raw in enumerate(precedence, start=1):
        pc = _as_precedence(raw, row)
        for side in (pc.before, pc.after):
            if side not in index_by_id:
                raise ValidationError(
                    f"Precedence #{row} references unknown job id {side}",
                    {"row": row, "job_id": side},
                )
        edge = (index_by_id[pc.before], index_by_id[pc.after])
        if edge in seen:
            continue
        seen.add(edge)
        edges.append(edge)
        successors[edge[0]].append(edge[1])
        predecessors[edge[1]].append(edge[0])

    if topological_order(successors) is None:
        cycle = find_cycle(successors)
        raise CyclicPrecedenceError([job_list[i].job_id for i in cycle])

    return Instance(
        processor_count=m,
        jobs=job_list,
        edges=edges,
        successors=successors,
        predecessors=predecessors,
        omega=omega,
    )

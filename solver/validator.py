"""
MalleableEngine — Schedule Validator
Validates an existing schedule against its instance.

Lets callers verify schedules (hand-made or produced by any engine) and get
detailed violation reports plus improvement suggestions.
"""

import collections

from problem.errors import ValidationError
from problem.loader import load
from problem.models import Schedule

from .engine import compute_metrics
from .models import ValidateRequest, ValidateResponse, ValidationViolation


def validate_schedule(request: ValidateRequest) -> ValidateResponse:
    """
    Validate a schedule against jobs, precedence pairs and processor count.

    Checks:
      1. Instance well-formedness (the instance itself must load)
      2. Every scheduled job exists and appears once
      3. Allotment within 1..m
      4. Consistency (end == start + p(allotment))
      5. Precedence (predecessor ends before successor starts)
      6. Capacity (summed allotments of running jobs never exceed m)
      7. Missing jobs
    """
    violations: list[ValidationViolation] = []
    suggestions: list[str] = []

    # ── 1. Instance ──
    try:
        instance = load(request.jobs, request.constraints, request.processor_count)
    except ValidationError as e:
        return ValidateResponse(
            is_valid=False,
            num_violations=1,
            violations=[ValidationViolation(violation_type="invalid_instance", description=str(e))],
        )
    m = instance.processor_count
    index_by_id = {job.job_id: i for i, job in enumerate(instance.jobs)}

    # ── 2. Unknown / duplicate jobs ──
    placed = {}
    for sj in request.schedule:
        if sj.job_id not in index_by_id:
            violations.append(ValidationViolation(
                violation_type="unknown_job",
                description=f"Scheduled entry references unknown job {sj.job_id}",
                affected_jobs=[sj.job_id],
            ))
            continue
        if sj.job_id in placed:
            violations.append(ValidationViolation(
                violation_type="duplicate_job",
                description=f"Job {sj.job_id} is scheduled more than once",
                affected_jobs=[sj.job_id],
            ))
            continue
        placed[sj.job_id] = sj

    # ── 3-4. Allotment and consistency ──
    for job_id, sj in placed.items():
        job = instance.jobs[index_by_id[job_id]]
        if not 1 <= sj.allotment <= m:
            violations.append(ValidationViolation(
                violation_type="allotment",
                description=f"Job {job_id} uses {sj.allotment} processors, allowed range is 1..{m}",
                affected_jobs=[job_id],
            ))
            continue
        expected = sj.start + job.processing_time(sj.allotment)
        if sj.end != expected:
            violations.append(ValidationViolation(
                violation_type="consistency",
                description=(
                    f"Job {job_id}: start({sj.start}) + p({sj.allotment})"
                    f"({job.processing_time(sj.allotment)}) != end({sj.end})"
                ),
                affected_jobs=[job_id],
            ))

    # ── 5. Precedence ──
    for pc in instance.precedences():
        a, b = placed.get(pc.before), placed.get(pc.after)
        if a and b and b.start < a.end:
            violations.append(ValidationViolation(
                violation_type="precedence",
                description=f"Job {pc.after} starts at {b.start} before predecessor {pc.before} ends at {a.end}",
                affected_jobs=[pc.before, pc.after],
            ))

    # ── 6. Capacity ──
    events: dict[int, int] = collections.defaultdict(int)
    for sj in placed.values():
        if sj.end > sj.start:
            events[sj.start] += sj.allotment
            events[sj.end] -= sj.allotment
    in_use = 0
    for t in sorted(events):
        in_use += events[t]
        if in_use > m:
            running = [
                sj.job_id for sj in placed.values() if sj.start <= t < sj.end
            ]
            violations.append(ValidationViolation(
                violation_type="capacity",
                description=f"{in_use} processors in use at t={t}, only {m} available",
                affected_jobs=sorted(running),
            ))

    # ── 7. Missing jobs (warnings) ──
    for job in instance.jobs:
        if job.job_id not in placed:
            violations.append(ValidationViolation(
                violation_type="missing_job",
                severity="warning",
                description=f"Job {job.job_id} is not in the schedule",
                affected_jobs=[job.job_id],
            ))

    # ── Metrics and suggestions on the provided schedule ──
    metrics = None
    if not any(v.severity == "error" for v in violations):
        schedule = Schedule(
            processor_count=m,
            jobs=[sj.model_copy(update={"index": index_by_id[sj.job_id]}) for sj in placed.values()],
        )
        metrics = compute_metrics(instance, schedule)

        if metrics.idle_time > 0 and metrics.makespan > metrics.lower_bound:
            suggestions.append(
                f"{metrics.idle_time} processor-time units are idle and the makespan is "
                f"{metrics.makespan - metrics.lower_bound} above the lower bound. Consider compacting."
            )
        for job_id, sj in placed.items():
            job = instance.jobs[index_by_id[job_id]]
            fastest = job.fastest_allotment()
            if sj.allotment > fastest:
                suggestions.append(
                    f"Job {job_id} runs on {sj.allotment} processors but is already fastest on {fastest}."
                )

    errors = [v for v in violations if v.severity == "error"]

    return ValidateResponse(
        is_valid=len(errors) == 0,
        num_violations=len(violations),
        violations=violations,
        metrics=metrics,
        improvement_suggestions=suggestions,
    )

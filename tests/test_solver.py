"""Tests for the MalleableEngine solve dispatcher and schedule validator."""

import pydantic
import pytest

from solver import (
    EngineType, SolveRequest, SolverStatus, ValidateRequest,
    run_engine, solve, summary_line, validate_schedule,
)

from conftest import check_schedule, stub_factory


DIAMOND_JOBS = [
    {"job_id": 1, "processing_times": [8, 4, 3, 2]},
    {"job_id": 2, "processing_times": [12, 6, 4, 3]},
    {"job_id": 3, "processing_times": [6, 6, 6, 6]},
    {"job_id": 4, "processing_times": [4, 2, 2, 2]},
]
DIAMOND_EDGES = [
    {"before": 1, "after": 2}, {"before": 1, "after": 3},
    {"before": 2, "after": 4}, {"before": 3, "after": 4},
]


def make_request(**kwargs) -> SolveRequest:
    data = {"jobs": DIAMOND_JOBS, "constraints": DIAMOND_EDGES, "processor_count": 4}
    data.update(kwargs)
    return SolveRequest(**data)


def placed(job_id, allotment, start, end):
    return {"job_id": job_id, "index": 0, "allotment": allotment, "start": start, "end": end}


def make_validate(schedule, jobs=None, constraints=None, m=2) -> ValidateRequest:
    return ValidateRequest(
        schedule=schedule,
        jobs=jobs or [{"job_id": 1, "processing_times": [4, 2]}, {"job_id": 2, "processing_times": [3, 2]}],
        constraints=[{"before": 1, "after": 2}] if constraints is None else constraints,
        processor_count=m,
    )


class TestSolve:
    @pytest.mark.parametrize("engine", ["dp", "lp", "ilp"])
    def test_every_engine_solves(self, engine):
        resp = solve(make_request(engine=engine))
        assert resp.status == SolverStatus.SOLVED
        assert resp.engine == EngineType(engine)
        assert len(resp.schedule) == 4
        assert [sj.job_id for sj in resp.schedule] == [1, 2, 3, 4]
        assert resp.metrics.makespan >= resp.metrics.lower_bound == 10

    def test_dp_metrics_and_gantt(self):
        resp = solve(make_request())
        assert resp.metrics.makespan == 10
        assert resp.metrics.num_jobs == 4
        assert 0 < resp.metrics.utilization_pct <= 100
        busy = sum(sj.allotment * (sj.end - sj.start) for sj in resp.schedule)
        assert resp.metrics.idle_time == 4 * 10 - busy
        starts = [g.start for g in resp.gantt]
        assert starts == sorted(starts)
        assert resp.gantt[0].label == "J1 ×4"
        assert "Makespan: 10" in resp.message

    def test_compact_never_lengthens(self):
        loose = solve(make_request(engine="lp"))
        tight = solve(make_request(engine="lp", compact=True))
        assert tight.status == SolverStatus.SOLVED
        assert tight.metrics.makespan <= loose.metrics.makespan

    @pytest.mark.parametrize("engine", ["dp", "lp", "ilp"])
    def test_cycle_is_invalid(self, engine):
        resp = solve(make_request(engine=engine, constraints=DIAMOND_EDGES + [{"before": 4, "after": 1}]))
        assert resp.status == SolverStatus.INVALID
        assert "cycle" in resp.message
        assert resp.schedule == []

    def test_wrong_duration_count_is_invalid(self):
        resp = solve(make_request(processor_count=3))
        assert resp.status == SolverStatus.INVALID

    def test_infeasible_relaxation(self):
        factory = stub_factory(feasible=lambda program: False)
        resp = solve(make_request(engine="lp"), lp_factory=factory)
        assert resp.status == SolverStatus.INFEASIBLE
        assert resp.metrics is None

    def test_backend_failure(self):
        factory = stub_factory(fail_with="ABNORMAL")
        resp = solve(make_request(engine="ilp"), lp_factory=factory)
        assert resp.status == SolverStatus.ERROR
        assert resp.message.startswith("Solver error")

    def test_request_ranges(self):
        with pytest.raises(pydantic.ValidationError):
            make_request(processor_count=0)
        with pytest.raises(pydantic.ValidationError):
            make_request(epsilon=0)
        with pytest.raises(pydantic.ValidationError):
            make_request(max_slices=2)


class TestRunEngine:
    def test_accepts_plain_strings(self, diamond):
        check_schedule(diamond, run_engine(diamond, "ilp", compact=True))

    def test_dp_ignores_compact(self, diamond):
        assert run_engine(diamond, EngineType.DP, compact=True).makespan == 10

    def test_summary_line(self, diamond):
        sched = run_engine(diamond, EngineType.DP)
        assert summary_line(EngineType.DP, sched) == "dp,4,4,10"
        assert summary_line("lp", sched).startswith("lp,4,4,")


class TestValidateSchedule:
    def test_valid(self):
        resp = validate_schedule(make_validate([placed(1, 2, 0, 2), placed(2, 2, 2, 4)]))
        assert resp.is_valid
        assert resp.num_violations == 0
        assert resp.metrics.makespan == 4
        assert resp.metrics.lower_bound == 4
        assert resp.improvement_suggestions == []

    def test_engine_output_is_valid(self, diamond):
        sched = run_engine(diamond, EngineType.DP)
        resp = validate_schedule(ValidateRequest(
            schedule=sched.jobs, jobs=DIAMOND_JOBS, constraints=DIAMOND_EDGES, processor_count=4,
        ))
        assert resp.is_valid

    def test_precedence_and_capacity(self):
        resp = validate_schedule(make_validate([placed(1, 2, 0, 2), placed(2, 2, 1, 3)]))
        assert not resp.is_valid
        kinds = {v.violation_type for v in resp.violations}
        assert kinds == {"precedence", "capacity"}
        assert resp.metrics is None

    def test_consistency(self):
        resp = validate_schedule(make_validate([placed(1, 2, 0, 3), placed(2, 2, 3, 5)]))
        assert [v.violation_type for v in resp.violations] == ["consistency"]

    def test_allotment_out_of_range(self):
        resp = validate_schedule(make_validate([placed(1, 3, 0, 2), placed(2, 2, 2, 4)]))
        assert "allotment" in {v.violation_type for v in resp.violations}

    def test_unknown_and_duplicate(self):
        resp = validate_schedule(make_validate([
            placed(1, 2, 0, 2), placed(1, 2, 0, 2), placed(2, 2, 2, 4), placed(9, 1, 0, 1),
        ]))
        kinds = sorted(v.violation_type for v in resp.violations)
        assert kinds == ["duplicate_job", "unknown_job"]
        assert not resp.is_valid

    def test_missing_job_is_a_warning(self):
        resp = validate_schedule(make_validate([placed(1, 2, 0, 2)]))
        assert resp.is_valid
        assert resp.num_violations == 1
        assert resp.violations[0].violation_type == "missing_job"
        assert resp.violations[0].severity == "warning"

    def test_invalid_instance(self):
        resp = validate_schedule(make_validate(
            [placed(1, 2, 0, 2)], constraints=[{"before": 1, "after": 2}, {"before": 2, "after": 1}],
        ))
        assert not resp.is_valid
        assert resp.violations[0].violation_type == "invalid_instance"

    def test_idle_time_suggests_compacting(self):
        resp = validate_schedule(make_validate([placed(1, 1, 0, 4), placed(2, 1, 4, 7)]))
        assert resp.is_valid
        assert resp.metrics.idle_time == 2 * 7 - (4 + 3)
        assert any("compacting" in s for s in resp.improvement_suggestions)

    def test_over_allotment_suggestion(self):
        resp = validate_schedule(make_validate(
            [placed(1, 3, 0, 2)],
            jobs=[{"job_id": 1, "processing_times": [4, 2, 2]}],
            constraints=[],
            m=3,
        ))
        assert resp.is_valid
        assert any("fastest on 2" in s for s in resp.improvement_suggestions)


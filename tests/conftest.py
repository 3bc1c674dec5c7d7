"""Shared fixtures and helpers for the MalleableEngine test suite."""

import collections

import pytest

from linprog import LinearProgram, LpResult, LpStatus
from problem import SolverError, load


class StubLinearProgram(LinearProgram):
    """
    LinearProgram with scripted answers.

    `feasible(lp)` decides the outcome; feasible programs get every variable
    at its lower bound unless `assign(lp)` returns explicit values.
    """

    feasible = staticmethod(lambda lp: True)
    assign = None
    calls: list = []

    def _solve(self) -> LpResult:
        type(self).calls.append(self.name)
        if not self.feasible(self):
            return LpResult(status=LpStatus.INFEASIBLE)
        values = self.assign(self) if self.assign else list(self.lower)
        return LpResult(status=LpStatus.OPTIMAL, objective_value=0.0, values=values)


def stub_factory(feasible=None, assign=None, fail_with=None):
    """Build a LinearProgram subclass with the given scripted behavior."""
    attrs = {"calls": []}
    if feasible is not None:
        attrs["feasible"] = staticmethod(feasible)
    if assign is not None:
        attrs["assign"] = staticmethod(assign)
    if fail_with is not None:
        def _solve(self):
            type(self).calls.append(self.name)
            raise SolverError(fail_with, backend="STUB")
        attrs["_solve"] = _solve
    return type("ScriptedLinearProgram", (StubLinearProgram,), attrs)


def check_schedule(instance, schedule):
    """Assert precedence, capacity and contiguity of `schedule` for `instance`."""
    m = instance.processor_count
    assert schedule.processor_count == m
    placed = schedule.by_index()
    assert sorted(placed) == list(range(instance.job_count)), "every job exactly once"
    assert len(schedule.jobs) == instance.job_count

    for i, sj in placed.items():
        job = instance.jobs[i]
        assert sj.job_id == job.job_id
        assert 1 <= sj.allotment <= m
        assert sj.start >= 0
        assert sj.end == sj.start + job.processing_time(sj.allotment)

    for a, b in instance.edges:
        assert placed[a].end <= placed[b].start, f"precedence {a} -> {b} violated"

    events = collections.defaultdict(int)
    for sj in schedule.jobs:
        events[sj.start] += sj.allotment
        events[sj.end] -= sj.allotment
    in_use = 0
    for t in sorted(events):
        in_use += events[t]
        assert in_use <= m, f"{in_use} processors in use at t={t}"


def chain(times_a, times_b, m):
    """Two-job chain a -> b."""
    return load([(1, times_a), (2, times_b)], [(1, 2)], m)


@pytest.fixture
def diamond():
    """1 -> {2, 3} -> 4 on 4 processors."""
    return load(
        [
            (1, [8, 4, 3, 2]),
            (2, [12, 6, 4, 3]),
            (3, [6, 6, 6, 6]),
            (4, [4, 2, 2, 2]),
        ],
        [(1, 2), (1, 3), (2, 4), (3, 4)],
        4,
    )


@pytest.fixture
def n_shape():
    """The smallest order that is not series-parallel: 1->3, 2->3, 2->4."""
    return load(
        [
            (1, [6, 3, 2]),
            (2, [6, 4, 3]),
            (3, [9, 5, 4]),
            (4, [3, 2, 2]),
        ],
        [(1, 3), (2, 3), (2, 4)],
        3,
    )

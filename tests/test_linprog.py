"""Tests for the MalleableEngine linear-program abstraction (GLOP backend and stubs)."""

import pytest

from linprog import Direction, GlopLinearProgram, LpStatus, Relation, normalize
from problem import SolverError

from conftest import stub_factory


class TestGlop:
    def test_maximize(self):
        lp = GlopLinearProgram()
        x = lp.add_variable(0, 4, "x")
        y = lp.add_variable(0, None, "y")
        lp.add_constraint({x: 1, y: 1}, Relation.LE, 6)
        lp.add_constraint([(y, 1)], Relation.LE, 3)
        lp.set_objective({x: 2, y: 1}, Direction.MAXIMIZE)
        result = lp.solve()
        assert result.status == LpStatus.OPTIMAL
        assert result.objective_value == pytest.approx(10)
        assert result.value(x) == pytest.approx(4)
        assert result.value(y) == pytest.approx(2)

    def test_minimize_with_equality(self):
        lp = GlopLinearProgram()
        x = lp.add_variable(0, 10)
        y = lp.add_variable(0, 10)
        lp.add_constraint({x: 1, y: 1}, Relation.EQ, 5)
        lp.add_constraint({x: 1}, Relation.GE, 2)
        lp.set_objective({x: 3, y: 1})
        result = lp.solve()
        assert result.is_optimal
        assert result.value(x) == pytest.approx(2)
        assert result.value(y) == pytest.approx(3)

    def test_feasibility_only(self):
        lp = GlopLinearProgram()
        x = lp.add_variable(0, 1)
        lp.add_constraint({x: 1}, Relation.EQ, 1)
        assert lp.solve().is_optimal

    def test_infeasible(self):
        lp = GlopLinearProgram()
        x = lp.add_variable(0, 1)
        lp.add_constraint({x: 1}, Relation.GE, 2)
        result = lp.solve()
        assert result.status == LpStatus.INFEASIBLE
        assert not result.is_optimal
        assert result.values == []


class TestModelBuilding:
    def test_normalize_merges_terms(self):
        assert normalize([(0, 1), (1, 2), (0, 3)]) == {0: 4.0, 1: 2.0}
        assert normalize({2: 1}) == {2: 1.0}

    def test_unknown_variable(self):
        lp = GlopLinearProgram()
        with pytest.raises(ValueError):
            lp.add_constraint({3: 1}, Relation.LE, 1)

    def test_bad_bounds(self):
        lp = GlopLinearProgram()
        with pytest.raises(ValueError):
            lp.add_variable(2, 1)

    def test_counts(self):
        lp = GlopLinearProgram()
        x = lp.add_variable()
        lp.add_constraint({x: 1}, "<=", 3)
        assert lp.num_variables == 1
        assert lp.num_constraints == 1


class TestStub:
    def test_scripted_infeasible(self):
        factory = stub_factory(feasible=lambda lp: False)
        lp = factory(name="probe")
        lp.add_variable(0, 1)
        assert lp.solve().status == LpStatus.INFEASIBLE
        assert factory.calls == ["probe"]

    def test_scripted_failure(self):
        factory = stub_factory(fail_with="ABNORMAL")
        with pytest.raises(SolverError) as err:
            factory().solve()
        assert err.value.status == "ABNORMAL"
        assert err.value.backend == "STUB"

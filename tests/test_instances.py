"""Tests for MalleableEngine instance files and the random generator."""

import pytest

from instances import generate_instance, read_instance, write_instance
from instances.io import read_constraints, read_jobs
from problem import CyclicPrecedenceError, ValidationError
from problem.graph import width


def write(path, text):
    path.write_text(text)
    return path


@pytest.fixture
def files(tmp_path):
    jobs = write(tmp_path / "jobs.csv", "id,p1,p2,p3\n1,9,5,4\n2,6,3,3\n3,4,4,4\n")
    constraints = write(tmp_path / "constraints.csv", "id0,id1\n1,2\n1,3\n")
    return jobs, constraints


class TestReadInstance:
    def test_reads_jobs_and_constraints(self, files):
        inst = read_instance(*files)
        assert inst.processor_count == 3
        assert [job.job_id for job in inst.jobs] == [1, 2, 3]
        assert inst.jobs[0].processing_times == [9, 5, 4]
        assert inst.edges == [(0, 1), (0, 2)]

    def test_blank_lines_and_spaces(self, tmp_path):
        jobs = write(tmp_path / "jobs.csv", "id, p1\n\n 7 , 3\n")
        m, rows = read_jobs(jobs)
        assert m == 1
        assert rows == [(7, [3])]

    def test_omega_passed_through(self, files):
        assert read_instance(*files, omega=2).omega == 2

    def test_round_trip(self, tmp_path):
        inst = generate_instance(n=9, m=3, omega=3, min_chain=2, seed=4)
        jobs, constraints = tmp_path / "j.csv", tmp_path / "c.csv"
        write_instance(inst, jobs, constraints)
        again = read_instance(jobs, constraints)
        assert again.jobs == inst.jobs
        assert again.edges == inst.edges
        assert jobs.read_text().splitlines()[0] == "id,p1,p2,p3"


class TestMalformedFiles:
    def test_missing_file(self, tmp_path, files):
        with pytest.raises(ValidationError, match="Cannot read"):
            read_instance(tmp_path / "nope.csv", files[1])

    def test_empty_file(self, tmp_path):
        with pytest.raises(ValidationError, match="no header"):
            read_jobs(write(tmp_path / "jobs.csv", ""))

    def test_bad_job_header(self, tmp_path):
        with pytest.raises(ValidationError, match="'id'"):
            read_jobs(write(tmp_path / "jobs.csv", "job,p1\n1,3\n"))

    def test_no_duration_column(self, tmp_path):
        with pytest.raises(ValidationError):
            read_jobs(write(tmp_path / "jobs.csv", "id\n1\n"))

    def test_ragged_row(self, tmp_path):
        with pytest.raises(ValidationError, match="columns"):
            read_jobs(write(tmp_path / "jobs.csv", "id,p1,p2\n1,3\n"))

    def test_non_integer_cell(self, tmp_path):
        with pytest.raises(ValidationError, match="processing time"):
            read_jobs(write(tmp_path / "jobs.csv", "id,p1\n1,2.5\n"))

    def test_bad_constraint_header(self, tmp_path):
        with pytest.raises(ValidationError, match="id0,id1"):
            read_constraints(write(tmp_path / "c.csv", "from,to\n1,2\n"))

    def test_cycle_in_files(self, tmp_path, files):
        constraints = write(tmp_path / "cyc.csv", "id0,id1\n1,2\n2,1\n")
        with pytest.raises(CyclicPrecedenceError):
            read_instance(files[0], constraints)

    def test_unknown_id_in_constraints(self, tmp_path, files):
        constraints = write(tmp_path / "c.csv", "id0,id1\n1,5\n")
        with pytest.raises(ValidationError, match="unknown job id 5"):
            read_instance(files[0], constraints)


class TestGenerator:
    def test_same_seed_same_instance(self):
        a = generate_instance(n=20, m=4, omega=4, min_chain=2, seed=11)
        b = generate_instance(n=20, m=4, omega=4, min_chain=2, seed=11)
        assert a == b

    def test_different_seed(self):
        a = generate_instance(n=20, m=4, omega=4, min_chain=2, seed=1)
        b = generate_instance(n=20, m=4, omega=4, min_chain=2, seed=2)
        assert a.jobs != b.jobs

    @pytest.mark.parametrize("omega", [1, 3, 5])
    def test_width_equals_chain_count(self, omega):
        inst = generate_instance(n=15, m=2, omega=omega, min_chain=3, seed=omega)
        assert width(inst) == omega
        assert inst.omega == omega
        assert len(inst.edges) == 15 - omega

    def test_durations_in_range_and_non_increasing(self):
        inst = generate_instance(n=10, m=5, min_p=5, max_p=50, seed=3)
        for job in inst.jobs:
            times = job.processing_times
            assert len(times) == 5
            assert times == sorted(times, reverse=True)
            assert all(5 <= p <= 50 for p in times)

    def test_concave_shape(self):
        inst = generate_instance(n=8, m=4, min_p=40, max_p=80, concave=True, seed=5)
        for job in inst.jobs:
            p = job.processing_times[0]
            shapes = [[max(1, p // min(k, cutoff)) for k in range(1, 5)] for cutoff in range(1, 5)]
            assert job.processing_times in shapes

    def test_one_sink_per_chain(self):
        inst = generate_instance(n=12, m=2, omega=3, min_chain=2, max_chain=5, seed=9)
        succ_free = [i for i in range(inst.job_count) if not inst.successors[i]]
        assert len(succ_free) == 3

    @pytest.mark.parametrize("params", [
        {"n": 5, "m": 2, "min_p": 10, "max_p": 3},
        {"n": 5, "m": 2, "omega": 3, "min_chain": 2},
        {"n": 5, "m": 2, "omega": 1, "max_chain": 4},
        {"n": 0, "m": 2},
        {"n": 5, "m": 0},
    ])
    def test_bad_parameters(self, params):
        with pytest.raises(ValidationError):
            generate_instance(**params)

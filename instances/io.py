"""
MalleableEngine — Instance Files
Reads and writes the two-file CSV description of an instance.

  job file:        id,p1,...,pm      one row per job, m = columns - 1
  constraint file: id0,id1           one row per precedence pair (id0 before id1)
"""

import csv
from pathlib import Path
from typing import Optional, Union

from problem.errors import ValidationError
from problem.loader import load
from problem.models import Instance

PathLike = Union[str, Path]


def _parse_int(cell: str, what: str, path: PathLike, row: int) -> int:
    try:
        return int(cell.strip())
    except (ValueError, AttributeError) as e:
        raise ValidationError(
            f"Bad {what} '{cell}' in {path} row {row}", {"file": str(path), "row": row}
        ) from e


def _read_rows(path: PathLike) -> tuple[list[str], list[list[str]]]:
    try:
        with open(path, newline="") as f:
            rows = [row for row in csv.reader(f) if row and any(cell.strip() for cell in row)]
    except OSError as e:
        raise ValidationError(f"Cannot read {path}: {e.strerror}", {"file": str(path)}) from e
    if not rows:
        raise ValidationError(f"{path} has no header", {"file": str(path)})
    return [h.strip() for h in rows[0]], rows[1:]


def read_jobs(path: PathLike) -> tuple[int, list[tuple[int, list[int]]]]:
    """Return (m, [(job_id, processing_times), ...]) from a job file."""
    header, rows = _read_rows(path)
    if len(header) < 2:
        raise ValidationError(f"{path} needs an id column and at least one duration column")
    if header[0] != "id":
        raise ValidationError(f"First column of {path} must be 'id', got '{header[0]}'")
    m = len(header) - 1

    jobs = []
    for row_number, row in enumerate(rows, start=1):
        if len(row) != len(header):
            raise ValidationError(
                f"{path} row {row_number} has {len(row)} columns, expected {len(header)}",
                {"file": str(path), "row": row_number},
            )
        job_id = _parse_int(row[0], "id", path, row_number)
        times = [_parse_int(cell, "processing time", path, row_number) for cell in row[1:]]
        jobs.append((job_id, times))
    return m, jobs


def read_constraints(path: PathLike) -> list[tuple[int, int]]:
    """Return the precedence pairs of a constraint file."""
    header, rows = _read_rows(path)
    if header != ["id0", "id1"]:
        raise ValidationError(f"Header of {path} must be 'id0,id1', got '{','.join(header)}'")
    pairs = []
    for row_number, row in enumerate(rows, start=1):
        if len(row) != 2:
            raise ValidationError(
                f"{path} row {row_number} has {len(row)} columns, expected 2",
                {"file": str(path), "row": row_number},
            )
        pairs.append((
            _parse_int(row[0], "id0", path, row_number),
            _parse_int(row[1], "id1", path, row_number),
        ))
    return pairs


def read_instance(job_file: PathLike, constraint_file: PathLike, omega: Optional[int] = None) -> Instance:
    """Load and validate an instance from its job and constraint files."""
    m, jobs = read_jobs(job_file)
    return load(jobs, read_constraints(constraint_file), m, omega)


def write_instance(instance: Instance, job_file: PathLike, constraint_file: PathLike) -> None:
    with open(job_file, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["id"] + [f"p{k}" for k in range(1, instance.processor_count + 1)])
        for job in instance.jobs:
            writer.writerow([job.job_id] + job.processing_times)

    with open(constraint_file, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["id0", "id1"])
        for pc in instance.precedences():
            writer.writerow([pc.before, pc.after])

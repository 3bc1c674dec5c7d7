"""
MalleableEngine CLI — malleable job scheduling from the command line.

Usage:
    malleable solve-dp   Schedule an instance with the DP engine
    malleable solve-lp   Schedule an instance with the LP engine
    malleable solve-ilp  Schedule an instance with the relaxation engine
    malleable compare    Run all three engines on one instance
    malleable generate   Write a random instance to job/constraint files

Each solve command prints one line  <engine>,<n>,<m>,<makespan>  on stdout.
Diagnostics go to stderr.

Exit codes: 2 invalid input, 3 infeasible relaxation, 4 LP backend failure.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from instances import generate_instance, read_instance, write_instance
from problem.errors import InfeasibleError, SolverError, ValidationError
from problem.models import Instance
from render import default_path, try_render
from runtime.logging import get_logger, setup_logging
from solver.engine import run_engine, summary_line
from solver.models import EngineType

EXIT_INVALID = 2
EXIT_INFEASIBLE = 3
EXIT_SOLVER = 4

console = Console(stderr=True)
logger = get_logger("malleable.cli")

cli = typer.Typer(
    name="malleable",
    help="Malleable job scheduling under precedence constraints: dp, lp and ilp engines.",
    no_args_is_help=True,
)

JobFile = typer.Option(..., "--job-file", "-j", help="CSV with header id,p1..pm")
ConstraintFile = typer.Option(..., "--constraint-file", "-c", help="CSV with header id0,id1")
LogLevel = typer.Option(None, "--log-level", "-l", help="error, info or debug (default from MALLEABLE_LOG_LEVEL)")
Omega = typer.Option(None, "--omega", min=1, help="Declared width bound of the instance")
Render = typer.Option(False, "--render", help="Save a Gantt chart of the schedule")
Output = typer.Option(None, "--output", "-o", help="Image path for --render (default: <output_dir>/schedule-<engine>.png)")


def _setup(log_level: Optional[str]) -> None:
    try:
        setup_logging(log_level)
    except ValueError as e:
        console.print(f"[red]Invalid option:[/red] {e}")
        raise typer.Exit(code=EXIT_INVALID)


def _load(job_file: Path, constraint_file: Path, omega: Optional[int]) -> Instance:
    try:
        return read_instance(job_file, constraint_file, omega)
    except ValidationError as e:
        console.print(f"[red]Invalid instance:[/red] {e}")
        raise typer.Exit(code=EXIT_INVALID)


def _run(
    engine: EngineType,
    instance: Instance,
    compact: bool = False,
    epsilon: Optional[float] = None,
    max_slices: Optional[int] = None,
    render: bool = False,
    output: Optional[Path] = None,
) -> None:
    try:
        schedule = run_engine(instance, engine, compact=compact, epsilon=epsilon, max_slices=max_slices)
    except InfeasibleError as e:
        console.print(f"[red]Infeasible:[/red] {e}")
        raise typer.Exit(code=EXIT_INFEASIBLE)
    except SolverError as e:
        console.print(f"[red]Solver error:[/red] {e}")
        raise typer.Exit(code=EXIT_SOLVER)

    typer.echo(summary_line(engine, schedule))
    if render:
        try_render(schedule, output or default_path(engine.value), title=f"{engine.value} - makespan {schedule.makespan}")


@cli.command("solve-dp")
def solve_dp(
    job_file: Path = JobFile,
    constraint_file: Path = ConstraintFile,
    omega: Optional[int] = Omega,
    render: bool = Render,
    output: Optional[Path] = Output,
    log_level: Optional[str] = LogLevel,
):
    """Schedule with the dynamic program over a series/parallel decomposition."""
    _setup(log_level)
    instance = _load(job_file, constraint_file, omega)
    _run(EngineType.DP, instance, render=render, output=output)


@cli.command("solve-lp")
def solve_lp(
    job_file: Path = JobFile,
    constraint_file: Path = ConstraintFile,
    epsilon: Optional[float] = typer.Option(
        None, "--epsilon", "-e", help="Relative search tolerance (default from settings)",
    ),
    compact: bool = typer.Option(False, "--compact", help="Close idle gaps afterwards"),
    omega: Optional[int] = Omega,
    render: bool = Render,
    output: Optional[Path] = Output,
    log_level: Optional[str] = LogLevel,
):
    """Schedule with the window LP relaxation and binary search."""
    _setup(log_level)
    if epsilon is not None and epsilon <= 0:
        console.print(f"[red]Invalid option:[/red] --epsilon must be positive, got {epsilon}")
        raise typer.Exit(code=EXIT_INVALID)
    instance = _load(job_file, constraint_file, omega)
    _run(EngineType.LP, instance, compact=compact, epsilon=epsilon, render=render, output=output)


@cli.command("solve-ilp")
def solve_ilp(
    job_file: Path = JobFile,
    constraint_file: Path = ConstraintFile,
    max_slices: Optional[int] = typer.Option(
        None, "--max-slices", min=4, help="Time slice budget (default from settings)",
    ),
    compact: bool = typer.Option(False, "--compact", help="Close idle gaps afterwards"),
    omega: Optional[int] = Omega,
    render: bool = Render,
    output: Optional[Path] = Output,
    log_level: Optional[str] = LogLevel,
):
    """Schedule with the time-indexed relaxation and threshold rounding."""
    _setup(log_level)
    instance = _load(job_file, constraint_file, omega)
    _run(EngineType.ILP, instance, compact=compact, max_slices=max_slices, render=render, output=output)


@cli.command()
def compare(
    job_file: Path = JobFile,
    constraint_file: Path = ConstraintFile,
    compact: bool = typer.Option(False, "--compact", help="Compact the lp and ilp schedules"),
    omega: Optional[int] = Omega,
    log_level: Optional[str] = LogLevel,
):
    """Run dp, lp and ilp on the same instance; one result line each."""
    _setup(log_level)
    instance = _load(job_file, constraint_file, omega)
    for engine in EngineType:
        _run(engine, instance, compact=compact)


@cli.command()
def generate(
    job_file: Path = JobFile,
    constraint_file: Path = ConstraintFile,
    n: int = typer.Option(..., "--jobs", "-n", min=1, help="Number of jobs"),
    m: int = typer.Option(..., "--processors", "-m", min=1, help="Number of processors"),
    min_p: int = typer.Option(1, "--min-p", min=1, help="Smallest sequential processing time"),
    max_p: int = typer.Option(100, "--max-p", min=1, help="Largest sequential processing time"),
    omega: int = typer.Option(1, "--omega", min=1, help="Number of chains (width of the order)"),
    min_chain: int = typer.Option(1, "--min-chain", min=1, help="Shortest chain"),
    max_chain: Optional[int] = typer.Option(None, "--max-chain", min=1, help="Longest chain (default n)"),
    concave: bool = typer.Option(False, "--concave", help="Concave p / min(k, cutoff) durations"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
    log_level: Optional[str] = LogLevel,
):
    """Generate a random instance and write it to the two CSV files."""
    _setup(log_level)
    try:
        instance = generate_instance(
            n=n, m=m, min_p=min_p, max_p=max_p, omega=omega,
            min_chain=min_chain, max_chain=max_chain, concave=concave, seed=seed,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid parameters:[/red] {e}")
        raise typer.Exit(code=EXIT_INVALID)
    write_instance(instance, job_file, constraint_file)
    logger.info("instance written", job_file=str(job_file), constraint_file=str(constraint_file))


def app():
    cli()


if __name__ == "__main__":
    app()

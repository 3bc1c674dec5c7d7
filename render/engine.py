"""
MalleableEngine — Gantt Rendering
Draws a schedule as a Gantt chart, one row per processor.

Jobs that carry a processor block (DP schedules) are drawn on it. Otherwise
processors are assigned greedily in start order: a job takes the
lowest-numbered processors that are free at its start.
"""

import os
from pathlib import Path
from typing import Optional, Union

import matplotlib

matplotlib.use("Agg")  # Must be set before importing pyplot
import matplotlib.pyplot as plt  # noqa: E402

from problem.errors import RenderError  # noqa: E402
from problem.models import Schedule  # noqa: E402
from runtime.config import get_settings  # noqa: E402
from runtime.logging import get_logger  # noqa: E402

logger = get_logger("malleable.render")

PathLike = Union[str, Path]


def assign_processors(schedule: Schedule) -> dict[int, list[int]]:
    """Processor ids per job index."""
    m = schedule.processor_count
    free_at = [0] * m
    assigned: dict[int, list[int]] = {}
    for sj in schedule.sorted_by_start():
        if sj.first_processor is not None:
            block = list(range(sj.first_processor, sj.first_processor + sj.allotment))
        else:
            block = [p for p in range(m) if free_at[p] <= sj.start][:sj.allotment]
        if len(block) != sj.allotment or block[-1] >= m:
            raise ValueError(f"Job {sj.job_id} does not fit on the processors at t={sj.start}")
        for p in block:
            free_at[p] = max(free_at[p], sj.end)
        assigned[sj.index] = block
    return assigned


def render_schedule(schedule: Schedule, path: PathLike, title: Optional[str] = None) -> Path:
    """
    Save a Gantt chart of `schedule` to `path` (format from the extension).

    Raises RenderError when the image cannot be written.
    """
    m = schedule.processor_count
    n = len(schedule.jobs)
    processors = assign_processors(schedule)

    fig, ax = plt.subplots(
        figsize=(min(10 + n * 0.05, 18), min(0.5 * m + 2, 16)),
        constrained_layout=True,
    )
    cmap = plt.get_cmap("tab20")
    for sj in schedule.jobs:
        color = cmap(sj.index % 20)
        for p in processors[sj.index]:
            ax.barh(
                p,
                sj.duration,
                left=sj.start,
                height=0.8,
                color=color,
                alpha=0.85,
                edgecolor="black",
                linewidth=0.6,
            )
        if n <= 60:
            middle = processors[sj.index][len(processors[sj.index]) // 2]
            ax.text(sj.start + sj.duration / 2, middle, str(sj.job_id), ha="center", va="center", fontsize=8)

    ax.set_xlabel("Time", fontsize=12)
    ax.set_ylabel("Processor", fontsize=12)
    ax.set_title(title or f"Schedule - makespan = {schedule.makespan}", fontsize=14, fontweight="bold")
    ax.set_yticks(range(m))
    ax.set_yticklabels([f"P{i}" for i in range(m)])
    ax.grid(True, alpha=0.25, axis="x", linestyle="--", linewidth=0.7)
    ax.set_ylim(-0.5, m - 0.5)
    ax.invert_yaxis()

    path = Path(path)
    try:
        if path.parent and str(path.parent) not in ("", "."):
            os.makedirs(path.parent, exist_ok=True)
        fig.savefig(path, dpi=150)
    except (OSError, ValueError) as e:
        raise RenderError(str(path), str(e)) from e
    finally:
        plt.close(fig)
    logger.info("schedule rendered", path=str(path), jobs=n, processors=m)
    return path


def default_path(tag: str) -> Path:
    """Image path for an engine's result in the configured output directory."""
    return Path(get_settings().output_dir) / f"schedule-{tag}.png"


def try_render(schedule: Schedule, path: PathLike, title: Optional[str] = None) -> Optional[Path]:
    """Like render_schedule, but a failed write is logged instead of raised."""
    try:
        return render_schedule(schedule, path, title)
    except RenderError as e:
        logger.error("schedule not rendered", path=e.path, reason=e.reason)
        return None

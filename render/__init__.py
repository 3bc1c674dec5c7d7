"""MalleableEngine Render — Gantt charts of schedules (matplotlib)."""
from .engine import render_schedule, try_render, assign_processors, default_path  # noqa: F401

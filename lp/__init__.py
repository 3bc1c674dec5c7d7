"""MalleableEngine LP — window relaxation with binary search and argmax rounding."""
from .engine import schedule, round_allotments, level_windows, window_relaxation  # noqa: F401

"""MalleableEngine Solver — request/response layer over the dp, lp and ilp engines."""
from .models import *  # noqa: F401,F403
from .engine import solve, run_engine, summary_line  # noqa: F401
from .validator import validate_schedule  # noqa: F401

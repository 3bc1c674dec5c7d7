"""MalleableEngine DP — series/parallel dynamic program over Pareto frontiers."""
from .models import *  # noqa: F401,F403
from .engine import schedule, decompose, evaluate  # noqa: F401

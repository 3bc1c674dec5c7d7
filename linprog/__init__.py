"""MalleableEngine LinProg — solver-independent linear programs (OR-Tools GLOP backend)."""
from .models import *  # noqa: F401,F403
from .engine import LinearProgram, GlopLinearProgram  # noqa: F401

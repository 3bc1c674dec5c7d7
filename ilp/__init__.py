"""MalleableEngine ILP — time-indexed relaxation with threshold rounding."""
from .engine import schedule, slice_length, round_job, allotment_cap, RHO  # noqa: F401

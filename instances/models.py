"""
MalleableEngine — Instance Generator Parameters
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field, model_validator


class GeneratorConfig(BaseModel):
    """
    Shape of a random instance.

    Jobs are split into `omega` disjoint chains of consecutive ids, so the
    generated precedence order has width exactly `omega`.
    """
    n: int = Field(..., ge=1, description="Number of jobs")
    m: int = Field(..., ge=1, description="Number of processors")
    min_p: int = Field(1, ge=1, description="Smallest sequential processing time")
    max_p: int = Field(100, ge=1, description="Largest sequential processing time")
    omega: int = Field(1, ge=1, description="Number of chains")
    min_chain: int = Field(1, ge=1, description="Shortest chain length")
    max_chain: Optional[int] = Field(None, ge=1, description="Longest chain length. None = n.")
    concave: bool = Field(False, description="p(k) = p / min(k, cutoff) instead of random durations")
    seed: Optional[int] = Field(None, description="Random seed for reproducible instances")

    @model_validator(mode="after")
    def check_ranges(self):
        if self.min_p > self.max_p:
            raise ValueError(f"min_p ({self.min_p}) exceeds max_p ({self.max_p})")
        max_chain = self.max_chain if self.max_chain is not None else self.n
        if self.min_chain > max_chain:
            raise ValueError(f"min_chain ({self.min_chain}) exceeds max_chain ({max_chain})")
        if not self.omega * self.min_chain <= self.n <= self.omega * max_chain:
            raise ValueError(
                f"{self.n} jobs cannot form {self.omega} chains of length "
                f"{self.min_chain}..{max_chain}"
            )
        return self

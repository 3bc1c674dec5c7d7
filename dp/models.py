"""
MalleableEngine — DP Engine Data Structures
Composition tree nodes and Pareto states.

The tree is an arena: a node's children always have larger ids than the node
itself, so iterating ids in reverse visits children before parents.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class Leaf:
    job: int


@dataclass(frozen=True)
class Series:
    """Every job of `left` finishes before any job of `right` starts."""
    left: int
    right: int


@dataclass(frozen=True)
class Parallel:
    """`left` and `right` are mutually incomparable."""
    left: int
    right: int


Node = Union[Leaf, Series, Parallel]


class Combination(str, Enum):
    LEAF = "leaf"
    SEQUENCE = "sequence"  # children back to back on the same processor block
    SPLIT = "split"        # children side by side on disjoint processor blocks


@dataclass(frozen=True)
class DpState:
    """
    A sub-schedule occupying `processors` processors for `makespan` time.

    `left`/`right` index the chosen states in the children's frontiers.
    """
    processors: int
    makespan: int
    combination: Combination
    left: int = -1
    right: int = -1


def pareto_prune(candidates: list[DpState]) -> list[DpState]:
    """
    Keep states not dominated by one with no more processors and no greater makespan.

    The result is sorted by processors with strictly decreasing makespan;
    among equal states the first candidate wins.
    """
    frontier: list[DpState] = []
    for state in sorted(candidates, key=lambda s: (s.processors, s.makespan)):
        if not frontier or state.makespan < frontier[-1].makespan:
            frontier.append(state)
    return frontier

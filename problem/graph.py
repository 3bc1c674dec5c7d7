"""
MalleableEngine — Precedence Graph Helpers
Operations on the dense adjacency structure of an Instance.

Reachability sets are Python ints used as bitsets: bit i set ⇔ job i in the set.
"""

import heapq
import math
from typing import Callable, Optional, Sequence

from .models import Instance


def topological_order(successors: Sequence[Sequence[int]]) -> Optional[list[int]]:
    """Kahn's algorithm, smallest ready index first. None if the graph has a cycle."""
    n = len(successors)
    indegree = [0] * n
    for outs in successors:
        for v in outs:
            indegree[v] += 1
    ready = [i for i in range(n) if indegree[i] == 0]
    heapq.heapify(ready)
    order = []
    while ready:
        u = heapq.heappop(ready)
        order.append(u)
        for v in successors[u]:
            indegree[v] -= 1
            if indegree[v] == 0:
                heapq.heappush(ready, v)
    if len(order) != n:
        return None
    return order


def find_cycle(successors: Sequence[Sequence[int]]) -> list[int]:
    """Return the indices of one directed cycle (empty if acyclic)."""
    n = len(successors)
    color = [0] * n  # 0 = new, 1 = on stack, 2 = done
    parent = [-1] * n
    for root in range(n):
        if color[root]:
            continue
        stack = [(root, iter(successors[root]))]
        color[root] = 1
        while stack:
            u, it = stack[-1]
            advanced = False
            for v in it:
                if color[v] == 0:
                    color[v] = 1
                    parent[v] = u
                    stack.append((v, iter(successors[v])))
                    advanced = True
                    break
                if color[v] == 1:
                    cycle = [v]
                    w = u
                    while w != v:
                        cycle.append(w)
                        w = parent[w]
                    cycle.reverse()
                    return cycle
            if not advanced:
                color[u] = 2
                stack.pop()
    return []


def descendants(instance: Instance) -> list[int]:
    """Bitset of strict successors (transitive closure) for every job."""
    order = topological_order(instance.successors)
    desc = [0] * instance.job_count
    for u in reversed(order):
        mask = 0
        for v in instance.successors[u]:
            mask |= (1 << v) | desc[v]
        desc[u] = mask
    return desc


def ancestors(instance: Instance) -> list[int]:
    """Bitset of strict predecessors (transitive closure) for every job."""
    order = topological_order(instance.successors)
    anc = [0] * instance.job_count
    for v in order:
        mask = 0
        for u in instance.predecessors[v]:
            mask |= (1 << u) | anc[u]
        anc[v] = mask
    return anc


def transitive_reduction(instance: Instance) -> list[tuple[int, int]]:
    """Edges (a, b) not implied by a longer path from a to b."""
    desc = descendants(instance)
    reduced = []
    for a, b in instance.edges:
        implied = False
        for c in instance.successors[a]:
            if c != b and (desc[c] >> b) & 1:
                implied = True
                break
        if not implied:
            reduced.append((a, b))
    return reduced


def longest_path_levels(instance: Instance) -> list[int]:
    """Level of each job = number of jobs on the longest chain ending before it."""
    levels = [0] * instance.job_count
    for v in topological_order(instance.successors):
        for u in instance.predecessors[v]:
            levels[v] = max(levels[v], levels[u] + 1)
    return levels


def critical_path_length(instance: Instance, duration: Callable[[int], float]) -> float:
    """Longest chain length when job i takes duration(i)."""
    finish = [0.0] * instance.job_count
    for v in topological_order(instance.successors):
        ready = max((finish[u] for u in instance.predecessors[v]), default=0.0)
        finish[v] = ready + duration(v)
    return max(finish, default=0.0)


def width(instance: Instance) -> int:
    """
    Size of the largest antichain.

    By Dilworth's theorem this is n minus a maximum matching in the bipartite
    graph (left copy → right copy) of the transitive closure.
    """
    n = instance.job_count
    desc = descendants(instance)
    adjacency = [[v for v in range(n) if (desc[u] >> v) & 1] for u in range(n)]
    match_right = [-1] * n

    def try_augment(root: int) -> bool:
        seen = [False] * n
        # iterative DFS over alternating paths
        stack = [(root, iter(adjacency[root]))]
        path = []
        while stack:
            u, it = stack[-1]
            advanced = False
            for v in it:
                if seen[v]:
                    continue
                seen[v] = True
                if match_right[v] == -1:
                    path.append((u, v))
                    for pu, pv in path:
                        match_right[pv] = pu
                    return True
                path.append((u, v))
                stack.append((match_right[v], iter(adjacency[match_right[v]])))
                advanced = True
                break
            if not advanced:
                stack.pop()
                if path:
                    path.pop()
        return False

    matching = sum(1 for u in range(n) if try_augment(u))
    return n - matching


def makespan_lower_bound(instance: Instance) -> int:
    """
    Trivial lower bound on any schedule's makespan: the longest single job,
    the critical path at minimum durations, and total minimum work over m.
    """
    m = instance.processor_count
    longest = max(job.min_processing_time() for job in instance.jobs)
    chain = critical_path_length(instance, lambda i: instance.jobs[i].min_processing_time())
    work = sum(min(job.work(k) for k in range(1, m + 1)) for job in instance.jobs)
    return max(longest, math.ceil(chain), math.ceil(work / m))

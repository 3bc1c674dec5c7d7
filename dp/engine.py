"""
MalleableEngine — DP Engine
Dynamic program over a series/parallel decomposition of the precedence order.

  1. Decompose the job set into a binary composition tree
     (Leaf / Series / Parallel), built iteratively into an arena.
  2. Evaluate the tree bottom-up; every node keeps the Pareto frontier of
     (processors, makespan) states of its sub-schedule.
  3. Pick the best root state on at most m processors and translate it back
     down the tree into absolute start times and processor blocks.

Orders that are not series-parallel get a forced series cut at the
topological prefix adding the fewest precedence pairs; the larger the true
width, the more such cuts are needed and the more quality degrades.
"""

import time
from bisect import bisect_right

from .models import Leaf, Series, Parallel, Node, Combination, DpState, pareto_prune
from problem.graph import ancestors, descendants, topological_order, width
from problem.models import Instance, Schedule, ScheduledJob
from runtime.logging import get_logger

logger = get_logger("malleable.dp")


# ─── Decomposition ───

def _members(mask: int, order: list[int]) -> list[int]:
    return [v for v in order if (mask >> v) & 1]


def _first_component(mask: int, start: int, comparable: list[int]) -> int:
    """Connected component of `start` in the comparability graph restricted to `mask`."""
    component = 1 << start
    frontier = component
    while frontier:
        v = frontier.bit_length() - 1
        frontier &= ~(1 << v)
        new = comparable[v] & mask & ~component
        component |= new
        frontier |= new
    return component


def _series_cut(members: list[int], mask: int, anc: list[int]) -> int:
    """Smallest k such that the first k members precede all others, or 0."""
    r = len(members)
    suffix = [mask] * (r + 1)
    for k in range(r - 1, -1, -1):
        suffix[k] = suffix[k + 1] & anc[members[k]]
    prefix = 0
    for k in range(1, r):
        prefix |= 1 << members[k - 1]
        if prefix & ~suffix[k] == 0:
            return k
    return 0


def _forced_cut(members: list[int], mask: int, comparable: list[int]) -> int:
    """Topological prefix length adding the fewest new precedence pairs (ties: most balanced)."""
    r = len(members)
    incomparable = [mask & ~(comparable[v] | (1 << v)) for v in members]
    prefix = 1 << members[0]
    rest = mask & ~prefix
    added = (incomparable[0] & rest).bit_count()
    best_k, best_added = 1, added
    for k in range(1, r - 1):
        t = members[k]
        prefix |= 1 << t
        rest &= ~(1 << t)
        added += (incomparable[k] & rest).bit_count() - (incomparable[k] & prefix).bit_count()
        balance = abs(2 * (k + 1) - r)
        if added < best_added or (added == best_added and balance < abs(2 * best_k - r)):
            best_k, best_added = k + 1, added
    return best_k


def decompose(instance: Instance) -> tuple[list[Node], int]:
    """
    Build the composition tree of the whole instance.

    Returns the node arena (root = 0) and the number of forced series cuts.
    """
    order = topological_order(instance.successors)
    anc = ancestors(instance)
    desc = descendants(instance)
    comparable = [a | d for a, d in zip(anc, desc)]

    nodes: list = [None]
    forced = 0
    stack = [(0, (1 << instance.job_count) - 1)]
    while stack:
        node_id, mask = stack.pop()
        if mask & (mask - 1) == 0:
            nodes[node_id] = Leaf(mask.bit_length() - 1)
            continue

        members = _members(mask, order)
        component = _first_component(mask, members[0], comparable)
        if component != mask:
            kind, left_mask = Parallel, component
        else:
            k = _series_cut(members, mask, anc)
            if k == 0:
                k = _forced_cut(members, mask, comparable)
                forced += 1
            kind = Series
            left_mask = 0
            for v in members[:k]:
                left_mask |= 1 << v

        left = len(nodes)
        nodes.extend([None, None])
        nodes[node_id] = kind(left, left + 1)
        stack.append((left, left_mask))
        stack.append((left + 1, mask & ~left_mask))
    return nodes, forced


# ─── Evaluation ───

def _best_within(processors: list[int], budget: int) -> int:
    """Index of the fastest state using at most `budget` processors, or -1."""
    return bisect_right(processors, budget) - 1


def _leaf_frontier(instance: Instance, job: int) -> list[DpState]:
    p = instance.jobs[job]
    return pareto_prune([
        DpState(processors=k, makespan=p.processing_time(k), combination=Combination.LEAF)
        for k in range(1, instance.processor_count + 1)
    ])


def _sequence_candidates(left: list[DpState], right: list[DpState], m: int) -> list[DpState]:
    left_procs = [s.processors for s in left]
    right_procs = [s.processors for s in right]
    candidates = []
    for budget in range(1, m + 1):
        li = _best_within(left_procs, budget)
        ri = _best_within(right_procs, budget)
        if li < 0 or ri < 0:
            continue
        candidates.append(DpState(
            processors=max(left[li].processors, right[ri].processors),
            makespan=left[li].makespan + right[ri].makespan,
            combination=Combination.SEQUENCE,
            left=li,
            right=ri,
        ))
    return candidates


def _split_candidates(left: list[DpState], right: list[DpState], m: int) -> list[DpState]:
    candidates = []
    for li, ls in enumerate(left):
        for ri, rs in enumerate(right):
            if ls.processors + rs.processors > m:
                break
            candidates.append(DpState(
                processors=ls.processors + rs.processors,
                makespan=max(ls.makespan, rs.makespan),
                combination=Combination.SPLIT,
                left=li,
                right=ri,
            ))
    return candidates


def evaluate(instance: Instance, nodes: list[Node]) -> list[list[DpState]]:
    """Pareto frontier of every node, children evaluated before parents."""
    m = instance.processor_count
    frontiers: list[list[DpState]] = [[] for _ in nodes]
    for node_id in range(len(nodes) - 1, -1, -1):
        node = nodes[node_id]
        if isinstance(node, Leaf):
            frontiers[node_id] = _leaf_frontier(instance, node.job)
            continue
        left, right = frontiers[node.left], frontiers[node.right]
        candidates = _sequence_candidates(left, right, m)
        if isinstance(node, Parallel):
            # listed first so that ties keep the overlapping placement
            candidates = _split_candidates(left, right, m) + candidates
        frontiers[node_id] = pareto_prune(candidates)
    return frontiers


# ─── Reconstruction ───

def reconstruct(
    instance: Instance,
    nodes: list[Node],
    frontiers: list[list[DpState]],
    root_state: int,
) -> list[ScheduledJob]:
    """Translate the chosen root state into absolute starts and processor blocks."""
    placed = []
    stack = [(0, root_state, 0, 0)]  # node, state index, first processor, start time
    while stack:
        node_id, state_index, first_processor, start = stack.pop()
        node = nodes[node_id]
        state = frontiers[node_id][state_index]
        if isinstance(node, Leaf):
            job = instance.jobs[node.job]
            placed.append(ScheduledJob(
                job_id=job.job_id,
                index=node.job,
                allotment=state.processors,
                start=start,
                end=start + state.makespan,
                first_processor=first_processor,
            ))
            continue
        left_state = frontiers[node.left][state.left]
        if state.combination == Combination.SPLIT:
            stack.append((node.left, state.left, first_processor, start))
            stack.append((node.right, state.right, first_processor + left_state.processors, start))
        else:
            stack.append((node.left, state.left, first_processor, start))
            stack.append((node.right, state.right, first_processor, start + left_state.makespan))
    placed.sort(key=lambda sj: sj.index)
    return placed


def schedule(instance: Instance) -> Schedule:
    """Compute a schedule with the DP engine. Deterministic, no LP solver involved."""
    t0 = time.time()

    if instance.omega is not None:
        measured = width(instance)
        if measured > instance.omega:
            logger.warning(
                "instance wider than declared bound, quality may degrade",
                declared_omega=instance.omega,
                measured_width=measured,
            )

    nodes, forced = decompose(instance)
    logger.debug("composition tree built", nodes=len(nodes), forced_series_cuts=forced)

    frontiers = evaluate(instance, nodes)
    root = frontiers[0]
    root_procs = [s.processors for s in root]
    best = _best_within(root_procs, instance.processor_count)
    logger.debug(
        "root frontier",
        states=[(s.processors, s.makespan) for s in root],
        chosen=best,
    )

    result = Schedule(
        processor_count=instance.processor_count,
        jobs=reconstruct(instance, nodes, frontiers, best),
    )
    logger.info(
        "dp schedule found",
        jobs=instance.job_count,
        processors=instance.processor_count,
        makespan=result.makespan,
        solve_time_seconds=round(time.time() - t0, 3),
    )
    return result

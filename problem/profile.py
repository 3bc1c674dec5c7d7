"""
MalleableEngine — Processor Capacity Profile
Step function of busy processors over time, used by list scheduling and compaction.

Segment i covers [times[i], times[i + 1]) with usage[i] busy processors;
the last segment extends to infinity.
"""

from bisect import bisect_right


class CapacityProfile:
    """Aggregate processor usage of the jobs placed so far."""

    def __init__(self, processor_count: int):
        self.processor_count = processor_count
        self.times: list[int] = [0]
        self.usage: list[int] = [0]

    def _segment(self, t: int) -> int:
        return bisect_right(self.times, t) - 1

    def _split(self, t: int) -> int:
        """Ensure a breakpoint at t and return its segment index."""
        i = self._segment(t)
        if self.times[i] == t:
            return i
        self.times.insert(i + 1, t)
        self.usage.insert(i + 1, self.usage[i])
        return i + 1

    def usage_at(self, t: int) -> int:
        return self.usage[self._segment(t)]

    def earliest_fit(self, ready: int, duration: int, processors: int) -> int:
        """First t ≥ ready such that `processors` more fit during [t, t + duration)."""
        if processors > self.processor_count:
            raise ValueError(
                f"Cannot fit {processors} processors on a machine with {self.processor_count}"
            )
        limit = self.processor_count - processors
        t = max(ready, 0)
        i = self._segment(t)
        while True:
            j = i
            blocked = False
            while j < len(self.times) and self.times[j] < t + duration:
                if self.usage[j] > limit:
                    # restart right after the blocking segment
                    t = self.times[j + 1]
                    i = j + 1
                    blocked = True
                    break
                j += 1
            if not blocked:
                return t

    def reserve(self, start: int, end: int, processors: int) -> None:
        if end <= start:
            return
        i = self._split(start)
        j = self._split(end)
        for s in range(i, j):
            self.usage[s] += processors
            if self.usage[s] > self.processor_count:
                raise ValueError(
                    f"Capacity exceeded at t={self.times[s]}: "
                    f"{self.usage[s]} > {self.processor_count}"
                )

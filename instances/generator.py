"""
MalleableEngine — Random Instance Generator
Seedable instances for experiments and tests.

Durations are either random and non-increasing in the processor count, or
follow the concave shape p(k) = p / min(k, cutoff) with a random cutoff.
The precedence order consists of `omega` disjoint chains.
"""

import random

from pydantic import ValidationError as PydanticValidationError

from problem.errors import ValidationError
from problem.loader import load
from problem.models import Instance, Job, Precedence
from runtime.logging import get_logger

from .models import GeneratorConfig

logger = get_logger("malleable.generator")


def _durations(config: GeneratorConfig, rng: random.Random) -> list[int]:
    if config.concave:
        p = rng.randint(config.min_p, config.max_p)
        cutoff = rng.randint(1, config.m)
        return [max(1, p // min(k, cutoff)) for k in range(1, config.m + 1)]
    return sorted((rng.randint(config.min_p, config.max_p) for _ in range(config.m)), reverse=True)


def _chain_lengths(config: GeneratorConfig, rng: random.Random) -> list[int]:
    max_chain = config.max_chain if config.max_chain is not None else config.n
    lengths = [config.min_chain] * config.omega
    remaining = config.n - config.min_chain * config.omega
    while remaining:
        open_chains = [c for c, length in enumerate(lengths) if length < max_chain]
        lengths[rng.choice(open_chains)] += 1
        remaining -= 1
    return lengths


def generate_instance(**params) -> Instance:
    """
    Build a random instance. Accepts the fields of GeneratorConfig.

    Job ids are 0..n-1; chain c covers a consecutive block of ids.
    """
    try:
        config = GeneratorConfig(**params)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid generator parameters: {e}") from e

    rng = random.Random(config.seed)
    jobs = [Job(job_id=i, processing_times=_durations(config, rng)) for i in range(config.n)]

    precedence = []
    first = 0
    for length in _chain_lengths(config, rng):
        for i in range(first, first + length - 1):
            precedence.append(Precedence(before=i, after=i + 1))
        first += length

    logger.debug(
        "instance generated",
        jobs=config.n,
        processors=config.m,
        chains=config.omega,
        constraints=len(precedence),
        concave=config.concave,
        seed=config.seed,
    )
    return load(jobs, precedence, config.m, config.omega)

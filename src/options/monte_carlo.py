"""
Monte Carlo valuation of European options.

Model: the underlying follows geometric Brownian motion under the
risk-neutral measure. Only the terminal payoff matters for a European option,
so each path is a single draw:

    S_T = S exp((r - sigma^2/2) T + sigma sqrt(T) Z),   Z ~ N(0, 1)
    payoff = max(S_T - K, 0)  (call)   |   max(K - S_T, 0)  (put)
    discounted = payoff * e^(-rT)

The estimate is the mean of discounted payoffs and the standard error is the
sample standard deviation (ddof=1) divided by sqrt(path_count).

Numerics:
    Paths are generated in chunks. Each chunk is reduced to (count, mean, M2)
    and chunks/shards are combined with the parallel form of Welford's update
    (Chan et al.):

        n    = n_a + n_b
        d    = mean_b - mean_a
        mean = mean_a + d * n_b / n
        M2   = M2_a + M2_b + d^2 * n_a * n_b / n

    This avoids the cancellation of sum-of-squares formulas at large path
    counts and is associative, so shards can be reduced in any grouping.

Parallelism and reproducibility:
    path_count is split over a fixed number of shards. Each shard draws from
    its own child of numpy.random.SeedSequence(seed), and shard results are
    merged in shard order. The output therefore depends only on (seed,
    path_count, n_shards, chunk_size), never on how many workers ran the
    shards. seed=None draws fresh OS entropy on every call.

Example:
    >>> engine = MonteCarloEngine(path_count=100_000, max_workers=4)
    >>> result = engine.value(spec, seed=42)
    >>> print(f"{result.theoretical_price:.4f} +/- {result.standard_error:.4f}")
"""

import logging
import math
import numbers
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np

from src.core.errors import InvalidParameter, InvalidPathCount
from src.core.models import OptionSpec, SimulationResult

logger = logging.getLogger(__name__)

SeedLike = Union[None, int, np.random.SeedSequence]

DEFAULT_PATH_COUNT = 10_000
DEFAULT_N_SHARDS = 8
DEFAULT_CHUNK_SIZE = 100_000


@dataclass(frozen=True)
class MomentStats:
    """Running (count, mean, M2) summary of a sample."""
    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    @classmethod
    def from_sample(cls, sample: np.ndarray) -> 'MomentStats':
        """Summarise a chunk (two-pass within the chunk)"""
        if sample.size == 0:
            return cls()
        mean = float(sample.mean())
        return cls(int(sample.size), mean, float(np.square(sample - mean).sum()))

    def merge(self, other: 'MomentStats') -> 'MomentStats':
        """Combine two summaries (parallel Welford update)"""
        if other.count == 0:
            return self
        if self.count == 0:
            return other
        n = self.count + other.count
        delta = other.mean - self.mean
        mean = self.mean + delta * other.count / n
        m2 = self.m2 + other.m2 + delta * delta * self.count * other.count / n
        return MomentStats(n, mean, m2)

    @property
    def sample_variance(self) -> float:
        """Unbiased variance; 0.0 for fewer than two observations"""
        if self.count < 2:
            return 0.0
        return self.m2 / (self.count - 1)

    @property
    def standard_error(self) -> float:
        if self.count == 0:
            return 0.0
        return math.sqrt(self.sample_variance / self.count)


def simulate_shard(
    spec: OptionSpec,
    n_paths: int,
    seed_seq: np.random.SeedSequence,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> MomentStats:
    """
    Simulate n_paths discounted payoffs and return their moment summary.

    Module-level so it can be shipped to worker processes.
    """
    rng = np.random.default_rng(seed_seq)
    drift = (spec.risk_free_rate - spec.volatility ** 2 / 2.0) * spec.maturity
    diffusion = spec.volatility * math.sqrt(spec.maturity)
    discount = spec.discount_factor

    stats = MomentStats()
    remaining = n_paths
    while remaining > 0:
        size = min(chunk_size, remaining)
        terminal = spec.underlying * np.exp(drift + diffusion * rng.standard_normal(size))
        if spec.is_call:
            payoff = np.maximum(terminal - spec.strike, 0.0)
        else:
            payoff = np.maximum(spec.strike - terminal, 0.0)
        stats = stats.merge(MomentStats.from_sample(payoff * discount))
        remaining -= size
    return stats


def split_paths(path_count: int, n_shards: int) -> List[int]:
    """Split path_count into at most n_shards near-equal positive parts"""
    n = min(n_shards, path_count)
    base, extra = divmod(path_count, n)
    return [base + 1 if i < extra else base for i in range(n)]


def validate_path_count(path_count) -> int:
    """Return path_count as int or raise InvalidPathCount"""
    if isinstance(path_count, bool) or not isinstance(path_count, numbers.Integral) or path_count < 1:
        raise InvalidPathCount(path_count)
    return int(path_count)


@dataclass
class MonteCarloEngine:
    """
    Simulation engine: OptionSpec + path count (+ seed) -> SimulationResult.

    Attributes:
        path_count: Default number of paths when value() gets none
        n_shards: Number of independent shards (fixes the random layout)
        max_workers: Worker processes; <= 1 runs shards inline
        chunk_size: Paths drawn per vectorised chunk inside a shard
    """
    path_count: int = DEFAULT_PATH_COUNT
    n_shards: int = DEFAULT_N_SHARDS
    max_workers: int = 1
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        """Validate parameters."""
        self.path_count = validate_path_count(self.path_count)
        if self.n_shards < 1:
            raise InvalidParameter(f"n_shards must be >= 1, got {self.n_shards}")
        if self.max_workers < 1:
            raise InvalidParameter(f"max_workers must be >= 1, got {self.max_workers}")
        if self.chunk_size < 1:
            raise InvalidParameter(f"chunk_size must be >= 1, got {self.chunk_size}")

    @property
    def name(self) -> str:
        return f"MonteCarlo_{self.n_shards}x"

    def value(
        self,
        spec: OptionSpec,
        path_count: Optional[int] = None,
        seed: SeedLike = None
    ) -> SimulationResult:
        """
        Estimate the option value by simulation.

        Args:
            spec: Validated option parameters
            path_count: Number of paths (default: engine's path_count)
            seed: int or SeedSequence for reproducible output; None for fresh entropy

        Returns:
            SimulationResult with price, standard error and path count

        Raises:
            InvalidPathCount: If path_count < 1
        """
        n_paths = self.path_count if path_count is None else validate_path_count(path_count)
        if isinstance(seed, np.random.SeedSequence):
            # Fresh copy so repeated calls spawn the same children
            root = np.random.SeedSequence(seed.entropy, spawn_key=seed.spawn_key)
        else:
            root = np.random.SeedSequence(seed)

        sizes = split_paths(n_paths, self.n_shards)
        children = root.spawn(len(sizes))

        if self.max_workers > 1 and len(sizes) > 1:
            workers = min(self.max_workers, len(sizes))
            logger.debug(f"{self.name}: {n_paths:,} paths on {workers} worker processes")
            with ProcessPoolExecutor(max_workers=workers) as executor:
                partials = list(executor.map(
                    simulate_shard,
                    [spec] * len(sizes),
                    sizes,
                    children,
                    [self.chunk_size] * len(sizes)
                ))
        else:
            partials = [simulate_shard(spec, n, child, self.chunk_size) for n, child in zip(sizes, children)]

        total = MomentStats()
        for partial in partials:
            total = total.merge(partial)

        logger.info(
            f"{self.name}: {spec.form.value} value {total.mean:.6f} "
            f"(SE {total.standard_error:.6f}, {total.count:,} paths)"
        )
        return SimulationResult(
            theoretical_price=total.mean,
            standard_error=total.standard_error,
            path_count=total.count
        )

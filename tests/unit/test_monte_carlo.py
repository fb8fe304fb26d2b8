"""
Unit tests for MonteCarloEngine.

Test Coverage:
- Convergence toward the analytic price and 1/sqrt(n) standard error
- Bit-for-bit reproducibility with a seed, independent of worker count
- Moment merging (parallel Welford) against numpy's two-pass statistics
- Path count and engine parameter validation
"""

import math

import numpy as np
import pytest

from src.core.errors import InvalidParameter, InvalidPathCount
from src.core.models import OptionForm, OptionSpec
from src.operations import compute_monte_carlo_value
from src.options.black_scholes import BlackScholesEngine
from src.options.monte_carlo import MomentStats, MonteCarloEngine, split_paths


@pytest.fixture
def engine():
    return MonteCarloEngine(n_shards=4, chunk_size=50_000)


class TestConvergence:

    @pytest.mark.parametrize('spec_fixture', ['call_spec', 'put_spec'])
    def test_converges_to_analytic_price(self, engine, spec_fixture, request):
        spec = request.getfixturevalue(spec_fixture)
        analytic = BlackScholesEngine().value(spec).theoretical_price

        small = engine.value(spec, path_count=1_000, seed=42)
        large = engine.value(spec, path_count=1_000_000, seed=42)

        assert abs(small.theoretical_price - analytic) < 4 * small.standard_error
        assert abs(large.theoretical_price - analytic) < 4 * large.standard_error
        assert large.theoretical_price == pytest.approx(analytic, abs=0.02)

    def test_standard_error_shrinks_like_inverse_sqrt(self, engine, call_spec):
        errors = [engine.value(call_spec, path_count=n, seed=7).standard_error
                  for n in (1_000, 10_000, 100_000, 1_000_000)]

        assert errors == sorted(errors, reverse=True)
        # 1000x more paths -> roughly sqrt(1000) ~ 31.6x smaller error
        assert 20 < errors[0] / errors[-1] < 45

    def test_zero_volatility_is_deterministic(self, engine):
        spec = OptionSpec(OptionForm.CALL, 20.0, 18.0, 1.0, 0.0, 0.03)

        result = engine.value(spec, path_count=5_000, seed=1)

        assert result.theoretical_price == pytest.approx(20.0 - 18.0 * math.exp(-0.03))
        assert result.standard_error == pytest.approx(0.0, abs=1e-9)

    def test_single_path(self, engine, call_spec):
        result = engine.value(call_spec, path_count=1, seed=3)

        assert result.path_count == 1
        assert result.standard_error == 0.0
        assert result.theoretical_price >= 0.0


class TestReproducibility:

    def test_same_seed_bit_identical(self, engine, call_spec):
        first = engine.value(call_spec, path_count=200_001, seed=2024)
        second = engine.value(call_spec, path_count=200_001, seed=2024)

        assert first == second

    def test_seed_sequence_reusable(self, engine, call_spec):
        seed = np.random.SeedSequence(99)

        assert engine.value(call_spec, path_count=10_000, seed=seed) == \
            engine.value(call_spec, path_count=10_000, seed=seed)

    def test_different_seeds_differ(self, engine, call_spec):
        a = engine.value(call_spec, path_count=10_000, seed=1)
        b = engine.value(call_spec, path_count=10_000, seed=2)

        assert a.theoretical_price != b.theoretical_price

    def test_unseeded_calls_use_fresh_entropy(self, engine, call_spec):
        a = engine.value(call_spec, path_count=10_000)
        b = engine.value(call_spec, path_count=10_000)

        assert a.theoretical_price != b.theoretical_price

    def test_worker_count_does_not_change_result(self, call_spec):
        serial = MonteCarloEngine(n_shards=4, max_workers=1).value(call_spec, path_count=40_000, seed=5)
        parallel = MonteCarloEngine(n_shards=4, max_workers=2).value(call_spec, path_count=40_000, seed=5)

        assert serial == parallel

    def test_operation_wrapper(self, call_spec):
        result = compute_monte_carlo_value(call_spec, path_count=10_000, seed=11)

        assert result.path_count == 10_000
        assert result == compute_monte_carlo_value(call_spec, path_count=10_000, seed=11)


class TestMomentStats:

    def test_merge_matches_two_pass_statistics(self):
        rng = np.random.default_rng(0)
        sample = rng.lognormal(mean=0.0, sigma=1.0, size=10_001)

        merged = MomentStats()
        for chunk in np.array_split(sample, 7):
            merged = merged.merge(MomentStats.from_sample(chunk))

        assert merged.count == sample.size
        assert merged.mean == pytest.approx(sample.mean(), rel=1e-12)
        assert merged.sample_variance == pytest.approx(sample.var(ddof=1), rel=1e-10)
        assert merged.standard_error == pytest.approx(sample.std(ddof=1) / math.sqrt(sample.size), rel=1e-10)

    def test_merge_is_associative(self):
        a, b, c = (MomentStats.from_sample(np.array(x)) for x in ([1.0, 2.0], [5.0], [3.0, 9.0, 4.0]))

        left = a.merge(b).merge(c)
        right = a.merge(b.merge(c))

        assert left.count == right.count == 6
        assert left.mean == pytest.approx(right.mean)
        assert left.m2 == pytest.approx(right.m2)

    def test_empty_merge_identity(self):
        stats = MomentStats.from_sample(np.array([1.0, 3.0]))

        assert MomentStats().merge(stats) == stats
        assert stats.merge(MomentStats()) == stats


class TestValidation:

    @pytest.mark.parametrize('path_count', [0, -5, 2.5, True, '100'])
    def test_invalid_path_count(self, engine, call_spec, path_count):
        with pytest.raises(InvalidPathCount):
            engine.value(call_spec, path_count=path_count)

    def test_invalid_default_path_count(self):
        with pytest.raises(InvalidPathCount):
            MonteCarloEngine(path_count=0)

    @pytest.mark.parametrize('kwargs', [{'n_shards': 0}, {'max_workers': 0}, {'chunk_size': 0}])
    def test_invalid_engine_parameters(self, kwargs):
        with pytest.raises(InvalidParameter):
            MonteCarloEngine(**kwargs)

    def test_split_paths(self):
        assert split_paths(10, 4) == [3, 3, 2, 2]
        assert split_paths(3, 8) == [1, 1, 1]
        assert sum(split_paths(1_000_003, 8)) == 1_000_003

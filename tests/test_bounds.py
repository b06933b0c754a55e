import math

import numpy as np
import pytest

from gailpy import bounds
from gailpy.bounds import (
    berry_esseen_sample_size,
    chebyshev_sample_size,
    hoeffding_sample_size,
    kurtosis_upper_bound,
    sample_size_for_tolerance,
    tolerance_for_sample_size,
)
from gailpy.errors import NumericConvergenceError
from gailpy.utils import stdnorm_cdf, stdnorm_inv, z_crit


KURTMAX = kurtosis_upper_bound(10_000, 0.005, 1.2)


class TestKurtosisBound:
    """Test the modified kurtosis upper bound"""

    def test_default_stage(self):
        """Matches the closed form for the default variance stage"""
        expected = 9997 / 9999 + (0.005 * 10_000 / 0.995) * (1 - 1 / 1.44) ** 2
        assert KURTMAX == pytest.approx(expected)

    def test_grows_with_fudge(self):
        """A larger inflation factor admits heavier tails"""
        assert kurtosis_upper_bound(1000, 0.005, 2.0) > kurtosis_upper_bound(1000, 0.005, 1.1)

    def test_small_stage_rejected(self):
        with pytest.raises(ValueError, match="n_sig"):
            kurtosis_upper_bound(1, 0.005, 1.2)


class TestSampleSizeForTolerance:
    """Test the Chebyshev / Berry-Esseen sample size solver"""

    def test_not_larger_than_chebyshev(self):
        """The tighter of the two bounds is returned"""
        for t in (0.5, 0.1, 0.01):
            n = sample_size_for_tolerance(t, 0.01, KURTMAX)
            assert n <= chebyshev_sample_size(t, 0.01)
            assert n == min(chebyshev_sample_size(t, 0.01), berry_esseen_sample_size(t, 0.01, KURTMAX))

    def test_at_least_clt(self):
        """Berry-Esseen is never more optimistic than the CLT"""
        t, alpha = 0.01, 0.01
        n_clt = (z_crit(alpha) / t) ** 2
        assert berry_esseen_sample_size(t, alpha, KURTMAX) >= math.floor(n_clt)

    def test_berry_esseen_root_satisfies_inequality(self):
        """The solved n makes the Berry-Esseen tail at most alpha/2"""
        t, alpha = 0.02, 0.005
        n = berry_esseen_sample_size(t, alpha, KURTMAX)
        m3 = KURTMAX**0.75
        sqrt_n = math.sqrt(n)
        tail = stdnorm_cdf(-sqrt_n * t) + min(
            bounds.BE_A1 * (m3 + bounds.BE_A2), bounds.BE_A * m3 / (1 + (sqrt_n * t) ** 3)
        ) / sqrt_n
        assert tail <= alpha / 2 * (1 + 1e-8)

    def test_monotone_in_tolerance(self):
        """Smaller tolerances need more samples"""
        sizes = [sample_size_for_tolerance(t, 0.01, KURTMAX) for t in (0.2, 0.1, 0.05, 0.01)]
        assert sizes == sorted(sizes)

    def test_monotone_in_alpha(self):
        """Higher confidence needs more samples"""
        assert sample_size_for_tolerance(0.05, 0.001, KURTMAX) > sample_size_for_tolerance(0.05, 0.1, KURTMAX)

    def test_returns_int(self):
        assert isinstance(sample_size_for_tolerance(0.1, 0.05, 2.0), int)

    def test_nonpositive_tolerance_rejected(self):
        with pytest.raises(ValueError, match="tol_over_sig"):
            sample_size_for_tolerance(0.0, 0.01, KURTMAX)


class TestToleranceForSampleSize:
    """Test the inverse solver"""

    def test_not_larger_than_chebyshev(self):
        for n in (100, 10_000, 1_000_000):
            assert tolerance_for_sample_size(n, 0.01, KURTMAX) <= 1 / math.sqrt(n * 0.01) + 1e-15

    def test_decreasing_in_n(self):
        eps = [tolerance_for_sample_size(n, 0.01, KURTMAX) for n in (100, 1_000, 10_000, 100_000)]
        assert eps == sorted(eps, reverse=True)

    def test_consistent_with_sample_size(self):
        """n samples reach the tolerance they are credited with"""
        n = 50_000
        eps = tolerance_for_sample_size(n, 0.01, KURTMAX)
        assert sample_size_for_tolerance(eps * (1 + 1e-6), 0.01, KURTMAX) <= n

    def test_nonpositive_n_rejected(self):
        with pytest.raises(ValueError, match="n must be positive"):
            tolerance_for_sample_size(0, 0.01, KURTMAX)


def test_root_finder_reports_non_convergence():
    with pytest.raises(NumericConvergenceError, match="bracket"):
        bounds._solve_decreasing(lambda x: 1.0, seed=0.0)


def test_root_finder_rejects_non_finite_seed():
    with pytest.raises(NumericConvergenceError):
        bounds._solve_decreasing(lambda x: -x, seed=float("nan"))


def test_root_finder_finds_simple_root():
    assert bounds._solve_decreasing(lambda x: 3.0 - x, seed=-10.0) == pytest.approx(3.0)


@pytest.mark.parametrize(
    ("abstol", "alpha"),
    [(1e-2, 0.01), (1e-3, 0.05), (5e-2, 0.2)],
)
def test_hoeffding_sample_size(abstol, alpha):
    assert hoeffding_sample_size(abstol, alpha) == math.ceil(math.log(2 / alpha) / (2 * abstol**2))


class TestNormalHelpers:
    """Test the standard normal helpers"""

    def test_critical_values(self):
        assert z_crit(0.05) == pytest.approx(1.959964, abs=1e-6)
        assert z_crit(0.01) == pytest.approx(2.575829, abs=1e-6)

    def test_inverse_of_cdf(self):
        assert stdnorm_cdf(stdnorm_inv(0.975)) == pytest.approx(0.975)
        assert isinstance(stdnorm_inv(0.5), float)

    def test_vector_input(self):
        out = stdnorm_cdf(np.array([-1.0, 0.0, 1.0]))
        assert out.shape == (3,)
        assert out[1] == pytest.approx(0.5)

    @pytest.mark.parametrize("alpha", [0.0, 1.0, -0.5, 2.0])
    def test_invalid_alpha(self, alpha):
        with pytest.raises(ValueError):
            z_crit(alpha)

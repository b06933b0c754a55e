import pytest

from gailpy.budget import cost_per_sample, estimate_sample_budget


class TestCostPerSample:
    """Test per-sample cost extrapolation"""

    def test_pooled_average(self):
        assert cost_per_sample([(20, 0.02), (160, 0.16), (1000, 1.0)]) == pytest.approx(1e-3)

    def test_no_samples(self):
        """No division by zero without trial samples"""
        assert cost_per_sample([]) == 0.0
        assert cost_per_sample([(0, 0.5)]) == 0.0


class TestEstimateSampleBudget:
    """Test the sample-budget accountant"""

    def test_time_limited(self):
        """Remaining time over cost per sample"""
        n = estimate_sample_budget(10.0, 10**9, [(128, 0.125)], 0, t_start=0.0, now=4.0)
        assert n == 6144

    def test_sample_limited(self):
        """The sample budget caps the time estimate"""
        n = estimate_sample_budget(10.0, 5000, [(128, 0.125)], 1000, t_start=0.0, now=4.0)
        assert n == 4000

    def test_zero_trial_samples(self):
        """Only the sample budget applies without timing data"""
        assert estimate_sample_budget(1.0, 500, [(0, 0.0)], 100, t_start=0.0, now=100.0) == 400

    @pytest.mark.parametrize(
        ("nbudget", "n_so_far", "now"),
        [(100, 200, 0.0), (100, 0, 50.0), (100, 100, 0.0)],
    )
    def test_never_negative(self, nbudget, n_so_far, now):
        assert estimate_sample_budget(10.0, nbudget, [(10, 0.1)], n_so_far, t_start=0.0, now=now) == 0

    def test_monotone_in_samples_used(self):
        """More samples already used never buys more samples"""
        trials = [(20, 0.002), (160, 0.01)]
        budgets = [
            estimate_sample_budget(1.0, 50_000, trials, used, t_start=0.0, now=0.5)
            for used in range(0, 60_000, 2_500)
        ]
        assert all(b >= 0 for b in budgets)
        assert all(x >= y for x, y in zip(budgets, budgets[1:]))

    def test_uses_clock_when_now_omitted(self):
        import time

        n = estimate_sample_budget(1e6, 1000, [(10, 1e-3)], 0, t_start=time.perf_counter())
        assert n == 1000

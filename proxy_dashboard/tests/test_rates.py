import pytest

from proxy_dashboard.metrics.rates import CounterResetPolicy, RateClock, RateDeriver


class TestRateDeriver:
    def test_zero_baseline_and_missing_values_emit_nothing(self):
        deriver = RateDeriver(period_seconds=5)
        results = [deriver.observe(v, t) for t, v in enumerate([None, 0, 100, 250])]

        assert results == [None, None, None, 30.0]

    def test_missing_counter_clears_baseline(self):
        deriver = RateDeriver(period_seconds=5)
        deriver.observe(100, 0)
        assert deriver.observe(None, 5000) is None
        assert deriver.baseline is None
        assert deriver.observe(200, 10000) is None
        assert deriver.observe(300, 15000) == 20.0

    def test_rebaseline_on_counter_reset(self):
        deriver = RateDeriver(period_seconds=5, reset_policy="rebaseline")
        deriver.observe(250, 0)

        assert deriver.observe(100, 5000) is None
        assert deriver.baseline == 100
        assert deriver.observe(150, 10000) == 10.0

    def test_clamp_on_counter_reset(self):
        deriver = RateDeriver(period_seconds=5, reset_policy=CounterResetPolicy.CLAMP)
        deriver.observe(250, 0)

        assert deriver.observe(100, 5000) == 0.0
        assert deriver.observe(150, 10000) == 10.0

    def test_measured_clock_uses_elapsed_time(self):
        deriver = RateDeriver(period_seconds=5, clock=RateClock.MEASURED)
        deriver.observe(100, 1000)

        assert deriver.observe(200, 3000) == 50.0
        # Non-increasing timestamps fall back to the nominal period.
        assert deriver.observe(300, 3000) == 20.0

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            RateDeriver(period_seconds=0)

    def test_non_finite_value_counts_as_missing(self):
        deriver = RateDeriver(period_seconds=5)
        deriver.observe(100, 0)

        assert deriver.observe(float("nan"), 5000) is None
        assert deriver.baseline is None
        assert deriver.observe(float("inf"), 10000) is None
        assert deriver.observe(200, 15000) is None
        assert deriver.observe(250, 20000) == 10.0

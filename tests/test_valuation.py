"""
tests/test_valuation.py - Tests for sim/valuation.py

Validates:
- discounted: one (1 - rate) reduction per full excess time unit
- expired: worthless from the expiry time on
- net: unchanged
- value_degradation_fct binds by name, None for unknown names
"""

import pytest

from sim.valuation import discounted, expired, net, value_degradation_fct


class TestDiscounted:

    def test_two_halvings(self):
        assert discounted(0.5, 100, 2) == 25

    def test_examples(self):
        assert discounted(0.1, 100, 1) == pytest.approx(90)
        assert discounted(0.15, 100, 3) == pytest.approx(61.4125)

    def test_no_excess_time(self):
        assert discounted(0.5, 100, 0) == 100

    def test_fraction_below_one_unit_ignored(self):
        assert discounted(0.5, 100, 1.5) == 50
        assert discounted(0.5, 100, 0.9) == 100

    def test_negative_excess_time(self):
        assert discounted(0.5, 100, -3) == 100

    def test_large_excess_time(self):
        """Iterative: no recursion limit at large excess times."""
        assert discounted(0.001, 100, 20000) == pytest.approx(100 * 0.999 ** 20000)


class TestExpired:

    def test_before_expiry(self):
        assert expired(3, 100, 2) == 100

    def test_at_expiry(self):
        assert expired(3, 100, 3) == 0

    def test_after_expiry(self):
        assert expired(3, 100, 4) == 0


class TestNet:

    def test_unchanged(self):
        assert net(100, 1000) == 100


class TestValueDegradationFct:

    def test_discounted_bound(self):
        fct = value_degradation_fct("discounted", 0.5)
        assert fct(100, 2) == 25

    def test_expired_bound(self):
        fct = value_degradation_fct("expired", 3)
        assert fct(100, 2) == 100
        assert fct(100, 3) == 0

    def test_net(self):
        assert value_degradation_fct("net") is net

    def test_unknown(self):
        assert value_degradation_fct("exponential", 1) is None
        assert value_degradation_fct(None) is None

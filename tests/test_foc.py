import math

import pytest

from openinv.foc import (
    FP_ONE,
    Foc,
    float_sqrt,
    get_exponent,
    int_sqrt,
)


@pytest.mark.parametrize("k", [0, 1, 12, 100, 1000, 65535])
def test_int_sqrt_of_perfect_squares(k):
    assert int_sqrt(k * k) == k


@pytest.mark.parametrize(
    "n",
    [2, 3, 99, 9999, 10000, 123456, 9_999_999, 10_000_000,
     999_999_999, 1_000_000_000, 0xFFFFFFFF],
)
def test_int_sqrt_close_to_exact(n):
    assert abs(int_sqrt(n) - math.isqrt(n)) <= 1


@pytest.mark.parametrize("value", [0.25, 2.0, 10.0, 240.0, 12345.0, 1e6])
def test_float_sqrt_accuracy(value):
    assert float_sqrt(value) == pytest.approx(math.sqrt(value), rel=1e-3)


@pytest.mark.parametrize("value", [0.0, -4.0])
def test_float_sqrt_non_positive(value):
    assert float_sqrt(value) == 0


def test_float_sqrt_rejects_nan():
    with pytest.raises(ValueError):
        float_sqrt(float("nan"))


@pytest.mark.parametrize("k", range(-10, 11))
def test_get_exponent_of_powers_of_two(k):
    assert get_exponent(2.0 ** k) == k
    assert get_exponent(-(2.0 ** k)) == k


def test_park_clarke_at_zero_angle():
    foc = Foc()
    foc.set_sin_cos(0, FP_ONE)
    d, q = foc.park_clarke(1000, -500)
    assert d == 1000
    assert q == 0
    assert (foc.id, foc.iq) == (d, q)


def test_park_clarke_at_quarter_turn_rotates():
    foc = Foc()
    foc.set_sin_cos(0, FP_ONE)
    d0, q0 = foc.park_clarke(1000, 0)
    foc.set_sin_cos(FP_ONE, 0)
    d, q = foc.park_clarke(1000, 0)
    assert d == q0
    assert q == -d0


@pytest.mark.parametrize("angle", [0.3, 1.0, 2.5, 4.0, 5.9])
def test_park_clarke_preserves_magnitude(angle):
    foc = Foc()
    foc.set_sin_cos(0, FP_ONE)
    reference = math.hypot(*foc.park_clarke(1000, 0))
    foc.set_sin_cos(int(math.sin(angle) * (FP_ONE - 1)), int(math.cos(angle) * (FP_ONE - 1)))
    assert abs(math.hypot(*foc.park_clarke(1000, 0)) - reference) <= 3


def test_mtpa_default_parameters():
    foc = Foc()
    idref, iqref = foc.mtpa(100.0)
    assert idref < 0
    assert iqref > 0
    assert math.hypot(idref, iqref) == pytest.approx(100.0, rel=1e-3)
    idref_neg, iqref_neg = foc.mtpa(-100.0)
    assert idref_neg == pytest.approx(idref)
    assert iqref_neg == pytest.approx(-iqref)


def test_mtpa_without_saliency_is_pure_q_current():
    foc = Foc()
    foc.set_motor_parameters(0.0, 0.05)
    idref, iqref = foc.mtpa(50.0)
    assert idref == 0
    assert iqref == pytest.approx(50.0, rel=1e-3)


def test_mtpa_maximises_torque():
    delta_l, flux = 0.001, 0.1
    foc = Foc()
    foc.set_motor_parameters(delta_l, flux)
    current = 100.0
    idref, iqref = foc.mtpa(current)

    def torque(d):
        return math.sqrt(current * current - d * d) * (flux - delta_l * d)

    assert math.hypot(idref, iqref) == pytest.approx(current, rel=1e-3)
    assert torque(idref) >= torque(idref + 1)
    assert torque(idref) >= torque(idref - 1)


def test_default_max_modulation_index():
    foc = Foc()
    assert abs(foc.max_modulation_index - (2 / math.sqrt(3) * FP_ONE - 200)) <= 2


def test_q_limit_respects_max_modulation():
    foc = Foc()
    foc.set_maximum_modulation_index(30000)
    assert foc.max_modulation_index == 30000
    assert abs(foc.get_q_limit(0) - 30000) <= 1
    assert foc.get_q_limit(30000) == 0
    q = foc.get_q_limit(18000)
    assert abs(foc.get_total_voltage(18000, q) - 30000) <= 2


@pytest.mark.parametrize("ud, uq", [(0, 0), (1200, 0), (-3000, 4000), (20000, -15000)])
def test_total_voltage_is_hypotenuse(ud, uq):
    foc = Foc()
    assert abs(foc.get_total_voltage(ud, uq) - math.isqrt(ud * ud + uq * uq)) <= 1
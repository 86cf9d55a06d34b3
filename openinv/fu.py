"""Voltage/frequency characteristic for open-loop motor control."""

from .fixedpoint import FRAC_DIGITS, from_float, from_int

_U32 = 0xFFFFFFFF


def _u32_mul(a, b):
    return ((a * b) & _U32) >> FRAC_DIGITS


class MotorVoltage:
    """Computes the output amplitude for a given frequency (u/f curve).

    Frequencies and percentages are unsigned fixed-point values.
    """

    def __init__(self):
        self._boost = 0
        self._max_amp = 0
        self._end_frq = 1
        self._fac = 0

    @property
    def boost(self):
        return self._boost

    @property
    def max_amp(self):
        return self._max_amp

    @property
    def fac(self):
        """Slope of the u/f curve in fixed point."""
        return self._fac

    def set_boost(self, boost):
        """Set the amplitude provided at 0 Hz to overcome winding resistance."""
        self._boost = boost & _U32
        self._calc_fac()

    def set_weakening_frq(self, frq):
        """Set the frequency (Hz) at which full amplitude is reached."""
        self._end_frq = from_float(frq) & _U32
        self._calc_fac()

    def set_max_amp(self, max_amp):
        self._max_amp = max_amp & _U32
        self._calc_fac()

    def get_amp(self, frq):
        """Amplitude for a fixed-point frequency."""
        return self.get_amp_perc(frq, from_int(100))

    def get_amp_perc(self, frq, perc):
        """Amplitude for a frequency scaled by a fixed-point percentage."""
        frq &= _U32
        base = ((_u32_mul(self._fac, frq) >> FRAC_DIGITS) + self._boost) & _U32
        amp = _u32_mul(perc & _U32, base) // 100
        if frq < from_float(0.2):
            amp = 0
        return min(amp, self._max_amp)

    def _calc_fac(self):
        span = from_int((self._max_amp - self._boost) & _U32) & _U32
        self._fac = ((span << FRAC_DIGITS) & _U32) // self._end_frq
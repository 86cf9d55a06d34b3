"""Analog input channel mapping and sample filtering."""

from enum import Enum

from .fixedpoint import median3

TEMPERATURE_CHANNEL = 16
SUPPORTED_SAMPLE_COUNTS = (1, 3, 4, 9, 12, 64)


class Port(Enum):
    """GPIO ports."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


def adc_channel_from_port(port, pin):
    """ADC channel for a GPIO pin; the temperature sensor channel otherwise."""
    if port is Port.A and pin < 8:
        return pin
    if port is Port.B and pin < 2:
        return pin + 8
    if port is Port.C and pin < 6:
        return pin + 10
    return TEMPERATURE_CHANNEL


def _medians_of_triples(samples, groups):
    return [median3(*samples[3 * g:3 * g + 3]) for g in range(groups)]


def filter_samples(samples, num_samples):
    """Filter the most recent samples of one channel.

    1: latest sample; 3: median; 4: average; 9: median of three medians;
    12: average of four medians; 64: average.
    """
    if num_samples not in SUPPORTED_SAMPLE_COUNTS:
        raise ValueError(f"unsupported number of samples: {num_samples}")
    samples = list(samples)
    if len(samples) < num_samples:
        raise ValueError(f"need {num_samples} samples, got {len(samples)}")
    samples = samples[:num_samples]

    if num_samples == 1:
        return samples[0]
    if num_samples == 3:
        return median3(*samples)
    if num_samples == 4:
        return sum(samples) // 4
    if num_samples == 9:
        return median3(*_medians_of_triples(samples, 3))
    if num_samples == 12:
        return sum(_medians_of_triples(samples, 4)) >> 2
    return sum(samples) >> 6


class AnalogInputs:
    """A set of analog inputs sampled into an interleaved buffer.

    The buffer holds num_samples rounds of count values each; value
    ``buffer[round * count + index]`` belongs to input ``index``.
    """

    def __init__(self, count, num_samples, adc_count=1):
        if adc_count not in (1, 2):
            raise ValueError("adc_count must be 1 or 2")
        if adc_count == 2 and count % 2:
            raise ValueError("dual ADC mode needs an even number of inputs")
        if num_samples not in SUPPORTED_SAMPLE_COUNTS:
            raise ValueError(f"unsupported number of samples: {num_samples}")
        self.count = count
        self.num_samples = num_samples
        self.adc_count = adc_count
        self.temperature_sensor_enabled = False
        self._channels = [[0] * (count // adc_count) for _ in range(adc_count)]

    def _check_index(self, index):
        if not 0 <= index < self.count:
            raise IndexError(f"input index out of range: {index}")

    def configure(self, index, port, pin):
        """Assign a GPIO pin to an input and return its ADC channel."""
        self._check_index(index)
        channel = adc_channel_from_port(port, pin)
        if channel == TEMPERATURE_CHANNEL:
            self.temperature_sensor_enabled = True
        if self.adc_count == 1:
            self._channels[0][index] = channel
        else:
            self._channels[index & 1][index // 2] = channel
        return channel

    def channel_sequences(self):
        """Regular conversion sequence of each ADC."""
        return tuple(tuple(sequence) for sequence in self._channels)

    def get(self, index, buffer):
        """Filtered value of one input from the sample buffer."""
        self._check_index(index)
        needed = self.count * self.num_samples
        if len(buffer) < needed:
            raise ValueError(f"buffer needs {needed} values, got {len(buffer)}")
        samples = buffer[index:needed:self.count]
        return filter_samples(samples, self.num_samples)
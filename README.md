# openinv

Building blocks for motor-inverter and vehicle-controller software. It is a
plain Python library with no runtime dependencies.

## Modules

- `openinv.fixedpoint`: fixed-point arithmetic with 5 fractional bits.
  It provides `from_float`, `from_int`, `to_int`, `to_float`, `fp_mul`,
  `fp_div`, `fp_itoa` (two decimals, truncated), `fp_atoi`, `fp_sqrt`, `fp_ln`,
  `fp_hypot2`, `fp_hypot3` and `median3`.
- `openinv.crc8`: table-driven CRC-8 with polynomial 0x07, MSB first.
  Call it as `crc8(data, initial=0)`. The lookup table is `CRC_TABLE`.
- `openinv.fu`: `MotorVoltage`, the U/f curve. Set it up with `set_boost`,
  `set_weakening_frq` and `set_max_amp`. Read it with `get_amp` and
  `get_amp_perc`. Below 0.2 Hz the amplitude is 0, and it never exceeds the
  maximum amplitude.
- `openinv.anain`: covers analog inputs.
  - `Port` lists the GPIO ports.
  - `adc_channel_from_port` returns the ADC channel of a pin. Any pin without
    an ADC channel maps to the temperature sensor channel, 16.
  - `filter_samples` filters samples with a median or an average. It supports
    1, 3, 4, 9, 12 or 64 samples.
  - `AnalogInputs` keeps the channel sequence for one or two ADCs
    (`configure`, `channel_sequences`). Its `get` filters one input out of an
    interleaved sample buffer.
- `openinv.foc`: field-oriented control with 15 fractional bits.
  - `Foc` provides `set_sin_cos`, `park_clarke` and `mtpa`.
  - It also provides `set_motor_parameters`, `get_q_limit`,
    `get_total_voltage` and `set_maximum_modulation_index`.
  - Helpers: `int_sqrt`, `float_sqrt` and `get_exponent`.
- `openinv.linbus`: the LIN protected-identifier `parity` and the enhanced
  `checksum`. `build_request` builds the bytes that follow the break.
  `is_valid_response` checks a received frame for id, length and checksum.
- `openinv.errormessage`: `ErrorMessages` is a ring buffer of timestamped
  errors with `ErrorType` severities (STOP, DERATE, WARN).
  - A message is posted once, then ignored until `unpost_all`.
  - Nothing is recorded until `set_time` has been given a non-zero time.
  - `new_errors` and `all_errors` return formatted lines.
- `openinv.canhardware`: `CanHardware` is an abstract base class that
  dispatches received frames to up to 5 `CanCallback` receivers. It keeps up to
  10 registered user message ids. Subclasses implement `send` and
  `configure_filters`.
- `openinv.canmap`: `CanMap` maps the parameters of a `ParameterTable` onto
  bit fields of CAN frames, in little-endian or big-endian layout (negative
  length).
  - `add_send` and `add_recv` create mappings. Invalid mappings raise
    `CanMapError`, whose `code` says why.
  - `send_all` sends every mapped message. `handle_rx` updates the parameters
    from a received frame.
  - Other methods: `remove`, `remove_item`, `find_map`, `get_map` and
    `iterate`.
  - `save` turns the mappings into bytes with a CRC, and `load` reads them
    back.
- `openinv.cansdo`: `CanSdo` answers SDO requests (`SdoFrame`,
  `SdoCommand`):
  - It reads and writes parameters by position or unique id.
  - It creates, reads and deletes CAN mappings.
  - It uploads queued string output (`put_char`) in segments.
  - Requests it does not handle are kept in `pending_frame` for the
    application, which answers with `send_sdo_reply`.
  - As a client it sends `sdo_write`, `sdo_read` and `remote_map` to another
    node. `sdo_read_reply` returns the reply.
- `openinv.canobd2`: `CanObd2` answers OBD-II requests on 0x7DF and
  0x7DF + node id:
  - modes 1, 3 and 4;
  - mode 0x2A, which reads a parameter by unique id.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

```python
from openinv.fixedpoint import from_float, fp_mul, fp_itoa
from openinv.linbus import build_request

print(fp_itoa(fp_mul(from_float(5.5), from_float(2.0))))   # 11.00
print(build_request(0x3C, bytes([1, 2, 3])).hex())
```

Mapping parameters onto CAN frames needs a `CanHardware` subclass:

```python
from openinv.canhardware import CanHardware
from openinv.canmap import CanMap, ParameterTable, ParamType

class LoopbackCan(CanHardware):
    def __init__(self):
        super().__init__()
        self.sent = []

    def send(self, can_id, data, length=8):
        self.sent.append((can_id, list(data), length))

    def configure_filters(self):
        pass

params = ParameterTable([
    ("ocurlim", 22, ParamType.PARAM, -65536, 65536, 100),
    ("amp", 2013, ParamType.SPOTVALUE, None, None, 0),
])
can = LoopbackCan()
can_map = CanMap(can, params)

can_map.add_send("ocurlim", 0x123, 0, 16, 1.0)
can_map.send_all()
print(can.sent)                    # [(291, [100, 0], 8)]

can_map.add_recv("amp", 0x124, 0, 16, 1.0)
can.handle_rx(0x124, [0xFEDC, 0], 8)
print(params.get_float("amp"))     # 65244.0
```

Frames are passed around as two little-endian 32-bit words.

## What it does not do

- It does not talk to hardware. There is no CAN, ADC, DMA, USART or GPIO
  driver. `CanHardware.send` and `configure_filters` must be supplied by a
  subclass.
- `AnalogInputs` only works on a sample buffer you provide.
- `CanMap.save` and `CanMap.load` work on bytes. Writing them to persistent
  storage is up to the caller.
- `Foc` takes the sine and cosine of the rotor angle from the caller. It has
  no sine table and does not compute PWM duty cycles.
- `ErrorMessages` returns lines rather than printing them.
- There is no command-line program.
"""Mapping of parameters to and from bit fields of CAN messages."""

import struct
import zlib
from dataclasses import dataclass, field
from enum import Enum

from .canhardware import CAN_FORCE_EXTENDED, CanCallback
from .fixedpoint import from_float, to_float

MAX_MESSAGES = 10
MAX_ITEMS = 78
MAX_STD_ID = 0x7FF
MAX_EXT_ID = 0x1FFFFFFF

_U32 = 0xFFFFFFFF
_U64 = (1 << 64) - 1
_HEADER = struct.Struct("<IB")
_ITEM = struct.Struct("<HBbfb")
_CRC = struct.Struct("<I")


def _f32(value):
    """Round a float to single precision."""
    return struct.unpack("<f", struct.pack("<f", value))[0]


class ParamType(Enum):
    PARAM = "param"
    TESTPARAM = "testparam"
    SPOTVALUE = "spotvalue"


@dataclass
class _ParamSpec:
    uid: int
    kind: ParamType
    minimum: float
    maximum: float
    value: int


class ParameterTable:
    """Named parameters and values held as fixed-point numbers.

    ``definitions`` is an iterable of
    ``(name, uid, ParamType, minimum, maximum, default)``; minimum and maximum
    may be None for spot values.
    """

    def __init__(self, definitions):
        self._params = {}
        self._by_uid = {}
        for name, uid, kind, minimum, maximum, default in definitions:
            spec = _ParamSpec(uid, ParamType(kind), minimum, maximum, from_float(default or 0))
            self._params[name] = spec
            self._by_uid[uid] = name

    def __contains__(self, param):
        return param in self._params

    def _spec(self, param):
        try:
            return self._params[param]
        except KeyError:
            raise KeyError(f"unknown parameter: {param!r}") from None

    def set(self, param, value):
        """Set a fixed-point value; False when it is outside a parameter's range."""
        spec = self._spec(param)
        if spec.kind in (ParamType.PARAM, ParamType.TESTPARAM):
            if spec.minimum is not None and value < from_float(spec.minimum):
                return False
            if spec.maximum is not None and value > from_float(spec.maximum):
                return False
        spec.value = value
        return True

    def get(self, param):
        """Fixed-point value of a parameter."""
        return self._spec(param).value

    def set_float(self, param, value):
        return self.set(param, from_float(value))

    def get_float(self, param):
        return to_float(self._spec(param).value)

    def get_type(self, param):
        return self._spec(param).kind

    def num_from_id(self, uid):
        """Name of the parameter with this unique id, or None."""
        return self._by_uid.get(uid)

    def id_of(self, param):
        return self._spec(param).uid


@dataclass
class CanPos:
    """One parameter mapped into a message.

    Negative num_bits means big-endian with offset_bits naming the MSB.
    """

    param: str
    offset_bits: int
    num_bits: int
    gain: float
    offset: int


@dataclass
class _Message:
    can_id: int
    items: list = field(default_factory=list)


class CanMapError(ValueError):
    """A mapping was rejected; ``code`` says why."""

    INVALID_ID = "invalid_id"
    INVALID_OFFSET = "invalid_offset"
    INVALID_LENGTH = "invalid_length"
    MAX_MESSAGES = "max_messages"
    MAX_ITEMS = "max_items"

    def __init__(self, code, message=None):
        super().__init__(message or code)
        self.code = code


class CanMap(CanCallback):
    """Sends parameters in periodic messages and updates them from received ones."""

    def __init__(self, hardware, params, *, extended=False, signed=False,
                 max_messages=MAX_MESSAGES, max_items=MAX_ITEMS):
        self.hardware = hardware
        self.params = params
        self.extended = extended
        self.signed = signed
        self.max_messages = max_messages
        self.max_items = max_items
        self._max_id = MAX_EXT_ID if extended else MAX_STD_ID
        self._force_flag = 1 << (29 if extended else 11)
        self._send = []
        self._recv = []
        hardware.add_callback(self)
        self.handle_clear()

    # identifiers ---------------------------------------------------------

    def _public_id(self, stored_id):
        forced = stored_id & self._force_flag
        result = stored_id & ~self._force_flag
        return result | CAN_FORCE_EXTENDED if forced else result

    def _find_by_id(self, messages, can_id):
        key = can_id & ~self._force_flag
        return next((m for m in messages if m.can_id & ~self._force_flag == key), None)

    # callbacks ------------------------------------------------------------

    def handle_clear(self):
        """Re-register every received message id with the hardware."""
        for message in self._recv:
            self.hardware.register_user_message(self._public_id(message.can_id))

    def handle_rx(self, can_id, data, dlc=8):
        """Update the parameters mapped into a received frame (two 32-bit words)."""
        message = self._find_by_id(self._recv, can_id)
        if message is None:
            return
        le_value = (data[0] & _U32) | ((data[1] & _U32) << 32)
        be_value = int.from_bytes(le_value.to_bytes(8, "little"), "big")
        for pos in message.items:
            num_bits = abs(pos.num_bits)
            mask = (1 << num_bits) - 1
            if pos.num_bits < 0:
                word = (be_value >> (63 - pos.offset_bits)) & mask
            else:
                word = (le_value >> pos.offset_bits) & mask
            if self.signed and num_bits > 1:
                sign_bit = 1 << (num_bits - 1)
                word = ((word + sign_bit) & mask) - sign_bit
            val = _f32(word)
            val = _f32(val + pos.offset)
            val = _f32(val * pos.gain)
            if self.params.get_type(pos.param) in (ParamType.PARAM, ParamType.TESTPARAM):
                self.params.set(pos.param, from_float(val))
            else:
                self.params.set_float(pos.param, val)

    # mapping --------------------------------------------------------------

    def clear(self):
        """Remove all mappings."""
        self._send.clear()
        self._recv.clear()
        self.hardware.clear_user_messages()

    def send_all(self):
        """Send every mapped message with current parameter values."""
        for message in self._send:
            le_value = 0
            be_value = 0
            for pos in message.items:
                val = _f32(self.params.get_float(pos.param))
                val = _f32(val * pos.gain)
                val = _f32(val + pos.offset)
                num_bits = abs(pos.num_bits)
                ival = int(val) & ((1 << num_bits) - 1)
                if pos.num_bits < 0:
                    be_value |= (ival << (63 - pos.offset_bits)) & _U64
                else:
                    le_value |= (ival << pos.offset_bits) & _U64
            frame = le_value | int.from_bytes(be_value.to_bytes(8, "big"), "little")
            self.hardware.send(message.can_id, [frame & _U32, frame >> 32], 8)

    def add_send(self, param, can_id, offset_bits, length, gain, offset=0):
        """Map a parameter into a sent message; returns the number of send messages."""
        if can_id < 0 or can_id > self._max_id:
            raise CanMapError(CanMapError.INVALID_ID)
        return self._add(self._send, param, can_id, offset_bits, length, gain, offset)

    def add_recv(self, param, can_id, offset_bits, length, gain, offset=0):
        """Map a parameter from a received message; returns the number of receive messages.

        Adding CAN_FORCE_EXTENDED to can_id forces an extended filter.
        """
        forced = bool(can_id & CAN_FORCE_EXTENDED)
        modded = can_id & ~CAN_FORCE_EXTENDED
        if modded < 0 or modded > self._max_id:
            raise CanMapError(CanMapError.INVALID_ID)
        if forced:
            modded |= self._force_flag
        try:
            return self._add(self._recv, param, modded, offset_bits, length, gain, offset)
        finally:
            self.hardware.register_user_message(can_id)

    def _item_count(self):
        return sum(len(m.items) for m in self._send + self._recv)

    def _add(self, messages, param, can_id, offset_bits, length, gain, offset):
        if length == 0 or abs(length) > 32:
            raise CanMapError(CanMapError.INVALID_LENGTH)
        if not 0 <= offset_bits <= 63:
            raise CanMapError(CanMapError.INVALID_OFFSET)
        if length > 0 and offset_bits + length - 1 > 63:
            raise CanMapError(CanMapError.INVALID_OFFSET)
        if length < 0 and offset_bits + length + 1 < 0:
            raise CanMapError(CanMapError.INVALID_OFFSET)
        message = self._find_by_id(messages, can_id)
        if message is None and len(messages) >= self.max_messages:
            raise CanMapError(CanMapError.MAX_MESSAGES)
        if self._item_count() >= self.max_items:
            raise CanMapError(CanMapError.MAX_ITEMS)
        if message is None:
            message = _Message(can_id)
            messages.append(message)
        message.items.append(CanPos(param, offset_bits, length, gain, offset))
        return len(messages)

    def remove(self, param):
        """Remove the first mapping of param; returns the number removed."""
        for rx, messages in ((False, self._send), (True, self._recv)):
            for message_index, message in enumerate(messages):
                for item_index, pos in enumerate(message.items):
                    if pos.param == param:
                        return self.remove_item(rx, message_index, item_index)
        return 0

    def remove_item(self, rx, message_index, item_index):
        """Remove one mapped item; an emptied message is replaced by the last one."""
        messages = self._recv if rx else self._send
        if not 0 <= message_index < len(messages):
            return 0
        message = messages[message_index]
        if not 0 <= item_index < len(message.items):
            return 0
        del message.items[item_index]
        if not message.items:
            last = messages.pop()
            if message_index < len(messages):
                messages[message_index] = last
        return 1

    def find_map(self, param):
        """(can_id, CanPos, rx) of the first mapping of param, or None."""
        return next(((cid, pos, rx) for cid, pos, rx in self.iterate() if pos.param == param), None)

    def get_map(self, rx, message_index, item_index):
        """(can_id, CanPos) at the given indexes, or None."""
        messages = self._recv if rx else self._send
        if not 0 <= message_index < len(messages):
            return None
        message = messages[message_index]
        if not 0 <= item_index < len(message.items):
            return None
        return self._public_id(message.can_id), message.items[item_index]

    def iterate(self):
        """Yield (can_id, CanPos, rx) for every mapping, send maps first."""
        for rx, messages in ((False, self._send), (True, self._recv)):
            for message in messages:
                for pos in message.items:
                    yield self._public_id(message.can_id), pos, rx

    # persistence ----------------------------------------------------------

    def save(self):
        """Serialise all mappings, with parameters stored by unique id and a CRC."""
        parts = []
        for messages in (self._send, self._recv):
            parts.append(bytes((len(messages),)))
            for message in messages:
                parts.append(_HEADER.pack(message.can_id, len(message.items)))
                parts.extend(
                    _ITEM.pack(self.params.id_of(p.param), p.offset_bits, p.num_bits, p.gain, p.offset)
                    for p in message.items
                )
        body = b"".join(parts)
        return body + _CRC.pack(zlib.crc32(body))

    def load(self, blob):
        """Replace the mappings with saved ones; False when the data is corrupt."""
        blob = bytes(blob)
        if len(blob) < _CRC.size:
            return False
        body, (stored,) = blob[:-_CRC.size], _CRC.unpack(blob[-_CRC.size:])
        if zlib.crc32(body) != stored:
            return False
        try:
            maps = self._parse(body)
        except (struct.error, IndexError):
            return False
        self._send, self._recv = maps
        self.hardware.clear_user_messages()
        return True

    def _parse(self, body):
        pos = 0
        result = []
        for _ in range(2):
            count = body[pos]
            pos += 1
            messages = []
            for _ in range(count):
                can_id, n_items = _HEADER.unpack_from(body, pos)
                pos += _HEADER.size
                message = _Message(can_id)
                for _ in range(n_items):
                    uid, offset_bits, num_bits, gain, offset = _ITEM.unpack_from(body, pos)
                    pos += _ITEM.size
                    param = self.params.num_from_id(uid)
                    if param is not None:
                        message.items.append(CanPos(param, offset_bits, num_bits, gain, offset))
                if message.items:
                    messages.append(message)
            result.append(messages)
        return result
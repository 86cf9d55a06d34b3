"""SDO server and client: parameter access, CAN mapping and string upload."""

import struct
from collections import deque
from dataclasses import dataclass, replace

from .canhardware import CAN_FORCE_EXTENDED, CanCallback
from .canmap import CanMapError, CanPos

SDO_REQ_ID_BASE = 0x600
SDO_REP_ID_BASE = 0x580

SDO_INDEX_PARAMS = 0x2000
SDO_INDEX_PARAM_UID = 0x2100
SDO_INDEX_MAP_TX = 0x3000
SDO_INDEX_MAP_RX = 0x3001
SDO_INDEX_MAP_RD = 0x3100
SDO_INDEX_STRINGS = 0x5001

SDO_ERR_INVIDX = 0x06020000
SDO_ERR_RANGE = 0x06090030

PRINT_BUFFER_SIZE = 64
BYTES_PER_SEGMENT = 7
STRING_SIZE_UNKNOWN = 65535

_U32 = 0xFFFFFFFF
_UNSET = 0xFFFFFFFF


class SdoCommand:
    """Command byte values of SDO frames."""

    WRITE = 0x23
    READ = 0x40
    ABORT = 0x80
    WRITE_REPLY = 0x60
    READ_REPLY = 0x43
    REQUEST_SEGMENT = 0x60
    TOGGLE_BIT = 0x10
    RESPONSE_UPLOAD = 0x40
    RESPONSE_DOWNLOAD = 0x60
    SIZE_SPECIFIED = 0x01


def _f32(value):
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _signed(value, bits):
    value &= (1 << bits) - 1
    sign = 1 << (bits - 1)
    return value - (1 << bits) if value & sign else value


def _words_to_bytes(words):
    return (words[0] & _U32).to_bytes(4, "little") + (words[1] & _U32).to_bytes(4, "little")


def _bytes_to_words(raw):
    return [int.from_bytes(raw[:4], "little"), int.from_bytes(raw[4:8], "little")]


@dataclass
class SdoFrame:
    """An expedited SDO frame: command, object index, sub-index and 32-bit data."""

    cmd: int
    index: int
    sub_index: int
    data: int = 0

    @classmethod
    def from_words(cls, data):
        """Decode a frame given as two little-endian 32-bit words."""
        first = data[0] & _U32
        return cls(first & 0xFF, (first >> 8) & 0xFFFF, first >> 24, data[1] & _U32)

    def to_words(self):
        """Encode the frame as two little-endian 32-bit words."""
        first = (self.cmd & 0xFF) | ((self.index & 0xFFFF) << 8) | ((self.sub_index & 0xFF) << 24)
        return [first, self.data & _U32]


class CanSdo(CanCallback):
    """Answers SDO requests for this node and issues requests to a remote node.

    ``param_names`` gives the parameter order used by object index 0x2000.
    """

    def __init__(self, hardware, params, can_map=None, param_names=()):
        self.hardware = hardware
        self.params = params
        self.can_map = can_map
        self.param_names = tuple(param_names)
        self.node_id = 1
        self.remote_node_id = 255
        self.print_request = -1
        self.pending_user_space_sdo = False
        self.pending_frame = None
        self._reply_valid = False
        self._reply_data = 0
        self._map_id = _UNSET
        self._map_info = CanPos(None, 0, 0, 0.0, 0)
        self._print_buffer = deque()
        hardware.add_callback(self)
        self.handle_clear()

    # callbacks ------------------------------------------------------------

    def handle_clear(self):
        """Register the request id of this node and the reply id of the remote node."""
        self.hardware.register_user_message(SDO_REQ_ID_BASE + self.node_id)
        if self.remote_node_id < 64:
            self.hardware.register_user_message(SDO_REP_ID_BASE + self.remote_node_id)

    def handle_rx(self, can_id, data, dlc=8):
        if can_id == SDO_REQ_ID_BASE + self.node_id:
            self._process_sdo(data)
        elif can_id == SDO_REP_ID_BASE + self.remote_node_id:
            self._process_reply(SdoFrame.from_words(data))

    # client side ----------------------------------------------------------

    def sdo_write(self, node_id, index, sub_index, data):
        self._initiate_transfer(SdoCommand.WRITE, node_id, index, sub_index, data)

    def sdo_read(self, node_id, index, sub_index):
        self._initiate_transfer(SdoCommand.READ, node_id, index, sub_index, 0)

    def sdo_read_reply(self):
        """Data of the last reply from the remote node, or None if none or aborted."""
        return self._reply_data if self._reply_valid else None

    def remote_map(self, node_id, rx, cob_id, mapping):
        """Create a mapping on a remote node; the remaining steps follow its replies."""
        self._map_info = replace(mapping)
        index = SDO_INDEX_MAP_RX if rx else SDO_INDEX_MAP_TX
        self._initiate_transfer(SdoCommand.WRITE, node_id, index, 0, cob_id)

    def set_node_id(self, node_id):
        self.node_id = node_id
        self.hardware.clear_user_messages()

    def _initiate_transfer(self, cmd, node_id, index, sub_index, data):
        frame = SdoFrame(cmd, index, sub_index, data)
        if node_id != self.remote_node_id:
            self.remote_node_id = node_id
            self.hardware.clear_user_messages()
        self._reply_valid = False
        self.hardware.send(SDO_REQ_ID_BASE + self.remote_node_id, frame.to_words(), 8)

    def _map_param_uid(self):
        param = self._map_info.param
        if isinstance(param, int):
            return param
        return self.params.id_of(param)

    def _process_reply(self, frame):
        if frame.index in (SDO_INDEX_MAP_RX, SDO_INDEX_MAP_TX):
            info = self._map_info
            if frame.sub_index == 0:
                value = self._map_param_uid() | (info.offset_bits << 16) | (info.num_bits << 24)
                self._initiate_transfer(SdoCommand.WRITE, self.remote_node_id, frame.index, 1, value & _U32)
            elif frame.sub_index == 1:
                value = int(_f32(info.gain * 1000.0)) | (info.offset << 24)
                self._initiate_transfer(SdoCommand.WRITE, self.remote_node_id, frame.index, 2, value & _U32)
        self._reply_valid = frame.cmd != SdoCommand.ABORT
        self._reply_data = frame.data

    # server side ----------------------------------------------------------

    def put_char(self, c):
        """Queue one character of string output for segmented upload."""
        value = ord(c) if isinstance(c, str) else c
        if len(self._print_buffer) >= PRINT_BUFFER_SIZE:
            raise BufferError("print buffer full")
        self._print_buffer.append(value & 0xFF)
        self.print_request = -1

    def send_sdo_reply(self, frame):
        """Answer a request that was left to the application."""
        self.hardware.send(SDO_REP_ID_BASE + self.node_id, frame.to_words(), 8)
        self.pending_user_space_sdo = False

    def _process_sdo(self, data):
        frame = SdoFrame.from_words(data)
        has_map = self.can_map is not None

        if frame.cmd & SdoCommand.REQUEST_SEGMENT == SdoCommand.REQUEST_SEGMENT:
            reply = self._upload_segment(data)
        else:
            if frame.index == SDO_INDEX_PARAMS or frame.index & 0xFF00 == SDO_INDEX_PARAM_UID:
                self._access_param(frame)
            elif has_map and frame.index == SDO_INDEX_MAP_TX:
                self._add_can_map(frame, False)
            elif has_map and frame.index == SDO_INDEX_MAP_RX:
                self._add_can_map(frame, True)
            elif has_map and frame.index & 0xFF00 == SDO_INDEX_MAP_RD:
                self._read_or_delete_can_map(frame)
            elif not self._process_special(frame):
                return
            reply = frame.to_words()
        self.hardware.send(SDO_REP_ID_BASE + self.node_id, reply, 8)

    def _upload_segment(self, data):
        raw = bytearray(_words_to_bytes(data))
        cmd = raw[0] & SdoCommand.TOGGLE_BIT
        count = min(BYTES_PER_SEGMENT, len(self._print_buffer))
        for position in range(1, count + 1):
            raw[position] = self._print_buffer.popleft()
        if not self._print_buffer:
            cmd |= SdoCommand.SIZE_SPECIFIED
            cmd |= (BYTES_PER_SEGMENT - count) << 1
        raw[0] = cmd
        return _bytes_to_words(raw)

    def _lookup_param(self, frame):
        if frame.index & 0xFF00 == SDO_INDEX_PARAM_UID:
            return self.params.num_from_id(frame.sub_index + ((frame.index & 0xFF) << 8))
        if frame.sub_index < len(self.param_names):
            return self.param_names[frame.sub_index]
        return None

    def _abort(self, frame, error):
        frame.cmd = SdoCommand.ABORT
        frame.data = error

    def _access_param(self, frame):
        param = self._lookup_param(frame)
        if param is None or param not in self.params:
            self._abort(frame, SDO_ERR_INVIDX)
            return
        if frame.cmd == SdoCommand.WRITE:
            if self.params.set(param, _signed(frame.data, 32)):
                frame.cmd = SdoCommand.WRITE_REPLY
            else:
                self._abort(frame, SDO_ERR_RANGE)
        elif frame.cmd == SdoCommand.READ:
            frame.data = self.params.get(param) & _U32
            frame.cmd = SdoCommand.READ_REPLY

    def _process_special(self, frame):
        if frame.index == SDO_INDEX_STRINGS:
            if frame.cmd == SdoCommand.READ:
                frame.data = STRING_SIZE_UNKNOWN
                frame.cmd = SdoCommand.RESPONSE_UPLOAD | SdoCommand.SIZE_SPECIFIED
                self._print_buffer.clear()
                self.print_request = frame.sub_index
                return True
        else:
            self.pending_user_space_sdo = True
            self.pending_frame = replace(frame)
        return False

    def _read_or_delete_can_map(self, frame):
        rx = bool(frame.index & 0x80)
        message_index = frame.index & 0x3F
        item_index = max(0, frame.sub_index - 1) // 2
        found = self.can_map.get_map(rx, message_index, item_index)

        if frame.cmd == SdoCommand.READ:
            if found is None:
                self._abort(frame, SDO_ERR_INVIDX)
                return
            can_id, pos = found
            if frame.sub_index == 0:
                frame.data = can_id & _U32
            elif frame.sub_index & 1:
                uid = self.params.id_of(pos.param)
                frame.data = (uid | (pos.offset_bits << 16) | (pos.num_bits << 24)) & _U32
            else:
                gain = int(_f32(pos.gain * 1000)) & 0xFFFFFF
                frame.data = (gain | (pos.offset << 24)) & _U32
            frame.cmd = SdoCommand.READ_REPLY
        elif frame.cmd == SdoCommand.WRITE and found is not None and frame.data == 0:
            self.can_map.remove_item(rx, message_index, item_index)
            frame.cmd = SdoCommand.WRITE_REPLY
        else:
            self._abort(frame, SDO_ERR_INVIDX)

    def _add_can_map(self, frame, rx):
        if frame.cmd != SdoCommand.WRITE:
            return
        result = -1
        info = self._map_info
        data = frame.data

        if frame.sub_index == 0:
            if data < 0x20000000 or (data & ~CAN_FORCE_EXTENDED) < 0x800:
                self._map_id = data
                result = 0
            else:
                self._map_id = _UNSET
        elif self._map_id != _UNSET and frame.sub_index == 1:
            param = self.params.num_from_id(data & 0xFFFF)
            self._map_info = CanPos(param, (data >> 16) & 0x3F, _signed(data, 32) >> 24,
                                    info.gain, info.offset)
            result = 0 if param is not None else -1
        elif info.num_bits != 0 and frame.sub_index == 2:
            gain = _f32(_signed(data & 0xFFFFFF, 24) / 1000.0)
            offset = _signed(data >> 24, 8)
            add = self.can_map.add_recv if rx else self.can_map.add_send
            if isinstance(info.param, str) and info.param in self.params:
                try:
                    result = add(info.param, self._map_id, info.offset_bits, info.num_bits, gain, offset)
                except CanMapError:
                    result = -1
            self._map_info = CanPos(info.param, info.offset_bits, 0, gain, offset)
            self._map_id = _UNSET

        if result >= 0:
            frame.cmd = SdoCommand.WRITE_REPLY
        else:
            self._abort(frame, SDO_ERR_INVIDX)
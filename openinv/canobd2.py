"""Minimal OBD-II responder over CAN."""

from .canhardware import CanCallback

OBD2_MODE1 = 0x01
OBD2_MODE2 = 0x02
OBD2_MODE3 = 0x03
OBD2_MODE4 = 0x04
OBD2_MODE42 = 0x2A

OBD2_PID_SUPPORTED = 0x00
OBD2_MONITOR_STATUS = 0x01

OBD2_MODE1_RESPONSE = 0x41
OBD2_MODE3_RESPONSE = 0x43
OBD2_MODE4_RESPONSE = 0x44
OBD2_MODE42_RESPONSE = 0x6A
OBD2_NEGATIVE_RESPONSE = 0x7F
OBD2_REQUEST_OUT_OF_RANGE = 0x31
OBD2_READ_DATA_BY_ID = 0x22

OBD2_PID_REQUEST = 0x7DF
OBD2_PID_REPLY = 0x7E8

_U32 = 0xFFFFFFFF


class CanObd2(CanCallback):
    """Answers OBD-II requests on the broadcast id and the ECU-specific id."""

    def __init__(self, hardware, params):
        self.hardware = hardware
        self.params = params
        self.node_id = 0
        hardware.add_callback(self)
        self.handle_clear()

    def handle_clear(self):
        self.hardware.register_user_message(OBD2_PID_REQUEST)
        self.hardware.register_user_message(OBD2_PID_REQUEST + self.node_id)

    def handle_rx(self, can_id, data, dlc=8):
        if can_id in (OBD2_PID_REQUEST, OBD2_PID_REQUEST + self.node_id):
            self.process_obd2(data)

    def set_node_id(self, node_id):
        self.node_id = node_id
        self.hardware.clear_user_messages()

    def process_obd2(self, data):
        """Answer a request given as two 32-bit words; returns the response bytes."""
        request = (data[0] & _U32).to_bytes(4, "little") + (data[1] & _U32).to_bytes(4, "little")
        response = bytearray(8)
        mode = request[1]

        if mode == OBD2_MODE3:
            response[0] = 0x02
            response[1] = OBD2_MODE3_RESPONSE
        elif mode == OBD2_MODE4:
            response[1] = OBD2_MODE4_RESPONSE
        elif mode == OBD2_MODE1:
            response[1] = OBD2_MODE1_RESPONSE
            if request[2] == OBD2_PID_SUPPORTED:
                response[0] = 0x06
                response[2] = OBD2_PID_SUPPORTED
            elif request[2] == OBD2_MONITOR_STATUS:
                response[0] = 0x05
                response[2] = OBD2_MONITOR_STATUS
                response[4] = 0x07
                response[5] = 0xFF
        elif mode == OBD2_MODE42:
            uid = request[2] * 256 + request[3]
            param = self.params.num_from_id(uid)
            if param is not None:
                response[0] = 7
                response[1] = OBD2_MODE42_RESPONSE
                response[2] = request[2]
                response[3] = request[3]
                response[4:8] = (self.params.get(param) & _U32).to_bytes(4, "big")
            else:
                response[0] = 3
                response[1] = OBD2_NEGATIVE_RESPONSE
                response[2] = OBD2_READ_DATA_BY_ID
                response[3] = OBD2_REQUEST_OUT_OF_RANGE

        words = [int.from_bytes(response[:4], "little"), int.from_bytes(response[4:], "little")]
        self.hardware.send(OBD2_PID_REPLY + self.node_id, words, 8)
        return bytes(response)
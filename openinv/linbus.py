"""LIN bus frame construction and response checking."""

SYNC = 0x55
PID_INDEX = 2
PAYLOAD_INDEX = 3
MAX_PAYLOAD = 8


def parity(frame_id):
    """Protected identifier: the frame id with parity bits P0 (bit 6) and P1 (bit 7)."""
    def bit(n):
        return (frame_id >> n) & 1

    p1 = 1 ^ (bit(1) ^ bit(3) ^ bit(4) ^ bit(5))
    p0 = bit(0) ^ bit(1) ^ bit(2) ^ bit(4)
    return (frame_id | p1 << 7 | p0 << 6) & 0xFF


def checksum(pid, data):
    """Enhanced LIN checksum over the protected id and the payload."""
    result = pid & 0xFF
    for byte in data:
        total = result + byte
        if total > 256:
            total -= 255
        result = total & 0xFF
    return result ^ 0xFF


def build_request(frame_id, data=b""):
    """Bytes sent after the break: sync, protected id and, with payload, data and checksum."""
    data = bytes(data)
    if len(data) > MAX_PAYLOAD:
        raise ValueError(f"LIN payload is at most {MAX_PAYLOAD} bytes, got {len(data)}")
    pid = parity(frame_id)
    if not data:
        return bytes((SYNC, pid))
    return bytes((SYNC, pid, *data, checksum(pid, data)))


def is_valid_response(frame_id, received, required_len):
    """Check a received frame (break, sync, pid, payload, checksum) for id, length and checksum."""
    if required_len < 0:
        raise ValueError("required length must not be negative")
    if required_len > MAX_PAYLOAD:
        return False
    received = bytes(received)
    if len(received) != required_len + PAYLOAD_INDEX + 1:
        return False
    if received[PID_INDEX] != parity(frame_id):
        return False
    payload = received[PAYLOAD_INDEX:PAYLOAD_INDEX + required_len]
    return checksum(received[PID_INDEX], payload) == received[PAYLOAD_INDEX + required_len]
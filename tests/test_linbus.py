import pytest

from openinv.linbus import (
    SYNC,
    build_request,
    checksum,
    is_valid_response,
    parity,
)


def test_parity_of_diagnostic_ids():
    assert parity(0x3C) == 0x3C
    assert parity(0x3D) == 0x7D


def test_parity_of_zero_id():
    assert parity(0) == 0x80


def test_parity_keeps_id_bits_and_is_unique():
    pids = [parity(i) for i in range(64)]
    assert all(pid & 0x3F == i for i, pid in enumerate(pids))
    assert len(set(pids)) == 64


def test_checksum_of_empty_payload_is_inverted_pid():
    for pid in (0x00, 0x3C, 0x7D, 0xFF):
        assert checksum(pid, b"") == pid ^ 0xFF


def test_build_request_without_payload():
    assert build_request(0x21) == bytes((SYNC, parity(0x21)))


def test_build_request_with_payload_layout():
    payload = b"\x01\x02\x03"
    frame = build_request(0x10, payload)
    assert len(frame) == len(payload) + 3
    assert frame[0] == SYNC
    assert frame[1] == parity(0x10)
    assert frame[2:5] == payload
    assert frame[5] == checksum(parity(0x10), payload)


def test_build_request_rejects_long_payload():
    with pytest.raises(ValueError):
        build_request(0x10, bytes(9))


@pytest.mark.parametrize("payload", [b"\x01\x02\x03\x04", b"\xff" * 8, b"\x80"])
def test_response_round_trip(payload):
    received = b"\x00" + build_request(0x22, payload)
    assert is_valid_response(0x22, received, len(payload))


def test_response_with_corrupted_payload_is_rejected():
    payload = b"\x01\x02\x03\x04"
    received = bytearray(b"\x00" + build_request(0x22, payload))
    received[4] ^= 0x10
    assert not is_valid_response(0x22, received, len(payload))


def test_response_for_other_id_is_rejected():
    payload = b"\x01\x02"
    received = b"\x00" + build_request(0x22, payload)
    assert not is_valid_response(0x23, received, len(payload))


def test_response_with_wrong_length_is_rejected():
    payload = b"\x01\x02\x03"
    received = b"\x00" + build_request(0x22, payload)
    assert not is_valid_response(0x22, received[:-1], len(payload))
    assert not is_valid_response(0x22, received, len(payload) + 1)


def test_response_longer_than_eight_bytes_is_rejected():
    assert not is_valid_response(0x22, bytes(13), 9)


def test_negative_length_raises():
    with pytest.raises(ValueError):
        is_valid_response(0x22, b"", -1)
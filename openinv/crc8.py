"""Table-driven CRC-8-CCITT (polynomial x^8 + x^2 + x + 1), MSB first."""

POLYNOMIAL = 0x07


def _crc_of_byte(byte):
    crc = byte
    for _ in range(8):
        crc = ((crc << 1) ^ POLYNOMIAL) if crc & 0x80 else (crc << 1)
        crc &= 0xFF
    return crc


CRC_TABLE = tuple(_crc_of_byte(byte) for byte in range(256))


def crc8(data, initial=0):
    """CRC-8 of a bytes-like object or iterable of byte values."""
    crc = initial & 0xFF
    for byte in data:
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"byte value out of range: {byte}")
        crc = CRC_TABLE[crc ^ byte]
    return crc
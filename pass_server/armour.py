"""
OpenPGP ASCII armour (RFC 4880 section 6) for opaque binary data.

gpg can only armour data as part of an operation on OpenPGP packets, and
'gpg --enarmor' labels its output 'ARMORED FILE' and adds a comment header.
Clients of the published site expect plain 'PGP MESSAGE' blocks wrapping the
original ciphertext byte for byte, so the armour is produced here instead.
"""

import base64
import binascii
import typing

from .utils import PassServerException

MESSAGE = 'PGP MESSAGE'

LINE_LENGTH = 64

CRC24_INIT = 0xB704CE
CRC24_POLY = 0x1864CFB


class ArmourError(PassServerException):
    pass


def crc24(data: bytes) -> int:
    crc = CRC24_INIT
    for byte in data:
        crc ^= byte << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= CRC24_POLY
    return crc & 0xFFFFFF


def checksum(data: bytes) -> str:
    return '=' + base64.b64encode(crc24(data).to_bytes(3, 'big')).decode('ascii')


def encode(data: bytes, block_type: str = MESSAGE) -> bytes:
    """Wrap data in an armoured block with no header lines."""
    payload = base64.b64encode(data).decode('ascii')
    lines: typing.List[str] = [f'-----BEGIN {block_type}-----', '']
    lines += [payload[i:i + LINE_LENGTH] for i in range(0, len(payload), LINE_LENGTH)]
    lines += [checksum(data), f'-----END {block_type}-----', '']
    return '\n'.join(lines).encode('ascii')


def decode(text: bytes, block_type: str = MESSAGE) -> bytes:
    """Return the data inside an armoured block, verifying its checksum."""
    lines = [line.strip() for line in text.decode('ascii').splitlines()]
    begin, end = f'-----BEGIN {block_type}-----', f'-----END {block_type}-----'

    try:
        start = lines.index(begin)
        stop = lines.index(end, start)
    except ValueError:
        raise ArmourError(f"No {block_type} block found") from None

    block = lines[start + 1:stop]
    # Header lines run until the first blank line.
    if '' not in block:
        raise ArmourError("Armour headers are not terminated by a blank line")
    body = block[block.index('') + 1:]

    crc = None
    if body and body[-1].startswith('='):
        crc = body.pop()

    try:
        data = base64.b64decode(''.join(body), validate=True)
    except binascii.Error as error:
        raise ArmourError(f"Invalid armour payload: {error}") from error

    if crc is not None and crc != checksum(data):
        raise ArmourError(f"Armour checksum mismatch: expected {crc}, got {checksum(data)}")

    return data

import pytest

from pass_server import armour


@pytest.mark.parametrize('data', [b'', b'\xde\xad', bytes(range(256)) * 3], ids=['empty', 'short', 'long'])
def test_decode_returns_original_bytes(data):
    assert armour.decode(armour.encode(data)) == data


def test_encode_has_no_headers():
    lines = armour.encode(b'\xde\xad').decode('ascii').splitlines()
    assert lines == [
        '-----BEGIN PGP MESSAGE-----',
        '',
        '3q0=',
        armour.checksum(b'\xde\xad'),
        '-----END PGP MESSAGE-----',
    ]


def test_encode_wraps_long_lines():
    lines = armour.encode(b'\x00' * 100).decode('ascii').splitlines()
    assert max(len(line) for line in lines) == armour.LINE_LENGTH


def test_crc24_of_nothing_is_initial_value():
    assert armour.crc24(b'') == armour.CRC24_INIT
    assert armour.checksum(b'') == '=twTO'


def test_decode_accepts_headers():
    text = b'-----BEGIN PGP MESSAGE-----\nComment: hello\n\n3q0=\n-----END PGP MESSAGE-----\n'
    assert armour.decode(text) == b'\xde\xad'


def test_decode_rejects_bad_checksum():
    text = armour.encode(b'\xde\xad').replace(armour.checksum(b'\xde\xad').encode(), b'=AAAA')
    with pytest.raises(armour.ArmourError):
        armour.decode(text)


def test_decode_rejects_other_blocks():
    with pytest.raises(armour.ArmourError):
        armour.decode(armour.encode(b'\xde\xad', block_type='PGP SIGNATURE'))

from importlib.metadata import version

import pytest

from blendstruct.meta import Endianess
from blendstruct.streams import Stream
from blendstruct.exceptions import (
    IncompleteException,
    UnrecoverableException,
)


LITTLE = Endianess.LITTLE_ENDIAN
BIG = Endianess.BIG_ENDIAN

BLENDER = bytes([0x42, 0x4c, 0x45, 0x4e, 0x44, 0x45, 0x52, 0x2d])


@pytest.mark.parametrize('endianess,expected', [
    (LITTLE, 17748),
    (BIG, 21573),
])
def test_read_u16(endianess, expected):
    stream = Stream(bytes([0x54, 0x45]), endianess=endianess)

    assert stream.read_u16() == expected
    assert stream.remaining == 0


@pytest.mark.parametrize('endianess,expected', [
    (LITTLE, 1414743380),
    (BIG, 1413829460),
])
def test_read_u32(endianess, expected):
    stream = Stream(b'TEST', endianess=endianess)

    assert stream.read_u32() == expected
    assert stream.tell() == 4


@pytest.mark.parametrize('endianess,expected', [
    (LITTLE, 3265748839470287938),
    (BIG, 4777269507188412973),
])
def test_read_u64(endianess, expected):
    stream = Stream(BLENDER, endianess=endianess)

    assert stream.read_u64() == expected


@pytest.mark.parametrize('endianess,pointer_size,expected', [
    (LITTLE, 4, 1313164354),
    (BIG, 4, 1112294734),
    (LITTLE, 8, 3265748839470287938),
    (BIG, 8, 4777269507188412973),
])
def test_read_pointer(endianess, pointer_size, expected):
    stream = Stream(BLENDER, endianess=endianess, pointer_size=pointer_size)

    assert stream.read_pointer() == expected
    assert stream.tell() == pointer_size


def test_read_without_parameters():
    """Integers can't be read until the endianess is known."""
    stream = Stream(BLENDER)

    with pytest.raises(UnrecoverableException):
        stream.read_u32()

    with pytest.raises(UnrecoverableException):
        Stream(BLENDER, endianess=LITTLE).read_pointer()

    assert stream.tell() == 0


def test_take_incomplete():
    """Asking for more bytes than available is not a mismatch."""
    stream = Stream(b'BLEND')

    assert stream.take(2) == b'BL'

    with pytest.raises(IncompleteException) as excinfo:
        stream.take(4)

    assert excinfo.value.needed == 4
    assert excinfo.value.available == 3
    assert excinfo.value.offset == 2

    assert stream.take(0) == b''
    assert stream.take(3) == b'END'
    assert stream.remaining == 0


def test_match():
    stream = Stream(b'BLENDER-v302')

    assert not stream.match(b'BLENDEX')
    assert stream.tell() == 0

    assert stream.match(b'BLENDER')
    assert stream.tell() == 7

    assert not stream.match(b'_')
    assert stream.match(b'-')

    with pytest.raises(IncompleteException):
        stream.match(b'v3020')


def test_find():
    """The search goes forward but not beyond the end or the limit."""
    stream = Stream(b'NAME\x00\x00\x00TYPEabcTYPE')

    stream.skip(4)

    assert stream.find(b'TYPE', limit=10) is None
    assert stream.tell() == 4

    assert stream.find(b'TYPE') == 7
    assert stream.tell() == 7

    stream.skip(4)
    assert stream.find(b'TYPE') == 14
    stream.skip(4)
    assert stream.find(b'TYPE') is None


def test_window():
    """A stream limited to a part of the data uses absolute offsets."""
    data = b'0123TYPE89'
    stream = Stream(data, start=2, end=8)

    assert stream.tell() == 2
    assert stream.remaining == 6
    assert stream.find(b'TYPE') == 4
    assert stream.find(b'89') is None

    with pytest.raises(IncompleteException):
        stream.take(7)

    with pytest.raises(ValueError):
        stream.seek(9)


def test_split():
    stream = Stream(b'abcdefgh', endianess=BIG, pointer_size=4)
    stream.skip(1)

    remainder, consumed = stream.split(3)

    assert consumed.take(consumed.remaining) == b'bcd'
    assert remainder.tell() == 4
    assert remainder.endianess is BIG
    assert remainder.pointer_size == 4
    assert remainder.take(4) == b'efgh'

    # the original stream doesn't move
    assert stream.tell() == 1


def test_derive():
    stream = Stream(b'BLENDER-v302xxxx')
    stream.skip(12)

    derived = stream.derive(endianess=LITTLE, pointer_size=8)

    assert derived.tell() == 12
    assert derived.endianess is LITTLE
    assert derived.pointer_size == 8
    assert stream.endianess is None


def test_read_cstring():
    stream = Stream(b'*next\x00name[24]\x00\x00abc')

    assert stream.read_cstring() == '*next'
    assert stream.read_cstring() == 'name[24]'
    assert stream.read_cstring() == ''

    with pytest.raises(IncompleteException):
        stream.read_cstring()


def test_path(tmp_path):
    path = tmp_path / 'data.bin'
    path.write_bytes(b'TEST')

    assert Stream(str(path)).take(4) == b'TEST'
    assert Stream(path, endianess=LITTLE).read_u32() == 1414743380


def test_wrong_object():
    with pytest.raises(ValueError):
        Stream(42)


def test_bitstring_version():
    """The stream is built on the ConstBitStream of the 4.x series."""
    assert version('bitstring').split('.')[0] == '4'

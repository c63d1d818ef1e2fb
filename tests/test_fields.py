from enum import Enum

import pytest

from blendstruct.enum import Compliant
from blendstruct.meta import Endianess
from blendstruct.streams import Stream
from blendstruct.exceptions import (
    IncompleteException,
    MagicException,
    TagNotFoundException,
    UnpackException,
    UnrecoverableException,
)
from blendstruct.fields import (
    ArrayField,
    CStringField,
    PointerField,
    StringField,
    StructField,
    TagField,
    TagSelectField,
)


class DummyEnum(Enum):
    NONE = 0
    FIRST = 1
    SECOND = 2


def test_structfield():
    """Check that the attributes "value" and "raw" are the analogous
    of the integers and bytes representation for a field."""
    field = StructField('I')

    assert field.size == 4
    assert field.value == 0

    field.unpack(Stream(b'\x01\x02\x03\x04', endianess=Endianess.LITTLE_ENDIAN))

    assert field.value == 0x04030201
    assert field.raw == b'\x01\x02\x03\x04'
    assert field.offset == 0


def test_structfield_endianess():
    """The endianess of the field wins over the one of the stream."""
    field = StructField('H', endianess=Endianess.BIG_ENDIAN)
    field.unpack(Stream(b'\x01\x02', endianess=Endianess.LITTLE_ENDIAN))

    assert field.value == 0x0102

    with pytest.raises(UnrecoverableException):
        StructField('H').unpack(Stream(b'\x01\x02'))


def test_structfield_enum():
    field = StructField('I', enum=DummyEnum)

    assert field.value == DummyEnum.NONE

    field.unpack(Stream(b'\x02\x00\x00\x00', endianess=Endianess.LITTLE_ENDIAN))

    assert field.value == DummyEnum.SECOND


def test_structfield_enum_compliant():
    """Values outside of the enum are errors only when requested."""
    data = b'\x04\x00\x00\x00'

    field = StructField('I', enum=DummyEnum)
    field.unpack(Stream(data, endianess=Endianess.LITTLE_ENDIAN))

    assert field.value == 4

    field = StructField('I', enum=DummyEnum, compliant=Compliant.ENUM)

    with pytest.raises(UnpackException):
        field.unpack(Stream(data, endianess=Endianess.LITTLE_ENDIAN))


def test_structfield_incomplete():
    with pytest.raises(IncompleteException):
        StructField('I').unpack(Stream(b'\x00\x00', endianess=Endianess.LITTLE_ENDIAN))


def test_stringfield():
    field = StringField(0x4)

    assert field.value == b''

    field.unpack(Stream(b'kebab'))

    assert field.value == b'keba'
    assert field.size == 4


def test_cstringfield():
    field = CStringField()
    field.unpack(Stream(b'Object\x00Mesh\x00'))

    assert field.value == 'Object'
    assert field.raw == b'Object\x00'
    assert field.size == 7


def test_pointerfield():
    stream = Stream(b'\x00\x50\x00\x00\x00\x00\x00\x00', endianess=Endianess.LITTLE_ENDIAN, pointer_size=8)
    field = PointerField()
    field.unpack(stream)

    assert field.value == 0x5000
    assert field.size == 8


def test_tagfield():
    field = TagField(b'SDNA')
    field.unpack(Stream(b'SDNANAME'))

    assert field.value == b'SDNA'

    with pytest.raises(TagNotFoundException):
        TagField(b'SDNA').unpack(Stream(b'NAMESDNA'))

    with pytest.raises(MagicException):
        TagField(b'SDNA', is_magic=True).unpack(Stream(b'NAMESDNA'))


def test_tagfield_search():
    """With search the bytes before the tag are skipped."""
    stream = Stream(b'\x00\x00\x00TLEN\x01\x00')
    field = TagField(b'TLEN', search=True)
    field.unpack(stream)

    assert field.offset == 3
    assert stream.tell() == 7

    with pytest.raises(TagNotFoundException) as excinfo:
        TagField(b'STRC', search=True).unpack(stream)

    assert excinfo.value.offset == 7


def test_tagselectfield():
    mapping = {
        b'_': 4,
        b'-': 8,
    }
    field = TagSelectField(mapping)
    field.unpack(Stream(b'-v'))

    assert field.value == 8

    with pytest.raises(UnpackException):
        TagSelectField(mapping).unpack(Stream(b'v-'))


def test_arrayfield():
    field = ArrayField(StructField('H'), n=3)

    assert len(field) == 0

    field.unpack(Stream(b'\x01\x00\x02\x00\x03\x00\x04\x00', endianess=Endianess.LITTLE_ENDIAN))

    assert len(field) == 3
    assert field.values == [1, 2, 3]
    assert field[1].father == field
    assert field.size == 6
    assert field.raw == b'\x01\x00\x02\x00\x03\x00'


def test_arrayfield_incomplete():
    """The index of the failing element is in the chain of the exception."""
    field = ArrayField(StructField('H'), n=3)

    with pytest.raises(IncompleteException) as excinfo:
        field.unpack(Stream(b'\x01\x00\x02\x00\x03', endianess=Endianess.LITTLE_ENDIAN))

    assert excinfo.value.chain == ['[2]']


def test_arrayfield_wrong_n():
    with pytest.raises(ValueError):
        ArrayField(StructField('H'), n='3')

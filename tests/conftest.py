import struct

import pytest

from blendstruct.meta import Endianess
from blendstruct.blend import Blend
from blendstruct.blend.reader import Reader


def align(data, multiple=4):
    return data + b'\x00' * (-len(data) % multiple)


class BlendBuilder(object):
    '''Build the content of a blend file: the types, the structs and the
    blocks are added in order, the DNA1 and ENDB blocks are appended by build().'''

    def __init__(self, pointer_size=8, endianess=Endianess.LITTLE_ENDIAN, version=b'302'):
        self.pointer_size = pointer_size
        self.endianess = endianess
        self.version = version
        self.names = []
        self.types = []
        self.structs = []
        self.blocks = []

    def pack(self, fmt, *values):
        return struct.pack(self.endianess.prefix + fmt, *values)

    def pointer(self, address):
        return self.pack('I' if self.pointer_size == 4 else 'Q', address)

    def add_type(self, name, size):
        self.types.append((name, size))
        return len(self.types) - 1

    def type_index(self, name):
        return [_ for _, __ in self.types].index(name)

    def name_index(self, name):
        if name not in self.names:
            self.names.append(name)

        return self.names.index(name)

    def add_struct(self, name, *members):
        '''Each member is a couple (type name, decorated field name).'''
        self.structs.append((
            self.type_index(name),
            [(self.type_index(type_name), self.name_index(field_name)) for type_name, field_name in members],
        ))
        return len(self.structs) - 1

    def add_block(self, code, payload=b'', address=0, struct_index=0, count=1):
        self.blocks.append((code, payload, address, struct_index, count))

    def header(self):
        return (
            b'BLENDER' +
            (b'_' if self.pointer_size == 4 else b'-') +
            (b'v' if self.endianess is Endianess.LITTLE_ENDIAN else b'V') +
            self.version
        )

    def block(self, code, payload=b'', address=0, struct_index=0, count=1):
        return (
            code.ljust(4, b'\x00') +
            self.pack('I', len(payload)) +
            self.pointer(address) +
            self.pack('II', struct_index, count) +
            payload
        )

    def dna(self):
        data = b'SDNA'
        data += b'NAME' + self.pack('I', len(self.names)) + b''.join(_.encode() + b'\x00' for _ in self.names)
        data = align(data)
        data += b'TYPE' + self.pack('I', len(self.types)) + b''.join(_.encode() + b'\x00' for _, __ in self.types)
        data = align(data)
        data += b'TLEN' + b''.join(self.pack('H', size) for _, size in self.types)
        data = align(data)
        data += b'STRC' + self.pack('I', len(self.structs))
        for type_index, members in self.structs:
            data += self.pack('HH', type_index, len(members))
            for member in members:
                data += self.pack('HH', *member)

        return data

    def build(self, dna_address=0x9000, endb=True):
        data = self.header()
        data += b''.join(self.block(*_) for _ in self.blocks)
        data += self.block(b'DNA1', self.dna(), dna_address, 0, 1)

        if endb:
            data += self.block(b'ENDB', b'', 0, 0, 0)

        return data


def build_sample(pointer_size=8, endianess=Endianess.LITTLE_ENDIAN, version=b'302', lamp_next=0):
    '''A small scene: two objects in a linked list, a mesh with four vertices,
    a window manager and the thumbnail.'''
    builder = BlendBuilder(pointer_size, endianess, version)
    ps = pointer_size

    for name, size in (('char', 1), ('uchar', 1), ('short', 2), ('int', 4), ('float', 4), ('void', 0)):
        builder.add_type(name, size)

    builder.add_type('Link', 2 * ps)
    builder.add_type('ListBase', 2 * ps)
    builder.add_type('GHash', 0)
    builder.add_type('FileGlobal', 8 + ps + 24)
    builder.add_type('Object', 2 * ps + 24 + 12 + 4 + ps)
    builder.add_type('Mesh', 3 * ps + 24 + 8)
    builder.add_type('MVert', 16)
    builder.add_type('Camera', 8)
    builder.add_type('wmWindowManager', 4 * ps + 8)

    builder.add_struct('Link', ('Link', '*next'), ('Link', '*prev'))
    builder.add_struct('ListBase', ('void', '*first'), ('void', '*last'))
    builder.add_struct(
        'FileGlobal',
        ('char', 'subvstr[4]'), ('short', 'subversion'), ('short', 'minversion'),
        ('Object', '*curobject'), ('char', 'filename[24]'),
    )
    builder.add_struct(
        'Object',
        ('Object', '*next'), ('Object', '*prev'), ('char', 'name[24]'),
        ('float', 'loc[3]'), ('int', 'flag'), ('Mesh', '*data'),
    )
    builder.add_struct(
        'Mesh',
        ('Mesh', '*next'), ('Mesh', '*prev'), ('char', 'name[24]'),
        ('MVert', '*mvert'), ('int', 'totvert'), ('int', 'flag'),
    )
    builder.add_struct('MVert', ('float', 'co[3]'), ('int', 'flag'))
    builder.add_struct('Camera', ('float', 'lens'), ('float', 'clipsta'))
    builder.add_struct(
        'wmWindowManager',
        ('ListBase', 'windows'), ('void', '(*handler)()'), ('GHash', '*ghash'), ('int', 'flag'), ('int', 'pad'),
    )

    def obj(next, prev, name, loc, flag, data):
        return (
            builder.pointer(next) + builder.pointer(prev) + name.ljust(24, b'\x00') +
            builder.pack('3fi', *loc, flag) + builder.pointer(data)
        )

    # the rows of the thumbnail are stored from the bottom one
    pixels = bytes([
        255, 0, 0, 255,    0, 255, 0, 255,
        0, 0, 255, 255,    255, 255, 255, 255,
    ])

    builder.add_block(b'REND', b'\x00' * 72, 0x1000, 0, 1)
    builder.add_block(b'TEST', builder.pack('ii', 2, 2) + pixels, 0x2000, 0, 1)
    builder.add_block(
        b'GLOB',
        b'abcd' + builder.pack('hh', 3, 1) + builder.pointer(0x5000) + b'/tmp/cube.blend'.ljust(24, b'\x00'),
        0x3000, 2, 1,
    )
    builder.add_block(b'WM', b'\x00' * (4 * ps + 8), 0x4000, 7, 1)
    builder.add_block(b'OB', obj(0x5100, 0, b'OBCube', (1.0, 2.0, 3.0), 1, 0x6000), 0x5000, 3, 1)
    builder.add_block(b'OB', obj(lamp_next, 0x5000, b'OBLamp', (0.0, 0.0, 5.0), 2, 0xdead), 0x5100, 3, 1)
    builder.add_block(
        b'ME',
        builder.pointer(0) + builder.pointer(0) + b'MECube'.ljust(24, b'\x00') +
        builder.pointer(0x7000) + builder.pack('ii', 4, 0),
        0x6000, 4, 1,
    )
    builder.add_block(
        b'DATA',
        b''.join(builder.pack('3fi', index, index * 2, index * 3, index) for index in range(4)),
        0x7000, 5, 4,
    )

    return builder


@pytest.fixture
def builder():
    return BlendBuilder


@pytest.fixture
def sample_factory():
    return build_sample


@pytest.fixture
def sample_data():
    return build_sample().build()


@pytest.fixture
def sample_blend(sample_data):
    return Blend(sample_data)


@pytest.fixture
def sample_reader(sample_blend):
    return Reader(sample_blend)

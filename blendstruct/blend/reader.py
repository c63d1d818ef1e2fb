"""
Typed access to the content of the blocks.

The structs are described by a TypeDescriptor, built by whoever knows which
struct wants to read (usually code generated from a schema): the descriptor
remembers for which file version, pointer size and endianess it was built so
that it can't be used to reinterpret the data of an incompatible file.

The elements of the blocks are not copied, a StructView decodes the fields
on access from the packed bytes of the file.
"""
import logging
import struct

from . import Blend
from .enum import Version
from .types import (
    ArrayType,
    FunctionType,
    OpaqueType,
    PointerType,
    Primitive,
    PrimitiveType,
    StructType,
    resolve_struct,
)
from ..exceptions import (
    ElementSizeException,
    EndianessMismatchException,
    InvalidAddressException,
    InvalidPointerTypeException,
    MoreThanOneElementException,
    NoSuchElementException,
    PointerSizeMismatchException,
    StructSizeMismatchException,
    TraversalLimitException,
    UnknownStructException,
    VersionMismatchException,
)


logger = logging.getLogger(__name__)

# names of the fields of the structs used as double linked list
NEXT_FIELD = 'next'
PREV_FIELD = 'prev'


class TypeDescriptor(object):
    '''What the reader needs to know of a struct to read it.

    "next_field" and "prev_field" are the names of the pointers to the
    following and preceding elements when the struct is an element of a
    linked list.'''

    def __init__(self, struct_name, struct_size, version, pointer_size, endianess,
                 struct_index, type_index, next_field=None, prev_field=None):
        self.struct_name = struct_name
        self.struct_size = struct_size
        if isinstance(version, (bytes, bytearray)):
            version = Version.from_raw(version)
        self.version = version if isinstance(version, Version) else Version(*version)
        self.pointer_size = pointer_size
        self.endianess = endianess
        self.struct_index = struct_index
        self.type_index = type_index
        self.next_field = next_field
        self.prev_field = prev_field

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.struct_name}, {self.version}, {self.pointer_size}, {self.endianess.name})>'

    @classmethod
    def for_struct(cls, layout, header):
        '''Build the descriptor of a resolved struct for the file with the given header.'''
        linked = NEXT_FIELD in layout and PREV_FIELD in layout

        return cls(
            layout.name,
            layout.size,
            header.version,
            header.pointer_size,
            header.endianess,
            layout.struct_index,
            layout.type_index,
            next_field=NEXT_FIELD if linked else None,
            prev_field=PREV_FIELD if linked else None,
        )

    @property
    def is_linked(self):
        return self.next_field is not None

    def next(self, view):
        if not self.is_linked:
            raise TypeError(f'{self.struct_name} is not an element of a linked list')

        return view[self.next_field]

    def prev(self, view):
        if self.prev_field is None:
            raise TypeError(f'{self.struct_name} is not an element of a double linked list')

        return view[self.prev_field]


class StructView(object):
    '''One struct inside the data of the file, the fields are accessed by name

        >>> view['totvert']
        8

    the value depends on the type of the field: numbers for the primitives,
    the address for the pointers, bytes for arrays of chars, lists for the
    other arrays and another StructView for the embedded structs.'''

    def __init__(self, reader, layout, offset):
        self.reader = reader
        self.layout = layout
        self.offset = offset

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.layout.name} at 0x{self.offset:x})>'

    def __getitem__(self, name):
        field = self.layout.find_field(name)

        if field is None:
            raise KeyError(f'struct {self.layout.name} has no field named {name!r}')

        return self.reader.decode(field.type, self.offset + field.offset)

    def __contains__(self, name):
        return name in self.layout

    def get(self, name, default=None):
        if name not in self.layout:
            return default

        return self[name]

    def keys(self):
        return [_.name for _ in self.layout.fields]

    @property
    def raw(self):
        return self.reader.blend.data[self.offset:self.offset + self.layout.size]


class StructIter(object):
    '''Lazy iterator over the elements of some blocks.'''

    def __init__(self, reader, layout, blocks, element_size):
        self.reader = reader
        self.layout = layout
        self.element_size = element_size
        self._offsets = [
            block.payload_offset + index * element_size
            for block in blocks
            for index in range(block.element_count)
        ]
        self._position = 0

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.layout.name}, {len(self)} elements)>'

    def __len__(self):
        '''The number of elements not yet returned.'''
        return len(self._offsets) - self._position

    def __iter__(self):
        return self

    def __next__(self):
        if self._position >= len(self._offsets):
            raise StopIteration

        offset = self._offsets[self._position]
        self._position += 1

        return StructView(self.reader, self.layout, offset)

    def first(self):
        return next(self, None)

    def find(self, predicate):
        for view in self:
            if predicate(view):
                return view

        return None


class Reader(object):
    '''Read the structs of a Blend using TypeDescriptor(s).'''

    def __init__(self, blend: Blend):
        self.blend = blend
        self.header = blend.header
        self._prefix = blend.header.endianess.prefix
        self._pointer_format = self._prefix + ('I' if blend.header.pointer_size == 4 else 'Q')

    def check(self, descriptor):
        '''Raise an exception if the descriptor was built for a different kind of file.'''
        if descriptor.version != self.header.version:
            raise VersionMismatchException(descriptor.version, self.header.version)

        if descriptor.pointer_size != self.header.pointer_size:
            raise PointerSizeMismatchException(descriptor.pointer_size, self.header.pointer_size)

        if descriptor.endianess != self.header.endianess:
            raise EndianessMismatchException(descriptor.endianess.name, self.header.endianess.name)

    def find_layout(self, name):
        '''The struct with the given name, resolved from the DNA if the schema
        doesn't contain it.'''
        layout = self.blend.schema.find_struct(name)

        if layout is not None:
            return layout

        struct_index = self.blend.dna.find_struct_by_name(name)

        if struct_index is None:
            raise UnknownStructException(name)

        return resolve_struct(self.blend.dna, struct_index)

    def decode(self, field_type, offset):
        '''Decode the value of the given type at the given offset of the file.'''
        data = self.blend.data

        if isinstance(field_type, PrimitiveType):
            if field_type.kind is Primitive.VOID:
                return None

            return struct.unpack_from(self._prefix + field_type.kind.format, data, offset)[0]

        if isinstance(field_type, (PointerType, FunctionType)):
            return struct.unpack_from(self._pointer_format, data, offset)[0]

        if isinstance(field_type, ArrayType):
            base = field_type.base
            if isinstance(base, PrimitiveType) and base.kind in (Primitive.CHAR, Primitive.UCHAR):
                return data[offset:offset + field_type.length]

            return [self.decode(base, offset + index * base.size) for index in range(field_type.length)]

        if isinstance(field_type, StructType):
            return StructView(self, self.find_layout(field_type.name), offset)

        if isinstance(field_type, OpaqueType):
            return b''

        raise TypeError(f'unknown type {field_type!r}')

    def _elements(self, descriptor, blocks):
        layout = self.find_layout(descriptor.struct_name)

        # the stride comes from the descriptor, the offsets of the fields from the file
        if layout.size != descriptor.struct_size:
            raise StructSizeMismatchException(descriptor.struct_name, descriptor.struct_size, layout.size)

        for block in blocks:
            if block.element_count * descriptor.struct_size > block.payload_length:
                raise ElementSizeException(block, descriptor.struct_size)

        return StructIter(self, layout, blocks, descriptor.struct_size)

    def iterate_all(self, descriptor) -> StructIter:
        '''All the elements of all the blocks containing the struct of the descriptor.'''
        self.check(descriptor)

        blocks = [_ for _ in self.blend.blocks if _.struct_table_index == descriptor.struct_index]

        return self._elements(descriptor, blocks)

    def dereference(self, pointer, descriptor):
        '''The elements of the block the pointer refers to, None for the null pointer.'''
        block = self.blend.look_up(pointer)

        if block is None:
            return None

        self.check(descriptor)

        dna = self.blend.dna
        # the same struct can be defined more than once: check the names
        expected = dna.type_name(descriptor.type_index)
        actual = dna.struct_name(block.struct_table_index)

        if expected != actual:
            raise InvalidPointerTypeException(pointer, expected, actual)

        return self._elements(descriptor, [block])

    def dereference_single(self, pointer, descriptor):
        elements = self.dereference(pointer, descriptor)

        if elements is None:
            return None

        if len(elements) == 0:
            raise NoSuchElementException(f'pointer 0x{pointer:x} refers to a block without elements')

        if len(elements) > 1:
            raise MoreThanOneElementException(f'pointer 0x{pointer:x} refers to {len(elements)} elements')

        return elements.first()

    def dereference_raw(self, pointer, byte_range=None):
        '''The payload of the block the pointer refers to, optionally sliced
        by "byte_range" (a slice or a range); None for the null pointer.'''
        block = self.blend.look_up(pointer)

        if block is None:
            return None

        payload = self.blend.payload(block)

        if byte_range is None:
            return payload

        if isinstance(byte_range, range):
            byte_range = slice(byte_range.start, byte_range.stop, byte_range.step)

        return payload[byte_range]

    def traverse_linked(self, first_pointer, descriptor, max_steps=None):
        '''Generate the elements of a linked list starting from the one
        "first_pointer" refers to and following the "next" pointers.

        The list ends with a null pointer or a pointer to nowhere; since a
        corrupted list could loop forever, "max_steps" limits the number of
        elements returned.'''
        pointer = first_pointer
        steps = 0

        while True:
            try:
                view = self.dereference_single(pointer, descriptor)
            except InvalidAddressException as e:
                logger.debug('linked list ended with %s', e)
                return

            if view is None:
                return

            if max_steps is not None and steps >= max_steps:
                raise TraversalLimitException(max_steps)

            steps += 1
            yield view

            pointer = descriptor.next(view)


def read(source, **kwargs) -> Reader:
    return Reader(Blend(source, **kwargs))

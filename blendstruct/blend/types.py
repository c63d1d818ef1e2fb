"""
Types of the fields of the structs described by the DNA.

The DNA gives for each field only the name of its base type and a
decorated name, like "*next" or "mat[4][4]": here the decoration is
parsed and the base type wrapped in pointers and arrays accordingly.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from ..exceptions import (
    AnalyseException,
    LayoutException,
    MalformedFieldNameException,
    UnknownTypeException,
)


logger = logging.getLogger(__name__)


class Primitive(Enum):
    '''Name, size and struct format of the types known by the DNA.'''
    CHAR   = ('char', 1, 'b')
    UCHAR  = ('uchar', 1, 'B')
    SHORT  = ('short', 2, 'h')
    USHORT = ('ushort', 2, 'H')
    INT    = ('int', 4, 'i')
    UINT   = ('uint', 4, 'I')
    LONG   = ('long', 4, 'l')
    ULONG  = ('ulong', 4, 'L')
    FLOAT  = ('float', 4, 'f')
    DOUBLE = ('double', 8, 'd')
    INT8   = ('int8_t', 1, 'b')
    UINT8  = ('uint8_t', 1, 'B')
    INT16  = ('int16_t', 2, 'h')
    UINT16 = ('uint16_t', 2, 'H')
    INT32  = ('int32_t', 4, 'i')
    UINT32 = ('uint32_t', 4, 'I')
    INT64  = ('int64_t', 8, 'q')
    UINT64 = ('uint64_t', 8, 'Q')
    VOID   = ('void', 0, '')

    @property
    def type_name(self):
        return self.value[0]

    @property
    def size(self):
        return self.value[1]

    @property
    def format(self):
        return self.value[2]


class Type(object):
    '''Base class of the types, the subclasses are immutable and compared by value.'''

    @property
    def base_type(self) -> "Type":
        '''The innermost type, under all the pointers and arrays.'''
        return self


@dataclass(frozen=True)
class PrimitiveType(Type):
    kind: Primitive

    @property
    def size(self):
        return self.kind.size

    def __str__(self):
        return self.kind.type_name


@dataclass(frozen=True)
class StructType(Type):
    name: str
    size: int

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class OpaqueType(Type):
    '''A struct without layout, i.e. declared with size zero.'''
    name: str

    @property
    def size(self):
        return 0

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class PointerType(Type):
    base: Type
    pointer_size: int

    @property
    def size(self):
        return self.pointer_size

    @property
    def base_type(self):
        return self.base.base_type

    def __str__(self):
        return f'{self.base}*'


@dataclass(frozen=True)
class ArrayType(Type):
    base: Type
    length: int

    @property
    def size(self):
        return self.length * self.base.size

    @property
    def base_type(self):
        return self.base.base_type

    def __str__(self):
        return f'{self.base}[{self.length}]'


@dataclass(frozen=True)
class FunctionType(Type):
    size: int

    def __str__(self):
        return 'function'


PRIMITIVES = {kind.type_name: PrimitiveType(kind) for kind in Primitive}

CHAR   = PRIMITIVES['char']
INT    = PRIMITIVES['int']
FLOAT  = PRIMITIVES['float']
VOID   = PRIMITIVES['void']


@dataclass(frozen=True)
class Field(object):
    name: str
    type: Type
    offset: int = 0

    @property
    def size(self):
        return self.type.size


@dataclass(frozen=True)
class Struct(object):
    name: str
    fields: Tuple[Field, ...]
    size: int
    struct_index: int
    type_index: int
    _fields_by_name: Dict[str, Field] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, '_fields_by_name', {_.name: _ for _ in self.fields})

    def find_field(self, name) -> Optional[Field]:
        return self._fields_by_name.get(name)

    def __contains__(self, name):
        return name in self._fields_by_name


IDENTIFIER = re.compile(r'[A-Za-z_][A-Za-z0-9_]*\Z')

FIELD_NAME = re.compile(r'''
    (?P<pointers>\**)
    (?P<name>[A-Za-z_][A-Za-z0-9_]*)
    (?P<dimensions>(?:\[\d+\])*)
    \Z''', re.VERBOSE)

# function pointers are like "(*func)()", the parentheses always balanced
FUNCTION_NAME = re.compile(r'''
    \(\*+
    (?P<name>[A-Za-z_][A-Za-z0-9_]*)
    (?:\[\d+\])*
    \)
    \((?:void)?\)
    \Z''', re.VERBOSE)

DIMENSION = re.compile(r'\[(\d+)\]')


def resolve_base_type(type_name: str, declared_size: int) -> Type:
    '''Return the type corresponding to a name of the TYPE section.'''
    if type_name in PRIMITIVES:
        return PRIMITIVES[type_name]

    if not IDENTIFIER.match(type_name):
        raise UnknownTypeException(type_name)

    if declared_size == 0:
        return OpaqueType(type_name)

    return StructType(type_name, declared_size)


def parse_field(raw_name: str, base_type: Type, pointer_size: int) -> Tuple[str, Type]:
    '''Parse a decorated name like "*next" or "mat[4][4]", returning the
    name without decorations and the type obtained wrapping "base_type".

    Pointers are applied first and then the arrays, the first dimension
    being the outer one: "**rows[2]" is an array of two pointers to pointers.
    The function pointers have always the size of a pointer whatever
    decoration they have.'''
    match = FUNCTION_NAME.match(raw_name)

    if match:
        return match.group('name'), FunctionType(pointer_size)

    match = FIELD_NAME.match(raw_name)

    if not match:
        raise MalformedFieldNameException(raw_name, field=raw_name)

    name = match.group('name')
    field_type = base_type
    for _ in match.group('pointers'):
        field_type = PointerType(field_type, pointer_size)

    for length in reversed(DIMENSION.findall(match.group('dimensions'))):
        field_type = ArrayType(field_type, int(length))

    return name, field_type


def resolve_struct(dna, struct_index: int) -> Struct:
    '''Build the Struct described by the record at "struct_index" of the DNA.'''
    dna_struct = dna.struct(struct_index)
    name = dna.type_name(dna_struct.type_index)
    size = dna.type_size(dna_struct.type_index)

    fields = []
    offset = 0
    for member in dna_struct.members:
        raw_name = None
        try:
            raw_name = dna.field_name(member.name_index)
            base_type = resolve_base_type(
                dna.type_name(member.type_index),
                dna.type_size(member.type_index),
            )
            field_name, field_type = parse_field(raw_name, base_type, dna.pointer_size)
        except AnalyseException as e:
            e.struct = name
            e.field = e.field or raw_name
            raise

        fields.append(Field(field_name, field_type, offset))
        offset += field_type.size

    if offset > size:
        raise LayoutException(f'fields need {offset} bytes but the size is {size}', struct=name)

    logger.debug('resolved struct %s with %d fields', name, len(fields))

    return Struct(name, tuple(fields), size, struct_index, dna_struct.type_index)

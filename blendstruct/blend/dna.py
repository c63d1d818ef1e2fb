"""
The DNA is the catalog of the structs used in the file, it's contained in the
block with code DNA1 and it's composed by sections, each one introduced by a
four letters tag:

    SDNA
    NAME <count> <null terminated names of the fields>
    TYPE <count> <null terminated names of the types>
    TLEN <size of each type, as many as the types>
    STRC <count> <struct records>

Between the sections there can be padding (Blender aligns them to four bytes)
so each tag is searched going forward instead of expected right there.
"""
import logging
from typing import NamedTuple, Optional, Tuple

from .. import fields
from ..core import Chunk
from ..properties import Dependency
from ..exceptions import (
    IncompleteDnaException,
    IncompleteException,
    InvalidIndexException,
    MalformedDnaException,
    TagNotFoundException,
)


logger = logging.getLogger(__name__)


class DnaNames(Chunk):
    tag   = fields.TagField(b'NAME', search=True)
    count = fields.StructField('I')
    names = fields.ArrayField(fields.CStringField(), n=Dependency('.count'))


class DnaTypes(Chunk):
    tag   = fields.TagField(b'TYPE', search=True)
    count = fields.StructField('I')
    names = fields.ArrayField(fields.CStringField(), n=Dependency('.count'))


class DnaTypeSizes(Chunk):
    tag   = fields.TagField(b'TLEN', search=True)
    sizes = fields.ArrayField(fields.StructField('H'), n=Dependency('@DnaCatalog.types.count'))


class DnaFieldRecord(Chunk):
    type_index = fields.StructField('H')
    name_index = fields.StructField('H')


class DnaStructRecord(Chunk):
    type_index  = fields.StructField('H')
    field_count = fields.StructField('H')
    members     = fields.ArrayField(DnaFieldRecord(), n=Dependency('.field_count'))


class DnaStructs(Chunk):
    tag     = fields.TagField(b'STRC', search=True)
    count   = fields.StructField('I')
    structs = fields.ArrayField(DnaStructRecord(), n=Dependency('.count'))


class DnaCatalog(Chunk):
    identifier = fields.TagField(b'SDNA')
    names      = DnaNames()
    types      = DnaTypes()
    sizes      = DnaTypeSizes()
    structs    = DnaStructs()


class DnaField(NamedTuple):
    type_index: int
    name_index: int


class DnaStruct(NamedTuple):
    type_index: int
    members: Tuple[DnaField, ...]


class Dna(object):
    '''The raw catalog: all the indexes are meaningful only inside the same instance.'''

    def __init__(self, field_names, type_names, type_sizes, struct_defs, pointer_size):
        if len(type_names) != len(type_sizes):
            raise ValueError(f'{len(type_names)} types but {len(type_sizes)} sizes')

        self.field_names = tuple(field_names)
        self.type_names = tuple(type_names)
        self.type_sizes = tuple(type_sizes)
        self.struct_defs = tuple(struct_defs)
        self.pointer_size = pointer_size

        # the same name can appear more than once, the first one wins;
        # invalid indexes are reported when the struct is analysed
        self._struct_by_name = {}
        for index, struct in enumerate(self.struct_defs):
            if struct.type_index < len(self.type_names):
                self._struct_by_name.setdefault(self.type_names[struct.type_index], index)

    def __repr__(self):
        return '<%s(names=%d, types=%d, structs=%d)>' % (
            self.__class__.__name__,
            len(self.field_names),
            len(self.type_names),
            len(self.struct_defs),
        )

    @classmethod
    def from_catalog(cls, catalog: DnaCatalog, pointer_size: int) -> "Dna":
        struct_defs = [
            DnaStruct(record.type_index.value, tuple(
                DnaField(member.type_index.value, member.name_index.value) for member in record.members
            )) for record in catalog.structs.structs
        ]

        return cls(
            catalog.names.names.values,
            catalog.types.names.values,
            catalog.sizes.sizes.values,
            struct_defs,
            pointer_size,
        )

    @staticmethod
    def _get(sequence, index, kind):
        if not 0 <= index < len(sequence):
            raise InvalidIndexException(kind, index, len(sequence))

        return sequence[index]

    def field_name(self, name_index) -> str:
        return self._get(self.field_names, name_index, 'name')

    def type_name(self, type_index) -> str:
        return self._get(self.type_names, type_index, 'type')

    def type_size(self, type_index) -> int:
        return self._get(self.type_sizes, type_index, 'type')

    def struct(self, struct_index) -> DnaStruct:
        return self._get(self.struct_defs, struct_index, 'struct')

    def struct_name(self, struct_index) -> str:
        '''The name of the type of the struct at the given index.'''
        return self.type_name(self.struct(struct_index).type_index)

    def find_struct_by_name(self, name) -> Optional[int]:
        '''Return the index of the first struct with the given name.'''
        return self._struct_by_name.get(name)


def parse_dna(stream) -> Dna:
    '''Parse the payload of the DNA1 block, the stream must be limited to it.'''
    catalog = DnaCatalog()

    try:
        catalog.unpack(stream)
    except TagNotFoundException as e:
        raise MalformedDnaException(f'malformed DNA: {e.message}', offset=e.offset, chain=e.chain) from e
    except IncompleteException as e:
        raise IncompleteDnaException(f'incomplete DNA: {e.message}', offset=e.offset, chain=e.chain) from e

    dna = Dna.from_catalog(catalog, stream.pointer_size)

    logger.debug('parsed %r', dna)

    return dna

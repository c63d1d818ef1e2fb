import logging
from collections.abc import Mapping
from enum import Enum, auto

from ..enum import Compliant
from ..exceptions import AnalyseException, UnknownStructException
from .types import StructType, resolve_struct


logger = logging.getLogger(__name__)


class Mode(Enum):
    '''Which structs the schema must contain.'''
    ALL           = auto()  # every struct of the DNA
    REQUIRED_ONLY = auto()  # only the ones reachable from the blocks of the file


class Schema(Mapping):
    '''The resolved structs, by name.

    "skipped" contains the structs that failed the analysis (only when
    it's not required to be compliant with Compliant.TYPES) with the
    corresponding exception.'''

    def __init__(self, endianess, structs, skipped=None):
        self.endianess = endianess
        self._structs = dict(structs)
        self.skipped = dict(skipped or {})

    def __repr__(self):
        return f'<{self.__class__.__name__}({len(self)} structs)>'

    def __getitem__(self, name):
        return self._structs[name]

    def __iter__(self):
        return iter(self._structs)

    def __len__(self):
        return len(self._structs)

    def find_struct(self, name):
        return self._structs.get(name)


class SchemaResolver(object):
    """Resolve the structs of the DNA following the references between them.

    It's a worklist algorithm: a struct is resolved and each struct it
    contains, or points to, is queued if not already resolved or
    waiting; this is what avoids infinite loops with the structs
    referring to themselves (like the ones of a double linked list).
    """

    def __init__(self, dna, endianess, blocks=(), compliant=Compliant.TYPES):
        self.dna = dna
        self.endianess = endianess
        self.blocks = blocks
        self.compliant = compliant

    def seed(self, mode):
        if mode is Mode.ALL:
            return [self.dna.type_name(_.type_index) for _ in self.dna.struct_defs]

        # dict.fromkeys() removes the duplicates keeping the order
        return list(dict.fromkeys(
            self.dna.struct_name(block.struct_table_index) for block in self.blocks
        ))

    def _failed(self, name, exception, skipped):
        if self.compliant & Compliant.TYPES:
            raise exception

        logger.warning('skipping struct \'%s\': %s', name, exception)
        skipped[name] = exception

    def resolve(self, mode=Mode.ALL) -> Schema:
        remaining = self.seed(mode)
        pending = set(remaining)
        structs = {}
        skipped = {}

        while remaining:
            name = remaining.pop()
            pending.discard(name)

            if name in structs or name in skipped:
                continue

            struct_index = self.dna.find_struct_by_name(name)

            if struct_index is None:
                self._failed(name, UnknownStructException(name), skipped)
                continue

            try:
                struct = resolve_struct(self.dna, struct_index)
            except AnalyseException as e:
                self._failed(name, e, skipped)
                continue

            for field in struct.fields:
                base_type = field.type.base_type
                if not isinstance(base_type, StructType):
                    continue

                if base_type.name not in structs and base_type.name not in pending:
                    remaining.append(base_type.name)
                    pending.add(base_type.name)

            structs[name] = struct

        logger.debug('resolved %d structs (%d skipped) with mode %s', len(structs), len(skipped), mode.name)

        return Schema(self.endianess, structs, skipped)


def analyse(dna, endianess, blocks=(), mode=Mode.ALL, compliant=Compliant.TYPES) -> Schema:
    return SchemaResolver(dna, endianess, blocks, compliant).resolve(mode)

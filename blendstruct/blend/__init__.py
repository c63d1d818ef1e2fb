"""
Parsing of the files saved by Blender.

A blend file is a header followed by a sequence of blocks

    +--------+---------------------------------------+
    | header | BLENDER, pointer size, endianess, version (12 bytes)
    +--------+---------------------------------------+
    | block  | code, length, address, struct index, count
    |        | payload (length bytes)
    +--------+
    |  ...   |
    +--------+
    |  DNA1  | the catalog of the structs (see blendstruct.blend.dna)
    +--------+
    |  ENDB  |
    +--------+

each block contains "count" structs of the type indicated by "struct index"
in the DNA, the address is the one the block had in memory when the file
was saved and it's what the pointers inside the other blocks refer to.
"""
import gzip
import logging
from collections.abc import Mapping
from typing import NamedTuple, Optional

from .. import fields
from ..core import Chunk
from ..enum import Compliant
from ..meta import Endianess
from ..streams import Stream
from ..exceptions import (
    HeaderException,
    IncompleteException,
    InvalidAddressException,
    MalformedDnaException,
    ScanException,
    UnpackException,
)
from .enum import (
    BLENDER_MAGIC,
    ENDIANESS_TAGS,
    GZIP_MAGIC,
    POINTER_SIZE_TAGS,
    Identifier,
    Version,
)
from .dna import parse_dna
from .schema import Mode, analyse


logger = logging.getLogger(__name__)


class Header(NamedTuple):
    pointer_size: int
    endianess: Endianess
    version: Version


class Block(NamedTuple):
    identifier: Identifier
    code: bytes
    payload_length: int
    address: Optional[int]
    struct_table_index: int
    element_count: int
    block_offset: int
    payload_offset: int

    @property
    def payload_end(self):
        return self.payload_offset + self.payload_length


class FileHeader(Chunk):
    identifier   = fields.TagField(BLENDER_MAGIC, is_magic=True)
    pointer_size = fields.TagSelectField(POINTER_SIZE_TAGS)
    byte_order   = fields.TagSelectField(ENDIANESS_TAGS)
    version      = fields.StringField(3)

    def to_header(self) -> Header:
        return Header(
            pointer_size=self.pointer_size.value,
            endianess=self.byte_order.value,
            version=Version.from_raw(self.version.value),
        )


class BlockHeader(Chunk):
    code         = fields.StructField('4s', default=None, enum=Identifier)
    length       = fields.StructField('I')
    address      = fields.PointerField()
    struct_index = fields.StructField('I')
    count        = fields.StructField('I')

    @staticmethod
    def get_size_for(pointer_size):
        '''The size of the header depends on the size of the address.'''
        return 16 + pointer_size

    @property
    def identifier(self):
        value = self.code.value
        return value if isinstance(value, Identifier) else Identifier.UNKNOWN

    def to_block(self, block_offset, payload_offset) -> Block:
        return Block(
            identifier=self.identifier,
            code=self.code.raw,
            payload_length=self.length.value,
            address=self.address.value or None,
            struct_table_index=self.struct_index.value,
            element_count=self.count.value,
            block_offset=block_offset,
            payload_offset=payload_offset,
        )


def parse_header(stream):
    '''Return the header and a stream, positioned after it, that knows
    the endianess and the pointer size of the file.'''
    file_header = FileHeader()

    try:
        file_header.unpack(stream)
    except HeaderException:
        raise
    except UnpackException as e:
        raise HeaderException(f'not a recognized blend file: {e.message}', chain=e.chain) from e

    header = file_header.to_header()

    logger.debug('version %s, pointer size %d, %s', header.version, header.pointer_size, header.endianess.name)

    return header, stream.derive(endianess=header.endianess, pointer_size=header.pointer_size)


def scan_blocks(stream, compliant=Compliant.NONE):
    '''Read the blocks until ENDB or the end of the data, returning the
    list of them and the position of the DNA1 block (None if missing).'''
    blocks = []
    dna_position = None
    header_size = BlockHeader.get_size_for(stream.pointer_size)

    while stream.remaining > 0:
        block_offset = stream.tell()
        # it must be known before reading the address, its size varies
        payload_offset = block_offset + header_size

        block_header = BlockHeader(compliant=compliant)

        try:
            block_header.unpack(stream)
        except IncompleteException as e:
            if block_header.identifier is Identifier.ENDB:
                logger.warning('truncated ENDB block at offset 0x%x', block_offset)
                blocks.append(Block(Identifier.ENDB, Identifier.ENDB.value, 0, None, 0, 0, block_offset, payload_offset))
                break

            raise ScanException(f'truncated block header at offset 0x{block_offset:x}: {e}', offset=block_offset) from e
        except UnpackException as e:
            raise ScanException(f'invalid block header at offset 0x{block_offset:x}: {e}', offset=block_offset) from e

        block = block_header.to_block(block_offset, payload_offset)

        try:
            stream.skip(block.payload_length)
        except IncompleteException as e:
            raise ScanException(
                f'block {block.code!r} at offset 0x{block_offset:x} has a payload of {block.payload_length} bytes '
                f'but only {e.available} are available', offset=block_offset) from e

        if block.identifier is Identifier.DNA and dna_position is None:
            dna_position = len(blocks)

        blocks.append(block)

        if block.identifier is Identifier.ENDB:
            break

    logger.debug('found %d blocks', len(blocks))

    return blocks, dna_position


class AddressTable(Mapping):
    '''The position of the blocks indexed by their address.'''

    def __init__(self, positions):
        self._positions = dict(positions)

    @classmethod
    def from_blocks(cls, blocks):
        positions = {}
        for position, block in enumerate(blocks):
            if block.address is None:
                continue

            if block.address in positions:
                logger.warning('address 0x%x used by more than one block', block.address)

            positions[block.address] = position

        return cls(positions)

    def __getitem__(self, address):
        return self._positions[address]

    def __iter__(self):
        return iter(self._positions)

    def __len__(self):
        return len(self._positions)


class Blend(object):
    '''A parsed blend file: header, blocks, DNA and the schema derived from it.

    "source" can be a path or the content of the file (also compressed
    with gzip); nothing is modified once built.'''

    def __init__(self, source, mode=Mode.ALL, compliant=Compliant.TYPES):
        stream = Stream(source)

        if stream.data[:len(GZIP_MAGIC)] == GZIP_MAGIC:
            logger.debug('decompressing gzipped data')
            stream = Stream(gzip.decompress(stream.data))

        self.data = stream.data
        self.header, stream = parse_header(stream)

        blocks, dna_position = scan_blocks(stream, compliant)
        self.blocks = tuple(blocks)

        if dna_position is None:
            raise MalformedDnaException('no DNA1 block in the file')

        self.dna_block = self.blocks[dna_position]
        self.dna = parse_dna(Stream(
            self.data,
            endianess=self.header.endianess,
            pointer_size=self.header.pointer_size,
            start=self.dna_block.payload_offset,
            end=self.dna_block.payload_end,
        ))

        self.address_table = AddressTable.from_blocks(self.blocks)
        self.schema = analyse(self.dna, self.header.endianess, self.blocks, mode, compliant)

    def __repr__(self):
        return f'<{self.__class__.__name__}(version={self.header.version}, blocks={len(self.blocks)})>'

    def look_up(self, address) -> Optional[Block]:
        '''Return the block at the given address, None for the null pointer.'''
        if not address:
            return None

        position = self.address_table.get(address)

        if position is None:
            raise InvalidAddressException(address)

        return self.blocks[position]

    def payload(self, block) -> bytes:
        return self.data[block.payload_offset:block.payload_end]
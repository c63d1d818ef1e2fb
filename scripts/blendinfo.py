#!/usr/bin/env python3
import sys
import os
import logging

from blendstruct.blend import Blend
from blendstruct.blend.schema import Mode

if 'DEBUG' in os.environ:
    logging.basicConfig()
    logger = logging.getLogger('blendstruct')
    logger.setLevel(logging.DEBUG)


def usage(progname):
    print('usage: %s <blend file> [--all]' % progname)
    sys.exit(1)


def dump_header(blend):
    hdr = blend.header
    print(f'''Blend Header:
  Version:                           {hdr.version}
  Pointer size:                      {hdr.pointer_size} (bytes)
  Endianess:                         {hdr.endianess.name}
  Number of blocks:                  {len(blend.blocks)}
  Number of addresses:               {len(blend.address_table)}''')


def dump_blocks(blend):
    dna = blend.dna
    print(f'''
Blocks:
  [Nr] Code     Offset     Size       Address            Count  Struct''')
    for idx, block in enumerate(blend.blocks):
        code = block.code.rstrip(b'\x00').decode('latin1')
        address = f'0x{block.address:016x}' if block.address else '-'
        struct_name = dna.struct_name(block.struct_table_index) if block.struct_table_index < len(dna.struct_defs) else '?'
        print(f'  [{idx:2d}] {code:<8} 0x{block.block_offset:08x} 0x{block.payload_length:08x} {address:<18} {block.element_count:<6} {struct_name}')


def dump_dna(blend):
    dna = blend.dna
    print(f'''
DNA:
  Names:                             {len(dna.field_names)}
  Types:                             {len(dna.type_names)}
  Structs:                           {len(dna.struct_defs)}''')


def dump_schema(blend):
    print(f'''
Schema ({len(blend.schema)} structs):''')
    for name in sorted(blend.schema):
        struct = blend.schema[name]
        print(f'  struct {name} (size {struct.size}) {{')
        for field in struct.fields:
            print(f'    0x{field.offset:04x} {str(field.type):<30} {field.name}')
        print('  }')

    for name, exception in blend.schema.skipped.items():
        print(f'  skipped {name}: {exception}')


if __name__ == '__main__':
    if len(sys.argv) < 2:
        usage(sys.argv[0])

    mode = Mode.ALL if '--all' in sys.argv[2:] else Mode.REQUIRED_ONLY

    blend = Blend(sys.argv[1], mode=mode)

    dump_header(blend)
    dump_blocks(blend)
    dump_dna(blend)
    dump_schema(blend)

"""
# Blendstruct: blend files for humans.

A blend file is self describing: other than the data it contains the
description (the "DNA") of the layout of every struct it uses. Reading it is
done in steps

 1. unpack(): the header and the blocks are read by Chunk(s), i.e. classes
    whose attributes are the fields composing them, like

        class BlockHeader(Chunk):
            code   = fields.StructField('4s', enum=Identifier)
            length = fields.StructField('I')
            ...

    each field reads its value from a Stream, that knows the endianess and the
    pointer size once the header is read.

 2. analyse(): the DNA is turned into a schema, i.e. a set of Struct(s)
    with their fields, their types and their offsets.

 3. read(): the blocks are interpreted via the schema and the pointers
    followed using the address of each block.

The entry points are blendstruct.blend.Blend and blendstruct.blend.reader.read().
"""

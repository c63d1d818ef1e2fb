import logging
import struct

from .enum import Identifier, NAME_PREFIXES


logger = logging.getLogger(__name__)


def to_str(raw: bytes, encoding='utf-8') -> str:
    '''Decode an array of chars up to the null terminator (if any).'''
    return bytes(raw).split(b'\x00', 1)[0].decode(encoding)


def to_name_str(raw: bytes, encoding='utf-8') -> str:
    '''Like to_str() but removing the two letters prefix of the names of the IDs
    (e.g. "OBCube" becomes "Cube").'''
    name = to_str(raw, encoding)

    if name[:2] in NAME_PREFIXES:
        return name[2:]

    return name


def get_blocks_by_identifier(blocks, identifier):
    return [_ for _ in blocks if _.identifier is identifier]


def get_block_by_identifier(blocks, identifier):
    for block in blocks:
        if block.identifier is identifier:
            return block

    raise ValueError(f'no block with identifier {identifier.name}')


def get_thumbnail(blend):
    '''Return the preview saved in the TEST block as a PIL image.

    The block contains the width and the height as integers followed by
    the RGBA pixels, the rows stored from the bottom one.'''
    import numpy as np
    from PIL import Image

    block = get_block_by_identifier(blend.blocks, Identifier.TEST)
    payload = blend.payload(block)

    width, height = struct.unpack_from(blend.header.endianess.prefix + 'ii', payload)
    logger.debug('thumbnail of %dx%d pixels', width, height)

    if len(payload) < 8 + width * height * 4:
        raise ValueError(f'thumbnail of {width}x{height} pixels doesn\'t fit in {len(payload)} bytes')

    pixels = np.frombuffer(payload, dtype=np.uint8, count=width * height * 4, offset=8)
    pixels = np.flipud(pixels.reshape((height, width, 4)))

    # an (height, width, 4) array of bytes is interpreted as RGBA
    return Image.fromarray(np.ascontiguousarray(pixels))

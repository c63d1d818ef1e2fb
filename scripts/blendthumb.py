#!/usr/bin/env python3
'''
Show the preview saved by Blender inside a blend file, use the second
argument to save it instead.

 $ blendthumb.py cube.blend cube.png
'''
import logging
import sys
import os

from blendstruct.blend import Blend
from blendstruct.blend.utils import get_thumbnail


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
logger.setLevel(level=logging.INFO if 'DEBUG' not in os.environ else logging.DEBUG)


def usage(progname):
    print(f'usage: {progname} <blend file path> [<output path>]')
    sys.exit(1)


if __name__ == '__main__':
    if len(sys.argv) < 2:
        usage(sys.argv[0])

    filepath = sys.argv[1]

    blend = Blend(filepath)

    try:
        image = get_thumbnail(blend)
    except ValueError as e:
        logger.error(f'no thumbnail in \'{filepath}\': {e}')
        sys.exit(1)

    logger.info(f'thumbnail of {image.width}x{image.height} pixels')

    if len(sys.argv) > 2:
        image.save(sys.argv[2])
    else:
        image.show()

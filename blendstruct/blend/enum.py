from enum import Enum
from typing import NamedTuple

from ..meta import Endianess


BLENDER_MAGIC = b'BLENDER'
GZIP_MAGIC = b'\x1f\x8b'

POINTER_SIZE_TAGS = {
    b'_': 4,
    b'-': 8,
}

ENDIANESS_TAGS = {
    b'v': Endianess.LITTLE_ENDIAN,
    b'V': Endianess.BIG_ENDIAN,
}


class Identifier(Enum):
    '''The codes of the blocks. The ones with two letters are the ID blocks,
    whose user-visible name is prefixed by the same two letters.'''
    REND = b'REND'
    TEST = b'TEST'
    GLOB = b'GLOB'
    DATA = b'DATA'
    USER = b'USER'
    DNA  = b'DNA1'
    ENDB = b'ENDB'
    AC = b'AC\x00\x00'  # bAction
    AR = b'AR\x00\x00'  # bArmature
    BR = b'BR\x00\x00'  # Brush
    CA = b'CA\x00\x00'  # Camera
    CF = b'CF\x00\x00'  # CacheFile
    CU = b'CU\x00\x00'  # Curve
    GD = b'GD\x00\x00'  # bGPdata
    GR = b'GR\x00\x00'  # Collection
    IM = b'IM\x00\x00'  # Image
    IP = b'IP\x00\x00'  # Ipo
    KE = b'KE\x00\x00'  # Key
    LA = b'LA\x00\x00'  # Light
    LI = b'LI\x00\x00'  # Library
    LS = b'LS\x00\x00'  # FreestyleLineStyle
    LT = b'LT\x00\x00'  # Lattice
    MA = b'MA\x00\x00'  # Material
    MB = b'MB\x00\x00'  # MetaBall
    MC = b'MC\x00\x00'  # MovieClip
    ME = b'ME\x00\x00'  # Mesh
    MS = b'MS\x00\x00'  # Mask
    NT = b'NT\x00\x00'  # bNodeTree
    OB = b'OB\x00\x00'  # Object
    PA = b'PA\x00\x00'  # ParticleSettings
    PC = b'PC\x00\x00'  # PaintCurve
    PL = b'PL\x00\x00'  # Palette
    SC = b'SC\x00\x00'  # Scene
    SK = b'SK\x00\x00'  # Speaker
    SN = b'SN\x00\x00'  # bScreen
    SO = b'SO\x00\x00'  # bSound
    TE = b'TE\x00\x00'  # Tex
    TX = b'TX\x00\x00'  # Text
    VF = b'VF\x00\x00'  # VFont
    WM = b'WM\x00\x00'  # wmWindowManager
    WO = b'WO\x00\x00'  # World
    WS = b'WS\x00\x00'  # WorkSpace
    UNKNOWN = b''


# prefixes of the names of the ID blocks that we know how to strip
NAME_PREFIXES = (
    'OB', 'ME', 'WM', 'IM', 'SN', 'WS', 'BR', 'SC', 'PL', 'GR', 'CA', 'LA', 'WO', 'LS', 'MA',
)


class Version(NamedTuple):
    '''The three characters of the version, they are not digits necessarily.'''
    major: str
    minor: str
    patch: str

    @classmethod
    def from_raw(cls, raw):
        return cls(*raw.decode('latin1'))

    def __str__(self):
        return f'{self.major}.{self.minor}.{self.patch}'

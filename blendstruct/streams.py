import logging

from bitstring import ConstBitStream

from .exceptions import (
    IncompleteException,
    UnrecoverableException,
)


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around a buffer of bytes (or a path to a file)
    that keeps track of the position and, once known, of the endianess and
    the pointer size of the data.

    The stream can be restricted to a window [start, end) of the buffer: the
    offsets are always absolute with respect to the whole buffer so that
    the error messages point to the right place.'''
    def __init__(self, obj, endianess=None, pointer_size=None, start=0, end=None):
        '''Here we normalize the object in order to be accessed as a buffer of bytes'''
        self.obj = obj

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, None)

        if init_method is None:
            raise ValueError('\'%s\' is the wrong kind of object to use as stream' % obj.__class__.__name__)

        init_method()

        self.endianess = endianess
        self.pointer_size = pointer_size
        self.start = start
        self.end = len(self.data) if end is None else end

        if not 0 <= self.start <= self.end <= len(self.data):
            raise ValueError(f'window [{self.start}, {self.end}) outside of the data (length {len(self.data)})')

        self._bits = ConstBitStream(
            bytes=self.data,
            offset=self.start * 8,
            length=(self.end - self.start) * 8,
        )

    def __repr__(self):
        return f'<{self.__class__.__name__}(0x{self.tell():x}, [0x{self.start:x}, 0x{self.end:x}))>'

    def init_str(self):
        '''We think this is a path'''
        logger.debug('opening path \'%s\'', self.obj)
        with open(self.obj, 'rb') as f:
            self.data = f.read()

    init_PosixPath = init_str
    init_WindowsPath = init_str

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.data = self.obj

    def init_bytearray(self):
        self.data = bytes(self.obj)

    init_memoryview = init_bytearray

    def derive(self, **kwargs):
        '''Return a new stream positioned where we are, with some of the parameters changed.'''
        parameters = {
            'endianess': self.endianess,
            'pointer_size': self.pointer_size,
            'start': self.tell(),
            'end': self.end,
        }
        parameters.update(kwargs)

        return Stream(self.data, **parameters)

    def tell(self):
        return self.start + self._bits.bytepos

    def seek(self, offset):
        if not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        if not self.start <= offset <= self.end:
            raise ValueError(f'offset 0x{offset:x} outside of [0x{self.start:x}, 0x{self.end:x}]')

        self._bits.bytepos = offset - self.start

    @property
    def remaining(self):
        return self.end - self.tell()

    def _ensure(self, n):
        if n < 0:
            raise ValueError(f'cannot read a negative amount of bytes ({n})')

        available = self.remaining
        if available < n:
            raise IncompleteException(needed=n, available=available, offset=self.tell())

    def take(self, n):
        '''Advance by n bytes returning them.'''
        self._ensure(n)
        return self._bits.read(n * 8).bytes

    def skip(self, n):
        self._ensure(n)
        self._bits.bytepos += n

    def split(self, n):
        '''Return the couple (remainder, consumed) as two new streams over
        the same data: the first one starts after the next n bytes, the
        second one contains exactly them.'''
        self._ensure(n)
        position = self.tell()

        consumed = Stream(self.data, self.endianess, self.pointer_size, start=position, end=position + n)
        remainder = Stream(self.data, self.endianess, self.pointer_size, start=position + n, end=self.end)

        return remainder, consumed

    def match(self, tag):
        '''Compare the next bytes with the tag: if they are the same the
        stream advances and True is returned, otherwise the position is left
        untouched so that the caller can try an alternative.'''
        self._ensure(len(tag))

        if self._bits.peek(len(tag) * 8).bytes != tag:
            return False

        self._bits.bytepos += len(tag)

        return True

    def find(self, tag, limit=None):
        '''Search forward (without going over the end of the stream, or the
        given limit) for the tag: if found the stream is positioned at its
        start and its absolute offset is returned, otherwise None.'''
        end = self.end if limit is None else min(limit, self.end)

        if end - self.tell() < len(tag):
            return None

        found = self._bits.find(
            tag,
            start=self._bits.pos,
            end=(end - self.start) * 8,
            bytealigned=True,
        )

        if not found:
            return None

        return self.tell()

    def read_cstring(self, encoding='latin1'):
        '''Read a null terminated string, the terminator is consumed but not returned.'''
        position = self.tell()
        terminator = self.data.find(b'\x00', position, self.end)

        if terminator < 0:
            raise IncompleteException(needed=self.remaining + 1, available=self.remaining, offset=position)

        raw = self.take(terminator - position)
        self.skip(1)

        return raw.decode(encoding)

    def _read_uint(self, bits):
        if self.endianess is None:
            raise UnrecoverableException(f'reading {bits} bits integer at 0x{self.tell():x} with unknown endianess')

        self._ensure(bits // 8)

        return self._bits.read(f'uint{self.endianess.suffix}:{bits}')

    def read_u16(self):
        return self._read_uint(16)

    def read_u32(self):
        return self._read_uint(32)

    def read_u64(self):
        return self._read_uint(64)

    def read_pointer(self):
        if self.pointer_size is None:
            raise UnrecoverableException(f'reading pointer at 0x{self.tell():x} with unknown pointer size')

        if self.pointer_size == 4:
            return self.read_u32()

        return self.read_u64()


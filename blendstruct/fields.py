"""
A Field is "fundamental" datatype from the format point of view, something directly
unpackable from a stream without need of knowing what surrounds it.
"""
import logging
import struct
from enum import Enum

from .enum import Compliant
from .meta import FieldBase
from .properties import Dependency
from .exceptions import (
    BlendstructException,
    MagicException,
    TagNotFoundException,
    UnpackException,
    UnrecoverableException,
)


class Field(FieldBase):
    """Base class to subclass from"""

    def __init__(self, *args, name=None, father=None, default=None, offset=None,
                 endianess=None, compliant=Compliant.INHERIT):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.name = name
        self.father = father
        self.default = default
        self.offset = offset
        self.endianess = endianess
        self.compliant = compliant
        self._raw = b''

        self.init()

    def init(self):
        self.value = self.value_from_default()

    def value_from_default(self):
        return self.default

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.value!r})>'

    def is_compliant(self, level):
        '''Returns True if this field, or the ancestors it inherits from,
        requires the given level of compliantness'''
        instance = self
        while instance is not None:
            if instance.compliant & level:
                return True
            if not instance.compliant & Compliant.INHERIT:
                break

            instance = instance.father

        return False

    def get_endianess(self, stream):
        '''The endianess explicitly set for this field wins over the one of the stream.'''
        endianess = self.endianess or stream.endianess

        if endianess is None:
            raise UnrecoverableException(f"endianess unknown for field '{self.name}'")

        return endianess

    def resolve(self, value):
        return value.resolve(self) if isinstance(value, Dependency) else value

    def _get_size(self):
        return len(self.raw)

    size = property(
        fget=lambda self: self._get_size(),
    )

    @property
    def raw(self) -> bytes:
        return self._raw

    def unpack(self, stream):
        raise NotImplementedError(f'method {self.__class__.__name__}.unpack() not implemented')


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module unpacking
    integers from bytes.

    The main advantage is the possibility to indicate via the "enum" argument some subclass
    of enum.Enum so to have directly a representation of the value of the field itself.
    """

    def __init__(self, format, default=0, enum=None, **kw):
        self.format = format
        self.enum = enum
        super().__init__(default=default, **kw)

    def __repr__(self):
        if not self.enum and isinstance(self.value, int):
            return '<%s(%s)>' % (self.__class__.__name__, hex(self.value))

        return f'<{self.__class__.__name__}({self.value!r})>'

    def value_from_default(self):
        if not self.enum or self.default is None:
            return super().value_from_default()

        return self.enum(self.default)

    def get_format(self, endianess):
        return '%s%s' % (endianess.prefix, self.format)

    def _get_size(self):
        return struct.calcsize('<%s' % self.format)

    def _unpack_enum(self, value):
        try:
            return self.enum(value)
        except ValueError:
            if self.is_compliant(Compliant.ENUM):
                raise UnpackException(f'enum {self.enum.__name__} doesn\'t have element with value {value!r} in it')

            self.logger.warning('enum %s doesn\'t have element with value %r in it', self.enum.__name__, value)

        return value

    def unpack(self, stream):
        self.offset = stream.tell()
        fmt = self.get_format(self.get_endianess(stream))
        self._raw = stream.take(self.size)

        value = struct.unpack(fmt, self._raw)[0]

        self.value = self._unpack_enum(value) if self.enum else value


class StringField(Field):
    """Represent a contiguous chunk of bytes, "n" can be a Dependency."""

    def __init__(self, n, **kw):
        self.length = n
        super().__init__(**kw)

    def value_from_default(self):
        return b'' if not self.default else self.default

    def unpack(self, stream):
        self.offset = stream.tell()
        self._raw = stream.take(self.resolve(self.length))
        self.value = self._raw


class CStringField(Field):
    """A null terminated string, its value is decoded with the given encoding."""

    def __init__(self, encoding='latin1', **kw):
        self.encoding = encoding
        super().__init__(**kw)

    def unpack(self, stream):
        self.offset = stream.tell()
        self.value = stream.read_cstring(self.encoding)
        self._raw = stream.data[self.offset:stream.tell()]


class PointerField(Field):
    """An address as wide as the pointer size of the stream it's read from."""

    def __init__(self, default=0, **kw):
        super().__init__(default=default, **kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, hex(self.value))

    def unpack(self, stream):
        self.offset = stream.tell()
        self.value = stream.read_pointer()
        self._raw = stream.data[self.offset:stream.tell()]


class TagField(Field):
    """A fixed sequence of bytes that identifies something.

    With "search" the tag is looked for going forward, skipping whatever is
    in between (usually padding), but never beyond the end of the stream.
    With "is_magic" a mismatch means the data is not what we think it is."""

    def __init__(self, tag, search=False, is_magic=False, **kw):
        self.tag = tag
        self.search = search
        self.is_magic = is_magic
        super().__init__(default=tag, **kw)

    def unpack(self, stream):
        start = stream.tell()

        if self.search:
            if stream.find(self.tag) is None:
                raise TagNotFoundException(self.tag, start)

            if stream.tell() != start:
                self.logger.debug('skipped %d bytes before tag %r', stream.tell() - start, self.tag)

            stream.skip(len(self.tag))
        elif not stream.match(self.tag):
            if self.is_magic:
                raise MagicException(self.tag, stream.data[start:start + len(self.tag)])

            raise TagNotFoundException(self.tag, start)

        self.offset = stream.tell() - len(self.tag)
        self._raw = self.tag
        self.value = self.tag


class TagSelectField(Field):
    """Select the value of the field based on which of the tags passed
    as keys of "mapping" is found: the alternatives are tried in order."""

    def __init__(self, mapping, **kw):
        self.mapping = mapping
        super().__init__(**kw)

    def unpack(self, stream):
        self.offset = stream.tell()

        for tag, value in self.mapping.items():
            if stream.match(tag):
                self._raw = tag
                self.value = value
                return

        found = stream.data[self.offset:self.offset + 1]
        raise UnpackException(f'found {found!r} at offset 0x{self.offset:x} instead of one of {list(self.mapping)}')


class ArrayField(Field):
    '''Unpack an array of Fields.

    You indicate the number of elements via the parameter named "n" as an
    integer or as a Dependency. The elements are created from the prototype
    passed as "field_cls".

    This class behaves like a list in python.
    '''

    def __init__(self, field_cls, n=0, **kw):
        if not isinstance(n, (int, Dependency)):
            raise ValueError('n is \'%s\' must be of the right type' % n.__class__.__name__)

        self.field_cls = field_cls
        self._n = n
        super().__init__(**kw)

    def value_from_default(self):
        return []

    def __getitem__(self, item):
        return self.value[item]

    def __len__(self):
        return len(self.value)

    def __iter__(self):
        return iter(self.value)

    @property
    def values(self):
        '''The values of the elements.'''
        return [_.value for _ in self.value]

    @property
    def raw(self):
        return b''.join(_.raw for _ in self.value)

    def _get_size(self):
        return sum(_.size for _ in self.value)

    def instance_element(self):
        return self.field_cls.create(father=self)  # pass the father so that we don't lose the hierarchy

    def unpack(self, stream):
        self.offset = stream.tell()
        self.value = []

        n = self.resolve(self._n)
        self.logger.debug('unpacking %d elements for \'%s\'', n, self.name)

        for index in range(n):
            element = self.instance_element()
            try:
                element.unpack(stream)
            except BlendstructException as e:
                e.chain.append(f'[{index}]')
                raise

            self.value.append(element)

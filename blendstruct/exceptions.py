class BlendstructException(Exception):
    '''Base class to extend in order to throw exception in blendstruct.

    Other than the message it takes the chain of the layers that
    caused the exception: each Chunk the exception passes through
    appends the name of the field that was unpacking, so the innermost
    one comes first.
    '''

    def __init__(self, message='', chain=None):
        self.message = message
        self.chain = [] if chain is None else chain
        super().__init__(message)

    @property
    def path(self):
        path = ''
        for component in reversed(self.chain):
            # array indexes stick to the array they belong to
            path += component if not path or component.startswith('[') else '.' + component

        return path

    def __str__(self):
        if not self.chain:
            return self.message

        return f'{self.message} (at {self.path})'


class UnpackException(BlendstructException):
    pass


class IncompleteException(UnpackException):
    '''There are not enough bytes to satisfy a read.'''

    def __init__(self, needed, available, offset, chain=None):
        self.needed = needed
        self.available = available
        self.offset = offset
        super().__init__(
            f'needed {needed} bytes at offset 0x{offset:x} but only {available} are available',
            chain=chain)


class TagNotFoundException(UnpackException):

    def __init__(self, tag, offset, chain=None):
        self.tag = tag
        self.offset = offset
        super().__init__(f'tag {tag!r} not found from offset 0x{offset:x}', chain=chain)


class UnrecoverableException(BlendstructException):
    '''This is useful when is not possible to let an unknown value
    slip through the parsing.'''
    pass


class HeaderException(BlendstructException):
    pass


class MagicException(HeaderException):
    '''The data is not a recognized container.'''

    def __init__(self, expected, found, chain=None):
        self.expected = expected
        self.found = found
        super().__init__(f'magic mismatch: expected {expected!r}, found {found!r}', chain=chain)


class ScanException(BlendstructException):

    def __init__(self, message, offset, chain=None):
        self.offset = offset
        super().__init__(message, chain=chain)


class DnaException(BlendstructException):

    def __init__(self, message, offset=None, chain=None):
        self.offset = offset
        super().__init__(message, chain=chain)


class MalformedDnaException(DnaException):
    '''A section of the catalog is missing: the data is corrupted.'''
    pass


class IncompleteDnaException(DnaException):
    '''The catalog ends in the middle of a section: the data is truncated.'''
    pass


class AnalyseException(BlendstructException):
    '''Base class for the errors raised while building the schema, it
    remembers which struct and which field were being analysed.'''

    def __init__(self, message, struct=None, field=None):
        self.struct = struct
        self.field = field
        super().__init__(message)

    def __str__(self):
        where = '.'.join(_ for _ in (self.struct, self.field) if _)
        if not where:
            return self.message

        return f'{self.message} (in {where})'


class InvalidIndexException(AnalyseException):

    def __init__(self, kind, index, length, **kwargs):
        self.kind = kind
        self.index = index
        super().__init__(f'{kind} index {index} out of range (0-{length - 1})', **kwargs)


class UnknownTypeException(AnalyseException):

    def __init__(self, type_name, **kwargs):
        self.type_name = type_name
        super().__init__(f'unknown type {type_name!r}', **kwargs)


class UnknownStructException(AnalyseException):

    def __init__(self, name, **kwargs):
        super().__init__(f'no struct named {name!r} in the catalog', **kwargs)
        self.struct = name


class MalformedFieldNameException(AnalyseException):

    def __init__(self, raw_name, **kwargs):
        self.raw_name = raw_name
        super().__init__(f'malformed field name {raw_name!r}', **kwargs)


class LayoutException(AnalyseException):
    pass


class ReadException(BlendstructException):
    pass


class MismatchException(ReadException):

    def __init__(self, what, expected, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(f'{what} mismatch: descriptor expects {expected} but the file has {actual}')


class VersionMismatchException(MismatchException):

    def __init__(self, expected, actual):
        super().__init__('version', expected, actual)


class PointerSizeMismatchException(MismatchException):

    def __init__(self, expected, actual):
        super().__init__('pointer size', expected, actual)


class EndianessMismatchException(MismatchException):

    def __init__(self, expected, actual):
        super().__init__('endianess', expected, actual)


class StructSizeMismatchException(MismatchException):

    def __init__(self, struct_name, expected, actual):
        self.struct_name = struct_name
        super().__init__(f'size of {struct_name}', expected, actual)


class InvalidAddressException(ReadException):

    def __init__(self, address):
        self.address = address
        super().__init__(f'no block at address 0x{address:x}')


class InvalidPointerTypeException(ReadException):

    def __init__(self, address, expected, actual):
        self.address = address
        self.expected = expected
        self.actual = actual
        super().__init__(f'pointer 0x{address:x} refers to {actual!r} instead of {expected!r}')


class ElementSizeException(ReadException):

    def __init__(self, block, element_size):
        self.block = block
        self.element_size = element_size
        super().__init__(
            f'block at offset 0x{block.block_offset:x} has {block.payload_length} bytes, '
            f'not enough for {block.element_count} elements of {element_size} bytes')


class NoSuchElementException(ReadException):
    pass


class MoreThanOneElementException(ReadException):
    pass


class TraversalLimitException(ReadException):

    def __init__(self, max_steps):
        self.max_steps = max_steps
        super().__init__(f'linked list longer than {max_steps} elements')

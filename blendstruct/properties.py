import inspect
import logging
from typing import List, Tuple


logger = logging.getLogger(__name__)


def get_root_from_chunk(instance):
    return get_instance_from_chunk(instance, condition=lambda x: x.father is None)


def get_instance_from_class_name(instance, name):
    return get_instance_from_chunk(instance, condition=lambda x: x.__class__.__name__ == name)


def get_instance_from_chunk(instance, condition):
    while instance is not None:
        if condition(instance):
            return instance

        instance = instance.father

    raise ValueError('no instance in the hierarchy satisfies the condition')


class Dependency:
    '''This makes the relation between fields possible.

    In practice this class allows to write something like

        class Simple(Chunk):
            length = fields.StructField('I')
            data = fields.StringField(n=Dependency('.length'))

    and have the length of the string contained in the field named 'data'
    read from the field named 'length' at unpacking time.

    The syntax for defining the expression is inspired from module resolution
    with an extra element via the first char of the expression: we have the following

     - '.' indicates we refer to a field at the same level
     - '@' indicates the the first component is the name of a class, the
       nearest ancestor of that class is used as starting point
     - otherwise the resolution starts from the root chunk
    '''
    def __init__(self, expression):
        self.expression = expression

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expression})>'

    def _resolve_wrt_class(self, instance, fields_path: List[str]) -> Tuple["Field", List[str]]:
        class_name = fields_path[0][1:]
        logger.debug('resolve from class name: \'%s\'', class_name)
        field = get_instance_from_class_name(instance, class_name)

        return field, fields_path[1:]  # skip the first one that is already resolved

    def resolve_field(self, instance):
        logger.debug('trying to resolve \'%s\' for \'%s\'', self.expression, instance.__class__.__name__)

        # '.miao'.split(".") -> ['', 'miao']
        # 'miao'.split(".") -> ['miao']
        fields_path = self.expression.split('.')

        # find the root the resolution starts
        if fields_path[0] != '':
            if fields_path[0].startswith('@'):  # we want to resolve wrt a class
                field, fields_path = self._resolve_wrt_class(instance, fields_path)
            else:
                field = get_root_from_chunk(instance)
        else:  # we have a relative dependency
            field = instance.father
            if field is None:
                raise ValueError(f"relative dependency '{self.expression}' used without a father")
            fields_path = fields_path[1:]  # skip the first one that is empty

        # now we can resolve each component
        for component_name in fields_path:
            field = getattr(field, component_name)

        return field

    def resolve(self, instance):
        '''With this method we resolve the attribute with respect to the instance
        passed as argument.'''
        field = self.resolve_field(instance)

        value = field() if inspect.ismethod(field) else field.value

        logger.debug(' resolved with value %s', value)

        return value

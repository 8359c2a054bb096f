# Copyright (c) 2013-2025 NASK. All rights reserved.

"""
Schema reflection.

A *schema* is either:

* an SQLAlchemy-mapped (declarative) class -- its column attributes
  become *fields* (see: :mod:`n6morph.fields`), its relationships
  become *associations*, and its columns of the :class:`Embedded` type
  become *embeds*; or

* a subclass of :class:`EmbeddedSchema` -- a table-less schema whose
  fields are declared as :class:`~n6morph.fields.Field` class
  attributes and whose embeds are declared with :func:`embeds_one` and
  :func:`embeds_many`.

An instance of a schema class is called a *struct*.

:func:`get_schema_info` provides a uniform (and cached) view of any
schema -- a :class:`SchemaInfo` instance.

>>> from n6morph.fields import IntegerField, UnicodeField
>>> class Point(EmbeddedSchema):
...     x = IntegerField(default=0)
...     y = IntegerField(default=0)
...     label = UnicodeField()
...
>>> info = get_schema_info(Point)
>>> list(info.fields)
['x', 'y', 'label']
>>> info.is_embedded
True
>>> info.new_struct()
Point(x=0, y=0, label=None)
>>> Point(x=3, label='A') == Point(label='A', x=3)
True
"""


import collections
import datetime
import decimal
import functools
import uuid

import sqlalchemy
from pyramid.decorator import reify
from sqlalchemy import (
    ARRAY,
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    Integer,
    Interval,
    LargeBinary,
    Numeric,
    PickleType,
    String,
    Time,
    Uuid,
)
from sqlalchemy.orm import Mapper
from sqlalchemy.types import TypeDecorator

from n6morph.common_helpers import ascii_str
from n6morph.config import get_config
from n6morph.exceptions import SchemaError
from n6morph.fields import (
    AnyField,
    BytesField,
    DateField,
    DateTimeField,
    DecimalField,
    Field,
    FlagField,
    FloatField,
    IntegerField,
    JSONField,
    ListField,
    PyEnumField,
    TimeField,
    UnicodeEnumField,
    UnicodeField,
    UnicodeLimitedField,
    UUIDField,
)
from n6morph.log_helpers import get_logger


LOGGER = get_logger(__name__)


ONE = 'one'
MANY = 'many'

#: The key of a column's `info` dict whose value (if any) is the
#: :class:`~n6morph.fields.Field` to be used for that column.
FIELD_INFO_KEY = 'n6morph_field'


class _NotLoadedMarker(object):

    """The type of the :data:`NOT_LOADED` singleton."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(_NotLoadedMarker, cls).__new__(cls)
        return cls._instance

    def __repr__(self):
        return 'NOT_LOADED'

    def __bool__(self):
        return False

    def __reduce__(self):
        return (_NotLoadedMarker, ())


#: Stands for the value of an association that has not been loaded
#: from the database (so its actual value is unknown).
NOT_LOADED = _NotLoadedMarker()


EmbedInfo = collections.namedtuple('EmbedInfo', ('schema', 'cardinality'))

AssocInfo = collections.namedtuple('AssocInfo', ('schema', 'cardinality'))



#
# Declaring embeds

class EmbedSpec(object):

    """
    The declaration of an embed in the body of an :class:`EmbeddedSchema`
    subclass (use :func:`embeds_one` or :func:`embeds_many` to create it).

    `schema` can be given as an :class:`EmbeddedSchema` subclass or as
    an argumentless callable returning such a class (handy for forward
    and self references).
    """

    def __init__(self, schema, cardinality):
        self._schema = schema
        self.cardinality = cardinality

    def __repr__(self):
        return '{}({!r}, {!r})'.format(
            self.__class__.__qualname__,
            self._schema,
            self.cardinality)

    def resolve_schema(self):
        schema = self._schema
        if not isinstance(schema, type):
            schema = schema()
        _verify_embedded_schema(schema)
        return schema


def embeds_one(schema):
    """Declare a single embedded struct of the given `schema`."""
    return EmbedSpec(schema, ONE)


def embeds_many(schema):
    """Declare a list of embedded structs of the given `schema`."""
    return EmbedSpec(schema, MANY)


class EmbeddedSchema(object):

    """
    The base class for table-less (*embedded*) schemas.

    >>> from n6morph.fields import UnicodeField
    >>> class Tag(EmbeddedSchema):
    ...     name = UnicodeField()
    ...
    >>> class Note(EmbeddedSchema):
    ...     text = UnicodeField(default='')
    ...     tags = embeds_many(Tag)
    ...     main_tag = embeds_one(Tag)
    ...
    >>> Note(tags=[Tag(name='x')])
    Note(text='', tags=[Tag(name='x')], main_tag=None)
    >>> Note(spam=42)                     # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
      ...
    TypeError: Note() got unexpected keyword arguments: 'spam'
    """

    #: Names of timestamp fields (if `None`, the ``timestamp_fields``
    #: option of the *n6morph* configuration is used).
    __timestamps__ = None

    def __init__(self, **kwargs):
        info = get_schema_info(type(self))
        illegal = sorted(set(kwargs) - info.all_keys)
        if illegal:
            raise TypeError('{}() got unexpected keyword arguments: {}'.format(
                self.__class__.__qualname__,
                ', '.join(map(repr, illegal))))
        for key, field in info.fields.items():
            setattr(self, key, kwargs[key] if key in kwargs else field.get_default())
        for key, embed in info.embeds.items():
            if key in kwargs:
                value = kwargs[key]
            else:
                value = [] if embed.cardinality == MANY else None
            setattr(self, key, value)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        keys = get_schema_info(type(self)).all_keys
        return all(getattr(self, key) == getattr(other, key) for key in keys)

    __hash__ = None

    def __repr__(self):
        info = get_schema_info(type(self))
        return '{}({})'.format(
            self.__class__.__qualname__,
            ', '.join('{}={!r}'.format(key, getattr(self, key, None))
                      for key in info.ordered_keys))


class Embedded(TypeDecorator):

    """
    An SQLAlchemy column type for embeds of SQLAlchemy-mapped classes.

    Args:
        `schema`: An :class:`EmbeddedSchema` subclass.

    Kwargs:
        `many` (default: :obj:`False`):
            Whether the column holds a list of embedded structs.

    The embedded struct(s) are stored as JSON; when loaded, they are
    cast back to struct(s) of `schema`.
    """

    impl = JSON
    cache_ok = True

    def __init__(self, schema, many=False):
        self.schema = schema
        self.many = many
        super(Embedded, self).__init__()

    @property
    def cardinality(self):
        return MANY if self.many else ONE

    def process_bind_param(self, value, dialect):
        from n6morph.projection import deep_map_from_struct
        if value is None:
            return None
        if self.many:
            return [_to_jsonable(deep_map_from_struct(item)
                                 if isinstance(item, EmbeddedSchema) else item)
                    for item in value]
        if isinstance(value, EmbeddedSchema):
            value = deep_map_from_struct(value)
        return _to_jsonable(value)

    def process_result_value(self, value, dialect):
        from n6morph.morph import cast_to_struct
        if value is None:
            return [] if self.many else None
        if self.many:
            return [cast_to_struct(item, self.schema) for item in value]
        return cast_to_struct(value, self.schema)


def _to_jsonable(value):
    if isinstance(value, dict):
        return {key: _to_jsonable(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(val) for val in value]
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (decimal.Decimal, uuid.UUID)):
        return str(value)
    return value



#
# Schema information

class SchemaInfo(object):

    """
    The uniform view of a schema (obtain it with :func:`get_schema_info`).

    Public attributes (to be treated as read-only):

    * `schema` -- the schema class;
    * `fields` -- a :class:`dict` that maps names of scalar fields to
      :class:`~n6morph.fields.Field` instances;
    * `embeds` -- a :class:`dict` that maps embed names to
      :class:`EmbedInfo` instances;
    * `assocs` -- a :class:`dict` that maps association names to
      :class:`AssocInfo` instances;
    * `primary_key` -- a tuple of the primary key field names;
    * `is_embedded` -- whether the schema is an :class:`EmbeddedSchema`.
    """

    def __init__(self, schema, fields, embeds, assocs, primary_key, mapper=None):
        self.schema = schema
        self.fields = fields
        self.embeds = embeds
        self.assocs = assocs
        self.primary_key = primary_key
        self.mapper = mapper

    def __repr__(self):
        return '<{} of {}>'.format(self.__class__.__qualname__, self.schema.__qualname__)

    @property
    def is_embedded(self):
        return self.mapper is None

    @reify
    def all_keys(self):
        return frozenset(self.fields).union(self.embeds, self.assocs)

    @reify
    def ordered_keys(self):
        return tuple(self.fields) + tuple(self.embeds) + tuple(self.assocs)

    @property
    def timestamps(self):
        names = getattr(self.schema, '__timestamps__', None)
        if names is None:
            names = get_config()['timestamp_fields']
        return tuple(name for name in names if name in self.fields)

    def get_nested(self, key):
        """Get the :class:`EmbedInfo` or :class:`AssocInfo` for `key` (or `None`)."""
        return self.embeds.get(key) or self.assocs.get(key)

    def new_struct(self):
        """Make a fresh struct of the schema, with field defaults applied."""
        if self.is_embedded:
            return self.schema()
        struct = self.mapper.class_manager.new_instance()
        for key, field in self.fields.items():
            default = field.get_default()
            if default is not None:
                setattr(struct, key, default)
        return struct

    def is_loaded(self, struct, key):
        """
        Check whether the association `key` of `struct` is loaded
        (always true for non-association keys and for structs not
        being tracked by an ORM identity).
        """
        if key not in self.assocs:
            return True
        return not (self.has_identity(struct)
                    and key in sqlalchemy.inspect(struct).unloaded)

    def has_identity(self, struct):
        """Check whether `struct` is tracked by an ORM identity (i.e., is persistent)."""
        return (not self.is_embedded) and sqlalchemy.inspect(struct).has_identity

    def get_value(self, struct, key):
        """
        Get the value of `key` from `struct` (:data:`NOT_LOADED` for an
        association that has not been loaded).
        """
        if not self.is_loaded(struct, key):
            return NOT_LOADED
        return getattr(struct, key)

    def updated_struct(self, struct, values):
        """
        Get a struct with the given `values` (a dict) set.

        SQLAlchemy-mapped structs are modified in place (and returned);
        embedded structs are copied (the given one is left intact).
        """
        if self.is_embedded:
            new_struct = self.schema.__new__(self.schema)
            for key in self.ordered_keys:
                setattr(new_struct, key, getattr(struct, key, None))
            struct = new_struct
        for key, value in values.items():
            setattr(struct, key, value)
        return struct


def get_schema_info(schema):
    """
    Get the :class:`SchemaInfo` for `schema` (a schema class or a
    struct).

    Raises:
        :exc:`~n6morph.exceptions.SchemaError` if `schema` is neither
        an :class:`EmbeddedSchema` subclass nor an SQLAlchemy-mapped
        class (nor an instance of any of them).
    """
    if not isinstance(schema, type):
        schema = type(schema)
    return _get_schema_info(schema)


def is_struct(obj):
    """Check whether `obj` is an instance of a schema class."""
    if isinstance(obj, type):
        return False
    if isinstance(obj, EmbeddedSchema):
        return True
    return isinstance(sqlalchemy.inspect(type(obj), raiseerr=False), Mapper)


@functools.lru_cache(maxsize=None)
def _get_schema_info(schema):
    if issubclass(schema, EmbeddedSchema):
        info = _make_embedded_schema_info(schema)
    else:
        mapper = sqlalchemy.inspect(schema, raiseerr=False)
        if not isinstance(mapper, Mapper):
            raise SchemaError(public_message=(
                '{} is neither an EmbeddedSchema subclass nor an '
                'SQLAlchemy-mapped class'.format(ascii_str(schema.__qualname__))))
        info = _make_mapped_schema_info(schema, mapper)
    LOGGER.debug('schema info prepared for %s: fields=%s, embeds=%s, assocs=%s',
                 schema.__qualname__,
                 list(info.fields), list(info.embeds), list(info.assocs))
    return info


def _verify_embedded_schema(schema):
    if not (isinstance(schema, type) and issubclass(schema, EmbeddedSchema)):
        raise SchemaError(public_message=(
            '{!a} is not an EmbeddedSchema subclass'.format(schema)))


def _make_embedded_schema_info(schema):
    if schema is EmbeddedSchema:
        raise SchemaError(public_message=(
            'EmbeddedSchema itself cannot be used as a schema'))
    fields = {}
    embeds = {}
    for name, obj in _iter_all_declarations(schema):
        fields.pop(name, None)
        embeds.pop(name, None)
        if isinstance(obj, Field):
            fields[name] = obj
        else:
            embeds[name] = EmbedInfo(obj.resolve_schema(), obj.cardinality)
    primary_key = tuple(name for name, field in fields.items() if field.primary_key)
    return SchemaInfo(schema, fields, embeds, {}, primary_key)


def _iter_all_declarations(schema):
    # base classes first, so that subclasses can override declarations
    for cls in reversed(schema.__mro__):
        for name, obj in vars(cls).items():
            if isinstance(obj, (Field, EmbedSpec)):
                yield name, obj


def _make_mapped_schema_info(schema, mapper):
    fields = {}
    embeds = {}
    assocs = {}
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        if not isinstance(column, Column):
            # (e.g., a read-only SQL expression mapped with `column_property()`)
            continue
        if isinstance(column.type, Embedded):
            embeds[prop.key] = EmbedInfo(column.type.schema, column.type.cardinality)
        else:
            fields[prop.key] = field_for_column(column)
    for rel in mapper.relationships:
        assocs[rel.key] = AssocInfo(rel.mapper.class_, MANY if rel.uselist else ONE)
    primary_key = tuple(mapper.get_property_by_column(column).key
                        for column in mapper.primary_key)
    return SchemaInfo(schema, fields, embeds, assocs, primary_key, mapper=mapper)



#
# SQLAlchemy column types -> fields

def field_for_column(column):
    """
    Get a :class:`~n6morph.fields.Field` for an SQLAlchemy `column`.

    If the column's `info` dict contains the ``n6morph_field`` item,
    its value is returned; otherwise a field is made according to the
    column's type (see: :func:`field_for_sqla_type`), with `default`
    taken from the column's scalar default (if any) and `primary_key`
    from the column.
    """
    field = column.info.get(FIELD_INFO_KEY)
    if field is not None:
        return field
    kwargs = {}
    if column.primary_key:
        kwargs['primary_key'] = True
    default = column.default
    if default is not None and getattr(default, 'is_scalar', False):
        kwargs['default'] = default.arg
    return field_for_sqla_type(column.type, column_name=column.name, **kwargs)


def field_for_sqla_type(sqla_type, column_name=None, **field_kwargs):
    """
    Make a :class:`~n6morph.fields.Field` for the given SQLAlchemy type.

    >>> from sqlalchemy import String
    >>> field_for_sqla_type(String(8))
    UnicodeLimitedField(max_length=8)
    >>> field_for_sqla_type(Integer(), primary_key=True)
    IntegerField(primary_key=True)
    """
    if isinstance(sqla_type, (Interval, PickleType)):
        # (type decorators whose Python values are unrelated to their `impl`)
        return AnyField(**field_kwargs)
    if isinstance(sqla_type, TypeDecorator):
        return field_for_sqla_type(sqla_type.impl, column_name, **field_kwargs)
    for sqla_type_class, make_field in _SQLA_TYPE_TO_FIELD_MAKERS:
        if isinstance(sqla_type, sqla_type_class):
            return make_field(sqla_type, **field_kwargs)
    LOGGER.warning('Column %s: unsupported SQLAlchemy type %r '
                   '(values will be passed without casting)',
                   column_name or '<?>', sqla_type)
    return AnyField(**field_kwargs)


def _make_enum_field(sqla_type, **kwargs):
    if sqla_type.enum_class is not None:
        return PyEnumField(enum_class=sqla_type.enum_class, **kwargs)
    return UnicodeEnumField(enum_values=sqla_type.enums, **kwargs)


def _make_numeric_field(sqla_type, **kwargs):
    if sqla_type.asdecimal:
        return DecimalField(**kwargs)
    return FloatField(**kwargs)


def _make_string_field(sqla_type, **kwargs):
    if sqla_type.length:
        return UnicodeLimitedField(max_length=sqla_type.length, **kwargs)
    return UnicodeField(**kwargs)


def _make_list_field(sqla_type, **kwargs):
    return ListField(item_field=field_for_sqla_type(sqla_type.item_type), **kwargs)


# (the order matters: e.g., `Enum` is a subclass of `String`
# and `Float` is a subclass of `Numeric`)
_SQLA_TYPE_TO_FIELD_MAKERS = [
    (Boolean, lambda t, **kw: FlagField(**kw)),
    (Enum, _make_enum_field),
    (Integer, lambda t, **kw: IntegerField(**kw)),
    (Float, lambda t, **kw: (DecimalField(**kw) if t.asdecimal else FloatField(**kw))),
    (Numeric, _make_numeric_field),
    (DateTime, lambda t, **kw: DateTimeField(timezone_aware=bool(t.timezone), **kw)),
    (Date, lambda t, **kw: DateField(**kw)),
    (Time, lambda t, **kw: TimeField(**kw)),
    (Uuid, lambda t, **kw: UUIDField(as_uuid=t.as_uuid, **kw)),
    (String, _make_string_field),
    (LargeBinary, lambda t, **kw: BytesField(**kw)),
    (ARRAY, _make_list_field),
    (JSON, lambda t, **kw: JSONField(**kw)),
]

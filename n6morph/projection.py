# Copyright (c) 2013-2025 NASK. All rights reserved.

"""
Projecting structs into mappings and filtering mappings by schema keys.

>>> from n6morph.fields import UnicodeField, DateTimeField
>>> from n6morph.schema import EmbeddedSchema, embeds_one
>>> class Author(EmbeddedSchema):
...     name = UnicodeField()
...     updated_at = DateTimeField()
...
>>> class Book(EmbeddedSchema):
...     title = UnicodeField()
...     author = embeds_one(Author)
...
>>> book = Book(title='Solaris', author=Author(name='Lem'))
>>> map_from_struct(book)
{'title': 'Solaris', 'author': Author(name='Lem', updated_at=None)}
>>> deep_map_from_struct(book, exclude_timestamps=True)
{'title': 'Solaris', 'author': {'name': 'Lem'}}
>>> filter_by_schema_fields({'title': 'Eden', 'isbn': '?'}, Book)
{'title': 'Eden'}
"""


import collections.abc as collections_abc

from n6morph.common_helpers import is_seq
from n6morph.schema import (
    NOT_LOADED,
    get_schema_info,
    is_struct,
)


def map_from_struct(struct, exclude=(), exclude_timestamps=False, exclude_id=False):
    """
    Get a dict of the values of all fields, embeds and associations of
    `struct` (any ORM instance state is never included; associations
    that have not been loaded are represented by
    :data:`~n6morph.schema.NOT_LOADED`).

    Kwargs:
        `exclude` (default: empty tuple):
            Names of keys to be omitted.
        `exclude_timestamps` (default: :obj:`False`):
            Whether timestamp fields should be omitted (see:
            :attr:`~n6morph.schema.SchemaInfo.timestamps`).
        `exclude_id` (default: :obj:`False`):
            Whether primary key fields (or, if there is no primary key,
            the ``id`` field, if any) should be omitted.
    """
    info = get_schema_info(struct)
    excluded = _get_excluded_keys(info, exclude, exclude_timestamps, exclude_id)
    return {key: info.get_value(struct, key)
            for key in info.ordered_keys
            if key not in excluded}


def deep_map_from_struct(struct, exclude=(), exclude_timestamps=False, exclude_id=False):
    """
    Like :func:`map_from_struct` but recursively converting also nested
    structs (embeds and loaded associations); the keyword arguments are
    applied at every level.

    A back-reference to a struct that is already being converted (e.g.,
    `book.author` reached from `author.books`) is represented by
    :data:`~n6morph.schema.NOT_LOADED`.
    """
    return _deep_map(struct, exclude, exclude_timestamps, exclude_id, ancestors=())


def _deep_map(struct, exclude, exclude_timestamps, exclude_id, ancestors):
    info = get_schema_info(struct)
    ancestors = ancestors + (struct,)
    result = map_from_struct(struct, exclude, exclude_timestamps, exclude_id)
    for key, value in result.items():
        if info.get_nested(key) is None or value is NOT_LOADED or value is None:
            continue
        if is_struct(value):
            result[key] = (
                NOT_LOADED if _is_among(value, ancestors)
                else _deep_map(value, exclude, exclude_timestamps, exclude_id, ancestors))
        else:
            result[key] = [
                _deep_map(item, exclude, exclude_timestamps, exclude_id, ancestors)
                for item in value
                if not _is_among(item, ancestors)]
    return result


def _is_among(struct, ancestors):
    return any(struct is anc for anc in ancestors)


def filter_by_schema_fields(data, schema, filter_not_loaded=False, filter_assocs=False):
    """
    Get a new dict containing only those items of `data` (a mapping or
    a struct) whose keys are fields, embeds or associations of `schema`.

    Kwargs:
        `filter_not_loaded` (default: :obj:`False`):
            Whether :data:`~n6morph.schema.NOT_LOADED` values should be
            omitted.
        `filter_assocs` (default: :obj:`False`):
            Whether associations should be omitted.

    >>> from n6morph.schema import NOT_LOADED
    >>> from n6morph.fields import IntegerField
    >>> from n6morph.schema import EmbeddedSchema
    >>> class S(EmbeddedSchema):
    ...     a = IntegerField()
    ...     b = IntegerField()
    ...
    >>> filter_by_schema_fields({'a': 1, 'b': NOT_LOADED, 'c': 3}, S)
    {'a': 1, 'b': NOT_LOADED}
    >>> filter_by_schema_fields({'a': 1, 'b': NOT_LOADED, 'c': 3}, S,
    ...                         filter_not_loaded=True)
    {'a': 1}
    """
    info = get_schema_info(schema)
    keys = info.all_keys
    if filter_assocs:
        keys = keys.difference(info.assocs)
    return {key: value
            for key, value in _as_mapping(data).items()
            if key in keys and not (filter_not_loaded and value is NOT_LOADED)}


def deep_filter_by_schema_fields(data, schema, filter_not_loaded=False):
    """
    Like :func:`filter_by_schema_fields` but recursively filtering also
    values of embeds and associations (mappings, structs, or sequences
    of them).  Other nested values are left as they are.
    """
    info = get_schema_info(schema)
    result = filter_by_schema_fields(data, schema, filter_not_loaded=filter_not_loaded)
    for key, value in result.items():
        nested_info = info.get_nested(key)
        if nested_info is None:
            continue
        if _is_mapping_like(value):
            result[key] = deep_filter_by_schema_fields(
                value, nested_info.schema, filter_not_loaded)
        elif is_seq(value):
            result[key] = [
                (deep_filter_by_schema_fields(item, nested_info.schema, filter_not_loaded)
                 if _is_mapping_like(item) else item)
                for item in value]
    return result


def _get_excluded_keys(info, exclude, exclude_timestamps, exclude_id):
    if isinstance(exclude, str):
        exclude = [exclude]
    excluded = set(exclude)
    if exclude_timestamps:
        excluded.update(info.timestamps)
    if exclude_id:
        if info.primary_key:
            excluded.update(info.primary_key)
        else:
            excluded.add('id')
    return excluded


def _is_mapping_like(value):
    return isinstance(value, collections_abc.Mapping) or is_struct(value)


def _as_mapping(data):
    if isinstance(data, collections_abc.Mapping):
        return data
    if is_struct(data):
        return map_from_struct(data)
    raise TypeError('{!a} is neither a mapping nor a struct'.format(data))

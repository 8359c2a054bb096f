# Copyright (c) 2013-2025 NASK. All rights reserved.

"""
The main public operations of *n6morph*: casting loosely-typed data
(mappings, e.g. decoded from JSON; other structs; database rows) into
validated structs -- including nested embeds and associations.

>>> from n6morph.fields import IntegerField, UnicodeField
>>> from n6morph.schema import EmbeddedSchema, embeds_many
>>> class Line(EmbeddedSchema):
...     product = UnicodeField()
...     qty = IntegerField(min_value=1, default=1)
...
>>> class Order(EmbeddedSchema):
...     customer = UnicodeField()
...     lines = embeds_many(Line)
...
>>> cast_to_struct({'customer': 'ACME', 'lines': [{'product': 'nail', 'qty': '5'}]},
...                Order)
Order(customer='ACME', lines=[Line(product='nail', qty=5)])
>>> cast_to_struct({'customer': 'ACME', 'lines': [{'product': 'nail', 'qty': 0}]},
...                Order)                              # doctest: +ELLIPSIS
Traceback (most recent call last):
  ...
n6morph.exceptions.InvalidChangesetError: Invalid data: "lines[0].qty" (is invalid).
"""


import collections.abc as collections_abc

from n6morph.casting import (
    cast,
    cast_assoc,
    cast_embed,
)
from n6morph.changeset import Changeset
from n6morph.config import get_config
from n6morph.exceptions import (
    InvalidChangesetError,
    SchemaError,
)
from n6morph.log_helpers import get_logger
from n6morph.projection import (
    deep_filter_by_schema_fields,
    deep_map_from_struct,
    filter_by_schema_fields,
    map_from_struct,
)
from n6morph.schema import (
    NOT_LOADED,
    get_schema_info,
    is_struct,
)


__all__ = [
    'generate_changeset',
    'cast_to_struct',
    'into_struct',
    'update_struct',
    'validate_nested_changeset',
    'map_from_struct',
    'deep_map_from_struct',
    'filter_by_schema_fields',
    'deep_filter_by_schema_fields',
]


LOGGER = get_logger(__name__)


def generate_changeset(data, schema, fields=None):
    """
    Cast `data` into a new :class:`~n6morph.changeset.Changeset`.

    Args:
        `data`:
            A mapping (e.g., decoded from JSON), a struct, or a database
            row (such as an SQLAlchemy `Row` of columns, or one whose
            only item is an ORM entity).
        `schema`:
            A schema class (to get a fresh struct) or a struct (to be
            updated).

    Kwargs:
        `fields` (default: :obj:`None`):
            The whitelist of things to be cast.  If :obj:`None` --
            all fields, embeds and associations are cast (recursively).
            Otherwise, it should be a sequence whose items are:

            * names (strings) of fields, embeds or associations (for
              the latter two: with everything inside them cast);
            * ``(name, sub_fields)`` pairs, or mappings of names to
              `sub_fields` -- for embeds or associations to be cast
              according to their own whitelists (`sub_fields`).

    Raises:
        :exc:`~n6morph.exceptions.SchemaError` for unknown whitelist
        entries (or if `schema` is not a schema);
        :exc:`~exceptions.TypeError` if `data` is not of any of the
        types listed above.
    """
    info = get_schema_info(schema)
    whitelist = _normalize_whitelist(info, fields)
    return _build_changeset(schema, _as_params(data), whitelist)


def cast_to_struct(data, schema, fields=None):
    """
    Cast `data` into a struct of `schema` (for the arguments -- see:
    :func:`generate_changeset`).

    Raises:
        :exc:`~n6morph.exceptions.InvalidChangesetError` if the data
        are not valid (the invalid changeset is available as the
        `changeset` attribute of the exception).
    """
    return into_struct(generate_changeset(data, schema, fields))


def update_struct(struct, data, fields=None):
    """
    Cast `data` into the existing `struct` (for the arguments -- see:
    :func:`generate_changeset`).

    SQLAlchemy-mapped structs are updated in place; for embedded ones a
    new struct is returned.

    Raises:
        :exc:`~n6morph.exceptions.InvalidChangesetError` (see:
        :func:`cast_to_struct`).
    """
    if not is_struct(struct):
        raise SchemaError(public_message=(
            '{!a} is not a struct (an instance of a schema class)'.format(struct)))
    return into_struct(generate_changeset(data, struct, fields))


def into_struct(changeset):
    """
    Get the struct with all changes of `changeset` applied.

    Raises:
        :exc:`~n6morph.exceptions.InvalidChangesetError` if the
        changeset is not valid.
    """
    if not changeset.valid:
        exc = InvalidChangesetError(changeset)
        if get_config()['log_invalid_changesets']:
            LOGGER.debug('%s (schema: %s)',
                         exc.public_message,
                         changeset.schema_info.schema.__qualname__)
        raise exc
    return changeset.apply_changes()


def validate_nested_changeset(changeset, path, validation_fn):
    """
    Apply `validation_fn` to the nested changeset(s) found at `path`.

    Args:
        `changeset`:
            A :class:`~n6morph.changeset.Changeset` instance.
        `path`:
            A sequence of embed/association names (or a single name) --
            leading, step by step, to the nested changeset(s) to be
            validated (for many-cardinality steps: each of the items is
            followed).
        `validation_fn`:
            A function that takes a changeset and returns a changeset
            (e.g., with some errors added).

    Returns:
        A new changeset (with the validated nested changesets put in
        place).  Any errors added by `validation_fn` make every
        changeset on the path invalid.  If at any step there is no
        change, the changeset is returned as it is.

    Raises:
        :exc:`~n6morph.exceptions.SchemaError` if any step of the path
        is not an embed or association.

    >>> from n6morph.fields import UnicodeField
    >>> from n6morph.schema import EmbeddedSchema, embeds_one
    >>> class Address(EmbeddedSchema):
    ...     city = UnicodeField()
    ...
    >>> class Person(EmbeddedSchema):
    ...     address = embeds_one(Address)
    ...
    >>> cs = generate_changeset({'address': {'city': 'Nowhere'}}, Person)
    >>> cs.valid
    True
    >>> cs = validate_nested_changeset(
    ...     cs, ['address'],
    ...     lambda nested_cs: nested_cs.validate_inclusion('city', ['Warsaw']))
    >>> cs.valid
    False
    >>> cs.traverse_errors()
    {'address': {'city': ['is invalid']}}
    """
    if isinstance(path, str):
        path = [path]
    path = list(path)
    if not path:
        new = validation_fn(changeset)
        if not isinstance(new, Changeset):
            raise TypeError('{!a} returned {!a} (expected a Changeset)'.format(
                validation_fn, new))
        return new
    key, rest = path[0], path[1:]
    info = changeset.schema_info
    if info.get_nested(key) is None:
        raise SchemaError(public_message=(
            '{!a} is not an embed or association of {}'.format(
                key, info.schema.__qualname__)))
    nested = changeset.changes.get(key)
    if nested is None:
        return changeset
    if isinstance(nested, list):
        validated = [validate_nested_changeset(item, rest, validation_fn)
                     for item in nested]
    else:
        validated = validate_nested_changeset(nested, rest, validation_fn)
    return changeset.put_change(key, validated)



#
# Internal helpers

def _as_params(data):
    if isinstance(data, collections_abc.Mapping):
        return data
    if is_struct(data):
        return {key: value for key, value in deep_map_from_struct(data).items()
                if value is not NOT_LOADED}
    row_mapping = getattr(data, '_mapping', None)
    if isinstance(row_mapping, collections_abc.Mapping):
        values = list(row_mapping.values())
        if len(values) == 1 and is_struct(values[0]):
            # (e.g., a row from `select(SomeMappedClass)`)
            return _as_params(values[0])
        if any(is_struct(value) for value in values):
            raise TypeError('cannot cast a database row that contains, apart '
                            'from other items, an ORM entity ({!a})'.format(data))
        return {str(key): value for key, value in row_mapping.items()}
    raise TypeError('cannot cast {!a} (expected a mapping, a struct '
                    'or a database row)'.format(data))


def _normalize_whitelist(info, fields):
    """
    Get a dict: name -> sub-whitelist (:obj:`None` for scalar fields,
    and for nested ones to be cast entirely).
    """
    if fields is None:
        return dict.fromkeys(info.ordered_keys)
    if isinstance(fields, (str, collections_abc.Mapping)):
        fields = [fields]
    whitelist = {}
    for entry in fields:
        if isinstance(entry, str):
            name, sub_fields = entry, None
        elif isinstance(entry, collections_abc.Mapping):
            for name, sub_fields in entry.items():
                whitelist[name] = _normalize_whitelist_entry(info, name, sub_fields)
            continue
        elif isinstance(entry, (tuple, list)) and len(entry) == 2:
            name, sub_fields = entry
        else:
            raise SchemaError(public_message=(
                'illegal whitelist entry: {!a}'.format(entry)))
        whitelist[name] = _normalize_whitelist_entry(info, name, sub_fields)
    return whitelist


def _normalize_whitelist_entry(info, name, sub_fields):
    if name not in info.all_keys:
        raise SchemaError(public_message=(
            '{!a} is not a field, embed or association of {}'.format(
                name, info.schema.__qualname__)))
    nested_info = info.get_nested(name)
    if nested_info is None:
        if sub_fields is not None:
            raise SchemaError(public_message=(
                '{!a} is a scalar field of {} (it cannot have '
                'nested fields)'.format(name, info.schema.__qualname__)))
        return None
    if sub_fields is None:
        return None
    return _normalize_whitelist(get_schema_info(nested_info.schema), sub_fields)


def _build_changeset(data, params, whitelist):
    info = get_schema_info(data)
    changeset = cast(data, params, [key for key in whitelist if key in info.fields])
    for key, sub_whitelist in whitelist.items():
        if key in info.fields:
            continue
        if sub_whitelist is None:
            sub_whitelist = _normalize_whitelist(
                get_schema_info(info.get_nested(key).schema), None)
        with_ = _make_with(sub_whitelist)
        if key in info.embeds:
            changeset = cast_embed(changeset, key, with_=with_)
        else:
            changeset = cast_assoc(changeset, key, with_=with_)
    return changeset


def _make_with(whitelist):
    def with_(data, params):
        return _build_changeset(data, params, whitelist)
    return with_

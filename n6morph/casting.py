# Copyright (c) 2013-2025 NASK. All rights reserved.

"""
The cast primitives: :func:`cast`, :func:`cast_embed` and
:func:`cast_assoc`.

>>> from n6morph.fields import IntegerField, UnicodeField
>>> from n6morph.schema import EmbeddedSchema
>>> class Item(EmbeddedSchema):
...     name = UnicodeField()
...     qty = IntegerField(min_value=0)
...
>>> cs = cast(Item, {'name': 'nail', 'qty': '12', 'spam': 1}, ['name', 'qty'])
>>> cs.valid, cs.changes == {'name': 'nail', 'qty': 12}
(True, True)
>>> cs = cast(Item, {'qty': -1}, ['qty'])
>>> cs.valid
False
>>> cs.errors     # doctest: +NORMALIZE_WHITESPACE
[('qty', 'is invalid',
  {'type': 'integer', 'validation': 'cast', 'reason': '-1 is lesser than 0'})]
"""


import collections.abc as collections_abc

from n6morph.changeset import Changeset
from n6morph.common_helpers import (
    ascii_str,
    is_seq,
)
from n6morph.config import get_config
from n6morph.exceptions import (
    AssociationNotLoadedError,
    SchemaError,
)
from n6morph.log_helpers import get_logger
from n6morph.projection import deep_map_from_struct
from n6morph.schema import (
    MANY,
    NOT_LOADED,
    get_schema_info,
    is_struct,
)


LOGGER = get_logger(__name__)


INSERT = 'insert'
UPDATE = 'update'


def cast(data, params, permitted, empty_values=None):
    """
    Cast `params` into a new :class:`~n6morph.changeset.Changeset`.

    Args:
        `data`:
            A struct to be changed or a schema class (meaning: a fresh
            struct of that schema, with field defaults applied).
        `params`:
            A mapping whose keys are field names (other keys are
            ignored).
        `permitted`:
            Names of scalar fields to be cast (only those present in
            `params` are taken into account).

    Kwargs:
        `empty_values` (default: from the *n6morph* configuration):
            A sequence of param values to be treated as :obj:`None`.

    For each of the `permitted` fields, the param value is cleaned by
    the field (:obj:`None` is never cleaned); a cleaning failure is
    recorded as an ``'is invalid'`` error (with `info` including the
    keys: ``'type'``, ``'validation'`` (``'cast'``) and ``'reason'``);
    a value equal to the current one in `data` is not recorded as a
    change.

    Raises:
        :exc:`~exceptions.TypeError` if `params` is not a mapping;
        :exc:`~n6morph.exceptions.SchemaError` if any of `permitted`
        is not a scalar field of the schema.
    """
    info = get_schema_info(data)
    if isinstance(data, type):
        data = info.new_struct()
    if not isinstance(params, collections_abc.Mapping):
        raise TypeError('params should be a mapping (got: {!a})'.format(params))
    if empty_values is None:
        empty_values = get_config()['empty_values']
    elif isinstance(empty_values, (str, bytes, bytearray)):
        raise TypeError('empty_values should be a sequence of values, not '
                        'a string (got: {!a})'.format(empty_values))
    params = {key: value for key, value in params.items() if isinstance(key, str)}
    changes = {}
    errors = []
    for key in permitted:
        field = _get_permitted_field(info, key)
        if key not in params or params[key] is NOT_LOADED:
            continue
        raw_value = params[key]
        if raw_value is None or _is_empty(raw_value, empty_values):
            value = None
        else:
            try:
                value = field.clean_value(raw_value)
            except Exception as exc:
                reason = getattr(exc, 'public_message', None) or ascii_str(exc)
                LOGGER.debug('cannot cast %a to %s.%s: %s',
                             raw_value, info.schema.__qualname__, key, reason)
                errors.append((key, 'is invalid', {'type': field.type_name,
                                                   'validation': 'cast',
                                                   'reason': reason}))
                continue
        if value != info.get_value(data, key):
            changes[key] = value
    return Changeset(data, params=params, changes=changes, errors=errors)


def cast_embed(changeset, key, with_=None, required=False,
               required_message="can't be blank", invalid_message='is invalid'):
    """
    Cast the param `key` of `changeset` -- being an embed of the
    changeset's schema -- into a nested changeset (or a list of them).

    See: :func:`cast_nested`.
    """
    info = changeset.schema_info
    if key not in info.embeds:
        raise SchemaError(public_message=(
            '{!a} is not an embed of {}'.format(key, info.schema.__qualname__)))
    return cast_nested(changeset, key, with_=with_, required=required,
                       required_message=required_message,
                       invalid_message=invalid_message)


def cast_assoc(changeset, key, with_=None, required=False,
               required_message="can't be blank", invalid_message='is invalid'):
    """
    Cast the param `key` of `changeset` -- being an association of the
    changeset's schema -- into a nested changeset (or a list of them).

    See: :func:`cast_nested`.

    Raises:
        :exc:`~n6morph.exceptions.AssociationNotLoadedError` if the
        association is to be cast but it has not been loaded for the
        (database-tracked) struct.
    """
    info = changeset.schema_info
    if key not in info.assocs:
        raise SchemaError(public_message=(
            '{!a} is not an association of {}'.format(key, info.schema.__qualname__)))
    params = changeset.params or {}
    if (key in params and params[key] is not NOT_LOADED
            and not info.is_loaded(changeset.data, key)):
        raise AssociationNotLoadedError(public_message=(
            'Association {!a} of {} has not been loaded (so it cannot '
            'be cast)'.format(key, info.schema.__qualname__)))
    return cast_nested(changeset, key, with_=with_, required=required,
                       required_message=required_message,
                       invalid_message=invalid_message)


def cast_nested(changeset, key, with_=None, required=False,
                required_message="can't be blank", invalid_message='is invalid'):
    """
    The common part of :func:`cast_embed` and :func:`cast_assoc`.

    The param value should be a mapping (or a struct) -- for a
    one-cardinality key, or a sequence of such -- for a many-cardinality
    key.  Each is cast with `with_` (a `(struct, params)` function
    returning a changeset; by default: the nested schema's `changeset`
    classmethod, if defined, or :func:`changeset_of_all`) against the
    existing nested struct whose primary key matches (producing an
    ``'update'`` changeset) or against the nested schema (producing an
    ``'insert'`` one).  Existing nested structs that are not matched
    are dropped.

    For a one-cardinality key, :obj:`None` means: no nested struct.
    Values of wrong shape cause an `invalid_message` error; if
    `required` is true, a missing or empty value causes a
    `required_message` error.  :data:`~n6morph.schema.NOT_LOADED`
    params are skipped.
    """
    info = changeset.schema_info
    nested_info = info.get_nested(key)
    if changeset.params is None:
        raise SchemaError(public_message=(
            'cannot cast {!a}: the changeset has not been '
            'cast from params'.format(key)))
    params = changeset.params
    current = info.get_value(changeset.data, key)
    if key not in params or params[key] is NOT_LOADED:
        if required and _is_blank(current, nested_info.cardinality):
            return changeset.add_error(key, required_message, validation='required')
        return changeset
    if with_ is None:
        with_ = _get_default_with(nested_info.schema)
    raw_value = params[key]
    if nested_info.cardinality == MANY:
        change = _cast_many(nested_info.schema, raw_value, current, with_)
    else:
        change = _cast_one(nested_info.schema, raw_value, current, with_)
    if change is _INVALID:
        return changeset.add_error(key, invalid_message,
                                   type=_describe_type(nested_info.cardinality),
                                   validation=_describe_kind(info, key))
    LOGGER.debug('nested %s of %s cast (%s)',
                 key, info.schema.__qualname__, _describe_change(change))
    new = changeset.put_change(key, change)
    if required and _is_blank(change, nested_info.cardinality):
        new = new.add_error(key, required_message, validation='required')
    return new


def changeset_of_all(data, params):
    """
    Cast everything: all scalar fields, embeds and associations of the
    schema of `data` (a struct or schema class).
    """
    info = get_schema_info(data)
    changeset = cast(data, params, list(info.fields))
    for key in info.embeds:
        changeset = cast_embed(changeset, key)
    for key in info.assocs:
        changeset = cast_assoc(changeset, key)
    return changeset



#
# Internal helpers

_INVALID = object()


def _get_permitted_field(info, key):
    field = info.fields.get(key)
    if field is None:
        if info.get_nested(key) is not None:
            raise SchemaError(public_message=(
                '{!a} is an embed or association of {} (use cast_embed() '
                'or cast_assoc() instead)'.format(key, info.schema.__qualname__)))
        raise SchemaError(public_message=(
            '{!a} is not a field of {}'.format(key, info.schema.__qualname__)))
    return field


def _is_empty(value, empty_values):
    if isinstance(value, (collections_abc.Mapping, list)):
        return False
    try:
        return value in empty_values
    except TypeError:
        return False


def _is_blank(value, cardinality):
    if value is None or value is NOT_LOADED:
        return True
    return cardinality == MANY and not value


def _get_default_with(schema):
    changeset_method = getattr(schema, 'changeset', None)
    if callable(changeset_method) and 'changeset' not in get_schema_info(schema).all_keys:
        return changeset_method
    return changeset_of_all


def _as_nested_params(value):
    if isinstance(value, collections_abc.Mapping):
        return value
    if is_struct(value):
        return {key: val for key, val in deep_map_from_struct(value).items()
                if val is not NOT_LOADED}
    return None


def _cast_one(schema, raw_value, current, with_):
    if raw_value is None:
        return None
    nested_params = _as_nested_params(raw_value)
    if nested_params is None:
        return _INVALID
    if current is not None and _pk_matches(current, nested_params, allow_missing=True):
        return _run_with(with_, current, nested_params, UPDATE)
    return _run_with(with_, schema, nested_params, INSERT)


def _cast_many(schema, raw_value, current, with_):
    if not is_seq(raw_value):
        return _INVALID
    all_nested_params = [_as_nested_params(item) for item in raw_value]
    if any(nested_params is None for nested_params in all_nested_params):
        return _INVALID
    existing = list(current or ())
    changesets = []
    for nested_params in all_nested_params:
        for i, struct in enumerate(existing):
            if _pk_matches(struct, nested_params):
                del existing[i]
                changesets.append(_run_with(with_, struct, nested_params, UPDATE))
                break
        else:
            changesets.append(_run_with(with_, schema, nested_params, INSERT))
    return changesets


def _pk_matches(struct, nested_params, allow_missing=False):
    info = get_schema_info(struct)
    if not info.primary_key:
        # without a primary key only the sole (one-cardinality) struct can be matched
        return allow_missing
    for key in info.primary_key:
        current_value = getattr(struct, key)
        raw_value = nested_params.get(key)
        if raw_value is None:
            if allow_missing:
                continue
            return False
        try:
            param_value = info.fields[key].clean_value(raw_value)
        except Exception:
            return False
        if current_value is None or param_value != current_value:
            return False
    return True


def _run_with(with_, data, nested_params, action):
    changeset = with_(data, nested_params)
    if not isinstance(changeset, Changeset):
        raise TypeError('{!a} returned {!a} (expected a Changeset)'.format(
            with_, changeset))
    return changeset._evolve(action=action)


def _describe_type(cardinality):
    return 'list of maps' if cardinality == MANY else 'map'


def _describe_kind(info, key):
    return 'embed' if key in info.embeds else 'assoc'


def _describe_change(change):
    if isinstance(change, list):
        return ', '.join(cs.action for cs in change) or 'empty'
    if change is None:
        return 'cleared'
    return change.action

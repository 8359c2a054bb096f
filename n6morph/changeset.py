# Copyright (c) 2013-2025 NASK. All rights reserved.

"""
Changesets -- tracked and validated sets of changes to structs.

A :class:`Changeset` is normally obtained with
:func:`n6morph.casting.cast` (or any higher-level function built on
top of it, see: :mod:`n6morph.morph`).  Its methods never modify it;
each of them that "changes" something returns a new changeset.

Each error is a ``(key, message, info)`` tuple, where `info` is a dict
(e.g., ``{'validation': 'required'}``).  Messages may contain
``{...}``-style placeholders filled in from `info` by
:meth:`Changeset.traverse_errors` (e.g., ``'should be at least {count}
character(s)'``).
"""


import copy

from n6morph.common_helpers import attr_repr
from n6morph.exceptions import SchemaError
from n6morph.schema import (
    MANY,
    get_schema_info,
)


class Changeset(object):

    """
    A set of changes to `data` (a struct), with errors.

    Attributes (to be treated as read-only):

    * `data` -- the struct being changed;
    * `params` -- the params the changeset was cast from (a dict) or
      :obj:`None`;
    * `changes` -- a dict of changes; for embeds/associations the values
      are nested changesets (lists of them for many-cardinality ones)
      or :obj:`None`;
    * `errors` -- a list of ``(key, message, info)`` tuples;
    * `action` -- :obj:`None`, ``'insert'`` or ``'update'`` (set for
      nested changesets);
    * `required` -- names of fields marked as required by
      :meth:`validate_required`;
    * `schema_info` -- the :class:`~n6morph.schema.SchemaInfo` of
      `data`.
    """

    def __init__(self, data, params=None, changes=None, errors=None,
                 action=None, required=()):
        self.data = data
        self.params = params
        self.changes = dict(changes or {})
        self.errors = list(errors or [])
        self.action = action
        self.required = tuple(required)
        self.schema_info = get_schema_info(data)

    __repr__ = attr_repr('action', 'changes', 'errors', 'data', 'valid')

    @property
    def valid(self):
        """Whether there are no errors (also in nested changesets)."""
        return not self.errors and all(cs.valid for cs in self.nested_changesets())

    def nested_changesets(self):
        """Iterate over the (directly) nested changesets."""
        for key, change in self.changes.items():
            if self.schema_info.get_nested(key) is None:
                continue
            if isinstance(change, Changeset):
                yield change
            elif isinstance(change, list):
                for item in change:
                    if isinstance(item, Changeset):
                        yield item


    #
    # Accessing changes and fields

    def get_change(self, key, default=None):
        return self.changes.get(key, default)

    def fetch_field(self, key):
        """
        Get a ``(source, value)`` pair, where `source` is ``'changes'``
        or ``'data'``.
        """
        if key in self.changes:
            return 'changes', self.changes[key]
        return 'data', self.schema_info.get_value(self.data, key)

    def get_field(self, key, default=None):
        """Get the value of `key` from changes or (if not changed) from data."""
        if key in self.changes:
            return self.changes[key]
        if key not in self.schema_info.all_keys:
            return default
        value = self.schema_info.get_value(self.data, key)
        return default if value is None else value


    #
    # Modifying changes and errors (each method returns a new changeset)

    def put_change(self, key, value):
        """
        Put a change.  For scalar fields, a value equal to the one in
        data means no change (a previous change of `key` is dropped).
        """
        new = self._evolve()
        if (key in self.schema_info.fields
                and value == self.schema_info.get_value(self.data, key)):
            new.changes.pop(key, None)
        else:
            new.changes[key] = value
        return new

    def delete_change(self, key):
        new = self._evolve()
        new.changes.pop(key, None)
        return new

    def add_error(self, key, message, **info):
        new = self._evolve()
        new.errors.append((key, message, info))
        return new


    #
    # Validations

    def validate_required(self, keys, message="can't be blank"):
        """
        Add an error for each of `keys` whose value (from changes or
        from data) is missing (:obj:`None`, a blank string or an empty
        list) -- unless the key already has an error (e.g., a casting
        one).

        Raises:
            :exc:`~n6morph.exceptions.SchemaError` if any of `keys` is
            not a field, embed or association of the schema.
        """
        if isinstance(keys, str):
            keys = [keys]
        keys = list(keys)
        unknown = [key for key in keys if key not in self.schema_info.all_keys]
        if unknown:
            raise SchemaError(public_message=(
                '{} is/are not field(s), embed(s) or association(s) of {}'.format(
                    ', '.join(map(ascii, unknown)),
                    self.schema_info.schema.__qualname__)))
        new = self._evolve(required=self.required + tuple(
            key for key in keys if key not in self.required))
        keys_with_errors = {key for key, _, _ in self.errors}
        for key in keys:
            if key in keys_with_errors:
                continue
            if self._is_missing(self.get_field(key)):
                new.errors.append((key, message, {'validation': 'required'}))
        return new

    def validate_change(self, key, validator):
        """
        Validate the change of `key` (if any, and if not :obj:`None`)
        with `validator` -- a `(key, value)` function returning an
        iterable of error tuples: ``(key, message)`` or ``(key, message,
        info)``.
        """
        value = self.changes.get(key)
        if value is None:
            return self
        new = self._evolve()
        for error in validator(key, value) or ():
            if len(error) == 2:
                err_key, message = error
                info = {}
            else:
                err_key, message, info = error
            new.errors.append((err_key, message, dict(info)))
        return new

    def validate_inclusion(self, key, values, message='is invalid'):
        def validator(key, value):
            if value not in values:
                return [(key, message, {'validation': 'inclusion',
                                        'enum': list(values)})]
            return []
        return self.validate_change(key, validator)

    def validate_exclusion(self, key, values, message='is reserved'):
        def validator(key, value):
            if value in values:
                return [(key, message, {'validation': 'exclusion',
                                        'enum': list(values)})]
            return []
        return self.validate_change(key, validator)

    def validate_format(self, key, regex, message='has invalid format'):
        def validator(key, value):
            if regex.search(value) is None:
                return [(key, message, {'validation': 'format'})]
            return []
        return self.validate_change(key, validator)

    def validate_length(self, key, min=None, max=None, is_=None):
        """
        Validate the length of the changed string (characters) or list
        (items).
        """
        def validator(key, value):
            if isinstance(value, str):
                type_, unit = 'string', 'character(s)'
                verbs = ('should be', 'should be at least', 'should be at most')
            else:
                type_, unit = 'list', 'item(s)'
                verbs = ('should have', 'should have at least', 'should have at most')
            length = len(value)
            for kind, count, verb, failed in [
                    ('is', is_, verbs[0], lambda: length != is_),
                    ('min', min, verbs[1], lambda: length < min),
                    ('max', max, verbs[2], lambda: length > max)]:
                if count is not None and failed():
                    return [(key, verb + ' {count} ' + unit,
                             {'count': count, 'validation': 'length',
                              'kind': kind, 'type': type_})]
            return []
        return self.validate_change(key, validator)

    _NUMBER_CHECKS = [
        ('less_than', 'must be less than {number}', lambda v, n: v < n),
        ('greater_than', 'must be greater than {number}', lambda v, n: v > n),
        ('less_than_or_equal_to', 'must be less than or equal to {number}',
         lambda v, n: v <= n),
        ('greater_than_or_equal_to', 'must be greater than or equal to {number}',
         lambda v, n: v >= n),
        ('equal_to', 'must be equal to {number}', lambda v, n: v == n),
    ]

    def validate_number(self, key, **constraints):
        """
        Validate the changed number; keyword arguments (any of):
        `less_than`, `greater_than`, `less_than_or_equal_to`,
        `greater_than_or_equal_to`, `equal_to`.
        """
        known = {kind for kind, _, _ in self._NUMBER_CHECKS}
        illegal = sorted(set(constraints) - known)
        if illegal:
            raise TypeError('validate_number() got unexpected keyword '
                            'arguments: {}'.format(', '.join(illegal)))

        def validator(key, value):
            for kind, message, check in self._NUMBER_CHECKS:
                number = constraints.get(kind)
                if number is not None and not check(value, number):
                    return [(key, message, {'validation': 'number',
                                            'kind': kind, 'number': number})]
            return []

        return self.validate_change(key, validator)


    #
    # Applying changes

    def apply_changes(self):
        """
        Get the struct with all changes (also nested ones) applied --
        regardless of the changeset validity.
        """
        values = {}
        for key, change in self.changes.items():
            if self.schema_info.get_nested(key) is not None:
                change = _apply_nested(change)
            values[key] = change
        return self.schema_info.updated_struct(self.data, values)


    #
    # Errors

    def traverse_errors(self, fn=None):
        """
        Get a dict that maps keys to lists of error messages, including
        errors of nested changesets (as dicts, or as lists of dicts for
        many-cardinality keys).  If a key has both its own errors and
        errors in nested changesets, the latter take precedence.

        `fn` (if given) is a `(message, info)` function to be used to
        produce messages; by default, placeholders in message templates
        are filled in from `info`.
        """
        if fn is None:
            fn = _format_message
        result = {}
        for key, message, info in self.errors:
            result.setdefault(key, []).append(fn(message, info))
        for key, change in self.changes.items():
            nested_info = self.schema_info.get_nested(key)
            if nested_info is None:
                continue
            if nested_info.cardinality == MANY and isinstance(change, list):
                items = [cs.traverse_errors(fn) for cs in change]
                if any(items):
                    result[key] = items
            elif isinstance(change, Changeset):
                nested_errors = change.traverse_errors(fn)
                if nested_errors:
                    result[key] = nested_errors
        return result


    #
    # Internal helpers

    def _evolve(self, **attrs):
        new = copy.copy(self)
        new.changes = dict(self.changes)
        new.errors = list(self.errors)
        for name, value in attrs.items():
            setattr(new, name, value)
        return new

    def _is_missing(self, value):
        if value is None:
            return True
        if isinstance(value, str):
            return not value.strip()
        if isinstance(value, list):
            return not value
        return False


def _apply_nested(change):
    if isinstance(change, Changeset):
        return change.apply_changes()
    if isinstance(change, list):
        return [(item.apply_changes() if isinstance(item, Changeset) else item)
                for item in change]
    return change


def _format_message(message, info):
    try:
        return message.format_map(info)
    except (KeyError, IndexError, ValueError, AttributeError):
        return message

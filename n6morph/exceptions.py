# Copyright (c) 2013-2025 NASK. All rights reserved.

from n6morph.common_helpers import ascii_str


#
# Generic mix-ins
#

class _ErrorWithPublicMessageMixin(object):

    r"""
    A mix-in class that provides the :attr:`public_message` property.

    The value of this property is a :class:`str`.  It is taken either
    from the `public_message` constructor keyword argument or -- if the
    argument was not specified -- from the value of the
    :attr:`default_public_message` attribute.

    The public message should be a complete sentence (or several
    sentences): first word capitalized (if not being an identifier
    that begins with a lower case letter) + the period at the end.

    The :class:`str` conversion provided by the class uses the value of
    :attr:`public_message`:

    >>> class SomeError(_ErrorWithPublicMessageMixin, Exception):
    ...     pass
    ...
    >>> str(SomeError('a', 'b'))  # using attribute default_public_message
    'Internal error.'
    >>> str(SomeError('a', 'b', public_message='Spąm.'))
    'Spąm.'

    The :func:`repr` conversion results in a programmer-readable
    representation (containing the class name, :func:`repr`-formatted
    constructor arguments and the :attr:`public_message` property):

    >>> SomeError('a', 'b')   # using class's default_public_message
    <SomeError: args=('a', 'b'); public_message='Internal error.'>
    >>> SomeError('a', 'b', public_message='Spam.')
    <SomeError: args=('a', 'b'); public_message='Spam.'>
    """

    #: (overridable in subclasses)
    default_public_message = 'Internal error.'

    def __init__(self, *args, **kwargs):
        try:
            public_message = kwargs.pop('public_message')
        except KeyError:
            pass
        else:
            self._public_message = str(public_message)
        try:
            super(_ErrorWithPublicMessageMixin, self).__init__(*args, **kwargs)
        except TypeError:
            if kwargs:
                raise TypeError(
                    'illegal keyword arguments for {} constructor: {}'.format(
                        self.__class__.__name__,
                        ', '.join(sorted(map(repr, kwargs)))))
            else:
                raise

    @property
    def public_message(self):
        """The aforementioned property."""
        try:
            return self._public_message
        except AttributeError:
            # (in subclasses `default_public_message` can also be a @property)
            self._public_message = str(self.default_public_message)
            return self._public_message

    def __str__(self):
        return self.public_message

    def __repr__(self):
        return ('<{0.__class__.__name__}: args={0.args!r}; '
                'public_message={0.public_message!r}>'.format(self))


#
# Actual exception classes
#

class FieldValueError(_ErrorWithPublicMessageMixin, ValueError):

    """
    Intended to be raised in :meth:`~.Field.clean_value` of
    :class:`n6morph.fields.Field` subclasses.

    It is recommended (though not required) to instantiate the exception
    specifying the `public_message` keyword argument -- the casting
    machinery (see: :func:`n6morph.casting.cast`) puts that message
    into the changeset error information (as the ``reason`` item).

    >>> exc = FieldValueError(public_message='"x" is not a valid number')
    >>> exc.public_message
    '"x" is not a valid number'
    """

    default_public_message = 'not a valid value'


class FieldValueTooLongError(FieldValueError):

    """
    Intended to be raised when the length of the given value is too big.

    Instances *must* be initialized with the following keyword-only
    arguments:

    * `field` (:class:`n6morph.fields.Field` instance):
      the field whose method raised the exception;
    * `checked_value`:
      the value which caused the exception (possibly already partially
      processed by methods of `field`);
    * `max_length`:
      the length limit that was exceeded (what caused the exception).

    They become attributes of the exception instance -- respectively:
    :attr:`field`, :attr:`checked_value`, :attr:`max_length`.

    >>> exc = FieldValueTooLongError(
    ...     field='sth', checked_value=['foo'], max_length=42)
    >>> exc.field
    'sth'
    >>> exc.checked_value
    ['foo']
    >>> exc.max_length
    42

    >>> FieldValueTooLongError(   # doctest: +ELLIPSIS
    ...     checked_value=['foo'], max_length=42)
    Traceback (most recent call last):
      ...
    TypeError: __init__() needs keyword-only argument field
    """

    def __init__(self, *args, **kwargs):
        try:
            self.field = kwargs.pop('field')
            self.checked_value = kwargs.pop('checked_value')
            self.max_length = kwargs.pop('max_length')
        except KeyError as exc:
            [kw] = exc.args
            raise TypeError('__init__() needs keyword-only argument ' + kw)
        super(FieldValueTooLongError, self).__init__(*args, **kwargs)


class SchemaError(_ErrorWithPublicMessageMixin, TypeError):

    """
    Raised when a schema is used in a way it does not support, e.g.
    when an unknown field is whitelisted for casting, when an embed is
    passed to :func:`~n6morph.casting.cast` (instead of
    :func:`~n6morph.casting.cast_embed`), or when the given object is
    not a schema at all.

    It signals a programming error (not a problem with input data), so
    it is never collected into changeset errors.
    """

    default_public_message = 'Schema misuse.'


class AssociationNotLoadedError(SchemaError):

    """
    Raised when an association of a database-tracked struct is being
    cast but it has not been loaded (casting it would silently discard
    the existing children).
    """

    default_public_message = 'Association not loaded.'


class InvalidChangesetError(_ErrorWithPublicMessageMixin, ValueError):

    r"""
    Raised when a struct is requested from an *invalid* changeset.

    The changeset is exposed as the :attr:`changeset` attribute (for
    possible later inspection, e.g., with its `traverse_errors()`
    method).

    This exception class provides :attr:`default_public_message` as a
    property whose value is a user-readable message that includes all
    errors (also those of nested changesets).

    >>> class FakeChangeset:
    ...     def traverse_errors(self):
    ...         return {'age': ['is invalid'],
    ...                 'address': {'city': ["can't be blank"]}}
    ...
    >>> exc = InvalidChangesetError(FakeChangeset())
    >>> exc.public_message
    'Invalid data: "address.city" (can\'t be blank); "age" (is invalid).'
    """

    msg_template = 'Invalid data: {}.'

    def __init__(self, changeset, *args, **kwargs):
        self.changeset = changeset
        super(InvalidChangesetError, self).__init__(changeset, *args, **kwargs)

    @property
    def default_public_message(self):
        """The aforementioned property."""
        messages = [
            '"{}" ({})'.format(ascii_str(path), ', '.join(map(ascii_str, msgs)))
            for path, msgs in sorted(self._iter_flat_errors(
                self.changeset.traverse_errors()))]
        return self.msg_template.format('; '.join(messages))

    @classmethod
    def _iter_flat_errors(cls, errors, prefix=''):
        for key, value in errors.items():
            path = prefix + key
            if isinstance(value, dict):
                yield from cls._iter_flat_errors(value, prefix=path + '.')
            elif value and isinstance(value[0], dict):
                for i, item_errors in enumerate(value):
                    yield from cls._iter_flat_errors(
                        item_errors,
                        prefix='{}[{}].'.format(path, i))
            else:
                yield path, value


class ConfigError(Exception):

    """
    Raised when the *n6morph* configuration is not valid (e.g., when
    it contains an unknown option or an option value that cannot be
    converted).
    """

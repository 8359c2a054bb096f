# Copyright (c) 2013-2025 NASK. All rights reserved.

"""
Field specification classes -- the casting engine of *n6morph*.

Each field *cleans* a single raw value (coerces it to the proper type
and validates it) with its :meth:`~Field.clean_value` method.  When the
value cannot be cleaned an exception is raised (preferably
:exc:`~n6morph.exceptions.FieldValueError` with a `public_message`);
the casting machinery (see: :func:`n6morph.casting.cast`) catches any
such exception and turns it into a changeset error.

Fields are used in two ways:

* they are declared explicitly as class attributes of
  :class:`n6morph.schema.EmbeddedSchema` subclasses;

* they are created automatically -- by :mod:`n6morph.schema` -- for
  columns of SQLAlchemy-mapped classes (or taken from the
  ``info={'n6morph_field': ...}`` of a column, if specified there).

>>> IntegerField(min_value=1).clean_value('42')
42
>>> IntegerField(min_value=1).clean_value(0)     # doctest: +ELLIPSIS
Traceback (most recent call last):
  ...
n6morph.exceptions.FieldValueError: 0 is lesser than 1
"""


import collections.abc as collections_abc
import copy
import datetime
import decimal
import enum
import json
import re
import uuid

from n6morph.common_helpers import (
    ascii_str,
    is_seq,
    str_to_bool,
)
from n6morph.config import get_config
from n6morph.datetime_helpers import (
    datetime_utc_normalize,
    parse_iso_date,
    parse_iso_datetime_to_utc,
    parse_iso_time,
)
from n6morph.exceptions import (
    FieldValueError,
    FieldValueTooLongError,
)
from n6morph.regexes import EMAIL_SIMPLIFIED_REGEX



#
# The base field specification class

class Field(object):

    """
    The base class for all field specification classes.

    It has one (overridable/extendable) instance method:
    :meth:`clean_value` (see below).

    Constructors of all field classes accept the following keyword-only
    arguments:

    * `default` (default: :obj:`None`):
          The value a new struct gets for this field; if it is a
          callable, it is called (with no arguments) each time a default
          value is needed; mutable defaults are deep-copied.
    * `primary_key` (default: :obj:`False`):
          Whether the field is (a part of) the schema's primary key
          (used to match existing nested structs with nested params).
    * **any** keyword arguments whose names are the names of class-level
      attributes (see the second point in the paragraph below).

    Note that fields can be customized in two ways:

    1) by subclassing (and overridding/extending some of class-level
       attributes and/or methods);

    2) by specifying custom *per-instance* values with keyword
       arguments passed to the constructor -- then corresponding
       class-level attributes (typically defined in the body of the
       particular class or of any superclass of it) are overridden.
    """

    #: The type label put into changeset error information.
    type_name = 'any'

    default = None
    primary_key = False

    def __init__(self, **kwargs):
        self._init_kwargs = kwargs
        self._set_per_instance_attrs(kwargs)

    def __repr__(self):
        return '{}({})'.format(
            self.__class__.__qualname__,
            ', '.join(
                '{}={!r}'.format(key, value)
                for key, value in sorted(self._init_kwargs.items())))


    #
    # overridable methods

    def clean_value(self, value):
        """
        The method called by the casting machinery.

        Args:
            `value`:
                A raw value (*not* necessarily a :class:`str`; valid
                types depend on a particular implementation of the
                method).  Never :obj:`None` -- the casting machinery
                does not clean :obj:`None`.

        Returns:
            The value after necessary cleaning (adjustment/coercion/etc.
            and validation).

        Raises:
            Any instance/subclass of :exc:`~exceptions.Exception`
            (especially a :exc:`n6morph.exceptions.FieldValueError`).

        The default implementation just passes the value unchanged.
        This method can be extended (using :func:`super`) in subclasses.

        The method should always return a new object,
        **never** modifying the given value in-place.
        """
        return value

    def get_default(self):
        """Get the default value for a new struct (see: `default`)."""
        default = self.default
        if callable(default):
            return default()
        if isinstance(default, (list, dict, set)):
            return copy.deepcopy(default)
        return default


    #
    # non-public internals

    def _set_per_instance_attrs(self, per_instance_attrs):
        # per-instance customizations of class-level attributes
        cls = self.__class__
        for attr_name, obj in per_instance_attrs.items():
            if not hasattr(cls, attr_name):
                raise TypeError(
                    '{}.__init__() got an unexpected keyword argument {!a}'
                    .format(cls.__qualname__, attr_name))
            setattr(self, attr_name, obj)



#
# Concrete field specification classes

class AnyField(Field):

    """
    For values of any type (passed as they are).
    """


class UnicodeField(Field):

    """
    For arbitrary text data.

    :class:`bytes`/:class:`bytearray` values are decoded (using
    :attr:`encoding`); values of other non-:class:`str` types are
    rejected.  If :attr:`auto_strip` is true (or the ``trim_strings``
    option of the *n6morph* configuration is true) the value is
    stripped.
    """

    type_name = 'string'

    encoding = 'utf-8'
    decode_error_handling = 'strict'
    disallow_empty = False
    auto_strip = False

    def clean_value(self, value):
        value = super(UnicodeField, self).clean_value(value)
        if not isinstance(value, (str, bytes, bytearray)):
            raise FieldValueError(public_message=(
                '{} is not a string'.format(ascii_str(repr(value)))))
        value = self._fix_value(value)
        self._validate_value(value)
        return value

    def _fix_value(self, value):
        if isinstance(value, (bytes, bytearray)):
            try:
                value = value.decode(self.encoding, self.decode_error_handling)
            except UnicodeError:
                raise FieldValueError(public_message=(
                    '"{}" cannot be decoded with encoding "{}"'.format(
                        ascii_str(value),
                        self.encoding)))
        assert isinstance(value, str)
        if self.auto_strip or get_config()['trim_strings']:
            value = value.strip()
        return value

    def _validate_value(self, value):
        if self.disallow_empty and not value:
            raise FieldValueError(public_message='The value is empty')


class UnicodeEnumField(UnicodeField):

    """
    For text data limited to a finite set of possible values.

    The constructor-argument-or-subclass-attribute :attr:`enum_values`
    (a sequence or set of strings) is obligatory.
    """

    enum_values = None

    def __init__(self, **kwargs):
        super(UnicodeEnumField, self).__init__(**kwargs)
        if self.enum_values is None:
            raise TypeError("'enum_values' not specified for {} "
                            "(neither as a class attribute nor "
                            "as a constructor argument)"
                            .format(self.__class__.__qualname__))
        self.enum_values = tuple(self.enum_values)

    def _validate_value(self, value):
        super(UnicodeEnumField, self)._validate_value(value)
        if value not in self.enum_values:
            raise FieldValueError(public_message=(
                '"{}" is not one of: {}'.format(
                    ascii_str(value),
                    ', '.join('"{}"'.format(v) for v in self.enum_values))))


class UnicodeLimitedField(UnicodeField):

    """
    For text data with limited length.

    The constructor-argument-or-subclass-attribute :attr:`max_length`
    (an integer number greater or equal to 1) is obligatory.
    """

    max_length = None

    def __init__(self, **kwargs):
        super(UnicodeLimitedField, self).__init__(**kwargs)
        if self.max_length is None:
            raise TypeError("'max_length' not specified for {} "
                            "(neither as a class attribute nor "
                            "as a constructor argument)"
                            .format(self.__class__.__qualname__))
        if self.max_length < 1:
            raise ValueError("'max_length' specified for {} should "
                             "not be lesser than 1 ({} given)"
                             .format(self.__class__.__qualname__,
                                     ascii_str(self.max_length)))

    def _validate_value(self, value):
        super(UnicodeLimitedField, self)._validate_value(value)
        if len(value) > self.max_length:
            raise FieldValueTooLongError(
                field=self,
                checked_value=value,
                max_length=self.max_length,
                public_message=(
                    'Length of "{}" is greater than {}'.format(
                        ascii_str(value),
                        self.max_length)))


class UnicodeRegexField(UnicodeField):

    """
    For text data limited by the specified regular expression.

    The constructor-argument-or-subclass-attribute :attr:`regex`
    (a regular expression specified as a :class:`str` or a
    :class:`str`-pattern-based compiled regular expression
    object) is obligatory.
    """

    regex = None
    error_msg_template = '"{}" is not a valid value'

    def __init__(self, **kwargs):
        super(UnicodeRegexField, self).__init__(**kwargs)
        if self.regex is None:
            raise TypeError("'regex' not specified for {} "
                            "(neither as a class attribute "
                            "nor as a constructor argument)"
                            .format(self.__class__.__qualname__))
        if isinstance(self.regex, str):
            self.regex = re.compile(self.regex)

    def _validate_value(self, value):
        super(UnicodeRegexField, self)._validate_value(value)
        if self.regex.search(value) is None:
            raise FieldValueError(public_message=(
                self.error_msg_template.format(ascii_str(value))))


class EmailSimplifiedField(UnicodeLimitedField, UnicodeRegexField):

    """
    For e-mail addresses.

    (Note: values are *not* normalized in any way.)
    """

    max_length = 254
    regex = EMAIL_SIMPLIFIED_REGEX
    error_msg_template = '"{}" is not a valid e-mail address'


class PyEnumField(Field):

    """
    For members of a Python :class:`enum.Enum` class (:attr:`enum_class`,
    obligatory).  A member, or a member's name, or a member's value is
    accepted; the member is returned.
    """

    type_name = 'enum'

    enum_class = None

    def __init__(self, **kwargs):
        super(PyEnumField, self).__init__(**kwargs)
        if self.enum_class is None or not issubclass(self.enum_class, enum.Enum):
            raise TypeError("'enum_class' (an enum.Enum subclass) not "
                            "specified for {}".format(self.__class__.__qualname__))

    def clean_value(self, value):
        value = super(PyEnumField, self).clean_value(value)
        if isinstance(value, self.enum_class):
            return value
        if isinstance(value, str) and value in self.enum_class.__members__:
            return self.enum_class[value]
        try:
            return self.enum_class(value)
        except ValueError:
            raise FieldValueError(public_message=(
                '{} is not a valid {} member'.format(
                    ascii_str(repr(value)),
                    self.enum_class.__qualname__)))


class IntegerField(Field):

    """
    For integer numbers (optionally with min./max. limits defined).

    Strings (such as ``"42"``) and integral floats (such as ``42.0``)
    are accepted; booleans are not.
    """

    type_name = 'integer'

    min_value = None
    max_value = None
    error_msg_template = None

    def clean_value(self, value):
        value = super(IntegerField, self).clean_value(value)
        try:
            value = self._coerce_value(value)
            self._check_range(value)
        except FieldValueError:
            if self.error_msg_template is None:
                raise
            raise FieldValueError(public_message=(
                self.error_msg_template.format(ascii_str(value))))
        return value

    def _coerce_value(self, value):
        try:
            if isinstance(value, bool):
                raise TypeError
            coerced_value = self._do_coerce(value)
            # e.g. float is OK *only* if it is an integer number (such as 42.0)
            if not isinstance(value, (str, bytes, bytearray)) and coerced_value != value:
                raise ValueError
        except (TypeError, ValueError, OverflowError):
            raise FieldValueError(public_message=(
                '"{}" cannot be interpreted as an '
                'integer number'.format(ascii_str(value))))
        assert isinstance(coerced_value, int)
        return coerced_value

    def _do_coerce(self, value):
        return int(value)

    def _check_range(self, value):
        assert isinstance(value, int)
        if self.min_value is not None and value < self.min_value:
            raise FieldValueError(public_message=(
                '{} is lesser than {}'.format(value, self.min_value)))
        if self.max_value is not None and value > self.max_value:
            raise FieldValueError(public_message=(
                '{} is greater than {}'.format(value, self.max_value)))


class FloatField(Field):

    """
    For floating-point numbers (integers and numeric strings are
    accepted and converted; booleans are not).
    """

    type_name = 'float'

    def clean_value(self, value):
        value = super(FloatField, self).clean_value(value)
        try:
            if isinstance(value, bool):
                raise TypeError
            return float(value)
        except (TypeError, ValueError, OverflowError):
            raise FieldValueError(public_message=(
                '"{}" cannot be interpreted as a '
                'floating-point number'.format(ascii_str(value))))


class DecimalField(Field):

    """
    For decimal numbers -- normalized to :class:`decimal.Decimal`.

    Floats are converted through their :func:`repr` (so that ``0.1``
    gives ``Decimal('0.1')``, not the exact binary value).  Non-finite
    values (NaN, infinities) are rejected.
    """

    type_name = 'decimal'

    def clean_value(self, value):
        value = super(DecimalField, self).clean_value(value)
        try:
            if isinstance(value, bool):
                raise TypeError
            if isinstance(value, float):
                value = repr(value)
            if isinstance(value, str):
                value = value.strip()
            result = decimal.Decimal(value)
            if not result.is_finite():
                raise ValueError
        except (TypeError, ValueError, decimal.InvalidOperation):
            raise FieldValueError(public_message=(
                '"{}" cannot be interpreted as a '
                'decimal number'.format(ascii_str(value))))
        return result


class FlagField(Field):

    """
    For *YES/NO* flags, automatically normalized to :class:`bool`.

    Booleans, the integers ``1`` and ``0``, as well as various
    *YES/NO-like* string variants (such as: ``"yes"``, ``"YES"``,
    ``"y"``, ``"N"``, ``"True"``, ``"false"``, ``"1"``, ``"0"``,
    ``"on"``...) -- are all perfectly OK as input values.
    """

    type_name = 'boolean'

    def clean_value(self, value):
        value = super(FlagField, self).clean_value(value)
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, (bytes, bytearray)):
            value = value.decode('utf-8', 'replace')
        if not isinstance(value, str):
            raise FieldValueError(public_message=(
                '{} is not a valid YES/NO flag'.format(ascii_str(repr(value)))))
        try:
            return str_to_bool(value.strip())
        except ValueError:
            raise FieldValueError(public_message=(
                str_to_bool.PUBLIC_MESSAGE_PATTERN.format(ascii_str(value))))


class DateTimeField(Field):

    """
    For date-and-time (timestamp) values, automatically normalized to UTC.

    The input `value` should be a :class:`str` (*ISO-8601*-formatted)
    or a :class:`datetime.datetime` object (timezone-aware or *naive*).

    Returns: a :class:`datetime.datetime` object -- a *naive* one (i.e.
    not aware of any timezone) unless :attr:`timezone_aware` is true
    (then it is aware, with the UTC timezone set).
    """

    type_name = 'datetime'

    keep_sec_fraction = True
    timezone_aware = False

    def clean_value(self, value):
        value = super(DateTimeField, self).clean_value(value)
        value = self._as_naive_utc_datetime(value)
        if not self.keep_sec_fraction:
            value = value.replace(microsecond=0)
        if self.timezone_aware:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value

    def _as_naive_utc_datetime(self, value):
        if isinstance(value, datetime.datetime):
            return datetime_utc_normalize(value)
        if isinstance(value, (bytes, bytearray)):
            value = value.decode('utf-8', 'replace')
        if isinstance(value, str):
            return self._parse_datetime_string(value)
        raise FieldValueError(public_message=(
            '{} is neither a str nor a datetime.datetime '
            'object'.format(ascii_str(repr(value)))))

    @staticmethod
    def _parse_datetime_string(value):
        try:
            return parse_iso_datetime_to_utc(value)
        except Exception:
            raise FieldValueError(public_message=(
                '"{}" is not a valid date + '
                'time specification'.format(ascii_str(value))))


class DateField(Field):

    """
    For dates -- an *ISO-8601*-formatted :class:`str` or a
    :class:`datetime.date` object (a :class:`datetime.datetime` is
    truncated to its date part).
    """

    type_name = 'date'

    def clean_value(self, value):
        value = super(DateField, self).clean_value(value)
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        if isinstance(value, str):
            try:
                return parse_iso_date(value)
            except ValueError:
                pass
        raise FieldValueError(public_message=(
            '{} is not a valid date specification'.format(ascii_str(repr(value)))))


class TimeField(Field):

    """
    For times of day -- an *ISO-8601*-formatted :class:`str` or a
    :class:`datetime.time` object; timezone-aware ones are normalized
    to UTC (the result is always *naive*).
    """

    type_name = 'time'

    def clean_value(self, value):
        value = super(TimeField, self).clean_value(value)
        if isinstance(value, str):
            try:
                value = parse_iso_time(value)
            except ValueError:
                raise FieldValueError(public_message=(
                    '"{}" is not a valid time specification'.format(ascii_str(value))))
        if not isinstance(value, datetime.time):
            raise FieldValueError(public_message=(
                '{} is not a valid time specification'.format(ascii_str(repr(value)))))
        if value.utcoffset() is not None:
            dt = datetime.datetime.combine(datetime.date(2000, 1, 1), value)
            value = datetime_utc_normalize(dt).time()
        return value


class UUIDField(Field):

    """
    For UUIDs -- given as :class:`uuid.UUID` objects, strings (in any
    form accepted by :class:`uuid.UUID`) or 16-byte :class:`bytes`.

    Returns a :class:`uuid.UUID` object, or -- if :attr:`as_uuid` is
    false -- its canonical :class:`str` form.
    """

    type_name = 'uuid'

    as_uuid = True

    def clean_value(self, value):
        value = super(UUIDField, self).clean_value(value)
        try:
            if isinstance(value, uuid.UUID):
                pass
            elif isinstance(value, str):
                value = uuid.UUID(value.strip())
            elif isinstance(value, (bytes, bytearray)):
                value = uuid.UUID(bytes=bytes(value))
            else:
                raise TypeError
        except (TypeError, ValueError):
            raise FieldValueError(public_message=(
                '{} is not a valid UUID'.format(ascii_str(repr(value)))))
        return value if self.as_uuid else str(value)


class BytesField(Field):

    """
    For binary data (:class:`str` values are UTF-8-encoded).
    """

    type_name = 'binary'

    def clean_value(self, value):
        value = super(BytesField, self).clean_value(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode('utf-8', 'surrogateescape')
        raise FieldValueError(public_message=(
            '{} is not binary data'.format(ascii_str(repr(value)))))


class DictField(Field):

    """
    For mappings -- copied to a new :class:`dict`.

    If :attr:`value_field` is specified (as a :class:`Field` instance)
    each value is cleaned with it.
    """

    type_name = 'map'

    value_field = None

    def clean_value(self, value):
        value = super(DictField, self).clean_value(value)
        if not isinstance(value, collections_abc.Mapping):
            raise FieldValueError(public_message=(
                '{} is not a mapping'.format(ascii_str(repr(value)))))
        if self.value_field is None:
            return copy.deepcopy(dict(value))
        return {k: self.value_field.clean_value(v) for k, v in value.items()}


class JSONField(Field):

    """
    For any JSON-serializable data (e.g., for SQLAlchemy's `JSON`
    columns) -- deep-copied.
    """

    type_name = 'json'

    def clean_value(self, value):
        value = super(JSONField, self).clean_value(value)
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            raise FieldValueError(public_message=(
                '{} is not JSON-serializable'.format(ascii_str(repr(value)))))
        return copy.deepcopy(value)


class ListField(Field):

    """
    For lists of values -- each cleaned by :attr:`item_field`
    (obligatory, a :class:`Field` instance).

    The input should be a *non-string sequence* (:class:`list` or
    :class:`tuple`, or any other :class:`collections.abc.Sequence`, but
    *not* a :class:`str` or :class:`bytes`/:class:`bytearray`).  The
    resultant value is always an ordinary :class:`list`.

    :attr:`allow_empty` (default: :obj:`True`) -- if false, an empty
    sequence causes a cleaning error.
    """

    type_name = 'list'

    item_field = None
    allow_empty = True

    def __init__(self, **kwargs):
        super(ListField, self).__init__(**kwargs)
        if not isinstance(self.item_field, Field):
            raise TypeError("'item_field' (a Field instance) not "
                            "specified for {}".format(self.__class__.__qualname__))

    def clean_value(self, value):
        value = super(ListField, self).clean_value(value)
        if not is_seq(value):
            raise FieldValueError(public_message=(
                '{} is not a list'.format(ascii_str(repr(value)))))
        if not self.allow_empty and not value:
            raise FieldValueError(public_message='The list is empty')
        cleaned = []
        for i, item in enumerate(value):
            if item is None:
                cleaned.append(None)
                continue
            try:
                cleaned.append(self.item_field.clean_value(item))
            except FieldValueError as exc:
                raise FieldValueError(public_message=(
                    'Item #{} of the list: {}'.format(i, exc.public_message))) from exc
            except Exception as exc:
                raise FieldValueError(public_message=(
                    'Item #{} of the list is not valid'.format(i))) from exc
        return cleaned

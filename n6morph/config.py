# Copyright (c) 2013-2025 NASK. All rights reserved.

"""
The *n6morph* configuration.

Configuration is obtained in one of two ways -- from a Pyramid-like
*settings* mapping (whose keys are dotted ``<section>.<option>``
names, and values are raw strings) or from an INI file (read with
the standard :mod:`configparser`).  In both cases option values are
converted according to a *config spec*, e.g.:

    [n6morph]
    empty_values = ('',) :: py_seq
    trim_strings = no :: bool

Each option line consists of: the option name, optionally `=` and the
default value, optionally `::` and the *converter spec*.  An option
without a default value is required.

>>> sect = Config.section('''
...     [foo]
...     bar = 42 :: int
...     spam :: list_of_str
... ''', settings={'foo.spam': 'a, b,c,'})
>>> sect
ConfigSection('foo', {'bar': 42, 'spam': ['a', 'b', 'c']})
>>> sect.sect_name
'foo'
>>> sect['unknown']     # doctest: +ELLIPSIS
Traceback (most recent call last):
  ...
n6morph.config.NoConfigOptionError: ...`unknown` in section `foo`...
"""

import ast
import configparser
import re

from n6morph.common_helpers import (
    ascii_str,
    str_to_bool,
)
from n6morph.exceptions import ConfigError
from n6morph.log_helpers import get_logger


LOGGER = get_logger(__name__)


class NoConfigOptionError(KeyError, ConfigError):

    def __init__(self, sect_name, opt_name):
        self.sect_name = sect_name
        self.opt_name = opt_name
        super(NoConfigOptionError, self).__init__(sect_name, opt_name)

    def __str__(self):
        return '[config] no option `{}` in section `{}`'.format(
            ascii_str(self.opt_name),
            ascii_str(self.sect_name))


class ConfigSection(dict):

    """
    A subclass of `dict`; it represents a configuration section.

    Lookup-by-key failures are signalled with `NoConfigOptionError`
    (which is a subclass of both `KeyError` and `ConfigError`).
    """

    def __init__(self, sect_name, *args, **kwargs):
        self.sect_name = sect_name
        super(ConfigSection, self).__init__(*args, **kwargs)

    def __missing__(self, key):
        raise NoConfigOptionError(self.sect_name, key)

    def __repr__(self):
        return '{}({!r}, {})'.format(
            self.__class__.__qualname__,
            self.sect_name,
            super(ConfigSection, self).__repr__())

    def copy(self):
        return self.__class__(self.sect_name, self)


def _list_of_str(s):
    return [item.strip() for item in s.split(',') if item.strip()]


def _py_seq(s):
    value = ast.literal_eval(s)
    if not isinstance(value, (list, tuple)):
        raise ValueError('{!a} is not a list or tuple literal'.format(s))
    return tuple(value)


class Config(object):

    """
    A helper to obtain configuration sections according to a config spec.

    The most important method is `Config.section()` -- see the module
    docstring.
    """

    BASIC_CONVERTERS = {
        'str': str,
        'bool': str_to_bool,
        'int': int,
        'float': float,
        'list_of_str': _list_of_str,
        'py': ast.literal_eval,
        'py_seq': _py_seq,
    }

    _OPT_SPEC_REGEX = re.compile(r'''
        \A
        (?P<opt_name>
            [^\s=:]+
        )
        \s*
        (?:
            =
            \s*
            (?P<default>
                .*?
            )
        )?
        \s*
        (?:
            ::
            \s*
            (?P<conv_spec>
                \w+
            )
        )?
        \s*
        \Z
    ''', re.VERBOSE)

    @classmethod
    def section(cls, config_spec, settings=None, path=None):
        """
        Get the (only) section described by `config_spec`, with values
        taken from `settings` (a Pyramid-like mapping) or from the INI
        file specified as `path`, or just the defaults (if neither is
        given).

        Raises:
            `ConfigError` if the spec does not describe exactly one
            section, if an illegal option is given, if a required
            option is missing or if a value cannot be converted.
        """
        sect_name, opt_specs = cls._parse_config_spec(config_spec)
        if settings is not None:
            raw_opts = cls._get_raw_opts_from_settings(sect_name, settings)
        elif path is not None:
            raw_opts = cls._get_raw_opts_from_file(sect_name, path)
        else:
            raw_opts = {}
        illegal = sorted(set(raw_opts) - set(opt_specs))
        if illegal:
            raise ConfigError('[config] illegal options in section `{}`: {}'.format(
                sect_name,
                ', '.join(map(ascii_str, illegal))))
        sect = ConfigSection(sect_name)
        for opt_name, (default, conv_spec) in opt_specs.items():
            raw_value = raw_opts.get(opt_name, default)
            if raw_value is None:
                raise ConfigError('[config] missing required option `{}` in section `{}`'
                                  .format(opt_name, sect_name))
            sect[opt_name] = cls._convert(sect_name, opt_name, raw_value, conv_spec)
        return sect

    @classmethod
    def _parse_config_spec(cls, config_spec):
        sect_name = None
        opt_specs = {}
        for raw_line in config_spec.splitlines():
            line = raw_line.split(';', 1)[0].strip()
            if not line:
                continue
            if line.startswith('[') and line.endswith(']'):
                if sect_name is not None:
                    raise ConfigError('[config spec] only one section is supported')
                sect_name = line[1:-1].strip()
                continue
            match = cls._OPT_SPEC_REGEX.search(line)
            if sect_name is None or match is None:
                raise ConfigError('[config spec] cannot parse line {!a}'.format(line))
            conv_spec = match.group('conv_spec') or 'str'
            if conv_spec not in cls.BASIC_CONVERTERS:
                raise ConfigError('[config spec] unknown converter spec {!a}'.format(conv_spec))
            opt_specs[match.group('opt_name')] = (match.group('default'), conv_spec)
        if sect_name is None:
            raise ConfigError('[config spec] no section specified')
        return sect_name, opt_specs

    @staticmethod
    def _get_raw_opts_from_settings(sect_name, settings):
        raw_opts = {}
        prefix = sect_name + '.'
        for key, value in settings.items():
            if not isinstance(key, str):
                LOGGER.warning('Ignoring non-`str` settings key %a', key)
                continue
            if not key.startswith(prefix):
                continue
            if not isinstance(value, str):
                LOGGER.warning(
                    'Coercing non-`str` value %a (of setting %s) '
                    'to `str` (before further conversion)',
                    value, ascii_str(key))
                value = str(value)
            raw_opts[key[len(prefix):]] = value
        return raw_opts

    @staticmethod
    def _get_raw_opts_from_file(sect_name, path):
        parser = configparser.ConfigParser(interpolation=None)
        try:
            with open(path, encoding='utf-8') as f:
                parser.read_file(f)
        except (OSError, UnicodeError, configparser.Error) as exc:
            raise ConfigError('[config] cannot read the file {!a} ({})'.format(
                path, ascii_str(exc))) from exc
        if not parser.has_section(sect_name):
            return {}
        return dict(parser.items(sect_name))

    @classmethod
    def _convert(cls, sect_name, opt_name, raw_value, conv_spec):
        converter = cls.BASIC_CONVERTERS[conv_spec]
        try:
            return converter(raw_value)
        except (ValueError, TypeError, SyntaxError) as exc:
            raise ConfigError(
                '[config] error when converting option `{}` in section `{}` '
                '(raw value: {!a}; converter spec: {}): {}'.format(
                    opt_name, sect_name, raw_value, conv_spec,
                    ascii_str(exc))) from exc


#
# The library's own configuration

MORPH_CONFIG_SPEC = '''
    [n6morph]

    ; param values to be treated as `None` when casting
    empty_values = ('',) :: py_seq

    ; names of fields considered timestamps (`exclude_timestamps`)
    timestamp_fields = inserted_at, updated_at :: list_of_str

    ; whether text values are stripped before being cleaned
    trim_strings = no :: bool

    ; whether `InvalidChangesetError` occurrences are logged (DEBUG)
    log_invalid_changesets = no :: bool
'''

_active_config = Config.section(MORPH_CONFIG_SPEC)


def get_config():
    """Get the active `ConfigSection` of the *n6morph* configuration."""
    return _active_config


def configure(settings=None, path=None):
    """
    Replace the active *n6morph* configuration with a new one -- taken
    from `settings` (a Pyramid-like mapping with ``n6morph.``-prefixed
    keys) or from the INI file specified as `path`, or with the
    defaults (if neither is given).

    Returns:
        The new `ConfigSection`.

    >>> sect = configure(settings={'n6morph.trim_strings': 'yes'})
    >>> sect['trim_strings']
    True
    >>> configure()['trim_strings']
    False
    """
    global _active_config
    new_config = Config.section(MORPH_CONFIG_SPEC, settings=settings, path=path)
    _active_config = new_config
    LOGGER.debug('n6morph configuration set to: %r', new_config)
    return new_config

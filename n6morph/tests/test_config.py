# Copyright (c) 2013-2025 NASK. All rights reserved.

import os.path
import tempfile
import unittest

from unittest_expander import (
    expand,
    foreach,
    param,
)

from n6morph.config import (
    MORPH_CONFIG_SPEC,
    Config,
    ConfigSection,
    NoConfigOptionError,
    configure,
    get_config,
)
from n6morph.exceptions import ConfigError
from n6morph.tests._generic_helpers import TestCaseMixin



# NOTE: the basics of Config.section() and ConfigSection are
# already covered by doctests



DEFAULTS = {
    'empty_values': ('',),
    'timestamp_fields': ['inserted_at', 'updated_at'],
    'trim_strings': False,
    'log_invalid_changesets': False,
}


@expand
class TestConfig_section(TestCaseMixin, unittest.TestCase):

    def test_defaults(self):
        sect = Config.section(MORPH_CONFIG_SPEC)
        self.assertIsInstance(sect, ConfigSection)
        self.assertEqual(sect.sect_name, 'n6morph')
        self.assertEqualIncludingTypes(dict(sect), DEFAULTS)

    def test_from_settings(self):
        sect = Config.section(MORPH_CONFIG_SPEC, settings={
            'n6morph.empty_values': "('', '-', None)",
            'n6morph.trim_strings': 'true',
            'n6morph.timestamp_fields': 'created',
            'other_section.foo': 'bar',
            42: 'ignored',
        })
        self.assertEqual(dict(sect), dict(
            DEFAULTS,
            empty_values=('', '-', None),
            trim_strings=True,
            timestamp_fields=['created']))

    def test_empty_values_list_literal(self):
        sect = Config.section(MORPH_CONFIG_SPEC, settings={
            'n6morph.empty_values': "['', 'N/A']",
        })
        self.assertEqualIncludingTypes(sect['empty_values'], ('', 'N/A'))

    def test_non_str_setting_coerced(self):
        sect = Config.section(MORPH_CONFIG_SPEC, settings={'n6morph.trim_strings': 1})
        self.assertIs(sect['trim_strings'], True)

    def test_from_file(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = os.path.join(tmp_dir, 'n6morph.conf')
            with open(path, 'w', encoding='utf-8') as f:
                f.write('[n6morph]\n'
                        'log_invalid_changesets = yes\n'
                        'timestamp_fields = modified_at, inserted_at\n'
                        '\n'
                        '[whatever]\n'
                        'spam = ham\n')
            sect = Config.section(MORPH_CONFIG_SPEC, path=path)
        self.assertEqual(dict(sect), dict(
            DEFAULTS,
            log_invalid_changesets=True,
            timestamp_fields=['modified_at', 'inserted_at']))

    def test_from_file_without_the_section(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = os.path.join(tmp_dir, 'other.conf')
            with open(path, 'w', encoding='utf-8') as f:
                f.write('[other]\nfoo = bar\n')
            sect = Config.section(MORPH_CONFIG_SPEC, path=path)
        self.assertEqual(dict(sect), DEFAULTS)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            with self.assertRaises(ConfigError):
                Config.section(MORPH_CONFIG_SPEC,
                               path=os.path.join(tmp_dir, 'nonexistent.conf'))

    @foreach(
        param(settings={'n6morph.spam': 'x'}).label('illegal option'),
        param(settings={'n6morph.trim_strings': 'maybe'}).label('bad bool'),
        param(settings={'n6morph.empty_values': '(('}).label('bad py literal'),
        param(settings={'n6morph.empty_values': "'N/A'"}).label('empty values not a sequence'),
        param(settings={'n6morph.empty_values': "{'': None}"}).label('empty values as a dict'),
    )
    def test_error(self, settings):
        with self.assertRaises(ConfigError):
            Config.section(MORPH_CONFIG_SPEC, settings=settings)

    def test_required_option(self):
        spec = '''
            [foo]
            bar :: int
        '''
        with self.assertRaises(ConfigError):
            Config.section(spec)
        self.assertEqual(Config.section(spec, settings={'foo.bar': '7'}), {'bar': 7})

    @foreach(
        param(spec='bar = 1').label('no section'),
        param(spec='[a]\n[b]').label('two sections'),
        param(spec='[a]\nbar = 1 :: nonexistent').label('unknown converter'),
    )
    def test_illegal_spec(self, spec):
        with self.assertRaises(ConfigError):
            Config.section(spec)

    def test_missing_option_lookup(self):
        sect = Config.section(MORPH_CONFIG_SPEC)
        with self.assertRaises(NoConfigOptionError) as cm:
            sect['nonexistent']
        self.assertIsInstance(cm.exception, KeyError)
        self.assertIsInstance(cm.exception, ConfigError)


class Test_configure(unittest.TestCase):

    def tearDown(self):
        configure()

    def test_configure_replaces_active_config(self):
        new = configure(settings={'n6morph.trim_strings': 'yes'})
        self.assertIs(get_config(), new)
        self.assertIs(get_config()['trim_strings'], True)
        configure()
        self.assertIs(get_config()['trim_strings'], False)

    def test_failed_configure_keeps_active_config(self):
        old = get_config()
        with self.assertRaises(ConfigError):
            configure(settings={'n6morph.trim_strings': 'maybe'})
        self.assertIs(get_config(), old)

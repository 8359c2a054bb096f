# Copyright (c) 2013-2025 NASK. All rights reserved.

import collections
import logging
import logging.config
import os.path
import sys
import traceback


TOPLEVEL_PACKAGE_NAMES = ('n6morph',)

DEFAULT_LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


def get_logger(name=None):
    """
    Like logging.getLogger(...) but replacing '__main__' with a sensible name.

    For example, if the script path is '/whatever/n6morph/utils/foo.py'
    get_logger('__main__') is equivalent to logging.getLogger('n6morph.utils.foo').
    """
    if name == '__main__':
        # try to get the script path from __main__.__file__
        script_path = getattr(sys.modules['__main__'], '__file__', None)
        if not script_path:
            # or, if __main__ does not have a non-blank __file__ attribute,
            # extract the script path from sys.argv...
            script_path = sys.argv[0]
        # strip off the filename extension...
        remaining = os.path.splitext(script_path)[0]
        # ..and pop path name segments up to
        # (and including) the toplevel package name
        aggregated_segments = collections.deque()
        while True:
            remaining, segment = os.path.split(remaining)
            segment = segment.replace('.', 'D')  # just in case of '.' or '..'
            aggregated_segments.appendleft(segment)
            if segment in TOPLEVEL_PACKAGE_NAMES or remaining in ('', '/'):
                break
        name = '.'.join(aggregated_segments)
    return logging.getLogger(name)


_LOGGER = get_logger(__name__)


_loaded_configuration_paths = set()

def configure_logging(path=None, level=logging.INFO):
    """
    Configure logging -- either from the given *logging.conf*-like file
    (using :func:`logging.config.fileConfig`) or, if `path` is not
    specified, by adding a basic *stderr* handler to the root logger.

    Loading the same file more than once is ignored (with a warning).

    Raises:
        :exc:`RuntimeError` if the file cannot be read or applied.
    """
    if path is None:
        logging.basicConfig(level=level, format=DEFAULT_LOG_FORMAT)
        return
    if path in _loaded_configuration_paths:
        _LOGGER.warning('ignored attempt to load logging configuration '
                        'file %r that has already been used', path)
        return
    try:
        _try_reading(path)
    except OSError as exc:
        raise RuntimeError('logging configuration not loaded: '
                           'could not open the file {!r} ({})'
                           .format(path, exc)) from exc
    try:
        logging.config.fileConfig(path, disable_existing_loggers=False)
    except Exception:
        raise RuntimeError('error while configuring logging, '
                           'using settings from configuration file {0!r}:\n{1}'
                           .format(path, traceback.format_exc()))
    _LOGGER.info('logging configuration loaded from %r', path)
    _loaded_configuration_paths.add(path)


def _try_reading(path):
    open(path).close()

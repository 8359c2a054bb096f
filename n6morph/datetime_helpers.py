# Copyright (c) 2013-2025 NASK. All rights reserved.

import calendar
import datetime

from n6morph.regexes import (
    ISO_DATE_REGEX,
    ISO_TIME_REGEX,
    ISO_DATETIME_REGEX,
)


def datetime_utc_normalize(dt):
    """
    Normalize a :class:`datetime.datetime` to a naive UTC one.

    Args:
        `dt`: A :class:`datetime.datetime` instance (naive or TZ-aware).

    Returns:
        An equivalent *naive* :class:`datetime.datetime` instance.

    >>> naive_dt = datetime.datetime(2013, 6, 6, 12, 13, 57, 751219)
    >>> datetime_utc_normalize(naive_dt)
    datetime.datetime(2013, 6, 6, 12, 13, 57, 751219)

    >>> tzinfo = datetime.timezone(datetime.timedelta(minutes=120))
    >>> tz_aware_dt = datetime.datetime(2013, 6, 6, 14, 13, 57, 751219,
    ...                                 tzinfo=tzinfo)
    >>> datetime_utc_normalize(tz_aware_dt)
    datetime.datetime(2013, 6, 6, 12, 13, 57, 751219)
    """
    if dt.utcoffset() is None:
        return dt
    return dt.astimezone(datetime.timezone.utc).replace(tzinfo=None)


def parse_iso_date(s, prestrip=True):
    """
    Parse *ISO-8601*-formatted date.

    Args:
        `s`: *ISO-8601*-formatted date as a `str`.

    Kwargs:
        `prestrip` (default: :obj:`True`):
            Whether the :meth:`strip` method should be called on the
            input string before performing the actual processing.

    Returns:
        A :class:`datetime.date` instance.

    Raises:
        :exc:`~exceptions.ValueError` for invalid input.

    >>> parse_iso_date('2013-06-13')
    datetime.date(2013, 6, 13)
    >>> parse_iso_date(' 20130613 ')
    datetime.date(2013, 6, 13)
    >>> parse_iso_date('2013-164')
    datetime.date(2013, 6, 13)
    >>> parse_iso_date('2013-02-29')     # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
      ...
    ValueError: ...
    >>> parse_iso_date('2013-366')       # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
      ...
    ValueError: ...
    """
    if prestrip:
        s = s.strip()
    match = ISO_DATE_REGEX.match(s)
    if match:
        return _make_date_from_match(match)
    raise ValueError('could not parse {!a} as ISO date'.format(s))


def parse_iso_time(s, prestrip=True):
    """
    Parse *ISO-8601*-formatted time.

    Returns:
        A :class:`datetime.time` instance (a TZ-aware one if the input
        does include time zone information, otherwise a naive one).

    Raises:
        :exc:`~exceptions.ValueError` for invalid input.

    *ISO-8601*-enabled "leap second" (60) is accepted but silently
    converted to 59 seconds + 999999 microseconds.

    >>> parse_iso_time('10:02')
    datetime.time(10, 2)
    >>> parse_iso_time('10:02:37.5')
    datetime.time(10, 2, 37, 500000)
    >>> parse_iso_time('10:02:60')
    datetime.time(10, 2, 59, 999999)
    >>> parse_iso_time('25:02')          # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
      ...
    ValueError: ...
    """
    if prestrip:
        s = s.strip()
    match = ISO_TIME_REGEX.match(s)
    if match:
        return _make_time_from_match(match)
    raise ValueError('could not parse {!a} as ISO time'.format(s))


def parse_iso_datetime(s, prestrip=True):
    """
    Parse *ISO-8601*-formatted combined date and time.

    Returns:
        A :class:`datetime.datetime` instance (a TZ-aware one if the
        input does include time zone information, otherwise a naive
        one).

    Raises:
        :exc:`~exceptions.ValueError` for invalid input.

    For notes about some limitations -- see :func:`parse_iso_date` and
    :func:`parse_iso_time`.
    """
    if prestrip:
        s = s.strip()
    match = ISO_DATETIME_REGEX.match(s)
    if match:
        d = _make_date_from_match(match)
        t = _make_time_from_match(match)
        if match.group('hour') == '24':
            d += datetime.timedelta(1)
        return datetime.datetime.combine(d, t)
    raise ValueError('could not parse {!a} as ISO combined date + time'
                     .format(s))


def parse_iso_datetime_to_utc(s, prestrip=True):
    """
    Parse *ISO-8601*-formatted combined date and time, and normalize it to UTC.

    Returns:
        A :class:`datetime.datetime` instance (a naive one, normalized
        to UTC).

    Raises:
        :exc:`~exceptions.ValueError` for invalid input.

    This function processes input by calling :func:`parse_iso_datetime`
    and :func:`datetime_utc_normalize`.

    >>> parse_iso_datetime_to_utc('2013-06-13T10:02Z')
    datetime.datetime(2013, 6, 13, 10, 2)
    >>> parse_iso_datetime_to_utc('2013-06-13 10:02')
    datetime.datetime(2013, 6, 13, 10, 2)
    >>> parse_iso_datetime_to_utc('2013-06-13 10:02+02:00')
    datetime.datetime(2013, 6, 13, 8, 2)
    >>> parse_iso_datetime_to_utc('2013-06-13T24:00-01')
    datetime.datetime(2013, 6, 14, 1, 0)
    >>> parse_iso_datetime_to_utc('2013-06-13')      # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
      ...
    ValueError: ...
    """
    dt = parse_iso_datetime(s, prestrip=prestrip)
    return datetime_utc_normalize(dt)


def _make_date_from_match(match):
    g = match.groupdict()
    year = int(g['year'])
    if g['month']:
        return datetime.date(year,
                             int(g['month']),
                             int(g['day']))
    ordinalday = int(g['ordinalday'])
    if not 1 <= ordinalday <= 366:
        raise ValueError('ordinal day number {!a} is out of '
                         'range 001..366'.format(ordinalday))
    if ordinalday == 366 and not calendar.isleap(year):
        raise ValueError('ordinal day number {!a} is out of range '
                         'for year {!a} (which is not a leap year)'
                         .format(ordinalday, year))
    return datetime.date(year, 1, 1) + datetime.timedelta(ordinalday - 1)


def _make_time_from_match(match):
    g = match.groupdict()
    hour = int(g['hour'])
    if hour == 24:
        hour = 0
    minute = int(g['minute'])
    if g['secondfraction']:
        fract_str = g['secondfraction']
        microsecond = (int(fract_str) * 1000000) // (10 ** len(fract_str))
        microsecond = min(microsecond, 999999)  # must be less than million
    else:
        microsecond = 0
    if g['second']:
        second = int(g['second'])
        if second == 60:  # ISO 'leap second' -- not supported by datetime
            second = 59
            microsecond = max(microsecond, 999999)
    else:
        second = 0
    if g['tzhour']:
        utc_offset = int(g['tzhour']) * 60
        if g['tzminute']:
            tzminute = int(g['tzminute'])
            if tzminute > 59:
                raise ValueError('minute part {!a} in time zone designator '
                                 'is out of range 00..59'.format(tzminute))
            if g['tzhour'].startswith('-'):
                utc_offset -= tzminute
            else:
                utc_offset += tzminute
        tzinfo = datetime.timezone(datetime.timedelta(minutes=utc_offset))
    else:
        tzinfo = None
    return datetime.time(hour, minute, second, microsecond, tzinfo)

# Copyright (c) 2013-2025 NASK. All rights reserved.

"""
This module contains several regular expression objects (used in
other parts of the *n6morph* library).
"""


import re


#: E-mail address (very rough validation).
#:
#: Used by :class:`n6morph.fields.EmailSimplifiedField`.
EMAIL_SIMPLIFIED_REGEX = re.compile(r'''
    \A
    [^@\s]+
    @
    [^@\s]+
    \Z
''', re.UNICODE | re.VERBOSE)


ISO_DATE_REGEX = re.compile(
    # here we don't check ranges of particular values (e.g. that month is
    # in 01..12) because it is better to do it in functions that use this
    # regex (-> better debug information in case of incorrect input data)

    r'''
    \A
    (?P<year>
        \d{4}
    )
    -?
    (?:
        (?P<month>
            \d{2}
        )
        -?
        (?P<day>
            \d{2}
        )
    |
        (?P<ordinalday>
            \d{3}
        )
    )
    \Z
    ''', re.ASCII | re.VERBOSE)


ISO_TIME_REGEX = re.compile(
    # here we don't check ranges of particular values (e.g. that minute is
    # in 00..59) because it is better to do it in functions that use this
    # regex (-> better debug information in case of incorrect input data)

    r'''
    \A
    (?P<hour>
        \d{2}
    )
    :?
    (?P<minute>
        \d{2}
    )
    (?:
        :?
        (?P<second>
            \d{2}
        )
        (?:
            \.
            (?P<secondfraction>
                \d+
            )
        )?
    )?
    (?:
        Z
    |
        (?:
            (?P<tzhour>
                [+-]
                \d{2}
            )
            (?:
                :?
                (?P<tzminute>
                    \d{2}
                )
            )?
        )
    )?
    \Z
    ''', re.ASCII | re.VERBOSE)


ISO_DATETIME_REGEX = re.compile(
    r'{date}[T\s]{time}'.format(date=ISO_DATE_REGEX.pattern.rstrip('Z\\ \r\n'),
                                time=ISO_TIME_REGEX.pattern.lstrip('A\\ \r\n')),
    re.ASCII | re.VERBOSE)

######################################################################
# Copyright 2016, 2024 John J. Rofrano. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
######################################################################
"""
Argument transforms

Step arguments may carry phrases that only make sense at run time:

  "the date of 2 days ago"      -> "2024-05-01"
  "a time of 1 hour ago"        -> "13:04:55"
  "the datetime of +1 week"     -> "2024-05-10 14:04:55"
  "=>Member.admin"              -> the id of the "admin" Member fixture

resolve() applies whichever of these matches and returns anything else
untouched.
"""

import re
from datetime import datetime
from typing import Optional

from dateutil import parser as dateparser
from dateutil.relativedelta import relativedelta

RELATIVE_PHRASE = re.compile(r"^(?:the|a) (?P<kind>date|time|datetime) of (?P<expr>.*)$")
FIXTURE_REFERENCE = re.compile(r"^=>(?P<model>[^.]+)\.(?P<identifier>.+)$")
TERM = re.compile(
    r"(?P<sign>[+-])?\s*(?P<amount>\d+)\s*"
    r"(?P<unit>second|sec|minute|min|hour|day|week|fortnight|month|year)s?"
    r"(?P<ago>\s+ago)?",
    re.IGNORECASE,
)
UNITS = {
    "second": "seconds",
    "sec": "seconds",
    "minute": "minutes",
    "min": "minutes",
    "hour": "hours",
    "day": "days",
    "week": "weeks",
    "month": "months",
    "year": "years",
}
KEYWORDS = {
    "now": relativedelta(),
    "today": relativedelta(hour=0, minute=0, second=0, microsecond=0),
    "tomorrow": relativedelta(days=+1, hour=0, minute=0, second=0, microsecond=0),
    "yesterday": relativedelta(days=-1, hour=0, minute=0, second=0, microsecond=0),
}


def resolve_datetime(expr: str, now: Optional[datetime] = None) -> datetime:
    """Resolve a relative or absolute date expression against ``now``."""
    now = now or datetime.now()
    text = expr.strip().lower()
    if text in KEYWORDS:
        return now + KEYWORDS[text]

    consumed = 0
    delta = relativedelta()
    for match in TERM.finditer(text):
        if text[consumed:match.start()].strip():
            break
        amount = int(match.group("amount"))
        if match.group("sign") == "-" or match.group("ago"):
            amount = -amount
        unit = match.group("unit").lower()
        if unit == "fortnight":
            delta += relativedelta(weeks=2 * amount)
        else:
            delta += relativedelta(**{UNITS[unit]: amount})
        consumed = match.end()
    if consumed and not text[consumed:].strip():
        return now + delta

    try:
        return dateparser.parse(expr, default=now.replace(hour=0, minute=0, second=0, microsecond=0))
    except (ValueError, OverflowError) as error:
        raise ValueError(f"Can't resolve '{expr}' into a valid datetime value") from error


def cast_relative(kind: str, expr: str, settings, now: Optional[datetime] = None) -> str:
    """Format a resolved expression with the date, time or datetime format"""
    formats = {
        "date": settings.date_format,
        "time": settings.time_format,
        "datetime": settings.datetime_format,
    }
    return resolve_datetime(expr, now).strftime(formats[kind])


def resolve(value, settings, fixtures=None, now: Optional[datetime] = None):
    """Apply the relative-date and fixture-reference transforms to ``value``."""
    if not isinstance(value, str):
        return value

    match = RELATIVE_PHRASE.match(value)
    if match:
        return cast_relative(match.group("kind"), match.group("expr"), settings, now)

    match = FIXTURE_REFERENCE.match(value)
    if match:
        identifier = None
        if fixtures is not None:
            identifier = fixtures.factory.get_id(match.group("model"), match.group("identifier"))
        if not identifier:
            raise ValueError(f'Cannot resolve reference "{value}", no matching fixture found')
        return identifier

    return value

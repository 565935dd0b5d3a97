"""Column name normalization and read-time value casting.

Airtable has no client-visible schema, so column names are freeform strings
("First Name", "Due date", ...). Records keep a mapping from the normalized
form of each column name back to the real one, which lets callers write
``record["first_name"]`` for a column named ``"First Name"``.
"""

import re
import datetime
import logging

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

_non_word_re = re.compile(r'\W+')
_date_prefix_re = re.compile(r'\d{4}-\d{2}-\d{2}')


def normalize_field_name(key):
    """Return the tolerant lookup key for a column name.

       Strips surrounding whitespace, collapses every run of non-word
       characters into a single underscore and lowercases the result:

         normalize_field_name(" First Name ") == "first_name"
         normalize_field_name("FIRST-NAME") == "first_name"

    """
    return _non_word_re.sub('_', str(key).strip()).lower()


def type_cast(value):
    """Cast a raw field value read from the server.

       Strings beginning with a YYYY-MM-DD date are parsed into a
       timezone-aware datetime, interpreted as UTC when no offset is
       present. Everything else is returned unchanged.
    """
    if isinstance(value, str) and _date_prefix_re.match(value):
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError) as e:
            logger.debug("Unable to parse date-like value %r: %s" % (value, e))
            return value
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=datetime.timezone.utc)
        return parsed
    return value


def serialize_value(value):
    """Convert a field value into its JSON request form.

       Dates and datetimes become ISO 8601 text, recursing into lists
       and mappings. Other values are returned unchanged.
    """
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    return value

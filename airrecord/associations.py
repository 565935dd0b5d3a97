"""Relationships between tables.

A linked-record column holds a list of foreign record ids. Airtable's web
interface lists linked records in the reverse order of the API, so ids are
reversed when read and reversed again when written. Callers therefore see
the same order the web interface shows, and a value assigned to a relation
reads back in the order it was given.
"""

from typing import NamedTuple, Any


class Association (NamedTuple):
    """Declaration of a relation on a table.

       Attributes:
         name: relation name, also exposed as a record attribute
         target: the related Table, or a zero-argument callable returning it
         column: the linked-record column holding the foreign ids
         single: True for belongs_to/has_one, False for has_many
    """
    name: str
    target: Any
    column: str
    single: bool = False

    def target_table(self):
        target = self.target
        # tables referring to each other are declared through a callable
        if callable(target) and not hasattr(target, "find_many"):
            target = target()
        return target


def resolve(record, association):
    """Fetch the record(s) referenced by `association` on `record`.

       Returns a single record (or None) for single associations and a
       list ordered as displayed by Airtable for many associations.
    """
    ids = list(reversed(record.get(association.column) or []))
    table = association.target_table()
    if association.single:
        return table.find(ids[0]) if ids else None
    return table.find_many(ids)


def assign(record, association, value):
    """Store the ids of `value` in the association column of `record`.

       `value` may be a record, None, or a sequence of records. The change
       goes through record.set() and is written by the next save().
    """
    if value is None:
        targets = []
    elif isinstance(value, (list, tuple)):
        targets = list(value)
    else:
        targets = [value]
    record.set(association.column, [target.id for target in reversed(targets)])

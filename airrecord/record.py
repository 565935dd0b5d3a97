import datetime
import logging

from dateutil import parser as date_parser

from .utils.core_utils import LogicError
from .fields import normalize_field_name, type_cast, serialize_value
from . import associations

logger = logging.getLogger(__name__)


def _freeze(value):
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


class Record (object):
    """One row of an Airtable table, held as mutable local state.

       A record without an id is new, i.e. not yet persisted. The id is
       assigned exactly once, by a successful `create()`, and never
       changes afterwards.

       Field access is tolerant of column name spelling: when a key is
       not an exact column name, its normalized form (see
       `normalize_field_name`) is looked up instead, so a column named
       "First Name" can be read as record["first_name"].

       Local changes made through `set()` are tracked in `updated_keys`
       and only those columns are sent by `save()`.

       Associations declared on the owning table are available as
       attributes, e.g. record.tasks and record.tasks = [task1, task2].
    """

    def __init__(self, table, fields=None, id=None, created_at=None):
        object.__setattr__(self, 'table', table)
        object.__setattr__(self, '_id', id)
        object.__setattr__(self, '_created_at', None)
        self._set_created_at(created_at)
        self._replace_fields(fields or {})

    @property
    def id(self):
        return self._id

    @property
    def created_at(self):
        return self._created_at

    @property
    def new_record(self):
        return self._id is None

    @property
    def fields(self):
        return dict(self._fields)

    @property
    def column_mappings(self):
        return dict(self._column_mappings)

    @property
    def updated_keys(self):
        return list(self._updated_keys)

    def _replace_fields(self, fields):
        object.__setattr__(self, '_updated_keys', [])
        object.__setattr__(self, '_column_mappings', {normalize_field_name(key): key for key in fields})
        object.__setattr__(self, '_fields', dict(fields))

    def _set_created_at(self, created_at):
        if not created_at:
            return
        parsed = date_parser.parse(created_at)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=datetime.timezone.utc)
        object.__setattr__(self, '_created_at', parsed)

    def _canonical_key(self, key):
        if key in self._fields:
            return key
        return self._column_mappings.get(normalize_field_name(key))

    def get(self, key):
        """Return the type-cast value of a column, or None if absent."""
        canonical = self._canonical_key(key)
        if canonical is None:
            return None
        return type_cast(self._fields[canonical])

    def set(self, key, value):
        """Set the value of a column and mark it as changed.

           Setting a column to the value it already holds does nothing,
           so no redundant write is issued by the next save().
        """
        canonical = self._canonical_key(key)
        if canonical is None:
            canonical = key
        else:
            current = self._fields[canonical]
            # get() returns the cast value, so either form counts as unchanged
            if current == value or type_cast(current) == value:
                return
        if canonical not in self._updated_keys:
            self._updated_keys.append(canonical)
        self._fields[canonical] = value

    __getitem__ = get
    __setitem__ = set

    def __contains__(self, key):
        return self._canonical_key(key) is not None

    def keys(self):
        return list(self._fields.keys())

    def serializable_fields(self):
        return {key: serialize_value(value) for key, value in self._fields.items()}

    def create(self):
        if not self.new_record:
            raise LogicError("Record already exists (record has an id)")

        body = {"fields": self.serializable_fields()}
        logger.debug("Creating record in table %s" % self.table.table_name)
        parsed = self.table._request("post", self.table.path(), json=body)
        object.__setattr__(self, '_id', parsed["id"])
        self._set_created_at(parsed.get("createdTime"))
        self._replace_fields(parsed.get("fields", {}))
        return self

    def save(self):
        if self.new_record:
            raise LogicError("Unable to save a new record")

        if not self._updated_keys:
            return True

        # only changed columns are sent, so computed columns are never overwritten
        body = {"fields": {key: serialize_value(self._fields[key]) for key in self._updated_keys}}
        logger.debug("Updating %d field(s) of record %s" % (len(self._updated_keys), self._id))
        parsed = self.table._request("patch", self.table.path(self._id), json=body)
        self._replace_fields(parsed.get("fields", {}))
        return True

    def destroy(self):
        if self.new_record:
            raise LogicError("Unable to destroy new record")

        logger.debug("Deleting record %s" % self._id)
        self.table._request("delete", self.table.path(self._id))
        return True

    def reload(self):
        """Replace local state with the current server copy, discarding unsaved changes."""
        if self.new_record:
            raise LogicError("Unable to reload new record")

        parsed = self.table._request("get", self.table.path(self._id))
        self._set_created_at(parsed.get("createdTime"))
        self._replace_fields(parsed.get("fields", {}))
        return self

    def related(self, name):
        """Resolve the association `name` declared on the owning table."""
        return associations.resolve(self, self.table.associations[name])

    def relate(self, name, value):
        """Assign one record, a list of records, or None to the association `name`."""
        associations.assign(self, self.table.associations[name], value)

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        table = self.__dict__.get('table')
        if table is not None and name in table.associations:
            return self.related(name)
        raise AttributeError("%r object has no attribute %r" % (type(self).__name__, name))

    def __setattr__(self, name, value):
        table = self.__dict__.get('table')
        if table is not None and name in table.associations:
            self.relate(name, value)
        else:
            object.__setattr__(self, name, value)

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self.table.identity == other.table.identity and \
            self.serializable_fields() == other.serializable_fields()

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash((self.table.identity, _freeze(self.serializable_fields())))

    def __repr__(self):
        return "<%s %s/%s id=%s %r>" % (type(self).__name__, self.table.base_id, self.table.table_name,
                                       self._id, self._fields)

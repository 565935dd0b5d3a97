import logging
from collections.abc import Mapping

from .utils.core_utils import get_credential
from .airtable_binding import ClientRegistry
from .associations import Association
from .record import Record

logger = logging.getLogger(__name__)


def _sort_params(sort):
    """Expand a sort option into Airtable's sort[i][field]/sort[i][direction] parameters.

       Accepts a mapping of column to direction, or a sequence whose items
       are (column, direction) pairs or bare column names (ascending).
    """
    items = sort.items() if isinstance(sort, Mapping) else sort
    params = []
    for i, item in enumerate(items):
        if isinstance(item, str):
            field, direction = item, "asc"
        else:
            field, direction = item
        params.append(("sort[%d][field]" % i, str(field)))
        params.append(("sort[%d][direction]" % i, str(direction)))
    return params


def _formula_literal(value):
    return "'%s'" % str(value).replace("\\", "\\\\").replace("'", "\\'")


class Table (object):
    """Gateway to one table of an Airtable base.

       A Table holds configuration only: which base and table to talk to,
       which credential to use, and which associations link it to other
       tables. It produces Record instances but does not keep them.

       Tables using the same ClientRegistry share one AirtableBinding per
       API key. Without a registry or explicit binding, the table gets a
       registry of its own.
    """
    record_class = Record

    def __init__(self, base_id, table_name, api_key=None, registry=None, binding=None, record_class=None):
        self.base_id = base_id
        self.table_name = table_name
        self.api_key = api_key if binding is not None else get_credential(api_key)
        self.registry = registry if registry is not None else ClientRegistry()
        self._binding = binding
        if record_class is not None:
            self.record_class = record_class
        self.associations = {}

    @property
    def binding(self):
        if self._binding is not None:
            return self._binding
        return self.registry.get(self.api_key)

    @property
    def identity(self):
        return self.base_id, self.table_name

    def path(self, record_id=None):
        path = "/%s/%s" % (self.base_id, self.binding.escape(self.table_name))
        if record_id is not None:
            path += "/%s" % record_id
        return path

    def _request(self, method, path, **kwargs):
        """Execute a request and return its parsed body, raising RemoteError on failure."""
        binding = self.binding
        response = getattr(binding, method)(path, **kwargs)
        parsed = binding.parse(response)
        if not response.ok:
            binding.handle_error(response.status_code, parsed)
        return parsed

    def _record_from(self, data):
        return self.record_class(self, data.get("fields", {}), id=data.get("id"), created_at=data.get("createdTime"))

    def new(self, fields=None):
        """Return a new, unsaved record bound to this table."""
        return self.record_class(self, fields)

    def create(self, fields):
        """Create a record with `fields` on the server and return it."""
        return self.new(fields).create()

    def find(self, record_id):
        """Fetch a single record by id."""
        logger.debug("Fetching record %s from table %s" % (record_id, self.table_name))
        parsed = self._request("get", self.path(record_id))
        return self.record_class(self, parsed.get("fields", {}), id=parsed.get("id", record_id),
                                 created_at=parsed.get("createdTime"))

    def find_many(self, ids):
        """Fetch the records with the given ids, ordered as in `ids`.

           Ids that do not exist are silently missing from the result.
        """
        ids = list(ids)
        if not ids:
            return []
        or_args = ",".join("RECORD_ID() = %s" % _formula_literal(record_id) for record_id in ids)
        formula = "OR(%s)" % or_args
        positions = {}
        for position, record_id in enumerate(ids):
            positions.setdefault(record_id, position)
        records = self.records(filter=formula)
        return sorted(records, key=lambda record: positions.get(record.id, len(ids)))

    def records(self, filter=None, sort=None, view=None, offset=None, paginate=True, fields=None,
                max_records=None, page_size=None):
        """Query the table and return the matching records.

           Arguments:
             filter: formula string, rows for which it evaluates true are returned
             sort: mapping or sequence of (column, direction) pairs
             view: name or id of a view whose filters and order apply
             offset: continuation cursor to start from
             paginate: follow continuation cursors until the last page
             fields: list of columns to return
             max_records: cap on the total number of records
             page_size: number of records per page

           With paginate enabled every page is fetched before returning,
           in fetch order. If any page fails the whole query fails.
        """
        params = []
        if filter:
            params.append(("filterByFormula", filter))
        if sort:
            params.extend(_sort_params(sort))
        if view:
            params.append(("view", view))
        if fields:
            params.extend(("fields[]", field) for field in fields)
        if max_records is not None:
            params.append(("maxRecords", max_records))
        if page_size is not None:
            params.append(("pageSize", page_size))

        path = self.path()
        results = []
        pages = 0
        while True:
            page_params = params + [("offset", offset)] if offset else params
            logger.debug("Fetching %s" % path)
            parsed = self._request("get", path, params=page_params)
            page = [self._record_from(data) for data in parsed.get("records", [])]
            results.extend(page)
            pages += 1
            offset = parsed.get("offset")
            if not (paginate and offset):
                break
        logger.debug("Fetched %d records in %d page(s)" % (len(results), pages))
        return results

    all = records

    def has_many(self, name, target, column, single=False):
        """Declare a relation whose column links to any number of `target` records."""
        association = Association(name, target, column, single)
        self.associations[name] = association
        return association

    def belongs_to(self, name, target, column):
        """Declare a relation whose column links to a single `target` record."""
        return self.has_many(name, target, column, single=True)

    has_one = belongs_to

    def __repr__(self):
        return "<%s %s/%s>" % (type(self).__name__, self.base_id, self.table_name)

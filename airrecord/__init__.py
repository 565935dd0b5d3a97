__version__ = "1.0.0"

from airrecord.utils.core_utils import *
from airrecord.fields import normalize_field_name, type_cast, serialize_value
from airrecord.airtable_binding import AirtableBinding, AirtablePathError, ClientRegistry, RemoteError, \
    AuthenticationError, NotFoundError, InvalidRequestError, RateLimitError, ServerError
from airrecord.associations import Association
from airrecord.record import Record
from airrecord.table import Table


def connect_table(api_key, base_id, table_name, registry=None, record_class=None):
    """
    Return a Table bound to `table_name` in the base `base_id`.

    :param api_key: API key or personal access token; when None it is resolved with `get_credential`.
    :param base_id: The id of the base holding the table, e.g. "appXXXXXXXXXXXXXX".
    :param table_name: The table name (or table id).
    :param registry: Optional ClientRegistry shared with other tables, so tables using the same API key share a
        single HTTP session.
    :param record_class: Optional Record subclass used for the records this table produces.
    :return: A Table instance.
    """
    return Table(base_id, table_name, api_key=api_key, registry=registry, record_class=record_class)

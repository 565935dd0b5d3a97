import logging
import threading
import requests

from . import __version__
from .utils.core_utils import AirrecordError, DEFAULT_HEADERS, DEFAULT_SERVER, DEFAULT_API_VERSION, \
    DEFAULT_SESSION_CONFIG, get_new_requests_session, urlquote

logger = logging.getLogger(__name__)


class AirtablePathError (ValueError):
    pass


class RemoteError (AirrecordError):
    """Non-success response from the Airtable API.

       Attributes:
         status_code: the HTTP status of the response
         error_type: the server-supplied error type, if any
         response_body: the parsed response body, if any
    """

    def __init__(self, message, status_code=None, error_type=None, response_body=None):
        super(RemoteError, self).__init__(message)
        self.status_code = status_code
        self.error_type = error_type
        self.response_body = response_body


class AuthenticationError (RemoteError):
    pass


class NotFoundError (RemoteError):
    pass


class InvalidRequestError (RemoteError):
    pass


class RateLimitError (RemoteError):
    pass


class ServerError (RemoteError):
    pass


def _error_class_for_status(status):
    if status in (requests.codes.unauthorized, requests.codes.forbidden):
        return AuthenticationError
    if status == requests.codes.not_found:
        return NotFoundError
    if status == requests.codes.unprocessable_entity:
        return InvalidRequestError
    if status == requests.codes.too_many_requests:
        return RateLimitError
    if status is not None and status >= 500:
        return ServerError
    return RemoteError


class AirtableBinding (object):
    """HTTP(S) binding for the Airtable REST API.

       Verb methods return the requests.Response object as-is, without
       raising for HTTP error status. Callers test `response.ok` and hand
       the parsed body of a failed response to `handle_error`, which
       raises the appropriate RemoteError subclass.
    """

    def __init__(self, api_key, server=DEFAULT_SERVER, scheme="https", api_version=DEFAULT_API_VERSION,
                 session_config=None):
        """Create HTTP(S) Airtable binding.

           Arguments:
             api_key: API key or personal access token
             server: server FQDN string
             scheme: 'http' or 'https'
             api_version: versioned root of all request paths
             session_config: requests session configuration, see DEFAULT_SESSION_CONFIG
        """
        self._base_server_uri = "%s://%s" % (scheme, server)
        self._server_uri = "%s/%s" % (self._base_server_uri, api_version)
        self.api_key = api_key
        self.session_config = DEFAULT_SESSION_CONFIG if not session_config else session_config
        self._session = None
        self._get_new_session(self.session_config)
        self.set_credentials(api_key)

    def get_server_uri(self):
        return self._server_uri

    def _get_new_session(self, session_config=None):
        self._close_session()
        self._session = get_new_requests_session(self._base_server_uri + '/',
                                                 session_config if session_config else self.session_config)
        self._session.headers.update({'User-Agent': 'airrecord-py/%s' % __version__})

    def set_credentials(self, api_key):
        if not api_key:
            return
        assert self._session is not None
        self._session.headers.update({'Authorization': 'Bearer {token}'.format(token=api_key)})

    @staticmethod
    def check_path(path):
        if not path:
            raise AirtablePathError("Path not specified")

        if not path.startswith("/"):
            raise AirtablePathError("Malformed path error (not rooted with \"/\"): %s" % path)

    def _url(self, path):
        self.check_path(path)
        return self._server_uri + path

    @staticmethod
    def escape(name):
        """Escape a table name for use as a path segment."""
        return urlquote(name)

    @staticmethod
    def parse(response):
        """Return the decoded JSON body of response, or None if it has none."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.debug("Unable to decode response body as JSON: %r" % response.content[:200])
            return None

    @staticmethod
    def handle_error(status, parsed):
        """Raise a RemoteError subclass describing a failed response.

           Arguments:
             status: the HTTP status code
             parsed: the parsed response body

           Airtable error bodies are either {"error": {"type": ..., "message": ...}}
           or {"error": "TYPE"}.
        """
        error_class = _error_class_for_status(status)
        error = parsed.get("error") if isinstance(parsed, dict) else None
        if isinstance(error, dict):
            error_type = error.get("type")
            raise error_class("HTTP %s: %s: %s" % (status, error_type, error.get("message")),
                              status_code=status, error_type=error_type, response_body=parsed)
        elif isinstance(error, str):
            raise error_class("HTTP %s: %s" % (status, error),
                              status_code=status, error_type=error, response_body=parsed)
        raise error_class("HTTP %s: Communication error: %s" % (status, parsed),
                          status_code=status, response_body=parsed)

    def get(self, path, params=None, headers=DEFAULT_HEADERS):
        """Perform GET request, returning response object.

           Arguments:
             path: the path within the versioned API root
             params: query parameters, as a dict or list of key-value pairs
             headers: headers to set in request
        """
        return self._session.get(self._url(path), params=params, headers=headers)

    def post(self, path, json=None, headers=DEFAULT_HEADERS):
        """Perform POST request, returning response object.

           Arguments:
             path: the path within the versioned API root
             json: data to serialize as JSON content
             headers: headers to set in request
        """
        return self._session.post(self._url(path), json=json, headers=headers)

    def patch(self, path, json=None, headers=DEFAULT_HEADERS):
        """Perform PATCH request, returning response object.

           Only the columns present in the JSON content are modified
           by the server.
        """
        return self._session.patch(self._url(path), json=json, headers=headers)

    def delete(self, path, headers=DEFAULT_HEADERS):
        """Perform DELETE request, returning response object."""
        return self._session.delete(self._url(path), headers=headers)

    def _close_session(self):
        if self._session is not None:
            self._session.close()
            self._session = None

    def close(self):
        self._close_session()

    def __del__(self):
        self._close_session()


class ClientRegistry (object):
    """Registry of AirtableBinding instances keyed by API key.

       Bindings are constructed lazily on first use of each key and then
       shared by every Table given this registry, so connection setup is
       amortized across tables using the same credential.
    """

    def __init__(self, binding_factory=AirtableBinding, **binding_kwargs):
        self._binding_factory = binding_factory
        self._binding_kwargs = binding_kwargs
        self._bindings = {}
        self._lock = threading.Lock()

    def get(self, api_key):
        binding = self._bindings.get(api_key)
        if binding is not None:
            return binding
        with self._lock:
            binding = self._bindings.get(api_key)
            if binding is None:
                logger.debug("Creating new Airtable binding")
                binding = self._binding_factory(api_key, **self._binding_kwargs)
                self._bindings[api_key] = binding
            return binding

    def __contains__(self, api_key):
        return api_key in self._bindings

    def __len__(self):
        return len(self._bindings)

    def close(self):
        with self._lock:
            for binding in self._bindings.values():
                binding.close()
            self._bindings.clear()

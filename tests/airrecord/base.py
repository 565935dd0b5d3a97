# Shared fixtures for the airrecord unit tests.
#
# The HTTP session of the binding is replaced by a MagicMock, and server
# replies are real requests.Response objects built by make_response.
#
# Environment variables:
#  AIRRECORD_TEST_VERBOSE: set for verbose logging output to stdout

import json
import logging
import os
import unittest
from unittest.mock import MagicMock

import requests

from airrecord import AirtableBinding, Table

logger = logging.getLogger(__name__)
if os.getenv("AIRRECORD_TEST_VERBOSE"):
    logger.setLevel(logging.DEBUG)
    logger.addHandler(logging.StreamHandler())

TEST_API_KEY = "keyTEST"
TEST_BASE_ID = "appBASE"
TEST_SERVER_URI = "https://api.airtable.com/v0"


def make_response(status_code=200, body=None, url=TEST_SERVER_URI):
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response.headers["Content-Type"] = "application/json"
    response._content = json.dumps(body).encode("utf-8") if body is not None else b""
    return response


def record_data(record_id, fields=None, created_time="2020-01-01T00:00:00.000Z"):
    return {"id": record_id, "fields": fields or {}, "createdTime": created_time}


def page(record_ids, offset=None):
    body = {"records": [record_data(record_id, {"Name": record_id}) for record_id in record_ids]}
    if offset:
        body["offset"] = offset
    return make_response(200, body)


def mocked_binding(api_key=TEST_API_KEY):
    binding = AirtableBinding(api_key)
    binding.close()
    binding._session = MagicMock()
    return binding


class AirrecordTestCase (unittest.TestCase):

    table_name = "Tasks"

    def setUp(self):
        self.binding = mocked_binding()
        self.session = self.binding._session
        self.table = Table(TEST_BASE_ID, self.table_name, binding=self.binding)

    def assertNoRequests(self):
        self.session.get.assert_not_called()
        self.session.post.assert_not_called()
        self.session.patch.assert_not_called()
        self.session.delete.assert_not_called()

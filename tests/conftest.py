import json
import os
import tempfile

os.environ.setdefault("MATRIX_LOG_DIR", tempfile.mkdtemp(prefix="matrix-logs-"))

import httpx
import pytest

from services.matrix.api.client import MatrixApiClient
from shared.config.matrix import MatrixCredentials

HOMESERVER = "https://matrix.example.org"
TOKEN = "syt_test_token"


class FakeHomeserver:
    """Records every request and answers from a queue of canned responses."""

    def __init__(self):
        self.requests = []
        self._responses = []

    def queue(self, status=200, payload=None, *, text=None, headers=None):
        self._responses.append((status, payload, text, headers))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, payload, text, headers = (
            self._responses.pop(0) if self._responses else (200, {}, None, None)
        )
        if text is not None:
            return httpx.Response(status, text=text, headers=headers)
        return httpx.Response(status, json=payload, headers=headers)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content) if request.content else None


@pytest.fixture
def credentials():
    return MatrixCredentials(access_token=TOKEN, homeserver_url=HOMESERVER)


@pytest.fixture
def homeserver():
    return FakeHomeserver()


@pytest.fixture
def client(credentials, homeserver):
    return MatrixApiClient(credentials, transport=httpx.MockTransport(homeserver))

"""Shared fixtures: a scripted transport and a client wired to it."""

import json
from typing import Any, Dict, List, NamedTuple, Optional

import pytest

from toolrelay import debug
from toolrelay.client import OllamaClient
from toolrelay.errors import SendError
from toolrelay.transport import TransportResult

HOST = "http://ollama.test"
LIBRARY = "https://library.test"
CHAT_URL = f"{HOST}/api/chat"
TAGS_URL = f"{HOST}/api/tags"


def library_url(base_name: str) -> str:
    return f"{LIBRARY}/library/{base_name}"


class SentRequest(NamedTuple):
    url: str
    method: str
    headers: Dict[str, str]
    json: Optional[Any]


class FakeTransport:
    """Replays scripted responses per URL and records what was sent.

    Each URL has a queue of responses; the last one stays in place so it is
    returned for every later request. A queued exception is raised instead
    of returned. Unknown URLs raise SendError.
    """

    def __init__(self):
        self.sent: List[SentRequest] = []
        self._routes: Dict[str, list] = {}

    def reply(self, url: str, payload=None, status: int = 200, raw: Optional[bytes] = None):
        body = raw if raw is not None else json.dumps(payload).encode("utf-8")
        self._routes.setdefault(url, []).append(TransportResult(status, body))
        return self

    def fail(self, url: str, reason: str = "connection refused"):
        self._routes.setdefault(url, []).append(SendError(url, reason))
        return self

    def requests_to(self, url: str) -> List[SentRequest]:
        return [r for r in self.sent if r.url == url]

    def send(self, url, headers=None, method="GET", body=None):
        self.sent.append(SentRequest(url, method, dict(headers or {}), json.loads(body) if body else None))
        queue = self._routes.get(url)
        if not queue:
            raise SendError(url, "no route")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    return OllamaClient(host=HOST, capabilities_url=LIBRARY, transport=transport)


@pytest.fixture
def debug_lines():
    lines: List[str] = []
    was_verbose = debug.is_verbose()
    debug.set_verbose(True)
    debug.set_sink(lines.append)
    yield lines
    debug.set_sink(print)
    debug.set_verbose(was_verbose)

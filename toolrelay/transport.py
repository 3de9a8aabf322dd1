from typing import Dict, NamedTuple, Optional

import requests

from .errors import SendError


class TransportResult(NamedTuple):
    status: int
    body: bytes


class HttpTransport:
    """Thin wrapper around a requests session.

    send(url, headers, method, body) -> TransportResult
    returns the status code and raw body bytes; it never interprets them.
    Raises SendError when the request cannot be dispatched at all.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, url: str, headers: Optional[Dict[str, str]] = None, method: str = "GET", body: Optional[bytes] = None) -> TransportResult:
        try:
            resp = self.session.request(
                method,
                url,
                headers=headers or {},
                data=body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise SendError(url, str(exc)) from exc
        return TransportResult(resp.status_code, resp.content)

    def close(self):
        self.session.close()

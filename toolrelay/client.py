from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Union
from urllib.parse import quote

from . import config, debug
from .discovery.cache import CapabilityCache
from .discovery.models import ModelEntry, matches_filter, read_entries
from .errors import ParseError, SendError
from .protocol import (
    PARSE_ERROR,
    SEND_ERROR,
    ChatOutcome,
    build_chat_body,
    encode_body,
    extract_message,
    parse_response,
)
from .transport import HttpTransport

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class OllamaClient:
    """Client for a local Ollama-style model server.

    chat(model, messages, output_full_message=False, options=None)
    returns the assistant message (or the conversation with it appended),
    or None when the request could not be sent or the reply was not a JSON
    object. send_chat() does the same round-trip and returns a ChatOutcome
    that says which of those happened.

    Capability lookups are cached per instance for its whole lifetime.
    """

    def __init__(self, host=None, capabilities_url=None, transport=None, timeout=None):
        host = host or config.DEFAULT_HOST
        capabilities_url = capabilities_url or config.CAPABILITIES_URL
        self.host = host.rstrip("/")
        self.capabilities_url = capabilities_url.rstrip("/")
        self.transport = transport or HttpTransport(timeout=timeout if timeout is not None else config.TIMEOUT)
        self.capabilities = CapabilityCache()

    @property
    def chat_url(self) -> str:
        return f"{self.host}/api/chat"

    @property
    def tags_url(self) -> str:
        return f"{self.host}/api/tags"

    def library_url(self, base_name: str) -> str:
        return f"{self.capabilities_url}/library/{quote(base_name, safe='')}"

    # -------------------------------------------------------------
    # Low-level request helper
    # -------------------------------------------------------------
    def _request(self, method: str, url: str, body: Optional[Mapping[str, Any]] = None):
        """Send one request and return (status, parsed JSON object).

        Raises SendError or ParseError; callers decide how to recover.
        """
        data = encode_body(body) if body is not None else None
        debug.log(f"{method} {url} {debug.truncate(data.decode('utf-8') if data else '', 300)}")
        result = self.transport.send(url, JSON_HEADERS, method, data)
        debug.log(f"{url} -> HTTP {result.status}, {len(result.body)} bytes")
        payload = parse_response(result.body)
        if result.status >= 400:
            debug.log(f"{url} returned HTTP {result.status}: {debug.truncate(payload.get('error'), 300)}")
        return result.status, payload

    # -------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------
    def send_chat(self, model: str, messages: Sequence[Dict[str, Any]], output_full_message: bool = False, options: Optional[Mapping[str, Any]] = None) -> ChatOutcome:
        """One round-trip to /api/chat, reported as a ChatOutcome. Never retries."""
        body = build_chat_body(model, messages, options)
        try:
            _, payload = self._request("POST", self.chat_url, body)
        except SendError as exc:
            debug.log(f"chat send failed: {exc}")
            return ChatOutcome.failure(SEND_ERROR, exc)
        except ParseError as exc:
            debug.log(f"chat reply could not be parsed: {exc}")
            return ChatOutcome.failure(PARSE_ERROR, exc)

        message = extract_message(payload)
        debug.log(f"assistant: {debug.truncate(message.get('content'))}")
        return ChatOutcome.success(messages, message, output_full_message)

    def chat(self, model: str, messages: Sequence[Dict[str, Any]], output_full_message: bool = False, options: Optional[Mapping[str, Any]] = None) -> Union[Dict[str, Any], List[Dict[str, Any]], None]:
        return self.send_chat(model, messages, output_full_message, options).value

    # -------------------------------------------------------------
    # Model residency
    # -------------------------------------------------------------
    def load_model(self, model: str, keep_alive=config.LOAD_KEEP_ALIVE) -> bool:
        """Ask the server to keep ``model`` resident for ``keep_alive``.

        Returns True when the server answered with a non-error status.
        """
        body = build_chat_body(model, [], {"keep_alive": keep_alive})
        try:
            status, _ = self._request("POST", self.chat_url, body)
        except (SendError, ParseError) as exc:
            debug.log(f"load_model({model}, keep_alive={keep_alive}) failed: {exc}")
            return False
        return status < 400

    def unload_model(self, model: str) -> bool:
        return self.load_model(model, 0)

    # -------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------
    def capabilities_of(self, base_name: str) -> FrozenSet[str]:
        """Capability tags of a base model name, fetched once and cached.

        Failed lookups return an empty set and are not cached, so a later
        call tries again.
        """
        cached = self.capabilities.get(base_name)
        if cached is not None:
            return cached

        url = self.library_url(base_name)
        try:
            status, payload = self._request("GET", url)
        except (SendError, ParseError) as exc:
            debug.log(f"capability lookup for '{base_name}' failed: {exc}")
            return frozenset()

        found = payload.get("capabilities")
        if status >= 400 or not isinstance(found, list):
            debug.log(f"no capabilities listed for '{base_name}'")
            return frozenset()

        return self.capabilities.put(base_name, (c for c in found if isinstance(c, str)))

    def list_models(self, capability_filter: Optional[Mapping[str, bool]] = None, raw_entries: bool = False) -> List[Any]:
        """Installed models that satisfy ``capability_filter``.

        Models whose capabilities cannot be determined are always left out.
        Returns the raw /api/tags entries or just their names, in server order.
        """
        try:
            _, payload = self._request("GET", self.tags_url)
        except (SendError, ParseError) as exc:
            debug.log(f"list_models failed: {exc}")
            return []

        selected = []
        for raw in read_entries(payload):
            entry = ModelEntry.model_validate(raw)
            capabilities = self.capabilities_of(entry.base_name)
            if not capabilities:
                debug.log(f"skipping {entry.name}: capabilities unknown")
                continue
            if not matches_filter(capabilities, capability_filter):
                continue
            selected.append(raw if raw_entries else entry.name)
        return selected

    def close(self):
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

class ToolRelayError(Exception):
    """Base class for errors raised by toolrelay."""


class SendError(ToolRelayError):
    """The transport could not dispatch a request (bad URL, connection refused, ...)."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        message = f"request to {url} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ParseError(ToolRelayError):
    """A response body was not valid JSON or not a JSON object."""

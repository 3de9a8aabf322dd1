from datetime import datetime, timezone
from typing import List

from .tools import ToolBox


def default_toolbox(client) -> ToolBox:
    """Tools available to the REPL and the HTTP API out of the box."""
    toolbox = ToolBox()

    @toolbox.tool()
    def current_time() -> str:
        """Return the current UTC time in ISO 8601 format."""
        return datetime.now(timezone.utc).isoformat(timespec="seconds")

    @toolbox.tool()
    def list_models(capability: str = "") -> List[str]:
        """List installed models, optionally only those with a given capability."""
        capability_filter = {capability: True} if capability else None
        return client.list_models(capability_filter)

    return toolbox

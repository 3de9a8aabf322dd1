from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict


class ModelEntry(BaseModel):
    """One entry of the /api/tags listing. Unknown fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    name: str

    @property
    def base_name(self) -> str:
        return base_model_name(self.name)


def base_model_name(name: str) -> str:
    """Model name without its ``:tag`` suffix."""
    return name.split(":", 1)[0]


def matches_filter(capabilities: Iterable[str], capability_filter: Optional[Mapping[str, bool]] = None) -> bool:
    """Check a capability set against a {capability: required} filter.

    True means the capability must be present, False means it must be
    absent; capabilities missing from the filter are ignored.
    """
    present = set(capabilities)
    for capability, required in (capability_filter or {}).items():
        if required and capability not in present:
            return False
        if not required and capability in present:
            return False
    return True


def read_entries(payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Pull usable model entries out of a /api/tags response, in order."""
    models = payload.get("models")
    if not isinstance(models, list):
        return []
    return [entry for entry in models if isinstance(entry, dict) and isinstance(entry.get("name"), str)]


def parse_filter_terms(terms: Iterable[str]) -> Dict[str, bool]:
    """Turn ``["vision", "!tools"]`` into ``{"vision": True, "tools": False}``."""
    result: Dict[str, bool] = {}
    for term in terms:
        term = term.strip()
        if not term:
            continue
        if term.startswith("!"):
            name = term[1:].strip()
            if name:
                result[name] = False
        else:
            result[term] = True
    return result

from .cache import CapabilityCache
from .models import ModelEntry, base_model_name, matches_filter, parse_filter_terms, read_entries

__all__ = [
	"CapabilityCache",
	"ModelEntry",
	"base_model_name",
	"matches_filter",
	"parse_filter_terms",
	"read_entries",
]

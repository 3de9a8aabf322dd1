import os

# Environment-driven defaults; constructor arguments always win.
DEFAULT_HOST = os.getenv("OLLAMA_HOST", "http://127.0.0.1:11434")
CAPABILITIES_URL = os.getenv("TOOLRELAY_CAPABILITIES_URL", "https://ollama.com")
DEFAULT_MODEL = os.getenv("TOOLRELAY_MODEL", "qwen2.5-coder:14b-instruct")

DEFAULT_KEEP_ALIVE = 5
LOAD_KEEP_ALIVE = 300


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def _env_timeout(name: str):
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


DEBUG = _env_flag("TOOLRELAY_DEBUG")
# /chat/tools transcripts kept in memory by the HTTP API
MAX_STORED_RUNS = int(os.getenv("TOOLRELAY_MAX_RUNS") or 100)
# None means wait for the server indefinitely
TIMEOUT = _env_timeout("TOOLRELAY_TIMEOUT")

import asyncio
import threading
from collections import OrderedDict
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from . import config
from .agent.builtin_tools import default_toolbox
from .agent.tool_agent import ToolAgent
from .client import OllamaClient
from .discovery.models import base_model_name, parse_filter_terms

app = FastAPI(
    title="toolrelay API",
    description="HTTP wrapper around the local model client and its tool-calling agent.",
    version="0.1.0",
)


class TranscriptStore:
    """Transcripts of /chat/tools runs, oldest dropped past ``limit``."""

    def __init__(self, limit: int = config.MAX_STORED_RUNS):
        self.limit = limit
        self._runs: "OrderedDict[str, List[dict]]" = OrderedDict()
        self._lock = threading.Lock()

    def save(self, run_id: str, messages: List[dict]):
        with self._lock:
            self._runs[run_id] = list(messages)
            while len(self._runs) > self.limit:
                self._runs.popitem(last=False)

    def get(self, run_id: str) -> Optional[List[dict]]:
        with self._lock:
            return self._runs.get(run_id)

    def clear(self):
        with self._lock:
            self._runs.clear()

    def __len__(self) -> int:
        return len(self._runs)


RUN_MESSAGES = TranscriptStore()

_client: Optional[OllamaClient] = None
_client_lock = threading.Lock()


def get_client() -> OllamaClient:
    """Process-wide client, so every request shares one capability cache."""
    global _client
    with _client_lock:
        if _client is None:
            _client = OllamaClient(host=config.DEFAULT_HOST)
        return _client


class ChatRequest(BaseModel):
    model: str = Field(config.DEFAULT_MODEL, min_length=1, description="Model to chat with.")
    messages: List[Dict[str, Any]] = Field(..., description="Conversation so far, oldest first.")
    full: bool = Field(False, description="Return the whole conversation instead of the reply only.")
    options: Dict[str, Any] = Field(default_factory=dict, description="Extra request fields (keep_alive, options, format, ...).")


class ToolChatRequest(ChatRequest):
    tools: Optional[List[str]] = Field(None, description="Names of built-in tools to offer; all when omitted.")


class ChatResponse(BaseModel):
    message: Optional[Dict[str, Any]] = None
    messages: Optional[List[Dict[str, Any]]] = None
    run_id: Optional[str] = None
    tool_messages: List[Dict[str, Any]] = Field(default_factory=list)


class CapabilitiesResponse(BaseModel):
    model: str
    base_name: str
    capabilities: List[str]


class ResidencyResponse(BaseModel):
    model: str
    ok: bool


class TranscriptPage(BaseModel):
    run_id: str
    cursor: int
    next_cursor: int
    messages: List[Dict[str, Any]]


def _chat_response(outcome, run_id=None) -> Dict[str, Any]:
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=f"{outcome.status}: {outcome.error}")
    body: Dict[str, Any] = {"run_id": run_id, "tool_messages": list(outcome.tool_messages)}
    if outcome.conversation is not None:
        body["messages"] = outcome.conversation
    else:
        body["message"] = outcome.message
    return body


@app.get("/health")
async def health(client: OllamaClient = Depends(get_client)):
    return {"status": "ok", "host": client.host, "cached_capabilities": len(client.capabilities)}


@app.get("/models")
async def list_models(
    capability: List[str] = Query([], description="Required capability, or !name to exclude one."),
    raw: bool = False,
    client: OllamaClient = Depends(get_client),
):
    """List installed models whose capabilities satisfy the filter."""
    capability_filter = parse_filter_terms(capability)
    return await asyncio.to_thread(client.list_models, capability_filter, raw)


@app.get("/capabilities/{model:path}", response_model=CapabilitiesResponse)
async def capabilities(model: str, client: OllamaClient = Depends(get_client)):
    base = base_model_name(model)
    found = await asyncio.to_thread(client.capabilities_of, base)
    return {"model": model, "base_name": base, "capabilities": sorted(found)}


@app.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, client: OllamaClient = Depends(get_client)):
    """Single round-trip to the model; 502 when the server cannot be reached or replies garbage."""
    outcome = await asyncio.to_thread(client.send_chat, req.model, req.messages, req.full, req.options)
    return _chat_response(outcome)


@app.post("/chat/tools", response_model=ChatResponse)
async def chat_with_tools(req: ToolChatRequest, client: OllamaClient = Depends(get_client)):
    """Chat with the built-in tools enabled and keep the transcript for /messages."""
    toolbox = default_toolbox(client)
    names = req.tools if req.tools is not None else toolbox.names
    unknown = [name for name in names if name not in toolbox]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown tool(s): {', '.join(unknown)}")
    definitions = [d for d in toolbox.definitions if d["function"]["name"] in names]

    agent = ToolAgent(client)
    run_id = uuid4().hex

    def runner():
        outcome = agent.run(req.model, req.messages, definitions, toolbox, False, req.options)
        if outcome.ok:
            RUN_MESSAGES.save(run_id, outcome.transcript(req.messages))
        return outcome

    outcome = await asyncio.to_thread(runner)
    response = _chat_response(outcome, run_id)
    if req.full:
        response.pop("message", None)
        response["messages"] = outcome.transcript(req.messages)
    return response


@app.post("/models/{model:path}/load", response_model=ResidencyResponse)
async def load_model(model: str, keep_alive: int = config.LOAD_KEEP_ALIVE, client: OllamaClient = Depends(get_client)):
    ok = await asyncio.to_thread(client.load_model, model, keep_alive)
    return {"model": model, "ok": ok}


@app.post("/models/{model:path}/unload", response_model=ResidencyResponse)
async def unload_model(model: str, client: OllamaClient = Depends(get_client)):
    ok = await asyncio.to_thread(client.unload_model, model)
    return {"model": model, "ok": ok}


@app.get("/messages", response_model=TranscriptPage)
async def read_transcript(run_id: str, cursor: int = Query(0, ge=0)):
    """Page through a stored /chat/tools transcript from ``cursor`` on."""
    transcript = RUN_MESSAGES.get(run_id)
    if transcript is None:
        raise HTTPException(status_code=404, detail=f"no transcript for run {run_id}")

    page = transcript[cursor:]
    return TranscriptPage(
        run_id=run_id,
        cursor=cursor,
        next_cursor=min(cursor, len(transcript)) + len(page),
        messages=page,
    )

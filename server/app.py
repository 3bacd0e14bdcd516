import logging
from pathlib import Path
from typing import Dict, Any, Optional

from fastapi import FastAPI, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

# Make local package importable
import sys
BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from callcoach.core import config
from callcoach.core.analysis import build_call_record, run_analysis, run_analysis_or_fallback
from callcoach.core.llm import LLMClient, LLMError, LLMNotConfigured
from callcoach.core.scripts import ScriptNotFound, create_script, get_active_script, list_scripts, update_script
from callcoach.core.storage import DocumentStore, get_call, init_store, insert_call, list_calls, open_store

log = logging.getLogger("callcoach.server")

app = FastAPI(title="CallCoach API")

# Static UI
WEB_DIR = BASE_DIR / "web"
WEB_DIR.mkdir(exist_ok=True, parents=True)
app.mount("/static", StaticFiles(directory=str(WEB_DIR)), name="static")

_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        _store = open_store()
        init_store(_store)
    return _store


def get_llm_client() -> LLMClient:
    return LLMClient()


class ScriptCreate(BaseModel):
    name: str
    content: str
    active: bool = False


class ScriptUpdate(BaseModel):
    name: Optional[str] = None
    content: Optional[str] = None
    active: Optional[bool] = None


def _error(status: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message, **extra})


@app.on_event("startup")
def _startup():
    config.setup_logging()
    store = get_store()
    log.info("CallCoach server ready (store=%s, AI configured=%s)", type(store).__name__, bool(config.OPENAI_API_KEY))


@app.get("/", response_class=HTMLResponse)
def index():
    idx = WEB_DIR / "index.html"
    return HTMLResponse(idx.read_text(encoding="utf-8"))


@app.get("/api/calls")
def calls(store: DocumentStore = Depends(get_store)):
    return [c.to_dict() for c in list_calls(store)]


@app.get("/api/calls/{call_id}")
def call_detail(call_id: int, store: DocumentStore = Depends(get_store)):
    record = get_call(store, call_id)
    if record is None:
        return _error(404, "Call not found")
    return record.to_dict()


@app.get("/api/state")
def state(store: DocumentStore = Depends(get_store)):
    return {
        "calls": [c.to_dict() for c in list_calls(store)],
        "scripts": [s.to_dict() for s in list_scripts(store)],
    }


@app.get("/api/scripts")
def scripts(store: DocumentStore = Depends(get_store)):
    return [s.to_dict() for s in list_scripts(store)]


@app.get("/api/scripts/active")
def active_script(store: DocumentStore = Depends(get_store)):
    script = get_active_script(store)
    if script is None:
        return _error(404, "No script configured")
    return script.to_dict()


@app.post("/api/scripts", status_code=201)
def add_script(payload: ScriptCreate, store: DocumentStore = Depends(get_store)):
    return create_script(store, payload.name, payload.content, payload.active).to_dict()


@app.put("/api/scripts/{script_id}")
def edit_script(script_id: str, payload: ScriptUpdate, store: DocumentStore = Depends(get_store)):
    try:
        script = update_script(store, script_id, content=payload.content, name=payload.name, active=payload.active)
    except ScriptNotFound:
        return _error(404, "Script not found")
    return script.to_dict()


@app.post("/upload")
async def upload(
    request: Request,
    agent_name: str = Form("", alias="agentName"),
    notes: str = Form(""),
    transcript: str = Form(""),
    audio: Optional[UploadFile] = File(None),
    store: DocumentStore = Depends(get_store),
    client: LLMClient = Depends(get_llm_client),
):
    # Audio is not transcribed; only its name is kept on the record
    filename = audio.filename if audio is not None and audio.filename else None
    script = get_active_script(store)
    result = await run_in_threadpool(run_analysis_or_fallback, client, agent_name, notes, transcript, script)
    record = insert_call(store, build_call_record(result, agent_name, notes, transcript, filename))
    log.info("Stored call %s for %s (parsed=%s)", record.id, record.agent_name, result.parsed)

    if "application/json" in request.headers.get("accept", ""):
        return {"success": True, "id": record.id}
    return RedirectResponse("/", status_code=303)


async def _read_payload(request: Request) -> Optional[Dict[str, Any]]:
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def _text_field(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


@app.post("/api/calls/analyze")
async def analyze(
    request: Request,
    store: DocumentStore = Depends(get_store),
    client: LLMClient = Depends(get_llm_client),
):
    payload = await _read_payload(request)
    if payload is None:
        return _error(400, "Request body must be a JSON object or form data")
    transcript = _text_field(payload, "transcript")
    if not transcript.strip():
        return _error(400, "transcript is required")
    agent_name = _text_field(payload, "agentName")
    notes = _text_field(payload, "notes")

    script = get_active_script(store)
    try:
        result = await run_in_threadpool(run_analysis, client, agent_name, notes, transcript, script)
    except LLMNotConfigured:
        return _error(500, "AI service is not configured: set OPENAI_API_KEY")
    except LLMError as e:
        log.error("AI analysis failed: %s", e)
        return _error(500, "AI analysis failed")
    if not result.parsed:
        return _error(500, "Could not parse AI response", raw=result.analysis.raw)

    record = insert_call(store, build_call_record(result, agent_name, notes, transcript))
    log.info("Stored call %s for %s", record.id, record.agent_name)
    return record.to_dict()

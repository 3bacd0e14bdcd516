import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from . import config
from .models import CallRecord, Script
from .prompts import DEFAULT_SCRIPT_CONTENT

log = logging.getLogger(__name__)

Document = Dict[str, List[Dict[str, Any]]]


def default_document() -> Document:
    return {"scripts": [], "calls": []}


def _with_defaults(doc: Any) -> Document:
    if not isinstance(doc, dict):
        return default_document()
    for key in ("scripts", "calls"):
        rows = doc.get(key)
        if not isinstance(rows, list):
            doc[key] = []
            continue
        kept = [r for r in rows if isinstance(r, dict) and "id" in r]
        if len(kept) != len(rows):
            log.warning("Dropping %d malformed %s entries", len(rows) - len(kept), key)
        doc[key] = kept
    return doc


def _load_call(row: Dict[str, Any]) -> Optional[CallRecord]:
    try:
        return CallRecord.from_dict(row)
    except (TypeError, ValueError, KeyError, AttributeError) as e:
        log.warning("Skipping unreadable call %r: %s", row.get("id"), e)
        return None


class DocumentStore:
    """Whole-document storage: every mutation reads, edits and rewrites the full document."""

    def __init__(self):
        self._lock = threading.Lock()

    def read(self) -> Document:
        raise NotImplementedError

    def write(self, doc: Document) -> None:
        raise NotImplementedError

    @contextmanager
    def transaction(self) -> Iterator[Document]:
        # Single writer; the document is only written if the block completes.
        with self._lock:
            doc = self.read()
            yield doc
            self.write(doc)


class MemoryStore(DocumentStore):
    def __init__(self, doc: Optional[Document] = None):
        super().__init__()
        self._doc = _with_defaults(copy.deepcopy(doc) if doc is not None else default_document())

    def read(self) -> Document:
        return copy.deepcopy(self._doc)

    def write(self, doc: Document) -> None:
        self._doc = copy.deepcopy(doc)


class JsonFileStore(DocumentStore):
    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)

    def read(self) -> Document:
        if not self.path.exists():
            return default_document()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return _with_defaults(json.load(f))
        except (OSError, ValueError) as e:
            log.warning("Could not read %s (%s); starting with an empty document", self.path, e)
            return default_document()

    def write(self, doc: Document) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


def open_store(backend: Optional[str] = None, path: Optional[str] = None) -> DocumentStore:
    backend = backend or config.STORE_BACKEND
    if backend == "memory":
        return MemoryStore()
    if backend == "json":
        return JsonFileStore(path or config.STATE_PATH)
    raise ValueError(f"Unknown STORE_BACKEND: {backend!r} (expected 'json' or 'memory')")


def default_script() -> Script:
    return Script(id="default", name="Default appointment script", content=DEFAULT_SCRIPT_CONTENT, active=True)


def init_store(store: DocumentStore):
    # Seed the default script on first run
    with store.transaction() as doc:
        if not doc["scripts"]:
            script = default_script()
            doc["scripts"].append(script.to_dict())
            log.info("Initialized store with default script %r", script.name)


def insert_call(store: DocumentStore, record: CallRecord) -> CallRecord:
    """Assign the next id and prepend the record so calls stay newest-first."""
    with store.transaction() as doc:
        ids = [c.get("id") for c in doc["calls"] if isinstance(c.get("id"), int)]
        record.id = max(ids, default=0) + 1
        doc["calls"].insert(0, record.to_dict())
    return record


def list_calls(store: DocumentStore) -> List[CallRecord]:
    records = (_load_call(c) for c in store.read()["calls"])
    return [r for r in records if r is not None]


def get_call(store: DocumentStore, call_id: int) -> Optional[CallRecord]:
    for c in store.read()["calls"]:
        if c.get("id") == call_id:
            return _load_call(c)
    return None

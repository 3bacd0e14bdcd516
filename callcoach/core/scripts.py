import uuid
from typing import List, Optional

from .models import Script
from .storage import DocumentStore


class ScriptNotFound(KeyError):
    pass


def list_scripts(store: DocumentStore) -> List[Script]:
    return [Script.from_dict(s) for s in store.read()["scripts"]]


def get_script(store: DocumentStore, script_id: str) -> Optional[Script]:
    for s in list_scripts(store):
        if s.id == script_id:
            return s
    return None


def get_active_script(store: DocumentStore) -> Optional[Script]:
    """First active script, else the first script on file, else None."""
    scripts = list_scripts(store)
    for s in scripts:
        if s.active:
            return s
    return scripts[0] if scripts else None


def _activate(rows, script_id: str):
    for row in rows:
        row["active"] = str(row.get("id")) == script_id


def create_script(store: DocumentStore, name: str, content: str, active: bool = False) -> Script:
    script = Script(id=uuid.uuid4().hex[:8], name=name, content=content, active=active)
    with store.transaction() as doc:
        doc["scripts"].append(script.to_dict())
        if active:
            _activate(doc["scripts"], script.id)
    return script


def update_script(store: DocumentStore, script_id: str, content: Optional[str] = None,
                  name: Optional[str] = None, active: Optional[bool] = None) -> Script:
    """Update one script. Activating it deactivates every other script in the same write."""
    with store.transaction() as doc:
        row = next((s for s in doc["scripts"] if str(s.get("id")) == script_id), None)
        if row is None:
            raise ScriptNotFound(script_id)
        if content is not None:
            row["content"] = content
        if name is not None:
            row["name"] = name
        if active:
            _activate(doc["scripts"], script_id)
        elif active is not None:
            row["active"] = False
        return Script.from_dict(row)

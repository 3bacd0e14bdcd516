import logging
from datetime import datetime, timezone
from typing import Optional

from .llm import LLMError, LLMNotConfigured, build_analysis_prompt
from .models import CallAnalysis, CallRecord, Script, NO_FILE
from .normalizer import Normalized, fallback_result, normalize_response

log = logging.getLogger(__name__)


def run_analysis(client, agent_name: Optional[str], notes: Optional[str], transcript: Optional[str],
                 script: Optional[Script] = None, fallback: Optional[CallAnalysis] = None) -> Normalized:
    """Prompt -> model -> normalize. Raises LLMError when the model cannot be reached."""
    prompt = build_analysis_prompt(agent_name, notes, transcript, script)
    text = client.complete(prompt)
    return normalize_response(text, fallback)


def run_analysis_or_fallback(client, agent_name: Optional[str], notes: Optional[str], transcript: Optional[str],
                             script: Optional[Script] = None,
                             fallback: Optional[CallAnalysis] = None) -> Normalized:
    try:
        return run_analysis(client, agent_name, notes, transcript, script, fallback)
    except LLMNotConfigured:
        log.warning("OPENAI_API_KEY not set - using fallback mock analysis.")
    except LLMError as e:
        log.error("AI analysis error: %s", e)
    return fallback_result(fallback)


def build_call_record(result: Normalized, agent_name: Optional[str], notes: Optional[str],
                      transcript: Optional[str], filename: Optional[str] = None) -> CallRecord:
    return CallRecord(
        agent_name=(agent_name or "").strip() or "Unknown",
        notes=notes or "",
        transcript=transcript or "",
        filename=filename or NO_FILE,
        created_at=datetime.now(timezone.utc).isoformat(),
        sentiment=result.sentiment,
        analysis=result.analysis,
    )

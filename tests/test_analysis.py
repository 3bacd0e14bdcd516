from dataclasses import replace

from callcoach.core.analysis import build_call_record, run_analysis, run_analysis_or_fallback
from callcoach.core.llm import LLMClient
from callcoach.core.normalizer import fallback_analysis
from callcoach.core.storage import MemoryStore, insert_call, list_calls


def test_partial_response_end_to_end(stub):
    store = MemoryStore()
    fallback = replace(fallback_analysis(), script_adherence=0.75)
    result = run_analysis(stub, "Ann", "notes", "Agent: hi", fallback=fallback)
    insert_call(store, build_call_record(result, "Ann", "notes", "Agent: hi"))

    stored = list_calls(store)[0]
    assert stored.analysis.quality_score == 92
    assert stored.analysis.appointment_outcome == "Booked"
    assert stored.analysis.script_adherence == 0.75
    assert stored.sentiment == "Positive"


def test_fallback_when_unconfigured():
    result = run_analysis_or_fallback(LLMClient(api_key=""), "Ann", "", "")
    assert not result.parsed
    assert result.analysis == fallback_analysis()


def test_fallback_on_service_error(failing_stub):
    result = run_analysis_or_fallback(failing_stub, "Ann", "", "t")
    assert result.analysis == fallback_analysis()
    assert failing_stub.prompts


def test_record_defaults():
    record = build_call_record(run_analysis_or_fallback(LLMClient(api_key=""), None, None, None),
                               "   ", None, None)
    assert record.agent_name == "Unknown"
    assert record.notes == "" and record.transcript == ""
    assert record.filename == "No file"
    assert record.created_at.endswith("+00:00")
    assert record.id is None

"""Prompt builder and OpenAI adapter."""
from unittest.mock import MagicMock, patch

import pytest
from openai import OpenAIError

from callcoach.core.llm import (
    LLMClient, LLMEmptyResponse, LLMNotConfigured, LLMServiceError, build_analysis_prompt,
)
from callcoach.core.models import Script


def test_prompt_embeds_inputs_verbatim():
    transcript = "Agent: Hi, is this Dana?\n" + "Prospect: yes. " * 5000
    script = Script(id="s1", name="Main", content="Always offer two time slots.", active=True)
    prompt = build_analysis_prompt("Sam", "Follow up next week", transcript, script)
    assert "Agent name: Sam" in prompt
    assert "Follow up next week" in prompt
    assert transcript in prompt
    assert "Always offer two time slots." in prompt
    assert '"scriptAdherencePercent"' in prompt
    assert "no markdown code fences" in prompt


def test_prompt_placeholders():
    prompt = build_analysis_prompt(None, "  ", None)
    assert "Agent name: Unknown" in prompt
    assert "No notes provided." in prompt
    assert "No transcript provided." in prompt
    assert "No company call script is configured" in prompt


def test_prompt_keeps_braces_in_transcript():
    prompt = build_analysis_prompt("Sam", "", "Customer said {price} was too high")
    assert "Customer said {price} was too high" in prompt


def test_unconfigured_client_raises():
    client = LLMClient(api_key="")
    assert not client.configured
    with pytest.raises(LLMNotConfigured):
        client.complete("hello")


@patch("callcoach.core.llm.OpenAI")
def test_complete_returns_output_text(mock_openai):
    resp = MagicMock()
    resp.output_text = '  {"qualityScore": 80}\n'
    mock_openai.return_value.responses.create.return_value = resp

    client = LLMClient(api_key="sk-test", model="test-model")
    assert client.complete("prompt") == '{"qualityScore": 80}'
    mock_openai.return_value.responses.create.assert_called_once_with(model="test-model", input="prompt")


@patch("callcoach.core.llm.OpenAI")
def test_service_failure_is_wrapped(mock_openai):
    mock_openai.return_value.responses.create.side_effect = OpenAIError("boom")
    with pytest.raises(LLMServiceError):
        LLMClient(api_key="sk-test").complete("prompt")


@patch("callcoach.core.llm.OpenAI")
def test_empty_response(mock_openai):
    resp = MagicMock()
    resp.output_text = ""
    mock_openai.return_value.responses.create.return_value = resp
    with pytest.raises(LLMEmptyResponse):
        LLMClient(api_key="sk-test").complete("prompt")

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from . import config
from .models import Script
from .prompts import ANALYSIS_TEMPLATE, NO_SCRIPT_BLOCK, RESPONSE_SCHEMA, SCRIPT_BLOCK

log = logging.getLogger(__name__)


class LLMError(Exception):
    """Base class for failures talking to the text model."""


class LLMNotConfigured(LLMError):
    pass


class LLMServiceError(LLMError):
    pass


class LLMEmptyResponse(LLMError):
    pass


def _or_placeholder(value: Optional[str], placeholder: str) -> str:
    if value is None or not str(value).strip():
        return placeholder
    return str(value)


def build_analysis_prompt(agent_name: Optional[str], notes: Optional[str], transcript: Optional[str],
                          script: Optional[Script] = None) -> str:
    """Render the coaching prompt. Inputs are embedded verbatim; nothing is truncated."""
    if script is not None and script.content.strip():
        script_block = SCRIPT_BLOCK.format(script=script.content)
    else:
        script_block = NO_SCRIPT_BLOCK
    return ANALYSIS_TEMPLATE.format(
        company_context=config.COMPANY_CONTEXT,
        script_block=script_block,
        agent_name=_or_placeholder(agent_name, "Unknown"),
        notes=_or_placeholder(notes, "No notes provided."),
        transcript=_or_placeholder(transcript, "No transcript provided."),
        schema=RESPONSE_SCHEMA,
    ).strip()


class LLMClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = config.OPENAI_API_KEY if api_key is None else api_key
        self.model = model or config.LLM_MODEL
        self._client: Optional[OpenAI] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _openai(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def complete(self, prompt: str) -> str:
        if not self.configured:
            raise LLMNotConfigured("OPENAI_API_KEY is not set")
        try:
            resp = self._openai().responses.create(model=self.model, input=prompt)
        except OpenAIError as e:
            raise LLMServiceError(f"{type(e).__name__}: {e}") from e
        text = (resp.output_text or "").strip()
        if not text:
            raise LLMEmptyResponse(f"model {self.model} returned an empty response")
        log.debug("model %s returned %d chars", self.model, len(text))
        return text

"""
Model invocation interface.

``PromptInvoker.invoke(template, inputs)`` renders a prompt template, calls
the hosted model and returns an instance of the template's output model.
Stages depend only on this interface so they can run against a stub.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Protocol

from pydantic import BaseModel, ValidationError

from backend.cvtailor.config import get_settings
from backend.cvtailor.core.errors import ModelError, SchemaViolation
from backend.cvtailor.core.prompts import PromptTemplate
from backend.cvtailor.services.llm_service import get_llm_service
from backend.cvtailor.services.null_llm import NullPromptInvoker

logger = logging.getLogger(__name__)


class PromptInvoker(Protocol):
    def invoke(self, template: PromptTemplate, inputs: Dict[str, Any]) -> BaseModel:
        ...


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def _coerce_json(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, list):
        # LangChain may return content blocks
        raw = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in raw
        )
    if isinstance(raw, str):
        return json.loads(_strip_code_fence(raw))
    raise TypeError("Unexpected LLM output type")


def parse_output(template: PromptTemplate, raw: Any) -> BaseModel:
    """Parse raw model content into ``template.output_model`` or raise SchemaViolation."""
    try:
        data = _coerce_json(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise SchemaViolation(f"{template.name}: model returned unparsable output: {e}") from e

    try:
        return template.output_model.model_validate(data)
    except ValidationError as e:
        raise SchemaViolation(f"{template.name}: output does not match schema: {e}") from e


class LLMPromptInvoker:
    """PromptInvoker backed by ``LLMService`` in JSON mode."""

    def __init__(self, llm_service: Any):
        self.llm = llm_service

    def invoke(self, template: PromptTemplate, inputs: Dict[str, Any]) -> BaseModel:
        system_prompt, user_prompt = template.render(inputs)

        try:
            resp = self.llm.generate_response(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=template.temperature,
                max_tokens=template.max_tokens,
                response_format={"type": "json_object"},
                run_name=template.name,
            )
        except Exception as e:
            logger.error("%s: LLM call failed: %s", template.name, e)
            raise ModelError(str(e)) from e

        return parse_output(template, resp.get("content"))


def get_prompt_invoker() -> PromptInvoker:
    """LLM-backed invoker, or a failing stand-in when no provider key is set."""
    settings = get_settings()
    if settings.openai_api_key is None and settings.gemini_api_key is None:
        logger.warning("No LLM provider configured - prompt calls will fail")
        return NullPromptInvoker()
    return LLMPromptInvoker(get_llm_service())

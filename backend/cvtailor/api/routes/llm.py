from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from backend.cvtailor.config import Settings, get_settings
from backend.cvtailor.core.cover_letter_gen import CoverLetterGenerator
from backend.cvtailor.core.cv_adapter import CVAdapter
from backend.cvtailor.models.contracts import (
    AdaptationRequest,
    AdaptationResult,
    CoverLetterRequest,
    CoverLetterResult,
    TailorForm,
)
from backend.cvtailor.services.prompt_invoker import PromptInvoker, get_prompt_invoker

router = APIRouter(tags=["llm"])


@router.post("/cv/adapt", response_model=AdaptationResult)
async def adapt_cv(
    form: TailorForm,
    invoker: PromptInvoker = Depends(get_prompt_invoker),
    settings: Settings = Depends(get_settings),
):
    request = AdaptationRequest.from_form(form, settings.cv_min_chars, settings.cv_max_chars)
    adapter = CVAdapter(
        invoker,
        word_limit=settings.adapted_cv_word_limit,
        required_sections=settings.required_cv_sections,
    )
    return await run_in_threadpool(adapter.adapt, request)


@router.post("/cover-letter", response_model=CoverLetterResult)
async def cover_letter(
    req: CoverLetterRequest,
    invoker: PromptInvoker = Depends(get_prompt_invoker),
    settings: Settings = Depends(get_settings),
):
    generator = CoverLetterGenerator(invoker, contact_links=settings.contact_links)
    return await run_in_threadpool(generator.generate, req)

"""
Two-stage tailoring pipeline: CV adaptation, then cover letter generation.

States:
    IDLE -> SUBMITTING -> ADAPTING_CV -> GENERATING_LETTER -> DONE
    SUBMITTING / ADAPTING_CV / GENERATING_LETTER -> ERROR
    any -> IDLE on clear()

One submission at a time per pipeline. ``clear()`` during a submission bumps
the generation token; the in-flight result is then dropped when it returns.
"""
from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Dict, Optional

from backend.cvtailor.core.cover_letter_gen import CoverLetterGenerator
from backend.cvtailor.core.cv_adapter import CVAdapter
from backend.cvtailor.core.errors import (
    InputValidationError,
    PipelineBusy,
    SchemaViolation,
    TailorError,
)
from backend.cvtailor.core.notifier import LoggingNotifier, Notifier
from backend.cvtailor.models.contracts import (
    AdaptationRequest,
    CoverLetterRequest,
    PipelineError,
    PipelineSnapshot,
    TailorForm,
)
from backend.cvtailor.utils.prometheus_metrics import record_pipeline_run, record_stage_failure

logger = logging.getLogger(__name__)

GENERIC_FAILURE = {
    "adapt_cv": "AI failed to adapt CV. Please try again.",
    "cover_letter": "AI failed to generate cover letter. Please try again.",
}
UNEXPECTED_FAILURE = "An unexpected error occurred. Please check your inputs or try again later."


class PipelineState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    ADAPTING_CV = "adapting_cv"
    GENERATING_LETTER = "generating_letter"
    DONE = "done"
    ERROR = "error"


class TailoringPipeline:
    def __init__(
        self,
        adapter: CVAdapter,
        generator: CoverLetterGenerator,
        notifier: Optional[Notifier] = None,
        min_chars: int = 50,
        max_chars: int = 10_000,
    ):
        self.adapter = adapter
        self.generator = generator
        self.notifier = notifier or LoggingNotifier()
        self.min_chars = min_chars
        self.max_chars = max_chars

        self.state = PipelineState.IDLE
        self.adapted_cv = ""
        self.cover_letter = ""
        self.error: Optional[PipelineError] = None
        self.field_errors: Dict[str, str] = {}

        self._generation = 0
        self._in_flight = False

    @property
    def busy(self) -> bool:
        return self._in_flight

    def _reset(self) -> None:
        self.adapted_cv = ""
        self.cover_letter = ""
        self.error = None
        self.field_errors = {}

    def _is_stale(self, token: int) -> bool:
        return token != self._generation

    def _fail(self, stage: str, exc: TailorError) -> None:
        if isinstance(exc, SchemaViolation):
            message = GENERIC_FAILURE[stage]
        else:
            message = exc.message

        self.state = PipelineState.ERROR
        self.error = PipelineError(kind=exc.kind, message=message)
        record_stage_failure(stage, exc.kind)
        logger.warning("Pipeline failed at %s (%s): %s", stage, exc.kind, exc.message)
        self.notifier.notify("Error", message, variant="destructive")

    async def submit(self, form: TailorForm) -> PipelineSnapshot:
        """
        Run both stages for one form submission.

        Returns the resulting snapshot; failures are reported through the
        snapshot's ``error`` / ``field_errors``, not raised.

        Raises:
            PipelineBusy: if a submission is already in flight
        """
        if self._in_flight:
            record_pipeline_run("busy")
            raise PipelineBusy("A submission is already in progress.")

        try:
            request = AdaptationRequest.from_form(form, self.min_chars, self.max_chars)
        except InputValidationError as e:
            # earlier outputs stay visible; only the field messages change
            self.field_errors = e.field_errors
            record_pipeline_run("invalid")
            logger.info("Form rejected: %s", sorted(e.field_errors))
            return self.snapshot()

        self._generation += 1
        token = self._generation
        self._in_flight = True
        self._reset()
        self.state = PipelineState.SUBMITTING
        start = time.time()
        stage = "adapt_cv"

        try:
            self.state = PipelineState.ADAPTING_CV
            adaptation = await asyncio.to_thread(self.adapter.adapt, request)
            if self._is_stale(token):
                record_pipeline_run("stale")
                return self.snapshot()
            self.adapted_cv = adaptation.adapted_cv

            stage = "cover_letter"
            self.state = PipelineState.GENERATING_LETTER
            letter = await asyncio.to_thread(
                self.generator.generate,
                CoverLetterRequest(
                    adapted_cv=adaptation.adapted_cv,
                    job_description=request.job_description,
                ),
            )
            if self._is_stale(token):
                record_pipeline_run("stale")
                return self.snapshot()
            self.cover_letter = letter.cover_letter

            self.state = PipelineState.DONE
            record_pipeline_run("done", time.time() - start)
            self.notifier.notify("Success!", "CV and Cover Letter generated successfully.")

        except TailorError as e:
            if self._is_stale(token):
                record_pipeline_run("stale")
                return self.snapshot()
            self._fail(stage, e)
            record_pipeline_run("error", time.time() - start)

        except Exception:
            if self._is_stale(token):
                record_pipeline_run("stale")
                return self.snapshot()
            logger.exception("Unexpected error at %s", stage)
            self.state = PipelineState.ERROR
            self.error = PipelineError(kind="UnexpectedError", message=UNEXPECTED_FAILURE)
            record_stage_failure(stage, "UnexpectedError")
            record_pipeline_run("error", time.time() - start)
            self.notifier.notify("Error", UNEXPECTED_FAILURE, variant="destructive")

        finally:
            if not self._is_stale(token):
                self._in_flight = False

        return self.snapshot()

    def clear(self) -> PipelineSnapshot:
        """Reset to IDLE and drop every derived value, including in-flight work."""
        self._generation += 1
        self._in_flight = False
        self._reset()
        self.state = PipelineState.IDLE
        self.notifier.notify("Inputs Cleared", "The form and generated content have been cleared.")
        return self.snapshot()

    def snapshot(self) -> PipelineSnapshot:
        return PipelineSnapshot(
            state=self.state.value,
            adapted_cv=self.adapted_cv,
            cover_letter=self.cover_letter,
            error=self.error,
            field_errors=dict(self.field_errors),
        )

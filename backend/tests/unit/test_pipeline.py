"""
Unit tests for TailoringPipeline

Covers the state machine, the end-to-end scenarios and overlapping
submissions.
"""

import asyncio
import threading

import pytest

from backend.cvtailor.core.errors import ModelError, PipelineBusy
from backend.cvtailor.core.notifier import RecordingNotifier
from backend.cvtailor.core.pipeline import PipelineState
from backend.cvtailor.models.contracts import TailorForm
from backend.cvtailor.services.session_store import build_pipeline


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def form(valid_form_data):
    return TailorForm(**valid_form_data)


def _run(coro):
    return asyncio.run(coro)


def test_scenario_a_happy_path(happy_invoker, test_settings, notifier, form, contact_links):
    assert len(form.original_cv) == 200
    assert len(form.job_description) == 200
    pipeline = build_pipeline(happy_invoker, test_settings, notifier)

    snap = _run(pipeline.submit(form))

    assert snap.state == PipelineState.DONE.value
    assert snap.error is None
    assert snap.adapted_cv.startswith("Contact Information")
    for link in contact_links:
        assert snap.cover_letter.count(link.url) == 1

    # stage 2 receives stage 1's output
    (_, letter_inputs), = happy_invoker.called("coverLetterPrompt")
    assert letter_inputs["adapted_cv"] == snap.adapted_cv
    assert letter_inputs["job_description"] == form.job_description

    assert [n.title for n in notifier.drain()] == ["Success!"]


def test_scenario_b_placeholder_stops_pipeline(fake_invoker_cls, test_settings, notifier, form, adapted_cv_text):
    invoker = fake_invoker_cls({
        "adaptCvPrompt": {"adapted_cv": adapted_cv_text + "\nWebsite: [Your Website]"},
        "coverLetterPrompt": {"cover_letter": "never used"},
    })
    pipeline = build_pipeline(invoker, test_settings, notifier)

    snap = _run(pipeline.submit(form))

    assert snap.state == PipelineState.ERROR.value
    assert snap.error.kind == "PlaceholderDetected"
    assert snap.adapted_cv == ""
    assert invoker.called("coverLetterPrompt") == []
    assert notifier.drain()[0].variant == "destructive"


def test_scenario_c_letter_network_failure(fake_invoker_cls, test_settings, form, adapted_cv_text):
    invoker = fake_invoker_cls({
        "adaptCvPrompt": {"adapted_cv": adapted_cv_text},
        "coverLetterPrompt": ModelError("Connection reset by peer"),
    })
    pipeline = build_pipeline(invoker, test_settings)

    snap = _run(pipeline.submit(form))

    assert snap.state == PipelineState.ERROR.value
    assert snap.error.kind == "ModelError"
    assert snap.error.message == "Connection reset by peer"
    assert snap.cover_letter == ""
    # adapted CV from the successful first stage stays visible
    assert snap.adapted_cv.startswith("Contact Information")


def test_schema_violation_surfaces_generic_message(fake_invoker_cls, test_settings, form):
    invoker = fake_invoker_cls({"adaptCvPrompt": {"adapted_cv": "  "}})
    pipeline = build_pipeline(invoker, test_settings)

    snap = _run(pipeline.submit(form))

    assert snap.error.kind == "SchemaViolation"
    assert snap.error.message == "AI failed to adapt CV. Please try again."


def test_unexpected_exception_moves_to_error(fake_invoker_cls, test_settings, form):
    invoker = fake_invoker_cls({"adaptCvPrompt": RuntimeError("boom")})
    pipeline = build_pipeline(invoker, test_settings)

    snap = _run(pipeline.submit(form))

    assert snap.state == PipelineState.ERROR.value
    assert snap.error.kind == "UnexpectedError"
    assert not pipeline.busy


@pytest.mark.parametrize("field,value,message", [
    ("original_cv", "too short", "CV must be at least 50 characters long."),
    ("original_cv", "x" * 10_001, "CV must be at most 10000 characters long."),
    ("job_description", "", "Job description must be at least 50 characters long."),
    ("job_description", "y" * 10_001, "Job description must be at most 10000 characters long."),
])
def test_invalid_form_rejected_before_model_call(happy_invoker, test_settings, valid_form_data, field, value, message):
    data = dict(valid_form_data, **{field: value})
    pipeline = build_pipeline(happy_invoker, test_settings)

    snap = _run(pipeline.submit(TailorForm(**data)))

    assert snap.state == PipelineState.IDLE.value
    assert snap.field_errors == {field: message}
    assert happy_invoker.calls == []


def test_invalid_resubmit_keeps_previous_outputs(happy_invoker, test_settings, form, valid_form_data):
    pipeline = build_pipeline(happy_invoker, test_settings)
    done = _run(pipeline.submit(form))
    calls_before = len(happy_invoker.calls)

    snap = _run(pipeline.submit(TailorForm(**dict(valid_form_data, original_cv="short"))))

    assert snap.state == PipelineState.DONE.value
    assert snap.adapted_cv == done.adapted_cv
    assert snap.cover_letter == done.cover_letter
    assert snap.field_errors == {"original_cv": "CV must be at least 50 characters long."}
    assert len(happy_invoker.calls) == calls_before

    again = _run(pipeline.submit(form))

    assert again.field_errors == {}


def test_form_length_boundaries_accepted(happy_invoker, test_settings):
    pipeline = build_pipeline(happy_invoker, test_settings)

    snap = _run(pipeline.submit(TailorForm(original_cv="a" * 50, job_description="b" * 10_000)))

    assert snap.state == PipelineState.DONE.value


def test_error_then_resubmit(fake_invoker_cls, test_settings, form, adapted_cv_text, cover_letter_text):
    outputs = {
        "adaptCvPrompt": ModelError("rate limited"),
        "coverLetterPrompt": {"cover_letter": cover_letter_text},
    }
    invoker = fake_invoker_cls(outputs)
    pipeline = build_pipeline(invoker, test_settings)

    assert _run(pipeline.submit(form)).state == PipelineState.ERROR.value

    outputs["adaptCvPrompt"] = {"adapted_cv": adapted_cv_text}
    snap = _run(pipeline.submit(form))

    assert snap.state == PipelineState.DONE.value
    assert snap.error is None


def test_clear_resets_everything(happy_invoker, test_settings, notifier, form):
    pipeline = build_pipeline(happy_invoker, test_settings, notifier)
    _run(pipeline.submit(form))

    snap = pipeline.clear()

    assert snap.state == PipelineState.IDLE.value
    assert snap.adapted_cv == ""
    assert snap.cover_letter == ""
    assert notifier.drain()[-1].title == "Inputs Cleared"


def _blocking_invoker(fake_invoker_cls, adapted_cv_text, cover_letter_text):
    started = threading.Event()
    release = threading.Event()

    def slow_adapt(inputs):
        started.set()
        release.wait(5)
        return {"adapted_cv": adapted_cv_text}

    invoker = fake_invoker_cls({
        "adaptCvPrompt": slow_adapt,
        "coverLetterPrompt": {"cover_letter": cover_letter_text},
    })
    return invoker, started, release


def test_overlapping_submission_is_rejected(fake_invoker_cls, test_settings, form, adapted_cv_text, cover_letter_text):
    invoker, started, release = _blocking_invoker(fake_invoker_cls, adapted_cv_text, cover_letter_text)
    pipeline = build_pipeline(invoker, test_settings)

    async def scenario():
        first = asyncio.create_task(pipeline.submit(form))
        await asyncio.to_thread(started.wait, 5)
        assert pipeline.state == PipelineState.ADAPTING_CV
        try:
            with pytest.raises(PipelineBusy):
                await pipeline.submit(form)
        finally:
            release.set()
        return await first

    snap = _run(scenario())

    assert snap.state == PipelineState.DONE.value
    assert len(invoker.called("adaptCvPrompt")) == 1


def test_clear_discards_stale_result(fake_invoker_cls, test_settings, form, adapted_cv_text, cover_letter_text):
    invoker, started, release = _blocking_invoker(fake_invoker_cls, adapted_cv_text, cover_letter_text)
    pipeline = build_pipeline(invoker, test_settings)

    async def scenario():
        first = asyncio.create_task(pipeline.submit(form))
        await asyncio.to_thread(started.wait, 5)
        pipeline.clear()
        release.set()
        return await first

    snap = _run(scenario())

    assert snap.state == PipelineState.IDLE.value
    assert snap.adapted_cv == ""
    assert pipeline.adapted_cv == ""
    assert invoker.called("coverLetterPrompt") == []
    assert not pipeline.busy

from fastapi.testclient import TestClient

from backend.cvtailor.config import get_settings
from backend.cvtailor.core.errors import ModelError
from backend.cvtailor.main import app
from backend.cvtailor.services.prompt_invoker import get_prompt_invoker

client = TestClient(app)


def _override(invoker, settings):
    app.dependency_overrides[get_prompt_invoker] = lambda: invoker
    app.dependency_overrides[get_settings] = lambda: settings


def test_adapt_mocked(fake_invoker_cls, test_settings, valid_form_data, adapted_cv_text):
    _override(fake_invoker_cls({"adaptCvPrompt": {"adapted_cv": adapted_cv_text}}), test_settings)
    try:
        r = client.post("/cv/adapt", json=valid_form_data)
        assert r.status_code == 200, r.text
        assert r.json()["adapted_cv"].startswith("Contact Information")
    finally:
        app.dependency_overrides.clear()


def test_adapt_rejects_short_input(fake_invoker_cls, test_settings):
    invoker = fake_invoker_cls()
    _override(invoker, test_settings)
    try:
        r = client.post("/cv/adapt", json={"original_cv": "short", "job_description": "also short"})
        assert r.status_code == 422
        body = r.json()
        assert body["error"] == "ValidationError"
        assert set(body["field_errors"]) == {"original_cv", "job_description"}
        assert invoker.calls == []
    finally:
        app.dependency_overrides.clear()


def test_adapt_word_limit(fake_invoker_cls, test_settings, valid_form_data, adapted_cv_text):
    long_cv = adapted_cv_text + "\n" + "filler " * 700
    _override(fake_invoker_cls({"adaptCvPrompt": {"adapted_cv": long_cv}}), test_settings)
    try:
        r = client.post("/cv/adapt", json=valid_form_data)
        assert r.status_code == 502
        assert r.json()["error"] == "WordLimitExceeded"
    finally:
        app.dependency_overrides.clear()


def test_cover_letter_mocked(fake_invoker_cls, test_settings, adapted_cv_text, contact_links):
    _override(fake_invoker_cls({"coverLetterPrompt": {"cover_letter": "Dear team, I would love to join."}}), test_settings)
    try:
        r = client.post(
            "/cover-letter",
            json={"adapted_cv": adapted_cv_text, "job_description": "Backend Engineer"},
        )
        assert r.status_code == 200, r.text
        letter = r.json()["cover_letter"]
        assert letter.startswith("Dear team")
        for link in contact_links:
            assert f"{link.label}: {link.url}" in letter
    finally:
        app.dependency_overrides.clear()


def test_cover_letter_model_error(fake_invoker_cls, test_settings, adapted_cv_text):
    _override(fake_invoker_cls({"coverLetterPrompt": ModelError("quota exceeded")}), test_settings)
    try:
        r = client.post(
            "/cover-letter",
            json={"adapted_cv": adapted_cv_text, "job_description": "Backend Engineer"},
        )
        assert r.status_code == 502
        assert r.json() == {"error": "ModelError", "detail": "quota exceeded", "field_errors": {}}
    finally:
        app.dependency_overrides.clear()

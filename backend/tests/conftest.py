import pytest

from backend.cvtailor.config import ContactLink, Settings


CONTACT_LINKS = [
    ContactLink(label="Portfolio", url="https://jane.dev"),
    ContactLink(label="GitHub", url="https://github.com/janedoe"),
    ContactLink(label="LinkedIn", url="https://www.linkedin.com/in/janedoe"),
]

ADAPTED_CV = """Contact Information
Jane Doe | jane@example.com | https://jane.dev

Summary
Backend engineer focused on Python APIs.

Work Experience
Acme Corp - Senior Engineer (2020-2024)
- Built FastAPI services handling 2M requests per day
- Cut p95 latency by 40% with Redis caching
- Led a team of 4 engineers

Skills
Python, FastAPI, PostgreSQL, Docker

Education
BSc Computer Science
"""

COVER_LETTER = (
    "Dear Hiring Manager,\n\n"
    "I am excited to apply for the Backend Engineer role. At Acme Corp I built FastAPI "
    "services handling millions of requests a day and led a small team of engineers.\n\n"
    "Sincerely,\nJane Doe"
)


def sized(text: str, length: int) -> str:
    """Pad or cut ``text`` to exactly ``length`` characters."""
    return (text + " filler" * length)[:length]


class FakeInvoker:
    """PromptInvoker stub returning canned outputs keyed by template name."""

    def __init__(self, outputs=None):
        self.outputs = outputs or {}
        self.calls = []

    def invoke(self, template, inputs):
        self.calls.append((template.name, dict(inputs)))
        out = self.outputs[template.name]
        if callable(out):
            out = out(inputs)
        if isinstance(out, Exception):
            raise out
        return template.output_model.model_validate(out)

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def test_settings():
    return Settings(
        openai_api_key=None,
        gemini_api_key=None,
        mlflow_enabled=False,
        contact_links=CONTACT_LINKS,
    )


@pytest.fixture
def contact_links():
    return list(CONTACT_LINKS)


@pytest.fixture
def adapted_cv_text():
    return ADAPTED_CV


@pytest.fixture
def cover_letter_text():
    return COVER_LETTER


@pytest.fixture
def valid_form_data():
    return {
        "original_cv": sized(
            "Jane Doe, jane@example.com. Senior Engineer at Acme Corp 2020-2024. "
            "Built FastAPI services, Redis caching, PostgreSQL. Skills: Python, Docker.",
            200,
        ),
        "job_description": sized(
            "We are hiring a Backend Engineer with strong Python and FastAPI experience, "
            "PostgreSQL, Docker and a track record of improving API latency.",
            200,
        ),
    }


@pytest.fixture
def happy_invoker():
    return FakeInvoker({
        "adaptCvPrompt": {"adapted_cv": ADAPTED_CV},
        "coverLetterPrompt": {"cover_letter": COVER_LETTER},
    })


@pytest.fixture
def fake_invoker_cls():
    return FakeInvoker

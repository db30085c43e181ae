from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional, Sequence

from backend.cvtailor.core.errors import (
    MissingRequiredSection,
    PlaceholderDetected,
    SchemaViolation,
    TailorError,
    WordLimitExceeded,
)
from backend.cvtailor.core.prompts import PromptVersion, Prompts
from backend.cvtailor.models.contracts import AdaptationRequest, AdaptationResult

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\[[^\[\]]+\]")
LEADING_LABEL_PATTERN = re.compile(r"^\s*(?:adapted\s+cv|adapted\s+resume)\s*:\s*", re.IGNORECASE)

DEFAULT_WORD_LIMIT = 700
DEFAULT_REQUIRED_SECTIONS = ("Contact Information", "Work Experience", "Skills")


def count_words(text: str) -> int:
    return len(text.split())


def find_placeholder(text: str) -> Optional[str]:
    match = PLACEHOLDER_PATTERN.search(text)
    return match.group(0) if match else None


def missing_sections(text: str, required: Iterable[str]) -> list[str]:
    return [section for section in required if section not in text]


def validate_adapted_cv(
    text: str,
    word_limit: int = DEFAULT_WORD_LIMIT,
    required_sections: Sequence[str] = DEFAULT_REQUIRED_SECTIONS,
) -> None:
    """Raise on the first rule the adapted CV breaks. Order: placeholder, length, sections."""
    placeholder = find_placeholder(text)
    if placeholder:
        raise PlaceholderDetected(f"Adapted CV contains placeholder text: {placeholder}")

    words = count_words(text)
    if words > word_limit:
        raise WordLimitExceeded(f"Adapted CV has {words} words (limit {word_limit})")

    missing = missing_sections(text, required_sections)
    if missing:
        raise MissingRequiredSection(
            f"Adapted CV is missing required section(s): {', '.join(missing)}"
        )


class CVAdapter:
    """Rewrites a CV toward a job description and checks the result."""

    def __init__(
        self,
        invoker: Any,
        word_limit: int = DEFAULT_WORD_LIMIT,
        required_sections: Sequence[str] = DEFAULT_REQUIRED_SECTIONS,
        version: PromptVersion = PromptVersion.V2,
    ):
        self.invoker = invoker
        self.word_limit = word_limit
        self.required_sections = tuple(required_sections)
        self.template = Prompts.get_cv_adaptation(version, word_limit=word_limit)

    def adapt(self, request: AdaptationRequest) -> AdaptationResult:
        logger.info(
            "Adapting CV (%d chars) to job description (%d chars)",
            len(request.cv),
            len(request.job_description),
        )

        output = self.invoker.invoke(
            self.template,
            {"cv": request.cv, "job_description": request.job_description},
        )

        adapted = LEADING_LABEL_PATTERN.sub("", output.adapted_cv, count=1).strip()

        if not adapted:
            raise SchemaViolation("Model returned an empty adapted CV")

        try:
            validate_adapted_cv(adapted, self.word_limit, self.required_sections)
        except TailorError as e:
            logger.warning("Adapted CV rejected: %s", e)
            raise

        logger.info("CV adapted: %d words", count_words(adapted))
        return AdaptationResult(adapted_cv=adapted)

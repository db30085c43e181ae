from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional, Sequence

from backend.cvtailor.config import ContactLink
from backend.cvtailor.core.errors import SchemaViolation
from backend.cvtailor.core.prompts import PromptVersion, Prompts
from backend.cvtailor.models.contracts import CoverLetterRequest, CoverLetterResult

logger = logging.getLogger(__name__)

LEADING_LABEL_PATTERN = re.compile(r"^\s*cover\s+letter\s*:\s*", re.IGNORECASE)


def strip_leading_label(text: str) -> str:
    return LEADING_LABEL_PATTERN.sub("", text, count=1)


def append_contact_links(letter: str, links: Iterable[ContactLink]) -> str:
    """
    Append "<Label>: <URL>" for every link whose URL is not already in the letter.

    The appended block is separated from the body by a blank line. Running
    this on its own output returns it unchanged.
    """
    missing = [f"{link.label}: {link.url}" for link in links if link.url not in letter]
    if not missing:
        return letter
    return letter.rstrip() + "\n\n" + "\n".join(missing)


class CoverLetterGenerator:
    def __init__(
        self,
        invoker: Any,
        contact_links: Optional[Sequence[ContactLink]] = None,
        version: PromptVersion = PromptVersion.V2,
    ):
        self.invoker = invoker
        self.contact_links = list(contact_links or [])
        self.template = Prompts.get_cover_letter(version)

    def generate(self, request: CoverLetterRequest) -> CoverLetterResult:
        logger.info("Generating cover letter from adapted CV (%d chars)", len(request.adapted_cv))

        output = self.invoker.invoke(
            self.template,
            {"adapted_cv": request.adapted_cv, "job_description": request.job_description},
        )

        body = strip_leading_label(output.cover_letter).strip()
        if not body:
            raise SchemaViolation("Model returned an empty cover letter")

        letter = append_contact_links(body, self.contact_links)
        if letter != body:
            logger.info("Appended missing contact links to cover letter")

        return CoverLetterResult(cover_letter=letter)

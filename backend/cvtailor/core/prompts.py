import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple, Type

from pydantic import BaseModel

from backend.cvtailor.models.contracts import AdaptationResult, CoverLetterResult


class PromptVersion(Enum):
    V1 = "v1"
    V2 = "v2"


@dataclass(frozen=True)
class PromptTemplate:
    """A named instruction string plus the output shape the model must return."""

    name: str
    version: PromptVersion
    system: str
    user: str
    output_model: Type[BaseModel]
    temperature: float = 0.3
    max_tokens: int = 2000

    def render(self, inputs: Dict[str, Any]) -> Tuple[str, str]:
        try:
            return self.system, self.user.format(**inputs)
        except KeyError as e:
            raise ValueError(f"Prompt '{self.name}' is missing input {e}") from e


def _schema_block(model: Type[BaseModel]) -> str:
    return json.dumps(model.model_json_schema(), indent=2)


CV_ADAPTATION_SYSTEM_V1 = """You are an expert resume writer. Adapt the Original CV to the Job Description, creating a complete and tailored resume.

Rules for "adapted_cv":
1. Adapt every section of the Original CV to the Job Description. Omit a section only if it is irrelevant after adaptation.
2. If a Summary is present, align it with the target role and highlight no more than one primary role.
3. Tailor the Skills section to the keywords of the Job Description.
4. Work Experience: at most 3 most relevant entries, each with at most 3 concise bullet points.
5. Do not include any introductory label (like "Adapted CV:").
6. Do not include placeholder text. Do not invent URLs or reproduce placeholders such as '[Portfolio Link]'.

Return STRICT JSON only (no markdown, no extra text) matching this schema:
{schema}
"""

CV_ADAPTATION_SYSTEM_V2 = """You are an expert resume writer. Adapt the Original CV to the Job Description, producing a complete, ready-to-use resume.

Rules for "adapted_cv" (critical):
1. Use exactly these section headers, in this order, each on its own line:
   "Contact Information", "Summary", "Work Experience", "Skills", "Education".
   "Contact Information", "Work Experience" and "Skills" are mandatory.
   Omit any other section entirely if it cannot be meaningfully adapted.
2. Summary: aligned with the target role, highlighting no more than one primary role.
3. Work Experience: at most 3 entries, the most relevant to the Job Description, each with at most 3 bullet points.
4. Skills: mirror the keywords of the Job Description that the Original CV supports.
5. Links: keep only complete literal URLs that already appear in the Original CV.
   Never invent URLs. Never write bracketed placeholders such as "[Your Website]" or "[Portfolio Link]";
   if the real value is unknown, leave that line out.
6. Keep the whole CV under {word_limit} words.
7. Start directly with the CV content. No introductory label (like "Adapted CV:").

Return STRICT JSON only (no markdown, no extra text) matching this schema:
{schema}
"""

CV_ADAPTATION_USER = """Original CV:
{cv}

Job Description:
{job_description}
"""

COVER_LETTER_SYSTEM_V1 = """You are an expert career coach specializing in professional cover letters.

Write a compelling cover letter based on the Adapted CV and the Job Description.
Highlight the skills and experience from the CV that align with the Job Description.

Return STRICT JSON only (no markdown, no extra text) matching this schema:
{schema}
"""

COVER_LETTER_SYSTEM_V2 = """You are an expert career coach specializing in professional cover letters.

Rules for "cover_letter" (critical):
- Write the complete letter body only. Do not start with a label such as "Cover Letter:".
- Highlight the skills and experience from the Adapted CV that overlap with the Job Description.
- Do NOT invent employers, titles, degrees, dates, achievements or tools not present in the Adapted CV.
- Mention a portfolio or contact link only if its complete literal URL appears in the Adapted CV.
  Never invent links and never use placeholder link syntax such as "[Portfolio Link]".

Return STRICT JSON only (no markdown, no extra text) matching this schema:
{schema}
"""

COVER_LETTER_USER = """Adapted CV:
{adapted_cv}

Job Description:
{job_description}
"""


class Prompts:
    """Centralized prompt repository. Versioned prompts for LLM calls."""

    @staticmethod
    def get_cv_adaptation(version: PromptVersion, word_limit: int = 700) -> PromptTemplate:
        schema_json = _schema_block(AdaptationResult)

        if version == PromptVersion.V1:
            system = CV_ADAPTATION_SYSTEM_V1.format(schema=schema_json)
        elif version == PromptVersion.V2:
            system = CV_ADAPTATION_SYSTEM_V2.format(schema=schema_json, word_limit=word_limit)
        else:
            raise ValueError(f"Unsupported prompt version: {version}")

        return PromptTemplate(
            name="adaptCvPrompt",
            version=version,
            system=system,
            user=CV_ADAPTATION_USER,
            output_model=AdaptationResult,
            temperature=0.2,
            max_tokens=2000,
        )

    @staticmethod
    def get_cover_letter(version: PromptVersion) -> PromptTemplate:
        schema_json = _schema_block(CoverLetterResult)

        if version == PromptVersion.V1:
            system = COVER_LETTER_SYSTEM_V1.format(schema=schema_json)
        elif version == PromptVersion.V2:
            system = COVER_LETTER_SYSTEM_V2.format(schema=schema_json)
        else:
            raise ValueError(f"Unsupported prompt version: {version}")

        return PromptTemplate(
            name="coverLetterPrompt",
            version=version,
            system=system,
            user=COVER_LETTER_USER,
            output_model=CoverLetterResult,
            temperature=0.4,
            max_tokens=1000,
        )

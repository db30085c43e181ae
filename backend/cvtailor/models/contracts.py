from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from backend.cvtailor.core.errors import InputValidationError


_FIELD_LABELS = {
    "original_cv": "CV",
    "job_description": "Job description",
}


class TailorForm(BaseModel):
    """Raw form submission. Lengths are checked by ``AdaptationRequest.from_form``."""

    original_cv: str = ""
    job_description: str = ""


class AdaptationRequest(BaseModel):
    cv: str
    job_description: str

    @classmethod
    def from_form(cls, form: TailorForm, min_chars: int = 50, max_chars: int = 10_000) -> "AdaptationRequest":
        field_errors: Dict[str, str] = {}
        for field, label in _FIELD_LABELS.items():
            value = getattr(form, field) or ""
            if len(value) < min_chars:
                field_errors[field] = f"{label} must be at least {min_chars} characters long."
            elif len(value) > max_chars:
                field_errors[field] = f"{label} must be at most {max_chars} characters long."

        if field_errors:
            raise InputValidationError(field_errors)

        return cls(cv=form.original_cv, job_description=form.job_description)


class AdaptationResult(BaseModel):
    adapted_cv: str = Field(..., min_length=1)


class CoverLetterRequest(BaseModel):
    adapted_cv: str = Field(..., min_length=1)
    job_description: str = Field(..., min_length=1)


class CoverLetterResult(BaseModel):
    cover_letter: str = Field(..., min_length=1)


class Notification(BaseModel):
    title: str
    description: str
    variant: str = "default"


class PipelineError(BaseModel):
    kind: str
    message: str


class PipelineSnapshot(BaseModel):
    session_id: Optional[str] = None
    state: str
    adapted_cv: str = ""
    cover_letter: str = ""
    error: Optional[PipelineError] = None
    field_errors: Dict[str, str] = Field(default_factory=dict)
    notifications: List[Notification] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    field_errors: Dict[str, str] = Field(default_factory=dict)

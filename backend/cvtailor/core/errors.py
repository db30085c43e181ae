"""Error taxonomy shared by the tailoring stages and the pipeline."""
from __future__ import annotations

from typing import Dict, Optional


class TailorError(Exception):
    """Base class. ``kind`` is the stable name surfaced to clients."""

    kind = "TailorError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(TailorError):
    """Form input rejected before any model call."""

    kind = "ValidationError"

    def __init__(self, field_errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message or "Please correct the highlighted fields.")
        self.field_errors = field_errors


class ModelError(TailorError):
    """Provider or network failure."""

    kind = "ModelError"


class SchemaViolation(TailorError):
    """Model output could not be parsed into the declared output shape."""

    kind = "SchemaViolation"


class PlaceholderDetected(TailorError):
    kind = "PlaceholderDetected"


class WordLimitExceeded(TailorError):
    kind = "WordLimitExceeded"


class MissingRequiredSection(TailorError):
    kind = "MissingRequiredSection"


class PipelineBusy(TailorError):
    """A submission is already in flight for this session."""

    kind = "PipelineBusy"

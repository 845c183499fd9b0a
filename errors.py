from enum import Enum


class ErrorKind(Enum):
    EMPTY_INPUT = "empty_input"
    MODEL_OUTPUT_MISSING = "model_output_missing"
    MODEL_OVERLOADED = "model_overloaded"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNKNOWN_MODEL_FAILURE = "unknown_model_failure"


class ModelErrorKind(Enum):
    OVERLOADED = "overloaded"
    AUTH_FAILED = "auth_failed"
    OTHER = "other"


class ModelCallError(Exception):
    """Raised by a model backend when the call itself failed."""

    def __init__(self, kind: ModelErrorKind, message: str = ""):
        super().__init__(message)
        self.kind = kind


class AgentorError(Exception):
    """A classified operation failure carrying only the user-facing message."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class WizardError(Exception):
    """A wizard guard rejected the requested transition."""

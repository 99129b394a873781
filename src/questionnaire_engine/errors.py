"""Exception hierarchy for the questionnaire engine.

Field-level validation failures are *not* exceptions; they are returned as
``ValidationError`` values by the validation engine.  The exceptions below
cover collaborator failures and broken invariants.
"""


class QuestionnaireError(Exception):
    """Base class for all engine errors."""


class NetworkError(QuestionnaireError):
    """A collaborator call failed, timed out, or returned a non-2xx status.

    Recoverable: autosave retries on the next tick, explicit user actions
    surface the message.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CatalogError(QuestionnaireError):
    """The template catalog could not be loaded (missing, inactive, or unreachable)."""


class StateInvariantViolation(QuestionnaireError):
    """An operation was attempted in a state that does not allow it."""


class ConfigurationError(QuestionnaireError):
    """Malformed catalog data that could not be interpreted."""

"""
Error taxonomy for the plan assistant.

Every error carries a user-safe message (``str(error)``) and an optional
``detail`` with provider-side information that is only ever logged.
"""

from typing import Optional


class PlanAssistantError(Exception):
    """Base class for all plan assistant errors"""

    kind = "error"
    default_message = "The request could not be completed."

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class NotFound(PlanAssistantError):
    kind = "not_found"
    default_message = "The requested travel plan was not found."


class Forbidden(PlanAssistantError):
    kind = "forbidden"
    default_message = "You do not have access to this travel plan."


class ConflictError(PlanAssistantError):
    kind = "conflict"
    default_message = "This plan is already being analyzed. Please wait for it to finish."


class InvalidRequest(PlanAssistantError):
    kind = "invalid_request"
    default_message = "The request is invalid."


class ConfigurationError(PlanAssistantError):
    kind = "configuration"
    default_message = "The model service API key is not configured."


class MalformedOutput(PlanAssistantError):
    kind = "malformed_output"
    default_message = "The model returned content that is not valid JSON."


class SchemaViolation(PlanAssistantError):
    kind = "schema_violation"
    default_message = "The model returned JSON that does not match the analysis contract."

    def __init__(self, field: str, message: Optional[str] = None, detail: Optional[str] = None):
        self.field = field
        super().__init__(message or f"{self.default_message} (field: {field})", detail)


class DimensionMismatch(PlanAssistantError):
    kind = "dimension_mismatch"
    default_message = "Embedding dimension does not match the index."

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding dimension mismatch. Expected {expected}, got {actual}"
        )


class ExternalServiceError(PlanAssistantError):
    kind = "external_service"
    default_message = "An external service failed."


class LLMUnavailable(ExternalServiceError):
    kind = "llm_unavailable"
    default_message = "The model service is unavailable."


class LLMEmptyResponse(PlanAssistantError):
    kind = "llm_empty_response"
    default_message = "The model did not return any content."


class EmbeddingUnavailable(ExternalServiceError):
    kind = "embedding_unavailable"
    default_message = "The embedding model is unavailable."

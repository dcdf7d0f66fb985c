class AIServiceError(Exception):
    """Base class for failures of an AI-backed step."""


class InferenceUnavailable(AIServiceError):
    """Provider credentials or endpoint are not configured."""


class InferenceError(AIServiceError):
    """Provider call failed or returned an empty body."""


class MalformedResponse(InferenceError):
    """Provider returned something that is not a JSON object."""


class GenerationError(AIServiceError):
    """A primary deliverable could not be produced."""


class TranscriptionError(AIServiceError):
    """No transcription provider produced a transcript."""

"""Domain errors."""


class ExtractionFailure(Exception):
    """Extraction call failed (network, parse, or no data found).

    Retried by the backoff retrier.
    """


class PermanentExtractionFailure(ExtractionFailure):
    """Extraction failure that will not go away on retry (e.g. bad credentials)."""


class InvalidExtractionError(Exception):
    """Extraction returned a value that indicates a failed scan."""


class InvalidTransitionError(Exception):
    """Illegal task status change or inconsistent update payload."""


class TaskNotFoundError(KeyError):
    """No task with the given id."""

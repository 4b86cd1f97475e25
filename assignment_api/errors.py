"""
Exception types raised while answering a question.
"""


class AnswerServiceError(Exception):
    """Base class for failures surfaced by the answer API."""


class ValidationError(AnswerServiceError):
    """The caller sent an unusable request (e.g. no question)."""


class ExtractionError(AnswerServiceError):
    """An uploaded archive could not be unpacked."""


class TableParseError(AnswerServiceError):
    """A CSV file could not be read or parsed."""


class SynthesisError(AnswerServiceError):
    """The text-generation service failed to produce an answer."""

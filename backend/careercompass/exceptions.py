"""
Custom exceptions for the embedding store and similarity search.
"""
from typing import Optional


class CompassError(Exception):
    """Base exception for all CareerCompass embedding errors."""
    pass


class ValidationError(CompassError, ValueError):
    """
    Malformed embedding input.

    Raised when:
    - Content text is empty or longer than the allowed maximum
    - Vector is empty or has more dimensions than allowed
    - A bounded field (boost, confidence, chunk index) is out of range
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConflictError(CompassError):
    """An embedding already exists for the same (content_id, content_type) pair."""

    def __init__(self, content_id: str, content_type: str):
        super().__init__(
            f"Embedding already exists for content_id={content_id} content_type={content_type}"
        )
        self.content_id = content_id
        self.content_type = content_type


class NotFoundError(CompassError):
    """The addressed embedding (or referenced document) does not exist."""

    def __init__(self, message: str, resource_id: Optional[str] = None):
        super().__init__(message)
        self.resource_id = resource_id


class DimensionMismatchError(CompassError, ValueError):
    """Two vectors of different length were compared."""

    def __init__(self, left: int, right: int):
        super().__init__(f"Vector dimensions must match: {left} != {right}")
        self.left = left
        self.right = right


class SearchTimeoutError(CompassError):
    """Similarity search exceeded the configured time budget."""

    def __init__(self, timeout_seconds: float):
        super().__init__(f"Similarity search timed out after {timeout_seconds}s")
        self.timeout_seconds = timeout_seconds

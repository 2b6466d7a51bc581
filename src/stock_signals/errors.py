"""Exceptions raised by the scoring core."""


class ValidationError(ValueError):
    """Raised when caller input is malformed (e.g. misaligned series)."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

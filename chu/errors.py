"""Exceptions raised by the validation and storage layers."""

from typing import List, Sequence


class ChuError(Exception):
    """Base class for server errors."""


class ValidationError(ChuError):
    """An inbound record is missing required fields or has mistyped ones."""

    def __init__(self, missing: Sequence[str], invalid: Sequence[str] = ()):
        self.missing: List[str] = list(missing)
        self.invalid: List[str] = list(invalid)
        problems = []
        if self.missing:
            problems.append(f"Missing required fields: {', '.join(self.missing)}")
        if self.invalid:
            problems.append(f"Fields must be strings: {', '.join(self.invalid)}")
        super().__init__("; ".join(problems))


class StoreConnectionError(ChuError):
    """The document store could not be reached at startup."""


class StoreOperationError(ChuError):
    """A read or write against the document store failed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

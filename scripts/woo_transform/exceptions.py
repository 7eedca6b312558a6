"""
Fatal errors for the WordPress product transformer.

Anything raised from here aborts the run; recoverable problems are logged and
counted in TransformStats instead.
"""

from typing import Iterable


class TransformError(Exception):
    """Base class for errors that stop a transformation run."""


class MissingColumnsError(TransformError):
    """The source CSV lacks columns the transformer cannot work without."""

    def __init__(self, missing: Iterable[str], source: str = ""):
        self.missing = list(missing)
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Missing required column(s){where}: {', '.join(self.missing)}")


class EmptyOutputError(TransformError):
    """No product rows were produced, so there is nothing to write."""

    def __init__(self, message: str = "No rows to write"):
        super().__init__(message)


class InvalidInputError(TransformError):
    """The source file exists but cannot be read as a CSV export."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot read {source}: {reason}")
